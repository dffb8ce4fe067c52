"""
Resource governor guarding every external verification call.

Combines the per-source rate limiter, the per-source circuit breaker and the
TTL result cache behind one object shared by all rules and checks.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from integrity_engine.core.config import Settings, settings as default_settings
from integrity_engine.services.governor.circuit_breaker import CircuitBreakerRegistry, CircuitState
from integrity_engine.services.governor.input_validator import InputValidationResult, validate_input
from integrity_engine.services.governor.rate_limiter import RateLimiter
from integrity_engine.services.governor.result_cache import ResultCache

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
ExternalCall = Callable[[], Union[Any, Awaitable[Any]]]


class OutcomeStatus(str, Enum):
    """How a governed external call ended."""
    OK = "ok"
    RATE_LIMITED = "rate_limited"
    CIRCUIT_OPEN = "circuit_open"
    TIMEOUT = "timeout"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ExternalCallOutcome:
    """Result of a governed call. Only OK outcomes carry a value."""

    source: str
    status: OutcomeStatus
    value: Any = None
    from_cache: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.OK

    @property
    def inconclusive(self) -> bool:
        """The collaborator could not give an answer; not evidence either way."""
        return not self.ok


class ResourceGovernor:
    """Rate limiting, circuit breaking and caching for external sources."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        rate_limiter: Optional[RateLimiter] = None,
        circuit_breakers: Optional[CircuitBreakerRegistry] = None,
        cache: Optional[ResultCache] = None,
    ):
        self.config = config or default_settings
        self._clock = clock or time.monotonic
        self.rate_limiter = rate_limiter or RateLimiter(self.config.get_rate_limit, clock=self._clock)
        self.circuit_breakers = circuit_breakers or CircuitBreakerRegistry(
            failure_threshold=self.config.CIRCUIT_BREAKER_THRESHOLD,
            cooldown_seconds=self.config.CIRCUIT_BREAKER_COOLDOWN_SECONDS,
            clock=self._clock,
        )
        self.cache = cache or ResultCache(default_ttl=self.config.CACHE_TTL_SECONDS, clock=self._clock)

    # ------------------------------------------------------------------
    # Primitive operations
    # ------------------------------------------------------------------

    def check_rate_limit(self, source: str) -> bool:
        return self.rate_limiter.check(source)

    def check_circuit_breaker(self, source: str) -> bool:
        return self.circuit_breakers.allow(source)

    def record_api_result(self, source: str, success: bool) -> None:
        self.circuit_breakers.record(source, success)

    def get_circuit_state(self, source: str) -> CircuitState:
        return self.circuit_breakers.get_state(source)

    async def with_cache(self, key: str, fn: ExternalCall, ttl: Optional[float] = None) -> Any:
        """Cached value if unexpired, otherwise the result of fn (stored with ttl)."""
        return await self.cache.get_or_load(key, fn, ttl)

    def validate_input(self, schema: Dict[str, Any], args: Any) -> InputValidationResult:
        return validate_input(schema, args)

    # ------------------------------------------------------------------
    # Governed external call
    # ------------------------------------------------------------------

    async def call_external(
        self,
        source: str,
        fn: ExternalCall,
        *,
        cache_key: Optional[str] = None,
        ttl: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> ExternalCallOutcome:
        """
        Invoke an external collaborator under the source's guards.

        Order: cache, circuit breaker, rate limit, then the call itself with
        its own timeout. Collaborator failures never raise; they are reported
        through the outcome status and counted against the circuit breaker.
        """
        if cache_key is not None:
            hit, cached = self.cache.get(cache_key)
            if hit:
                return ExternalCallOutcome(source=source, status=OutcomeStatus.OK, value=cached, from_cache=True)

        if not self.check_circuit_breaker(source):
            logger.info(f"Skipping call to '{source}': circuit open")
            return ExternalCallOutcome(source=source, status=OutcomeStatus.CIRCUIT_OPEN)

        if not self.check_rate_limit(source):
            return ExternalCallOutcome(source=source, status=OutcomeStatus.RATE_LIMITED)

        call_timeout = timeout if timeout is not None else self.config.EXTERNAL_CALL_TIMEOUT_SECONDS
        try:
            value = await asyncio.wait_for(self._invoke(fn), timeout=call_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Call to '{source}' timed out after {call_timeout}s")
            self.record_api_result(source, False)
            return ExternalCallOutcome(source=source, status=OutcomeStatus.TIMEOUT, error="timeout")
        except Exception as e:
            logger.warning(f"Call to '{source}' failed: {type(e).__name__}: {e}")
            self.record_api_result(source, False)
            return ExternalCallOutcome(source=source, status=OutcomeStatus.ERROR, error=str(e))

        self.record_api_result(source, True)
        if cache_key is not None:
            self.cache.set(cache_key, value, ttl)
        return ExternalCallOutcome(source=source, status=OutcomeStatus.OK, value=value)

    @staticmethod
    async def _invoke(fn: ExternalCall) -> Any:
        result = fn()
        if asyncio.iscoroutine(result) or isinstance(result, asyncio.Future):
            result = await result
        return result

    def snapshot(self) -> Dict[str, Any]:
        """Breaker states, rate-limit usage and cache size for health checks."""
        return {
            "circuit_breakers": self.circuit_breakers.states(),
            "rate_limits": self.rate_limiter.usage(),
            "cache_entries": len(self.cache),
        }
