"""
Circuit Breaker Pattern Implementation

Stops calling an external source after repeated failures until a cooldown
has elapsed, then lets a probe through.
"""
import logging
import time
from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject requests
    HALF_OPEN = "half_open"  # Testing if service recovered

    def __str__(self) -> str:
        return self.value


@dataclass
class CircuitBreakerState:
    """Breaker state for one external source."""

    failures: int = 0
    last_failure_time: Optional[float] = None
    state: CircuitState = CircuitState.CLOSED


class CircuitBreakerRegistry:
    """
    Per-source circuit breakers sharing one lock.

    States:
    - CLOSED: Normal operation, calls pass through
    - OPEN: Too many consecutive failures, calls are refused until the cooldown elapses
    - HALF_OPEN: Cooldown elapsed, calls pass through as probes
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        cooldown_seconds: float = 60.0,
        clock: Optional[Clock] = None
    ):
        self.failure_threshold = failure_threshold
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock or time.monotonic
        self._states: Dict[str, CircuitBreakerState] = {}
        self._lock = Lock()

    def allow(self, source: str) -> bool:
        """Return True if a call to the source may proceed."""
        with self._lock:
            breaker = self._states.setdefault(source, CircuitBreakerState())

            if breaker.state == CircuitState.OPEN:
                elapsed = self._clock() - (breaker.last_failure_time or 0.0)
                if elapsed >= self.cooldown_seconds:
                    logger.info(f"Circuit breaker for '{source}' transitioning to HALF_OPEN state")
                    breaker.state = CircuitState.HALF_OPEN
                    return True
                return False

            return True

    def record(self, source: str, success: bool) -> None:
        """Record the outcome of a call to the source."""
        with self._lock:
            breaker = self._states.setdefault(source, CircuitBreakerState())

            if success:
                if breaker.state != CircuitState.CLOSED:
                    logger.info(f"Circuit breaker for '{source}' transitioning to CLOSED state")
                breaker.failures = 0
                breaker.state = CircuitState.CLOSED
                return

            breaker.failures += 1
            breaker.last_failure_time = self._clock()

            if breaker.state == CircuitState.HALF_OPEN:
                logger.warning(f"Probe to '{source}' failed, circuit breaker back to OPEN state")
                breaker.state = CircuitState.OPEN
            elif breaker.failures >= self.failure_threshold and breaker.state == CircuitState.CLOSED:
                logger.error(f"Circuit breaker for '{source}' opening after {breaker.failures} failures")
                breaker.state = CircuitState.OPEN

    def get_state(self, source: str) -> CircuitState:
        """Current state for a source (CLOSED if never used)."""
        with self._lock:
            breaker = self._states.get(source)
            return breaker.state if breaker else CircuitState.CLOSED

    def states(self) -> Dict[str, Dict[str, object]]:
        """Snapshot of every breaker, for diagnostics."""
        with self._lock:
            return {
                source: {"state": b.state.value, "failures": b.failures}
                for source, b in self._states.items()
            }

    def reset(self, source: Optional[str] = None) -> None:
        """Close one breaker, or all of them."""
        with self._lock:
            if source is None:
                self._states.clear()
            else:
                self._states.pop(source, None)
