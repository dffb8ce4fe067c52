"""
Unit tests for the resource governor.

Covers the per-source rate limiter, circuit breaker, TTL cache, input
validation and governed external calls. Time is driven by a fake clock.
"""
import asyncio
import threading
import unittest
from concurrent.futures import ThreadPoolExecutor

from integrity_engine.core.config import Settings
from integrity_engine.services.governor import (
    CircuitBreakerRegistry,
    CircuitState,
    OutcomeStatus,
    RateLimiter,
    ResourceGovernor,
    ResultCache,
    validate_input,
)


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestRateLimiter(unittest.TestCase):
    """Test cases for RateLimiter."""

    def setUp(self):
        self.clock = FakeClock()
        self.limiter = RateLimiter(lambda source: (3, 60.0), clock=self.clock)

    def test_quota_exhausted_within_window(self):
        """Three calls pass, the fourth is refused."""
        results = [self.limiter.check("doi") for _ in range(4)]
        self.assertEqual(results, [True, True, True, False])

    def test_refused_call_does_not_consume_quota(self):
        for _ in range(5):
            self.limiter.check("doi")
        self.assertEqual(self.limiter.usage()["doi"]["used"], 3)

    def test_window_resets_after_expiry(self):
        for _ in range(3):
            self.limiter.check("doi")
        self.assertFalse(self.limiter.check("doi"))

        self.clock.advance(61)
        self.assertTrue(self.limiter.check("doi"))
        self.assertEqual(self.limiter.usage()["doi"]["used"], 1)

    def test_sources_are_independent(self):
        for _ in range(3):
            self.limiter.check("doi")
        self.assertFalse(self.limiter.check("doi"))
        self.assertTrue(self.limiter.check("crossref"))

    def test_default_limits_from_settings(self):
        """Unknown sources fall back to the default quota and window."""
        config = Settings(RATE_LIMITS={}, DEFAULT_RATE_LIMIT_QUOTA=100, DEFAULT_RATE_LIMIT_WINDOW_SECONDS=3600.0)
        self.assertEqual(config.get_rate_limit("anything"), (100, 3600.0))


class TestCircuitBreaker(unittest.TestCase):
    """Test cases for CircuitBreakerRegistry."""

    def setUp(self):
        self.clock = FakeClock()
        self.breakers = CircuitBreakerRegistry(failure_threshold=5, cooldown_seconds=60.0, clock=self.clock)

    def _fail(self, times: int, source: str = "crossref"):
        for _ in range(times):
            self.breakers.record(source, False)

    def test_starts_closed(self):
        self.assertEqual(self.breakers.get_state("crossref"), CircuitState.CLOSED)
        self.assertTrue(self.breakers.allow("crossref"))

    def test_opens_after_threshold_failures(self):
        self._fail(4)
        self.assertEqual(self.breakers.get_state("crossref"), CircuitState.CLOSED)

        self._fail(1)
        self.assertEqual(self.breakers.get_state("crossref"), CircuitState.OPEN)
        self.assertFalse(self.breakers.allow("crossref"))

    def test_success_resets_failure_count(self):
        self._fail(4)
        self.breakers.record("crossref", True)
        self._fail(4)
        self.assertEqual(self.breakers.get_state("crossref"), CircuitState.CLOSED)

    def test_half_open_after_cooldown(self):
        self._fail(5)
        self.clock.advance(30)
        self.assertFalse(self.breakers.allow("crossref"))

        self.clock.advance(30)
        self.assertTrue(self.breakers.allow("crossref"))
        self.assertEqual(self.breakers.get_state("crossref"), CircuitState.HALF_OPEN)

    def test_half_open_success_closes(self):
        self._fail(5)
        self.clock.advance(60)
        self.breakers.allow("crossref")
        self.breakers.record("crossref", True)
        self.assertEqual(self.breakers.get_state("crossref"), CircuitState.CLOSED)

    def test_half_open_failure_reopens(self):
        self._fail(5)
        self.clock.advance(60)
        self.breakers.allow("crossref")
        self.breakers.record("crossref", False)
        self.assertEqual(self.breakers.get_state("crossref"), CircuitState.OPEN)
        self.assertFalse(self.breakers.allow("crossref"))


class TestResultCache(unittest.IsolatedAsyncioTestCase):
    """Test cases for ResultCache."""

    def setUp(self):
        self.clock = FakeClock()
        self.cache = ResultCache(default_ttl=3600.0, clock=self.clock)

    def test_hit_before_expiry(self):
        self.cache.set("doi:10.1000/1", True)
        self.clock.advance(3599)
        self.assertEqual(self.cache.get("doi:10.1000/1"), (True, True))

    def test_never_returns_expired_entries(self):
        self.cache.set("doi:10.1000/1", True)
        self.clock.advance(3600)
        self.assertEqual(self.cache.get("doi:10.1000/1"), (False, None))
        self.assertEqual(len(self.cache), 0)

    async def test_get_or_load_calls_loader_once(self):
        calls = []

        async def loader():
            calls.append(1)
            return "value"

        first = await self.cache.get_or_load("key", loader)
        second = await self.cache.get_or_load("key", loader)
        self.assertEqual((first, second), ("value", "value"))
        self.assertEqual(len(calls), 1)

    async def test_get_or_load_reloads_after_ttl(self):
        values = iter(["old", "new"])
        await self.cache.get_or_load("key", lambda: next(values), ttl=10)
        self.clock.advance(10)
        self.assertEqual(await self.cache.get_or_load("key", lambda: next(values), ttl=10), "new")


class TestValidateInput(unittest.TestCase):
    """Test cases for declarative input validation."""

    SCHEMA = {
        "type": "object",
        "properties": {
            "content": {"type": "string", "minLength": 1, "maxLength": 50},
            "style": {"type": "string", "enum": ["apa", "mla"]},
            "limit": {"type": "integer", "minimum": 1, "maximum": 10},
            "tags": {"type": "array", "items": {"type": "string"}},
        },
        "required": ["content"],
    }

    def test_valid_input_is_sanitized(self):
        result = validate_input(self.SCHEMA, {"content": "  <b>bold</b> & more  ", "tags": ["<i>"]})
        self.assertTrue(result.is_valid)
        self.assertEqual(result.sanitized["content"], "&lt;b&gt;bold&lt;/b&gt; &amp; more")
        self.assertEqual(result.sanitized["tags"], ["&lt;i&gt;"])

    def test_validated_copy_is_trimmed_but_not_escaped(self):
        result = validate_input(self.SCHEMA, {"content": "  Smith & Jones <2020>  ", "tags": [" a&b "]})
        self.assertEqual(result.validated["content"], "Smith & Jones <2020>")
        self.assertEqual(result.validated["tags"], ["a&b"])
        self.assertEqual(result.sanitized["content"], "Smith &amp; Jones &lt;2020&gt;")

    def test_missing_required_field(self):
        result = validate_input(self.SCHEMA, {})
        self.assertFalse(result.is_valid)
        self.assertIn("args.content is required", result.errors)

    def test_errors_never_come_with_sanitized_copy(self):
        result = validate_input(self.SCHEMA, {"content": "ok", "style": "ieee", "limit": 0})
        self.assertFalse(result.is_valid)
        self.assertIsNone(result.sanitized)
        self.assertIsNone(result.validated)
        self.assertEqual(len(result.errors), 2)

    def test_type_mismatch(self):
        result = validate_input(self.SCHEMA, {"content": 42})
        self.assertEqual(result.errors, ["args.content must be of type string"])

    def test_length_bounds(self):
        self.assertFalse(validate_input(self.SCHEMA, {"content": "   "}).is_valid)
        self.assertFalse(validate_input(self.SCHEMA, {"content": "x" * 51}).is_valid)

    def test_non_object_args(self):
        result = validate_input(self.SCHEMA, ["content"])
        self.assertEqual(result.errors, ["args must be of type object"])


class TestGovernorConcurrency(unittest.TestCase):
    """Quota and breaker bookkeeping under concurrent callers."""

    THREADS = 16
    CALLS_PER_THREAD = 50

    def _hammer(self, fn):
        barrier = threading.Barrier(self.THREADS)

        def worker():
            barrier.wait()
            return [fn() for _ in range(self.CALLS_PER_THREAD)]

        with ThreadPoolExecutor(max_workers=self.THREADS) as pool:
            futures = [pool.submit(worker) for _ in range(self.THREADS)]
            return [value for future in futures for value in future.result()]

    def test_rate_limit_grants_exactly_the_quota(self):
        governor = ResourceGovernor(
            Settings(RATE_LIMITS={"crossref": {"quota": 300, "window_seconds": 60}}),
            clock=FakeClock(),
        )

        results = self._hammer(lambda: governor.check_rate_limit("crossref"))

        self.assertEqual(results.count(True), 300)
        self.assertEqual(governor.rate_limiter.usage()["crossref"]["used"], 300)

    def test_failures_are_all_counted(self):
        governor = ResourceGovernor(Settings(CIRCUIT_BREAKER_THRESHOLD=5), clock=FakeClock())

        self._hammer(lambda: governor.record_api_result("openalex", False))

        breaker = governor.circuit_breakers.states()["openalex"]
        self.assertEqual(breaker["failures"], self.THREADS * self.CALLS_PER_THREAD)
        self.assertEqual(breaker["state"], CircuitState.OPEN.value)


class TestResourceGovernor(unittest.IsolatedAsyncioTestCase):
    """Test cases for governed external calls."""

    def setUp(self):
        self.clock = FakeClock()
        self.config = Settings(
            RATE_LIMITS={"doi": {"quota": 2, "window_seconds": 60}},
            CIRCUIT_BREAKER_THRESHOLD=2,
            CIRCUIT_BREAKER_COOLDOWN_SECONDS=60.0,
            EXTERNAL_CALL_TIMEOUT_SECONDS=0.05,
        )
        self.governor = ResourceGovernor(self.config, clock=self.clock)

    async def test_successful_call_is_cached(self):
        calls = []

        async def lookup():
            calls.append(1)
            return True

        first = await self.governor.call_external("doi", lookup, cache_key="doi:a")
        second = await self.governor.call_external("doi", lookup, cache_key="doi:a")

        self.assertEqual(first.status, OutcomeStatus.OK)
        self.assertTrue(first.value)
        self.assertTrue(second.from_cache)
        self.assertEqual(len(calls), 1)

    async def test_rate_limited_call_is_inconclusive(self):
        await self.governor.call_external("doi", lambda: True)
        await self.governor.call_external("doi", lambda: True)
        outcome = await self.governor.call_external("doi", lambda: True)

        self.assertEqual(outcome.status, OutcomeStatus.RATE_LIMITED)
        self.assertTrue(outcome.inconclusive)

    async def test_concurrent_calls_share_one_quota(self):
        async def lookup():
            await asyncio.sleep(0)
            return True

        outcomes = await asyncio.gather(*(self.governor.call_external("doi", lookup) for _ in range(10)))

        statuses = [outcome.status for outcome in outcomes]
        self.assertEqual(statuses.count(OutcomeStatus.OK), 2)
        self.assertEqual(statuses.count(OutcomeStatus.RATE_LIMITED), 8)
        self.assertEqual(self.governor.rate_limiter.usage()["doi"]["used"], 2)

    async def test_failures_open_the_circuit(self):
        def broken():
            raise ConnectionError("unreachable")

        self.assertEqual((await self.governor.call_external("crossref", broken)).status, OutcomeStatus.ERROR)
        await self.governor.call_external("crossref", broken)

        outcome = await self.governor.call_external("crossref", lambda: True)
        self.assertEqual(outcome.status, OutcomeStatus.CIRCUIT_OPEN)
        self.assertEqual(self.governor.get_circuit_state("crossref"), CircuitState.OPEN)

    async def test_timeout_counts_as_failure(self):
        async def slow():
            await asyncio.sleep(1)
            return True

        outcome = await self.governor.call_external("openalex", slow)
        self.assertEqual(outcome.status, OutcomeStatus.TIMEOUT)
        self.assertEqual(self.governor.circuit_breakers.states()["openalex"]["failures"], 1)

    def test_snapshot(self):
        self.governor.check_rate_limit("doi")
        snapshot = self.governor.snapshot()
        self.assertEqual(snapshot["rate_limits"]["doi"]["used"], 1)
        self.assertEqual(snapshot["cache_entries"], 0)


if __name__ == '__main__':
    unittest.main()
