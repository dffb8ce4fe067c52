"""
Unit tests for the validation orchestrator.

Covers the check lifecycle, failure isolation between rules, rule timeouts,
observer notifications and check retention.
"""
import asyncio
import unittest

from integrity_engine.core.config import Settings
from integrity_engine.core.error_handling import CheckNotFoundError, CheckStateError
from integrity_engine.models.context_models import ValidationContext
from integrity_engine.models.integrity_models import (
    CheckStatus,
    CheckType,
    ErrorCode,
    RuleCategory,
    Severity,
    ValidationResult,
)
from integrity_engine.services.report_aggregator import ReportAggregator
from integrity_engine.services.rules import RuleRegistry, ValidationRule
from integrity_engine.services.validation_orchestrator import ValidationOrchestrator


class RecordingRule(ValidationRule):
    """Rule that records the documents it sees."""

    def __init__(self, rule_id, category=RuleCategory.PLAGIARISM, score=100.0, delay=0.0, error=None):
        super().__init__(0.5)
        self.rule_id = rule_id
        self.name = rule_id
        self.category = category
        self.score = score
        self.delay = delay
        self.error = error
        self.seen = []

    async def evaluate(self, content, context):
        self.seen.append(content)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return ValidationResult(rule_id=self.rule_id, passed=True, score=self.score, confidence=90.0)


class RecordingObserver:
    def __init__(self):
        self.events = []

    def on_validation_started(self, check):
        self.events.append(("started", check.status))

    def on_validation_completed(self, check):
        self.events.append(("completed", check.status))

    def on_validation_failed(self, check, error):
        self.events.append(("failed", check.status))


class BrokenObserver:
    def on_validation_started(self, check):
        raise RuntimeError("observer bug")

    on_validation_completed = on_validation_started
    on_validation_failed = on_validation_started


class TestValidationOrchestrator(unittest.IsolatedAsyncioTestCase):
    """Test cases for ValidationOrchestrator."""

    def setUp(self):
        self.config = Settings(MAX_STORED_CHECKS=1000)
        self.registry = RuleRegistry()
        self.observer = RecordingObserver()
        self.context = ValidationContext(document_id="doc-1")

    def _orchestrator(self, rule_timeout=1.0, observers=None):
        return ValidationOrchestrator(
            self.registry,
            ReportAggregator(self.config),
            self.config,
            observers=observers if observers is not None else [self.observer],
            rule_timeout=rule_timeout,
        )

    async def test_submit_returns_pending_check(self):
        self.registry.register(RecordingRule("a"))
        orchestrator = self._orchestrator()

        check_id = await orchestrator.submit("text", self.context)
        check = orchestrator.get_integrity_results(check_id)

        self.assertTrue(check_id.startswith("check_"))
        self.assertEqual(check.status, CheckStatus.PENDING)
        self.assertEqual(check.document_id, "doc-1")
        await orchestrator.wait_for_check(check_id, timeout=1)

    async def test_status_moves_forward_to_completed(self):
        self.registry.register(RecordingRule("a"))
        orchestrator = self._orchestrator()

        check_id = await orchestrator.submit("text", self.context)
        check = await orchestrator.wait_for_check(check_id, timeout=1)

        self.assertEqual(check.status, CheckStatus.COMPLETED)
        self.assertEqual(self.observer.events, [("started", CheckStatus.RUNNING), ("completed", CheckStatus.COMPLETED)])
        self.assertEqual(check.report.overall_score, 100.0)
        self.assertEqual(check.metadata["rule_ids"], ["a"])

    async def test_check_cannot_run_twice(self):
        self.registry.register(RecordingRule("a"))
        orchestrator = self._orchestrator()

        check_id = await orchestrator.submit("text", self.context)
        await orchestrator.wait_for_check(check_id, timeout=1)

        with self.assertRaises(CheckStateError):
            await orchestrator.run_check(check_id)

    async def test_failing_rule_is_isolated(self):
        good = RecordingRule("good", RuleCategory.CITATION)
        self.registry.register(good)
        self.registry.register(RecordingRule("bad", error=KeyError("boom")))
        orchestrator = self._orchestrator()

        check_id = await orchestrator.submit("text", self.context)
        check = await orchestrator.wait_for_check(check_id, timeout=1)

        self.assertEqual(check.status, CheckStatus.COMPLETED)
        by_rule = {r.rule_id: r for r in check.report.validation_results}
        self.assertEqual(by_rule["good"].score, 100.0)
        self.assertEqual(by_rule["bad"].score, 0.0)
        failure = by_rule["bad"].issues[0]
        self.assertEqual((failure.code, failure.severity), (ErrorCode.RULE_EXECUTION_ERROR, Severity.CRITICAL))
        self.assertEqual(failure.id, "rule_error_bad")
        self.assertFalse(check.report.passed)

    async def test_slow_rule_times_out(self):
        self.registry.register(RecordingRule("slow", delay=5.0))
        orchestrator = self._orchestrator(rule_timeout=0.05)

        check_id = await orchestrator.submit("text", self.context)
        check = await orchestrator.wait_for_check(check_id, timeout=2)

        self.assertEqual(check.status, CheckStatus.COMPLETED)
        result = check.report.validation_results[0]
        self.assertEqual(result.issues[0].code, ErrorCode.RULE_EXECUTION_ERROR)
        self.assertIn("timed out", result.issues[0].description)

    async def test_disabled_rules_do_not_run(self):
        active = RecordingRule("active")
        inactive = RecordingRule("inactive", RuleCategory.CITATION)
        self.registry.register(active)
        self.registry.register(inactive)
        self.registry.disable("inactive")
        orchestrator = self._orchestrator()

        check_id = await orchestrator.submit("text", self.context)
        check = await orchestrator.wait_for_check(check_id, timeout=1)

        self.assertEqual(len(active.seen), 1)
        self.assertEqual(inactive.seen, [])
        self.assertEqual([r.rule_id for r in check.report.validation_results], ["active"])

    async def test_no_applicable_rules_fails_check(self):
        self.registry.register(RecordingRule("a", RuleCategory.PLAGIARISM))
        orchestrator = self._orchestrator()

        check_id = await orchestrator.submit("text", self.context, CheckType.FORMAT_ONLY)
        check = await orchestrator.wait_for_check(check_id, timeout=1)

        self.assertEqual(check.status, CheckStatus.FAILED)
        self.assertIsNone(check.report)
        self.assertEqual(check.issues[0].code, ErrorCode.CHECK_FAILED)
        self.assertEqual(self.observer.events, [("failed", CheckStatus.FAILED)])

    async def test_document_is_copied_on_submit(self):
        rule = RecordingRule("a")
        self.registry.register(rule)
        orchestrator = self._orchestrator()

        document = {"text": "original"}
        check_id = await orchestrator.submit(document, self.context)
        document["text"] = "changed"
        await orchestrator.wait_for_check(check_id, timeout=1)

        self.assertEqual(rule.seen[0]["text"], "original")

    async def test_snapshots_are_detached(self):
        self.registry.register(RecordingRule("a"))
        orchestrator = self._orchestrator()

        check_id = await orchestrator.submit("text", self.context)
        snapshot = await orchestrator.wait_for_check(check_id, timeout=1)
        snapshot.metadata["tampered"] = True
        snapshot.issues.append("bogus")

        fresh = orchestrator.get_integrity_results(check_id)
        self.assertNotIn("tampered", fresh.metadata)
        self.assertEqual(fresh.issues, [])

    async def test_observer_errors_do_not_break_checks(self):
        self.registry.register(RecordingRule("a"))
        orchestrator = self._orchestrator(observers=[BrokenObserver(), self.observer])

        check_id = await orchestrator.submit("text", self.context)
        check = await orchestrator.wait_for_check(check_id, timeout=1)

        self.assertEqual(check.status, CheckStatus.COMPLETED)
        self.assertEqual(len(self.observer.events), 2)

    async def test_unknown_check(self):
        orchestrator = self._orchestrator()
        self.assertIsNone(orchestrator.get_integrity_results("check_missing"))
        with self.assertRaises(CheckNotFoundError):
            await orchestrator.wait_for_check("check_missing")
        with self.assertRaises(CheckNotFoundError):
            await orchestrator.run_check("check_missing")

    async def test_concurrent_checks_are_independent(self):
        self.registry.register(RecordingRule("a", delay=0.01))
        orchestrator = self._orchestrator()

        ids = [await orchestrator.submit(f"text {i}", ValidationContext(document_id=f"doc-{i}")) for i in range(5)]
        checks = [await orchestrator.wait_for_check(check_id, timeout=2) for check_id in ids]

        self.assertEqual(len(set(ids)), 5)
        self.assertTrue(all(c.status == CheckStatus.COMPLETED for c in checks))
        self.assertEqual([c.document_id for c in checks], [f"doc-{i}" for i in range(5)])

    async def test_oldest_terminal_checks_are_evicted(self):
        self.config = Settings(MAX_STORED_CHECKS=2)
        self.registry.register(RecordingRule("a"))
        orchestrator = self._orchestrator()

        first = await orchestrator.submit("one", self.context)
        await orchestrator.wait_for_check(first, timeout=1)
        second = await orchestrator.submit("two", self.context)
        await orchestrator.wait_for_check(second, timeout=1)
        third = await orchestrator.submit("three", self.context)
        await orchestrator.wait_for_check(third, timeout=1)

        self.assertIsNone(orchestrator.get_integrity_results(first))
        self.assertIsNotNone(orchestrator.get_integrity_results(third))

    async def test_shutdown_cancels_in_flight_checks(self):
        self.registry.register(RecordingRule("slow", delay=5.0))
        orchestrator = self._orchestrator(rule_timeout=10.0)

        check_id = await orchestrator.submit("text", self.context)
        await asyncio.sleep(0)
        self.assertEqual(orchestrator.get_integrity_results(check_id).status, CheckStatus.RUNNING)
        await orchestrator.shutdown()

        check = orchestrator.get_integrity_results(check_id)
        self.assertEqual(check.status, CheckStatus.FAILED)
        self.assertEqual(check.issues[-1].code, ErrorCode.CHECK_FAILED)
        self.assertIn("cancelled during shutdown", check.issues[-1].description)
        self.assertEqual(orchestrator.stats()["in_flight_tasks"], 0)
        self.assertEqual(orchestrator.stats()["running"], 0)
        self.assertIn(("failed", CheckStatus.FAILED), self.observer.events)

    async def test_shutdown_fails_checks_whose_run_never_started(self):
        self.registry.register(RecordingRule("slow", delay=5.0))
        orchestrator = self._orchestrator(rule_timeout=10.0)

        check_id = await orchestrator.submit("text", self.context)
        await orchestrator.shutdown()

        check = await orchestrator.wait_for_check(check_id, timeout=1.0)
        self.assertEqual(check.status, CheckStatus.FAILED)
        self.assertEqual(orchestrator.stats()["pending"], 0)


if __name__ == '__main__':
    unittest.main()
