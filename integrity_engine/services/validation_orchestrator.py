"""
Validation orchestrator for integrity checks.

Owns the lifecycle of every IntegrityCheck:

    pending -> running -> completed | failed
    pending -> failed (the run could not start)

Submission stores a pending check and schedules its run as a detached
asyncio task, so callers get a check id back immediately and poll for the
result. All enabled rules for a check run concurrently; a failing or slow
rule becomes a synthetic critical result instead of failing the check.
"""
import asyncio
import copy
import logging
import time
import uuid
from collections import OrderedDict
from typing import Dict, List, Optional, Protocol, Sequence, Set, Tuple

from integrity_engine.core.config import Settings, settings as default_settings
from integrity_engine.core.error_handling import CheckNotFoundError, CheckStateError, check_id_var
from integrity_engine.models.context_models import ValidationContext
from integrity_engine.models.integrity_models import (
    CheckStatus,
    CheckType,
    ErrorCode,
    IntegrityCheck,
    IssueLocation,
    IssueType,
    Severity,
    ValidationIssue,
    ValidationResult,
    build_result_metadata,
    utc_now,
)
from integrity_engine.services.analysis.document_utils import Document
from integrity_engine.services.report_aggregator import ReportAggregator
from integrity_engine.services.rules.base_rule import ValidationRule
from integrity_engine.services.rules.rule_registry import RuleRegistry

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Integrity check cancelled during shutdown"

ALLOWED_TRANSITIONS: Dict[CheckStatus, Tuple[CheckStatus, ...]] = {
    CheckStatus.PENDING: (CheckStatus.RUNNING, CheckStatus.FAILED),
    CheckStatus.RUNNING: (CheckStatus.COMPLETED, CheckStatus.FAILED),
    CheckStatus.COMPLETED: (),
    CheckStatus.FAILED: (),
}


# ============================================================================
# Observers
# ============================================================================

class ValidationObserver(Protocol):
    """Receives lifecycle notifications for integrity checks."""

    def on_validation_started(self, check: IntegrityCheck) -> None:
        ...

    def on_validation_completed(self, check: IntegrityCheck) -> None:
        ...

    def on_validation_failed(self, check: IntegrityCheck, error: str) -> None:
        ...


class LoggingValidationObserver:
    """Default observer: writes lifecycle events to the log."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    def on_validation_started(self, check: IntegrityCheck) -> None:
        self.log.info(
            f"Integrity check {check.id} started for document {check.document_id}",
            extra={"extra_fields": {"check_id": check.id, "check_type": check.check_type.value}},
        )

    def on_validation_completed(self, check: IntegrityCheck) -> None:
        report = check.report
        self.log.info(
            f"Integrity check {check.id} completed: "
            f"score={report.overall_score:.1f}, passed={report.passed}, issues={report.total_issues}",
            extra={"extra_fields": {
                "check_id": check.id,
                "overall_score": round(report.overall_score, 2),
                "processing_time_ms": round(report.processing_time_ms, 3),
            }},
        )

    def on_validation_failed(self, check: IntegrityCheck, error: str) -> None:
        self.log.error(
            f"Integrity check {check.id} failed: {error}",
            extra={"extra_fields": {"check_id": check.id}},
        )


# ============================================================================
# Orchestrator
# ============================================================================

class ValidationOrchestrator:
    """Schedules, runs and stores integrity checks."""

    def __init__(
        self,
        registry: RuleRegistry,
        aggregator: Optional[ReportAggregator] = None,
        config: Optional[Settings] = None,
        observers: Optional[Sequence[ValidationObserver]] = None,
        rule_timeout: Optional[float] = None,
    ):
        self.config = config or default_settings
        self.registry = registry
        self.aggregator = aggregator or ReportAggregator(self.config)
        self.observers: List[ValidationObserver] = list(observers) if observers is not None else [LoggingValidationObserver()]
        self.rule_timeout = rule_timeout if rule_timeout is not None else self.config.RULE_TIMEOUT_SECONDS
        self.max_stored_checks = self.config.MAX_STORED_CHECKS

        self._checks: "OrderedDict[str, IntegrityCheck]" = OrderedDict()
        self._pending_inputs: Dict[str, Tuple[Document, ValidationContext]] = {}
        self._done_events: Dict[str, asyncio.Event] = {}
        self._tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Submission and polling
    # ------------------------------------------------------------------

    async def submit(
        self,
        document: Document,
        context: ValidationContext,
        check_type: CheckType = CheckType.FULL_INTEGRITY,
    ) -> str:
        """
        Register a check and schedule its run in the background.

        The document is deep-copied so later changes by the caller do not
        affect the run.

        Returns:
            The new check id
        """
        check_id = f"check_{uuid.uuid4().hex}"
        check = IntegrityCheck(id=check_id, document_id=context.document_id, check_type=CheckType(check_type))

        self._checks[check_id] = check
        self._pending_inputs[check_id] = (copy.deepcopy(document), context)
        self._done_events[check_id] = asyncio.Event()
        self._evict_old_checks()

        task = asyncio.create_task(self._run_in_background(check_id), name=f"integrity-{check_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        logger.info(f"Submitted integrity check {check_id} ({check.check_type}) for document {check.document_id}")
        return check_id

    def get_integrity_results(self, check_id: str) -> Optional[IntegrityCheck]:
        """Snapshot of a check, or None if unknown. Safe to poll while running."""
        check = self._checks.get(check_id)
        return check.snapshot() if check is not None else None

    async def wait_for_check(self, check_id: str, timeout: Optional[float] = None) -> IntegrityCheck:
        """
        Wait until a check is terminal.

        Returns:
            Snapshot of the check (still non-terminal if the timeout elapsed)

        Raises:
            CheckNotFoundError: Unknown check id
        """
        event = self._done_events.get(check_id)
        if check_id not in self._checks or event is None:
            raise CheckNotFoundError(f"Integrity check not found: {check_id}")
        try:
            await asyncio.wait_for(event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.debug(f"Timed out waiting for check {check_id}")
        return self._checks[check_id].snapshot()

    def list_checks(self) -> List[IntegrityCheck]:
        return [check.snapshot() for check in self._checks.values()]

    def stats(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in CheckStatus}
        for check in self._checks.values():
            counts[check.status.value] += 1
        counts["in_flight_tasks"] = len(self._tasks)
        return counts

    async def shutdown(self) -> None:
        """
        Cancel runs that are still in flight.

        Every check left non-terminal ends up failed, including runs cancelled
        before their task got to start.
        """
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"Cancelled {len(tasks)} in-flight integrity check(s)")

        for check_id, check in self._checks.items():
            if not check.is_terminal:
                self._pending_inputs.pop(check_id, None)
                self._fail(check, CANCELLED_MESSAGE)
                self._set_done(check_id)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def _run_in_background(self, check_id: str) -> None:
        # The task runs in a copied context; the id stays local to this run
        check_id_var.set(check_id)
        try:
            await self.run_check(check_id)
        except CheckStateError as e:
            logger.warning(f"Background run of {check_id} skipped: {e}")

    async def run_check(self, check_id: str) -> IntegrityCheck:
        """
        Run a pending check to completion.

        Raises:
            CheckNotFoundError: Unknown check id
            CheckStateError: The check is not pending
        """
        check = self._checks.get(check_id)
        if check is None:
            raise CheckNotFoundError(f"Integrity check not found: {check_id}")
        inputs = self._pending_inputs.pop(check_id, None)
        if check.status != CheckStatus.PENDING or inputs is None:
            raise CheckStateError(f"Integrity check {check_id} is {check.status} and cannot be run again")

        document, context = inputs
        start = time.perf_counter()
        try:
            rules = self.registry.enabled_rules(check.check_type)
            if not rules:
                self._fail(check, f"No enabled rules for check type '{check.check_type}'")
                return check.snapshot()

            # Weights and categories are fixed for the whole run
            descriptors = {rule.rule_id: rule.describe() for rule in rules}
            check.metadata.update(
                rule_ids=list(descriptors),
                algorithms=[d.name for d in descriptors.values()],
            )
            self._transition(check, CheckStatus.RUNNING)
            self._notify("on_validation_started", check)

            results = await asyncio.gather(*(self._run_rule(rule, document, context) for rule in rules))

            elapsed_ms = (time.perf_counter() - start) * 1000
            check.report = self.aggregator.aggregate(check.document_id, results, descriptors, elapsed_ms)
            check.metadata["processing_time_ms"] = round(elapsed_ms, 3)
            self._transition(check, CheckStatus.COMPLETED)
            self._notify("on_validation_completed", check)
        except asyncio.CancelledError:
            logger.warning(f"Integrity check {check_id} cancelled while {check.status}")
            self._fail(check, CANCELLED_MESSAGE)
            raise
        except Exception as e:
            logger.exception(f"Integrity check {check_id} failed during orchestration: {e}")
            self._fail(check, f"Integrity check failed: {type(e).__name__}: {e}")
        finally:
            self._set_done(check_id)

        return check.snapshot()

    async def _run_rule(self, rule: ValidationRule, document: Document, context: ValidationContext) -> ValidationResult:
        """Evaluate one rule; failures and timeouts become synthetic results."""
        start = time.perf_counter()
        try:
            result = await asyncio.wait_for(rule.evaluate(document, context), timeout=self.rule_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Rule '{rule.rule_id}' timed out after {self.rule_timeout}s")
            return self._rule_failure(rule, f"Rule timed out after {self.rule_timeout}s", start)
        except Exception as e:
            logger.exception(f"Rule '{rule.rule_id}' raised {type(e).__name__}: {e}")
            return self._rule_failure(rule, f"{type(e).__name__}: {e}", start)

        return result.with_processing_time((time.perf_counter() - start) * 1000)

    @staticmethod
    def _rule_failure(rule: ValidationRule, error: str, start: float) -> ValidationResult:
        issue = ValidationIssue(
            id=f"rule_error_{rule.rule_id}",
            type=IssueType.LOGICAL_ERROR,
            severity=Severity.CRITICAL,
            code=ErrorCode.RULE_EXECUTION_ERROR,
            description=f"Validation rule '{rule.name or rule.rule_id}' failed: {error}",
            location=IssueLocation(),
            evidence={"rule_id": rule.rule_id, "error": error},
            suggested_fix="Re-run the check; contact support if the problem persists",
            auto_fixable=False,
        )
        return ValidationResult(
            rule_id=rule.rule_id,
            passed=False,
            score=0.0,
            confidence=0.0,
            issues=(issue,),
            metadata=build_result_metadata((time.perf_counter() - start) * 1000, [], error=error),
        )

    # ------------------------------------------------------------------
    # State management
    # ------------------------------------------------------------------

    def _transition(self, check: IntegrityCheck, new_status: CheckStatus) -> None:
        """
        Move a check forward.

        Raises:
            CheckStateError: The transition is not allowed
        """
        if new_status not in ALLOWED_TRANSITIONS[check.status]:
            raise CheckStateError(f"Invalid transition for check {check.id}: {check.status} -> {new_status}")
        logger.debug(f"Check {check.id}: {check.status} -> {new_status}")
        check.status = new_status
        check.updated_at = utc_now()

    def _set_done(self, check_id: str) -> None:
        event = self._done_events.get(check_id)
        if event is not None:
            event.set()

    def _fail(self, check: IntegrityCheck, error: str) -> None:
        if check.is_terminal:
            logger.error(f"Check {check.id} already {check.status}; not marking failed: {error}")
            return
        check.issues.append(ValidationIssue(
            id=f"check_failed_{check.id}",
            type=IssueType.LOGICAL_ERROR,
            severity=Severity.CRITICAL,
            code=ErrorCode.CHECK_FAILED,
            description=error,
            location=IssueLocation(),
            evidence={"check_type": check.check_type.value},
            suggested_fix="Review the error and submit the check again",
            auto_fixable=False,
        ))
        check.metadata["error"] = error
        self._transition(check, CheckStatus.FAILED)
        self._notify("on_validation_failed", check, error)

    def _notify(self, event: str, check: IntegrityCheck, *args) -> None:
        snapshot = check.snapshot()
        for observer in self.observers:
            try:
                getattr(observer, event)(snapshot, *args)
            except Exception as e:
                logger.exception(f"Observer {observer!r} failed on {event}: {e}")

    def _evict_old_checks(self) -> None:
        """Drop the oldest terminal checks beyond the retention limit."""
        excess = len(self._checks) - self.max_stored_checks
        if excess <= 0:
            return
        for check_id in [cid for cid, check in self._checks.items() if check.is_terminal][:excess]:
            del self._checks[check_id]
            self._done_events.pop(check_id, None)
        logger.debug(f"Evicted old integrity checks; {len(self._checks)} retained")
