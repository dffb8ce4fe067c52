"""
Schema-driven data consistency checks.

Each DataConsistencyCheck declares how one field must look. Checks are pure
CPU work and never suspend.
"""
import logging
import re
import time
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from integrity_engine.core.config import Settings, settings as default_settings
from integrity_engine.core.constants import RULE_DATA_CONSISTENCY
from integrity_engine.models.context_models import ValidationContext
from integrity_engine.models.integrity_models import (
    DataConsistencyCheck,
    ErrorCode,
    IssueLocation,
    IssueType,
    ScoringPenalties,
    Severity,
    ValidationIssue,
    ValidationResult,
    build_result_metadata,
)
from integrity_engine.services.analysis.document_utils import get_path

logger = logging.getLogger(__name__)

DEFAULT_DATA_CHECKS: Tuple[DataConsistencyCheck, ...] = (
    DataConsistencyCheck(field_name="title", expected_type="string"),
    DataConsistencyCheck(field_name="authors", expected_type="array"),
    DataConsistencyCheck(field_name="year", expected_type="number", pattern=r"^\d{4}$"),
)

SUPPORTED_TYPES = ("string", "number", "integer", "boolean", "array", "object")
SUPPORTED_RELATIONS = ("equals", "less_equal", "greater_equal", "length_equals")

_TRUE_WORDS = {"true", "yes", "1"}
_FALSE_WORDS = {"false", "no", "0"}


def matches_type(value: Any, expected_type: str) -> bool:
    if expected_type == "string":
        return isinstance(value, str)
    if expected_type == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected_type == "integer":
        return isinstance(value, int) and not isinstance(value, bool)
    if expected_type == "boolean":
        return isinstance(value, bool)
    if expected_type == "array":
        return isinstance(value, (list, tuple))
    if expected_type == "object":
        return isinstance(value, Mapping)
    raise ValueError(f"Unsupported expected_type '{expected_type}'. Use one of: {', '.join(SUPPORTED_TYPES)}")


def safe_coercion(value: Any, expected_type: str) -> Tuple[bool, Any]:
    """
    Lossless conversion of a value to the expected type, if one exists.

    Returns:
        (possible, coerced value)
    """
    if expected_type in ("number", "integer") and isinstance(value, str):
        text = value.strip()
        try:
            number = float(text)
        except ValueError:
            return False, None
        if expected_type == "integer":
            return (number.is_integer(), int(number)) if number.is_integer() else (False, None)
        return True, int(number) if re.fullmatch(r"-?\d+", text) else number
    if expected_type == "integer" and isinstance(value, float) and value.is_integer():
        return True, int(value)
    if expected_type == "string" and isinstance(value, (int, float, bool)):
        return True, str(value)
    if expected_type == "boolean":
        if isinstance(value, str) and value.strip().lower() in _TRUE_WORDS | _FALSE_WORDS:
            return True, value.strip().lower() in _TRUE_WORDS
        if isinstance(value, int) and value in (0, 1):
            return True, bool(value)
    if expected_type == "array" and not isinstance(value, (Mapping, list, tuple)):
        return True, [value]
    return False, None


def relation_holds(value: Any, other: Any, relation: str) -> bool:
    try:
        if relation == "equals":
            return value == other
        if relation == "less_equal":
            return value <= other
        if relation == "greater_equal":
            return value >= other
        if relation == "length_equals":
            expected = other if isinstance(other, int) and not isinstance(other, bool) else len(other)
            return len(value) == expected
    except TypeError:
        return False
    raise ValueError(f"Unsupported relation '{relation}'. Use one of: {', '.join(SUPPORTED_RELATIONS)}")


class DataConsistencyChecker:
    """Validates structured document data against field declarations."""

    def __init__(self, penalties: Optional[ScoringPenalties] = None, config: Optional[Settings] = None):
        self.config = config or default_settings
        self.penalties = penalties or self.config.scoring_penalties

    def check(
        self,
        data: Mapping[str, Any],
        checks: Optional[Sequence[DataConsistencyCheck]] = None,
        context: Optional[ValidationContext] = None,
    ) -> ValidationResult:
        """Run every declaration against the data."""
        start = time.perf_counter()
        declarations = tuple(checks) if checks is not None else DEFAULT_DATA_CHECKS
        issues: List[ValidationIssue] = []
        score = 100.0

        for declaration in declarations:
            field_issues, penalty = self._check_field(data, declaration)
            issues.extend(field_issues)
            score -= penalty

        threshold = context.requirements.data_integrity if context else self.config.INTEGRITY_PASS_THRESHOLD
        suggestions = ['Review data consistency across all fields'] if issues else []
        if any(issue.auto_fixable for issue in issues):
            suggestions.append('Apply the suggested automatic fixes for type and pattern issues')

        return ValidationResult(
            rule_id=RULE_DATA_CONSISTENCY,
            passed=max(0.0, score) >= threshold,
            score=score,
            confidence=100.0,
            issues=tuple(issues),
            suggestions=tuple(suggestions),
            metadata=build_result_metadata(
                (time.perf_counter() - start) * 1000,
                ["internal_data_rules"],
                fields_checked=[d.field_name for d in declarations],
            ),
        )

    def _check_field(self, data: Mapping[str, Any], check: DataConsistencyCheck) -> Tuple[List[ValidationIssue], float]:
        issues: List[ValidationIssue] = []
        penalty = 0.0
        name = check.field_name
        location = IssueLocation(section=name)

        found, value = get_path(data, name)
        if not found:
            if check.required:
                issues.append(ValidationIssue(
                    id=f"data_missing_{name}",
                    type=IssueType.DATA_INCONSISTENCY,
                    severity=Severity.CRITICAL,
                    code=ErrorCode.MISSING_FIELD,
                    description=f"Required field '{name}' is missing",
                    location=location,
                    evidence={"field": name},
                    suggested_fix=f"Add the required field '{name}'",
                    auto_fixable=False,
                ))
                penalty += self.penalties.data_missing_field
            return issues, penalty

        if not matches_type(value, check.expected_type):
            coercible, coerced = safe_coercion(value, check.expected_type)
            issues.append(ValidationIssue(
                id=f"data_type_{name}",
                type=IssueType.DATA_INCONSISTENCY,
                severity=Severity.MAJOR,
                code=ErrorCode.INVALID_TYPE,
                description=f"Field '{name}' should be of type {check.expected_type}, got {type(value).__name__}",
                location=location,
                evidence={"field": name, "expected_type": check.expected_type, "actual_type": type(value).__name__,
                          **({"coerced_value": coerced} if coercible else {})},
                suggested_fix=f"Convert '{name}' to {check.expected_type}",
                auto_fixable=coercible,
            ))
            penalty += self.penalties.data_invalid_type

        if check.compiled_pattern is not None and not check.compiled_pattern.search(str(value)):
            issues.append(ValidationIssue(
                id=f"data_pattern_{name}",
                type=IssueType.DATA_INCONSISTENCY,
                severity=Severity.MINOR,
                code=ErrorCode.INVALID_PATTERN,
                description=f"Field '{name}' does not match required pattern",
                location=location,
                evidence={"field": name, "pattern": check.pattern, "value": str(value)[:200]},
                suggested_fix=f"Format '{name}' to match pattern: {check.pattern}",
                auto_fixable=True,
            ))
            penalty += self.penalties.data_invalid_pattern

        if check.allowed_values is not None and not _value_allowed(value, check.allowed_values):
            issues.append(ValidationIssue(
                id=f"data_value_{name}",
                type=IssueType.DATA_INCONSISTENCY,
                severity=Severity.MAJOR,
                code=ErrorCode.INVALID_VALUE,
                description=f"Field '{name}' has a value outside the allowed set",
                location=location,
                evidence={"field": name, "value": value, "allowed_values": list(check.allowed_values)},
                suggested_fix=f"Use one of the allowed values for '{name}'",
                auto_fixable=False,
            ))
            penalty += self.penalties.data_invalid_value

        for reference in check.cross_references:
            ref_found, ref_value = get_path(data, reference)
            if not ref_found:
                # A missing reference is reported by that field's own declaration
                continue
            if not relation_holds(value, ref_value, check.relation):
                issues.append(ValidationIssue(
                    id=f"data_xref_{name}_{reference}",
                    type=IssueType.DATA_INCONSISTENCY,
                    severity=Severity.MAJOR,
                    code=ErrorCode.CROSS_REFERENCE_MISMATCH,
                    description=f"Inconsistency between '{name}' and '{reference}'",
                    location=location,
                    evidence={"field": name, "reference": reference, "relation": check.relation},
                    suggested_fix=f"Ensure consistency between '{name}' and '{reference}'",
                    auto_fixable=False,
                ))
                penalty += self.penalties.data_cross_reference

        return issues, penalty


def _value_allowed(value: Any, allowed: Iterable[Any]) -> bool:
    allowed = list(allowed)
    if isinstance(value, (list, tuple)):
        return all(item in allowed for item in value)
    return value in allowed


def parse_checks(raw_checks: Iterable[Mapping[str, Any]]) -> List[DataConsistencyCheck]:
    """
    Build declarations from plain mappings (API and tool payloads).

    Raises ValueError for an unsupported type or relation or a pattern that
    does not compile.
    """
    declarations = []
    for raw in raw_checks:
        expected_type = str(raw.get("expected_type", "string"))
        relation = str(raw.get("relation", "equals"))
        if expected_type not in SUPPORTED_TYPES:
            raise ValueError(f"Unsupported expected_type '{expected_type}' for field '{raw.get('field_name')}'")
        if relation not in SUPPORTED_RELATIONS:
            raise ValueError(f"Unsupported relation '{relation}' for field '{raw.get('field_name')}'")
        allowed = raw.get("allowed_values")
        declarations.append(DataConsistencyCheck(
            field_name=str(raw["field_name"]),
            expected_type=expected_type,
            required=bool(raw.get("required", True)),
            pattern=raw.get("pattern"),
            allowed_values=tuple(allowed) if allowed is not None else None,
            cross_references=tuple(raw.get("cross_references") or ()),
            relation=relation,
        ))
    return declarations
