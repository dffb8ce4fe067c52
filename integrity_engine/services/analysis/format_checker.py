"""Formatting rules for document metadata (title and abstract length)."""
import time
from typing import Any, List, Mapping, Optional

from integrity_engine.core.config import Settings, settings as default_settings
from integrity_engine.core.constants import RULE_FORMAT
from integrity_engine.models.integrity_models import (
    ErrorCode,
    IssueLocation,
    IssueType,
    ScoringPenalties,
    Severity,
    ValidationIssue,
    ValidationResult,
    build_result_metadata,
)


class FormatChecker:
    def __init__(self, penalties: Optional[ScoringPenalties] = None, config: Optional[Settings] = None):
        self.config = config or default_settings
        self.penalties = penalties or self.config.scoring_penalties

    def check(self, fields: Mapping[str, Any]) -> ValidationResult:
        start = time.perf_counter()
        issues: List[ValidationIssue] = []

        title = fields.get("title")
        if isinstance(title, str) and len(title) > self.config.MAX_TITLE_LENGTH:
            issues.append(ValidationIssue(
                id="format_title_length",
                type=IssueType.FORMAT_VIOLATION,
                severity=Severity.MINOR,
                code=ErrorCode.FORMAT_VIOLATION,
                description=f"Title exceeds recommended length ({len(title)} > {self.config.MAX_TITLE_LENGTH} characters)",
                location=IssueLocation(section="title"),
                evidence={"length": len(title), "limit": self.config.MAX_TITLE_LENGTH},
                suggested_fix="Shorten title for better readability",
                auto_fixable=False,
            ))

        abstract = fields.get("abstract")
        if isinstance(abstract, str):
            word_count = len(abstract.split())
            if word_count > self.config.MAX_ABSTRACT_WORDS:
                issues.append(ValidationIssue(
                    id="format_abstract_length",
                    type=IssueType.FORMAT_VIOLATION,
                    severity=Severity.MINOR,
                    code=ErrorCode.FORMAT_VIOLATION,
                    description=f"Abstract exceeds {self.config.MAX_ABSTRACT_WORDS} words ({word_count} words)",
                    location=IssueLocation(section="abstract"),
                    evidence={"word_count": word_count, "limit": self.config.MAX_ABSTRACT_WORDS},
                    suggested_fix=f"Condense the abstract to at most {self.config.MAX_ABSTRACT_WORDS} words",
                    auto_fixable=False,
                ))

        score = 100.0 - self.penalties.format_violation * len(issues)
        return ValidationResult(
            rule_id=RULE_FORMAT,
            passed=max(0.0, score) >= self.config.FORMAT_PASS_THRESHOLD,
            score=score,
            confidence=95.0,
            issues=tuple(issues),
            suggestions=('Review document formatting guidelines',) if issues else (),
            metadata=build_result_metadata((time.perf_counter() - start) * 1000, ["internal_format_rules"]),
        )
