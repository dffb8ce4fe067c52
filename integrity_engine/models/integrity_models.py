"""
Domain models for integrity validation.

This module provides the data structures shared by the analyzers, the rule
registry, the orchestrator and the report aggregator. Records that are
produced once and never changed afterwards are frozen dataclasses.
"""
import copy
import re
from dataclasses import dataclass, field, asdict, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


def utc_now() -> datetime:
    """Timezone-aware wall-clock timestamp for records and reports."""
    return datetime.now(timezone.utc)


def clamp_score(value: float) -> float:
    """Bound a score or confidence value to [0, 100]."""
    return max(0.0, min(100.0, float(value)))


# ============================================================================
# Enumerations
# ============================================================================

class RuleCategory(str, Enum):
    """Category a validation rule contributes to."""
    PLAGIARISM = "plagiarism"
    CITATION = "citation"
    DATA = "data"
    METHODOLOGY = "methodology"
    FORMAT = "format"
    CONSISTENCY = "consistency"

    def __str__(self) -> str:
        return self.value


class Severity(str, Enum):
    """Issue severity, from most to least serious."""
    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"
    WARNING = "warning"

    def __str__(self) -> str:
        return self.value


class IssueType(str, Enum):
    """Kind of integrity problem an issue describes."""
    PLAGIARISM = "plagiarism"
    CITATION_ERROR = "citation_error"
    DATA_INCONSISTENCY = "data_inconsistency"
    FORMAT_VIOLATION = "format_violation"
    LOGICAL_ERROR = "logical_error"

    def __str__(self) -> str:
        return self.value


class ErrorCode(str, Enum):
    """Machine-readable issue codes."""
    MISSING_FIELD = "missing_field"
    INVALID_TYPE = "invalid_type"
    INVALID_PATTERN = "invalid_pattern"
    INVALID_VALUE = "invalid_value"
    CROSS_REFERENCE_MISMATCH = "cross_reference_mismatch"
    PLAGIARISM_MATCH = "plagiarism_match"
    CITATION_MISSING = "citation_missing"
    CITATION_INVALID_DOI = "citation_invalid_doi"
    CITATION_UNVERIFIED = "citation_unverified"
    CITATION_FORMAT = "citation_format"
    FABRICATION_RISK = "fabrication_risk"
    RULE_EXECUTION_ERROR = "rule_execution_error"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    CIRCUIT_OPEN = "circuit_open"
    EXTERNAL_TIMEOUT = "external_timeout"
    EXTERNAL_ERROR = "external_error"
    FORMAT_VIOLATION = "format_violation"
    METHODOLOGY_GAP = "methodology_gap"
    CHECK_FAILED = "check_failed"

    def __str__(self) -> str:
        return self.value


class CheckStatus(str, Enum):
    """Integrity check lifecycle state."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (CheckStatus.COMPLETED, CheckStatus.FAILED)

    def __str__(self) -> str:
        return self.value


class CheckType(str, Enum):
    """Which subset of rules an integrity check runs."""
    FULL_INTEGRITY = "full_integrity"
    PLAGIARISM_ONLY = "plagiarism_only"
    CITATION_ONLY = "citation_only"
    DATA_INTEGRITY_ONLY = "data_integrity_only"
    METHODOLOGY_ONLY = "methodology_only"
    FORMAT_ONLY = "format_only"

    def __str__(self) -> str:
        return self.value


class FabricationRisk(str, Enum):
    """Estimate that a citation or data point was invented."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return ("low", "medium", "high").index(self.value)

    def escalate(self, other: "FabricationRisk") -> "FabricationRisk":
        """Return the higher of two risk levels; escalation never lowers risk."""
        return other if other.rank > self.rank else self

    def __str__(self) -> str:
        return self.value


class RiskLevel(str, Enum):
    """Risk band reported by the quick integrity score."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    def __str__(self) -> str:
        return self.value


# ============================================================================
# Issues and Results
# ============================================================================

@dataclass(frozen=True)
class IssueLocation:
    """Where in the document an issue was found. All fields optional."""

    section: Optional[str] = None
    paragraph: Optional[int] = None
    line: Optional[int] = None
    start_char: Optional[int] = None
    end_char: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class ValidationIssue:
    """A single problem found by a rule."""

    id: str
    type: IssueType
    severity: Severity
    code: ErrorCode
    description: str
    location: IssueLocation = field(default_factory=IssueLocation)
    evidence: Dict[str, Any] = field(default_factory=dict)
    suggested_fix: Optional[str] = None
    auto_fixable: bool = False

    def signature(self) -> Tuple[str, str, str, str]:
        """Identity used to compare issue sets across runs."""
        return (self.id, self.type.value, self.severity.value, self.code.value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "severity": self.severity.value,
            "code": self.code.value,
            "description": self.description,
            "location": self.location.to_dict(),
            "evidence": copy.deepcopy(self.evidence),
            "suggested_fix": self.suggested_fix,
            "auto_fixable": self.auto_fixable,
        }


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of one rule for one check. Scores are clamped to [0, 100]."""

    rule_id: str
    passed: bool
    score: float
    confidence: float
    issues: Tuple[ValidationIssue, ...] = ()
    suggestions: Tuple[str, ...] = ()
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "score", clamp_score(self.score))
        object.__setattr__(self, "confidence", clamp_score(self.confidence))
        object.__setattr__(self, "issues", tuple(self.issues))
        object.__setattr__(self, "suggestions", tuple(self.suggestions))

    @classmethod
    def passing(cls, rule_id: str, sources_checked: Optional[List[str]] = None, **extra: Any) -> "ValidationResult":
        """Neutral full-score result for rules with nothing to check."""
        return cls(
            rule_id=rule_id,
            passed=True,
            score=100.0,
            confidence=100.0,
            metadata=build_result_metadata(0.0, sources_checked or [], **extra),
        )

    def with_processing_time(self, processing_time_ms: float) -> "ValidationResult":
        """Copy of this result with the measured processing time recorded."""
        metadata = dict(self.metadata)
        metadata["processing_time_ms"] = round(processing_time_ms, 3)
        return replace(self, metadata=metadata)

    def to_dict(self) -> Dict[str, Any]:
        metadata = dict(self.metadata)
        if isinstance(metadata.get("checked_at"), datetime):
            metadata["checked_at"] = metadata["checked_at"].isoformat()
        return {
            "rule_id": self.rule_id,
            "passed": self.passed,
            "score": round(self.score, 2),
            "confidence": round(self.confidence, 2),
            "issues": [issue.to_dict() for issue in self.issues],
            "suggestions": list(self.suggestions),
            "metadata": metadata,
        }


def build_result_metadata(processing_time_ms: float, sources_checked: List[str], **extra: Any) -> Dict[str, Any]:
    """Standard metadata block attached to every ValidationResult."""
    metadata: Dict[str, Any] = {
        "processing_time_ms": processing_time_ms,
        "sources_checked": list(sources_checked),
        "checked_at": utc_now(),
    }
    metadata.update(extra)
    return metadata


@dataclass(frozen=True)
class ScoringPenalties:
    """Points deducted per issue. Tunable through settings."""

    citation_missing: float = 10.0
    citation_invalid_doi: float = 15.0
    citation_format: float = 5.0
    data_missing_field: float = 20.0
    data_invalid_type: float = 15.0
    data_invalid_pattern: float = 10.0
    data_invalid_value: float = 15.0
    data_cross_reference: float = 12.0
    format_violation: float = 5.0
    methodology_gap: float = 10.0
    confidence_invalid_doi: float = 10.0
    confidence_unverified: float = 5.0
    confidence_inconclusive: float = 5.0


# ============================================================================
# Reports and Checks
# ============================================================================

@dataclass(frozen=True)
class IntegrityReport:
    """Aggregated outcome of every rule that ran for a check."""

    document_id: str
    overall_score: float
    category_scores: Dict[str, float]
    total_issues: int
    critical_issues: int
    major_issues: int
    minor_issues: int
    warning_issues: int
    passed: bool
    validation_results: Tuple[ValidationResult, ...]
    recommendations: Tuple[str, ...]
    generated_at: datetime = field(default_factory=utc_now)
    processing_time_ms: float = 0.0

    @property
    def issues(self) -> List[ValidationIssue]:
        return [issue for result in self.validation_results for issue in result.issues]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "document_id": self.document_id,
            "overall_score": round(self.overall_score, 2),
            "category_scores": {k: round(v, 2) for k, v in self.category_scores.items()},
            "total_issues": self.total_issues,
            "critical_issues": self.critical_issues,
            "major_issues": self.major_issues,
            "minor_issues": self.minor_issues,
            "warning_issues": self.warning_issues,
            "passed": self.passed,
            "validation_results": [r.to_dict() for r in self.validation_results],
            "recommendations": list(self.recommendations),
            "generated_at": self.generated_at.isoformat(),
            "processing_time_ms": round(self.processing_time_ms, 3),
        }


@dataclass
class IntegrityCheck:
    """A submitted integrity check.

    Owned and mutated only by the orchestrator's background task. Callers
    always receive a snapshot copy.
    """

    id: str
    document_id: str
    check_type: CheckType
    status: CheckStatus = CheckStatus.PENDING
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    report: Optional[IntegrityReport] = None
    issues: List[ValidationIssue] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def snapshot(self) -> "IntegrityCheck":
        """Detached copy safe to hand to callers while the check is running."""
        return replace(
            self,
            issues=list(self.issues),
            metadata=copy.deepcopy(self.metadata),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "check_type": self.check_type.value,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "report": self.report.to_dict() if self.report else None,
            "issues": [issue.to_dict() for issue in self.issues],
            "metadata": copy.deepcopy(self.metadata),
        }


# ============================================================================
# Analyzer Records
# ============================================================================

@dataclass(frozen=True)
class SourceMatch:
    """A known source that a document segment resembles."""

    source_id: str
    title: str
    similarity: float
    confidence: float
    matched_text: str = ""
    authors: Tuple[str, ...] = ()
    url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_id": self.source_id,
            "title": self.title,
            "authors": list(self.authors),
            "url": self.url,
            "similarity": round(self.similarity, 2),
            "confidence": round(self.confidence, 2),
            "matched_text": self.matched_text,
        }


@dataclass(frozen=True)
class SegmentFingerprint:
    """Content fingerprint of a segment: exact digest plus shingle hashes."""

    digest: str
    shingles: frozenset
    word_count: int


@dataclass(frozen=True)
class PlagiarismSegment:
    """A fixed-size word window of the document and its best matches."""

    text: str
    start_index: int
    end_index: int
    word_count: int
    similarity: float = 0.0
    matches: Tuple[SourceMatch, ...] = ()
    checked: bool = True


@dataclass(frozen=True)
class PlagiarismDetectionResult:
    """Segment-level plagiarism analysis of one document."""

    segments: Tuple[PlagiarismSegment, ...]
    overall_similarity: float
    source_matches: Tuple[SourceMatch, ...]
    originality_score: float
    unchecked_segments: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall_similarity": round(self.overall_similarity, 2),
            "originality_score": round(self.originality_score, 2),
            "segment_count": len(self.segments),
            "unchecked_segments": self.unchecked_segments,
            "flagged_segments": [
                {
                    "start_index": s.start_index,
                    "end_index": s.end_index,
                    "similarity": round(s.similarity, 2),
                    "matches": [m.to_dict() for m in s.matches],
                }
                for s in self.segments if s.matches
            ],
            "source_matches": [m.to_dict() for m in self.source_matches],
        }


@dataclass(frozen=True)
class CitationCheckResult:
    """Per-citation findings."""

    index: int
    citation_id: str
    missing_fields: Tuple[str, ...] = ()
    doi_valid: Optional[bool] = None
    doi_resolved: Optional[bool] = None
    verified: Optional[bool] = None
    format_errors: Tuple[str, ...] = ()
    fabrication_risk: FabricationRisk = FabricationRisk.LOW
    risk_reasons: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "citation_id": self.citation_id,
            "missing_fields": list(self.missing_fields),
            "doi_valid": self.doi_valid,
            "doi_resolved": self.doi_resolved,
            "verified": self.verified,
            "format_errors": list(self.format_errors),
            "fabrication_risk": self.fabrication_risk.value,
            "risk_reasons": list(self.risk_reasons),
        }


@dataclass(frozen=True)
class DataConsistencyCheck:
    """Declaration of how one data field must look.

    relation applies between this field and every cross reference:
    equals, less_equal, greater_equal or length_equals.
    """

    field_name: str
    expected_type: str
    required: bool = True
    pattern: Optional[str] = None
    allowed_values: Optional[Tuple[Any, ...]] = None
    cross_references: Tuple[str, ...] = ()
    relation: str = "equals"
    compiled_pattern: Optional["re.Pattern[str]"] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.pattern is None:
            return
        try:
            compiled = re.compile(self.pattern)
        except (re.error, TypeError) as e:
            raise ValueError(f"Invalid pattern for field '{self.field_name}': {e}") from e
        object.__setattr__(self, "compiled_pattern", compiled)


@dataclass(frozen=True)
class QuickIntegrityScore:
    """Cheap synchronous estimate of document integrity."""

    score: float
    risk_level: RiskLevel
    quick_issues: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": round(self.score, 2),
            "risk_level": self.risk_level.value,
            "quick_issues": list(self.quick_issues),
        }


@dataclass(frozen=True)
class ComparisonResult:
    """Similarity between two documents."""

    similarity: float
    comparison_type: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "similarity": round(self.similarity, 2),
            "comparison_type": self.comparison_type,
            "details": dict(self.details),
        }
