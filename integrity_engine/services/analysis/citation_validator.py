"""
Citation validation.

Checks each citation for required bibliographic fields, DOI syntax and
resolution, cross-reference against bibliographic databases, style-specific
formatting and signs of fabrication. The rule score starts at 100 and loses
a configurable number of points per issue.
"""
import logging
import re
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple, runtime_checkable

from integrity_engine.core.config import Settings, settings as default_settings
from integrity_engine.core.constants import (
    APA_AUTHOR_PATTERN,
    BASE_CITATION_FIELDS,
    CITATION_TYPE_FIELDS,
    DOI_PATTERN,
    EARLIEST_PLAUSIBLE_YEAR,
    MLA_AUTHOR_PATTERN,
    RULE_CITATION,
    SOURCE_CROSSREF,
    SOURCE_DOI,
    SOURCE_OPENALEX,
    SUSPICIOUS_AUTHOR_TOKENS,
    SUSPICIOUS_JOURNAL_TOKENS,
)
from integrity_engine.models.context_models import ValidationContext
from integrity_engine.models.integrity_models import (
    CitationCheckResult,
    ErrorCode,
    FabricationRisk,
    IssueLocation,
    IssueType,
    ScoringPenalties,
    Severity,
    ValidationIssue,
    ValidationResult,
    build_result_metadata,
)
from integrity_engine.services.analysis.document_utils import inconclusive_issue
from integrity_engine.services.governor import ResourceGovernor

logger = logging.getLogger(__name__)

_DOI_RE = re.compile(DOI_PATTERN)
_APA_AUTHOR_RE = re.compile(APA_AUTHOR_PATTERN)
_MLA_AUTHOR_RE = re.compile(MLA_AUTHOR_PATTERN)
_DOI_PREFIXES = ("https://doi.org/", "http://doi.org/", "https://dx.doi.org/", "http://dx.doi.org/", "doi:")


@runtime_checkable
class DoiResolver(Protocol):
    async def resolve(self, doi: str) -> bool:
        ...


@runtime_checkable
class BibliographicVerifier(Protocol):
    async def verify(self, citation: Mapping[str, Any]) -> bool:
        ...


def normalize_doi(doi: Any) -> str:
    """Strip resolver prefixes and whitespace from a DOI."""
    value = str(doi or "").strip()
    for prefix in _DOI_PREFIXES:
        if value.lower().startswith(prefix):
            return value[len(prefix):].strip()
    return value


def is_valid_doi(doi: str) -> bool:
    return bool(_DOI_RE.match(doi))


def citation_authors(citation: Mapping[str, Any]) -> List[str]:
    """Authors as a list of names, accepting a list or a ';'-separated string."""
    authors = citation.get("authors")
    if isinstance(authors, str):
        return [a.strip() for a in authors.split(";") if a.strip()]
    if isinstance(authors, (list, tuple)):
        return [str(a).strip() for a in authors if str(a).strip()]
    return []


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


class CitationValidator:
    """Validates a list of citations for one context."""

    def __init__(
        self,
        governor: ResourceGovernor,
        doi_resolver: Optional[DoiResolver] = None,
        verifiers: Optional[Dict[str, BibliographicVerifier]] = None,
        penalties: Optional[ScoringPenalties] = None,
        config: Optional[Settings] = None,
        clock_year: Optional[int] = None,
    ):
        """
        Args:
            governor: Guards every external lookup
            doi_resolver: Resolves DOIs (used when external_sources.doi is set)
            verifiers: Bibliographic verifiers keyed by source name ("crossref", "openalex")
            penalties: Score and confidence deductions per issue
            clock_year: Fixed "current year" for fabrication checks
        """
        self.config = config or default_settings
        self.governor = governor
        self.doi_resolver = doi_resolver
        self.verifiers = dict(verifiers or {})
        self.penalties = penalties or self.config.scoring_penalties
        self._clock_year = clock_year

    @property
    def current_year(self) -> int:
        return self._clock_year or datetime.now(timezone.utc).year

    def required_fields(self, citation_type: str) -> Tuple[str, ...]:
        return BASE_CITATION_FIELDS + CITATION_TYPE_FIELDS.get(citation_type, ())

    async def validate(
        self,
        citations: Sequence[Mapping[str, Any]],
        context: ValidationContext,
    ) -> Tuple[ValidationResult, List[CitationCheckResult]]:
        """Validate every citation and fold the findings into one ValidationResult."""
        start = time.perf_counter()
        if not citations:
            return ValidationResult.passing(RULE_CITATION, citations_checked=0), []

        issues: List[ValidationIssue] = []
        checks: List[CitationCheckResult] = []
        score = 100.0
        confidence = 100.0
        sources_checked: List[str] = ["internal_citation_rules"]

        for index, citation in enumerate(citations):
            check, citation_issues, score_penalty, confidence_penalty, queried = await self._validate_one(
                index, citation, context
            )
            checks.append(check)
            issues.extend(citation_issues)
            score -= score_penalty
            confidence -= confidence_penalty
            for source in queried:
                if source not in sources_checked:
                    sources_checked.append(source)

        suggestions: List[str] = []
        if issues:
            suggestions = [
                'Review and correct citation formatting',
                'Verify all DOIs and external references',
                'Ensure all required citation fields are present',
            ]

        result = ValidationResult(
            rule_id=RULE_CITATION,
            passed=max(0.0, score) >= context.requirements.citation_accuracy,
            score=score,
            confidence=confidence,
            issues=tuple(issues),
            suggestions=tuple(suggestions),
            metadata=build_result_metadata(
                (time.perf_counter() - start) * 1000,
                sources_checked,
                citations_checked=len(citations),
                high_risk_citations=sum(1 for c in checks if c.fabrication_risk == FabricationRisk.HIGH),
            ),
        )
        return result, checks

    async def _validate_one(
        self,
        index: int,
        citation: Mapping[str, Any],
        context: ValidationContext,
    ) -> Tuple[CitationCheckResult, List[ValidationIssue], float, float, List[str]]:
        issues: List[ValidationIssue] = []
        score_penalty = 0.0
        confidence_penalty = 0.0
        queried: List[str] = []
        risk = FabricationRisk.LOW
        risk_reasons: List[str] = []
        location = IssueLocation(section="references", paragraph=index + 1)

        citation_type = str(citation.get("type") or "journal").strip().lower()
        citation_id = str(citation.get("id") or f"citation_{index}")

        # Required fields
        missing = [f for f in self.required_fields(citation_type) if _is_missing(citation.get(f))]
        if missing:
            issues.append(ValidationIssue(
                id=f"citation_missing_{index}",
                type=IssueType.CITATION_ERROR,
                severity=Severity.MAJOR,
                code=ErrorCode.CITATION_MISSING,
                description=f"Missing required fields: {', '.join(missing)}",
                location=location,
                evidence={"citation_index": index, "citation_type": citation_type, "missing_fields": missing},
                suggested_fix=f"Add missing fields: {', '.join(missing)}",
                auto_fixable=False,
            ))
            score_penalty += self.penalties.citation_missing

        # DOI syntax and resolution
        doi_valid: Optional[bool] = None
        doi_resolved: Optional[bool] = None
        raw_doi = citation.get("doi")
        if not _is_missing(raw_doi):
            doi = normalize_doi(raw_doi)
            doi_valid = is_valid_doi(doi)
            if not doi_valid:
                risk, risk_reasons = self._escalate(risk, risk_reasons, FabricationRisk.MEDIUM, "invalid DOI format")
            elif context.external_sources.doi and self.doi_resolver is not None:
                queried.append(SOURCE_DOI)
                outcome = await self.governor.call_external(
                    SOURCE_DOI,
                    lambda: self.doi_resolver.resolve(doi),
                    cache_key=f"doi:{doi.lower()}",
                )
                if outcome.ok:
                    doi_resolved = bool(outcome.value)
                    if not doi_resolved:
                        risk, risk_reasons = self._escalate(risk, risk_reasons, FabricationRisk.MEDIUM, "DOI does not resolve")
                else:
                    issues.append(inconclusive_issue(
                        f"citation_doi_inconclusive_{index}", outcome, IssueType.CITATION_ERROR, f"DOI {doi}", location
                    ))
                    confidence_penalty += self.penalties.confidence_inconclusive

            if doi_valid is False or doi_resolved is False:
                issues.append(ValidationIssue(
                    id=f"citation_invalid_doi_{index}",
                    type=IssueType.CITATION_ERROR,
                    severity=Severity.MAJOR,
                    code=ErrorCode.CITATION_INVALID_DOI,
                    description='Invalid or unresolvable DOI',
                    location=location,
                    evidence={"citation_index": index, "doi": str(raw_doi), "format_valid": doi_valid},
                    suggested_fix='Verify DOI accuracy or remove invalid DOI',
                    auto_fixable=False,
                ))
                score_penalty += self.penalties.citation_invalid_doi
                confidence_penalty += self.penalties.confidence_invalid_doi

        # Bibliographic cross-reference
        verified, verify_issues, verify_penalty, verify_sources = await self._cross_reference(
            index, citation, context, location
        )
        issues.extend(verify_issues)
        confidence_penalty += verify_penalty
        queried.extend(verify_sources)

        # Fabrication heuristics
        risk, risk_reasons = self._fabrication_signals(citation, risk, risk_reasons)
        if risk == FabricationRisk.HIGH:
            issues.append(ValidationIssue(
                id=f"citation_fabrication_{index}",
                type=IssueType.CITATION_ERROR,
                severity=Severity.WARNING,
                code=ErrorCode.FABRICATION_RISK,
                description=f"Citation shows signs of fabrication: {', '.join(risk_reasons)}",
                location=location,
                evidence={"citation_index": index, "fabrication_risk": risk.value, "reasons": list(risk_reasons)},
                suggested_fix="Confirm the citation against the original publication",
                auto_fixable=False,
            ))

        # Style formatting
        format_errors = self._format_errors(citation, context.citation_style)
        for position, message in format_errors:
            issues.append(ValidationIssue(
                id=f"citation_format_{index}_{position}",
                type=IssueType.CITATION_ERROR,
                severity=Severity.MINOR,
                code=ErrorCode.CITATION_FORMAT,
                description=message,
                location=location,
                evidence={"citation_index": index, "style": context.citation_style, "author_position": position},
                suggested_fix=f"Reformat author names for {context.citation_style.upper()} style",
                auto_fixable=True,
            ))
            score_penalty += self.penalties.citation_format

        check = CitationCheckResult(
            index=index,
            citation_id=citation_id,
            missing_fields=tuple(missing),
            doi_valid=doi_valid,
            doi_resolved=doi_resolved,
            verified=verified,
            format_errors=tuple(message for _, message in format_errors),
            fabrication_risk=risk,
            risk_reasons=tuple(risk_reasons),
        )
        return check, issues, score_penalty, confidence_penalty, queried

    async def _cross_reference(
        self,
        index: int,
        citation: Mapping[str, Any],
        context: ValidationContext,
        location: IssueLocation,
    ) -> Tuple[Optional[bool], List[ValidationIssue], float, List[str]]:
        enabled = [
            source for source, flag in (
                (SOURCE_CROSSREF, context.external_sources.crossref),
                (SOURCE_OPENALEX, context.external_sources.openalex),
            )
            if flag and source in self.verifiers
        ]
        if not enabled:
            return None, [], 0.0, []

        issues: List[ValidationIssue] = []
        penalty = 0.0
        answered_false = False
        cache_basis = normalize_doi(citation.get("doi")) or str(citation.get("title", "")).strip().lower()

        for source in enabled:
            verifier = self.verifiers[source]
            outcome = await self.governor.call_external(
                source,
                lambda v=verifier: v.verify(citation),
                cache_key=f"{source}:{cache_basis}" if cache_basis else None,
            )
            if outcome.ok:
                if outcome.value:
                    return True, issues, penalty, enabled
                answered_false = True
            else:
                issues.append(inconclusive_issue(
                    f"citation_{source}_inconclusive_{index}", outcome, IssueType.CITATION_ERROR,
                    f"Citation {index + 1}", location,
                ))
                penalty += self.penalties.confidence_inconclusive

        if not answered_false:
            return None, issues, penalty, enabled

        issues.append(ValidationIssue(
            id=f"citation_unverified_{index}",
            type=IssueType.CITATION_ERROR,
            severity=Severity.MINOR,
            code=ErrorCode.CITATION_UNVERIFIED,
            description='Citation could not be verified in academic databases',
            location=location,
            evidence={"citation_index": index, "sources": enabled},
            suggested_fix='Verify citation details and sources',
            auto_fixable=False,
        ))
        return False, issues, penalty + self.penalties.confidence_unverified, enabled

    @staticmethod
    def _escalate(
        current: FabricationRisk,
        reasons: List[str],
        level: FabricationRisk,
        reason: str,
    ) -> Tuple[FabricationRisk, List[str]]:
        return current.escalate(level), reasons + [reason]

    def _fabrication_signals(
        self,
        citation: Mapping[str, Any],
        risk: FabricationRisk,
        reasons: List[str],
    ) -> Tuple[FabricationRisk, List[str]]:
        author_words = {
            word
            for author in citation_authors(citation)
            for word in re.split(r'[^a-z]+', author.lower())
            if word
        }
        suspicious = sorted(author_words.intersection(SUSPICIOUS_AUTHOR_TOKENS))
        if suspicious:
            risk, reasons = self._escalate(risk, reasons, FabricationRisk.HIGH, f"suspicious author names ({', '.join(suspicious)})")

        journal = str(citation.get("source") or citation.get("journal") or "").lower()
        if journal and any(token in journal for token in SUSPICIOUS_JOURNAL_TOKENS):
            risk, reasons = self._escalate(risk, reasons, FabricationRisk.HIGH, "suspicious journal name")

        year = citation.get("year")
        try:
            year_value = int(str(year).strip()) if year is not None and str(year).strip() else None
        except ValueError:
            year_value = None
        if year_value is not None:
            if year_value > self.current_year + 1:
                risk, reasons = self._escalate(risk, reasons, FabricationRisk.HIGH, f"publication year {year_value} is in the future")
            elif year_value < EARLIEST_PLAUSIBLE_YEAR:
                risk, reasons = self._escalate(risk, reasons, FabricationRisk.MEDIUM, f"publication year {year_value} is implausibly early")

        return risk, reasons

    def _format_errors(self, citation: Mapping[str, Any], style: str) -> List[Tuple[int, str]]:
        authors = citation_authors(citation)
        if style == "apa":
            return [
                (position, f"Author '{name}' not in APA format (Surname, I.)")
                for position, name in enumerate(authors)
                if not _APA_AUTHOR_RE.match(name)
            ]
        if style == "mla" and authors:
            # MLA inverts only the first author's name
            if not _MLA_AUTHOR_RE.match(authors[0]):
                return [(0, f"First author '{authors[0]}' not in MLA format (Surname, Given)")]
        return []
