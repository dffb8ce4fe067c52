"""
Helpers for reading submitted documents.

A document is either plain text or a mapping with optional metadata fields
(title, abstract, authors, year, citations, sections, ...) and its body under
"text" or "content".
"""
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from integrity_engine.models.integrity_models import (
    ErrorCode,
    IssueLocation,
    IssueType,
    Severity,
    ValidationIssue,
)
from integrity_engine.services.governor import ExternalCallOutcome, OutcomeStatus

Document = Union[str, Mapping[str, Any]]

_BODY_KEYS = ("text", "content", "body")


def document_text(document: Document) -> str:
    """Body text of a document, assembled from sections when no body field is present."""
    if isinstance(document, str):
        return document
    if not isinstance(document, Mapping):
        return ""

    for key in _BODY_KEYS:
        value = document.get(key)
        if isinstance(value, str) and value.strip():
            return value

    parts: List[str] = []
    for section in document.get("sections") or []:
        if isinstance(section, Mapping):
            heading = section.get("title") or section.get("heading")
            if heading:
                parts.append(str(heading))
            body = section.get("content") or section.get("text")
            if body:
                parts.append(str(body))
        elif isinstance(section, str):
            parts.append(section)
    return "\n\n".join(parts)


def document_fields(document: Document) -> Dict[str, Any]:
    """Structured metadata of a document; empty for plain text."""
    if not isinstance(document, Mapping):
        return {}
    return {k: v for k, v in document.items() if k not in _BODY_KEYS}


def document_citations(document: Document) -> List[Dict[str, Any]]:
    citations = document_fields(document).get("citations")
    if not isinstance(citations, list):
        return []
    return [c for c in citations if isinstance(c, Mapping)]


def get_path(data: Mapping[str, Any], path: str) -> Tuple[bool, Any]:
    """
    Resolve a dot path such as "results.0.mean".

    Returns:
        (found, value). A key holding None counts as not found.
    """
    current: Any = data
    for part in path.split("."):
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        elif isinstance(current, (list, tuple)) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return False, None
    return current is not None, current


def locate_offset(text: str, start: int, end: Optional[int] = None, section: Optional[str] = None) -> IssueLocation:
    """Build an IssueLocation (1-based paragraph and line) for a character span."""
    before = text[:start]
    line = before.count("\n") + 1
    paragraph = sum(1 for block in before.split("\n\n") if block.strip()) or 1
    if before.endswith("\n\n"):
        paragraph += 1
    return IssueLocation(
        section=section,
        paragraph=paragraph,
        line=line,
        start_char=start,
        end_char=end,
    )


_OUTCOME_CODES = {
    OutcomeStatus.RATE_LIMITED: ErrorCode.RATE_LIMIT_EXCEEDED,
    OutcomeStatus.CIRCUIT_OPEN: ErrorCode.CIRCUIT_OPEN,
    OutcomeStatus.TIMEOUT: ErrorCode.EXTERNAL_TIMEOUT,
    OutcomeStatus.ERROR: ErrorCode.EXTERNAL_ERROR,
}


def inconclusive_issue(
    issue_id: str,
    outcome: ExternalCallOutcome,
    issue_type: IssueType,
    subject: str,
    location: Optional[IssueLocation] = None,
    occurrences: int = 1,
) -> ValidationIssue:
    """Warning for an external check that could not give an answer."""
    return ValidationIssue(
        id=issue_id,
        type=issue_type,
        severity=Severity.WARNING,
        code=_OUTCOME_CODES.get(outcome.status, ErrorCode.EXTERNAL_ERROR),
        description=f"{subject} could not be verified against '{outcome.source}' ({outcome.status.value})",
        location=location or IssueLocation(),
        evidence={"source": outcome.source, "status": outcome.status.value, "occurrences": occurrences},
        suggested_fix="Re-run the check later or verify manually",
        auto_fixable=False,
    )
