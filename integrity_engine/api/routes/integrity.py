"""
Academic integrity API endpoints.

Integrity checks run in the background: POST /integrity/checks answers 202
with a check id to poll. The direct analysis endpoints answer synchronously.
"""
from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse, PlainTextResponse
import logging

from integrity_engine.core.security import verify_api_key
from integrity_engine.core.error_handling import CheckNotFoundError, handle_integrity_errors
from integrity_engine.models.api_models import (
    CheckSubmissionResponse,
    CitationsRequest,
    CompareRequest,
    DataConsistencyRequest,
    PlagiarismRequest,
    QuickScoreRequest,
    RegisterSourceRequest,
    ValidateDocumentRequest,
)
from integrity_engine.services.integrity_engine import get_integrity_engine

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/integrity", dependencies=[Depends(verify_api_key)])


# ============================================================================
# Integrity Checks
# ============================================================================

@router.post("/checks", status_code=202, response_model=CheckSubmissionResponse)
@handle_integrity_errors("Failed to submit integrity check")
async def submit_check(request: ValidateDocumentRequest):
    """
    Submit a document for a background integrity check.

    Args:
        request: Document content, validation context and check type

    Returns:
        Check id and its status at submission time
    """
    engine = get_integrity_engine()
    check_id = await engine.validate_document(request.content, request.context, request.check_type)
    check = engine.get_integrity_results(check_id)
    logger.info(f"Accepted integrity check {check_id} for document {request.context.document_id}")
    return CheckSubmissionResponse(check_id=check_id, status=check.status.value if check else "pending")


@router.get("/checks")
@handle_integrity_errors("Failed to list integrity checks")
async def list_checks():
    """Summaries of the stored integrity checks."""
    checks = get_integrity_engine().orchestrator.list_checks()
    return {
        "checks": [
            {
                "id": check.id,
                "document_id": check.document_id,
                "check_type": check.check_type.value,
                "status": check.status.value,
                "created_at": check.created_at.isoformat(),
                "updated_at": check.updated_at.isoformat(),
            }
            for check in checks
        ]
    }


@router.get("/checks/{check_id}")
@handle_integrity_errors("Failed to fetch integrity check")
async def get_check(check_id: str):
    """Status, issues and (once completed) the report of a check."""
    check = get_integrity_engine().get_integrity_results(check_id)
    if check is None:
        raise CheckNotFoundError(f"Integrity check not found: {check_id}")
    return check.to_dict()


@router.get("/checks/{check_id}/report")
@handle_integrity_errors("Failed to generate integrity report")
async def get_report(check_id: str, fmt: str = Query("json", alias="format")):
    """
    Render the report of a check.

    json returns the full check, html a standalone page and pdf a text
    summary. html and pdf are only available once the check has completed.
    """
    report = get_integrity_engine().generate_integrity_report(check_id, fmt)
    fmt = fmt.lower()
    if fmt == "html":
        return HTMLResponse(content=report)
    if fmt == "pdf":
        return PlainTextResponse(content=report)
    return report


# ============================================================================
# Direct Analyses
# ============================================================================

@router.post("/quick-score")
@handle_integrity_errors("Failed to compute quick integrity score")
async def quick_score(request: QuickScoreRequest):
    """Heuristic integrity estimate without external lookups."""
    return get_integrity_engine().get_quick_integrity_score(request.content).to_dict()


@router.post("/plagiarism")
@handle_integrity_errors("Failed to detect plagiarism")
async def detect_plagiarism(request: PlagiarismRequest):
    """Compare a document against the known-source index."""
    result, detection = await get_integrity_engine().detect_plagiarism(request.content, request.context)
    return {"result": result.to_dict(), "detection": detection.to_dict()}


@router.post("/citations")
@handle_integrity_errors("Failed to validate citations")
async def validate_citations(request: CitationsRequest):
    """Check citation completeness, DOIs, formatting and fabrication risk."""
    result, citations = await get_integrity_engine().validate_citations(request.citations, request.context)
    return {"result": result.to_dict(), "citations": [c.to_dict() for c in citations]}


@router.post("/data-consistency")
@handle_integrity_errors("Failed to validate data consistency")
async def validate_data_consistency(request: DataConsistencyRequest):
    """Check structured data against field declarations."""
    checks = [check.model_dump() for check in request.checks] if request.checks is not None else None
    result = await get_integrity_engine().validate_data_consistency(request.data, checks, request.context)
    return {"result": result.to_dict()}


@router.post("/compare")
@handle_integrity_errors("Failed to compare documents")
async def compare_documents(request: CompareRequest):
    """Similarity between two documents."""
    result = get_integrity_engine().compare_documents(
        request.document_a, request.document_b, request.comparison_type
    )
    return result.to_dict()


# ============================================================================
# Rules and Sources
# ============================================================================

@router.get("/rules")
@handle_integrity_errors("Failed to list rules")
async def list_rules():
    """Registered validation rules with their weights and enabled flags."""
    return {"rules": [rule.to_dict() for rule in get_integrity_engine().list_rules()]}


@router.post("/rules/{rule_id}/enable")
@handle_integrity_errors("Failed to enable rule")
async def enable_rule(rule_id: str):
    """Enable a rule for checks submitted from now on."""
    return get_integrity_engine().enable_rule(rule_id).to_dict()


@router.post("/rules/{rule_id}/disable")
@handle_integrity_errors("Failed to disable rule")
async def disable_rule(rule_id: str):
    """Disable a rule for checks submitted from now on."""
    return get_integrity_engine().disable_rule(rule_id).to_dict()


@router.post("/sources", status_code=201)
@handle_integrity_errors("Failed to register known source")
async def register_source(request: RegisterSourceRequest):
    """Add a known source to the plagiarism index."""
    source = get_integrity_engine().register_source(
        source_id=request.source_id,
        title=request.title,
        text=request.text,
        authors=request.authors,
        url=request.url,
    )
    logger.info(f"Registered known source {source.source_id}")
    return {"source_id": source.source_id, "title": source.title, "registered": True}
