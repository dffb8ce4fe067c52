from fastapi import APIRouter
from integrity_engine.core.config import settings
from integrity_engine.services.integrity_engine import get_integrity_engine

router = APIRouter()

@router.get("/")
async def root():
    """Basic health check endpoint."""
    return {"message": "Academic Integrity Validation Engine", "status": "healthy"}

@router.get("/health")
async def health_check():
    """
    Comprehensive health check endpoint.

    Reports:
    - Registered and enabled rule counts
    - Resource governor snapshot (rate limits, breaker states, cache size)
    - Which external collaborators are configured
    """
    engine = get_integrity_engine()
    health_status = {
        "status": "healthy",
        "service": "Academic Integrity Validation Engine",
        "version": "1.0",
    }
    health_status.update(engine.health())

    health_status["external_sources"] = {
        "doi_resolver": settings.DOI_RESOLVER_URL,
        "crossref": settings.CROSSREF_API_URL,
        "openalex": settings.OPENALEX_API_URL,
    }

    # Any open breaker means external verification is degraded
    breakers = health_status["governor"].get("circuit_breakers", {})
    open_sources = [source for source, state in breakers.items() if state.get("state") == "open"]
    if open_sources:
        health_status["status"] = "degraded"
        health_status["warning"] = f"Circuit open for: {', '.join(sorted(open_sources))}"

    if health_status["enabled_rules"] == 0:
        health_status["status"] = "degraded"
        health_status["warning"] = "No validation rules are enabled"

    return health_status
