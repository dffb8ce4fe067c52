"""Pydantic models for API validation and domain records for integrity checks."""

from .api_models import (
    CheckSubmissionResponse,
    CitationsRequest,
    CompareRequest,
    DataCheckDeclaration,
    DataConsistencyRequest,
    PlagiarismRequest,
    QuickScoreRequest,
    RegisterSourceRequest,
    ToolCallRequest,
    ValidateDocumentRequest,
)
from .context_models import ExternalSources, Requirements, ValidationContext

__all__ = [
    "CheckSubmissionResponse",
    "CitationsRequest",
    "CompareRequest",
    "DataCheckDeclaration",
    "DataConsistencyRequest",
    "PlagiarismRequest",
    "QuickScoreRequest",
    "RegisterSourceRequest",
    "ToolCallRequest",
    "ValidateDocumentRequest",
    "ExternalSources",
    "Requirements",
    "ValidationContext",
]
