"""
Request and response bodies for the integrity API.
"""
from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Literal, Optional, Union

from integrity_engine.models.context_models import ValidationContext
from integrity_engine.models.integrity_models import CheckType


class ValidateDocumentRequest(BaseModel):
    """Request model for submitting a background integrity check."""

    content: Union[str, Dict[str, Any]] = Field(
        ...,
        description="Plain text, or a structured document with text, citations and data fields"
    )
    context: ValidationContext = Field(..., description="How the document should be validated")
    check_type: CheckType = Field(default=CheckType.FULL_INTEGRITY, description="Subset of rules to run")

    @field_validator('content')
    @classmethod
    def validate_content(cls, v):
        """Content must not be empty."""
        if isinstance(v, str) and not v.strip():
            raise ValueError("content cannot be empty")
        if isinstance(v, dict) and not v:
            raise ValueError("content cannot be an empty object")
        return v

    model_config = {
        "json_schema_extra": {
            "example": {
                "content": {
                    "text": "Cognitive load theory predicts that ...",
                    "citations": [
                        {
                            "type": "journal",
                            "title": "Cognitive load during problem solving",
                            "authors": ["Sweller, J."],
                            "year": 1988,
                            "source": "Cognitive Science",
                            "volume": "12",
                            "doi": "10.1207/s15516709cog1202_4"
                        }
                    ],
                    "title": "Working memory and instructional design",
                    "authors": ["Doe, J."],
                    "year": 2024
                },
                "context": {"document_id": "thesis-2024-001", "citation_style": "apa"},
                "check_type": "full_integrity"
            }
        }
    }


class CheckSubmissionResponse(BaseModel):
    """Response model for an accepted integrity check."""

    check_id: str = Field(..., description="Identifier to poll for results")
    status: str = Field(..., description="Check status at the time of the response")

    model_config = {
        "json_schema_extra": {
            "example": {"check_id": "check_3f2a9c0d4b5e4f6a8b7c6d5e4f3a2b1c", "status": "pending"}
        }
    }


class QuickScoreRequest(BaseModel):
    """Request model for the heuristic quick score."""

    content: Union[str, Dict[str, Any]] = Field(..., description="Document text or structured document")


class PlagiarismRequest(BaseModel):
    """Request model for direct plagiarism detection."""

    content: Union[str, Dict[str, Any]] = Field(..., description="Document text or structured document")
    context: ValidationContext


class CitationsRequest(BaseModel):
    """Request model for direct citation validation."""

    citations: List[Dict[str, Any]] = Field(..., description="Citation records")
    context: ValidationContext


class DataCheckDeclaration(BaseModel):
    """How one data field must look."""

    field_name: str = Field(..., min_length=1)
    expected_type: Literal["string", "number", "integer", "boolean", "array", "object"]
    required: bool = True
    pattern: Optional[str] = None
    allowed_values: Optional[List[Any]] = None
    cross_references: List[str] = Field(default_factory=list)
    relation: Literal["equals", "less_equal", "greater_equal", "length_equals"] = "equals"


class DataConsistencyRequest(BaseModel):
    """Request model for structured data consistency checks."""

    data: Dict[str, Any] = Field(..., description="Structured data fields")
    checks: Optional[List[DataCheckDeclaration]] = Field(
        None,
        description="Field declarations; defaults to title, authors and year"
    )
    context: Optional[ValidationContext] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "data": {"title": "A study", "authors": ["Doe, J."], "year": 2024},
                "checks": [
                    {"field_name": "year", "expected_type": "number", "pattern": "^\\d{4}$"}
                ]
            }
        }
    }


class CompareRequest(BaseModel):
    """Request model for comparing two documents."""

    document_a: str = Field(..., min_length=1)
    document_b: str = Field(..., min_length=1)
    comparison_type: Literal["full", "lexical", "frequency", "structural"] = "full"


class RegisterSourceRequest(BaseModel):
    """Request model for adding a known source to the plagiarism index."""

    source_id: str = Field(..., min_length=1, max_length=200)
    title: str = Field(..., min_length=1)
    text: str = Field(..., description="Full text of the source")
    authors: List[str] = Field(default_factory=list)
    url: Optional[str] = None

    @field_validator('text')
    @classmethod
    def validate_text(cls, v: str) -> str:
        """Source text must not be empty."""
        if not v.strip():
            raise ValueError("text cannot be empty")
        return v


class ToolCallRequest(BaseModel):
    """Request model for a tool call. Arguments are checked against the tool's schema."""

    arguments: Dict[str, Any] = Field(default_factory=dict)
