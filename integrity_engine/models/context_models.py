"""
Pydantic models describing how a document should be validated.
"""
from pydantic import BaseModel, Field, field_validator
from typing import Literal, Optional


class Requirements(BaseModel):
    """Per-category pass thresholds, as percentages."""

    originality_threshold: float = Field(default=85.0, ge=0, le=100, description="Minimum originality score")
    citation_accuracy: float = Field(default=90.0, ge=0, le=100, description="Minimum citation score")
    data_integrity: float = Field(default=80.0, ge=0, le=100, description="Minimum data consistency score")
    methodology_rigor: float = Field(default=70.0, ge=0, le=100, description="Minimum methodology score")

    model_config = {"frozen": True, "extra": "forbid"}


class ExternalSources(BaseModel):
    """Which external collaborators a check may query."""

    plagiarism_db: bool = Field(default=True, description="Look segments up in the known-source index")
    doi: bool = Field(default=False, description="Resolve DOIs against the DOI resolver")
    crossref: bool = Field(default=False, description="Verify citations against Crossref")
    openalex: bool = Field(default=False, description="Verify citations against OpenAlex")

    model_config = {"frozen": True, "extra": "forbid"}


class ValidationContext(BaseModel):
    """Immutable settings for one integrity check."""

    document_id: str = Field(..., min_length=1, max_length=200, description="Caller's identifier for the document")
    discipline: str = Field(default="general", max_length=100)
    paradigm: Optional[str] = Field(default=None, max_length=100, description="e.g. quantitative, qualitative, mixed")
    citation_style: Literal["apa", "mla", "chicago", "harvard", "ieee"] = "apa"
    academic_level: Literal["undergraduate", "graduate", "doctoral", "professional"] = "graduate"
    requirements: Requirements = Field(default_factory=Requirements)
    external_sources: ExternalSources = Field(default_factory=ExternalSources)

    @field_validator('citation_style', 'academic_level', mode='before')
    @classmethod
    def normalize_case(cls, v):
        """Accept styles and levels in any case."""
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator('document_id')
    @classmethod
    def validate_document_id(cls, v: str) -> str:
        """Document ids must not be blank."""
        if not v.strip():
            raise ValueError("document_id cannot be blank")
        return v.strip()

    model_config = {
        "frozen": True,
        "extra": "forbid",
        "json_schema_extra": {
            "example": {
                "document_id": "thesis-2024-001",
                "discipline": "psychology",
                "paradigm": "quantitative",
                "citation_style": "apa",
                "academic_level": "doctoral",
                "requirements": {"originality_threshold": 85, "citation_accuracy": 90},
                "external_sources": {"plagiarism_db": True, "doi": False},
            }
        }
    }
