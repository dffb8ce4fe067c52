"""
Base validation rule.

This module provides the abstract base class for all validation rules,
establishing a consistent interface for rule evaluation.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict
import logging

from integrity_engine.models.context_models import ValidationContext
from integrity_engine.models.integrity_models import RuleCategory, Severity, ValidationResult
from integrity_engine.services.analysis.document_utils import Document

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleDescriptor:
    """Read-only view of a registered rule."""

    rule_id: str
    name: str
    description: str
    category: RuleCategory
    severity: Severity
    weight: float
    enabled: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "severity": self.severity.value,
            "weight": self.weight,
            "enabled": self.enabled,
        }


class ValidationRule(ABC):
    """Abstract base class for all validation rules.

    Each rule scores one aspect of a document:
    - Plagiarism (known-source overlap)
    - Citations (completeness, DOI, cross-reference, formatting)
    - Data consistency (structured metadata fields)
    - Format (title and abstract limits)
    - Methodology (coverage of methods elements)

    All rules follow the same interface so the orchestrator can fan them out
    concurrently. Rules are stateless with respect to a check; the enabled
    flag is only changed through the RuleRegistry.
    """

    rule_id: str = ""
    name: str = ""
    description: str = ""
    category: RuleCategory = RuleCategory.CONSISTENCY
    severity: Severity = Severity.MAJOR

    def __init__(self, weight: float, enabled: bool = True):
        if not 0.0 <= weight <= 1.0:
            raise ValueError(f"Rule weight must be within [0, 1], got {weight}")
        self.weight = weight
        self.enabled = enabled

    @abstractmethod
    async def evaluate(self, content: Document, context: ValidationContext) -> ValidationResult:
        """Evaluate the rule against a document.

        Args:
            content: Plain text or a document mapping
            context: Validation context (requirements, style, external sources)

        Returns:
            ValidationResult for this rule
        """
        pass

    def describe(self) -> RuleDescriptor:
        return RuleDescriptor(
            rule_id=self.rule_id,
            name=self.name,
            description=self.description,
            category=self.category,
            severity=self.severity,
            weight=self.weight,
            enabled=self.enabled,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(rule_id={self.rule_id}, weight={self.weight}, enabled={self.enabled})"
