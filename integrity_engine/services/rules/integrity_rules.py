"""
Built-in validation rules.

Each rule adapts one analyzer to the ValidationRule interface and decides
what part of the document the analyzer sees.
"""
import logging
from typing import Optional

from integrity_engine.core.constants import (
    DEFAULT_RULE_WEIGHTS,
    RULE_CITATION,
    RULE_DATA_CONSISTENCY,
    RULE_FORMAT,
    RULE_METHODOLOGY,
    RULE_PLAGIARISM,
)
from integrity_engine.models.context_models import ValidationContext
from integrity_engine.models.integrity_models import RuleCategory, Severity, ValidationResult
from integrity_engine.services.analysis import (
    CitationValidator,
    DataConsistencyChecker,
    FormatChecker,
    MethodologyChecker,
    PlagiarismDetector,
    parse_checks,
)
from integrity_engine.services.analysis.document_utils import (
    Document,
    document_citations,
    document_fields,
    document_text,
)
from integrity_engine.services.rules.base_rule import ValidationRule

logger = logging.getLogger(__name__)


class PlagiarismRule(ValidationRule):
    rule_id = RULE_PLAGIARISM
    name = "Plagiarism Detection"
    description = "Detect potential plagiarism by comparing against known sources"
    category = RuleCategory.PLAGIARISM
    severity = Severity.CRITICAL

    def __init__(self, detector: PlagiarismDetector, weight: Optional[float] = None, enabled: bool = True):
        super().__init__(DEFAULT_RULE_WEIGHTS[RULE_PLAGIARISM] if weight is None else weight, enabled)
        self.detector = detector

    async def evaluate(self, content: Document, context: ValidationContext) -> ValidationResult:
        text = document_text(content)
        if not text.strip():
            return ValidationResult.passing(self.rule_id, segments=0)
        result, _ = await self.detector.evaluate(text, context)
        return result


class CitationRule(ValidationRule):
    rule_id = RULE_CITATION
    name = "Citation Validation"
    description = "Validate citation accuracy and formatting"
    category = RuleCategory.CITATION
    severity = Severity.MAJOR

    def __init__(self, validator: CitationValidator, weight: Optional[float] = None, enabled: bool = True):
        super().__init__(DEFAULT_RULE_WEIGHTS[RULE_CITATION] if weight is None else weight, enabled)
        self.validator = validator

    async def evaluate(self, content: Document, context: ValidationContext) -> ValidationResult:
        result, _ = await self.validator.validate(document_citations(content), context)
        return result


class DataConsistencyRule(ValidationRule):
    """Checks document metadata; a document mapping may carry its own "data_checks"."""

    rule_id = RULE_DATA_CONSISTENCY
    name = "Data Consistency"
    description = "Validate data consistency and integrity"
    category = RuleCategory.DATA
    severity = Severity.MAJOR

    def __init__(self, checker: DataConsistencyChecker, weight: Optional[float] = None, enabled: bool = True):
        super().__init__(DEFAULT_RULE_WEIGHTS[RULE_DATA_CONSISTENCY] if weight is None else weight, enabled)
        self.checker = checker

    async def evaluate(self, content: Document, context: ValidationContext) -> ValidationResult:
        fields = document_fields(content)
        raw_checks = fields.pop("data_checks", None)
        if not fields:
            # Plain text carries no structured data
            return ValidationResult.passing(self.rule_id, skipped="no structured data")
        checks = parse_checks(raw_checks) if raw_checks else None
        return self.checker.check(fields, checks, context)


class FormatRule(ValidationRule):
    rule_id = RULE_FORMAT
    name = "Format Validation"
    description = "Validate document formatting and structure"
    category = RuleCategory.FORMAT
    severity = Severity.MINOR

    def __init__(self, checker: FormatChecker, weight: Optional[float] = None, enabled: bool = True):
        super().__init__(DEFAULT_RULE_WEIGHTS[RULE_FORMAT] if weight is None else weight, enabled)
        self.checker = checker

    async def evaluate(self, content: Document, context: ValidationContext) -> ValidationResult:
        return self.checker.check(document_fields(content))


class MethodologyRule(ValidationRule):
    rule_id = RULE_METHODOLOGY
    name = "Methodology Validation"
    description = "Validate research methodology rigor and completeness"
    category = RuleCategory.METHODOLOGY
    severity = Severity.MAJOR

    def __init__(self, checker: MethodologyChecker, weight: Optional[float] = None, enabled: bool = True):
        super().__init__(DEFAULT_RULE_WEIGHTS[RULE_METHODOLOGY] if weight is None else weight, enabled)
        self.checker = checker

    async def evaluate(self, content: Document, context: ValidationContext) -> ValidationResult:
        return self.checker.check(document_text(content), context)
