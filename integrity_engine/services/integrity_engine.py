"""
Integrity engine facade.

Wires the resource governor, analyzers, rules, orchestrator and report
helpers together and exposes the operations used by the HTTP routes and the
tool dispatcher.
"""
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from integrity_engine.core.config import Settings, settings as default_settings
from integrity_engine.core.error_handling import CheckNotFoundError, InputValidationError
from integrity_engine.models.context_models import ValidationContext
from integrity_engine.models.integrity_models import (
    CheckType,
    CitationCheckResult,
    ComparisonResult,
    DataConsistencyCheck,
    IntegrityCheck,
    PlagiarismDetectionResult,
    QuickIntegrityScore,
    ValidationResult,
)
from integrity_engine.services.analysis import (
    CitationValidator,
    ContentNormalizer,
    DataConsistencyChecker,
    DocumentComparator,
    Fingerprinter,
    FormatChecker,
    InMemorySourceIndex,
    KnownSource,
    KnownSourceIndex,
    MethodologyChecker,
    PlagiarismDetector,
    QuickScanner,
    parse_checks,
)
from integrity_engine.services.analysis.citation_validator import BibliographicVerifier, DoiResolver
from integrity_engine.services.analysis.document_utils import Document, document_text
from integrity_engine.services.client_factory import ClientFactory, get_client_factory
from integrity_engine.services.governor import ResourceGovernor
from integrity_engine.services.report_aggregator import ReportAggregator
from integrity_engine.services.report_renderer import ReportRenderer
from integrity_engine.services.rules import (
    CitationRule,
    DataConsistencyRule,
    FormatRule,
    MethodologyRule,
    PlagiarismRule,
    RuleDescriptor,
    RuleRegistry,
)
from integrity_engine.services.validation_orchestrator import ValidationObserver, ValidationOrchestrator

logger = logging.getLogger(__name__)

ContextInput = Union[ValidationContext, Mapping[str, Any]]


def format_validation_errors(error: ValidationError, prefix: str = "context") -> List[str]:
    """Flatten pydantic errors into "context.field: message" strings."""
    messages = []
    for item in error.errors():
        path = ".".join(str(part) for part in (prefix, *item.get("loc", ())))
        messages.append(f"{path}: {item.get('msg', 'invalid value')}")
    return messages


class IntegrityEngine:
    """Entry point for academic integrity validation."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        governor: Optional[ResourceGovernor] = None,
        source_index: Optional[KnownSourceIndex] = None,
        client_factory: Optional[ClientFactory] = None,
        doi_resolver: Optional[DoiResolver] = None,
        verifiers: Optional[Dict[str, BibliographicVerifier]] = None,
        observers: Optional[Sequence[ValidationObserver]] = None,
    ):
        """
        Args:
            config: Settings (defaults to the global settings)
            governor: Shared resource governor for external calls
            source_index: Known-source index (defaults to an in-memory index)
            client_factory: Source of HTTP lookup clients when resolver/verifiers are not given
            doi_resolver: DOI resolver collaborator
            verifiers: Bibliographic verifiers keyed by source name
            observers: Check lifecycle observers (defaults to logging)
        """
        self.config = config or default_settings
        self.governor = governor or ResourceGovernor(self.config)
        self.client_factory = client_factory

        if source_index is None:
            fingerprinter = Fingerprinter(ContentNormalizer(), shingle_size=self.config.PLAGIARISM_SHINGLE_SIZE)
            source_index = InMemorySourceIndex(
                fingerprinter,
                segment_words=self.config.PLAGIARISM_SEGMENT_WORDS,
                min_similarity=self.config.PLAGIARISM_MIN_SIMILARITY,
            )
        self.source_index = source_index
        # Detector and index must fingerprint identically
        fingerprinter = getattr(source_index, "fingerprinter", None)

        if client_factory is not None:
            doi_resolver = doi_resolver or client_factory.doi_resolver
            verifiers = verifiers if verifiers is not None else client_factory.get_verifiers()

        penalties = self.config.scoring_penalties
        self.plagiarism_detector = PlagiarismDetector(source_index, self.governor, fingerprinter, self.config)
        self.citation_validator = CitationValidator(
            self.governor, doi_resolver, verifiers, penalties=penalties, config=self.config
        )
        self.data_checker = DataConsistencyChecker(penalties, self.config)
        self.methodology_checker = MethodologyChecker(penalties, self.config)
        self.format_checker = FormatChecker(penalties, self.config)
        self.quick_scanner = QuickScanner()
        self.comparator = DocumentComparator()
        self.renderer = ReportRenderer()

        self.registry = RuleRegistry()
        self._register_default_rules()

        self.aggregator = ReportAggregator(self.config)
        self.orchestrator = ValidationOrchestrator(self.registry, self.aggregator, self.config, observers)

        if self.config.PLAGIARISM_INDEX_PATH and isinstance(source_index, InMemorySourceIndex):
            source_index.load_json(self.config.PLAGIARISM_INDEX_PATH)

        logger.info(f"Integrity engine initialized with {len(self.registry)} rules")

    def _register_default_rules(self) -> None:
        self.registry.register(PlagiarismRule(self.plagiarism_detector))
        self.registry.register(CitationRule(self.citation_validator))
        self.registry.register(DataConsistencyRule(self.data_checker))
        self.registry.register(FormatRule(self.format_checker))
        self.registry.register(MethodologyRule(self.methodology_checker))

    # ------------------------------------------------------------------
    # Input coercion
    # ------------------------------------------------------------------

    @staticmethod
    def build_context(context: ContextInput) -> ValidationContext:
        """
        Accept a ValidationContext or a plain mapping.

        Raises:
            InputValidationError: The mapping is not a valid context
        """
        if isinstance(context, ValidationContext):
            return context
        if not isinstance(context, Mapping):
            raise InputValidationError(["context: must be an object"])
        try:
            return ValidationContext.model_validate(dict(context))
        except ValidationError as e:
            raise InputValidationError(format_validation_errors(e), "Invalid validation context") from e

    @staticmethod
    def _check_document(content: Any) -> Document:
        if isinstance(content, str):
            if not content.strip():
                raise InputValidationError(["content: must not be empty"])
            return content
        if isinstance(content, Mapping):
            if not content:
                raise InputValidationError(["content: must not be empty"])
            return content
        raise InputValidationError(["content: must be a string or an object"])

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    async def validate_document(
        self,
        content: Document,
        context: ContextInput,
        check_type: Union[CheckType, str] = CheckType.FULL_INTEGRITY,
    ) -> str:
        """
        Submit a document for a background integrity check.

        Returns:
            Check id to poll with get_integrity_results

        Raises:
            InputValidationError: Malformed content, context or check type
        """
        document = self._check_document(content)
        validation_context = self.build_context(context)
        try:
            check_type = CheckType(check_type)
        except ValueError as e:
            allowed = ", ".join(t.value for t in CheckType)
            raise InputValidationError([f"check_type: must be one of {allowed}"]) from e
        return await self.orchestrator.submit(document, validation_context, check_type)

    def get_integrity_results(self, check_id: str) -> Optional[IntegrityCheck]:
        return self.orchestrator.get_integrity_results(check_id)

    async def wait_for_check(self, check_id: str, timeout: Optional[float] = None) -> IntegrityCheck:
        return await self.orchestrator.wait_for_check(check_id, timeout)

    def generate_integrity_report(self, check_id: str, fmt: str = "json") -> Union[Dict[str, Any], str]:
        """
        Render a check's report as json (dict), html or pdf (text placeholder).

        Raises:
            CheckNotFoundError: Unknown check id
            ReportFormatError: Unknown format
            CheckStateError: html/pdf requested before the report exists
        """
        check = self.orchestrator.get_integrity_results(check_id)
        if check is None:
            raise CheckNotFoundError(f"Integrity check not found: {check_id}")
        return self.renderer.render(check, fmt)

    # ------------------------------------------------------------------
    # Direct analyses
    # ------------------------------------------------------------------

    def get_quick_integrity_score(self, content: Document) -> QuickIntegrityScore:
        return self.quick_scanner.scan(document_text(content))

    async def detect_plagiarism(
        self, content: Document, context: ContextInput
    ) -> Tuple[ValidationResult, PlagiarismDetectionResult]:
        validation_context = self.build_context(context)
        return await self.plagiarism_detector.evaluate(document_text(content), validation_context)

    async def validate_citations(
        self, citations: Sequence[Mapping[str, Any]], context: ContextInput
    ) -> Tuple[ValidationResult, List[CitationCheckResult]]:
        validation_context = self.build_context(context)
        if not isinstance(citations, Sequence) or isinstance(citations, (str, bytes)):
            raise InputValidationError(["citations: must be a list of objects"])
        bad = [i for i, c in enumerate(citations) if not isinstance(c, Mapping)]
        if bad:
            raise InputValidationError([f"citations.{i}: must be an object" for i in bad])
        return await self.citation_validator.validate(citations, validation_context)

    async def validate_data_consistency(
        self,
        data: Mapping[str, Any],
        checks: Optional[Sequence[Union[DataConsistencyCheck, Mapping[str, Any]]]] = None,
        context: Optional[ContextInput] = None,
    ) -> ValidationResult:
        """
        Check structured data against field declarations (default: title, authors, year).

        Raises:
            InputValidationError: data is not an object or a declaration is malformed
        """
        if not isinstance(data, Mapping):
            raise InputValidationError(["data: must be an object"])
        validation_context = self.build_context(context) if context is not None else None

        declarations = None
        if checks is not None:
            declarations = []
            try:
                for check in checks:
                    if isinstance(check, DataConsistencyCheck):
                        declarations.append(check)
                    else:
                        declarations.extend(parse_checks([check]))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                raise InputValidationError([f"checks: {e}"]) from e
        return self.data_checker.check(data, declarations, validation_context)

    def compare_documents(self, document_a: str, document_b: str, comparison_type: str = "full") -> ComparisonResult:
        return self.comparator.compare(document_a, document_b, comparison_type)

    # ------------------------------------------------------------------
    # Rules and sources
    # ------------------------------------------------------------------

    def list_rules(self) -> List[RuleDescriptor]:
        return self.registry.list_rules()

    def enable_rule(self, rule_id: str) -> RuleDescriptor:
        return self.registry.enable(rule_id)

    def disable_rule(self, rule_id: str) -> RuleDescriptor:
        return self.registry.disable(rule_id)

    def register_source(
        self,
        source_id: str,
        title: str,
        text: str,
        authors: Sequence[str] = (),
        url: Optional[str] = None,
    ) -> KnownSource:
        """
        Add a known source to the in-memory plagiarism index.

        Raises:
            InputValidationError: Empty text, or the index does not accept sources
        """
        if not text or not text.strip():
            raise InputValidationError(["text: must not be empty"])
        if not hasattr(self.source_index, "add_source"):
            raise InputValidationError(["The configured source index does not accept new sources"])
        source = KnownSource(source_id=source_id, title=title, text=text, authors=tuple(authors), url=url)
        self.source_index.add_source(source)
        return source

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def health(self) -> Dict[str, Any]:
        return {
            "rules": len(self.registry),
            "enabled_rules": len(self.registry.enabled_rules()),
            "known_sources": len(self.source_index) if hasattr(self.source_index, "__len__") else None,
            "checks": self.orchestrator.stats(),
            "governor": self.governor.snapshot(),
        }

    async def close(self) -> None:
        await self.orchestrator.shutdown()
        if self.client_factory is not None:
            await self.client_factory.close_all()


# Global singleton instance
_integrity_engine: Optional[IntegrityEngine] = None


def get_integrity_engine() -> IntegrityEngine:
    """
    Get the global integrity engine instance.

    Returns:
        Singleton IntegrityEngine wired to the global client factory
    """
    global _integrity_engine
    if _integrity_engine is None:
        _integrity_engine = IntegrityEngine(client_factory=get_client_factory())
    return _integrity_engine
