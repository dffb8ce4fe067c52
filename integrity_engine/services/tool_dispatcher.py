"""
Tool dispatch for agent clients.

Each tool declares its arguments with the declarative schema understood by
ResourceGovernor.validate_input. Arguments are validated before the
tool runs. Handlers get the validated copy: strings
trimmed, never HTML-escaped.
"""
import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from integrity_engine.core.constants import REPORT_FORMATS
from integrity_engine.core.error_handling import CheckNotFoundError, InputValidationError, UnknownToolError
from integrity_engine.models.integrity_models import CheckType
from integrity_engine.services.analysis import COMPARISON_TYPES
from integrity_engine.services.integrity_engine import IntegrityEngine, get_integrity_engine

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Dict[str, Any]], Awaitable[Any]]

_STYLES = ["apa", "mla", "chicago", "harvard", "ieee"]
_LEVELS = ["undergraduate", "graduate", "doctoral", "professional"]
_MAX_CONTENT = 500_000

_CONTEXT_PROPERTIES = {
    "document_id": {"type": "string", "minLength": 1, "maxLength": 200},
    "discipline": {"type": "string", "maxLength": 100},
    "paradigm": {"type": "string", "maxLength": 100},
    "citation_style": {"type": "string", "enum": _STYLES},
    "academic_level": {"type": "string", "enum": _LEVELS},
}


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    input_schema: Dict[str, Any]
    handler: ToolHandler

    def describe(self) -> Dict[str, Any]:
        return {"name": self.name, "description": self.description, "inputSchema": self.input_schema}


class ToolDispatcher:
    """Routes tool calls to the integrity engine."""

    def __init__(self, engine: IntegrityEngine):
        self.engine = engine
        self._tools: Dict[str, ToolDefinition] = {}
        self._register_tools()

    def _register(self, name: str, description: str, properties: Dict[str, Any], required: List[str], handler: ToolHandler):
        schema = {"type": "object", "properties": properties, "required": required}
        self._tools[name] = ToolDefinition(name, description, schema, handler)

    def _register_tools(self) -> None:
        self._register(
            "validate_academic_integrity",
            "Comprehensive academic integrity validation (runs in the background)",
            {
                "document_content": {"type": "string", "minLength": 1, "maxLength": _MAX_CONTENT},
                "check_plagiarism": {"type": "boolean"},
                "validate_citations": {"type": "boolean"},
                "citations": {"type": "array", "items": {"type": "object"}},
                "check_type": {"type": "string", "enum": [t.value for t in CheckType]},
                **_CONTEXT_PROPERTIES,
            },
            ["document_content"],
            self._validate_academic_integrity,
        )
        self._register(
            "quick_integrity_score",
            "Fast heuristic integrity estimate",
            {"content": {"type": "string", "minLength": 1, "maxLength": _MAX_CONTENT}},
            ["content"],
            self._quick_integrity_score,
        )
        self._register(
            "detect_plagiarism",
            "Compare text against the known-source index",
            {"content": {"type": "string", "minLength": 1, "maxLength": _MAX_CONTENT}, **_CONTEXT_PROPERTIES},
            ["content"],
            self._detect_plagiarism,
        )
        self._register(
            "validate_citations",
            "Validate citation completeness, DOIs and formatting",
            {
                "citations": {"type": "array", "items": {"type": "object"}},
                "verify_doi": {"type": "boolean"},
                "verify_sources": {"type": "boolean"},
                **_CONTEXT_PROPERTIES,
            },
            ["citations"],
            self._validate_citations,
        )
        self._register(
            "validate_data_consistency",
            "Check structured data fields against declarations",
            {
                "data": {"type": "object"},
                "checks": {"type": "array", "items": {"type": "object"}},
            },
            ["data"],
            self._validate_data_consistency,
        )
        self._register(
            "get_integrity_results",
            "Status and report of a submitted integrity check",
            {"check_id": {"type": "string", "minLength": 1, "maxLength": 100}},
            ["check_id"],
            self._get_integrity_results,
        )
        self._register(
            "generate_integrity_report",
            "Render the report of a completed integrity check",
            {
                "check_id": {"type": "string", "minLength": 1, "maxLength": 100},
                "format": {"type": "string", "enum": list(REPORT_FORMATS)},
            },
            ["check_id"],
            self._generate_integrity_report,
        )
        self._register(
            "compare_documents",
            "Similarity between two documents",
            {
                "document_a": {"type": "string", "minLength": 1, "maxLength": _MAX_CONTENT},
                "document_b": {"type": "string", "minLength": 1, "maxLength": _MAX_CONTENT},
                "comparison_type": {"type": "string", "enum": list(COMPARISON_TYPES)},
            },
            ["document_a", "document_b"],
            self._compare_documents,
        )

    def list_tools(self) -> List[Dict[str, Any]]:
        return [tool.describe() for tool in self._tools.values()]

    async def dispatch(self, name: str, args: Optional[Dict[str, Any]]) -> Any:
        """
        Validate arguments and run a tool.

        Raises:
            UnknownToolError: No tool with this name
            InputValidationError: Arguments do not match the tool's schema
        """
        tool = self._tools.get(name)
        if tool is None:
            raise UnknownToolError(f"Unknown tool: {name}")

        validation = self.engine.governor.validate_input(tool.input_schema, args if args is not None else {})
        if not validation.is_valid:
            raise InputValidationError(validation.errors, f"Invalid arguments for tool '{name}'")

        logger.info(f"Dispatching tool '{name}'")
        return await tool.handler(validation.validated)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    @staticmethod
    def _context(args: Dict[str, Any], content: str = "", **external_sources: bool) -> Dict[str, Any]:
        document_id = args.get("document_id") or f"doc_{hashlib.md5(content.encode('utf-8')).hexdigest()[:12]}"
        context = {key: args[key] for key in ("discipline", "paradigm", "citation_style", "academic_level") if key in args}
        context["document_id"] = document_id
        if external_sources:
            context["external_sources"] = external_sources
        return context

    async def _validate_academic_integrity(self, args: Dict[str, Any]) -> Dict[str, Any]:
        content = args["document_content"]
        document: Dict[str, Any] = {"text": content}
        if args.get("validate_citations", True) and args.get("citations"):
            document["citations"] = args["citations"]
        context = self._context(args, content, plagiarism_db=args.get("check_plagiarism", True))
        check_id = await self.engine.validate_document(
            document, context, args.get("check_type", CheckType.FULL_INTEGRITY.value)
        )
        check = self.engine.get_integrity_results(check_id)
        return {"check_id": check_id, "status": check.status.value if check else "pending"}

    async def _quick_integrity_score(self, args: Dict[str, Any]) -> Dict[str, Any]:
        return self.engine.get_quick_integrity_score(args["content"]).to_dict()

    async def _detect_plagiarism(self, args: Dict[str, Any]) -> Dict[str, Any]:
        result, detection = await self.engine.detect_plagiarism(args["content"], self._context(args, args["content"]))
        return {"result": result.to_dict(), "detection": detection.to_dict()}

    async def _validate_citations(self, args: Dict[str, Any]) -> Dict[str, Any]:
        verify_sources = args.get("verify_sources", False)
        context = self._context(
            args,
            repr(args["citations"]),
            plagiarism_db=False,
            doi=args.get("verify_doi", False),
            crossref=verify_sources,
            openalex=verify_sources,
        )
        result, citations = await self.engine.validate_citations(args["citations"], context)
        return {"result": result.to_dict(), "citations": [c.to_dict() for c in citations]}

    async def _validate_data_consistency(self, args: Dict[str, Any]) -> Dict[str, Any]:
        result = await self.engine.validate_data_consistency(args["data"], args.get("checks"))
        return {"result": result.to_dict()}

    async def _get_integrity_results(self, args: Dict[str, Any]) -> Dict[str, Any]:
        check = self.engine.get_integrity_results(args["check_id"])
        if check is None:
            raise CheckNotFoundError(f"Integrity check not found: {args['check_id']}")
        return check.to_dict()

    async def _generate_integrity_report(self, args: Dict[str, Any]) -> Any:
        fmt = args.get("format", "json")
        return {"format": fmt, "report": self.engine.generate_integrity_report(args["check_id"], fmt)}

    async def _compare_documents(self, args: Dict[str, Any]) -> Dict[str, Any]:
        result = self.engine.compare_documents(
            args["document_a"], args["document_b"], args.get("comparison_type", "full")
        )
        return result.to_dict()


# Global singleton instance
_tool_dispatcher: Optional[ToolDispatcher] = None


def get_tool_dispatcher() -> ToolDispatcher:
    """
    Get the global tool dispatcher instance.

    Returns:
        Singleton ToolDispatcher bound to the global integrity engine
    """
    global _tool_dispatcher
    if _tool_dispatcher is None:
        _tool_dispatcher = ToolDispatcher(get_integrity_engine())
    return _tool_dispatcher
