"""
Services package for academic integrity validation.

- governor/: rate limits, circuit breakers, caching and input validation
- analysis/: plagiarism, citation, data, methodology and format analyzers
- clients/: HTTP lookup clients for DOI, Crossref and OpenAlex
- rules/: validation rules and the rule registry
- validation_orchestrator.py: background check lifecycle
- report_aggregator.py / report_renderer.py: reports
- integrity_engine.py: IntegrityEngine facade
- tool_dispatcher.py: schema-validated tool calls
"""
from .integrity_engine import IntegrityEngine, get_integrity_engine
from .tool_dispatcher import ToolDispatcher, get_tool_dispatcher

__all__ = [
    'IntegrityEngine',
    'get_integrity_engine',
    'ToolDispatcher',
    'get_tool_dispatcher',
]
