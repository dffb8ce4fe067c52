"""
Logging setup.

Records carry two correlation ids: request_id (set per HTTP request by the
middleware) and check_id (set inside the background task that runs an
integrity check). A check outlives the request that submitted it, so the
check id is what ties rule and lookup logs to a check.
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from integrity_engine.core.config import settings
from integrity_engine.core.error_handling import check_id_var, request_id_var

# Third-party loggers that are too chatty at INFO
_NOISY_LOGGERS = ("httpx", "httpcore")


class CorrelationFilter(logging.Filter):
    """Copy the current request and check ids onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        record.check_id = check_id_var.get() or "-"
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in ("request_id", "check_id"):
            value = getattr(record, key, "-")
            if value != "-":
                entry[key] = value

        # Structured context passed with extra={"extra_fields": {...}}
        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            entry.update(extra_fields)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def _text_formatter() -> logging.Formatter:
    fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    if settings.LOG_INCLUDE_REQUEST_ID:
        fmt += " - request_id=%(request_id)s check_id=%(check_id)s"
    return logging.Formatter(fmt)


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure the root logger once per process.

    Uses JSON lines when LOG_FORMAT is "json", plain text otherwise. Calling
    it again replaces the previous handler instead of stacking a new one.
    """
    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if settings.LOG_FORMAT.lower() == "json" else _text_formatter())
    handler.addFilter(CorrelationFilter())

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in ("uvicorn.access", "uvicorn.error"):
        logging.getLogger(name).setLevel(log_level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
