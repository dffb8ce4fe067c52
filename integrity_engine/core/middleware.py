"""
Request correlation middleware.

Every request gets an id, taken from X-Request-ID (or X-Correlation-ID) when
the caller sends a well-formed one. The id is set on `request_id_var` for log
records and error responses, and echoed back in the X-Request-ID header.
"""
import re
import uuid
from typing import Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from integrity_engine.core.error_handling import request_id_var

# Incoming ids end up in log lines; anything else is replaced
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def incoming_request_id(request: Request) -> Optional[str]:
    for header in ("X-Request-ID", "X-Correlation-ID"):
        value = request.headers.get(header)
        if value and _REQUEST_ID_PATTERN.match(value):
            return value
    return None


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind a request id for the duration of each request."""

    async def dispatch(self, request: Request, call_next: Callable):
        request_id = incoming_request_id(request) or str(uuid.uuid4())
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = request_id
        return response
