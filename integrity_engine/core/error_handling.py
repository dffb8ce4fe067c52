"""
Error handling utilities for integrity validation operations.

This module provides custom exceptions and decorators for consistent error handling
across the application.
"""
import asyncio
import logging
import time
import uuid
from typing import Callable, List, Optional, TypeVar, ParamSpec
from functools import wraps
from contextvars import ContextVar

from fastapi import HTTPException

logger = logging.getLogger(__name__)

# Context variable for request ID tracking across async contexts
request_id_var: ContextVar[str] = ContextVar('request_id', default='')
# Set inside background check tasks so rule logs can be correlated with a check
check_id_var: ContextVar[str] = ContextVar('check_id', default='')

# Type variables for generic function signatures
P = ParamSpec('P')
T = TypeVar('T')


# ============================================================================
# Custom Exceptions
# ============================================================================

class IntegrityEngineError(Exception):
    """Base exception for integrity engine errors."""
    pass


class InputValidationError(IntegrityEngineError):
    """Input failed schema validation."""

    def __init__(self, errors: List[str], message: Optional[str] = None):
        self.errors = list(errors)
        super().__init__(message or "; ".join(self.errors) or "Invalid input")


class CheckNotFoundError(IntegrityEngineError):
    """No integrity check exists for the given id."""
    pass


class CheckStateError(IntegrityEngineError):
    """Illegal integrity check state transition."""
    pass


class RuleNotFoundError(IntegrityEngineError):
    """No validation rule is registered under the given id."""
    pass


class ReportFormatError(IntegrityEngineError):
    """Report cannot be rendered in the requested format."""
    pass


class UnknownToolError(IntegrityEngineError):
    """No tool is registered under the given name."""
    pass


class ClientConfigurationError(IntegrityEngineError):
    """Client not properly configured."""
    pass


class ExternalServiceError(IntegrityEngineError):
    """External verification service returned an unusable response."""
    pass


# ============================================================================
# Error Handler Decorator
# ============================================================================

def _to_http_exception(
    exc: Exception,
    error_message: str,
    request_id: str,
    elapsed: float,
    func_name: str
) -> HTTPException:
    """Map an exception to the HTTPException returned to API callers."""
    headers = {"X-Request-ID": request_id}

    if isinstance(exc, InputValidationError):
        logger.error(f"[{request_id}] {error_message} - Validation error after {elapsed:.2f}s: {exc}")
        return HTTPException(
            status_code=400,
            detail={"message": "Input validation failed", "errors": exc.errors},
            headers=headers
        )
    if isinstance(exc, (CheckNotFoundError, RuleNotFoundError, UnknownToolError)):
        logger.error(f"[{request_id}] {error_message} - Not found after {elapsed:.2f}s: {exc}")
        return HTTPException(status_code=404, detail=str(exc), headers=headers)
    if isinstance(exc, CheckStateError):
        logger.error(f"[{request_id}] {error_message} - State error after {elapsed:.2f}s: {exc}")
        return HTTPException(status_code=409, detail=str(exc), headers=headers)
    if isinstance(exc, ClientConfigurationError):
        logger.error(f"[{request_id}] {error_message} - Configuration error after {elapsed:.2f}s: {exc}")
        return HTTPException(
            status_code=500,
            detail=f"Service configuration error: {str(exc)}",
            headers=headers
        )
    if isinstance(exc, (IntegrityEngineError, ValueError)):
        logger.error(f"[{request_id}] {error_message} - Invalid request after {elapsed:.2f}s: {exc}")
        return HTTPException(status_code=400, detail=f"Invalid input: {str(exc)}", headers=headers)

    logger.exception(f"[{request_id}] {error_message} - Unexpected error in {func_name} after {elapsed:.2f}s: {exc}")
    return HTTPException(status_code=500, detail=f"{error_message}: {str(exc)}", headers=headers)


def _log_completion(request_id: str, func_name: str, elapsed: float) -> None:
    """Log completion with warning if response time exceeds threshold."""
    from integrity_engine.core.config import settings
    threshold_ms = settings.RESPONSE_TIME_WARNING_THRESHOLD_MS
    elapsed_ms = elapsed * 1000
    if elapsed_ms > threshold_ms:
        logger.warning(
            f"[{request_id}] SLOW RESPONSE: {func_name} took {elapsed:.2f}s "
            f"({elapsed_ms:.0f}ms > {threshold_ms}ms threshold)"
        )
    else:
        logger.info(f"[{request_id}] Completed {func_name} in {elapsed:.2f}s")


def handle_integrity_errors(
    error_message: str = "Operation failed"
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """
    Decorator to handle errors in integrity endpoints.

    Automatically converts engine errors to appropriate HTTP exceptions
    and logs them. Works with both sync and async functions.
    HTTPExceptions raised by the wrapped function pass through unchanged.

    Args:
        error_message: Custom error message prefix

    Returns:
        Decorated function with error handling

    Example:
        @handle_integrity_errors("Failed to submit integrity check")
        async def submit_check(request: ValidateDocumentRequest) -> dict:
            ...
    """
    def decorator(func: Callable[P, T]) -> Callable[P, T]:

        @wraps(func)
        async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            """Async wrapper for error handling with request tracking and timing."""
            if not request_id_var.get():
                request_id_var.set(str(uuid.uuid4()))

            request_id = request_id_var.get()
            start_time = time.time()

            try:
                logger.info(f"[{request_id}] Starting {func.__name__}")
                result = await func(*args, **kwargs)
                _log_completion(request_id, func.__name__, time.time() - start_time)
                return result
            except HTTPException:
                raise
            except Exception as e:
                raise _to_http_exception(
                    e, error_message, request_id, time.time() - start_time, func.__name__
                ) from e

        @wraps(func)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            """Sync wrapper for error handling with request tracking and timing."""
            if not request_id_var.get():
                request_id_var.set(str(uuid.uuid4()))

            request_id = request_id_var.get()
            start_time = time.time()

            try:
                logger.info(f"[{request_id}] Starting {func.__name__}")
                result = func(*args, **kwargs)
                _log_completion(request_id, func.__name__, time.time() - start_time)
                return result
            except HTTPException:
                raise
            except Exception as e:
                raise _to_http_exception(
                    e, error_message, request_id, time.time() - start_time, func.__name__
                ) from e

        # Return appropriate wrapper based on function type
        if asyncio.iscoroutinefunction(func):
            return async_wrapper  # type: ignore
        else:
            return sync_wrapper  # type: ignore

    return decorator
