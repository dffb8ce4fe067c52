"""
HTTP plumbing shared by the citation lookup clients.

One configured AsyncClient per lookup service, plus a request helper that
retries transient failures (connection errors, 429 and 5xx) with
exponential backoff. Lookups are best effort, so the retry budget is small.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Iterable, Optional

import httpx

from integrity_engine.core.config import settings
from integrity_engine.core.error_handling import request_id_var

logger = logging.getLogger(__name__)

# Upper bound for a server supplied Retry-After, in seconds
MAX_RETRY_AFTER_SECONDS = 10.0


def get_async_client(timeout: Optional[float] = None) -> httpx.AsyncClient:
    """AsyncClient with the service's pool limits and User-Agent."""
    return httpx.AsyncClient(
        timeout=timeout or settings.HTTP_CLIENT_TIMEOUT,
        limits=httpx.Limits(
            max_keepalive_connections=settings.HTTP_MAX_KEEPALIVE_CONNECTIONS,
            max_connections=settings.HTTP_MAX_CONNECTIONS,
        ),
        headers={"User-Agent": settings.HTTP_USER_AGENT},
        # DOI resolution inspects the redirect itself
        follow_redirects=False,
    )


def _backoff_delay(attempt: int, response: Optional[httpx.Response] = None) -> float:
    retry_after = response.headers.get("Retry-After", "") if response is not None else ""
    # Only the delta-seconds form is honored
    if retry_after.strip().replace(".", "", 1).isdigit():
        return min(float(retry_after), MAX_RETRY_AFTER_SECONDS)
    return settings.HTTP_RETRY_BACKOFF_SECONDS * (2 ** (attempt - 1))


def _outgoing_headers(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    merged = dict(headers or {})
    req_id = request_id_var.get()
    if req_id and "X-Request-ID" not in merged:
        merged["X-Request-ID"] = req_id
    return merged


async def request_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
    json: Any = None,
    timeout: Optional[float] = None,
    retry_statuses: Iterable[int] | None = None,
    max_attempts: Optional[int] = None,
) -> httpx.Response:
    """
    Send a request, retrying transient failures.

    A response whose status is not retryable is returned as is, including
    4xx; the caller decides what a 404 means. When the last attempt still
    gets a retryable status, that response is returned. When the last
    attempt raises, the httpx error propagates.
    """
    attempts = max(1, max_attempts or settings.HTTP_RETRY_ATTEMPTS)
    retryable = frozenset(retry_statuses or settings.HTTP_RETRY_STATUSES)
    request_headers = _outgoing_headers(headers)

    attempt = 0
    while True:
        attempt += 1
        try:
            response = await client.request(
                method,
                url,
                headers=request_headers,
                params=params,
                json=json,
                timeout=timeout or settings.HTTP_CLIENT_TIMEOUT,
            )
        except httpx.HTTPError as exc:
            if attempt >= attempts:
                logger.error(f"{method} {url} failed after {attempts} attempts: {exc}")
                raise
            delay = _backoff_delay(attempt)
            logger.warning(f"{method} {url} attempt {attempt}/{attempts} raised {exc!r}, retrying in {delay:.2f}s")
            await asyncio.sleep(delay)
            continue

        if response.status_code not in retryable or attempt >= attempts:
            return response

        delay = _backoff_delay(attempt, response)
        logger.warning(
            f"{method} {url} attempt {attempt}/{attempts} got {response.status_code}, retrying in {delay:.2f}s"
        )
        await asyncio.sleep(delay)


@asynccontextmanager
async def get_managed_client(
    persistent_client: Optional[httpx.AsyncClient] = None,
    timeout: Optional[float] = None
):
    """
    Yield the persistent client when there is one, else a throwaway client
    that is closed on exit.
    """
    if persistent_client is not None:
        yield persistent_client
        return
    async with get_async_client(timeout=timeout) as client:
        yield client
