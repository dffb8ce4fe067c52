"""
Base client for bibliographic lookup APIs.

This module provides an abstract base class for the HTTP collaborators used by
citation validation (DOI resolution, Crossref, OpenAlex), establishing a
consistent interface and shared functionality.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional
import re
import httpx
import logging
import Levenshtein

from integrity_engine.core.config import settings
from integrity_engine.core.error_handling import ClientConfigurationError
from integrity_engine.core.http_client import get_async_client, get_managed_client, request_with_retry

logger = logging.getLogger(__name__)


def _normalize_title(title: str) -> str:
    return re.sub(r'[^a-z0-9]+', ' ', title.lower()).strip()


def best_title_match(title: str, candidates: Iterable[str]) -> float:
    """Highest Levenshtein ratio between a title and candidate titles (0.0 to 1.0)."""
    wanted = _normalize_title(title)
    if not wanted:
        return 0.0
    return max(
        (Levenshtein.ratio(wanted, _normalize_title(c)) for c in candidates if c),
        default=0.0,
    )


class BaseLookupClient(ABC):
    """Abstract base class for all lookup clients.

    Provides common functionality for API clients including:
    - HTTP client management with connection pooling
    - Async context manager support
    - Endpoint validation
    - Health check interface

    Subclasses must implement:
    - health_check(): Check if API is accessible

    Lookup clients never decide what happens on failure. They raise, and the
    resource governor turns the failure into an inconclusive outcome.
    """

    def __init__(self, endpoint: str, timeout: Optional[float] = None):
        """Initialize the lookup client.

        Args:
            endpoint: Base URL of the API
            timeout: Request timeout in seconds (default: HTTP_CLIENT_TIMEOUT)

        Raises:
            ClientConfigurationError: If the endpoint is not an http(s) URL
        """
        self.endpoint = (endpoint or "").rstrip("/")
        self.timeout = timeout or settings.HTTP_CLIENT_TIMEOUT
        self._client: Optional[httpx.AsyncClient] = None

        self._validate_configuration()

        logger.info(f"Initialized {self.__class__.__name__} for {self.endpoint} with timeout={self.timeout}s")

    def _validate_configuration(self) -> None:
        """Check that the endpoint is usable.

        Raises:
            ClientConfigurationError: If the endpoint is missing or not http(s)
        """
        if not self.endpoint.startswith(("http://", "https://")):
            raise ClientConfigurationError(
                f"{self.__class__.__name__} endpoint must be an http(s) URL, got '{self.endpoint}'"
            )

    async def __aenter__(self):
        """Async context manager entry.

        Example:
            async with CrossrefClient() as client:
                verified = await client.verify(citation)
        """
        if self._client is None:
            self._client = get_async_client(timeout=self.timeout)
        logger.debug(f"{self.__class__.__name__} context manager entered")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        logger.debug(f"{self.__class__.__name__} context manager exited")

    async def close(self):
        """Close the HTTP client and release resources.

        Safe to call multiple times.
        """
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.debug(f"{self.__class__.__name__} HTTP client closed")

    def open(self) -> None:
        """Create a persistent HTTP client reused across lookups."""
        if self._client is None:
            self._client = get_async_client(timeout=self.timeout)

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Issue a request against the endpoint with the shared retry policy."""
        url = f"{self.endpoint}/{path.lstrip('/')}"
        async with get_managed_client(self._client, self.timeout) as client:
            return await request_with_retry(client, method, url, params=params)

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the API is accessible and responding.

        Returns:
            True if API is healthy, False otherwise

        Note:
            Should not raise exceptions - return False on any error
        """
        pass

    def __repr__(self) -> str:
        """String representation of the client."""
        return (
            f"{self.__class__.__name__}("
            f"endpoint={self.endpoint}, "
            f"timeout={self.timeout}s"
            ")"
        )
