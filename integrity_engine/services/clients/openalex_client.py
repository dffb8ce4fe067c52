"""
OpenAlex API client for bibliographic verification.
"""
import logging
from typing import Any, List, Mapping, Optional

import httpx

from integrity_engine.core.config import settings
from integrity_engine.core.error_handling import ExternalServiceError
from integrity_engine.services.analysis.citation_validator import is_valid_doi, normalize_doi
from integrity_engine.services.clients.base_client import BaseLookupClient, best_title_match

logger = logging.getLogger(__name__)


class OpenAlexClient(BaseLookupClient):
    """Verifies citations against the OpenAlex works index."""

    def __init__(
        self,
        endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
        title_threshold: Optional[float] = None,
    ):
        super().__init__(endpoint or settings.OPENALEX_API_URL, timeout)
        self.title_threshold = title_threshold if title_threshold is not None else settings.TITLE_MATCH_THRESHOLD

    async def verify(self, citation: Mapping[str, Any]) -> bool:
        """
        Check that the cited work exists in OpenAlex.

        Raises:
            ExternalServiceError: Unexpected status or malformed payload
            httpx.HTTPError: Network failure after retries
        """
        doi = normalize_doi(citation.get("doi"))
        if doi and is_valid_doi(doi):
            response = await self._request("GET", "works", params={"filter": f"doi:{doi.lower()}", "per-page": 1})
            self._raise_for_status(response)
            return len(self._results(response)) > 0

        title = str(citation.get("title") or "").strip()
        if not title:
            return False

        response = await self._request("GET", "works", params={"search": title, "per-page": 5})
        self._raise_for_status(response)
        titles = [str(r.get("display_name") or r.get("title") or "") for r in self._results(response)]
        return best_title_match(title, titles) >= self.title_threshold

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.status_code >= 400:
            raise ExternalServiceError(f"OpenAlex returned status {response.status_code}")

    @staticmethod
    def _results(response: httpx.Response) -> List[dict]:
        try:
            results = response.json()["results"]
        except (ValueError, KeyError, TypeError) as e:
            raise ExternalServiceError(f"Malformed OpenAlex response: {e}") from e
        return [r for r in results if isinstance(r, dict)]

    async def health_check(self) -> bool:
        try:
            response = await self._request("GET", "works", params={"per-page": 1})
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning(f"OpenAlex health check failed: {e}")
            return False
