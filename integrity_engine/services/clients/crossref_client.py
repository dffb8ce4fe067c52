"""
Crossref REST API client for bibliographic verification.
"""
import logging
from typing import Any, List, Mapping, Optional
from urllib.parse import quote

import httpx

from integrity_engine.core.config import settings
from integrity_engine.core.error_handling import ExternalServiceError
from integrity_engine.services.analysis.citation_validator import is_valid_doi, normalize_doi
from integrity_engine.services.clients.base_client import BaseLookupClient, best_title_match

logger = logging.getLogger(__name__)


class CrossrefClient(BaseLookupClient):
    """Verifies citations against Crossref works metadata.

    A citation with a DOI is looked up directly; otherwise a bibliographic
    query on the title is issued and the best returned title must reach
    TITLE_MATCH_THRESHOLD.
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
        title_threshold: Optional[float] = None,
    ):
        super().__init__(endpoint or settings.CROSSREF_API_URL, timeout)
        self.title_threshold = title_threshold if title_threshold is not None else settings.TITLE_MATCH_THRESHOLD

    async def verify(self, citation: Mapping[str, Any]) -> bool:
        """
        Check that the cited work exists in Crossref.

        Raises:
            ExternalServiceError: Unexpected status or malformed payload
            httpx.HTTPError: Network failure after retries
        """
        doi = normalize_doi(citation.get("doi"))
        if doi and is_valid_doi(doi):
            response = await self._request("GET", f"works/{quote(doi, safe='/:;()._-')}")
            if response.status_code == 404:
                return False
            self._raise_for_status(response)
            return True

        title = str(citation.get("title") or "").strip()
        if not title:
            return False

        response = await self._request(
            "GET", "works", params={"query.bibliographic": title, "rows": 5, "select": "title,DOI"}
        )
        self._raise_for_status(response)
        titles = self._titles(response)
        score = best_title_match(title, titles)
        logger.debug(f"Crossref best title match {score:.2f} for '{title[:60]}'")
        return score >= self.title_threshold

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.status_code >= 400:
            raise ExternalServiceError(f"Crossref returned status {response.status_code}")

    @staticmethod
    def _titles(response: httpx.Response) -> List[str]:
        try:
            items = response.json()["message"]["items"]
        except (ValueError, KeyError, TypeError) as e:
            raise ExternalServiceError(f"Malformed Crossref response: {e}") from e
        titles = []
        for item in items:
            for title in item.get("title") or []:
                titles.append(str(title))
        return titles

    async def health_check(self) -> bool:
        try:
            response = await self._request("GET", "works", params={"rows": 0})
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning(f"Crossref health check failed: {e}")
            return False
