"""
DOI resolution against the doi.org handle proxy.
"""
import logging
from typing import Optional
from urllib.parse import quote

import httpx

from integrity_engine.core.config import settings
from integrity_engine.core.error_handling import ExternalServiceError
from integrity_engine.services.clients.base_client import BaseLookupClient

logger = logging.getLogger(__name__)


class DoiResolverClient(BaseLookupClient):
    """Checks that a DOI is registered.

    The proxy answers a registered DOI with a redirect to the publisher and an
    unknown DOI with 404. Redirects are not followed.
    """

    def __init__(self, endpoint: Optional[str] = None, timeout: Optional[float] = None):
        super().__init__(endpoint or settings.DOI_RESOLVER_URL, timeout)

    async def resolve(self, doi: str) -> bool:
        """
        Resolve a DOI.

        Returns:
            True if the DOI is registered, False if the proxy does not know it

        Raises:
            ExternalServiceError: Unexpected status from the proxy
            httpx.HTTPError: Network failure after retries
        """
        response = await self._request("HEAD", quote(doi, safe="/:;()._-"))
        if response.status_code < 400:
            return True
        if response.status_code == 404:
            logger.debug(f"DOI not registered: {doi}")
            return False
        raise ExternalServiceError(f"DOI resolver returned status {response.status_code} for {doi}")

    async def health_check(self) -> bool:
        try:
            response = await self._request("HEAD", "")
            return response.status_code < 500
        except httpx.HTTPError as e:
            logger.warning(f"DOI resolver health check failed: {e}")
            return False
