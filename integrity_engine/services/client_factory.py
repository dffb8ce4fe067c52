"""
Client factory for initializing bibliographic lookup clients.

Centralizes client initialization logic and error handling.
"""
import logging
from typing import Dict, Optional

from integrity_engine.core.constants import SOURCE_CROSSREF, SOURCE_OPENALEX
from integrity_engine.services.clients import CrossrefClient, DoiResolverClient, OpenAlexClient
from integrity_engine.services.clients.base_client import BaseLookupClient

logger = logging.getLogger(__name__)


class ClientFactory:
    """Factory for creating and managing lookup clients."""

    def __init__(self):
        """Initialize the client factory."""
        self._doi_resolver = None
        self._crossref_client = None
        self._openalex_client = None

    @property
    def doi_resolver(self) -> Optional[DoiResolverClient]:
        """
        Get or create the DOI resolver.

        Returns None if initialization fails (e.g., endpoint misconfigured).
        """
        if self._doi_resolver is None:
            try:
                self._doi_resolver = DoiResolverClient()
                logger.info("DOI resolver initialized")
            except Exception as e:
                logger.warning(f"DOI resolver not available: {e}")
                return None
        return self._doi_resolver

    @property
    def crossref_client(self) -> Optional[CrossrefClient]:
        """
        Get or create Crossref client instance.

        Returns None if initialization fails (e.g., endpoint misconfigured).
        """
        if self._crossref_client is None:
            try:
                self._crossref_client = CrossrefClient()
                logger.info("Crossref client initialized")
            except Exception as e:
                logger.warning(f"Crossref client not available: {e}")
                return None
        return self._crossref_client

    @property
    def openalex_client(self) -> Optional[OpenAlexClient]:
        """
        Get or create OpenAlex client instance.

        Returns None if initialization fails (e.g., endpoint misconfigured).
        """
        if self._openalex_client is None:
            try:
                self._openalex_client = OpenAlexClient()
                logger.info("OpenAlex client initialized")
            except Exception as e:
                logger.warning(f"OpenAlex client not available: {e}")
                return None
        return self._openalex_client

    def get_verifiers(self) -> Dict[str, BaseLookupClient]:
        """Bibliographic verifiers keyed by source name; unavailable ones are left out."""
        verifiers = {
            SOURCE_CROSSREF: self.crossref_client,
            SOURCE_OPENALEX: self.openalex_client,
        }
        return {source: client for source, client in verifiers.items() if client is not None}

    async def close_all(self) -> None:
        """Close every client that was created."""
        for client in (self._doi_resolver, self._crossref_client, self._openalex_client):
            if client is not None:
                await client.close()
        logger.info("Lookup clients closed")


# Global singleton instance
_client_factory: Optional[ClientFactory] = None


def get_client_factory() -> ClientFactory:
    """
    Get the global client factory instance.

    Returns:
        Singleton ClientFactory instance
    """
    global _client_factory
    if _client_factory is None:
        _client_factory = ClientFactory()
    return _client_factory
