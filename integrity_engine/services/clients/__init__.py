"""
Bibliographic lookup clients.

This package provides the base class and HTTP implementations of the
external collaborators used by citation validation.
"""
from .base_client import BaseLookupClient, best_title_match
from .doi_resolver import DoiResolverClient
from .crossref_client import CrossrefClient
from .openalex_client import OpenAlexClient

__all__ = ["BaseLookupClient", "CrossrefClient", "DoiResolverClient", "OpenAlexClient", "best_title_match"]
