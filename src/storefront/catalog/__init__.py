"""Catalog module for storefront.

This module builds the store's view of software entries by joining:
- Descriptive metadata from the metadata server
- Popularity statistics from the operation server
- Local package state reported by the store bridge

The aggregator lives in ``storefront.catalog.aggregator``.
"""

from storefront.catalog.errors import CatalogError, CatalogPayloadError, CatalogTransportError
from storefront.catalog.models import QueryFilter, SoftwareEntry, SoftwareInfo

__all__ = [
    "CatalogError",
    "CatalogPayloadError",
    "CatalogTransportError",
    "QueryFilter",
    "SoftwareEntry",
    "SoftwareInfo",
]
