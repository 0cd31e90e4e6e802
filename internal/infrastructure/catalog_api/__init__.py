"""
Upstream catalog API package.
"""
from .client import AdminResource, CatalogApiClient, CatalogApiError, CatalogList
from .source import ApiCatalogSource

__all__ = [
    "AdminResource",
    "CatalogApiClient",
    "CatalogApiError",
    "CatalogList",
    "ApiCatalogSource",
]
