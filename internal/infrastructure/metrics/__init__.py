"""
Metrics package.
"""
from .prometheus import (
    ACTIVE_SESSIONS,
    CART_OPERATIONS,
    CATALOG_CACHE_LOOKUPS,
    CATALOG_REFRESH_TOTAL,
    CATALOG_STALE_SNAPSHOTS,
    CATALOG_UPSTREAM_DURATION,
    CATALOG_UPSTREAM_REQUESTS,
    HTTP_REQUEST_DURATION,
    HTTP_REQUESTS_TOTAL,
    PRESET_APPLICATIONS,
)

__all__ = [
    "ACTIVE_SESSIONS",
    "CART_OPERATIONS",
    "CATALOG_CACHE_LOOKUPS",
    "CATALOG_REFRESH_TOTAL",
    "CATALOG_STALE_SNAPSHOTS",
    "CATALOG_UPSTREAM_DURATION",
    "CATALOG_UPSTREAM_REQUESTS",
    "HTTP_REQUEST_DURATION",
    "HTTP_REQUESTS_TOTAL",
    "PRESET_APPLICATIONS",
]
