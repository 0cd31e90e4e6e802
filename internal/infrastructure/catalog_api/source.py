"""
Catalog source backed by the upstream API and the optional Redis cache.
"""
import asyncio
from typing import Any, Optional

import httpx

from internal.infrastructure.catalog_api.client import (
    CatalogApiClient,
    CatalogApiError,
    CatalogList,
)
from internal.infrastructure.catalog_api.payloads import (
    parse_categories,
    parse_coefficients,
    parse_presets,
    parse_products,
    parse_services,
)
from internal.infrastructure.redis.cache import CatalogCache
from internal.usecase.catalog_store import CatalogData
from pkg.logger.logger import get_logger


logger = get_logger(__name__)


class ApiCatalogSource:
    """
    Loads all catalog lists concurrently.

    Coefficients sit behind an admin endpoint; if they cannot be fetched
    the catalog still loads with no coefficients, which prices services
    at the default multiplier.
    """

    def __init__(self, client: CatalogApiClient, cache: Optional[CatalogCache] = None) -> None:
        """
        Initialize the source.

        Args:
            client: Upstream API client.
            cache: Optional cache-aside layer for raw list bodies.
        """
        self._client = client
        self._cache = cache

    async def _fetch(self, kind: CatalogList, force: bool) -> Any:
        if self._cache is not None and not force:
            cached = await self._cache.get_list(kind.value)
            if cached is not None:
                return cached

        body = await self._client.fetch_list(kind)

        if self._cache is not None and body is not None:
            await self._cache.set_list(kind.value, body)
        return body

    async def _fetch_coefficients(self, force: bool) -> Any:
        try:
            return await self._fetch(CatalogList.COEFFICIENTS, force)
        except (CatalogApiError, httpx.HTTPError) as e:
            logger.warning(
                "Coefficients unavailable, services priced without coefficient",
                error=str(e),
            )
            return []

    async def load_catalog(self, force: bool = False) -> CatalogData:
        """
        Fetch and validate every catalog list.

        Args:
            force: Skip cached bodies and drop the cache first.

        Returns:
            The validated flat lists.
        """
        if force and self._cache is not None:
            await self._cache.invalidate_all()

        categories, products, services, presets, coefficients = await asyncio.gather(
            self._fetch(CatalogList.CATEGORIES, force),
            self._fetch(CatalogList.PRODUCTS, force),
            self._fetch(CatalogList.SERVICES, force),
            self._fetch(CatalogList.PRESETS, force),
            self._fetch_coefficients(force),
        )

        data = CatalogData(
            categories=parse_categories(categories),
            products=parse_products(products),
            services=parse_services(services),
            presets=parse_presets(presets),
            coefficients=parse_coefficients(coefficients),
        )
        logger.info(
            "Catalog loaded",
            categories=len(data.categories),
            products=len(data.products),
            services=len(data.services),
            presets=len(data.presets),
            coefficients=len(data.coefficients),
        )
        return data
