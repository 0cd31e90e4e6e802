"""
Catalog REST API client.

Async httpx client for the upstream catalog (categories, products,
services, presets, coefficients) and its admin mutation endpoints. Every
call goes through a circuit breaker; 5xx responses and transport errors
count as failures, 4xx responses do not.
"""
import time
from enum import Enum
from typing import Any, Optional

import httpx

from internal.domain.catalog import Coefficient, Preset, Product, Service
from internal.domain.category import Category
from internal.domain.errors import CatalogUnavailableError
from internal.infrastructure.catalog_api.payloads import (
    CategoryPayload,
    PresetPayload,
    ProductPayload,
    parse_categories,
    parse_coefficients,
    parse_one,
    parse_presets,
    parse_products,
    parse_services,
)
from internal.infrastructure.metrics import (
    CATALOG_UPSTREAM_DURATION,
    CATALOG_UPSTREAM_REQUESTS,
)
from pkg.logger.logger import get_logger, get_request_id
from pkg.resilience.circuit_breaker import CircuitBreaker, CircuitBreakerError


logger = get_logger(__name__)


DEFAULT_TIMEOUT = 10.0


class CatalogApiError(Exception):
    """Upstream responded with a non-2xx status."""

    def __init__(self, status_code: int, message: str) -> None:
        """
        Initialize catalog API error.

        Args:
            status_code: Upstream HTTP status.
            message: Upstream error message or raw body.
        """
        self.status_code = status_code
        self.message = message
        super().__init__(f"Catalog API error {status_code}: {message}")


class CatalogList(str, Enum):
    """Catalog lists the configurator loads, mapped to their endpoints."""

    CATEGORIES = "categories"
    PRODUCTS = "products"
    SERVICES = "services"
    PRESETS = "presets"
    COEFFICIENTS = "coefficients"


_LIST_ENDPOINTS: dict[CatalogList, tuple[str, bool]] = {
    CatalogList.CATEGORIES: ("/category", False),
    CatalogList.PRODUCTS: ("/product", False),
    CatalogList.SERVICES: ("/services", False),
    CatalogList.PRESETS: ("/presets/detailed", False),
    CatalogList.COEFFICIENTS: ("/admin/coefficients", True),
}


class AdminResource(str, Enum):
    """Admin-mutable resources and their path segment under /admin."""

    CATEGORY = "category"
    PRODUCT = "product"
    SERVICE = "services"
    PRESET = "presets"


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.text or f"HTTP {response.status_code}"


class CatalogApiClient:
    """
    Client for the upstream catalog API.

    Usage:
        async with CatalogApiClient(base_url) as client:
            categories = await client.get_all_categories()
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: API root, e.g. https://dev.api.inspireforge.ru/api.
            token: Bearer token for /admin endpoints.
            timeout: Per-request timeout in seconds.
            breaker: Circuit breaker guarding the upstream.
            transport: Optional httpx transport (tests use MockTransport).
        """
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._breaker = breaker or CircuitBreaker(name="catalog-api")
        self._http = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def __aenter__(self) -> "CatalogApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._http.aclose()
        logger.info("Catalog API client closed")

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    async def _send(
        self,
        method: str,
        path: str,
        resource: str,
        json: Any = None,
        auth: bool = False,
    ) -> httpx.Response:
        headers: dict[str, str] = {}
        if auth and self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        request_id = get_request_id()
        if request_id:
            headers["X-Request-ID"] = request_id

        logger.debug("Catalog API request", method=method, path=path)
        started = time.perf_counter()
        try:
            response = await self._http.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as e:
            CATALOG_UPSTREAM_REQUESTS.labels(method=method, resource=resource, status="error").inc()
            logger.error("Catalog API request failed", method=method, path=path, error=str(e))
            raise
        finally:
            CATALOG_UPSTREAM_DURATION.labels(resource=resource).observe(time.perf_counter() - started)

        CATALOG_UPSTREAM_REQUESTS.labels(
            method=method, resource=resource, status=str(response.status_code)
        ).inc()
        if response.status_code >= 500:
            raise CatalogApiError(response.status_code, _error_message(response))
        return response

    async def _request(
        self,
        method: str,
        path: str,
        resource: str,
        json: Any = None,
        auth: bool = False,
    ) -> Any:
        """
        Send a request through the circuit breaker and decode the body.

        Returns:
            Decoded JSON, raw text for non-JSON bodies, None for empty bodies.

        Raises:
            CatalogUnavailableError: If the circuit is open.
            CatalogApiError: On non-2xx responses.
            httpx.HTTPError: On transport failures.
        """
        try:
            response = await self._breaker.call(
                self._send, method, path, resource, json=json, auth=auth
            )
        except CircuitBreakerError as e:
            CATALOG_UPSTREAM_REQUESTS.labels(method=method, resource=resource, status="rejected").inc()
            raise CatalogUnavailableError(e.message) from e

        if response.is_error:
            message = _error_message(response)
            logger.warning(
                "Catalog API returned an error",
                method=method,
                path=path,
                status_code=response.status_code,
                error=message,
            )
            raise CatalogApiError(response.status_code, message)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    async def fetch_list(self, kind: CatalogList) -> Any:
        """
        Fetch the raw body of one catalog list endpoint.

        Args:
            kind: Which list to fetch.

        Returns:
            Decoded JSON body, not yet validated.
        """
        path, auth = _LIST_ENDPOINTS[kind]
        return await self._request("GET", path, kind.value, auth=auth)

    async def get_all_categories(self) -> list[Category]:
        return parse_categories(await self.fetch_list(CatalogList.CATEGORIES))

    async def get_category(self, category_id: int) -> Category:
        body = await self._request("GET", f"/category/{category_id}", "category")
        return parse_one(body, CategoryPayload)

    async def get_all_products(self) -> list[Product]:
        return parse_products(await self.fetch_list(CatalogList.PRODUCTS))

    async def get_product(self, product_id: int) -> Product:
        body = await self._request("GET", f"/product/{product_id}", "product")
        return parse_one(body, ProductPayload)

    async def get_products_by_category(self, category_id: int) -> list[Product]:
        body = await self._request("GET", f"/product/category/{category_id}", "product")
        return parse_products(body)

    async def get_all_services(self) -> list[Service]:
        return parse_services(await self.fetch_list(CatalogList.SERVICES))

    async def get_all_presets_detailed(self) -> list[Preset]:
        return parse_presets(await self.fetch_list(CatalogList.PRESETS))

    async def get_preset(self, preset_id: int) -> Preset:
        body = await self._request("GET", f"/presets/{preset_id}", "preset")
        return parse_one(body, PresetPayload)

    async def get_all_coefficients(self) -> list[Coefficient]:
        return parse_coefficients(await self.fetch_list(CatalogList.COEFFICIENTS))

    async def create(self, resource: AdminResource, payload: dict) -> Any:
        """
        Create an entity through the admin API.

        Args:
            resource: Which resource to create.
            payload: Request body.

        Returns:
            Decoded upstream response.
        """
        logger.info("Creating catalog entity", resource=resource.value)
        return await self._request(
            "POST", f"/admin/{resource.value}", resource.value, json=payload, auth=True
        )

    async def update(self, resource: AdminResource, entity_id: int, payload: dict) -> Any:
        logger.info("Updating catalog entity", resource=resource.value, entity_id=entity_id)
        return await self._request(
            "PUT", f"/admin/{resource.value}/{entity_id}", resource.value, json=payload, auth=True
        )

    async def delete(self, resource: AdminResource, entity_id: int) -> None:
        logger.info("Deleting catalog entity", resource=resource.value, entity_id=entity_id)
        await self._request(
            "DELETE", f"/admin/{resource.value}/{entity_id}", resource.value, auth=True
        )
