"""
FastAPI HTTP Handlers for Configurator API v1.

Implements REST endpoints for the catalog and configurator sessions.
"""

from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from internal.domain.errors import (
    CatalogUnavailableError,
    DomainError,
    DomainValidationError,
    EntityNotFoundError,
)
from internal.infrastructure.catalog_api.client import CatalogApiError
from internal.transport.http.dto import (
    AddProductRequest,
    AddServiceRequest,
    CatalogSummaryResponse,
    CategoryTreeResponse,
    CoefficientsResponse,
    ErrorResponse,
    MarketTypeRequest,
    PresetsResponse,
    ProductsResponse,
    SelectCategoryRequest,
    SelectionOptionsResponse,
    ServicesResponse,
    SessionResponse,
    TotalResponse,
    UpdateProductRequest,
    UpdateServiceRequest,
)
from internal.usecase.catalog_store import CatalogStore
from internal.usecase.configurator import ConfiguratorService, ConfiguratorSession
from pkg.logger.logger import get_logger, get_request_id, set_session_id

logger = get_logger(__name__)


router = APIRouter(prefix="/api/v1", tags=["configurator"])
system_router = APIRouter(tags=["system"])


SESSION_ERRORS = {
    404: {"model": ErrorResponse, "description": "Session or catalog entity not found"},
    409: {"model": ErrorResponse, "description": "Selection out of order"},
    503: {"model": ErrorResponse, "description": "Catalog unavailable"},
}


# Dependency injection container (simplified)
class Dependencies:
    """Container for handler dependencies."""

    configurator: Optional[ConfiguratorService] = None
    store: Optional[CatalogStore] = None


_deps = Dependencies()


def get_configurator() -> ConfiguratorService:
    """Get ConfiguratorService instance."""
    if _deps.configurator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized",
        )
    return _deps.configurator


def get_store() -> CatalogStore:
    """Get CatalogStore instance."""
    if _deps.store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized",
        )
    return _deps.store


def set_dependencies(
    configurator: Optional[ConfiguratorService],
    store: Optional[CatalogStore],
) -> None:
    """
    Set handler dependencies.

    Called during application startup.
    """
    _deps.configurator = configurator
    _deps.store = store


async def bind_session(session_id: str) -> str:
    """Put the session ID into the logging context."""
    set_session_id(session_id)
    return session_id


def _http_error(e: DomainError) -> HTTPException:
    if isinstance(e, EntityNotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(e, DomainValidationError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(e, CatalogUnavailableError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        code = status.HTTP_400_BAD_REQUEST
    logger.warning("Request rejected", error=e.message, status_code=code)
    return HTTPException(status_code=code, detail=e.message)


def _session_response(session: ConfiguratorSession) -> SessionResponse:
    return SessionResponse.model_validate(session.to_dict())


# Catalog
@router.get(
    "/catalog/tree",
    response_model=CategoryTreeResponse,
    responses={503: {"model": ErrorResponse, "description": "Catalog unavailable"}},
)
async def get_category_tree(
    store: CatalogStore = Depends(get_store),
) -> CategoryTreeResponse:
    """
    Get the room -> element -> sub-element tree.

    Structural problems (orphans, cycles, too-deep categories, duplicate
    IDs) are reported in `issues`.
    """
    try:
        tree = store.current.tree
    except DomainError as e:
        raise _http_error(e)
    return CategoryTreeResponse.model_validate(tree.to_dict())


@router.post(
    "/catalog/refresh",
    response_model=CatalogSummaryResponse,
    responses={
        502: {"model": ErrorResponse, "description": "Upstream catalog error"},
        503: {"model": ErrorResponse, "description": "Upstream circuit open"},
    },
)
async def refresh_catalog(
    force: bool = Query(False, description="Bypass and invalidate the catalog cache"),
    store: CatalogStore = Depends(get_store),
) -> CatalogSummaryResponse:
    """
    Reload the catalog from the upstream API.

    A refresh that finishes after a newer one is discarded; the response
    always describes the snapshot that is installed afterwards.
    """
    logger.info("Refreshing catalog", force=force)
    try:
        snapshot = await store.refresh(force=force)
    except CatalogApiError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Upstream catalog error {e.status_code}: {e.message}",
        )
    except httpx.HTTPError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Upstream catalog unreachable: {e}",
        )
    except DomainError as e:
        raise _http_error(e)
    return CatalogSummaryResponse.model_validate(snapshot.summary())


@router.get("/catalog/services", response_model=ServicesResponse)
async def list_services(store: CatalogStore = Depends(get_store)) -> ServicesResponse:
    try:
        services = store.current.services
    except DomainError as e:
        raise _http_error(e)
    return ServicesResponse.model_validate({"data": [s.to_dict() for s in services]})


@router.get("/catalog/presets", response_model=PresetsResponse)
async def list_presets(store: CatalogStore = Depends(get_store)) -> PresetsResponse:
    try:
        presets = store.current.presets
    except DomainError as e:
        raise _http_error(e)
    return PresetsResponse.model_validate({"data": [p.to_dict() for p in presets]})


@router.get("/catalog/coefficients", response_model=CoefficientsResponse)
async def list_coefficients(store: CatalogStore = Depends(get_store)) -> CoefficientsResponse:
    try:
        coefficients = store.current.coefficients
    except DomainError as e:
        raise _http_error(e)
    return CoefficientsResponse.model_validate({"data": [c.to_dict() for c in coefficients]})


# Sessions
@router.post(
    "/sessions",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_session(
    service: ConfiguratorService = Depends(get_configurator),
) -> SessionResponse:
    """Start a configurator session with an empty selection and cart."""
    session = service.create_session()
    set_session_id(session.session_id)
    return _session_response(session)


@router.get("/sessions/{session_id}", response_model=SessionResponse, responses=SESSION_ERRORS)
async def get_session(
    session_id: str = Depends(bind_session),
    service: ConfiguratorService = Depends(get_configurator),
) -> SessionResponse:
    try:
        session = service.get_session(session_id)
    except DomainError as e:
        raise _http_error(e)
    return _session_response(session)


@router.delete(
    "/sessions/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=SESSION_ERRORS,
)
async def delete_session(
    session_id: str = Depends(bind_session),
    service: ConfiguratorService = Depends(get_configurator),
) -> Response:
    try:
        service.delete_session(session_id)
    except DomainError as e:
        raise _http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Selection
@router.put(
    "/sessions/{session_id}/selection/room",
    response_model=SessionResponse,
    responses=SESSION_ERRORS,
)
async def select_room(
    request: SelectCategoryRequest,
    session_id: str = Depends(bind_session),
    service: ConfiguratorService = Depends(get_configurator),
) -> SessionResponse:
    """Choose a room; any element and sub-element choice is cleared."""
    try:
        session = service.select_room(session_id, request.category_id)
    except DomainError as e:
        raise _http_error(e)
    return _session_response(session)


@router.put(
    "/sessions/{session_id}/selection/element",
    response_model=SessionResponse,
    responses=SESSION_ERRORS,
)
async def select_element(
    request: SelectCategoryRequest,
    session_id: str = Depends(bind_session),
    service: ConfiguratorService = Depends(get_configurator),
) -> SessionResponse:
    """Choose an element of the selected room; the sub-element is cleared."""
    try:
        session = service.select_element(session_id, request.category_id)
    except DomainError as e:
        raise _http_error(e)
    return _session_response(session)


@router.put(
    "/sessions/{session_id}/selection/sub-element",
    response_model=SessionResponse,
    responses=SESSION_ERRORS,
)
async def select_sub_element(
    request: SelectCategoryRequest,
    session_id: str = Depends(bind_session),
    service: ConfiguratorService = Depends(get_configurator),
) -> SessionResponse:
    try:
        session = service.select_sub_element(session_id, request.category_id)
    except DomainError as e:
        raise _http_error(e)
    return _session_response(session)


@router.delete(
    "/sessions/{session_id}/selection",
    response_model=SessionResponse,
    responses=SESSION_ERRORS,
)
async def reset_selection(
    session_id: str = Depends(bind_session),
    service: ConfiguratorService = Depends(get_configurator),
) -> SessionResponse:
    try:
        session = service.reset_selection(session_id)
    except DomainError as e:
        raise _http_error(e)
    return _session_response(session)


@router.get(
    "/sessions/{session_id}/selection/options",
    response_model=SelectionOptionsResponse,
    responses=SESSION_ERRORS,
)
async def get_selection_options(
    session_id: str = Depends(bind_session),
    service: ConfiguratorService = Depends(get_configurator),
) -> SelectionOptionsResponse:
    """Rooms, plus elements and sub-elements under the current choices."""
    try:
        options = service.selection_options(session_id)
    except DomainError as e:
        raise _http_error(e)
    return SelectionOptionsResponse.model_validate(options.to_dict())


@router.get(
    "/sessions/{session_id}/products",
    response_model=ProductsResponse,
    responses=SESSION_ERRORS,
)
async def list_session_products(
    session_id: str = Depends(bind_session),
    service: ConfiguratorService = Depends(get_configurator),
) -> ProductsResponse:
    """Products of the selected sub-element; empty until one is chosen."""
    try:
        products = service.list_products(session_id)
    except DomainError as e:
        raise _http_error(e)
    return ProductsResponse.model_validate(
        {"data": [p.to_dict() for p in products], "total": len(products)}
    )


# Cart
@router.post(
    "/sessions/{session_id}/cart/products",
    response_model=SessionResponse,
    responses=SESSION_ERRORS,
)
async def add_product_to_cart(
    request: AddProductRequest,
    session_id: str = Depends(bind_session),
    service: ConfiguratorService = Depends(get_configurator),
) -> SessionResponse:
    """Add a product with quantity 1; adding it again changes nothing."""
    try:
        session = service.add_product(session_id, request.product_id)
    except DomainError as e:
        raise _http_error(e)
    return _session_response(session)


@router.delete(
    "/sessions/{session_id}/cart/products/{product_id}",
    response_model=SessionResponse,
    responses=SESSION_ERRORS,
)
async def remove_product_from_cart(
    product_id: int,
    session_id: str = Depends(bind_session),
    service: ConfiguratorService = Depends(get_configurator),
) -> SessionResponse:
    try:
        session = service.remove_product(session_id, product_id)
    except DomainError as e:
        raise _http_error(e)
    return _session_response(session)


@router.patch(
    "/sessions/{session_id}/cart/products/{product_id}",
    response_model=SessionResponse,
    responses=SESSION_ERRORS,
)
async def update_cart_product(
    product_id: int,
    request: UpdateProductRequest,
    session_id: str = Depends(bind_session),
    service: ConfiguratorService = Depends(get_configurator),
) -> SessionResponse:
    try:
        session = service.set_product_quantity(session_id, product_id, request.quantity)
    except DomainError as e:
        raise _http_error(e)
    return _session_response(session)


@router.post(
    "/sessions/{session_id}/cart/services",
    response_model=SessionResponse,
    responses=SESSION_ERRORS,
)
async def add_service_to_cart(
    request: AddServiceRequest,
    session_id: str = Depends(bind_session),
    service: ConfiguratorService = Depends(get_configurator),
) -> SessionResponse:
    try:
        session = service.add_service(session_id, request.service_id)
    except DomainError as e:
        raise _http_error(e)
    return _session_response(session)


@router.delete(
    "/sessions/{session_id}/cart/services/{service_id}",
    response_model=SessionResponse,
    responses=SESSION_ERRORS,
)
async def remove_service_from_cart(
    service_id: int,
    session_id: str = Depends(bind_session),
    service: ConfiguratorService = Depends(get_configurator),
) -> SessionResponse:
    try:
        session = service.remove_service(session_id, service_id)
    except DomainError as e:
        raise _http_error(e)
    return _session_response(session)


@router.patch(
    "/sessions/{session_id}/cart/services/{service_id}",
    response_model=SessionResponse,
    responses=SESSION_ERRORS,
)
async def update_cart_service(
    service_id: int,
    request: UpdateServiceRequest,
    session_id: str = Depends(bind_session),
    service: ConfiguratorService = Depends(get_configurator),
) -> SessionResponse:
    try:
        session = service.update_service(
            session_id, service_id, quantity=request.quantity, unit=request.unit
        )
    except DomainError as e:
        raise _http_error(e)
    return _session_response(session)


@router.delete(
    "/sessions/{session_id}/cart",
    response_model=SessionResponse,
    responses=SESSION_ERRORS,
)
async def clear_cart(
    session_id: str = Depends(bind_session),
    service: ConfiguratorService = Depends(get_configurator),
) -> SessionResponse:
    try:
        session = service.clear_cart(session_id)
    except DomainError as e:
        raise _http_error(e)
    return _session_response(session)


@router.post(
    "/sessions/{session_id}/presets/{preset_id}",
    response_model=SessionResponse,
    responses=SESSION_ERRORS,
)
async def apply_preset(
    preset_id: int,
    session_id: str = Depends(bind_session),
    service: ConfiguratorService = Depends(get_configurator),
) -> SessionResponse:
    """
    Merge a style preset into the cart.

    Products already in the cart keep their quantity; the rest are added
    with quantity 1.
    """
    try:
        session = service.apply_preset(session_id, preset_id)
    except DomainError as e:
        raise _http_error(e)
    return _session_response(session)


# Pricing
@router.put(
    "/sessions/{session_id}/market-type",
    response_model=SessionResponse,
    responses=SESSION_ERRORS,
)
async def set_market_type(
    request: MarketTypeRequest,
    session_id: str = Depends(bind_session),
    service: ConfiguratorService = Depends(get_configurator),
) -> SessionResponse:
    try:
        session = service.set_market_type(session_id, request.market_type)
    except DomainError as e:
        raise _http_error(e)
    return _session_response(session)


@router.get(
    "/sessions/{session_id}/total",
    response_model=TotalResponse,
    responses=SESSION_ERRORS,
)
async def get_total(
    session_id: str = Depends(bind_session),
    service: ConfiguratorService = Depends(get_configurator),
) -> TotalResponse:
    """
    Price the cart.

    Products count price * quantity, services price * quantity * the
    coefficient of the session's market type.
    """
    try:
        breakdown = service.get_total(session_id)
    except DomainError as e:
        raise _http_error(e)
    return TotalResponse.model_validate(breakdown.to_dict())


# System
@system_router.get("/health")
async def health_check() -> dict:
    """
    Health check endpoint.

    Returns:
        Health status; degraded until the catalog has been loaded.
    """
    store = _deps.store
    loaded = store is not None and store.has_snapshot
    return {
        "status": "healthy" if loaded else "degraded",
        "service": "configurator-service",
        "catalog_loaded": loaded,
        "request_id": get_request_id(),
    }


@system_router.get("/metrics")
async def metrics() -> Response:
    """
    Prometheus metrics endpoint.

    Returns:
        Prometheus metrics in text format.
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
