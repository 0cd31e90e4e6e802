"""
Unit tests for the configurator API endpoints.
"""
import pytest
import pytest_asyncio
from unittest.mock import AsyncMock

from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from prometheus_client import REGISTRY

from internal.domain.errors import CatalogUnavailableError
from internal.infrastructure.catalog_api.client import CatalogApiError
from internal.transport.http.middleware import MetricsMiddleware, RequestIDMiddleware
from internal.transport.http.v1.handlers import router, set_dependencies, system_router
from internal.usecase.catalog_store import CatalogStore


def _app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.include_router(router)
    app.include_router(system_router)
    return app


@pytest.fixture
def app(configurator, store):
    """Test app wired to the sample catalog."""
    set_dependencies(configurator=configurator, store=store)
    yield _app()
    set_dependencies(configurator=None, store=None)


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


async def _new_session(client) -> str:
    response = await client.post("/api/v1/sessions")
    assert response.status_code == 201
    return response.json()["session_id"]


class TestCatalogEndpoints:
    """Tests for /api/v1/catalog endpoints."""

    @pytest.mark.asyncio
    async def test_tree(self, client):
        """Test the tree endpoint returns rooms with nested children."""
        response = await client.get("/api/v1/catalog/tree")

        assert response.status_code == 200
        data = response.json()
        assert [r["id"] for r in data["roots"]] == [1, 10]
        assert data["roots"][0]["elements"][0]["sub_elements"][0]["id"] == 3
        assert data["issues"] == []

    @pytest.mark.asyncio
    async def test_lists(self, client):
        """Test services, presets and coefficients listings."""
        services = (await client.get("/api/v1/catalog/services")).json()
        presets = (await client.get("/api/v1/catalog/presets")).json()
        coefficients = (await client.get("/api/v1/catalog/coefficients")).json()

        assert [s["id"] for s in services["data"]] == [900, 901]
        assert presets["data"][0]["preset_id"] == 7
        assert presets["data"][0]["items"][1]["product"] is None
        assert coefficients["data"][0]["value"] == 1.2

    @pytest.mark.asyncio
    async def test_refresh(self, client, catalog_source):
        """Test refresh installs a newer snapshot."""
        response = await client.post("/api/v1/catalog/refresh")

        assert response.status_code == 200
        assert response.json()["ticket"] == 2
        assert catalog_source.calls == 1

    @pytest.mark.asyncio
    async def test_refresh_upstream_error(self, configurator):
        """Test upstream errors map to 502 and an open circuit to 503."""
        source = AsyncMock()
        source.load_catalog = AsyncMock(side_effect=CatalogApiError(500, "boom"))
        set_dependencies(configurator=configurator, store=CatalogStore(source))

        async with AsyncClient(transport=ASGITransport(app=_app()), base_url="http://test") as client:
            bad_gateway = await client.post("/api/v1/catalog/refresh")
            source.load_catalog.side_effect = CatalogUnavailableError("circuit open")
            unavailable = await client.post("/api/v1/catalog/refresh")

        set_dependencies(configurator=None, store=None)
        assert bad_gateway.status_code == 502
        assert unavailable.status_code == 503

    @pytest.mark.asyncio
    async def test_tree_before_first_load(self, configurator, catalog_source):
        """Test the catalog endpoints answer 503 until a snapshot exists."""
        set_dependencies(configurator=configurator, store=CatalogStore(catalog_source))

        async with AsyncClient(transport=ASGITransport(app=_app()), base_url="http://test") as client:
            response = await client.get("/api/v1/catalog/tree")

        set_dependencies(configurator=None, store=None)
        assert response.status_code == 503

    @pytest.mark.asyncio
    async def test_not_initialized(self):
        """Test endpoints answer 503 before dependencies are set."""
        set_dependencies(configurator=None, store=None)

        async with AsyncClient(transport=ASGITransport(app=_app()), base_url="http://test") as client:
            response = await client.post("/api/v1/sessions")

        assert response.status_code == 503


class TestSessionEndpoints:
    """Tests for session, selection and cart endpoints."""

    @pytest.mark.asyncio
    async def test_session_lifecycle(self, client):
        """Test create, read and delete."""
        session_id = await _new_session(client)

        response = await client.get(f"/api/v1/sessions/{session_id}")
        assert response.status_code == 200
        assert response.json()["selection"]["stage"] == "empty"

        assert (await client.delete(f"/api/v1/sessions/{session_id}")).status_code == 204
        assert (await client.get(f"/api/v1/sessions/{session_id}")).status_code == 404

    @pytest.mark.asyncio
    async def test_drill_down_flow(self, client):
        """Test selecting room, element and sub-element, then listing products."""
        session_id = await _new_session(client)
        base = f"/api/v1/sessions/{session_id}"

        assert (await client.put(f"{base}/selection/room", json={"category_id": 1})).status_code == 200
        options = (await client.get(f"{base}/selection/options")).json()
        assert [c["id"] for c in options["elements"]] == [2, 4]

        await client.put(f"{base}/selection/element", json={"category_id": 2})
        response = await client.put(f"{base}/selection/sub-element", json={"category_id": 3})
        assert response.json()["selection"]["stage"] == "sub_element_chosen"

        products = (await client.get(f"{base}/products")).json()
        assert products["total"] == 2
        assert [p["product_id"] for p in products["data"]] == [100, 101]

        reset = await client.delete(f"{base}/selection")
        assert reset.json()["selection"]["stage"] == "empty"

    @pytest.mark.asyncio
    async def test_selection_errors(self, client):
        """Test out-of-order selection is 409 and unknown category is 404."""
        session_id = await _new_session(client)
        base = f"/api/v1/sessions/{session_id}"

        out_of_order = await client.put(f"{base}/selection/element", json={"category_id": 2})
        unknown = await client.put(f"{base}/selection/room", json={"category_id": 404})
        not_a_room = await client.put(f"{base}/selection/room", json={"category_id": 2})
        invalid_body = await client.put(f"{base}/selection/room", json={"category_id": "abc"})

        assert out_of_order.status_code == 409
        assert unknown.status_code == 404
        assert not_a_room.status_code == 409
        assert invalid_body.status_code == 422

    @pytest.mark.asyncio
    async def test_cart_and_total(self, client):
        """Test cart mutations and the priced total."""
        session_id = await _new_session(client)
        base = f"/api/v1/sessions/{session_id}"

        await client.post(f"{base}/cart/products", json={"product_id": 100})
        await client.post(f"{base}/cart/products", json={"product_id": 100})
        await client.patch(f"{base}/cart/products/100", json={"quantity": 2})
        await client.post(f"{base}/cart/services", json={"service_id": 900})
        response = await client.patch(f"{base}/cart/services/900", json={"quantity": 1.5, "unit": "м²"})

        cart = response.json()["cart"]
        assert cart["products"] == [
            {"product_id": 100, "name": "Плитка Kerama 30x60", "price": 1200.0, "quantity": 2}
        ]
        assert cart["services"][0]["unit"] == "м²"

        market = await client.put(f"{base}/market-type", json={"market_type": "primary"})
        assert market.json()["market_type"] == "primary"

        total = (await client.get(f"{base}/total")).json()
        assert total["coefficient"] == 1.2
        assert total["total"] == pytest.approx(1200.0 * 2 + 800.0 * 1.5 * 1.2)

    @pytest.mark.asyncio
    async def test_cart_removal_and_unknown_ids(self, client):
        """Test removals and unknown catalog ids."""
        session_id = await _new_session(client)
        base = f"/api/v1/sessions/{session_id}"

        assert (await client.post(f"{base}/cart/products", json={"product_id": 404})).status_code == 404
        await client.post(f"{base}/cart/products", json={"product_id": 101})
        await client.post(f"{base}/cart/services", json={"service_id": 901})

        await client.delete(f"{base}/cart/products/101")
        response = await client.delete(f"{base}/cart/services/901")

        assert response.json()["cart"] == {"products": [], "services": []}

    @pytest.mark.asyncio
    async def test_apply_preset(self, client):
        """Test preset application merges products."""
        session_id = await _new_session(client)
        base = f"/api/v1/sessions/{session_id}"

        response = await client.post(f"{base}/presets/7")
        missing = await client.post(f"{base}/presets/404")

        assert [p["product_id"] for p in response.json()["cart"]["products"]] == [100, 102]
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_clear_cart(self, client):
        session_id = await _new_session(client)
        base = f"/api/v1/sessions/{session_id}"
        await client.post(f"{base}/presets/7")

        response = await client.delete(f"{base}/cart")

        assert response.json()["cart"]["products"] == []


class TestSystemEndpoints:
    """Tests for health, metrics and request ids."""

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["catalog_loaded"] is True

    @pytest.mark.asyncio
    async def test_metrics(self, client):
        """Test Prometheus exposition."""
        await _new_session(client)

        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "http_requests_total" in response.text
        assert "configurator_active_sessions" in response.text

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client):
        """Test the caller's request ID is echoed and one is generated otherwise."""
        echoed = await client.get("/health", headers={"X-Request-ID": "req-123"})
        generated = await client.get("/health")

        assert echoed.headers["X-Request-ID"] == "req-123"
        assert echoed.json()["request_id"] == "req-123"
        assert generated.headers["X-Request-ID"]


def _request_count(method: str, endpoint: str, status_code: str) -> float:
    value = REGISTRY.get_sample_value(
        "http_requests_total",
        {"method": method, "endpoint": endpoint, "status_code": status_code},
    )
    return value or 0.0


class TestMetricsMiddleware:
    """Tests for request metrics labelling."""

    @pytest.mark.asyncio
    async def test_labels_by_route_template(self, client):
        """Test session ids are folded into the route template."""
        endpoint = "/api/v1/sessions/{session_id}"
        before = _request_count("GET", endpoint, "200")

        session_id = await _new_session(client)
        await client.get(f"/api/v1/sessions/{session_id}")

        assert _request_count("GET", endpoint, "200") == before + 1
        assert _request_count("GET", f"/api/v1/sessions/{session_id}", "200") == 0.0

    @pytest.mark.asyncio
    async def test_unknown_path_is_unmatched(self, client):
        before = _request_count("GET", "unmatched", "404")

        response = await client.get("/api/v1/no-such-path/123")

        assert response.status_code == 404
        assert _request_count("GET", "unmatched", "404") == before + 1

    @pytest.mark.asyncio
    async def test_handler_error_counted_as_500(self):
        """Test an unhandled handler error is still recorded."""
        app = FastAPI()
        app.add_middleware(MetricsMiddleware)

        @app.get("/broken")
        async def broken():
            raise RuntimeError("boom")

        before = _request_count("GET", "/broken", "500")
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/broken")

        assert response.status_code == 500
        assert _request_count("GET", "/broken", "500") == before + 1
