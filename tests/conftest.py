"""
Pytest configuration and fixtures.
"""
import pytest

from internal.domain.catalog import (
    Attribute,
    Coefficient,
    MarketType,
    Preset,
    PresetItem,
    Product,
    Service,
    ServiceRef,
)
from internal.domain.category import Category
from internal.usecase.catalog_store import CatalogData, CatalogSnapshot, CatalogStore
from internal.usecase.configurator import ConfiguratorService


COEFFICIENT_NAMES = {
    MarketType.PRIMARY: "Первичный рынок",
    MarketType.SECONDARY: "Вторичный рынок",
}


class FakeCatalogSource:
    """In-memory catalog source returning a fixed CatalogData."""

    def __init__(self, data: CatalogData) -> None:
        self.data = data
        self.calls = 0

    async def load_catalog(self, force: bool = False) -> CatalogData:
        self.calls += 1
        return self.data


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def categories():
    """Bathroom room with two elements and three sub-elements, plus a kitchen."""
    return [
        Category(id=1, name="Ванная", parent_id=None),
        Category(id=2, name="Стены", parent_id=1),
        Category(id=3, name="Плитка", parent_id=2),
        Category(id=4, name="Пол", parent_id=1),
        Category(id=5, name="Ламинат", parent_id=4),
        Category(id=6, name="Краска", parent_id=2),
        Category(id=10, name="Кухня", parent_id=None),
    ]


@pytest.fixture
def products():
    """Sample products attached to sub-elements."""
    return [
        Product(
            product_id=100,
            name="Плитка Kerama 30x60",
            price=1200.0,
            category_id=3,
            attributes=[Attribute(name="Ширина", value="300", unit="мм")],
            services=[ServiceRef(service_id=900, name="Укладка плитки")],
        ),
        Product(product_id=101, name="Плитка Cersanit", price=950.0, category_id=3),
        Product(product_id=102, name="Ламинат Quick-Step", price=1500.0, category_id=5),
        Product(product_id=103, name="Краска Tikkurila", price=3200.0, category_id=6),
    ]


@pytest.fixture
def services():
    """Sample services."""
    return [
        Service(id=900, name="Укладка плитки", price=800.0),
        Service(id=901, name="Покраска стен", price=350.0),
    ]


@pytest.fixture
def presets(products):
    """Scandinavian preset with a broken item and a repeated product."""
    by_id = {p.product_id: p for p in products}
    return [
        Preset(
            preset_id=7,
            name="Скандинавский",
            items=[
                PresetItem(product=by_id[100]),
                PresetItem(product=None),
                PresetItem(product=by_id[102]),
                PresetItem(product=by_id[100]),
            ],
            total_price=2700.0,
        )
    ]


@pytest.fixture
def coefficients():
    """Market coefficients."""
    return [
        Coefficient(id=1, name="Первичный рынок", value=1.2),
        Coefficient(id=2, name="Вторичный рынок", value=1.5),
    ]


@pytest.fixture
def catalog_data(categories, products, services, presets, coefficients):
    """Complete catalog lists."""
    return CatalogData(
        categories=categories,
        products=products,
        services=services,
        presets=presets,
        coefficients=coefficients,
    )


@pytest.fixture
def catalog_source(catalog_data):
    """Fake catalog source."""
    return FakeCatalogSource(catalog_data)


@pytest.fixture
def store(catalog_source, catalog_data):
    """Catalog store with a snapshot already installed."""
    store = CatalogStore(catalog_source)
    store.apply(CatalogSnapshot.build(store.next_ticket(), catalog_data))
    return store


@pytest.fixture
def clock():
    """Fake monotonic clock."""
    return FakeClock()


@pytest.fixture
def configurator(store, clock):
    """Configurator service over the sample catalog."""
    return ConfiguratorService(
        store=store,
        coefficient_names=COEFFICIENT_NAMES,
        session_ttl_seconds=600,
        clock=clock,
    )
