"""
Unit tests for ConfiguratorService.
"""
import pytest

from internal.domain.catalog import MarketType
from internal.domain.category import Category
from internal.domain.errors import (
    CatalogUnavailableError,
    CategoryNotFoundError,
    InvalidSelectionError,
    PresetNotFoundError,
    ProductNotFoundError,
    ServiceNotFoundError,
    SessionNotFoundError,
)
from internal.domain.selection import SelectionStage
from internal.usecase.catalog_store import CatalogData, CatalogSnapshot, CatalogStore
from internal.usecase.configurator import ConfiguratorService


class TestSessions:
    """Tests for the session registry."""

    def test_create_and_get(self, configurator):
        """Test a new session is empty and retrievable."""
        session = configurator.create_session()

        assert configurator.get_session(session.session_id) is session
        assert session.selection.stage == SelectionStage.EMPTY
        assert session.cart.is_empty
        assert session.market_type is None

    def test_unknown_session(self, configurator):
        """Test an unknown id raises."""
        with pytest.raises(SessionNotFoundError):
            configurator.get_session("missing")

    def test_delete(self, configurator):
        """Test a deleted session is gone."""
        session = configurator.create_session()

        configurator.delete_session(session.session_id)

        with pytest.raises(SessionNotFoundError):
            configurator.get_session(session.session_id)
        with pytest.raises(SessionNotFoundError):
            configurator.delete_session(session.session_id)

    def test_idle_sessions_expire(self, configurator, clock):
        """Test sessions idle longer than the TTL are evicted."""
        idle = configurator.create_session()
        clock.advance(300)
        active = configurator.create_session()
        clock.advance(301)

        configurator.get_session(active.session_id)

        with pytest.raises(SessionNotFoundError):
            configurator.get_session(idle.session_id)
        assert configurator.session_count == 1

    def test_access_keeps_session_alive(self, configurator, clock):
        """Test every access refreshes the idle timer."""
        session = configurator.create_session()
        for _ in range(3):
            clock.advance(500)
            configurator.get_session(session.session_id)

        assert configurator.get_session(session.session_id) is session

    def test_sessions_without_catalog(self, catalog_source, clock):
        """Test sessions work before the catalog is loaded, catalog reads do not."""
        service = ConfiguratorService(CatalogStore(catalog_source), {}, clock=clock)
        session = service.create_session()

        assert service.get_session(session.session_id) is session
        with pytest.raises(CatalogUnavailableError):
            service.select_room(session.session_id, 1)


class TestSelection:
    """Tests for drill-down through the service."""

    def test_drill_down_and_products(self, configurator):
        """Test the chosen sub-element drives the product list."""
        session_id = configurator.create_session().session_id

        assert configurator.list_products(session_id) == []
        configurator.select_room(session_id, 1)
        configurator.select_element(session_id, 2)
        configurator.select_sub_element(session_id, 3)

        assert [p.product_id for p in configurator.list_products(session_id)] == [100, 101]

    def test_select_room_requires_root(self, configurator):
        """Test an element id cannot be chosen as a room."""
        session_id = configurator.create_session().session_id

        with pytest.raises(InvalidSelectionError):
            configurator.select_room(session_id, 2)

    def test_unknown_category(self, configurator):
        """Test unknown categories raise not-found."""
        session_id = configurator.create_session().session_id

        with pytest.raises(CategoryNotFoundError):
            configurator.select_room(session_id, 404)

    def test_out_of_order_selection(self, configurator):
        """Test element before room is rejected."""
        session_id = configurator.create_session().session_id

        with pytest.raises(InvalidSelectionError):
            configurator.select_element(session_id, 2)

    def test_options(self, configurator):
        """Test selectable categories follow the choices."""
        session_id = configurator.create_session().session_id

        options = configurator.selection_options(session_id)
        assert [c.id for c in options.rooms] == [1, 10]
        assert options.elements == []

        configurator.select_room(session_id, 1)
        options = configurator.selection_options(session_id)
        assert [c.id for c in options.elements] == [2, 4]

    def test_reset(self, configurator):
        session_id = configurator.create_session().session_id
        configurator.select_room(session_id, 1)

        session = configurator.reset_selection(session_id)

        assert session.selection.stage == SelectionStage.EMPTY

    def test_selection_reset_when_category_vanishes(self, configurator, store, catalog_data):
        """Test a refresh that drops the chosen element resets the selection."""
        session_id = configurator.create_session().session_id
        configurator.select_room(session_id, 1)
        configurator.select_element(session_id, 2)
        configurator.add_product(session_id, 100)

        reduced = CatalogData(
            categories=[c for c in catalog_data.categories if c.id not in (2, 3, 6)],
            products=catalog_data.products,
            services=catalog_data.services,
            presets=catalog_data.presets,
            coefficients=catalog_data.coefficients,
        )
        store.apply(CatalogSnapshot.build(store.next_ticket(), reduced))

        session = configurator.get_session(session_id)

        assert session.selection.stage == SelectionStage.EMPTY
        assert session.cart.has_product(100)

    def test_selection_kept_when_catalog_unchanged(self, configurator, store, catalog_data):
        session_id = configurator.create_session().session_id
        configurator.select_room(session_id, 1)
        store.apply(CatalogSnapshot.build(store.next_ticket(), catalog_data))

        assert configurator.get_session(session_id).selection.room == Category(id=1, name="Ванная")


class TestDuplicateCategoryIds:
    """Tests for a category id listed twice with different parents."""

    @pytest.fixture
    def service(self, catalog_source, clock):
        store = CatalogStore(catalog_source)
        data = CatalogData(categories=[
            Category(id=1, name="Ванная"),
            Category(id=10, name="Кухня"),
            Category(id=2, name="Стены", parent_id=1),
            Category(id=2, name="Стены", parent_id=10),
        ])
        store.apply(CatalogSnapshot.build(store.next_ticket(), data))
        return ConfiguratorService(store, {}, clock=clock)

    def test_offered_element_is_selectable(self, service):
        """Test the element offered under its room can be selected and stays selected."""
        session_id = service.create_session().session_id
        service.select_room(session_id, 10)

        offered = service.selection_options(session_id).elements
        service.select_element(session_id, 2)

        assert [(c.id, c.parent_id) for c in offered] == [(2, 10)]
        session = service.get_session(session_id)
        assert session.selection.stage == SelectionStage.ELEMENT_CHOSEN
        assert session.selection.element.parent_id == 10

    def test_discarded_entry_is_not_selectable(self, service):
        """Test the overridden parent no longer lists the element."""
        session_id = service.create_session().session_id
        service.select_room(session_id, 1)

        assert service.selection_options(session_id).elements == []
        with pytest.raises(InvalidSelectionError):
            service.select_element(session_id, 2)


class TestCart:
    """Tests for cart operations through the service."""

    def test_add_product_twice(self, configurator):
        """Test double add keeps one line with quantity 1."""
        session_id = configurator.create_session().session_id

        configurator.add_product(session_id, 100)
        session = configurator.add_product(session_id, 100)

        assert len(session.cart.product_lines) == 1
        assert session.cart.product_lines[0].quantity == 1

    def test_unknown_product_and_service(self, configurator):
        session_id = configurator.create_session().session_id

        with pytest.raises(ProductNotFoundError):
            configurator.add_product(session_id, 404)
        with pytest.raises(ServiceNotFoundError):
            configurator.add_service(session_id, 404)

    def test_quantities_and_units(self, configurator):
        """Test product quantity and service quantity/unit updates."""
        session_id = configurator.create_session().session_id
        configurator.add_product(session_id, 100)
        configurator.add_service(session_id, 900)

        configurator.set_product_quantity(session_id, 100, "3")
        session = configurator.update_service(session_id, 900, quantity=12.5, unit="м²")

        assert session.cart.product_lines[0].quantity == 3
        assert session.cart.service_lines[0].quantity == 12.5
        assert session.cart.service_lines[0].unit == "м²"

    def test_update_service_partial(self, configurator):
        """Test omitted fields stay unchanged."""
        session_id = configurator.create_session().session_id
        configurator.add_service(session_id, 900)
        configurator.update_service(session_id, 900, quantity=4)

        session = configurator.update_service(session_id, 900, unit="шт")

        assert session.cart.service_lines[0].quantity == 4
        assert session.cart.service_lines[0].unit == "шт"

    def test_remove_and_clear(self, configurator):
        session_id = configurator.create_session().session_id
        configurator.add_product(session_id, 100)
        configurator.add_service(session_id, 900)

        configurator.remove_product(session_id, 100)
        session = configurator.remove_service(session_id, 900)
        assert session.cart.is_empty

        configurator.add_product(session_id, 101)
        assert configurator.clear_cart(session_id).cart.is_empty

    def test_apply_preset(self, configurator):
        """Test a preset merges its products once."""
        session_id = configurator.create_session().session_id
        configurator.add_product(session_id, 100)

        session = configurator.apply_preset(session_id, 7)

        assert [line.product_id for line in session.cart.product_lines] == [100, 102]

    def test_unknown_preset(self, configurator):
        session_id = configurator.create_session().session_id

        with pytest.raises(PresetNotFoundError):
            configurator.apply_preset(session_id, 404)


class TestTotal:
    """Tests for pricing through the service."""

    def test_total_without_market_type(self, configurator):
        """Test services are not scaled until a market type is given."""
        session_id = configurator.create_session().session_id
        configurator.add_product(session_id, 100)
        configurator.add_service(session_id, 900)

        breakdown = configurator.get_total(session_id)

        assert breakdown.coefficient == 1.0
        assert breakdown.total == pytest.approx(1200.0 + 800.0)

    def test_total_with_market_type(self, configurator):
        """Test the market type's coefficient scales services."""
        session_id = configurator.create_session().session_id
        configurator.add_product(session_id, 100)
        configurator.set_product_quantity(session_id, 100, 2)
        configurator.add_service(session_id, 900)

        configurator.set_market_type(session_id, MarketType.SECONDARY)
        breakdown = configurator.get_total(session_id)

        assert breakdown.coefficient == 1.5
        assert breakdown.total == pytest.approx(1200.0 * 2 + 800.0 * 1.5)

    def test_clear_market_type(self, configurator):
        session_id = configurator.create_session().session_id
        configurator.set_market_type(session_id, MarketType.PRIMARY)

        session = configurator.set_market_type(session_id, None)

        assert session.market_type is None
        assert configurator.get_total(session_id).coefficient == 1.0
