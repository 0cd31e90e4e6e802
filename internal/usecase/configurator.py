"""
Configurator Service Use Case.

Owns the in-memory session registry and runs the drill-down, filtering,
cart, preset and pricing operations of one session against the current
catalog snapshot.
"""
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from internal.domain.cart import SelectionCart
from internal.domain.catalog import MarketType, Product
from internal.domain.category import Category
from internal.domain.errors import InvalidSelectionError, SessionNotFoundError
from internal.domain.selection import CategorySelectionState
from internal.infrastructure.metrics.prometheus import (
    ACTIVE_SESSIONS,
    CART_OPERATIONS,
    PRESET_APPLICATIONS,
)
from internal.usecase.catalog_filter import filter_by_category
from internal.usecase.catalog_store import CatalogSnapshot, CatalogStore
from internal.usecase.preset_merger import apply_preset
from internal.usecase.pricing import PricingBreakdown, compute_breakdown, resolve_coefficient
from pkg.logger.logger import get_logger

logger = get_logger(__name__)


DEFAULT_SESSION_TTL = 3600


@dataclass
class ConfiguratorSession:
    """
    One browsing session.

    Attributes:
        session_id: Opaque identifier handed to the client.
        selection: Room -> element -> sub-element drill-down.
        cart: Selected products and services.
        market_type: Market-type answer, None until given.
        created_at: Creation time (UTC).
        last_seen: Monotonic time of the last access.
    """

    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    selection: CategorySelectionState = field(default_factory=CategorySelectionState)
    cart: SelectionCart = field(default_factory=SelectionCart)
    market_type: Optional[MarketType] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_seen: float = 0.0

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "selection": self.selection.to_dict(),
            "cart": self.cart.to_dict(),
            "market_type": self.market_type.value if self.market_type else None,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class SelectionOptions:
    """Categories selectable at the session's current stage."""

    rooms: list[Category]
    elements: list[Category]
    sub_elements: list[Category]

    def to_dict(self) -> dict:
        return {
            "rooms": [c.to_dict() for c in self.rooms],
            "elements": [c.to_dict() for c in self.elements],
            "sub_elements": [c.to_dict() for c in self.sub_elements],
        }


class ConfiguratorService:
    """
    Service for configurator sessions.

    This service:
    1. Creates, looks up and evicts idle sessions
    2. Validates category selections against the catalog tree
    3. Mutates the session cart directly or through presets
    4. Prices the cart with the coefficient of the session's market type
    """

    def __init__(
        self,
        store: CatalogStore,
        coefficient_names: dict[MarketType, str],
        session_ttl_seconds: int = DEFAULT_SESSION_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the configurator service.

        Args:
            store: Catalog snapshot store.
            coefficient_names: Coefficient name per market type.
            session_ttl_seconds: Idle time after which a session is dropped.
            clock: Monotonic clock (tests pass a fake).
        """
        self._store = store
        self._coefficient_names = coefficient_names
        self._session_ttl = session_ttl_seconds
        self._clock = clock
        self._sessions: dict[str, ConfiguratorSession] = {}

    @property
    def store(self) -> CatalogStore:
        return self._store

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    # Sessions

    def _evict_expired(self) -> None:
        now = self._clock()
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if now - session.last_seen > self._session_ttl
        ]
        for session_id in expired:
            del self._sessions[session_id]
        if expired:
            logger.info("Evicted idle sessions", count=len(expired))
        ACTIVE_SESSIONS.set(len(self._sessions))

    def create_session(self) -> ConfiguratorSession:
        self._evict_expired()
        session = ConfiguratorSession(last_seen=self._clock())
        self._sessions[session.session_id] = session
        ACTIVE_SESSIONS.set(len(self._sessions))
        logger.info("Session created", session_id=session.session_id)
        return session

    def get_session(self, session_id: str) -> ConfiguratorSession:
        """
        Get a live session and touch it.

        Selection slots that point at categories missing from the current
        snapshot are reset.

        Raises:
            SessionNotFoundError: If the session does not exist or expired.
        """
        self._evict_expired()
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        session.last_seen = self._clock()
        if self._store.has_snapshot:
            self._sync_selection(session, self._store.current)
        return session

    def delete_session(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is None:
            raise SessionNotFoundError(session_id)
        ACTIVE_SESSIONS.set(len(self._sessions))
        logger.info("Session deleted", session_id=session_id)

    def _sync_selection(self, session: ConfiguratorSession, snapshot: CatalogSnapshot) -> None:
        selection = session.selection
        chosen = [c for c in (selection.room, selection.element, selection.sub_element) if c]
        if not chosen:
            return
        known = snapshot.categories_by_id
        stale = [c.id for c in chosen if known.get(c.id) is None or known[c.id].parent_id != c.parent_id]
        if selection.room is not None and not snapshot.tree.is_root(selection.room.id):
            stale.append(selection.room.id)
        if stale:
            logger.warning(
                "Selection refers to categories no longer in the catalog, resetting",
                session_id=session.session_id,
                category_ids=stale,
            )
            selection.reset()

    # Selection

    def select_room(self, session_id: str, category_id: int) -> ConfiguratorSession:
        """
        Select a room.

        Raises:
            CategoryNotFoundError: If the category is unknown.
            InvalidSelectionError: If the category is not a room.
        """
        session = self.get_session(session_id)
        snapshot = self._store.current
        category = snapshot.get_category(category_id)
        if not snapshot.tree.is_root(category_id):
            raise InvalidSelectionError(f"Category {category_id} is not a room")
        session.selection.select_room(category)
        logger.debug("Room selected", category_id=category_id)
        return session

    def select_element(self, session_id: str, category_id: int) -> ConfiguratorSession:
        session = self.get_session(session_id)
        category = self._store.current.get_category(category_id)
        session.selection.select_element(category)
        logger.debug("Element selected", category_id=category_id)
        return session

    def select_sub_element(self, session_id: str, category_id: int) -> ConfiguratorSession:
        session = self.get_session(session_id)
        category = self._store.current.get_category(category_id)
        session.selection.select_sub_element(category)
        logger.debug("Sub-element selected", category_id=category_id)
        return session

    def reset_selection(self, session_id: str) -> ConfiguratorSession:
        session = self.get_session(session_id)
        session.selection.reset()
        return session

    def selection_options(self, session_id: str) -> SelectionOptions:
        session = self.get_session(session_id)
        snapshot = self._store.current
        return SelectionOptions(
            rooms=[node.category for node in snapshot.tree.roots],
            elements=session.selection.available_elements(snapshot.categories),
            sub_elements=session.selection.available_sub_elements(snapshot.categories),
        )

    def list_products(self, session_id: str) -> list[Product]:
        """Products of the selected sub-element; empty until one is chosen."""
        session = self.get_session(session_id)
        return filter_by_category(self._store.current.products, session.selection.sub_element_id)

    # Cart

    def add_product(self, session_id: str, product_id: int) -> ConfiguratorSession:
        """
        Add a catalog product to the cart.

        Raises:
            ProductNotFoundError: If the product is not in the catalog.
        """
        session = self.get_session(session_id)
        product = self._store.current.get_product(product_id)
        added = session.cart.add_product(product)
        CART_OPERATIONS.labels(operation="add_product").inc()
        logger.info("Product added to cart", product_id=product_id, added=added)
        return session

    def remove_product(self, session_id: str, product_id: int) -> ConfiguratorSession:
        session = self.get_session(session_id)
        session.cart.remove_product(product_id)
        CART_OPERATIONS.labels(operation="remove_product").inc()
        return session

    def set_product_quantity(self, session_id: str, product_id: int, quantity: Any) -> ConfiguratorSession:
        session = self.get_session(session_id)
        session.cart.set_product_quantity(product_id, quantity)
        CART_OPERATIONS.labels(operation="set_product_quantity").inc()
        return session

    def add_service(self, session_id: str, service_id: int) -> ConfiguratorSession:
        """
        Add a catalog service to the cart.

        Raises:
            ServiceNotFoundError: If the service is not in the catalog.
        """
        session = self.get_session(session_id)
        service = self._store.current.get_service(service_id)
        added = session.cart.add_service(service)
        CART_OPERATIONS.labels(operation="add_service").inc()
        logger.info("Service added to cart", service_id=service_id, added=added)
        return session

    def remove_service(self, session_id: str, service_id: int) -> ConfiguratorSession:
        session = self.get_session(session_id)
        session.cart.remove_service(service_id)
        CART_OPERATIONS.labels(operation="remove_service").inc()
        return session

    def update_service(
        self,
        session_id: str,
        service_id: int,
        quantity: Any = None,
        unit: Optional[str] = None,
    ) -> ConfiguratorSession:
        """
        Update quantity and/or unit of a service line.

        Args:
            session_id: Session to update.
            service_id: Service whose line to update.
            quantity: New quantity; None leaves it unchanged.
            unit: New unit; None leaves it unchanged.
        """
        session = self.get_session(session_id)
        if quantity is not None:
            session.cart.set_service_quantity(service_id, quantity)
        if unit is not None:
            session.cart.set_service_unit(service_id, unit)
        CART_OPERATIONS.labels(operation="update_service").inc()
        return session

    def clear_cart(self, session_id: str) -> ConfiguratorSession:
        session = self.get_session(session_id)
        session.cart.clear()
        CART_OPERATIONS.labels(operation="clear").inc()
        return session

    def apply_preset(self, session_id: str, preset_id: int) -> ConfiguratorSession:
        """
        Merge a style preset into the cart.

        Raises:
            PresetNotFoundError: If the preset is not in the catalog.
        """
        session = self.get_session(session_id)
        preset = self._store.current.get_preset(preset_id)
        apply_preset(session.cart, preset)
        PRESET_APPLICATIONS.labels(preset_id=str(preset_id)).inc()
        return session

    # Pricing

    def set_market_type(self, session_id: str, market_type: Optional[MarketType]) -> ConfiguratorSession:
        session = self.get_session(session_id)
        session.market_type = market_type
        logger.info(
            "Market type set",
            market_type=market_type.value if market_type else None,
        )
        return session

    def coefficient_for(self, session: ConfiguratorSession) -> float:
        if session.market_type is None or not self._store.has_snapshot:
            return resolve_coefficient(None, [], self._coefficient_names)
        return resolve_coefficient(
            session.market_type,
            self._store.current.coefficients,
            self._coefficient_names,
        )

    def get_total(self, session_id: str) -> PricingBreakdown:
        session = self.get_session(session_id)
        return compute_breakdown(session.cart, self.coefficient_for(session))
