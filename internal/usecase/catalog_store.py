"""
Catalog snapshot store.

Holds the catalog as one atomically replaced snapshot. Each refresh takes
a ticket before it starts fetching; a snapshot whose ticket is older than
the installed one is discarded, so a slow stale response can never
overwrite fresher data.
"""
import itertools
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Protocol

from internal.domain.catalog import Coefficient, Preset, Product, Service
from internal.domain.category import Category, CategoryTree
from internal.domain.errors import (
    CatalogUnavailableError,
    CategoryNotFoundError,
    PresetNotFoundError,
    ProductNotFoundError,
    ServiceNotFoundError,
)
from internal.infrastructure.metrics.prometheus import (
    CATALOG_REFRESH_TOTAL,
    CATALOG_STALE_SNAPSHOTS,
)
from internal.usecase.category_tree import build_category_tree, latest_by_id
from pkg.logger.logger import get_logger

logger = get_logger(__name__)


@dataclass
class CatalogData:
    """Flat catalog lists as fetched from the upstream."""

    categories: list[Category] = field(default_factory=list)
    products: list[Product] = field(default_factory=list)
    services: list[Service] = field(default_factory=list)
    presets: list[Preset] = field(default_factory=list)
    coefficients: list[Coefficient] = field(default_factory=list)


class CatalogSource(Protocol):
    """Protocol for whatever delivers the flat catalog lists."""

    async def load_catalog(self, force: bool = False) -> CatalogData:
        """Fetch all catalog lists; force bypasses any cache."""
        ...


@dataclass(frozen=True)
class CatalogSnapshot:
    """
    Immutable catalog snapshot.

    The flat lists are canonical; the tree is derived from the same
    category list when the snapshot is built.

    Attributes:
        ticket: Refresh ticket that produced the snapshot.
        fetched_at: When the snapshot was built.
        categories: Flat category list, one entry per id (last wins).
        categories_by_id: The same categories keyed by id.
        products: Flat product list.
        services: Service list.
        presets: Style presets.
        coefficients: Market coefficients.
        tree: Category tree built from `categories`.
    """

    ticket: int
    fetched_at: datetime
    categories: tuple[Category, ...]
    products: tuple[Product, ...]
    services: tuple[Service, ...]
    presets: tuple[Preset, ...]
    coefficients: tuple[Coefficient, ...]
    tree: CategoryTree
    categories_by_id: dict[int, Category] = field(default_factory=dict, compare=False)

    @classmethod
    def build(cls, ticket: int, data: CatalogData) -> "CatalogSnapshot":
        categories = latest_by_id(data.categories)
        return cls(
            ticket=ticket,
            fetched_at=datetime.now(timezone.utc),
            categories=tuple(categories),
            products=tuple(data.products),
            services=tuple(data.services),
            presets=tuple(data.presets),
            coefficients=tuple(data.coefficients),
            tree=build_category_tree(data.categories),
            categories_by_id={category.id: category for category in categories},
        )

    def get_category(self, category_id: int) -> Category:
        category = self.categories_by_id.get(category_id)
        if category is None:
            raise CategoryNotFoundError(category_id)
        return category

    def get_product(self, product_id: int) -> Product:
        for product in self.products:
            if product.product_id == product_id:
                return product
        raise ProductNotFoundError(product_id)

    def get_service(self, service_id: int) -> Service:
        for service in self.services:
            if service.id == service_id:
                return service
        raise ServiceNotFoundError(service_id)

    def get_preset(self, preset_id: int) -> Preset:
        for preset in self.presets:
            if preset.preset_id == preset_id:
                return preset
        raise PresetNotFoundError(preset_id)

    def summary(self) -> dict:
        return {
            "ticket": self.ticket,
            "fetched_at": self.fetched_at.isoformat(),
            "categories": len(self.categories),
            "products": len(self.products),
            "services": len(self.services),
            "presets": len(self.presets),
            "coefficients": len(self.coefficients),
            "tree_issues": len(self.tree.issues),
        }


class CatalogStore:
    """Current catalog snapshot plus the refresh ticket counter."""

    def __init__(self, source: CatalogSource) -> None:
        """
        Initialize the store.

        Args:
            source: Source of the flat catalog lists.
        """
        self._source = source
        self._tickets = itertools.count(1)
        self._snapshot: Optional[CatalogSnapshot] = None

    @property
    def has_snapshot(self) -> bool:
        return self._snapshot is not None

    @property
    def current(self) -> CatalogSnapshot:
        """
        The installed snapshot.

        Raises:
            CatalogUnavailableError: If no refresh has completed yet.
        """
        if self._snapshot is None:
            raise CatalogUnavailableError("catalog has not been loaded yet")
        return self._snapshot

    def next_ticket(self) -> int:
        return next(self._tickets)

    def apply(self, snapshot: CatalogSnapshot) -> bool:
        """
        Install a snapshot unless a newer one is already installed.

        Args:
            snapshot: Freshly built snapshot.

        Returns:
            True if the snapshot was installed, False if it was stale.
        """
        installed = self._snapshot
        if installed is not None and snapshot.ticket <= installed.ticket:
            CATALOG_STALE_SNAPSHOTS.inc()
            logger.warning(
                "Discarding stale catalog snapshot",
                ticket=snapshot.ticket,
                installed_ticket=installed.ticket,
            )
            return False
        self._snapshot = snapshot
        logger.info("Catalog snapshot installed", **snapshot.summary())
        return True

    async def refresh(self, force: bool = False) -> CatalogSnapshot:
        """
        Fetch the catalog and install it if it is still the newest.

        Args:
            force: Bypass the upstream cache.

        Returns:
            The snapshot installed after this refresh (which is a newer one
            if this refresh turned out to be stale).

        Raises:
            Whatever the source raises; the installed snapshot is kept.
        """
        ticket = self.next_ticket()
        try:
            data = await self._source.load_catalog(force=force)
        except Exception as e:
            CATALOG_REFRESH_TOTAL.labels(status="error").inc()
            logger.error("Catalog refresh failed", ticket=ticket, error=str(e))
            raise

        snapshot = CatalogSnapshot.build(ticket, data)
        applied = self.apply(snapshot)
        CATALOG_REFRESH_TOTAL.labels(status="applied" if applied else "stale").inc()
        return self.current
