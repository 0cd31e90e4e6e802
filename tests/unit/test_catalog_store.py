"""
Unit tests for the catalog snapshot store.
"""
import asyncio

import pytest
from unittest.mock import AsyncMock

from internal.domain.category import Category
from internal.domain.errors import (
    CatalogUnavailableError,
    CategoryNotFoundError,
    PresetNotFoundError,
    ProductNotFoundError,
    ServiceNotFoundError,
)
from internal.usecase.catalog_store import CatalogData, CatalogSnapshot, CatalogStore


class TestCatalogSnapshot:
    """Tests for CatalogSnapshot lookups."""

    def test_build_derives_tree(self, catalog_data):
        """Test the tree is built from the flat categories."""
        snapshot = CatalogSnapshot.build(1, catalog_data)

        assert [r.id for r in snapshot.tree.roots] == [1, 10]
        assert len(snapshot.categories) == len(catalog_data.categories)

    def test_lookups(self, catalog_data):
        """Test entity lookups by canonical id."""
        snapshot = CatalogSnapshot.build(1, catalog_data)

        assert snapshot.get_category(2).name == "Стены"
        assert snapshot.get_product(102).category_id == 5
        assert snapshot.get_service(901).price == 350.0
        assert snapshot.get_preset(7).name == "Скандинавский"

    def test_duplicate_category_last_wins(self):
        """Test a repeated category id resolves to its last entry everywhere."""
        data = CatalogData(categories=[
            Category(id=1, name="Ванная"),
            Category(id=2, name="Стены", parent_id=1),
            Category(id=10, name="Кухня"),
            Category(id=2, name="Фартук", parent_id=10),
        ])

        snapshot = CatalogSnapshot.build(1, data)

        assert snapshot.get_category(2).parent_id == 10
        assert [c.id for c in snapshot.categories] == [1, 10, 2]
        assert snapshot.categories_by_id[2].name == "Фартук"
        assert snapshot.summary()["categories"] == 3

    @pytest.mark.parametrize(
        "method,error",
        [
            ("get_category", CategoryNotFoundError),
            ("get_product", ProductNotFoundError),
            ("get_service", ServiceNotFoundError),
            ("get_preset", PresetNotFoundError),
        ],
    )
    def test_lookup_misses(self, catalog_data, method, error):
        """Test unknown ids raise not-found errors."""
        snapshot = CatalogSnapshot.build(1, catalog_data)

        with pytest.raises(error):
            getattr(snapshot, method)(404)

    def test_summary(self, catalog_data):
        """Test snapshot summary counts."""
        summary = CatalogSnapshot.build(3, catalog_data).summary()

        assert summary["ticket"] == 3
        assert summary["categories"] == 7
        assert summary["products"] == 4
        assert summary["tree_issues"] == 0


class TestCatalogStore:
    """Tests for CatalogStore."""

    def test_current_without_snapshot(self, catalog_source):
        """Test reading before the first refresh raises."""
        store = CatalogStore(catalog_source)

        assert not store.has_snapshot
        with pytest.raises(CatalogUnavailableError):
            store.current

    @pytest.mark.asyncio
    async def test_refresh_installs_snapshot(self, catalog_source):
        """Test a refresh loads and installs the catalog."""
        store = CatalogStore(catalog_source)

        snapshot = await store.refresh()

        assert store.current is snapshot
        assert snapshot.ticket == 1
        assert catalog_source.calls == 1

    @pytest.mark.asyncio
    async def test_refresh_passes_force(self, catalog_data):
        """Test force is forwarded to the source."""
        source = AsyncMock()
        source.load_catalog = AsyncMock(return_value=catalog_data)
        store = CatalogStore(source)

        await store.refresh(force=True)

        source.load_catalog.assert_awaited_once_with(force=True)

    def test_apply_rejects_older_ticket(self, catalog_source, catalog_data):
        """Test a snapshot older than the installed one is discarded."""
        store = CatalogStore(catalog_source)
        older = CatalogSnapshot.build(store.next_ticket(), catalog_data)
        newer = CatalogSnapshot.build(store.next_ticket(), catalog_data)

        assert store.apply(newer) is True
        assert store.apply(older) is False
        assert store.current is newer

    @pytest.mark.asyncio
    async def test_slow_stale_refresh_is_discarded(self, categories):
        """Test a refresh that finishes after a newer one does not overwrite it."""
        release_slow = asyncio.Event()
        stale = CatalogData(categories=categories[:1])
        fresh = CatalogData(categories=categories)
        responses = [stale, fresh]

        async def load_catalog(force=False):
            data = responses.pop(0)
            if data is stale:
                await release_slow.wait()
            return data

        source = AsyncMock()
        source.load_catalog = load_catalog
        store = CatalogStore(source)

        slow = asyncio.create_task(store.refresh())
        await asyncio.sleep(0)
        fast_snapshot = await store.refresh()
        release_slow.set()
        slow_result = await slow

        assert fast_snapshot.ticket == 2
        assert store.current.ticket == 2
        assert len(store.current.categories) == len(categories)
        assert slow_result is store.current

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_snapshot(self, store):
        """Test a failing source leaves the installed snapshot in place."""
        installed = store.current
        store._source = AsyncMock()
        store._source.load_catalog = AsyncMock(side_effect=RuntimeError("boom"))

        with pytest.raises(RuntimeError):
            await store.refresh()

        assert store.current is installed
