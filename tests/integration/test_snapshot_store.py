"""
Integration Tests - Snapshot Store and Builder
"""
from dataclasses import replace
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from inventory_analytics.analytics.windows import DateWindow
from inventory_analytics.database.models import InventoryProductSummary, InventorySnapshot
from inventory_analytics.database.repository import InventoryRepository
from inventory_analytics.snapshots.builder import SnapshotBuilder
from inventory_analytics.snapshots.store import SnapshotStore

from conftest import NOW, ORG, OTHER_ORG


@pytest.fixture
def builder(seeded_scope, inventory_settings):
    return SnapshotBuilder(seeded_scope, inventory_settings)


@pytest.fixture
def store(seeded_scope):
    return SnapshotStore(seeded_scope, retained_generations=2)


class TestRepository:
    """Tests for organization-scoped source reads"""

    async def test_scoped_to_organization(self, seeded_scope):
        async with seeded_scope() as db:
            repo = InventoryRepository(db, ORG, batch_size=1)
            products = await repo.list_products()
            variants = await repo.list_variants()
            costs = await repo.load_cost_cache()

        assert [product.id for product in products] == ["p1", "p2", "p3"]
        assert [variant.id for variant in variants] == ["v1a", "v1b", "v2", "v3"]
        assert "v1a" in costs

    async def test_window_is_half_open(self, seeded_scope):
        window = DateWindow(start=NOW - timedelta(days=40), end=NOW - timedelta(days=2))
        async with seeded_scope() as db:
            orders, items = await InventoryRepository(db, ORG).fetch_orders_with_items(window)

        assert [order.id for order in orders] == ["o2"]
        assert len(items) == 1

    async def test_line_items_fetched_in_batches(self, seeded_scope):
        async with seeded_scope() as db:
            items = await InventoryRepository(db, ORG, batch_size=1).fetch_line_items(["o1", "o2", "xo1"])

        # the foreign order's items are filtered by organization
        assert len(items) == 3

    async def test_sold_variants(self, seeded_scope):
        async with seeded_scope() as db:
            sold = await InventoryRepository(db, ORG).sold_variant_ids_since(NOW - timedelta(days=90))

        assert sold == {"v1a", "v2"}


class TestSnapshotBuilder:
    async def test_build(self, builder):
        snapshot = await builder.build(ORG, now=NOW)

        assert snapshot.organization_id == ORG
        assert snapshot.computed_at == NOW
        assert snapshot.analysis_window_days == 30
        assert [row.product_id for row in snapshot.products] == ["p1", "p2", "p3"]
        assert snapshot.overview.total_units_sold == 13
        assert snapshot.overview.dead_stock == 1
        assert snapshot.snapshot_id is None

    async def test_rebuild_is_deterministic(self, builder):
        assert await builder.build(ORG, now=NOW) == await builder.build(ORG, now=NOW)

    async def test_sales_for_window(self, builder):
        current, previous = await builder.sales_for_window(ORG, DateWindow.trailing(NOW, 30))

        assert current.product("p1").units == 10
        assert previous.product("p1").units == 5

    async def test_other_organization_is_isolated(self, builder):
        snapshot = await builder.build(OTHER_ORG, now=NOW)

        assert [row.product_id for row in snapshot.products] == ["x1"]
        assert snapshot.overview.total_units_sold == 4


class TestSnapshotStore:
    """Tests for versioned publish, read and pruning"""

    async def test_read_without_snapshot(self, store):
        assert await store.read(ORG) is None
        assert await store.read_metadata(ORG) is None

    async def test_publish_and_read(self, store, builder):
        published = await store.publish(await builder.build(ORG, now=NOW))

        snapshot = await store.read(ORG)

        assert published.generation == 1
        assert snapshot.generation == 1
        assert snapshot.snapshot_id == published.snapshot_id
        assert snapshot.overview == published.overview
        assert snapshot.products == published.products

    async def test_generations_advance_and_prune(self, store, builder, seeded_scope):
        for hours in range(4):
            await store.publish(await builder.build(ORG, now=NOW + timedelta(hours=hours)))

        metadata = await store.read_metadata(ORG)
        assert metadata.generation == 4
        assert metadata.computed_at == NOW + timedelta(hours=3)

        async with seeded_scope() as db:
            snapshots = await db.scalar(
                select(func.count()).select_from(InventorySnapshot).where(InventorySnapshot.organization_id == ORG)
            )
            rows = await db.scalar(select(func.count()).select_from(InventoryProductSummary))

        assert snapshots == 2
        assert rows == 2 * 3

    async def test_failed_publish_keeps_previous_generation(self, store, builder):
        first = await store.publish(await builder.build(ORG, now=NOW))
        broken = await builder.build(ORG, now=NOW + timedelta(hours=1))
        broken_row = replace(broken.products[0], name=None)

        with pytest.raises(Exception):
            await store.publish(replace(broken, products=[broken_row] + broken.products[1:]))

        snapshot = await store.read(ORG)
        assert snapshot.generation == first.generation
        assert snapshot.computed_at == NOW
        assert len(snapshot.products) == 3

    async def test_organizations_have_separate_pointers(self, store, builder):
        await store.publish(await builder.build(ORG, now=NOW))
        await store.publish(await builder.build(OTHER_ORG, now=NOW))

        assert (await store.read(ORG)).generation == 1
        assert [row.product_id for row in (await store.read(OTHER_ORG)).products] == ["x1"]
