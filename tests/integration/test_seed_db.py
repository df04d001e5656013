"""
Integration Tests - Seeding a Synthetic Store
"""
from datetime import datetime

from sqlalchemy import func, select

from inventory_analytics.data.generators import StoreGenerator
from inventory_analytics.database.models import OrderLineItem, ProductVariant
from inventory_analytics.ingestion.seed_db import load_store
from inventory_analytics.snapshots.builder import SnapshotBuilder


class TestLoadStore:
    async def test_load_and_build(self, db_scope, inventory_settings):
        end = datetime(2024, 6, 1)
        data = StoreGenerator(seed=3).generate("demo-org", n_products=15, n_orders=60, days=45, end=end)

        counts = await load_store(db_scope, data)

        assert counts["products"] == 15
        assert counts["orders"] == 60
        async with db_scope() as db:
            variants = await db.scalar(select(func.count()).select_from(ProductVariant))
            items = await db.scalar(select(func.count()).select_from(OrderLineItem))
        assert variants == data["variants"].height
        assert items == data["order_line_items"].height

        snapshot = await SnapshotBuilder(db_scope, inventory_settings).build("demo-org", now=end)

        assert len(snapshot.products) == 15
        assert snapshot.overview.total_skus == data["variants"].height
        assert sum(snapshot.overview.abc_counts.values()) == 15
        assert all(row.available >= 0 for row in snapshot.products)
