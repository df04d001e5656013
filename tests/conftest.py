"""
Test Suite Configuration
"""
from datetime import datetime, timedelta
from typing import List

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from inventory_analytics.analytics.records import (
    InventoryLevelRecord,
    LineItemRecord,
    OrderRecord,
    ProductRecord,
    VariantRecord,
)
from inventory_analytics.config.settings import InventorySettings
from inventory_analytics.database.connection import session_scope
from inventory_analytics.database.models import (
    Base,
    InventoryLevel,
    Order,
    OrderLineItem,
    Product,
    ProductVariant,
    VariantCost,
)

NOW = datetime(2024, 6, 1, 12, 0, 0)
ORG = "org-1"
OTHER_ORG = "org-2"


class FrozenClock:
    """Settable clock for staleness tests"""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def inventory_settings() -> InventorySettings:
    """Inventory settings with defaults; Redis-backed features stay off"""
    return InventorySettings(
        snapshot_ttl_seconds=300,
        default_analysis_days=30,
        retained_generations=2,
        auto_refresh_on_read=False,
    )


@pytest.fixture
async def test_engine():
    """In-memory SQLite engine shared by every session of one test"""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def db_scope(test_engine):
    """`get_db`-style session scope bound to the test engine"""
    factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return session_scope(factory)


# =============================================================================
# SAMPLE STORE
# =============================================================================
#
# org-1, 30-day window ending at NOW:
#   Alpha Tee   (p1): variants S (40 available, override cost 8) and M (5, never sold)
#   Beta Mug    (p2): one variant, 100 available, compare-at 4 below price 10
#   Gamma Lamp  (p3): one variant, out of stock
#   o1 (2 days ago):  10 x Tee S at 20, 3 x Mug at 10
#   o2 (40 days ago): 5 x Tee S at 20        -> previous window
# org-2 holds one product that must never leak into org-1 results.

def sample_products() -> List[ProductRecord]:
    return [
        ProductRecord(id="p1", title="Alpha Tee", handle="alpha-tee", product_type="Apparel", vendor="Blue Fern"),
        ProductRecord(id="p2", title="Beta Mug", handle=None, product_type="Home", vendor="Atlas Goods"),
        ProductRecord(id="p3", title="Gamma Lamp", handle="gamma-lamp", product_type=None, vendor=None),
    ]


def sample_variants() -> List[VariantRecord]:
    return [
        VariantRecord(id="v1a", product_id="p1", sku="AT-S", title="S", price=20.0, inventory_quantity=10),
        VariantRecord(id="v1b", product_id="p1", sku="AT-M", title="M", price=20.0),
        VariantRecord(id="v2", product_id="p2", sku="BM-1", title=None, price=10.0, compare_at_price=4.0),
        VariantRecord(id="v3", product_id="p3", sku=None, title="Default", price=50.0, inventory_quantity=-2),
    ]


def sample_levels() -> List[InventoryLevelRecord]:
    return [
        InventoryLevelRecord(variant_id="v1a", available=40, incoming=0, committed=0, updated_at=NOW - timedelta(hours=1)),
        InventoryLevelRecord(variant_id="v1b", available=5, committed=0, synced_at=NOW - timedelta(hours=2)),
        InventoryLevelRecord(variant_id="v2", available=100, committed=2, updated_at=NOW - timedelta(hours=3)),
        InventoryLevelRecord(variant_id="v3", available=0, updated_at=NOW - timedelta(hours=4)),
    ]


def sample_orders() -> List[OrderRecord]:
    return [
        OrderRecord(id="o1", created_at=NOW - timedelta(days=2)),
        OrderRecord(id="o2", created_at=NOW - timedelta(days=40)),
    ]


def sample_line_items() -> List[LineItemRecord]:
    return [
        LineItemRecord(order_id="o1", variant_id="v1a", quantity=10, price=20.0, total_discount=0.0),
        LineItemRecord(order_id="o1", variant_id="v2", quantity=3, price=10.0),
        LineItemRecord(order_id="o2", variant_id="v1a", quantity=5, price=20.0),
    ]


async def seed_sample_store(scope) -> None:
    """Insert the sample store plus a foreign organization's product"""
    async with scope() as db:
        for product in sample_products():
            db.add(Product(
                id=product.id,
                organization_id=ORG,
                title=product.title,
                handle=product.handle,
                product_type=product.product_type,
                vendor=product.vendor,
            ))
        db.add(Product(id="x1", organization_id=OTHER_ORG, title="Foreign Widget"))
        await db.flush()

        for variant in sample_variants():
            db.add(ProductVariant(
                id=variant.id,
                organization_id=ORG,
                product_id=variant.product_id,
                sku=variant.sku,
                title=variant.title,
                price=variant.price,
                compare_at_price=variant.compare_at_price,
                inventory_quantity=variant.inventory_quantity,
            ))
        db.add(ProductVariant(id="xv1", organization_id=OTHER_ORG, product_id="x1", price=5.0, inventory_quantity=7))
        await db.flush()

        for index, level in enumerate(sample_levels()):
            db.add(InventoryLevel(
                id=f"lvl-{index}",
                organization_id=ORG,
                variant_id=level.variant_id,
                available=level.available,
                incoming=level.incoming,
                committed=level.committed,
                updated_at=level.updated_at,
                synced_at=level.synced_at,
            ))
        db.add(VariantCost(id="cost-1", organization_id=ORG, variant_id="v1a", cogs_per_unit=8.0))

        for order in sample_orders():
            db.add(Order(id=order.id, organization_id=ORG, created_at=order.created_at))
        db.add(Order(id="xo1", organization_id=OTHER_ORG, created_at=NOW - timedelta(days=1)))
        await db.flush()

        for index, item in enumerate(sample_line_items()):
            db.add(OrderLineItem(
                id=f"li-{index}",
                organization_id=ORG,
                order_id=item.order_id,
                variant_id=item.variant_id,
                product_id=item.product_id,
                quantity=item.quantity,
                price=item.price,
                total_discount=item.total_discount,
            ))
        db.add(OrderLineItem(id="xli", organization_id=OTHER_ORG, order_id="xo1", variant_id="xv1", quantity=4))


@pytest.fixture
async def seeded_scope(db_scope):
    await seed_sample_store(db_scope)
    return db_scope
