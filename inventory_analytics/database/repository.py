"""
Inventory Repository

Read-only, organization-scoped access to the source tables. Rows are mapped
to the plain records the analytics engine computes over.
"""

from datetime import datetime
from typing import Iterable, List, Sequence, Set, Tuple

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from inventory_analytics.analytics.costs import VariantCostCache
from inventory_analytics.analytics.records import (
    CostOverride,
    InventoryLevelRecord,
    LineItemRecord,
    OrderRecord,
    ProductRecord,
    VariantRecord,
)
from inventory_analytics.analytics.windows import DateWindow
from inventory_analytics.database.models import (
    InventoryLevel,
    Order,
    OrderLineItem,
    Product,
    ProductVariant,
    VariantCost,
)

logger = structlog.get_logger(__name__)


def _batched(items: Sequence[str], size: int) -> Iterable[Sequence[str]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class InventoryRepository:
    """
    Source data for one organization.

    Example:
        async with get_db() as db:
            repo = InventoryRepository(db, organization_id)
            variants = await repo.list_variants()
    """

    def __init__(self, session: AsyncSession, organization_id: str, batch_size: int = 10):
        self.session = session
        self.organization_id = organization_id
        self.batch_size = max(1, batch_size)

    async def list_products(self) -> List[ProductRecord]:
        result = await self.session.execute(
            select(Product)
            .where(Product.organization_id == self.organization_id)
            .order_by(Product.id)
        )
        return [
            ProductRecord(
                id=row.id,
                title=row.title,
                handle=row.handle,
                product_type=row.product_type,
                vendor=row.vendor,
                featured_image=row.featured_image,
            )
            for row in result.scalars()
        ]

    async def list_variants(self) -> List[VariantRecord]:
        result = await self.session.execute(
            select(ProductVariant)
            .where(ProductVariant.organization_id == self.organization_id)
            .order_by(ProductVariant.product_id, ProductVariant.id)
        )
        return [
            VariantRecord(
                id=row.id,
                product_id=row.product_id,
                sku=row.sku,
                title=row.title,
                price=row.price,
                compare_at_price=row.compare_at_price,
                inventory_quantity=row.inventory_quantity,
            )
            for row in result.scalars()
        ]

    async def list_inventory_levels(self) -> List[InventoryLevelRecord]:
        result = await self.session.execute(
            select(InventoryLevel).where(InventoryLevel.organization_id == self.organization_id)
        )
        return [
            InventoryLevelRecord(
                variant_id=row.variant_id,
                available=row.available,
                incoming=row.incoming,
                committed=row.committed,
                updated_at=row.updated_at,
                synced_at=row.synced_at,
            )
            for row in result.scalars()
        ]

    async def list_cost_overrides(self) -> List[CostOverride]:
        result = await self.session.execute(
            select(VariantCost).where(VariantCost.organization_id == self.organization_id)
        )
        return [
            CostOverride(
                variant_id=row.variant_id,
                cogs_per_unit=row.cogs_per_unit,
                handling_per_unit=row.handling_per_unit,
                tax_percent=row.tax_percent,
            )
            for row in result.scalars()
        ]

    async def load_cost_cache(self) -> VariantCostCache:
        """Prime a cost cache with one query"""
        return VariantCostCache.from_overrides(await self.list_cost_overrides())

    async def fetch_orders(self, window: DateWindow) -> List[OrderRecord]:
        """Orders created in `[start, end)`, via the (organization, created_at) index"""
        result = await self.session.execute(
            select(Order.id, Order.created_at)
            .where(
                Order.organization_id == self.organization_id,
                Order.created_at >= window.start,
                Order.created_at < window.end,
            )
            .order_by(Order.created_at)
        )
        return [OrderRecord(id=row.id, created_at=row.created_at) for row in result]

    async def fetch_line_items(self, order_ids: Sequence[str]) -> List[LineItemRecord]:
        """
        Line items of the given orders.

        Orders are looked up in batches of `batch_size` ids so a wide window
        never builds one unbounded IN clause. Batches run one after another
        because a session cannot run queries concurrently.
        """
        items: List[LineItemRecord] = []
        batches = 0
        for batch in _batched(list(order_ids), self.batch_size):
            batches += 1
            result = await self.session.execute(
                select(OrderLineItem).where(
                    OrderLineItem.organization_id == self.organization_id,
                    OrderLineItem.order_id.in_(batch),
                )
            )
            items.extend(
                LineItemRecord(
                    order_id=row.order_id,
                    variant_id=row.variant_id,
                    product_id=row.product_id,
                    quantity=row.quantity or 0,
                    price=row.price,
                    total_discount=row.total_discount,
                )
                for row in result.scalars()
            )

        logger.debug(
            "Line items fetched",
            organization_id=self.organization_id,
            orders=len(order_ids),
            batches=batches,
            items=len(items),
        )
        return items

    async def fetch_orders_with_items(
        self, window: DateWindow
    ) -> Tuple[List[OrderRecord], List[LineItemRecord]]:
        orders = await self.fetch_orders(window)
        if not orders:
            return orders, []
        return orders, await self.fetch_line_items([order.id for order in orders])

    async def sold_variant_ids_since(self, cutoff: datetime) -> Set[str]:
        """Variants appearing on any order created after `cutoff`"""
        result = await self.session.execute(
            select(Order.id).where(
                Order.organization_id == self.organization_id,
                Order.created_at > cutoff,
            )
        )
        order_ids = list(result.scalars())
        if not order_ids:
            return set()
        items = await self.fetch_line_items(order_ids)
        return {item.variant_id for item in items if item.variant_id}
