"""
Snapshot Store

Append-only persistence of inventory snapshot generations. Readers go
through the per-organization pointer, so a generation becomes visible only
once all of its rows and the pointer swap have committed together.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Optional

import structlog
from sqlalchemy import delete, select

from inventory_analytics.analytics.records import ABCCategory, StockStatus
from inventory_analytics.analytics.summaries import (
    InventorySnapshotData,
    OverviewSummary,
    ProductSummary,
    VariantSummary,
)
from inventory_analytics.database.models import (
    InventoryProductSummary,
    InventorySnapshot,
    InventorySnapshotPointer,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SnapshotMetadata:
    snapshot_id: int
    generation: int
    computed_at: datetime
    analysis_window_days: int


def _overview_from_row(row: InventorySnapshot) -> OverviewSummary:
    return OverviewSummary(
        total_value=row.total_value or 0.0,
        total_cogs=row.total_cogs or 0.0,
        total_skus=row.total_skus or 0,
        total_units_in_stock=row.total_units_in_stock or 0,
        stock_coverage_days=row.stock_coverage_days or 0,
        dead_stock=row.dead_stock or 0,
        health_score=row.health_score or 0,
        turnover_rate=row.turnover_rate or 0.0,
        total_units_sold=row.total_units_sold or 0,
        total_revenue=row.total_revenue or 0.0,
        total_cogs_sold=row.total_cogs_sold or 0.0,
        previous_units_sold=row.previous_units_sold or 0,
        previous_revenue=row.previous_revenue or 0.0,
        previous_cogs_sold=row.previous_cogs_sold or 0.0,
        status_counts=dict(row.status_counts or {}),
        abc_counts=dict(row.abc_counts or {}),
    )


def _product_from_row(row: InventoryProductSummary) -> ProductSummary:
    return ProductSummary(
        product_id=row.product_id,
        name=row.name,
        sku=row.sku,
        image=row.image,
        category=row.category,
        vendor=row.vendor,
        stock=row.stock,
        reserved=row.reserved,
        available=row.available,
        reorder_point=row.reorder_point,
        stock_status=StockStatus(row.stock_status),
        price=row.price,
        cost=row.cost,
        margin=row.margin,
        turnover_rate=row.turnover_rate,
        abc_category=ABCCategory(row.abc_category),
        variant_count=row.variant_count,
        units_sold=row.units_sold or 0,
        period_revenue=row.period_revenue or 0.0,
        previous_units_sold=row.previous_units_sold or 0,
        last_sold_at=row.last_sold_at,
        variants=[VariantSummary.from_dict(item) for item in (row.variants or [])],
    )


def _product_to_row(snapshot: InventorySnapshotData, position: int, product: ProductSummary) -> InventoryProductSummary:
    return InventoryProductSummary(
        organization_id=snapshot.organization_id,
        product_id=product.product_id,
        computed_at=snapshot.computed_at,
        position=position,
        name=product.name,
        sku=product.sku,
        image=product.image,
        category=product.category,
        vendor=product.vendor,
        stock=product.stock,
        reserved=product.reserved,
        available=product.available,
        reorder_point=product.reorder_point,
        stock_status=product.stock_status.value,
        price=product.price,
        cost=product.cost,
        margin=product.margin,
        turnover_rate=product.turnover_rate,
        units_sold=product.units_sold,
        period_revenue=product.period_revenue,
        previous_units_sold=product.previous_units_sold,
        last_sold_at=product.last_sold_at,
        abc_category=product.abc_category.value,
        variant_count=product.variant_count,
        variants=[variant.to_dict() for variant in product.variants],
    )


class SnapshotStore:
    """
    Versioned snapshot storage.

    Args:
        session_scope: Zero-argument callable returning an async session
            context manager that commits on success and rolls back on error
        retained_generations: Generations kept per organization, newest first
    """

    def __init__(self, session_scope: Callable, retained_generations: int = 3):
        self.session_scope = session_scope
        self.retained_generations = max(2, retained_generations)

    async def read_metadata(self, organization_id: str) -> Optional[SnapshotMetadata]:
        """Current generation's identity and age, without loading rows"""
        async with self.session_scope() as session:
            result = await session.execute(
                select(
                    InventorySnapshotPointer.snapshot_id,
                    InventorySnapshotPointer.generation,
                    InventorySnapshotPointer.computed_at,
                    InventorySnapshot.analysis_window_days,
                )
                .join(InventorySnapshot, InventorySnapshot.id == InventorySnapshotPointer.snapshot_id)
                .where(InventorySnapshotPointer.organization_id == organization_id)
            )
            row = result.first()

        if row is None:
            return None
        return SnapshotMetadata(
            snapshot_id=row.snapshot_id,
            generation=row.generation,
            computed_at=row.computed_at,
            analysis_window_days=row.analysis_window_days,
        )

    async def read(self, organization_id: str) -> Optional[InventorySnapshotData]:
        """
        Load the current generation.

        Returns:
            The snapshot, or None when the organization has none yet
        """
        async with self.session_scope() as session:
            pointer = await session.get(InventorySnapshotPointer, organization_id)
            if pointer is None:
                return None

            snapshot = await session.get(InventorySnapshot, pointer.snapshot_id)
            if snapshot is None:
                logger.error("Snapshot pointer references a missing generation",
                             organization_id=organization_id, snapshot_id=pointer.snapshot_id)
                return None

            result = await session.execute(
                select(InventoryProductSummary)
                .where(InventoryProductSummary.snapshot_id == snapshot.id)
                .order_by(InventoryProductSummary.position)
            )
            products = [_product_from_row(row) for row in result.scalars()]

            return InventorySnapshotData(
                organization_id=organization_id,
                computed_at=snapshot.computed_at,
                analysis_window_days=snapshot.analysis_window_days,
                overview=_overview_from_row(snapshot),
                products=products,
                snapshot_id=snapshot.id,
                generation=pointer.generation,
            )

    async def publish(self, data: InventorySnapshotData) -> InventorySnapshotData:
        """
        Write a new generation and make it current.

        Rows, pointer swap and pruning share one transaction; if anything
        fails nothing of the new generation is visible.
        """
        overview = data.overview
        async with self.session_scope() as session:
            snapshot = InventorySnapshot(
                organization_id=data.organization_id,
                computed_at=data.computed_at,
                analysis_window_days=data.analysis_window_days,
                total_value=overview.total_value,
                total_cogs=overview.total_cogs,
                total_skus=overview.total_skus,
                total_units_in_stock=overview.total_units_in_stock,
                stock_coverage_days=overview.stock_coverage_days,
                dead_stock=overview.dead_stock,
                health_score=overview.health_score,
                turnover_rate=overview.turnover_rate,
                total_units_sold=overview.total_units_sold,
                total_revenue=overview.total_revenue,
                total_cogs_sold=overview.total_cogs_sold,
                previous_units_sold=overview.previous_units_sold,
                previous_revenue=overview.previous_revenue,
                previous_cogs_sold=overview.previous_cogs_sold,
                status_counts=dict(overview.status_counts),
                abc_counts=dict(overview.abc_counts),
            )
            snapshot.products = [
                _product_to_row(data, position, product)
                for position, product in enumerate(data.products)
            ]
            session.add(snapshot)
            await session.flush()

            pointer = await session.get(
                InventorySnapshotPointer, data.organization_id, with_for_update=True
            )
            if pointer is None:
                pointer = InventorySnapshotPointer(
                    organization_id=data.organization_id,
                    snapshot_id=snapshot.id,
                    computed_at=data.computed_at,
                    generation=1,
                )
                session.add(pointer)
            else:
                pointer.snapshot_id = snapshot.id
                pointer.computed_at = data.computed_at
                pointer.generation = pointer.generation + 1
            await session.flush()

            pruned = await self._prune(session, data.organization_id)
            generation = pointer.generation
            snapshot_id = snapshot.id

        logger.info(
            "Inventory snapshot published",
            organization_id=data.organization_id,
            snapshot_id=snapshot_id,
            generation=generation,
            computed_at=data.computed_at.isoformat(),
            products=len(data.products),
            pruned=pruned,
        )
        return replace(data, snapshot_id=snapshot_id, generation=generation)

    async def _prune(self, session, organization_id: str) -> int:
        """Drop generations beyond the retention count"""
        result = await session.execute(
            select(InventorySnapshot.id)
            .where(InventorySnapshot.organization_id == organization_id)
            .order_by(InventorySnapshot.id.desc())
            .offset(self.retained_generations)
        )
        stale_ids = list(result.scalars())
        if not stale_ids:
            return 0

        await session.execute(
            delete(InventoryProductSummary).where(InventoryProductSummary.snapshot_id.in_(stale_ids))
        )
        await session.execute(
            delete(InventorySnapshot).where(InventorySnapshot.id.in_(stale_ids))
        )
        return len(stale_ids)
