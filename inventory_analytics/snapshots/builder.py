"""
Snapshot Builder

Loads one organization's source data and computes a new snapshot
generation. Also serves the cheap per-request path that only re-aggregates
sales for a caller-chosen window.
"""

import time
from datetime import datetime, timedelta
from typing import Callable, Optional, Tuple

import structlog

from inventory_analytics.analytics.classification import ReplenishmentPolicy
from inventory_analytics.analytics.sales import SalesAggregator, SalesBreakdown
from inventory_analytics.analytics.snapshot import compute_snapshot
from inventory_analytics.analytics.summaries import InventorySnapshotData
from inventory_analytics.analytics.windows import DateWindow, utcnow
from inventory_analytics.config.settings import InventorySettings
from inventory_analytics.database.repository import InventoryRepository

logger = structlog.get_logger(__name__)


class SnapshotBuilder:
    """
    Computes snapshots from the source tables.

    Args:
        session_scope: Zero-argument callable returning an async session
            context manager
        settings: Inventory tuning (windows, lookback, batch size, policy)
    """

    def __init__(self, session_scope: Callable, settings: InventorySettings):
        self.session_scope = session_scope
        self.settings = settings
        self.policy = ReplenishmentPolicy(
            lead_time_days=settings.lead_time_days,
            safety_stock_days=settings.safety_stock_days,
        )

    def _repository(self, session, organization_id: str) -> InventoryRepository:
        return InventoryRepository(session, organization_id, batch_size=self.settings.order_items_batch_size)

    async def build(
        self,
        organization_id: str,
        analysis_window_days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> InventorySnapshotData:
        """
        Compute a snapshot over the trailing analysis window.

        Nothing is written; the result is handed to the store for publishing.
        """
        now = now or utcnow()
        days = max(1, int(analysis_window_days or self.settings.default_analysis_days))
        window = DateWindow.trailing(now, days)
        previous_window = window.previous()
        dead_stock_cutoff = now - timedelta(days=self.settings.dead_stock_lookback_days)

        start = time.perf_counter()
        async with self.session_scope() as session:
            repo = self._repository(session, organization_id)
            products = await repo.list_products()
            variants = await repo.list_variants()
            levels = await repo.list_inventory_levels()
            cost_cache = await repo.load_cost_cache()
            orders, items = await repo.fetch_orders_with_items(window)
            previous_orders, previous_items = await repo.fetch_orders_with_items(previous_window)
            sold_variant_ids = await repo.sold_variant_ids_since(dead_stock_cutoff)

        aggregator = SalesAggregator(variants, cost_cache)
        current = aggregator.aggregate(orders, items, window)
        previous = aggregator.aggregate(previous_orders, previous_items, previous_window)

        snapshot = compute_snapshot(
            organization_id=organization_id,
            products=products,
            variants=variants,
            levels=levels,
            cost_cache=cost_cache,
            current=current,
            previous=previous,
            sold_variant_ids=sold_variant_ids,
            analysis_days=window.analysis_days,
            computed_at=now,
            policy=self.policy,
        )

        logger.info(
            "Inventory snapshot built",
            organization_id=organization_id,
            analysis_days=window.analysis_days,
            orders=len(orders),
            previous_orders=len(previous_orders),
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return snapshot

    async def sales_for_window(
        self,
        organization_id: str,
        window: DateWindow,
    ) -> Tuple[SalesBreakdown, SalesBreakdown]:
        """
        Aggregate sales for a window and the window before it.

        Only variants and cost overrides are loaded, each once; inventory
        levels are not touched.
        """
        previous_window = window.previous()
        async with self.session_scope() as session:
            repo = self._repository(session, organization_id)
            variants = await repo.list_variants()
            cost_cache = await repo.load_cost_cache()
            orders, items = await repo.fetch_orders_with_items(window)
            previous_orders, previous_items = await repo.fetch_orders_with_items(previous_window)

        aggregator = SalesAggregator(variants, cost_cache)
        return (
            aggregator.aggregate(orders, items, window),
            aggregator.aggregate(previous_orders, previous_items, previous_window),
        )
