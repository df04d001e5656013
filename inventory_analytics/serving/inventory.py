"""
Inventory Analytics Service

Read façade over the snapshot cache. Reads return whatever generation is
current and schedule a background rebuild when it is stale; a caller-chosen
date range only re-aggregates sales, never the structural snapshot fields.
"""

from datetime import timedelta
from typing import Callable, List, Optional, Tuple

import polars as pl
import structlog
from redis.exceptions import RedisError

from inventory_analytics.analytics.alerts import AlertGenerator
from inventory_analytics.analytics.metrics import PerformerEntry, percent_change, rank_top_performers
from inventory_analytics.analytics.sales import SalesBreakdown
from inventory_analytics.analytics.snapshot import (
    apply_sales_window,
    apply_sales_window_to_overview,
    variant_stock_positions,
)
from inventory_analytics.analytics.summaries import InventorySnapshotData, ProductSummary
from inventory_analytics.analytics.windows import DateWindow, utcnow, window_from_dates
from inventory_analytics.config.settings import InventorySettings
from inventory_analytics.serving.cache import CacheManager
from inventory_analytics.serving.listing import (
    export_frame,
    filter_products,
    paginate,
    sort_products,
    to_product_row,
)
from inventory_analytics.serving.schemas import (
    DateRange,
    OverviewMetrics,
    PagedProducts,
    PageRequest,
    Pagination,
    PerformerOut,
    ProductFilters,
    ProductSort,
    RefreshResponse,
    SnapshotInfo,
    StockAlertOut,
    TopPerformersOut,
)
from inventory_analytics.snapshots.builder import SnapshotBuilder
from inventory_analytics.snapshots.locks import RedisRebuildLock
from inventory_analytics.snapshots.refresher import SnapshotRefresher
from inventory_analytics.snapshots.store import SnapshotStore

logger = structlog.get_logger(__name__)

SalesWindow = Tuple[DateWindow, SalesBreakdown, SalesBreakdown]


def _performer(entry: PerformerEntry) -> PerformerOut:
    return PerformerOut(
        product_id=entry.product_id,
        name=entry.name,
        units_sold=entry.units_sold,
        previous_units_sold=entry.previous_units_sold,
        revenue=entry.revenue,
        change=entry.change,
    )


class InventoryAnalyticsService:
    """
    Inventory analytics operations for authenticated organizations.

    A missing organization id yields an empty result from every
    operation rather than an error.
    """

    def __init__(
        self,
        store: SnapshotStore,
        builder: SnapshotBuilder,
        refresher: SnapshotRefresher,
        settings: InventorySettings,
        sales_cache: Optional[CacheManager] = None,
        clock: Callable = utcnow,
    ):
        self.store = store
        self.builder = builder
        self.refresher = refresher
        self.settings = settings
        self.sales_cache = sales_cache
        self.clock = clock

    # ------------------------------------------------------------------
    # Snapshot access
    # ------------------------------------------------------------------

    async def _load_snapshot(self, organization_id: str) -> Optional[InventorySnapshotData]:
        snapshot = await self.store.read(organization_id)
        if self.settings.auto_refresh_on_read and self.refresher.is_stale(snapshot):
            scheduled = self.refresher.trigger(organization_id)
            logger.info(
                "Stale inventory snapshot served",
                organization_id=organization_id,
                has_snapshot=snapshot is not None,
                rebuild_scheduled=scheduled,
            )
        return snapshot

    def _snapshot_info(self, snapshot: InventorySnapshotData) -> SnapshotInfo:
        return SnapshotInfo(
            computed_at=snapshot.computed_at,
            analysis_window_days=snapshot.analysis_window_days,
            is_stale=self.refresher.is_stale(snapshot),
            generation=snapshot.generation,
        )

    def _cache_key(self, snapshot: InventorySnapshotData, window: DateWindow) -> str:
        return (
            f"{snapshot.organization_id}:{snapshot.generation}:"
            f"{window.start.isoformat()}:{window.end.isoformat()}"
        )

    async def _sales_window(
        self,
        snapshot: InventorySnapshotData,
        date_range: Optional[DateRange],
    ) -> Optional[SalesWindow]:
        """Sales for the requested range and the one before it, or None for the snapshot default"""
        if date_range is None or date_range.is_empty:
            return None

        window = window_from_dates(
            date_range.start_date,
            date_range.end_date,
            snapshot.analysis_window_days,
            now=self.clock(),
        )
        use_cache = (
            date_range.is_bounded
            and self.sales_cache is not None
            and self.sales_cache.available
        )
        key = self._cache_key(snapshot, window)

        if use_cache:
            try:
                cached = await self.sales_cache.get(key)
            except RedisError as e:
                logger.warning("Sales window cache read failed", key=key, error=str(e))
                cached = None
            if isinstance(cached, dict) and "current" in cached and "previous" in cached:
                return (
                    window,
                    SalesBreakdown.from_dict(cached["current"], window),
                    SalesBreakdown.from_dict(cached["previous"], window.previous()),
                )

        current, previous = await self.builder.sales_for_window(snapshot.organization_id, window)

        if use_cache:
            try:
                await self.sales_cache.set(key, {"current": current.to_dict(), "previous": previous.to_dict()})
            except RedisError as e:
                logger.warning("Sales window cache write failed", key=key, error=str(e))

        return window, current, previous

    async def _product_rows(
        self,
        organization_id: Optional[str],
        date_range: Optional[DateRange],
    ) -> Tuple[Optional[InventorySnapshotData], List[ProductSummary]]:
        if not organization_id:
            return None, []
        snapshot = await self._load_snapshot(organization_id)
        if snapshot is None:
            return None, []

        rows = snapshot.products
        sales = await self._sales_window(snapshot, date_range)
        if sales is not None:
            _, current, previous = sales
            rows = apply_sales_window(rows, current, previous)
        return snapshot, rows

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def get_overview(
        self,
        organization_id: Optional[str],
        date_range: Optional[DateRange] = None,
    ) -> OverviewMetrics:
        """Totals, health, coverage, dead stock, period deltas and top performers"""
        if not organization_id:
            return OverviewMetrics()
        snapshot = await self._load_snapshot(organization_id)
        if snapshot is None:
            return OverviewMetrics()

        overview = snapshot.overview
        products = snapshot.products
        analysis_days = snapshot.analysis_window_days
        period_end = snapshot.computed_at
        period_start = period_end - timedelta(days=analysis_days)

        sales = await self._sales_window(snapshot, date_range)
        if sales is not None:
            window, current, previous = sales
            analysis_days = window.analysis_days
            overview = apply_sales_window_to_overview(overview, current, previous, analysis_days)
            products = apply_sales_window(products, current, previous)
            period_start, period_end = window.start, window.end

        top = rank_top_performers(
            [
                PerformerEntry(
                    product_id=row.product_id,
                    name=row.name,
                    units_sold=row.units_sold,
                    previous_units_sold=row.previous_units_sold,
                    revenue=row.period_revenue,
                )
                for row in products
            ],
            limit=self.settings.top_performers_limit,
        )

        return OverviewMetrics(
            total_value=overview.total_value,
            total_cogs=overview.total_cogs,
            total_skus=overview.total_skus,
            total_units_in_stock=overview.total_units_in_stock,
            stock_coverage_days=overview.stock_coverage_days,
            dead_stock=overview.dead_stock,
            health_score=overview.health_score,
            turnover_rate=overview.turnover_rate,
            units_sold=overview.total_units_sold,
            revenue=overview.total_revenue,
            cogs_sold=overview.total_cogs_sold,
            changes={
                "units_sold": percent_change(overview.total_units_sold, overview.previous_units_sold),
                "revenue": percent_change(overview.total_revenue, overview.previous_revenue),
                "cogs_sold": percent_change(overview.total_cogs_sold, overview.previous_cogs_sold),
            },
            status_counts=dict(overview.status_counts),
            abc_counts=dict(overview.abc_counts),
            top_performers=TopPerformersOut(
                best=[_performer(entry) for entry in top.best],
                worst=[_performer(entry) for entry in top.worst],
                trending=[_performer(entry) for entry in top.trending],
            ),
            analysis_window_days=analysis_days,
            period_start=period_start,
            period_end=period_end,
            snapshot=self._snapshot_info(snapshot),
        )

    async def get_product_list(
        self,
        organization_id: Optional[str],
        date_range: Optional[DateRange] = None,
        filters: Optional[ProductFilters] = None,
        sort: Optional[ProductSort] = None,
        pagination: Optional[PageRequest] = None,
    ) -> PagedProducts:
        """Filtered, searched, sorted and paginated product rows"""
        pagination = pagination or PageRequest()
        page_size = min(
            max(1, pagination.page_size or self.settings.default_page_size),
            self.settings.max_page_size,
        )

        snapshot, rows = await self._product_rows(organization_id, date_range)
        if snapshot is None:
            return PagedProducts(
                items=[],
                pagination=Pagination(page=1, page_size=page_size, total=0, total_pages=0, has_more=False),
            )

        ordered = sort_products(filter_products(rows, filters), sort)
        page_rows, page_info = paginate(ordered, pagination.page, page_size)
        return PagedProducts(
            items=[to_product_row(row) for row in page_rows],
            pagination=page_info,
            snapshot=self._snapshot_info(snapshot),
        )

    async def export_products(
        self,
        organization_id: Optional[str],
        date_range: Optional[DateRange] = None,
        filters: Optional[ProductFilters] = None,
        sort: Optional[ProductSort] = None,
    ) -> pl.DataFrame:
        """Every filtered, sorted row as an export table"""
        _, rows = await self._product_rows(organization_id, date_range)
        return export_frame(sort_products(filter_products(rows, filters), sort))

    async def get_alerts(
        self,
        organization_id: Optional[str],
        limit: Optional[int] = None,
    ) -> Optional[List[StockAlertOut]]:
        """
        Severity-ordered stock alerts.

        Returns:
            None when there is no snapshot yet, which is distinct from an
            empty list of alerts
        """
        if not organization_id:
            return None
        snapshot = await self._load_snapshot(organization_id)
        if snapshot is None:
            return None

        generator = AlertGenerator(self.builder.policy, snapshot.analysis_window_days)
        alerts = generator.generate(
            variant_stock_positions(snapshot.products),
            limit=self.settings.default_alert_limit if limit is None else limit,
        )
        return [StockAlertOut(**alert.to_dict()) for alert in alerts]

    async def refresh(
        self,
        organization_id: Optional[str],
        force: bool = False,
        analysis_window_days: Optional[int] = None,
    ) -> RefreshResponse:
        """
        Rebuild the snapshot unless it is still fresh.

        Raises:
            SnapshotRebuildError: If the rebuild failed
        """
        if not organization_id:
            return RefreshResponse(skipped=True)
        result = await self.refresher.refresh(organization_id, force=force, analysis_window_days=analysis_window_days)
        return RefreshResponse(skipped=result.skipped, computed_at=result.computed_at)


def create_inventory_service(
    session_scope: Callable,
    settings: InventorySettings,
    sales_cache: Optional[CacheManager] = None,
    redis_client: Optional[Callable] = None,
    clock: Callable = utcnow,
) -> InventoryAnalyticsService:
    """
    Wire store, builder and refresher into a service.

    Args:
        session_scope: Zero-argument callable returning a session context
            manager, e.g. `get_db`
        settings: Inventory tuning
        sales_cache: Optional Redis cache for per-request sales windows
        redis_client: Optional callable returning a Redis client; enables
            the cross-worker rebuild lock
    """
    store = SnapshotStore(session_scope, retained_generations=settings.retained_generations)
    builder = SnapshotBuilder(session_scope, settings)
    lock = (
        RedisRebuildLock(redis_client, ttl_seconds=settings.rebuild_lock_ttl_seconds)
        if redis_client is not None else None
    )
    refresher = SnapshotRefresher(
        store,
        builder,
        ttl_seconds=settings.snapshot_ttl_seconds,
        default_window_days=settings.default_analysis_days,
        lock=lock,
        clock=clock,
    )
    return InventoryAnalyticsService(
        store=store,
        builder=builder,
        refresher=refresher,
        settings=settings,
        sales_cache=sales_cache,
        clock=clock,
    )
