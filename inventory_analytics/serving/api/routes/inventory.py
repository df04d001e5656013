"""
Inventory API Endpoints

REST API for inventory analytics: overview, product list, export, alerts
and snapshot refresh.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response
import structlog

from inventory_analytics.analytics.windows import utcnow
from inventory_analytics.serving.api.dependencies import get_inventory_service, get_organization_id
from inventory_analytics.serving.inventory import InventoryAnalyticsService
from inventory_analytics.serving.schemas import (
    DateRange,
    OverviewMetrics,
    PagedProducts,
    PageRequest,
    ProductFilters,
    ProductSort,
    RefreshRequest,
    RefreshResponse,
    SortDirection,
    StockAlertOut,
)
from inventory_analytics.snapshots.refresher import SnapshotRebuildError

router = APIRouter()
logger = structlog.get_logger(__name__)


def _date_range(start_date: Optional[date], end_date: Optional[date]) -> DateRange:
    return DateRange(start_date=start_date, end_date=end_date)


@router.get("/overview", response_model=OverviewMetrics)
async def get_overview(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    organization_id: Optional[str] = Depends(get_organization_id),
    service: InventoryAnalyticsService = Depends(get_inventory_service),
) -> OverviewMetrics:
    """
    Inventory overview.

    Valuation, health score, coverage, dead stock and turnover come from the
    current snapshot; sales figures and period changes follow the requested
    date range when one is given.
    """
    return await service.get_overview(organization_id, _date_range(start_date, end_date))


@router.get("/products", response_model=PagedProducts)
async def list_products(
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1),
    stock_level: str = "all",
    category: Optional[str] = None,
    abc_category: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: str = "available",
    sort_order: SortDirection = "desc",
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    organization_id: Optional[str] = Depends(get_organization_id),
    service: InventoryAnalyticsService = Depends(get_inventory_service),
) -> PagedProducts:
    """
    List products with filtering, search, sorting and pagination.
    """
    return await service.get_product_list(
        organization_id,
        date_range=_date_range(start_date, end_date),
        filters=ProductFilters(
            stock_level=stock_level,
            category=category,
            abc_category=abc_category,
            search=search,
        ),
        sort=ProductSort(field=sort_by, direction=sort_order),
        pagination=PageRequest(page=page, page_size=page_size),
    )


@router.get("/products/export")
async def export_products(
    stock_level: str = "all",
    category: Optional[str] = None,
    abc_category: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: str = "available",
    sort_order: SortDirection = "desc",
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    organization_id: Optional[str] = Depends(get_organization_id),
    service: InventoryAnalyticsService = Depends(get_inventory_service),
) -> Response:
    """
    Export the filtered and sorted product list as CSV.
    """
    frame = await service.export_products(
        organization_id,
        date_range=_date_range(start_date, end_date),
        filters=ProductFilters(
            stock_level=stock_level,
            category=category,
            abc_category=abc_category,
            search=search,
        ),
        sort=ProductSort(field=sort_by, direction=sort_order),
    )
    filename = f"inventory-report-{utcnow().date().isoformat()}.csv"
    return Response(
        content=frame.write_csv(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/alerts", response_model=Optional[List[StockAlertOut]])
async def get_alerts(
    limit: Optional[int] = Query(None, ge=0, le=500),
    organization_id: Optional[str] = Depends(get_organization_id),
    service: InventoryAnalyticsService = Depends(get_inventory_service),
) -> Optional[List[StockAlertOut]]:
    """
    Stock alerts ordered by severity.

    Returns null until the organization has a snapshot.
    """
    return await service.get_alerts(organization_id, limit=limit)


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_snapshot(
    request: Optional[RefreshRequest] = Body(default=None),
    organization_id: Optional[str] = Depends(get_organization_id),
    service: InventoryAnalyticsService = Depends(get_inventory_service),
) -> RefreshResponse:
    """
    Rebuild the inventory snapshot unless the current one is fresh.
    """
    request = request or RefreshRequest()
    try:
        return await service.refresh(
            organization_id,
            force=request.force,
            analysis_window_days=request.analysis_window_days,
        )
    except SnapshotRebuildError as e:
        logger.error("Snapshot refresh failed", organization_id=organization_id, error=str(e.cause))
        raise HTTPException(status_code=503, detail="Inventory snapshot rebuild failed")
