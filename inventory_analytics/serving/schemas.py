"""
Inventory API Schemas

Request and response models shared by the service façade and the routes.
"""

from datetime import date, datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

SortDirection = Literal["asc", "desc"]


class DateRange(BaseModel):
    """Inclusive calendar-date range; reversed bounds are swapped"""
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @property
    def is_empty(self) -> bool:
        return self.start_date is None and self.end_date is None

    @property
    def is_bounded(self) -> bool:
        return self.start_date is not None and self.end_date is not None


class ProductFilters(BaseModel):
    stock_level: str = "all"
    category: Optional[str] = None
    abc_category: Optional[str] = None
    search: Optional[str] = None


class ProductSort(BaseModel):
    field: str = "available"
    direction: SortDirection = "desc"


class PageRequest(BaseModel):
    page: int = 1
    page_size: Optional[int] = None


class SnapshotInfo(BaseModel):
    computed_at: datetime
    analysis_window_days: int
    is_stale: bool
    generation: Optional[int] = None


class VariantRow(BaseModel):
    id: str
    sku: str
    title: str
    price: float
    stock: int
    reserved: int
    available: int


class ProductRow(BaseModel):
    id: str
    name: str
    sku: str
    image: Optional[str] = None
    category: str
    vendor: str
    stock: int
    reserved: int
    available: int
    reorder_point: int
    stock_status: str
    price: float
    cost: float
    margin: float
    turnover_rate: float
    units_sold: int
    period_revenue: float
    last_sold_at: Optional[datetime] = None
    abc_category: str
    variant_count: int
    variants: Optional[List[VariantRow]] = None


class Pagination(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int
    has_more: bool


class PagedProducts(BaseModel):
    items: List[ProductRow]
    pagination: Pagination
    snapshot: Optional[SnapshotInfo] = None


class PerformerOut(BaseModel):
    product_id: str
    name: str
    units_sold: int
    previous_units_sold: int
    revenue: float
    change: float


class TopPerformersOut(BaseModel):
    best: List[PerformerOut] = Field(default_factory=list)
    worst: List[PerformerOut] = Field(default_factory=list)
    trending: List[PerformerOut] = Field(default_factory=list)


class OverviewMetrics(BaseModel):
    """Dashboard overview; all zeros when there is no snapshot"""
    total_value: float = 0.0
    total_cogs: float = 0.0
    total_skus: int = 0
    total_units_in_stock: int = 0
    stock_coverage_days: int = 0
    dead_stock: int = 0
    health_score: int = 0
    turnover_rate: float = 0.0
    units_sold: int = 0
    revenue: float = 0.0
    cogs_sold: float = 0.0
    changes: Dict[str, float] = Field(default_factory=dict)
    status_counts: Dict[str, int] = Field(default_factory=dict)
    abc_counts: Dict[str, int] = Field(default_factory=dict)
    top_performers: TopPerformersOut = Field(default_factory=TopPerformersOut)
    analysis_window_days: int = 0
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
    snapshot: Optional[SnapshotInfo] = None


class StockAlertOut(BaseModel):
    id: str
    type: str
    product_id: str
    product_name: str
    variant_id: str
    variant_title: Optional[str] = None
    sku: str
    current_stock: int
    reorder_point: int
    days_until_stockout: Optional[float] = None
    message: str


class RefreshRequest(BaseModel):
    force: bool = False
    analysis_window_days: Optional[int] = Field(default=None, ge=1, le=365)


class RefreshResponse(BaseModel):
    skipped: bool
    computed_at: Optional[datetime] = None
