"""
Snapshot Summary Types

Derived, immutable rows that make up an inventory snapshot: one overview per
organization and one summary row per product, each carrying variant rows.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from inventory_analytics.analytics.records import ABCCategory, StockStatus


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_datetime(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@dataclass(frozen=True)
class VariantSummary:
    id: str
    sku: str
    title: str
    price: float
    cost: float
    stock: int
    reserved: int
    available: int
    units_sold: int = 0
    last_sold_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sku": self.sku,
            "title": self.title,
            "price": self.price,
            "cost": self.cost,
            "stock": self.stock,
            "reserved": self.reserved,
            "available": self.available,
            "units_sold": self.units_sold,
            "last_sold_at": _isoformat(self.last_sold_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VariantSummary":
        return cls(
            id=data["id"],
            sku=data.get("sku") or "N/A",
            title=data.get("title") or "Default",
            price=float(data.get("price") or 0.0),
            cost=float(data.get("cost") or 0.0),
            stock=int(data.get("stock") or 0),
            reserved=int(data.get("reserved") or 0),
            available=int(data.get("available") or 0),
            units_sold=int(data.get("units_sold") or 0),
            last_sold_at=_parse_datetime(data.get("last_sold_at")),
        )


@dataclass(frozen=True)
class ProductSummary:
    """Denormalized per-product row of a snapshot"""
    product_id: str
    name: str
    sku: str
    category: str
    vendor: str
    stock: int
    reserved: int
    available: int
    reorder_point: int
    stock_status: StockStatus
    price: float
    cost: float
    margin: float
    turnover_rate: float
    abc_category: ABCCategory
    variant_count: int
    image: Optional[str] = None
    units_sold: int = 0
    period_revenue: float = 0.0
    previous_units_sold: int = 0
    last_sold_at: Optional[datetime] = None
    variants: List[VariantSummary] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.product_id

    def with_sales(
        self,
        units_sold: int,
        period_revenue: float,
        previous_units_sold: int,
        last_sold_at: Optional[datetime],
    ) -> "ProductSummary":
        """Copy with the sales figures of another window; structure is untouched"""
        return replace(
            self,
            units_sold=units_sold,
            period_revenue=period_revenue,
            previous_units_sold=previous_units_sold,
            last_sold_at=last_sold_at,
        )


@dataclass(frozen=True)
class OverviewSummary:
    total_value: float = 0.0
    total_cogs: float = 0.0
    total_skus: int = 0
    total_units_in_stock: int = 0
    stock_coverage_days: int = 0
    dead_stock: int = 0
    health_score: int = 0
    turnover_rate: float = 0.0
    total_units_sold: int = 0
    total_revenue: float = 0.0
    total_cogs_sold: float = 0.0
    previous_units_sold: int = 0
    previous_revenue: float = 0.0
    previous_cogs_sold: float = 0.0
    status_counts: Dict[str, int] = field(default_factory=dict)
    abc_counts: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class InventorySnapshotData:
    """One generation of an organization's inventory snapshot"""
    organization_id: str
    computed_at: datetime
    analysis_window_days: int
    overview: OverviewSummary
    products: List[ProductSummary] = field(default_factory=list)
    snapshot_id: Optional[int] = None
    generation: Optional[int] = None

    def age(self, now: datetime) -> timedelta:
        return now - self.computed_at

    def is_stale(self, now: datetime, ttl_seconds: float) -> bool:
        return self.age(now) > timedelta(seconds=ttl_seconds)
