"""
Sales Aggregation

Joins order line items to variants and products over a date window and rolls
them up into units, revenue, COGS and last-sold timestamps.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

import structlog

from inventory_analytics.analytics.costs import HEURISTIC_COST_RATIO, VariantCostCache, as_number
from inventory_analytics.analytics.records import LineItemRecord, OrderRecord, VariantRecord
from inventory_analytics.analytics.windows import DateWindow

logger = structlog.get_logger(__name__)


@dataclass
class SalesStats:
    """Accumulated sales for one variant, product or the whole window"""
    units: int = 0
    revenue: float = 0.0
    cogs: float = 0.0
    last_sold_at: Optional[datetime] = None

    def add(self, units: int, revenue: float, cogs: float, sold_at: Optional[datetime]) -> None:
        self.units += units
        self.revenue += revenue
        self.cogs += cogs
        if sold_at is not None and (self.last_sold_at is None or sold_at > self.last_sold_at):
            self.last_sold_at = sold_at

    def merge(self, other: "SalesStats") -> None:
        self.add(other.units, other.revenue, other.cogs, other.last_sold_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "units": self.units,
            "revenue": self.revenue,
            "cogs": self.cogs,
            "last_sold_at": self.last_sold_at.isoformat() if self.last_sold_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SalesStats":
        last_sold = data.get("last_sold_at")
        return cls(
            units=int(data.get("units", 0)),
            revenue=float(data.get("revenue", 0.0)),
            cogs=float(data.get("cogs", 0.0)),
            last_sold_at=datetime.fromisoformat(last_sold) if last_sold else None,
        )


@dataclass
class SalesBreakdown:
    """Variant-level and product-level rollups for one window"""
    window: Optional[DateWindow] = None
    variants: Dict[str, SalesStats] = field(default_factory=dict)
    products: Dict[str, SalesStats] = field(default_factory=dict)
    totals: SalesStats = field(default_factory=SalesStats)
    sold_variant_ids: set = field(default_factory=set)

    def product(self, product_id: str) -> SalesStats:
        return self.products.get(product_id) or SalesStats()

    def variant(self, variant_id: str) -> SalesStats:
        return self.variants.get(variant_id) or SalesStats()

    def to_dict(self) -> Dict[str, Any]:
        """Cacheable form; only product rollups and totals are kept"""
        return {
            "products": {pid: stats.to_dict() for pid, stats in self.products.items()},
            "totals": self.totals.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], window: Optional[DateWindow] = None) -> "SalesBreakdown":
        return cls(
            window=window,
            products={
                pid: SalesStats.from_dict(stats)
                for pid, stats in (data.get("products") or {}).items()
            },
            totals=SalesStats.from_dict(data.get("totals") or {}),
        )


class SalesAggregator:
    """
    Aggregates line items for one organization.

    The variant lookup and the variant -> product map are built once per
    aggregator so repeated windows do not re-walk the catalog.

    Example:
        aggregator = SalesAggregator(variants, cost_cache)
        breakdown = aggregator.aggregate(orders, line_items, window)
    """

    def __init__(self, variants: Iterable[VariantRecord], cost_cache: VariantCostCache):
        self.cost_cache = cost_cache
        self.variants: Dict[str, VariantRecord] = {variant.id: variant for variant in variants}
        self.variant_products: Dict[str, str] = {
            variant.id: variant.product_id for variant in self.variants.values()
        }

    def resolve_product_id(self, item: LineItemRecord) -> Optional[str]:
        """Product of a line item: the variant's parent, else the item's own reference"""
        if item.variant_id and item.variant_id in self.variant_products:
            return self.variant_products[item.variant_id]
        return item.product_id

    def aggregate(
        self,
        orders: Iterable[OrderRecord],
        line_items: Iterable[LineItemRecord],
        window: Optional[DateWindow] = None,
    ) -> SalesBreakdown:
        """
        Roll up line items whose order was created inside the window.

        Args:
            orders: Parent orders; their created_at drives windowing
            line_items: Line items of those orders
            window: Optional window filter; when None all orders count

        Returns:
            SalesBreakdown with variant, product and total stats
        """
        order_times: Dict[str, datetime] = {}
        for order in orders:
            if window is None or window.contains(order.created_at):
                order_times[order.id] = order.created_at

        breakdown = SalesBreakdown(window=window)
        skipped = 0

        for item in line_items:
            if item.order_id not in order_times:
                continue
            sold_at = order_times[item.order_id]

            quantity = int(as_number(item.quantity) or 0)
            if quantity <= 0:
                skipped += 1
                continue

            variant = self.variants.get(item.variant_id) if item.variant_id else None
            unit_price = as_number(item.price)
            if unit_price is None:
                unit_price = (as_number(variant.price) or 0.0) if variant else 0.0
            discount = as_number(item.total_discount) or 0.0
            revenue = max(0.0, unit_price * quantity - discount)

            if variant is not None:
                cogs = quantity * self.cost_cache.resolve_unit_cost(variant)
            else:
                cogs = quantity * max(0.0, unit_price * HEURISTIC_COST_RATIO)

            breakdown.totals.add(quantity, revenue, cogs, sold_at)

            if variant is not None:
                breakdown.sold_variant_ids.add(variant.id)
                breakdown.variants.setdefault(variant.id, SalesStats()).add(
                    quantity, revenue, cogs, sold_at
                )
                continue

            product_id = self.resolve_product_id(item)
            if product_id:
                breakdown.products.setdefault(product_id, SalesStats()).add(
                    quantity, revenue, cogs, sold_at
                )

        for variant_id, stats in breakdown.variants.items():
            product_id = self.variant_products[variant_id]
            breakdown.products.setdefault(product_id, SalesStats()).merge(stats)

        logger.debug(
            "Sales aggregated",
            orders=len(order_times),
            variants=len(breakdown.variants),
            products=len(breakdown.products),
            units=breakdown.totals.units,
            skipped_items=skipped,
        )
        return breakdown
