"""
Metrics Aggregator

Inventory valuation, turnover, coverage, health score, period-over-period
change and top-performer ranking.
"""

from dataclasses import dataclass
from typing import Iterable, List, Mapping, Sequence

from inventory_analytics.analytics.costs import VariantCostCache, as_number
from inventory_analytics.analytics.levels import StockPosition
from inventory_analytics.analytics.records import VariantRecord
from inventory_analytics.analytics.rounding import round1, round_half_up

# Coverage assumed for stock that is not moving at all
NO_SALES_COVERAGE_DAYS = 90


@dataclass(frozen=True)
class InventoryValuation:
    """On-hand valuation at list price and at cost"""
    total_value: float = 0.0
    total_cogs: float = 0.0
    units_in_stock: int = 0
    total_skus: int = 0


@dataclass(frozen=True)
class PerformerEntry:
    """Input row for top-performer ranking"""
    product_id: str
    name: str
    units_sold: int
    previous_units_sold: int
    revenue: float = 0.0

    @property
    def change(self) -> float:
        return percent_change(self.units_sold, self.previous_units_sold)


@dataclass(frozen=True)
class TopPerformers:
    best: List[PerformerEntry]
    worst: List[PerformerEntry]
    trending: List[PerformerEntry]


def percent_change(current: float, previous: float) -> float:
    """Percentage change; growth from nothing counts as 100%"""
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round1(100 * (current - previous) / abs(previous))


def turnover_rate(cogs_sold: float, total_cogs: float, analysis_days: int) -> float:
    """Annualized cost of goods sold over on-hand cost"""
    if total_cogs <= 0:
        return 0.0
    days = max(1, analysis_days)
    return round1((cogs_sold * (365 / days)) / total_cogs)


def stock_coverage_days(units_in_stock: int, units_sold: int, analysis_days: int) -> int:
    avg_daily_units = units_sold / max(1, analysis_days)
    if avg_daily_units > 0:
        return round_half_up(units_in_stock / avg_daily_units)
    return NO_SALES_COVERAGE_DAYS if units_in_stock > 0 else 0


def health_score(healthy_count: int, total_skus: int) -> int:
    if total_skus <= 0:
        return 0
    return round_half_up(100 * healthy_count / total_skus)


def value_inventory(
    variants: Iterable[VariantRecord],
    positions: Mapping[str, StockPosition],
    cost_cache: VariantCostCache,
) -> InventoryValuation:
    """Value every variant's available stock at price and at resolved cost"""
    total_value = 0.0
    total_cogs = 0.0
    units = 0
    skus = 0
    for variant in variants:
        skus += 1
        position = positions.get(variant.id)
        available = position.available if position else 0
        total_value += available * (as_number(variant.price) or 0.0)
        total_cogs += available * cost_cache.resolve_unit_cost(variant)
        units += available
    return InventoryValuation(
        total_value=total_value,
        total_cogs=total_cogs,
        units_in_stock=units,
        total_skus=skus,
    )


def rank_top_performers(entries: Sequence[PerformerEntry], limit: int = 5) -> TopPerformers:
    """
    Rank products by units sold and by unit growth.

    Python's sort is stable, so ties keep their input order.
    """
    best = sorted(entries, key=lambda entry: entry.units_sold, reverse=True)
    worst = sorted(entries, key=lambda entry: entry.units_sold)
    trending = sorted(entries, key=lambda entry: entry.change, reverse=True)
    return TopPerformers(best=best[:limit], worst=worst[:limit], trending=trending[:limit])
