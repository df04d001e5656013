"""
Classification Engine

ABC segmentation, stock status, reorder points and dead-stock detection.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Set

from inventory_analytics.analytics.levels import StockPosition
from inventory_analytics.analytics.records import ABCCategory, StockStatus, VariantRecord
from inventory_analytics.analytics.rounding import round_half_up
from inventory_analytics.analytics.sales import SalesStats

# Cumulative share cutoffs, inclusive
ABC_A_SHARE = 0.80
ABC_B_SHARE = 0.95

# Rank cutoffs used when a store has no sales at all
ABC_A_RANK = 0.20
ABC_B_RANK = 0.50

# Stock thresholds for items without recent sales
NO_SALES_CRITICAL_BELOW = 5
NO_SALES_LOW_BELOW = 20


@dataclass(frozen=True)
class ReplenishmentPolicy:
    """Lead time and safety buffer, in days"""
    lead_time_days: int = 7
    safety_stock_days: int = 3

    @property
    def cover_days(self) -> int:
        return self.lead_time_days + self.safety_stock_days


def average_daily_sales(units_sold: float, analysis_days: int) -> float:
    if analysis_days <= 0:
        return 0.0
    return max(0.0, units_sold) / analysis_days


def coverage_days(available: float, avg_daily_sales: float) -> Optional[float]:
    """Days of demand the stock covers, None without sales velocity"""
    if avg_daily_sales <= 0:
        return None
    return available / avg_daily_sales


def _walk_cumulative(ordered: List[str], values: Mapping[str, float]) -> Dict[str, ABCCategory]:
    total = sum(values[pid] for pid in ordered)
    categories: Dict[str, ABCCategory] = {}
    cumulative = 0.0
    for product_id in ordered:
        previous_share = cumulative / total
        cumulative += values[product_id]
        share = cumulative / total
        if share <= ABC_A_SHARE:
            categories[product_id] = ABCCategory.A
        elif share <= ABC_B_SHARE or previous_share <= ABC_A_SHARE:
            # the product crossing the A cutoff never skips tier B
            categories[product_id] = ABCCategory.B
        else:
            categories[product_id] = ABCCategory.C
    return categories


def assign_abc_categories(
    product_ids: Iterable[str],
    product_sales: Mapping[str, SalesStats],
) -> Dict[str, ABCCategory]:
    """
    Assign A/B/C tiers across the whole product set.

    Revenue share is used when any revenue exists, units when only units
    exist, and product id rank when there are no sales at all. Sorts are
    stable and start from id order, so equal inputs always yield equal tiers.

    Returns:
        Mapping of product id to category, covering every product
    """
    ids = sorted(set(product_ids))
    if not ids:
        return {}

    revenue = {pid: max(0.0, product_sales[pid].revenue) if pid in product_sales else 0.0 for pid in ids}
    units = {pid: float(max(0, product_sales[pid].units)) if pid in product_sales else 0.0 for pid in ids}

    if sum(revenue.values()) > 0:
        ordered = sorted(ids, key=lambda pid: revenue[pid], reverse=True)
        return _walk_cumulative(ordered, revenue)

    if sum(units.values()) > 0:
        ordered = sorted(ids, key=lambda pid: units[pid], reverse=True)
        return _walk_cumulative(ordered, units)

    count = len(ids)
    categories: Dict[str, ABCCategory] = {}
    for index, product_id in enumerate(ids):
        rank = (index + 1) / count
        if rank <= ABC_A_RANK:
            categories[product_id] = ABCCategory.A
        elif rank <= ABC_B_RANK:
            categories[product_id] = ABCCategory.B
        else:
            categories[product_id] = ABCCategory.C
    return categories


def classify_stock_status(
    available: float,
    avg_daily_sales: float,
    policy: ReplenishmentPolicy = ReplenishmentPolicy(),
) -> StockStatus:
    """Classify stock health; every input maps to exactly one status"""
    if available <= 0:
        return StockStatus.OUT

    coverage = coverage_days(available, avg_daily_sales)
    if coverage is not None:
        if coverage <= policy.safety_stock_days:
            return StockStatus.CRITICAL
        if coverage <= policy.cover_days:
            return StockStatus.LOW
        return StockStatus.HEALTHY

    if available < NO_SALES_CRITICAL_BELOW:
        return StockStatus.CRITICAL
    if available < NO_SALES_LOW_BELOW:
        return StockStatus.LOW
    return StockStatus.HEALTHY


def calculate_reorder_point(
    avg_daily_sales: float,
    policy: ReplenishmentPolicy = ReplenishmentPolicy(),
) -> int:
    if avg_daily_sales <= 0:
        return 0
    return max(1, round_half_up(avg_daily_sales * policy.cover_days))


def find_dead_stock(
    variants: Iterable[VariantRecord],
    positions: Mapping[str, StockPosition],
    sold_variant_ids: Set[str],
) -> List[str]:
    """Variants holding stock that had no sale in the lookback window"""
    dead = []
    for variant in variants:
        position = positions.get(variant.id)
        if position is not None and position.available > 0 and variant.id not in sold_variant_ids:
            dead.append(variant.id)
    return dead


def count_dead_stock(
    variants: Iterable[VariantRecord],
    positions: Mapping[str, StockPosition],
    sold_variant_ids: Set[str],
) -> int:
    return len(find_dead_stock(variants, positions, sold_variant_ids))
