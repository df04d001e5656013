"""
Snapshot Computation

Pure assembly of an inventory snapshot from catalog, stock and sales inputs,
plus the per-request overlay of a different sales window onto snapshot rows.
"""

from collections import Counter, defaultdict
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

import structlog

from inventory_analytics.analytics.alerts import VariantStockPosition
from inventory_analytics.analytics.classification import (
    ReplenishmentPolicy,
    assign_abc_categories,
    average_daily_sales,
    calculate_reorder_point,
    classify_stock_status,
    count_dead_stock,
)
from inventory_analytics.analytics.costs import VariantCostCache, as_number
from inventory_analytics.analytics.levels import StockPosition, resolve_stock_positions
from inventory_analytics.analytics.metrics import (
    health_score,
    stock_coverage_days,
    turnover_rate,
    value_inventory,
)
from inventory_analytics.analytics.records import (
    ABCCategory,
    InventoryLevelRecord,
    ProductRecord,
    StockStatus,
    VariantRecord,
)
from inventory_analytics.analytics.rounding import round1
from inventory_analytics.analytics.sales import SalesBreakdown
from inventory_analytics.analytics.summaries import (
    InventorySnapshotData,
    OverviewSummary,
    ProductSummary,
    VariantSummary,
)

logger = structlog.get_logger(__name__)


def _summarize_product(
    product: ProductRecord,
    variants: List[VariantRecord],
    positions: Dict[str, StockPosition],
    cost_cache: VariantCostCache,
    current: SalesBreakdown,
    previous: SalesBreakdown,
    abc_category: ABCCategory,
    analysis_days: int,
    policy: ReplenishmentPolicy,
) -> ProductSummary:
    total_available = 0
    total_reserved = 0
    weighted_cost = 0.0
    weight_sum = 0

    variant_rows = []
    for variant in variants:
        position = positions.get(variant.id, StockPosition())
        unit_cost = cost_cache.resolve_unit_cost(variant)
        weight = position.available if position.available > 0 else 1

        total_available += position.available
        total_reserved += position.committed
        weighted_cost += unit_cost * weight
        weight_sum += weight

        variant_sales = current.variant(variant.id)
        variant_rows.append(VariantSummary(
            id=variant.id,
            sku=variant.sku or product.handle or "N/A",
            title=variant.title or "Default",
            price=as_number(variant.price) or 0.0,
            cost=unit_cost,
            stock=position.on_hand,
            reserved=position.committed,
            available=position.available,
            units_sold=variant_sales.units,
            last_sold_at=variant_sales.last_sold_at,
        ))

    sales = current.product(product.id)
    avg_daily = average_daily_sales(sales.units, analysis_days)
    default_variant = variants[0] if variants else None
    price = (as_number(default_variant.price) or 0.0) if default_variant else 0.0
    cost = weighted_cost / weight_sum if weight_sum > 0 else 0.0
    margin = (price - cost) / price * 100 if price > 0 else 0.0
    product_turnover = (
        round1(sales.units * (365 / analysis_days) / total_available)
        if total_available > 0 else 0.0
    )

    return ProductSummary(
        product_id=product.id,
        name=product.title,
        sku=product.handle or (default_variant.sku if default_variant and default_variant.sku else product.id),
        image=product.featured_image,
        category=product.product_type or "Uncategorized",
        vendor=product.vendor or "Unknown",
        stock=total_available + total_reserved,
        reserved=total_reserved,
        available=total_available,
        reorder_point=calculate_reorder_point(avg_daily, policy),
        stock_status=classify_stock_status(total_available, avg_daily, policy),
        price=price,
        cost=cost,
        margin=margin,
        turnover_rate=product_turnover,
        abc_category=abc_category,
        variant_count=len(variants) or 1,
        units_sold=sales.units,
        period_revenue=sales.revenue,
        previous_units_sold=previous.product(product.id).units,
        last_sold_at=sales.last_sold_at,
        variants=variant_rows,
    )


def compute_snapshot(
    organization_id: str,
    products: Iterable[ProductRecord],
    variants: Iterable[VariantRecord],
    levels: Iterable[InventoryLevelRecord],
    cost_cache: VariantCostCache,
    current: SalesBreakdown,
    previous: SalesBreakdown,
    sold_variant_ids: Set[str],
    analysis_days: int,
    computed_at: datetime,
    policy: ReplenishmentPolicy = ReplenishmentPolicy(),
) -> InventorySnapshotData:
    """
    Build a complete snapshot for one organization.

    Products are ordered by id and variants by (product id, id), so identical
    inputs produce identical rows regardless of the order they were loaded in.

    Args:
        current: Sales for the analysis window
        previous: Sales for the preceding window of equal length
        sold_variant_ids: Variants sold within the dead-stock lookback
        analysis_days: Length of the analysis window in days

    Returns:
        InventorySnapshotData ready to publish
    """
    analysis_days = max(1, analysis_days)
    product_list = sorted(products, key=lambda product: product.id)
    variant_list = sorted(variants, key=lambda variant: (variant.product_id, variant.id))
    positions = resolve_stock_positions(levels, variant_list)

    variants_by_product: Dict[str, List[VariantRecord]] = defaultdict(list)
    for variant in variant_list:
        variants_by_product[variant.product_id].append(variant)

    abc = assign_abc_categories([product.id for product in product_list], current.products)

    rows = [
        _summarize_product(
            product,
            variants_by_product.get(product.id, []),
            positions,
            cost_cache,
            current,
            previous,
            abc.get(product.id, ABCCategory.C),
            analysis_days,
            policy,
        )
        for product in product_list
    ]

    valuation = value_inventory(variant_list, positions, cost_cache)

    healthy_variants = 0
    for variant in variant_list:
        avg = average_daily_sales(current.variant(variant.id).units, analysis_days)
        status = classify_stock_status(positions[variant.id].available, avg, policy)
        if status == StockStatus.HEALTHY:
            healthy_variants += 1

    status_counts = Counter(row.stock_status.value for row in rows)
    abc_counts = Counter(row.abc_category.value for row in rows)

    overview = OverviewSummary(
        total_value=valuation.total_value,
        total_cogs=valuation.total_cogs,
        total_skus=valuation.total_skus,
        total_units_in_stock=valuation.units_in_stock,
        stock_coverage_days=stock_coverage_days(
            valuation.units_in_stock, current.totals.units, analysis_days
        ),
        dead_stock=count_dead_stock(variant_list, positions, sold_variant_ids),
        health_score=health_score(healthy_variants, valuation.total_skus),
        turnover_rate=turnover_rate(current.totals.cogs, valuation.total_cogs, analysis_days),
        total_units_sold=current.totals.units,
        total_revenue=current.totals.revenue,
        total_cogs_sold=current.totals.cogs,
        previous_units_sold=previous.totals.units,
        previous_revenue=previous.totals.revenue,
        previous_cogs_sold=previous.totals.cogs,
        status_counts={status.value: status_counts.get(status.value, 0) for status in StockStatus},
        abc_counts={category.value: abc_counts.get(category.value, 0) for category in ABCCategory},
    )

    logger.info(
        "Inventory snapshot computed",
        organization_id=organization_id,
        products=len(rows),
        variants=len(variant_list),
        analysis_days=analysis_days,
        health_score=overview.health_score,
    )

    return InventorySnapshotData(
        organization_id=organization_id,
        computed_at=computed_at,
        analysis_window_days=analysis_days,
        overview=overview,
        products=rows,
    )


def apply_sales_window(
    products: Iterable[ProductSummary],
    current: SalesBreakdown,
    previous: Optional[SalesBreakdown] = None,
) -> List[ProductSummary]:
    """Overlay another window's units and revenue onto snapshot rows"""
    rows = []
    for row in products:
        sales = current.product(row.product_id)
        prior = previous.product(row.product_id).units if previous is not None else row.previous_units_sold
        rows.append(row.with_sales(sales.units, sales.revenue, prior, sales.last_sold_at))
    return rows


def apply_sales_window_to_overview(
    overview: OverviewSummary,
    current: SalesBreakdown,
    previous: SalesBreakdown,
    analysis_days: int,
) -> OverviewSummary:
    """Recompute the sales-derived overview figures for another window"""
    return replace(
        overview,
        stock_coverage_days=stock_coverage_days(
            overview.total_units_in_stock, current.totals.units, analysis_days
        ),
        turnover_rate=turnover_rate(current.totals.cogs, overview.total_cogs, analysis_days),
        total_units_sold=current.totals.units,
        total_revenue=current.totals.revenue,
        total_cogs_sold=current.totals.cogs,
        previous_units_sold=previous.totals.units,
        previous_revenue=previous.totals.revenue,
        previous_cogs_sold=previous.totals.cogs,
    )


def variant_stock_positions(products: Iterable[ProductSummary]) -> List[VariantStockPosition]:
    """Flatten snapshot rows into per-variant inputs for the alert generator"""
    positions = []
    for row in products:
        for variant in row.variants:
            positions.append(VariantStockPosition(
                product_id=row.product_id,
                product_name=row.name,
                variant_id=variant.id,
                variant_title=variant.title,
                sku=variant.sku,
                available=variant.available,
                units_sold=variant.units_sold,
            ))
    return positions
