"""
Product Listing

Filtering, search, sorting, pagination and CSV export over snapshot rows.
"""

import math
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import polars as pl

from inventory_analytics.analytics.summaries import ProductSummary
from inventory_analytics.serving.schemas import (
    Pagination,
    ProductFilters,
    ProductRow,
    ProductSort,
    VariantRow,
)

SORT_FIELDS: Dict[str, Callable[[ProductSummary], float]] = {
    "price": lambda row: row.price,
    "cost": lambda row: row.cost,
    "margin": lambda row: row.margin,
    "units_sold": lambda row: row.units_sold,
    "turnover_rate": lambda row: row.turnover_rate,
    "reorder_point": lambda row: row.reorder_point,
    "available": lambda row: row.available,
    "stock": lambda row: row.available,
    "period_revenue": lambda row: row.period_revenue,
}

EXPORT_COLUMNS = [
    "Name", "SKU", "Category", "Vendor", "Stock", "Available", "Reserved",
    "Reorder Point", "Status", "Price", "Cost", "Margin", "Units Sold",
    "Turnover Rate", "Last Sold",
]


def _normalize(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip().lower()
    if not value or value == "all":
        return None
    return value


def matches_search(row: ProductSummary, term: Optional[str]) -> bool:
    if not term:
        return True
    return any(term in field.lower() for field in (row.name, row.sku, row.vendor, row.category))


def filter_products(rows: Sequence[ProductSummary], filters: Optional[ProductFilters]) -> List[ProductSummary]:
    """Apply search, category, stock level and ABC filters; `all` disables a filter"""
    if filters is None:
        return list(rows)

    search = _normalize(filters.search)
    category = _normalize(filters.category)
    stock_level = _normalize(filters.stock_level)
    abc = _normalize(filters.abc_category)

    result = []
    for row in rows:
        if not matches_search(row, search):
            continue
        if category and row.category.lower() != category:
            continue
        if stock_level and row.stock_status.value != stock_level:
            continue
        if abc and row.abc_category.value.lower() != abc:
            continue
        result.append(row)
    return result


def sort_products(rows: Sequence[ProductSummary], sort: Optional[ProductSort]) -> List[ProductSummary]:
    """
    Sort rows by a named field.

    Equal scores fall back to name ascending whatever the direction; an
    unknown field sorts by available stock.
    """
    sort = sort or ProductSort()
    descending = sort.direction == "desc"
    by_name = sorted(rows, key=lambda row: row.name.casefold())

    if sort.field == "name":
        return sorted(by_name, key=lambda row: row.name.casefold(), reverse=descending)

    score = SORT_FIELDS.get(sort.field, SORT_FIELDS["available"])
    return sorted(by_name, key=score, reverse=descending)


def paginate(
    rows: Sequence[ProductSummary],
    page: int,
    page_size: int,
) -> Tuple[List[ProductSummary], Pagination]:
    """Slice one page; the requested page is clamped to the available range"""
    total = len(rows)
    total_pages = math.ceil(total / page_size) if total else 0
    effective_page = min(max(1, page), total_pages) if total_pages else 1
    start = (effective_page - 1) * page_size
    return list(rows[start:start + page_size]), Pagination(
        page=effective_page,
        page_size=page_size,
        total=total,
        total_pages=total_pages,
        has_more=total_pages > 0 and effective_page < total_pages,
    )


def to_product_row(row: ProductSummary) -> ProductRow:
    variants = None
    if len(row.variants) > 1:
        variants = [
            VariantRow(
                id=variant.id,
                sku=variant.sku,
                title=variant.title,
                price=variant.price,
                stock=variant.stock,
                reserved=variant.reserved,
                available=variant.available,
            )
            for variant in row.variants
        ]
    return ProductRow(
        id=row.product_id,
        name=row.name,
        sku=row.sku,
        image=row.image,
        category=row.category,
        vendor=row.vendor,
        stock=row.stock,
        reserved=row.reserved,
        available=row.available,
        reorder_point=row.reorder_point,
        stock_status=row.stock_status.value,
        price=row.price,
        cost=row.cost,
        margin=row.margin,
        turnover_rate=row.turnover_rate,
        units_sold=row.units_sold,
        period_revenue=row.period_revenue,
        last_sold_at=row.last_sold_at,
        abc_category=row.abc_category.value,
        variant_count=row.variant_count,
        variants=variants,
    )


def export_frame(rows: Sequence[ProductSummary]) -> pl.DataFrame:
    """Build the export table, one row per product"""
    return pl.DataFrame(
        {
            "Name": [row.name for row in rows],
            "SKU": [row.sku for row in rows],
            "Category": [row.category for row in rows],
            "Vendor": [row.vendor for row in rows],
            "Stock": [row.stock for row in rows],
            "Available": [row.available for row in rows],
            "Reserved": [row.reserved for row in rows],
            "Reorder Point": [row.reorder_point for row in rows],
            "Status": [row.stock_status.value for row in rows],
            "Price": [round(row.price, 2) for row in rows],
            "Cost": [round(row.cost, 2) for row in rows],
            "Margin": [round(row.margin, 2) for row in rows],
            "Units Sold": [row.units_sold for row in rows],
            "Turnover Rate": [row.turnover_rate for row in rows],
            "Last Sold": [row.last_sold_at.isoformat() if row.last_sold_at else "N/A" for row in rows],
        },
        schema={
            "Name": pl.Utf8,
            "SKU": pl.Utf8,
            "Category": pl.Utf8,
            "Vendor": pl.Utf8,
            "Stock": pl.Int64,
            "Available": pl.Int64,
            "Reserved": pl.Int64,
            "Reorder Point": pl.Int64,
            "Status": pl.Utf8,
            "Price": pl.Float64,
            "Cost": pl.Float64,
            "Margin": pl.Float64,
            "Units Sold": pl.Int64,
            "Turnover Rate": pl.Float64,
            "Last Sold": pl.Utf8,
        },
    ).select(EXPORT_COLUMNS)
