"""
Unit Tests - Product Listing
"""
from datetime import datetime

import pytest

from inventory_analytics.analytics.records import ABCCategory, StockStatus
from inventory_analytics.analytics.summaries import ProductSummary, VariantSummary
from inventory_analytics.serving.listing import (
    EXPORT_COLUMNS,
    export_frame,
    filter_products,
    paginate,
    sort_products,
    to_product_row,
)
from inventory_analytics.serving.schemas import ProductFilters, ProductSort


def _row(product_id, name, available=10, price=10.0, status=StockStatus.HEALTHY,
         abc=ABCCategory.C, category="Home", vendor="Atlas Goods", sku=None, variants=None):
    return ProductSummary(
        product_id=product_id,
        name=name,
        sku=sku or product_id.upper(),
        category=category,
        vendor=vendor,
        stock=available,
        reserved=0,
        available=available,
        reorder_point=0,
        stock_status=status,
        price=price,
        cost=price * 0.6,
        margin=40.0,
        turnover_rate=0.0,
        abc_category=abc,
        variant_count=len(variants) if variants else 1,
        variants=variants or [],
    )


@pytest.fixture
def rows():
    return [
        _row("p1", "Walnut Desk", available=5, price=300.0, status=StockStatus.LOW, abc=ABCCategory.A, category="Furniture"),
        _row("p2", "Ceramic Mug", available=50, price=12.0, sku="MUG-BLUE"),
        _row("p3", "Linen Apron", available=0, price=25.0, status=StockStatus.OUT, vendor="Blue Fern"),
        _row("p4", "Bamboo Tray", available=50, price=18.0, abc=ABCCategory.B),
    ]


class TestFilters:
    """Tests for search and filter combinations"""

    def test_no_filters(self, rows):
        assert len(filter_products(rows, None)) == 4
        assert len(filter_products(rows, ProductFilters())) == 4

    def test_search_is_case_insensitive_over_fields(self, rows):
        assert [r.product_id for r in filter_products(rows, ProductFilters(search="mug-blue"))] == ["p2"]
        assert [r.product_id for r in filter_products(rows, ProductFilters(search="BLUE FERN"))] == ["p3"]
        assert [r.product_id for r in filter_products(rows, ProductFilters(search="furn"))] == ["p1"]

    def test_stock_level(self, rows):
        assert [r.product_id for r in filter_products(rows, ProductFilters(stock_level="out"))] == ["p3"]

    def test_category_all_disables(self, rows):
        assert len(filter_products(rows, ProductFilters(category="all"))) == 4
        assert len(filter_products(rows, ProductFilters(category="home"))) == 3

    def test_abc(self, rows):
        assert [r.product_id for r in filter_products(rows, ProductFilters(abc_category="a"))] == ["p1"]

    def test_combined(self, rows):
        filters = ProductFilters(category="Home", stock_level="healthy", search="tray")
        assert [r.product_id for r in filter_products(rows, filters)] == ["p4"]


class TestSorting:
    """Tests for field sorts and name tie-breaks"""

    def test_default_is_available_descending_with_name_ties(self, rows):
        ordered = sort_products(rows, None)

        assert [r.product_id for r in ordered] == ["p4", "p2", "p1", "p3"]

    def test_ascending_ties_still_by_name(self, rows):
        ordered = sort_products(rows, ProductSort(field="available", direction="asc"))

        assert [r.product_id for r in ordered] == ["p3", "p1", "p4", "p2"]

    def test_price(self, rows):
        ordered = sort_products(rows, ProductSort(field="price", direction="desc"))

        assert ordered[0].product_id == "p1"

    def test_name(self, rows):
        ordered = sort_products(rows, ProductSort(field="name", direction="asc"))

        assert [r.name for r in ordered] == ["Bamboo Tray", "Ceramic Mug", "Linen Apron", "Walnut Desk"]

    def test_unknown_field_sorts_by_available(self, rows):
        assert sort_products(rows, ProductSort(field="bogus")) == sort_products(rows, ProductSort())


class TestPagination:
    def test_pages(self, rows):
        page, info = paginate(rows, page=2, page_size=3)

        assert [r.product_id for r in page] == ["p4"]
        assert info.total == 4
        assert info.total_pages == 2
        assert info.has_more is False

    def test_page_is_clamped(self, rows):
        page, info = paginate(rows, page=9, page_size=3)

        assert info.page == 2
        assert len(page) == 1

        page, info = paginate(rows, page=0, page_size=3)
        assert info.page == 1
        assert info.has_more is True

    def test_empty(self):
        page, info = paginate([], page=3, page_size=10)

        assert page == []
        assert info.total_pages == 0
        assert info.page == 1


class TestRowsAndExport:
    def test_variants_only_for_multi_variant_products(self):
        single = _row("p1", "One", variants=[
            VariantSummary(id="v1", sku="A", title="Default", price=1.0, cost=0.6, stock=1, reserved=0, available=1),
        ])
        multi = _row("p2", "Two", variants=[
            VariantSummary(id="v1", sku="A", title="S", price=1.0, cost=0.6, stock=1, reserved=0, available=1),
            VariantSummary(id="v2", sku="B", title="M", price=1.0, cost=0.6, stock=2, reserved=0, available=2),
        ])

        assert to_product_row(single).variants is None
        assert [v.id for v in to_product_row(multi).variants] == ["v1", "v2"]

    def test_export_columns(self, rows):
        rows = [rows[0].with_sales(3, 900.0, 1, datetime(2024, 5, 30, 8, 0))] + rows[1:]

        frame = export_frame(rows)

        assert frame.columns == EXPORT_COLUMNS
        assert frame.height == 4
        assert frame["Last Sold"].to_list()[0] == "2024-05-30T08:00:00"
        assert frame["Last Sold"].to_list()[1] == "N/A"
        assert frame["Status"].to_list()[0] == "low"

    def test_export_empty(self):
        frame = export_frame([])

        assert frame.columns == EXPORT_COLUMNS
        assert frame.height == 0
        assert frame.write_csv().startswith("Name,SKU,Category")
