"""
Unit Tests - Snapshot Computation
"""
from datetime import timedelta

import pytest

from inventory_analytics.analytics.alerts import AlertGenerator, AlertType
from inventory_analytics.analytics.classification import ReplenishmentPolicy
from inventory_analytics.analytics.costs import VariantCostCache
from inventory_analytics.analytics.records import ABCCategory, CostOverride, LineItemRecord, OrderRecord, StockStatus
from inventory_analytics.analytics.sales import SalesAggregator
from inventory_analytics.analytics.snapshot import (
    apply_sales_window,
    apply_sales_window_to_overview,
    compute_snapshot,
    variant_stock_positions,
)
from inventory_analytics.analytics.windows import DateWindow

from conftest import NOW, sample_levels, sample_line_items, sample_orders, sample_products, sample_variants


def _build(products=None, variants=None, levels=None):
    variants = sample_variants() if variants is None else variants
    cache = VariantCostCache.from_overrides([CostOverride(variant_id="v1a", cogs_per_unit=8.0)])
    window = DateWindow.trailing(NOW, 30)
    aggregator = SalesAggregator(variants, cache)
    return compute_snapshot(
        organization_id="org-1",
        products=sample_products() if products is None else products,
        variants=variants,
        levels=sample_levels() if levels is None else levels,
        cost_cache=cache,
        current=aggregator.aggregate(sample_orders(), sample_line_items(), window),
        previous=aggregator.aggregate(sample_orders(), sample_line_items(), window.previous()),
        sold_variant_ids={"v1a", "v2"},
        analysis_days=window.analysis_days,
        computed_at=NOW,
    )


@pytest.fixture
def snapshot():
    return _build()


class TestOverview:
    """Tests for snapshot-level figures"""

    def test_valuation(self, snapshot):
        overview = snapshot.overview

        assert overview.total_skus == 4
        assert overview.total_units_in_stock == 145
        assert overview.total_value == pytest.approx(1900.0)
        # 40 x 8 + 5 x 12 + 100 x 4, the out of stock lamp adds nothing
        assert overview.total_cogs == pytest.approx(780.0)

    def test_health_figures(self, snapshot):
        overview = snapshot.overview

        assert overview.stock_coverage_days == 335
        assert overview.turnover_rate == 1.4
        assert overview.dead_stock == 1
        assert overview.health_score == 50

    def test_sales_figures(self, snapshot):
        overview = snapshot.overview

        assert overview.total_units_sold == 13
        assert overview.total_revenue == pytest.approx(230.0)
        assert overview.previous_units_sold == 5

    def test_counts_cover_every_bucket(self, snapshot):
        assert snapshot.overview.status_counts == {"healthy": 2, "low": 0, "critical": 0, "out": 1}
        assert snapshot.overview.abc_counts == {"A": 0, "B": 1, "C": 2}


class TestProductRows:
    """Tests for per-product summary rows"""

    def test_rows_ordered_by_id(self, snapshot):
        assert [row.product_id for row in snapshot.products] == ["p1", "p2", "p3"]

    def test_multi_variant_product(self, snapshot):
        tee = snapshot.products[0]

        assert tee.sku == "alpha-tee"
        assert tee.available == 45
        assert tee.price == 20.0
        assert tee.cost == pytest.approx((8 * 40 + 12 * 5) / 45)
        assert tee.reorder_point == 3
        assert tee.stock_status == StockStatus.HEALTHY
        assert tee.abc_category == ABCCategory.B
        assert tee.variant_count == 2
        assert tee.units_sold == 10
        assert tee.previous_units_sold == 5
        assert [variant.title for variant in tee.variants] == ["S", "M"]

    def test_fallback_labels(self, snapshot):
        mug, lamp = snapshot.products[1], snapshot.products[2]

        assert mug.sku == "BM-1"
        assert mug.variants[0].title == "Default"
        assert mug.reserved == 2
        assert mug.stock == 102
        assert lamp.category == "Uncategorized"
        assert lamp.vendor == "Unknown"
        assert lamp.stock_status == StockStatus.OUT
        assert lamp.margin == pytest.approx(40.0)

    def test_product_without_variants(self):
        snapshot = _build(variants=[], levels=[])
        row = snapshot.products[0]

        assert row.available == 0
        assert row.variant_count == 1
        assert row.stock_status == StockStatus.OUT
        assert row.sku == "alpha-tee"


class TestDeterminism:
    def test_input_order_does_not_matter(self):
        first = _build()
        second = _build(
            products=list(reversed(sample_products())),
            variants=list(reversed(sample_variants())),
            levels=list(reversed(sample_levels())),
        )

        assert first == second


class TestSalesWindowOverlay:
    """Tests for per-request window overlays"""

    def test_overlay_changes_only_sales_fields(self, snapshot):
        variants = sample_variants()
        aggregator = SalesAggregator(variants, VariantCostCache())
        window = DateWindow(start=NOW - timedelta(days=60), end=NOW)
        orders = sample_orders() + [OrderRecord(id="o3", created_at=NOW - timedelta(days=50))]
        items = sample_line_items() + [LineItemRecord(order_id="o3", variant_id="v3", quantity=1, price=50.0)]
        current = aggregator.aggregate(orders, items, window)

        rows = apply_sales_window(snapshot.products, current)

        assert rows[0].units_sold == 15
        assert rows[2].units_sold == 1
        assert rows[0].previous_units_sold == snapshot.products[0].previous_units_sold
        assert rows[0].stock_status == snapshot.products[0].stock_status
        assert rows[2].abc_category == snapshot.products[2].abc_category

    def test_overview_overlay(self, snapshot):
        aggregator = SalesAggregator(sample_variants(), VariantCostCache())
        window = DateWindow(start=NOW - timedelta(days=60), end=NOW)
        current = aggregator.aggregate(sample_orders(), sample_line_items(), window)
        previous = aggregator.aggregate(sample_orders(), sample_line_items(), window.previous())

        overview = apply_sales_window_to_overview(snapshot.overview, current, previous, window.analysis_days)

        assert overview.total_units_sold == 15
        assert overview.previous_units_sold == 0
        assert overview.health_score == snapshot.overview.health_score
        assert overview.total_value == snapshot.overview.total_value


class TestAlertsFromSnapshot:
    def test_variant_granular_alerts(self, snapshot):
        generator = AlertGenerator(ReplenishmentPolicy(), snapshot.analysis_window_days)

        alerts = generator.generate(variant_stock_positions(snapshot.products))

        assert [(alert.variant_id, alert.type) for alert in alerts] == [
            ("v3", AlertType.CRITICAL),
            ("v1a", AlertType.OVERSTOCK),
            ("v2", AlertType.OVERSTOCK),
        ]
        assert alerts[0].sku == "gamma-lamp"
