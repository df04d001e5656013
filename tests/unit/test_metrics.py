"""
Unit Tests - Metrics Aggregator
"""
import pytest

from inventory_analytics.analytics.costs import VariantCostCache
from inventory_analytics.analytics.levels import StockPosition
from inventory_analytics.analytics.metrics import (
    NO_SALES_COVERAGE_DAYS,
    PerformerEntry,
    health_score,
    percent_change,
    rank_top_performers,
    stock_coverage_days,
    turnover_rate,
    value_inventory,
)
from inventory_analytics.analytics.records import VariantRecord
from inventory_analytics.analytics.rounding import round1, round_half_up


class TestRounding:
    def test_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(2.49) == 2
        assert round1(6.05) == 6.1


class TestTurnover:
    def test_annualized(self):
        assert turnover_rate(1000, 2000, 30) == 6.1

    def test_no_inventory_cost(self):
        assert turnover_rate(1000, 0, 30) == 0.0


class TestPercentChange:
    def test_growth_from_zero(self):
        assert percent_change(500, 0) == 100.0

    def test_flat_at_zero(self):
        assert percent_change(0, 0) == 0.0

    def test_decline(self):
        assert percent_change(50, 200) == -75.0


class TestCoverageAndHealth:
    def test_coverage_days(self):
        assert stock_coverage_days(145, 13, 30) == 335

    def test_coverage_without_sales(self):
        assert stock_coverage_days(10, 0, 30) == NO_SALES_COVERAGE_DAYS
        assert stock_coverage_days(0, 0, 30) == 0

    def test_health_score(self):
        assert health_score(2, 4) == 50
        assert health_score(1, 3) == 33
        assert health_score(0, 0) == 0


class TestValuation:
    def test_values_available_stock(self):
        variants = [
            VariantRecord(id="v1", product_id="p1", price=20.0),
            VariantRecord(id="v2", product_id="p1", price=10.0, compare_at_price=4.0),
            VariantRecord(id="v3", product_id="p2", price=None),
        ]
        positions = {"v1": StockPosition(available=5), "v2": StockPosition(available=10, committed=3)}

        valuation = value_inventory(variants, positions, VariantCostCache())

        assert valuation.total_value == pytest.approx(200.0)
        assert valuation.total_cogs == pytest.approx(5 * 12.0 + 10 * 4.0)
        assert valuation.units_in_stock == 15
        assert valuation.total_skus == 3


class TestTopPerformers:
    """Tests for best / worst / trending ranking"""

    def _entries(self):
        return [
            PerformerEntry(product_id="a", name="A", units_sold=10, previous_units_sold=10),
            PerformerEntry(product_id="b", name="B", units_sold=30, previous_units_sold=10),
            PerformerEntry(product_id="c", name="C", units_sold=0, previous_units_sold=5),
            PerformerEntry(product_id="d", name="D", units_sold=10, previous_units_sold=0),
        ]

    def test_rankings(self):
        top = rank_top_performers(self._entries(), limit=2)

        assert [entry.product_id for entry in top.best] == ["b", "a"]
        assert [entry.product_id for entry in top.worst] == ["c", "a"]
        assert [entry.product_id for entry in top.trending] == ["b", "d"]

    def test_change(self):
        entry = PerformerEntry(product_id="x", name="X", units_sold=15, previous_units_sold=10)
        assert entry.change == 50.0
