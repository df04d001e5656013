"""
Unit Tests - Classification Engine
"""
import pytest

from inventory_analytics.analytics.classification import (
    ReplenishmentPolicy,
    assign_abc_categories,
    calculate_reorder_point,
    classify_stock_status,
    count_dead_stock,
    find_dead_stock,
)
from inventory_analytics.analytics.levels import StockPosition
from inventory_analytics.analytics.records import ABCCategory, StockStatus, VariantRecord
from inventory_analytics.analytics.sales import SalesStats


def _sales(**revenue_by_product):
    return {pid: SalesStats(units=1, revenue=revenue) for pid, revenue in revenue_by_product.items()}


class TestABC:
    """Tests for Pareto segmentation"""

    def test_exact_a_cutoff_is_inclusive(self):
        categories = assign_abc_categories(["p1", "p2"], _sales(p1=800.0, p2=200.0))

        assert categories == {"p1": ABCCategory.A, "p2": ABCCategory.B}

    def test_three_tiers(self):
        categories = assign_abc_categories(["a", "b", "c"], _sales(a=70.0, b=20.0, c=10.0))

        assert categories == {"a": ABCCategory.A, "b": ABCCategory.B, "c": ABCCategory.C}

    def test_products_without_sales_are_classified(self):
        categories = assign_abc_categories(["p1", "p2", "p3"], _sales(p1=90.0, p2=10.0))

        assert set(categories) == {"p1", "p2", "p3"}
        assert categories["p3"] == ABCCategory.C

    def test_units_fallback(self):
        sales = {
            "p1": SalesStats(units=80, revenue=0.0),
            "p2": SalesStats(units=15, revenue=0.0),
            "p3": SalesStats(units=5, revenue=0.0),
        }

        categories = assign_abc_categories(["p1", "p2", "p3"], sales)

        assert categories == {"p1": ABCCategory.A, "p2": ABCCategory.B, "p3": ABCCategory.C}

    def test_single_selling_product_is_b(self):
        categories = assign_abc_categories(["p1", "p2"], _sales(p1=100.0))

        assert categories == {"p1": ABCCategory.B, "p2": ABCCategory.C}

    def test_rank_fallback_without_sales(self):
        ids = [f"p{i:02d}" for i in range(10)]

        categories = assign_abc_categories(reversed(ids), {})

        assert [categories[pid] for pid in ids] == (
            [ABCCategory.A] * 2 + [ABCCategory.B] * 3 + [ABCCategory.C] * 5
        )

    def test_deterministic_regardless_of_input_order(self):
        sales = _sales(a=10.0, b=10.0, c=10.0, d=10.0)

        first = assign_abc_categories(["a", "b", "c", "d"], sales)
        second = assign_abc_categories(["d", "c", "b", "a"], sales)

        assert first == second

    def test_empty(self):
        assert assign_abc_categories([], {}) == {}


class TestStockStatus:
    """Tests for stock status classification"""

    @pytest.mark.parametrize("available,avg,expected", [
        (0, 5.0, StockStatus.OUT),
        (-3, 0.0, StockStatus.OUT),
        (3, 1.0, StockStatus.CRITICAL),
        (10, 1.0, StockStatus.LOW),
        (11, 1.0, StockStatus.HEALTHY),
        (4, 0.0, StockStatus.CRITICAL),
        (5, 0.0, StockStatus.LOW),
        (19, 0.0, StockStatus.LOW),
        (20, 0.0, StockStatus.HEALTHY),
    ])
    def test_thresholds(self, available, avg, expected):
        assert classify_stock_status(available, avg) == expected

    def test_every_input_maps_to_one_status(self):
        for available in range(-2, 60):
            for avg in (0.0, 0.1, 1.0, 2.5, 10.0):
                assert isinstance(classify_stock_status(available, avg), StockStatus)

    def test_custom_policy(self):
        policy = ReplenishmentPolicy(lead_time_days=14, safety_stock_days=7)

        assert classify_stock_status(10, 1.0, policy) == StockStatus.LOW


class TestReorderPoint:
    def test_no_sales(self):
        assert calculate_reorder_point(0.0) == 0

    def test_minimum_one(self):
        assert calculate_reorder_point(0.01) == 1

    def test_rounds_half_up(self):
        assert calculate_reorder_point(0.25) == 3

    def test_monotonic(self):
        previous = 0
        for step in range(200):
            point = calculate_reorder_point(step * 0.05)
            assert point >= previous
            previous = point


class TestDeadStock:
    def test_unsold_variants_with_stock(self):
        variants = [
            VariantRecord(id="v1", product_id="p1"),
            VariantRecord(id="v2", product_id="p1"),
            VariantRecord(id="v3", product_id="p2"),
        ]
        positions = {
            "v1": StockPosition(available=5),
            "v2": StockPosition(available=0),
            "v3": StockPosition(available=8),
        }

        assert find_dead_stock(variants, positions, {"v3"}) == ["v1"]
        assert count_dead_stock(variants, positions, set()) == 2
