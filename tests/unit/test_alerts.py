"""
Unit Tests - Alert Generator
"""
import pytest

from inventory_analytics.analytics.alerts import (
    AlertGenerator,
    AlertType,
    VariantStockPosition,
)
from inventory_analytics.analytics.classification import ReplenishmentPolicy


def _position(variant_id: str, available: int, units_sold: int = 0) -> VariantStockPosition:
    return VariantStockPosition(
        product_id=f"p-{variant_id}",
        product_name=f"Product {variant_id}",
        variant_id=variant_id,
        available=available,
        units_sold=units_sold,
        sku=f"SKU-{variant_id}",
    )


@pytest.fixture
def generator() -> AlertGenerator:
    return AlertGenerator(ReplenishmentPolicy(), analysis_days=30)


class TestAlertRules:
    """Tests for individual alert rules"""

    def test_out_of_stock_is_critical_with_zero_days(self, generator):
        alert = generator.evaluate(_position("v1", available=0, units_sold=300))

        assert alert.type == AlertType.CRITICAL
        assert alert.days_until_stockout == 0
        assert alert.current_stock == 0

    def test_out_of_stock_without_sales(self, generator):
        alert = generator.evaluate(_position("v1", available=-4))

        assert alert.type == AlertType.CRITICAL
        assert alert.days_until_stockout == 0

    def test_projected_stockout(self, generator):
        # 30 units over 30 days, 2 left
        alert = generator.evaluate(_position("v1", available=2, units_sold=30))

        assert alert.type == AlertType.CRITICAL
        assert alert.days_until_stockout == 2.0

    def test_low(self, generator):
        alert = generator.evaluate(_position("v1", available=8, units_sold=30))

        assert alert.type == AlertType.LOW
        assert alert.reorder_point == 10

    def test_overstock_with_sales(self, generator):
        alert = generator.evaluate(_position("v1", available=40, units_sold=30))

        assert alert.type == AlertType.OVERSTOCK
        assert alert.days_until_stockout == 40.0

    def test_idle_overstock(self, generator):
        alert = generator.evaluate(_position("v1", available=50))

        assert alert.type == AlertType.OVERSTOCK
        assert alert.days_until_stockout is None

    def test_no_alert(self, generator):
        assert generator.evaluate(_position("v1", available=20, units_sold=30)) is None
        assert generator.evaluate(_position("v2", available=10)) is None

    def test_reorder(self):
        # 0.46 units a day: reorder point rounds up to 5 while cover is 10.9 days
        generator = AlertGenerator(ReplenishmentPolicy(), analysis_days=50)

        alert = generator.evaluate(_position("v1", available=5, units_sold=23))

        assert alert.type == AlertType.REORDER
        assert alert.reorder_point == 5
        assert alert.days_until_stockout == 10.9

    def test_missing_sku(self, generator):
        position = VariantStockPosition(product_id="p", product_name="P", variant_id="v", available=0)

        assert generator.evaluate(position).sku == "N/A"


class TestAlertList:
    """Tests for ordering, deduplication and limits"""

    def test_severity_order(self, generator):
        positions = [
            _position("over", available=200, units_sold=30),
            _position("low", available=8, units_sold=30),
            _position("crit", available=2, units_sold=30),
            _position("out", available=0),
        ]

        alerts = generator.generate(positions)

        ranks = [alert.severity_rank for alert in alerts]
        assert ranks == sorted(ranks)
        assert [alert.variant_id for alert in alerts] == ["out", "crit", "low", "over"]

    def test_unknown_days_sort_last(self, generator):
        alerts = generator.generate([
            _position("idle", available=80),
            _position("moving", available=200, units_sold=30),
        ])

        assert [alert.variant_id for alert in alerts] == ["moving", "idle"]

    def test_duplicates_removed(self, generator):
        alerts = generator.generate([_position("v1", available=0), _position("v1", available=0)])

        assert len(alerts) == 1
        assert alerts[0].id == "v1-critical"

    def test_limit_applies_after_sort(self, generator):
        alerts = generator.generate(
            [_position("over", available=200, units_sold=30), _position("out", available=0)],
            limit=1,
        )

        assert [alert.variant_id for alert in alerts] == ["out"]

    def test_to_dict(self, generator):
        data = generator.evaluate(_position("v1", available=0)).to_dict()

        assert data["type"] == "critical"
        assert data["id"] == "v1-critical"
