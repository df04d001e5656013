"""
Alert Generator

Turns per-variant stock positions into a severity-ranked, deduplicated list
of stock alerts.
"""

import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

import structlog

from inventory_analytics.analytics.classification import (
    ReplenishmentPolicy,
    average_daily_sales,
    calculate_reorder_point,
    coverage_days,
)
from inventory_analytics.analytics.rounding import round1

logger = structlog.get_logger(__name__)

OVERSTOCK_COVER_MULTIPLIER = 3
IDLE_OVERSTOCK_UNITS = 50


class AlertType(str, Enum):
    CRITICAL = "critical"
    LOW = "low"
    REORDER = "reorder"
    OVERSTOCK = "overstock"


SEVERITY_RANK = {
    AlertType.CRITICAL: 0,
    AlertType.LOW: 1,
    AlertType.REORDER: 2,
    AlertType.OVERSTOCK: 3,
}


@dataclass(frozen=True)
class VariantStockPosition:
    """Everything the alert rules need to know about one variant"""
    product_id: str
    product_name: str
    variant_id: str
    available: int
    units_sold: int = 0
    variant_title: Optional[str] = None
    sku: Optional[str] = None


@dataclass(frozen=True)
class StockAlert:
    id: str
    type: AlertType
    product_id: str
    product_name: str
    variant_id: str
    variant_title: Optional[str]
    sku: str
    current_stock: int
    reorder_point: int
    days_until_stockout: Optional[float]
    message: str

    @property
    def severity_rank(self) -> int:
        return SEVERITY_RANK[self.type]

    def sort_key(self):
        days = self.days_until_stockout
        return (self.severity_rank, math.inf if days is None else days)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        return data


class AlertGenerator:
    """
    Evaluates alert rules for variants in a fixed priority order.

    At most one alert is produced per variant: the first rule that matches.
    """

    def __init__(self, policy: ReplenishmentPolicy, analysis_days: int):
        self.policy = policy
        self.analysis_days = max(1, analysis_days)

    def evaluate(self, position: VariantStockPosition) -> Optional[StockAlert]:
        """Return the highest-priority alert for a variant, if any"""
        available = max(0, position.available)
        avg = average_daily_sales(position.units_sold, self.analysis_days)
        reorder_point = calculate_reorder_point(avg, self.policy)
        coverage = coverage_days(available, avg)

        if available <= 0:
            return self._alert(
                position, AlertType.CRITICAL, reorder_point, 0.0,
                "Out of stock. Immediate reorder required.",
            )

        if coverage is None:
            if available >= IDLE_OVERSTOCK_UNITS:
                return self._alert(
                    position, AlertType.OVERSTOCK, reorder_point, None,
                    "No recent sales but inventory remains high. Consider promotions or markdowns.",
                )
            return None

        days = round1(coverage)
        if coverage <= self.policy.safety_stock_days:
            return self._alert(
                position, AlertType.CRITICAL, reorder_point, days,
                f"Projected stockout in {days} days at current velocity.",
            )
        if coverage <= self.policy.cover_days:
            return self._alert(
                position, AlertType.LOW, reorder_point, days,
                f"Inventory covers approximately {days} days of demand.",
            )
        if available <= reorder_point:
            return self._alert(
                position, AlertType.REORDER, reorder_point, days,
                f"Available units ({available}) are at or below the reorder point ({reorder_point}).",
            )
        if coverage >= OVERSTOCK_COVER_MULTIPLIER * self.policy.cover_days:
            return self._alert(
                position, AlertType.OVERSTOCK, reorder_point, days,
                f"Inventory covers {days} days of demand, well beyond the replenishment cycle.",
            )
        return None

    def generate(self, positions: Iterable[VariantStockPosition], limit: Optional[int] = None) -> List[StockAlert]:
        """
        Evaluate every variant and return alerts ordered by severity.

        Ties are ordered by ascending days until stockout, with unknown
        values last. `limit` truncates after sorting.
        """
        alerts: Dict[str, StockAlert] = {}
        for position in positions:
            alert = self.evaluate(position)
            if alert is not None and alert.id not in alerts:
                alerts[alert.id] = alert

        ordered = sorted(alerts.values(), key=StockAlert.sort_key)
        if limit is not None:
            ordered = ordered[:max(0, limit)]

        logger.debug("Stock alerts generated", candidates=len(alerts), returned=len(ordered))
        return ordered

    @staticmethod
    def _alert(
        position: VariantStockPosition,
        alert_type: AlertType,
        reorder_point: int,
        days_until_stockout: Optional[float],
        message: str,
    ) -> StockAlert:
        return StockAlert(
            id=f"{position.variant_id}-{alert_type.value}",
            type=alert_type,
            product_id=position.product_id,
            product_name=position.product_name,
            variant_id=position.variant_id,
            variant_title=position.variant_title,
            sku=position.sku or "N/A",
            current_stock=max(0, position.available),
            reorder_point=reorder_point,
            days_until_stockout=days_until_stockout,
            message=message,
        )
