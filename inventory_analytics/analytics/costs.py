"""
Cost Resolution

Resolves a per-unit cost for a variant. Explicit merchant overrides win;
otherwise a conservative heuristic is derived from the variant's pricing.
Unknown cost never blocks a computation, it degrades to the heuristic.
"""

import math
from typing import Dict, Iterable, Optional

import structlog

from inventory_analytics.analytics.records import CostOverride, VariantRecord

logger = structlog.get_logger(__name__)

# Share of list price assumed as cost when nothing better is known
HEURISTIC_COST_RATIO = 0.6


def as_number(value) -> Optional[float]:
    """Return value as a finite float, or None for missing / non-numeric input."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def heuristic_unit_cost(price: Optional[float], compare_at_price: Optional[float] = None) -> float:
    """
    Estimate a unit cost from pricing alone.

    A positive compare-at price below the list price is taken as the cost;
    otherwise 60% of the list price. Zero counts as unset.
    """
    list_price = as_number(price) or 0.0
    compare_at = as_number(compare_at_price)
    if compare_at is not None and 0 < compare_at < list_price:
        return compare_at
    return max(0.0, list_price * HEURISTIC_COST_RATIO)


class VariantCostCache:
    """
    Cost overrides for one organization, loaded once per computation pass.

    Instances are created per request or rebuild and passed to every
    component that needs a cost; they are never shared across
    organizations.

    Example:
        cache = VariantCostCache.from_overrides(overrides)
        cost = cache.resolve_unit_cost(variant)
    """

    def __init__(self, overrides: Optional[Dict[str, CostOverride]] = None):
        self._overrides: Dict[str, CostOverride] = dict(overrides or {})

    @classmethod
    def from_overrides(cls, overrides: Iterable[CostOverride]) -> "VariantCostCache":
        """Build a cache keyed by variant id"""
        cache = cls()
        for override in overrides:
            cache._overrides[override.variant_id] = override
        logger.debug("Variant cost cache primed", overrides=len(cache._overrides))
        return cache

    def __len__(self) -> int:
        return len(self._overrides)

    def __contains__(self, variant_id: str) -> bool:
        return variant_id in self._overrides

    def get(self, variant_id: str) -> Optional[CostOverride]:
        """Cost override for a variant, if any"""
        return self._overrides.get(variant_id)

    def resolve_unit_cost(self, variant: VariantRecord) -> float:
        """
        Resolve the per-unit cost of a variant.

        Resolution order:
        1. override cogs_per_unit when present and numeric
        2. compare_at_price when positive and below price
        3. price * 0.6

        Returns:
            Non-negative unit cost
        """
        override = self._overrides.get(variant.id)
        if override is not None:
            cogs = as_number(override.cogs_per_unit)
            if cogs is not None:
                return max(0.0, cogs)
        return heuristic_unit_cost(variant.price, variant.compare_at_price)
