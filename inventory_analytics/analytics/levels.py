"""
Stock Level Resolution

Turns raw inventory level rows and variant fallback quantities into one
clamped stock position per variant.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, Optional

from inventory_analytics.analytics.records import InventoryLevelRecord, VariantRecord


@dataclass(frozen=True)
class StockPosition:
    """Resolved stock for one variant; available is never negative"""
    available: int = 0
    incoming: int = 0
    committed: int = 0

    @property
    def on_hand(self) -> int:
        return self.available + self.committed


def resolve_level_timestamp(level: InventoryLevelRecord) -> Optional[datetime]:
    """Freshness of a level row: updated_at, else synced_at, else unknown"""
    if level.updated_at is not None:
        return level.updated_at
    if level.synced_at is not None:
        return level.synced_at
    return None


def _count(value) -> int:
    if value is None or isinstance(value, bool):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _is_newer(candidate: InventoryLevelRecord, current: InventoryLevelRecord) -> bool:
    candidate_ts = resolve_level_timestamp(candidate)
    current_ts = resolve_level_timestamp(current)
    if candidate_ts is None:
        return False
    return current_ts is None or candidate_ts > current_ts


def resolve_stock_positions(
    levels: Iterable[InventoryLevelRecord],
    variants: Iterable[VariantRecord],
) -> Dict[str, StockPosition]:
    """
    Resolve a stock position for every variant.

    When several level rows exist for a variant the most recent one wins.
    The variant's own inventory_quantity is used when no level row exists,
    and also when it reports more stock than the level row. Negative
    quantities are clamped to zero.

    Returns:
        Mapping of variant id to StockPosition
    """
    latest: Dict[str, InventoryLevelRecord] = {}
    for level in levels:
        current = latest.get(level.variant_id)
        if current is None or _is_newer(level, current):
            latest[level.variant_id] = level

    positions: Dict[str, StockPosition] = {}
    for variant in variants:
        fallback = _count(variant.inventory_quantity)
        level = latest.get(variant.id)
        if level is None:
            available, incoming, committed = fallback, 0, 0
        else:
            available = max(_count(level.available), fallback)
            incoming = _count(level.incoming)
            committed = _count(level.committed)
        positions[variant.id] = StockPosition(
            available=max(0, available),
            incoming=max(0, incoming),
            committed=max(0, committed),
        )

    return positions
