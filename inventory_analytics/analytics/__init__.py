"""
Analytics Module

Pure computations over catalog, stock and sales records.
"""
from .costs import VariantCostCache, heuristic_unit_cost
from .records import ABCCategory, StockStatus
from .sales import SalesAggregator, SalesBreakdown, SalesStats
from .snapshot import compute_snapshot
from .windows import DateWindow, normalize_date_range, utcnow, window_from_dates

__all__ = [
    "VariantCostCache",
    "heuristic_unit_cost",
    "ABCCategory",
    "StockStatus",
    "SalesAggregator",
    "SalesBreakdown",
    "SalesStats",
    "compute_snapshot",
    "DateWindow",
    "normalize_date_range",
    "utcnow",
    "window_from_dates",
]
