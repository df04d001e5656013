"""
Analytics Record Types

Plain records the analytics engine computes over. They are decoupled from
the ORM so every component can be exercised without a database.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class StockStatus(str, Enum):
    """Stock health classification"""
    HEALTHY = "healthy"
    LOW = "low"
    CRITICAL = "critical"
    OUT = "out"


class ABCCategory(str, Enum):
    """Pareto revenue tier"""
    A = "A"
    B = "B"
    C = "C"


@dataclass(frozen=True)
class ProductRecord:
    """Catalog product"""
    id: str
    title: str
    handle: Optional[str] = None
    product_type: Optional[str] = None
    vendor: Optional[str] = None
    featured_image: Optional[str] = None


@dataclass(frozen=True)
class VariantRecord:
    """Sellable SKU belonging to exactly one product"""
    id: str
    product_id: str
    sku: Optional[str] = None
    title: Optional[str] = None
    price: Optional[float] = None
    compare_at_price: Optional[float] = None
    inventory_quantity: Optional[int] = None  # fallback stock signal


@dataclass(frozen=True)
class InventoryLevelRecord:
    """Stock counts for one variant"""
    variant_id: str
    available: Optional[int] = None
    incoming: Optional[int] = None
    committed: Optional[int] = None
    updated_at: Optional[datetime] = None
    synced_at: Optional[datetime] = None


@dataclass(frozen=True)
class OrderRecord:
    """Order header; created_at drives all windowing"""
    id: str
    created_at: datetime


@dataclass(frozen=True)
class LineItemRecord:
    """Order line item"""
    order_id: str
    variant_id: Optional[str] = None
    product_id: Optional[str] = None
    quantity: int = 0
    price: Optional[float] = None  # unit price
    total_discount: Optional[float] = None


@dataclass(frozen=True)
class CostOverride:
    """Merchant-entered cost components for a variant"""
    variant_id: str
    cogs_per_unit: Optional[float] = None
    handling_per_unit: Optional[float] = None
    tax_percent: Optional[float] = None
