"""
Database Models - Store Records and Inventory Snapshots

This module defines the persistence models used by the inventory analytics
engine. Two groups of tables live here:

Source Tables (read-only to the engine, synced from the storefront):
- Product: Catalog entries with descriptive fields
- ProductVariant: Sellable SKUs with pricing and a fallback stock count
- InventoryLevel: Per-variant available/incoming/committed quantities
- Order / OrderLineItem: Sales history used for all windowing
- VariantCost: Optional per-variant cost overrides

Snapshot Tables (written only by the snapshot rebuild):
- InventorySnapshot: Append-only generation table with overview totals
- InventoryProductSummary: Per-product rows bound to one generation
- InventorySnapshotPointer: Current generation per organization
"""

from datetime import datetime
from typing import Optional, List

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")

# Money columns are read back as float for arithmetic in the engine
Money = Numeric(12, 2, asdecimal=False)


# =============================================================================
# SOURCE TABLES
# =============================================================================

class Product(Base):
    """
    Product Table

    Catalog entry owned by an organization. Identity is immutable,
    descriptive fields follow the storefront.
    """
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    handle: Mapped[Optional[str]] = mapped_column(String(255))
    product_type: Mapped[Optional[str]] = mapped_column(String(255))  # category
    vendor: Mapped[Optional[str]] = mapped_column(String(255))
    featured_image: Mapped[Optional[str]] = mapped_column(Text)

    # Audit
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    # Relationships
    variants: Mapped[List["ProductVariant"]] = relationship(back_populates="product")

    __table_args__ = (
        Index("ix_products_organization", "organization_id"),
    )


class ProductVariant(Base):
    """
    Product Variant Table

    A sellable SKU. `inventory_quantity` is the storefront's own stock count
    and is used when no inventory level row exists.
    """
    __tablename__ = "product_variants"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False)
    product_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("products.id"), nullable=False
    )

    sku: Mapped[Optional[str]] = mapped_column(String(128))
    title: Mapped[Optional[str]] = mapped_column(String(255))

    # Pricing
    price: Mapped[Optional[float]] = mapped_column(Money)
    compare_at_price: Mapped[Optional[float]] = mapped_column(Money)

    # Fallback stock signal
    inventory_quantity: Mapped[Optional[int]] = mapped_column(Integer)

    # Relationships
    product: Mapped["Product"] = relationship(back_populates="variants")

    __table_args__ = (
        Index("ix_product_variants_organization", "organization_id"),
        Index("ix_product_variants_product", "product_id"),
    )


class InventoryLevel(Base):
    """
    Inventory Level Table

    Stock counts for a variant. Zero or one row per variant in the steady
    state; either timestamp may be missing depending on the sync path.
    """
    __tablename__ = "inventory_levels"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False)
    variant_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("product_variants.id"), nullable=False
    )

    available: Mapped[Optional[int]] = mapped_column(Integer)
    incoming: Mapped[Optional[int]] = mapped_column(Integer)
    committed: Mapped[Optional[int]] = mapped_column(Integer)

    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    synced_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    __table_args__ = (
        Index("ix_inventory_levels_organization", "organization_id"),
        Index("ix_inventory_levels_variant", "variant_id"),
    )


class Order(Base):
    """
    Order Table

    Only the fields the analytics need. `created_at` is the storefront
    timestamp and drives every sales window.
    """
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False)
    order_number: Mapped[Optional[str]] = mapped_column(String(64))
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relationships
    line_items: Mapped[List["OrderLineItem"]] = relationship(back_populates="order")

    __table_args__ = (
        Index("ix_orders_organization_created", "organization_id", "created_at"),
    )


class OrderLineItem(Base):
    """
    Order Line Item Table

    Variant and product references are both optional; the product is
    resolved through the variant when absent.
    """
    __tablename__ = "order_line_items"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False)
    order_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("orders.id"), nullable=False
    )
    variant_id: Mapped[Optional[str]] = mapped_column(String(128))
    product_id: Mapped[Optional[str]] = mapped_column(String(128))

    quantity: Mapped[int] = mapped_column(Integer, default=0)
    price: Mapped[Optional[float]] = mapped_column(Money)  # unit price
    total_discount: Mapped[Optional[float]] = mapped_column(Money)

    # Relationships
    order: Mapped["Order"] = relationship(back_populates="line_items")

    __table_args__ = (
        Index("ix_order_line_items_order", "order_id"),
        Index("ix_order_line_items_variant", "variant_id"),
    )


class VariantCost(Base):
    """
    Variant Cost Override Table

    Merchant-entered unit costs. At most one row per variant.
    """
    __tablename__ = "variant_costs"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False)
    variant_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("product_variants.id"), nullable=False
    )

    cogs_per_unit: Mapped[Optional[float]] = mapped_column(Money)
    handling_per_unit: Mapped[Optional[float]] = mapped_column(Money)
    tax_percent: Mapped[Optional[float]] = mapped_column(Float)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "variant_id", name="uq_variant_costs_variant"),
    )


# =============================================================================
# SNAPSHOT TABLES
# =============================================================================

class InventorySnapshot(Base):
    """
    Inventory Snapshot Table

    One row per generation. Rows are inserted by a rebuild and never
    updated; readers reach them only through InventorySnapshotPointer.
    """
    __tablename__ = "inventory_snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False)
    computed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    analysis_window_days: Mapped[int] = mapped_column(Integer, nullable=False)

    # On-hand valuation
    total_value: Mapped[float] = mapped_column(Float, default=0)
    total_cogs: Mapped[float] = mapped_column(Float, default=0)
    total_skus: Mapped[int] = mapped_column(Integer, default=0)
    total_units_in_stock: Mapped[int] = mapped_column(Integer, default=0)

    # Health
    stock_coverage_days: Mapped[int] = mapped_column(Integer, default=0)
    dead_stock: Mapped[int] = mapped_column(Integer, default=0)
    health_score: Mapped[int] = mapped_column(Integer, default=0)
    turnover_rate: Mapped[float] = mapped_column(Float, default=0)

    # Sales in the default window and the window before it
    total_units_sold: Mapped[int] = mapped_column(Integer, default=0)
    total_revenue: Mapped[float] = mapped_column(Float, default=0)
    total_cogs_sold: Mapped[float] = mapped_column(Float, default=0)
    previous_units_sold: Mapped[int] = mapped_column(Integer, default=0)
    previous_revenue: Mapped[float] = mapped_column(Float, default=0)
    previous_cogs_sold: Mapped[float] = mapped_column(Float, default=0)

    # {"healthy": n, ...} and {"A": n, ...}
    status_counts: Mapped[dict] = mapped_column(JSONType, default=dict)
    abc_counts: Mapped[dict] = mapped_column(JSONType, default=dict)

    # Relationships
    products: Mapped[List["InventoryProductSummary"]] = relationship(
        back_populates="snapshot", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_inventory_snapshots_org_computed", "organization_id", "computed_at"),
    )


class InventoryProductSummary(Base):
    """
    Inventory Product Summary Table

    Denormalized per-product row of one snapshot generation.
    """
    __tablename__ = "inventory_product_summaries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    snapshot_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("inventory_snapshots.id", ondelete="CASCADE"), nullable=False
    )
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False)
    product_id: Mapped[str] = mapped_column(String(128), nullable=False)
    computed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    # Descriptive
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str] = mapped_column(String(255), nullable=False)
    image: Mapped[Optional[str]] = mapped_column(Text)
    category: Mapped[str] = mapped_column(String(255), nullable=False)
    vendor: Mapped[str] = mapped_column(String(255), nullable=False)

    # Stock
    stock: Mapped[int] = mapped_column(Integer, default=0)
    reserved: Mapped[int] = mapped_column(Integer, default=0)
    available: Mapped[int] = mapped_column(Integer, default=0)
    reorder_point: Mapped[int] = mapped_column(Integer, default=0)
    stock_status: Mapped[str] = mapped_column(String(16), nullable=False)

    # Economics
    price: Mapped[float] = mapped_column(Float, default=0)
    cost: Mapped[float] = mapped_column(Float, default=0)
    margin: Mapped[float] = mapped_column(Float, default=0)
    turnover_rate: Mapped[float] = mapped_column(Float, default=0)

    # Sales in the default window
    units_sold: Mapped[int] = mapped_column(Integer, default=0)
    period_revenue: Mapped[float] = mapped_column(Float, default=0)
    previous_units_sold: Mapped[int] = mapped_column(Integer, default=0)
    last_sold_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    abc_category: Mapped[str] = mapped_column(String(1), nullable=False)
    variant_count: Mapped[int] = mapped_column(Integer, default=1)
    variants: Mapped[list] = mapped_column(JSONType, default=list)

    # Relationships
    snapshot: Mapped["InventorySnapshot"] = relationship(back_populates="products")

    __table_args__ = (
        Index("ix_inventory_product_summaries_snapshot", "snapshot_id", "position"),
        Index("ix_inventory_product_summaries_org_product", "organization_id", "product_id"),
    )


class InventorySnapshotPointer(Base):
    """
    Current Snapshot Pointer Table

    One row per organization naming the generation readers should use.
    Swapped in the same transaction that writes the new generation.
    """
    __tablename__ = "inventory_snapshot_pointers"

    organization_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    snapshot_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("inventory_snapshots.id"), nullable=False
    )
    computed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    generation: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
