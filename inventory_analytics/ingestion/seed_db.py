"""
Database Seeder

Creates the schema and loads a synthetic store for one organization, then
builds its first inventory snapshot.

Usage:
    python -m inventory_analytics.ingestion.seed_db --organization demo-org
"""

import argparse
import asyncio
from typing import Any, Callable, Dict, List

import polars as pl
import structlog
from sqlalchemy import insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncEngine

from inventory_analytics.config import get_settings
from inventory_analytics.config.logging import configure_logging
from inventory_analytics.data.generators import StoreGenerator
from inventory_analytics.database.connection import close_database, get_db, init_database
from inventory_analytics.database.models import (
    Base,
    InventoryLevel,
    Order,
    OrderLineItem,
    Product,
    ProductVariant,
    VariantCost,
)
from inventory_analytics.serving.inventory import create_inventory_service

logger = structlog.get_logger(__name__)
settings = get_settings()

# Parents before children so foreign keys resolve
LOAD_ORDER = [
    ("products", Product),
    ("variants", ProductVariant),
    ("inventory_levels", InventoryLevel),
    ("variant_costs", VariantCost),
    ("orders", Order),
    ("order_line_items", OrderLineItem),
]

CHUNK_SIZE = 1000


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Schema ready")


async def execute_batch_insert(session_scope: Callable, model: Any, records: List[Dict[str, Any]]) -> int:
    """Insert records in chunks, skipping rows that already exist on PostgreSQL"""
    if not records:
        return 0

    async with session_scope() as db:
        dialect = db.get_bind().dialect.name
        for i in range(0, len(records), CHUNK_SIZE):
            chunk = records[i:i + CHUNK_SIZE]
            if dialect == "postgresql":
                stmt = pg_insert(model).values(chunk).on_conflict_do_nothing()
            else:
                stmt = insert(model).values(chunk)
            await db.execute(stmt)

    logger.info("Inserted records", table=model.__tablename__, count=len(records))
    return len(records)


async def load_store(session_scope: Callable, data: Dict[str, pl.DataFrame]) -> Dict[str, int]:
    """Load generated frames into the source tables"""
    counts = {}
    for name, model in LOAD_ORDER:
        frame = data.get(name)
        records = frame.to_dicts() if frame is not None else []
        counts[name] = await execute_batch_insert(session_scope, model, records)
    return counts


async def main(organization_id: str, n_products: int, n_orders: int, seed: int) -> None:
    configure_logging()
    logger.info("Starting database seeding", organization_id=organization_id)
    engine = await init_database()

    try:
        await create_schema(engine)
        data = StoreGenerator(seed=seed).generate(organization_id, n_products=n_products, n_orders=n_orders)
        counts = await load_store(get_db, data)
        logger.info("Store loaded", organization_id=organization_id, **counts)

        service = create_inventory_service(get_db, settings.inventory)
        result = await service.refresh(organization_id, force=True)
        logger.info("Initial snapshot built", computed_at=result.computed_at.isoformat())
    except Exception as e:
        logger.error("Seeding failed", error=str(e))
        raise
    finally:
        await close_database()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed a synthetic store")
    parser.add_argument("--organization", default="demo-org")
    parser.add_argument("--products", type=int, default=100)
    parser.add_argument("--orders", type=int, default=2000)
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()

    asyncio.run(main(args.organization, args.products, args.orders, args.seed))
