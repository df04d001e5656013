"""
FastAPI Production Application

Main entry point for the Inventory Analytics API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
import structlog

from inventory_analytics.config import get_settings
from inventory_analytics.config.logging import configure_logging
from inventory_analytics.database.connection import close_database, get_db, init_database
from inventory_analytics.serving.api.main import create_api_app
from inventory_analytics.serving.cache import close_redis, get_redis, init_redis, sales_window_cache
from inventory_analytics.serving.inventory import create_inventory_service

settings = get_settings()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    configure_logging()

    logger.info("Starting Inventory Analytics API", environment=settings.app_env)

    await init_database()

    redis_ready = False
    if settings.redis.enabled:
        try:
            await init_redis()
            redis_ready = True
        except Exception as e:
            logger.warning("Redis unavailable, running without window cache and rebuild lock", error=str(e))

    service = create_inventory_service(
        session_scope=get_db,
        settings=settings.inventory,
        sales_cache=sales_window_cache if redis_ready else None,
        redis_client=get_redis if redis_ready else None,
    )
    app.state.inventory_service = service

    yield

    logger.info("Shutting down...")
    await service.refresher.shutdown()
    app.state.inventory_service = None
    await close_redis()
    await close_database()


app = create_api_app(lifespan=lifespan)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
