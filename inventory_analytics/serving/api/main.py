"""
FastAPI Application Factory

Creates and configures the inventory analytics API application.
"""

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from inventory_analytics.config import get_settings
from inventory_analytics.serving.api.middleware import (
    RequestLoggingMiddleware,
    RateLimitMiddleware,
    SecurityHeadersMiddleware,
)
from inventory_analytics.serving.api.routes import health_router, inventory_router

settings = get_settings()


def create_api_app(lifespan=None, rate_limit: Optional[int] = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        lifespan: Lifespan context manager wiring database, Redis and the
            inventory service; tests pass None and set app.state themselves
        rate_limit: Requests per window, defaults to the security settings

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="Inventory Analytics API",
        description="Stock health, ABC segmentation, reorder signals and stockout alerts",
        version=settings.version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(GZipMiddleware, minimum_size=1000)

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=rate_limit or settings.security.rate_limit_requests,
        window_seconds=settings.security.rate_limit_window_seconds,
    )

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(inventory_router, prefix="/api/v1/inventory", tags=["Inventory"])

    @app.get("/api/v1/info")
    async def api_info():
        """API information endpoint."""
        return {
            "name": settings.app_name,
            "version": settings.version,
            "environment": settings.app_env,
        }

    return app
