"""
Inventory HTTP API

FastAPI application factory, request middleware and the organization /
service dependencies shared by the routes.
"""
from .dependencies import ORGANIZATION_HEADER, get_inventory_service, get_organization_id
from .main import create_api_app
from .middleware import RequestLoggingMiddleware, RateLimitMiddleware, SecurityHeadersMiddleware

__all__ = [
    "ORGANIZATION_HEADER",
    "create_api_app",
    "get_inventory_service",
    "get_organization_id",
    "RequestLoggingMiddleware",
    "RateLimitMiddleware",
    "SecurityHeadersMiddleware",
]
