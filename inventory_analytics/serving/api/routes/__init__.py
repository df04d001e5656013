"""
API Routes Module
"""
from .health import router as health_router
from .inventory import router as inventory_router

__all__ = [
    "health_router",
    "inventory_router",
]
