"""
Serving Module
"""
from .cache import init_redis, close_redis, get_redis, CacheManager, sales_window_cache

__all__ = [
    "init_redis",
    "close_redis",
    "get_redis",
    "CacheManager",
    "sales_window_cache",
]
