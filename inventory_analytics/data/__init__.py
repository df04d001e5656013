"""
Data Generation Module
"""
from .generators import StoreGenerator, save_store

__all__ = [
    "StoreGenerator",
    "save_store",
]
