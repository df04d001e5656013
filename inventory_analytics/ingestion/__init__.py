"""
Data Ingestion Module
"""
from .seed_db import create_schema, load_store

__all__ = [
    "create_schema",
    "load_store",
]
