"""Storage helpers for Assetpress."""

from .db import DEFAULT_CACHE_PATH, CacheEntryRecord, SqliteCache
from .directory import load_directory, write_directory

__all__ = [
    "DEFAULT_CACHE_PATH",
    "CacheEntryRecord",
    "SqliteCache",
    "load_directory",
    "write_directory",
]
