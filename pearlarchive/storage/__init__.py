"""Overlay storage backends."""

from pearlarchive.storage.base import OverlayRepository
from pearlarchive.storage.sqlite_store import SQLiteOverlayStore
from pearlarchive.storage.redis_store import RedisOverlayStore

__all__ = ["OverlayRepository", "SQLiteOverlayStore", "RedisOverlayStore"]
