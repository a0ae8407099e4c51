"""Key-value persistence (SQLite by default, Postgres via DATABASE_URL)."""

from plant_health.storage.db import Database
from plant_health.storage.kv_store import InMemoryStore, KeyValueStore, SqlKeyValueStore

__all__ = [
    "Database",
    "InMemoryStore",
    "KeyValueStore",
    "SqlKeyValueStore",
]
