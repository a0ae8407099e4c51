"""Durable key-value storage for the persisted blobs.

Three keys are used: the account registry, the current-session marker,
and the history sequence. Writes are last-write-wins; no transactions.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Protocol, runtime_checkable

from plant_health.storage.db import Database

logger = logging.getLogger(__name__)


@runtime_checkable
class KeyValueStore(Protocol):
    """Protocol for string key-value stores."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class SqlKeyValueStore:
    """Key-value store backed by the kv_store table (SQLite or Postgres)."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or Database()

    def get(self, key: str) -> Optional[str]:
        row = self.db.execute(
            "SELECT value FROM kv_store WHERE key = %s",
            (key,),
            fetch="one",
        )
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        self.db.execute(
            """INSERT INTO kv_store (key, value, updated_at)
               VALUES (%s, %s, %s)
               ON CONFLICT (key) DO UPDATE
               SET value = EXCLUDED.value, updated_at = EXCLUDED.updated_at""",
            (key, value, now),
        )
        logger.debug(f"Stored {key}: {len(value):,} chars")

    def remove(self, key: str) -> None:
        self.db.execute("DELETE FROM kv_store WHERE key = %s", (key,))
        logger.debug(f"Removed {key}")

    def close(self) -> None:
        self.db.close()


class InMemoryStore:
    """Process-local store, for tests and throwaway sessions."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def close(self) -> None:
        pass
