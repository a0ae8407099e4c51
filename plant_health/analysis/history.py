"""History store - append-only log of completed analyses.

One process-wide sequence, newest first, rewritten in full to the key-value
store on every append. Reads are filtered by role: administrators see every
record, users see only their own.

Record ids are "analysis-<n>" where n is the creation time in epoch
milliseconds, bumped past the newest existing id so ids stay unique and
strictly increasing even when two analyses land in the same millisecond.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from pydantic import TypeAdapter

from plant_health import config
from plant_health.accounts.schemas import Principal
from plant_health.errors import StorageError
from plant_health.storage.kv_store import KeyValueStore

from .schemas import AnalysisResult, HistoricalAnalysisRecord, HistoryStats

logger = logging.getLogger(__name__)

_records_adapter = TypeAdapter(list[HistoricalAnalysisRecord])

ID_PREFIX = "analysis-"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """ISO 8601 in UTC with millisecond precision and a Z suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _id_number(record_id: str) -> Optional[int]:
    if not record_id.startswith(ID_PREFIX):
        return None
    try:
        return int(record_id[len(ID_PREFIX):])
    except ValueError:
        return None


class HistoryStore:
    """Newest-first sequence of historical analysis records."""

    def __init__(
        self,
        store: KeyValueStore,
        key: str = config.ANALYSES_KEY,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.key = key
        self.clock = clock
        self._records: list[HistoricalAnalysisRecord] = []
        self._loaded = False

    def load(self) -> None:
        """Load the sequence from the store. Corrupt blobs load as empty.

        If the store cannot be read the sequence is empty and stays unloaded,
        so the next access retries and appends are refused until a read
        succeeds.
        """
        if self._loaded:
            return

        try:
            raw = self.store.get(self.key)
        except StorageError as e:
            logger.error(f"Could not read analysis history: {e}")
            self._records = []
            return

        if raw:
            try:
                self._records = _records_adapter.validate_json(raw)
            except ValueError as e:
                logger.error(f"Failed to load analysis history: {e}")
                self._records = []

        self._loaded = True
        logger.info(f"Loaded {len(self._records)} historical analyses")

    def _save(self) -> None:
        payload = [r.model_dump(mode="json", by_alias=True) for r in self._records]
        self.store.set(self.key, json.dumps(payload, ensure_ascii=False))

    def count(self) -> int:
        self.load()
        return len(self._records)

    def append(self, record: HistoricalAnalysisRecord) -> None:
        """Insert a record at the front and persist the whole sequence.

        Raises:
            StorageError: If the sequence could not be persisted; the
                in-memory sequence is left unchanged in that case.
        """
        self.load()
        if not self._loaded:
            raise StorageError("Analysis history is unavailable")
        self._records.insert(0, record)
        try:
            self._save()
        except Exception:
            self._records.pop(0)
            raise
        logger.info(
            f"Recorded analysis {record.id} for {record.user_email} "
            f"({len(self._records)} total)"
        )

    def _next_id_and_timestamp(self) -> tuple[str, str]:
        now = self.clock()
        number = int(now.timestamp() * 1000)
        if self._records:
            newest = self._records[0]
            newest_number = _id_number(newest.id)
            if newest_number is not None and number <= newest_number:
                number = newest_number + 1
            try:
                newest_time = parse_timestamp(newest.timestamp)
            except ValueError:
                logger.warning(f"Ignoring unparseable timestamp on {newest.id}: {newest.timestamp!r}")
            else:
                if now < newest_time:
                    now = newest_time
        return f"{ID_PREFIX}{number}", format_timestamp(now)

    def record(
        self,
        principal: Principal,
        analysis: AnalysisResult,
        image_url: str,
    ) -> HistoricalAnalysisRecord:
        """Build a record for a completed analysis and append it."""
        self.load()
        record_id, timestamp = self._next_id_and_timestamp()
        record = HistoricalAnalysisRecord(
            id=record_id,
            user_email=principal.email,
            analysis=analysis,
            timestamp=timestamp,
            image_url=image_url,
        )
        self.append(record)
        return record

    def list_all(self) -> list[HistoricalAnalysisRecord]:
        self.load()
        return list(self._records)

    def list_for_principal(self, principal: Principal) -> list[HistoricalAnalysisRecord]:
        """Records visible to a principal, newest first."""
        self.load()
        if principal.is_admin:
            return list(self._records)
        return [r for r in self._records if r.user_email == principal.email]

    def stats(self) -> HistoryStats:
        self.load()
        healthy = sum(1 for r in self._records if r.analysis.is_healthy)
        return HistoryStats(
            total=len(self._records),
            healthy=healthy,
            diseased=len(self._records) - healthy,
            users=len({r.user_email for r in self._records}),
        )
