"""Tests for the history store: ordering, ids, timestamps, role filtering."""
import json
from datetime import datetime, timedelta, timezone

import pytest

from conftest import BLIGHT, HEALTHY, SteppingClock, UnreadableStore
from plant_health.accounts.schemas import Principal, Role
from plant_health.analysis.history import HistoryStore, format_timestamp, parse_timestamp
from plant_health.config import ANALYSES_KEY
from plant_health.errors import StorageError
from plant_health.storage.kv_store import InMemoryStore

ADMIN = Principal(id="admin-001", email="admin@plant.health", role=Role.ADMIN)
ALICE = Principal(id="user-a", email="alice@x.com", role=Role.USER)
BOB = Principal(id="user-b", email="bob@x.com", role=Role.USER)
IMAGE = "data:image/png;base64,AAAA"


def test_record_goes_to_front(history):
    first = history.record(ALICE, BLIGHT, IMAGE)
    second = history.record(BOB, HEALTHY, IMAGE)
    assert [r.id for r in history.list_all()] == [second.id, first.id]


def test_ids_unique_and_increasing_within_same_millisecond(store):
    frozen = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    hist = HistoryStore(store, clock=lambda: frozen)
    records = [hist.record(ALICE, BLIGHT, IMAGE) for _ in range(3)]
    numbers = [int(r.id.split("-")[1]) for r in records]
    assert numbers == sorted(numbers)
    assert len(set(numbers)) == 3


def test_timestamps_never_go_backwards(store):
    clock = SteppingClock(step=timedelta(seconds=-10))
    hist = HistoryStore(store, clock=clock)
    first = hist.record(ALICE, BLIGHT, IMAGE)
    second = hist.record(ALICE, BLIGHT, IMAGE)
    assert parse_timestamp(second.timestamp) >= parse_timestamp(first.timestamp)


def test_timestamp_format_is_iso_utc():
    moment = datetime(2024, 5, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)
    assert format_timestamp(moment) == "2024-05-01T12:00:00.123Z"


def test_persisted_with_camel_case_keys(history, store):
    history.record(ALICE, BLIGHT, IMAGE)
    stored = json.loads(store.get(ANALYSES_KEY))
    assert len(stored) == 1
    assert stored[0]["userEmail"] == "alice@x.com"
    assert stored[0]["imageUrl"] == IMAGE
    assert stored[0]["analysis"]["disease_name"] == "Blight"


def test_reload_preserves_order(history, store):
    history.record(ALICE, BLIGHT, IMAGE)
    history.record(BOB, HEALTHY, IMAGE)
    reloaded = HistoryStore(store)
    assert [r.user_email for r in reloaded.list_all()] == ["bob@x.com", "alice@x.com"]


def test_user_sees_only_own_records_in_order(history):
    a1 = history.record(ALICE, BLIGHT, IMAGE)
    history.record(BOB, HEALTHY, IMAGE)
    a2 = history.record(ALICE, HEALTHY, IMAGE)
    assert [r.id for r in history.list_for_principal(ALICE)] == [a2.id, a1.id]
    assert all(r.user_email == "bob@x.com" for r in history.list_for_principal(BOB))


def test_admin_sees_everything(history):
    history.record(ALICE, BLIGHT, IMAGE)
    history.record(BOB, HEALTHY, IMAGE)
    assert history.list_for_principal(ADMIN) == history.list_all()
    assert len(history.list_for_principal(ADMIN)) == 2


def test_stats(history):
    history.record(ALICE, BLIGHT, IMAGE)
    history.record(ALICE, HEALTHY, IMAGE)
    history.record(BOB, BLIGHT, IMAGE)
    stats = history.stats()
    assert (stats.total, stats.healthy, stats.diseased, stats.users) == (3, 1, 2, 2)


def test_corrupt_blob_loads_empty(store):
    store.set(ANALYSES_KEY, "[{]")
    assert HistoryStore(store).count() == 0


def test_failed_persist_leaves_sequence_unchanged(history):
    history.record(ALICE, BLIGHT, IMAGE)

    class BrokenStore(InMemoryStore):
        def set(self, key, value):
            raise StorageError("disk full")

    history.store = BrokenStore()
    with pytest.raises(StorageError):
        history.record(ALICE, HEALTHY, IMAGE)
    assert history.count() == 1


def test_unparseable_newest_timestamp_is_tolerated(store):
    first = HistoryStore(store, clock=SteppingClock())
    first.record(ALICE, BLIGHT, IMAGE)
    payload = json.loads(store.get(ANALYSES_KEY))
    payload[0]["timestamp"] = "yesterday"
    store.set(ANALYSES_KEY, json.dumps(payload))

    reloaded = HistoryStore(store, clock=SteppingClock())
    record = reloaded.record(ALICE, HEALTHY, IMAGE)
    assert reloaded.count() == 2
    assert int(record.id.split("-")[1]) > int(payload[0]["id"].split("-")[1])
    assert parse_timestamp(record.timestamp).year == 2024


def test_unreadable_store_loads_empty_and_refuses_appends():
    store = UnreadableStore()
    store.set(ANALYSES_KEY, "[]")
    hist = HistoryStore(store, clock=SteppingClock())
    hist.load()
    assert hist.count() == 0
    with pytest.raises(StorageError):
        hist.record(ALICE, BLIGHT, IMAGE)
    assert store._data[ANALYSES_KEY] == "[]"

    store.readable = True
    hist.record(ALICE, BLIGHT, IMAGE)
    assert hist.count() == 1
