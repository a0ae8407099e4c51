"""Shared fixtures for the plant health test suite."""
import sys
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add project root to path so imports work without installing
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from plant_health.accounts.registry import AccountRegistry
from plant_health.accounts.session import SessionStore
from plant_health.analysis.history import HistoryStore
from plant_health.analysis.pipeline import AnalysisPipeline
from plant_health.analysis.schemas import AnalysisResult
from plant_health.errors import InferenceError, StorageError
from plant_health.storage.kv_store import InMemoryStore


# ── Canned data ──────────────────────────────────────────────────────────

BLIGHT = AnalysisResult(
    plant_name="Tomato",
    is_healthy=False,
    disease_name="Blight",
    confidence_score=0.92,
    description="Dark concentric lesions on lower leaves.",
    possible_causes=["Alternaria solani", "Wet foliage"],
    recommended_actions=["Remove infected leaves", "Apply copper fungicide"],
)

HEALTHY = AnalysisResult(
    plant_name="Basil",
    is_healthy=True,
    disease_name="Healthy",
    confidence_score=0.97,
    description="Leaves are uniformly green.",
    possible_causes=[],
    recommended_actions=["Continue routine care"],
)

# 1x1 transparent PNG
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c63000100000500010d0a2db40000000049454e44ae426082"
)


class FakeAnalyzer:
    """Inference capability stand-in: returns a result or raises."""

    def __init__(self, result=BLIGHT, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def analyze(self, image_bytes, mime_type):
        self.calls.append((image_bytes, mime_type))
        if self.error is not None:
            raise self.error
        return self.result


class BlockingAnalyzer:
    """Blocks inside analyze() until released, to observe the analyzing state."""

    def __init__(self, result=BLIGHT):
        self.result = result
        self.started = threading.Event()
        self.release = threading.Event()
        self.calls = 0

    def analyze(self, image_bytes, mime_type):
        self.calls += 1
        self.started.set()
        self.release.wait(timeout=5)
        return self.result


class UnreadableStore(InMemoryStore):
    """Reads fail until `readable` is set; writes always succeed."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.readable = False

    def get(self, key):
        if not self.readable:
            raise StorageError("unable to open database file")
        return super().get(key)


class SteppingClock:
    """Deterministic clock; each call advances by `step`."""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.now = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        current = self.now
        self.now = self.now + self.step
        return current


# ── Fixtures ─────────────────────────────────────────────────────────────

@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def registry(store):
    reg = AccountRegistry(store)
    reg.load()
    return reg


@pytest.fixture
def session(registry, store):
    return SessionStore(registry, store)


@pytest.fixture
def clock():
    return SteppingClock()


@pytest.fixture
def history(store, clock):
    hist = HistoryStore(store, clock=clock)
    hist.load()
    return hist


@pytest.fixture
def analyzer():
    return FakeAnalyzer()


@pytest.fixture
def failing_analyzer():
    return FakeAnalyzer(error=InferenceError("Failed to analyze image. The AI service returned an error: 503"))


@pytest.fixture
def pipeline(session, history, analyzer):
    return AnalysisPipeline(session, history, analyzer, timeout=5)
