"""Application context - the components of one running process.

Owns the key-value store, account registry, session store, history store
and analysis pipeline. Built once at startup, mutated only through the
component operations, closed at shutdown.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from plant_health.accounts.registry import AccountRegistry
from plant_health.accounts.session import SessionStore
from plant_health.analysis.history import HistoryStore
from plant_health.analysis.pipeline import AnalysisPipeline, InferenceCapability
from plant_health.storage.kv_store import KeyValueStore, SqlKeyValueStore
from plant_health.views.router import Surface, select_surface

logger = logging.getLogger(__name__)


@dataclass
class PlantHealthContext:
    store: KeyValueStore
    registry: AccountRegistry
    session: SessionStore
    history: HistoryStore
    pipeline: AnalysisPipeline

    @property
    def surface(self) -> Surface:
        return select_surface(self.session.current)

    def close(self) -> None:
        close = getattr(self.store, "close", None)
        if close is not None:
            close()
        logger.info("Plant health context closed")


def create_context(
    store: Optional[KeyValueStore] = None,
    analyzer: Optional[InferenceCapability] = None,
    timeout: Optional[float] = None,
) -> PlantHealthContext:
    """Wire the components together, load persisted state and restore the session."""
    if store is None:
        store = SqlKeyValueStore()
    if analyzer is None:
        from plant_health.llm.inference import PlantHealthAnalyzer

        analyzer = PlantHealthAnalyzer()

    registry = AccountRegistry(store)
    registry.load()

    history = HistoryStore(store)
    history.load()

    session = SessionStore(registry, store)
    session.restore()

    pipeline = AnalysisPipeline(session, history, analyzer, timeout=timeout)

    logger.info(
        f"Context ready: {registry.count()} accounts, {history.count()} analyses, "
        f"surface={select_surface(session.current).value}"
    )
    return PlantHealthContext(
        store=store,
        registry=registry,
        session=session,
        history=history,
        pipeline=pipeline,
    )
