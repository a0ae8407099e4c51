"""Analysis - the image-to-assessment pipeline and its persisted history."""

from plant_health.analysis.history import HistoryStore
from plant_health.analysis.pipeline import AnalysisPipeline, InferenceCapability
from plant_health.analysis.schemas import (
    AnalysisResult,
    HistoricalAnalysisRecord,
    HistoryStats,
    PipelineSnapshot,
    PipelineState,
)

__all__ = [
    "AnalysisPipeline",
    "AnalysisResult",
    "HistoricalAnalysisRecord",
    "HistoryStats",
    "HistoryStore",
    "InferenceCapability",
    "PipelineSnapshot",
    "PipelineState",
]
