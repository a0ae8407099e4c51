"""Schemas for analysis results, history records and pipeline state."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AnalysisResult(BaseModel):
    """Structured health assessment returned by the inference capability."""

    model_config = ConfigDict(frozen=True)

    plant_name: str = Field(..., description="Common name of the identified plant")
    is_healthy: bool
    disease_name: str = Field(
        ..., description="Detected disease, or a 'healthy' label when none"
    )
    confidence_score: float = Field(..., ge=0.0, le=1.0)
    description: str = ""
    possible_causes: list[str] = Field(default_factory=list)
    recommended_actions: list[str] = Field(default_factory=list)


class HistoricalAnalysisRecord(BaseModel):
    """A durable, attributed snapshot of one completed analysis.

    Persisted with camelCase keys (userEmail, imageUrl).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    user_email: str = Field(..., alias="userEmail")
    analysis: AnalysisResult
    timestamp: str = Field(..., description="ISO 8601 timestamp (UTC)")
    image_url: str = Field(..., alias="imageUrl", description="data: URI of the image")


class PipelineState(str, Enum):
    """Analysis attempt lifecycle."""
    IDLE = "idle"
    IMAGE_SELECTED = "image_selected"
    ANALYZING = "analyzing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class PipelineSnapshot(BaseModel):
    """Read-only view of the pipeline for the user workspace."""

    state: PipelineState
    is_loading: bool = False
    has_image: bool = False
    image_url: Optional[str] = None
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None


class HistoryStats(BaseModel):
    """Aggregate counts for the admin workspace."""

    total: int = 0
    healthy: int = 0
    diseased: int = 0
    users: int = 0
