"""Active surface route.

GET /v1/view returns the surface chosen for the current session together
with the data that surface shows:
- auth:  the last authentication error
- user:  pipeline state and the user's own history
- admin: every history record, aggregate stats and registered accounts
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from plant_health.accounts.schemas import Principal
from plant_health.analysis.schemas import (
    HistoricalAnalysisRecord,
    HistoryStats,
    PipelineSnapshot,
)
from plant_health.api.deps import get_context
from plant_health.context import PlantHealthContext
from plant_health.views.router import Surface

router = APIRouter(tags=["view"])


class ViewResponse(BaseModel):
    surface: Surface
    principal: Optional[Principal] = None
    auth_error: Optional[str] = None
    pipeline: Optional[PipelineSnapshot] = None
    history: list[HistoricalAnalysisRecord] = Field(default_factory=list)
    stats: Optional[HistoryStats] = None
    accounts: list[Principal] = Field(default_factory=list)


@router.get("/view", response_model=ViewResponse)
async def current_view(context: PlantHealthContext = Depends(get_context)):
    surface = context.surface
    principal = context.session.current

    if surface == Surface.AUTH:
        return ViewResponse(surface=surface, auth_error=context.session.auth_error)

    history = context.history.list_for_principal(principal)
    if surface == Surface.ADMIN:
        return ViewResponse(
            surface=surface,
            principal=principal,
            history=history,
            stats=context.history.stats(),
            accounts=context.registry.list_principals(),
        )

    return ViewResponse(
        surface=surface,
        principal=principal,
        pipeline=context.pipeline.snapshot(),
        history=history,
    )
