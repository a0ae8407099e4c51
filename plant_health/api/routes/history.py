"""History routes.

Endpoints:
    GET /v1/history          Records visible to the current principal
    GET /v1/history/stats    Aggregate counts (admin only)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from plant_health.analysis.schemas import HistoricalAnalysisRecord, HistoryStats
from plant_health.api.deps import get_context, require_principal
from plant_health.context import PlantHealthContext

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/history", tags=["history"])


@router.get("", response_model=list[HistoricalAnalysisRecord])
async def list_history(context: PlantHealthContext = Depends(get_context)):
    """Admins see every record; users see their own. Newest first."""
    principal = require_principal(context)
    return context.history.list_for_principal(principal)


@router.get("/stats", response_model=HistoryStats)
async def history_stats(context: PlantHealthContext = Depends(get_context)):
    principal = require_principal(context)
    if not principal.is_admin:
        logger.warning(f"Stats requested by non-admin {principal.email}")
        raise HTTPException(status_code=403, detail="Administrator access required.")
    return context.history.stats()
