"""Shared route dependencies."""

from fastapi import HTTPException, Request

from plant_health.accounts.schemas import Principal
from plant_health.context import PlantHealthContext


def get_context(request: Request) -> PlantHealthContext:
    """The process-wide context held by the app's lifespan."""
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise HTTPException(status_code=503, detail="Service is starting up")
    return context


def require_principal(context: PlantHealthContext) -> Principal:
    """Current principal, or 401 when nobody is logged in."""
    principal = context.session.current
    if principal is None:
        raise HTTPException(status_code=401, detail="Not logged in.")
    return principal
