"""Authentication routes.

Endpoints:
    POST /v1/auth/login       Log in with email + password
    POST /v1/auth/register    Create a user account and log it in
    POST /v1/auth/logout      End the current session
    GET  /v1/auth/me          Current principal (or null) and last auth error
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from plant_health.accounts.schemas import Credentials, Principal
from plant_health.api.deps import get_context
from plant_health.context import PlantHealthContext
from plant_health.errors import DuplicateAccount, InvalidCredentials, PlantHealthError
from plant_health.views.router import Surface, select_surface

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _failure_status(failure: Optional[PlantHealthError]) -> int:
    if isinstance(failure, InvalidCredentials):
        return 401
    if isinstance(failure, DuplicateAccount):
        return 409
    return 500


class SessionResponse(BaseModel):
    principal: Optional[Principal] = None
    surface: Surface
    auth_error: Optional[str] = None


def _session_response(context: PlantHealthContext) -> SessionResponse:
    return SessionResponse(
        principal=context.session.current,
        surface=select_surface(context.session.current),
        auth_error=context.session.auth_error,
    )


@router.post("/login", response_model=SessionResponse)
async def login(
    credentials: Credentials,
    context: PlantHealthContext = Depends(get_context),
):
    """Log in. 401 with the auth error on mismatch."""
    principal = context.session.login(credentials.email, credentials.password)
    if principal is None:
        status = _failure_status(context.session.auth_failure)
        logger.warning(f"Login rejected for {credentials.email} ({status}): {context.session.auth_error}")
        raise HTTPException(status_code=status, detail=context.session.auth_error)
    return _session_response(context)


@router.post("/register", response_model=SessionResponse)
async def register(
    credentials: Credentials,
    context: PlantHealthContext = Depends(get_context),
):
    """Register and auto-login. 409 if the email is taken."""
    principal = context.session.register(credentials.email, credentials.password)
    if principal is None:
        status = _failure_status(context.session.auth_failure)
        logger.warning(f"Registration rejected for {credentials.email} ({status}): {context.session.auth_error}")
        raise HTTPException(status_code=status, detail=context.session.auth_error)
    return _session_response(context)


@router.post("/logout", response_model=SessionResponse)
async def logout(context: PlantHealthContext = Depends(get_context)):
    context.session.logout()
    return _session_response(context)


@router.get("/me", response_model=SessionResponse)
async def me(context: PlantHealthContext = Depends(get_context)):
    return _session_response(context)
