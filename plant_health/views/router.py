"""View router - which surface is active for the current session."""

from enum import Enum
from typing import Optional

from plant_health.accounts.schemas import Principal


class Surface(str, Enum):
    AUTH = "auth"
    USER = "user"
    ADMIN = "admin"


def select_surface(principal: Optional[Principal]) -> Surface:
    """Anonymous -> auth, admin -> admin workspace, anyone else -> user workspace."""
    if principal is None:
        return Surface.AUTH
    if principal.is_admin:
        return Surface.ADMIN
    return Surface.USER
