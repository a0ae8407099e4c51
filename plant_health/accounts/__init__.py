"""Accounts - principal registry and the current session."""

from plant_health.accounts.registry import AccountRegistry
from plant_health.accounts.schemas import CredentialRecord, Credentials, Principal, Role
from plant_health.accounts.session import SessionStore

__all__ = [
    "AccountRegistry",
    "CredentialRecord",
    "Credentials",
    "Principal",
    "Role",
    "SessionStore",
]
