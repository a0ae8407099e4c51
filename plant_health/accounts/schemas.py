"""Schemas for principals and their stored credentials."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class Principal(BaseModel):
    """An authenticated identity with an associated role."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Stable surrogate key")
    email: str = Field(..., description="Lookup identity (case-sensitive)")
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class CredentialRecord(BaseModel):
    """One registry entry: principal fields plus the plain-text password."""

    id: str
    email: str
    password: str
    role: Role = Role.USER

    def to_principal(self) -> Principal:
        return Principal(id=self.id, email=self.email, role=self.role)


class Credentials(BaseModel):
    """Login / registration request body."""

    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
