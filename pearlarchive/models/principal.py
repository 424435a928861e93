"""Caller identity supplied by the auth collaborator."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    """Caller role."""
    USER = "user"
    ADMIN = "admin"


class Principal(BaseModel):
    """An authenticated caller. Anonymous callers are represented by None."""

    model_config = ConfigDict(frozen=True)

    id: str
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
