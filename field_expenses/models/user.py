from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from .constants import Role


class UserCreate(BaseModel):
    name: str
    email: str

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("name cannot be empty")
        return value.strip()

    @field_validator("email")
    @classmethod
    def _email_shape(cls, value: str) -> str:
        value = value.strip().lower()
        if "@" not in value or value.startswith("@") or value.endswith("@"):
            raise ValueError("invalid email")
        return value


class User(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    role: Role = Role.user
    is_approved: bool = False
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class ActorContext:
    """Who is calling: resolved once per request and passed explicitly."""

    actor_id: str
    role: Role
    is_approved: bool

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin
