"""Authorization collaborator.

Answers one question, whether an actor holds administrative capability.
The HTTP layer consults it before every approval transition and every
category-limit change; the state machine itself never does.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from field_expenses.core.errors import NotAuthorizedError, UnknownActorError
from field_expenses.db.dal import Database
from field_expenses.models.constants import Role
from field_expenses.models.user import ActorContext


class Authorizer(ABC):
    @abstractmethod
    def is_admin(self, actor_id: str) -> bool:
        raise NotImplementedError

    def require_admin(self, actor_id: str) -> None:
        if not self.is_admin(actor_id):
            raise NotAuthorizedError()


class RoleAuthorizer(Authorizer):
    """Reads roles from the users table on every call."""

    def __init__(self, db: Database):
        self.db = db

    def is_admin(self, actor_id: str) -> bool:
        user = self.db.get_user(actor_id)
        return bool(user) and user["role"] == Role.admin.value and bool(
            user["is_approved"]
        )


def resolve_actor(db: Database, actor_id: Optional[str]) -> ActorContext:
    if not actor_id:
        raise UnknownActorError("missing X-Actor-Id header")
    user = db.get_user(actor_id)
    if not user:
        raise UnknownActorError(f"unknown actor '{actor_id}'")
    return ActorContext(
        actor_id=user["id"],
        role=Role(user["role"]),
        is_approved=bool(user["is_approved"]),
    )


__all__ = ["Authorizer", "RoleAuthorizer", "resolve_actor"]
