"""Shared request dependencies.

The acting user arrives as the ``X-Actor-Id`` header and is resolved into an
`ActorContext` per request; nothing about the caller is kept in globals.
"""

from typing import Optional

from fastapi import Depends, Header, Request

from field_expenses.core.config import Settings
from field_expenses.core.errors import NotAuthorizedError
from field_expenses.db.dal import Database
from field_expenses.models.user import ActorContext
from field_expenses.services.authorization import (
    Authorizer,
    RoleAuthorizer,
    resolve_actor,
)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(settings: Settings = Depends(get_app_settings)) -> Database:
    return Database(settings.db_path)


def get_authorizer(db: Database = Depends(get_db)) -> Authorizer:
    return RoleAuthorizer(db)


def get_actor(
    x_actor_id: Optional[str] = Header(None),
    db: Database = Depends(get_db),
) -> ActorContext:
    return resolve_actor(db, x_actor_id)


def get_approved_actor(actor: ActorContext = Depends(get_actor)) -> ActorContext:
    if not actor.is_approved:
        raise NotAuthorizedError("account is awaiting administrator approval")
    return actor


def require_admin(
    actor: ActorContext = Depends(get_actor),
    authorizer: Authorizer = Depends(get_authorizer),
) -> ActorContext:
    authorizer.require_admin(actor.actor_id)
    return actor
