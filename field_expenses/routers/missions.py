from typing import List, Optional

from fastapi import APIRouter, Depends, status

from field_expenses.core.errors import (
    ActiveMissionExistsError,
    MissionNotActiveError,
    RecordNotFoundError,
)
from field_expenses.db.dal import Database
from field_expenses.models.constants import MissionStatus
from field_expenses.models.mission import Mission, MissionCreate
from field_expenses.models.user import ActorContext
from field_expenses.routers.deps import get_actor, get_approved_actor, get_db

router = APIRouter(prefix="/missions", tags=["missions"])


def _owned(db: Database, mission_id: str, owner_id: str) -> Mission:
    row = db.get_mission(mission_id)
    if not row or row["owner_id"] != owner_id:
        raise RecordNotFoundError("mission not found")
    return Mission.model_validate(row)


@router.post(
    "/",
    response_model=Mission,
    status_code=status.HTTP_201_CREATED,
    summary="Start a mission",
)
async def start_mission(
    payload: MissionCreate,
    actor: ActorContext = Depends(get_approved_actor),
    db: Database = Depends(get_db),
):
    if db.get_active_mission(actor.actor_id):
        raise ActiveMissionExistsError()
    try:
        mission_id = db.create_mission(
            actor.actor_id, payload.name, start_date=payload.start_date
        )
    except ValueError:
        # Lost a race with another start; the unique index kept the invariant.
        raise ActiveMissionExistsError()
    return _owned(db, mission_id, actor.actor_id)


@router.get("/", response_model=List[Mission], summary="List own missions")
async def list_missions(
    actor: ActorContext = Depends(get_actor), db: Database = Depends(get_db)
):
    return [Mission.model_validate(r) for r in db.list_missions(actor.actor_id)]


@router.get(
    "/active", response_model=Optional[Mission], summary="Current active mission"
)
async def active_mission(
    actor: ActorContext = Depends(get_actor), db: Database = Depends(get_db)
):
    row = db.get_active_mission(actor.actor_id)
    return Mission.model_validate(row) if row else None


@router.post(
    "/{mission_id}/complete", response_model=Mission, summary="Finish a mission"
)
async def complete_mission(
    mission_id: str,
    actor: ActorContext = Depends(get_actor),
    db: Database = Depends(get_db),
):
    mission = _owned(db, mission_id, actor.actor_id)
    if mission.status != MissionStatus.active:
        raise MissionNotActiveError()
    try:
        db.complete_mission(mission_id)
    except ValueError:
        raise MissionNotActiveError()
    return _owned(db, mission_id, actor.actor_id)
