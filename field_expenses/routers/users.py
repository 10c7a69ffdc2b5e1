from typing import List

from fastapi import APIRouter, Depends, HTTPException

from field_expenses.core.errors import RecordNotFoundError
from field_expenses.db.dal import Database
from field_expenses.models.constants import Role
from field_expenses.models.user import ActorContext, User, UserCreate
from field_expenses.routers.deps import get_db, require_admin

router = APIRouter(prefix="/users", tags=["users"])


def _load(db: Database, user_id: str) -> User:
    row = db.get_user(user_id)
    if not row:
        raise RecordNotFoundError("user not found")
    return User.model_validate(row)


@router.post("/", response_model=User, status_code=201, summary="Register a user")
async def register_user(payload: UserCreate, db: Database = Depends(get_db)):
    try:
        user_id = db.create_user(name=payload.name, email=payload.email)
    except ValueError:
        raise HTTPException(status_code=409, detail="email already registered")
    return _load(db, user_id)


@router.get("/", response_model=List[User], summary="List users (admin)")
async def list_users(
    _: ActorContext = Depends(require_admin), db: Database = Depends(get_db)
):
    return [User.model_validate(r) for r in db.list_users()]


@router.post("/{user_id}/approve", response_model=User, summary="Approve a user (admin)")
async def approve_user(
    user_id: str,
    _: ActorContext = Depends(require_admin),
    db: Database = Depends(get_db),
):
    try:
        db.set_user_approved(user_id, True)
    except ValueError:
        raise RecordNotFoundError("user not found")
    return _load(db, user_id)


@router.post(
    "/{user_id}/promote", response_model=User, summary="Grant admin role (admin)"
)
async def promote_user(
    user_id: str,
    _: ActorContext = Depends(require_admin),
    db: Database = Depends(get_db),
):
    user = _load(db, user_id)
    if not user.is_approved:
        raise HTTPException(status_code=409, detail="approve the user first")
    db.set_user_role(user_id, Role.admin)
    return _load(db, user_id)
