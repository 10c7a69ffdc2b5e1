import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path

from field_expenses.db.dal import Database
from field_expenses.models.constants import Category
from field_expenses.models.limits import CategoryLimit, CategoryLimitUpdate
from field_expenses.models.user import ActorContext
from field_expenses.routers.deps import get_db, require_admin

router = APIRouter(prefix="/limits", tags=["limits"])
logger = logging.getLogger("field_expenses.limits")


@router.get("/", response_model=List[CategoryLimit], summary="Daily category limits")
async def list_limits(db: Database = Depends(get_db)):
    return [CategoryLimit.model_validate(r) for r in db.list_category_limits()]


@router.put(
    "/{category}",
    response_model=CategoryLimit,
    summary="Set a category's daily limit (admin; 0 disables it)",
)
async def set_limit(
    payload: CategoryLimitUpdate,
    category: Category = Path(..., description="Expense category"),
    actor: ActorContext = Depends(require_admin),
    db: Database = Depends(get_db),
):
    db.set_category_limit(category, payload.daily_limit, updated_by=actor.actor_id)
    row = db.get_category_limit(category)
    if not row:
        raise HTTPException(status_code=500, detail="failed to persist limit")
    logger.info(
        "category limit updated",
        extra={
            "fields": {
                "category": category.value,
                "daily_limit": str(payload.daily_limit),
                "actor_id": actor.actor_id,
            }
        },
    )
    return CategoryLimit.model_validate(row)
