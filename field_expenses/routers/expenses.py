from datetime import date
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from field_expenses.core.errors import NotAuthorizedError
from field_expenses.db.dal import Database
from field_expenses.models.constants import Category, ExpenseStatus
from field_expenses.models.expense import (
    BatchPreviewOut,
    BatchSavedOut,
    ExpenseBatchIn,
    ExpenseRecord,
    RejectIn,
)
from field_expenses.models.user import ActorContext
from field_expenses.routers.deps import (
    get_actor,
    get_approved_actor,
    get_db,
    require_admin,
)
from field_expenses.services import ledger
from field_expenses.services.approval import Action, transition_expense
from field_expenses.services.submission import preview_batch, submit_batch

router = APIRouter(prefix="/expenses", tags=["expenses"])


# Response models ---------------------------------------------------
class TimelineDay(BaseModel):
    date: date
    total: Decimal
    records: List[ExpenseRecord]


class Summary(BaseModel):
    total_received: Decimal
    total_expense: Decimal
    today_received: Decimal
    today_expense: Decimal
    balance: Decimal
    balance_status: ledger.BalanceStatus


# Helpers ----------------------------------------------------------
def _snapshot(
    db: Database,
    owner_id: Optional[str],
    mission_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    category: Optional[Category] = None,
    status: Optional[ExpenseStatus] = None,
) -> List[ExpenseRecord]:
    if start_date and end_date and start_date > end_date:
        raise HTTPException(
            status_code=400, detail="start_date cannot be after end_date"
        )
    rows = db.list_expenses(
        owner_id=owner_id,
        mission_id=mission_id,
        start_date=start_date,
        end_date=end_date,
        category=category,
        status=status,
    )
    return [ExpenseRecord.model_validate(r) for r in rows]


# Routes -----------------------------------------------------------
@router.post(
    "/preview",
    response_model=BatchPreviewOut,
    summary="Normalize a batch and report limit warnings without saving",
)
async def preview_expenses(
    payload: ExpenseBatchIn,
    actor: ActorContext = Depends(get_approved_actor),
    db: Database = Depends(get_db),
):
    return preview_batch(db, actor.actor_id, payload)


@router.post(
    "/batch",
    response_model=BatchSavedOut,
    status_code=201,
    summary="Save a batch of expense entries",
)
async def save_expenses(
    payload: ExpenseBatchIn,
    actor: ActorContext = Depends(get_approved_actor),
    db: Database = Depends(get_db),
):
    return submit_batch(db, actor.actor_id, payload)


@router.get(
    "/", response_model=List[ExpenseRecord], summary="List expenses with optional filters"
)
async def list_expenses_endpoint(
    owner_id: Optional[str] = Query(
        None, description="Filter by owner (admins only; defaults to caller)"
    ),
    mission_id: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None, description="Start date inclusive"),
    end_date: Optional[date] = Query(None, description="End date inclusive"),
    category: Optional[Category] = Query(None),
    status: Optional[ExpenseStatus] = Query(None),
    actor: ActorContext = Depends(get_actor),
    db: Database = Depends(get_db),
):
    if actor.is_admin:
        scope = owner_id
    elif owner_id and owner_id != actor.actor_id:
        raise NotAuthorizedError("cannot list another user's expenses")
    else:
        scope = actor.actor_id
    return _snapshot(db, scope, mission_id, start_date, end_date, category, status)


@router.get(
    "/timeline",
    response_model=List[TimelineDay],
    summary="Own expenses grouped by day, most recent first",
)
async def timeline(
    mission_id: Optional[str] = Query(None),
    actor: ActorContext = Depends(get_actor),
    db: Database = Depends(get_db),
):
    records = _snapshot(db, actor.actor_id, mission_id)
    return [
        TimelineDay(date=d, total=ledger.daily_total(day_records, d), records=day_records)
        for d, day_records in ledger.group_by_date(records).items()
    ]


@router.get("/summary", response_model=Summary, summary="Balance summary card")
async def summary(
    mission_id: Optional[str] = Query(None),
    today: Optional[date] = Query(None, description="Defaults to the server date"),
    actor: ActorContext = Depends(get_actor),
    db: Database = Depends(get_db),
):
    records = _snapshot(db, actor.actor_id, mission_id)
    s = ledger.summarize(records, today or date.today())
    return Summary(
        total_received=s.total_received,
        total_expense=s.total_expense,
        today_received=s.today_received,
        today_expense=s.today_expense,
        balance=s.balance.amount,
        balance_status=s.balance.status,
    )


@router.post(
    "/{expense_id}/approve", response_model=ExpenseRecord, summary="Approve (admin)"
)
async def approve_expense(
    expense_id: str,
    actor: ActorContext = Depends(require_admin),
    db: Database = Depends(get_db),
):
    return transition_expense(db, expense_id, Action.approve, actor.actor_id)


@router.post(
    "/{expense_id}/reject", response_model=ExpenseRecord, summary="Reject (admin)"
)
async def reject_expense(
    expense_id: str,
    payload: RejectIn,
    actor: ActorContext = Depends(require_admin),
    db: Database = Depends(get_db),
):
    return transition_expense(
        db, expense_id, Action.reject, actor.actor_id, reason=payload.reason
    )


@router.post(
    "/{expense_id}/settle", response_model=ExpenseRecord, summary="Settle (admin)"
)
async def settle_expense(
    expense_id: str,
    actor: ActorContext = Depends(require_admin),
    db: Database = Depends(get_db),
):
    return transition_expense(db, expense_id, Action.settle, actor.actor_id)
