"""Batch submission: snapshot, normalize, persist.

Reads the owner's same-day expenses and the current category limits, runs the
batch validator, and appends every surviving draft as ``pending``. Limit
breaches are returned as warnings alongside the saved records.
"""

from __future__ import annotations

import logging
from typing import List

from field_expenses.core.errors import MissionNotActiveError, RecordNotFoundError
from field_expenses.db.dal import Database
from field_expenses.models.constants import MissionStatus
from field_expenses.models.expense import (
    BatchPreviewOut,
    BatchSavedOut,
    ExpenseBatchIn,
    ExpenseRecord,
    SavedExpense,
)
from field_expenses.models.limits import CategoryLimit
from field_expenses.services.batch_validator import BatchResult, normalize
from field_expenses.services.ledger import live_total
from field_expenses.services.limit_policy import LimitPolicy

logger = logging.getLogger("field_expenses.submission")


def load_policy(db: Database) -> LimitPolicy:
    return LimitPolicy.from_limits(
        CategoryLimit.model_validate(r) for r in db.list_category_limits()
    )


def _check_mission(db: Database, owner_id: str, mission_id: str) -> None:
    mission = db.get_mission(mission_id)
    if not mission or mission["owner_id"] != owner_id:
        raise RecordNotFoundError("mission not found")
    if mission["status"] != MissionStatus.active.value:
        raise MissionNotActiveError("mission is completed; start a new one")


def _validate(db: Database, owner_id: str, batch: ExpenseBatchIn) -> BatchResult:
    _check_mission(db, owner_id, batch.mission_id)
    existing: List[ExpenseRecord] = [
        ExpenseRecord.model_validate(r)
        for r in db.list_expenses(
            owner_id=owner_id, start_date=batch.date, end_date=batch.date
        )
    ]
    return normalize(
        batch.cards,
        owner_id=owner_id,
        mission_id=batch.mission_id,
        day=batch.date,
        policy=load_policy(db),
        existing=existing,
    )


def preview_batch(db: Database, owner_id: str, batch: ExpenseBatchIn) -> BatchPreviewOut:
    """What a save would produce, without writing anything.

    An empty batch previews as zero records rather than an error.
    """
    result = _validate(db, owner_id, batch)
    return BatchPreviewOut(
        records=result.records,
        live_total=live_total(result.drafts),
        warnings=result.warnings,
    )


def submit_batch(db: Database, owner_id: str, batch: ExpenseBatchIn) -> BatchSavedOut:
    result = _validate(db, owner_id, batch)
    if result.errors:
        raise result.errors[0]

    ids = db.insert_expenses(result.drafts)
    saved: List[SavedExpense] = []
    for expense_id, checked in zip(ids, result.records):
        row = db.get_expense(expense_id)
        if not row:
            raise RuntimeError(f"expense {expense_id} missing after insert")
        saved.append(
            SavedExpense(
                expense=ExpenseRecord.model_validate(row),
                limit_exceeded=checked.limit_exceeded,
                warning=checked.warning,
            )
        )
    logger.info(
        "expense batch saved",
        extra={
            "fields": {
                "owner_id": owner_id,
                "mission_id": batch.mission_id,
                "date": batch.date.isoformat(),
                "count": len(saved),
                "over_limit": sum(1 for s in saved if s.limit_exceeded),
            }
        },
    )
    return BatchSavedOut(
        records=saved,
        live_total=live_total(result.drafts),
        warnings=result.warnings,
    )
