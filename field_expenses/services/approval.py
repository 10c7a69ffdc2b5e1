"""Expense approval state machine.

    pending --approve--> approved --settle--> settled
    pending --reject---> rejected

`rejected` and `settled` are terminal. The machine only judges legality and
computes the new field values; it assumes the caller already holds
administrative capability. Transitions return an updated copy and leave the
input record untouched.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from field_expenses.core.errors import (
    InvalidTransitionError,
    MissingReasonError,
    RecordNotFoundError,
    StaleTransitionError,
)
from field_expenses.db.dal import Database
from field_expenses.models.constants import TERMINAL_STATUSES, ExpenseStatus
from field_expenses.models.expense import ExpenseRecord

logger = logging.getLogger("field_expenses.approval")


class Action(str, Enum):
    approve = "approve"
    reject = "reject"
    settle = "settle"


TRANSITIONS: Dict[Tuple[ExpenseStatus, Action], ExpenseStatus] = {
    (ExpenseStatus.pending, Action.approve): ExpenseStatus.approved,
    (ExpenseStatus.pending, Action.reject): ExpenseStatus.rejected,
    (ExpenseStatus.approved, Action.settle): ExpenseStatus.settled,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def can_transition(status: ExpenseStatus, action: Action) -> bool:
    return (ExpenseStatus(status), Action(action)) in TRANSITIONS


def allowed_actions(status: ExpenseStatus) -> list[Action]:
    status = ExpenseStatus(status)
    if status in TERMINAL_STATUSES:
        return []
    return [a for (s, a) in TRANSITIONS if s == status]


def _target(record: ExpenseRecord, action: Action) -> ExpenseStatus:
    target = TRANSITIONS.get((record.status, action))
    if target is None:
        raise InvalidTransitionError(record.status.value, action.value)
    return target


def approve(
    record: ExpenseRecord, approver_id: str, now: Optional[datetime] = None
) -> ExpenseRecord:
    target = _target(record, Action.approve)
    return record.model_copy(
        update={
            "status": target,
            "approver_id": approver_id,
            "approved_at": now or _utcnow(),
        }
    )


def reject(
    record: ExpenseRecord,
    approver_id: str,
    reason: Optional[str],
    now: Optional[datetime] = None,
) -> ExpenseRecord:
    reason = (reason or "").strip()
    if not reason:
        raise MissingReasonError()
    target = _target(record, Action.reject)
    return record.model_copy(
        update={
            "status": target,
            "rejection_reason": reason,
            "approver_id": approver_id,
            "approved_at": now or _utcnow(),
        }
    )


def settle(record: ExpenseRecord, now: Optional[datetime] = None) -> ExpenseRecord:
    target = _target(record, Action.settle)
    return record.model_copy(update={"status": target, "settled_at": now or _utcnow()})


def apply(
    record: ExpenseRecord,
    action: Action,
    actor_id: str,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ExpenseRecord:
    action = Action(action)
    if action is Action.approve:
        return approve(record, actor_id, now=now)
    if action is Action.reject:
        return reject(record, actor_id, reason, now=now)
    return settle(record, now=now)


def _changed_fields(before: ExpenseRecord, after: ExpenseRecord) -> Dict[str, Any]:
    columns = ("rejection_reason", "approver_id", "approved_at", "settled_at")
    return {
        c: getattr(after, c)
        for c in columns
        if getattr(after, c) != getattr(before, c)
    }


def transition_expense(
    db: Database,
    expense_id: str,
    action: Action,
    actor_id: str,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ExpenseRecord:
    """Load, transition and persist one expense.

    The write is conditioned on the status that was read, so when another
    transition lands in between this raises `StaleTransitionError` instead of
    overwriting it.
    """
    row = db.get_expense(expense_id)
    if not row:
        raise RecordNotFoundError("expense not found")
    current = ExpenseRecord.model_validate(row)
    updated = apply(current, action, actor_id, reason=reason, now=now)
    written = db.update_expense_status(
        expense_id,
        expected_status=current.status,
        new_status=updated.status,
        fields=_changed_fields(current, updated),
    )
    if not written:
        raise StaleTransitionError()
    logger.info(
        "expense transitioned",
        extra={
            "fields": {
                "expense_id": expense_id,
                "action": Action(action).value,
                "from": current.status.value,
                "to": updated.status.value,
                "actor_id": actor_id,
            }
        },
    )
    return updated


__all__ = [
    "Action",
    "TRANSITIONS",
    "can_transition",
    "allowed_actions",
    "approve",
    "reject",
    "settle",
    "apply",
    "transition_expense",
]
