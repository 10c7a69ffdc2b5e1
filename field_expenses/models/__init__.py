"""Pydantic domain models for the field expense tracker."""

from .constants import (
    Category,
    ExpenseStatus,
    MissionStatus,
    Role,
)  # re-export
from .expense import (
    ExpenseBatchIn,
    ExpenseCardIn,
    ExpenseDraft,
    ExpenseRecord,
    ExpenseRowIn,
)
from .limits import CategoryLimit
from .mission import Mission
from .user import ActorContext, User

__all__ = [
    "Category",
    "ExpenseStatus",
    "MissionStatus",
    "Role",
    "ExpenseBatchIn",
    "ExpenseCardIn",
    "ExpenseDraft",
    "ExpenseRecord",
    "ExpenseRowIn",
    "CategoryLimit",
    "Mission",
    "ActorContext",
    "User",
]
