from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .constants import Category, ExpenseStatus


class ExpenseRowIn(BaseModel):
    """One entry line of a card as typed by the user.

    ``amount`` stays raw text; parsing (and the drop rule) belongs to the
    batch validator, not to request validation.
    """

    description: str = ""
    amount: str = ""
    image_ref: Optional[str] = None

    @field_validator("description", mode="before")
    @classmethod
    def _none_description(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_as_text(cls, v: Any) -> Any:
        if v is None:
            return ""
        if isinstance(v, (int, float, Decimal)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("image_ref")
    @classmethod
    def _blank_image_ref(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v


class ExpenseCardIn(BaseModel):
    category: Optional[Category] = None
    rows: List[ExpenseRowIn] = Field(default_factory=list)

    @field_validator("category", mode="before")
    @classmethod
    def _blank_category(cls, v: Any) -> Any:
        # The entry form sends "" for a card with no category picked yet.
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ExpenseBatchIn(BaseModel):
    mission_id: str
    date: date
    cards: List[ExpenseCardIn] = Field(default_factory=list)


class ExpenseDraft(BaseModel):
    """A normalized, not yet persisted expense."""

    model_config = ConfigDict(frozen=True)

    owner_id: str
    mission_id: str
    date: date
    category: Category
    description: str = ""
    amount: Decimal = Field(Decimal("0"), ge=0)
    image_ref: Optional[str] = None

    @model_validator(mode="after")
    def _description_or_amount(self) -> "ExpenseDraft":
        if not self.description and self.amount <= 0:
            raise ValueError("an expense needs a description or a positive amount")
        return self


class ExpenseRecord(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    owner_id: str
    mission_id: str
    date: date
    category: Category
    description: str = ""
    amount: Decimal = Field(Decimal("0"), ge=0)
    image_ref: Optional[str] = None
    status: ExpenseStatus = ExpenseStatus.pending
    rejection_reason: Optional[str] = None
    approver_id: Optional[str] = None
    approved_at: Optional[datetime] = None
    settled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class CheckedExpense(BaseModel):
    """A draft together with its advisory limit annotation."""

    draft: ExpenseDraft
    limit_exceeded: bool = False
    warning: Optional[str] = None


class BatchPreviewOut(BaseModel):
    records: List[CheckedExpense]
    live_total: Decimal
    warnings: List[str] = Field(default_factory=list)


class SavedExpense(BaseModel):
    expense: ExpenseRecord
    limit_exceeded: bool = False
    warning: Optional[str] = None


class BatchSavedOut(BaseModel):
    records: List[SavedExpense]
    live_total: Decimal
    warnings: List[str] = Field(default_factory=list)


class RejectIn(BaseModel):
    # Emptiness is checked by the state machine so it can answer missing_reason.
    reason: str = ""
