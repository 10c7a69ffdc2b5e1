from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, List, Protocol, Sequence

from field_expenses.models.constants import (
    CATEGORY_ORDER,
    CREDIT_CATEGORIES,
    Category,
    ExpenseStatus,
)
from field_expenses.services.money import ZERO, round2

"""Ledger aggregation helpers.

Scopes implemented:
    - Signed totals (live entry total, per-day total)
    - Timeline grouping (dates descending, records by category)
    - Gross category breakdown for the admin report
    - Balance classification and the owner summary card
    - Status counts

Design notes:
    Every function is pure over the snapshot it receives. Nothing here reads
    the database, so the same code serves an unsaved batch and history.
"""


class HasAmount(Protocol):
    category: Category
    amount: Decimal


class Dated(HasAmount, Protocol):
    date: date


def signed_amount(record: HasAmount) -> Decimal:
    """Cash advances reduce net spend; every other category adds to it."""
    amount = Decimal(record.amount)
    if Category(record.category) in CREDIT_CATEGORIES:
        return -amount
    return amount


def live_total(records: Iterable[HasAmount]) -> Decimal:
    return sum((signed_amount(r) for r in records), ZERO)


def daily_total(records: Iterable[Dated], day: date) -> Decimal:
    return sum((signed_amount(r) for r in records if r.date == day), ZERO)


def gross_total(records: Iterable[HasAmount], category: Category) -> Decimal:
    """Unsigned sum of one category's amounts."""
    category = Category(category)
    return sum(
        (Decimal(r.amount) for r in records if Category(r.category) == category),
        ZERO,
    )


def group_by_date(records: Iterable[Dated]) -> Dict[date, List[Dated]]:
    """Map date -> records, newest date first, records ordered by category.

    Records sharing a category keep their input order.
    """
    grouped: Dict[date, List[Dated]] = {}
    for r in records:
        grouped.setdefault(r.date, []).append(r)
    return {
        d: sorted(grouped[d], key=lambda r: CATEGORY_ORDER[Category(r.category)])
        for d in sorted(grouped, reverse=True)
    }


# ---------------- Category breakdown -----------------
@dataclass(frozen=True)
class CategoryBreakdown:
    totals: Dict[Category, Decimal]
    max_total: Decimal

    def share(self, category: Category) -> Decimal:
        """Bar width in percent of the largest category."""
        return round2(self.totals[Category(category)] / self.max_total * 100)


def category_breakdown(records: Sequence[HasAmount]) -> CategoryBreakdown:
    """Gross spend per category (cash included, unsigned).

    `max_total` has a floor of 1 so proportional bars never divide by zero.
    """
    totals = {c: gross_total(records, c) for c in Category}
    max_total = max(max(totals.values()), Decimal("1"))
    return CategoryBreakdown(totals=totals, max_total=max_total)


# ---------------- Balance -----------------
class BalanceStatus(str, Enum):
    surplus = "surplus"
    deficit = "deficit"
    balanced = "balanced"


@dataclass(frozen=True)
class BalanceResult:
    amount: Decimal
    status: BalanceStatus


def balance(total_received: Decimal, total_expense: Decimal) -> BalanceResult:
    amount = Decimal(total_received) - Decimal(total_expense)
    if amount > 0:
        status = BalanceStatus.surplus
    elif amount < 0:
        status = BalanceStatus.deficit
    else:
        status = BalanceStatus.balanced
    return BalanceResult(amount=amount, status=status)


@dataclass(frozen=True)
class LedgerSummary:
    total_received: Decimal
    total_expense: Decimal
    today_received: Decimal
    today_expense: Decimal
    balance: BalanceResult


def _split(records: Iterable[HasAmount]) -> tuple[Decimal, Decimal]:
    received = ZERO
    spent = ZERO
    for r in records:
        if Category(r.category) in CREDIT_CATEGORIES:
            received += Decimal(r.amount)
        else:
            spent += Decimal(r.amount)
    return received, spent


def summarize(records: Sequence[Dated], today: date) -> LedgerSummary:
    """Figures for the owner's summary card.

    Received is the gross of credit categories, expense the gross of the
    rest; the balance is their difference.
    """
    received, spent = _split(records)
    today_received, today_spent = _split(r for r in records if r.date == today)
    return LedgerSummary(
        total_received=received,
        total_expense=spent,
        today_received=today_received,
        today_expense=today_spent,
        balance=balance(received, spent),
    )


def status_counts(records: Iterable[object]) -> Dict[ExpenseStatus, int]:
    counts = Counter(ExpenseStatus(getattr(r, "status")) for r in records)
    return {s: counts.get(s, 0) for s in ExpenseStatus}


__all__ = [
    "signed_amount",
    "live_total",
    "daily_total",
    "gross_total",
    "group_by_date",
    "CategoryBreakdown",
    "category_breakdown",
    "BalanceStatus",
    "BalanceResult",
    "balance",
    "LedgerSummary",
    "summarize",
    "status_counts",
]
