"""Turn the entry form's cards and rows into expense drafts.

Rules
-----
- A card without a category contributes nothing.
- A row whose description is blank and whose amount parses to 0 (or does not
  parse) is dropped without an error.
- When nothing survives, the result carries a single `EmptyBatchError` and no
  records.
- Every surviving draft is checked against the `LimitPolicy`. A breach is a
  warning attached to that draft, never a reason to drop it; all drafts are
  created as ``pending``.

The limit check sees the whole in-flight batch: for a draft of category C the
existing total is the persisted same-day total for C plus every *other* draft
of C in the batch, so all drafts of a category that the batch pushes over its
ceiling are flagged together.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Sequence

from field_expenses.core.errors import EmptyBatchError
from field_expenses.models.constants import Category
from field_expenses.models.expense import CheckedExpense, ExpenseCardIn, ExpenseDraft
from field_expenses.services.ledger import Dated, gross_total
from field_expenses.services.limit_policy import LimitPolicy
from field_expenses.services.money import parse_amount

logger = logging.getLogger("field_expenses.batch")


@dataclass
class BatchResult:
    records: List[CheckedExpense] = field(default_factory=list)
    errors: List[EmptyBatchError] = field(default_factory=list)

    @property
    def drafts(self) -> List[ExpenseDraft]:
        return [r.draft for r in self.records]

    @property
    def warnings(self) -> List[str]:
        return [r.warning for r in self.records if r.warning]


def limit_warning(category: Category) -> str:
    return f"{Category(category).value} exceeds daily limit, requires admin approval"


def _drafts_from_cards(
    cards: Iterable[ExpenseCardIn], owner_id: str, mission_id: str, day: date
) -> List[ExpenseDraft]:
    drafts: List[ExpenseDraft] = []
    for card in cards:
        if card.category is None:
            continue
        for row in card.rows:
            description = row.description.strip()
            amount = parse_amount(row.amount)
            if not description and amount == 0:
                continue
            drafts.append(
                ExpenseDraft(
                    owner_id=owner_id,
                    mission_id=mission_id,
                    date=day,
                    category=card.category,
                    description=description,
                    amount=amount,
                    image_ref=row.image_ref,
                )
            )
    return drafts


def _same_day_totals(existing: Iterable[Dated], day: date) -> Dict[Category, Decimal]:
    same_day = [r for r in existing if r.date == day]
    return {c: gross_total(same_day, c) for c in Category}


def normalize(
    cards: Sequence[ExpenseCardIn],
    *,
    owner_id: str,
    mission_id: str,
    day: date,
    policy: LimitPolicy,
    existing: Iterable[Dated] = (),
) -> BatchResult:
    """Normalize a submitted batch and annotate limit breaches.

    `existing` is the owner's persisted snapshot; only records dated `day`
    count toward the limit. The snapshot is used as given.
    """
    drafts = _drafts_from_cards(cards, owner_id, mission_id, day)
    if not drafts:
        return BatchResult(errors=[EmptyBatchError()])

    persisted = _same_day_totals(existing, day)
    in_flight = {c: gross_total(drafts, c) for c in Category}

    result = BatchResult()
    for draft in drafts:
        others = in_flight[draft.category] - draft.amount
        exceeded = policy.would_exceed(
            draft.category,
            day,
            draft.amount,
            persisted[draft.category] + others,
        )
        if exceeded:
            logger.warning(
                "daily limit exceeded",
                extra={
                    "fields": {
                        "owner_id": owner_id,
                        "category": draft.category.value,
                        "date": day.isoformat(),
                        "limit": str(policy.daily_limit(draft.category)),
                    }
                },
            )
        result.records.append(
            CheckedExpense(
                draft=draft,
                limit_exceeded=exceeded,
                warning=limit_warning(draft.category) if exceeded else None,
            )
        )
    return result


__all__ = ["BatchResult", "normalize", "limit_warning"]
