"""Per-category daily limit policy.

The check is advisory: callers still persist an over-limit expense as
``pending`` and surface the breach so an administrator reviews it. The policy
works on whatever snapshot of existing totals it is given and never refreshes
or locks it, so two concurrent submissions may both pass.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, Mapping, Optional

from field_expenses.models.constants import Category
from field_expenses.models.limits import CategoryLimit
from field_expenses.services.money import ZERO


class LimitPolicy:
    def __init__(self, limits: Optional[Mapping[Category, Decimal]] = None):
        self._limits: Dict[Category, Decimal] = {
            Category(c): Decimal(v) for c, v in (limits or {}).items()
        }

    @classmethod
    def from_limits(cls, limits: Iterable[CategoryLimit]) -> "LimitPolicy":
        return cls(
            {lim.category: lim.daily_limit for lim in limits if not lim.unlimited}
        )

    def daily_limit(self, category: Category) -> Optional[Decimal]:
        """Configured ceiling, or None when the category is unlimited."""
        limit = self._limits.get(Category(category))
        if limit is None or limit <= 0:
            return None
        return limit

    def would_exceed(
        self,
        category: Category,
        day: date,
        proposed_additional_amount: Decimal,
        existing_total: Decimal = ZERO,
    ) -> bool:
        """True if adding the amount to the day's total passes the ceiling.

        `existing_total` must already include the other in-flight entries of
        the same category from the batch being submitted. Limits apply per
        calendar day but do not vary by day, so `day` only scopes the totals
        the caller supplies.
        """
        limit = self.daily_limit(category)
        if limit is None:
            return False
        return existing_total + proposed_additional_amount > limit
