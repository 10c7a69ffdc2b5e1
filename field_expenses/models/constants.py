"""Domain enumerations shared by validation, limits, ledger and approvals.

Adding a category is a change to ``Category`` only; everything else iterates
over the enum.
"""

from enum import Enum
from typing import FrozenSet


class Category(str, Enum):
    travel = "travel"
    meal = "meal"
    luggage = "luggage"
    hotel = "hotel"
    cash = "cash"
    other = "other"


# Cash entries record advances received, not money spent.
CREDIT_CATEGORIES: FrozenSet[Category] = frozenset({Category.cash})

# Declaration order; used to order records within a day.
CATEGORY_ORDER = {c: i for i, c in enumerate(Category)}


class ExpenseStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    settled = "settled"


TERMINAL_STATUSES: FrozenSet[ExpenseStatus] = frozenset(
    {ExpenseStatus.rejected, ExpenseStatus.settled}
)


class MissionStatus(str, Enum):
    active = "active"
    completed = "completed"


class Role(str, Enum):
    admin = "admin"
    user = "user"
