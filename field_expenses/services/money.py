"""Money helpers.

Centralized so the batch validator, ledger and CSV export use identical
parsing and rounding semantics.
"""

from __future__ import annotations
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

ZERO = Decimal("0")
# Upper bound for a single typed amount; larger values are treated as unusable.
MAX_AMOUNT = Decimal("1000000000000")


def round2(value: Decimal) -> Decimal:
    return Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def parse_amount(text: Any) -> Decimal:
    """Parse user-typed amount text; anything unusable becomes 0.

    Empty, non-numeric, non-finite, negative and out-of-range input all map
    to 0 so the caller's drop rule can treat them uniformly.
    """
    if text is None:
        return ZERO
    raw = str(text).strip()
    if not raw:
        return ZERO
    try:
        value = Decimal(raw)
    except InvalidOperation:
        return ZERO
    if not value.is_finite() or value <= 0 or value > MAX_AMOUNT:
        return ZERO
    return value


def format_amount(value: Decimal) -> str:
    """Plain decimal text without exponent, trailing zeros trimmed."""
    value = Decimal(value)
    if value == 0:
        return "0"
    return format(value.normalize(), "f")
