"""Flat CSV export of expense records for offline use.

Columns: Date, User, Category, Description, Amount, Status. A pure projection
of the records it is given; the `csv` module handles quoting.
"""

from __future__ import annotations

import csv
import io
from datetime import date
from typing import Iterable, Mapping

from field_expenses.models.expense import ExpenseRecord
from field_expenses.services.money import format_amount

HEADER = ("Date", "User", "Category", "Description", "Amount", "Status")


def export_filename(today: date) -> str:
    return f"expense_report_{today.isoformat()}.csv"


def to_csv(records: Iterable[ExpenseRecord], owner_names: Mapping[str, str]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(HEADER)
    for r in records:
        writer.writerow(
            (
                r.date.isoformat(),
                owner_names.get(r.owner_id, ""),
                r.category.value,
                r.description,
                format_amount(r.amount),
                r.status.value,
            )
        )
    return buf.getvalue()


__all__ = ["HEADER", "to_csv", "export_filename"]
