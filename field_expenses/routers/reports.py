from datetime import date
from decimal import Decimal
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from field_expenses.db.dal import Database
from field_expenses.models.constants import Category, ExpenseStatus
from field_expenses.models.expense import ExpenseRecord
from field_expenses.models.user import ActorContext
from field_expenses.routers.deps import get_db, require_admin
from field_expenses.services import ledger
from field_expenses.services.report_export import export_filename, to_csv

router = APIRouter(prefix="/reports", tags=["reports"])


class CategoryBreakdownItem(BaseModel):
    category: Category
    total: Decimal
    percent_of_max: Decimal


class BreakdownOut(BaseModel):
    categories: list[CategoryBreakdownItem]
    max_total: Decimal
    status_counts: Dict[ExpenseStatus, int]


def _records(
    db: Database,
    owner_id: Optional[str],
    start_date: Optional[date],
    end_date: Optional[date],
) -> list[ExpenseRecord]:
    rows = db.list_expenses(owner_id=owner_id, start_date=start_date, end_date=end_date)
    return [ExpenseRecord.model_validate(r) for r in rows]


@router.get(
    "/breakdown",
    response_model=BreakdownOut,
    summary="Gross spend per category and expense counts per status (admin)",
)
async def breakdown(
    owner_id: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    _: ActorContext = Depends(require_admin),
    db: Database = Depends(get_db),
):
    records = _records(db, owner_id, start_date, end_date)
    b = ledger.category_breakdown(records)
    return BreakdownOut(
        categories=[
            CategoryBreakdownItem(
                category=c, total=b.totals[c], percent_of_max=b.share(c)
            )
            for c in Category
        ],
        max_total=b.max_total,
        status_counts=ledger.status_counts(records),
    )


@router.get(
    "/export.csv",
    response_class=PlainTextResponse,
    summary="CSV export of expenses (admin)",
)
async def export_csv(
    owner_id: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    _: ActorContext = Depends(require_admin),
    db: Database = Depends(get_db),
):
    rows = db.list_expenses(owner_id=owner_id, start_date=start_date, end_date=end_date)
    records = [ExpenseRecord.model_validate(r) for r in rows]
    names = {r["owner_id"]: r.get("owner_name") or "" for r in rows}
    filename = export_filename(date.today())
    return PlainTextResponse(
        to_csv(records, names),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
