from datetime import date
from decimal import Decimal

import pytest

from field_expenses.models.constants import Category, ExpenseStatus
from field_expenses.services import ledger

from conftest import make_record


def test_cash_reduces_live_total():
    records = [
        make_record(category=Category.travel, amount=Decimal("100")),
        make_record(category=Category.cash, amount=Decimal("40")),
    ]
    assert ledger.live_total(records) == Decimal("60")


def test_sign_rule_per_record():
    base = [make_record(category=Category.meal, amount=Decimal("10"))]
    for category in Category:
        extra = make_record(category=category, amount=Decimal("25"))
        delta = ledger.live_total(base + [extra]) - ledger.live_total(base)
        expected = Decimal("-25") if category is Category.cash else Decimal("25")
        assert delta == expected


def test_live_total_of_nothing_is_zero():
    assert ledger.live_total([]) == Decimal("0")


def test_daily_total_only_counts_that_day():
    records = [
        make_record(date=date(2024, 1, 1), amount=Decimal("100")),
        make_record(date=date(2024, 1, 1), category=Category.cash, amount=Decimal("30")),
        make_record(date=date(2024, 1, 2), amount=Decimal("999")),
    ]
    assert ledger.daily_total(records, date(2024, 1, 1)) == Decimal("70")
    assert ledger.daily_total(records, date(2024, 1, 5)) == Decimal("0")


def test_group_by_date_newest_first():
    records = [
        make_record(id=str(i), date=date.fromisoformat(d))
        for i, d in enumerate(["2024-01-01", "2024-01-03", "2024-01-02"])
    ]
    grouped = ledger.group_by_date(records)
    assert [d.isoformat() for d in grouped] == ["2024-01-03", "2024-01-02", "2024-01-01"]


def test_group_by_date_orders_records_by_category():
    day = date(2024, 1, 1)
    records = [
        make_record(id="a", date=day, category=Category.other),
        make_record(id="b", date=day, category=Category.travel),
        make_record(id="c", date=day, category=Category.cash),
        make_record(id="d", date=day, category=Category.travel),
    ]
    assert [r.id for r in ledger.group_by_date(records)[day]] == ["b", "d", "c", "a"]


def test_category_breakdown_is_gross():
    records = [
        make_record(category=Category.travel, amount=Decimal("100")),
        make_record(category=Category.travel, amount=Decimal("50")),
        make_record(category=Category.cash, amount=Decimal("400")),
    ]
    b = ledger.category_breakdown(records)
    assert b.totals[Category.travel] == Decimal("150")
    assert b.totals[Category.cash] == Decimal("400")
    assert b.totals[Category.hotel] == Decimal("0")
    assert set(b.totals) == set(Category)
    assert b.max_total == Decimal("400")
    assert b.share(Category.travel) == Decimal("37.50")


def test_category_breakdown_max_has_floor_of_one():
    b = ledger.category_breakdown([])
    assert b.max_total == Decimal("1")
    assert b.share(Category.meal) == Decimal("0.00")


@pytest.mark.parametrize(
    "received,expense,status",
    [
        (1000, 1000, ledger.BalanceStatus.balanced),
        (1000, 1200, ledger.BalanceStatus.deficit),
        (1200, 1000, ledger.BalanceStatus.surplus),
    ],
)
def test_balance_classification(received, expense, status):
    result = ledger.balance(Decimal(received), Decimal(expense))
    assert result.status is status
    assert result.amount == Decimal(received) - Decimal(expense)


def test_summarize_splits_received_and_spent():
    today = date(2024, 1, 2)
    records = [
        make_record(date=date(2024, 1, 1), category=Category.cash, amount=Decimal("1000")),
        make_record(date=today, category=Category.cash, amount=Decimal("200")),
        make_record(date=date(2024, 1, 1), category=Category.hotel, amount=Decimal("900")),
        make_record(date=today, category=Category.meal, amount=Decimal("150")),
    ]
    s = ledger.summarize(records, today)
    assert s.total_received == Decimal("1200")
    assert s.total_expense == Decimal("1050")
    assert s.today_received == Decimal("200")
    assert s.today_expense == Decimal("150")
    assert s.balance.amount == Decimal("150")
    assert s.balance.status is ledger.BalanceStatus.surplus


def test_status_counts_include_every_status():
    records = [
        make_record(status=ExpenseStatus.pending),
        make_record(status=ExpenseStatus.pending),
        make_record(status=ExpenseStatus.settled),
    ]
    counts = ledger.status_counts(records)
    assert counts == {
        ExpenseStatus.pending: 2,
        ExpenseStatus.approved: 0,
        ExpenseStatus.rejected: 0,
        ExpenseStatus.settled: 1,
    }
