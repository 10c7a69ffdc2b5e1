"""Shared test fixtures: an isolated app on a temp SQLite file per test."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient

from field_expenses.core.config import Settings
from field_expenses.db.dal import Database
from field_expenses.main import create_app
from field_expenses.models.constants import Category, ExpenseStatus
from field_expenses.models.expense import ExpenseRecord

ADMIN_ID = "admin-1"


def make_record(**overrides: Any) -> ExpenseRecord:
    """ExpenseRecord with sensible defaults for pure (no-DB) tests."""
    data: Dict[str, Any] = {
        "id": "exp-1",
        "owner_id": "user-1",
        "mission_id": "mission-1",
        "date": date(2024, 1, 1),
        "category": Category.travel,
        "description": "Bus",
        "amount": Decimal("100"),
        "status": ExpenseStatus.pending,
    }
    data.update(overrides)
    return ExpenseRecord(**data)


@pytest.fixture
def settings(tmp_path) -> Settings:
    s = Settings(
        data_dir=tmp_path,
        db_filename="test.sqlite3",
        debug=False,
        bootstrap_admin_id=ADMIN_ID,
        bootstrap_admin_email="admin@example.com",
    )
    s.init_post_load()
    return s


@pytest.fixture
def app(settings):
    return create_app(settings_override=settings)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def db(app, settings) -> Database:
    return Database(settings.db_path)


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return {"X-Actor-Id": ADMIN_ID}


@pytest.fixture
def member_id(db) -> str:
    user_id = db.create_user("Asha Field", "asha@example.com")
    db.set_user_approved(user_id)
    return user_id


@pytest.fixture
def member_headers(member_id) -> Dict[str, str]:
    return {"X-Actor-Id": member_id}


@pytest.fixture
def mission_id(db, member_id) -> str:
    return db.create_mission(member_id, "Northern survey", start_date=date(2024, 1, 1))
