"""Database schema DDL definitions and initialization utilities.

Tables:
  - users: registry of submitters and administrators (role, approval flag)
  - missions: trips/assignments that group a user's expenses
  - expenses: individual expense records (append-only; status transitions only)
  - category_limits: per-category daily ceilings, one row per category
  - metadata: key/value store (schema version)

Amounts are stored as TEXT holding the exact decimal representation.
"""

from __future__ import annotations
import sqlite3
from typing import Sequence
from pathlib import Path

from field_expenses.models.constants import Category

BASIC_UTC_NOW = "strftime('%Y-%m-%dT%H:%M:%fZ','now')"

USERS_DDL = f"""
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE,
    role TEXT NOT NULL DEFAULT 'user' CHECK (role IN ('admin','user')),
    is_approved INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW})
);
"""

MISSIONS_DDL = f"""
CREATE TABLE IF NOT EXISTS missions (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    name TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'active' CHECK (status IN ('active','completed')),
    start_date TEXT NOT NULL, -- ISO date
    end_date TEXT, -- set on completion
    created_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW}),
    FOREIGN KEY (owner_id) REFERENCES users(id)
);
"""

EXPENSES_DDL = f"""
CREATE TABLE IF NOT EXISTS expenses (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    mission_id TEXT NOT NULL,
    date TEXT NOT NULL, -- ISO date (YYYY-MM-DD)
    category TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    amount TEXT NOT NULL, -- decimal text, non-negative
    image_ref TEXT,
    status TEXT NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending','approved','rejected','settled')),
    rejection_reason TEXT,
    approver_id TEXT,
    approved_at TEXT,
    settled_at TEXT,
    created_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW}),
    FOREIGN KEY (owner_id) REFERENCES users(id),
    FOREIGN KEY (mission_id) REFERENCES missions(id)
);
"""

CATEGORY_LIMITS_DDL = f"""
CREATE TABLE IF NOT EXISTS category_limits (
    category TEXT PRIMARY KEY,
    daily_limit TEXT NOT NULL DEFAULT '0',
    updated_by TEXT,
    updated_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW})
);
"""

METADATA_DDL = f"""
CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW})
);
"""

MISSIONS_OWNER_INDEX_DDL = (
    "CREATE INDEX IF NOT EXISTS idx_missions_owner_status ON missions(owner_id, status);"
)
# At most one active mission per owner.
MISSIONS_ONE_ACTIVE_INDEX_DDL = """
CREATE UNIQUE INDEX IF NOT EXISTS idx_missions_one_active
ON missions(owner_id)
WHERE status = 'active';
"""
EXPENSES_OWNER_DATE_INDEX_DDL = (
    "CREATE INDEX IF NOT EXISTS idx_expenses_owner_date ON expenses(owner_id, date);"
)
EXPENSES_STATUS_INDEX_DDL = (
    "CREATE INDEX IF NOT EXISTS idx_expenses_status ON expenses(status);"
)

DDL_ORDER: Sequence[str] = (
    USERS_DDL,
    MISSIONS_DDL,
    EXPENSES_DDL,
    CATEGORY_LIMITS_DDL,
    METADATA_DDL,
)


def init_db(path: Path) -> None:
    """Create all tables idempotently.

    Parameters
    ----------
    path: Path to SQLite database file.
    """
    conn = sqlite3.connect(path)
    try:
        cur = conn.cursor()
        for ddl in DDL_ORDER:
            cur.execute(ddl)
        _ensure_category_limits(cur)
        _ensure_indexes(cur)
        conn.commit()
    finally:
        conn.close()


def _ensure_category_limits(cur: sqlite3.Cursor) -> None:
    """Seed one unlimited row per category; existing rows are left untouched."""
    for category in Category:
        cur.execute(
            "INSERT OR IGNORE INTO category_limits (category, daily_limit) VALUES (?, '0')",
            (category.value,),
        )


def _ensure_indexes(cur: sqlite3.Cursor) -> None:
    for ddl in (
        MISSIONS_OWNER_INDEX_DDL,
        MISSIONS_ONE_ACTIVE_INDEX_DDL,
        EXPENSES_OWNER_DATE_INDEX_DDL,
        EXPENSES_STATUS_INDEX_DDL,
    ):
        cur.execute(ddl)
