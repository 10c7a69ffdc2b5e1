"""Data Access Layer for users, missions, expenses and category limits.

Responsibilities
----------------
- Append-only batch insert of validated expenses; no delete path.
- Read-by-filter (owner, mission, date range, category, status) returning a
  plain snapshot (list of dict rows).
- Status updates conditioned on the previous status so concurrent
  transitions on the same record cannot silently overwrite each other.
- CategoryLimit edits with audit fields.
- Thin mission/user CRUD backing the active-mission and role rules.
"""

from __future__ import annotations

from pathlib import Path
import sqlite3
import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from field_expenses.models.constants import (
    Category,
    ExpenseStatus,
    MissionStatus,
    Role,
)
from field_expenses.models.expense import ExpenseDraft

UTC_NOW_SQL = "strftime('%Y-%m-%dT%H:%M:%fZ','now')"

# Columns a status transition may write besides `status`.
TRANSITION_COLUMNS = {"rejection_reason", "approver_id", "approved_at", "settled_at"}


def new_id() -> str:
    return uuid.uuid4().hex


class Database:
    def __init__(self, db_path: Path):
        self.db_path = db_path

    # ------------------------------------------------------------------
    # Connection helpers
    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    # ------------------------------------------------------------------
    # Users
    def create_user(
        self,
        name: str,
        email: str,
        role: Role = Role.user,
        is_approved: bool = False,
        user_id: Optional[str] = None,
    ) -> str:
        uid = user_id or new_id()
        with self._connect() as conn:
            cur = conn.cursor()
            try:
                cur.execute(
                    """
                    INSERT INTO users (id, name, email, role, is_approved)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (uid, name, email, Role(role).value, int(is_approved)),
                )
            except sqlite3.IntegrityError as exc:
                raise ValueError("user already exists") from exc
            conn.commit()
        return uid

    def ensure_admin(self, user_id: str, name: str, email: str) -> None:
        """Create or upgrade `user_id` to an approved administrator."""
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO users (id, name, email, role, is_approved)
                VALUES (?, ?, ?, 'admin', 1)
                ON CONFLICT(id) DO UPDATE SET role = 'admin', is_approved = 1
                """,
                (user_id, name, email),
            )
            conn.commit()

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute("SELECT * FROM users WHERE id = ?", (user_id,))
            row = cur.fetchone()
            return dict(row) if row else None

    def list_users(self) -> List[Dict[str, Any]]:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute("SELECT * FROM users ORDER BY created_at ASC, name ASC")
            return [dict(r) for r in cur.fetchall()]

    def set_user_approved(self, user_id: str, approved: bool = True) -> None:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                "UPDATE users SET is_approved = ? WHERE id = ?",
                (int(approved), user_id),
            )
            if cur.rowcount == 0:
                raise ValueError("user not found")
            conn.commit()

    def set_user_role(self, user_id: str, role: Role) -> None:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                "UPDATE users SET role = ? WHERE id = ?", (Role(role).value, user_id)
            )
            if cur.rowcount == 0:
                raise ValueError("user not found")
            conn.commit()

    # ------------------------------------------------------------------
    # Missions
    def create_mission(
        self, owner_id: str, name: str, start_date: Optional[date] = None
    ) -> str:
        mission_id = new_id()
        start = start_date or date.today()
        with self._connect() as conn:
            cur = conn.cursor()
            try:
                cur.execute(
                    """
                    INSERT INTO missions (id, owner_id, name, status, start_date)
                    VALUES (?, ?, ?, 'active', ?)
                    """,
                    (mission_id, owner_id, name, start.isoformat()),
                )
            except sqlite3.IntegrityError as exc:
                # Unique partial index: one active mission per owner.
                raise ValueError("owner already has an active mission") from exc
            conn.commit()
        return mission_id

    def get_mission(self, mission_id: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute("SELECT * FROM missions WHERE id = ?", (mission_id,))
            row = cur.fetchone()
            return dict(row) if row else None

    def get_active_mission(self, owner_id: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                "SELECT * FROM missions WHERE owner_id = ? AND status = 'active'",
                (owner_id,),
            )
            row = cur.fetchone()
            return dict(row) if row else None

    def list_missions(self, owner_id: str) -> List[Dict[str, Any]]:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT * FROM missions WHERE owner_id = ?
                ORDER BY start_date DESC, created_at DESC
                """,
                (owner_id,),
            )
            return [dict(r) for r in cur.fetchall()]

    def complete_mission(self, mission_id: str, end_date: Optional[date] = None) -> None:
        end = end_date or date.today()
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                UPDATE missions SET status = ?, end_date = ?
                WHERE id = ? AND status = 'active'
                """,
                (MissionStatus.completed.value, end.isoformat(), mission_id),
            )
            if cur.rowcount == 0:
                raise ValueError("mission not found or not active")
            conn.commit()

    # ------------------------------------------------------------------
    # Expenses
    def insert_expenses(self, drafts: Iterable[ExpenseDraft]) -> List[str]:
        """Persist a whole batch atomically; returns the new ids in input order."""
        ids: List[str] = []
        with self._connect() as conn:
            cur = conn.cursor()
            try:
                for d in drafts:
                    expense_id = new_id()
                    cur.execute(
                        """
                        INSERT INTO expenses (
                            id, owner_id, mission_id, date, category,
                            description, amount, image_ref, status
                        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            expense_id,
                            d.owner_id,
                            d.mission_id,
                            d.date.isoformat(),
                            d.category.value,
                            d.description,
                            str(d.amount),
                            d.image_ref,
                            ExpenseStatus.pending.value,
                        ),
                    )
                    ids.append(expense_id)
                conn.commit()
            except Exception:
                conn.rollback()
                raise
        return ids

    def get_expense(self, expense_id: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT e.*, u.name AS owner_name
                FROM expenses e LEFT JOIN users u ON u.id = e.owner_id
                WHERE e.id = ?
                """,
                (expense_id,),
            )
            row = cur.fetchone()
            return dict(row) if row else None

    def list_expenses(
        self,
        owner_id: Optional[str] = None,
        mission_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        category: Optional[Category] = None,
        status: Optional[ExpenseStatus] = None,
    ) -> List[Dict[str, Any]]:
        clauses: List[str] = []
        params: List[Any] = []
        if owner_id:
            clauses.append("e.owner_id = ?")
            params.append(owner_id)
        if mission_id:
            clauses.append("e.mission_id = ?")
            params.append(mission_id)
        if start_date:
            clauses.append("e.date >= ?")
            params.append(start_date.isoformat())
        if end_date:
            clauses.append("e.date <= ?")
            params.append(end_date.isoformat())
        if category:
            clauses.append("e.category = ?")
            params.append(Category(category).value)
        if status:
            clauses.append("e.status = ?")
            params.append(ExpenseStatus(status).value)
        where = (" WHERE " + " AND ".join(clauses)) if clauses else ""
        sql = (
            "SELECT e.*, u.name AS owner_name "
            "FROM expenses e LEFT JOIN users u ON u.id = e.owner_id"
            f"{where} ORDER BY e.date DESC, e.created_at DESC, e.id"
        )
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(sql, params)
            return [dict(r) for r in cur.fetchall()]

    def update_expense_status(
        self,
        expense_id: str,
        expected_status: ExpenseStatus,
        new_status: ExpenseStatus,
        fields: Mapping[str, Any],
    ) -> bool:
        """Write a status transition only if the row still has `expected_status`.

        Returns False when no row matched (missing, or changed concurrently).
        """
        unknown = set(fields) - TRANSITION_COLUMNS
        if unknown:
            raise ValueError(f"unsupported transition columns: {sorted(unknown)}")
        assignments = ["status = ?"]
        params: List[Any] = [ExpenseStatus(new_status).value]
        for column in sorted(fields):
            value = fields[column]
            assignments.append(f"{column} = ?")
            params.append(value.isoformat() if hasattr(value, "isoformat") else value)
        params.extend([expense_id, ExpenseStatus(expected_status).value])
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                f"UPDATE expenses SET {', '.join(assignments)} WHERE id = ? AND status = ?",
                params,
            )
            conn.commit()
            return cur.rowcount == 1

    # ------------------------------------------------------------------
    # Category limits
    def list_category_limits(self) -> List[Dict[str, Any]]:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute("SELECT * FROM category_limits")
            rows = [dict(r) for r in cur.fetchall()]
        order = {c.value: i for i, c in enumerate(Category)}
        return sorted(rows, key=lambda r: order.get(r["category"], len(order)))

    def get_category_limit(self, category: Category) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                "SELECT * FROM category_limits WHERE category = ?",
                (Category(category).value,),
            )
            row = cur.fetchone()
            return dict(row) if row else None

    def set_category_limit(
        self, category: Category, daily_limit: Decimal, updated_by: str
    ) -> None:
        if daily_limit < 0:
            raise ValueError("daily_limit cannot be negative")
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                f"""
                INSERT INTO category_limits (category, daily_limit, updated_by, updated_at)
                VALUES (?, ?, ?, ({UTC_NOW_SQL}))
                ON CONFLICT(category) DO UPDATE SET
                    daily_limit = excluded.daily_limit,
                    updated_by = excluded.updated_by,
                    updated_at = excluded.updated_at
                """,
                (Category(category).value, str(daily_limit), updated_by),
            )
            conn.commit()
