"""SQLite backend for the finance tracker store."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from .errors import RecordNotFoundError, StoreError
from .store import FinanceStore, Row

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;

CREATE TABLE IF NOT EXISTS goals (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    title TEXT NOT NULL,
    target_amount REAL NOT NULL DEFAULT 0,
    current_amount REAL NOT NULL DEFAULT 0,
    deadline TEXT,
    category TEXT DEFAULT 'general',
    description TEXT DEFAULT '',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS transactions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    type TEXT NOT NULL CHECK (type IN ('income', 'expense')),
    amount REAL NOT NULL DEFAULT 0,
    category TEXT NOT NULL,
    description TEXT DEFAULT '',
    date TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS bills (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    amount REAL NOT NULL DEFAULT 0,
    due_date TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('paid', 'pending', 'overdue')),
    category TEXT DEFAULT 'general',
    recurring INTEGER DEFAULT 0,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS investments (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    type TEXT NOT NULL DEFAULT 'stocks',
    amount_invested REAL NOT NULL DEFAULT 0,
    current_value REAL NOT NULL DEFAULT 0,
    purchase_date TEXT NOT NULL,
    goal_id TEXT REFERENCES goals(id) ON DELETE SET NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS ix_goals_user ON goals (user_id);
CREATE INDEX IF NOT EXISTS ix_txn_user ON transactions (user_id);
CREATE INDEX IF NOT EXISTS ix_txn_date ON transactions (date);
CREATE INDEX IF NOT EXISTS ix_bills_user ON bills (user_id);
CREATE INDEX IF NOT EXISTS ix_bills_due_date ON bills (due_date);
CREATE INDEX IF NOT EXISTS ix_investments_user ON investments (user_id);
CREATE INDEX IF NOT EXISTS ix_investments_goal ON investments (goal_id);
"""

TABLES = ('goals', 'transactions', 'bills', 'investments')


@contextmanager
def connect(path: Path) -> Iterator[sqlite3.Connection]:
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def _check_table(table: str) -> str:
    if table not in TABLES:
        raise ValueError(f"Unknown table: {table}")
    return table


def _to_db_row(row: Row) -> Dict[str, Any]:
    return {key: (int(value) if isinstance(value, bool) else value) for key, value in row.items()}


def _insert_statement(table: str, row: Row) -> Tuple[str, List[Any]]:
    values = _to_db_row(row)
    columns = ', '.join(values)
    placeholders = ', '.join('?' for _ in values)
    return f"INSERT INTO {_check_table(table)} ({columns}) VALUES ({placeholders})", list(values.values())


class SQLiteStore(FinanceStore):
    """Stores each record type in its own table of a local SQLite file."""

    name = 'sqlite'

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = Path(path)
        self.init_db()

    def init_db(self) -> None:
        with self._connection() as conn:
            conn.executescript(SCHEMA_SQL)
            conn.commit()
        logger.debug("SQLite schema ready at %s", self.path)

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        try:
            with connect(self.path) as conn:
                yield conn
        except sqlite3.Error as exc:
            logger.exception("SQLite operation failed on %s", self.path)
            raise StoreError(f"Database error: {exc}") from exc

    # Row primitives ---------------------------------------------------------

    def _select_rows(self, table: str, user_id: str, order_field: str, descending: bool) -> List[Row]:
        direction = 'DESC' if descending else 'ASC'
        sql = (
            f"SELECT * FROM {_check_table(table)} WHERE user_id = ? "
            f"ORDER BY {order_field} {direction}, created_at {direction}"
        )
        with self._connection() as conn:
            rows = conn.execute(sql, (user_id,)).fetchall()
        return [dict(row) for row in rows]

    def _select_row(self, table: str, user_id: str, record_id: str) -> Optional[Row]:
        sql = f"SELECT * FROM {_check_table(table)} WHERE id = ? AND user_id = ?"
        with self._connection() as conn:
            row = conn.execute(sql, (record_id, user_id)).fetchone()
        return dict(row) if row is not None else None

    def _insert_row(self, table: str, row: Row) -> None:
        sql, params = _insert_statement(table, row)
        with self._connection() as conn:
            conn.execute(sql, params)
            conn.commit()

    def _update_row(self, table: str, row: Row) -> None:
        values = _to_db_row(row)
        record_id = values.pop('id')
        user_id = values.pop('user_id')
        assignments = ', '.join(f"{column} = ?" for column in values)
        sql = f"UPDATE {_check_table(table)} SET {assignments} WHERE id = ? AND user_id = ?"
        with self._connection() as conn:
            cursor = conn.execute(sql, [*values.values(), record_id, user_id])
            conn.commit()
            if cursor.rowcount == 0:
                raise RecordNotFoundError(table.rstrip('s'), record_id)

    def _delete_row(self, table: str, user_id: str, record_id: str) -> None:
        sql = f"DELETE FROM {_check_table(table)} WHERE id = ? AND user_id = ?"
        with self._connection() as conn:
            cursor = conn.execute(sql, (record_id, user_id))
            conn.commit()
            if cursor.rowcount == 0:
                raise RecordNotFoundError(table.rstrip('s'), record_id)

    def _clear_goal_links(self, user_id: str, goal_id: str) -> int:
        sql = "UPDATE investments SET goal_id = NULL WHERE goal_id = ? AND user_id = ?"
        with self._connection() as conn:
            cursor = conn.execute(sql, (goal_id, user_id))
            conn.commit()
            return cursor.rowcount

    def _replace_user_rows(self, user_id: str, rows: Mapping[str, List[Row]]) -> int:
        removed = 0
        with self._connection() as conn:
            try:
                for table in TABLES:
                    removed += conn.execute(f"DELETE FROM {table} WHERE user_id = ?", (user_id,)).rowcount
                for table, table_rows in rows.items():
                    for row in table_rows:
                        conn.execute(*_insert_statement(table, row))
            except Exception:
                conn.rollback()
                raise
            conn.commit()
        return removed
