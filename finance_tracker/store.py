"""Store client: user-scoped CRUD over the four record types.

The repository logic here is shared by every backend.  A backend only
knows how to read and write plain rows (the ``to_dict`` form of a record)
for a given table, always filtered by ``user_id``; validation, ownership
checks and the goal/investment weak reference live in this module.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Type

from . import config
from .errors import InvalidRecordError, RecordNotFoundError
from .models import Bill, Goal, Investment, Record, Transaction, new_id
from .session import UserSession

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


class RecordRepository:
    """CRUD operations for one record type, scoped to the session's user."""

    def __init__(
        self,
        store: 'FinanceStore',
        model: Type[Record],
        table: str,
        order_field: str,
        descending: bool = False,
    ) -> None:
        self.store = store
        self.model = model
        self.table = table
        self.order_field = order_field
        self.descending = descending

    # Public API -------------------------------------------------------------

    def list(self, session: UserSession) -> List[Record]:
        rows = self.store._select_rows(self.table, session.user_id, self.order_field, self.descending)
        return [self.model.from_dict(row) for row in rows]

    def get(self, session: UserSession, record_id: str) -> Record:
        row = self.store._select_row(self.table, session.user_id, record_id)
        if row is None:
            raise RecordNotFoundError(self.model.kind, record_id)
        return self.model.from_dict(row)

    def create(self, session: UserSession, values: Mapping[str, Any]) -> Record:
        record = self.model.new(session.user_id, values)
        self._check_references(session, record)
        self.store._insert_row(self.table, record.to_dict())
        logger.info("Created %s %s for user %s", self.model.kind, record.id, session.user_id)
        return record

    def update(self, session: UserSession, record_id: str, values: Mapping[str, Any]) -> Record:
        record = self.get(session, record_id).updated(values)
        self._check_references(session, record)
        self.store._update_row(self.table, record.to_dict())
        logger.info("Updated %s %s for user %s", self.model.kind, record_id, session.user_id)
        return record

    def delete(self, session: UserSession, record_id: str) -> None:
        # Raises for missing ids and for ids owned by someone else.
        self.get(session, record_id)
        self.store._delete_row(self.table, session.user_id, record_id)
        logger.info("Deleted %s %s for user %s", self.model.kind, record_id, session.user_id)

    # Hooks ------------------------------------------------------------------

    def _check_references(self, session: UserSession, record: Record) -> None:
        """Validate references to other records before a write."""


class GoalRepository(RecordRepository):
    def delete(self, session: UserSession, record_id: str) -> None:
        self.get(session, record_id)
        cleared = self.store._clear_goal_links(session.user_id, record_id)
        if cleared:
            logger.info("Unlinked %d investment(s) from goal %s", cleared, record_id)
        self.store._delete_row(self.table, session.user_id, record_id)
        logger.info("Deleted goal %s for user %s", record_id, session.user_id)


class InvestmentRepository(RecordRepository):
    def _check_references(self, session: UserSession, record: Record) -> None:
        goal_id = getattr(record, 'goal_id', None)
        if goal_id is None:
            return
        if self.store._select_row('goals', session.user_id, goal_id) is None:
            raise InvalidRecordError(f"goal_id '{goal_id}' does not refer to one of your goals")


class FinanceStore(ABC):
    """Base class for persistence backends.

    Subclasses implement the row-level primitives; each must filter every
    read and write by ``user_id``.
    """

    name = 'abstract'

    def __init__(self) -> None:
        self.goals = GoalRepository(self, Goal, 'goals', 'created_at', descending=True)
        self.transactions = RecordRepository(self, Transaction, 'transactions', 'date', descending=True)
        self.bills = RecordRepository(self, Bill, 'bills', 'due_date')
        self.investments = InvestmentRepository(self, Investment, 'investments', 'purchase_date', descending=True)

    def load_snapshot(self, session: UserSession, today: Optional[date] = None):
        """Fetch all four record lists for ``session`` in one go."""
        from .analytics import FinanceSnapshot

        return FinanceSnapshot(
            goals=tuple(self.goals.list(session)),
            transactions=tuple(self.transactions.list(session)),
            bills=tuple(self.bills.list(session)),
            investments=tuple(self.investments.list(session)),
            today=today or date.today(),
        )

    def restore_backup(self, session: UserSession, backup) -> int:
        """Replace the user's records with the contents of a backup.

        Restored records get fresh ids and are re-owned by ``session``;
        investment links are remapped to the restored goals and cleared
        when the goal is not part of the backup.  The backend swaps the
        records in a single write, so a failure leaves the user's existing
        records untouched.
        """
        goal_ids: Dict[str, str] = {goal.id: new_id() for goal in backup.goals}
        rows: Dict[str, List[Row]] = {}
        for table, records in backup.tables():
            rows[table] = []
            for record in records:
                if isinstance(record, Goal):
                    record_id = goal_ids[record.id]
                else:
                    record_id = new_id()
                record = replace(record, id=record_id, user_id=session.user_id)
                if isinstance(record, Investment):
                    record = replace(record, goal_id=goal_ids.get(record.goal_id))
                rows[table].append(record.to_dict())
        removed = self._replace_user_rows(session.user_id, rows)
        restored = sum(len(table_rows) for table_rows in rows.values())
        logger.info(
            "Restored %d record(s) for user %s, replacing %d", restored, session.user_id, removed
        )
        return restored

    # Row primitives ---------------------------------------------------------

    @abstractmethod
    def _replace_user_rows(self, user_id: str, rows: Mapping[str, List[Row]]) -> int:
        """Atomically swap every row owned by ``user_id`` for ``rows``.

        Returns the number of rows removed.
        """

    @abstractmethod
    def _select_rows(self, table: str, user_id: str, order_field: str, descending: bool) -> List[Row]:
        ...

    @abstractmethod
    def _select_row(self, table: str, user_id: str, record_id: str) -> Optional[Row]:
        ...

    @abstractmethod
    def _insert_row(self, table: str, row: Row) -> None:
        ...

    @abstractmethod
    def _update_row(self, table: str, row: Row) -> None:
        ...

    @abstractmethod
    def _delete_row(self, table: str, user_id: str, record_id: str) -> None:
        ...

    @abstractmethod
    def _clear_goal_links(self, user_id: str, goal_id: str) -> int:
        """Set ``goal_id`` to null on the user's investments linked to a goal."""


def get_store(backend: Optional[str] = None, path: Optional[Path] = None) -> FinanceStore:
    """Open the configured storage backend."""
    backend = (backend or config.STORE_BACKEND).strip().lower()
    if backend == 'sqlite':
        from .db import SQLiteStore

        return SQLiteStore(path or config.DB_PATH)
    if backend == 'json':
        from .json_store import JsonFileStore

        return JsonFileStore(path or config.JSON_STORE_PATH)
    raise ValueError(
        f"Unsupported backend '{backend}'. Expected one of: {', '.join(config.SUPPORTED_BACKENDS)}"
    )
