"""Document-style backend keeping all records in a single JSON file.

The file holds one array per record type, each element being the
``to_dict`` form of a record.  It is read on every operation and rewritten
after every mutation, so several app instances pointed at the same file
always see the latest saved state.  Streamlit serves sessions on threads of
one process, so every load-modify-save cycle holds a module-level lock.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .errors import RecordNotFoundError, StoreError
from .store import FinanceStore, Row

logger = logging.getLogger(__name__)

TABLES = ('goals', 'transactions', 'bills', 'investments')

_WRITE_LOCK = threading.RLock()


def _empty_document() -> Dict[str, List[Row]]:
    return {table: [] for table in TABLES}


class JsonFileStore(FinanceStore):
    """Stores every record type as an array inside one JSON document."""

    name = 'json'

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = Path(path)

    # Document I/O -------------------------------------------------------------

    def _load(self) -> Dict[str, List[Row]]:
        if not self.path.exists():
            return _empty_document()
        try:
            with self.path.open('r', encoding='utf-8') as handle:
                data = json.load(handle)
        except (json.JSONDecodeError, OSError) as exc:
            logger.exception("Could not read store file %s", self.path)
            raise StoreError(f"Could not read {self.path.name}: {exc}") from exc
        if not isinstance(data, dict):
            raise StoreError(f"{self.path.name} does not contain a JSON object")
        document = _empty_document()
        for table in TABLES:
            rows = data.get(table) or []
            if not isinstance(rows, list):
                raise StoreError(f"'{table}' in {self.path.name} is not a list")
            document[table] = [row for row in rows if isinstance(row, dict)]
        return document

    def _save(self, document: Dict[str, List[Row]]) -> None:
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                'w',
                encoding='utf-8',
                dir=self.path.parent,
                prefix=f"{self.path.name}.",
                suffix='.tmp',
                delete=False,
            ) as handle:
                tmp_name = handle.name
                json.dump(document, handle, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            logger.exception("Could not write store file %s", self.path)
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StoreError(f"Could not write {self.path.name}: {exc}") from exc

    # Row primitives ---------------------------------------------------------

    def _select_rows(self, table: str, user_id: str, order_field: str, descending: bool) -> List[Row]:
        rows = [row for row in self._load()[table] if row.get('user_id') == user_id]
        # ISO dates and timestamps sort correctly as strings.
        return sorted(
            rows,
            key=lambda row: (str(row.get(order_field) or ''), str(row.get('created_at') or '')),
            reverse=descending,
        )

    def _select_row(self, table: str, user_id: str, record_id: str) -> Optional[Row]:
        for row in self._load()[table]:
            if row.get('id') == record_id and row.get('user_id') == user_id:
                return dict(row)
        return None

    def _insert_row(self, table: str, row: Row) -> None:
        with _WRITE_LOCK:
            document = self._load()
            if any(existing.get('id') == row['id'] for existing in document[table]):
                raise StoreError(f"Duplicate id '{row['id']}' in {table}")
            document[table].append(dict(row))
            self._save(document)

    def _update_row(self, table: str, row: Row) -> None:
        with _WRITE_LOCK:
            document = self._load()
            for index, existing in enumerate(document[table]):
                if existing.get('id') == row['id'] and existing.get('user_id') == row['user_id']:
                    document[table][index] = dict(row)
                    self._save(document)
                    return
        raise RecordNotFoundError(table.rstrip('s'), row['id'])

    def _delete_row(self, table: str, user_id: str, record_id: str) -> None:
        with _WRITE_LOCK:
            document = self._load()
            remaining = [
                row for row in document[table]
                if not (row.get('id') == record_id and row.get('user_id') == user_id)
            ]
            if len(remaining) == len(document[table]):
                raise RecordNotFoundError(table.rstrip('s'), record_id)
            document[table] = remaining
            self._save(document)

    def _clear_goal_links(self, user_id: str, goal_id: str) -> int:
        with _WRITE_LOCK:
            document = self._load()
            cleared = 0
            for row in document['investments']:
                if row.get('user_id') == user_id and row.get('goal_id') == goal_id:
                    row['goal_id'] = None
                    cleared += 1
            if cleared:
                self._save(document)
        return cleared

    def _replace_user_rows(self, user_id: str, rows: Mapping[str, List[Row]]) -> int:
        with _WRITE_LOCK:
            document = self._load()
            removed = 0
            for table in TABLES:
                kept: List[Dict[str, Any]] = [row for row in document[table] if row.get('user_id') != user_id]
                removed += len(document[table]) - len(kept)
                taken = {row.get('id') for row in kept}
                for row in rows.get(table, []):
                    if row['id'] in taken:
                        raise StoreError(f"Duplicate id '{row['id']}' in {table}")
                    taken.add(row['id'])
                    kept.append(dict(row))
                document[table] = kept
            # Nothing is written until the whole document is rebuilt.
            self._save(document)
        return removed
