"""CSV and JSON export of record lists.

CSV output follows the first record's keys for its header and uses
minimal RFC-4180 quoting.  The JSON backup bundles all four record types
with an ``exported_at`` timestamp and can be parsed back into records with
:func:`load_json_backup`.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

import pandas as pd

from .errors import ExportError, InvalidRecordError
from .models import RECORD_TYPES, Bill, Goal, Investment, Record, Transaction, parse_timestamp, utc_now

BACKUP_KEYS = ('goals', 'transactions', 'bills', 'investments')


def _as_dict(record: Any) -> Dict[str, Any]:
    if hasattr(record, 'to_dict'):
        return record.to_dict()
    return dict(record)


def _csv_value(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, float) and pd.isna(value):
        return ''
    return str(value)


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def safe_filename(name: str, default: str = 'export') -> str:
    """Reduce ``name`` to letters, digits, ``_`` and ``-`` for download names.

    Example:
        >>> safe_filename("My Bills 2024!")
        'My_Bills_2024'
    """
    cleaned = re.sub(r'[^\w\s-]', '', name or '')
    cleaned = re.sub(r'[\s_]+', '_', cleaned).strip('_')
    return cleaned or default


def export_filename(kind: str, extension: str, when: Optional[datetime] = None) -> str:
    """Download name such as ``transactions_20240131_120000.csv``."""
    when = when or datetime.now()
    return f"{safe_filename(kind)}_{when.strftime('%Y%m%d_%H%M%S')}.{extension.lstrip('.')}"


def to_csv(records: Iterable[Any]) -> str:
    """Serialise a homogeneous record list to CSV text.

    The header is the key order of the first record.  Every other record
    must have exactly the same keys, otherwise :class:`ExportError` is
    raised.  Missing values become empty fields and booleans are written
    as ``true``/``false``.  An empty list produces an empty string.
    """
    rows = [_as_dict(record) for record in records]
    if not rows:
        return ''

    header = list(rows[0])
    expected = set(header)
    for position, row in enumerate(rows[1:], start=2):
        if set(row) != expected:
            missing = sorted(expected - set(row))
            extra = sorted(set(row) - expected)
            raise ExportError(
                f"Record {position} does not match the header columns "
                f"(missing: {missing or 'none'}, unexpected: {extra or 'none'})"
            )

    table = [[_csv_value(row[key]) for key in header] for row in rows]
    frame = pd.DataFrame(table, columns=header, dtype=object)
    return frame.to_csv(index=False, lineterminator='\n')


@dataclass
class FinanceBackup:
    """Record lists restored from a JSON backup."""

    goals: List[Goal] = field(default_factory=list)
    transactions: List[Transaction] = field(default_factory=list)
    bills: List[Bill] = field(default_factory=list)
    investments: List[Investment] = field(default_factory=list)
    exported_at: Optional[datetime] = None

    def tables(self) -> Iterator[Tuple[str, List[Record]]]:
        for key in BACKUP_KEYS:
            yield key, getattr(self, key)

    @property
    def record_count(self) -> int:
        return sum(len(records) for _, records in self.tables())


def to_json_backup(
    goals: Iterable[Any],
    transactions: Iterable[Any],
    bills: Iterable[Any],
    investments: Iterable[Any],
    exported_at: Optional[datetime] = None,
) -> str:
    """Pretty-printed JSON document holding all four record lists."""
    payload = {
        'goals': [_as_dict(g) for g in goals],
        'transactions': [_as_dict(t) for t in transactions],
        'bills': [_as_dict(b) for b in bills],
        'investments': [_as_dict(i) for i in investments],
        'exported_at': (exported_at or utc_now()).isoformat(),
    }
    return json.dumps(payload, indent=2, default=_json_default)


def snapshot_to_json_backup(snapshot, exported_at: Optional[datetime] = None) -> str:
    return to_json_backup(
        snapshot.goals,
        snapshot.transactions,
        snapshot.bills,
        snapshot.investments,
        exported_at=exported_at,
    )


def load_json_backup(text: str) -> FinanceBackup:
    """Parse a document written by :func:`to_json_backup` back into records."""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidRecordError(f"Backup is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise InvalidRecordError("Backup must be a JSON object")

    backup = FinanceBackup()
    for key in BACKUP_KEYS:
        rows = payload.get(key) or []
        if not isinstance(rows, list):
            raise InvalidRecordError(f"Backup section '{key}' must be a list")
        model = RECORD_TYPES[key]
        setattr(backup, key, [model.from_dict(row) for row in rows])
    if payload.get('exported_at'):
        backup.exported_at = parse_timestamp(payload['exported_at'], 'exported_at')
    return backup
