"""Record types for the finance tracker and the input parsing behind them.

Every record is a dataclass owned by exactly one user.  Values coming from
forms, files or the store pass through the ``parse_*`` helpers so malformed
input is rejected before it is persisted.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime, timezone
from typing import Any, Callable, ClassVar, Dict, Mapping, Optional, Tuple

import pandas as pd

from .errors import InvalidRecordError

INCOME = 'income'
EXPENSE = 'expense'
TRANSACTION_TYPES = (INCOME, EXPENSE)

PAID = 'paid'
PENDING = 'pending'
OVERDUE = 'overdue'
BILL_STATUSES = (PAID, PENDING, OVERDUE)

DEFAULT_CATEGORY = 'general'
INVESTMENT_TYPES = ('stocks', 'bonds', 'mutual_funds', 'etf', 'crypto', 'real_estate', 'other')

_TRUE_LABELS = {'true', '1', 'yes', 'y', 'on'}
_FALSE_LABELS = {'false', '0', 'no', 'n', 'off', ''}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


def _today() -> date:
    return date.today()


# ---------------------------------------------------------------------------
# Parsers
# ---------------------------------------------------------------------------


def parse_date(value: Any, field_name: str = 'date') -> date:
    """Convert a form/store value into a calendar date.

    Accepts ``date``/``datetime`` objects (pandas timestamps included) and
    date strings such as ``2024-01-31``.  Empty or unparseable values raise
    :class:`InvalidRecordError` instead of being stored as-is.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidRecordError(f"{field_name} is required")
    if not isinstance(value, str) and pd.isna(value):
        raise InvalidRecordError(f"{field_name} is required")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    ts = pd.to_datetime(str(value).strip(), errors='coerce')
    if pd.isna(ts):
        raise InvalidRecordError(f"{field_name} is not a valid date: {value!r}")
    return ts.date()


def parse_optional_date(value: Any, field_name: str = 'date') -> Optional[date]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_date(value, field_name)


def parse_timestamp(value: Any, field_name: str = 'created_at') -> datetime:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidRecordError(f"{field_name} is not a valid timestamp: {value!r}")
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        raise InvalidRecordError(f"{field_name} is not a valid timestamp: {value!r}") from None


def parse_amount(value: Any, field_name: str = 'amount') -> float:
    """Convert textual or numeric amounts into a non-negative float."""
    if value is None or isinstance(value, bool):
        raise InvalidRecordError(f"{field_name} is required")
    if isinstance(value, str):
        cleaned = value.strip().replace('$', '').replace(',', '')
        if not cleaned:
            raise InvalidRecordError(f"{field_name} is required")
        value = cleaned
    number = pd.to_numeric([value], errors='coerce')[0]
    if pd.isna(number) or number in (float('inf'), float('-inf')):
        raise InvalidRecordError(f"{field_name} is not a valid amount: {value!r}")
    if number < 0:
        raise InvalidRecordError(f"{field_name} must not be negative")
    return float(number)


def parse_text(value: Any, field_name: str = 'text') -> str:
    if value is None:
        return ''
    if not isinstance(value, str) and pd.isna(value):
        return ''
    return str(value).strip()


def parse_required_text(value: Any, field_name: str = 'text') -> str:
    text = parse_text(value, field_name)
    if not text:
        raise InvalidRecordError(f"{field_name} is required")
    return text


def parse_category(value: Any, field_name: str = 'category') -> str:
    return parse_text(value, field_name) or DEFAULT_CATEGORY


def parse_bool(value: Any, field_name: str = 'flag') -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)) and not pd.isna(value):
        return bool(value)
    label = str(value).strip().lower()
    if label in _TRUE_LABELS:
        return True
    if label in _FALSE_LABELS:
        return False
    raise InvalidRecordError(f"{field_name} must be true or false, got {value!r}")


def parse_optional_id(value: Any, field_name: str = 'id') -> Optional[str]:
    text = parse_text(value, field_name)
    return text or None


def _choice(choices: Tuple[str, ...]) -> Callable[[Any, str], str]:
    def parse(value: Any, field_name: str) -> str:
        label = parse_text(value, field_name).lower()
        if label not in choices:
            raise InvalidRecordError(
                f"{field_name} must be one of {', '.join(choices)}, got {value!r}"
            )
        return label
    return parse


def _text_or(default: str) -> Callable[[Any, str], str]:
    def parse(value: Any, field_name: str) -> str:
        return parse_text(value, field_name) or default
    return parse


def _json_value(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class Record:
    """Behaviour shared by the four record dataclasses.

    Subclasses declare ``_parsers`` (editable field -> parser) and
    ``_required`` (fields that must be present on creation).
    """

    kind: ClassVar[str] = 'record'
    _parsers: ClassVar[Dict[str, Callable[[Any, str], Any]]] = {}
    _required: ClassVar[Tuple[str, ...]] = ()

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def clean(cls, values: Mapping[str, Any], partial: bool = False) -> Dict[str, Any]:
        """Validate user-supplied field values.

        With ``partial`` set only the given fields are checked, which is
        what updates need; otherwise required fields must be present.
        """
        unknown = sorted(set(values) - set(cls._parsers))
        if unknown:
            raise InvalidRecordError(f"Unknown or read-only {cls.kind} field(s): {', '.join(unknown)}")
        cleaned: Dict[str, Any] = {}
        for name, parser in cls._parsers.items():
            if name in values:
                cleaned[name] = parser(values[name], name)
            elif not partial and name in cls._required:
                raise InvalidRecordError(f"{name} is required")
        return cleaned

    @classmethod
    def new(cls, user_id: str, values: Mapping[str, Any]):
        """Build a fresh record for ``user_id`` from submitted form values."""
        cleaned = cls.clean(values)
        now = utc_now()
        meta: Dict[str, Any] = {'id': new_id(), 'user_id': user_id, 'created_at': now}
        if 'updated_at' in cls.field_names():
            meta['updated_at'] = now
        return cls(**meta, **cleaned)

    def updated(self, values: Mapping[str, Any]):
        """Return a copy with ``values`` applied; the original is untouched."""
        cleaned = self.clean(values, partial=True)
        if 'updated_at' in self.field_names():
            cleaned['updated_at'] = utc_now()
        return replace(self, **cleaned)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe mapping in field declaration order."""
        return {f.name: _json_value(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]):
        """Rebuild a record from :meth:`to_dict` output or a stored row."""
        names = cls.field_names()
        values = {k: v for k, v in data.items() if k in cls._parsers}
        cleaned = cls.clean(values)
        if data.get('id') in (None, ''):
            raise InvalidRecordError(f"{cls.kind} id is required")
        meta: Dict[str, Any] = {
            'id': str(data['id']),
            'user_id': parse_required_text(data.get('user_id'), 'user_id'),
            'created_at': parse_timestamp(data.get('created_at'), 'created_at'),
        }
        if 'updated_at' in names:
            raw = data.get('updated_at')
            meta['updated_at'] = parse_timestamp(raw, 'updated_at') if raw else meta['created_at']
        return cls(**meta, **cleaned)


@dataclass
class Transaction(Record):
    id: str
    user_id: str
    type: str
    amount: float
    category: str
    description: str = ''
    date: date = field(default_factory=_today)
    created_at: datetime = field(default_factory=utc_now)

    kind: ClassVar[str] = 'transaction'
    _parsers: ClassVar[Dict[str, Callable[[Any, str], Any]]] = {
        'type': _choice(TRANSACTION_TYPES),
        'amount': parse_amount,
        'category': parse_required_text,
        'description': parse_text,
        'date': parse_date,
    }
    _required: ClassVar[Tuple[str, ...]] = ('type', 'amount', 'category', 'date')


@dataclass
class Bill(Record):
    id: str
    user_id: str
    name: str
    amount: float
    due_date: date
    status: str = PENDING
    category: str = DEFAULT_CATEGORY
    recurring: bool = False
    created_at: datetime = field(default_factory=utc_now)

    kind: ClassVar[str] = 'bill'
    _parsers: ClassVar[Dict[str, Callable[[Any, str], Any]]] = {
        'name': parse_required_text,
        'amount': parse_amount,
        'due_date': parse_date,
        'status': _choice(BILL_STATUSES),
        'category': parse_category,
        'recurring': parse_bool,
    }
    _required: ClassVar[Tuple[str, ...]] = ('name', 'amount', 'due_date')


@dataclass
class Goal(Record):
    id: str
    user_id: str
    title: str
    target_amount: float = 0.0
    current_amount: float = 0.0
    deadline: Optional[date] = None
    category: str = DEFAULT_CATEGORY
    description: str = ''
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    kind: ClassVar[str] = 'goal'
    _parsers: ClassVar[Dict[str, Callable[[Any, str], Any]]] = {
        'title': parse_required_text,
        'target_amount': parse_amount,
        'current_amount': parse_amount,
        'deadline': parse_optional_date,
        'category': parse_category,
        'description': parse_text,
    }
    _required: ClassVar[Tuple[str, ...]] = ('title', 'target_amount')


@dataclass
class Investment(Record):
    id: str
    user_id: str
    name: str
    type: str = 'stocks'
    amount_invested: float = 0.0
    current_value: float = 0.0
    purchase_date: date = field(default_factory=_today)
    goal_id: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    kind: ClassVar[str] = 'investment'
    _parsers: ClassVar[Dict[str, Callable[[Any, str], Any]]] = {
        'name': parse_required_text,
        'type': _text_or('stocks'),
        'amount_invested': parse_amount,
        'current_value': parse_amount,
        'purchase_date': parse_date,
        'goal_id': parse_optional_id,
    }
    _required: ClassVar[Tuple[str, ...]] = ('name', 'amount_invested', 'current_value', 'purchase_date')


RECORD_TYPES = {
    'goals': Goal,
    'transactions': Transaction,
    'bills': Bill,
    'investments': Investment,
}
