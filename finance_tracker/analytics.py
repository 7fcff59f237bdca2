"""Aggregations over fetched record lists.

All functions are pure: they take lists of records (model instances or
plain mappings using the canonical field names), never touch the store
and never mutate their input.  Empty input and zero totals produce
defined defaults (0.0 and empty frames) rather than NaN or errors.

:class:`FinanceSnapshot` bundles the lists fetched for one page load and
computes each derived view at most once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from functools import cached_property
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from .bills import bill_summary, with_effective_status
from .errors import InvalidRecordError
from .models import EXPENSE, INCOME, OVERDUE, PENDING, TRANSACTION_TYPES, Bill, Goal, Investment, Transaction

BREAKDOWN_COLUMNS = ['category', 'amount', 'percentage']
MONTHLY_COLUMNS = ['month', 'income', 'expense', 'net']
GOAL_COLUMNS = [
    'id', 'title', 'category', 'target_amount', 'current_amount',
    'remaining', 'progress', 'deadline', 'linked_value',
]
INVESTMENT_TYPE_COLUMNS = ['type', 'amount_invested', 'current_value', 'gain']
TRANSACTION_FILTERS = ('all', INCOME, EXPENSE)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _as_dict(record: Any) -> Dict[str, Any]:
    if hasattr(record, 'to_dict'):
        return record.to_dict()
    return dict(record)


def _value(record: Any, name: str, default: Any = None) -> Any:
    if isinstance(record, Mapping):
        return record.get(name, default)
    return getattr(record, name, default)


def _amount(record: Any, name: str) -> float:
    number = pd.to_numeric([_value(record, name, 0.0)], errors='coerce')[0]
    return 0.0 if pd.isna(number) else float(number)


def _check_type(kind: str) -> str:
    if kind not in TRANSACTION_TYPES:
        raise InvalidRecordError(f"Transaction type must be one of {', '.join(TRANSACTION_TYPES)}, got {kind!r}")
    return kind


def _empty_frame(columns: Sequence[str], numeric: Iterable[str]) -> pd.DataFrame:
    numeric = set(numeric)
    return pd.DataFrame({
        column: pd.Series(dtype=float if column in numeric else object)
        for column in columns
    })


def transactions_frame(transactions: Iterable[Any]) -> pd.DataFrame:
    """Normalise transactions into a frame with ``type, amount, category, date``.

    Rows keep the order of the input list.
    """
    rows = [_as_dict(t) for t in transactions]
    df = pd.DataFrame(rows, columns=['type', 'amount', 'category', 'date'])
    df['type'] = df['type'].fillna('').astype(str).str.strip().str.lower()
    df['amount'] = pd.to_numeric(df['amount'], errors='coerce').fillna(0.0).astype(float)
    df['category'] = df['category'].fillna('Uncategorized').astype(str)
    df['date'] = pd.to_datetime(df['date'], errors='coerce')
    return df


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


def total_by_type(transactions: Iterable[Any], kind: str) -> float:
    """Sum of ``amount`` over transactions of ``kind`` (0.0 when none)."""
    _check_type(kind)
    df = transactions_frame(transactions)
    return float(df.loc[df['type'] == kind, 'amount'].sum())


def balance(transactions: Iterable[Any]) -> float:
    transactions = list(transactions)
    return total_by_type(transactions, INCOME) - total_by_type(transactions, EXPENSE)


def savings_rate(transactions: Iterable[Any]) -> float:
    """Share of income kept, in percent; 0.0 when there is no income."""
    transactions = list(transactions)
    income = total_by_type(transactions, INCOME)
    if income <= 0:
        return 0.0
    expense = total_by_type(transactions, EXPENSE)
    return (income - expense) / income * 100


def net_worth(transactions: Iterable[Any], investments: Iterable[Any]) -> float:
    """Income minus expenses plus the current value of all investments.

    Kept at full precision; round only when formatting for display.
    """
    invested = sum(_amount(i, 'current_value') for i in investments)
    return balance(transactions) + invested


def filter_by_type(transactions: Iterable[Any], kind: str = 'all') -> List[Any]:
    if kind not in TRANSACTION_FILTERS:
        raise InvalidRecordError(f"Filter must be one of {', '.join(TRANSACTION_FILTERS)}, got {kind!r}")
    if kind == 'all':
        return list(transactions)
    return [t for t in transactions if _value(t, 'type') == kind]


def category_breakdown(transactions: Iterable[Any], kind: str) -> pd.DataFrame:
    """Per-category totals for one transaction type.

    Returns a frame with ``category, amount, percentage`` ordered by
    descending amount; categories with equal amounts keep the order in
    which they were first seen.  Percentages are 0.0 when the total is 0.
    """
    _check_type(kind)
    df = transactions_frame(transactions)
    subset = df[df['type'] == kind]
    if subset.empty:
        return _empty_frame(BREAKDOWN_COLUMNS, ['amount', 'percentage'])

    grouped = subset.groupby('category', sort=False)['amount'].sum().reset_index()
    grouped['first_seen'] = range(len(grouped))
    total = float(grouped['amount'].sum())
    if total > 0:
        grouped['percentage'] = grouped['amount'] * 100 / total
    else:
        grouped['percentage'] = 0.0
    grouped = grouped.sort_values(['amount', 'first_seen'], ascending=[False, True])
    return grouped[BREAKDOWN_COLUMNS].reset_index(drop=True)


def top_category(transactions: Iterable[Any], kind: str = EXPENSE) -> Optional[Dict[str, Any]]:
    breakdown = category_breakdown(transactions, kind)
    if breakdown.empty:
        return None
    return breakdown.iloc[0].to_dict()


def monthly_series(transactions: Iterable[Any], chronological: bool = True) -> pd.DataFrame:
    """Income and expense totals per calendar month (``YYYY-MM``).

    Months are sorted chronologically by default.  With
    ``chronological=False`` they appear in the order each month is first
    encountered in ``transactions``.
    """
    df = transactions_frame(transactions).dropna(subset=['date']).copy()
    if df.empty:
        return _empty_frame(MONTHLY_COLUMNS, ['income', 'expense', 'net'])

    df['month'] = df['date'].dt.strftime('%Y-%m')
    df['income'] = df['amount'].where(df['type'] == INCOME, 0.0)
    df['expense'] = df['amount'].where(df['type'] == EXPENSE, 0.0)
    monthly = df.groupby('month', sort=False)[['income', 'expense']].sum()
    if chronological:
        monthly = monthly.sort_index()
    monthly['net'] = monthly['income'] - monthly['expense']
    return monthly.reset_index()[MONTHLY_COLUMNS]


def months_tracked(transactions: Iterable[Any]) -> int:
    return len(monthly_series(transactions))


# ---------------------------------------------------------------------------
# Goals and investments
# ---------------------------------------------------------------------------


def goal_progress(goal: Any) -> float:
    """Percent of the target reached; 0.0 for a zero target."""
    target = _amount(goal, 'target_amount')
    if target <= 0:
        return 0.0
    return _amount(goal, 'current_amount') / target * 100


def goals_totals(goals: Iterable[Any]) -> Dict[str, float]:
    goals = list(goals)
    current = sum(_amount(g, 'current_amount') for g in goals)
    target = sum(_amount(g, 'target_amount') for g in goals)
    return {
        'total_current': current,
        'total_target': target,
        'remaining': max(target - current, 0.0),
        'progress': current / target * 100 if target > 0 else 0.0,
    }


def goals_overview(goals: Iterable[Any], investments: Iterable[Any] = ()) -> pd.DataFrame:
    """One row per goal with progress and the value of linked investments."""
    linked: Dict[str, float] = {}
    for investment in investments:
        goal_id = _value(investment, 'goal_id')
        if goal_id:
            linked[goal_id] = linked.get(goal_id, 0.0) + _amount(investment, 'current_value')

    rows = []
    for goal in goals:
        target = _amount(goal, 'target_amount')
        current = _amount(goal, 'current_amount')
        rows.append({
            'id': _value(goal, 'id'),
            'title': _value(goal, 'title', ''),
            'category': _value(goal, 'category', ''),
            'target_amount': target,
            'current_amount': current,
            'remaining': max(target - current, 0.0),
            'progress': goal_progress(goal),
            'deadline': _value(goal, 'deadline'),
            'linked_value': linked.get(_value(goal, 'id'), 0.0),
        })
    if not rows:
        return _empty_frame(
            GOAL_COLUMNS,
            ['target_amount', 'current_amount', 'remaining', 'progress', 'linked_value'],
        )
    return pd.DataFrame(rows, columns=GOAL_COLUMNS)


def portfolio_summary(investments: Iterable[Any]) -> Dict[str, float]:
    investments = list(investments)
    invested = sum(_amount(i, 'amount_invested') for i in investments)
    current = sum(_amount(i, 'current_value') for i in investments)
    gain = current - invested
    return {
        'count': len(investments),
        'total_invested': invested,
        'current_value': current,
        'gain': gain,
        'return_pct': gain / invested * 100 if invested > 0 else 0.0,
    }


def investments_by_type(investments: Iterable[Any]) -> pd.DataFrame:
    rows = [
        {
            'type': _value(i, 'type') or 'other',
            'amount_invested': _amount(i, 'amount_invested'),
            'current_value': _amount(i, 'current_value'),
        }
        for i in investments
    ]
    if not rows:
        return _empty_frame(INVESTMENT_TYPE_COLUMNS, ['amount_invested', 'current_value', 'gain'])
    df = pd.DataFrame(rows)
    grouped = df.groupby('type', sort=False)[['amount_invested', 'current_value']].sum().reset_index()
    grouped['gain'] = grouped['current_value'] - grouped['amount_invested']
    grouped = grouped.sort_values('current_value', ascending=False, kind='mergesort')
    return grouped[INVESTMENT_TYPE_COLUMNS].reset_index(drop=True)


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class FinanceSnapshot:
    """The record lists fetched for one page load and the views derived from them.

    Each view is computed on first access and cached on the instance, so a
    page that reads the same figure several times pays for it once.  A new
    fetch produces a new snapshot; nothing is shared between snapshots.
    """

    goals: Tuple[Goal, ...] = ()
    transactions: Tuple[Transaction, ...] = ()
    bills: Tuple[Bill, ...] = ()
    investments: Tuple[Investment, ...] = ()
    today: date = field(default_factory=date.today)

    @property
    def is_empty(self) -> bool:
        return not (self.goals or self.transactions or self.bills or self.investments)

    @cached_property
    def total_income(self) -> float:
        return total_by_type(self.transactions, INCOME)

    @cached_property
    def total_expenses(self) -> float:
        return total_by_type(self.transactions, EXPENSE)

    @cached_property
    def balance(self) -> float:
        return self.total_income - self.total_expenses

    @cached_property
    def savings_rate(self) -> float:
        return savings_rate(self.transactions)

    @cached_property
    def investment_value(self) -> float:
        return sum(_amount(i, 'current_value') for i in self.investments)

    @cached_property
    def net_worth(self) -> float:
        return net_worth(self.transactions, self.investments)

    @cached_property
    def income_breakdown(self) -> pd.DataFrame:
        return category_breakdown(self.transactions, INCOME)

    @cached_property
    def expense_breakdown(self) -> pd.DataFrame:
        return category_breakdown(self.transactions, EXPENSE)

    @cached_property
    def top_expense(self) -> Optional[Dict[str, Any]]:
        return top_category(self.transactions, EXPENSE)

    @cached_property
    def monthly(self) -> pd.DataFrame:
        return monthly_series(self.transactions)

    @cached_property
    def bills_with_status(self) -> List[Bill]:
        return with_effective_status(self.bills, self.today)

    @cached_property
    def bill_summary(self) -> Dict[str, Dict[str, float]]:
        return bill_summary(self.bills, self.today)

    @cached_property
    def goals_overview(self) -> pd.DataFrame:
        return goals_overview(self.goals, self.investments)

    @cached_property
    def goals_totals(self) -> Dict[str, float]:
        return goals_totals(self.goals)

    @cached_property
    def portfolio(self) -> Dict[str, float]:
        return portfolio_summary(self.investments)

    @cached_property
    def investments_by_type(self) -> pd.DataFrame:
        return investments_by_type(self.investments)

    def dashboard_summary(self) -> Dict[str, Any]:
        return {
            'net_worth': self.net_worth,
            'total_income': self.total_income,
            'total_expenses': self.total_expenses,
            'investment_value': self.investment_value,
            'active_goals': len(self.goals),
            'pending_bills': int(self.bill_summary[PENDING]['count']),
            'overdue_bills': int(self.bill_summary[OVERDUE]['count']),
        }
