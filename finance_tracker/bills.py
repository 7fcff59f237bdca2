"""Bill status resolution and bill summaries.

A stored ``paid`` status is final.  Any other stored status is only a
hint: the status shown to the user is recomputed from the due date each
time it is displayed, and nothing here writes that result back.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

from .models import BILL_STATUSES, OVERDUE, PAID, PENDING, Bill, parse_date


def resolve_status(stored_status: str, due_date: date, today: date) -> str:
    """Effective status for a stored status and due date on ``today``."""
    if stored_status == PAID:
        return PAID
    due = due_date.date() if isinstance(due_date, datetime) else due_date
    current = today.date() if isinstance(today, datetime) else today
    if due < current:
        return OVERDUE
    return PENDING


def effective_status(bill: Bill, today: Optional[date] = None) -> str:
    return resolve_status(bill.status, parse_date(bill.due_date, 'due_date'), today or date.today())


def with_effective_status(bills: Iterable[Bill], today: Optional[date] = None) -> List[Bill]:
    """Copies of ``bills`` carrying their effective status, for display."""
    today = today or date.today()
    return [replace(bill, status=effective_status(bill, today)) for bill in bills]


def bills_by_status(bills: Iterable[Bill], today: Optional[date] = None) -> Dict[str, List[Bill]]:
    """Group display copies of ``bills`` by effective status."""
    grouped: Dict[str, List[Bill]] = {status: [] for status in BILL_STATUSES}
    for bill in with_effective_status(bills, today):
        grouped[bill.status].append(bill)
    return grouped


def bill_summary(bills: Iterable[Bill], today: Optional[date] = None) -> Dict[str, Dict[str, float]]:
    """Count and total amount per effective status.

    Every status is present in the result, with zero counts when no bill
    falls into it.
    """
    summary: Dict[str, Dict[str, float]] = {}
    for status, group in bills_by_status(bills, today).items():
        summary[status] = {
            'count': len(group),
            'total': float(sum(bill.amount for bill in group)),
        }
    return summary
