"""Tests for effective bill status resolution."""

from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from finance_tracker.bills import (
    bill_summary,
    bills_by_status,
    effective_status,
    resolve_status,
    with_effective_status,
)
from finance_tracker.models import Bill

TODAY = date(2024, 6, 15)


def _bill(due: date, status: str = "pending", amount: float = 50.0, name: str = "Power") -> Bill:
    return Bill.new("user-1", {'name': name, 'amount': amount, 'due_date': due, 'status': status})


def test_pending_bill_past_due_is_overdue():
    bill = _bill(TODAY - timedelta(days=1))
    assert effective_status(bill, TODAY) == "overdue"


def test_paid_bill_past_due_stays_paid():
    bill = _bill(TODAY - timedelta(days=1), status="paid")
    assert effective_status(bill, TODAY) == "paid"


def test_due_today_is_pending():
    assert effective_status(_bill(TODAY), TODAY) == "pending"
    assert effective_status(_bill(TODAY + timedelta(days=3)), TODAY) == "pending"


def test_stored_overdue_with_future_due_date_is_recomputed():
    assert resolve_status("overdue", TODAY + timedelta(days=10), TODAY) == "pending"


@pytest.mark.parametrize("offset", [-400, -1, 0, 1, 400])
def test_paid_is_never_overridden(offset):
    due = TODAY + timedelta(days=offset)
    for today in (TODAY - timedelta(days=30), TODAY, TODAY + timedelta(days=30)):
        assert resolve_status("paid", due, today) == "paid"


def test_time_of_day_is_ignored():
    late_evening = datetime(2024, 6, 15, 23, 59)
    assert resolve_status("pending", TODAY, late_evening) == "pending"
    assert resolve_status("pending", datetime(2024, 6, 14, 8, 0), late_evening) == "overdue"


def test_resolution_is_idempotent_and_does_not_mutate():
    bill = _bill(TODAY - timedelta(days=5))
    first = effective_status(bill, TODAY)
    second = effective_status(bill, TODAY)
    displayed = with_effective_status([bill], TODAY)

    assert first == second == "overdue"
    assert displayed[0].status == "overdue"
    assert bill.status == "pending"


def test_bill_summary_and_grouping():
    bills = [
        _bill(TODAY - timedelta(days=2), amount=100, name="Rent"),
        _bill(TODAY + timedelta(days=2), amount=40, name="Internet"),
        _bill(TODAY - timedelta(days=20), status="paid", amount=60, name="Water"),
        _bill(TODAY + timedelta(days=9), amount=10, name="Music"),
    ]
    summary = bill_summary(bills, TODAY)
    assert summary['overdue'] == {'count': 1, 'total': 100.0}
    assert summary['pending'] == {'count': 2, 'total': 50.0}
    assert summary['paid'] == {'count': 1, 'total': 60.0}

    grouped = bills_by_status(bills, TODAY)
    assert [b.name for b in grouped['pending']] == ["Internet", "Music"]


def test_bill_summary_empty():
    summary = bill_summary([], TODAY)
    assert all(entry == {'count': 0, 'total': 0.0} for entry in summary.values())
