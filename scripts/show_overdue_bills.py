#!/usr/bin/env python3
"""Show a user's overdue bills and bill totals per status."""

from __future__ import annotations

import argparse
import sys
from datetime import date
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pandas as pd

from finance_tracker import config
from finance_tracker.bills import bill_summary, bills_by_status
from finance_tracker.errors import FinanceTrackerError
from finance_tracker.formatting import format_currency
from finance_tracker.models import OVERDUE, parse_date
from finance_tracker.session import UserSession
from finance_tracker.store import get_store


def main(user_id: str, today: date, backend: str | None = None) -> int:
    store = get_store(backend)
    bills = store.bills.list(UserSession(user_id))
    if not bills:
        print(f"No bills recorded for {user_id}.")
        return 0

    summary = bill_summary(bills, today)
    print(f"Bills for {user_id} as of {today.isoformat()}:")
    for status, figures in summary.items():
        print(f"  {status:<8} {int(figures['count']):>3}  {format_currency(figures['total'])}")

    overdue = bills_by_status(bills, today)[OVERDUE]
    if not overdue:
        print("\nNothing overdue. 🎉")
        return 0

    rows = [
        {
            'Name': bill.name,
            'Amount': format_currency(bill.amount),
            'Due': bill.due_date.isoformat(),
            'Days late': (today - bill.due_date).days,
            'Recurring': 'yes' if bill.recurring else 'no',
        }
        for bill in overdue
    ]
    print("\nOverdue:")
    print(pd.DataFrame(rows).to_string(index=False))
    return len(overdue)


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Show overdue bills for a user.')
    parser.add_argument('--user', default=config.DEFAULT_USER_ID, help='User id whose bills to show')
    parser.add_argument('--today', default=None, help='Reference date (YYYY-MM-DD); defaults to today')
    parser.add_argument('--backend', choices=config.SUPPORTED_BACKENDS, default=None, help='Storage backend')
    args = parser.parse_args()
    config.configure_logging()
    try:
        reference = parse_date(args.today, 'today') if args.today else date.today()
        main(args.user, reference, args.backend)
    except FinanceTrackerError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
