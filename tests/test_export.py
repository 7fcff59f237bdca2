"""Tests for CSV and JSON export."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from finance_tracker.errors import ExportError, InvalidRecordError
from finance_tracker.export import (
    export_filename,
    load_json_backup,
    safe_filename,
    to_csv,
    to_json_backup,
)
from finance_tracker.models import Bill, Goal, Investment, Transaction


def test_csv_quotes_only_when_needed():
    records = [
        {'name': 'Rent, March', 'note': 'say "hi"', 'amount': 10.5, 'extra': None},
        {'name': 'Line\nBreak', 'note': 'plain', 'amount': 3, 'extra': True},
    ]
    expected = (
        'name,note,amount,extra\n'
        '"Rent, March","say ""hi""",10.5,\n'
        '"Line\nBreak",plain,3,true\n'
    )
    assert to_csv(records) == expected


def test_csv_of_empty_list_is_empty_string():
    assert to_csv([]) == ''


def test_csv_rejects_heterogeneous_records():
    with pytest.raises(ExportError):
        to_csv([{'a': 1, 'b': 2}, {'a': 3, 'c': 4}])


def test_csv_is_deterministic():
    transactions = [
        Transaction.new('user-1', {'type': 'expense', 'amount': 12, 'category': 'food', 'date': '2024-01-05'}),
        Transaction.new('user-1', {'type': 'income', 'amount': 900, 'category': 'salary', 'date': '2024-01-01'}),
    ]
    first = to_csv(transactions)
    assert first == to_csv(transactions)
    header = first.splitlines()[0]
    assert header == 'id,user_id,type,amount,category,description,date,created_at'


def test_csv_writes_booleans_and_dates():
    bill = Bill.new('user-1', {'name': 'Gym', 'amount': 25, 'due_date': '2024-02-01', 'recurring': True})
    row = to_csv([bill]).splitlines()[1]
    assert ',2024-02-01,' in row
    assert ',true,' in row


def test_json_backup_round_trip():
    goal = Goal.new('user-1', {'title': 'Emergency fund', 'target_amount': 3000, 'deadline': '2025-01-01'})
    transaction = Transaction.new('user-1', {'type': 'income', 'amount': 50, 'category': 'gift', 'date': '2024-04-04'})
    bill = Bill.new('user-1', {'name': 'Phone', 'amount': 45, 'due_date': '2024-04-20'})
    investment = Investment.new('user-1', {
        'name': 'ETF',
        'amount_invested': 100,
        'current_value': 105,
        'purchase_date': '2024-03-01',
        'goal_id': goal.id,
    })
    exported_at = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)

    text = to_json_backup([goal], [transaction], [bill], [investment], exported_at=exported_at)
    payload = json.loads(text)
    assert list(payload) == ['goals', 'transactions', 'bills', 'investments', 'exported_at']
    assert payload['exported_at'] == '2024-05-01T09:30:00+00:00'

    backup = load_json_backup(text)
    assert backup.goals == [goal]
    assert backup.transactions == [transaction]
    assert backup.bills == [bill]
    assert backup.investments == [investment]
    assert backup.exported_at == exported_at
    assert backup.record_count == 4


def test_json_backup_of_empty_lists():
    backup = load_json_backup(to_json_backup([], [], [], []))
    assert backup.record_count == 0
    assert backup.exported_at is not None


@pytest.mark.parametrize('text', ['not json', '[1, 2]', '{"goals": {"a": 1}}'])
def test_load_json_backup_rejects_bad_documents(text):
    with pytest.raises(InvalidRecordError):
        load_json_backup(text)


def test_export_filename():
    when = datetime(2024, 1, 31, 8, 5, 9)
    assert export_filename('transactions', 'csv', when) == 'transactions_20240131_080509.csv'
    assert export_filename('finance backup', '.json', when) == 'finance_backup_20240131_080509.json'


def test_safe_filename():
    assert safe_filename('My Bills 2024!') == 'My_Bills_2024'
    assert safe_filename('***') == 'export'
    assert safe_filename('  finance  backup__2024 ') == 'finance_backup_2024'
