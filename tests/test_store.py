"""Store tests run against both persistence backends."""

from __future__ import annotations

import threading
from datetime import date

import pytest

from finance_tracker import store as store_module
from finance_tracker.analytics import FinanceSnapshot
from finance_tracker.db import SQLiteStore
from finance_tracker.errors import InvalidRecordError, RecordNotFoundError, StoreError
from finance_tracker.export import load_json_backup, snapshot_to_json_backup
from finance_tracker.json_store import JsonFileStore
from finance_tracker.session import UserSession
from finance_tracker.store import get_store

ALICE = UserSession('alice', 'Alice')
BOB = UserSession('bob', 'Bob')


@pytest.fixture(params=['sqlite', 'json'])
def store(request, tmp_path):
    if request.param == 'sqlite':
        return SQLiteStore(tmp_path / 'finance.db')
    return JsonFileStore(tmp_path / 'finance.json')


def _add_transaction(store, session, when='2024-01-15', amount=10.0, kind='expense', category='food'):
    return store.transactions.create(session, {
        'type': kind,
        'amount': amount,
        'category': category,
        'date': when,
    })


def test_create_and_list_round_trip(store):
    created = _add_transaction(store, ALICE, amount=42.5)
    listed = store.transactions.list(ALICE)
    assert listed == [created]
    assert store.transactions.get(ALICE, created.id) == created


def test_records_are_scoped_to_their_owner(store):
    txn = _add_transaction(store, ALICE)
    assert store.transactions.list(BOB) == []

    with pytest.raises(RecordNotFoundError):
        store.transactions.get(BOB, txn.id)
    with pytest.raises(RecordNotFoundError):
        store.transactions.update(BOB, txn.id, {'amount': 1})
    with pytest.raises(RecordNotFoundError):
        store.transactions.delete(BOB, txn.id)

    assert store.transactions.get(ALICE, txn.id).amount == 10.0


def test_update_persists_changes(store):
    goal = store.goals.create(ALICE, {'title': 'Vacation', 'target_amount': 2000})
    updated = store.goals.update(ALICE, goal.id, {'current_amount': 750, 'deadline': '2025-07-01'})
    fetched = store.goals.get(ALICE, goal.id)
    assert fetched == updated
    assert fetched.current_amount == 750.0
    assert fetched.deadline == date(2025, 7, 1)
    assert fetched.created_at == goal.created_at


def test_invalid_values_are_rejected_before_writing(store):
    with pytest.raises(InvalidRecordError):
        _add_transaction(store, ALICE, when='not-a-date')
    with pytest.raises(InvalidRecordError):
        store.bills.create(ALICE, {'name': 'Power', 'amount': -3, 'due_date': '2024-01-01'})
    assert store.transactions.list(ALICE) == []
    assert store.bills.list(ALICE) == []


def test_missing_record(store):
    with pytest.raises(RecordNotFoundError):
        store.bills.delete(ALICE, 'does-not-exist')


def test_delete_removes_record(store):
    bill = store.bills.create(ALICE, {'name': 'Water', 'amount': 30, 'due_date': '2024-03-01'})
    store.bills.delete(ALICE, bill.id)
    assert store.bills.list(ALICE) == []


def test_list_ordering(store):
    for when in ('2024-02-01', '2024-03-15', '2024-01-10'):
        _add_transaction(store, ALICE, when=when)
    for due in ('2024-05-01', '2024-04-01', '2024-06-01'):
        store.bills.create(ALICE, {'name': f'Bill {due}', 'amount': 5, 'due_date': due})

    assert [t.date.isoformat() for t in store.transactions.list(ALICE)] == [
        '2024-03-15', '2024-02-01', '2024-01-10',
    ]
    assert [b.due_date.isoformat() for b in store.bills.list(ALICE)] == [
        '2024-04-01', '2024-05-01', '2024-06-01',
    ]


def test_bill_flags_survive_storage(store):
    bill = store.bills.create(ALICE, {
        'name': 'Streaming',
        'amount': 12.99,
        'due_date': '2024-02-10',
        'recurring': True,
        'status': 'paid',
    })
    fetched = store.bills.get(ALICE, bill.id)
    assert fetched.recurring is True
    assert fetched.status == 'paid'


def test_deleting_goal_unlinks_investments(store):
    goal = store.goals.create(ALICE, {'title': 'House', 'target_amount': 50000})
    investment = store.investments.create(ALICE, {
        'name': 'Index fund',
        'amount_invested': 1000,
        'current_value': 1100,
        'purchase_date': '2024-01-01',
        'goal_id': goal.id,
    })
    store.goals.delete(ALICE, goal.id)

    remaining = store.investments.get(ALICE, investment.id)
    assert remaining.goal_id is None
    assert store.goals.list(ALICE) == []


def test_investment_cannot_link_foreign_goal(store):
    bobs_goal = store.goals.create(BOB, {'title': 'Bike', 'target_amount': 800})
    with pytest.raises(InvalidRecordError):
        store.investments.create(ALICE, {
            'name': 'Shares',
            'amount_invested': 10,
            'current_value': 10,
            'purchase_date': '2024-01-01',
            'goal_id': bobs_goal.id,
        })
    assert store.investments.list(ALICE) == []


def test_load_snapshot(store):
    _add_transaction(store, ALICE, kind='income', amount=1000, category='salary')
    _add_transaction(store, ALICE, amount=400, category='rent')
    store.investments.create(ALICE, {
        'name': 'Bonds',
        'type': 'bonds',
        'amount_invested': 200,
        'current_value': 210,
        'purchase_date': '2023-12-01',
    })
    _add_transaction(store, BOB, kind='income', amount=99999, category='salary')

    snapshot = store.load_snapshot(ALICE, today=date(2024, 2, 1))
    assert isinstance(snapshot, FinanceSnapshot)
    assert len(snapshot.transactions) == 2
    assert snapshot.net_worth == pytest.approx(810.0)
    assert snapshot.today == date(2024, 2, 1)


def test_restore_backup_replaces_user_records(store):
    goal = store.goals.create(ALICE, {'title': 'Trip', 'target_amount': 1500})
    store.investments.create(ALICE, {
        'name': 'Savings bond',
        'amount_invested': 100,
        'current_value': 100,
        'purchase_date': '2024-01-01',
        'goal_id': goal.id,
    })
    store.investments.create(ALICE, {
        'name': 'Loose shares',
        'amount_invested': 50,
        'current_value': 55,
        'purchase_date': '2023-01-01',
    })
    _add_transaction(store, ALICE)
    _add_transaction(store, BOB)
    backup = load_json_backup(snapshot_to_json_backup(store.load_snapshot(ALICE)))

    _add_transaction(store, ALICE, category='extra')
    restored = store.restore_backup(ALICE, backup)

    assert restored == 4
    assert [t.category for t in store.transactions.list(ALICE)] == ['food']
    restored_goal = store.goals.list(ALICE)[0]
    assert restored_goal.title == 'Trip'
    assert restored_goal.id != goal.id
    links = {i.name: i.goal_id for i in store.investments.list(ALICE)}
    assert links == {'Savings bond': restored_goal.id, 'Loose shares': None}
    assert len(store.transactions.list(BOB)) == 1


def test_restore_backup_reowns_records(store):
    bobs = _add_transaction(store, BOB, category='books')
    backup = load_json_backup(snapshot_to_json_backup(store.load_snapshot(BOB)))

    assert store.restore_backup(ALICE, backup) == 1
    restored = store.transactions.list(ALICE)
    assert [(t.user_id, t.category) for t in restored] == [('alice', 'books')]
    assert restored[0].id != bobs.id
    assert store.transactions.list(BOB) == [bobs]


def test_restore_backup_can_run_twice(store):
    _add_transaction(store, ALICE, category='rent')
    backup = load_json_backup(snapshot_to_json_backup(store.load_snapshot(ALICE)))

    store.restore_backup(ALICE, backup)
    store.restore_backup(ALICE, backup)
    assert [t.category for t in store.transactions.list(ALICE)] == ['rent']


def test_failed_restore_leaves_records_in_place(store, monkeypatch):
    kept = _add_transaction(store, ALICE, category='rent')
    bill = store.bills.create(ALICE, {'name': 'Power', 'amount': 60, 'due_date': '2024-02-01'})
    bobs = _add_transaction(store, BOB, category='books')
    backup = load_json_backup(snapshot_to_json_backup(store.load_snapshot(ALICE)))
    # Restored ids collide with Bob's transaction, so the write fails part way.
    monkeypatch.setattr(store_module, 'new_id', lambda: bobs.id)

    with pytest.raises(StoreError):
        store.restore_backup(ALICE, backup)

    assert store.transactions.list(ALICE) == [kept]
    assert store.bills.list(ALICE) == [bill]
    assert store.transactions.list(BOB) == [bobs]


def test_get_store_backends(tmp_path):
    assert isinstance(get_store('json', tmp_path / 'data.json'), JsonFileStore)
    assert isinstance(get_store('SQLite', tmp_path / 'data.db'), SQLiteStore)
    with pytest.raises(ValueError):
        get_store('mongo', tmp_path / 'data')


def test_json_store_rejects_corrupt_file(tmp_path):
    path = tmp_path / 'finance.json'
    path.write_text('{not valid json', encoding='utf-8')
    store = JsonFileStore(path)
    with pytest.raises(StoreError):
        store.transactions.list(ALICE)


def test_json_store_file_is_shared_between_instances(tmp_path):
    path = tmp_path / 'finance.json'
    first = JsonFileStore(path)
    second = JsonFileStore(path)
    txn = _add_transaction(first, ALICE)
    assert second.transactions.get(ALICE, txn.id) == txn


def test_json_store_keeps_concurrent_writes(tmp_path):
    path = tmp_path / 'finance.json'
    sessions = [UserSession(name) for name in ('a', 'b', 'c')]
    errors = []

    def add_many(session):
        store = JsonFileStore(path)
        for _ in range(25):
            try:
                _add_transaction(store, session)
            except StoreError as exc:
                errors.append(exc)

    threads = [threading.Thread(target=add_many, args=(session,)) for session in sessions]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    reader = JsonFileStore(path)
    assert errors == []
    assert [len(reader.transactions.list(session)) for session in sessions] == [25, 25, 25]
    assert not list(tmp_path.glob('*.tmp'))
