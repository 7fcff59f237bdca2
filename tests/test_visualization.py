from finance_tracker import analytics
from finance_tracker.models import Goal, Investment, Transaction
from finance_tracker.visualization import (
    create_category_bar_chart,
    create_category_pie_chart,
    create_goal_progress_chart,
    create_monthly_chart,
    create_portfolio_chart,
)


def sample_transactions():
    rows = [
        ('income', 1000, 'salary', '2024-01-31'),
        ('expense', 400, 'rent', '2024-01-02'),
        ('expense', 100, 'food', '2024-02-10'),
    ]
    return [
        Transaction.new('alice', {'type': kind, 'amount': amount, 'category': category, 'date': when})
        for kind, amount, category, when in rows
    ]


def test_empty_inputs_produce_placeholder_figures():
    empty_breakdown = analytics.category_breakdown([], 'expense')
    for fig in (
        create_category_pie_chart(empty_breakdown),
        create_category_bar_chart(empty_breakdown),
        create_monthly_chart(analytics.monthly_series([])),
        create_goal_progress_chart(analytics.goals_overview([])),
        create_portfolio_chart(analytics.investments_by_type([])),
    ):
        assert fig.layout.title.text == "No data to display"
        assert len(fig.data) == 0


def test_category_charts():
    breakdown = analytics.category_breakdown(sample_transactions(), 'expense')
    pie = create_category_pie_chart(breakdown, title="Expenses")
    assert pie.layout.title.text == "Expenses"
    assert list(pie.data[0].labels) == ['rent', 'food']

    bar = create_category_bar_chart(breakdown)
    assert list(bar.data[0].y) == ['rent', 'food']


def test_monthly_chart_has_income_expense_and_net():
    fig = create_monthly_chart(analytics.monthly_series(sample_transactions()))
    assert [trace.name for trace in fig.data] == ['Income', 'Expense', 'Net']
    assert list(fig.data[0].x) == ['2024-01', '2024-02']
    assert list(fig.data[2].y) == [600.0, -100.0]


def test_goal_and_portfolio_charts():
    goal = Goal.new('alice', {'title': 'Car', 'target_amount': 5000, 'current_amount': 1200})
    fig = create_goal_progress_chart(analytics.goals_overview([goal]))
    assert [trace.name for trace in fig.data] == ['Target', 'Current']

    investment = Investment.new('alice', {
        'name': 'ETF',
        'type': 'etf',
        'amount_invested': 100,
        'current_value': 130,
        'purchase_date': '2024-01-01',
    })
    portfolio = create_portfolio_chart(analytics.investments_by_type([investment]))
    assert {trace.name for trace in portfolio.data} == {'Invested', 'Current value'}
