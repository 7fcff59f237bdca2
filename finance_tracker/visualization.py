"""Plotly visualisation helpers for the finance tracker pages.

Each function accepts a frame produced by :mod:`finance_tracker.analytics`
and returns a ``plotly.graph_objects.Figure`` that Streamlit renders via
``st.plotly_chart``.  Empty input yields an empty figure titled
"No data to display" so pages never need to special-case it.
"""

from __future__ import annotations

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

INCOME_COLOR = "#16a34a"
EXPENSE_COLOR = "#dc2626"
NET_COLOR = "#2563eb"


def _empty_figure() -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title="No data to display")
    return fig


def create_category_pie_chart(breakdown: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Donut chart of a ``category_breakdown`` frame.

    Parameters
    ----------
    breakdown : pandas.DataFrame
        Frame with ``category`` and ``amount`` columns.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Pie chart.
    """
    if breakdown.empty or breakdown['amount'].sum() <= 0:
        return _empty_figure()
    fig = px.pie(breakdown, names="category", values="amount", hole=0.4)
    fig.update_layout(title=title or "Category breakdown")
    return fig


def create_category_bar_chart(breakdown: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Horizontal bars of category totals, largest first."""
    if breakdown.empty:
        return _empty_figure()
    fig = px.bar(
        breakdown,
        x="amount",
        y="category",
        orientation="h",
        text=breakdown["percentage"].map(lambda p: f"{p:.1f}%"),
    )
    fig.update_layout(
        title=title or "Spending by category",
        xaxis_title="Amount",
        yaxis_title="Category",
        yaxis={"categoryorder": "total ascending"},
    )
    return fig


def create_monthly_chart(monthly: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Grouped income/expense bars per month with a net line.

    Parameters
    ----------
    monthly : pandas.DataFrame
        Output of ``monthly_series`` (``month, income, expense, net``).
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Combined bar and line chart.
    """
    if monthly.empty:
        return _empty_figure()
    fig = go.Figure()
    fig.add_trace(go.Bar(x=monthly["month"], y=monthly["income"], name="Income", marker_color=INCOME_COLOR))
    fig.add_trace(go.Bar(x=monthly["month"], y=monthly["expense"], name="Expense", marker_color=EXPENSE_COLOR))
    fig.add_trace(
        go.Scatter(x=monthly["month"], y=monthly["net"], name="Net", mode="lines+markers", line={"color": NET_COLOR})
    )
    fig.update_layout(
        title=title or "Monthly income vs expenses",
        barmode="group",
        xaxis_title="Month",
        yaxis_title="Amount",
    )
    return fig


def create_goal_progress_chart(overview: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Bars of current vs target amount for each goal."""
    if overview.empty:
        return _empty_figure()
    fig = go.Figure()
    fig.add_trace(go.Bar(x=overview["title"], y=overview["target_amount"], name="Target", marker_color="#cbd5e1"))
    fig.add_trace(go.Bar(x=overview["title"], y=overview["current_amount"], name="Current", marker_color=NET_COLOR))
    fig.update_layout(
        title=title or "Goal progress",
        barmode="overlay",
        xaxis_title="Goal",
        yaxis_title="Amount",
    )
    return fig


def create_portfolio_chart(by_type: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Invested amount vs current value per investment type."""
    if by_type.empty:
        return _empty_figure()
    long_df = by_type.melt(
        id_vars="type",
        value_vars=["amount_invested", "current_value"],
        var_name="Measure",
        value_name="Amount",
    )
    long_df["Measure"] = long_df["Measure"].map({"amount_invested": "Invested", "current_value": "Current value"})
    fig = px.bar(long_df, x="type", y="Amount", color="Measure", barmode="group")
    fig.update_layout(
        title=title or "Portfolio by type",
        xaxis_title="Type",
        yaxis_title="Amount",
    )
    return fig
