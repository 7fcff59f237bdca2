"""Main entry point for the Streamlit multi-page app: the dashboard.

Pages in the pages/ directory will automatically appear in the sidebar.
"""

from __future__ import annotations

import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent.resolve()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import streamlit as st

from finance_tracker import ui
from finance_tracker.formatting import escape_dollar_for_markdown, format_currency, format_percent
from finance_tracker.visualization import create_monthly_chart


def main() -> None:
    """Render the dashboard page."""
    tracker_ui = ui.FinanceTrackerUI()
    tracker_ui.setup_page_config("Dashboard", "💰")

    session = ui.get_session()
    snapshot = ui.load_snapshot(session=session)
    tracker_ui.render_sidebar(snapshot, session)

    st.title("💰 Dashboard")
    st.caption("Your financial position at a glance")

    tracker_ui.render_stat_cards(snapshot.dashboard_summary())

    if snapshot.is_empty:
        st.info("No records yet. Add transactions, bills, goals or investments from the pages in the sidebar.")
        return

    col1, col2 = st.columns(2)
    with col1:
        st.metric("Savings Rate", format_percent(snapshot.savings_rate))
    with col2:
        top = snapshot.top_expense
        if top is not None:
            st.metric("Top Expense Category", top['category'], delta=format_currency(top['amount']), delta_color="off")
        else:
            st.metric("Top Expense Category", "—")

    st.plotly_chart(create_monthly_chart(snapshot.monthly), use_container_width=True)

    overdue = [bill for bill in snapshot.bills_with_status if bill.status == 'overdue']
    if overdue:
        st.subheader("⚠️ Overdue Bills")
        for bill in overdue:
            st.warning(f"{bill.name}: {escape_dollar_for_markdown(bill.amount)} was due {bill.due_date.isoformat()}")


if __name__ == "__main__":
    main()
