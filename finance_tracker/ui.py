"""Streamlit UI components shared by the finance tracker pages.

Pages obtain the session and store through :func:`get_session` and
:func:`get_store`, fetch one :class:`FinanceSnapshot` per run with
:func:`load_snapshot`, and route every user action through
:func:`run_action` so store failures surface as notifications instead of
tracebacks.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

import pandas as pd
import streamlit as st
from streamlit.errors import StreamlitAPIException

from . import config
from .analytics import FinanceSnapshot
from .errors import FinanceTrackerError
from .formatting import escape_dollar_for_markdown, format_currency, format_date, format_percent, progress_fraction
from .models import BILL_STATUSES, INVESTMENT_TYPES, TRANSACTION_TYPES, Bill, Goal, Investment, Transaction
from .session import UserSession, default_session
from .store import FinanceStore
from .store import get_store as open_store

GOAL_CATEGORIES = ['general', 'retirement', 'education', 'emergency', 'house', 'travel', 'other']
BILL_CATEGORIES = ['utilities', 'rent', 'insurance', 'subscriptions', 'loan', 'general', 'other']
STATUS_ICONS = {'paid': '✅', 'pending': '⏳', 'overdue': '⚠️'}


# ---------------------------------------------------------------------------
# Session, store and actions
# ---------------------------------------------------------------------------


def get_session() -> UserSession:
    """Session for this browser tab; the configured user when none is set."""
    if 'session' not in st.session_state:
        st.session_state['session'] = default_session()
    return st.session_state['session']


def get_store() -> FinanceStore:
    if 'store' not in st.session_state:
        config.configure_logging()
        config.ensure_data_directories()
        st.session_state['store'] = open_store()
    return st.session_state['store']


def load_snapshot(store: Optional[FinanceStore] = None, session: Optional[UserSession] = None) -> FinanceSnapshot:
    """Fetch a fresh snapshot, falling back to an empty one on store errors."""
    store = store or get_store()
    session = session or get_session()
    try:
        return store.load_snapshot(session)
    except FinanceTrackerError as exc:
        st.error(f"Could not load your data: {exc}")
        return FinanceSnapshot()


def _rerun() -> None:
    rerun = getattr(st, 'rerun', None)
    if callable(rerun):
        rerun()
        return
    experimental = getattr(st, 'experimental_rerun', None)
    if callable(experimental):
        experimental()


def run_action(
    action: Callable[..., Any],
    *args: Any,
    success: Optional[str] = None,
    failure: str = "Operation failed",
    rerun: bool = True,
) -> Optional[Any]:
    """Run a store mutation, reporting the outcome to the user.

    On failure the error is shown and nothing else changes; the user can
    correct the input and submit again.
    """
    try:
        result = action(*args)
    except FinanceTrackerError as exc:
        st.error(f"{failure}: {exc}")
        return None
    if success:
        st.session_state['flash'] = success
    if rerun:
        _rerun()
    return result


def show_flash() -> None:
    """Display the message stored by the last successful action, once."""
    message = st.session_state.pop('flash', None)
    if message:
        st.success(message)


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------


class FinanceTrackerUI:
    """UI components for the finance tracker pages."""
    _PAGE_CONFIGURED = False

    def setup_page_config(self, title: str = "Finance Tracker", icon: str = "💰") -> None:
        if FinanceTrackerUI._PAGE_CONFIGURED:
            return
        try:
            st.set_page_config(page_title=title, page_icon=icon, layout="wide")
        except StreamlitAPIException:
            # Already configured upstream; avoid raising to keep reruns smooth.
            pass
        finally:
            FinanceTrackerUI._PAGE_CONFIGURED = True

    def render_sidebar(self, snapshot: FinanceSnapshot, session: UserSession) -> None:
        st.sidebar.markdown(f"**Signed in as** `{session.label}`")
        st.sidebar.metric("Net Worth", format_currency(snapshot.net_worth))

    def render_stat_cards(self, summary: Dict[str, Any]) -> None:
        col1, col2, col3 = st.columns(3)
        col1.metric("Net Worth", format_currency(summary['net_worth']))
        col2.metric("Total Income", format_currency(summary['total_income']))
        col3.metric("Total Expenses", format_currency(summary['total_expenses']))

        col4, col5, col6 = st.columns(3)
        col4.metric("Investment Value", format_currency(summary['investment_value']))
        col5.metric("Active Goals", summary['active_goals'])
        col6.metric(
            "Pending Bills",
            summary['pending_bills'],
            delta=f"{summary['overdue_bills']} overdue" if summary['overdue_bills'] else None,
            delta_color="inverse",
        )

    def render_breakdown_table(self, breakdown: pd.DataFrame, empty_message: str) -> None:
        if breakdown.empty:
            st.info(empty_message)
            return
        for row in breakdown.itertuples(index=False):
            st.markdown(f"**{row.category}** · {escape_dollar_for_markdown(row.amount)} · {format_percent(row.percentage)}")
            st.progress(progress_fraction(row.percentage))

    # Forms ----------------------------------------------------------------

    def transaction_form(self, key: str, existing: Optional[Transaction] = None) -> Optional[Dict[str, Any]]:
        """Render the add/edit transaction form; return submitted values."""
        with st.form(key, clear_on_submit=existing is None):
            col1, col2 = st.columns(2)
            kind = col1.selectbox(
                "Type",
                TRANSACTION_TYPES,
                index=TRANSACTION_TYPES.index(existing.type) if existing else 1,
            )
            amount = col2.number_input(
                "Amount", min_value=0.0, step=1.0, format="%.2f",
                value=float(existing.amount) if existing else 0.0,
            )
            category = col1.text_input("Category", value=existing.category if existing else "")
            when = col2.date_input("Date", value=existing.date if existing else date.today())
            description = st.text_input("Description", value=existing.description if existing else "")
            submitted = st.form_submit_button("Save" if existing else "Add Transaction")
        if not submitted:
            return None
        return {
            'type': kind,
            'amount': amount,
            'category': category,
            'date': when,
            'description': description,
        }

    def bill_form(self, key: str, existing: Optional[Bill] = None) -> Optional[Dict[str, Any]]:
        with st.form(key, clear_on_submit=existing is None):
            col1, col2 = st.columns(2)
            name = col1.text_input("Bill name", value=existing.name if existing else "")
            amount = col2.number_input(
                "Amount", min_value=0.0, step=1.0, format="%.2f",
                value=float(existing.amount) if existing else 0.0,
            )
            due_date = col1.date_input("Due date", value=existing.due_date if existing else date.today())
            status = col2.selectbox(
                "Status",
                BILL_STATUSES,
                index=BILL_STATUSES.index(existing.status) if existing else 1,
            )
            category = col1.selectbox(
                "Category",
                _with_current(BILL_CATEGORIES, existing.category if existing else None),
                index=_option_index(BILL_CATEGORIES, existing.category if existing else 'utilities'),
            )
            recurring = col2.checkbox("Recurring", value=existing.recurring if existing else False)
            submitted = st.form_submit_button("Save" if existing else "Add Bill")
        if not submitted:
            return None
        return {
            'name': name,
            'amount': amount,
            'due_date': due_date,
            'status': status,
            'category': category,
            'recurring': recurring,
        }

    def goal_form(self, key: str, existing: Optional[Goal] = None) -> Optional[Dict[str, Any]]:
        with st.form(key, clear_on_submit=existing is None):
            title = st.text_input("Goal title", value=existing.title if existing else "")
            col1, col2 = st.columns(2)
            target = col1.number_input(
                "Target amount", min_value=0.0, step=100.0, format="%.2f",
                value=float(existing.target_amount) if existing else 0.0,
            )
            current = col2.number_input(
                "Current amount", min_value=0.0, step=100.0, format="%.2f",
                value=float(existing.current_amount) if existing else 0.0,
            )
            has_deadline = col1.checkbox("Has deadline", value=bool(existing and existing.deadline))
            deadline = col2.date_input(
                "Deadline",
                value=(existing.deadline if existing and existing.deadline else date.today()),
            )
            category = col1.selectbox(
                "Category",
                _with_current(GOAL_CATEGORIES, existing.category if existing else None),
                index=_option_index(GOAL_CATEGORIES, existing.category if existing else 'general'),
            )
            description = st.text_area("Description", value=existing.description if existing else "")
            submitted = st.form_submit_button("Save" if existing else "Create Goal")
        if not submitted:
            return None
        return {
            'title': title,
            'target_amount': target,
            'current_amount': current,
            'deadline': deadline if has_deadline else None,
            'category': category,
            'description': description,
        }

    def investment_form(
        self,
        key: str,
        goals: Sequence[Goal],
        existing: Optional[Investment] = None,
    ) -> Optional[Dict[str, Any]]:
        goal_labels = {'': '— none —'}
        goal_labels.update({goal.id: goal.title for goal in goals})
        goal_ids = list(goal_labels)
        with st.form(key, clear_on_submit=existing is None):
            col1, col2 = st.columns(2)
            name = col1.text_input("Name", value=existing.name if existing else "")
            kind = col2.selectbox(
                "Type",
                _with_current(list(INVESTMENT_TYPES), existing.type if existing else None),
                index=_option_index(list(INVESTMENT_TYPES), existing.type if existing else 'stocks'),
            )
            invested = col1.number_input(
                "Amount invested", min_value=0.0, step=100.0, format="%.2f",
                value=float(existing.amount_invested) if existing else 0.0,
            )
            current = col2.number_input(
                "Current value", min_value=0.0, step=100.0, format="%.2f",
                value=float(existing.current_value) if existing else 0.0,
            )
            purchased = col1.date_input("Purchase date", value=existing.purchase_date if existing else date.today())
            current_goal = existing.goal_id if existing and existing.goal_id in goal_labels else ''
            goal_id = col2.selectbox(
                "Linked goal",
                goal_ids,
                index=goal_ids.index(current_goal),
                format_func=lambda gid: goal_labels[gid],
            )
            submitted = st.form_submit_button("Save" if existing else "Add Investment")
        if not submitted:
            return None
        return {
            'name': name,
            'type': kind,
            'amount_invested': invested,
            'current_value': current,
            'purchase_date': purchased,
            'goal_id': goal_id or None,
        }


def _with_current(options: List[str], current: Optional[str]) -> List[str]:
    if current and current not in options:
        return [*options, current]
    return options


def _option_index(options: List[str], current: Optional[str]) -> int:
    choices = _with_current(options, current)
    return choices.index(current) if current in choices else 0


def records_frame(records: Iterable[Any], columns: Sequence[str]) -> pd.DataFrame:
    """Display table for a record list limited to ``columns``."""
    rows = [record.to_dict() for record in records]
    return pd.DataFrame(rows, columns=list(columns))


def status_label(status: str) -> str:
    return f"{STATUS_ICONS.get(status, '')} {status.title()}".strip()


def deadline_label(goal: Goal) -> str:
    return format_date(goal.deadline, empty="No deadline")
