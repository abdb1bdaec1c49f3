"""
Streamlit Frontend for the Budget Tracker

The rendering layer: everything it shows comes from the coordinator's
consumer API, and every edit goes through coordinator.mutate().

DESIGN PRINCIPLES:
1. Works offline first - edits are saved on this device immediately
2. Signing in only adds a remote copy; nothing else changes
3. Clear error messages in simple language
4. Visual feedback for all operations

The coordinator lives on one long-running event loop in a background
thread, so its debounced remote writes keep running between Streamlit
reruns.

NOTE: The coordinator and identity provider are cached with
st.cache_resource, so they are shared by every browser session of one
server process. Signing in from one tab switches the Store shown in all
of them. Run one server per person.
"""

import asyncio
import threading
from datetime import date
from decimal import Decimal, InvalidOperation

import streamlit as st

from budget_tracker.aggregation import daily_average, day_totals, grand_totals
from budget_tracker.config import get_settings, validate_all_settings
from budget_tracker.models import (
    Expense,
    ExpenseCategory,
    MonthRecord,
    Subscription,
    day_key,
    month_key,
)
from budget_tracker.orchestrator import create_app_components
from budget_tracker.services.identity import AuthError, IdentityProvider
from budget_tracker.sync import SessionState, SyncCoordinator


MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

STATUS_LABELS = {
    "no_data": "No data",
    "under_budget": "✅ Under budget",
    "over_budget": "⚠️ Over budget",
}

NAME_MAX_CHARS = 200


# Page configuration
st.set_page_config(
    page_title="Budget Tracker",
    page_icon="💸",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
    }
    .big-number {
        font-size: 2em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)


@st.cache_resource
def get_event_loop() -> asyncio.AbstractEventLoop:
    """One event loop for the whole process, running in a daemon thread."""
    loop = asyncio.new_event_loop()
    thread = threading.Thread(target=loop.run_forever, daemon=True)
    thread.start()
    return loop


def run_async(coro):
    """Run a coroutine on the background loop and wait for its result."""
    return asyncio.run_coroutine_threadsafe(coro, get_event_loop()).result()


def run_on_loop(fn, *args):
    """Run a plain callable on the background loop (mutate needs it)."""
    async def call():
        return fn(*args)
    return run_async(call())


@st.cache_resource
def get_components() -> tuple[SyncCoordinator, IdentityProvider]:
    """Get or create application components (cached)."""
    return run_async(create_app_components(use_remote=True))


def money(amount: Decimal) -> str:
    symbol = get_settings().app.currency_symbol
    return f"{symbol}{amount:,.2f}"


def parse_amount(text: str) -> Decimal:
    """
    Parse a user-entered amount.

    Raises:
        ValueError: if it is not a positive number
    """
    try:
        amount = Decimal(text.strip().replace(",", ""))
    except InvalidOperation:
        raise ValueError("Please enter a number.")
    if not amount.is_finite() or amount <= 0:
        raise ValueError("Amount must be greater than zero.")
    return amount


def main():
    """Main application entry point."""
    coordinator, identity = get_components()

    if "year" not in st.session_state:
        today = date.today()
        st.session_state.year = today.year
        st.session_state.month_index = today.month - 1

    render_sidebar(coordinator, identity)

    year = st.session_state.year
    month_index = st.session_state.month_index

    st.title(f"💸 {MONTH_NAMES[month_index]} {year}")

    tab_month, tab_subs, tab_history, tab_categories, tab_settings = st.tabs(
        ["📅 Month", "🔁 Subscriptions", "📊 History", "🏷️ Categories", "⚙️ Settings"]
    )
    with tab_month:
        render_month_page(coordinator, year, month_index)
    with tab_subs:
        render_subscriptions_page(coordinator, year, month_index)
    with tab_history:
        render_history_page(coordinator, month_key(year, month_index))
    with tab_categories:
        render_categories_page(coordinator, year, month_index)
    with tab_settings:
        render_settings_page(coordinator)


def render_sidebar(coordinator: SyncCoordinator, identity: IdentityProvider):
    """Account box and month navigation."""
    st.sidebar.title("💸 Budget Tracker")

    if coordinator.state is SessionState.AUTHENTICATED:
        email = getattr(identity, "current_email", lambda: None)()
        st.sidebar.success(f"Signed in as {email or coordinator.user_id}")
        render_sync_status(coordinator)
        if st.sidebar.button("Sign out"):
            run_async(identity.sign_out())
            st.rerun()
    else:
        st.sidebar.info("Not signed in. Your data is saved on this device only.")
        with st.sidebar.form("auth_form"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            col1, col2 = st.columns(2)
            sign_in = col1.form_submit_button("Sign in")
            sign_up = col2.form_submit_button("Sign up")
        if sign_in or sign_up:
            try:
                if sign_up:
                    run_async(identity.sign_up(email, password))
                else:
                    run_async(identity.sign_in(email, password))
                st.rerun()
            except AuthError as e:
                st.sidebar.error(str(e))

    st.sidebar.markdown("---")
    col1, col2 = st.sidebar.columns(2)
    if col1.button("◀ Prev"):
        shift_month(-1)
        st.rerun()
    if col2.button("Next ▶"):
        shift_month(1)
        st.rerun()


def shift_month(step: int):
    total = st.session_state.year * 12 + st.session_state.month_index + step
    st.session_state.year, st.session_state.month_index = divmod(total, 12)


def render_sync_status(coordinator: SyncCoordinator):
    if coordinator.has_pending_remote_write:
        st.sidebar.caption("⏳ Saving to cloud...")
        return
    event = coordinator.events.last_remote_outcome(coordinator.user_id)
    if event is None:
        return
    when = event.timestamp.astimezone().strftime("%H:%M:%S")
    if event.is_failure:
        st.sidebar.warning(f"Cloud copy may be behind ({when}): {event.error_message}")
    else:
        st.sidebar.caption(f"☁️ Synced {when}")


def render_month_page(coordinator: SyncCoordinator, year: int, month_index: int):
    """Budget input, month cards and the day editor."""
    key = month_key(year, month_index)
    summary = coordinator.summarize_month(key)
    record = coordinator.get_month_record(year, month_index)

    # Budget
    with st.form("budget_form"):
        budget_text = st.text_input("Monthly budget", value=str(record.budget))
        if st.form_submit_button("Set budget"):
            try:
                amount = Decimal(budget_text.strip().replace(",", ""))
                if not amount.is_finite() or amount < 0:
                    raise ValueError
            except (InvalidOperation, ValueError):
                st.error("Budget must be zero or a positive number.")
            else:
                run_on_loop(coordinator.mutate, year, month_index, lambda m: m.set_budget(amount))
                st.rerun()

    # Month cards
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Spent", money(summary.daily_expenses_total))
    col2.metric("Subscriptions", money(summary.subscriptions_total))
    col3.metric("Remaining", money(summary.remaining))
    col4.metric(
        "Daily average",
        money(daily_average(coordinator.store, year, month_index, date.today())),
    )
    st.progress(float(summary.remaining_percent) / 100)
    st.caption(STATUS_LABELS[summary.status.value])

    st.markdown("---")

    # Day editor
    cells = day_totals(coordinator.store, year, month_index)
    day = st.selectbox(
        "Day",
        options=[cell.day for cell in cells],
        format_func=lambda d: (
            f"{d} - {money(cells[d - 1].expenses_total)}"
            if cells[d - 1].expense_count else str(d)
        ),
    )
    render_day_editor(coordinator, record, year, month_index, day)


def render_day_editor(
    coordinator: SyncCoordinator,
    record: MonthRecord,
    year: int,
    month_index: int,
    day: int,
):
    key = day_key(year, month_index, day)

    for sub in record.subscriptions_due(day):
        st.info(f"🔁 {sub.name} - {money(sub.amount)}")

    for index, expense in enumerate(record.expenses_on(key)):
        col1, col2, col3, col4 = st.columns([4, 2, 2, 1])
        col1.write(expense.name or "(unnamed)")
        col2.write(money(expense.amount))
        col3.write(expense.category.value if expense.category else "")
        if col4.button("🗑️", key=f"del_{key}_{index}"):
            run_on_loop(
                coordinator.mutate, year, month_index,
                lambda m, i=index: m.remove_expense(key, i),
            )
            st.rerun()

    with st.form(f"expense_form_{key}", clear_on_submit=True):
        name = st.text_input("What did you spend on?", max_chars=NAME_MAX_CHARS)
        amount_text = st.text_input("Amount")
        category = st.selectbox(
            "Category",
            options=[None] + list(ExpenseCategory),
            format_func=lambda c: "(none)" if c is None else c.value.title(),
        )
        if st.form_submit_button("Add expense"):
            if not name.strip():
                st.error("Please enter a name.")
                return
            try:
                amount = parse_amount(amount_text)
            except ValueError as e:
                st.error(str(e))
                return
            expense = Expense(name=name, amount=amount, category=category)
            run_on_loop(coordinator.mutate, year, month_index, lambda m: m.add_expense(key, expense))
            st.rerun()


def render_subscriptions_page(coordinator: SyncCoordinator, year: int, month_index: int):
    """Recurring charges for the month."""
    record = coordinator.get_month_record(year, month_index)

    if not record.subscriptions:
        st.info("No subscriptions this month.")

    for index, sub in enumerate(record.subscriptions):
        col1, col2, col3, col4, col5 = st.columns([4, 2, 1, 2, 1])
        col1.write(sub.name or "(unnamed)")
        col2.write(money(sub.amount))
        col3.write(f"Day {sub.day}")
        paid = col4.checkbox("Paid", value=sub.paid, key=f"paid_{year}_{month_index}_{index}")
        if paid != sub.paid:
            run_on_loop(
                coordinator.mutate, year, month_index,
                lambda m, i=index, p=paid: m.update_subscription(i, paid=p),
            )
            st.rerun()
        if col5.button("🗑️", key=f"del_sub_{year}_{month_index}_{index}"):
            run_on_loop(
                coordinator.mutate, year, month_index,
                lambda m, i=index: m.remove_subscription(i),
            )
            st.rerun()

    with st.form("subscription_form", clear_on_submit=True):
        name = st.text_input("Name", max_chars=NAME_MAX_CHARS)
        amount_text = st.text_input("Amount")
        day = st.number_input("Due day", min_value=1, max_value=31, value=1)
        if st.form_submit_button("Add subscription"):
            if not name.strip():
                st.error("Please enter a name.")
                return
            try:
                amount = parse_amount(amount_text)
            except ValueError as e:
                st.error(str(e))
                return
            sub = Subscription(name=name, amount=amount, day=int(day))
            run_on_loop(coordinator.mutate, year, month_index, lambda m: m.add_subscription(sub))
            st.rerun()


def render_history_page(coordinator: SyncCoordinator, active_key: str):
    """Yearly summary table with a grand total footer."""
    years = coordinator.summarize_all_years(active_key)
    if not years:
        st.info("No data yet.")
        return

    for year in years:
        st.markdown(f"### {year.year}")
        rows = [
            {
                "Month": MONTH_NAMES[m.month_index],
                "Budget": money(m.budget),
                "Expenses": money(m.daily_expenses_total),
                "Subscriptions": money(m.subscriptions_total),
                "Remaining": money(m.remaining),
                "Status": STATUS_LABELS[m.status.value],
            }
            for m in year.months
        ]
        rows.append({
            "Month": "Total",
            "Budget": money(year.total_budget),
            "Expenses": money(year.total_expenses),
            "Subscriptions": money(year.total_subs),
            "Remaining": money(year.remaining),
            "Status": STATUS_LABELS[year.status.value],
        })
        st.table(rows)

    totals = grand_totals(years)
    st.markdown(
        f"**All time:** budget {money(totals.total_budget)}, "
        f"spent {money(totals.total_expenses + totals.total_subs)}, "
        f"remaining {money(totals.remaining)}"
    )


def render_categories_page(coordinator: SyncCoordinator, year: int, month_index: int):
    """Where the month's daily spending went."""
    breakdown = coordinator.summarize_category_breakdown(year, month_index)
    if not breakdown.categories:
        st.info("No expenses this month.")
        return

    st.markdown(f'<div class="big-number">{money(breakdown.total)}</div>', unsafe_allow_html=True)
    for item in breakdown.categories:
        st.write(f"**{item.category.title()}** - {money(item.amount)} ({item.percent_of_total:.1f}%)")
        st.progress(float(item.bar_width) / 100)


def render_settings_page(coordinator: SyncCoordinator):
    """Render the settings page."""
    st.markdown("### Configuration Status")

    status = validate_all_settings()
    sections = [
        ("Device cache", "cache"),
        ("Sync", "sync"),
        ("Google Sheets (cloud copy)", "google_sheets"),
        ("App", "app"),
    ]
    for name, key in sections:
        if status.get(key, False):
            st.success(f"✅ {name}")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("### Recent sync activity")
    events = coordinator.events.history[-10:]
    if not events:
        st.caption("Nothing yet.")
    for event in reversed(events):
        when = event.timestamp.astimezone().strftime("%Y-%m-%d %H:%M:%S")
        st.caption(f"{when} · {event.description}")

    st.markdown("---")
    st.markdown(
        "To configure the cloud copy, create a `.env` file with your Google "
        "Sheets settings. See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
