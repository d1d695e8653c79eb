"""
Streamlit Frontend for Money's Wisdom

A personal finance companion inspired by "A Dog Named Money":
a quote wall, a three-fund ledger, a success journal and a chat with
Money the dog.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Explicit confirmation before anything destructive
3. Clear error messages in simple language
4. Visual feedback for all operations
5. No hidden actions

Every button calls exactly one orchestrator flow and shows its message.
The UI never edits balances itself.
"""

import asyncio
from datetime import datetime

import streamlit as st

from moneys_wisdom.agents import ChatMessage
from moneys_wisdom.audit import AuditLogger, configure_logging
from moneys_wisdom.config import get_settings, validate_all_settings
from moneys_wisdom.models import FundType, RealizationKind
from moneys_wisdom.orchestrator import (
    ActionResult,
    AppComponents,
    DataFlow,
    JournalFlow,
    LedgerFlow,
    WisdomFlow,
    create_app_components,
)
from moneys_wisdom.queries import summarize, transactions_for_fund


# Page configuration
st.set_page_config(
    page_title="Money's Wisdom",
    page_icon="🐶",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .quote-card {
        padding: 20px;
        background-color: #fffaf0;
        border-radius: 10px;
        border-left: 5px solid #f59e0b;
        margin: 10px 0;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)

FUND_LABELS = {
    FundType.FREEDOM: "🪿 Freedom (财务自由基金)",
    FundType.DREAM: "✨ Dream (梦想基金)",
    FundType.PLAY: "🎈 Play (乐享基金)",
}

PERCENT_STEP = 5


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components() -> AppComponents:
    """Get or create application components (cached)."""
    configure_logging(get_settings().app.debug_mode)
    return create_app_components()


def show_result(result: ActionResult):
    """Show an action's outcome; confirmation prompts are handled by the caller."""
    if result.success:
        st.success(result.message)
    elif not result.requires_confirmation:
        st.error(result.message)


def ask_confirmation(key: str, result: ActionResult, on_confirm):
    """
    Park a pending destructive action in session state.

    The prompt and its buttons are drawn by render_pending().
    """
    st.session_state.pending = {"key": key, "message": result.message, "confirm": on_confirm}


def render_pending() -> bool:
    """Draw the confirmation prompt if one is pending. Returns True if shown."""
    pending = st.session_state.get("pending")
    if not pending:
        return False

    st.warning(pending["message"])
    col1, col2 = st.columns(2)
    with col1:
        if st.button("✅ Yes, continue", type="primary", key=f"confirm-{pending['key']}"):
            result = pending["confirm"]()
            st.session_state.pending = None
            st.session_state.flash = result
            st.rerun()
    with col2:
        if st.button("❌ Cancel", key=f"cancel-{pending['key']}"):
            st.session_state.pending = None
            st.rerun()
    return True


def main():
    """Main application entry point."""
    components = get_components()

    if "pending" not in st.session_state:
        st.session_state.pending = None
    if "flash" not in st.session_state:
        st.session_state.flash = None

    # Sidebar navigation
    st.sidebar.title("🐶 Money's Wisdom")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["🧱 Wisdom Wall", "📒 Ledger", "🏆 Success Journal", "💬 Talk to Money", "💾 Data"],
        index=0,
    )

    st.sidebar.markdown("---")
    if not components.journal.has_entry_today():
        st.sidebar.info("📝 You haven't written today's success journal yet.")
    if not components.wisdom.is_online:
        st.sidebar.caption("Gemini is not configured; showing bundled quotes.")

    # Result of a just-confirmed action
    if st.session_state.flash is not None:
        show_result(st.session_state.flash)
        st.session_state.flash = None

    # Route to appropriate page
    if page == "🧱 Wisdom Wall":
        render_wall_page(components.wisdom)
    elif page == "📒 Ledger":
        render_ledger_page(components.ledger)
    elif page == "🏆 Success Journal":
        render_journal_page(components.journal)
    elif page == "💬 Talk to Money":
        render_chat_page(components.wisdom)
    elif page == "💾 Data":
        render_data_page(components.data, components.audit_logger)


def render_wall_page(wisdom: WisdomFlow):
    """Render the quote wall."""
    st.title("🧱 Wisdom Wall")
    st.markdown("Quotes from *A Dog Named Money* (小狗钱钱) to start your day.")

    if "quotes" not in st.session_state or st.button("🔄 New quotes"):
        with st.spinner("Money is fetching some wisdom..."):
            st.session_state.quotes = run_async(wisdom.quotes())

    columns = st.columns(3)
    for index, quote in enumerate(st.session_state.quotes):
        with columns[index % 3]:
            st.markdown(f"""
            <div class="quote-card">
                <p><strong>{quote.text}</strong></p>
                <p><em>{quote.category}</em></p>
                <p>{quote.interpretation}</p>
            </div>
            """, unsafe_allow_html=True)


def render_ledger_page(ledger_flow: LedgerFlow):
    """Render the three funds, income allocation, goals and history."""
    st.title("📒 My Wealth Ledger")

    if render_pending():
        return

    ledger = ledger_flow.current()
    summary = summarize(ledger)

    st.markdown(f'<div class="big-number">¥ {summary.total_balance:,.2f}</div>', unsafe_allow_html=True)

    col1, col2, col3 = st.columns(3)
    col1.metric(FUND_LABELS[FundType.FREEDOM], f"¥ {ledger.freedom_fund:,.2f}")
    col2.metric(FUND_LABELS[FundType.DREAM], f"¥ {ledger.dream_fund:,.2f}")
    col3.metric(FUND_LABELS[FundType.PLAY], f"¥ {ledger.play_fund:,.2f}")

    st.markdown("---")
    render_allocation(ledger_flow)

    st.markdown("---")
    col1, col2 = st.columns(2)
    with col1:
        render_goals(ledger_flow, summary)
    with col2:
        render_play_spend(ledger_flow)

    st.markdown("---")
    render_history(ledger_flow)


def render_allocation(ledger_flow: LedgerFlow):
    """Income allocation with the waterbed split."""
    st.markdown("### 💰 Allocate income")

    if "draft" not in st.session_state:
        st.session_state.draft = ledger_flow.new_draft()

    income = st.number_input("Income received", min_value=0.0, step=100.0, format="%.2f")
    if income != float(st.session_state.draft.income):
        st.session_state.draft = st.session_state.draft.stage_income(str(income))

    draft = st.session_state.draft
    columns = st.columns(3)
    for column, fund in zip(columns, FundType):
        with column:
            st.markdown(f"**{FUND_LABELS[fund]}** {draft.percentages.get(fund.percentage_key)}%")
            up, down = st.columns(2)
            if up.button("▲", key=f"up-{fund.value}"):
                result = ledger_flow.adjust_percentage(fund, PERCENT_STEP)
                st.session_state.draft = draft.adjust(fund, PERCENT_STEP)
                show_result(result)
                st.rerun()
            if down.button("▼", key=f"down-{fund.value}"):
                result = ledger_flow.adjust_percentage(fund, -PERCENT_STEP)
                st.session_state.draft = draft.adjust(fund, -PERCENT_STEP)
                show_result(result)
                st.rerun()
            amount = st.number_input(
                "Amount",
                value=float(draft.allocation.for_fund(fund)),
                step=1.0,
                format="%.2f",
                key=f"amount-{fund.value}-{draft.income}-{draft.percentages.get(fund.percentage_key)}",
            )
            if amount != float(draft.allocation.for_fund(fund)):
                st.session_state.draft = st.session_state.draft.set_amount(fund, str(amount))

    draft = st.session_state.draft
    if draft.has_income and not draft.is_valid:
        st.warning(f"Still to allocate: ¥ {draft.difference:,.2f}")

    if st.button("✅ Deposit", type="primary", disabled=not draft.is_valid):
        result = ledger_flow.record_allocation(draft.income, draft.allocation)
        show_result(result)
        if result.success:
            st.session_state.draft = draft.reset()
            st.rerun()


def render_goals(ledger_flow: LedgerFlow, summary):
    """Dream goals: add, realize, delete."""
    st.markdown("### ✨ My dream list")

    for progress in summary.open_goals:
        goal = progress.goal
        st.markdown(f"**{goal.name}** ¥ {goal.cost:,.2f}")
        st.progress(progress.progress)
        col1, col2 = st.columns(2)
        with col1:
            if st.button("🎉 Make it happen", key=f"realize-{goal.id}"):
                result = ledger_flow.realize_goal(goal.id)
                if result.requires_confirmation:
                    ask_confirmation(
                        f"realize-{goal.id}",
                        result,
                        lambda goal_id=goal.id: ledger_flow.realize_goal(goal_id, confirm_combined=True),
                    )
                    st.rerun()
                show_result(result)
                if result.success:
                    st.balloons()
        with col2:
            if st.button("🗑️ Delete", key=f"delete-goal-{goal.id}"):
                result = ledger_flow.delete_goal(goal.id)
                if result.requires_confirmation:
                    ask_confirmation(
                        f"delete-goal-{goal.id}",
                        result,
                        lambda goal_id=goal.id: ledger_flow.delete_goal(goal_id, confirmed=True),
                    )
                    st.rerun()
                show_result(result)

    if summary.achieved_goals:
        with st.expander("🏆 Achieved dreams"):
            for goal in summary.achieved_goals:
                achieved = datetime.fromtimestamp(goal.achieved_date / 1000)
                st.markdown(f"- **{goal.name}** ¥ {goal.cost:,.2f} ({achieved:%Y-%m-%d})")

    with st.form("add-goal", clear_on_submit=True):
        name = st.text_input("New dream", placeholder="e.g. a new laptop")
        cost = st.number_input("Cost", min_value=0.0, step=100.0, format="%.2f")
        if st.form_submit_button("➕ Add dream"):
            show_result(ledger_flow.add_goal(name, str(cost)))


def render_play_spend(ledger_flow: LedgerFlow):
    st.markdown("### 🎈 Spend from Play")
    with st.form("spend-play", clear_on_submit=True):
        description = st.text_input("What for?", placeholder="e.g. movie night")
        amount = st.number_input("Amount", min_value=0.0, step=10.0, format="%.2f")
        if st.form_submit_button("Confirm spending"):
            show_result(ledger_flow.spend_play(str(amount), description))


def render_history(ledger_flow: LedgerFlow):
    """Transaction history, newest first, per fund."""
    st.markdown("### 🧾 Transactions")
    ledger = ledger_flow.current()

    tabs = st.tabs(["All"] + [FUND_LABELS[fund] for fund in FundType])
    groups = [ledger.transactions] + [transactions_for_fund(ledger, fund) for fund in FundType]

    for tab, transactions in zip(tabs, groups):
        with tab:
            if not transactions:
                st.info("No transactions yet.")
            for transaction in transactions[:50]:
                when = datetime.fromtimestamp(transaction.date / 1000)
                sign = "+" if transaction.signed_amount > 0 else "-"
                col1, col2 = st.columns([5, 1])
                col1.markdown(
                    f"{when:%Y-%m-%d %H:%M} · {FUND_LABELS[transaction.fund_type]} · "
                    f"{transaction.description} **{sign}¥ {transaction.amount:,.2f}**"
                )
                if col2.button("🗑️", key=f"delete-tx-{tab}-{transaction.id}"):
                    result = ledger_flow.delete_transaction(transaction.id)
                    if result.requires_confirmation:
                        ask_confirmation(
                            f"delete-tx-{transaction.id}",
                            result,
                            lambda tx_id=transaction.id: ledger_flow.delete_transaction(tx_id, confirmed=True),
                        )
                        st.rerun()
                    show_result(result)


def render_journal_page(journal_flow: JournalFlow):
    """Render the success journal."""
    st.title("🏆 Success Journal")
    st.markdown("Write down five things you did well today. Confidence grows from here.")

    if render_pending():
        return

    with st.form("journal-entry", clear_on_submit=True):
        items = [st.text_input(f"{i + 1}.", key=f"journal-item-{i}") for i in range(5)]
        if st.form_submit_button("💾 Save entry", type="primary"):
            show_result(journal_flow.save_entry(items))

    st.markdown("---")
    for entry in journal_flow.entries():
        written = datetime.fromtimestamp(entry.timestamp / 1000)
        with st.expander(f"{written:%Y-%m-%d %H:%M} · {len(entry.filled_items)} successes"):
            for item in entry.filled_items:
                st.markdown(f"- {item}")
            if st.button("🗑️ Delete entry", key=f"delete-entry-{entry.id}"):
                result = journal_flow.delete_entry(entry.id)
                if result.requires_confirmation:
                    ask_confirmation(
                        f"delete-entry-{entry.id}",
                        result,
                        lambda entry_id=entry.id: journal_flow.delete_entry(entry_id, confirmed=True),
                    )
                    st.rerun()
                show_result(result)


def render_chat_page(wisdom: WisdomFlow):
    """Render the chat with Money the dog."""
    st.title("💬 Talk to Money")

    if "chat_history" not in st.session_state:
        st.session_state.chat_history = [
            ChatMessage(role="model", text="汪！我是钱钱。关于存钱、梦想和自信，你想聊点什么？"),
        ]

    for message in st.session_state.chat_history:
        with st.chat_message("assistant" if message.role == "model" else "user"):
            st.markdown(message.text)

    question = st.chat_input("Ask Money anything about money...")
    if question:
        history = list(st.session_state.chat_history)
        with st.spinner("Money is thinking..."):
            reply = run_async(wisdom.chat(history, question))
        st.session_state.chat_history = history + [
            ChatMessage(role="user", text=question),
            ChatMessage(role="model", text=reply),
        ]
        st.rerun()


def render_data_page(data_flow: DataFlow, audit_logger: AuditLogger):
    """Render backup, restore, reset and recent activity."""
    st.title("💾 Data")

    if render_pending():
        return

    stats = data_flow.stats()
    col1, col2, col3 = st.columns(3)
    col1.metric("Transactions", stats.transaction_count)
    col2.metric("Journal entries", stats.journal_count)
    col3.metric("Dreams", stats.goal_count)
    if stats.timestamp:
        st.caption(f"Last saved {datetime.fromtimestamp(stats.timestamp / 1000):%Y-%m-%d %H:%M:%S} · schema v{stats.version}")

    drifted = [audit for audit in data_flow.fund_audit() if not audit.consistent]
    for audit in drifted:
        st.warning(
            f"{FUND_LABELS[audit.fund]} balance differs from its transactions by ¥ {audit.difference:,.2f}"
        )

    st.markdown("### Backup")
    st.download_button(
        "⬇️ Export backup (JSON)",
        data=data_flow.export_json(),
        file_name=data_flow.backup_filename(),
        mime="application/json",
    )
    st.download_button(
        "⬇️ Export seed module",
        data=data_flow.export_seed_module(),
        file_name="initial_data.py",
        mime="text/x-python",
        help="Replace moneys_wisdom/data/initial_data.py with this file to ship the current data",
    )

    st.markdown("### Restore")
    uploaded = st.file_uploader("Backup file", type=["json"])
    if uploaded and st.button("⬆️ Import backup"):
        text = uploaded.getvalue().decode("utf-8", errors="replace")
        result = data_flow.import_backup_text(text)
        if result.requires_confirmation:
            ask_confirmation(
                "import",
                result,
                lambda: data_flow.import_backup_text(text, confirmed=True),
            )
            st.rerun()
        show_result(result)

    st.markdown("### Danger zone")
    if st.button("🧹 Clear all data"):
        result = data_flow.clear_data()
        ask_confirmation("clear", result, lambda: data_flow.clear_data(confirmed=True))
        st.rerun()

    st.markdown("### Recent activity")
    events = audit_logger.recent_events(limit=20)
    if not events:
        st.caption("Nothing recorded in this session yet.")
    for event in events:
        icon = "⚠️" if event.severity.value in ("warning", "error", "critical") else "•"
        st.caption(f"{icon} {event.timestamp:%H:%M:%S} · {event.description}")

    st.markdown("### Connection Status")
    status = validate_all_settings()
    for name, key in [("Gemini (quotes and chat)", "gemini"), ("Storage", "storage"), ("App", "app")]:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")


if __name__ == "__main__":
    main()
