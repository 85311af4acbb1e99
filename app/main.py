import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import streamlit as st
import pandas as pd
import plotly.graph_objects as go

from portal.articles import ALL_TYPES, ArticleCriteria
from portal.domain import ExamPeriod
from portal.events import EventBus, register_default_handlers
from portal.logging_config import setup_logging
from portal.repository import ArticleRepository, StatementRepository
from portal.services import (
    DEFAULT_CALCULATORS,
    PaymentService,
    StatementReportService,
    known_channel,
)
from portal.statement import status_at
from portal.transforms import (
    article_rows,
    fee_rows,
    format_peso,
    load_seed,
    payment_rows,
    print_preview,
    statement_report_text,
)
from portal.ui_state import SearchView, UIState

st.set_page_config(page_title="iSLU Student Portal", layout="wide")

if "seed" not in st.session_state:
    setup_logging()
    seed = load_seed()
    st.session_state.seed = seed
    st.session_state.articles = ArticleRepository(seed.articles)
    st.session_state.statements = StatementRepository.from_seed(seed)
    st.session_state.bus = register_default_handlers(EventBus())
    st.session_state.search_view = SearchView()
    st.session_state.notices = []

seed = st.session_state.seed
articles: ArticleRepository = st.session_state.articles
statements: StatementRepository = st.session_state.statements
payments = PaymentService(statements, validators=[known_channel(seed.channels)], bus=st.session_state.bus)
reports = StatementReportService(statements, DEFAULT_CALCULATORS)

st.sidebar.markdown("### 👤 Student")
student_id = st.sidebar.selectbox("Student ID", options=statements.student_ids())

menu = st.sidebar.radio("Menu", ["📚 Journal/Periodical", "🧾 Statement of Accounts"])


def show_results(view: SearchView):
    st.subheader(f"Search results for: {view.label}")
    if not view.results:
        st.info("No results found.")
        return
    st.caption(f"Total results: {len(view.results)}")
    st.dataframe(pd.DataFrame(article_rows(view.results)), use_container_width=True, hide_index=True)


if menu == "📚 Journal/Periodical":
    st.title("SAINT LOUIS UNIVERSITY LIBRARIES")
    st.caption("PERIODICAL ARTICLE INDEXES")
    view: SearchView = st.session_state.search_view
    controls = view.visible_controls()

    if view.state is UIState.SEARCH_FORM:
        with st.form("quick_search"):
            term = st.text_input("Search articles", placeholder="e.g. tourism, biography, COVID")
            if "search" in controls and st.form_submit_button("Search"):
                st.session_state.search_view = view.submit(term, articles)
                st.rerun()

        if "advanced" in controls:
            with st.expander("Advanced Search"):
                with st.form("advanced_search"):
                    c1, c2 = st.columns(2)
                    with c1:
                        title = st.text_input("Title")
                        author = st.text_input("Author")
                        journal = st.text_input("Journal Name")
                    with c2:
                        pub_type = st.selectbox("Publication Type", options=(ALL_TYPES,) + articles.publication_types())
                        year_from = st.text_input("Year From")
                        year_to = st.text_input("Year To")
                    if st.form_submit_button("Search"):
                        criteria = ArticleCriteria(title, author, journal, year_from, year_to, pub_type)
                        st.session_state.search_view = view.submit_advanced(criteria, articles)
                        st.rerun()
    else:
        show_results(view)
        col1, col2 = st.columns([1, 5])
        with col1:
            if "search_again" in controls and st.button("🔄 Search Again"):
                st.session_state.search_view = view.search_again()
                st.rerun()
        with col2:
            if "print" in controls:
                preview = print_preview(view.label, view.results)
                with st.expander("🖨 Print Preview"):
                    st.code(preview, language=None)
                st.download_button("⬇ Download", preview, file_name="search_results.txt")

elif menu == "🧾 Statement of Accounts":
    found = statements.get(student_id)
    if found.is_none():
        st.warning(f"No statement found for student {student_id}.")
        st.stop()
    statement = found.get_or_else(None)
    snap = statement.snapshot()

    st.title(f"📊 Statement of Accounts ({snap['semester']}, {snap['academic_year']})")

    for result in st.session_state.notices:
        if result.success:
            st.success(f"{result.message}\nReference: {result.transaction.reference}")
        else:
            st.error(result.message)
    st.session_state.notices = []

    k1, k2, k3, k4 = st.columns(4)
    with k1:
        st.metric("Total Amount", format_peso(snap["total_amount"]))
    with k2:
        st.metric("Amount Paid", format_peso(snap["amount_paid"]))
    with k3:
        st.metric("Balance", format_peso(snap["balance"]))
    with k4:
        st.metric("Overpayment", format_peso(snap["overpayment"]))

    left, right = st.columns([7, 3])
    with left:
        st.header("🎓 Exam Periods")
        period_cols = st.columns(len(ExamPeriod))
        for col, period in zip(period_cols, ExamPeriod):
            info = snap["periods"][period]
            with col:
                st.metric(
                    period.value.title(),
                    format_peso(info["remaining"]),
                    delta="PAID" if info["paid"] else "UNPAID",
                    delta_color="normal" if info["paid"] else "inverse",
                )
                st.caption(statement.exam_eligibility_message(period))

        fig = go.Figure()
        names = [p.value.title() for p in ExamPeriod]
        fig.add_trace(go.Bar(x=names, y=[float(snap["periods"][p]["allocated"]) for p in ExamPeriod], name="Paid"))
        fig.add_trace(go.Bar(x=names, y=[float(snap["periods"][p]["remaining"]) for p in ExamPeriod], name="Remaining"))
        fig.update_layout(barmode="stack", template="plotly_dark", height=280, margin=dict(t=30, b=10, l=10, r=10))
        st.plotly_chart(fig, use_container_width=True)

        st.header("🧾 Fees Breakdown")
        st.dataframe(pd.DataFrame(fee_rows(snap["fees"])), use_container_width=True, hide_index=True)

        st.header("💳 Payment History")
        history = snap["payments"]
        if history:
            now = pd.Timestamp.now().to_pydatetime()
            rows = payment_rows(history, [status_at(p, now) for p in history])
            st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)
        else:
            st.info("No payments recorded yet.")

    with right:
        st.header("🛒 Payment Channels")
        st.caption("Tuition fees can be paid via the available online payment channels.")
        next_due = next((snap["periods"][p]["remaining"] for p in ExamPeriod if snap["periods"][p]["remaining"] > 0), None)
        with st.form("payment"):
            channel = st.radio("Channel", options=seed.channels)
            amount = st.text_input("Amount", value=f"{next_due:.2f}" if next_due else "")
            if st.form_submit_button("Pay"):
                result = payments.process_payment(student_id, amount, channel)
                st.session_state.notices.append(result)
                st.rerun()

        report = reports.statement_report(student_id)
        with st.expander("📄 Statement Report"):
            text = statement_report_text(snap)
            st.code(text, language=None)
            st.download_button("⬇ Download", text, file_name=f"statement_{student_id}.txt")
            st.json({k: str(v) for k, v in report["result"].items()})
