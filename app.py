import altair as alt
import streamlit as st
from contextlib import contextmanager
from typing import List, Optional

from core import data as dc
from core.charts import allocation_chart, utilization_donut
from core.errors import ExportError, InvalidUploadError
from core.export import export_csv, export_filename, export_pptx, format_currency
from core.filters import ALL_STATUSES, budget_chart_data, get_domains
from core.insights import analyze_dashboard_data
from core.metrics_overview import compute_metrics
from core.models import ActivityRecord, ActivityStatus, records_to_frame

alt.data_transformers.disable_max_rows()

SOURCE_LABELS = {dc.SOURCE_LIVE: "Live sheet", dc.SOURCE_LOCAL: "Local upload", dc.SOURCE_DEMO: "Demo data (offline)"}
STATUS_OPTIONS = [ALL_STATUSES] + [s.value for s in ActivityStatus]


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;margin-bottom: 8px;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(selected_domain: Optional[str], selected_status: str, state: dc.DashboardState) -> str:
    chips = [
        f"Domain: {selected_domain or 'Global View'}",
        f"Status: {'Entire Pipeline' if selected_status == ALL_STATUSES else selected_status}",
        f"Source: {SOURCE_LABELS.get(state.source, state.source)}",
        f"Last sync: {state.last_sync or 'n/a'}",
    ]
    return "".join([f"<span class='chip'>{txt}</span>" for txt in chips])


def render_kpi_tiles(metrics) -> None:
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total Net Balance", format_currency(metrics.total_balance), f"{metrics.balance_percentage:.0f}% of budget")
    c2.metric("Total Expenditure", format_currency(metrics.total_expenditure), f"{metrics.budget_utilization:.0f}% utilized")
    c3.metric("Total Overspent", format_currency(metrics.total_overspent))
    c4.metric("Total Underspent", format_currency(metrics.total_underspent))


def render_budget_rows(records: List[ActivityRecord]) -> None:
    if not records:
        st.info("No records found.")
        return
    for item in records:
        left, right = st.columns([5, 1])
        left.markdown(f"**{item.activity_name}**  \n<span style='color:#6b7280'>{item.timeline}</span>", unsafe_allow_html=True)
        right.markdown(f"**{item.budget_progress:.0f}%**  \nUtilized")
        st.progress(min(max(item.budget_progress, 0.0), 100.0) / 100)


def load_initial_state() -> dc.DashboardState:
    if "dashboard_state" not in st.session_state:
        with st.spinner("Loading sheet data..."):
            st.session_state["dashboard_state"] = dc.load_remote_state()
    return st.session_state["dashboard_state"]


# ---------- UI setup ----------
st.set_page_config(page_title="Activity Budget Dashboard", layout="wide")
inject_base_styles()
st.title("Activity Budget Dashboard")
st.caption("Activity status and budget utilization across domains.")

state = load_initial_state()

# ----- Sidebar: domains + filters + data actions -----
domains = get_domains(state.records)
with st.sidebar:
    st.markdown("### Domains")
    domain_choice = st.radio("Domain", ["Global View"] + domains, index=0)
    selected_domain = None if domain_choice == "Global View" else domain_choice
    selected_status = st.selectbox("Status", STATUS_OPTIONS, format_func=lambda s: "Entire Pipeline" if s == ALL_STATUSES else s)

    st.markdown("---")
    st.markdown("### Data")
    if st.button("Refresh from sheet"):
        st.session_state["dashboard_state"] = dc.load_remote_state()
        st.rerun()
    uploaded = st.file_uploader("Upload CSV", type=["csv"])
    if uploaded is not None and st.session_state.get("_last_upload") != uploaded.file_id:
        st.session_state["_last_upload"] = uploaded.file_id
        try:
            st.session_state["dashboard_state"] = dc.load_uploaded_state(uploaded.getvalue())
            st.rerun()
        except InvalidUploadError as exc:
            st.error(str(exc))

ctx = dc.prepare_context({"selected_domain": selected_domain, "selected_status": selected_status}, state)
filters = ctx["filters"]
filtered = ctx["filtered_records"]
metrics = compute_metrics(filtered)

with st.sidebar:
    st.markdown("---")
    st.markdown("### Export")
    try:
        st.download_button(
            "Export CSV",
            data=export_csv(filtered).encode("utf-8"),
            file_name=export_filename("csv"),
            mime="text/csv",
        )
    except ExportError as exc:
        st.error(str(exc))

    # A prepared deck is only offered for the view it was built from.
    report_key = (filters, id(state))
    if st.button("Prepare PowerPoint", key="prepare_report"):
        try:
            st.session_state["pptx_report"] = (report_key, export_pptx(filtered, metrics, filters.selected_domain))
        except ExportError as exc:
            st.session_state.pop("pptx_report", None)
            st.error(str(exc))
    prepared = st.session_state.get("pptx_report")
    if prepared and prepared[0] == report_key:
        st.download_button(
            "Export PowerPoint",
            data=prepared[1],
            file_name=export_filename("pptx"),
            mime="application/vnd.openxmlformats-officedocument.presentationml.presentation",
        )

st.markdown(
    f"<div class='app-top-bar'><div class='breadcrumb'>Dashboard</div>"
    f"<div class='page-title'>{filters.selected_domain or 'Global View'}</div></div>",
    unsafe_allow_html=True,
)
st.markdown(f"<div class='chip-row'>{format_filter_summary(selected_domain, selected_status, state)}</div>", unsafe_allow_html=True)
if state.source == dc.SOURCE_DEMO:
    st.warning("Live sheet unavailable; showing bundled demo data.")

render_kpi_tiles(metrics)

left, right = st.columns(2)
with left:
    with card("Financial Overview"):
        if metrics.total_activities:
            st.altair_chart(utilization_donut(metrics.total_expenditure, metrics.total_balance), use_container_width=True)
        st.caption(f"Total budget {format_currency(metrics.total_budget)}")
with right:
    with card("Allocation Matrix"):
        points = budget_chart_data(ctx["records"], filtered, filters.selected_domain)
        if points:
            st.altair_chart(allocation_chart(points), use_container_width=True)
        else:
            st.info("No allocation data.")

progress_col, flow_col = st.columns([2, 1])
with progress_col:
    with card("Real-Time Utilization"):
        render_budget_rows(filtered)
with flow_col:
    with card("Activity Flow"):
        st.metric("Total Active", metrics.total_activities)
        st.metric("Completed", metrics.completed)
        st.metric("In Progress", metrics.on_process)
        st.metric("Pending", metrics.not_started)

with card("Detailed Activity List"):
    table = records_to_frame(filtered)
    if table.empty:
        st.info("No activities found.")
    else:
        display = table[
            ["activity_name", "activity_code", "domain_name", "timeline", "status",
             "budget_progress", "allocation_budget", "expenditure", "balance"]
        ].rename(columns=lambda c: c.replace("_", " ").title())
        st.dataframe(display, use_container_width=True, hide_index=True)

with card("AI Insights"):
    if st.button("Generate analysis"):
        with st.spinner("Analyzing..."):
            st.markdown(analyze_dashboard_data(filtered, filters.selected_domain))
