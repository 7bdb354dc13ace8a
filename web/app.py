#!/usr/bin/env python3
from __future__ import annotations

from typing import Optional

import pandas as pd
import streamlit as st

from ta_monitor.config import load_settings
from ta_monitor.insights import generate_insights
from ta_monitor.models import MATATAG_CATEGORIES, TARecord
from ta_monitor.source import SYNC_FAILED_MESSAGE, LoadResult, load_records
from ta_monitor.stats import (
    ALL,
    compute_stats,
    filter_options,
    filter_records,
    record_at,
    record_summary_frame,
    status_tone,
)

TONE_BADGES = {
    "resolved": "🟢",
    "blocked": "🔴",
    "pending": "🟠",
    "empty": "⚪",
}
TABLE_KEY = "records_table"
DETAIL_TABS = ["Targets", "MATATAG", "Agreements", "Signatories", "Misc"]
MISC_LABELS = {
    "ta_name4": "TA Name (4)",
    "ta_position4": "TA Position (4)",
    "dept_name5": "Dept Name (5)",
    "dept_position5": "Dept Position (5)",
    "ta_name5": "TA Name (5)",
    "ta_position5": "TA Position (5)",
    "dept_team_date": "Dept Team Date",
    "ta_team_date": "TA Team Date",
}


def ensure_state() -> None:
    st.session_state.setdefault("load_result", None)
    st.session_state.setdefault("insights", [])
    st.session_state.setdefault("selected_record", None)
    st.session_state.setdefault("search_input", "")
    st.session_state.setdefault("period_input", ALL)
    st.session_state.setdefault("district_input", ALL)
    st.session_state.setdefault("office_input", ALL)


def refresh_data() -> None:
    # A refresh replaces everything derived from the previous fetch.
    with st.spinner("Syncing data..."):
        st.session_state["load_result"] = load_records(load_settings())
    st.session_state["insights"] = []
    reset_filters()


def reset_filters() -> None:
    st.session_state["search_input"] = ""
    st.session_state["period_input"] = ALL
    st.session_state["district_input"] = ALL
    st.session_state["office_input"] = ALL
    clear_selection()


# The table selection is keyed by widget, not by data; drop it whenever the rows change.
def clear_selection() -> None:
    st.session_state["selected_record"] = None
    st.session_state.pop(TABLE_KEY, None)


def set_visuals() -> None:
    st.set_page_config(page_title="FTAD Monitoring", page_icon="📋", layout="wide", initial_sidebar_state="collapsed")
    st.markdown(
        """
        <style>
        :root {
            --ta-bg: #fdfdff;
            --ta-surface: #ffffff;
            --ta-text: #0f172a;
            --ta-text-muted: #94a3b8;
            --ta-border: #f1f5f9;
            --ta-primary: #4f46e5;
        }
        .stApp {
            background: var(--ta-bg);
            color: var(--ta-text);
            font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", sans-serif;
        }
        .block-container {
            padding-top: 2rem;
            padding-bottom: 2rem;
            max-width: 1600px;
        }
        [data-testid="stDecoration"] {
            display: none !important;
        }
        [data-testid="stMetric"] {
            background: var(--ta-surface);
            border: 1px solid var(--ta-border);
            border-radius: 24px;
            padding: 1rem 1.25rem;
        }
        .ta-kicker {
            color: var(--ta-primary);
            font-size: 0.7rem;
            font-weight: 800;
            letter-spacing: 0.15em;
            text-transform: uppercase;
        }
        .stButton > button {
            border-radius: 999px !important;
            font-weight: 600 !important;
        }
        .stExpander, .stAlert, .stDataFrame {
            border-radius: 18px;
            overflow: hidden;
        }
        </style>
        """,
        unsafe_allow_html=True,
    )


def render_header() -> None:
    left, right = st.columns([5, 1])
    with left:
        st.markdown('<div class="ta-kicker">Regional Technical Assistance Monitoring Dashboard</div>', unsafe_allow_html=True)
        st.title("Field Technical Assistance Division")
    with right:
        st.button("Refresh data", on_click=refresh_data, width="stretch")


def render_stats(records: list[TARecord]) -> None:
    stats = compute_stats(records)
    st.subheader("Regional Monitoring Overview")
    st.caption(f"Analyzing Technical Assistance interventions across {stats.unique_entities} unique institutional entities.")
    cols = st.columns(4)
    cols[0].metric("Registry Volume", f"{stats.total_interventions:,}")
    cols[1].metric(
        "Strategic Resolution",
        f"{stats.resolution_rate:.1f}%",
        delta="above 70%" if stats.resolution_rate > 70 else None,
    )
    cols[2].metric("Support Objectives", stats.total_objectives)
    cols[3].metric("Institutional Reach", stats.unique_entities)


def render_filters(records: list[TARecord]) -> list[TARecord]:
    options = filter_options(records)
    cols = st.columns([1, 1, 1, 1.4, 0.6])
    office = cols[0].selectbox("Office", [ALL] + options["offices"], key="office_input", on_change=clear_selection, format_func=lambda v: "All Offices" if v == ALL else v)
    period = cols[1].selectbox("Period", [ALL] + options["periods"], key="period_input", on_change=clear_selection, format_func=lambda v: "All Periods" if v == ALL else v)
    district = cols[2].selectbox(
        "District",
        [ALL] + options["districts"],
        key="district_input",
        on_change=clear_selection,
        format_func=lambda v: "All Districts/Clusters" if v == ALL else v,
    )
    search = cols[3].text_input("Search", key="search_input", on_change=clear_selection, placeholder="Search...")
    active = office != ALL or period != ALL or district != ALL or bool(search)
    cols[4].button("Clear", on_click=reset_filters, disabled=not active, width="stretch")
    return filter_records(records, search=search, period=period, district=district, office=office)


def render_table(records: list[TARecord]) -> Optional[TARecord]:
    st.markdown(f"**Monitoring Console** · `{len(records)} MATCHES`")
    if not records:
        st.info("No records match the current filters.")
        return None

    frame = record_summary_frame(records)
    event = st.dataframe(
        frame,
        width="stretch",
        hide_index=True,
        on_select="rerun",
        selection_mode="single-row",
        key=TABLE_KEY,
    )
    selected_rows = list(getattr(getattr(event, "selection", None), "rows", []) or [])
    picked = record_at(records, selected_rows)
    if picked is not None:
        st.session_state["selected_record"] = picked.id
    by_id = {record.id: record for record in records}
    return by_id.get(st.session_state.get("selected_record"))


def render_status(status: str) -> str:
    return f"{TONE_BADGES[status_tone(status)]} {status or '-'}"


def render_detail(record: TARecord) -> None:
    st.subheader(record.office)
    cols = st.columns(4)
    cols[0].metric("District", record.district or "-")
    cols[1].metric("Division/School", record.division_school or "-")
    cols[2].metric("TA Receiver", record.ta_receiver or "-")
    cols[3].metric("TA Provider", record.ta_provider or "-")
    st.caption(f"Period: {record.period or '-'}  ·  Source row: {record.id}")
    if record.reasons:
        st.markdown("**Reasons for TA**")
        for reason in record.reasons:
            st.markdown(f"- {reason}")

    targets_tab, matatag_tab, agreements_tab, signatories_tab, misc_tab = st.tabs(DETAIL_TABS)
    with targets_tab:
        if not record.targets:
            st.info("No technical targets recorded.")
        for slot, target in enumerate(record.targets, start=1):
            with st.expander(f"Objective {slot}: {target.objective}", expanded=slot == 1):
                st.markdown(
                    f"**Planned action:** {target.planned_action or '-'}  \n"
                    f"**Due date:** {target.due_date or '-'}  \n"
                    f"**Status:** {render_status(target.status)}  \n"
                    f"**Help needed:** {target.help_needed or '-'}"
                )
    with matatag_tab:
        for category in MATATAG_CATEGORIES:
            items = getattr(record, category)
            st.markdown(f"**{category.title()}** ({len(items)})")
            if items:
                st.dataframe(
                    pd.DataFrame(
                        [{"Status": render_status(item.status), "Issue": item.issue} for item in items]
                    ),
                    width="stretch",
                    hide_index=True,
                )
    with agreements_tab:
        if not record.agreements:
            st.info("No agreements recorded.")
        else:
            st.dataframe(
                pd.DataFrame(
                    [
                        {
                            "Agreement": agreement.agree,
                            "Specific office": agreement.specific_office,
                            "Due date": agreement.due_date,
                            "Status": render_status(agreement.status),
                        }
                        for agreement in record.agreements
                    ]
                ),
                width="stretch",
                hide_index=True,
            )
    with signatories_tab:
        left, right = st.columns(2)
        for column, title, signatories in (
            (left, "Receiver signatories", record.receiver_signatories),
            (right, "Provider signatories", record.provider_signatories),
        ):
            column.markdown(f"**{title}**")
            if not signatories:
                column.caption("None recorded.")
            for signatory in signatories:
                column.markdown(f"- {signatory.name} · _{signatory.position or '-'}_")
    with misc_tab:
        st.dataframe(
            pd.DataFrame(
                [{"Field": label, "Value": getattr(record.misc, name)} for name, label in MISC_LABELS.items()]
            ),
            width="stretch",
            hide_index=True,
        )


def render_insights(records: list[TARecord]) -> None:
    st.subheader("Strategic Insights")
    requested = st.button("Generate insights", disabled=not records)
    if requested and records:
        with st.spinner("Generating strategic insights..."):
            st.session_state["insights"] = generate_insights(records, settings=load_settings())
    for line in st.session_state.get("insights") or []:
        st.markdown(line)


def render_empty() -> None:
    st.info("Registry Void: no operational records found in the current synchronization cycle.")


def main() -> None:
    set_visuals()
    ensure_state()
    if st.session_state["load_result"] is None:
        refresh_data()

    render_header()
    result: LoadResult = st.session_state["load_result"]
    if result.status == "transport_failure":
        st.error(SYNC_FAILED_MESSAGE)

    records = result.records
    render_stats(records)
    if not records:
        render_empty()
        return

    visible = render_filters(records)
    selected = render_table(visible)
    if selected is not None:
        render_detail(selected)
    render_insights(records)


if __name__ == "__main__":
    main()
