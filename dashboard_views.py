"""Modular Streamlit page renderers."""

from __future__ import annotations

import pandas as pd
import streamlit as st

from analytics import scope_roi_rows, series_frame, sort_roi_rows
from data_health import health_report
from goals import GoalTargets, classify_transition, target_pct_for_transition, worst_off_target_transition
from metric_guide import METRIC_GUIDE

_ROI_SORT_LABELS = {
    "Premium per spend": "premium_per_spend",
    "Issued premium": "issued_premium",
    "Lowest CPA": "cpa",
}

_TARGET_BADGES = {"good": "On target", "warn": "Near target", "bad": "Off target", "": ""}


def _fmt_money(value: float) -> str:
    return f"${value:,.0f}"


def _fmt_money2(value: float) -> str:
    return f"${value:,.2f}"


def _fmt_pct(value: float) -> str:
    return f"{float(value or 0.0) * 100:.1f}%"


def render_kpis(kpis: dict[str, float]) -> None:
    st.subheader("Agency KPIs")

    rows = [
        [
            ("Issued premium", _fmt_money(kpis["totalIssuedPremium"])),
            ("Policies issued", f"{int(kpis['policiesIssued']):,}"),
            ("Conversion rate", _fmt_pct(kpis["conversionRate"])),
            ("Cost per acquisition", _fmt_money2(kpis["costPerAcquisition"])),
        ],
        [
            ("Paid spend", _fmt_money(kpis["paidSpend"])),
            ("Dials", f"{int(kpis['totalDials']):,}"),
            ("Premium per dial", _fmt_money2(kpis["premiumPerDial"])),
        ],
    ]

    for row in rows:
        cols = st.columns(4)
        for idx, (label, value) in enumerate(row):
            cols[idx].metric(label, value)


def _funnel_table(funnel: dict, goals: GoalTargets) -> pd.DataFrame:
    rows = []
    for transition in funnel["transitions"]:
        rows.append(
            {
                "Step": f"{transition['from']} → {transition['to']}",
                "From": transition["fromCount"],
                "To": transition["toCount"],
                "Rate": _fmt_pct(transition["rate"]),
                "Drop": _fmt_pct(transition["drop"]),
                "Target": f"{target_pct_for_transition(transition, goals):.0f}%",
                "Status": _TARGET_BADGES[classify_transition(transition, goals)],
            }
        )
    return pd.DataFrame(rows)


def render_funnel(funnel_data: dict, goals: GoalTargets) -> None:
    st.markdown("### Sales funnel")
    options = ["Agency", *funnel_data["agents"]]
    choice = st.selectbox("Funnel for", options, index=0, key="funnel_agent")
    funnel = funnel_data["agency"] if choice == "Agency" else funnel_data["byAgent"][choice]

    stages = pd.DataFrame(funnel["stages"]).set_index("label")[["count"]]
    left, right = st.columns([1, 2])
    with left:
        st.bar_chart(stages)
    with right:
        st.dataframe(_funnel_table(funnel, goals), use_container_width=True, hide_index=True)

    worst = funnel["worstTransition"]
    if worst is not None:
        st.caption(f"Biggest leak: {worst['from']} → {worst['to']} ({_fmt_pct(worst['rate'])} pass-through)")
    off_target = worst_off_target_transition(funnel, goals)
    if off_target is not None:
        st.warning(
            f"Most off-target: {off_target['from']} → {off_target['to']} "
            f"({_fmt_pct(off_target['rate'])} vs target {target_pct_for_transition(off_target, goals):.0f}%)"
        )


def render_roi(roi_rows: pd.DataFrame) -> None:
    st.markdown("### Lead source ROI")
    c1, c2 = st.columns(2)
    sort_label = c1.radio("Sort by", list(_ROI_SORT_LABELS), horizontal=True, key="roi_sort")
    scope = c2.radio("Sources", ["paid", "all"], horizontal=True, key="roi_scope", format_func=str.title)

    view = sort_roi_rows(scope_roi_rows(roi_rows, scope), _ROI_SORT_LABELS[sort_label])
    if view.empty:
        st.info("No lead sources in the selected range.")
        return
    st.dataframe(view.drop(columns=["key"]), use_container_width=True, hide_index=True)


def render_dashboard(analysis: dict, goals: GoalTargets) -> None:
    st.header("Dashboard")
    st.caption(f"Range: {analysis['rangeLabel']}")
    render_kpis(analysis["coreMetrics"])

    top_left, top_right = st.columns(2)
    with top_left:
        st.markdown("### Issued premium by agent")
        st.area_chart(series_frame(analysis["issuedPremiumSeries"]))
    with top_right:
        st.markdown("### Issued policies by agent")
        st.area_chart(series_frame(analysis["issuedPolicySeries"]))

    mid_left, mid_right = st.columns(2)
    with mid_left:
        st.markdown("### Activity funnel over time")
        st.line_chart(series_frame(analysis["activityFunnelSeries"]))
    with mid_right:
        st.markdown("### Multiline LOB mix")
        lob_frame = series_frame(analysis["multilineLobSeries"])
        if lob_frame.empty or not lob_frame.to_numpy().any():
            st.info("No multiline quotes in this range.")
        else:
            st.bar_chart(lob_frame)

    render_funnel(analysis["funnelData"], goals)
    render_roi(analysis["roiRows"])

    st.markdown("### Quotes by lead source")
    activity = analysis["leadSourceQuoteActivity"]
    if activity.empty:
        st.info("No quotes in this range.")
    else:
        st.bar_chart(activity.set_index("lead_source")[["count"]])


def render_activity_pace(pace: pd.DataFrame) -> None:
    st.markdown("### Daily pace")
    if pace.empty:
        st.info("No dated activity rows in the selected range.")
        return
    view = pace.assign(
        calls_status=pace["calls_status"].map(_TARGET_BADGES),
        households_status=pace["households_status"].map(_TARGET_BADGES),
    )
    st.dataframe(view, use_container_width=True, hide_index=True)


def render_agents(analysis: dict) -> None:
    st.header("Agents")
    agent_rows = analysis["agentRows"]
    if agent_rows.empty:
        st.info("No agent activity in the selected range.")
        return

    st.dataframe(agent_rows, use_container_width=True, hide_index=True)
    render_activity_pace(analysis["activityPace"])

    insights = analysis["agentInsights"]
    agent = st.selectbox("Agent", agent_rows["agent"].tolist(), key="insight_agent")
    detail = insights["byAgent"].get(agent)
    if detail is None:
        return

    kpis = detail["kpis"]
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Contact rate", _fmt_pct(kpis["contactRate"]))
    c2.metric("Pitch rate", _fmt_pct(kpis["pitchRate"]))
    c3.metric("Conversion", _fmt_pct(kpis["conversionRate"]))
    lift = kpis["multilineLift"]
    c4.metric("Multiline lift", "n/a" if lift is None else _fmt_money(lift))

    for note in [*detail["commentary"], *detail["flags"]]:
        st.markdown(f"**{note['label']}**: {note['detail']}")

    with st.expander("Benchmarks and thresholds", expanded=False):
        st.json({"benchmarks": insights["benchmarks"], "thresholds": insights["thresholds"]})


def render_data_health(analysis: dict) -> None:
    st.header("Data Health")
    st.caption("Diagnostic counts only; nothing here blocks the dashboard.")
    health = analysis["dataHealth"]
    cross = health["cross"]

    c1, c2, c3 = st.columns(3)
    c1.metric("Quotes delta (activity - log)", f"{cross['quotesDelta']:+,}")
    c2.metric("Sales delta (activity - log)", f"{cross['salesDelta']:+,}")
    c3.metric("Paid sources missing from log", f"{cross['paidSourcesWithNoQuoteSales']} / {cross['paidSourcesCount']}")

    st.dataframe(health_report(health), use_container_width=True, hide_index=True, height=560)


def render_mapping_status(label: str, status: pd.DataFrame) -> None:
    st.markdown(f"#### {label}")
    st.dataframe(status, use_container_width=True, hide_index=True)


def render_metric_guide() -> None:
    st.header("Metric Guide")
    st.caption("Definitions and formulas behind each KPI.")
    st.dataframe(pd.DataFrame(METRIC_GUIDE), use_container_width=True, height=680)
