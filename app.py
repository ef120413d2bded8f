"""AgencyPulse Streamlit entrypoint with modular page navigation."""

from __future__ import annotations

import datetime
import logging

import pandas as pd
import streamlit as st

from dashboard_views import (
    render_agents,
    render_dashboard,
    render_data_health,
    render_mapping_status,
    render_metric_guide,
)
from date_ranges import RANGE_MODES
from goals import DEFAULT_GOALS, GoalTargets
from mapping_memory import DEFAULT_SETTINGS_PATH, load_settings, save_settings
from mapping_rules import mapping_validation, normalize_mapping, suggest_mapping
from parsing import SUPPORTED_EXTENSIONS, RawDataset, load_raw_dataset
from schemas import SCHEMAS
from time_buckets import WEEK_STARTS
from workflow import build_analysis

LOGGER = logging.getLogger(__name__)

st.set_page_config(page_title="AgencyPulse", page_icon="\U0001f4c8", layout="wide")

_RANGE_LABELS = {
    "all": "All time",
    "7d": "Last 7 days",
    "30d": "Last 30 days",
    "90d": "Last 90 days",
    "365d": "Last year",
    "custom": "Custom",
}


def _inject_styles() -> None:
    st.markdown(
        """
        <style>
        .hero {
            margin-bottom: 0.6rem;
            padding: 1rem 1.2rem;
            border: 1px solid rgba(30, 80, 145, 0.23);
            border-radius: 14px;
            background: rgba(255,255,255,0.82);
        }
        .hero h1 {
            margin: 0;
        }
        .hero p {
            margin: 0.35rem 0 0 0;
            color: #244674;
        }
        [data-testid="stMetric"] {
            background: rgba(255,255,255,0.90);
            border: 1px solid rgba(45, 88, 162, 0.25);
            border-radius: 12px;
            padding: 0.45rem 0.6rem;
        }
        </style>
        """,
        unsafe_allow_html=True,
    )


def _render_header() -> None:
    st.markdown(
        """
        <div class="hero">
          <h1>AgencyPulse</h1>
          <p>Activity, quotes and paid-lead performance for your agency. Upload exports from the sidebar.</p>
        </div>
        """,
        unsafe_allow_html=True,
    )


@st.cache_data(show_spinner=False)
def _load_dataset(uploaded_file) -> RawDataset:
    return load_raw_dataset(uploaded_file)


@st.cache_data(show_spinner="Crunching numbers...")
def _cached_analysis(
    datasets: dict[str, RawDataset],
    mappings: dict[str, dict[str, str]],
    range_mode: str,
    custom_start: str,
    custom_end: str,
    goals: GoalTargets,
    week_start: str,
    today: str,
) -> dict:
    return build_analysis(
        datasets,
        mappings,
        range_mode=range_mode,
        custom_start=custom_start,
        custom_end=custom_end,
        goals=goals,
        today=pd.Timestamp(today),
        week_start=week_start,
    )


def _load_saved_settings() -> dict:
    if "settings" not in st.session_state:
        try:
            st.session_state["settings"] = load_settings(DEFAULT_SETTINGS_PATH)
        except Exception as exc:
            LOGGER.warning("Could not read settings file: %s", exc)
            st.sidebar.warning(f"Saved settings could not be read ({exc}); using defaults.")
            st.session_state["settings"] = {"goals": DEFAULT_GOALS, "mappings": {}}
    return st.session_state["settings"]


def _prepare_datasets() -> dict[str, RawDataset]:
    st.sidebar.header("Data Import")
    datasets: dict[str, RawDataset] = {}
    for key, schema in SCHEMAS.items():
        uploaded = st.sidebar.file_uploader(
            schema.label,
            type=[ext.replace(".", "") for ext in SUPPORTED_EXTENSIONS],
            key=f"upload_{key}",
            help=schema.description,
        )
        if uploaded is None:
            continue
        try:
            datasets[key] = _load_dataset(uploaded)
        except Exception as exc:
            st.error(f"Could not read {schema.label}: {exc}")
            continue
        st.sidebar.caption(f"{schema.label}: {datasets[key].row_count:,} rows")
    return datasets


def _mapping_editor(datasets: dict[str, RawDataset], saved: dict[str, dict[str, str]]) -> dict[str, dict[str, str]]:
    mappings: dict[str, dict[str, str]] = {}
    for key, dataset in datasets.items():
        schema = SCHEMAS[key]
        suggested = suggest_mapping(dataset.headers, schema)
        remembered = {field: column for field, column in saved.get(key, {}).items() if column in dataset.headers}
        defaults = normalize_mapping({**suggested, **remembered}, schema)

        with st.expander(f"{schema.label} columns", expanded=False):
            options = ["", *dataset.headers]
            chosen = {}
            for spec in schema.fields:
                current = defaults.get(spec.key, "")
                chosen[spec.key] = st.selectbox(
                    spec.label,
                    options,
                    index=options.index(current) if current in options else 0,
                    key=f"map_{key}_{spec.key}",
                )
            mappings[key] = chosen
            render_mapping_status(schema.label, mapping_validation(chosen, schema, dataset.headers))
    return mappings


def _goal_inputs(goals: GoalTargets) -> GoalTargets:
    with st.sidebar.expander("KPI goals", expanded=False):
        return GoalTargets(
            contact_rate_target_pct=st.number_input("Contact rate target %", 0.0, 100.0, goals.contact_rate_target_pct),
            quote_rate_target_pct=st.number_input("Quote rate target %", 0.0, 100.0, goals.quote_rate_target_pct),
            issue_rate_target_pct=st.number_input("Issue rate target %", 0.0, 100.0, goals.issue_rate_target_pct),
            calls_per_day_target=st.number_input("Calls per day", 0.0, value=goals.calls_per_day_target),
            households_quoted_per_day_target=st.number_input(
                "Households quoted per day", 0.0, value=goals.households_quoted_per_day_target
            ),
        )


def _range_inputs() -> tuple[str, str, str, str]:
    st.sidebar.header("Filters")
    mode = st.sidebar.selectbox("Date range", RANGE_MODES, format_func=_RANGE_LABELS.get)
    custom_start = custom_end = ""
    if mode == "custom":
        today = datetime.date.today()
        start = st.sidebar.date_input("From", value=today - datetime.timedelta(days=29))
        end = st.sidebar.date_input("To", value=today)
        custom_start = start.isoformat() if start else ""
        custom_end = end.isoformat() if end else ""
    week_start = st.sidebar.selectbox("Weeks start on", WEEK_STARTS, format_func=str.title)
    return mode, custom_start, custom_end, week_start


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    _inject_styles()
    _render_header()

    view = st.sidebar.radio("Navigate", ["Dashboard", "Agents", "Data Health", "Data Import", "Metric Guide"])

    settings = _load_saved_settings()
    datasets = _prepare_datasets()
    mode, custom_start, custom_end, week_start = _range_inputs()
    goals = _goal_inputs(settings["goals"])

    if view == "Metric Guide":
        render_metric_guide()
        return

    if not datasets:
        st.info("Upload at least one export from the sidebar to start.")
        return

    if view == "Data Import":
        st.header("Data Import")
        st.caption("Check the suggested column for each field; blank means the field is treated as empty.")
        mappings = _mapping_editor(datasets, settings["mappings"])
        st.session_state["mappings"] = mappings
        if st.button("Save goals and mappings"):
            save_settings(DEFAULT_SETTINGS_PATH, goals, mappings)
            st.session_state["settings"] = {"goals": goals, "mappings": mappings}
            st.success("Settings saved.")
        return

    mappings = st.session_state.get("mappings") or {
        key: normalize_mapping(
            {**suggest_mapping(dataset.headers, SCHEMAS[key]), **settings["mappings"].get(key, {})},
            SCHEMAS[key],
        )
        for key, dataset in datasets.items()
    }
    today = datetime.date.today().isoformat()
    analysis = _cached_analysis(datasets, mappings, mode, custom_start, custom_end, goals, week_start, today)

    coverage = analysis["coverage"]
    if coverage is not None:
        st.sidebar.success(f"Data covers {coverage['start']:%Y-%m-%d} -> {coverage['end']:%Y-%m-%d}")

    if view == "Dashboard":
        render_dashboard(analysis, goals)
    elif view == "Agents":
        render_agents(analysis)
    elif view == "Data Health":
        render_data_health(analysis)


if __name__ == "__main__":
    main()
