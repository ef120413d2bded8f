"""End-to-end analysis: raw uploads + mappings + range + goals -> every dashboard output."""

from __future__ import annotations

import logging
from typing import Any, Mapping

import pandas as pd

from analytics import (
    activity_funnel_series,
    activity_pace,
    agent_metrics,
    calculate_core_metrics,
    funnel_by_agent,
    issued_policy_series,
    issued_premium_series,
    lead_source_quote_activity,
    lead_source_roi,
    multiline_lob_series,
)
from data_health import compute_data_health
from date_ranges import (
    combined_coverage,
    filter_by_range,
    filter_quote_sales_by_range,
    quote_sale_effective_dates,
    range_label,
    resolve_range,
    span_of_dates,
)
from goals import DEFAULT_GOALS, GoalTargets
from insights import agent_insights
from parsing import RawDataset, normalize_rows
from schemas import ACTIVITY_SCHEMA, PAID_LEADS_SCHEMA, QUOTE_SALES_SCHEMA, SCHEMAS
from time_buckets import pick_granularity

LOGGER = logging.getLogger(__name__)


def _rows(dataset: Any) -> list[dict[str, Any]]:
    if dataset is None:
        return []
    if isinstance(dataset, RawDataset):
        return dataset.rows
    if isinstance(dataset, Mapping):
        return list(dataset.get("rows") or [])
    return list(dataset)


def normalize_datasets(
    datasets: Mapping[str, Any],
    mappings: Mapping[str, Mapping[str, str]],
) -> dict[str, pd.DataFrame]:
    """Normalize each uploaded dataset onto its canonical schema (unfiltered)."""
    return {
        key: normalize_rows(_rows(datasets.get(key)), (mappings or {}).get(key), schema)
        for key, schema in SCHEMAS.items()
    }


def build_analysis(
    datasets: Mapping[str, Any],
    mappings: Mapping[str, Mapping[str, str]],
    range_mode: str = "all",
    custom_start: str = "",
    custom_end: str = "",
    goals: GoalTargets = DEFAULT_GOALS,
    today: pd.Timestamp | None = None,
    week_start: str = "monday",
) -> dict[str, Any]:
    """Run every aggregation for one pass over the inputs."""
    normalized = normalize_datasets(datasets, mappings)
    activity_all = normalized[ACTIVITY_SCHEMA.key]
    quote_sales_all = normalized[QUOTE_SALES_SCHEMA.key]
    paid_leads_all = normalized[PAID_LEADS_SCHEMA.key]

    coverage = combined_coverage(activity_all, quote_sales_all, paid_leads_all)
    active_range = resolve_range(range_mode, custom_start, custom_end, today=today)

    activity = filter_by_range(activity_all, active_range)
    quote_sales = filter_quote_sales_by_range(quote_sales_all, active_range)
    paid_leads = filter_by_range(paid_leads_all, active_range)
    quotes_by_quote_date = filter_by_range(quote_sales_all, active_range)

    agent_rows = agent_metrics(activity, quote_sales)
    issued_span = span_of_dates(quote_sale_effective_dates(quote_sales))
    lob_granularity = pick_granularity(range_mode, active_range, issued_span)

    LOGGER.info(
        "Analysis over %s: %s activity, %s quote/sale, %s paid-lead rows",
        range_label(range_mode, active_range),
        len(activity),
        len(quote_sales),
        len(paid_leads),
    )

    return {
        "coverage": coverage.as_dict() if coverage is not None else None,
        "activeRange": active_range,
        "rangeLabel": range_label(range_mode, active_range),
        "filtered": {
            ACTIVITY_SCHEMA.key: activity,
            QUOTE_SALES_SCHEMA.key: quote_sales,
            PAID_LEADS_SCHEMA.key: paid_leads,
        },
        "coreMetrics": calculate_core_metrics(activity, quote_sales, paid_leads),
        "dataHealth": compute_data_health(activity, quote_sales, paid_leads),
        "agentRows": agent_rows,
        "funnelData": funnel_by_agent(activity, quote_sales),
        "roiRows": lead_source_roi(quote_sales, paid_leads),
        "issuedPremiumSeries": issued_premium_series(quote_sales, range_mode, active_range, week_start),
        "issuedPolicySeries": issued_policy_series(quote_sales, range_mode, active_range, week_start),
        "multilineLobSeries": multiline_lob_series(
            quote_sales,
            granularity=lob_granularity,
            active_range=active_range,
            week_start=week_start,
        ),
        "activityFunnelSeries": activity_funnel_series(activity, range_mode, active_range, week_start),
        "leadSourceQuoteActivity": lead_source_quote_activity(quotes_by_quote_date),
        "agentInsights": agent_insights(agent_rows, goals),
        "activityPace": activity_pace(activity, goals),
    }
