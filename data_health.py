"""Data health diagnostics for the normalized agency datasets."""

from __future__ import annotations

import logging

import pandas as pd

from analytics import paid_sources_without_quotes
from date_ranges import parsed_dates
from parsing import parse_number_or_nan
from schemas import STATUS_ISSUED, STATUS_QUOTED, VALID_STATUSES, normalize_status, raw_column

LOGGER = logging.getLogger(__name__)

ACTIVITY_NUMERIC_FIELDS = ("dials_made", "contacts_made", "households_quoted", "total_quotes", "total_sales")

_DATASET_LABELS = {
    "activity": "Activity Tracker",
    "quotesSales": "Quotes & Sales Log",
    "paidLeads": "Paid Lead Source Info",
    "cross": "Cross-file",
}

_CHECK_NOTES = {
    ("activity", "missingDate"): "Rows without a parseable date are left out of date filters and trends.",
    ("activity", "missingAgent"): "Counted under the Unknown agent.",
    ("activity", "negativeCounts"): "Negative activity counts reduce agent totals.",
    ("activity", "nonNumericCounts"): "Non-numeric activity cells count as zero.",
    ("quotesSales", "missingStatus"): "Rows without a status are excluded from conversion and ROI.",
    ("quotesSales", "badStatus"): "Only Quoted and Issued statuses are counted.",
    ("quotesSales", "issuedMissingIssueDate"): "Issued rows fall back to the quote date.",
    ("quotesSales", "issuedMissingIssuedPremium"): "Issued rows without premium add nothing to issued premium.",
    ("quotesSales", "nonNumericPremiums"): "Non-numeric premiums count as zero.",
    ("paidLeads", "nonNumeric"): "Non-numeric lead counts or costs count as zero spend.",
    ("paidLeads", "zeroLeadCost"): "Zero-cost rows lower spend per lead.",
    ("cross", "quotesDelta"): "Activity-reported quotes minus quoted + issued rows in the log.",
    ("cross", "salesDelta"): "Activity-reported sales minus issued rows in the log.",
    ("cross", "paidSourcesWithNoQuoteSales"): "Paid sources that never appear in the quote log.",
}


def _blank(frame: pd.DataFrame, column: str) -> pd.Series:
    if column not in frame.columns:
        return pd.Series(True, index=frame.index)
    return frame[column].fillna("").astype(str).str.strip().eq("")


def _missing_date(frame: pd.DataFrame, column: str = "date") -> pd.Series:
    return parsed_dates(frame, column).isna()


def _raw_numbers(frame: pd.DataFrame, column: str) -> tuple[pd.Series, pd.Series]:
    """Blank mask and parsed values (NaN when not numeric) for a numeric field's original text."""
    source = raw_column(column) if raw_column(column) in frame.columns else column
    blank = _blank(frame, source)
    if source not in frame.columns:
        return blank, pd.Series(float("nan"), index=frame.index)
    return blank, frame[source].map(parse_number_or_nan).astype(float)


def _activity_health(activity: pd.DataFrame) -> dict[str, int]:
    negative = 0
    non_numeric = 0
    for column in ACTIVITY_NUMERIC_FIELDS:
        blank, values = _raw_numbers(activity, column)
        non_numeric += int((~blank & values.isna()).sum())
        negative += int((~blank & (values < 0)).sum())
    return {
        "totalRows": int(len(activity)),
        "missingDate": int(_missing_date(activity).sum()),
        "missingAgent": int(_blank(activity, "agent_name").sum()),
        "negativeCounts": negative,
        "nonNumericCounts": non_numeric,
    }


def _quote_sales_health(quote_sales: pd.DataFrame) -> dict[str, int]:
    statuses = (
        quote_sales["status"].map(normalize_status)
        if "status" in quote_sales.columns
        else pd.Series("", index=quote_sales.index, dtype=object)
    )
    issued = statuses.eq(STATUS_ISSUED)
    missing_status = statuses.eq("")

    written_blank, written = _raw_numbers(quote_sales, "written_premium")
    issued_blank, issued_values = _raw_numbers(quote_sales, "issued_premium")

    non_numeric = (~written_blank & written.isna()) | (issued & ~issued_blank & issued_values.isna())
    negative = int((~written_blank & (written < 0)).sum()) + int((issued & ~issued_blank & (issued_values < 0)).sum())

    return {
        "totalRows": int(len(quote_sales)),
        "missingDate": int(_missing_date(quote_sales).sum()),
        "missingAgent": int(_blank(quote_sales, "agent_name").sum()),
        "missingStatus": int(missing_status.sum()),
        "badStatus": int((~missing_status & ~statuses.isin(VALID_STATUSES)).sum()),
        "issuedMissingIssueDate": int((issued & _missing_date(quote_sales, "date_issued")).sum()),
        "issuedMissingIssuedPremium": int((issued & issued_blank).sum()),
        "missingWrittenPremium": int(written_blank.sum()),
        "nonNumericPremiums": int(non_numeric.sum()),
        "negativePremiums": negative,
        "missingLeadSource": int(_blank(quote_sales, "lead_source").sum()),
        "missingZip": int(_blank(quote_sales, "zipcode").sum()),
    }


def _paid_leads_health(paid_leads: pd.DataFrame) -> dict[str, int]:
    count_blank, counts = _raw_numbers(paid_leads, "lead_count")
    cost_blank, costs = _raw_numbers(paid_leads, "lead_cost")

    non_numeric = int((~count_blank & counts.isna()).sum()) + int((~cost_blank & costs.isna()).sum())
    negative = int((~count_blank & (counts < 0)).sum()) + int((~cost_blank & (costs < 0)).sum())

    return {
        "totalRows": int(len(paid_leads)),
        "missingDate": int(_missing_date(paid_leads).sum()),
        "missingLeadSource": int(_blank(paid_leads, "lead_source").sum()),
        "missingLeadCount": int(count_blank.sum()),
        "missingLeadCost": int(cost_blank.sum()),
        "nonNumeric": non_numeric,
        "negative": negative,
        "zeroLeadCount": int((~count_blank & counts.eq(0)).sum()),
        "zeroLeadCost": int((~cost_blank & costs.eq(0)).sum()),
    }


def _activity_total(activity: pd.DataFrame, column: str) -> float:
    if column not in activity.columns:
        return 0.0
    _, values = _raw_numbers(activity, column)
    return float(values.fillna(0.0).sum())


def _cross_health(activity: pd.DataFrame, quote_sales: pd.DataFrame, paid_leads: pd.DataFrame) -> dict[str, float]:
    statuses = (
        quote_sales["status"].map(normalize_status)
        if "status" in quote_sales.columns
        else pd.Series("", index=quote_sales.index, dtype=object)
    )
    log_issued = int(statuses.eq(STATUS_ISSUED).sum())
    log_quoted_or_issued = int(statuses.eq(STATUS_QUOTED).sum()) + log_issued
    activity_quotes = _activity_total(activity, "total_quotes")
    activity_sales = _activity_total(activity, "total_sales")

    cross: dict[str, float] = {
        "activityQuotesTotal": activity_quotes,
        "logQuotedOrIssued": log_quoted_or_issued,
        "quotesDelta": int(round(activity_quotes - log_quoted_or_issued)),
        "activitySalesTotal": activity_sales,
        "logIssued": log_issued,
        "salesDelta": int(round(activity_sales - log_issued)),
    }
    cross.update(paid_sources_without_quotes(quote_sales, paid_leads))
    return cross


def compute_data_health(
    activity: pd.DataFrame,
    quote_sales: pd.DataFrame,
    paid_leads: pd.DataFrame,
) -> dict[str, dict[str, float]]:
    """Per-dataset and cross-file diagnostic counts. Never blocks aggregation."""
    health = {
        "activity": _activity_health(activity),
        "quotesSales": _quote_sales_health(quote_sales),
        "paidLeads": _paid_leads_health(paid_leads),
        "cross": _cross_health(activity, quote_sales, paid_leads),
    }
    LOGGER.debug(
        "Data health: %s activity, %s quote/sale, %s paid-lead rows",
        health["activity"]["totalRows"],
        health["quotesSales"]["totalRows"],
        health["paidLeads"]["totalRows"],
    )
    return health


def health_report(health: dict[str, dict[str, float]]) -> pd.DataFrame:
    """Tabular health report for display."""
    rows = []
    for dataset, checks in health.items():
        for check, count in checks.items():
            rows.append(
                (
                    _DATASET_LABELS.get(dataset, dataset),
                    check,
                    float(count),
                    _CHECK_NOTES.get((dataset, check), ""),
                )
            )
    return pd.DataFrame(rows, columns=["Dataset", "Check", "Count", "Note"])
