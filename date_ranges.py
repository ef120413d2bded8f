"""Active date range resolution, dataset coverage and range filtering."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import pandas as pd

from parsing import end_of_day, parse_date_loose, parse_date_series, parse_input_date, start_of_day
from schemas import STATUS_ISSUED, date_column, normalize_status

LOGGER = logging.getLogger(__name__)

RANGE_MODES = ("all", "7d", "30d", "90d", "365d", "custom")
PRESET_DAYS = {"7d": 7, "30d": 30, "90d": 90, "365d": 365}

_RANGE_LABELS = {
    "all": "All Time",
    "7d": "Last 7 days",
    "30d": "Last 30 days",
    "90d": "Last 90 days",
    "365d": "Last year",
}


@dataclass(frozen=True)
class DateRange:
    """Inclusive window between two naive timestamps."""

    start: pd.Timestamp
    end: pd.Timestamp

    @property
    def days(self) -> int:
        return int((start_of_day(self.end) - start_of_day(self.start)).days) + 1

    def as_dict(self) -> dict[str, pd.Timestamp]:
        return {"start": self.start, "end": self.end}


def _parse_custom_bound(value) -> pd.Timestamp | None:
    return parse_input_date(value) or parse_date_loose(value)


def resolve_range(
    mode: str,
    custom_start: str = "",
    custom_end: str = "",
    today: pd.Timestamp | None = None,
) -> DateRange | None:
    """Resolve a range mode into a concrete window, or None for unbounded.

    A custom range with a missing or unparseable bound resolves to unbounded
    so a half-typed range never empties the dashboard.
    """
    mode = str(mode or "all").strip().lower()
    today_start = start_of_day(today if today is not None else pd.Timestamp.now())

    if mode == "all":
        return None

    if mode in PRESET_DAYS:
        start = today_start - pd.Timedelta(days=PRESET_DAYS[mode] - 1)
        return DateRange(start=start, end=end_of_day(today_start))

    if mode == "custom":
        start = _parse_custom_bound(custom_start)
        end = _parse_custom_bound(custom_end)
        if start is None or end is None:
            LOGGER.debug("Custom range incomplete (%r, %r); using all dates", custom_start, custom_end)
            return None
        if start > end:
            start, end = end, start
        return DateRange(start=start_of_day(start), end=end_of_day(end))

    LOGGER.debug("Unknown range mode %r; using all dates", mode)
    return None


def range_label(mode: str, active_range: DateRange | None) -> str:
    mode = str(mode or "all").strip().lower()
    if mode == "custom":
        if active_range is None:
            return "Custom"
        return f"{active_range.start:%Y-%m-%d} → {active_range.end:%Y-%m-%d}"
    return _RANGE_LABELS.get(mode, "All Time")


def parsed_dates(frame: pd.DataFrame, date_key: str = "date") -> pd.Series:
    """Parsed timestamps for a date field, reusing the normalizer's column when present."""
    column = date_column(date_key)
    if column in frame.columns:
        return pd.to_datetime(frame[column], errors="coerce")
    source = frame[date_key] if date_key in frame.columns else pd.Series("", index=frame.index)
    return parse_date_series(source)


def span_of_dates(dates: pd.Series) -> DateRange | None:
    """Day-clamped span of the valid timestamps in ``dates``."""
    valid = pd.to_datetime(dates, errors="coerce").dropna()
    if valid.empty:
        return None
    return DateRange(start=start_of_day(valid.min()), end=end_of_day(valid.max()))


def find_coverage(frame: pd.DataFrame, date_key: str = "date") -> DateRange | None:
    if frame is None or frame.empty:
        return None
    return span_of_dates(parsed_dates(frame, date_key))


def combined_coverage(*frames: pd.DataFrame) -> DateRange | None:
    """Union of each dataset's primary-date span; display only, never used to filter."""
    spans = [span for span in (find_coverage(frame) for frame in frames) if span is not None]
    if not spans:
        return None
    return DateRange(
        start=min(span.start for span in spans),
        end=max(span.end for span in spans),
    )


def quote_sale_effective_dates(frame: pd.DataFrame) -> pd.Series:
    """Issue date for issued rows (falling back to quote date), quote date otherwise."""
    quote_dates = parsed_dates(frame, "date")
    if frame.empty:
        return quote_dates
    issue_dates = parsed_dates(frame, "date_issued")
    status = frame["status"].map(normalize_status) if "status" in frame.columns else pd.Series("", index=frame.index)
    issued = status.eq(STATUS_ISSUED) & issue_dates.notna()
    return issue_dates.where(issued, quote_dates)


def _filter_by_dates(frame: pd.DataFrame, dates: pd.Series, active_range: DateRange | None) -> pd.DataFrame:
    if active_range is None:
        return frame
    mask = dates.notna() & (dates >= active_range.start) & (dates <= active_range.end)
    return frame.loc[mask].copy()


def filter_by_range(
    frame: pd.DataFrame,
    active_range: DateRange | None,
    date_key: str = "date",
) -> pd.DataFrame:
    """Keep rows whose date falls inside the inclusive range; unbounded keeps everything."""
    if active_range is None:
        return frame
    return _filter_by_dates(frame, parsed_dates(frame, date_key), active_range)


def filter_quote_sales_by_range(frame: pd.DataFrame, active_range: DateRange | None) -> pd.DataFrame:
    if active_range is None:
        return frame
    return _filter_by_dates(frame, quote_sale_effective_dates(frame), active_range)
