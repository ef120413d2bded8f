"""Contiguous day/week/month buckets for time series charts."""

from __future__ import annotations

import pandas as pd

from parsing import end_of_day, start_of_day

GRANULARITIES = ("day", "week", "month")
WEEK_STARTS = ("monday", "sunday")

_MODE_GRANULARITY = {"7d": "day", "30d": "week", "90d": "week", "365d": "month"}


def _check_granularity(granularity: str) -> None:
    if granularity not in GRANULARITIES:
        raise ValueError(f"Unsupported granularity: {granularity}")


def _check_week_start(week_start: str) -> None:
    if week_start not in WEEK_STARTS:
        raise ValueError(f"Unsupported week start: {week_start}")


def _readable(day: pd.Timestamp) -> str:
    return f"{day:%b} {day.day}, {day.year}"


def start_of_week(value: pd.Timestamp, week_start: str = "monday") -> pd.Timestamp:
    _check_week_start(week_start)
    day = start_of_day(value)
    offset = day.dayofweek if week_start == "monday" else (day.dayofweek + 1) % 7
    return day - pd.Timedelta(days=offset)


def _month_start(value: pd.Timestamp) -> pd.Timestamp:
    return pd.Timestamp(year=value.year, month=value.month, day=1)


def build_buckets(
    start: pd.Timestamp,
    end: pd.Timestamp,
    granularity: str,
    week_start: str = "monday",
) -> list[dict]:
    """Gap-free buckets covering ``[start, end]``, empty ones included."""
    _check_granularity(granularity)
    _check_week_start(week_start)
    if start is None or end is None or pd.isna(start) or pd.isna(end) or start > end:
        return []

    last_day = start_of_day(end)
    buckets: list[dict] = []

    if granularity == "day":
        for day in pd.date_range(start_of_day(start), last_day, freq="D"):
            buckets.append(
                {"key": f"{day:%Y-%m-%d}", "label": _readable(day), "start": day, "end": end_of_day(day)}
            )
        return buckets

    if granularity == "week":
        cursor = start_of_week(start, week_start)
        while cursor <= last_day:
            buckets.append(
                {
                    "key": f"{cursor:%Y-%m-%d}",
                    "label": f"Week of {_readable(cursor)}",
                    "start": cursor,
                    "end": end_of_day(cursor + pd.Timedelta(days=6)),
                }
            )
            cursor = cursor + pd.Timedelta(days=7)
        return buckets

    cursor = _month_start(start)
    while cursor <= _month_start(last_day):
        following = cursor + pd.DateOffset(months=1)
        buckets.append(
            {
                "key": f"{cursor:%Y-%m}",
                "label": f"{cursor:%b %Y}",
                "start": cursor,
                "end": end_of_day(following - pd.Timedelta(days=1)),
            }
        )
        cursor = following
    return buckets


def bucket_index_for(
    value: pd.Timestamp | None,
    start: pd.Timestamp,
    granularity: str,
    week_start: str = "monday",
    count: int | None = None,
) -> int:
    """0-based bucket index of ``value`` relative to the first bucket start.

    Returns -1 for missing dates, dates before the first bucket and, when
    ``count`` is given, dates past the last bucket.
    """
    _check_granularity(granularity)
    if value is None or start is None or pd.isna(value) or pd.isna(start):
        return -1

    day = start_of_day(value)
    if granularity == "day":
        index = (day - start_of_day(start)).days
    elif granularity == "week":
        index = (day - start_of_week(start, week_start)).days // 7
    else:
        index = (day.year - start.year) * 12 + (day.month - start.month)

    if index < 0 or (count is not None and index >= count):
        return -1
    return int(index)


def days_between(start: pd.Timestamp, end: pd.Timestamp) -> int:
    """Inclusive calendar-day count, never negative."""
    return max(0, int((start_of_day(end) - start_of_day(start)).days) + 1)


def pick_granularity(mode: str, active_range=None, fallback_range=None) -> str:
    """Choose a bucket size from the range mode, else from the span length."""
    mode = str(mode or "").strip().lower()
    if mode in _MODE_GRANULARITY:
        return _MODE_GRANULARITY[mode]

    span = active_range or fallback_range
    if span is None:
        return "month"
    days = days_between(span.start, span.end)
    if days <= 14:
        return "day"
    if days <= 90:
        return "week"
    return "month"
