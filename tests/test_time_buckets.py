import pandas as pd
import pytest

from date_ranges import DateRange
from time_buckets import bucket_index_for, build_buckets, days_between, pick_granularity, start_of_week


def test_day_buckets_are_contiguous_and_inclusive() -> None:
    buckets = build_buckets(pd.Timestamp("2025-01-30 10:00"), pd.Timestamp("2025-02-02 08:00"), "day")

    assert [bucket["key"] for bucket in buckets] == ["2025-01-30", "2025-01-31", "2025-02-01", "2025-02-02"]
    assert buckets[0]["label"] == "Jan 30, 2025"
    for current, following in zip(buckets, buckets[1:]):
        assert following["start"] - current["end"] == pd.Timedelta(milliseconds=1)


def test_week_buckets_start_on_week_boundary() -> None:
    buckets = build_buckets(pd.Timestamp("2025-01-01"), pd.Timestamp("2025-01-20"), "week")

    assert len(buckets) == 4
    assert buckets[0]["label"] == "Week of Dec 30, 2024"
    assert buckets[0]["start"] == pd.Timestamp("2024-12-30")
    assert buckets[-1]["end"] == pd.Timestamp("2025-01-26 23:59:59.999")


def test_sunday_weeks() -> None:
    assert start_of_week(pd.Timestamp("2025-01-01"), "sunday") == pd.Timestamp("2024-12-29")
    assert start_of_week(pd.Timestamp("2024-12-29 18:00"), "sunday") == pd.Timestamp("2024-12-29")
    assert start_of_week(pd.Timestamp("2024-12-29"), "monday") == pd.Timestamp("2024-12-23")


def test_month_buckets_cover_partial_months() -> None:
    buckets = build_buckets(pd.Timestamp("2024-11-15"), pd.Timestamp("2025-01-03"), "month")

    assert [bucket["label"] for bucket in buckets] == ["Nov 2024", "Dec 2024", "Jan 2025"]
    assert buckets[1]["end"] == pd.Timestamp("2024-12-31 23:59:59.999")


def test_empty_or_inverted_span_has_no_buckets() -> None:
    assert build_buckets(None, pd.Timestamp("2025-01-01"), "day") == []
    assert build_buckets(pd.Timestamp("2025-02-01"), pd.Timestamp("2025-01-01"), "day") == []


def test_bucket_index_for_each_granularity() -> None:
    start = pd.Timestamp("2025-01-01")
    assert bucket_index_for(pd.Timestamp("2025-01-03 23:00"), start, "day") == 2
    assert bucket_index_for(pd.Timestamp("2025-01-06"), start, "week") == 1
    assert bucket_index_for(pd.Timestamp("2025-03-31"), start, "month") == 2


def test_bucket_index_for_out_of_span_is_negative() -> None:
    start = pd.Timestamp("2025-01-01")
    assert bucket_index_for(None, start, "day") == -1
    assert bucket_index_for(pd.NaT, start, "day") == -1
    assert bucket_index_for(pd.Timestamp("2024-12-31"), start, "day") == -1
    assert bucket_index_for(pd.Timestamp("2025-01-10"), start, "day", count=5) == -1


def test_unsupported_options_raise() -> None:
    with pytest.raises(ValueError, match="Unsupported granularity"):
        build_buckets(pd.Timestamp("2025-01-01"), pd.Timestamp("2025-01-02"), "quarter")
    with pytest.raises(ValueError, match="Unsupported week start"):
        start_of_week(pd.Timestamp("2025-01-01"), "friday")


def test_pick_granularity_from_mode_and_span() -> None:
    assert pick_granularity("7d") == "day"
    assert pick_granularity("30d") == "week"
    assert pick_granularity("365d") == "month"
    assert pick_granularity("all") == "month"

    short = DateRange(pd.Timestamp("2025-01-01"), pd.Timestamp("2025-01-10"))
    medium = DateRange(pd.Timestamp("2025-01-01"), pd.Timestamp("2025-03-01"))
    long = DateRange(pd.Timestamp("2024-01-01"), pd.Timestamp("2025-03-01"))
    assert pick_granularity("custom", short) == "day"
    assert pick_granularity("custom", medium) == "week"
    assert pick_granularity("all", None, long) == "month"


def test_days_between_is_inclusive() -> None:
    assert days_between(pd.Timestamp("2025-01-01 20:00"), pd.Timestamp("2025-01-01 01:00")) == 1
    assert days_between(pd.Timestamp("2025-01-01"), pd.Timestamp("2025-01-31")) == 31
    assert days_between(pd.Timestamp("2025-02-01"), pd.Timestamp("2025-01-01")) == 0
