import io
import math

import pandas as pd
import pytest

from parsing import (
    end_of_day,
    in_range,
    load_raw_dataset,
    normalize_rows,
    parse_date_loose,
    parse_date_series,
    parse_input_date,
    parse_number_or_nan,
    start_of_day,
    to_number,
)
from schemas import ACTIVITY_SCHEMA, QUOTE_SALES_SCHEMA


class DummyUpload(io.BytesIO):
    def __init__(self, name: str, content: str) -> None:
        super().__init__(content.encode("utf-8"))
        self.name = name


def test_parse_date_loose_handles_iso_and_slash_formats() -> None:
    assert parse_date_loose("2025-01-02") == pd.Timestamp("2025-01-02")
    assert parse_date_loose("1/2/2025") == pd.Timestamp("2025-01-02")
    assert parse_date_loose("1/2/25") == pd.Timestamp("2025-01-02")


def test_parse_date_loose_reads_slash_dates_month_first_only() -> None:
    assert parse_date_loose("13/2/2025") is None
    assert parse_date_loose("2/13/2025") == pd.Timestamp("2025-02-13")
    assert parse_date_loose("2/30/2025") is None


def test_parse_date_loose_returns_none_for_garbage() -> None:
    assert parse_date_loose("") is None
    assert parse_date_loose(None) is None
    assert parse_date_loose("not a date") is None


def test_parse_date_loose_drops_timezone() -> None:
    parsed = parse_date_loose("2025-01-02T10:00:00+02:00")
    assert parsed.tzinfo is None
    assert parsed == pd.Timestamp("2025-01-02 08:00:00")


def test_parse_date_series_matches_scalar_parser() -> None:
    values = pd.Series(["1/2/2025", "", "junk", "2025-03-04", "1/2/2025"])
    parsed = parse_date_series(values)
    for raw, value in zip(values, parsed):
        expected = parse_date_loose(raw)
        if expected is None:
            assert pd.isna(value)
        else:
            assert value == expected


def test_parse_input_date_is_strict() -> None:
    assert parse_input_date("2025-02-03") == pd.Timestamp("2025-02-03")
    assert parse_input_date("2/3/2025") is None
    assert parse_input_date("2025-02-30") is None


def test_day_clamps_and_in_range() -> None:
    moment = pd.Timestamp("2025-01-02 13:45")
    assert start_of_day(moment) == pd.Timestamp("2025-01-02")
    assert end_of_day(moment) == pd.Timestamp("2025-01-02 23:59:59.999")
    assert in_range(moment, start_of_day(moment), end_of_day(moment))
    assert not in_range(None, start_of_day(moment), end_of_day(moment))
    assert not in_range(pd.NaT, start_of_day(moment), end_of_day(moment))


def test_number_parsing_strips_currency() -> None:
    assert to_number("$1,200.50") == 1200.5
    assert to_number(" 7 ") == 7.0
    assert to_number("abc") == 0.0
    assert to_number("") == 0.0
    assert math.isnan(parse_number_or_nan("abc"))
    assert math.isnan(parse_number_or_nan(""))
    assert parse_number_or_nan("-5") == -5.0


def test_load_raw_dataset_keeps_text_and_skips_blank_rows() -> None:
    upload = DummyUpload(
        "activity.csv",
        "Agent , Date,Dials\nJane,1/2/2025,0100\n,,\nBob,1/3/2025,\n",
    )
    dataset = load_raw_dataset(upload)

    assert dataset.headers == ["Agent", "Date", "Dials"]
    assert dataset.row_count == 2
    assert dataset.rows[0]["Dials"] == "0100"
    assert dataset.rows[1]["Dials"] == ""


def test_load_raw_dataset_rejects_other_file_types() -> None:
    with pytest.raises(ValueError, match="Unsupported file type"):
        load_raw_dataset(DummyUpload("activity.xlsx", "a,b\n1,2\n"))


def test_normalize_rows_projects_mapping_and_keeps_raw_text() -> None:
    rows = [
        {"Agent": "Jane", "Day": "1/2/2025", "Calls": "$1,000", "Talks": "x"},
        {"Agent": "", "Day": "bad", "Calls": "5", "Talks": "2"},
    ]
    mapping = {"agent_name": "Agent", "date": "Day", "dials_made": "Calls", "contacts_made": "Talks"}

    frame = normalize_rows(rows, mapping, ACTIVITY_SCHEMA)

    assert list(frame.columns[: len(ACTIVITY_SCHEMA.fields)]) == ACTIVITY_SCHEMA.field_keys
    assert frame.loc[0, "dials_made"] == 1000.0
    assert frame.loc[0, "dials_made_raw"] == "$1,000"
    assert frame.loc[0, "contacts_made"] == 0.0
    assert frame.loc[0, "contacts_made_raw"] == "x"
    assert frame.loc[0, "date_dt"] == pd.Timestamp("2025-01-02")
    assert pd.isna(frame.loc[1, "date_dt"])
    # unmapped fields are blank for every row
    assert frame["total_sales"].tolist() == [0.0, 0.0]
    assert frame["total_sales_raw"].tolist() == ["", ""]


def test_normalize_rows_with_no_rows_has_schema_columns() -> None:
    frame = normalize_rows([], {}, QUOTE_SALES_SCHEMA)
    assert frame.empty
    assert "issued_premium_raw" in frame.columns
    assert "date_issued_dt" in frame.columns
