"""CSV loading, lenient cell parsing and row normalization helpers."""

from __future__ import annotations

import logging
import math
import re
import warnings
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

import pandas as pd

from schemas import DatasetSchema, date_column, raw_column

LOGGER = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".csv",)

_SLASH_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2,4})$")
_NUMBER_NOISE = re.compile(r"[\s$,€£¥]")


@dataclass
class RawDataset:
    """One uploaded export: original headers plus rows keyed by those headers."""

    file_name: str
    headers: list[str] = field(default_factory=list)
    rows: list[dict[str, str]] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)


def _safe_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value).strip()


def _generic_date(text: str) -> pd.Timestamp | None:
    with warnings.catch_warnings():
        # dateutil fallbacks warn about inferred formats; the value is still usable.
        warnings.simplefilter("ignore")
        try:
            parsed = pd.to_datetime(text, errors="coerce", utc=True)
        except (ValueError, TypeError, OverflowError):
            return None
    if parsed is None or pd.isna(parsed):
        return None
    return parsed.tz_localize(None)


def _slash_date(text: str) -> pd.Timestamp | None:
    match = _SLASH_DATE.match(text)
    if not match:
        return None
    month, day, year = (int(part) for part in match.groups())
    if year < 100:
        year += 2000
    try:
        return pd.Timestamp(year=year, month=month, day=day)
    except (ValueError, OverflowError):
        return None


def parse_date_loose(value: Any) -> pd.Timestamp | None:
    """Parse ISO-ish, locale or M/D/YY(YY) text into a naive timestamp, else None."""
    text = _safe_str(value)
    if not text:
        return None
    # slash dates are always month first
    if _SLASH_DATE.match(text):
        return _slash_date(text)
    return _generic_date(text)


def parse_date_series(values: pd.Series) -> pd.Series:
    """Vectorized parse_date_loose; unparseable cells become NaT."""
    text = values.map(_safe_str)
    lookup = {value: parse_date_loose(value) for value in text.unique()}
    return pd.to_datetime(text.map(lookup), errors="coerce")


def parse_input_date(value: Any) -> pd.Timestamp | None:
    """Strict YYYY-MM-DD parser used for date inputs."""
    text = _safe_str(value)
    match = re.fullmatch(r"(\d{4})-(\d{2})-(\d{2})", text)
    if not match:
        return None
    year, month, day = (int(part) for part in match.groups())
    try:
        return pd.Timestamp(year=year, month=month, day=day)
    except ValueError:
        return None


def start_of_day(value: pd.Timestamp) -> pd.Timestamp:
    return pd.Timestamp(value).normalize()


def end_of_day(value: pd.Timestamp) -> pd.Timestamp:
    return start_of_day(value) + pd.Timedelta(days=1) - pd.Timedelta(milliseconds=1)


def in_range(value: pd.Timestamp | None, start: pd.Timestamp | None, end: pd.Timestamp | None) -> bool:
    """Inclusive range check; missing dates never match."""
    if value is None or start is None or end is None or pd.isna(value):
        return False
    return start <= value <= end


def parse_number_or_nan(value: Any) -> float:
    """Currency-tolerant number parse returning NaN for blank or non-numeric text."""
    text = _NUMBER_NOISE.sub("", _safe_str(value))
    if not text or "_" in text:
        return float("nan")
    try:
        number = float(text)
    except ValueError:
        return float("nan")
    if not math.isfinite(number):
        return float("nan")
    return number


def to_number(value: Any) -> float:
    """Lenient numeric coercion used for aggregation: bad input counts as zero."""
    number = parse_number_or_nan(value)
    return 0.0 if math.isnan(number) else number


def coerce_numeric_series(values: pd.Series) -> pd.Series:
    return values.map(to_number).astype(float)


def load_raw_dataset(uploaded_file: Any) -> RawDataset:
    """Read an uploaded CSV export with every cell kept as text."""
    name = str(getattr(uploaded_file, "name", ""))
    if not name.lower().endswith(SUPPORTED_EXTENSIONS):
        raise ValueError(f"Unsupported file type: {name or '<unknown>'}. Supported: csv.")

    df = pd.read_csv(
        uploaded_file,
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
        encoding="utf-8-sig",
    )
    df.columns = [str(col).strip() for col in df.columns]
    blank = df.apply(lambda col: col.astype(str).str.strip().eq("")).all(axis=1)
    df = df.loc[~blank].reset_index(drop=True)

    return RawDataset(
        file_name=name,
        headers=list(df.columns),
        rows=df.to_dict(orient="records"),
    )


def normalize_rows(
    rows: Iterable[Mapping[str, Any]],
    mapping: Mapping[str, str] | None,
    schema: DatasetSchema,
) -> pd.DataFrame:
    """Project raw rows onto the schema's canonical fields.

    Unmapped fields stay blank for every row. Numeric fields are coerced with
    ``to_number`` and keep their original text in ``<field>_raw``; date fields
    get a parsed ``<field>_dt`` column.
    """
    mapping = dict(mapping or {})
    columns = {spec.key: _safe_str(mapping.get(spec.key)) for spec in schema.fields}

    records: list[dict[str, str]] = []
    for row in rows or []:
        records.append(
            {key: (_safe_str(row.get(column)) if column else "") for key, column in columns.items()}
        )

    frame = pd.DataFrame(records, columns=schema.field_keys, dtype=object)
    for key in schema.numeric_keys:
        frame[raw_column(key)] = frame[key].astype(object)
        frame[key] = coerce_numeric_series(frame[key])
    for key in schema.date_keys:
        frame[date_column(key)] = parse_date_series(frame[key])

    unmapped = [key for key, column in columns.items() if not column]
    if unmapped:
        LOGGER.debug("%s: unmapped fields %s treated as blank", schema.key, unmapped)
    LOGGER.debug("Normalized %s rows for %s", len(frame), schema.key)
    return frame
