"""Column mapping suggestions and validation for uploaded exports."""

from __future__ import annotations

import re
from collections import Counter
from typing import Iterable, Mapping

import pandas as pd

from schemas import SYNONYMS, DatasetSchema

MIN_SUGGESTION_SCORE = 60

_SEPARATORS = re.compile(r"[_-]+")
_WHITESPACE = re.compile(r"\s+")


def normalize_header(text: object) -> str:
    """Lowercase a header and fold ``_``/``-`` and runs of whitespace into single spaces."""
    value = str(text if text is not None else "").strip().lower()
    value = _SEPARATORS.sub(" ", value)
    return _WHITESPACE.sub(" ", value).strip()


def tokenize_header(text: object) -> list[str]:
    return [token for token in normalize_header(text).split(" ") if token]


def normalize_mapping(mapping: Mapping[str, str] | None, schema: DatasetSchema) -> dict[str, str]:
    """Mapping restricted to the schema's fields, with blank strings for unmapped ones."""
    mapping = mapping or {}
    out: dict[str, str] = {}
    for key in schema.field_keys:
        value = mapping.get(key)
        out[key] = str(value).strip() if value is not None else ""
    return out


def score_header_match(header: str, field_key: str, field_label: str = "") -> int:
    """Score how well a CSV header names a canonical field (0 means no match)."""
    text = normalize_header(header)
    if not text:
        return 0

    if text == normalize_header(field_key):
        return 100

    for synonym in SYNONYMS.get(field_key, []):
        candidate = normalize_header(synonym)
        if text == candidate:
            return 95
        if candidate in text:
            return 85

    label_tokens = set(tokenize_header(field_label or field_key))
    overlap = sum(1 for token in tokenize_header(text) if token in label_tokens)
    if overlap > 0:
        return 60 + overlap * 8

    if "date" in text and field_key == "date":
        return 70
    if ("zip" in text or "postal" in text) and field_key == "zipcode":
        return 70
    if "premium" in text and field_key in ("written_premium", "issued_premium"):
        return 65
    return 0


def suggest_mapping(headers: Iterable[str], schema: DatasetSchema) -> dict[str, str]:
    """Pick the best-scoring header per field in schema order; each header is used at most once."""
    headers = list(headers or [])
    suggestions: dict[str, str] = {}
    used: set[str] = set()

    for spec in schema.fields:
        best_header = ""
        best_score = 0
        for header in headers:
            score = score_header_match(header, spec.key, spec.label)
            if score > best_score:
                best_header, best_score = header, score

        if best_score >= MIN_SUGGESTION_SCORE and best_header and best_header not in used:
            suggestions[spec.key] = best_header
            used.add(best_header)
        else:
            suggestions[spec.key] = ""
    return suggestions


def mapping_validation(
    mapping: Mapping[str, str] | None,
    schema: DatasetSchema,
    headers: Iterable[str] | None = None,
) -> pd.DataFrame:
    """Per-field mapping status table for the import page."""
    normalized = normalize_mapping(mapping, schema)
    available = set(headers) if headers is not None else None
    uses = Counter(value for value in normalized.values() if value)

    rows = []
    for spec in schema.fields:
        column = normalized[spec.key]
        if not column:
            status = "Unmapped"
        elif available is not None and column not in available:
            status = "Missing column"
        elif uses[column] > 1:
            status = "Shared column"
        else:
            status = "Mapped"
        rows.append({"Field": spec.label, "Key": spec.key, "Column": column, "Status": status})
    return pd.DataFrame(rows, columns=["Field", "Key", "Column", "Status"])
