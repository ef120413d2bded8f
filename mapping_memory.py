"""Persistence helpers for saved settings (goal targets and column mappings)."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from goals import DEFAULT_GOALS, GoalTargets
from schemas import SCHEMAS

LOGGER = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = "data/agency_pulse_settings.json"


def _normalize_str_dict(raw: Any) -> dict[str, str]:
    if not isinstance(raw, dict):
        return {}
    out: dict[str, str] = {}
    for key, value in raw.items():
        key_text = str(key).strip()
        value_text = str(value).strip() if value is not None else ""
        if key_text and value_text:
            out[key_text] = value_text
    return out


def _normalize_mappings(raw: Any) -> dict[str, dict[str, str]]:
    if not isinstance(raw, dict):
        return {}
    return {key: _normalize_str_dict(raw.get(key)) for key in SCHEMAS if key in raw}


def _normalize_goals(raw: Any) -> GoalTargets:
    if not isinstance(raw, dict):
        return DEFAULT_GOALS
    numeric: dict[str, float] = {}
    for key, value in raw.items():
        try:
            numeric[str(key)] = float(value)
        except (TypeError, ValueError):
            LOGGER.debug("Ignoring non-numeric goal %s=%r", key, value)
    return GoalTargets.from_dict(numeric)


def load_settings(path: str = DEFAULT_SETTINGS_PATH) -> dict[str, Any]:
    """Load saved goals and mappings from disk; defaults when the file is missing."""
    target = Path(path).expanduser()
    if not target.exists():
        return {"goals": DEFAULT_GOALS, "mappings": {}}
    payload = json.loads(target.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        payload = {}
    return {
        "goals": _normalize_goals(payload.get("goals")),
        "mappings": _normalize_mappings(payload.get("mappings")),
    }


def save_settings(
    path: str,
    goals: GoalTargets,
    mappings: dict[str, dict[str, str]],
) -> Path:
    """Save settings to disk and return saved path."""
    target = Path(path).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "goals": goals.to_dict(),
        "mappings": _normalize_mappings(mappings),
    }
    target.write_text(json.dumps(payload, indent=2, ensure_ascii=True), encoding="utf-8")
    LOGGER.info("Saved settings to %s", target)
    return target
