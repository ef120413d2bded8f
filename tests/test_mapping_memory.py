import json
from pathlib import Path

import pytest

from goals import DEFAULT_GOALS, GoalTargets
from mapping_memory import load_settings, save_settings


def test_settings_roundtrip(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "settings.json"
    goals = GoalTargets(contact_rate_target_pct=12, calls_per_day_target=180)
    mappings = {
        "activity": {"agent_name": "Agent", "date": "Date", "dials_made": ""},
        "quotes_sales": {"status": "Stage"},
    }

    saved = save_settings(str(target), goals, mappings)
    loaded = load_settings(str(target))

    assert saved == target
    assert loaded["goals"] == goals
    assert loaded["mappings"]["activity"] == {"agent_name": "Agent", "date": "Date"}
    assert loaded["mappings"]["quotes_sales"] == {"status": "Stage"}


def test_settings_missing_file_returns_defaults(tmp_path: Path) -> None:
    loaded = load_settings(str(tmp_path / "missing.json"))
    assert loaded["goals"] == DEFAULT_GOALS
    assert loaded["mappings"] == {}


def test_settings_ignore_unknown_datasets_and_bad_goals(tmp_path: Path) -> None:
    target = tmp_path / "settings.json"
    target.write_text(
        json.dumps(
            {
                "goals": {"issue_rate_target_pct": "oops", "quote_rate_target_pct": 250},
                "mappings": {"transactions": {"x": "y"}, "paid_leads": {"lead_cost": "CPL"}},
            }
        ),
        encoding="utf-8",
    )

    loaded = load_settings(str(target))

    assert loaded["goals"].issue_rate_target_pct == DEFAULT_GOALS.issue_rate_target_pct
    assert loaded["goals"].quote_rate_target_pct == 100.0
    assert loaded["mappings"] == {"paid_leads": {"lead_cost": "CPL"}}


def test_settings_invalid_json_raises(tmp_path: Path) -> None:
    target = tmp_path / "settings.json"
    target.write_text("{not json", encoding="utf-8")

    with pytest.raises(ValueError):
        load_settings(str(target))
