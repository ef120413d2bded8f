import math

from goals import (
    DEFAULT_GOALS,
    GoalTargets,
    clamp_number,
    classify_against_target,
    classify_transition,
    target_pct_for_transition,
    worst_off_target_transition,
)


def _transition(source: str, target: str, rate: float, from_count: float = 100.0) -> dict:
    return {"from": source, "to": target, "rate": rate, "fromCount": from_count, "toCount": from_count * rate}


def test_clamp_number() -> None:
    assert clamp_number("12.5", 0.0, 100.0) == 12.5
    assert clamp_number(150, 0.0, 100.0) == 100.0
    assert clamp_number(-4, 0.0) == 0.0
    assert clamp_number("abc", 0.0) == 0.0
    assert clamp_number(None, 1.0) == 1.0
    assert clamp_number(math.nan, 0.0) == 0.0


def test_goal_targets_defaults_and_clamping() -> None:
    assert DEFAULT_GOALS.contact_rate_target_pct == 10.0
    assert DEFAULT_GOALS.calls_per_day_target == 150.0

    goals = GoalTargets(contact_rate_target_pct=140, calls_per_day_target=-10, quote_rate_target_pct="oops")
    assert goals.contact_rate_target_pct == 100.0
    assert goals.calls_per_day_target == 0.0
    assert goals.quote_rate_target_pct == 0.0


def test_goal_targets_from_dict_ignores_unknown_keys() -> None:
    goals = GoalTargets.from_dict({"issue_rate_target_pct": "40", "favorite_color": "blue"})

    assert goals.issue_rate_target_pct == 40.0
    assert goals.contact_rate_target_pct == 10.0
    assert GoalTargets.from_dict(goals.to_dict()) == goals
    assert GoalTargets.from_dict(None) == DEFAULT_GOALS


def test_target_lookup_by_stage_labels() -> None:
    assert target_pct_for_transition(_transition("Dials", "Contacts", 0.1), DEFAULT_GOALS) == 10.0
    assert target_pct_for_transition(_transition("Contacts", "Quotes", 0.1), DEFAULT_GOALS) == 30.0
    assert target_pct_for_transition(_transition("Quotes", "Issued", 0.1), DEFAULT_GOALS) == 35.0
    assert target_pct_for_transition(_transition("Dials", "Issued", 0.1), DEFAULT_GOALS) == 0.0


def test_classify_transition_bands() -> None:
    assert classify_transition(_transition("Dials", "Contacts", 0.12), DEFAULT_GOALS) == "good"
    assert classify_transition(_transition("Dials", "Contacts", 0.08), DEFAULT_GOALS) == "warn"
    assert classify_transition(_transition("Dials", "Contacts", 0.05), DEFAULT_GOALS) == "bad"

    no_target = GoalTargets(contact_rate_target_pct=0)
    assert classify_transition(_transition("Dials", "Contacts", 0.05), no_target) == ""


def test_worst_off_target_transition_uses_gap_to_target() -> None:
    funnel = {
        "transitions": [
            _transition("Dials", "Contacts", 0.09),
            _transition("Contacts", "Quotes", 0.10),
            _transition("Quotes", "Issued", 0.50),
        ]
    }
    worst = worst_off_target_transition(funnel, DEFAULT_GOALS)
    assert worst["from"] == "Contacts"


def test_worst_off_target_transition_none_when_on_target() -> None:
    funnel = {
        "transitions": [
            _transition("Dials", "Contacts", 0.2),
            _transition("Contacts", "Quotes", 0.1, from_count=0.0),
        ]
    }
    assert worst_off_target_transition(funnel, DEFAULT_GOALS) is None


def test_classify_against_daily_targets() -> None:
    assert classify_against_target(150.0, DEFAULT_GOALS.calls_per_day_target) == "good"
    assert classify_against_target(120.0, DEFAULT_GOALS.calls_per_day_target) == "warn"
    assert classify_against_target(4.0, DEFAULT_GOALS.households_quoted_per_day_target) == "bad"
    assert classify_against_target(4.0, 0.0) == ""
