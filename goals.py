"""User goal targets and funnel target classification."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, fields
from typing import Any, Mapping

_PCT_FIELDS = ("contact_rate_target_pct", "quote_rate_target_pct", "issue_rate_target_pct")

_TRANSITION_TARGETS = {
    ("dials", "contacts"): "contact_rate_target_pct",
    ("contacts", "quotes"): "quote_rate_target_pct",
    ("quotes", "issued"): "issue_rate_target_pct",
    ("quotes", "sales"): "issue_rate_target_pct",
}

NEAR_TARGET_SHARE = 0.75


def clamp_number(value: Any, minimum: float, maximum: float = math.inf) -> float:
    """Clamp to ``[minimum, maximum]``; anything non-numeric becomes ``minimum``."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return float(minimum)
    if math.isnan(number):
        return float(minimum)
    return float(min(maximum, max(minimum, number)))


@dataclass(frozen=True)
class GoalTargets:
    """Funnel rate targets in percent plus daily activity targets."""

    contact_rate_target_pct: float = 10.0
    quote_rate_target_pct: float = 30.0
    issue_rate_target_pct: float = 35.0
    calls_per_day_target: float = 150.0
    households_quoted_per_day_target: float = 6.0

    def __post_init__(self) -> None:
        for spec in fields(self):
            maximum = 100.0 if spec.name in _PCT_FIELDS else math.inf
            object.__setattr__(self, spec.name, clamp_number(getattr(self, spec.name), 0.0, maximum))

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None) -> "GoalTargets":
        """Build targets from stored settings, ignoring unknown keys."""
        known = {spec.name for spec in fields(cls)}
        values = {key: value for key, value in (payload or {}).items() if key in known}
        return cls(**values)

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


DEFAULT_GOALS = GoalTargets()


def target_pct_for_transition(transition: Mapping[str, Any], goals: GoalTargets) -> float:
    key = (
        str(transition.get("from", "")).strip().lower(),
        str(transition.get("to", "")).strip().lower(),
    )
    field_name = _TRANSITION_TARGETS.get(key)
    return float(getattr(goals, field_name)) if field_name else 0.0


def classify_against_target(actual: float, target: float) -> str:
    """Return ``good``, ``warn`` or ``bad`` against the target, or ``""`` when no target is set."""
    if not target:
        return ""
    if actual >= target:
        return "good"
    if actual >= NEAR_TARGET_SHARE * target:
        return "warn"
    return "bad"


def classify_transition(transition: Mapping[str, Any], goals: GoalTargets) -> str:
    target = target_pct_for_transition(transition, goals)
    return classify_against_target(float(transition.get("rate") or 0.0) * 100.0, target)


def worst_off_target_transition(funnel: Mapping[str, Any], goals: GoalTargets) -> dict[str, Any] | None:
    """Transition furthest below its target, or None when every one meets its target."""
    worst = None
    worst_gap = 0.0
    for transition in funnel.get("transitions") or []:
        if (transition.get("fromCount") or 0) <= 0:
            continue
        target = target_pct_for_transition(transition, goals)
        if not target:
            continue
        gap = target - float(transition.get("rate") or 0.0) * 100.0
        if gap > worst_gap:
            worst_gap = gap
            worst = transition
    return worst
