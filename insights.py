"""Cross-agent benchmarks, percentile flags and coaching commentary."""

from __future__ import annotations

import math
from typing import Iterable

import pandas as pd

from analytics import div
from goals import DEFAULT_GOALS, GoalTargets

HIGH_CONVERSION_LOW_VOLUME = {
    "key": "high-conversion-low-volume",
    "label": "High conversion, low volume",
    "detail": "Strong close rate on limited outreach.",
}
HIGH_QUOTES_LOW_ISSUANCE = {
    "key": "high-quotes-low-issuance",
    "label": "High quotes, low issuance",
    "detail": "Quoting volume is strong, issued count trails.",
}
WITHIN_BENCHMARK = {
    "key": "within-benchmark",
    "label": "No concerns noted",
    "detail": "Agent performance is within benchmark.",
}

_CONTACT_HINT = " This suggests dialing strategy, timing, or list quality may be the biggest lever."
_PITCH_HINT = " This suggests pitch quality, qualification, or discovery may be the biggest lever."


def pct(value: float) -> str:
    return f"{float(value or 0.0) * 100:.1f}%"


def percentile(values: Iterable[float], p: float) -> float:
    """Nearest-rank percentile; the index rounds half up."""
    ordered = sorted(float(value) for value in values)
    if not ordered:
        return 0.0
    index = int(math.floor(p / 100.0 * (len(ordered) - 1) + 0.5))
    return ordered[index]


def _issue_rate(row: pd.Series) -> float:
    return row["issued"] / row["quotes"] if row["quotes"] > 0 else 0.0


def _flags(row: pd.Series, thresholds: dict[str, float]) -> list[dict[str, str]]:
    flags = []
    if row["conversion_rate"] >= thresholds["highConversion"] and row["dials"] <= thresholds["lowVolume"]:
        flags.append(dict(HIGH_CONVERSION_LOW_VOLUME))
    if row["quotes"] >= thresholds["highQuotes"] and (
        row["issued"] <= thresholds["lowIssued"] or _issue_rate(row) <= thresholds["lowIssueRate"]
    ):
        flags.append(dict(HIGH_QUOTES_LOW_ISSUANCE))
    if not flags:
        flags.append(dict(WITHIN_BENCHMARK))
    return flags


def _rate_line(name: str, agent_rate: float, average_rate: float, target_rate: float, hint: str) -> str:
    if average_rate > 0:
        delta = agent_rate - average_rate
        direction = "above" if delta >= 0 else "below"
        average_line = (
            f"{name.capitalize()} of {pct(abs(agent_rate))} is {pct(abs(delta))} {direction} "
            f"the agency average ({pct(average_rate)})."
        )
    else:
        average_line = f"Agency average {name} is not available yet."

    lines = [average_line]
    if target_rate > 0:
        delta = agent_rate - target_rate
        direction = "above" if delta >= 0 else "below"
        lines.append(f"Agent is {pct(abs(delta))} {direction} the target ({pct(target_rate)}).")

    detail = " ".join(lines)
    if average_rate > 0 and target_rate > 0 and agent_rate < average_rate and agent_rate < target_rate:
        detail += hint
    return detail


def rate_commentary(
    kpis: dict[str, float],
    benchmarks: dict[str, float],
    goals: GoalTargets = DEFAULT_GOALS,
) -> list[dict[str, str]]:
    """Contact and pitch efficiency notes against the agency average and the user's targets."""
    commentary = []
    if (kpis.get("dials") or 0) > 0:
        commentary.append(
            {
                "key": "contact-rate-gap",
                "label": "Contact Efficiency",
                "detail": _rate_line(
                    "contact rate",
                    float(kpis.get("contactRate") or 0.0),
                    float(benchmarks.get("contactRate") or 0.0),
                    goals.contact_rate_target_pct / 100.0,
                    _CONTACT_HINT,
                ),
            }
        )
    if (kpis.get("contacts") or 0) > 0:
        commentary.append(
            {
                "key": "pitch-rate-gap",
                "label": "Pitch Efficiency",
                "detail": _rate_line(
                    "pitch rate",
                    float(kpis.get("pitchRate") or 0.0),
                    float(benchmarks.get("pitchRate") or 0.0),
                    goals.quote_rate_target_pct / 100.0,
                    _PITCH_HINT,
                ),
            }
        )
    return commentary


def agent_insights(agent_rows: pd.DataFrame, goals: GoalTargets = DEFAULT_GOALS) -> dict[str, object]:
    """Flag agents against cross-agent percentile thresholds and agency benchmarks."""
    if agent_rows is None or agent_rows.empty:
        rows = pd.DataFrame(columns=["agent", "dials", "contacts", "quotes", "issued", "conversion_rate"])
    else:
        rows = agent_rows

    benchmarks = {
        "contactRate": div(float(rows["contacts"].sum()), float(rows["dials"].sum())),
        "pitchRate": div(float(rows["quotes"].sum()), float(rows["contacts"].sum())),
    }
    issue_rates = [_issue_rate(row) for _, row in rows.iterrows()]
    thresholds = {
        "highConversion": percentile(rows["conversion_rate"], 75),
        "lowVolume": percentile(rows["dials"], 25),
        "highQuotes": percentile(rows["quotes"], 75),
        "lowIssued": percentile(rows["issued"], 25),
        "lowIssueRate": percentile(issue_rates, 25),
    }

    by_agent: dict[str, dict[str, object]] = {}
    for _, row in rows.iterrows():
        kpis = {
            "dials": row["dials"],
            "contacts": row["contacts"],
            "quotes": row["quotes"],
            "issued": row["issued"],
            "conversionRate": row["conversion_rate"],
            "contactRate": row.get("contact_rate", 0.0),
            "pitchRate": row.get("quotes_per_contact", 0.0),
            "issuedPremium": row.get("issued_premium", 0.0),
            "multilinePitchRate": row.get("multiline_pitch_rate", 0.0),
            "multilineConversionRate": row.get("multiline_conversion_rate", 0.0),
            "attachRate": row.get("attach_rate", 0.0),
            "multilineLift": row.get("multiline_lift"),
        }
        by_agent[row["agent"]] = {
            "kpis": kpis,
            "flags": _flags(row, thresholds),
            "commentary": rate_commentary(kpis, benchmarks, goals),
        }

    return {"byAgent": by_agent, "thresholds": thresholds, "benchmarks": benchmarks}
