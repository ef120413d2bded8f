"""Agency KPIs, agent rollups, funnels, lead-source ROI and time series."""

from __future__ import annotations

import re
from collections import Counter
from typing import Any, Callable, Hashable, Iterable

import pandas as pd

from date_ranges import DateRange, parsed_dates, quote_sale_effective_dates, span_of_dates
from goals import DEFAULT_GOALS, GoalTargets, classify_against_target
from parsing import coerce_numeric_series, in_range, to_number
from schemas import STATUS_ISSUED, STATUS_QUOTED, UNKNOWN_LABEL, normalize_status
from time_buckets import build_buckets, bucket_index_for, pick_granularity

AGENT_COLUMNS = [
    "agent",
    "dials",
    "contacts",
    "activity_quotes",
    "activity_sales",
    "quotes",
    "issued",
    "written_premium",
    "issued_premium",
    "conversion_rate",
    "contact_rate",
    "quotes_per_contact",
    "issued_per_contact",
    "issued_per_100_dials",
    "quotes_per_100_dials",
    "contacts_per_100_dials",
    "issued_prem_per_dial",
    "issued_prem_per_contact",
    "issued_prem_per_issued",
    "unique_policyholders",
    "multiline_pitch_policyholders",
    "multiline_pitch_rate",
    "multiline_conversion_rate",
    "attach_rate",
    "multiline_lift",
]

ROI_COLUMNS = [
    "key",
    "lead_source",
    "leads",
    "spend",
    "spend_per_lead",
    "quoted",
    "issued",
    "total_quoted_or_issued",
    "conversion",
    "cpa",
    "written_premium",
    "issued_premium",
    "premium_per_spend",
]

PACE_COLUMNS = [
    "agent",
    "active_days",
    "dials",
    "households_quoted",
    "calls_per_day",
    "calls_status",
    "households_quoted_per_day",
    "households_status",
]

ROI_SCOPES = ("paid", "all")
ROI_SORTS = ("premium_per_spend", "issued_premium", "cpa")

FUNNEL_STAGES = (
    ("dials", "Dials"),
    ("contacts", "Contacts"),
    ("quotes", "Quotes"),
    ("issued", "Issued"),
)

DEFAULT_LOB_ORDER = ["Auto", "Fire", "Life", "Health"]
UNKNOWN_SOURCE_KEY = "unknown"

_WHITESPACE = re.compile(r"\s+")
_SOURCE_PUNCTUATION = re.compile(r"[^\w\s.-]", re.ASCII)


def div(numerator: float, denominator: float) -> float:
    """Ratio with the zero policy used everywhere: no positive denominator means 0."""
    return float(numerator / denominator) if denominator > 0 else 0.0


def per_100(count: float, denominator: float) -> float:
    return div(count, denominator) * 100.0


def group_by(frame: pd.DataFrame, key_fn: Callable[[dict[str, Any]], Hashable]) -> dict[Hashable, pd.DataFrame]:
    """Split rows into groups keyed by ``key_fn(row)``, in first-seen key order."""
    if frame is None or frame.empty:
        return {}
    keys = pd.Series([key_fn(row) for row in frame.to_dict(orient="records")], index=frame.index)
    return {key: group for key, group in frame.groupby(keys, sort=False)}


def _text(frame: pd.DataFrame, column: str) -> pd.Series:
    if column not in frame.columns:
        return pd.Series("", index=frame.index, dtype=object)
    return frame[column].fillna("").astype(str).str.strip()


def _numbers(frame: pd.DataFrame, column: str) -> pd.Series:
    if column not in frame.columns:
        return pd.Series(0.0, index=frame.index)
    values = frame[column]
    if pd.api.types.is_numeric_dtype(values):
        return values.fillna(0.0).astype(float)
    return coerce_numeric_series(values)


def _statuses(frame: pd.DataFrame) -> pd.Series:
    if "status" not in frame.columns:
        return pd.Series("", index=frame.index, dtype=object)
    return frame["status"].map(normalize_status)


def agent_name(row: dict[str, Any]) -> str:
    name = row.get("agent_name")
    text = "" if name is None or (isinstance(name, float) and pd.isna(name)) else str(name).strip()
    return text or UNKNOWN_LABEL


def _agent_names(frame: pd.DataFrame) -> pd.Series:
    return _text(frame, "agent_name").replace("", UNKNOWN_LABEL)


def calculate_core_metrics(
    activity: pd.DataFrame,
    quote_sales: pd.DataFrame,
    paid_leads: pd.DataFrame,
) -> dict[str, float]:
    """Return the agency headline KPIs."""
    statuses = _statuses(quote_sales)
    issued_mask = statuses.eq(STATUS_ISSUED)
    policies_issued = int(issued_mask.sum())
    quoted = int(statuses.eq(STATUS_QUOTED).sum())

    total_issued_premium = float(_numbers(quote_sales, "issued_premium")[issued_mask].sum())
    paid_spend = float((_numbers(paid_leads, "lead_count") * _numbers(paid_leads, "lead_cost")).sum())
    total_dials = float(_numbers(activity, "dials_made").sum())

    return {
        "totalIssuedPremium": total_issued_premium,
        "policiesIssued": policies_issued,
        "conversionRate": div(policies_issued, policies_issued + quoted),
        "costPerAcquisition": div(paid_spend, policies_issued),
        "paidSpend": paid_spend,
        "totalDials": total_dials,
        "premiumPerDial": div(total_issued_premium, total_dials),
    }


def _clean(value: Any) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value).strip()


def _multiline_stats(quote_sales: pd.DataFrame, issued_total: int) -> dict[str, object]:
    policyholders: set[str] = set()
    day_lobs: dict[str, dict[str, set[str]]] = {}
    issued_counts: Counter[str] = Counter()
    issued_premium: dict[str, float] = {}

    for row in quote_sales.to_dict(orient="records"):
        policyholder = _clean(row.get("policyholder"))
        if not policyholder:
            continue
        policyholders.add(policyholder)

        quote_date = _clean(row.get("date"))
        if quote_date:
            lobs = day_lobs.setdefault(policyholder, {}).setdefault(quote_date, set())
            lob = _clean(row.get("line_of_business"))
            if lob:
                lobs.add(lob)

        if normalize_status(row.get("status")) == STATUS_ISSUED:
            issued_counts[policyholder] += 1
            issued_premium[policyholder] = issued_premium.get(policyholder, 0.0) + to_number(
                row.get("issued_premium")
            )

    pitch_days = 0
    policyholder_days = 0
    pitch_policyholders = 0
    converted = 0
    multi_count = 0
    multi_premium = 0.0
    single_count = 0
    single_premium = 0.0

    for policyholder, dates in day_lobs.items():
        has_pitch = False
        for lobs in dates.values():
            policyholder_days += 1
            if len(lobs) >= 2:
                pitch_days += 1
                has_pitch = True
        if has_pitch:
            pitch_policyholders += 1

        issued_count = issued_counts.get(policyholder, 0)
        if issued_count > 1:
            multi_count += 1
            multi_premium += issued_premium.get(policyholder, 0.0)
        elif issued_count == 1:
            single_count += 1
            single_premium += issued_premium.get(policyholder, 0.0)
        if has_pitch and issued_count > 1:
            converted += 1

    lift = None
    if multi_count > 0 and single_count > 0:
        lift = multi_premium / multi_count - single_premium / single_count

    return {
        "unique_policyholders": len(policyholders),
        "multiline_pitch_policyholders": pitch_policyholders,
        "multiline_pitch_rate": div(pitch_days, policyholder_days),
        "multiline_conversion_rate": div(converted, pitch_policyholders),
        "attach_rate": div(issued_total, len(issued_counts)),
        "multiline_lift": lift,
    }


def _agent_row(name: str, activity: pd.DataFrame, quote_sales: pd.DataFrame) -> dict[str, object]:
    dials = float(_numbers(activity, "dials_made").sum())
    contacts = float(_numbers(activity, "contacts_made").sum())
    statuses = _statuses(quote_sales)
    quotes = int(statuses.eq(STATUS_QUOTED).sum())
    issued = int(statuses.eq(STATUS_ISSUED).sum())
    issued_premium = float(_numbers(quote_sales, "issued_premium").sum())

    row: dict[str, object] = {
        "agent": name,
        "dials": dials,
        "contacts": contacts,
        "activity_quotes": float(_numbers(activity, "total_quotes").sum()),
        "activity_sales": float(_numbers(activity, "total_sales").sum()),
        "quotes": quotes,
        "issued": issued,
        "written_premium": float(_numbers(quote_sales, "written_premium").sum()),
        "issued_premium": issued_premium,
        "conversion_rate": div(issued, quotes + issued),
        "contact_rate": div(contacts, dials),
        "quotes_per_contact": div(quotes, contacts),
        "issued_per_contact": div(issued, contacts),
        "issued_per_100_dials": per_100(issued, dials),
        "quotes_per_100_dials": per_100(quotes, dials),
        "contacts_per_100_dials": per_100(contacts, dials),
        "issued_prem_per_dial": div(issued_premium, dials),
        "issued_prem_per_contact": div(issued_premium, contacts),
        "issued_prem_per_issued": div(issued_premium, issued),
    }
    row.update(_multiline_stats(quote_sales, issued))
    return row


def agent_metrics(activity: pd.DataFrame, quote_sales: pd.DataFrame) -> pd.DataFrame:
    """Per-agent rollup with multiline cross-sell stats, best issued premium first."""
    activity_groups = group_by(activity, agent_name)
    quote_groups = group_by(quote_sales, agent_name)
    names = list(dict.fromkeys([*activity_groups, *quote_groups]))
    if not names:
        return pd.DataFrame(columns=AGENT_COLUMNS)

    empty_activity = activity.iloc[0:0]
    empty_quotes = quote_sales.iloc[0:0]
    rows = [
        _agent_row(name, activity_groups.get(name, empty_activity), quote_groups.get(name, empty_quotes))
        for name in names
    ]
    out = pd.DataFrame(rows, columns=AGENT_COLUMNS)
    out = out.sort_values("issued_premium", ascending=False, kind="mergesort").reset_index(drop=True)
    out["multiline_lift"] = out["multiline_lift"].astype(object).where(out["multiline_lift"].notna(), None)
    return out


def _transition(source: dict[str, object], target: dict[str, object]) -> dict[str, object]:
    from_count = source["count"]
    to_count = target["count"]
    return {
        "from": source["label"],
        "to": target["label"],
        "fromCount": from_count,
        "toCount": to_count,
        "rate": div(to_count, from_count),
        "drop": div(from_count - to_count, from_count),
    }


def compute_funnel(activity: pd.DataFrame, quote_sales: pd.DataFrame) -> dict[str, object]:
    """Dials -> Contacts -> Quotes -> Issued with stage-to-stage rates."""
    statuses = _statuses(quote_sales)
    quoted = int(statuses.eq(STATUS_QUOTED).sum())
    issued = int(statuses.eq(STATUS_ISSUED).sum())
    counts = {
        "dials": float(_numbers(activity, "dials_made").sum()),
        "contacts": float(_numbers(activity, "contacts_made").sum()),
        "quotes": quoted + issued,
        "issued": issued,
    }
    stages = [{"key": key, "label": label, "count": counts[key]} for key, label in FUNNEL_STAGES]
    transitions = [_transition(stages[i], stages[i + 1]) for i in range(len(stages) - 1)]

    worst = None
    for transition in transitions:
        if transition["fromCount"] <= 0:
            continue
        if worst is None or transition["rate"] < worst["rate"]:
            worst = transition

    return {"stages": stages, "transitions": transitions, "worstTransition": worst}


def funnel_by_agent(activity: pd.DataFrame, quote_sales: pd.DataFrame) -> dict[str, object]:
    """Agency funnel plus one funnel per agent name."""
    activity_groups = group_by(activity, agent_name)
    quote_groups = group_by(quote_sales, agent_name)
    names = list(dict.fromkeys([*activity_groups, *quote_groups]))

    by_agent = {
        name: compute_funnel(
            activity_groups.get(name, activity.iloc[0:0]),
            quote_groups.get(name, quote_sales.iloc[0:0]),
        )
        for name in names
    }
    return {
        "agency": compute_funnel(activity, quote_sales),
        "byAgent": by_agent,
        "agents": sorted(names, key=str.lower),
    }


def activity_pace(activity: pd.DataFrame, goals: GoalTargets = DEFAULT_GOALS) -> pd.DataFrame:
    """Per-agent daily averages over the days each agent logged activity, against the daily targets.

    Rows without a parseable date are left out of both the totals and the day count.
    """
    if activity is None or activity.empty:
        return pd.DataFrame(columns=PACE_COLUMNS)

    frame = pd.DataFrame(
        {
            "agent": _agent_names(activity),
            "day": parsed_dates(activity, "date").dt.normalize(),
            "dials": _numbers(activity, "dials_made"),
            "households_quoted": _numbers(activity, "households_quoted"),
        },
        index=activity.index,
    )
    frame = frame.loc[frame["day"].notna()]
    if frame.empty:
        return pd.DataFrame(columns=PACE_COLUMNS)

    grouped = frame.groupby("agent", sort=False).agg(
        active_days=("day", "nunique"),
        dials=("dials", "sum"),
        households_quoted=("households_quoted", "sum"),
    )

    rows = []
    for agent, totals in grouped.iterrows():
        calls_per_day = div(totals["dials"], totals["active_days"])
        households_per_day = div(totals["households_quoted"], totals["active_days"])
        rows.append(
            {
                "agent": agent,
                "active_days": int(totals["active_days"]),
                "dials": float(totals["dials"]),
                "households_quoted": float(totals["households_quoted"]),
                "calls_per_day": calls_per_day,
                "calls_status": classify_against_target(calls_per_day, goals.calls_per_day_target),
                "households_quoted_per_day": households_per_day,
                "households_status": classify_against_target(
                    households_per_day, goals.households_quoted_per_day_target
                ),
            }
        )
    out = pd.DataFrame(rows, columns=PACE_COLUMNS)
    out = out.sort_values("agent", key=lambda names: names.str.lower(), kind="mergesort")
    return out.reset_index(drop=True)


def lead_source_key(value: Any) -> str:
    """Lowercase, whitespace-collapsed, punctuation-stripped lead source identity."""
    text = _SOURCE_PUNCTUATION.sub("", _clean(value).lower())
    return _WHITESPACE.sub(" ", text).strip()


def _source_key(row: dict[str, Any]) -> str:
    return lead_source_key(row.get("lead_source")) or UNKNOWN_SOURCE_KEY


def _display_name(spellings: Iterable[str]) -> str:
    counts = Counter(spelling for spelling in spellings if spelling)
    if not counts:
        return UNKNOWN_LABEL
    return counts.most_common(1)[0][0]


def lead_source_roi(quote_sales: pd.DataFrame, paid_leads: pd.DataFrame) -> pd.DataFrame:
    """One row per normalized lead source joining paid spend with quote outcomes."""
    paid_groups = group_by(paid_leads, _source_key)
    quote_groups = group_by(quote_sales, _source_key)
    keys = list(dict.fromkeys([*paid_groups, *quote_groups]))
    if not keys:
        return pd.DataFrame(columns=ROI_COLUMNS)

    rows: list[dict[str, object]] = []
    for key in keys:
        paid = paid_groups.get(key, paid_leads.iloc[0:0])
        quotes = quote_groups.get(key, quote_sales.iloc[0:0])

        lead_counts = _numbers(paid, "lead_count")
        leads = float(lead_counts.sum())
        spend = float((lead_counts * _numbers(paid, "lead_cost")).sum())
        statuses = _statuses(quotes)
        quoted = int(statuses.eq(STATUS_QUOTED).sum())
        issued = int(statuses.eq(STATUS_ISSUED).sum())
        issued_premium = float(_numbers(quotes, "issued_premium").sum())

        spellings = [*_text(paid, "lead_source"), *_text(quotes, "lead_source")]
        rows.append(
            {
                "key": key,
                "lead_source": _display_name(spellings),
                "leads": leads,
                "spend": spend,
                "spend_per_lead": div(spend, leads),
                "quoted": quoted,
                "issued": issued,
                "total_quoted_or_issued": quoted + issued,
                "conversion": div(issued, quoted + issued),
                "cpa": div(spend, issued),
                "written_premium": float(_numbers(quotes, "written_premium").sum()),
                "issued_premium": issued_premium,
                "premium_per_spend": div(issued_premium, spend),
            }
        )
    return pd.DataFrame(rows, columns=ROI_COLUMNS)


def scope_roi_rows(rows: pd.DataFrame, scope: str = "paid") -> pd.DataFrame:
    """Keep paid sources only (leads or spend recorded), or every source."""
    if scope not in ROI_SCOPES:
        raise ValueError(f"Unsupported ROI scope: {scope}")
    if scope == "all" or rows.empty:
        return rows.reset_index(drop=True)
    mask = (rows["leads"] > 0) | (rows["spend"] > 0)
    return rows.loc[mask].reset_index(drop=True)


def sort_roi_rows(rows: pd.DataFrame, sort: str = "premium_per_spend") -> pd.DataFrame:
    """Order ROI rows; zero premium-per-spend and zero CPA rows sink to the bottom."""
    if sort not in ROI_SORTS:
        raise ValueError(f"Unsupported ROI sort: {sort}")
    if rows.empty:
        return rows.reset_index(drop=True)

    if sort == "issued_premium":
        return rows.sort_values("issued_premium", ascending=False, kind="mergesort").reset_index(drop=True)

    if sort == "cpa":
        rank = rows["cpa"].where(rows["cpa"] != 0, float("inf"))
        order = rank.sort_values(ascending=True, kind="mergesort").index
    else:
        rank = rows["premium_per_spend"].where(rows["premium_per_spend"] != 0, -1.0)
        order = rank.sort_values(ascending=False, kind="mergesort").index
    return rows.loc[order].reset_index(drop=True)


def paid_sources_without_quotes(quote_sales: pd.DataFrame, paid_leads: pd.DataFrame) -> dict[str, int]:
    """Distinct paid-lead sources that never show up in the quote log."""
    paid_keys = set(_text(paid_leads, "lead_source").map(lead_source_key)) - {""}
    quote_keys = set(_text(quote_sales, "lead_source").map(lead_source_key)) - {""}
    return {
        "paidSourcesWithNoQuoteSales": len(paid_keys - quote_keys),
        "paidSourcesCount": len(paid_keys),
    }


def lead_source_quote_activity(quote_sales: pd.DataFrame) -> pd.DataFrame:
    """Quote-log row counts per normalized lead source, busiest first."""
    columns = ["key", "lead_source", "count"]
    groups = group_by(quote_sales, _source_key)
    if not groups:
        return pd.DataFrame(columns=columns)

    rows = [
        {"key": key, "lead_source": _display_name(_text(group, "lead_source")), "count": int(len(group))}
        for key, group in groups.items()
    ]
    out = pd.DataFrame(rows, columns=columns)
    out = out.sort_values(["count", "lead_source"], ascending=[False, True], key=_case_fold, kind="mergesort")
    return out.reset_index(drop=True)


def _case_fold(values: pd.Series) -> pd.Series:
    if values.dtype == object:
        return values.str.lower()
    return values


def _bucket_indexes(dates: pd.Series, buckets: list[dict], granularity: str, week_start: str) -> pd.Series:
    first = buckets[0]["start"]
    return pd.Series(
        [bucket_index_for(value, first, granularity, week_start, len(buckets)) for value in dates],
        index=dates.index,
        dtype=int,
    )


def _in_active_range(dates: pd.Series, active_range: DateRange | None) -> pd.Series:
    if active_range is None:
        return pd.Series(True, index=dates.index)
    return dates.map(lambda value: in_range(value, active_range.start, active_range.end)).astype(bool)


def _issued_series(
    quote_sales: pd.DataFrame,
    values: Callable[[pd.DataFrame], pd.Series],
    mode: str,
    active_range: DateRange | None,
    week_start: str,
) -> dict[str, object]:
    issued = quote_sales.loc[_statuses(quote_sales).eq(STATUS_ISSUED)]
    dates = quote_sale_effective_dates(issued)
    span = active_range or span_of_dates(dates)
    if span is None:
        return {"buckets": [], "agents": [], "granularity": "month"}

    granularity = pick_granularity(mode, active_range, span)
    buckets = build_buckets(span.start, span.end, granularity, week_start)
    if not buckets:
        return {"buckets": [], "agents": [], "granularity": granularity}

    frame = pd.DataFrame(
        {
            "agent": _agent_names(issued),
            "value": values(issued),
            "bucket": _bucket_indexes(dates, buckets, granularity, week_start),
        },
        index=issued.index,
    )
    frame = frame.loc[(frame["bucket"] >= 0) & _in_active_range(dates, active_range)]

    agent_totals = frame.groupby("agent", sort=False)["value"].sum()
    agents = agent_totals.sort_values(ascending=False, kind="mergesort").index.tolist()

    per_bucket: dict[int, dict[str, float]] = {}
    for (index, agent), value in frame.groupby(["bucket", "agent"], sort=False)["value"].sum().items():
        per_bucket.setdefault(int(index), {})[agent] = float(value)

    filled = []
    for index, bucket in enumerate(buckets):
        totals = per_bucket.get(index, {})
        filled.append({**bucket, "totals": totals, "total": float(sum(totals.get(agent, 0.0) for agent in agents))})
    return {"buckets": filled, "agents": agents, "granularity": granularity}


def issued_premium_series(
    quote_sales: pd.DataFrame,
    mode: str = "all",
    active_range: DateRange | None = None,
    week_start: str = "monday",
) -> dict[str, object]:
    """Issued premium per agent per bucket, bucketed by effective issue date."""
    return _issued_series(
        quote_sales,
        lambda frame: _numbers(frame, "issued_premium"),
        mode,
        active_range,
        week_start,
    )


def issued_policy_series(
    quote_sales: pd.DataFrame,
    mode: str = "all",
    active_range: DateRange | None = None,
    week_start: str = "monday",
) -> dict[str, object]:
    """Issued policy counts per agent per bucket."""
    return _issued_series(
        quote_sales,
        lambda frame: pd.Series(1.0, index=frame.index),
        mode,
        active_range,
        week_start,
    )


def activity_funnel_series(
    activity: pd.DataFrame,
    mode: str = "all",
    active_range: DateRange | None = None,
    week_start: str = "monday",
) -> dict[str, object]:
    """Dials, contacts, households quoted and sales per bucket."""
    dates = parsed_dates(activity, "date")
    span = active_range or span_of_dates(dates)
    if span is None:
        return {"buckets": [], "granularity": "month"}

    granularity = pick_granularity(mode, active_range, span)
    buckets = build_buckets(span.start, span.end, granularity, week_start)
    if not buckets:
        return {"buckets": [], "granularity": granularity}

    frame = pd.DataFrame(
        {
            "bucket": _bucket_indexes(dates, buckets, granularity, week_start),
            "dials": _numbers(activity, "dials_made"),
            "contacts": _numbers(activity, "contacts_made"),
            "householdsQuoted": _numbers(activity, "households_quoted"),
            "sales": _numbers(activity, "total_sales"),
        },
        index=activity.index,
    )
    frame = frame.loc[(frame["bucket"] >= 0) & _in_active_range(dates, active_range)]
    sums = frame.groupby("bucket").sum()

    filled = []
    for index, bucket in enumerate(buckets):
        if index in sums.index:
            totals = {column: float(sums.at[index, column]) for column in sums.columns}
        else:
            totals = {column: 0.0 for column in ("dials", "contacts", "householdsQuoted", "sales")}
        filled.append({**bucket, "totals": totals})
    return {"buckets": filled, "granularity": granularity}


def normalize_lob(value: Any) -> str:
    text = _clean(value)
    for lob in DEFAULT_LOB_ORDER:
        if text.lower() == lob.lower():
            return lob
    return text


def _window_key(day: pd.Timestamp, group_window_days: int) -> str:
    if not group_window_days or group_window_days <= 1:
        return f"{day:%Y-%m-%d}"
    day_index = (day - pd.Timestamp("1970-01-01")).days
    window_start = pd.Timestamp("1970-01-01") + pd.Timedelta(days=day_index - day_index % group_window_days)
    return f"{window_start:%Y-%m-%d}"


def _multiline_groups(quote_sales: pd.DataFrame, group_window_days: int) -> dict[str, dict[str, object]]:
    quote_dates = parsed_dates(quote_sales, "date")
    issue_dates = parsed_dates(quote_sales, "date_issued")
    dates = quote_dates.where(quote_dates.notna(), issue_dates)

    groups: dict[str, dict[str, object]] = {}
    for (_, row), date in zip(quote_sales.iterrows(), dates):
        if pd.isna(date):
            continue
        lob = normalize_lob(row.get("line_of_business"))
        if not lob:
            continue

        opportunity = _clean(row.get("opportunity_id"))
        if opportunity:
            key = f"opp__{opportunity}"
        else:
            customer = _clean(row.get("customer_id")) or _clean(row.get("policyholder"))
            if not customer:
                continue
            key = f"cust__{customer}__{_window_key(date.normalize(), group_window_days)}"

        group = groups.setdefault(key, {"lobs": set(), "min_date": date})
        group["lobs"].add(lob)
        if date < group["min_date"]:
            group["min_date"] = date
    return groups


def multiline_lob_series(
    quote_sales: pd.DataFrame,
    granularity: str = "month",
    active_range: DateRange | None = None,
    group_window_days: int = 0,
    week_start: str = "monday",
) -> dict[str, object]:
    """LOB mix of multiline groups (opportunities or same-window customers with 2+ LOBs).

    Each multiline group counts once per LOB, in the bucket of its earliest
    row. With a range every bucket in the span is present, empty or not;
    without one only buckets holding a group appear.
    """
    groups = [group for group in _multiline_groups(quote_sales, group_window_days).values() if len(group["lobs"]) >= 2]

    entries: dict[str, dict[str, object]] = {}
    if active_range is not None:
        buckets = build_buckets(active_range.start, active_range.end, granularity, week_start)
        if not buckets:
            return {"buckets": [], "lobs": list(DEFAULT_LOB_ORDER), "granularity": granularity}
        for bucket in buckets:
            entries[bucket["key"]] = {**bucket, "counts": Counter()}
        for group in groups:
            index = bucket_index_for(group["min_date"], buckets[0]["start"], granularity, week_start, len(buckets))
            if index < 0:
                continue
            entries[buckets[index]["key"]]["counts"].update(group["lobs"])
    else:
        for group in groups:
            bucket = build_buckets(group["min_date"], group["min_date"], granularity, week_start)[0]
            entry = entries.setdefault(bucket["key"], {**bucket, "counts": Counter()})
            entry["counts"].update(group["lobs"])

    seen = set()
    for entry in entries.values():
        seen.update(entry["counts"])
    lobs = DEFAULT_LOB_ORDER + sorted(lob for lob in seen if lob not in DEFAULT_LOB_ORDER)

    rows = []
    for entry in sorted(entries.values(), key=lambda item: item["start"]):
        counts = entry.pop("counts")
        totals = {lob: int(counts.get(lob, 0)) for lob in lobs}
        total = sum(totals.values())
        row = {**entry, "bucket": entry["label"], "totals": totals, "total": total}
        for lob in lobs:
            row[lob] = totals[lob]
            row[f"{lob}Pct"] = div(totals[lob], total)
        rows.append(row)
    return {"buckets": rows, "lobs": lobs, "granularity": granularity}


def series_frame(series: dict[str, object]) -> pd.DataFrame:
    """Pivot a bucketed series into a chart-ready frame indexed by bucket label."""
    buckets = series.get("buckets") or []
    columns = list(series.get("agents") or series.get("lobs") or [])
    if not columns:
        for bucket in buckets:
            columns.extend(key for key in bucket.get("totals", {}) if key not in columns)
    if not buckets:
        return pd.DataFrame(columns=columns)

    data = [[float(bucket.get("totals", {}).get(column, 0.0)) for column in columns] for bucket in buckets]
    index = pd.Index([bucket["label"] for bucket in buckets], name="Bucket")
    return pd.DataFrame(data, index=index, columns=columns)
