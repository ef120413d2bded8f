import pandas as pd

from goals import GoalTargets
from parsing import RawDataset
from workflow import build_analysis, normalize_datasets

MAPPINGS = {
    "activity": {
        "agent_name": "Agent",
        "date": "Date",
        "dials_made": "Dials",
        "contacts_made": "Contacts",
        "total_quotes": "Quotes",
        "total_sales": "Sales",
    },
    "quotes_sales": {
        "agent_name": "Agent",
        "date": "Date",
        "status": "Status",
        "date_issued": "Issued On",
        "issued_premium": "Premium",
        "lead_source": "Source",
    },
    "paid_leads": {"date": "Date", "lead_source": "Source", "lead_count": "Leads", "lead_cost": "Cost"},
}


def _sample_datasets() -> dict:
    activity_rows = [
        {"Agent": "Jane", "Date": "1/2/2025", "Dials": "100", "Contacts": "20", "Quotes": "2", "Sales": "1"},
    ]
    return {
        "activity": RawDataset("activity.csv", list(activity_rows[0]), activity_rows),
        "quotes_sales": [
            {"Agent": "Jane", "Date": "1/2/2025", "Status": "Quoted", "Issued On": "", "Premium": "", "Source": "Acme Leads"},
            {"Agent": "Jane", "Date": "1/2/2025", "Status": "Issued", "Issued On": "1/3/2025", "Premium": "$1,200", "Source": "acme leads"},
        ],
        "paid_leads": {"rows": [{"Date": "1/2/2025", "Source": "Acme Leads", "Leads": "10", "Cost": "5"}]},
    }


def test_normalize_datasets_accepts_each_input_shape() -> None:
    normalized = normalize_datasets(_sample_datasets(), MAPPINGS)

    assert len(normalized["activity"]) == 1
    assert len(normalized["quotes_sales"]) == 2
    assert normalized["paid_leads"].loc[0, "lead_count"] == 10.0


def test_normalize_datasets_missing_dataset_is_empty() -> None:
    normalized = normalize_datasets({}, {})
    assert all(frame.empty for frame in normalized.values())


def test_build_analysis_all_time() -> None:
    analysis = build_analysis(_sample_datasets(), MAPPINGS)

    kpis = analysis["coreMetrics"]
    assert analysis["rangeLabel"] == "All Time"
    assert analysis["activeRange"] is None
    assert analysis["coverage"]["start"] == pd.Timestamp("2025-01-02")
    assert kpis["totalIssuedPremium"] == 1200.0
    assert kpis["conversionRate"] == 0.5
    assert kpis["costPerAcquisition"] == 50.0
    assert kpis["premiumPerDial"] == 12.0

    jane = analysis["agentRows"].iloc[0]
    assert jane["agent"] == "Jane"
    assert jane["contact_rate"] == 0.2

    roi = analysis["roiRows"]
    assert roi["key"].tolist() == ["acme leads"]
    assert roi.iloc[0]["premium_per_spend"] == 24.0

    assert analysis["dataHealth"]["cross"]["quotesDelta"] == 0
    assert analysis["dataHealth"]["cross"]["salesDelta"] == 0
    assert analysis["leadSourceQuoteActivity"]["count"].tolist() == [2]
    assert "Jane" in analysis["agentInsights"]["byAgent"]
    assert analysis["funnelData"]["agents"] == ["Jane"]


def test_build_analysis_preset_range_uses_today() -> None:
    analysis = build_analysis(_sample_datasets(), MAPPINGS, range_mode="7d", today=pd.Timestamp("2025-01-05"))

    assert analysis["rangeLabel"] == "Last 7 days"
    assert analysis["issuedPremiumSeries"]["granularity"] == "day"
    assert len(analysis["issuedPremiumSeries"]["buckets"]) == 7
    assert analysis["coreMetrics"]["policiesIssued"] == 1


def test_build_analysis_range_without_data_is_all_zero() -> None:
    analysis = build_analysis(
        _sample_datasets(),
        MAPPINGS,
        range_mode="custom",
        custom_start="2025-02-01",
        custom_end="2025-02-28",
        goals=GoalTargets(contact_rate_target_pct=15),
    )

    assert analysis["rangeLabel"] == "2025-02-01 → 2025-02-28"
    assert all(value == 0 for value in analysis["coreMetrics"].values())
    assert analysis["agentRows"].empty
    assert analysis["roiRows"].empty
    # coverage describes the uploads, not the filtered rows
    assert analysis["coverage"] is not None


def test_build_analysis_with_no_uploads() -> None:
    analysis = build_analysis({}, {})

    assert analysis["coverage"] is None
    assert analysis["issuedPremiumSeries"]["buckets"] == []
    assert analysis["multilineLobSeries"]["buckets"] == []
    assert analysis["agentInsights"]["byAgent"] == {}


def test_build_analysis_is_repeatable() -> None:
    first = build_analysis(_sample_datasets(), MAPPINGS)
    second = build_analysis(_sample_datasets(), MAPPINGS)

    assert first["coreMetrics"] == second["coreMetrics"]
    pd.testing.assert_frame_equal(first["agentRows"], second["agentRows"])
    pd.testing.assert_frame_equal(first["roiRows"], second["roiRows"])


def test_build_analysis_reports_daily_pace() -> None:
    analysis = build_analysis(_sample_datasets(), MAPPINGS, goals=GoalTargets(calls_per_day_target=80))

    pace = analysis["activityPace"]
    assert pace["agent"].tolist() == ["Jane"]
    assert pace.iloc[0]["calls_per_day"] == 100.0
    assert pace.iloc[0]["calls_status"] == "good"


def test_build_analysis_preset_window_moves_with_today() -> None:
    same_week = build_analysis(_sample_datasets(), MAPPINGS, range_mode="7d", today=pd.Timestamp("2025-01-05"))
    next_month = build_analysis(_sample_datasets(), MAPPINGS, range_mode="7d", today=pd.Timestamp("2025-02-05"))

    assert same_week["coreMetrics"]["policiesIssued"] == 1
    assert next_month["coreMetrics"]["policiesIssued"] == 0
