from mapping_rules import (
    mapping_validation,
    normalize_header,
    normalize_mapping,
    score_header_match,
    suggest_mapping,
    tokenize_header,
)
from schemas import ACTIVITY_SCHEMA, QUOTE_SALES_SCHEMA


def test_normalize_header_folds_separators() -> None:
    assert normalize_header("  Agent__Name ") == "agent name"
    assert normalize_header("Lead-Source   Info") == "lead source info"
    assert tokenize_header("Dials_Made") == ["dials", "made"]
    assert normalize_header(None) == ""


def test_score_header_match_ranks_exact_over_synonym_over_overlap() -> None:
    assert score_header_match("agent_name", "agent_name", "Agent Name") == 100
    assert score_header_match("Producer", "agent_name", "Agent Name") == 95
    assert score_header_match("Zip Code", "zipcode", "Zipcode") == 85
    assert score_header_match("Written Amount", "written_premium", "Written Premium") == 68
    assert score_header_match("Notes", "agent_name", "Agent Name") == 0
    assert score_header_match("", "date", "Date") == 0


def test_suggest_mapping_for_activity_export() -> None:
    headers = ["Agent", "Date", "Calls", "Contacts", "HH Quoted", "Quotes", "Sales", "Notes"]

    mapping = suggest_mapping(headers, ACTIVITY_SCHEMA)

    assert mapping == {
        "agent_name": "Agent",
        "date": "Date",
        "dials_made": "Calls",
        "contacts_made": "Contacts",
        "households_quoted": "HH Quoted",
        "total_quotes": "Quotes",
        "total_sales": "Sales",
    }


def test_suggest_mapping_uses_each_header_once() -> None:
    mapping = suggest_mapping(["Premium"], QUOTE_SALES_SCHEMA)

    assert mapping["written_premium"] == "Premium"
    assert mapping["issued_premium"] == ""
    assert set(mapping) == set(QUOTE_SALES_SCHEMA.field_keys)


def test_normalize_mapping_limits_to_schema_fields() -> None:
    mapping = normalize_mapping({"agent_name": " Agent ", "favorite": "X", "date": None}, ACTIVITY_SCHEMA)

    assert mapping["agent_name"] == "Agent"
    assert mapping["date"] == ""
    assert "favorite" not in mapping
    assert list(mapping) == ACTIVITY_SCHEMA.field_keys


def test_mapping_validation_statuses() -> None:
    mapping = {"agent_name": "Agent", "date": "Day", "dials_made": "Agent", "contacts_made": "Talks"}

    status = mapping_validation(mapping, ACTIVITY_SCHEMA, headers=["Agent", "Date", "Talks"])

    by_key = dict(zip(status["Key"], status["Status"]))
    assert by_key["agent_name"] == "Shared column"
    assert by_key["dials_made"] == "Shared column"
    assert by_key["date"] == "Missing column"
    assert by_key["contacts_made"] == "Mapped"
    assert by_key["total_sales"] == "Unmapped"
    assert list(status.columns) == ["Field", "Key", "Column", "Status"]


def test_mapping_validation_without_headers_skips_column_check() -> None:
    status = mapping_validation({"date": "Day"}, ACTIVITY_SCHEMA)
    assert status.loc[status["Key"] == "date", "Status"].iloc[0] == "Mapped"
