"""Canonical dataset schemas for the three agency exports."""

from __future__ import annotations

from dataclasses import dataclass

TEXT = "text"
DATE = "date"
NUMBER = "number"

STATUS_QUOTED = "quoted"
STATUS_ISSUED = "issued"
VALID_STATUSES = frozenset({STATUS_QUOTED, STATUS_ISSUED})

UNKNOWN_LABEL = "Unknown"

RAW_SUFFIX = "_raw"
DATE_SUFFIX = "_dt"


@dataclass(frozen=True)
class FieldSpec:
    key: str
    label: str
    kind: str = TEXT


@dataclass(frozen=True)
class DatasetSchema:
    """Ordered canonical fields for one uploaded dataset."""

    key: str
    label: str
    description: str
    fields: tuple[FieldSpec, ...]

    @property
    def field_keys(self) -> list[str]:
        return [spec.key for spec in self.fields]

    @property
    def numeric_keys(self) -> list[str]:
        return [spec.key for spec in self.fields if spec.kind == NUMBER]

    @property
    def date_keys(self) -> list[str]:
        return [spec.key for spec in self.fields if spec.kind == DATE]


def raw_column(field_key: str) -> str:
    """Companion column holding the pre-coercion text of a numeric field."""
    return f"{field_key}{RAW_SUFFIX}"


def date_column(field_key: str) -> str:
    """Companion column holding the parsed timestamp of a date field."""
    return f"{field_key}{DATE_SUFFIX}"


ACTIVITY_SCHEMA = DatasetSchema(
    key="activity",
    label="Activity Tracker",
    description="Daily activity totals by agent.",
    fields=(
        FieldSpec("agent_name", "Agent Name"),
        FieldSpec("date", "Date", DATE),
        FieldSpec("dials_made", "Dials Made", NUMBER),
        FieldSpec("contacts_made", "Contacts Made", NUMBER),
        FieldSpec("households_quoted", "Households Quoted", NUMBER),
        FieldSpec("total_quotes", "Total Quotes", NUMBER),
        FieldSpec("total_sales", "Total Sales", NUMBER),
    ),
)

QUOTE_SALES_SCHEMA = DatasetSchema(
    key="quotes_sales",
    label="Quotes & Sales Log",
    description="Each row is a policy quoted and/or issued.",
    fields=(
        FieldSpec("agent_name", "Agent Name"),
        FieldSpec("date", "Date", DATE),
        FieldSpec("policyholder", "Policyholder"),
        FieldSpec("line_of_business", "Line of Business"),
        FieldSpec("policy_type", "Policy Type"),
        FieldSpec("business_type", "Business Type"),
        FieldSpec("status", "Status"),
        FieldSpec("lead_source", "Lead Source"),
        FieldSpec("zipcode", "Zipcode"),
        FieldSpec("written_premium", "Written Premium", NUMBER),
        FieldSpec("date_issued", "Date Issued", DATE),
        FieldSpec("issued_premium", "Issued Premium", NUMBER),
    ),
)

PAID_LEADS_SCHEMA = DatasetSchema(
    key="paid_leads",
    label="Paid Lead Source Info",
    description="Daily paid lead provider volume + costs.",
    fields=(
        FieldSpec("date", "Date", DATE),
        FieldSpec("lead_source", "Lead Source"),
        FieldSpec("lead_count", "Count of Leads", NUMBER),
        FieldSpec("lead_cost", "Cost of Lead", NUMBER),
    ),
)

SCHEMAS: dict[str, DatasetSchema] = {
    ACTIVITY_SCHEMA.key: ACTIVITY_SCHEMA,
    QUOTE_SALES_SCHEMA.key: QUOTE_SALES_SCHEMA,
    PAID_LEADS_SCHEMA.key: PAID_LEADS_SCHEMA,
}

SYNONYMS: dict[str, list[str]] = {
    "agent_name": ["agent", "agent name", "producer", "rep", "employee", "advisor"],
    "date": ["date", "day", "activity date", "written date", "quote date"],
    "dials_made": ["dials", "calls", "outbound", "dialed", "call attempts"],
    "contacts_made": ["contacts", "reached", "connects", "conversations"],
    "households_quoted": ["households quoted", "household quoted", "hh quoted", "households"],
    "total_quotes": ["total quotes", "quotes", "quoted", "quote count"],
    "total_sales": ["total sales", "sales", "policies sold", "sold", "issued count"],
    "policyholder": ["policyholder", "insured", "named insured", "customer", "client"],
    "line_of_business": ["lob", "line of business", "line", "business line"],
    "policy_type": ["policy type", "product", "coverage", "policy"],
    "business_type": ["business type", "new or existing", "household type", "existing/new"],
    "status": ["status", "stage", "quoted/issued", "disposition"],
    "lead_source": ["lead source", "source", "origin", "channel", "provider"],
    "zipcode": ["zip", "zipcode", "postal", "postal code"],
    "written_premium": [
        "written premium",
        "quoted premium",
        "premium quoted",
        "quote premium",
        "written prem",
    ],
    "date_issued": ["date issued", "issue date", "issued date", "effective date"],
    "issued_premium": ["issued premium", "final premium", "premium issued", "bound premium"],
    "lead_count": ["count of leads", "lead count", "leads", "volume", "quantity"],
    "lead_cost": ["cost per lead", "cpl", "lead cost", "cost of lead", "unit cost"],
}


def normalize_status(value) -> str:
    return str(value if value is not None else "").strip().lower()
