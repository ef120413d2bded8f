"""Human-readable metric definitions for the app."""

METRIC_GUIDE = [
    {
        "Metric": "Issued premium",
        "Meaning": "Total premium on policies with status Issued in the selected period.",
        "Formula": "sum(issued_premium where status = issued)",
    },
    {
        "Metric": "Policies issued",
        "Meaning": "Number of quote-log rows with status Issued.",
        "Formula": "count(status = issued)",
    },
    {
        "Metric": "Conversion rate",
        "Meaning": "Share of quoted or issued policies that were issued.",
        "Formula": "Issued / (Quoted + Issued)",
    },
    {
        "Metric": "Paid spend",
        "Meaning": "What paid lead providers cost in the selected period.",
        "Formula": "sum(lead_count * lead_cost)",
    },
    {
        "Metric": "Cost per acquisition",
        "Meaning": "Paid spend per issued policy.",
        "Formula": "Paid spend / Policies issued",
    },
    {
        "Metric": "Premium per dial",
        "Meaning": "Issued premium earned for each outbound dial.",
        "Formula": "Issued premium / Dials",
    },
    {
        "Metric": "Contact rate",
        "Meaning": "Share of dials that reached someone.",
        "Formula": "Contacts / Dials",
    },
    {
        "Metric": "Pitch rate",
        "Meaning": "Quotes produced for each contact.",
        "Formula": "Quoted / Contacts",
    },
    {
        "Metric": "Per 100 dials",
        "Meaning": "Contacts, quotes or issued policies for every 100 dials.",
        "Formula": "(count / Dials) * 100",
    },
    {
        "Metric": "Multiline pitch rate",
        "Meaning": "Share of policyholder quote days where 2+ lines of business were quoted.",
        "Formula": "Multiline pitch days / Policyholder quote days",
    },
    {
        "Metric": "Multiline conversion",
        "Meaning": "Multiline-pitched policyholders who ended up with 2+ issued policies.",
        "Formula": "Multiline-pitched and multiline-issued / Multiline-pitched",
    },
    {
        "Metric": "Attach rate",
        "Meaning": "Average issued policies per issued policyholder.",
        "Formula": "Issued / Distinct issued policyholders",
    },
    {
        "Metric": "Multiline lift",
        "Meaning": "Extra issued premium per multiline household versus single-line households.",
        "Formula": "avg premium (2+ issued) - avg premium (1 issued)",
    },
    {
        "Metric": "Spend per lead",
        "Meaning": "Average cost of one paid lead for a source.",
        "Formula": "Spend / Leads",
    },
    {
        "Metric": "Premium per spend",
        "Meaning": "Issued premium returned for each unit of lead spend.",
        "Formula": "Issued premium / Spend",
    },
    {
        "Metric": "Funnel drop",
        "Meaning": "Share lost between two funnel stages.",
        "Formula": "(From - To) / From",
    },
    {
        "Metric": "Calls per day",
        "Meaning": "Average dials on the days an agent logged activity, compared with the daily calls target.",
        "Formula": "Dials / active days",
    },
    {
        "Metric": "Households quoted per day",
        "Meaning": "Average households quoted on the days an agent logged activity.",
        "Formula": "Households quoted / active days",
    },
]
