"""Static demo data: the target company universe and the contract-risk model.

The "data sources" named in reports and thinking steps are labels only; every
figure below is fixed.
"""
from __future__ import annotations

from dealscout.schemas import Company, RiskBucket, RiskSubClause, RiskSubClauseOption

# ---------------------------------------------------------------------------
# Companies
# ---------------------------------------------------------------------------

COMPANIES: tuple[Company, ...] = (
    Company(
        id="mantla",
        name="Mantla Platform",
        country="India",
        hq_city="Bangalore",
        sector="CPaaS / Enterprise Communications",
        business_summary=(
            "Cloud communications platform for Indian SMEs offering omnichannel messaging "
            "(WhatsApp Business API, RCS, SMS, email) with deep CRM integrations."
        ),
        recurring_revenue_pct=78,
        debt_to_ebitda=1.2,
        revenue_growth_pct=42,
        fcf_conversion_pct=28,
        industry_growth_pct=25,
        customer_concentration_pct=18,
        quality_of_earnings_score=82,
        financial_performance_score=85,
        industry_attractiveness_score=88,
        competitive_positioning_score=80,
        management_governance_score=78,
        operational_efficiency_score=75,
        customer_market_dynamics_score=84,
        product_strength_score=86,
        exit_feasibility_score=81,
        scalability_potential_score=90,
    ),
    Company(
        id="instaworks",
        name="Instaworks",
        country="India",
        hq_city="Mumbai",
        sector="CPaaS / Enterprise Communications",
        business_summary=(
            "Enterprise-grade CPaaS provider serving large technology companies and banks "
            "with carrier-grade messaging, voice and video APIs."
        ),
        recurring_revenue_pct=85,
        debt_to_ebitda=0.8,
        revenue_growth_pct=35,
        fcf_conversion_pct=32,
        industry_growth_pct=22,
        customer_concentration_pct=22,
        quality_of_earnings_score=88,
        financial_performance_score=84,
        industry_attractiveness_score=85,
        competitive_positioning_score=87,
        management_governance_score=83,
        operational_efficiency_score=82,
        customer_market_dynamics_score=80,
        product_strength_score=84,
        exit_feasibility_score=86,
        scalability_potential_score=82,
    ),
    Company(
        id="disprztech",
        name="Disprztech",
        country="Singapore",
        hq_city="Singapore",
        sector="SaaS / EdTech / Learning Experience Platform",
        business_summary=(
            "AI-powered learning experience platform that maps enterprise skills gaps and "
            "builds personalized learning pathways."
        ),
        recurring_revenue_pct=88,
        debt_to_ebitda=0.5,
        revenue_growth_pct=55,
        fcf_conversion_pct=35,
        industry_growth_pct=25,
        customer_concentration_pct=8,
        quality_of_earnings_score=90,
        financial_performance_score=89,
        industry_attractiveness_score=83,
        competitive_positioning_score=85,
        management_governance_score=84,
        operational_efficiency_score=80,
        customer_market_dynamics_score=86,
        product_strength_score=88,
        exit_feasibility_score=82,
        scalability_potential_score=87,
    ),
)

COMPANIES_BY_ID: dict[str, Company] = {c.id: c for c in COMPANIES}

# Scoring weight field -> company sub-score attribute
SUBSCORE_FIELDS: dict[str, str] = {
    "quality_of_earnings": "quality_of_earnings_score",
    "financial_performance": "financial_performance_score",
    "industry_attractiveness": "industry_attractiveness_score",
    "competitive_positioning": "competitive_positioning_score",
    "management_governance": "management_governance_score",
    "operational_efficiency": "operational_efficiency_score",
    "customer_market_dynamics": "customer_market_dynamics_score",
    "product_strength": "product_strength_score",
    "exit_feasibility": "exit_feasibility_score",
    "scalability_potential": "scalability_potential_score",
}


def get_company(company_id: str) -> Company | None:
    return COMPANIES_BY_ID.get(company_id)


# ---------------------------------------------------------------------------
# Contract risk model
# ---------------------------------------------------------------------------

RISK_BUCKETS: tuple[RiskBucket, ...] = (
    RiskBucket(id="liability", label="Liability", weight_percent=20, max_score=13),
    RiskBucket(id="nonSolicitation", label="Non-Solicitation", weight_percent=5, max_score=4),
    RiskBucket(id="termination", label="Termination", weight_percent=20, max_score=17),
    RiskBucket(id="personnel", label="Personnel", weight_percent=5, max_score=5),
    RiskBucket(id="stepIn", label="Step-in", weight_percent=5, max_score=4),
    RiskBucket(id="penalty", label="Penalty / LDs", weight_percent=5, max_score=3),
    RiskBucket(id="nonCompete", label="Non-compete", weight_percent=10, max_score=7),
    RiskBucket(id="confidentiality", label="Confidentiality", weight_percent=5, max_score=3),
    RiskBucket(id="paymentTerms", label="Payment Terms", weight_percent=10, max_score=7),
    RiskBucket(id="intellectualProperty", label="Intellectual Property", weight_percent=10, max_score=4),
    RiskBucket(id="indemnities", label="Indemnities", weight_percent=5, max_score=5),
)

RISK_MAX_TOTAL = sum(b.max_score for b in RISK_BUCKETS)


def _clause(clause_id: str, bucket_id: str, label: str, *descriptions: str) -> RiskSubClause:
    """Options are listed from least to most risky; option n scores n."""
    return RiskSubClause(
        id=clause_id, bucket_id=bucket_id, label=label, max_score=len(descriptions),
        options=[RiskSubClauseOption(score=i + 1, description=d) for i, d in enumerate(descriptions)],
    )


RISK_SUBCLAUSES: tuple[RiskSubClause, ...] = (
    _clause("liabilityCap", "liability", "Cap on liability",
            "Capped at 12 months' fees", "Capped at 24 months' fees", "Capped at contract value",
            "Capped at a multiple of contract value", "Uncapped"),
    _clause("liabilityCarveOuts", "liability", "Carve-outs from the cap",
            "Fraud and wilful misconduct only", "Adds data protection breaches",
            "Adds IP and confidentiality breaches", "Broad carve-outs including all indemnities"),
    _clause("consequentialLoss", "liability", "Consequential loss exclusion",
            "Mutual full exclusion", "Exclusion with narrow exceptions",
            "One-sided exclusion in customer's favour", "No exclusion"),
    _clause("employeeNonSolicit", "nonSolicitation", "Employee non-solicitation",
            "Mutual, 6 months", "One-sided or longer than 12 months"),
    _clause("customerNonSolicit", "nonSolicitation", "Customer non-solicitation",
            "None or mutual", "One-sided restriction on the company"),
    _clause("terminationForConvenience", "termination", "Termination for convenience",
            "Not permitted", "Permitted after minimum term", "Permitted with 90+ days' notice",
            "Permitted with 30 days' notice", "Permitted at will without fees"),
    _clause("terminationForCause", "termination", "Termination for cause",
            "Material breach with cure period", "Material breach, short cure period",
            "Any breach with cure period", "Any breach, no cure period"),
    _clause("changeOfControl", "termination", "Change of control",
            "No change-of-control trigger", "Notice obligation only",
            "Consent required, not unreasonably withheld", "Consent at customer's discretion",
            "Automatic termination right"),
    _clause("noticePeriod", "termination", "Notice period",
            "90 days or more", "30 to 90 days", "Under 30 days"),
    _clause("keyPersonnel", "personnel", "Key personnel commitments",
            "None", "Named roles with substitution rights", "Named individuals, no substitution"),
    _clause("staffTransfer", "personnel", "Staff transfer on exit",
            "No transfer obligations", "Transfer obligations on exit"),
    _clause("stepInRights", "stepIn", "Customer step-in rights",
            "None", "Step-in after prolonged failure", "Step-in after any service failure",
            "Step-in at customer's discretion"),
    _clause("liquidatedDamages", "penalty", "Liquidated damages",
            "None or capped service credits", "Service credits up to 20% of fees",
            "Uncapped liquidated damages"),
    _clause("nonCompeteScope", "nonCompete", "Non-compete scope",
            "None", "Narrow product scope", "Sector-wide", "Sector-wide across all geographies"),
    _clause("nonCompeteDuration", "nonCompete", "Non-compete duration",
            "Term of contract only", "Up to 12 months post-term", "Over 12 months post-term"),
    _clause("confidentialityTerm", "confidentiality", "Confidentiality obligations",
            "Mutual, time-limited", "Mutual, perpetual", "One-sided, perpetual with penalties"),
    _clause("paymentPeriod", "paymentTerms", "Payment period",
            "30 days or less", "31 to 60 days", "61 to 90 days", "Over 90 days or milestone-based"),
    _clause("setOffRights", "paymentTerms", "Set-off and withholding",
            "No set-off", "Set-off for undisputed amounts", "Unrestricted set-off and withholding"),
    _clause("ipOwnership", "intellectualProperty", "IP ownership",
            "Company retains all IP", "Customer owns bespoke deliverables only",
            "Joint ownership of platform improvements", "Customer owns all developed IP"),
    _clause("ipIndemnity", "indemnities", "IP infringement indemnity",
            "Capped and mutual", "Capped, company only", "Uncapped, company only"),
    _clause("generalIndemnity", "indemnities", "General indemnities",
            "Limited to third-party claims", "Broad indemnity for any loss"),
)

# Sub-clause id -> score. Missing sub-clauses count as the lowest score (1).
COMPANY_CLAUSE_SCORES: dict[str, dict[str, int]] = {
    "mantla": {
        "liabilityCap": 2, "liabilityCarveOuts": 2, "consequentialLoss": 1,
        "employeeNonSolicit": 1, "customerNonSolicit": 1,
        "terminationForConvenience": 2, "terminationForCause": 1, "changeOfControl": 3, "noticePeriod": 1,
        "keyPersonnel": 2, "staffTransfer": 1,
        "stepInRights": 1,
        "liquidatedDamages": 2,
        "nonCompeteScope": 2, "nonCompeteDuration": 1,
        "confidentialityTerm": 1,
        "paymentPeriod": 2, "setOffRights": 1,
        "ipOwnership": 1,
        "ipIndemnity": 1, "generalIndemnity": 1,
    },
    "instaworks": {
        "liabilityCap": 2, "liabilityCarveOuts": 1, "consequentialLoss": 1,
        "employeeNonSolicit": 1, "customerNonSolicit": 1,
        "terminationForConvenience": 2, "terminationForCause": 1, "changeOfControl": 2, "noticePeriod": 1,
        "keyPersonnel": 1, "staffTransfer": 1,
        "stepInRights": 1,
        "liquidatedDamages": 1,
        "nonCompeteScope": 1, "nonCompeteDuration": 1,
        "confidentialityTerm": 1,
        "paymentPeriod": 2, "setOffRights": 1,
        "ipOwnership": 1,
        "ipIndemnity": 1, "generalIndemnity": 1,
    },
    "disprztech": {
        "liabilityCap": 4, "liabilityCarveOuts": 3, "consequentialLoss": 2,
        "employeeNonSolicit": 2, "customerNonSolicit": 1,
        "terminationForConvenience": 4, "terminationForCause": 2, "changeOfControl": 4, "noticePeriod": 2,
        "keyPersonnel": 2, "staffTransfer": 1,
        "stepInRights": 2,
        "liquidatedDamages": 2,
        "nonCompeteScope": 3, "nonCompeteDuration": 2,
        "confidentialityTerm": 2,
        "paymentPeriod": 3, "setOffRights": 2,
        "ipOwnership": 2,
        "ipIndemnity": 2, "generalIndemnity": 1,
    },
}

# ---------------------------------------------------------------------------
# Country screening
# ---------------------------------------------------------------------------

COUNTRY_TABLE: tuple[tuple[str, str, str], ...] = (
    ("Market Size", "$3.2T GDP, 1.4B population", "$400B GDP, 5.8M population"),
    ("Tech Ecosystem", "Mature startup ecosystem, deep IT talent pool", "Regional tech hub, excellent infrastructure"),
    ("Regulatory Environment", "Evolving framework, recent data localization rules", "Business-friendly, strong IP protection"),
    ("FX Volatility", "Medium, INR managed float", "Low, strong SGD"),
    ("Exit Environment", "Active IPO market and strategic M&A", "Deep capital markets access"),
    ("Ease of Business", "Improving (63rd globally)", "World-leading (2nd globally)"),
)

SOURCE_DATABASES: tuple[str, ...] = ("Pitchbook", "Crunchbase", "Refinitiv", "Capital IQ", "CB Insights")
