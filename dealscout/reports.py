"""Investment memo generation.

Three canned memo bodies keyed by company id. A template type (growth, buyout,
venture) reorders the sections and flags bullets as emphasized when they
contain one of the template's keywords (case-insensitive substring match).
The contract risk assessment is attached when the company has one.
"""
from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from dealscout.dataset import COUNTRY_TABLE, SOURCE_DATABASES
from dealscout.risk import calculate_risk_scores
from dealscout.schemas import (
    TEMPLATE_LABELS,
    CompanyReport,
    CountryAnalysis,
    CountryRow,
    FinancialAnalysis,
    LabeledDetail,
    ReportHeader,
    TemplatedReport,
)

log = logging.getLogger(__name__)

SECTION_TITLES: dict[str, str] = {
    "executiveSummary": "Executive Summary",
    "countryAnalysis": "Country Analysis",
    "financialAnalysis": "Financial Analysis",
    "operationalAndValueCreation": "Operational Strength & Value Creation",
    "exitFeasibility": "Exit Feasibility",
}

SECTION_ORDERS: dict[str, tuple[str, ...]] = {
    "growth": (
        "executiveSummary", "financialAnalysis", "countryAnalysis",
        "operationalAndValueCreation", "exitFeasibility",
    ),
    "buyout": (
        "executiveSummary", "financialAnalysis", "operationalAndValueCreation",
        "exitFeasibility", "countryAnalysis",
    ),
    "venture": (
        "executiveSummary", "countryAnalysis", "exitFeasibility",
        "financialAnalysis", "operationalAndValueCreation",
    ),
}

TEMPLATE_SUBTITLES: dict[str, str] = {
    "growth": "PE Growth Investment Memo",
    "buyout": "Buyout Investment Memo",
    "venture": "Venture Investment Memo",
}

# Emphasis key -> keywords, per template
EMPHASIS_KEYWORDS: dict[str, dict[str, tuple[str, ...]]] = {
    "growth": {
        "executiveSummary": ("growth", "expansion", "scalab", "market share"),
        "countryAnalysisKeyPoints": ("cagr", "growing", "growth"),
        "operationalAndValueCreation": ("expand", "launch", "markets"),
        "exitFeasibility": ("ipo", "multiple"),
    },
    "buyout": {
        "executiveSummary": ("recurring", "leverage", "margin", "cash"),
        "countryAnalysisKeyPoints": ("regulat", "talent", "cost"),
        "operationalAndValueCreation": ("efficien", "cost", "margin", "pricing", "automation"),
        "exitFeasibility": ("hold period", "buyers", "dual-track"),
    },
    "venture": {
        "executiveSummary": ("differentiat", "ai-powered", "ai/ml", "product", "thesis"),
        "countryAnalysisKeyPoints": ("adoption", "opportunity", "penetration"),
        "operationalAndValueCreation": ("ai-powered", "marketplace", "self-service", "product"),
        "exitFeasibility": ("strategic", "acquir", "ipo"),
    },
}

# ---------------------------------------------------------------------------
# Memo bodies
# ---------------------------------------------------------------------------

_REPORT_BODIES: dict[str, dict[str, Any]] = {
    "mantla": {
        "company_name": "Mantla Platform",
        "sector": "CPaaS / Enterprise Communications",
        "headquarters": "Bangalore, India",
        "executive_summary": [
            "Mantla Platform is a fast-growing cloud communications platform serving India's underserved SME segment with an omnichannel messaging suite.",
            "Revenue grew 42% YoY with 78% recurring revenue, a solid base for scalable expansion across APAC.",
            "Product-market fit shows in native integrations with Salesforce, HubSpot and Zoho and support for WhatsApp Business API, RCS, SMS and email.",
            "The investment thesis is market share capture in India's CPaaS market (25% CAGR) followed by expansion into Southeast Asia.",
            "Value creation levers are enterprise upselling, ARPU expansion through new channels and tighter operating cost control.",
            "Exit routes include a strategic sale to a global CPaaS player or a domestic technology conglomerate.",
        ],
        "key_points": [
            "India's CPaaS market is projected to reach $2.5B by 2027, growing at 25% CAGR on the back of digital adoption and business messaging regulation.",
            "India's 63 million SMEs have low CPaaS penetration, leaving a large greenfield opportunity.",
            "Enterprise adoption of the WhatsApp Business API has accelerated demand for unified messaging platforms.",
            "Bangalore's engineering talent pool keeps product development cost-effective.",
        ],
        "quality_of_earnings": [
            ("Recurring Revenue", "78% of revenue is recurring through subscriptions and usage-based contracts"),
            ("Customer Retention", "Net revenue retention of 115% shows expansion inside existing accounts"),
            ("Unit Economics", "LTV/CAC of 4.2x indicates efficient customer acquisition"),
            ("Revenue Recognition", "Clean recognition policy with minimal deferred revenue adjustments"),
        ],
        "growth_and_positioning": [
            ("Revenue Growth", "42% YoY growth from SME acquisition and enterprise expansion"),
            ("Gross Margin", "68% gross margin with a path to 72%+ through carrier optimization"),
            ("Market Position", "Top-5 CPaaS provider in the Indian SME segment with 8% share"),
            ("Competitive Moat", "Proprietary routing optimization and local carrier relationships"),
        ],
        "operational_and_value_creation": [
            "Build an enterprise sales motion to lift average contract value from $15K to $50K+.",
            "Expand channel coverage into voice and video to increase stickiness and ARPU.",
            "Launch self-service onboarding to cut acquisition cost by 30% and speed up SME sales.",
            "Expand into Southeast Asian markets (Indonesia, Philippines) on the existing stack.",
            "Renegotiate carrier costs and route traffic intelligently to add 4-5 points of gross margin.",
        ],
        "exit_feasibility": [
            "Global CPaaS leaders (Twilio, Vonage, Infobip) are natural strategic buyers seeking India entry.",
            "Domestic conglomerates (Reliance Jio, Tata Digital) may acquire for communication infrastructure.",
            "An IPO is viable given strong unit economics and India's active tech listings market.",
            "Comparable transactions point to 8-12x revenue multiples for high-growth CPaaS businesses.",
            "A 3-4 year hold period is recommended to reach scale before exit.",
        ],
    },
    "instaworks": {
        "company_name": "Instaworks",
        "sector": "CPaaS / Enterprise Communications",
        "headquarters": "Mumbai, India",
        "executive_summary": [
            "Instaworks is an enterprise-grade CPaaS provider with long-standing relationships with large technology companies and banks.",
            "85% recurring revenue and 35% YoY growth come with conservative leverage of 0.8x Debt/EBITDA and steady cash generation.",
            "Carrier-grade delivery infrastructure with a 99.99% uptime SLA differentiates it with large enterprises.",
            "The investment thesis is consolidation of market leadership, international expansion and margin improvement at scale.",
            "Exit feasibility is strong, with clear strategic interest from global platforms seeking Asia-Pacific presence.",
        ],
        "key_points": [
            "India is the largest APAC market for enterprise communication platforms at $1.2B today.",
            "Enterprise digital transformation is driving 40%+ growth in API-based communication spend.",
            "Regulatory clarity on A2P messaging and OTP delivery favours established players.",
            "Mumbai gives direct access to the BFSI customer base at low talent cost.",
        ],
        "quality_of_earnings": [
            ("Recurring Revenue", "85% recurring through 2-3 year enterprise contracts"),
            ("Customer Quality", "Top-10 customers include Fortune 500 technology firms and major Indian banks"),
            ("Margin Profile", "32% FCF conversion with a path to 40%+ through scale"),
            ("Working Capital", "Negative working capital on favourable payment terms"),
        ],
        "growth_and_positioning": [
            ("Revenue Growth", "35% YoY growth with 95% gross and 120% net retention"),
            ("Market Share", "15% share of Indian enterprise CPaaS, the #2 position"),
            ("Geographic Reach", "Delivery infrastructure in 50+ countries for multinational clients"),
            ("Product Breadth", "Full stack: SMS, voice, video, WhatsApp, email and push"),
        ],
        "operational_and_value_creation": [
            "Consolidate leadership through tuck-in acquisitions of regional CPaaS providers.",
            "Expand in the Middle East using existing carrier relationships and enterprise references.",
            "Launch AI-powered conversation analytics to raise platform value and stickiness.",
            "Optimize usage-based pricing to lift revenue per message by 15-20%.",
            "Improve efficiency by automating carrier onboarding and customer support to lower cost to serve.",
        ],
        "exit_feasibility": [
            "A premium multiple is expected given market leadership and enterprise customer quality.",
            "Twilio, MessageBird and Infobip have acquired in APAC at 10-15x revenue multiples.",
            "Strategic buyers gain immediate access to enterprise relationships and delivery infrastructure.",
            "IPO readiness is achievable within 3 years at current scale and governance standards.",
            "A dual-track process is recommended to create tension between strategic and financial buyers.",
        ],
    },
    "disprztech": {
        "company_name": "Disprztech",
        "sector": "SaaS / EdTech / Learning Experience Platform",
        "headquarters": "Singapore",
        "executive_summary": [
            "Disprztech is an AI-powered learning experience platform helping enterprises close skills gaps with personalized learning pathways.",
            "SaaS fundamentals are strong: 88% recurring revenue, 55% YoY growth and minimal leverage at 0.5x Debt/EBITDA.",
            "Proprietary AI/ML for skills taxonomy and competency mapping clearly differentiates the product.",
            "A Singapore headquarters gives access to APAC enterprise buyers while India operations keep costs low.",
            "The investment thesis is capturing corporate reskilling spend as enterprises adapt to the AI era.",
            "Product-led growth combined with enterprise sales keeps acquisition efficient across segments.",
        ],
        "key_points": [
            "Singapore is the natural regional HQ for multinational decision-makers across APAC.",
            "APAC corporate learning is projected to reach $50B by 2027, with the LXP segment growing at 25% CAGR.",
            "Post-pandemic focus on workforce agility is accelerating LXP adoption.",
            "Low LXP penetration among mid-market firms is a sizeable opportunity.",
        ],
        "quality_of_earnings": [
            ("Recurring Revenue", "88% recurring SaaS revenue on annual and multi-year contracts"),
            ("Revenue Quality", "Net dollar retention above 130% from seat expansion and module upsells"),
            ("Customer Concentration", "Top customer is 8% of revenue"),
            ("Unit Economics", "LTV/CAC of 5.5x with a 14-month payback"),
        ],
        "growth_and_positioning": [
            ("Revenue Growth", "55% YoY growth, accelerating from 40% the prior year"),
            ("Gross Margin", "82% gross margin, typical of pure SaaS"),
            ("Market Position", "Recognized leader among corporate LMS/LXP vendors in APAC"),
            ("AI Differentiation", "Skills intelligence engine with 50,000+ mapped competencies"),
        ],
        "operational_and_value_creation": [
            "Build a North American enterprise sales team to win Fortune 500 global deployments.",
            "Launch a skills marketplace connecting enterprise demand with curated content providers.",
            "Develop AI-powered skills assessment to deepen the moat and raise switching costs.",
            "Partner with HR platforms (Workday, SAP SuccessFactors) for distribution.",
            "Introduce a consumption-based pricing tier to reach mid-market customers through product-led growth.",
        ],
        "exit_feasibility": [
            "HR technology platforms (Workday, SAP, Oracle) are strategic buyers for AI-powered learning capabilities.",
            "Consolidation in corporate learning creates several potential acquirers.",
            "Comparable LXP transactions suggest 10-15x ARR multiples for market leaders.",
            "An IPO is supported by strong SaaS metrics and investor interest in skills technology.",
            "A Singapore listing offers deep capital markets, with a US listing viable at scale.",
        ],
    },
}

REPORT_COMPANY_IDS: tuple[str, ...] = tuple(_REPORT_BODIES)


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------


def _report_date(now: datetime | None = None) -> str:
    now = now or datetime.now(UTC)
    return f"{now:%B} {now.day}, {now.year}"


def build_base_report(company_id: str) -> CompanyReport | None:
    body = _REPORT_BODIES.get(company_id)
    if body is None:
        return None
    return CompanyReport(
        header=ReportHeader(
            date=_report_date(),
            company_name=body["company_name"],
            sector=body["sector"],
            headquarters=body["headquarters"],
            source_databases=list(SOURCE_DATABASES),
        ),
        executive_summary=list(body["executive_summary"]),
        country_analysis=CountryAnalysis(
            table=[CountryRow(parameter=p, india=i, singapore=s) for p, i, s in COUNTRY_TABLE],
            key_points=list(body["key_points"]),
        ),
        financial_analysis=FinancialAnalysis(
            quality_of_earnings=[LabeledDetail(label=label, detail=detail) for label, detail in body["quality_of_earnings"]],
            growth_and_positioning=[LabeledDetail(label=label, detail=detail) for label, detail in body["growth_and_positioning"]],
        ),
        operational_and_value_creation=list(body["operational_and_value_creation"]),
        exit_feasibility=list(body["exit_feasibility"]),
        risk_assessment=calculate_risk_scores(company_id),
    )


def emphasized_indices(items: list[str], keywords: tuple[str, ...]) -> list[int]:
    lowered = [k.lower() for k in keywords]
    return [i for i, text in enumerate(items) if any(k in text.lower() for k in lowered)]


def generate_report(company_id: str, template_type: str = "growth") -> TemplatedReport | None:
    """Build the memo for *company_id* laid out for *template_type*.

    Returns ``None`` for a company without a memo. Raises ``ValueError`` for an
    unknown template type.
    """
    if template_type not in SECTION_ORDERS:
        raise ValueError(f"Unknown template type: {template_type!r}")
    base = build_base_report(company_id)
    if base is None:
        log.warning("No report body for company %s", company_id)
        return None

    keywords = EMPHASIS_KEYWORDS[template_type]
    sections = {
        "executiveSummary": base.executive_summary,
        "countryAnalysisKeyPoints": base.country_analysis.key_points,
        "operationalAndValueCreation": base.operational_and_value_creation,
        "exitFeasibility": base.exit_feasibility,
    }
    emphasis = {key: emphasized_indices(items, keywords[key]) for key, items in sections.items()}

    return TemplatedReport(
        **base.model_dump(),
        template_type=template_type,
        template_subtitle=TEMPLATE_SUBTITLES[template_type],
        section_order=list(SECTION_ORDERS[template_type]),
        emphasis_items=emphasis,
    )


# ---------------------------------------------------------------------------
# Plain-text rendering (download)
# ---------------------------------------------------------------------------


def _bullets(items: list[str], emphasized: list[int], numbered: bool = False) -> list[str]:
    lines = []
    for idx, text in enumerate(items):
        marker = f"{idx + 1}." if numbered else "-"
        star = " *" if idx in emphasized else ""
        lines.append(f"  {marker}{star} {text}")
    return lines


def _section_lines(report: TemplatedReport, key: str) -> list[str]:
    emphasis = report.emphasis_items
    if key == "executiveSummary":
        return _bullets(report.executive_summary, emphasis.get("executiveSummary", []), numbered=True)
    if key == "countryAnalysis":
        lines = [f"  {'Parameter':<24} {'India':<52} Singapore"]
        lines += [f"  {row.parameter:<24} {row.india:<52} {row.singapore}" for row in report.country_analysis.table]
        lines += ["", "  Key Insights"]
        lines += _bullets(report.country_analysis.key_points, emphasis.get("countryAnalysisKeyPoints", []))
        return lines
    if key == "financialAnalysis":
        fa = report.financial_analysis
        lines = ["  Quality of Earnings"]
        lines += [f"  - {item.label}: {item.detail}" for item in fa.quality_of_earnings]
        lines += ["", "  Growth & Positioning"]
        lines += [f"  - {item.label}: {item.detail}" for item in fa.growth_and_positioning]
        return lines
    if key == "operationalAndValueCreation":
        return _bullets(report.operational_and_value_creation, emphasis.get("operationalAndValueCreation", []))
    if key == "exitFeasibility":
        return _bullets(report.exit_feasibility, emphasis.get("exitFeasibility", []))
    raise ValueError(f"Unknown report section: {key!r}")


def render_report_text(report: TemplatedReport) -> str:
    h = report.header
    lines = [
        h.company_name,
        f"{report.template_subtitle} ({TEMPLATE_LABELS[report.template_type]})",
        "=" * 72,
        f"Date: {h.date} | Sector: {h.sector} | HQ: {h.headquarters}",
        f"Data Sources: {', '.join(h.source_databases)}",
    ]
    for key in report.section_order:
        title = SECTION_TITLES[key]
        lines += ["", title.upper(), "-" * len(title)]
        lines += _section_lines(report, key)

    risk = report.risk_assessment
    if risk is not None:
        lines += [
            "", "CONTRACT RISK ASSESSMENT", "-" * 24,
            f"  Overall Risk Grade: {risk.grade} ({risk.normalized_percent:.1f}%, {risk.raw_total} points)",
            f"  Key Contributors: {', '.join(risk.key_contributors)}",
        ]

    lines += [
        "", "-" * 72,
        "Items marked * are emphasized for this template.",
        "This document is confidential and intended for the recipient only.",
        f"Generated on {h.date} by DealScout",
    ]
    return "\n".join(lines) + "\n"


def report_filename(report: CompanyReport) -> str:
    return "_".join(report.header.company_name.split()) + "_Investment_Memo.txt"
