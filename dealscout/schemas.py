"""Pydantic request/response schemas for the DealScout API.

Wire format is camelCase (``sessionId``, ``assistantMessages``...); Python code
uses the snake_case attribute names. Both spellings are accepted on input.
"""
from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Phases & templates
# ---------------------------------------------------------------------------

Phase = Literal[
    "welcome", "fundMandate", "restrictions", "countryScreening", "weights",
    "thresholds", "shortlist", "comparison", "infoRequest", "dueDiligence",
    "reportChosen", "taskCompleted",
]

PHASE_ORDER: tuple[str, ...] = (
    "welcome", "fundMandate", "restrictions", "countryScreening", "weights",
    "thresholds", "shortlist", "comparison", "infoRequest", "dueDiligence",
    "reportChosen", "taskCompleted",
)

PHASE_LABELS: dict[str, str] = {
    "welcome": "Welcome",
    "fundMandate": "Fund Mandate",
    "restrictions": "Restrictions",
    "countryScreening": "Country Screening",
    "weights": "Scoring Weights",
    "thresholds": "Thresholds",
    "shortlist": "Shortlist",
    "comparison": "Review & Select",
    "infoRequest": "Info Request",
    "dueDiligence": "Due Diligence",
    "reportChosen": "Report",
    "taskCompleted": "Completed",
}

ReportTemplate = Literal["growth", "buyout", "venture"]

TEMPLATE_LABELS: dict[str, str] = {
    "growth": "PE Growth",
    "buyout": "Buyout",
    "venture": "Venture",
}

TEMPLATE_DESCRIPTIONS: dict[str, str] = {
    "growth": "Focus on revenue growth, market expansion, and scalability",
    "buyout": "Focus on quality of earnings, operational improvements, and cash flow",
    "venture": "Focus on market opportunity, competitive differentiation, and exit potential",
}

FormType = Literal[
    "fundMandate", "restrictions", "weights", "thresholds", "chooseCompany",
    "selectCompanies", "selectPreferred", "confirmEmails", "reportTemplate",
]


# ---------------------------------------------------------------------------
# Fund mandate
# ---------------------------------------------------------------------------


class OptionSelection(_WireModel):
    value: str
    other_text: str | None = None

    @property
    def label(self) -> str:
        if self.value == "Other" and self.other_text:
            return self.other_text
        return self.value


class DealSizeRange(_WireModel):
    min: float | None = None
    max: float | None = None
    currency: str | None = None


class FundSizeConfig(_WireModel):
    amount: float | None = None
    currency: str | None = None


class TicketSize(_WireModel):
    min_enterprise_value: float | None = None
    max_enterprise_value: float | None = None
    equity_cheque_min: float | None = None
    equity_cheque_max: float | None = None
    follow_on_reserve_pct: float | None = None


class FundMandate(_WireModel):
    fund_type: OptionSelection | str | None = None
    sector_focus: list[OptionSelection] = []
    investment_stage: list[OptionSelection] = []
    geographic_focus: list[OptionSelection] = []
    excluded_sectors: list[OptionSelection] = []
    value_creation_approach: list[OptionSelection] = []
    exit_preferences: list[OptionSelection] = []
    financial_criteria: list[OptionSelection] = []
    risk_appetite: OptionSelection | str | None = None
    transaction_types: list[OptionSelection] = []
    ownership_target: OptionSelection | None = None

    equity_stake_preference: str | None = None
    deal_size_range: DealSizeRange | None = None
    fund_size: FundSizeConfig | None = None
    target_irr: float | None = Field(None, alias="targetIRR")
    ticket_size: TicketSize | None = None
    leverage_policy: str | None = None
    time_horizon_and_value_creation_plan: str | None = None
    holding_period_years: float | None = None

    # Older clients send flat string lists
    sectors_focus: list[str] | None = None
    sectors_excluded: list[str] | None = None
    geos_focus: list[str] | None = None
    geos_excluded: list[str] | None = None
    deal_size_min: float | None = None
    deal_size_max: float | None = None
    stage: str | None = None


# ---------------------------------------------------------------------------
# Restrictions, weights, thresholds
# ---------------------------------------------------------------------------


class Restrictions(_WireModel):
    mode: Literal["auto", "manual"] = "auto"
    avoid_sanctioned_countries: bool | None = None
    notes: str | None = None


class RestrictionsPayload(_WireModel):
    mode: Literal["auto", "manual"] = "auto"
    notes: str | None = None


WEIGHT_FIELDS: tuple[str, ...] = (
    "quality_of_earnings", "financial_performance", "industry_attractiveness",
    "competitive_positioning", "management_governance", "operational_efficiency",
    "customer_market_dynamics", "product_strength", "exit_feasibility",
    "scalability_potential",
)

WEIGHT_LABELS: dict[str, str] = {
    "quality_of_earnings": "Quality of Earnings",
    "financial_performance": "Financial Performance",
    "industry_attractiveness": "Industry Attractiveness",
    "competitive_positioning": "Competitive Positioning",
    "management_governance": "Management & Governance",
    "operational_efficiency": "Operational Efficiency",
    "customer_market_dynamics": "Customer & Market Dynamics",
    "product_strength": "Product Strength",
    "exit_feasibility": "Exit Feasibility",
    "scalability_potential": "Scalability Potential",
}


class ScoringWeights(_WireModel):
    quality_of_earnings: float = Field(10, ge=0, le=100)
    financial_performance: float = Field(10, ge=0, le=100)
    industry_attractiveness: float = Field(10, ge=0, le=100)
    competitive_positioning: float = Field(10, ge=0, le=100)
    management_governance: float = Field(10, ge=0, le=100)
    operational_efficiency: float = Field(10, ge=0, le=100)
    customer_market_dynamics: float = Field(10, ge=0, le=100)
    product_strength: float = Field(10, ge=0, le=100)
    exit_feasibility: float = Field(10, ge=0, le=100)
    scalability_potential: float = Field(10, ge=0, le=100)

    @property
    def total(self) -> float:
        return sum(getattr(self, f) for f in WEIGHT_FIELDS)


class Thresholds(_WireModel):
    recurring_revenue_min: float | None = None
    debt_to_ebitda_max: float | None = None
    revenue_growth_min: float | None = None
    fcf_conversion_min: float | None = None
    industry_growth_min: float | None = None
    max_customer_concentration: float | None = None


DEFAULT_THRESHOLDS = Thresholds(
    recurring_revenue_min=50,
    debt_to_ebitda_max=3,
    revenue_growth_min=15,
    fcf_conversion_min=20,
    industry_growth_min=10,
    max_customer_concentration=30,
)


class SubParameterInput(_WireModel):
    sub_param_id: str
    value: float | None = None


class SubParameterInputs(_WireModel):
    sub_param_inputs: list[SubParameterInput]


class CompanyChoice(_WireModel):
    company_id: str = ""


class CompanySelection(_WireModel):
    selected_companies: list[str] = []


class TemplateChoice(_WireModel):
    template_type: ReportTemplate = "growth"


# ---------------------------------------------------------------------------
# Companies & scoring
# ---------------------------------------------------------------------------


class Company(_WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    name: str
    country: str
    hq_city: str
    sector: str
    business_summary: str
    recurring_revenue_pct: float
    debt_to_ebitda: float
    revenue_growth_pct: float
    fcf_conversion_pct: float
    industry_growth_pct: float
    customer_concentration_pct: float
    quality_of_earnings_score: int
    financial_performance_score: int
    industry_attractiveness_score: int
    competitive_positioning_score: int
    management_governance_score: int
    operational_efficiency_score: int
    customer_market_dynamics_score: int
    product_strength_score: int
    exit_feasibility_score: int
    scalability_potential_score: int


class ShortlistedCompanyScore(_WireModel):
    id: str
    name: str
    country: str = ""
    sector: str = ""
    score: int
    rank: int = 0
    highlights: list[str] = []


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------


class ConversationState(_WireModel):
    phase: Phase = "welcome"
    fund_mandate: FundMandate = Field(default_factory=FundMandate)
    restrictions: Restrictions = Field(default_factory=Restrictions)
    scoring_weights: ScoringWeights = Field(default_factory=ScoringWeights)
    thresholds: Thresholds | None = Field(default_factory=lambda: DEFAULT_THRESHOLDS.model_copy())
    sub_param_inputs: list[SubParameterInput] = []
    shortlist: list[ShortlistedCompanyScore] = []
    chosen_company_ids: list[str] = []
    report_template: ReportTemplate = "growth"
    final_selected_company_id: str | None = None
    info_request_confirmed: bool = False
    thinking_step_counter: int = 0


class ThinkingStep(_WireModel):
    id: str
    phase: Phase
    text: str
    step_number: int


class ChatMessage(_WireModel):
    role: Literal["assistant", "user"] = "assistant"
    text: str


class FormData(_WireModel):
    type: FormType
    data: Any = None


class NextRequest(_WireModel):
    session_id: str = Field(min_length=1)
    user_message: str | None = None
    form_data: FormData | None = None


class EmailDraftRef(_WireModel):
    company_id: str
    company_name: str


class UiHints(_WireModel):
    show_recommendations: bool | None = None
    show_report_for_company_id: str | None = None
    show_reports_for_company_ids: list[str] | None = None
    show_info_request: bool | None = None
    email_drafts: list[EmailDraftRef] | None = None


class NextResponse(_WireModel):
    state: ConversationState
    assistant_messages: list[ChatMessage] = []
    thinking_steps: list[ThinkingStep] = []
    ui_hints: UiHints | None = None


# ---------------------------------------------------------------------------
# Contract risk
# ---------------------------------------------------------------------------

RiskGrade = Literal["Low", "Medium", "High"]


class RiskBucket(_WireModel):
    id: str
    label: str
    weight_percent: float
    max_score: int


class RiskSubClauseOption(_WireModel):
    score: int
    description: str


class RiskSubClause(_WireModel):
    id: str
    bucket_id: str
    label: str
    max_score: int
    options: list[RiskSubClauseOption]


class CompanyRiskScores(_WireModel):
    company_id: str
    clause_scores: dict[str, int]
    bucket_totals: dict[str, int]
    raw_total: int
    normalized_percent: float
    grade: RiskGrade
    key_contributors: list[str]


class RiskModelOut(_WireModel):
    buckets: list[RiskBucket]
    sub_clauses: list[RiskSubClause]
    max_total: int


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


class ReportHeader(_WireModel):
    date: str
    company_name: str
    sector: str
    headquarters: str
    source_databases: list[str]


class CountryRow(_WireModel):
    parameter: str
    india: str
    singapore: str


class CountryAnalysis(_WireModel):
    table: list[CountryRow]
    key_points: list[str]


class LabeledDetail(_WireModel):
    label: str
    detail: str


class FinancialAnalysis(_WireModel):
    quality_of_earnings: list[LabeledDetail]
    growth_and_positioning: list[LabeledDetail]


class CompanyReport(_WireModel):
    header: ReportHeader
    executive_summary: list[str]
    country_analysis: CountryAnalysis
    financial_analysis: FinancialAnalysis
    operational_and_value_creation: list[str]
    exit_feasibility: list[str]
    risk_assessment: CompanyRiskScores | None = None


class TemplatedReport(CompanyReport):
    template_type: ReportTemplate
    template_subtitle: str
    section_order: list[str]
    emphasis_items: dict[str, list[int]]


# ---------------------------------------------------------------------------
# Saved sessions
# ---------------------------------------------------------------------------


class SavedSessionCreate(_WireModel):
    session_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    phase: Phase
    fund_mandate: dict[str, Any] | None = None
    scoring_weights: dict[str, Any] | None = None
    thresholds: dict[str, Any] | None = None
    shortlist: list[Any] | None = None
    chosen_company_id: str | None = None
    chosen_company_ids: list[str] = []
    messages: list[Any] | None = None
    thinking_steps: list[Any] | None = None


class SavedSessionOut(SavedSessionCreate):
    id: int
    created_at: str
    updated_at: str
