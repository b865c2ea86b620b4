"""Deal-sourcing wizard: a linear phase state machine keyed by session id.

welcome -> fundMandate -> restrictions -> countryScreening -> weights ->
thresholds -> shortlist -> comparison -> infoRequest -> dueDiligence ->
taskCompleted, with comparison -> reportChosen when a single memo is requested.

Each request is one read-modify-write against the injected :class:`SessionStore`:
the state is fetched (a private copy), a phase handler mutates it and builds the
canned assistant messages and thinking steps, and the state is put back.
"""
from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Protocol, TypeVar

from pydantic import BaseModel, ValidationError

from dealscout.config import get_settings
from dealscout.dataset import get_company
from dealscout.errors import InvalidPayloadError
from dealscout.scorer import FixedOrderRanking, RankingStrategy, ranking_from_name, score_and_rank_companies
from dealscout.schemas import (
    DEFAULT_THRESHOLDS,
    TEMPLATE_LABELS,
    WEIGHT_FIELDS,
    WEIGHT_LABELS,
    ChatMessage,
    CompanyChoice,
    CompanySelection,
    ConversationState,
    EmailDraftRef,
    FormData,
    FundMandate,
    NextResponse,
    OptionSelection,
    Restrictions,
    RestrictionsPayload,
    ScoringWeights,
    SubParameterInputs,
    TemplateChoice,
    ThinkingStep,
    Thresholds,
    UiHints,
)

log = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

WEIGHT_TOTAL = 100.0
WEIGHT_TOLERANCE = 0.01
MIN_DUE_DILIGENCE_COMPANIES = 2

SKIP_KEYWORDS = frozenset({"no", "continue", "proceed", "ok", "okay", "yes", "next", "skip"})


# ---------------------------------------------------------------------------
# Session store
# ---------------------------------------------------------------------------


class SessionStore(Protocol):
    def get(self, session_id: str) -> ConversationState | None: ...

    def put(self, session_id: str, state: ConversationState) -> None: ...

    def delete(self, session_id: str) -> bool: ...


class InMemorySessionStore:
    """Process-local store. Reads and writes copy, so callers own what they hold."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._states: dict[str, ConversationState] = {}

    def get(self, session_id: str) -> ConversationState | None:
        with self._lock:
            state = self._states.get(session_id)
            return state.model_copy(deep=True) if state is not None else None

    def put(self, session_id: str, state: ConversationState) -> None:
        with self._lock:
            self._states[session_id] = state.model_copy(deep=True)

    def delete(self, session_id: str) -> bool:
        with self._lock:
            return self._states.pop(session_id, None) is not None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _label(selection: OptionSelection | str | None) -> str:
    if selection is None:
        return ""
    if isinstance(selection, str):
        return selection
    return selection.label


def _first_set(*values: float | None, default: float) -> float:
    for v in values:
        if v is not None:
            return v
    return default


def _fmt(value: float) -> str:
    return f"{value:g}"


def _parse(model: type[M], data: Any, form_type: str) -> M:
    try:
        return model.model_validate(data if data is not None else {})
    except ValidationError as exc:
        raise InvalidPayloadError(
            f"Invalid {form_type} payload",
            details=exc.errors(include_url=False, include_context=False),
        ) from exc


def _company_name(state: ConversationState, company_id: str) -> str:
    for c in state.shortlist:
        if c.id == company_id:
            return c.name
    company = get_company(company_id)
    return company.name if company else company_id


def _say(*texts: str) -> list[ChatMessage]:
    return [ChatMessage(role="assistant", text=t) for t in texts]


def mandate_summary(mandate: FundMandate) -> dict[str, str]:
    """Display values for a mandate, with legacy fields and demo defaults applied."""
    sectors = mandate.sectors_focus or [s.label for s in mandate.sector_focus]
    geos = mandate.geos_focus or [g.label for g in mandate.geographic_focus]
    size_range = mandate.deal_size_range
    deal_min = _first_set(mandate.deal_size_min, size_range.min if size_range else None, default=10)
    deal_max = _first_set(mandate.deal_size_max, size_range.max if size_range else None, default=50)
    return {
        "fund_type": _label(mandate.fund_type) or "Growth",
        "sectors": ", ".join(sectors) or "Technology",
        "geos": ", ".join(geos) or "India, Singapore",
        "deal_size": f"${_fmt(deal_min)}M - ${_fmt(deal_max)}M",
        "risk": _label(mandate.risk_appetite) or "Medium",
    }


COUNTRY_SCREENING_TEXT = """\
**Macro Analysis**
- India: strong technology growth, robust GDP, supportive regulation
- Singapore: best suited to high-quality, governance-heavy deals with a fast-growing technology base
- Vietnam: fastest-growing technology base in the region

All three markets show strong demand for technology.

**Micro Analysis**
- India and Singapore show better growth economics than Vietnam.

**Mandate Compatibility Check**
- All three markets have companies above USD 50M in ticket size.
- ESG environment is strongest in India and Singapore.
- Government revenue dependency risk is highest in Vietnam (but controllable).

Overall, macro, micro and mandate alignment is strongest in India and Singapore.

Reply 'continue' to proceed to the scoring framework configuration."""

EMAIL_DRAFT_TEMPLATE = """\
**To: {name} Management Team**

Dear {name} team,

We are a {fund_type} fund interested in starting due diligence on your company. \
We would like to request additional financial, operational, and legal documentation \
to support our evaluation.

Please provide the following at your earliest convenience:
• Audited financial statements (last 3 years)
• Monthly management accounts (last 12 months)
• Customer contracts and key commercial agreements
• Organizational chart and key personnel details
• Technology stack and IP documentation

We appreciate your cooperation and look forward to engaging further.

Best regards,
DealScout Team"""


# ---------------------------------------------------------------------------
# Wizard
# ---------------------------------------------------------------------------


class Wizard:
    """Phase handlers plus the dispatcher that routes a request to one of them."""

    def __init__(self, store: SessionStore | None = None, ranking: RankingStrategy | None = None):
        self.store: SessionStore = store if store is not None else InMemorySessionStore()
        self.ranking: RankingStrategy = ranking or FixedOrderRanking()

    # -- state access -------------------------------------------------------

    def get_state(self, session_id: str) -> ConversationState:
        """Current state for *session_id*, or a fresh welcome state (not stored)."""
        return self.store.get(session_id) or ConversationState()

    # -- entry point --------------------------------------------------------

    def process_message(
        self,
        session_id: str,
        user_message: str | None = None,
        form_data: FormData | None = None,
    ) -> NextResponse:
        state = self.get_state(session_id)
        previous = state.phase
        response = self._dispatch(state, user_message, form_data)
        self.store.put(session_id, response.state)
        if response.state.phase != previous:
            log.info("Session %s: %s -> %s", session_id, previous, response.state.phase)
        return response

    def _dispatch(
        self, state: ConversationState, user_message: str | None, form_data: FormData | None,
    ) -> NextResponse:
        if state.phase == "welcome":
            return self.welcome(state)

        if form_data is not None:
            kind, data = form_data.type, form_data.data
            if kind == "fundMandate":
                return self.fund_mandate(state, _parse(FundMandate, data, kind))
            if kind == "restrictions":
                return self.restrictions(state, _parse(RestrictionsPayload, data, kind), user_message)
            if kind == "weights":
                return self.weights(state, _parse(ScoringWeights, data, kind))
            if kind == "thresholds":
                if isinstance(data, dict) and (data.get("subParamInputs") or data.get("sub_param_inputs")):
                    return self.thresholds(state, _parse(SubParameterInputs, data, kind))
                return self.thresholds(state, _parse(Thresholds, data, kind))
            if kind == "chooseCompany":
                return self.choose_company(state, _parse(CompanyChoice, data, kind).company_id)
            if kind == "selectCompanies":
                return self.select_companies(state, _parse(CompanySelection, data, kind).selected_companies)
            if kind == "confirmEmails":
                return self.confirm_emails(state)
            if kind == "selectPreferred":
                return self.select_preferred(state, _parse(CompanyChoice, data, kind).company_id)
            if kind == "reportTemplate":
                return self.report_template(state, _parse(TemplateChoice, data, kind).template_type)

        text = (user_message or "").lower()
        if state.phase == "restrictions":
            return self.restrictions(state, None, user_message)
        if state.phase == "countryScreening" and "continue" in text:
            return self.country_screening(state)
        if state.phase == "shortlist" and "review" in text:
            return self.shortlist(state)

        return NextResponse(state=state)

    # -- thinking steps -----------------------------------------------------

    @staticmethod
    def _steps(state: ConversationState, *entries: tuple[str, str]) -> list[ThinkingStep]:
        steps = []
        for phase, text in entries:
            state.thinking_step_counter += 1
            steps.append(ThinkingStep(
                id=str(uuid.uuid4()), phase=phase, text=text,
                step_number=state.thinking_step_counter,
            ))
        return steps

    # -- phase handlers -----------------------------------------------------

    def welcome(self, state: ConversationState) -> NextResponse:
        state.phase = "fundMandate"
        return NextResponse(
            state=state,
            assistant_messages=_say(
                "Hi, I'm your PE Target Finder Agent. I'll guide you through a structured screening "
                "process to identify and evaluate potential investment targets.\n\n"
                "Let's start by capturing your fund mandate. Please fill out the form below with your fund parameters."
            ),
            thinking_steps=self._steps(
                state,
                ("welcome", "Gathering process flow for PE target screening"),
                ("welcome", "Analyzing required information and fields"),
                ("welcome", "Initializing PE screening session..."),
                ("welcome", "Loading target company database from Pitchbook, Crunchbase, and Refinitiv..."),
                ("fundMandate", "Preparing to capture fund mandate parameters..."),
            ),
        )

    def fund_mandate(self, state: ConversationState, mandate: FundMandate) -> NextResponse:
        state.fund_mandate = mandate
        state.phase = "restrictions"
        s = mandate_summary(mandate)
        return NextResponse(
            state=state,
            assistant_messages=_say(
                f"Got it. You're a {s['fund_type'].replace('-', ' ', 1)} fund focused on {s['sectors']} "
                f"in {s['geos']}, with ticket size {s['deal_size']} and {s['risk']} risk appetite.\n\n"
                "Before moving ahead, do you want to add any Macro / Micro / Fund restrictions, or shall I "
                "assess macro conditions, micro and fund restrictions along with the provided fund mandate?"
            ),
            thinking_steps=self._steps(
                state,
                ("fundMandate", "Capturing core fund mandate parameters..."),
                ("fundMandate", f"Mapping deal size {s['deal_size']} to fund size to estimate feasible targets..."),
                ("restrictions", "Preparing to assess macro/micro conditions and fund restrictions..."),
            ),
        )

    def restrictions(
        self, state: ConversationState, payload: RestrictionsPayload | None, user_message: str | None = None,
    ) -> NextResponse:
        if payload is not None:
            if payload.mode == "auto":
                state.restrictions = Restrictions(mode="auto")
            else:
                notes = payload.notes or ""
                state.restrictions = Restrictions(
                    mode="manual", notes=notes,
                    avoid_sanctioned_countries="sanction" in notes.lower(),
                )
        elif user_message:
            lowered = user_message.lower().strip()
            if lowered in SKIP_KEYWORDS or len(lowered) < 3:
                state.restrictions = Restrictions(mode="auto")
            else:
                state.restrictions = Restrictions(
                    mode="manual", notes=user_message,
                    avoid_sanctioned_countries="sanctioned" in lowered,
                )

        state.phase = "countryScreening"
        return NextResponse(
            state=state,
            assistant_messages=_say(COUNTRY_SCREENING_TEXT),
            thinking_steps=self._steps(
                state,
                ("restrictions", "Assessing macro conditions across India, Singapore, Vietnam from demo Refinitiv / CIQ data..."),
                ("restrictions", "Comparing unit economics and growth profiles to your mandate..."),
                ("restrictions", "Identifying India and Singapore as strongest fits for your ticket size and ESG preferences..."),
                ("countryScreening", "Querying macro indicators from Refinitiv and Capital IQ..."),
                ("countryScreening", "Evaluating India: market size, tech ecosystem depth, regulatory risk, FX volatility..."),
                ("countryScreening", "Evaluating Singapore: legal system strength, capital markets depth, ease of doing business..."),
                ("countryScreening", "Both markets pass initial screening criteria. Ready for weights configuration..."),
            ),
        )

    def country_screening(self, state: ConversationState) -> NextResponse:
        state.phase = "weights"
        state.scoring_weights = ScoringWeights()
        params = "\n".join(f"{i}. {WEIGHT_LABELS[f]}" for i, f in enumerate(WEIGHT_FIELDS, start=1))
        return NextResponse(
            state=state,
            assistant_messages=_say(
                "Now let's configure your scoring framework. I'll use these 10 parameters to evaluate "
                f"and rank target companies:\n\n{params}\n\n"
                "Adjust the weights below to reflect what matters most to your fund. The total must equal 100."
            ),
            thinking_steps=self._steps(
                state,
                ("weights", "Initializing scoring framework for target companies..."),
                ("weights", "Loading default weight distribution (10 points each)..."),
                ("weights", "Balancing weights across earnings quality, growth, competitive positioning, and exit feasibility..."),
            ),
        )

    def weights(self, state: ConversationState, weights: ScoringWeights) -> NextResponse:
        total = weights.total
        if abs(total - WEIGHT_TOTAL) > WEIGHT_TOLERANCE:
            log.warning("Rejected scoring weights totalling %s", _fmt(total))
            return NextResponse(
                state=state,
                assistant_messages=_say(
                    f"The scoring weights must total 100, but the submitted weights total {_fmt(total)}. "
                    "Please adjust them and submit again."
                ),
                thinking_steps=self._steps(
                    state, ("weights", f"Weights total {_fmt(total)}, expected 100. Awaiting corrected weights..."),
                ),
            )

        state.scoring_weights = weights
        state.thresholds = DEFAULT_THRESHOLDS.model_copy()
        state.phase = "thresholds"
        return NextResponse(
            state=state,
            assistant_messages=_say(
                "Scoring weights configured. Now let's set your hard filters: companies that don't meet "
                "these thresholds will be excluded from the shortlist.\n\n"
                "Please configure your minimum and maximum thresholds for key financial metrics below."
            ),
            thinking_steps=self._steps(
                state,
                ("weights", "Validating scoring weights sum to 100..."),
                ("weights", "Weights applied successfully. Framework ready for screening."),
                ("thresholds", "Preparing threshold configuration for hard filters..."),
                ("thresholds", "Loading default thresholds based on fund mandate parameters..."),
            ),
        )

    def thresholds(self, state: ConversationState, payload: Thresholds | SubParameterInputs) -> NextResponse:
        if isinstance(payload, SubParameterInputs):
            state.sub_param_inputs = payload.sub_param_inputs
        else:
            state.thresholds = payload

        shortlist = score_and_rank_companies(state.scoring_weights, state.thresholds, self.ranking)
        state.shortlist = shortlist
        state.phase = "shortlist"

        filled = len(state.sub_param_inputs)
        threshold_step = (
            f"Applying {filled} user-defined sub-parameter thresholds..."
            if filled else "Applying default thresholds based on fund mandate..."
        )

        if shortlist:
            summary = "\n".join(
                f"• Rank {c.rank}: {c.name} ({c.country}) — Score: {c.score}/100" for c in shortlist
            )
            message = (
                "I've applied your thresholds and screened the universe of companies. "
                f"Here are the companies that best match your mandate:\n\n{summary}\n\n"
                "Review the detailed profiles below and click \"Generate Report\" on the company "
                "you'd like me to prepare a full investment memo for."
            )
        else:
            message = (
                "I've applied your thresholds and screened the universe of companies, but none of them "
                "passed every threshold. Consider relaxing one or more filters and submitting again."
            )

        entries = [
            ("thresholds", threshold_step),
            ("thresholds", "Filtering companies in India and Singapore from Pitchbook/Refinitiv universe..."),
            ("shortlist", "Computing composite scores using configured weights..."),
            ("shortlist", f"Screening complete. {len(shortlist)} companies passed all thresholds."),
        ]
        if shortlist:
            ranking = ", ".join(f"{c.rank}) {c.name}" for c in shortlist)
            entries.append(("shortlist", f"Final ranking: {ranking}"))
            entries.append(("shortlist", "Presenting shortlist to analyst for review..."))

        return NextResponse(
            state=state,
            assistant_messages=_say(message),
            thinking_steps=self._steps(state, *entries),
            ui_hints=UiHints(show_recommendations=True),
        )

    def shortlist(self, state: ConversationState) -> NextResponse:
        state.phase = "comparison"
        return NextResponse(
            state=state,
            assistant_messages=_say(
                "Here are the detailed profiles of each candidate. Review the highlights and key metrics, "
                "then click 'Generate Report' on the company you'd like a comprehensive investment memo for.\n\n"
                "Remember: this is your decision. I'm providing structure, scoring, and data, but the final "
                "investment recommendation is yours to make."
            ),
            thinking_steps=self._steps(
                state,
                ("comparison", "Presenting detailed company profiles for analyst review..."),
                ("comparison", "Awaiting analyst selection for investment memo generation..."),
            ),
            ui_hints=UiHints(show_recommendations=True),
        )

    def choose_company(self, state: ConversationState, company_id: str) -> NextResponse:
        name = _company_name(state, company_id)
        state.chosen_company_ids = [company_id]
        state.phase = "reportChosen"
        return NextResponse(
            state=state,
            assistant_messages=_say(
                f"Excellent choice. Generating a comprehensive investment memo for {name}...\n\n"
                "The report includes:\n• Executive Summary\n• Country Analysis\n"
                "• Financial Analysis (Quality of Earnings, Growth & Positioning)\n"
                "• Operational Strength & Value Creation\n• Exit Feasibility Assessment"
            ),
            thinking_steps=self._steps(
                state,
                ("reportChosen", f"Analyst selected {name} for detailed analysis."),
                ("reportChosen", "Pulling detailed financial data from Capital IQ and Refinitiv..."),
                ("reportChosen", "Analyzing competitive positioning from CB Insights and Crunchbase..."),
                ("reportChosen", "Compiling exit comparables from Pitchbook transaction database..."),
                ("reportChosen", "Generating investment memo with executive summary and key findings..."),
                ("reportChosen", "Report generation complete. Presenting to analyst."),
            ),
            ui_hints=UiHints(show_report_for_company_id=company_id),
        )

    def select_companies(self, state: ConversationState, selected: list[str]) -> NextResponse:
        if len(selected) < MIN_DUE_DILIGENCE_COMPANIES:
            log.warning("Due diligence selection has %d companies, need %d", len(selected), MIN_DUE_DILIGENCE_COMPANIES)
            return NextResponse(
                state=state,
                assistant_messages=_say("Please select at least two companies to move into the due diligence stage."),
                thinking_steps=self._steps(
                    state, ("comparison", "Awaiting selection of at least 2 companies for due diligence..."),
                ),
                ui_hints=UiHints(show_recommendations=True),
            )

        names = [_company_name(state, cid) for cid in selected]
        state.chosen_company_ids = list(selected)
        state.phase = "infoRequest"

        fund_type = _label(state.fund_mandate.fund_type) or "Growth & Buyout"
        drafts = "\n\n---\n\n".join(EMAIL_DRAFT_TEMPLATE.format(name=n, fund_type=fund_type) for n in names)

        return NextResponse(
            state=state,
            assistant_messages=_say(
                "I will now send interest mails to the shortlisted companies requesting additional "
                "information and documentation for due diligence.",
                f"Review the draft emails below and confirm when I can proceed.\n\n{drafts}",
            ),
            thinking_steps=self._steps(
                state,
                ("comparison", f"Locking in {' and '.join(names)} for detailed due diligence..."),
                ("infoRequest", "Drafting interest mails for shortlisted companies..."),
            ),
            ui_hints=UiHints(
                show_info_request=True,
                email_drafts=[EmailDraftRef(company_id=cid, company_name=n) for cid, n in zip(selected, names)],
            ),
        )

    def confirm_emails(self, state: ConversationState) -> NextResponse:
        names = " and ".join(_company_name(state, cid) for cid in state.chosen_company_ids)
        state.phase = "dueDiligence"
        state.info_request_confirmed = True
        return NextResponse(
            state=state,
            assistant_messages=_say(
                f"I've generated detailed reports for the companies you selected: {names}. "
                "Use the tabs below to review them side by side.\n\n"
                "Each report includes:\n• Executive Summary\n• Country Analysis\n• Financial Analysis\n"
                "• Operational & Value Creation\n• Exit Feasibility"
            ),
            thinking_steps=self._steps(
                state,
                ("infoRequest", "Sending interest mails to shortlisted companies..."),
                ("infoRequest", "Receiving required documentation and data packs..."),
                ("infoRequest", "Validating completeness of received information for due diligence..."),
                ("dueDiligence", "Pulling detailed financial data from Capital IQ and Refinitiv..."),
                ("dueDiligence", "Analyzing competitive positioning from CB Insights and Crunchbase..."),
                ("dueDiligence", "Compiling exit comparables from Pitchbook transaction database..."),
                ("dueDiligence", "Generating investment memos for all selected companies..."),
                ("dueDiligence", "Reports generated. Presenting tabbed view to analyst."),
            ),
            ui_hints=UiHints(show_reports_for_company_ids=list(state.chosen_company_ids)),
        )

    def select_preferred(self, state: ConversationState, company_id: str) -> NextResponse:
        name = _company_name(state, company_id)
        state.final_selected_company_id = company_id
        state.phase = "taskCompleted"
        return NextResponse(
            state=state,
            assistant_messages=_say(
                f"Excellent decision! You have selected **{name}** as your preferred investment target.\n\n"
                "The investment memo has been finalized and is ready for your investment committee review. "
                "Next steps:\n\n"
                "1. Present findings to your investment committee\n"
                f"2. Schedule preliminary discussions with {name} management\n"
                "3. Engage external advisors for detailed due diligence\n"
                "4. Prepare indicative offer and term sheet\n\n"
                "Congratulations on completing the screening process!"
            ),
            thinking_steps=self._steps(
                state,
                ("dueDiligence", f"Analyst selected {name} as the preferred investment target."),
                ("dueDiligence", "Finalizing investment memo and recommendation package..."),
                ("taskCompleted", "Recording final selection in screening session..."),
                ("taskCompleted", "Preparing next steps summary for investment committee..."),
                ("taskCompleted", "Screening process completed successfully."),
            ),
        )

    def report_template(self, state: ConversationState, template_type: str) -> NextResponse:
        state.report_template = template_type
        label = TEMPLATE_LABELS[template_type]
        return NextResponse(
            state=state,
            assistant_messages=_say(f"Switched the investment memo layout to the {label} template."),
            thinking_steps=self._steps(state, (state.phase, f"Reordering memo sections for the {label} template...")),
        )


_default_wizard: Wizard | None = None
_default_lock = threading.Lock()


def default_wizard() -> Wizard:
    """Process-wide wizard over an in-memory store, ranked per ``DEALSCOUT_RANKING``."""
    global _default_wizard
    with _default_lock:
        if _default_wizard is None:
            _default_wizard = Wizard(ranking=ranking_from_name(get_settings().ranking))
        return _default_wizard
