from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from mcp.server.fastmcp import FastMCP
from pydantic import ValidationError

from dealscout import services
from dealscout.dataset import RISK_BUCKETS, RISK_MAX_TOTAL, RISK_SUBCLAUSES
from dealscout.db import init_db, session_scope
from dealscout.errors import DealScoutError, InvalidPayloadError
from dealscout.reports import SECTION_ORDERS, generate_report, render_report_text
from dealscout.risk import calculate_risk_scores
from dealscout.schemas import PHASE_LABELS, PHASE_ORDER, TEMPLATE_DESCRIPTIONS, FormData, RiskModelOut
from dealscout.wizard import default_wizard

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def dealscout_lifespan(server: FastMCP) -> AsyncIterator[None]:
    init_db()
    yield


mcp = FastMCP(
    "DealScout",
    instructions=(
        "DealScout walks a private-equity analyst through target screening: fund mandate, "
        "restrictions, country screening, scoring weights, thresholds, shortlist, due diligence. "
        "Drive the wizard with chat_next(session_id, ...) and read memos with get_report(company_id). "
        "Start with a bare chat_next(session_id) to open a session."
    ),
    lifespan=dealscout_lifespan,
    json_response=True,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _error(exc: Exception) -> dict:
    if isinstance(exc, ValidationError):
        return {"error": "Invalid request", "details": exc.errors(include_url=False, include_context=False)}
    if isinstance(exc, InvalidPayloadError):
        return {"error": str(exc), "details": exc.details}
    return {"error": str(exc)}


# ---------------------------------------------------------------------------
# Resource
# ---------------------------------------------------------------------------


@mcp.resource("dealscout://overview")
def dealscout_overview() -> str:
    """Overview of DealScout: phases, form types, and report templates."""
    return json.dumps({
        "system": "DealScout: guided private-equity deal sourcing",
        "phases": {p: PHASE_LABELS[p] for p in PHASE_ORDER},
        "form_types": {
            "fundMandate": "Fund type, sectors, geographies, deal size, risk appetite.",
            "restrictions": "{mode: auto|manual, notes}",
            "weights": "Ten scoring weights in camelCase, totalling 100.",
            "thresholds": "Hard filters (recurringRevenueMin, debtToEbitdaMax, ...) or {subParamInputs}.",
            "chooseCompany": "{companyId} to open a single memo.",
            "selectCompanies": "{selectedCompanies: [...]} with at least two ids for due diligence.",
            "confirmEmails": "Confirm the drafted information-request emails.",
            "selectPreferred": "{companyId} of the final pick.",
            "reportTemplate": "{templateType: growth|buyout|venture}",
        },
        "report_templates": TEMPLATE_DESCRIPTIONS,
        "free_text": {
            "restrictions": "Restriction notes, or 'skip' for automatic assessment.",
            "countryScreening": "'continue' advances to weights.",
            "shortlist": "'review' advances to comparison.",
        },
    }, indent=2)


# ---------------------------------------------------------------------------
# Tools: Wizard
# ---------------------------------------------------------------------------


@mcp.tool()
def chat_next(
    session_id: str,
    user_message: str | None = None,
    form_type: str | None = None,
    form_data: dict[str, Any] | None = None,
) -> dict:
    """Advance the screening wizard by one step.

    Args:
        session_id: Conversation identifier; a new id starts at the welcome phase.
        user_message: Optional free text (restriction notes, 'continue', 'review').
        form_type: Optional form submission type, see the overview resource.
        form_data: Payload for *form_type*, camelCase keys.
    """
    try:
        form = FormData(type=form_type, data=form_data) if form_type else None
        response = default_wizard().process_message(session_id, user_message, form)
    except (ValidationError, DealScoutError) as exc:
        return _error(exc)
    return response.to_wire()


@mcp.tool()
def get_session_state(session_id: str) -> dict:
    """Return the live wizard state for a session (a fresh welcome state if unknown)."""
    return default_wizard().get_state(session_id).to_wire()


# ---------------------------------------------------------------------------
# Tools: Reports, risk, companies
# ---------------------------------------------------------------------------


@mcp.tool()
def get_report(company_id: str, template_type: str = "growth", as_text: bool = False) -> dict:
    """Investment memo for a company.

    Args:
        company_id: One of the dataset ids (mantla, instaworks, disprztech).
        template_type: growth, buyout or venture; controls section order and emphasis.
        as_text: Return the plain-text download rendering instead of structured JSON.
    """
    if template_type not in SECTION_ORDERS:
        return {"error": f"Unknown template type: {template_type}"}
    report = generate_report(company_id, template_type)
    if report is None:
        return {"error": f"Unknown company: {company_id}"}
    if as_text:
        return {"text": render_report_text(report)}
    return report.to_wire()


@mcp.tool()
def get_risk_model() -> dict:
    """Contract risk buckets, sub-clauses and the maximum raw total."""
    return RiskModelOut(
        buckets=list(RISK_BUCKETS), sub_clauses=list(RISK_SUBCLAUSES), max_total=RISK_MAX_TOTAL,
    ).to_wire()


@mcp.tool()
def get_company_risk(company_id: str) -> dict:
    """Contract risk scores, grade and key contributors for a company."""
    scores = calculate_risk_scores(company_id)
    if scores is None:
        return {"error": f"Unknown company: {company_id}"}
    return scores.to_wire()


@mcp.tool()
def list_companies() -> list[dict]:
    """All companies in the screening universe with metrics and sub-scores."""
    return services.list_companies()


@mcp.tool()
def get_company_details(company_id: str) -> dict:
    """Financial metrics and the ten sub-scores for one company."""
    try:
        return services.company_details(company_id)
    except DealScoutError as exc:
        return _error(exc)


# ---------------------------------------------------------------------------
# Tools: Saved sessions
# ---------------------------------------------------------------------------


@mcp.tool()
def save_session(session_id: str, name: str) -> dict:
    """Snapshot the live wizard state of *session_id* under a display name."""
    state = default_wizard().get_state(session_id)
    try:
        payload = services.snapshot_from_state(session_id, name, state)
    except ValidationError as exc:
        return _error(exc)
    with session_scope() as session:
        row = services.save_session(session, payload)
        return services.saved_session_out(row).to_wire()


@mcp.tool()
def list_saved_sessions() -> list[dict]:
    """Saved session snapshots, most recently updated first."""
    with session_scope() as session:
        return [services.saved_session_out(r).to_wire() for r in services.list_saved_sessions(session)]


@mcp.tool()
def restore_session(session_id: str) -> dict:
    """Load a saved snapshot back into the live wizard."""
    with session_scope() as session:
        try:
            state = services.restore_session(session, default_wizard().store, session_id)
        except ValidationError as exc:
            return _error(exc)
    if state is None:
        return {"error": f"Saved session {session_id} not found"}
    return state.to_wire()


@mcp.tool()
def delete_saved_session(session_id: str) -> dict:
    """Delete a saved session snapshot."""
    with session_scope() as session:
        if not services.delete_saved_session(session, session_id):
            return {"error": f"Saved session {session_id} not found"}
    return {"ok": True}


def main():
    """Run the DealScout MCP server over stdio."""
    mcp.run()
