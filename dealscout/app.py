from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Generator

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from dealscout import services
from dealscout.config import get_settings
from dealscout.dataset import RISK_BUCKETS, RISK_MAX_TOTAL, RISK_SUBCLAUSES
from dealscout.db import get_session, init_db
from dealscout.errors import InvalidPayloadError, UnknownCompanyError
from dealscout.reports import generate_report, render_report_text, report_filename
from dealscout.risk import calculate_risk_scores
from dealscout.schemas import (
    CompanyRiskScores,
    ConversationState,
    NextRequest,
    NextResponse,
    ReportTemplate,
    RiskModelOut,
    SavedSessionCreate,
    SavedSessionOut,
    TemplatedReport,
)
from dealscout.wizard import Wizard, default_wizard

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(
    title="DealScout",
    version="0.1.0",
    description=(
        "Guided private-equity deal sourcing. A conversational wizard captures a fund "
        "mandate, screens and ranks target companies, and produces investment memos. "
        "All endpoints return JSON with camelCase keys. No authentication required."
    ),
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Chat", "description": "Advance the screening wizard one step at a time."},
        {"name": "Reports", "description": "Investment memos per company and template."},
        {"name": "Risk", "description": "Contract risk model and per-company risk scores."},
        {"name": "Companies", "description": "The static target-company dataset."},
        {"name": "Sessions", "description": "Save, list, restore and delete wizard sessions."},
    ],
)


# ---------------------------------------------------------------------------
# Dependencies & Helpers
# ---------------------------------------------------------------------------


def get_wizard() -> Wizard:
    return default_wizard()


def db_session() -> Generator[Session, None, None]:
    session = get_session()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def _bad_request(details: list[Any]) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": jsonable_encoder(details)})


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    log.warning("Rejected request to %s: %s", request.url.path, exc.errors())
    return _bad_request(list(exc.errors()))


@app.exception_handler(ValidationError)
async def validation_handler(request: Request, exc: ValidationError):
    log.warning("Rejected payload for %s: %s", request.url.path, exc)
    return _bad_request(exc.errors(include_url=False, include_context=False))


@app.exception_handler(InvalidPayloadError)
async def invalid_payload_handler(request: Request, exc: InvalidPayloadError):
    log.warning("%s (%s)", exc, request.url.path)
    return _bad_request(exc.details)


@app.exception_handler(UnknownCompanyError)
async def unknown_company_handler(request: Request, exc: UnknownCompanyError):
    log.warning("Unknown company %s requested at %s", exc.company_id, request.url.path)
    return JSONResponse(status_code=404, content={"error": str(exc)})


@app.exception_handler(Exception)
async def unhandled_handler(request: Request, exc: Exception):
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# ---------------------------------------------------------------------------
# Routes: Chat
# ---------------------------------------------------------------------------


@app.post("/api/chat/next", response_model=NextResponse,
          tags=["Chat"], summary="Advance the wizard with a message and/or form submission")
def chat_next(body: NextRequest, wizard: Wizard = Depends(get_wizard)):
    return wizard.process_message(body.session_id, body.user_message, body.form_data)


@app.get("/api/chat/state/{session_id}", response_model=ConversationState,
         tags=["Chat"], summary="Get the live wizard state for a session")
def chat_state(session_id: str, wizard: Wizard = Depends(get_wizard)):
    return wizard.get_state(session_id)


# ---------------------------------------------------------------------------
# Routes: Reports
# ---------------------------------------------------------------------------

# download before parameterized to avoid route shadowing


@app.get("/api/report/download", response_class=PlainTextResponse,
         tags=["Reports"], summary="Download an investment memo as plain text")
def download_report(
    session_id: str | None = Query(None, alias="sessionId"),
    company_id: str | None = Query(None, alias="companyId"),
    template_type: ReportTemplate | None = Query(None, alias="templateType"),
    wizard: Wizard = Depends(get_wizard),
):
    state = wizard.get_state(session_id) if session_id else ConversationState()
    company_id = company_id or state.final_selected_company_id or (
        state.chosen_company_ids[0] if state.chosen_company_ids else None
    )
    if not company_id:
        raise HTTPException(404, "No company selected for this session")

    report = generate_report(company_id, template_type or state.report_template)
    if report is None:
        raise UnknownCompanyError(company_id)
    return PlainTextResponse(
        render_report_text(report),
        headers={"Content-Disposition": f'attachment; filename="{report_filename(report)}"'},
    )


@app.get("/api/report/{company_id}", response_model=TemplatedReport,
         tags=["Reports"], summary="Get the investment memo for a company")
def get_report(
    company_id: str,
    template_type: ReportTemplate = Query("growth", alias="templateType"),
):
    report = generate_report(company_id, template_type)
    if report is None:
        raise UnknownCompanyError(company_id)
    return report


# ---------------------------------------------------------------------------
# Routes: Risk
# ---------------------------------------------------------------------------


@app.get("/api/risk/model", response_model=RiskModelOut,
         tags=["Risk"], summary="Get the contract risk buckets and sub-clauses")
def risk_model():
    return RiskModelOut(buckets=list(RISK_BUCKETS), sub_clauses=list(RISK_SUBCLAUSES), max_total=RISK_MAX_TOTAL)


@app.get("/api/risk/{company_id}", response_model=CompanyRiskScores,
         tags=["Risk"], summary="Get contract risk scores for a company")
def company_risk(company_id: str):
    scores = calculate_risk_scores(company_id)
    if scores is None:
        raise UnknownCompanyError(company_id)
    return scores


# ---------------------------------------------------------------------------
# Routes: Companies
# ---------------------------------------------------------------------------


@app.get("/api/companies", tags=["Companies"], summary="List target companies")
def list_companies():
    return services.list_companies()


@app.get("/api/companies/scores", tags=["Companies"],
         summary="Get sub-scores for companies (comma-separated ids, all when omitted)")
def company_scores(ids: str | None = Query(None)):
    id_list = [i.strip() for i in ids.split(",") if i.strip()] if ids else None
    return services.company_scores(id_list)


@app.get("/api/companies/{company_id}/details", tags=["Companies"],
         summary="Get financial metrics and sub-scores for a company")
def company_details(company_id: str):
    return services.company_details(company_id)


# ---------------------------------------------------------------------------
# Routes: Saved sessions
# ---------------------------------------------------------------------------


@app.get("/api/sessions", response_model=list[SavedSessionOut],
         tags=["Sessions"], summary="List saved sessions, most recently updated first")
def list_sessions(session: Session = Depends(db_session)):
    return [services.saved_session_out(row) for row in services.list_saved_sessions(session)]


@app.post("/api/sessions", response_model=SavedSessionOut, status_code=201,
          tags=["Sessions"], summary="Save (or overwrite) a session snapshot")
def save_session(body: SavedSessionCreate, session: Session = Depends(db_session)):
    return services.saved_session_out(services.save_session(session, body))


@app.get("/api/sessions/{session_id}", response_model=SavedSessionOut,
         tags=["Sessions"], summary="Get a saved session")
def get_saved_session(session_id: str, session: Session = Depends(db_session)):
    row = services.get_saved_session(session, session_id)
    if row is None:
        raise HTTPException(404, "Saved session not found")
    return services.saved_session_out(row)


@app.delete("/api/sessions/{session_id}", tags=["Sessions"], summary="Delete a saved session")
def delete_saved_session(session_id: str, session: Session = Depends(db_session)):
    if not services.delete_saved_session(session, session_id):
        raise HTTPException(404, "Saved session not found")
    return {"ok": True}


@app.post("/api/sessions/{session_id}/restore", response_model=ConversationState,
          tags=["Sessions"], summary="Load a saved session back into the live wizard")
def restore_saved_session(
    session_id: str,
    session: Session = Depends(db_session),
    wizard: Wizard = Depends(get_wizard),
):
    state = services.restore_session(session, wizard.store, session_id)
    if state is None:
        raise HTTPException(404, "Saved session not found")
    return state


def main():
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run("dealscout.app:app", host=settings.host, port=settings.port)
