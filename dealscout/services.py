"""Shared business logic for the DealScout API and MCP server."""
from __future__ import annotations

import logging
from datetime import datetime, UTC
from typing import Any

from pydantic.alias_generators import to_camel
from sqlalchemy import select
from sqlalchemy.orm import Session

from dealscout.dataset import COMPANIES, SUBSCORE_FIELDS, get_company
from dealscout.errors import UnknownCompanyError
from dealscout.models import SavedSession
from dealscout.schemas import (
    WEIGHT_FIELDS,
    ConversationState,
    FundMandate,
    SavedSessionCreate,
    SavedSessionOut,
    ScoringWeights,
    ShortlistedCompanyScore,
    Thresholds,
)
from dealscout.utils import isoformat, json_dump, json_parse
from dealscout.wizard import SessionStore

log = logging.getLogger(__name__)

# (model attribute, column attribute) pairs for JSON-backed fields
_JSON_FIELDS = (
    ("fund_mandate", "fund_mandate_json"),
    ("scoring_weights", "scoring_weights_json"),
    ("thresholds", "thresholds_json"),
    ("shortlist", "shortlist_json"),
    ("messages", "messages_json"),
    ("thinking_steps", "thinking_steps_json"),
)


# ---------------------------------------------------------------------------
# Companies
# ---------------------------------------------------------------------------


def list_companies() -> list[dict[str, Any]]:
    return [c.to_wire() for c in COMPANIES]


def _subscores(company) -> dict[str, int]:
    return {to_camel(f): getattr(company, SUBSCORE_FIELDS[f]) for f in WEIGHT_FIELDS}


def company_scores(ids: list[str] | None = None) -> list[dict[str, Any]]:
    """Sub-scores for each known id, in request order. Unknown ids are skipped."""
    companies = COMPANIES if not ids else [c for c in (get_company(i) for i in ids) if c is not None]
    return [{"id": c.id, "name": c.name, "scores": _subscores(c)} for c in companies]


def company_details(company_id: str) -> dict[str, Any]:
    company = get_company(company_id)
    if company is None:
        raise UnknownCompanyError(company_id)
    return {**company.to_wire(), "scores": _subscores(company)}


# ---------------------------------------------------------------------------
# Saved sessions
# ---------------------------------------------------------------------------


def saved_session_out(row: SavedSession) -> SavedSessionOut:
    return SavedSessionOut(
        id=row.id,
        session_id=row.session_id,
        name=row.name,
        phase=row.phase,
        chosen_company_id=row.chosen_company_id,
        chosen_company_ids=json_parse(row.chosen_company_ids_json, []),
        created_at=isoformat(row.created_at),
        updated_at=isoformat(row.updated_at),
        **{field: json_parse(getattr(row, column)) for field, column in _JSON_FIELDS},
    )


def get_saved_session(session: Session, session_id: str) -> SavedSession | None:
    return session.execute(
        select(SavedSession).where(SavedSession.session_id == session_id)
    ).scalars().first()


def list_saved_sessions(session: Session) -> list[SavedSession]:
    return list(session.execute(
        select(SavedSession).order_by(SavedSession.updated_at.desc(), SavedSession.id.desc())
    ).scalars().all())


def save_session(session: Session, payload: SavedSessionCreate) -> SavedSession:
    """Insert or overwrite the snapshot stored under ``payload.session_id``."""
    row = get_saved_session(session, payload.session_id)
    created = row is None
    if row is None:
        row = SavedSession(session_id=payload.session_id)
        session.add(row)

    row.name = payload.name
    row.phase = payload.phase
    row.chosen_company_id = payload.chosen_company_id
    row.chosen_company_ids_json = json_dump(payload.chosen_company_ids) or "[]"
    for field, column in _JSON_FIELDS:
        setattr(row, column, json_dump(getattr(payload, field)))
    row.updated_at = datetime.now(UTC)

    session.commit()
    session.refresh(row)
    log.info("%s saved session %s (%s)", "Created" if created else "Updated", row.session_id, row.phase)
    return row


def delete_saved_session(session: Session, session_id: str) -> bool:
    row = get_saved_session(session, session_id)
    if row is None:
        return False
    session.delete(row)
    session.commit()
    log.info("Deleted saved session %s", session_id)
    return True


def snapshot_from_state(
    session_id: str,
    name: str,
    state: ConversationState,
    messages: list[Any] | None = None,
    thinking_steps: list[Any] | None = None,
) -> SavedSessionCreate:
    """Build a save payload from a live wizard state."""
    wire = state.to_wire()
    chosen = state.final_selected_company_id or (state.chosen_company_ids[0] if state.chosen_company_ids else None)
    return SavedSessionCreate(
        session_id=session_id,
        name=name,
        phase=state.phase,
        fund_mandate=wire["fundMandate"],
        scoring_weights=wire["scoringWeights"],
        thresholds=wire["thresholds"],
        shortlist=wire["shortlist"],
        chosen_company_id=chosen,
        chosen_company_ids=list(state.chosen_company_ids),
        messages=messages,
        thinking_steps=thinking_steps,
    )


def state_from_saved(row: SavedSession) -> ConversationState:
    """Rebuild a wizard state from a snapshot row."""
    state = ConversationState(phase=row.phase)

    mandate = json_parse(row.fund_mandate_json)
    if mandate:
        state.fund_mandate = FundMandate.model_validate(mandate)
    weights = json_parse(row.scoring_weights_json)
    if weights:
        state.scoring_weights = ScoringWeights.model_validate(weights)
    if row.thresholds_json is not None:
        thresholds = json_parse(row.thresholds_json)
        state.thresholds = Thresholds.model_validate(thresholds) if thresholds is not None else None
    state.shortlist = [
        ShortlistedCompanyScore.model_validate(item) for item in json_parse(row.shortlist_json, [])
    ]

    chosen_ids = json_parse(row.chosen_company_ids_json, [])
    if not chosen_ids and row.chosen_company_id:
        chosen_ids = [row.chosen_company_id]
    state.chosen_company_ids = chosen_ids
    if row.phase == "taskCompleted":
        state.final_selected_company_id = row.chosen_company_id
    if row.phase in ("dueDiligence", "taskCompleted"):
        state.info_request_confirmed = True
    state.thinking_step_counter = len(json_parse(row.thinking_steps_json, []))
    return state


def restore_session(session: Session, store: SessionStore, session_id: str) -> ConversationState | None:
    """Load a snapshot into *store* so the wizard resumes from it. ``None`` if absent."""
    row = get_saved_session(session, session_id)
    if row is None:
        return None
    state = state_from_saved(row)
    store.put(session_id, state)
    log.info("Restored session %s at phase %s", session_id, state.phase)
    return state
