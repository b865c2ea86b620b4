"""Tests for company lookups and saved-session persistence."""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from dealscout import services
from dealscout.errors import UnknownCompanyError
from dealscout.models import SavedSession
from dealscout.schemas import ConversationState, FormData, SavedSessionCreate, Thresholds
from dealscout.utils import json_dump, json_parse
from dealscout.wizard import InMemorySessionStore, Wizard


def _payload(**overrides) -> SavedSessionCreate:
    data = {
        "sessionId": "abc",
        "name": "Q3 screening",
        "phase": "shortlist",
        "fundMandate": {"fundType": "Growth"},
        "scoringWeights": {"qualityOfEarnings": 20, "financialPerformance": 0},
        "thresholds": {"recurringRevenueMin": 60},
        "shortlist": [{"id": "mantla", "name": "Mantla Platform", "score": 90, "rank": 1}],
        "messages": [{"role": "assistant", "text": "hi"}],
        "thinkingSteps": [{"id": "1"}, {"id": "2"}],
    }
    data.update(overrides)
    return SavedSessionCreate.model_validate(data)


# ---------------------------------------------------------------------------
# JSON helpers
# ---------------------------------------------------------------------------


class TestJsonHelpers:
    def test_parse(self):
        assert json_parse('{"a": 1}') == {"a": 1}
        assert json_parse(None) is None
        assert json_parse("", []) == []
        assert json_parse("{broken", {}) == {}

    def test_dump(self):
        assert json_dump(None) is None
        assert json_dump(["é"]) == '["é"]'


# ---------------------------------------------------------------------------
# Companies
# ---------------------------------------------------------------------------


class TestCompanies:
    def test_list_companies_wire_format(self):
        companies = services.list_companies()
        assert [c["id"] for c in companies] == ["mantla", "instaworks", "disprztech"]
        assert "recurringRevenuePct" in companies[0]

    def test_company_scores_filters_unknown(self):
        result = services.company_scores(["disprztech", "nope"])
        assert [r["id"] for r in result] == ["disprztech"]
        assert result[0]["scores"]["qualityOfEarnings"] == 90
        assert len(result[0]["scores"]) == 10

    def test_company_scores_all_by_default(self):
        assert len(services.company_scores()) == 3

    def test_company_details(self):
        details = services.company_details("instaworks")
        assert details["debtToEbitda"] == 0.8
        assert details["scores"]["exitFeasibility"] == 86

    def test_company_details_unknown(self):
        with pytest.raises(UnknownCompanyError):
            services.company_details("nope")


# ---------------------------------------------------------------------------
# Saved sessions
# ---------------------------------------------------------------------------


class TestSavedSessions:
    def test_save_and_get(self, session):
        row = services.save_session(session, _payload())
        assert row.id is not None
        fetched = services.get_saved_session(session, "abc")
        out = services.saved_session_out(fetched)
        assert out.name == "Q3 screening"
        assert out.fund_mandate == {"fundType": "Growth"}
        assert out.shortlist[0]["id"] == "mantla"
        assert out.created_at and out.updated_at

    def test_save_upserts(self, session):
        services.save_session(session, _payload())
        services.save_session(session, _payload(name="Renamed", phase="comparison"))
        rows = session.query(SavedSession).all()
        assert len(rows) == 1
        assert rows[0].name == "Renamed"
        assert rows[0].phase == "comparison"

    def test_list_newest_first(self, session):
        services.save_session(session, _payload(sessionId="first"))
        services.save_session(session, _payload(sessionId="second"))
        services.save_session(session, _payload(sessionId="first", name="touched"))
        ids = [r.session_id for r in services.list_saved_sessions(session)]
        assert ids == ["first", "second"]

    def test_delete(self, session):
        services.save_session(session, _payload())
        assert services.delete_saved_session(session, "abc") is True
        assert services.delete_saved_session(session, "abc") is False
        assert services.get_saved_session(session, "abc") is None

    def test_nulls_round_trip(self, session):
        row = services.save_session(session, _payload(fundMandate=None, messages=None))
        out = services.saved_session_out(row)
        assert out.fund_mandate is None
        assert out.messages is None

    def test_invalid_payload(self):
        with pytest.raises(ValidationError):
            SavedSessionCreate.model_validate({"sessionId": "", "name": "x", "phase": "weights"})
        with pytest.raises(ValidationError):
            SavedSessionCreate.model_validate({"sessionId": "a", "name": "x", "phase": "limbo"})


class TestRestore:
    def test_restore_rebuilds_state(self, session):
        services.save_session(session, _payload())
        store = InMemorySessionStore()
        state = services.restore_session(session, store, "abc")
        assert state.phase == "shortlist"
        assert state.fund_mandate.fund_type == "Growth"
        assert state.scoring_weights.quality_of_earnings == 20
        assert state.scoring_weights.financial_performance == 0
        assert state.thresholds == Thresholds(recurring_revenue_min=60)
        assert state.shortlist[0].score == 90
        assert state.thinking_step_counter == 2
        assert store.get("abc") == state

    def test_restore_unknown(self, session):
        assert services.restore_session(session, InMemorySessionStore(), "ghost") is None

    def test_restore_single_chosen_company(self, session):
        services.save_session(session, _payload(phase="taskCompleted", chosenCompanyId="instaworks"))
        state = services.restore_session(session, InMemorySessionStore(), "abc")
        assert state.chosen_company_ids == ["instaworks"]
        assert state.final_selected_company_id == "instaworks"
        assert state.info_request_confirmed is True

    def test_snapshot_then_restore_resumes_wizard(self, session):
        wizard = Wizard()
        wizard.process_message("live")
        wizard.process_message("live", form_data=FormData(type="fundMandate", data={}))
        wizard.process_message("live", "skip")
        live = wizard.get_state("live")
        assert live.phase == "countryScreening"
        services.save_session(session, services.snapshot_from_state("live", "Snapshot", live))

        wizard.store.delete("live")
        assert wizard.get_state("live").phase == "welcome"

        restored = services.restore_session(session, wizard.store, "live")
        assert restored.phase == "countryScreening"
        assert restored.restrictions == ConversationState().restrictions
        resp = wizard.process_message("live", "continue")
        assert resp.state.phase == "weights"
