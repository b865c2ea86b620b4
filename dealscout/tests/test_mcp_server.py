"""Smoke tests for the MCP tools, called as plain functions."""
from __future__ import annotations

import uuid

import pytest

from dealscout import mcp_server
from dealscout.db import init_db


@pytest.fixture()
def sid():
    return f"mcp-{uuid.uuid4()}"


@pytest.fixture()
def tmp_db(tmp_path):
    init_db(tmp_path / "mcp.db")


class TestWizardTools:
    def test_chat_next_walks_phases(self, sid):
        assert mcp_server.chat_next(sid)["state"]["phase"] == "fundMandate"
        resp = mcp_server.chat_next(sid, form_type="fundMandate", form_data={"fundType": "Growth"})
        assert resp["state"]["phase"] == "restrictions"
        assert mcp_server.get_session_state(sid)["phase"] == "restrictions"

    def test_bad_form_type_returns_error(self, sid):
        mcp_server.chat_next(sid)
        assert "error" in mcp_server.chat_next(sid, form_type="teleport", form_data={})

    def test_malformed_payload_returns_error(self, sid):
        mcp_server.chat_next(sid)
        resp = mcp_server.chat_next(sid, form_type="weights", form_data={"qualityOfEarnings": "lots"})
        assert resp["error"] == "Invalid weights payload"
        assert resp["details"]


class TestDataTools:
    def test_get_report(self):
        assert mcp_server.get_report("mantla")["header"]["companyName"] == "Mantla Platform"
        assert mcp_server.get_report("mantla", as_text=True)["text"].startswith("Mantla Platform")
        assert "error" in mcp_server.get_report("nope")
        assert "error" in mcp_server.get_report("mantla", template_type="seed")

    def test_risk(self):
        assert mcp_server.get_risk_model()["maxTotal"] == 72
        assert mcp_server.get_company_risk("instaworks")["grade"] == "Low"
        assert "error" in mcp_server.get_company_risk("nope")

    def test_companies(self):
        assert len(mcp_server.list_companies()) == 3
        assert mcp_server.get_company_details("mantla")["hqCity"] == "Bangalore"
        assert "error" in mcp_server.get_company_details("nope")

    def test_overview_resource(self):
        assert "reportTemplate" in mcp_server.dealscout_overview()


class TestSavedSessionTools:
    def test_save_list_restore_delete(self, sid, tmp_db):
        mcp_server.chat_next(sid)
        saved = mcp_server.save_session(sid, "From MCP")
        assert saved["phase"] == "fundMandate"
        assert sid in [s["sessionId"] for s in mcp_server.list_saved_sessions()]

        assert mcp_server.restore_session(sid)["phase"] == "fundMandate"
        assert mcp_server.delete_saved_session(sid) == {"ok": True}
        assert "error" in mcp_server.delete_saved_session(sid)
        assert "error" in mcp_server.restore_session(sid)
