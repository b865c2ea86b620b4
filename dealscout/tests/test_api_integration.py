"""Integration tests for the FastAPI endpoints.

Uses TestClient against an in-memory database and a fresh wizard per test.
"""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from dealscout.wizard import InMemorySessionStore, Wizard

EQUAL_WEIGHTS = {
    "qualityOfEarnings": 10, "financialPerformance": 10, "industryAttractiveness": 10,
    "competitivePositioning": 10, "managementGovernance": 10, "operationalEfficiency": 10,
    "customerMarketDynamics": 10, "productStrength": 10, "exitFeasibility": 10,
    "scalabilityPotential": 10,
}


@pytest.fixture()
def client(test_db, tmp_path, monkeypatch):
    """FastAPI TestClient using in-memory database and an isolated wizard."""
    engine, TestSession = test_db
    from dealscout.app import app, db_session, get_wizard
    from dealscout.db import init_db

    def override_db_session():
        session = TestSession()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # lifespan still opens a database file; keep it out of the package tree
    monkeypatch.setattr("dealscout.app.init_db", lambda: init_db(tmp_path / "dealscout.db"))
    wizard = Wizard(InMemorySessionStore())
    app.dependency_overrides[db_session] = override_db_session
    app.dependency_overrides[get_wizard] = lambda: wizard
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c
    app.dependency_overrides.clear()


def _next(c, session_id="s1", message=None, form_type=None, data=None):
    body = {"sessionId": session_id}
    if message is not None:
        body["userMessage"] = message
    if form_type is not None:
        body["formData"] = {"type": form_type, "data": data}
    resp = c.post("/api/chat/next", json=body)
    assert resp.status_code == 200, resp.text
    return resp.json()


def _to_comparison(c, session_id="s1"):
    _next(c, session_id)
    _next(c, session_id, form_type="fundMandate", data={})
    _next(c, session_id, form_type="restrictions", data={"mode": "auto"})
    _next(c, session_id, message="continue")
    _next(c, session_id, form_type="weights", data=EQUAL_WEIGHTS)
    _next(c, session_id, form_type="thresholds", data={})
    return _next(c, session_id, message="review")


class TestChatEndpoints:
    def test_first_request_welcomes(self, client):
        data = _next(client)
        assert data["state"]["phase"] == "fundMandate"
        assert data["assistantMessages"][0]["role"] == "assistant"
        assert data["thinkingSteps"][0]["stepNumber"] == 1

    def test_happy_path_to_comparison(self, client):
        data = _to_comparison(client)
        assert data["state"]["phase"] == "comparison"
        shortlist = data["state"]["shortlist"]
        assert [c["id"] for c in shortlist] == ["mantla", "instaworks", "disprztech"]
        assert shortlist[0]["score"] == 90

    def test_strict_threshold_empty_shortlist(self, client):
        _next(client)
        _next(client, form_type="fundMandate", data={})
        _next(client, message="skip")
        _next(client, message="continue")
        _next(client, form_type="weights", data=EQUAL_WEIGHTS)
        data = _next(client, form_type="thresholds", data={"recurringRevenueMin": 90})
        assert data["state"]["phase"] == "shortlist"
        assert data["state"]["shortlist"] == []
        assert data["uiHints"]["showRecommendations"] is True

    def test_select_single_company_reprompts(self, client):
        _to_comparison(client)
        data = _next(client, form_type="selectCompanies", data={"selectedCompanies": ["mantla"]})
        assert data["state"]["phase"] == "comparison"

    def test_missing_session_id_is_400(self, client):
        resp = client.post("/api/chat/next", json={"userMessage": "hi"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid request"
        assert resp.json()["details"]

    def test_empty_session_id_is_400(self, client):
        resp = client.post("/api/chat/next", json={"sessionId": ""})
        assert resp.status_code == 400

    def test_unknown_form_type_is_400(self, client):
        _next(client)
        resp = client.post("/api/chat/next", json={"sessionId": "s1", "formData": {"type": "teleport"}})
        assert resp.status_code == 400

    def test_malformed_threshold_is_400(self, client):
        _to_comparison(client)
        resp = client.post("/api/chat/next", json={
            "sessionId": "s1", "formData": {"type": "thresholds", "data": {"recurringRevenueMin": "lots"}},
        })
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid request"

    def test_state_endpoint(self, client):
        _next(client)
        assert client.get("/api/chat/state/s1").json()["phase"] == "fundMandate"
        assert client.get("/api/chat/state/unknown").json()["phase"] == "welcome"


class TestReportEndpoints:
    def test_get_report(self, client):
        resp = client.get("/api/report/mantla")
        assert resp.status_code == 200
        data = resp.json()
        assert data["header"]["companyName"] == "Mantla Platform"
        assert data["templateType"] == "growth"
        assert data["riskAssessment"]["grade"] == "Medium"

    def test_get_report_template(self, client):
        data = client.get("/api/report/instaworks", params={"templateType": "buyout"}).json()
        assert data["sectionOrder"][-1] == "countryAnalysis"

    def test_get_report_unknown_company(self, client):
        resp = client.get("/api/report/nope")
        assert resp.status_code == 404
        assert "nope" in resp.json()["error"]

    def test_get_report_bad_template(self, client):
        assert client.get("/api/report/mantla", params={"templateType": "seed"}).status_code == 400

    def test_download_by_company(self, client):
        resp = client.get("/api/report/download", params={"companyId": "disprztech"})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/plain")
        assert "Disprztech_Investment_Memo.txt" in resp.headers["content-disposition"]
        assert resp.text.startswith("Disprztech")

    def test_download_uses_session_selection(self, client):
        _to_comparison(client)
        _next(client, form_type="reportTemplate", data={"templateType": "venture"})
        _next(client, form_type="chooseCompany", data={"companyId": "instaworks"})
        resp = client.get("/api/report/download", params={"sessionId": "s1"})
        assert resp.status_code == 200
        assert "Instaworks_Investment_Memo.txt" in resp.headers["content-disposition"]
        assert "Venture Investment Memo" in resp.text

    def test_download_without_company_is_404(self, client):
        assert client.get("/api/report/download", params={"sessionId": "nobody"}).status_code == 404


class TestRiskEndpoints:
    def test_risk_model(self, client):
        data = client.get("/api/risk/model").json()
        assert len(data["buckets"]) == 11
        assert len(data["subClauses"]) == 21
        assert data["maxTotal"] == 72

    def test_company_risk(self, client):
        data = client.get("/api/risk/disprztech").json()
        assert data["grade"] == "High"
        assert data["normalizedPercent"] == 66.7

    def test_company_risk_unknown(self, client):
        assert client.get("/api/risk/nope").status_code == 404


class TestCompanyEndpoints:
    def test_list(self, client):
        data = client.get("/api/companies").json()
        assert len(data) == 3

    def test_scores(self, client):
        data = client.get("/api/companies/scores", params={"ids": "mantla, nope"}).json()
        assert [d["id"] for d in data] == ["mantla"]

    def test_details(self, client):
        data = client.get("/api/companies/disprztech/details").json()
        assert data["customerConcentrationPct"] == 8
        assert data["scores"]["qualityOfEarnings"] == 90

    def test_details_unknown(self, client):
        assert client.get("/api/companies/nope/details").status_code == 404


class TestSessionEndpoints:
    BODY = {
        "sessionId": "s1",
        "name": "Saved run",
        "phase": "countryScreening",
        "fundMandate": {"fundType": "Growth"},
        "chosenCompanyIds": [],
    }

    def test_crud(self, client):
        resp = client.post("/api/sessions", json=self.BODY)
        assert resp.status_code == 201
        assert resp.json()["sessionId"] == "s1"
        assert resp.json()["createdAt"]

        assert [s["sessionId"] for s in client.get("/api/sessions").json()] == ["s1"]
        assert client.get("/api/sessions/s1").json()["name"] == "Saved run"

        assert client.delete("/api/sessions/s1").status_code == 200
        assert client.get("/api/sessions/s1").status_code == 404
        assert client.delete("/api/sessions/s1").status_code == 404

    def test_invalid_body(self, client):
        resp = client.post("/api/sessions", json={"sessionId": "s1"})
        assert resp.status_code == 400

    def test_restore_resumes_wizard(self, client):
        client.post("/api/sessions", json=self.BODY)
        resp = client.post("/api/sessions/s1/restore")
        assert resp.status_code == 200
        assert resp.json()["phase"] == "countryScreening"
        assert _next(client, message="continue")["state"]["phase"] == "weights"

    def test_restore_unknown(self, client):
        assert client.post("/api/sessions/ghost/restore").status_code == 404


def test_import_mcp_server():
    """Verify mcp_server module can be imported without errors."""
    import dealscout.mcp_server  # noqa: F401
