"""Tests for the frontend HTTP client (no backend needed)."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from frontend.api_client import GovDashAPI


class FakeResponse:
    def __init__(self, payload=None, content=b""):
        self._payload = payload
        self.content = content

    def raise_for_status(self):
        pass

    def json(self):
        return self._payload


@pytest.fixture
def recorder(monkeypatch):
    """A client whose session records calls instead of sending them."""
    client = GovDashAPI(base_url="http://backend:8050/")
    calls = []

    def make(method):
        def send(url, **kwargs):
            calls.append({
                "method": method,
                "url": url,
                "headers": dict(client.session.headers),
                **kwargs,
            })
            return FakeResponse(payload={"ok": True}, content=b"xlsx")
        return send

    for method in ("get", "post", "put", "patch", "delete"):
        monkeypatch.setattr(client.session, method, make(method))
    return client, calls


class TestGovDashAPI:
    def test_base_url_trailing_slash(self, recorder):
        client, calls = recorder
        client.health()
        assert calls[0]["url"] == "http://backend:8050/health"

    def test_user_header(self, recorder):
        client, calls = recorder
        client.set_user(7)
        client.get_portfolios()
        assert calls[-1]["headers"]["X-User-Id"] == "7"

        client.set_user(None)
        client.get_portfolios()
        assert "X-User-Id" not in calls[-1]["headers"]

    def test_project_filters(self, recorder):
        client, calls = recorder
        client.get_projects(status="active", portfolio_id=0)
        assert calls[0]["params"] == {"status": "active", "portfolio_id": 0}

    def test_standards_flag_as_string(self, recorder):
        client, calls = recorder
        client.get_standards(active_only=True)
        assert calls[0]["params"] == {"active_only": "true"}

    def test_risk_status_patch(self, recorder):
        client, calls = recorder
        client.update_risk_status(4, "resolved")
        assert calls[0]["method"] == "patch"
        assert calls[0]["url"].endswith("/api/risks/4/status")
        assert calls[0]["json"] == {"status": "resolved"}

    def test_evaluate_project_body(self, recorder):
        client, calls = recorder
        client.evaluate_project(project_id=1, standard_id=2, evaluator_id=3)
        assert calls[0]["url"].endswith("/api/compliance/evaluate")
        assert calls[0]["json"] == {
            "project_id": 1, "standard_id": 2, "evaluator_id": 3, "notes": None,
        }

    def test_download_returns_bytes(self, recorder):
        client, calls = recorder
        assert client.download_compliance_report("detailed") == b"xlsx"
        assert calls[0]["params"] == {"report_type": "detailed"}

    def test_reset_preferences_uses_delete(self, recorder):
        client, calls = recorder
        client.reset_preferences(5)
        assert calls[0]["method"] == "delete"
        assert calls[0]["url"].endswith("/api/preferences/5")

    def test_evidence_search_drops_unset_filters(self, recorder):
        client, calls = recorder
        client.search_evidence(project_id=3, status=["submitted", "approved"], q=None)
        assert calls[0]["url"].endswith("/api/compliance/evidence/search")
        assert calls[0]["params"] == {"project_id": 3, "status": ["submitted", "approved"]}

    def test_schedule_calls(self, recorder):
        client, calls = recorder
        client.create_schedule("weekly", portfolio_ids=[1])
        assert calls[0]["json"] == {"frequency": "weekly", "portfolio_ids": [1], "standard_ids": []}

        client.get_schedules(active_only=True)
        assert calls[1]["params"] == {"active_only": "true"}

        client.deactivate_schedule(9)
        assert calls[2]["method"] == "patch"
        assert calls[2]["url"].endswith("/api/compliance/schedules/9/deactivate")
