"""
GovDash — Frontend API Client

Centralized HTTP client for all backend API calls.
All frontend components use this module instead of making direct HTTP requests.

Usage:
    from frontend.api_client import api
    api.set_user(3)
    portfolios = api.get_portfolios()
    result = api.evaluate_project(project_id=1, standard_id=2, evaluator_id=3)
"""

import os
import requests
from typing import Optional

# Backend URL — configurable via environment
API_BASE = os.getenv("GOVDASH_API_URL", "http://127.0.0.1:8050")


class GovDashAPI:
    """HTTP client wrapper for the GovDash backend API."""

    def __init__(self, base_url: str = API_BASE):
        self.base_url = base_url.rstrip("/")
        self.session = requests.Session()
        self.user_id: Optional[int] = None

    def set_user(self, user_id: Optional[int]) -> None:
        """Act as `user_id` on subsequent requests (sent as X-User-Id)."""
        self.user_id = user_id
        if user_id is None:
            self.session.headers.pop("X-User-Id", None)
        else:
            self.session.headers["X-User-Id"] = str(user_id)

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _get(self, path: str, params: dict = None) -> dict:
        r = self.session.get(self._url(path), params=params, timeout=30)
        r.raise_for_status()
        return r.json()

    def _get_bytes(self, path: str, params: dict = None) -> bytes:
        r = self.session.get(self._url(path), params=params, timeout=60)
        r.raise_for_status()
        return r.content

    def _post(self, path: str, json_data: dict = None) -> dict:
        r = self.session.post(self._url(path), json=json_data, timeout=60)
        r.raise_for_status()
        return r.json()

    def _patch(self, path: str, json_data: dict = None) -> dict:
        r = self.session.patch(self._url(path), json=json_data, timeout=30)
        r.raise_for_status()
        return r.json()

    def _put(self, path: str, json_data: dict = None) -> dict:
        r = self.session.put(self._url(path), json=json_data, timeout=30)
        r.raise_for_status()
        return r.json()

    def _delete(self, path: str) -> dict:
        r = self.session.delete(self._url(path), timeout=30)
        r.raise_for_status()
        return r.json()

    # ---- Health ----
    def health(self) -> dict:
        return self._get("/health")

    # ---- Users ----
    def get_users(self, role: str = None) -> list:
        params = {"role": role} if role else None
        return self._get("/api/users", params=params)

    def get_user(self, user_id: int) -> dict:
        return self._get(f"/api/users/{user_id}")

    def create_user(self, data: dict) -> dict:
        return self._post("/api/users", json_data=data)

    def update_user(self, user_id: int, data: dict) -> dict:
        return self._put(f"/api/users/{user_id}", json_data=data)

    def delete_user(self, user_id: int) -> dict:
        return self._delete(f"/api/users/{user_id}")

    def get_user_statistics(self) -> dict:
        return self._get("/api/users/statistics")

    # ---- Portfolios ----
    def get_portfolios(self, owner_id: int = None) -> list:
        params = {"owner_id": owner_id} if owner_id is not None else None
        return self._get("/api/portfolios", params=params)

    def get_portfolio(self, portfolio_id: int) -> dict:
        return self._get(f"/api/portfolios/{portfolio_id}")

    def get_portfolio_projects(self, portfolio_id: int) -> dict:
        return self._get(f"/api/portfolios/{portfolio_id}/projects")

    def get_portfolio_statistics(self, portfolio_id: int) -> dict:
        return self._get(f"/api/portfolios/{portfolio_id}/statistics")

    def create_portfolio(self, data: dict) -> dict:
        return self._post("/api/portfolios", json_data=data)

    def update_portfolio(self, portfolio_id: int, data: dict) -> dict:
        return self._put(f"/api/portfolios/{portfolio_id}", json_data=data)

    def delete_portfolio(self, portfolio_id: int) -> dict:
        return self._delete(f"/api/portfolios/{portfolio_id}")

    def recompute_health_score(self, portfolio_id: int) -> dict:
        return self._post(f"/api/portfolios/{portfolio_id}/health-score")

    def get_risk_heatmap(self) -> list:
        return self._get("/api/portfolios/risk-heatmap")

    # ---- Projects ----
    def get_projects(self, status: str = None, portfolio_id: int = None,
                     owner_id: int = None) -> list:
        params = {}
        if status:
            params["status"] = status
        if portfolio_id is not None:
            params["portfolio_id"] = portfolio_id
        if owner_id is not None:
            params["owner_id"] = owner_id
        return self._get("/api/projects", params=params)

    def get_project(self, project_id: int) -> dict:
        return self._get(f"/api/projects/{project_id}")

    def create_project(self, data: dict) -> dict:
        return self._post("/api/projects", json_data=data)

    def update_project(self, project_id: int, data: dict) -> dict:
        return self._put(f"/api/projects/{project_id}", json_data=data)

    def delete_project(self, project_id: int) -> dict:
        return self._delete(f"/api/projects/{project_id}")

    def get_project_statistics(self) -> dict:
        return self._get("/api/projects/statistics")

    # ---- Risks ----
    def get_risks(self, project_id: int = None, severity: str = None, status: str = None) -> list:
        params = {}
        if project_id is not None:
            params["project_id"] = project_id
        if severity:
            params["severity"] = severity
        if status:
            params["status"] = status
        return self._get("/api/risks", params=params)

    def get_high_priority_risks(self) -> list:
        return self._get("/api/risks/high-priority")

    def create_risk(self, data: dict) -> dict:
        return self._post("/api/risks", json_data=data)

    def update_risk(self, risk_id: int, data: dict) -> dict:
        return self._put(f"/api/risks/{risk_id}", json_data=data)

    def update_risk_status(self, risk_id: int, status: str) -> dict:
        return self._patch(f"/api/risks/{risk_id}/status", json_data={"status": status})

    def delete_risk(self, risk_id: int) -> dict:
        return self._delete(f"/api/risks/{risk_id}")

    def get_risk_matrix(self, project_id: int = None) -> dict:
        params = {"project_id": project_id} if project_id is not None else None
        return self._get("/api/risks/matrix", params=params)

    def get_project_risk_statistics(self, project_id: int) -> dict:
        return self._get(f"/api/risks/project/{project_id}/statistics")

    # ---- Standards ----
    def get_standards(self, active_only: bool = False, category: str = None) -> list:
        params = {"active_only": str(active_only).lower()}
        if category:
            params["category"] = category
        return self._get("/api/standards", params=params)

    def get_standard_with_criteria(self, standard_id: int) -> dict:
        return self._get(f"/api/standards/{standard_id}/with-criteria")

    # ---- Compliance ----
    def submit_evidence(self, data: dict) -> dict:
        return self._post("/api/compliance/evidence", json_data=data)

    def get_project_evidence(self, project_id: int, standard_id: int = None) -> list:
        params = {"standard_id": standard_id} if standard_id is not None else None
        return self._get(f"/api/compliance/project/{project_id}/evidence", params=params)

    def review_evidence(self, record_id: int, data: dict) -> dict:
        return self._patch(f"/api/compliance/evidence/{record_id}/status", json_data=data)

    def evaluate_project(self, project_id: int, standard_id: int, evaluator_id: int,
                         notes: str = None) -> dict:
        return self._post("/api/compliance/evaluate", json_data={
            "project_id": project_id,
            "standard_id": standard_id,
            "evaluator_id": evaluator_id,
            "notes": notes,
        })

    def search_evidence(self, **filters) -> dict:
        params = {k: v for k, v in filters.items() if v is not None}
        return self._get("/api/compliance/evidence/search", params=params)

    def bulk_review_evidence(self, record_ids: list, status: str, reviewer_id: int = None) -> dict:
        return self._post("/api/compliance/evidence/bulk-status", json_data={
            "record_ids": record_ids, "status": status, "reviewer_id": reviewer_id,
        })

    def get_project_compliance_status(self, project_id: int) -> list:
        return self._get(f"/api/compliance/project/{project_id}/status")

    def get_portfolio_compliance_status(self, portfolio_id: int) -> dict:
        return self._get(f"/api/compliance/portfolio/{portfolio_id}/status")

    def create_schedule(self, frequency: str, portfolio_ids: list = None,
                        standard_ids: list = None) -> dict:
        return self._post("/api/compliance/schedules", json_data={
            "frequency": frequency,
            "portfolio_ids": portfolio_ids or [],
            "standard_ids": standard_ids or [],
        })

    def get_schedules(self, active_only: bool = False) -> list:
        return self._get("/api/compliance/schedules",
                         params={"active_only": str(active_only).lower()})

    def run_due_schedules(self) -> list:
        return self._post("/api/compliance/schedules/run")

    def deactivate_schedule(self, schedule_id: int) -> dict:
        return self._patch(f"/api/compliance/schedules/{schedule_id}/deactivate")

    def get_risk_compliance_correlation(self) -> dict:
        return self._get("/api/compliance/analytics/risk-correlation")

    def get_portfolio_comparison(self) -> dict:
        return self._get("/api/compliance/analytics/portfolio-comparison")

    def get_recent_evaluations(self, limit: int = 50) -> list:
        return self._get("/api/compliance/evaluations/recent", params={"limit": limit})

    def get_compliance_statistics(self) -> dict:
        return self._get("/api/compliance/dashboard/statistics")

    def get_portfolio_compliance(self) -> list:
        return self._get("/api/compliance/dashboard/portfolios")

    def get_compliance_trends(self, days: int = 30) -> list:
        return self._get("/api/compliance/dashboard/trends", params={"days": days})

    def get_standards_adherence(self) -> list:
        return self._get("/api/compliance/dashboard/adherence")

    def get_non_compliance_heatmap(self) -> list:
        return self._get("/api/compliance/dashboard/heatmap")

    def get_compliance_report(self, report_type: str = "executive_summary",
                              portfolio_id: int = None, project_id: int = None) -> dict:
        params = {"report_type": report_type}
        if portfolio_id is not None:
            params["portfolio_id"] = portfolio_id
        if project_id is not None:
            params["project_id"] = project_id
        return self._get("/api/compliance/report", params=params)

    def download_compliance_report(self, report_type: str = "executive_summary") -> bytes:
        return self._get_bytes("/api/export/compliance-report.xlsx",
                               params={"report_type": report_type})

    # ---- Access & Preferences ----
    def get_navigation(self, role: str) -> list:
        return self._get(f"/api/access/navigation/{role}")

    def check_permission(self, role: str, resource: str, action: str) -> dict:
        return self._get("/api/access/check",
                         params={"role": role, "resource": resource, "action": action})

    def get_preferences(self, user_id: int) -> dict:
        return self._get(f"/api/preferences/{user_id}")

    def update_preferences(self, user_id: int, data: dict) -> dict:
        return self._put(f"/api/preferences/{user_id}", json_data=data)

    def reset_preferences(self, user_id: int) -> dict:
        return self._delete(f"/api/preferences/{user_id}")


# Global API client instance
api = GovDashAPI()
