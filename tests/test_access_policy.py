"""Tests for the role hierarchy, permission table, routes and role defaults."""

import pytest
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from backend.access_policy import (
    Role, ROUTES, PermissionDenied,
    has_role, can_access_resource, check_resource_access,
    can_view_project, can_edit_project, can_view_portfolio,
    routes_for_role, navigation_routes, can_access_route, route_title, route_description,
    default_view, default_preferences,
)

EXEC = Role.EXECUTIVE
PM = Role.PORTFOLIO_MANAGER
PO = Role.PROJECT_OFFICER


class TestRoleHierarchy:
    @pytest.mark.parametrize("actual,required,expected", [
        (EXEC, PO, True),
        (EXEC, EXEC, True),
        (PM, EXEC, False),
        (PM, PO, True),
        (PO, PM, False),
    ])
    def test_has_role(self, actual, required, expected):
        assert has_role(actual, required) is expected

    def test_accepts_plain_strings(self):
        assert has_role("executive", "portfolio_manager") is True

    def test_unknown_role_rejected(self):
        with pytest.raises(ValueError):
            has_role("auditor", "executive")


class TestResourcePermissions:
    def test_officer_edits_but_cannot_create_or_delete_projects(self):
        assert can_access_resource(PO, "project", "edit") is True
        assert can_access_resource(PO, "project", "create") is False
        assert can_access_resource(PO, "project", "delete") is False

    def test_manager_cannot_create_or_delete_portfolios(self):
        assert can_access_resource(PM, "portfolio", "edit") is True
        assert can_access_resource(PM, "portfolio", "create") is False
        assert can_access_resource(PM, "portfolio", "delete") is False

    def test_admin_is_executive_only(self):
        for action in ("view", "edit", "delete", "create"):
            assert can_access_resource(EXEC, "admin", action) is True
            assert can_access_resource(PM, "admin", action) is False

    def test_everyone_views_dashboard(self):
        assert all(can_access_resource(role, "dashboard", "view") for role in Role)

    def test_unknown_resource_or_action_denied(self):
        assert can_access_resource(EXEC, "budget", "view") is False
        assert can_access_resource(EXEC, "project", "archive") is False

    def test_check_resource_access_raises(self):
        with pytest.raises(PermissionDenied, match="project_officer"):
            check_resource_access(PO, "portfolio", "view")
        check_resource_access(EXEC, "portfolio", "delete")


class TestOwnership:
    def test_officer_sees_only_own_project(self):
        assert can_view_project(PO, owner_id=3, user_id=3) is True
        assert can_view_project(PO, owner_id=4, user_id=3) is False
        assert can_edit_project(PO, owner_id=None, user_id=3) is False

    def test_managers_and_executives_see_every_project(self):
        assert can_view_project(PM, owner_id=4, user_id=3) is True
        assert can_edit_project(EXEC, owner_id=None, user_id=1) is True

    def test_portfolio_visibility(self):
        assert can_view_portfolio(EXEC, owner_id=9, user_id=1) is True
        assert can_view_portfolio(PM, owner_id=2, user_id=2) is True
        assert can_view_portfolio(PM, owner_id=9, user_id=2) is False
        assert can_view_portfolio(PO, owner_id=3, user_id=3) is False


class TestRoutes:
    def test_twelve_routes(self):
        assert len(ROUTES) == 12

    def test_officer_navigation(self):
        keys = [r.key for r in navigation_routes(PO)]
        assert keys == ["dashboard", "projects", "risks", "insights"]

    def test_executive_sees_every_route(self):
        assert len(routes_for_role(EXEC)) == len(ROUTES)

    def test_hidden_routes_not_in_navigation(self):
        keys = {r.key for r in navigation_routes(EXEC)}
        assert "profile" not in keys
        assert "portfolio_detail" not in keys

    def test_route_access(self):
        assert can_access_route(PM, "/compliance") is True
        assert can_access_route(PO, "/compliance") is False
        assert can_access_route(PM, "/executive") is False
        assert can_access_route(EXEC, "/nowhere") is False

    def test_titles_and_descriptions(self):
        assert route_title("/executive") == "Executive Dashboard"
        assert route_title("/nowhere") == "Unknown Route"
        assert route_description("/risks") == "Risk assessment and monitoring"
        assert route_description("/nowhere") == ""


class TestRoleDefaults:
    @pytest.mark.parametrize("role,view", [
        (EXEC, "executive-dashboard"),
        (PM, "portfolio-management"),
        (PO, "project-management"),
    ])
    def test_default_view(self, role, view):
        assert default_view(role) == view

    def test_default_preferences_shape(self):
        prefs = default_preferences(PM)
        assert prefs["theme"] == "light"
        assert prefs["default_view"] == "portfolio-management"
        assert prefs["dashboard_layout"]["layout_type"] == "grid"
        assert len(prefs["dashboard_layout"]["widgets"]) == 4
        assert prefs["notifications"]["project_updates"] is True

    def test_executives_skip_project_updates(self):
        assert default_preferences(EXEC)["notifications"]["project_updates"] is False

    def test_defaults_are_fresh_copies(self):
        first = default_preferences(PO)
        first["notifications"]["email"] = False
        assert default_preferences(PO)["notifications"]["email"] is True
