"""
GovDash Access Policy

Pure authorization decisions over the three dashboard roles:

    executive (3) > portfolio_manager (2) > project_officer (1)

Three kinds of question are answered here:
    - has_role:             rank comparison against the hierarchy
    - can_access_resource:  explicit allow-list per (resource, action) cell;
                            not a rank cutoff (officers edit projects but
                            cannot create or delete them)
    - can_view_project / can_edit_project / can_view_portfolio:
                            ownership-scoped checks

It also owns the role-keyed views: the route table, navigation per role,
each role's default landing view and its default dashboard preferences.

Identity is always passed in by the caller. Nothing here reads a session,
the database, or the request.

Usage:
    from backend.access_policy import Role, can_access_resource
    if can_access_resource(Role.PROJECT_OFFICER, "project", "delete"):
        ...
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class Role(str, Enum):
    EXECUTIVE = "executive"
    PORTFOLIO_MANAGER = "portfolio_manager"
    PROJECT_OFFICER = "project_officer"


RoleLike = Union[Role, str]

ROLE_RANKS = {
    Role.EXECUTIVE: 3,
    Role.PORTFOLIO_MANAGER: 2,
    Role.PROJECT_OFFICER: 1,
}

RESOURCE_TYPES = ("project", "portfolio", "dashboard", "admin")
ACTIONS = ("view", "edit", "delete", "create")

_ALL = frozenset(Role)
_MANAGERS = frozenset({Role.EXECUTIVE, Role.PORTFOLIO_MANAGER})
_EXECUTIVES = frozenset({Role.EXECUTIVE})

# (resource, action) → roles allowed
RESOURCE_PERMISSIONS = {
    ("project", "view"): _ALL,
    ("project", "edit"): _ALL,
    ("project", "delete"): _MANAGERS,
    ("project", "create"): _MANAGERS,
    ("portfolio", "view"): _MANAGERS,
    ("portfolio", "edit"): _MANAGERS,
    ("portfolio", "delete"): _EXECUTIVES,
    ("portfolio", "create"): _EXECUTIVES,
    ("dashboard", "view"): _ALL,
    ("dashboard", "edit"): _MANAGERS,
    ("dashboard", "delete"): _EXECUTIVES,
    ("dashboard", "create"): _EXECUTIVES,
    ("admin", "view"): _EXECUTIVES,
    ("admin", "edit"): _EXECUTIVES,
    ("admin", "delete"): _EXECUTIVES,
    ("admin", "create"): _EXECUTIVES,
}


class PermissionDenied(Exception):
    """Raised when a role may not perform an action on a resource type."""

    def __init__(self, role: RoleLike, resource_type: str, action: str):
        super().__init__(
            f"Role '{Role(role).value}' may not {action} {resource_type}"
        )
        self.role = Role(role)
        self.resource_type = resource_type
        self.action = action


# ---------------------------------------------------------------------------
# ROLE HIERARCHY & RESOURCE TABLE
# ---------------------------------------------------------------------------

def rank(role: RoleLike) -> int:
    return ROLE_RANKS[Role(role)]


def has_role(actual: RoleLike, required: RoleLike) -> bool:
    """True when `actual` sits at or above `required` in the hierarchy."""
    return rank(actual) >= rank(required)


def can_access_resource(role: RoleLike, resource_type: str, action: str) -> bool:
    """Allow-list lookup. Unknown resource types or actions are denied."""
    allowed = RESOURCE_PERMISSIONS.get((resource_type, action))
    if allowed is None:
        return False
    return Role(role) in allowed


def check_resource_access(role: RoleLike, resource_type: str, action: str) -> None:
    """Raise PermissionDenied unless can_access_resource allows it."""
    if not can_access_resource(role, resource_type, action):
        raise PermissionDenied(role, resource_type, action)


# ---------------------------------------------------------------------------
# OWNERSHIP-SCOPED CHECKS
# ---------------------------------------------------------------------------

def _is_owner(owner_id: Optional[int], user_id: Optional[int]) -> bool:
    return owner_id is not None and user_id is not None and owner_id == user_id


def can_view_project(role: RoleLike, owner_id: Optional[int], user_id: Optional[int]) -> bool:
    role = Role(role)
    if role is Role.EXECUTIVE:
        return True
    if role is Role.PORTFOLIO_MANAGER:
        return True
    if role is Role.PROJECT_OFFICER:
        return _is_owner(owner_id, user_id)
    raise ValueError(f"Unhandled role: {role}")


def can_edit_project(role: RoleLike, owner_id: Optional[int], user_id: Optional[int]) -> bool:
    role = Role(role)
    if role is Role.EXECUTIVE:
        return True
    if role is Role.PORTFOLIO_MANAGER:
        return True
    if role is Role.PROJECT_OFFICER:
        return _is_owner(owner_id, user_id)
    raise ValueError(f"Unhandled role: {role}")


def can_view_portfolio(role: RoleLike, owner_id: Optional[int], user_id: Optional[int]) -> bool:
    role = Role(role)
    if role is Role.EXECUTIVE:
        return True
    if role is Role.PORTFOLIO_MANAGER:
        return _is_owner(owner_id, user_id)
    if role is Role.PROJECT_OFFICER:
        return False
    raise ValueError(f"Unhandled role: {role}")


# ---------------------------------------------------------------------------
# ROUTES & NAVIGATION
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RouteConfig:
    key: str
    path: str
    title: str
    description: str
    show_in_navigation: bool
    required_role: Optional[Role] = None


ROUTES = (
    RouteConfig("dashboard", "/", "Dashboard", "Main dashboard overview", True),
    RouteConfig("executive", "/executive", "Executive Dashboard",
                "High-level portfolio view for executives", True, Role.EXECUTIVE),
    RouteConfig("portfolios", "/portfolios", "Portfolio Management",
                "Manage and monitor project portfolios", True, Role.PORTFOLIO_MANAGER),
    RouteConfig("portfolio_detail", "/portfolios/:id", "Portfolio Details",
                "Detailed view of a specific portfolio", False, Role.PORTFOLIO_MANAGER),
    RouteConfig("projects", "/projects", "Project Management",
                "Manage individual projects", True, Role.PROJECT_OFFICER),
    RouteConfig("project_detail", "/projects/:id", "Project Details",
                "Detailed view of a specific project", False, Role.PROJECT_OFFICER),
    RouteConfig("risks", "/risks", "Risk Management",
                "Risk assessment and monitoring", True),
    RouteConfig("compliance", "/compliance", "Compliance Reports",
                "PMI compliance reporting", True, Role.PORTFOLIO_MANAGER),
    RouteConfig("insights", "/insights", "Insights",
                "Portfolio trends and insights", True),
    RouteConfig("profile", "/profile", "User Profile",
                "User settings and preferences", False),
    RouteConfig("login", "/login", "Login", "Authentication page", False),
    RouteConfig("logout", "/logout", "Logout", "Session termination", False),
)


def _find_route(path: str) -> Optional[RouteConfig]:
    for route in ROUTES:
        if route.path == path:
            return route
    return None


def _route_allowed(role: RoleLike, route: RouteConfig) -> bool:
    return route.required_role is None or has_role(role, route.required_role)


def routes_for_role(role: RoleLike) -> list[RouteConfig]:
    return [route for route in ROUTES if _route_allowed(role, route)]


def navigation_routes(role: RoleLike) -> list[RouteConfig]:
    return [route for route in routes_for_role(role) if route.show_in_navigation]


def can_access_route(role: RoleLike, path: str) -> bool:
    """Unknown paths are denied."""
    route = _find_route(path)
    if route is None:
        return False
    return _route_allowed(role, route)


def route_title(path: str) -> str:
    route = _find_route(path)
    return route.title if route else "Unknown Route"


def route_description(path: str) -> str:
    route = _find_route(path)
    return route.description if route else ""


# ---------------------------------------------------------------------------
# ROLE-KEYED DEFAULTS
# ---------------------------------------------------------------------------

def default_view(role: RoleLike) -> str:
    """Landing view for a role."""
    role = Role(role)
    if role is Role.EXECUTIVE:
        return "executive-dashboard"
    if role is Role.PORTFOLIO_MANAGER:
        return "portfolio-management"
    if role is Role.PROJECT_OFFICER:
        return "project-management"
    raise ValueError(f"Unhandled role: {role}")


def _widget(widget_id: str, widget_type: str, x: int, y: int, width: int, height: int) -> dict:
    return {
        "id": widget_id,
        "type": widget_type,
        "position": {"x": x, "y": y},
        "size": {"width": width, "height": height},
        "visible": True,
    }


def _dashboard_widgets(role: Role) -> list[dict]:
    if role is Role.EXECUTIVE:
        return [
            _widget("portfolio-health", "kpi", 0, 0, 2, 1),
            _widget("risk-overview", "chart", 2, 0, 2, 1),
            _widget("compliance-status", "kpi", 0, 1, 2, 1),
            _widget("portfolio-list", "table", 2, 1, 2, 2),
        ]
    if role is Role.PORTFOLIO_MANAGER:
        return [
            _widget("portfolio-health", "kpi", 0, 0, 2, 1),
            _widget("risk-heatmap", "chart", 2, 0, 2, 1),
            _widget("project-list", "table", 0, 1, 2, 2),
            _widget("resource-allocation", "chart", 2, 1, 2, 2),
        ]
    if role is Role.PROJECT_OFFICER:
        return [
            _widget("project-health", "kpi", 0, 0, 2, 1),
            _widget("risk-list", "table", 2, 0, 2, 2),
            _widget("timeline", "chart", 0, 1, 2, 1),
            _widget("budget-tracker", "kpi", 0, 2, 2, 1),
        ]
    raise ValueError(f"Unhandled role: {role}")


def default_preferences(role: RoleLike) -> dict:
    """Default dashboard preferences for a role."""
    role = Role(role)
    preferences = {
        "theme": "light",
        "dashboard_layout": {
            "widgets": _dashboard_widgets(role),
            "layout_type": "grid",
        },
        "default_view": default_view(role),
        "notifications": {
            "email": True,
            "push": True,
            "risk_alerts": True,
            "project_updates": role is not Role.EXECUTIVE,
        },
        "accessibility": {
            "font_size": "medium",
            "high_contrast": False,
            "reduced_motion": False,
        },
    }
    return preferences
