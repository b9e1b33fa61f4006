"""
Access Router — /api/access

Read-only view of the access policy for clients that need to shape their UI
by role (navigation, landing view, disabled actions).

Endpoints:
    GET /api/access/roles                       — Roles with their rank
    GET /api/access/check                       — Resource permission (?role=&resource=&action=)
    GET /api/access/routes/{role}               — Every route the role may open
    GET /api/access/navigation/{role}           — Routes shown in the role's navigation
    GET /api/access/default-view/{role}         — Role's landing view
    GET /api/access/route-access                — Route check (?role=&path=)
"""

from dataclasses import asdict

from fastapi import APIRouter, HTTPException, Query

from ..access_policy import (
    ACTIONS, RESOURCE_TYPES, ROLE_RANKS, Role,
    can_access_resource, can_access_route, default_view, navigation_routes,
    route_description, route_title, routes_for_role,
)

router = APIRouter(prefix="/api/access", tags=["Access"])


def _parse_role(role: str) -> Role:
    try:
        return Role(role)
    except ValueError:
        raise HTTPException(
            status_code=422,
            detail=f"Invalid role: {role}. Must be one of {[r.value for r in Role]}",
        )


def _route_rows(routes) -> list[dict]:
    rows = []
    for route in routes:
        row = asdict(route)
        row["required_role"] = route.required_role.value if route.required_role else None
        rows.append(row)
    return rows


@router.get("/roles")
def list_roles():
    return [{"role": role.value, "rank": ROLE_RANKS[role]} for role in Role]


@router.get("/check")
def check_permission(
    role: str = Query(...),
    resource: str = Query(...),
    action: str = Query(...),
):
    """Unknown resources or actions are reported as not allowed rather than rejected."""
    parsed = _parse_role(role)
    return {
        "role": parsed.value,
        "resource": resource,
        "action": action,
        "known": resource in RESOURCE_TYPES and action in ACTIONS,
        "allowed": can_access_resource(parsed, resource, action),
    }


@router.get("/routes/{role}")
def routes(role: str):
    return _route_rows(routes_for_role(_parse_role(role)))


@router.get("/navigation/{role}")
def navigation(role: str):
    return _route_rows(navigation_routes(_parse_role(role)))


@router.get("/default-view/{role}")
def landing_view(role: str):
    parsed = _parse_role(role)
    return {"role": parsed.value, "default_view": default_view(parsed)}


@router.get("/route-access")
def route_access(role: str = Query(...), path: str = Query(...)):
    parsed = _parse_role(role)
    return {
        "role": parsed.value,
        "path": path,
        "title": route_title(path),
        "description": route_description(path),
        "allowed": can_access_route(parsed, path),
    }
