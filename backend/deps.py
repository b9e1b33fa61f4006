"""
GovDash FastAPI dependencies shared by the routers.

Caller identity:
    Requests identify the acting user with an X-User-Id header. There is no
    session or token layer; the header is trusted as given and only used to
    look up the user's role for access_policy checks.

Usage:
    @router.post("", dependencies=[Depends(require_permission("project", "create"))])
    def create_project(...):
        ...

    @router.put("/{project_id}")
    def update_project(..., user: User = Depends(require_permission("project", "edit"))):
        ...
"""

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from .database import get_db
from . import crud
from .access_policy import can_access_resource
from .exceptions import NotFoundError, ConflictError
from .models import User

logger = logging.getLogger("govdash.api")


def get_current_user(
    x_user_id: Optional[int] = Header(None),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the X-User-Id header to a stored user (401 if absent or unknown)."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="X-User-Id header required")
    user = crud.get_user(db, x_user_id)
    if not user:
        raise HTTPException(status_code=401, detail=f"Unknown user {x_user_id}")
    return user


def require_permission(resource_type: str, action: str):
    """Dependency factory: the caller's role must be allowed `action` on `resource_type`."""

    def _check(user: User = Depends(get_current_user)) -> User:
        if not can_access_resource(user.role, resource_type, action):
            logger.info(f"Denied {action} {resource_type} for user {user.id} ({user.role})")
            raise HTTPException(
                status_code=403,
                detail={
                    "detail": f"Role '{user.role}' may not {action} {resource_type}",
                    "error_code": "FORBIDDEN",
                    "context": {"resource": resource_type, "action": action, "role": user.role},
                },
            )
        return user

    return _check


def to_http_error(exc: ValueError) -> HTTPException:
    """Translate a crud-layer rejection into the matching HTTPException."""
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ConflictError):
        return HTTPException(
            status_code=409,
            detail={"detail": str(exc), "error_code": exc.error_code, "context": exc.context},
        )
    return HTTPException(status_code=400, detail=str(exc))
