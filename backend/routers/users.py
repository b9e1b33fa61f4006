"""
User Router — /api/users

Endpoints:
    GET    /api/users                                     — List users (?role=)
    POST   /api/users                                     — Create user
    GET    /api/users/statistics                          — Role / department counts
    GET    /api/users/by-email                            — Look up by email (?email=)
    GET    /api/users/by-role/{role}                      — Users with a role
    GET    /api/users/{id}                                — Get user
    GET    /api/users/{id}/details                        — User with owned projects/portfolios
    PUT    /api/users/{id}                                — Update user (admin edit)
    DELETE /api/users/{id}                                — Delete user (admin delete)
    GET    /api/users/{id}/has-role/{role}                — Rank check
    GET    /api/users/{id}/can-access-project/{pid}       — Ownership-scoped project check
    GET    /api/users/{id}/can-access-portfolio/{pid}     — Ownership-scoped portfolio check

Create is open so the first account can be registered; edits and deletes
require an executive caller (X-User-Id).
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database import get_db
from .. import crud
from ..deps import require_permission, to_http_error
from ..schemas import ROLES, UserCreate, UserUpdate, UserResponse, UserWithDetails

router = APIRouter(prefix="/api/users", tags=["Users"])


def _check_role(role: str) -> None:
    if role not in ROLES:
        raise HTTPException(status_code=422, detail=f"Invalid role: {role}. Must be one of {ROLES}")


@router.get("", response_model=list[UserResponse])
def list_users(
    role: Optional[str] = Query(None, description="Filter by role"),
    db: Session = Depends(get_db),
):
    if role:
        _check_role(role)
    return crud.list_users(db, role=role)


@router.post("", response_model=UserResponse, status_code=201)
def create_user(data: UserCreate, db: Session = Depends(get_db)):
    """Create a user. 400 on malformed email, 409 if the email is taken."""
    try:
        return crud.create_user(db, data)
    except ValueError as e:
        raise to_http_error(e)


@router.get("/statistics")
def user_statistics(db: Session = Depends(get_db)):
    return crud.user_statistics(db)


@router.get("/by-email", response_model=UserResponse)
def get_user_by_email(email: str = Query(...), db: Session = Depends(get_db)):
    user = crud.get_user_by_email(db, email)
    if not user:
        raise HTTPException(status_code=404, detail=f"User {email} not found")
    return user


@router.get("/by-role/{role}", response_model=list[UserResponse])
def list_users_by_role(role: str, db: Session = Depends(get_db)):
    _check_role(role)
    return crud.list_users(db, role=role)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: int, db: Session = Depends(get_db)):
    user = crud.get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail=f"User {user_id} not found")
    return user


@router.get("/{user_id}/details", response_model=UserWithDetails)
def get_user_details(user_id: int, db: Session = Depends(get_db)):
    user = crud.get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail=f"User {user_id} not found")
    return user


@router.put(
    "/{user_id}",
    response_model=UserResponse,
    dependencies=[Depends(require_permission("admin", "edit"))],
)
def update_user(user_id: int, data: UserUpdate, db: Session = Depends(get_db)):
    """Update a user. Keeping one's own email is not a conflict."""
    try:
        user = crud.update_user(db, user_id, data)
    except ValueError as e:
        raise to_http_error(e)
    if not user:
        raise HTTPException(status_code=404, detail=f"User {user_id} not found")
    return user


@router.delete(
    "/{user_id}",
    status_code=200,
    dependencies=[Depends(require_permission("admin", "delete"))],
)
def delete_user(user_id: int, db: Session = Depends(get_db)):
    """Delete a user. 409 while the user owns projects or portfolios."""
    try:
        deleted = crud.delete_user(db, user_id)
    except ValueError as e:
        raise to_http_error(e)
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=409,
            detail={
                "detail": "Cannot delete user: user is referenced by other records",
                "error_code": "USER_IN_USE",
                "context": {"user_id": user_id},
            },
        )
    if not deleted:
        raise HTTPException(status_code=404, detail=f"User {user_id} not found")
    return {"detail": f"User {user_id} deleted successfully"}


@router.get("/{user_id}/has-role/{role}")
def user_has_role(user_id: int, role: str, db: Session = Depends(get_db)):
    _check_role(role)
    result = crud.user_has_role(db, user_id, role)
    if result is None:
        raise HTTPException(status_code=404, detail=f"User {user_id} not found")
    return {"user_id": user_id, "required_role": role, "has_role": result}


@router.get("/{user_id}/can-access-project/{project_id}")
def can_access_project(user_id: int, project_id: int, db: Session = Depends(get_db)):
    return {
        "user_id": user_id,
        "project_id": project_id,
        "allowed": crud.can_user_access_project(db, user_id, project_id),
    }


@router.get("/{user_id}/can-access-portfolio/{portfolio_id}")
def can_access_portfolio(user_id: int, portfolio_id: int, db: Session = Depends(get_db)):
    return {
        "user_id": user_id,
        "portfolio_id": portfolio_id,
        "allowed": crud.can_user_access_portfolio(db, user_id, portfolio_id),
    }
