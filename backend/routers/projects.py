"""
Project Router — /api/projects

Endpoints:
    GET    /api/projects                 — List projects (?status=&portfolio_id=&owner_id=)
    POST   /api/projects                 — Create project (manager/executive)
    GET    /api/projects/statistics      — Status / risk-level tallies, mean health
    GET    /api/projects/{id}            — Get project
    PUT    /api/projects/{id}            — Update project (officers: own projects only)
    DELETE /api/projects/{id}            — Delete project and its children (manager/executive)
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..database import get_db
from .. import crud
from ..access_policy import can_edit_project
from ..deps import require_permission, to_http_error
from ..models import User
from ..schemas import PROJECT_STATUSES, ProjectCreate, ProjectUpdate, ProjectResponse

router = APIRouter(prefix="/api/projects", tags=["Projects"])


@router.get("", response_model=list[ProjectResponse])
def list_projects(
    status: Optional[str] = Query(None, description="Filter by status"),
    portfolio_id: Optional[int] = Query(None, description="Filter by portfolio"),
    owner_id: Optional[int] = Query(None, description="Filter by owner"),
    db: Session = Depends(get_db),
):
    if status and status not in PROJECT_STATUSES:
        raise HTTPException(
            status_code=422, detail=f"Invalid status: {status}. Must be one of {PROJECT_STATUSES}"
        )
    return crud.list_projects(db, status=status, portfolio_id=portfolio_id, owner_id=owner_id)


@router.post(
    "",
    response_model=ProjectResponse,
    status_code=201,
    dependencies=[Depends(require_permission("project", "create"))],
)
def create_project(data: ProjectCreate, db: Session = Depends(get_db)):
    """
    Create a project.

    Returns 400 for a non-positive budget, out-of-range health score,
    inverted timeline or bad milestone; 404 for an unknown portfolio/owner.
    """
    try:
        return crud.create_project(db, data)
    except ValueError as e:
        raise to_http_error(e)


@router.get("/statistics")
def project_statistics(db: Session = Depends(get_db)):
    return crud.project_statistics(db)


@router.get("/{project_id}", response_model=ProjectResponse)
def get_project(project_id: int, db: Session = Depends(get_db)):
    project = crud.get_project(db, project_id)
    if not project:
        raise HTTPException(status_code=404, detail=f"Project {project_id} not found")
    return project


@router.put("/{project_id}", response_model=ProjectResponse)
def update_project(
    project_id: int,
    data: ProjectUpdate,
    user: User = Depends(require_permission("project", "edit")),
    db: Session = Depends(get_db),
):
    project = crud.get_project(db, project_id)
    if not project:
        raise HTTPException(status_code=404, detail=f"Project {project_id} not found")
    if not can_edit_project(user.role, project.owner_id, user.id):
        raise HTTPException(
            status_code=403,
            detail={
                "detail": f"User {user.id} may not edit project {project_id}",
                "error_code": "FORBIDDEN",
                "context": {"project_id": project_id, "owner_id": project.owner_id},
            },
        )
    try:
        return crud.update_project(db, project_id, data)
    except ValueError as e:
        raise to_http_error(e)


@router.delete(
    "/{project_id}",
    status_code=200,
    dependencies=[Depends(require_permission("project", "delete"))],
)
def delete_project(project_id: int, db: Session = Depends(get_db)):
    """Delete a project with its milestones, tags, risks and compliance records."""
    deleted = crud.delete_project(db, project_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Project {project_id} not found")
    return {"detail": f"Project {project_id} deleted successfully"}
