"""
PMI Standards Router — /api/standards

Endpoints:
    GET    /api/standards                               — List standards (?active_only=&category=)
    POST   /api/standards                               — Create standard (admin)
    GET    /api/standards/{id}                          — Get standard
    GET    /api/standards/{id}/with-criteria            — Standard with its ordered criteria
    PUT    /api/standards/{id}                          — Update standard (admin)
    DELETE /api/standards/{id}                          — Delete standard + criteria (admin)
    GET    /api/standards/{id}/criteria                 — Criteria of one standard
    POST   /api/standards/criteria                      — Create criterion (admin)
    GET    /api/standards/criteria/{cid}                — Get criterion
    PUT    /api/standards/criteria/{cid}                — Update criterion (admin)
    DELETE /api/standards/criteria/{cid}                — Delete criterion (admin)
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..database import get_db
from .. import crud
from ..deps import require_permission, to_http_error
from ..schemas import (
    STANDARD_CATEGORIES,
    StandardCreate, StandardUpdate, StandardResponse, StandardWithCriteria,
    CriterionCreate, CriterionUpdate, CriterionResponse,
)

router = APIRouter(prefix="/api/standards", tags=["PMI Standards"])

_admin_create = [Depends(require_permission("admin", "create"))]
_admin_edit = [Depends(require_permission("admin", "edit"))]
_admin_delete = [Depends(require_permission("admin", "delete"))]


# ---------------------------------------------------------------------------
# Criteria (declared before /{standard_id} so "criteria" is not read as an id)
# ---------------------------------------------------------------------------

@router.post("/criteria", response_model=CriterionResponse, status_code=201,
             dependencies=_admin_create)
def create_criterion(data: CriterionCreate, db: Session = Depends(get_db)):
    """Create a criterion. 400 on non-positive max_score/order, 404 for an unknown standard."""
    try:
        return crud.create_criterion(db, data)
    except ValueError as e:
        raise to_http_error(e)


@router.get("/criteria/{criterion_id}", response_model=CriterionResponse)
def get_criterion(criterion_id: int, db: Session = Depends(get_db)):
    criterion = crud.get_criterion(db, criterion_id)
    if not criterion:
        raise HTTPException(status_code=404, detail=f"Criterion {criterion_id} not found")
    return criterion


@router.put("/criteria/{criterion_id}", response_model=CriterionResponse,
            dependencies=_admin_edit)
def update_criterion(criterion_id: int, data: CriterionUpdate, db: Session = Depends(get_db)):
    try:
        criterion = crud.update_criterion(db, criterion_id, data)
    except ValueError as e:
        raise to_http_error(e)
    if not criterion:
        raise HTTPException(status_code=404, detail=f"Criterion {criterion_id} not found")
    return criterion


@router.delete("/criteria/{criterion_id}", status_code=200, dependencies=_admin_delete)
def delete_criterion(criterion_id: int, db: Session = Depends(get_db)):
    deleted = crud.delete_criterion(db, criterion_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Criterion {criterion_id} not found")
    return {"detail": f"Criterion {criterion_id} deleted successfully"}


# ---------------------------------------------------------------------------
# Standards
# ---------------------------------------------------------------------------

@router.get("", response_model=list[StandardResponse])
def list_standards(
    active_only: bool = Query(False),
    category: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    if category and category not in STANDARD_CATEGORIES:
        raise HTTPException(
            status_code=422,
            detail=f"Invalid category: {category}. Must be one of {STANDARD_CATEGORIES}",
        )
    return crud.list_standards(db, active_only=active_only, category=category)


@router.post("", response_model=StandardResponse, status_code=201, dependencies=_admin_create)
def create_standard(data: StandardCreate, db: Session = Depends(get_db)):
    try:
        return crud.create_standard(db, data)
    except ValueError as e:
        raise to_http_error(e)


@router.get("/{standard_id}", response_model=StandardResponse)
def get_standard(standard_id: int, db: Session = Depends(get_db)):
    standard = crud.get_standard(db, standard_id)
    if not standard:
        raise HTTPException(status_code=404, detail=f"Standard {standard_id} not found")
    return standard


@router.get("/{standard_id}/with-criteria", response_model=StandardWithCriteria)
def get_standard_with_criteria(standard_id: int, db: Session = Depends(get_db)):
    standard = crud.get_standard(db, standard_id)
    if not standard:
        raise HTTPException(status_code=404, detail=f"Standard {standard_id} not found")
    return standard


@router.get("/{standard_id}/criteria", response_model=list[CriterionResponse])
def list_standard_criteria(standard_id: int, db: Session = Depends(get_db)):
    if not crud.get_standard(db, standard_id):
        raise HTTPException(status_code=404, detail=f"Standard {standard_id} not found")
    return crud.list_criteria(db, standard_id=standard_id)


@router.put("/{standard_id}", response_model=StandardResponse, dependencies=_admin_edit)
def update_standard(standard_id: int, data: StandardUpdate, db: Session = Depends(get_db)):
    try:
        standard = crud.update_standard(db, standard_id, data)
    except ValueError as e:
        raise to_http_error(e)
    if not standard:
        raise HTTPException(status_code=404, detail=f"Standard {standard_id} not found")
    return standard


@router.delete("/{standard_id}", status_code=200, dependencies=_admin_delete)
def delete_standard(standard_id: int, db: Session = Depends(get_db)):
    """Delete a standard together with its criteria and evaluations."""
    deleted = crud.delete_standard(db, standard_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Standard {standard_id} not found")
    return {"detail": f"Standard {standard_id} deleted successfully"}
