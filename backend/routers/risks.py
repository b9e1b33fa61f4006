"""
Risk Router — /api/risks

Endpoints:
    GET    /api/risks                                — List risks (?project_id=&severity=&status=)
    POST   /api/risks                                — Create risk
    GET    /api/risks/high-priority                  — Risks with severity high or critical
    GET    /api/risks/score                          — Score and bucket (?probability=&impact=)
    GET    /api/risks/matrix                         — Probability × impact count grid (?project_id=)
    GET    /api/risks/project/{pid}/statistics       — Per-project tallies and mean score
    GET    /api/risks/{id}                           — Get risk
    PUT    /api/risks/{id}                           — Update risk
    PATCH  /api/risks/{id}/status                    — Change status only
    DELETE /api/risks/{id}                           — Delete risk

Each risk response carries both the stored severity and the
probability × impact score with its derived level.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..database import get_db
from .. import crud
from ..deps import require_permission, to_http_error
from ..engines.risk_scoring import calculate_risk_score, risk_level_from_score
from ..schemas import RiskCreate, RiskUpdate, RiskStatusUpdate, RiskResponse

router = APIRouter(prefix="/api/risks", tags=["Risks"])


@router.get("", response_model=list[RiskResponse])
def list_risks(
    project_id: Optional[int] = Query(None),
    severity: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    return crud.list_risks(db, project_id=project_id, severity=severity, status=status)


@router.post(
    "",
    response_model=RiskResponse,
    status_code=201,
    dependencies=[Depends(require_permission("project", "edit"))],
)
def create_risk(data: RiskCreate, db: Session = Depends(get_db)):
    """Create a risk. 400 on out-of-range probability/impact, 404 for an unknown project."""
    try:
        return crud.create_risk(db, data)
    except ValueError as e:
        raise to_http_error(e)


@router.get("/high-priority", response_model=list[RiskResponse])
def list_high_priority_risks(db: Session = Depends(get_db)):
    return crud.list_high_priority_risks(db)


@router.get("/score")
def risk_score(
    probability: float = Query(..., ge=0, le=100),
    impact: float = Query(..., ge=0, le=100),
):
    score = calculate_risk_score(probability, impact)
    return {
        "probability": probability,
        "impact": impact,
        "risk_score": score,
        "derived_level": risk_level_from_score(score),
    }


@router.get("/matrix")
def risk_matrix(project_id: Optional[int] = Query(None), db: Session = Depends(get_db)):
    return crud.risk_matrix(db, project_id=project_id)


@router.get("/project/{project_id}/statistics")
def project_risk_statistics(project_id: int, db: Session = Depends(get_db)):
    stats = crud.project_risk_statistics(db, project_id)
    if stats is None:
        raise HTTPException(status_code=404, detail=f"Project {project_id} not found")
    return stats


@router.get("/{risk_id}", response_model=RiskResponse)
def get_risk(risk_id: int, db: Session = Depends(get_db)):
    risk = crud.get_risk(db, risk_id)
    if not risk:
        raise HTTPException(status_code=404, detail=f"Risk {risk_id} not found")
    return risk


@router.put(
    "/{risk_id}",
    response_model=RiskResponse,
    dependencies=[Depends(require_permission("project", "edit"))],
)
def update_risk(risk_id: int, data: RiskUpdate, db: Session = Depends(get_db)):
    try:
        risk = crud.update_risk(db, risk_id, data)
    except ValueError as e:
        raise to_http_error(e)
    if not risk:
        raise HTTPException(status_code=404, detail=f"Risk {risk_id} not found")
    return risk


@router.patch(
    "/{risk_id}/status",
    response_model=RiskResponse,
    dependencies=[Depends(require_permission("project", "edit"))],
)
def update_risk_status(risk_id: int, data: RiskStatusUpdate, db: Session = Depends(get_db)):
    risk = crud.update_risk_status(db, risk_id, data.status)
    if not risk:
        raise HTTPException(status_code=404, detail=f"Risk {risk_id} not found")
    return risk


@router.delete(
    "/{risk_id}",
    status_code=200,
    dependencies=[Depends(require_permission("project", "edit"))],
)
def delete_risk(risk_id: int, db: Session = Depends(get_db)):
    deleted = crud.delete_risk(db, risk_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Risk {risk_id} not found")
    return {"detail": f"Risk {risk_id} deleted successfully"}
