"""
Compliance Router — /api/compliance

Endpoints:
    POST   /api/compliance/evidence                     — Submit evidence for a criterion
    PATCH  /api/compliance/evidence/{id}/status         — Review an evidence record
    GET    /api/compliance/project/{pid}/evidence       — Evidence records (?standard_id=)
    GET    /api/compliance/evidence/search              — Filter evidence (?project_id=&status=&q=...)
    POST   /api/compliance/evidence/bulk-status         — Review several evidence records
    GET    /api/compliance/project/{pid}/statistics     — Evaluation summary for a project
    GET    /api/compliance/project/{pid}/status         — Live check per active standard
    GET    /api/compliance/portfolio/{pid}/status       — Portfolio distribution and top alerts
    POST   /api/compliance/evaluations                  — Record a manual evaluation
    GET    /api/compliance/evaluations                  — List evaluations (?project_id=&standard_id=)
    GET    /api/compliance/evaluations/recent           — Most recent evaluations (?limit=)
    POST   /api/compliance/evaluate                     — Score a project from its evidence
    POST   /api/compliance/evaluate/batch               — Score several projects
    POST   /api/compliance/evaluate/bulk                — Score portfolios × standards
    POST   /api/compliance/schedules                    — Create a recurring evaluation
    GET    /api/compliance/schedules                    — List schedules (?active_only=)
    GET    /api/compliance/schedules/due                — Schedules whose next run has passed
    POST   /api/compliance/schedules/run                — Run due schedules as the caller
    GET    /api/compliance/schedules/{id}               — Get one schedule
    POST   /api/compliance/schedules/{id}/advance       — Push the next run one interval on
    PATCH  /api/compliance/schedules/{id}/deactivate    — Stop a schedule
    DELETE /api/compliance/schedules/{id}               — Delete a schedule
    GET    /api/compliance/dashboard/statistics         — Headline numbers
    GET    /api/compliance/dashboard/portfolios         — Per-portfolio compliance
    GET    /api/compliance/dashboard/trends             — Daily mean score (?days=)
    GET    /api/compliance/dashboard/adherence          — Mean score per active standard
    GET    /api/compliance/dashboard/heatmap            — Non-compliance share per standard
    GET    /api/compliance/analytics/risk-correlation   — Compliance vs risk per project
    GET    /api/compliance/analytics/portfolio-comparison — Ranked, benchmarked portfolios
    GET    /api/compliance/report                       — Compliance report (?report_type=&portfolio_id=&project_id=)

Evaluations are scored 0-100:
    >= 80  Compliant
    >= 60  Partial
    <  60  Non-Compliant
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..database import get_db
from .. import crud
from ..deps import require_permission, to_http_error
from ..models import User
from ..schemas import (
    EvidenceSubmit, ComplianceStatusUpdate, ProjectComplianceResponse,
    EvaluationCreate, EvaluationResponse, EvaluateRequest, BatchEvaluateRequest,
    EvaluationResult, ComplianceSummary, naive_utc,
    BulkEvidenceStatusUpdate, BulkEvidenceStatusResult, EvidenceSearchResult,
    ComplianceCheck, PortfolioComplianceStatus,
    BulkEvaluateRequest, ScheduleCreate, ScheduleResponse, ScheduleRun,
)

router = APIRouter(prefix="/api/compliance", tags=["Compliance"])


# ---------------------------------------------------------------------------
# Evidence
# ---------------------------------------------------------------------------

@router.post(
    "/evidence",
    response_model=ProjectComplianceResponse,
    status_code=201,
    dependencies=[Depends(require_permission("project", "edit"))],
)
def submit_evidence(data: EvidenceSubmit, db: Session = Depends(get_db)):
    """Create or replace the evidence for one (project, criterion) pair."""
    try:
        return crud.submit_evidence(db, data)
    except ValueError as e:
        raise to_http_error(e)


@router.patch(
    "/evidence/{record_id}/status",
    response_model=ProjectComplianceResponse,
    dependencies=[Depends(require_permission("portfolio", "edit"))],
)
def update_evidence_status(
    record_id: int, data: ComplianceStatusUpdate, db: Session = Depends(get_db)
):
    try:
        record = crud.update_compliance_status(db, record_id, data)
    except ValueError as e:
        raise to_http_error(e)
    if not record:
        raise HTTPException(status_code=404, detail=f"Compliance record {record_id} not found")
    return record


@router.get("/evidence/search", response_model=EvidenceSearchResult)
def search_evidence(
    project_id: Optional[int] = Query(None),
    standard_id: Optional[int] = Query(None),
    criterion_id: Optional[int] = Query(None),
    status: Optional[list[str]] = Query(None),
    q: Optional[str] = Query(None, description="Matches evidence text or URL"),
    submitted_from: Optional[datetime] = Query(None),
    submitted_to: Optional[datetime] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    return crud.search_evidence(
        db,
        project_id=project_id,
        standard_id=standard_id,
        criterion_id=criterion_id,
        statuses=status,
        text=q,
        submitted_from=naive_utc(submitted_from),
        submitted_to=naive_utc(submitted_to),
        limit=limit,
        offset=offset,
    )


@router.post(
    "/evidence/bulk-status",
    response_model=BulkEvidenceStatusResult,
    dependencies=[Depends(require_permission("portfolio", "edit"))],
)
def bulk_update_evidence_status(data: BulkEvidenceStatusUpdate, db: Session = Depends(get_db)):
    """Unknown record ids come back under `failed`; the rest are updated."""
    try:
        return crud.bulk_update_evidence_status(db, data)
    except ValueError as e:
        raise to_http_error(e)


@router.get("/project/{project_id}/evidence", response_model=list[ProjectComplianceResponse])
def list_project_evidence(
    project_id: int,
    standard_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    if not crud.get_project(db, project_id):
        raise HTTPException(status_code=404, detail=f"Project {project_id} not found")
    return crud.list_project_compliance(db, project_id, standard_id=standard_id)


@router.get("/project/{project_id}/statistics", response_model=ComplianceSummary)
def project_compliance_statistics(project_id: int, db: Session = Depends(get_db)):
    summary = crud.project_compliance_summary(db, project_id)
    if summary is None:
        raise HTTPException(status_code=404, detail=f"Project {project_id} not found")
    return summary


@router.get("/project/{project_id}/status", response_model=list[ComplianceCheck])
def project_compliance_status(project_id: int, db: Session = Depends(get_db)):
    """Live check against every active standard, with alerts."""
    checks = crud.realtime_compliance_status(db, project_id)
    if checks is None:
        raise HTTPException(status_code=404, detail=f"Project {project_id} not found")
    return checks


@router.get("/portfolio/{portfolio_id}/status", response_model=PortfolioComplianceStatus)
def portfolio_compliance_status(portfolio_id: int, db: Session = Depends(get_db)):
    status = crud.portfolio_compliance_status(db, portfolio_id)
    if status is None:
        raise HTTPException(status_code=404, detail=f"Portfolio {portfolio_id} not found")
    return status


# ---------------------------------------------------------------------------
# Evaluations
# ---------------------------------------------------------------------------

@router.post(
    "/evaluations",
    response_model=EvaluationResponse,
    status_code=201,
    dependencies=[Depends(require_permission("portfolio", "edit"))],
)
def create_evaluation(data: EvaluationCreate, db: Session = Depends(get_db)):
    try:
        return crud.create_evaluation(db, data)
    except ValueError as e:
        raise to_http_error(e)


@router.get("/evaluations", response_model=list[EvaluationResponse])
def list_evaluations(
    project_id: Optional[int] = Query(None),
    standard_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    return crud.list_evaluations(db, project_id=project_id, standard_id=standard_id)


@router.get("/evaluations/recent", response_model=list[EvaluationResponse])
def list_recent_evaluations(
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return crud.list_recent_evaluations(db, limit=limit)


@router.post(
    "/evaluate",
    response_model=EvaluationResult,
    status_code=201,
    dependencies=[Depends(require_permission("portfolio", "edit"))],
)
def evaluate_project(data: EvaluateRequest, db: Session = Depends(get_db)):
    """
    Score a project against a standard from its submitted evidence and
    store the result. 400 if the standard has no criteria.
    """
    try:
        return crud.evaluate_project_compliance(db, data)
    except ValueError as e:
        raise to_http_error(e)


@router.post(
    "/evaluate/batch",
    response_model=list[EvaluationResult],
    dependencies=[Depends(require_permission("portfolio", "edit"))],
)
def batch_evaluate(data: BatchEvaluateRequest, db: Session = Depends(get_db)):
    """Evaluate each listed project; projects that fail are skipped."""
    return crud.batch_evaluate(db, data)


@router.post(
    "/evaluate/bulk",
    response_model=list[EvaluationResult],
    dependencies=[Depends(require_permission("portfolio", "edit"))],
)
def bulk_evaluate(data: BulkEvaluateRequest, db: Session = Depends(get_db)):
    """Evaluate whole portfolios against several standards."""
    try:
        return crud.execute_bulk_evaluation(db, data)
    except ValueError as e:
        raise to_http_error(e)


# ---------------------------------------------------------------------------
# Schedules
# ---------------------------------------------------------------------------

@router.post(
    "/schedules",
    response_model=ScheduleResponse,
    status_code=201,
    dependencies=[Depends(require_permission("portfolio", "edit"))],
)
def create_schedule(data: ScheduleCreate, db: Session = Depends(get_db)):
    try:
        return crud.create_schedule(db, data)
    except ValueError as e:
        raise to_http_error(e)


@router.get("/schedules", response_model=list[ScheduleResponse])
def list_schedules(
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
):
    return crud.list_schedules(db, active_only=active_only)


@router.get("/schedules/due", response_model=list[ScheduleResponse])
def list_due_schedules(db: Session = Depends(get_db)):
    return crud.list_due_schedules(db)


@router.post("/schedules/run", response_model=list[ScheduleRun])
def run_due_schedules(
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("portfolio", "edit")),
):
    """Run every due schedule now, recording the caller as evaluator."""
    return crud.run_due_schedules(db, evaluator_id=user.id)


@router.get("/schedules/{schedule_id}", response_model=ScheduleResponse)
def get_schedule(schedule_id: int, db: Session = Depends(get_db)):
    schedule = crud.get_schedule(db, schedule_id)
    if not schedule:
        raise HTTPException(status_code=404, detail=f"Schedule {schedule_id} not found")
    return schedule


@router.post(
    "/schedules/{schedule_id}/advance",
    response_model=ScheduleResponse,
    dependencies=[Depends(require_permission("portfolio", "edit"))],
)
def advance_schedule(schedule_id: int, db: Session = Depends(get_db)):
    schedule = crud.advance_schedule(db, schedule_id)
    if not schedule:
        raise HTTPException(status_code=404, detail=f"Schedule {schedule_id} not found")
    return schedule


@router.patch(
    "/schedules/{schedule_id}/deactivate",
    response_model=ScheduleResponse,
    dependencies=[Depends(require_permission("portfolio", "edit"))],
)
def deactivate_schedule(schedule_id: int, db: Session = Depends(get_db)):
    schedule = crud.deactivate_schedule(db, schedule_id)
    if not schedule:
        raise HTTPException(status_code=404, detail=f"Schedule {schedule_id} not found")
    return schedule


@router.delete(
    "/schedules/{schedule_id}",
    status_code=200,
    dependencies=[Depends(require_permission("portfolio", "edit"))],
)
def delete_schedule(schedule_id: int, db: Session = Depends(get_db)):
    if not crud.delete_schedule(db, schedule_id):
        raise HTTPException(status_code=404, detail=f"Schedule {schedule_id} not found")
    return {"detail": f"Schedule {schedule_id} deleted successfully"}


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

@router.get("/dashboard/statistics")
def dashboard_statistics(db: Session = Depends(get_db)):
    return crud.compliance_dashboard_statistics(db)


@router.get("/dashboard/portfolios")
def dashboard_portfolios(db: Session = Depends(get_db)):
    return crud.portfolio_compliance(db)


@router.get("/dashboard/trends")
def dashboard_trends(
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
):
    return crud.compliance_trends(db, days=days)


@router.get("/dashboard/adherence")
def dashboard_adherence(db: Session = Depends(get_db)):
    return crud.standards_adherence(db)


@router.get("/dashboard/heatmap")
def dashboard_heatmap(db: Session = Depends(get_db)):
    return crud.non_compliance_heatmap(db)


@router.get("/analytics/risk-correlation")
def risk_compliance_correlation(db: Session = Depends(get_db)):
    return crud.risk_compliance_correlation(db)


@router.get("/analytics/portfolio-comparison")
def portfolio_comparison(db: Session = Depends(get_db)):
    return crud.portfolio_comparison(db)


@router.get("/report")
def compliance_report(
    report_type: str = Query("executive_summary"),
    portfolio_id: Optional[int] = Query(None),
    project_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    try:
        return crud.compliance_report(
            db, report_type=report_type, portfolio_id=portfolio_id, project_id=project_id
        )
    except ValueError as e:
        raise to_http_error(e)
