"""
GovDash CRUD Operations

Database access functions for all tables. These functions encapsulate
all SQLAlchemy queries and write-boundary validation, and are called by
the API routers.

Architecture:
    - Each function takes a db: Session parameter (injected by FastAPI)
    - Functions return ORM model instances (routers convert to Pydantic)
    - Get functions return None if not found (routers raise 404)
    - List functions return lists (empty list if none found)
    - Rule violations raise ValueError; missing references raise
      NotFoundError and integrity conflicts raise ConflictError
      (see exceptions.py)

Naming convention:
    - create_xxx: INSERT new record
    - get_xxx: SELECT single record by ID
    - list_xxx: SELECT multiple records with optional filters
    - update_xxx: UPDATE existing record
    - delete_xxx: DELETE record
"""

import json
import logging
import re
from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from .models import (
    User, UserPreference, Portfolio, Project, Milestone, ProjectTag, Risk,
    PMIStandard, PMIStandardCriterion, ProjectCompliance, ComplianceEvaluation,
    ComplianceSchedule,
)
from .schemas import (
    UserCreate, UserUpdate, PortfolioCreate, PortfolioUpdate,
    ProjectCreate, ProjectUpdate, RiskCreate, RiskUpdate,
    StandardCreate, StandardUpdate, CriterionCreate, CriterionUpdate,
    EvidenceSubmit, ComplianceStatusUpdate, EvaluationCreate,
    EvaluateRequest, BatchEvaluateRequest, BulkEvaluateRequest, BulkEvidenceStatusUpdate,
    ScheduleCreate, PreferencesUpdate,
)
from .exceptions import NotFoundError, ConflictError
from .access_policy import Role, has_role, default_preferences
from .engines import health, risk_scoring, compliance, evaluation, monitoring

logger = logging.getLogger("govdash.crud")

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


# ---------------------------------------------------------------------------
# VALIDATION HELPERS
# ---------------------------------------------------------------------------

def _validate_email(email: str) -> None:
    if not EMAIL_PATTERN.match(email):
        raise ValueError("Invalid email format")


def _validate_health_score(score: float) -> None:
    if score < 0 or score > 100:
        raise ValueError("Health score must be between 0 and 100")


def _validate_percentage(value: float, label: str) -> None:
    if value < 0 or value > 100:
        raise ValueError(f"{label} must be between 0 and 100")


def _validate_timeline(start_date: datetime, end_date: datetime, milestones: list) -> None:
    if start_date >= end_date:
        raise ValueError("Start date must be before end date")
    for index, milestone in enumerate(milestones, start=1):
        if not milestone.name or not milestone.name.strip():
            raise ValueError(f"Milestone {index} must have a name")
        if milestone.date < start_date or milestone.date > end_date:
            raise ValueError(f"Milestone {index} date must be within project timeline")


# ---------------------------------------------------------------------------
# USER CRUD
# ---------------------------------------------------------------------------

def create_user(db: Session, data: UserCreate) -> User:
    """
    Create a user.

    Raises:
        ValueError: blank name/department or malformed email
        ConflictError: email already registered
    """
    if not data.name.strip():
        raise ValueError("User name is required")
    if not data.department.strip():
        raise ValueError("Department is required")
    _validate_email(data.email)
    if get_user_by_email(db, data.email):
        raise ConflictError(
            "User with this email already exists", "DUPLICATE_EMAIL", {"email": data.email}
        )

    user = User(**data.model_dump())
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def list_users(db: Session, role: Optional[str] = None) -> list[User]:
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    return query.order_by(User.id).all()


def update_user(db: Session, user_id: int, data: UserUpdate) -> Optional[User]:
    """Update a user. The uniqueness check ignores the user's own record."""
    user = get_user(db, user_id)
    if not user:
        return None

    update_data = data.model_dump(exclude_unset=True)
    email = update_data.get("email")
    if email is not None:
        _validate_email(email)
        existing = get_user_by_email(db, email)
        if existing and existing.id != user_id:
            raise ConflictError(
                "Email is already taken by another user", "DUPLICATE_EMAIL", {"email": email}
            )

    for field, value in update_data.items():
        if value is not None:
            setattr(user, field, value)

    user.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user_id: int) -> bool:
    """
    Delete a user. Blocked while the user owns any project or portfolio.

    Raises:
        ConflictError: user is still referenced as an owner
    """
    user = get_user(db, user_id)
    if not user:
        return False

    owns_projects = db.query(Project).filter(Project.owner_id == user_id).count()
    owns_portfolios = db.query(Portfolio).filter(Portfolio.owner_id == user_id).count()
    if owns_projects or owns_portfolios:
        logger.info(f"Blocked delete of user {user_id}: owns {owns_projects} projects, "
                    f"{owns_portfolios} portfolios")
        raise ConflictError(
            "Cannot delete user: user is referenced in projects or portfolios",
            "USER_IN_USE",
            {"user_id": user_id, "projects": owns_projects, "portfolios": owns_portfolios},
        )

    db.delete(user)
    db.commit()
    return True


def user_statistics(db: Session) -> dict:
    users = list_users(db)
    role_counts = {role.value: 0 for role in Role}
    department_counts: dict[str, int] = {}
    for user in users:
        role_counts[user.role] = role_counts.get(user.role, 0) + 1
        department_counts[user.department] = department_counts.get(user.department, 0) + 1
    return {
        "total_users": len(users),
        "role_counts": role_counts,
        "department_counts": department_counts,
    }


def user_has_role(db: Session, user_id: int, required_role: str) -> Optional[bool]:
    """Rank check for a stored user. None if the user does not exist."""
    user = get_user(db, user_id)
    if not user:
        return None
    return has_role(user.role, required_role)


def can_user_access_project(db: Session, user_id: int, project_id: int) -> bool:
    """
    Server-side project access:
        executive          → always
        portfolio_manager  → when they own the project's portfolio
        project_officer    → when they own the project
    """
    user = get_user(db, user_id)
    project = get_project(db, project_id)
    if not user or not project:
        return False

    role = Role(user.role)
    if role is Role.EXECUTIVE:
        return True
    if role is Role.PORTFOLIO_MANAGER:
        return project.portfolio is not None and project.portfolio.owner_id == user.id
    if role is Role.PROJECT_OFFICER:
        return project.owner_id == user.id
    raise ValueError(f"Unhandled role: {role}")


def can_user_access_portfolio(db: Session, user_id: int, portfolio_id: int) -> bool:
    """Executives see every portfolio; everyone else only the ones they own."""
    user = get_user(db, user_id)
    portfolio = get_portfolio(db, portfolio_id)
    if not user or not portfolio:
        return False
    if Role(user.role) is Role.EXECUTIVE:
        return True
    return portfolio.owner_id == user.id


# ---------------------------------------------------------------------------
# PORTFOLIO CRUD
# ---------------------------------------------------------------------------

def create_portfolio(db: Session, data: PortfolioCreate) -> Portfolio:
    """
    Create a portfolio owned by an existing user.

    Raises:
        ValueError: health_score outside [0, 100]
        NotFoundError: owner does not exist
    """
    _validate_health_score(data.health_score)
    if not get_user(db, data.owner_id):
        raise NotFoundError("User", data.owner_id)

    values = data.model_dump(exclude={"resource_allocation"})
    portfolio = Portfolio(**values, **data.resource_allocation.model_dump())
    db.add(portfolio)
    db.commit()
    db.refresh(portfolio)
    return portfolio


def get_portfolio(db: Session, portfolio_id: int) -> Optional[Portfolio]:
    return db.query(Portfolio).filter(Portfolio.id == portfolio_id).first()


def list_portfolios(db: Session, owner_id: Optional[int] = None) -> list[Portfolio]:
    query = db.query(Portfolio)
    if owner_id is not None:
        query = query.filter(Portfolio.owner_id == owner_id)
    return query.order_by(Portfolio.id).all()


def update_portfolio(db: Session, portfolio_id: int, data: PortfolioUpdate) -> Optional[Portfolio]:
    portfolio = get_portfolio(db, portfolio_id)
    if not portfolio:
        return None

    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("health_score") is not None:
        _validate_health_score(update_data["health_score"])
    if update_data.get("owner_id") is not None and not get_user(db, update_data["owner_id"]):
        raise NotFoundError("User", update_data["owner_id"])

    allocation = update_data.pop("resource_allocation", None)
    if allocation is not None:
        update_data.update(allocation)

    for field, value in update_data.items():
        if value is not None:
            setattr(portfolio, field, value)

    portfolio.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(portfolio)
    return portfolio


def delete_portfolio(db: Session, portfolio_id: int) -> bool:
    """
    Delete a portfolio. Blocked while any project references it.

    Raises:
        ConflictError: the portfolio still contains projects
    """
    portfolio = get_portfolio(db, portfolio_id)
    if not portfolio:
        return False

    project_count = db.query(Project).filter(Project.portfolio_id == portfolio_id).count()
    if project_count:
        logger.info(f"Blocked delete of portfolio {portfolio_id}: {project_count} projects")
        raise ConflictError(
            "Cannot delete portfolio that contains projects. "
            "Please reassign or delete projects first.",
            "PORTFOLIO_NOT_EMPTY",
            {"portfolio_id": portfolio_id, "projects": project_count},
        )

    db.delete(portfolio)
    db.commit()
    return True


def get_portfolio_statistics(db: Session, portfolio_id: int) -> Optional[dict]:
    portfolio = get_portfolio(db, portfolio_id)
    if not portfolio:
        return None
    projects = list_projects(db, portfolio_id=portfolio_id)
    return health.portfolio_statistics(portfolio, projects)


def recompute_portfolio_health(db: Session, portfolio_id: int) -> Optional[dict]:
    """
    Recompute a portfolio's health score from its projects and persist it.

    This is the only path that refreshes Portfolio.health_score.
    """
    portfolio = get_portfolio(db, portfolio_id)
    if not portfolio:
        return None

    projects = list_projects(db, portfolio_id=portfolio_id)
    score = health.calculate_portfolio_health_score(projects)
    portfolio.health_score = score
    portfolio.updated_at = datetime.utcnow()
    db.commit()
    logger.info(f"Portfolio {portfolio_id} health recomputed: {score} over {len(projects)} projects")
    return {
        "portfolio_id": portfolio_id,
        "health_score": score,
        "project_count": len(projects),
    }


def portfolio_risk_heatmap(db: Session) -> list[dict]:
    return risk_scoring.portfolio_risk_heatmap(
        list_portfolios(db), list_projects(db), list_risks(db)
    )


# ---------------------------------------------------------------------------
# PROJECT CRUD
# ---------------------------------------------------------------------------

def _check_project_refs(db: Session, portfolio_id: Optional[int], owner_id: Optional[int]) -> None:
    if portfolio_id is not None and not get_portfolio(db, portfolio_id):
        raise NotFoundError("Portfolio", portfolio_id)
    if owner_id is not None and not get_user(db, owner_id):
        raise NotFoundError("User", owner_id)


def _set_milestones(project: Project, milestones: list) -> None:
    project.milestones = [
        Milestone(position=i, name=m.name, date=m.date, status=m.status)
        for i, m in enumerate(milestones)
    ]


def _set_tags(project: Project, tags: list[str]) -> None:
    existing = {row.tag: row for row in project.tag_rows}
    project.tag_rows = [existing.get(tag) or ProjectTag(tag=tag) for tag in sorted(set(tags))]


def create_project(db: Session, data: ProjectCreate) -> Project:
    """
    Create a project with its milestones and tags.

    Raises:
        ValueError: budget ≤ 0, health_score outside [0, 100], start ≥ end,
                    unnamed milestone or milestone outside the timeline
        NotFoundError: portfolio or owner does not exist
    """
    if data.budget <= 0:
        raise ValueError("Budget must be a positive number")
    _validate_health_score(data.health_score)
    _validate_timeline(data.start_date, data.end_date, data.milestones)
    _check_project_refs(db, data.portfolio_id, data.owner_id)

    values = data.model_dump(exclude={"milestones", "tags", "team_members"})
    project = Project(**values, team_members_json=json.dumps(data.team_members))
    _set_milestones(project, data.milestones)
    _set_tags(project, data.tags)
    db.add(project)
    db.commit()
    db.refresh(project)
    return project


def get_project(db: Session, project_id: int) -> Optional[Project]:
    return db.query(Project).filter(Project.id == project_id).first()


def list_projects(
    db: Session,
    status: Optional[str] = None,
    portfolio_id: Optional[int] = None,
    owner_id: Optional[int] = None,
) -> list[Project]:
    query = db.query(Project)
    if status:
        query = query.filter(Project.status == status)
    if portfolio_id is not None:
        query = query.filter(Project.portfolio_id == portfolio_id)
    if owner_id is not None:
        query = query.filter(Project.owner_id == owner_id)
    return query.order_by(Project.id).all()


def update_project(db: Session, project_id: int, data: ProjectUpdate) -> Optional[Project]:
    """
    Update a project. Rules are checked against the merged (stored + new)
    values, so moving only end_date still has to clear start_date.
    """
    project = get_project(db, project_id)
    if not project:
        return None

    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("budget") is not None and update_data["budget"] <= 0:
        raise ValueError("Budget must be a positive number")
    if update_data.get("health_score") is not None:
        _validate_health_score(update_data["health_score"])

    start_date = update_data.get("start_date") or project.start_date
    end_date = update_data.get("end_date") or project.end_date
    milestones = data.milestones if data.milestones is not None else project.milestones
    _validate_timeline(start_date, end_date, milestones)
    _check_project_refs(db, update_data.get("portfolio_id"), update_data.get("owner_id"))

    update_data.pop("milestones", None)
    tags = update_data.pop("tags", None)
    team_members = update_data.pop("team_members", None)

    for field, value in update_data.items():
        if value is not None:
            setattr(project, field, value)
    if data.milestones is not None:
        _set_milestones(project, data.milestones)
    if tags is not None:
        _set_tags(project, tags)
    if team_members is not None:
        project.team_members_json = json.dumps(team_members)

    project.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(project)
    return project


def delete_project(db: Session, project_id: int) -> bool:
    """Delete a project with its milestones, tags, risks and compliance rows."""
    project = get_project(db, project_id)
    if not project:
        return False
    db.delete(project)
    db.commit()
    return True


def project_statistics(db: Session) -> dict:
    return health.project_statistics(list_projects(db))


# ---------------------------------------------------------------------------
# RISK CRUD
# ---------------------------------------------------------------------------

def create_risk(db: Session, data: RiskCreate) -> Risk:
    """
    Create a risk on an existing project.

    Raises:
        ValueError: probability or impact outside [0, 100]
        NotFoundError: project does not exist
    """
    _validate_percentage(data.probability, "Probability")
    _validate_percentage(data.impact, "Impact")
    if not get_project(db, data.project_id):
        raise NotFoundError("Project", data.project_id)

    risk = Risk(**data.model_dump())
    db.add(risk)
    db.commit()
    db.refresh(risk)
    return risk


def get_risk(db: Session, risk_id: int) -> Optional[Risk]:
    return db.query(Risk).filter(Risk.id == risk_id).first()


def list_risks(
    db: Session,
    project_id: Optional[int] = None,
    severity: Optional[str] = None,
    status: Optional[str] = None,
) -> list[Risk]:
    query = db.query(Risk)
    if project_id is not None:
        query = query.filter(Risk.project_id == project_id)
    if severity:
        query = query.filter(Risk.severity == severity)
    if status:
        query = query.filter(Risk.status == status)
    return query.order_by(Risk.id).all()


def list_high_priority_risks(db: Session) -> list[Risk]:
    return (
        db.query(Risk)
        .filter(Risk.severity.in_(risk_scoring.HIGH_PRIORITY_SEVERITIES))
        .order_by(Risk.id)
        .all()
    )


def update_risk(db: Session, risk_id: int, data: RiskUpdate) -> Optional[Risk]:
    risk = get_risk(db, risk_id)
    if not risk:
        return None

    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("probability") is not None:
        _validate_percentage(update_data["probability"], "Probability")
    if update_data.get("impact") is not None:
        _validate_percentage(update_data["impact"], "Impact")
    if update_data.get("project_id") is not None and not get_project(db, update_data["project_id"]):
        raise NotFoundError("Project", update_data["project_id"])

    for field, value in update_data.items():
        if value is not None:
            setattr(risk, field, value)

    risk.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(risk)
    return risk


def update_risk_status(db: Session, risk_id: int, status: str) -> Optional[Risk]:
    """Set a risk's status. Any status may follow any other."""
    risk = get_risk(db, risk_id)
    if not risk:
        return None
    risk.status = status
    risk.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(risk)
    return risk


def delete_risk(db: Session, risk_id: int) -> bool:
    risk = get_risk(db, risk_id)
    if not risk:
        return False
    db.delete(risk)
    db.commit()
    return True


def project_risk_statistics(db: Session, project_id: int) -> Optional[dict]:
    if not get_project(db, project_id):
        return None
    return risk_scoring.project_risk_statistics(list_risks(db, project_id=project_id))


def risk_matrix(db: Session, project_id: Optional[int] = None) -> dict:
    return risk_scoring.probability_impact_matrix(list_risks(db, project_id=project_id))


# ---------------------------------------------------------------------------
# PMI STANDARD CRUD
# ---------------------------------------------------------------------------

def _validate_weight(weight: float) -> None:
    if weight <= 0 or weight > 1:
        raise ValueError("Weight must be between 0 and 1")


def create_standard(db: Session, data: StandardCreate) -> PMIStandard:
    _validate_weight(data.weight)
    standard = PMIStandard(**data.model_dump())
    db.add(standard)
    db.commit()
    db.refresh(standard)
    return standard


def get_standard(db: Session, standard_id: int) -> Optional[PMIStandard]:
    return db.query(PMIStandard).filter(PMIStandard.id == standard_id).first()


def list_standards(
    db: Session,
    active_only: bool = False,
    category: Optional[str] = None,
) -> list[PMIStandard]:
    query = db.query(PMIStandard)
    if active_only:
        query = query.filter(PMIStandard.is_active.is_(True))
    if category:
        query = query.filter(PMIStandard.category == category)
    return query.order_by(PMIStandard.id).all()


def update_standard(db: Session, standard_id: int, data: StandardUpdate) -> Optional[PMIStandard]:
    standard = get_standard(db, standard_id)
    if not standard:
        return None

    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("weight") is not None:
        _validate_weight(update_data["weight"])

    for field, value in update_data.items():
        if value is not None:
            setattr(standard, field, value)

    standard.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(standard)
    return standard


def delete_standard(db: Session, standard_id: int) -> bool:
    """Delete a standard with its criteria and evaluations (CASCADE)."""
    standard = get_standard(db, standard_id)
    if not standard:
        return False
    db.delete(standard)
    db.commit()
    return True


def _validate_criterion_numbers(max_score: Optional[float], order: Optional[int]) -> None:
    if max_score is not None and max_score <= 0:
        raise ValueError("Max score must be positive")
    if order is not None and order <= 0:
        raise ValueError("Order must be positive")


def create_criterion(db: Session, data: CriterionCreate) -> PMIStandardCriterion:
    _validate_criterion_numbers(data.max_score, data.order)
    if not get_standard(db, data.standard_id):
        raise NotFoundError("PMI standard", data.standard_id)

    criterion = PMIStandardCriterion(**data.model_dump())
    db.add(criterion)
    db.commit()
    db.refresh(criterion)
    return criterion


def get_criterion(db: Session, criterion_id: int) -> Optional[PMIStandardCriterion]:
    return db.query(PMIStandardCriterion).filter(PMIStandardCriterion.id == criterion_id).first()


def list_criteria(db: Session, standard_id: Optional[int] = None) -> list[PMIStandardCriterion]:
    query = db.query(PMIStandardCriterion)
    if standard_id is not None:
        query = query.filter(PMIStandardCriterion.standard_id == standard_id)
    return query.order_by(PMIStandardCriterion.order, PMIStandardCriterion.id).all()


def update_criterion(
    db: Session, criterion_id: int, data: CriterionUpdate
) -> Optional[PMIStandardCriterion]:
    criterion = get_criterion(db, criterion_id)
    if not criterion:
        return None

    update_data = data.model_dump(exclude_unset=True)
    _validate_criterion_numbers(update_data.get("max_score"), update_data.get("order"))

    for field, value in update_data.items():
        if value is not None:
            setattr(criterion, field, value)

    criterion.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(criterion)
    return criterion


def delete_criterion(db: Session, criterion_id: int) -> bool:
    criterion = get_criterion(db, criterion_id)
    if not criterion:
        return False
    db.delete(criterion)
    db.commit()
    return True


# ---------------------------------------------------------------------------
# PROJECT COMPLIANCE (EVIDENCE) CRUD
# ---------------------------------------------------------------------------

def submit_evidence(db: Session, data: EvidenceSubmit) -> ProjectCompliance:
    """
    Record evidence for one criterion. Re-submitting replaces the evidence
    on the existing record. Status becomes "submitted" either way.
    """
    if not get_project(db, data.project_id):
        raise NotFoundError("Project", data.project_id)
    criterion = get_criterion(db, data.criterion_id)
    if not criterion or criterion.standard_id != data.standard_id:
        raise NotFoundError("PMI standard criteria", data.criterion_id)

    now = datetime.utcnow()
    record = (
        db.query(ProjectCompliance)
        .filter(
            ProjectCompliance.project_id == data.project_id,
            ProjectCompliance.criterion_id == data.criterion_id,
        )
        .first()
    )
    if record is None:
        record = ProjectCompliance(
            project_id=data.project_id,
            standard_id=data.standard_id,
            criterion_id=data.criterion_id,
        )
        db.add(record)

    record.evidence = data.evidence
    record.evidence_url = data.evidence_url
    record.status = "submitted"
    record.submitted_at = now
    record.updated_at = now
    db.commit()
    db.refresh(record)
    return record


def get_compliance_record(db: Session, record_id: int) -> Optional[ProjectCompliance]:
    return db.query(ProjectCompliance).filter(ProjectCompliance.id == record_id).first()


def list_project_compliance(
    db: Session, project_id: int, standard_id: Optional[int] = None
) -> list[ProjectCompliance]:
    query = db.query(ProjectCompliance).filter(ProjectCompliance.project_id == project_id)
    if standard_id is not None:
        query = query.filter(ProjectCompliance.standard_id == standard_id)
    return query.order_by(ProjectCompliance.id).all()


def update_compliance_status(
    db: Session, record_id: int, data: ComplianceStatusUpdate
) -> Optional[ProjectCompliance]:
    """Change a record's review status; naming a reviewer stamps reviewed_at."""
    record = get_compliance_record(db, record_id)
    if not record:
        return None

    now = datetime.utcnow()
    record.status = data.status
    if data.score is not None:
        record.score = data.score
    if data.reviewer_id is not None:
        if not get_user(db, data.reviewer_id):
            raise NotFoundError("User", data.reviewer_id)
        record.reviewer_id = data.reviewer_id
        record.reviewed_at = now
    record.updated_at = now
    db.commit()
    db.refresh(record)
    return record


def search_evidence(
    db: Session,
    project_id: Optional[int] = None,
    standard_id: Optional[int] = None,
    criterion_id: Optional[int] = None,
    statuses: Optional[list[str]] = None,
    text: Optional[str] = None,
    submitted_from: Optional[datetime] = None,
    submitted_to: Optional[datetime] = None,
    limit: int = 50,
    offset: int = 0,
) -> dict:
    """
    Filter evidence records, newest first.

    text matches the evidence body or URL, case-insensitively. The submitted
    date range only applies when both ends are given.
    """
    query = db.query(ProjectCompliance)
    if project_id is not None:
        query = query.filter(ProjectCompliance.project_id == project_id)
    if standard_id is not None:
        query = query.filter(ProjectCompliance.standard_id == standard_id)
    if criterion_id is not None:
        query = query.filter(ProjectCompliance.criterion_id == criterion_id)
    if statuses:
        query = query.filter(ProjectCompliance.status.in_(statuses))
    if text:
        pattern = f"%{text}%"
        query = query.filter(or_(
            ProjectCompliance.evidence.ilike(pattern),
            ProjectCompliance.evidence_url.ilike(pattern),
        ))
    if submitted_from is not None and submitted_to is not None:
        query = query.filter(
            ProjectCompliance.submitted_at >= submitted_from,
            ProjectCompliance.submitted_at <= submitted_to,
        )

    total = query.count()
    records = (
        query.order_by(ProjectCompliance.created_at.desc(), ProjectCompliance.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return {"records": records, "total_count": total, "has_more": offset + limit < total}


def bulk_update_evidence_status(db: Session, data: BulkEvidenceStatusUpdate) -> dict:
    """
    Apply one status to many evidence records in a single commit.

    Unknown record ids are reported as failed and do not stop the others.

    Raises:
        NotFoundError: reviewer_id names a user that does not exist
    """
    if data.reviewer_id is not None and not get_user(db, data.reviewer_id):
        raise NotFoundError("User", data.reviewer_id)

    now = datetime.utcnow()
    updated, failed = [], []
    for record_id in data.record_ids:
        record = get_compliance_record(db, record_id)
        if record is None:
            failed.append({"record_id": record_id, "error": "Compliance record not found"})
            continue
        record.status = data.status
        if data.reviewer_id is not None:
            record.reviewer_id = data.reviewer_id
            record.reviewed_at = now
        record.updated_at = now
        updated.append(record_id)
    db.commit()

    logger.info(f"Bulk status '{data.status}': {len(updated)} updated, {len(failed)} failed")
    return {"total_processed": len(data.record_ids), "updated": updated, "failed": failed}


# ---------------------------------------------------------------------------
# COMPLIANCE EVALUATION CRUD
# ---------------------------------------------------------------------------

def create_evaluation(db: Session, data: EvaluationCreate) -> ComplianceEvaluation:
    """
    Record a manual evaluation.

    Raises:
        ValueError: overall_score outside [0, 100]
        NotFoundError: project, standard or evaluator does not exist
    """
    if data.overall_score < 0 or data.overall_score > 100:
        raise ValueError("Overall score must be between 0 and 100")
    if not get_project(db, data.project_id):
        raise NotFoundError("Project", data.project_id)
    if not get_standard(db, data.standard_id):
        raise NotFoundError("PMI standard", data.standard_id)
    if not get_user(db, data.evaluator_id):
        raise NotFoundError("User", data.evaluator_id)

    record = ComplianceEvaluation(**data.model_dump(), evaluated_at=datetime.utcnow())
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def list_recent_evaluations(db: Session, limit: int = 50) -> list[ComplianceEvaluation]:
    return (
        db.query(ComplianceEvaluation)
        .order_by(ComplianceEvaluation.evaluated_at.desc(), ComplianceEvaluation.id.desc())
        .limit(limit)
        .all()
    )


def list_evaluations(
    db: Session,
    project_id: Optional[int] = None,
    standard_id: Optional[int] = None,
) -> list[ComplianceEvaluation]:
    query = db.query(ComplianceEvaluation)
    if project_id is not None:
        query = query.filter(ComplianceEvaluation.project_id == project_id)
    if standard_id is not None:
        query = query.filter(ComplianceEvaluation.standard_id == standard_id)
    return query.order_by(ComplianceEvaluation.evaluated_at, ComplianceEvaluation.id).all()


def project_compliance_summary(db: Session, project_id: int) -> Optional[dict]:
    if not get_project(db, project_id):
        return None
    return compliance.compliance_summary(list_evaluations(db, project_id=project_id))


def evaluate_project_compliance(db: Session, request: EvaluateRequest) -> dict:
    """
    Score a project against a standard from its evidence and store the
    resulting ComplianceEvaluation.

    Raises:
        NotFoundError: project, standard or evaluator does not exist
        ValueError: the standard has no criteria
    """
    project = get_project(db, request.project_id)
    if not project:
        raise NotFoundError("Project", request.project_id)
    standard = get_standard(db, request.standard_id)
    if not standard:
        raise NotFoundError("PMI standard", request.standard_id)
    if not get_user(db, request.evaluator_id):
        raise NotFoundError("User", request.evaluator_id)

    result = evaluation.evaluate_project(
        project,
        standard,
        list_criteria(db, standard_id=standard.id),
        list_project_compliance(db, project.id, standard_id=standard.id),
    )

    record = ComplianceEvaluation(
        project_id=project.id,
        standard_id=standard.id,
        overall_score=result["overall_score"],
        evaluator_id=request.evaluator_id,
        notes=request.notes,
        evaluated_at=datetime.utcnow(),
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info(f"Evaluated project {project.id} against standard {standard.id}: "
                f"{result['overall_score']} ({result['status']})")

    return {
        **result,
        "evaluation_id": record.id,
        "evaluated_at": record.evaluated_at,
        "evaluator_id": record.evaluator_id,
        "notes": record.notes,
    }


def batch_evaluate(db: Session, request: BatchEvaluateRequest) -> list[dict]:
    """Evaluate several projects; failures are logged and skipped."""
    results = []
    for project_id in request.project_ids:
        single = EvaluateRequest(
            project_id=project_id,
            standard_id=request.standard_id,
            evaluator_id=request.evaluator_id,
        )
        try:
            results.append(evaluate_project_compliance(db, single))
        except ValueError as e:
            logger.warning(f"Failed to evaluate project {project_id}: {e}")
    return results


def _check_scope_refs(db: Session, portfolio_ids: list[int], standard_ids: list[int]) -> None:
    for portfolio_id in portfolio_ids:
        if not get_portfolio(db, portfolio_id):
            raise NotFoundError("Portfolio", portfolio_id)
    for standard_id in standard_ids:
        if not get_standard(db, standard_id):
            raise NotFoundError("PMI standard", standard_id)


def execute_bulk_evaluation(db: Session, request: BulkEvaluateRequest) -> list[dict]:
    """
    Score every project of the listed portfolios against each listed
    standard. No portfolios means every project; no standards means every
    active standard. Individual failures are skipped by batch_evaluate.

    Raises:
        NotFoundError: evaluator, a portfolio or a standard does not exist
    """
    if not get_user(db, request.evaluator_id):
        raise NotFoundError("User", request.evaluator_id)
    _check_scope_refs(db, request.portfolio_ids, request.standard_ids)

    if request.portfolio_ids:
        project_ids = [
            p.id for p in db.query(Project)
            .filter(Project.portfolio_id.in_(request.portfolio_ids))
            .order_by(Project.id)
            .all()
        ]
    else:
        project_ids = [p.id for p in list_projects(db)]
    standard_ids = request.standard_ids or [s.id for s in list_standards(db, active_only=True)]

    results = []
    for standard_id in standard_ids:
        results.extend(batch_evaluate(db, BatchEvaluateRequest(
            project_ids=project_ids,
            standard_id=standard_id,
            evaluator_id=request.evaluator_id,
        )))
    logger.info(f"Bulk evaluation: {len(project_ids)} projects x {len(standard_ids)} standards, "
                f"{len(results)} evaluations stored")
    return results


# ---------------------------------------------------------------------------
# COMPLIANCE SCHEDULES
# ---------------------------------------------------------------------------

def create_schedule(
    db: Session, data: ScheduleCreate, now: Optional[datetime] = None
) -> ComplianceSchedule:
    """First run is one interval after creation."""
    _check_scope_refs(db, data.portfolio_ids, data.standard_ids)
    now = now or datetime.utcnow()
    schedule = ComplianceSchedule(
        frequency=data.frequency,
        portfolio_ids_json=json.dumps(data.portfolio_ids),
        standard_ids_json=json.dumps(data.standard_ids),
        next_evaluation_at=monitoring.next_run_time(data.frequency, now),
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    db.add(schedule)
    db.commit()
    db.refresh(schedule)
    return schedule


def get_schedule(db: Session, schedule_id: int) -> Optional[ComplianceSchedule]:
    return db.query(ComplianceSchedule).filter(ComplianceSchedule.id == schedule_id).first()


def list_schedules(db: Session, active_only: bool = False) -> list[ComplianceSchedule]:
    query = db.query(ComplianceSchedule)
    if active_only:
        query = query.filter(ComplianceSchedule.is_active.is_(True))
    return query.order_by(ComplianceSchedule.next_evaluation_at, ComplianceSchedule.id).all()


def list_due_schedules(db: Session, now: Optional[datetime] = None) -> list[ComplianceSchedule]:
    now = now or datetime.utcnow()
    return [s for s in list_schedules(db, active_only=True) if monitoring.is_due(s, now)]


def advance_schedule(
    db: Session, schedule_id: int, now: Optional[datetime] = None
) -> Optional[ComplianceSchedule]:
    """Move next_evaluation_at one interval past `now`."""
    schedule = get_schedule(db, schedule_id)
    if not schedule:
        return None
    now = now or datetime.utcnow()
    schedule.next_evaluation_at = monitoring.next_run_time(schedule.frequency, now)
    schedule.updated_at = now
    db.commit()
    db.refresh(schedule)
    return schedule


def deactivate_schedule(db: Session, schedule_id: int) -> Optional[ComplianceSchedule]:
    schedule = get_schedule(db, schedule_id)
    if not schedule:
        return None
    schedule.is_active = False
    schedule.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(schedule)
    return schedule


def delete_schedule(db: Session, schedule_id: int) -> bool:
    schedule = get_schedule(db, schedule_id)
    if not schedule:
        return False
    db.delete(schedule)
    db.commit()
    return True


def run_due_schedules(
    db: Session, evaluator_id: int, now: Optional[datetime] = None
) -> list[dict]:
    """
    Run every due schedule once and advance it. A schedule whose scope no
    longer resolves is logged, runs nothing, and is still advanced.
    """
    now = now or datetime.utcnow()
    runs = []
    for schedule in list_due_schedules(db, now):
        request = BulkEvaluateRequest(
            portfolio_ids=schedule.portfolio_ids,
            standard_ids=schedule.standard_ids,
            evaluator_id=evaluator_id,
        )
        try:
            results = execute_bulk_evaluation(db, request)
        except ValueError as e:
            logger.warning(f"Schedule {schedule.id} could not run: {e}")
            results = []
        schedule.last_run_at = now
        advanced = advance_schedule(db, schedule.id, now)
        runs.append({
            "schedule_id": schedule.id,
            "evaluations": len(results),
            "next_evaluation_at": advanced.next_evaluation_at,
        })
    return runs


# ---------------------------------------------------------------------------
# COMPLIANCE MONITORING
# ---------------------------------------------------------------------------

def realtime_compliance_status(
    db: Session, project_id: int, now: Optional[datetime] = None
) -> Optional[list[dict]]:
    """One compliance check per active standard. None if the project does not exist."""
    project = get_project(db, project_id)
    if not project:
        return None
    return [
        monitoring.compliance_check(
            project,
            standard,
            list_evaluations(db, project_id=project_id, standard_id=standard.id),
            list_criteria(db, standard_id=standard.id),
            list_project_compliance(db, project_id, standard_id=standard.id),
            now=now,
        )
        for standard in list_standards(db, active_only=True)
    ]


def portfolio_compliance_status(
    db: Session, portfolio_id: int, now: Optional[datetime] = None
) -> Optional[dict]:
    portfolio = get_portfolio(db, portfolio_id)
    if not portfolio:
        return None
    return monitoring.portfolio_compliance_status(
        portfolio,
        list_projects(db, portfolio_id=portfolio_id),
        list_standards(db, active_only=True),
        list_evaluations(db),
        now=now,
    )


# ---------------------------------------------------------------------------
# COMPLIANCE DASHBOARD
# ---------------------------------------------------------------------------

def compliance_dashboard_statistics(db: Session) -> dict:
    return compliance.compliance_statistics(
        list_projects(db), list_evaluations(db), list_standards(db)
    )


def portfolio_compliance(db: Session) -> list[dict]:
    return compliance.portfolio_compliance(
        list_portfolios(db), list_projects(db), list_evaluations(db)
    )


def compliance_trends(db: Session, days: int = 30) -> list[dict]:
    return compliance.compliance_trends(list_evaluations(db), days=days)


def standards_adherence(db: Session) -> list[dict]:
    return compliance.standards_adherence(list_standards(db, active_only=True), list_evaluations(db))


def non_compliance_heatmap(db: Session) -> list[dict]:
    return compliance.non_compliance_heatmap(
        list_standards(db, active_only=True), list_evaluations(db)
    )


def risk_compliance_correlation(db: Session) -> dict:
    return compliance.risk_compliance_correlation(
        list_projects(db), list_risks(db), list_evaluations(db)
    )


def portfolio_comparison(db: Session) -> dict:
    return compliance.portfolio_comparison(
        list_portfolios(db), list_projects(db), list_evaluations(db), list_risks(db)
    )


def compliance_report(
    db: Session,
    report_type: str = "executive_summary",
    portfolio_id: Optional[int] = None,
    project_id: Optional[int] = None,
) -> dict:
    if portfolio_id is not None and not get_portfolio(db, portfolio_id):
        raise NotFoundError("Portfolio", portfolio_id)
    if project_id is not None and not get_project(db, project_id):
        raise NotFoundError("Project", project_id)

    return compliance.compliance_report(
        projects=list_projects(db),
        portfolios=list_portfolios(db),
        evaluations=list_evaluations(db),
        standards=list_standards(db, active_only=True),
        evidence_records=db.query(ProjectCompliance).all(),
        users=list_users(db),
        report_type=report_type,
        portfolio_id=portfolio_id,
        project_id=project_id,
    )


# ---------------------------------------------------------------------------
# USER PREFERENCES
# ---------------------------------------------------------------------------

def get_user_preferences(db: Session, user_id: int) -> Optional[dict]:
    """Stored preferences, or the role's defaults when none are stored."""
    user = get_user(db, user_id)
    if not user:
        return None
    if user.preference is None:
        return {
            "user_id": user.id,
            "role": user.role,
            "is_default": True,
            "preferences": default_preferences(user.role),
        }
    return {
        "user_id": user.id,
        "role": user.role,
        "is_default": False,
        "preferences": user.preference.preferences,
    }


def update_user_preferences(db: Session, user_id: int, data: PreferencesUpdate) -> Optional[dict]:
    """Merge the given sections into the user's current preferences."""
    current = get_user_preferences(db, user_id)
    if current is None:
        return None

    merged = current["preferences"]
    for section, value in data.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        if isinstance(value, dict) and isinstance(merged.get(section), dict):
            merged[section] = {**merged[section], **value}
        else:
            merged[section] = value

    user = get_user(db, user_id)
    if user.preference is None:
        user.preference = UserPreference(preferences_json=json.dumps(merged))
    else:
        user.preference.preferences_json = json.dumps(merged)
        user.preference.updated_at = datetime.utcnow()
    db.commit()
    return get_user_preferences(db, user_id)


def reset_user_preferences(db: Session, user_id: int) -> Optional[dict]:
    user = get_user(db, user_id)
    if not user:
        return None
    if user.preference is not None:
        db.delete(user.preference)
        db.commit()
        db.refresh(user)
    return get_user_preferences(db, user_id)
