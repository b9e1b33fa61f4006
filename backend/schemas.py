"""
GovDash Pydantic Schemas

Defines request/response models for the FastAPI REST API.
Pydantic validates the shape and enumerated values of incoming data;
numeric ranges, email format and cross-record rules are checked in crud.py
so their messages come back as 400/409 responses.

Naming convention:
    - XxxCreate: request body for creating Xxx
    - XxxUpdate: request body for updating Xxx (all fields optional)
    - XxxResponse: response body for Xxx
"""

from datetime import datetime, timezone
from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator

ROLES = ["executive", "portfolio_manager", "project_officer"]
PROJECT_STATUSES = ["planned", "active", "at-risk", "delayed", "completed"]
RISK_LEVELS = ["low", "medium", "high", "critical"]
RISK_STATUSES = ["identified", "monitored", "mitigated", "resolved"]
STANDARD_CATEGORIES = ["portfolio", "program", "project"]
STANDARD_LEVELS = ["foundational", "intermediate", "advanced"]
EVIDENCE_TYPES = ["document", "link", "text", "file"]
SCORING_METHODS = ["binary", "partial", "scale"]
COMPLIANCE_STATUSES = ["not_started", "in_progress", "submitted", "approved", "rejected"]
THEMES = ["light", "dark", "auto"]
SCHEDULE_FREQUENCIES = ["daily", "weekly", "monthly"]


def _check_choice(value, valid: list[str], name: str):
    if value is not None and value not in valid:
        raise ValueError(f"Invalid {name}: {value}. Must be one of {valid}")
    return value


def naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Offset-aware datetimes are converted to UTC and stored naive, like utcnow()."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# ---------------------------------------------------------------------------
# USER SCHEMAS
# ---------------------------------------------------------------------------

class UserCreate(BaseModel):
    """Request body for creating a user. Email format is checked in crud."""
    name: str
    email: str
    role: str
    department: str

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        return _check_choice(v, ROLES, "role")


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    department: Optional[str] = None

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        return _check_choice(v, ROLES, "role")


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: str
    department: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# PORTFOLIO SCHEMAS
# ---------------------------------------------------------------------------

class ResourceAllocation(BaseModel):
    """Advisory resourcing figures; never recomputed from projects."""
    team_members: int = Field(0, ge=0)
    budget_utilization: float = 0.0
    project_count: int = Field(0, ge=0)


class PortfolioCreate(BaseModel):
    """Request body for creating a portfolio. health_score range is checked in crud."""
    name: str = Field(..., min_length=1)
    description: str = ""
    owner_id: int
    health_score: float = 100.0
    total_budget: float = 0.0
    allocated_budget: float = 0.0
    resource_allocation: ResourceAllocation = Field(default_factory=ResourceAllocation)


class PortfolioUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    owner_id: Optional[int] = None
    health_score: Optional[float] = None
    total_budget: Optional[float] = None
    allocated_budget: Optional[float] = None
    resource_allocation: Optional[ResourceAllocation] = None


class PortfolioResponse(BaseModel):
    id: int
    name: str
    description: str
    owner_id: int
    health_score: float
    total_budget: float
    allocated_budget: float
    resource_allocation: ResourceAllocation
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class HealthScoreRecompute(BaseModel):
    """Result of an explicit portfolio health recompute."""
    portfolio_id: int
    health_score: float
    project_count: int


# ---------------------------------------------------------------------------
# PROJECT SCHEMAS
# ---------------------------------------------------------------------------

class MilestoneSchema(BaseModel):
    name: str
    date: datetime
    status: str = "pending"

    model_config = {"from_attributes": True}

    @field_validator("date")
    @classmethod
    def normalise_date(cls, v):
        return naive_utc(v)


class ProjectCreate(BaseModel):
    """
    Request body for creating a project.

    Budget, health score, timeline and milestone rules are enforced in crud.
    Tags are treated as a set: duplicates collapse.
    """
    name: str = Field(..., min_length=1)
    description: str = ""
    status: str = "planned"
    budget: float
    spent_budget: float = 0.0
    start_date: datetime
    end_date: datetime
    milestones: list[MilestoneSchema] = []
    portfolio_id: Optional[int] = None
    owner_id: Optional[int] = None
    team_members: list[int] = []
    health_score: float = 100.0
    risk_level: str = "low"
    tags: list[str] = []

    @field_validator("start_date", "end_date")
    @classmethod
    def normalise_dates(cls, v):
        return naive_utc(v)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _check_choice(v, PROJECT_STATUSES, "status")

    @field_validator("risk_level")
    @classmethod
    def validate_risk_level(cls, v):
        return _check_choice(v, RISK_LEVELS, "risk_level")


class ProjectUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    budget: Optional[float] = None
    spent_budget: Optional[float] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    milestones: Optional[list[MilestoneSchema]] = None
    portfolio_id: Optional[int] = None
    owner_id: Optional[int] = None
    team_members: Optional[list[int]] = None
    health_score: Optional[float] = None
    risk_level: Optional[str] = None
    tags: Optional[list[str]] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def normalise_dates(cls, v):
        return naive_utc(v)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _check_choice(v, PROJECT_STATUSES, "status")

    @field_validator("risk_level")
    @classmethod
    def validate_risk_level(cls, v):
        return _check_choice(v, RISK_LEVELS, "risk_level")


class ProjectResponse(BaseModel):
    id: int
    name: str
    description: str
    status: str
    budget: float
    spent_budget: float
    start_date: datetime
    end_date: datetime
    milestones: list[MilestoneSchema]
    portfolio_id: Optional[int] = None
    owner_id: Optional[int] = None
    team_members: list[int]
    health_score: float
    risk_level: str
    tags: list[str]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PortfolioWithProjects(PortfolioResponse):
    projects: list[ProjectResponse] = []


class UserWithDetails(UserResponse):
    owned_projects: list[ProjectResponse] = []
    owned_portfolios: list[PortfolioResponse] = []


# ---------------------------------------------------------------------------
# RISK SCHEMAS
# ---------------------------------------------------------------------------

class RiskCreate(BaseModel):
    """Probability and impact (0-100) are range-checked in crud."""
    project_id: int
    title: str = Field(..., min_length=1)
    description: str = ""
    severity: str
    status: str = "identified"
    probability: float
    impact: float
    mitigation_plan: Optional[str] = None

    @field_validator("severity")
    @classmethod
    def validate_severity(cls, v):
        return _check_choice(v, RISK_LEVELS, "severity")

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _check_choice(v, RISK_STATUSES, "status")


class RiskUpdate(BaseModel):
    project_id: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    severity: Optional[str] = None
    status: Optional[str] = None
    probability: Optional[float] = None
    impact: Optional[float] = None
    mitigation_plan: Optional[str] = None

    @field_validator("severity")
    @classmethod
    def validate_severity(cls, v):
        return _check_choice(v, RISK_LEVELS, "severity")

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _check_choice(v, RISK_STATUSES, "status")


class RiskStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _check_choice(v, RISK_STATUSES, "status")


class RiskResponse(BaseModel):
    """Stored severity alongside the score-derived level; they may disagree."""
    id: int
    project_id: int
    title: str
    description: str
    severity: str
    status: str
    probability: float
    impact: float
    mitigation_plan: Optional[str] = None
    risk_score: float
    derived_level: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# PMI STANDARD SCHEMAS
# ---------------------------------------------------------------------------

class StandardCreate(BaseModel):
    """weight must be in (0, 1]; checked in crud."""
    name: str = Field(..., min_length=1)
    description: str = ""
    category: str
    level: str
    weight: float = 1.0
    version: str = "1.0"
    is_active: bool = True

    @field_validator("category")
    @classmethod
    def validate_category(cls, v):
        return _check_choice(v, STANDARD_CATEGORIES, "category")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v):
        return _check_choice(v, STANDARD_LEVELS, "level")


class StandardUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    level: Optional[str] = None
    weight: Optional[float] = None
    version: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("category")
    @classmethod
    def validate_category(cls, v):
        return _check_choice(v, STANDARD_CATEGORIES, "category")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v):
        return _check_choice(v, STANDARD_LEVELS, "level")


class StandardResponse(BaseModel):
    id: int
    name: str
    description: str
    category: str
    level: str
    weight: float
    version: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CriterionCreate(BaseModel):
    """max_score and order must be positive; checked in crud."""
    standard_id: int
    name: str = Field(..., min_length=1)
    description: str = ""
    requirement: str = ""
    evidence_type: str
    evidence_description: str = ""
    scoring_method: str
    max_score: float
    is_mandatory: bool = False
    order: int = 1

    @field_validator("evidence_type")
    @classmethod
    def validate_evidence_type(cls, v):
        return _check_choice(v, EVIDENCE_TYPES, "evidence_type")

    @field_validator("scoring_method")
    @classmethod
    def validate_scoring_method(cls, v):
        return _check_choice(v, SCORING_METHODS, "scoring_method")


class CriterionUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    requirement: Optional[str] = None
    evidence_type: Optional[str] = None
    evidence_description: Optional[str] = None
    scoring_method: Optional[str] = None
    max_score: Optional[float] = None
    is_mandatory: Optional[bool] = None
    order: Optional[int] = None

    @field_validator("evidence_type")
    @classmethod
    def validate_evidence_type(cls, v):
        return _check_choice(v, EVIDENCE_TYPES, "evidence_type")

    @field_validator("scoring_method")
    @classmethod
    def validate_scoring_method(cls, v):
        return _check_choice(v, SCORING_METHODS, "scoring_method")


class CriterionResponse(BaseModel):
    id: int
    standard_id: int
    name: str
    description: str
    requirement: str
    evidence_type: str
    evidence_description: str
    scoring_method: str
    max_score: float
    is_mandatory: bool
    order: int

    model_config = {"from_attributes": True}


class StandardWithCriteria(StandardResponse):
    criteria: list[CriterionResponse] = []


# ---------------------------------------------------------------------------
# COMPLIANCE SCHEMAS
# ---------------------------------------------------------------------------

class EvidenceSubmit(BaseModel):
    project_id: int
    standard_id: int
    criterion_id: int
    evidence: Optional[str] = None
    evidence_url: Optional[str] = None


class ComplianceStatusUpdate(BaseModel):
    status: str
    score: Optional[float] = None
    reviewer_id: Optional[int] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _check_choice(v, COMPLIANCE_STATUSES, "status")


class ProjectComplianceResponse(BaseModel):
    id: int
    project_id: int
    standard_id: int
    criterion_id: int
    status: str
    score: float
    evidence: Optional[str] = None
    evidence_url: Optional[str] = None
    reviewer_id: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class EvaluationCreate(BaseModel):
    """overall_score must be in [0, 100]; checked in crud."""
    project_id: int
    standard_id: int
    overall_score: float
    evaluator_id: int
    notes: Optional[str] = None


class EvaluationResponse(BaseModel):
    id: int
    project_id: int
    standard_id: int
    overall_score: float
    evaluated_at: datetime
    evaluator_id: int
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class EvaluateRequest(BaseModel):
    project_id: int
    standard_id: int
    evaluator_id: int
    notes: Optional[str] = None


class BatchEvaluateRequest(BaseModel):
    project_ids: list[int]
    standard_id: int
    evaluator_id: int


class CriterionResult(BaseModel):
    criterion_id: int
    criterion_name: str
    score: float
    max_score: float
    status: str
    evidence_status: str
    validation_notes: Optional[str] = None


class EvaluationResult(BaseModel):
    evaluation_id: int
    project_id: int
    standard_id: int
    overall_score: float
    status: str
    evaluated_at: datetime
    evaluator_id: int
    notes: Optional[str] = None
    criteria_results: list[CriterionResult]


class ComplianceSummary(BaseModel):
    total_evaluations: int
    average_score: float
    best_score: float
    worst_score: float
    compliance_level: str
    trend: str
    latest_evaluation: Optional[EvaluationResponse] = None


class BulkEvidenceStatusUpdate(BaseModel):
    """Same review transition applied to several evidence records."""
    record_ids: list[int] = Field(..., min_length=1)
    status: str
    reviewer_id: Optional[int] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _check_choice(v, COMPLIANCE_STATUSES, "status")


class BulkEvidenceStatusResult(BaseModel):
    total_processed: int
    updated: list[int]
    failed: list[dict[str, Any]]


class EvidenceSearchResult(BaseModel):
    records: list[ProjectComplianceResponse]
    total_count: int
    has_more: bool


class ComplianceAlert(BaseModel):
    type: str
    severity: str
    message: str
    current_value: Optional[float] = None


class ComplianceCheck(BaseModel):
    project_id: int
    project_name: str
    standard_id: int
    standard_name: str
    overall_score: float
    status: str
    last_evaluated_at: Optional[datetime] = None
    trend: str
    missing_criteria: list[str]
    alerts: list[ComplianceAlert]


class PortfolioComplianceStatus(BaseModel):
    portfolio_id: int
    portfolio_name: str
    total_projects: int
    evaluated_projects: int
    evaluated_checks: int
    average_compliance_score: float
    compliance_distribution: dict[str, int]
    top_alerts: list[ComplianceAlert]


# ---------------------------------------------------------------------------
# SCHEDULE SCHEMAS
# ---------------------------------------------------------------------------

class ScheduleCreate(BaseModel):
    """Empty id lists cover every project / every active standard."""
    frequency: str
    portfolio_ids: list[int] = []
    standard_ids: list[int] = []

    @field_validator("frequency")
    @classmethod
    def validate_frequency(cls, v):
        return _check_choice(v, SCHEDULE_FREQUENCIES, "frequency")


class ScheduleResponse(BaseModel):
    id: int
    frequency: str
    portfolio_ids: list[int]
    standard_ids: list[int]
    next_evaluation_at: datetime
    last_run_at: Optional[datetime] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BulkEvaluateRequest(BaseModel):
    """Score every project of the listed portfolios against each listed standard."""
    portfolio_ids: list[int] = []
    standard_ids: list[int] = []
    evaluator_id: int


class ScheduleRun(BaseModel):
    schedule_id: int
    evaluations: int
    next_evaluation_at: datetime


# ---------------------------------------------------------------------------
# PREFERENCE SCHEMAS
# ---------------------------------------------------------------------------

class PreferencesUpdate(BaseModel):
    """Partial update; nested dicts are merged key by key into the stored value."""
    theme: Optional[str] = None
    dashboard_layout: Optional[dict[str, Any]] = None
    notifications: Optional[dict[str, Any]] = None
    accessibility: Optional[dict[str, Any]] = None

    @field_validator("theme")
    @classmethod
    def validate_theme(cls, v):
        return _check_choice(v, THEMES, "theme")


class PreferencesResponse(BaseModel):
    user_id: int
    role: str
    is_default: bool
    preferences: dict[str, Any]
