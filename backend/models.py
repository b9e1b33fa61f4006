"""
GovDash ORM Models

Defines all database tables using SQLAlchemy 2.0 mapped_column style.

Architecture:
    - All models inherit from Base (defined in database.py)
    - Relationships defined with back_populates for bidirectional access
    - Project children (milestones, tags, risks, compliance) are removed with
      their project via CASCADE
    - Portfolio and User deletion are guarded in crud.py rather than cascaded
    - Enumerated columns are plain Text, validated by the pydantic schemas

Tables:
    - users: Dashboard users and their role
    - user_preferences: Per-user dashboard preferences (JSON text)
    - portfolios: Portfolio containers owned by a user
    - projects: Projects, optionally grouped under a portfolio
    - project_milestones: Ordered timeline milestones per project
    - project_tags: Unordered tag set per project
    - risks: Risks raised against a project
    - pmi_standards: Compliance standards with a scoring weight
    - pmi_standard_criteria: Weighted criteria belonging to a standard
    - project_compliance: Evidence records per project × criterion
    - compliance_evaluations: Scored evaluation of a project against a standard
    - compliance_schedules: Recurring bulk evaluation runs
"""

import json
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Integer, Float, Text, Boolean, DateTime, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base
from .engines.risk_scoring import calculate_risk_score, risk_level_from_score


# ---------------------------------------------------------------------------
# USER TABLES
# ---------------------------------------------------------------------------

class User(Base):
    """
    A dashboard user. The role (executive, portfolio_manager, project_officer)
    drives every authorization decision in access_policy.py.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True, index=True)
    role: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    department: Mapped[str] = mapped_column(Text, nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    owned_portfolios: Mapped[list["Portfolio"]] = relationship(
        "Portfolio", back_populates="owner"
    )
    owned_projects: Mapped[list["Project"]] = relationship(
        "Project", back_populates="owner"
    )
    preference: Mapped[Optional["UserPreference"]] = relationship(
        "UserPreference", back_populates="user", uselist=False,
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"


class UserPreference(Base):
    """Stored dashboard preferences. Absent rows fall back to role defaults."""
    __tablename__ = "user_preferences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    preferences_json: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    user: Mapped["User"] = relationship("User", back_populates="preference")

    @property
    def preferences(self) -> dict:
        return json.loads(self.preferences_json)


# ---------------------------------------------------------------------------
# PORTFOLIO / PROJECT TABLES
# ---------------------------------------------------------------------------

class Portfolio(Base):
    """
    A portfolio groups projects under one owner.

    health_score is only refreshed by an explicit recompute
    (crud.recompute_portfolio_health); editing a project leaves it stale.
    The resource_* columns are advisory figures entered by the owner.
    """
    __tablename__ = "portfolios"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    health_score: Mapped[float] = mapped_column(Float, nullable=False, default=100.0)
    total_budget: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    allocated_budget: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # Resource allocation (advisory, never recomputed)
    team_members: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    budget_utilization: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    project_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    owner: Mapped["User"] = relationship("User", back_populates="owned_portfolios")
    projects: Mapped[list["Project"]] = relationship(
        "Project", back_populates="portfolio"
    )

    @property
    def resource_allocation(self) -> dict:
        return {
            "team_members": self.team_members,
            "budget_utilization": self.budget_utilization,
            "project_count": self.project_count,
        }

    def __repr__(self) -> str:
        return f"<Portfolio(id={self.id}, name={self.name}, health={self.health_score})>"


class Project(Base):
    """
    A tracked project. risk_level is set by the operator and is never derived
    from the project's risks.
    """
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="planned", index=True)
    budget: Mapped[float] = mapped_column(Float, nullable=False)
    spent_budget: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    portfolio_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("portfolios.id"), nullable=True, index=True
    )
    owner_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True, index=True
    )
    team_members_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    health_score: Mapped[float] = mapped_column(Float, nullable=False, default=100.0)
    risk_level: Mapped[str] = mapped_column(Text, nullable=False, default="low", index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    portfolio: Mapped[Optional["Portfolio"]] = relationship(
        "Portfolio", back_populates="projects"
    )
    owner: Mapped[Optional["User"]] = relationship("User", back_populates="owned_projects")
    milestones: Mapped[list["Milestone"]] = relationship(
        "Milestone", back_populates="project", cascade="all, delete-orphan",
        order_by="Milestone.position"
    )
    tag_rows: Mapped[list["ProjectTag"]] = relationship(
        "ProjectTag", back_populates="project", cascade="all, delete-orphan"
    )
    risks: Mapped[list["Risk"]] = relationship(
        "Risk", back_populates="project", cascade="all, delete-orphan"
    )
    compliance_records: Mapped[list["ProjectCompliance"]] = relationship(
        "ProjectCompliance", back_populates="project", cascade="all, delete-orphan"
    )
    evaluations: Mapped[list["ComplianceEvaluation"]] = relationship(
        "ComplianceEvaluation", back_populates="project", cascade="all, delete-orphan"
    )

    @property
    def tags(self) -> list[str]:
        return sorted(t.tag for t in self.tag_rows)

    @property
    def team_members(self) -> list[int]:
        return json.loads(self.team_members_json or "[]")

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, name={self.name}, status={self.status})>"


class Milestone(Base):
    """Timeline milestone. position keeps the order the milestones were given in."""
    __tablename__ = "project_milestones"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="pending")

    project: Mapped["Project"] = relationship("Project", back_populates="milestones")


class ProjectTag(Base):
    __tablename__ = "project_tags"
    __table_args__ = (
        UniqueConstraint("project_id", "tag", name="uq_project_tag"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    tag: Mapped[str] = mapped_column(Text, nullable=False)

    project: Mapped["Project"] = relationship("Project", back_populates="tag_rows")


# ---------------------------------------------------------------------------
# RISK TABLES
# ---------------------------------------------------------------------------

class Risk(Base):
    """
    A risk raised against one project.

    severity is operator-assigned. The probability × impact score and the
    bucket derived from it are computed on read (engines/risk_scoring.py)
    and may disagree with severity.
    """
    __tablename__ = "risks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    severity: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="identified", index=True)
    probability: Mapped[float] = mapped_column(Float, nullable=False)
    impact: Mapped[float] = mapped_column(Float, nullable=False)
    mitigation_plan: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    project: Mapped["Project"] = relationship("Project", back_populates="risks")

    @property
    def risk_score(self) -> float:
        return calculate_risk_score(self.probability, self.impact)

    @property
    def derived_level(self) -> str:
        return risk_level_from_score(self.risk_score)

    def __repr__(self) -> str:
        return f"<Risk(id={self.id}, project={self.project_id}, severity={self.severity})>"


# ---------------------------------------------------------------------------
# COMPLIANCE TABLES
# ---------------------------------------------------------------------------

class PMIStandard(Base):
    """A compliance standard. weight (0, 1] scales evaluation scores."""
    __tablename__ = "pmi_standards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    level: Mapped[str] = mapped_column(Text, nullable=False)
    weight: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    version: Mapped[str] = mapped_column(Text, nullable=False, default="1.0")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    criteria: Mapped[list["PMIStandardCriterion"]] = relationship(
        "PMIStandardCriterion", back_populates="standard", cascade="all, delete-orphan",
        order_by="PMIStandardCriterion.order"
    )
    evaluations: Mapped[list["ComplianceEvaluation"]] = relationship(
        "ComplianceEvaluation", back_populates="standard", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<PMIStandard(id={self.id}, name={self.name}, weight={self.weight})>"


class PMIStandardCriterion(Base):
    __tablename__ = "pmi_standard_criteria"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    standard_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("pmi_standards.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    requirement: Mapped[str] = mapped_column(Text, nullable=False, default="")
    evidence_type: Mapped[str] = mapped_column(Text, nullable=False)
    evidence_description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    scoring_method: Mapped[str] = mapped_column(Text, nullable=False)
    max_score: Mapped[float] = mapped_column(Float, nullable=False)
    is_mandatory: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    standard: Mapped["PMIStandard"] = relationship("PMIStandard", back_populates="criteria")


class ProjectCompliance(Base):
    """Evidence submitted by a project for one criterion of a standard."""
    __tablename__ = "project_compliance"
    __table_args__ = (
        UniqueConstraint("project_id", "criterion_id", name="uq_project_criterion"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    standard_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("pmi_standards.id", ondelete="CASCADE"), nullable=False
    )
    criterion_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("pmi_standard_criteria.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(Text, nullable=False, default="not_started")
    score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    evidence: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    evidence_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reviewer_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True
    )
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    project: Mapped["Project"] = relationship("Project", back_populates="compliance_records")


class ComplianceEvaluation(Base):
    """A project's 0-100 score against a standard at a point in time."""
    __tablename__ = "compliance_evaluations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    standard_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("pmi_standards.id", ondelete="CASCADE"), nullable=False, index=True
    )
    overall_score: Mapped[float] = mapped_column(Float, nullable=False)
    evaluated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, index=True
    )
    evaluator_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    project: Mapped["Project"] = relationship("Project", back_populates="evaluations")
    standard: Mapped["PMIStandard"] = relationship("PMIStandard", back_populates="evaluations")

    def __repr__(self) -> str:
        return (
            f"<ComplianceEvaluation(id={self.id}, project={self.project_id}, "
            f"standard={self.standard_id}, score={self.overall_score})>"
        )


class ComplianceSchedule(Base):
    """
    Recurring evaluation run. Empty portfolio or standard lists mean every
    project or every active standard.
    """
    __tablename__ = "compliance_schedules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    frequency: Mapped[str] = mapped_column(Text, nullable=False)
    portfolio_ids_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    standard_ids_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    next_evaluation_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    last_run_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    @property
    def portfolio_ids(self) -> list[int]:
        return json.loads(self.portfolio_ids_json or "[]")

    @property
    def standard_ids(self) -> list[int]:
        return json.loads(self.standard_ids_json or "[]")

    def __repr__(self) -> str:
        return (
            f"<ComplianceSchedule(id={self.id}, frequency={self.frequency}, "
            f"next={self.next_evaluation_at})>"
        )
