"""Tests for CRUD operations."""

import pytest
import sys
import os
from datetime import datetime
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from backend import crud, schemas
from backend.exceptions import NotFoundError, ConflictError


def _project_data(**overrides) -> schemas.ProjectCreate:
    data = {
        "name": "Records Digitisation",
        "budget": 200_000,
        "start_date": datetime(2025, 1, 1),
        "end_date": datetime(2025, 12, 31),
    }
    data.update(overrides)
    return schemas.ProjectCreate(**data)


class TestUserCRUD:
    def test_create_user(self, db_session):
        user = crud.create_user(db_session, schemas.UserCreate(
            name="Sara Lindqvist", email="sara@agency.gov",
            role="project_officer", department="Infrastructure",
        ))
        assert user.id is not None
        assert user.role == "project_officer"

    def test_duplicate_email_conflicts(self, db_session, officer):
        with pytest.raises(ConflictError) as exc:
            crud.create_user(db_session, schemas.UserCreate(
                name="Other", email=officer.email, role="executive", department="Office",
            ))
        assert exc.value.error_code == "DUPLICATE_EMAIL"

    def test_malformed_email_rejected(self, db_session):
        with pytest.raises(ValueError, match="Invalid email format"):
            crud.create_user(db_session, schemas.UserCreate(
                name="X", email="not-an-email", role="executive", department="Office",
            ))

    def test_blank_department_rejected(self, db_session):
        with pytest.raises(ValueError, match="Department is required"):
            crud.create_user(db_session, schemas.UserCreate(
                name="X", email="x@agency.gov", role="executive", department="  ",
            ))

    def test_update_keeps_own_email(self, db_session, officer):
        user = crud.update_user(db_session, officer.id, schemas.UserUpdate(
            email=officer.email, department="Digital Services",
        ))
        assert user.department == "Digital Services"

    def test_update_to_taken_email_conflicts(self, db_session, officer, manager):
        with pytest.raises(ConflictError, match="already taken"):
            crud.update_user(db_session, officer.id, schemas.UserUpdate(email=manager.email))

    def test_delete_owner_blocked(self, db_session, sample_project, officer):
        with pytest.raises(ConflictError) as exc:
            crud.delete_user(db_session, officer.id)
        assert exc.value.error_code == "USER_IN_USE"
        assert crud.get_user(db_session, officer.id) is not None

    def test_delete_unreferenced_user(self, db_session, executive):
        assert crud.delete_user(db_session, executive.id) is True
        assert crud.get_user(db_session, executive.id) is None

    def test_list_by_role_and_statistics(self, db_session, executive, manager, officer):
        assert [u.id for u in crud.list_users(db_session, role="executive")] == [executive.id]
        stats = crud.user_statistics(db_session)
        assert stats["total_users"] == 3
        assert stats["role_counts"]["portfolio_manager"] == 1
        assert stats["department_counts"]["Digital"] == 2

    def test_user_has_role(self, db_session, manager):
        assert crud.user_has_role(db_session, manager.id, "project_officer") is True
        assert crud.user_has_role(db_session, manager.id, "executive") is False
        assert crud.user_has_role(db_session, 999, "executive") is None

    def test_project_access(self, db_session, sample_project, executive, manager, officer):
        assert crud.can_user_access_project(db_session, executive.id, sample_project.id)
        assert crud.can_user_access_project(db_session, manager.id, sample_project.id)
        assert crud.can_user_access_project(db_session, officer.id, sample_project.id)
        other = crud.create_user(db_session, schemas.UserCreate(
            name="Other PM", email="other@agency.gov", role="portfolio_manager", department="X",
        ))
        assert not crud.can_user_access_project(db_session, other.id, sample_project.id)
        assert not crud.can_user_access_project(db_session, officer.id, 999)

    def test_portfolio_access(self, db_session, sample_portfolio, executive, manager, officer):
        assert crud.can_user_access_portfolio(db_session, executive.id, sample_portfolio.id)
        assert crud.can_user_access_portfolio(db_session, manager.id, sample_portfolio.id)
        assert not crud.can_user_access_portfolio(db_session, officer.id, sample_portfolio.id)


class TestPortfolioCRUD:
    def test_create_portfolio(self, db_session, manager):
        portfolio = crud.create_portfolio(db_session, schemas.PortfolioCreate(
            name="Infrastructure", owner_id=manager.id, total_budget=5_000_000,
            resource_allocation=schemas.ResourceAllocation(team_members=12, project_count=2),
        ))
        assert portfolio.health_score == 100.0
        assert portfolio.resource_allocation["team_members"] == 12

    def test_unknown_owner(self, db_session):
        with pytest.raises(NotFoundError):
            crud.create_portfolio(db_session, schemas.PortfolioCreate(name="X", owner_id=42))

    def test_health_score_range(self, db_session, manager):
        with pytest.raises(ValueError, match="Health score"):
            crud.create_portfolio(db_session, schemas.PortfolioCreate(
                name="X", owner_id=manager.id, health_score=101,
            ))

    def test_update_resource_allocation(self, db_session, sample_portfolio):
        portfolio = crud.update_portfolio(db_session, sample_portfolio.id, schemas.PortfolioUpdate(
            resource_allocation=schemas.ResourceAllocation(team_members=30, budget_utilization=55.5),
        ))
        assert portfolio.team_members == 30
        assert portfolio.budget_utilization == 55.5

    def test_delete_non_empty_blocked(self, db_session, sample_project, sample_portfolio):
        with pytest.raises(ConflictError) as exc:
            crud.delete_portfolio(db_session, sample_portfolio.id)
        assert exc.value.error_code == "PORTFOLIO_NOT_EMPTY"

    def test_delete_empty(self, db_session, sample_portfolio):
        assert crud.delete_portfolio(db_session, sample_portfolio.id) is True
        assert crud.delete_portfolio(db_session, sample_portfolio.id) is False

    def test_project_edit_leaves_health_stale(self, db_session, sample_project, sample_portfolio):
        crud.update_project(db_session, sample_project.id, schemas.ProjectUpdate(health_score=20))
        assert crud.get_portfolio(db_session, sample_portfolio.id).health_score == 100.0

    def test_recompute_health(self, db_session, sample_project, sample_portfolio):
        crud.create_project(db_session, _project_data(
            budget=100_000, health_score=40, portfolio_id=sample_portfolio.id,
        ))
        result = crud.recompute_portfolio_health(db_session, sample_portfolio.id)
        # (80 × 300k + 40 × 100k) / 400k
        assert result["health_score"] == 70.0
        assert result["project_count"] == 2
        assert crud.get_portfolio(db_session, sample_portfolio.id).health_score == 70.0

    def test_recompute_empty_portfolio(self, db_session, sample_portfolio):
        assert crud.recompute_portfolio_health(db_session, sample_portfolio.id)["health_score"] == 100.0

    def test_recompute_missing(self, db_session):
        assert crud.recompute_portfolio_health(db_session, 999) is None


class TestProjectCRUD:
    def test_create_with_milestones_and_tags(self, db_session, officer):
        project = crud.create_project(db_session, _project_data(
            owner_id=officer.id,
            team_members=[officer.id],
            milestones=[
                schemas.MilestoneSchema(name="Kickoff", date=datetime(2025, 1, 15)),
                schemas.MilestoneSchema(name="Go-live", date=datetime(2025, 11, 1)),
            ],
            tags=["cloud", "archives", "cloud"],
        ))
        assert [m.name for m in project.milestones] == ["Kickoff", "Go-live"]
        assert project.milestones[0].status == "pending"
        assert project.tags == ["archives", "cloud"]
        assert project.team_members == [officer.id]

    def test_non_positive_budget(self, db_session):
        with pytest.raises(ValueError, match="Budget must be a positive number"):
            crud.create_project(db_session, _project_data(budget=0))

    def test_inverted_timeline(self, db_session):
        with pytest.raises(ValueError, match="Start date must be before end date"):
            crud.create_project(db_session, _project_data(
                start_date=datetime(2025, 6, 1), end_date=datetime(2025, 6, 1),
            ))

    def test_milestone_outside_timeline(self, db_session):
        with pytest.raises(ValueError, match="Milestone 1 date must be within project timeline"):
            crud.create_project(db_session, _project_data(
                milestones=[schemas.MilestoneSchema(name="Late", date=datetime(2026, 2, 1))],
            ))

    def test_unknown_portfolio(self, db_session):
        with pytest.raises(NotFoundError, match="Portfolio not found"):
            crud.create_project(db_session, _project_data(portfolio_id=77))

    def test_update_checks_merged_timeline(self, db_session, sample_project):
        with pytest.raises(ValueError, match="Start date must be before end date"):
            crud.update_project(db_session, sample_project.id, schemas.ProjectUpdate(
                end_date=datetime(2024, 12, 1),
            ))

    def test_update_with_utc_offset_dates(self, db_session, sample_project):
        project = crud.update_project(db_session, sample_project.id, schemas.ProjectUpdate(
            end_date="2026-06-30T00:00:00+02:00",
        ))
        assert project.end_date == datetime(2026, 6, 29, 22, 0)
        assert project.end_date.tzinfo is None

    def test_create_with_utc_dates_and_milestones(self, db_session):
        project = crud.create_project(db_session, _project_data(
            start_date="2025-01-01T00:00:00Z",
            end_date="2025-12-31T00:00:00Z",
            milestones=[{"name": "Kickoff", "date": "2025-01-15T09:30:00Z"}],
        ))
        assert project.start_date == datetime(2025, 1, 1)
        assert project.milestones[0].date == datetime(2025, 1, 15, 9, 30)

    def test_update_replaces_tags(self, db_session, sample_project):
        crud.update_project(db_session, sample_project.id, schemas.ProjectUpdate(tags=["a"]))
        project = crud.update_project(db_session, sample_project.id, schemas.ProjectUpdate(
            tags=["b", "a"], status="delayed",
        ))
        assert project.tags == ["a", "b"]
        assert project.status == "delayed"

    def test_filters(self, db_session, sample_project, sample_portfolio, officer):
        crud.create_project(db_session, _project_data(status="planned"))
        assert len(crud.list_projects(db_session)) == 2
        assert len(crud.list_projects(db_session, status="active")) == 1
        assert len(crud.list_projects(db_session, portfolio_id=sample_portfolio.id)) == 1
        assert len(crud.list_projects(db_session, owner_id=officer.id)) == 1

    def test_delete_cascades_risks(self, db_session, sample_project):
        crud.create_risk(db_session, schemas.RiskCreate(
            project_id=sample_project.id, title="Vendor", severity="high",
            probability=50, impact=50,
        ))
        assert crud.delete_project(db_session, sample_project.id) is True
        assert crud.list_risks(db_session) == []


class TestRiskCRUD:
    def test_create_and_score(self, db_session, sample_project):
        risk = crud.create_risk(db_session, schemas.RiskCreate(
            project_id=sample_project.id, title="Vendor lock-in", severity="low",
            probability=80, impact=90,
        ))
        assert risk.status == "identified"
        assert risk.risk_score == 72.0
        # stored severity and derived bucket are independent
        assert risk.severity == "low"
        assert risk.derived_level == "critical"

    def test_probability_range(self, db_session, sample_project):
        with pytest.raises(ValueError, match="Probability must be between 0 and 100"):
            crud.create_risk(db_session, schemas.RiskCreate(
                project_id=sample_project.id, title="X", severity="low",
                probability=101, impact=10,
            ))

    def test_unknown_project(self, db_session):
        with pytest.raises(NotFoundError):
            crud.create_risk(db_session, schemas.RiskCreate(
                project_id=5, title="X", severity="low", probability=1, impact=1,
            ))

    def test_status_any_to_any(self, db_session, sample_project):
        risk = crud.create_risk(db_session, schemas.RiskCreate(
            project_id=sample_project.id, title="X", severity="medium", status="resolved",
            probability=10, impact=10,
        ))
        risk = crud.update_risk_status(db_session, risk.id, "identified")
        assert risk.status == "identified"

    def test_high_priority_and_statistics(self, db_session, sample_project):
        for severity in ("low", "high", "critical"):
            crud.create_risk(db_session, schemas.RiskCreate(
                project_id=sample_project.id, title=severity, severity=severity,
                probability=40, impact=50,
            ))
        assert len(crud.list_high_priority_risks(db_session)) == 2
        stats = crud.project_risk_statistics(db_session, sample_project.id)
        assert stats["total_risks"] == 3
        assert stats["average_risk_score"] == 20.0
        assert crud.project_risk_statistics(db_session, 999) is None


class TestComplianceCRUD:
    def test_submit_evidence_upserts(self, db_session, sample_project, sample_standard):
        criterion = sample_standard.criteria[0]
        data = schemas.EvidenceSubmit(
            project_id=sample_project.id, standard_id=sample_standard.id,
            criterion_id=criterion.id, evidence_url="https://docs/charter-v1.pdf",
        )
        first = crud.submit_evidence(db_session, data)
        second = crud.submit_evidence(db_session, data.model_copy(
            update={"evidence_url": "https://docs/charter-v2.pdf"}
        ))
        assert first.id == second.id
        assert second.status == "submitted"
        assert second.evidence_url == "https://docs/charter-v2.pdf"
        assert len(crud.list_project_compliance(db_session, sample_project.id)) == 1

    def test_criterion_must_belong_to_standard(self, db_session, sample_project, sample_standard):
        with pytest.raises(NotFoundError, match="PMI standard criteria"):
            crud.submit_evidence(db_session, schemas.EvidenceSubmit(
                project_id=sample_project.id, standard_id=sample_standard.id + 1,
                criterion_id=sample_standard.criteria[0].id,
            ))

    def test_review_stamps_reviewer(self, db_session, sample_project, sample_standard, manager):
        record = crud.submit_evidence(db_session, schemas.EvidenceSubmit(
            project_id=sample_project.id, standard_id=sample_standard.id,
            criterion_id=sample_standard.criteria[0].id, evidence_url="https://docs/c.pdf",
        ))
        record = crud.update_compliance_status(db_session, record.id, schemas.ComplianceStatusUpdate(
            status="approved", reviewer_id=manager.id,
        ))
        assert record.status == "approved"
        assert record.reviewer_id == manager.id
        assert record.reviewed_at is not None

    def test_evaluate_project_persists(self, db_session, sample_project, sample_standard, manager):
        charter, register, engagement = sample_standard.criteria
        record = crud.submit_evidence(db_session, schemas.EvidenceSubmit(
            project_id=sample_project.id, standard_id=sample_standard.id,
            criterion_id=charter.id, evidence_url="https://docs/c.pdf",
        ))
        crud.update_compliance_status(db_session, record.id, schemas.ComplianceStatusUpdate(
            status="approved",
        ))
        crud.submit_evidence(db_session, schemas.EvidenceSubmit(
            project_id=sample_project.id, standard_id=sample_standard.id,
            criterion_id=register.id, evidence_url="https://risk/register",
        ))

        result = crud.evaluate_project_compliance(db_session, schemas.EvaluateRequest(
            project_id=sample_project.id, standard_id=sample_standard.id,
            evaluator_id=manager.id, notes="Quarterly review",
        ))
        # (10 + 5 + 0) / 25
        assert result["overall_score"] == 60.0
        assert result["status"] == "partial"
        stored = crud.list_evaluations(db_session, project_id=sample_project.id)
        assert [e.id for e in stored] == [result["evaluation_id"]]
        assert stored[0].notes == "Quarterly review"

    def test_evaluate_without_criteria(self, db_session, sample_project, manager):
        standard = crud.create_standard(db_session, schemas.StandardCreate(
            name="Empty", category="program", level="advanced",
        ))
        with pytest.raises(ValueError, match="No criteria found"):
            crud.evaluate_project_compliance(db_session, schemas.EvaluateRequest(
                project_id=sample_project.id, standard_id=standard.id, evaluator_id=manager.id,
            ))
        assert crud.list_evaluations(db_session) == []

    def test_batch_skips_failures(self, db_session, sample_project, sample_standard, manager):
        results = crud.batch_evaluate(db_session, schemas.BatchEvaluateRequest(
            project_ids=[sample_project.id, 999],
            standard_id=sample_standard.id,
            evaluator_id=manager.id,
        ))
        assert [r["project_id"] for r in results] == [sample_project.id]
        assert results[0]["status"] == "failed"

    def test_manual_evaluation_range(self, db_session, sample_project, sample_standard, manager):
        with pytest.raises(ValueError, match="Overall score must be between 0 and 100"):
            crud.create_evaluation(db_session, schemas.EvaluationCreate(
                project_id=sample_project.id, standard_id=sample_standard.id,
                overall_score=120, evaluator_id=manager.id,
            ))

    def test_project_summary(self, db_session, sample_project, sample_standard, manager):
        for score in (55, 72):
            crud.create_evaluation(db_session, schemas.EvaluationCreate(
                project_id=sample_project.id, standard_id=sample_standard.id,
                overall_score=score, evaluator_id=manager.id,
            ))
        summary = crud.project_compliance_summary(db_session, sample_project.id)
        assert summary["total_evaluations"] == 2
        assert summary["average_score"] == 63.5
        assert summary["compliance_level"] == "fair"

    def test_report_unknown_scope(self, db_session):
        with pytest.raises(NotFoundError):
            crud.compliance_report(db_session, portfolio_id=12)

    def test_report_project_from_other_portfolio(self, db_session, sample_project, manager):
        other = crud.create_portfolio(db_session, schemas.PortfolioCreate(
            name="Infrastructure", owner_id=manager.id,
        ))
        with pytest.raises(ValueError, match="is not in portfolio"):
            crud.compliance_report(
                db_session, portfolio_id=other.id, project_id=sample_project.id,
            )


def _submit_all(db_session, project, standard):
    charter, register, engagement = standard.criteria
    submissions = [
        (charter, {"evidence_url": "https://docs/charter.pdf"}),
        (register, {"evidence_url": "https://risk.example/register"}),
        (engagement, {"evidence": "Monthly town halls with service users"}),
    ]
    return [
        crud.submit_evidence(db_session, schemas.EvidenceSubmit(
            project_id=project.id, standard_id=standard.id, criterion_id=criterion.id, **body,
        ))
        for criterion, body in submissions
    ]


class TestEvidenceSearch:
    def test_filters(self, db_session, sample_project, sample_standard, manager):
        charter, register, engagement = _submit_all(db_session, sample_project, sample_standard)
        crud.update_compliance_status(db_session, charter.id, schemas.ComplianceStatusUpdate(
            status="approved", reviewer_id=manager.id,
        ))

        result = crud.search_evidence(db_session, project_id=sample_project.id)
        assert result["total_count"] == 3
        assert result["has_more"] is False

        approved = crud.search_evidence(db_session, statuses=["approved"])
        assert [r.id for r in approved["records"]] == [charter.id]

        by_text = crud.search_evidence(db_session, text="RISK.example")
        assert [r.id for r in by_text["records"]] == [register.id]

        by_body = crud.search_evidence(db_session, text="town hall")
        assert [r.id for r in by_body["records"]] == [engagement.id]

    def test_pagination_newest_first(self, db_session, sample_project, sample_standard):
        records = _submit_all(db_session, sample_project, sample_standard)
        page = crud.search_evidence(db_session, limit=2)
        assert page["total_count"] == 3
        assert page["has_more"] is True
        assert page["records"][0].id == records[-1].id

        rest = crud.search_evidence(db_session, limit=2, offset=2)
        assert [r.id for r in rest["records"]] == [records[0].id]
        assert rest["has_more"] is False

    def test_date_range_needs_both_ends(self, db_session, sample_project, sample_standard):
        _submit_all(db_session, sample_project, sample_standard)
        future = datetime(2100, 1, 1)
        assert crud.search_evidence(db_session, submitted_from=future)["total_count"] == 3
        ranged = crud.search_evidence(
            db_session, submitted_from=future, submitted_to=datetime(2100, 12, 31),
        )
        assert ranged["total_count"] == 0

    def test_bulk_status_reports_unknown_ids(self, db_session, sample_project, sample_standard, manager):
        charter, register, _ = _submit_all(db_session, sample_project, sample_standard)
        result = crud.bulk_update_evidence_status(db_session, schemas.BulkEvidenceStatusUpdate(
            record_ids=[charter.id, register.id, 999], status="approved", reviewer_id=manager.id,
        ))
        assert result["total_processed"] == 3
        assert result["updated"] == [charter.id, register.id]
        assert result["failed"] == [{"record_id": 999, "error": "Compliance record not found"}]

        db_session.refresh(charter)
        assert charter.status == "approved"
        assert charter.reviewer_id == manager.id
        assert charter.reviewed_at is not None

    def test_bulk_status_unknown_reviewer(self, db_session, sample_project, sample_standard):
        charter, _, _ = _submit_all(db_session, sample_project, sample_standard)
        with pytest.raises(NotFoundError, match="User not found"):
            crud.bulk_update_evidence_status(db_session, schemas.BulkEvidenceStatusUpdate(
                record_ids=[charter.id], status="rejected", reviewer_id=404,
            ))
        db_session.refresh(charter)
        assert charter.status == "submitted"


class TestBulkEvaluation:
    def test_scoped_to_portfolios(self, db_session, sample_project, sample_standard, manager):
        other = crud.create_portfolio(db_session, schemas.PortfolioCreate(
            name="Infrastructure", owner_id=manager.id,
        ))
        crud.create_project(db_session, _project_data(portfolio_id=other.id))

        results = crud.execute_bulk_evaluation(db_session, schemas.BulkEvaluateRequest(
            portfolio_ids=[sample_project.portfolio_id], evaluator_id=manager.id,
        ))
        assert [(r["project_id"], r["standard_id"]) for r in results] == [
            (sample_project.id, sample_standard.id),
        ]
        assert len(crud.list_evaluations(db_session)) == 1

    def test_no_portfolios_means_every_project(self, db_session, sample_project, sample_standard, manager):
        crud.create_project(db_session, _project_data())
        results = crud.execute_bulk_evaluation(db_session, schemas.BulkEvaluateRequest(
            standard_ids=[sample_standard.id], evaluator_id=manager.id,
        ))
        assert len(results) == 2

    def test_unknown_references(self, db_session, sample_standard, manager):
        with pytest.raises(NotFoundError, match="Portfolio not found"):
            crud.execute_bulk_evaluation(db_session, schemas.BulkEvaluateRequest(
                portfolio_ids=[55], evaluator_id=manager.id,
            ))
        with pytest.raises(NotFoundError, match="User not found"):
            crud.execute_bulk_evaluation(db_session, schemas.BulkEvaluateRequest(
                evaluator_id=404,
            ))


class TestSchedules:
    T = datetime(2025, 3, 1, 6, 0)

    def test_create_and_due(self, db_session):
        schedule = crud.create_schedule(
            db_session, schemas.ScheduleCreate(frequency="weekly"), now=self.T,
        )
        assert schedule.next_evaluation_at == datetime(2025, 3, 8, 6, 0)
        assert schedule.is_active is True
        assert schedule.portfolio_ids == []

        assert crud.list_due_schedules(db_session, now=datetime(2025, 3, 7)) == []
        due = crud.list_due_schedules(db_session, now=datetime(2025, 3, 8, 6, 0))
        assert [s.id for s in due] == [schedule.id]

    def test_advance_and_deactivate(self, db_session):
        schedule = crud.create_schedule(
            db_session, schemas.ScheduleCreate(frequency="monthly"), now=self.T,
        )
        advanced = crud.advance_schedule(db_session, schedule.id, now=datetime(2025, 4, 2))
        assert advanced.next_evaluation_at == datetime(2025, 5, 2)

        crud.deactivate_schedule(db_session, schedule.id)
        assert crud.list_due_schedules(db_session, now=datetime(2026, 1, 1)) == []
        assert crud.list_schedules(db_session, active_only=True) == []
        assert len(crud.list_schedules(db_session)) == 1

    def test_missing_schedule(self, db_session):
        assert crud.advance_schedule(db_session, 8) is None
        assert crud.deactivate_schedule(db_session, 8) is None
        assert crud.delete_schedule(db_session, 8) is False

    def test_unknown_standard(self, db_session):
        with pytest.raises(NotFoundError, match="PMI standard not found"):
            crud.create_schedule(db_session, schemas.ScheduleCreate(
                frequency="daily", standard_ids=[31],
            ))

    def test_run_due_schedules(self, db_session, sample_project, sample_standard, manager):
        schedule = crud.create_schedule(db_session, schemas.ScheduleCreate(
            frequency="daily",
            portfolio_ids=[sample_project.portfolio_id],
            standard_ids=[sample_standard.id],
        ), now=self.T)
        run_at = datetime(2025, 3, 3, 6, 0)

        runs = crud.run_due_schedules(db_session, evaluator_id=manager.id, now=run_at)
        assert runs == [{
            "schedule_id": schedule.id,
            "evaluations": 1,
            "next_evaluation_at": datetime(2025, 3, 4, 6, 0),
        }]
        assert crud.get_schedule(db_session, schedule.id).last_run_at == run_at
        assert crud.list_evaluations(db_session, project_id=sample_project.id)[0].evaluator_id == manager.id

        assert crud.run_due_schedules(db_session, evaluator_id=manager.id, now=run_at) == []

    def test_stale_scope_still_advances(self, db_session, manager):
        portfolio = crud.create_portfolio(db_session, schemas.PortfolioCreate(
            name="Wound down", owner_id=manager.id,
        ))
        schedule = crud.create_schedule(db_session, schemas.ScheduleCreate(
            frequency="daily", portfolio_ids=[portfolio.id],
        ), now=self.T)
        crud.delete_portfolio(db_session, portfolio.id)

        runs = crud.run_due_schedules(db_session, evaluator_id=manager.id, now=datetime(2025, 3, 5))
        assert runs[0]["evaluations"] == 0
        assert crud.get_schedule(db_session, schedule.id).next_evaluation_at == datetime(2025, 3, 6)


class TestComplianceMonitoringCRUD:
    def test_realtime_status_before_evaluation(self, db_session, sample_project, sample_standard):
        checks = crud.realtime_compliance_status(db_session, sample_project.id)
        assert len(checks) == 1
        check = checks[0]
        assert check["standard_name"] == "PMI Project Governance"
        assert check["overall_score"] == 0
        assert check["missing_criteria"] == ["Project charter"]
        assert {a["type"] for a in check["alerts"]} == {
            "non_compliant", "missing_evidence", "overdue_evaluation",
        }

    def test_realtime_status_after_evaluation(self, db_session, sample_project, sample_standard, manager):
        _submit_all(db_session, sample_project, sample_standard)
        crud.create_evaluation(db_session, schemas.EvaluationCreate(
            project_id=sample_project.id, standard_id=sample_standard.id,
            overall_score=85, evaluator_id=manager.id,
        ))
        check = crud.realtime_compliance_status(db_session, sample_project.id)[0]
        assert check["status"] == "compliant"
        assert check["missing_criteria"] == []
        assert check["alerts"] == []

    def test_portfolio_status(self, db_session, sample_project, sample_standard, sample_portfolio, manager):
        crud.create_evaluation(db_session, schemas.EvaluationCreate(
            project_id=sample_project.id, standard_id=sample_standard.id,
            overall_score=45, evaluator_id=manager.id,
        ))
        status = crud.portfolio_compliance_status(db_session, sample_portfolio.id)
        assert status["portfolio_name"] == "Digital Transformation"
        assert status["compliance_distribution"]["non_compliant"] == 1
        assert status["average_compliance_score"] == 45
        assert status["top_alerts"][0]["severity"] == "high"

    def test_missing_scope(self, db_session):
        assert crud.realtime_compliance_status(db_session, 5) is None
        assert crud.portfolio_compliance_status(db_session, 5) is None


class TestComplianceAnalyticsCRUD:
    def test_risk_correlation(self, db_session, sample_project, sample_standard, manager):
        crud.create_risk(db_session, schemas.RiskCreate(
            project_id=sample_project.id, title="Vendor lock-in", severity="high",
            probability=40, impact=70,
        ))
        crud.create_evaluation(db_session, schemas.EvaluationCreate(
            project_id=sample_project.id, standard_id=sample_standard.id,
            overall_score=70, evaluator_id=manager.id,
        ))
        result = crud.risk_compliance_correlation(db_session)
        assert result["correlation_data"][0]["risk_score"] == 60
        assert result["correlation_data"][0]["risk_severity"] == "high"
        assert result["correlation_metrics"]["total_data_points"] == 1

    def test_portfolio_comparison(self, db_session, sample_project, sample_standard, manager):
        crud.create_evaluation(db_session, schemas.EvaluationCreate(
            project_id=sample_project.id, standard_id=sample_standard.id,
            overall_score=88, evaluator_id=manager.id,
        ))
        result = crud.portfolio_comparison(db_session)
        row = result["portfolio_analytics"][0]
        assert row["portfolio_name"] == "Digital Transformation"
        assert row["average_compliance"] == 88
        assert row["budget_utilization"] == 33
        assert result["comparison_metrics"]["top_performer"] == "Digital Transformation"


class TestStandardCRUD:
    def test_weight_range(self, db_session):
        with pytest.raises(ValueError, match="Weight must be between 0 and 1"):
            crud.create_standard(db_session, schemas.StandardCreate(
                name="X", category="project", level="advanced", weight=1.5,
            ))

    def test_criterion_validation(self, db_session, sample_standard):
        with pytest.raises(ValueError, match="Max score must be positive"):
            crud.create_criterion(db_session, schemas.CriterionCreate(
                standard_id=sample_standard.id, name="X", evidence_type="text",
                scoring_method="binary", max_score=0,
            ))

    def test_active_filter(self, db_session, sample_standard):
        crud.create_standard(db_session, schemas.StandardCreate(
            name="Retired", category="project", level="advanced", is_active=False,
        ))
        assert len(crud.list_standards(db_session)) == 2
        assert [s.id for s in crud.list_standards(db_session, active_only=True)] == [sample_standard.id]

    def test_delete_cascades_criteria(self, db_session, sample_standard):
        assert crud.delete_standard(db_session, sample_standard.id) is True
        assert crud.list_criteria(db_session) == []


class TestPreferences:
    def test_defaults_when_nothing_stored(self, db_session, officer):
        prefs = crud.get_user_preferences(db_session, officer.id)
        assert prefs["is_default"] is True
        assert prefs["preferences"]["default_view"] == "project-management"

    def test_update_merges_sections(self, db_session, officer):
        prefs = crud.update_user_preferences(db_session, officer.id, schemas.PreferencesUpdate(
            theme="dark", notifications={"email": False},
        ))
        assert prefs["is_default"] is False
        assert prefs["preferences"]["theme"] == "dark"
        assert prefs["preferences"]["notifications"]["email"] is False
        assert prefs["preferences"]["notifications"]["risk_alerts"] is True

    def test_reset(self, db_session, officer):
        crud.update_user_preferences(db_session, officer.id, schemas.PreferencesUpdate(theme="dark"))
        prefs = crud.reset_user_preferences(db_session, officer.id)
        assert prefs["is_default"] is True
        assert prefs["preferences"]["theme"] == "light"

    def test_unknown_user(self, db_session):
        assert crud.get_user_preferences(db_session, 404) is None
