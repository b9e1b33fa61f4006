"""Seed the database with sample users, portfolios, projects, risks and PMI standards."""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import datetime

from backend.database import init_db, SessionLocal
from backend import crud, schemas

USERS = [
    {"name": "Margaret Chen", "email": "m.chen@agency.gov", "role": "executive",
     "department": "Office of the Secretary"},
    {"name": "David Okafor", "email": "d.okafor@agency.gov", "role": "portfolio_manager",
     "department": "Digital Services"},
    {"name": "Priya Raman", "email": "p.raman@agency.gov", "role": "portfolio_manager",
     "department": "Infrastructure"},
    {"name": "Tom Alvarez", "email": "t.alvarez@agency.gov", "role": "project_officer",
     "department": "Digital Services"},
    {"name": "Sara Lindqvist", "email": "s.lindqvist@agency.gov", "role": "project_officer",
     "department": "Infrastructure"},
]

PORTFOLIOS = [
    {"name": "Digital Transformation", "owner": "d.okafor@agency.gov",
     "description": "Citizen-facing services and back-office modernisation",
     "total_budget": 12_000_000, "allocated_budget": 9_500_000,
     "resource_allocation": {"team_members": 42, "budget_utilization": 79.2, "project_count": 3}},
    {"name": "Public Infrastructure", "owner": "p.raman@agency.gov",
     "description": "Transport, utilities and facilities upgrades",
     "total_budget": 30_000_000, "allocated_budget": 21_000_000,
     "resource_allocation": {"team_members": 65, "budget_utilization": 70.0, "project_count": 2}},
]

PROJECTS = [
    {"name": "Benefits Portal Rebuild", "portfolio": "Digital Transformation",
     "owner": "t.alvarez@agency.gov", "status": "active", "budget": 4_000_000,
     "spent_budget": 1_800_000, "health_score": 82, "risk_level": "medium",
     "start": datetime(2025, 1, 6), "end": datetime(2026, 6, 30),
     "milestones": [("Discovery complete", datetime(2025, 3, 31), "completed"),
                    ("Beta launch", datetime(2025, 11, 15), "pending")],
     "tags": ["citizen-services", "cloud"]},
    {"name": "Records Digitisation", "portfolio": "Digital Transformation",
     "owner": "t.alvarez@agency.gov", "status": "at-risk", "budget": 2_500_000,
     "spent_budget": 2_100_000, "health_score": 58, "risk_level": "high",
     "start": datetime(2024, 9, 2), "end": datetime(2025, 12, 19),
     "milestones": [("Scanning vendor onboarded", datetime(2024, 11, 1), "completed")],
     "tags": ["archives"]},
    {"name": "Identity Verification Service", "portfolio": "Digital Transformation",
     "owner": "t.alvarez@agency.gov", "status": "planned", "budget": 3_000_000,
     "spent_budget": 0, "health_score": 95, "risk_level": "low",
     "start": datetime(2025, 7, 1), "end": datetime(2026, 12, 18),
     "milestones": [], "tags": ["security", "cloud"]},
    {"name": "Bridge Sensor Network", "portfolio": "Public Infrastructure",
     "owner": "s.lindqvist@agency.gov", "status": "delayed", "budget": 12_000_000,
     "spent_budget": 7_400_000, "health_score": 64, "risk_level": "high",
     "start": datetime(2024, 4, 1), "end": datetime(2026, 3, 31),
     "milestones": [("Pilot spans instrumented", datetime(2024, 12, 20), "completed"),
                    ("Network rollout", datetime(2025, 10, 31), "pending")],
     "tags": ["iot", "safety"]},
    {"name": "Depot Solar Retrofit", "portfolio": "Public Infrastructure",
     "owner": "s.lindqvist@agency.gov", "status": "completed", "budget": 9_000_000,
     "spent_budget": 8_700_000, "health_score": 91, "risk_level": "low",
     "start": datetime(2023, 5, 1), "end": datetime(2025, 2, 28),
     "milestones": [("Commissioning", datetime(2025, 2, 14), "completed")],
     "tags": ["energy"]},
]

RISKS = [
    ("Benefits Portal Rebuild", "Legacy API deprecation", "high", "monitored", 60, 70,
     "Negotiate extended support window with vendor"),
    ("Benefits Portal Rebuild", "Accessibility audit findings", "medium", "identified", 40, 45, None),
    ("Records Digitisation", "Scanning backlog", "critical", "identified", 85, 80,
     "Add second shift and temporary staff"),
    ("Records Digitisation", "Storage cost overrun", "medium", "mitigated", 30, 50,
     "Tiered storage contract"),
    ("Bridge Sensor Network", "Supply chain delays for sensors", "high", "monitored", 70, 65,
     "Dual-source sensor procurement"),
    ("Bridge Sensor Network", "Data link reliability", "low", "resolved", 15, 20, None),
    ("Identity Verification Service", "Privacy impact assessment pending", "medium",
     "identified", 50, 40, None),
]

STANDARDS = [
    {"name": "PMI Project Governance", "category": "project", "level": "foundational",
     "weight": 1.0, "description": "Baseline governance expectations for every project",
     "criteria": [
         {"name": "Project charter", "evidence_type": "document", "scoring_method": "binary",
          "max_score": 10, "is_mandatory": True, "requirement": "Signed charter on file"},
         {"name": "Risk register maintained", "evidence_type": "link", "scoring_method": "partial",
          "max_score": 10, "is_mandatory": False, "requirement": "Register reviewed monthly"},
         {"name": "Stakeholder engagement plan", "evidence_type": "text", "scoring_method": "scale",
          "max_score": 5, "is_mandatory": False, "requirement": "Plan covers all key groups"},
     ]},
    {"name": "PMI Portfolio Management", "category": "portfolio", "level": "intermediate",
     "weight": 0.9, "description": "Portfolio-level prioritisation and benefits tracking",
     "criteria": [
         {"name": "Benefits realisation report", "evidence_type": "document",
          "scoring_method": "partial", "max_score": 10, "is_mandatory": True},
         {"name": "Prioritisation framework", "evidence_type": "text", "scoring_method": "binary",
          "max_score": 5, "is_mandatory": False},
     ]},
]


def seed():
    init_db()
    db = SessionLocal()

    # Check if already seeded
    if crud.list_users(db):
        print("Database already seeded. Skipping.")
        db.close()
        return

    print("Seeding database...")

    users = {}
    for user_data in USERS:
        user = crud.create_user(db, schemas.UserCreate(**user_data))
        users[user.email] = user
        print(f"  Created user: {user.name} ({user.role}, ID={user.id})")

    portfolios = {}
    for data in PORTFOLIOS:
        data = dict(data)
        owner = users[data.pop("owner")]
        portfolio = crud.create_portfolio(db, schemas.PortfolioCreate(owner_id=owner.id, **data))
        portfolios[portfolio.name] = portfolio
        print(f"  Created portfolio: {portfolio.name} (ID={portfolio.id})")

    projects = {}
    for data in PROJECTS:
        project = crud.create_project(db, schemas.ProjectCreate(
            name=data["name"],
            status=data["status"],
            budget=data["budget"],
            spent_budget=data["spent_budget"],
            start_date=data["start"],
            end_date=data["end"],
            milestones=[
                schemas.MilestoneSchema(name=name, date=date, status=status)
                for name, date, status in data["milestones"]
            ],
            portfolio_id=portfolios[data["portfolio"]].id,
            owner_id=users[data["owner"]].id,
            team_members=[users[data["owner"]].id],
            health_score=data["health_score"],
            risk_level=data["risk_level"],
            tags=data["tags"],
        ))
        projects[project.name] = project
        print(f"    Project: {project.name} (ID={project.id})")

    for project_name, title, severity, status, probability, impact, plan in RISKS:
        crud.create_risk(db, schemas.RiskCreate(
            project_id=projects[project_name].id,
            title=title,
            severity=severity,
            status=status,
            probability=probability,
            impact=impact,
            mitigation_plan=plan,
        ))
    print(f"  Created {len(RISKS)} risks")

    reviewer = users["d.okafor@agency.gov"]
    governance = None
    for data in STANDARDS:
        data = dict(data)
        criteria = data.pop("criteria")
        standard = crud.create_standard(db, schemas.StandardCreate(**data))
        for order, criterion in enumerate(criteria, start=1):
            crud.create_criterion(db, schemas.CriterionCreate(
                standard_id=standard.id, order=order, **criterion
            ))
        if governance is None:
            governance = standard
        print(f"  Created standard: {standard.name} ({len(criteria)} criteria)")

    # Evidence against the governance standard, then evaluate every project
    charter, register, engagement = crud.list_criteria(db, standard_id=governance.id)
    for project in projects.values():
        record = crud.submit_evidence(db, schemas.EvidenceSubmit(
            project_id=project.id, standard_id=governance.id, criterion_id=charter.id,
            evidence_url=f"https://docs.agency.gov/charters/{project.id}.pdf",
        ))
        if project.status in ("active", "completed"):
            crud.update_compliance_status(db, record.id, schemas.ComplianceStatusUpdate(
                status="approved", reviewer_id=reviewer.id,
            ))
        if project.health_score >= 60:
            crud.submit_evidence(db, schemas.EvidenceSubmit(
                project_id=project.id, standard_id=governance.id, criterion_id=register.id,
                evidence_url=f"https://risk.agency.gov/registers/{project.id}",
            ))
        if project.health_score >= 80:
            crud.submit_evidence(db, schemas.EvidenceSubmit(
                project_id=project.id, standard_id=governance.id, criterion_id=engagement.id,
                evidence="Quarterly briefings with unions, councils and service users",
            ))

    results = crud.batch_evaluate(db, schemas.BatchEvaluateRequest(
        project_ids=[p.id for p in projects.values()],
        standard_id=governance.id,
        evaluator_id=reviewer.id,
    ))
    for result in results:
        print(f"    Project {result['project_id']}: {result['overall_score']} ({result['status']})")

    for portfolio in portfolios.values():
        recomputed = crud.recompute_portfolio_health(db, portfolio.id)
        print(f"  {portfolio.name} health score: {recomputed['health_score']}")

    db.close()
    print("\nSeeding complete!")


if __name__ == "__main__":
    seed()
