"""Shared test fixtures for GovDash."""

import sys
import os
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Add repo root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from backend.database import Base
from backend import models


@pytest.fixture
def db_session():
    """Create an in-memory SQLite database session for testing."""
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine)
    session = Session()
    yield session
    session.close()


def _add(db_session, record):
    db_session.add(record)
    db_session.commit()
    db_session.refresh(record)
    return record


@pytest.fixture
def executive(db_session):
    return _add(db_session, models.User(
        name="Margaret Chen", email="exec@agency.gov", role="executive", department="Office"
    ))


@pytest.fixture
def manager(db_session):
    return _add(db_session, models.User(
        name="David Okafor", email="pm@agency.gov", role="portfolio_manager", department="Digital"
    ))


@pytest.fixture
def officer(db_session):
    return _add(db_session, models.User(
        name="Tom Alvarez", email="po@agency.gov", role="project_officer", department="Digital"
    ))


@pytest.fixture
def sample_portfolio(db_session, manager):
    return _add(db_session, models.Portfolio(
        name="Digital Transformation",
        description="Citizen services",
        owner_id=manager.id,
        total_budget=1_000_000,
        allocated_budget=600_000,
    ))


@pytest.fixture
def sample_project(db_session, sample_portfolio, officer):
    return _add(db_session, models.Project(
        name="Benefits Portal",
        status="active",
        budget=300_000,
        spent_budget=100_000,
        start_date=datetime(2025, 1, 1),
        end_date=datetime(2025, 12, 31),
        portfolio_id=sample_portfolio.id,
        owner_id=officer.id,
        health_score=80,
        risk_level="medium",
    ))


@pytest.fixture
def sample_standard(db_session):
    """Standard with three criteria: binary (mandatory), partial, scale."""
    standard = models.PMIStandard(
        name="PMI Project Governance", category="project", level="foundational", weight=1.0,
    )
    standard.criteria = [
        models.PMIStandardCriterion(
            name="Project charter", evidence_type="document", scoring_method="binary",
            max_score=10, is_mandatory=True, order=1,
        ),
        models.PMIStandardCriterion(
            name="Risk register", evidence_type="link", scoring_method="partial",
            max_score=10, is_mandatory=False, order=2,
        ),
        models.PMIStandardCriterion(
            name="Engagement plan", evidence_type="text", scoring_method="scale",
            max_score=5, is_mandatory=False, order=3,
        ),
    ]
    return _add(db_session, standard)
