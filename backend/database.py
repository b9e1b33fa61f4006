"""
GovDash storage setup: engine, request sessions and the declarative Base.

The default store is backend/govdash.db. DATABASE_URL overrides it (any
SQLAlchemy URL); SQLALCHEMY_ECHO=true logs every statement.

SQLite connections get two pragmas:
    foreign_keys=ON   makes the ForeignKey columns in models.py binding.
                      ON DELETE CASCADE on milestones, tags, risks, evidence
                      and evaluations depends on it, and a delete that
                      slips past the ownership guards in crud.delete_user
                      fails with IntegrityError, which the users router
                      turns into 409 USER_IN_USE.
    journal_mode=WAL  lets dashboard GETs read while a write is committing.
"""

import os
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, DeclarativeBase

DATABASE_URL = os.environ.get(
    "DATABASE_URL",
    f"sqlite:///{Path(__file__).parent / 'govdash.db'}",
)
IS_SQLITE = DATABASE_URL.startswith("sqlite")

engine = create_engine(
    DATABASE_URL,
    # uvicorn serves requests from a thread pool
    connect_args={"check_same_thread": False} if IS_SQLITE else {},
    pool_pre_ping=True,
    echo=os.environ.get("SQLALCHEMY_ECHO", "false").lower() == "true",
)

if IS_SQLITE:
    @event.listens_for(engine, "connect")
    def _sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()


# crud commits explicitly, so neither autocommit nor autoflush
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def get_db():
    """Request-scoped session; tests swap this out via app.dependency_overrides."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create any missing tables. Run at API startup and before seeding."""
    from . import models  # noqa: F401  registers the tables on Base.metadata
    Base.metadata.create_all(bind=engine)
