"""Tests for the SQLite connection setup in backend/database.py."""

import pytest
from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from backend import database, models
from backend.database import Base


@pytest.fixture
def db_session():
    """In-memory session with the same connect pragmas as the app engine."""
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
    event.listen(engine, "connect", database._sqlite_pragmas)
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine)()
    yield session
    session.close()


class TestSqlitePragmas:
    def test_default_url_is_sqlite(self):
        assert database.IS_SQLITE is database.DATABASE_URL.startswith("sqlite")

    def test_foreign_keys_enabled(self, db_session):
        assert db_session.execute(text("PRAGMA foreign_keys")).scalar() == 1

    def test_unknown_project_rejected(self, db_session):
        db_session.add(models.Risk(
            project_id=999, title="Orphan", severity="low", status="identified",
            probability=10, impact=10,
        ))
        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_owner_delete_fails_at_database(self, db_session, sample_project, officer):
        # bypasses crud.delete_user, so only the FK stands in the way
        with pytest.raises(IntegrityError):
            db_session.execute(text("DELETE FROM users WHERE id = :id"), {"id": officer.id})
            db_session.commit()

    def test_project_delete_cascades_in_database(self, db_session, sample_project):
        db_session.add(models.Risk(
            project_id=sample_project.id, title="Vendor delay", severity="high",
            status="identified", probability=60, impact=70,
        ))
        db_session.commit()

        db_session.execute(text("DELETE FROM projects WHERE id = :id"), {"id": sample_project.id})
        db_session.commit()
        assert db_session.execute(text("SELECT COUNT(*) FROM risks")).scalar() == 0


class TestGetDb:
    def test_session_closed_after_request(self, monkeypatch):
        closed = []

        class FakeSession:
            def close(self):
                closed.append(True)

        monkeypatch.setattr(database, "SessionLocal", FakeSession)
        gen = database.get_db()
        session = next(gen)
        assert isinstance(session, FakeSession)
        with pytest.raises(StopIteration):
            next(gen)
        assert closed == [True]
