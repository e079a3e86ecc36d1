"""
Shared fixtures: in-memory SQLite database, API client and record factories.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from datetime import datetime
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.auth import create_access_token, hash_password
from app.database import Base, get_db
from app.main import app
from app.models.db_models import UserDB, PersonDB, WeeklyReportDB

TEST_PASSWORD = "Secret123!"


# =============================================================================
# DATABASE
# =============================================================================

@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    """TestClient whose requests use the test database."""
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# =============================================================================
# FACTORIES
# =============================================================================

@pytest.fixture
def make_user(db):
    def _make_user(username=None, role="user", password=TEST_PASSWORD):
        user = UserDB(
            id=str(uuid4()),
            username=username or f"user_{uuid4().hex[:8]}",
            password_hash=hash_password(password),
            role=role,
        )
        db.add(user)
        db.commit()
        return user
    return _make_user


@pytest.fixture
def make_person(db):
    def _make_person(owner, created_at=None, name="Jane Doe"):
        person = PersonDB(
            id=str(uuid4()),
            name=name,
            phone="5551234567",
            address="1 Main St",
            inviter="Sam",
            notes="",
            created_by=owner.id,
            created_at=created_at or datetime.utcnow(),
        )
        db.add(person)
        db.commit()
        return person
    return _make_person


@pytest.fixture
def make_report(db):
    def _make_report(person_id, reporter, week_of, contacted=True, created_at=None):
        report = WeeklyReportDB(
            id=str(uuid4()),
            person_id=person_id,
            contacted=contacted,
            response="Spoke on the phone",
            week_of=week_of,
            reported_by=reporter.id,
            created_at=created_at or datetime.utcnow(),
        )
        db.add(report)
        db.commit()
        return report
    return _make_report


@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        token = create_access_token(user.id, user.username, user.role)
        return {"Authorization": f"Bearer {token}"}
    return _auth_headers
