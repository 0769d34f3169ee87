import pytest
import os
from pathlib import Path
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
ADMIN_TOKEN = "test-admin-token"
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ADMIN_TOKEN"] = ADMIN_TOKEN
os.environ["PUBLIC_DIR"] = str(Path(__file__).resolve().parent.parent / "public")

from peer_feedback.database import Base, get_db, init_db
from peer_feedback.main import app
from peer_feedback.schemas.feedback import FeedbackSubmission
from peer_feedback.services.feedback_service import FeedbackService
from peer_feedback.services.roster import get_roster
from fastapi.testclient import TestClient

CLIENT_TIMESTAMP = "2026-10-19T09:30:00.000Z"


@pytest.fixture(scope="function")
def engine():
    """A fresh in-memory database per test."""
    eng = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture(scope="function")
def db_session(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def roster():
    return get_roster()


@pytest.fixture
def evaluator(roster):
    return roster.find_by_number(1)


@pytest.fixture
def make_payload(roster):
    """Build a valid submission body for an employee; tweak it with overrides."""
    def _make_payload(employee, default=5, overrides=None, reasons=None, name=None):
        ratings = {str(emp_id): default for emp_id in roster.others(employee.id)}
        ratings.update(overrides or {})
        return {
            "evaluator": {
                "id": employee.id,
                "name": name if name is not None else employee.name,
                "number": employee.number,
            },
            "ratings": ratings,
            "reasons": reasons or {},
            "timestamp": CLIENT_TIMESTAMP,
        }
    return _make_payload


@pytest.fixture
def feedback_service(db_session, roster):
    return FeedbackService(db_session, roster)


@pytest.fixture
def submit(feedback_service):
    """Run a payload through the service layer."""
    def _submit(payload):
        return feedback_service.submit(FeedbackSubmission.model_validate(payload))
    return _submit


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}


@pytest.fixture(scope="function")
def client(db_session):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
