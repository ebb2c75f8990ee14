"""
Pytest configuration and fixtures for testing.
"""
import os
import sys
from datetime import timedelta
from pathlib import Path
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add parent directory to path
TESTS_DIR = Path(__file__).resolve().parent
PROJECT_DIR = TESTS_DIR.parent
sys.path.insert(0, str(PROJECT_DIR))

# Settings are read once at import time, so configure the environment first
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from fastapi.testclient import TestClient

from bugtracker.models.db_models import Base, Bug, utcnow
from bugtracker.models.schemas import BugCreate
from bugtracker.services.bug_repository import BugRepository


@pytest.fixture(scope="function")
def test_db():
    """
    Create a temporary in-memory database for testing.
    Each test gets a fresh database.
    """
    # Single shared connection so the TestClient threads see the same database
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    Base.metadata.create_all(engine)

    # Create session factory
    TestSessionLocal = sessionmaker(bind=engine, autoflush=False)

    # Create session
    session = TestSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture(scope="function")
def client(test_db):
    """
    TestClient whose requests use the test database.

    The app lifespan (init_db against the configured engine) is not run.
    """
    from bugtracker.main import app
    from bugtracker.database import get_db

    def get_test_db():
        try:
            yield test_db
        finally:
            pass  # Don't close test_db here, the test_db fixture handles it

    app.dependency_overrides[get_db] = get_test_db
    yield TestClient(app)
    # Cleanup: Remove override after test
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def repo(test_db):
    """Repository bound to the test database."""
    return BugRepository(test_db)


@pytest.fixture(scope="function")
def make_bug(repo, test_db):
    """
    Factory creating bugs through the repository.

    Keyword arguments override the sample fields; ``days_old`` backdates
    created_at (and updated_at) by that many days.
    """
    counter = {"n": 0}

    def _make_bug(days_old=None, **fields):
        counter["n"] += 1
        candidate = {
            "title": f"Sample bug {counter['n']}",
            "description": "Something does not work",
            "reporter": "alice",
        }
        candidate.update(fields)
        bug = repo.create(BugCreate(**candidate))

        if days_old is not None:
            bug.created_at = utcnow() - timedelta(days=days_old)
            bug.updated_at = bug.created_at
            test_db.commit()
            test_db.refresh(bug)
        return bug

    return _make_bug


@pytest.fixture(scope="function")
def sample_bug(make_bug) -> Bug:
    """A single bug with every optional field filled in."""
    return make_bug(
        title="Login button unresponsive",
        description="Clicking login on the landing page does nothing",
        priority="high",
        severity="critical",
        assignedTo="bob",
        stepsToReproduce="Open the landing page and click login",
        expectedBehavior="The login form opens",
        actualBehavior="Nothing happens",
        environment="Firefox 128 on Linux",
        tags=["ui", "login"],
    )
