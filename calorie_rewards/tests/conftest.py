"""
Shared fixtures for the rewards tests.
"""
import os
import tempfile

# Must be set before calorie_rewards is imported
os.environ.setdefault("CALORIE_REWARDS_DATABASE_URL", "sqlite://")
os.environ.setdefault("CALORIE_REWARDS_LOG_DIR", tempfile.mkdtemp(prefix="calorie-rewards-logs-"))

from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from calorie_rewards import models  # noqa: F401  registers tables on Base
from calorie_rewards.database import Base


@pytest.fixture
def db_session():
    """In-memory database shared by every connection of the test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(tmp_path):
    """File-backed database for tests that use several sessions at once"""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'rewards_test.db'}",
        connect_args={"check_same_thread": False, "timeout": 30}
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def today():
    return date(2025, 10, 9)


@pytest.fixture
def yesterday(today):
    return date(2025, 10, 8)
