"""Pytest configuration for global fixtures and logging setup."""
from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Tests never touch a real datastore or the real model API.
os.environ["DATABASE_URL"] = ""
os.environ["ANTHROPIC_API_KEY"] = ""

from mamafit.logging_config import configure_logging

configure_logging()

from mamafit.database import Base, get_db
from mamafit.main import app
from mamafit.models import database_models
from mamafit.models.schemas import Workout
from mamafit.services.catalog import WorkoutCatalog
from mamafit.services.llm_client import get_completion_client
from tests.catalog_fixtures import SAMPLE_WORKOUTS


@pytest.fixture
def sample_workouts() -> list[Workout]:
    """Six-workout catalog as engine-level models."""

    return [Workout.model_validate(entry) for entry in SAMPLE_WORKOUTS]


@pytest.fixture
def sample_catalog(sample_workouts: list[Workout]) -> WorkoutCatalog:
    return WorkoutCatalog(workouts=sample_workouts, source="database")


@pytest.fixture
def db_session() -> Iterator[Session]:
    """In-memory SQLite session seeded with the sample catalog."""

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(bind=engine, autoflush=False, future=True)
    session = TestingSession()

    base_time = datetime(2026, 1, 1, tzinfo=timezone.utc)
    for index, entry in enumerate(SAMPLE_WORKOUTS):
        session.add(database_models.Workout(**entry, created_at=base_time + timedelta(minutes=index)))
    session.commit()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture(scope="session")
def test_client() -> TestClient:
    """Provide a FastAPI test client."""

    return TestClient(app)


@pytest.fixture
def override_dependencies():
    """Install dependency overrides for one test and clear them afterwards."""

    def _install(db: Session | None, client: Any) -> None:
        app.dependency_overrides[get_db] = lambda: db
        app.dependency_overrides[get_completion_client] = lambda: client

    yield _install
    app.dependency_overrides.clear()
