# tests/conftest.py

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.db.config import get_session
from app.db.init import init_db
from app.main import app as fastapi_app
from app.services.task_service import TaskService


@pytest.fixture()
def engine():
    """
    In-memory SQLite shared by every connection of a test.

    StaticPool keeps the single connection alive so the tables created here
    are visible to the sessions opened by the request handlers.
    """
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(test_engine)
    yield test_engine
    SQLModel.metadata.drop_all(test_engine)
    test_engine.dispose()


@pytest.fixture()
def session(engine):
    with Session(engine) as db_session:
        yield db_session


@pytest.fixture()
def service(session) -> TaskService:
    return TaskService(session)


@pytest.fixture()
def client(engine):
    def override_get_session():
        with Session(engine) as db_session:
            yield db_session

    fastapi_app.dependency_overrides[get_session] = override_get_session
    # No context manager: the startup hook would create tables in the configured database
    yield TestClient(fastapi_app)
    fastapi_app.dependency_overrides.clear()


@pytest.fixture()
def new_year() -> date:
    return date(2025, 1, 1)
