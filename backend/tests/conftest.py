import os

# db.session refuses to import without a URL; the real engine is swapped out below
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storereports.api.dependencies import SESSIONS, get_db
from storereports.db import models  # noqa: F401
from storereports.db.base import Base
from storereports.engine.authoring import QuestionDraft, TemplateDraft
from storereports.main import app
from storereports.services import stores as store_directory
from storereports.services import templates as template_directory

USER = "user-1"


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    SESSIONS.clear()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    SESSIONS.clear()


def daily_sales_draft() -> TemplateDraft:
    return TemplateDraft(
        title="Daily Sales",
        description="End of day figures",
        questions=[
            QuestionDraft(text="Total sales?", type="number", required=True),
            QuestionDraft(text="Comments", type="text", required=False),
        ],
    )


def service_draft() -> TemplateDraft:
    return TemplateDraft(
        title="Service Check",
        description="Weekly service quality",
        questions=[
            QuestionDraft(text="Overall service", type="choice", required=True, options=["Good", "Excellent", "Poor"]),
            QuestionDraft(text="Customer mood", type="choice", required=False, options=["Good", "Excellent", "Poor"]),
        ],
    )


@pytest.fixture
def daily_sales(db):
    return template_directory.create_template(db, daily_sales_draft(), USER)


@pytest.fixture
def service_template(db):
    return template_directory.create_template(db, service_draft(), USER)


@pytest.fixture
def store(db):
    return store_directory.create_store(db, {"name": "Westfield Mall", "location": "Sydney", "manager": "Ana"}, USER)
