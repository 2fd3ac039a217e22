"""
Shared fixtures: an in-memory SQLite session, a scriptable AI provider and
an authenticated TestClient wired to both.
"""
import datetime
import os
from uuid import uuid4

# Keep the module-level engine off the filesystem.
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from journal_api.auth.service import create_token
from journal_api.core.database import Base, get_db
from journal_api.core.dependency import get_ai_service
from journal_api.journals.db import create_journal
from journal_api.journals.schemas import JournalEntryCreate
import journal_api.journals.models  # noqa: F401
import journal_api.insights.models  # noqa: F401
from tests.fakes import FakeAIService

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def user_id():
    return uuid4()


@pytest.fixture
def fake_ai():
    return FakeAIService()


@pytest.fixture
def make_entry(db, user_id):
    def _make(content="Today I finished the report and went for a long walk.", date=None, owner=None):
        body = JournalEntryCreate(content=content, date=date or datetime.date.today())
        return create_journal(db, body, owner or user_id)

    return _make


@pytest.fixture
def client(db, user_id, fake_ai):
    from main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ai_service] = lambda: fake_ai
    test_client = TestClient(app)
    test_client.headers.update({"Authorization": f"Bearer {create_token(user_id)}"})
    try:
        yield test_client
    finally:
        app.dependency_overrides.clear()
