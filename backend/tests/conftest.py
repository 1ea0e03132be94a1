import os
from pathlib import Path

# Must be set before travel_app.database builds its engine
os.environ.setdefault("PYTEST_RUN", "1")

from dotenv import load_dotenv
from unittest.mock import AsyncMock
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Load environment variables for tests
load_dotenv(Path(__file__).resolve().parents[1] / '.env.test')

from travel_app import database  # noqa: E402
from travel_app.main import app  # noqa: E402
from travel_app.api.dependencies import get_db  # noqa: E402
from travel_app.models.base import BaseModel  # noqa: E402
from travel_app.services.midtrans import get_payment_gateway  # noqa: E402

from factories import FakeGateway  # noqa: E402


# Patch notifications broadcast for all tests
@pytest.fixture(autouse=True)
def patch_notifications_broadcast(monkeypatch):
    """Replace NotificationsManager.broadcast with an AsyncMock."""
    mock = AsyncMock()
    monkeypatch.setattr(
        "travel_app.utils.notifications.notifications_manager.broadcast",
        mock,
    )
    return mock


@pytest.fixture
def Session(monkeypatch):
    """Fresh in-memory database shared by the app, WebSocket handlers and the test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    BaseModel.metadata.create_all(engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_db
    # get_db_session() (used by the WebSocket handler) reads SessionLocal at call time
    monkeypatch.setattr(database, "SessionLocal", TestingSession)
    yield TestingSession
    app.dependency_overrides.clear()
    engine.dispose()


@pytest.fixture
def db(Session):
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def gateway():
    fake = FakeGateway()
    app.dependency_overrides[get_payment_gateway] = lambda: fake
    return fake
