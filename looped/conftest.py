# looped/conftest.py
import os
import sys
from pathlib import Path

import pytest

# Add project root to PYTHONPATH
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Tests never need production config; in-memory SQLite unless told otherwise
os.environ.setdefault("SKIP_ENV_VALIDATION", "1")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite://")


@pytest.fixture(scope="session", autouse=True)
def engine():
    """Bind the engine once per session to TEST_DATABASE_URL."""
    from looped.core.database import init_engine

    return init_engine(os.environ["TEST_DATABASE_URL"])


@pytest.fixture(scope="function", autouse=True)
def reset_db(engine, monkeypatch):
    """
    Recreate all tables before each test and pin auth to header mode.

    Every test starts with an empty store, no catalog, and the X-User-Id
    fallback enabled regardless of any local .env.
    """
    from looped.core.config import settings
    from looped.core.database import reset_database

    monkeypatch.setattr(settings, "AUTH_JWT_SECRET", None)
    monkeypatch.setattr(settings, "DEFAULT_TIMEZONE", "UTC")
    reset_database()
    yield


@pytest.fixture
def seeded():
    """Seed the built-in catalog."""
    from looped.features.challenges.catalog import seed_catalog

    seed_catalog()


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from looped.main import app

    app.state.rate_limiter.reset()
    return TestClient(app)


@pytest.fixture
def user_headers():
    return {"X-User-Id": "user-a"}


@pytest.fixture
def fake_groq(monkeypatch):
    """Route the trainer singleton through a scripted Groq-shaped client."""
    from looped.features.trainer.client import TrainerClient
    from looped.features.trainer.service import trainer_service
    from looped.tests.mocks import FakeGroq

    fake = FakeGroq()
    monkeypatch.setattr(trainer_service, "client", TrainerClient(api_key="test-key", client_factory=fake))
    return fake
