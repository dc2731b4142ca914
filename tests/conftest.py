import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

# The service reads its settings at import time, so point it at a throwaway database first.
_TEST_DIR = tempfile.mkdtemp(prefix="taskflow-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TEST_DIR, 'test.db')}"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["LOCAL_TZ"] = "UTC"
os.environ.setdefault("SUMMARY_CACHE_POLICY", "cache_forever")


class FakeClock:
    """Manually advanced wall clock for emitter tests."""

    def __init__(self, start=None):
        self.now = start or datetime(2025, 3, 10, 9, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)


class FakeMonotonic:
    """Manually advanced monotonic clock for idle detector tests."""

    def __init__(self, start=1000.0):
        self.value = start

    def __call__(self):
        return self.value

    def advance(self, seconds):
        self.value += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def fake_monotonic():
    return FakeMonotonic()


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from backend.app.core.db import drop_db, init_db
    from backend.app.main import app

    with TestClient(app) as test_client:
        test_client.portal.call(drop_db)
        test_client.portal.call(init_db)
        yield test_client
    app.dependency_overrides.clear()


def register_and_login(client, username="alice", password="secret"):
    response = client.post("/api/v1/auth/register", json={"username": username, "password": password})
    assert response.status_code == 201, response.text
    response = client.post("/api/v1/auth/token", data={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["access_token"]


@pytest.fixture
def token(client):
    return register_and_login(client)


@pytest.fixture
def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def login(client):
    """Registers another account and returns its bearer headers."""
    def _login(username, password="secret"):
        return {"Authorization": f"Bearer {register_and_login(client, username, password)}"}
    return _login
