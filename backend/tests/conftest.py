"""
Shared test fixtures and configuration.
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

# Set test environment variables before importing app modules
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOCAL_STORAGE_PATH", os.path.join(tempfile.gettempdir(), "debatesphere_test_data"))
os.environ.setdefault("LLM_PROVIDER", "mock")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("SESSION_SWEEP_INTERVAL_SECONDS", "0")

from debatesphere.config import settings  # noqa: E402
from debatesphere.llm import MockProvider  # noqa: E402
from debatesphere.main import create_app  # noqa: E402
from debatesphere.models import TopicCreate  # noqa: E402
from debatesphere.services import build_services  # noqa: E402
from debatesphere.storage import LocalStorage  # noqa: E402
from debatesphere.utils.auth import get_password_hash  # noqa: E402

START = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now

    def at(self, seconds_after_start: float) -> datetime:
        self.now = START + timedelta(seconds=seconds_after_start)
        return self.now


def topic_payload(**overrides) -> TopicCreate:
    data = {
        "title": "Taxes should be lowered for everyone",
        "description": "Whether across-the-board tax cuts improve economic outcomes.",
        "category": "economics",
        "difficulty": "medium",
        "pro_arguments": ["Lower taxes spur investment"],
        "con_arguments": ["Tax cuts widen deficits"],
    }
    data.update(overrides)
    return TopicCreate(**data)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def provider():
    return MockProvider()


@pytest.fixture
def test_settings():
    return settings.model_copy(update={
        "session_sweep_interval_seconds": 0,
        "ai_replies_enabled": True,
        "log_file_enabled": False,
    })


@pytest.fixture
def services(tmp_path, provider, clock, test_settings):
    return build_services(
        test_settings,
        storage=LocalStorage(str(tmp_path)),
        llm_provider=provider,
        clock=clock,
    )


@pytest_asyncio.fixture
async def user(services):
    return await services.users.create_user(
        user_id="user1",
        username="debater",
        hashed_password=get_password_hash("password123"),
        email="debater@example.com",
    )


@pytest_asyncio.fixture
async def other_user(services):
    return await services.users.create_user(
        user_id="user2",
        username="rival",
        hashed_password=get_password_hash("password123"),
    )


@pytest_asyncio.fixture
async def topic(services):
    return await services.topics.create(topic_payload(), created_by="admin")


@pytest_asyncio.fixture
async def session(services, user, topic):
    return await services.sessions.start(user.user_id, topic.topic_id, "pro", time_limit=1800)


# HTTP fixtures; everything async runs on the TestClient loop

TOPIC = {
    "title": "Taxes should be lowered for everyone",
    "description": "Whether across-the-board tax cuts improve economic outcomes.",
    "category": "economics",
    "pro_arguments": ["Lower taxes spur investment"],
    "con_arguments": ["Tax cuts widen deficits"],
}


@pytest.fixture
def client(test_settings, services):
    app = create_app(test_settings, services=services)
    with TestClient(app) as client:
        yield client


def register(client, username="debater", password="password123"):
    response = client.post("/api/auth/register", json={
        "username": username,
        "password": password,
        "email": f"{username}@example.com",
    })
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture
def auth_headers(client):
    token = register(client)["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def rival_headers(client):
    token = register(client, username="rival")["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def topic_id(client, auth_headers):
    response = client.post("/api/topics", json=TOPIC, headers=auth_headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]["topic"]["topic_id"]


@pytest.fixture
def session_id(client, auth_headers, topic_id):
    response = client.post(
        "/api/sessions",
        json={"topic_id": topic_id, "chosen_side": "pro", "time_limit": 1800},
        headers=auth_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]["session"]["session_id"]
