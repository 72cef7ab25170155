from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from formcraft.app import create_app
from formcraft.config import Settings


class FakeSuggestionProvider:
    name = "fake"

    def __init__(self, reply: str = "[]") -> None:
        self.reply = reply
        self.prompts: list[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.reply


def make_settings(tmp_path, backend: str = "sqlite") -> Settings:
    settings = Settings()
    settings.storage_backend = backend
    settings.sqlite_path = tmp_path / "app.db"
    settings.json_path = tmp_path / "store.json"
    settings.upload_dir = tmp_path / "uploads"
    settings.upload_max_bytes = 1024
    settings.jwt_secret = "test-secret"
    settings.ai_provider = "none"
    return settings


@pytest.fixture
def suggestion_provider() -> FakeSuggestionProvider:
    return FakeSuggestionProvider()


@pytest.fixture(params=["sqlite", "json"])
def client(request, tmp_path, suggestion_provider) -> TestClient:
    app = create_app(make_settings(tmp_path, request.param), suggestion_provider=suggestion_provider)
    with TestClient(app) as test_client:
        yield test_client


def register(client: TestClient, email: str = "owner@example.com") -> dict[str, str]:
    res = client.post(
        "/api/auth/register",
        json={"email": email, "password": "secret123", "name": "Owner"},
    )
    assert res.status_code == 201, res.text
    return {"Authorization": f"Bearer {res.json()['token']}"}


@pytest.fixture
def auth(client) -> dict[str, str]:
    return register(client)


def create_form(client: TestClient, headers: dict[str, str], **overrides: Any) -> dict[str, Any]:
    body = {
        "title": "Feedback",
        "fields": [
            {"id": "f1", "type": "text", "label": "Name", "required": True},
            {"id": "f2", "type": "select", "label": "Happy?", "options": ["Yes", "No"]},
        ],
    }
    body.update(overrides)
    res = client.post("/api/forms", json=body, headers=headers)
    assert res.status_code == 201, res.text
    return res.json()


def publish(client: TestClient, headers: dict[str, str], form_id: str) -> dict[str, Any]:
    res = client.post(f"/api/forms/{form_id}/publish", headers=headers)
    assert res.status_code == 200, res.text
    return res.json()
