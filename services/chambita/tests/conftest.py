from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from chambita.main import create_app
from fastapi.testclient import TestClient

TEST_SECRET = "chambita-test-signing-secret-0123456789"


@pytest.fixture
def jwt_secret() -> str:
    return TEST_SECRET


@pytest.fixture
def client(tmp_path: Path):
    app = create_app(
        database_path=str(tmp_path / "chambita.sqlite3"),
        jwt_secret=TEST_SECRET,
        openai_api_key="sk-test",
        openai_base_url="https://ai.example.test/v1",
        environment="production",
    )
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register_user(client: TestClient) -> Callable[..., dict[str, Any]]:
    """Register a user and return ``{"id", "token", "headers", "user"}``."""

    def _register(
        email: str,
        *,
        name: str = "Ana Flores",
        role: str = "employer",
        password: str = "secret123",
        **extra: Any,
    ) -> dict[str, Any]:
        response = client.post(
            "/api/auth/register",
            json={"name": name, "email": email, "password": password, "role": role, **extra},
        )
        assert response.status_code == 201, response.text
        body = response.json()
        return {
            "id": body["user"]["id"],
            "token": body["token"],
            "headers": {"Authorization": f"Bearer {body['token']}"},
            "user": body["user"],
        }

    return _register


@pytest.fixture
def employer(register_user) -> dict[str, Any]:
    return register_user("owner@example.com", name="Olga Owner")


@pytest.fixture
def other_user(register_user) -> dict[str, Any]:
    return register_user("intruder@example.com", name="Ivan Intruder", role="seeker")
