from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from chambita.main import create_app
from fastapi.testclient import TestClient
from pytest_bdd import given, parsers, scenario, then, when

pytestmark = pytest.mark.bdd


@scenario("features/job_posts.feature", "The owner edits a single field of a job post")
def test_owner_edits_job_post() -> None:
    pass


@scenario("features/job_posts.feature", "Another user cannot edit the job post")
def test_other_user_cannot_edit_job_post() -> None:
    pass


@scenario("features/job_posts.feature", "A job post with an unknown contract type is rejected")
def test_unknown_contract_type_is_rejected() -> None:
    pass


@pytest.fixture
def client(tmp_path: Path):
    app = create_app(
        database_path=str(tmp_path / "bdd.sqlite3"),
        jwt_secret="bdd-secret-0123456789abcdefghijkl",
    )
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def context() -> dict[str, Any]:
    return {}


def register(client: TestClient, email: str, role: str) -> dict[str, str]:
    response = client.post(
        "/api/auth/register",
        json={"name": email.split("@")[0], "email": email, "password": "secret123", "role": role},
    )
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['token']}"}


@given("a registered employer")
def given_registered_employer(client: TestClient, context: dict[str, Any]) -> None:
    context["employer"] = register(client, "employer@example.com", "employer")


@given(parsers.parse('an employer has published a job post in "{city}"'))
def given_published_post(client: TestClient, context: dict[str, Any], city: str) -> None:
    context["employer"] = register(client, "employer@example.com", "employer")
    response = client.post(
        "/api/jobs/posts",
        headers=context["employer"],
        json={
            "title": "Warehouse assistant",
            "description": "Inventory and dispatch",
            "city": city,
            "type": "fullTime",
            "modality": "onsite",
        },
    )
    assert response.status_code == 201
    context["post_id"] = response.json()["id"]
    context["original"] = client.get(f"/api/jobs/posts/{context['post_id']}").json()


@when(parsers.parse('the employer changes the city to "{city}"'), target_fixture="response")
def when_employer_changes_city(client: TestClient, context: dict[str, Any], city: str):
    return client.put(
        f"/api/jobs/posts/{context['post_id']}",
        headers=context["employer"],
        json={"city": city},
    )


@when(parsers.parse('another user changes the city to "{city}"'), target_fixture="response")
def when_other_user_changes_city(client: TestClient, context: dict[str, Any], city: str):
    intruder = register(client, "intruder@example.com", "seeker")
    return client.put(
        f"/api/jobs/posts/{context['post_id']}",
        headers=intruder,
        json={"city": city},
    )


@when(
    parsers.parse('the employer publishes a job post of type "{job_type}"'),
    target_fixture="response",
)
def when_employer_publishes_with_type(client: TestClient, context: dict[str, Any], job_type: str):
    return client.post(
        "/api/jobs/posts",
        headers=context["employer"],
        json={
            "title": "Freelance designer",
            "description": "Brand refresh",
            "city": "La Paz",
            "type": job_type,
            "modality": "remote",
        },
    )


@then("the update succeeds")
def then_update_succeeds(response) -> None:
    assert response.status_code == 200


@then("the update is forbidden")
def then_update_is_forbidden(response) -> None:
    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"


@then(parsers.parse('the job post city is "{city}"'))
def then_city_is(client: TestClient, context: dict[str, Any], city: str) -> None:
    assert client.get(f"/api/jobs/posts/{context['post_id']}").json()["city"] == city


@then("the job post title is unchanged")
def then_title_is_unchanged(client: TestClient, context: dict[str, Any]) -> None:
    current = client.get(f"/api/jobs/posts/{context['post_id']}").json()
    assert current["title"] == context["original"]["title"]


@then(parsers.parse('the request fails validation on "{field}"'))
def then_validation_fails(response, field: str) -> None:
    assert response.status_code == 400
    assert [error["field"] for error in response.json()["errors"]] == [field]


@then("no job posts are listed")
def then_no_job_posts(client: TestClient) -> None:
    assert client.get("/api/jobs/posts").json() == []
