from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

pytestmark = pytest.mark.integration


def post_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "title": "Backend developer",
        "description": "Maintain the payments API",
        "city": "Santa Cruz",
        "type": "fullTime",
        "modality": "hybrid",
        "requirements": ["Python", "SQL"],
        "obligations": ["On-call one week a month"],
    }
    payload.update(overrides)
    return payload


def create_post(client: TestClient, owner: dict[str, Any], **overrides: Any) -> str:
    response = client.post(
        "/api/jobs/posts",
        headers=owner["headers"],
        json=post_payload(**overrides),
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


def test_create_and_read_job_post(client: TestClient, employer) -> None:
    response = client.post("/api/jobs/posts", headers=employer["headers"], json=post_payload())

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Job post created successfully"
    post = client.get(f"/api/jobs/posts/{body['id']}").json()
    assert post["employerId"] == employer["id"]
    assert post["requirements"] == ["Python", "SQL"]
    assert post["obligations"] == ["On-call one week a month"]
    assert post["createdAt"] == post["updatedAt"]


def test_employer_id_in_body_is_ignored(client: TestClient, employer, other_user) -> None:
    post_id = create_post(client, employer, employerId=other_user["id"])

    assert client.get(f"/api/jobs/posts/{post_id}").json()["employerId"] == employer["id"]


def test_invalid_type_is_rejected_without_creating_a_row(client: TestClient, employer) -> None:
    response = client.post(
        "/api/jobs/posts",
        headers=employer["headers"],
        json=post_payload(type="contractor"),
    )

    assert response.status_code == 400
    assert [error["field"] for error in response.json()["errors"]] == ["type"]
    assert client.get("/api/jobs/posts").json() == []


def test_create_requires_authentication(client: TestClient) -> None:
    response = client.post("/api/jobs/posts", json=post_payload())

    assert response.status_code == 401


def test_non_owner_cannot_modify_and_row_is_unchanged(
    client: TestClient,
    employer,
    other_user,
) -> None:
    post_id = create_post(client, employer)
    before = client.get(f"/api/jobs/posts/{post_id}").json()

    update = client.put(
        f"/api/jobs/posts/{post_id}",
        headers=other_user["headers"],
        json={"title": "Hijacked"},
    )
    delete = client.delete(f"/api/jobs/posts/{post_id}", headers=other_user["headers"])

    assert update.status_code == 403
    assert update.json() == {
        "error": "You do not have permission to modify this resource",
        "code": "FORBIDDEN",
    }
    assert delete.status_code == 403
    assert client.get(f"/api/jobs/posts/{post_id}").json() == before


def test_owner_partial_update_touches_only_given_columns(client: TestClient, employer) -> None:
    post_id = create_post(client, employer)
    before = client.get(f"/api/jobs/posts/{post_id}").json()

    response = client.put(
        f"/api/jobs/posts/{post_id}",
        headers=employer["headers"],
        json={"modality": "remote", "requirements": ["Go"]},
    )

    assert response.status_code == 200
    after = client.get(f"/api/jobs/posts/{post_id}").json()
    assert after["modality"] == "remote"
    assert after["requirements"] == ["Go"]
    for key in ("title", "description", "city", "type", "obligations", "employerId", "createdAt"):
        assert after[key] == before[key]


def test_owner_update_validation(client: TestClient, employer) -> None:
    post_id = create_post(client, employer)

    bad_enum = client.put(
        f"/api/jobs/posts/{post_id}",
        headers=employer["headers"],
        json={"type": "contractor"},
    )
    null_title = client.put(
        f"/api/jobs/posts/{post_id}",
        headers=employer["headers"],
        json={"title": None},
    )
    nothing = client.put(f"/api/jobs/posts/{post_id}", headers=employer["headers"], json={})

    assert bad_enum.status_code == 400
    assert null_title.status_code == 400
    assert nothing.status_code == 400
    assert nothing.json()["code"] == "NO_FIELDS_TO_UPDATE"


def test_missing_post_is_not_found_for_every_operation(client: TestClient, employer) -> None:
    get = client.get("/api/jobs/posts/missing")
    update = client.put("/api/jobs/posts/missing", headers=employer["headers"], json={"title": "x"})
    delete = client.delete("/api/jobs/posts/missing", headers=employer["headers"])

    assert get.status_code == 404
    assert update.status_code == 404
    assert delete.status_code == 404


def test_owner_can_delete(client: TestClient, employer) -> None:
    post_id = create_post(client, employer)

    response = client.delete(f"/api/jobs/posts/{post_id}", headers=employer["headers"])

    assert response.status_code == 200
    assert client.get(f"/api/jobs/posts/{post_id}").status_code == 404


def test_list_filters_and_newest_first(client: TestClient, employer, register_user) -> None:
    second_employer = register_user("second@example.com", name="Segundo")
    first_id = create_post(client, employer, city="La Paz", type="partTime")
    second_id = create_post(client, employer, city="Santa Cruz", modality="remote")
    third_id = create_post(client, second_employer, city="La Paz")

    everything = client.get("/api/jobs/posts").json()
    in_la_paz = client.get("/api/jobs/posts", params={"city": "La Paz"}).json()
    part_time = client.get("/api/jobs/posts", params={"type": "partTime"}).json()
    remote = client.get("/api/jobs/posts", params={"modality": "remote"}).json()
    mine = client.get("/api/jobs/posts", params={"employerId": employer["id"]}).json()

    assert [post["id"] for post in everything] == [third_id, second_id, first_id]
    assert {post["id"] for post in in_la_paz} == {first_id, third_id}
    assert [post["id"] for post in part_time] == [first_id]
    assert [post["id"] for post in remote] == [second_id]
    assert {post["id"] for post in mine} == {first_id, second_id}
