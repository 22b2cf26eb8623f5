from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

pytestmark = pytest.mark.integration


def test_partial_update_changes_only_supplied_fields(client: TestClient, register_user) -> None:
    user = register_user("partial@example.com", name="Pablo", role="seeker", city="Sucre")
    before = client.get(f"/api/users/{user['id']}").json()

    response = client.put(
        f"/api/users/{user['id']}",
        headers=user["headers"],
        json={"career": "Civil engineering", "skills": ["AutoCAD", "Revit"]},
    )

    assert response.status_code == 200
    assert response.json() == {"message": "User updated successfully"}
    after = client.get(f"/api/users/{user['id']}").json()
    assert after["career"] == "Civil engineering"
    assert after["skills"] == ["AutoCAD", "Revit"]
    assert after["updatedAt"] >= before["updatedAt"]
    touched = {"career", "skills", "updatedAt"}
    assert {key: value for key, value in after.items() if key not in touched} == {
        key: value for key, value in before.items() if key not in touched
    }


def test_present_null_clears_a_nullable_field(client: TestClient, register_user) -> None:
    user = register_user("clear@example.com", city="Tarija")

    response = client.put(f"/api/users/{user['id']}", headers=user["headers"], json={"city": None})

    assert response.status_code == 200
    assert client.get(f"/api/users/{user['id']}").json()["city"] is None


def test_null_on_required_field_is_a_validation_error(client: TestClient, register_user) -> None:
    user = register_user("nullname@example.com")

    response = client.put(f"/api/users/{user['id']}", headers=user["headers"], json={"name": None})

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "name"


def test_update_without_known_fields_is_rejected(client: TestClient, register_user) -> None:
    user = register_user("nofields@example.com")

    empty = client.put(f"/api/users/{user['id']}", headers=user["headers"], json={})
    unknown = client.put(
        f"/api/users/{user['id']}",
        headers=user["headers"],
        json={"role": "employer", "email": "x@example.com", "rating": 5},
    )

    assert empty.status_code == 400
    assert empty.json()["code"] == "NO_FIELDS_TO_UPDATE"
    assert unknown.status_code == 400
    assert unknown.json()["code"] == "NO_FIELDS_TO_UPDATE"
    profile = client.get(f"/api/users/{user['id']}").json()
    assert profile["role"] == "employer"
    assert profile["email"] == "nofields@example.com"
    assert profile["rating"] is None


def test_users_can_only_modify_themselves(client: TestClient, employer, other_user) -> None:
    update = client.put(
        f"/api/users/{employer['id']}",
        headers=other_user["headers"],
        json={"summary": "hijacked"},
    )
    delete = client.delete(f"/api/users/{employer['id']}", headers=other_user["headers"])

    assert update.status_code == 403
    assert update.json()["code"] == "FORBIDDEN"
    assert delete.status_code == 403
    assert client.get(f"/api/users/{employer['id']}").json()["summary"] is None


def test_delete_own_profile(client: TestClient, register_user) -> None:
    user = register_user("leaving@example.com")

    response = client.delete(f"/api/users/{user['id']}", headers=user["headers"])

    assert response.status_code == 200
    assert client.get(f"/api/users/{user['id']}").status_code == 404


def test_review_aggregation_is_the_mean_of_all_ratings(
    client: TestClient,
    employer,
    other_user,
    register_user,
) -> None:
    third = register_user("third@example.com", name="Teo Third", role="serviceSeeker")

    first = client.post(
        f"/api/users/{employer['id']}/reviews",
        headers=other_user["headers"],
        json={"comment": "Paid on time", "rating": 4},
    )
    second = client.post(
        f"/api/users/{employer['id']}/reviews",
        headers=third["headers"],
        json={"comment": "Great team", "rating": 5},
    )

    assert first.status_code == 200
    assert first.json()["avgRating"] == 4
    assert second.status_code == 200
    assert second.json() == {"message": "Review added successfully", "avgRating": 4.5}
    profile = client.get(f"/api/users/{employer['id']}").json()
    assert profile["rating"] == 4.5
    assert [review["author"] for review in profile["reviews"]] == ["Ivan Intruder", "Teo Third"]
    assert [review["rating"] for review in profile["reviews"]] == [4, 5]


def test_review_validation_and_missing_target(client: TestClient, employer, other_user) -> None:
    out_of_range = client.post(
        f"/api/users/{employer['id']}/reviews",
        headers=other_user["headers"],
        json={"comment": "Too good", "rating": 6},
    )
    missing = client.post(
        "/api/users/does-not-exist/reviews",
        headers=other_user["headers"],
        json={"comment": "Who?", "rating": 3},
    )
    not_a_number = client.post(
        f"/api/users/{employer['id']}/reviews",
        headers={**other_user["headers"], "Content-Type": "application/json"},
        content='{"comment": "Odd", "rating": NaN}',
    )

    assert out_of_range.status_code == 400
    assert out_of_range.json()["errors"][0]["field"] == "rating"
    assert not_a_number.status_code == 400
    assert client.get(f"/api/users/{employer['id']}").json()["reviews"] == []
    assert missing.status_code == 404


def test_list_users_filters(client: TestClient, register_user) -> None:
    public = register_user("public@example.com", name="Paz", role="seeker", city="La Paz")
    hidden = register_user("hidden@example.com", name="Oculto", role="seeker", city="La Paz")
    register_user("boss@example.com", name="Jefe", role="employer", city="Cochabamba")
    client.put(
        f"/api/users/{hidden['id']}",
        headers=hidden["headers"],
        json={"isProfilePublic": False},
    )
    client.put(f"/api/users/{public['id']}", headers=public["headers"], json={"career": "Nursing"})

    seekers = client.get("/api/users", params={"role": "seeker"}).json()
    private = client.get("/api/users", params={"isProfilePublic": "false"}).json()
    by_city = client.get("/api/users", params={"city": "Cochabamba"}).json()
    by_search = client.get("/api/users", params={"search": "nurs"}).json()

    assert {user["email"] for user in seekers} == {"public@example.com", "hidden@example.com"}
    assert [user["email"] for user in private] == ["hidden@example.com"]
    assert [user["email"] for user in by_city] == ["boss@example.com"]
    assert [user["id"] for user in by_search] == [public["id"]]
