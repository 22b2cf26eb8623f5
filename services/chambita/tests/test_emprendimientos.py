from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

pytestmark = pytest.mark.integration


def create_emprendimiento(client: TestClient, owner, **fields) -> str:
    payload = {
        "name": "Salteñas Doña Julia",
        "description": "Traditional salteñas every morning",
        "products": [{"name": "Salteña de pollo", "price": 8}],
        "phone": "+59171234567",
    }
    payload.update(fields)
    response = client.post("/api/emprendimientos", headers=owner["headers"], json=payload)
    assert response.status_code == 201, response.text
    return response.json()["id"]


def test_owner_is_taken_from_the_token(client: TestClient, employer, other_user) -> None:
    emprendimiento_id = create_emprendimiento(client, employer, ownerId=other_user["id"])

    emprendimiento = client.get(f"/api/emprendimientos/{emprendimiento_id}").json()

    assert emprendimiento["ownerId"] == employer["id"]
    assert emprendimiento["products"] == [{"name": "Salteña de pollo", "price": 8}]
    assert emprendimiento["image1Url"] is None


def test_only_the_owner_can_modify(client: TestClient, employer, other_user) -> None:
    emprendimiento_id = create_emprendimiento(client, employer)

    foreign_update = client.put(
        f"/api/emprendimientos/{emprendimiento_id}",
        headers=other_user["headers"],
        json={"name": "Mine now"},
    )
    foreign_delete = client.delete(
        f"/api/emprendimientos/{emprendimiento_id}",
        headers=other_user["headers"],
    )
    own_update = client.put(
        f"/api/emprendimientos/{emprendimiento_id}",
        headers=employer["headers"],
        json={"products": [], "image1Url": "https://img.example.com/1.png"},
    )

    assert foreign_update.status_code == 403
    assert foreign_delete.status_code == 403
    assert own_update.status_code == 200
    emprendimiento = client.get(f"/api/emprendimientos/{emprendimiento_id}").json()
    assert emprendimiento["name"] == "Salteñas Doña Julia"
    assert emprendimiento["products"] == []
    assert emprendimiento["image1Url"] == "https://img.example.com/1.png"

    own_delete = client.delete(
        f"/api/emprendimientos/{emprendimiento_id}",
        headers=employer["headers"],
    )
    assert own_delete.status_code == 200
    assert client.get(f"/api/emprendimientos/{emprendimiento_id}").status_code == 404


def test_deleting_the_owner_orphans_the_emprendimiento(
    client: TestClient,
    register_user,
) -> None:
    owner = register_user("leaving-owner@example.com")
    emprendimiento_id = create_emprendimiento(client, owner)

    client.delete(f"/api/users/{owner['id']}", headers=owner["headers"])

    emprendimiento = client.get(f"/api/emprendimientos/{emprendimiento_id}").json()
    assert emprendimiento["ownerId"] is None
    update = client.put(
        f"/api/emprendimientos/{emprendimiento_id}",
        headers=owner["headers"],
        json={"name": "Back from the dead"},
    )
    assert update.status_code == 403


def test_list_filters_by_owner_and_search(client: TestClient, employer, other_user) -> None:
    bakery = create_emprendimiento(client, employer)
    crafts = create_emprendimiento(
        client,
        other_user,
        name="Tejidos Andinos",
        description="Alpaca wool crafts",
    )

    by_owner = client.get("/api/emprendimientos", params={"ownerId": other_user["id"]}).json()
    by_search = client.get("/api/emprendimientos", params={"search": "alpaca"}).json()
    everything = client.get("/api/emprendimientos").json()

    assert [item["id"] for item in by_owner] == [crafts]
    assert [item["id"] for item in by_search] == [crafts]
    assert [item["id"] for item in everything] == [crafts, bakery]
