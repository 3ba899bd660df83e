"""
Integration tests for user, survey and login endpoints.

Runs the real routers and services against the in-memory key-value store.
"""

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from shoppr.core.config import settings

PREFIX = settings.API_PREFIX

SURVEY = {
    "name": "Ada",
    "username": "ada",
    "gender": "female",
    "categories": ["Electronics", "Books", "Electronics"],
    "budget": "moderate",
    "motivations": ["quality", "price", "convenience"],
    "brandPreference": "brand loyal",
    "shoppingPattern": "research first",
    "stylePreferences": ["modern"],
    "dealSensitivity": "high",
    "otherCategory": "",
}


@pytest.fixture
def client(wired_app):
    return TestClient(wired_app)


def create(client, name="Ada Lovelace", username="Ada"):
    return client.post(f"{PREFIX}/users", json={"name": name, "username": username})


def test_create_user_normalizes_fields(client, kv_store):
    response = create(client, name="  Ada Lovelace ", username="  Ada ")

    assert response.status_code == 201
    user = response.json()["user"]
    assert user["name"] == "Ada Lovelace"
    assert user["username"] == "ada"
    assert kv_store.data["username:ada"] == user["id"]
    assert kv_store.data[f"user:{user['id']}"]["username"] == "ada"


@pytest.mark.parametrize("body", [{"name": "Ada"}, {"username": "ada"}, {"name": " ", "username": "ada"}, {}])
def test_create_user_requires_fields(client, body):
    response = client.post(f"{PREFIX}/users", json=body)
    assert response.status_code == 400
    assert "error" in response.json()


def test_duplicate_username_conflicts(client):
    assert create(client).status_code == 201
    response = create(client, name="Other", username="ADA ")
    assert response.status_code == 409
    assert response.json() == {"error": "Username is already taken"}


async def test_concurrent_creation_only_one_wins(wired_app):
    transport = httpx.ASGITransport(app=wired_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        responses = await asyncio.gather(*[
            client.post(f"{PREFIX}/users", json={"name": f"User {i}", "username": "racer"}) for i in range(2)
        ])

    assert sorted(r.status_code for r in responses) == [201, 409]


def test_check_username(client):
    assert client.get(f"{PREFIX}/check-username/Ada").json() == {"available": True, "username": "Ada"}
    create(client)
    assert client.get(f"{PREFIX}/check-username/Ada").json() == {"available": False, "username": "Ada"}


def test_check_username_blank(client):
    response = client.get(f"{PREFIX}/check-username/%20")
    assert response.status_code == 400


def test_get_user(client):
    user = create(client).json()["user"]
    assert client.get(f"{PREFIX}/users/{user['id']}").json() == {"user": user}
    assert client.get(f"{PREFIX}/users/missing").status_code == 404


def test_update_user_moves_username_mapping(client, kv_store):
    user = create(client).json()["user"]

    response = client.put(f"{PREFIX}/users/{user['id']}", json={"name": "Ada L", "username": "Countess"})

    assert response.status_code == 200
    assert response.json()["user"]["username"] == "countess"
    assert response.json()["user"]["created_at"] == user["created_at"]
    assert "username:ada" not in kv_store.data
    assert kv_store.data["username:countess"] == user["id"]


def test_update_user_same_username_keeps_mapping(client, kv_store):
    user = create(client).json()["user"]

    response = client.put(f"{PREFIX}/users/{user['id']}", json={"name": "New Name", "username": "ADA"})

    assert response.status_code == 200
    assert kv_store.data["username:ada"] == user["id"]


def test_update_user_rejects_taken_username(client, kv_store):
    ada = create(client).json()["user"]
    create(client, name="Grace", username="grace")

    response = client.put(f"{PREFIX}/users/{ada['id']}", json={"name": "Ada", "username": "grace"})

    assert response.status_code == 409
    assert kv_store.data["username:ada"] == ada["id"]


def test_update_user_errors(client):
    assert client.put(f"{PREFIX}/users/missing", json={"name": "A", "username": "a"}).status_code == 404
    user = create(client).json()["user"]
    assert client.put(f"{PREFIX}/users/{user['id']}", json={"name": "", "username": "a"}).status_code == 400


def test_survey_round_trip(client):
    user = create(client).json()["user"]

    saved = client.post(f"{PREFIX}/users/{user['id']}/survey", json=SURVEY)
    assert saved.status_code == 200
    body = saved.json()
    assert body["success"] is True
    assert body["survey"]["user_id"] == user["id"]
    assert body["survey"]["brandPreference"] == "brand loyal"
    assert body["survey"]["categories"] == ["Electronics", "Books"]
    assert "completed_at" in body["survey"]

    fetched = client.get(f"{PREFIX}/users/{user['id']}/survey")
    assert fetched.json() == {"survey": body["survey"]}


def test_survey_unknown_user(client):
    assert client.post(f"{PREFIX}/users/missing/survey", json=SURVEY).status_code == 404
    assert client.get(f"{PREFIX}/users/missing/survey").status_code == 404


def test_survey_rejects_too_many_motivations(client):
    user = create(client).json()["user"]
    body = {**SURVEY, "motivations": ["a", "b", "c", "d"]}
    assert client.post(f"{PREFIX}/users/{user['id']}/survey", json=body).status_code == 400


def test_login(client):
    user = create(client).json()["user"]

    response = client.post(f"{PREFIX}/login", json={"username": " ADA "})
    assert response.status_code == 200
    assert response.json() == {"user": user, "survey": None}

    client.post(f"{PREFIX}/users/{user['id']}/survey", json=SURVEY)
    assert client.post(f"{PREFIX}/login", json={"username": "ada"}).json()["survey"]["gender"] == "female"


def test_login_errors(client):
    assert client.post(f"{PREFIX}/login", json={"username": "  "}).status_code == 400
    assert client.post(f"{PREFIX}/login", json={"username": "nobody"}).status_code == 404
