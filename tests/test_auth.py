import pytest
from fastapi.testclient import TestClient

import main
from commons import limiter
from src.auth.tokens import create_access_token, decode_access_token


@pytest.fixture
def client(mongo_db, monkeypatch):
    monkeypatch.setattr(limiter, "enabled", False)
    main.app.dependency_overrides.clear()
    return TestClient(main.app)


def test_register_login_and_profile(client):
    credentials = {"username": "Ada@Example.com", "password": "correct horse"}

    registered = client.post("/auth/register", data=credentials)
    assert registered.status_code == 201
    assert registered.json()["email"] == "ada@example.com"

    assert client.post("/auth/register", data=credentials).status_code == 400

    token = client.post("/auth/token", data=credentials)
    assert token.status_code == 200
    assert token.json()["token_type"] == "bearer"

    profile = client.get(
        "/auth/me", headers={"Authorization": f"Bearer {token.json()['access_token']}"}
    )
    assert profile.status_code == 200
    assert profile.json()["email"] == "ada@example.com"
    assert "hashed_password" not in profile.json()


def test_wrong_password_is_rejected(client):
    client.post("/auth/register", data={"username": "bob@example.com", "password": "pw-1"})

    response = client.post("/auth/token", data={"username": "bob@example.com", "password": "nope"})

    assert response.status_code == 401


def test_meeting_routes_require_a_token(client):
    assert client.get("/api/meetings").status_code == 401
    assert client.get("/api/meetings", headers={"Authorization": "Bearer junk"}).status_code == 401


def test_token_round_trip():
    assert decode_access_token(create_access_token({"sub": "ada@example.com"})) == "ada@example.com"
    assert decode_access_token("not.a.token") is None
