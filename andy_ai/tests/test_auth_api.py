from fastapi.testclient import TestClient

from andy_ai.main import app
from andy_ai.models import User


def test_register_logs_user_in(client, register_user, db_session):
    response = register_user(client)
    assert response.status_code == 200
    data = response.json()
    assert data["user"]["username"] == "maria"
    assert data["token"]

    stored = db_session.query(User).filter(User.username == "maria").first()
    assert stored is not None
    assert stored.password != "s3cret-pass"

    me = client.get("/api/user")
    assert me.status_code == 200
    profile = me.json()
    assert profile["username"] == "maria"
    assert profile["firstName"] == "Maria"
    assert "password" not in profile
    assert "ssn" not in profile


def test_register_duplicate_username(client, register_user):
    assert register_user(client).status_code == 200
    response = register_user(client, email="other@example.com")
    assert response.status_code == 400
    assert "already exists" in response.json()["detail"]


def test_register_invalid_body(client, register_user):
    response = client.post("/api/register", json={"username": "x", "password": "y"})
    assert response.status_code == 400
    assert response.json()["detail"].startswith("Invalid data")

    response = register_user(client, email="not-an-email")
    assert response.status_code == 400


def test_login_logout_round_trip(client, register_user):
    register_user(client)
    client.post("/api/logout")
    assert client.get("/api/user").status_code == 401

    response = client.post("/api/login", json={"username": "maria", "password": "s3cret-pass"})
    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["user"]["username"] == "maria"

    assert client.get("/api/user").status_code == 200

    logout = client.post("/api/logout")
    assert logout.status_code == 200
    assert client.get("/api/user").status_code == 401


def test_login_requires_both_fields(client):
    response = client.post("/api/login", json={"username": "maria"})
    assert response.status_code == 400


def test_login_wrong_password(client, register_user):
    register_user(client)
    client.post("/api/logout")

    response = client.post("/api/login", json={"username": "maria", "password": "nope"})
    assert response.status_code == 401
    assert response.json() == {"error": True, "message": "Incorrect password"}

    response = client.post("/api/login", json={"username": "ghost", "password": "nope"})
    assert response.status_code == 401
    assert response.json() == {"error": True, "message": "User does not exist"}


def test_bearer_token_authenticates_without_cookie(client, register_user):
    token = register_user(client).json()["token"]

    fresh = TestClient(app)
    assert fresh.get("/api/user").status_code == 401

    response = fresh.get("/api/user", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["username"] == "maria"

    response = fresh.get("/api/user", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401


def test_register_rejects_non_object_body(client):
    response = client.post("/api/register", json=["maria", "s3cret-pass"])
    assert response.status_code == 400
    assert response.json()["detail"].startswith("Invalid data")


def test_login_rejects_non_object_body(client):
    response = client.post("/api/login", json="maria")
    assert response.status_code == 400
