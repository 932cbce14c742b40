"""
Tests for the auth and profile API: sign-up, sign-in, /users.
"""
from uuid import uuid4

from fastapi.testclient import TestClient

from wishfund.core.config import settings
from wishfund.core.security import create_access_token
from wishfund.main import app


def signup(client: TestClient, username: str | None = None, password: str = "Test1234!", **extra):
    username = username or f"user-{uuid4().hex[:8]}"
    payload = {"email": f"{username}@example.com", "username": username, "password": password, **extra}
    return client.post("/auth/signup", json=payload)


class TestSignUp:
    def test_signup_returns_public_user(self, client):
        res = signup(client, "alice", about="Coffee nerd")
        assert res.status_code == 201, res.text
        data = res.json()
        assert data["username"] == "alice"
        assert data["about"] == "Coffee nerd"
        assert "email" not in data
        assert "hashed_password" not in data
        assert "password" not in data

    def test_signup_duplicate_username(self, client):
        assert signup(client, "bob").status_code == 201
        res = client.post(
            "/auth/signup",
            json={"email": "other@example.com", "username": "bob", "password": "Test1234!"},
        )
        assert res.status_code == 409
        assert res.json()["code"] == "CONFLICT"

    def test_signup_duplicate_email(self, client):
        assert signup(client, "carol").status_code == 201
        res = client.post(
            "/auth/signup",
            json={"email": "carol@example.com", "username": "carol2", "password": "Test1234!"},
        )
        assert res.status_code == 409

    def test_signup_validation(self, client):
        assert client.post(
            "/auth/signup",
            json={"email": "not-an-email", "username": "dave", "password": "Test1234!"},
        ).status_code == 422
        assert signup(client, "erin", password="123").status_code == 422
        assert signup(client, "has space").status_code == 422


class TestSignIn:
    def test_signin_sets_cookie_and_returns_token(self, client):
        signup(client, "frank")
        res = client.post("/auth/signin", json={"username": "frank", "password": "Test1234!"})
        assert res.status_code == 200
        assert res.json()["token_type"] == "bearer"
        assert res.json()["access_token"]
        set_cookie = res.headers.get("set-cookie", "")
        assert "access_token=" in set_cookie
        assert "HttpOnly" in set_cookie

        me = client.get("/users/me")
        assert me.status_code == 200
        assert me.json()["username"] == "frank"
        assert me.json()["email"] == "frank@example.com"

    def test_signin_wrong_password(self, client):
        signup(client, "grace")
        res = client.post("/auth/signin", json={"username": "grace", "password": "nope-nope"})
        assert res.status_code == 401
        assert res.json()["code"] == "UNAUTHORIZED"

    def test_signin_unknown_user(self, client):
        res = client.post("/auth/signin", json={"username": "nobody", "password": "Test1234!"})
        assert res.status_code == 401

    def test_bearer_token_accepted(self, client):
        signup(client, "heidi")
        token = client.post("/auth/signin", json={"username": "heidi", "password": "Test1234!"}).json()["access_token"]
        fresh = TestClient(app)
        res = fresh.get("/users/me", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 200
        assert res.json()["username"] == "heidi"

    def test_prod_cookie_flags(self, client):
        prev_env = settings.environment
        settings.environment = "prod"
        try:
            signup(client, "ivan")
            res = client.post("/auth/signin", json={"username": "ivan", "password": "Test1234!"})
            set_cookie = res.headers.get("set-cookie", "")
            assert "Secure" in set_cookie
            assert "samesite=none" in set_cookie.lower()
        finally:
            settings.environment = prev_env


class TestAuthRequired:
    def test_missing_token(self, client):
        assert client.get("/users/me").status_code == 401

    def test_invalid_token(self, client):
        res = client.get("/users/me", headers={"Authorization": "Bearer invalid.token.here"})
        assert res.status_code == 401

    def test_expired_token(self, client):
        signup(client, "judy")
        expired = create_access_token("1", expires_delta_minutes=-1)
        res = TestClient(app).get("/users/me", headers={"Authorization": f"Bearer {expired}"})
        assert res.status_code == 401

    def test_public_endpoints(self, client):
        assert client.get("/wishes/last").status_code == 200
        assert client.get("/wishes/top").status_code == 200
        assert client.get("/health").status_code == 200


class TestProfiles:
    def test_update_profile_and_password(self, client):
        signup(client, "ken")
        client.post("/auth/signin", json={"username": "ken", "password": "Test1234!"})

        res = client.patch("/users/me", json={"about": "Hiker", "password": "NewPass99!"})
        assert res.status_code == 200
        assert res.json()["about"] == "Hiker"

        assert client.post("/auth/signin", json={"username": "ken", "password": "Test1234!"}).status_code == 401
        assert client.post("/auth/signin", json={"username": "ken", "password": "NewPass99!"}).status_code == 200

    def test_update_profile_conflict(self, client):
        signup(client, "liam")
        signup(client, "mia")
        client.post("/auth/signin", json={"username": "mia", "password": "Test1234!"})
        res = client.patch("/users/me", json={"username": "liam"})
        assert res.status_code == 409

    def test_public_profile_and_search(self, client):
        signup(client, "nora")
        signup(client, "norbert")
        signup(client, "oscar")
        client.post("/auth/signin", json={"username": "oscar", "password": "Test1234!"})

        res = client.get("/users/nora")
        assert res.status_code == 200
        assert "email" not in res.json()
        assert client.get("/users/ghost").status_code == 404

        found = client.post("/users/find", json={"query": "nor"})
        assert found.status_code == 200
        assert [user["username"] for user in found.json()] == ["nora", "norbert"]

        by_email = client.post("/users/find", json={"query": "oscar@example"})
        assert [user["username"] for user in by_email.json()] == ["oscar"]
