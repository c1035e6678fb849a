"""
Test authentication
- POST /api/auth/login
- GET /api/auth/me
- POST /api/auth/logout
- POST /api/users (Firebase sign-up)
"""
import json
from datetime import datetime, timezone, timedelta

import httpx
import pytest

from conftest import run
from create_admin import bootstrap_admin
from dependencies import get_identity_client
from server import app
from services.identity import IdentityClient

PASSWORDS = {"worker@example.com": "sew-it-well"}


def identity_handler(request: httpx.Request) -> httpx.Response:
    body = json.loads(request.content)
    if request.url.path.endswith("accounts:signInWithPassword"):
        if PASSWORDS.get(body["email"]) != body["password"]:
            return httpx.Response(400, json={"error": {"message": "INVALID_PASSWORD"}})
        return httpx.Response(200, json={"localId": "uid-worker", "email": body["email"], "idToken": "t"})
    if request.url.path.endswith("accounts:signUp"):
        if body["email"] in PASSWORDS:
            return httpx.Response(400, json={"error": {"message": "EMAIL_EXISTS"}})
        return httpx.Response(200, json={"localId": f"uid-{body['email'].split('@')[0]}", "email": body["email"]})
    return httpx.Response(404)


@pytest.fixture
def identity():
    client = IdentityClient("test-key", transport=httpx.MockTransport(identity_handler))
    app.dependency_overrides[get_identity_client] = lambda: client
    return client


class TestLogin:
    """Email/password sign-in and sessions"""

    def test_login_me_logout(self, client, sessions, identity):
        response = client.post("/api/auth/login", json={"email": "worker@example.com", "password": "sew-it-well"})
        assert response.status_code == 200
        data = response.json()
        assert data["user_id"] == "uid-worker"
        assert data["session_token"].startswith("sess_")
        client.cookies.clear()

        headers = {"Authorization": f"Bearer {data['session_token']}"}
        me = client.get("/api/auth/me", headers=headers)
        assert me.status_code == 200
        assert me.json()["assigned_stages"] == ["cutting"]

        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_login_replaces_older_session(self, client, sessions, identity):
        client.post("/api/auth/login", json={"email": "worker@example.com", "password": "sew-it-well"})
        client.cookies.clear()
        assert client.get("/api/auth/me", headers=sessions["worker"]).status_code == 401

    def test_wrong_password(self, client, sessions, identity):
        response = client.post("/api/auth/login", json={"email": "worker@example.com", "password": "nope"})
        assert response.status_code == 401

    def test_account_without_profile(self, client, identity):
        response = client.post("/api/auth/login", json={"email": "worker@example.com", "password": "sew-it-well"})
        assert response.status_code == 401

    def test_missing_and_expired_sessions(self, client, db, sessions):
        assert client.get("/api/auth/me").status_code == 401
        assert client.get("/api/auth/me", headers={"Authorization": "Bearer sess_unknown"}).status_code == 401

        run(db.user_sessions.insert_one({
            "user_id": "uid-worker",
            "session_token": "sess_old",
            "expires_at": (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
        }))
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer sess_old"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Session expired"


class TestCreateUser:
    """Admin creates accounts"""

    def test_admin_creates_worker(self, client, admin_headers, identity):
        response = client.post("/api/users", json={
            "email": "new.hire@example.com",
            "password": "secret123",
            "name": "New Hire"
        }, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["user_id"] == "uid-new.hire"
        assert response.json()["role"] == "worker"

    def test_provider_rejects(self, client, admin_headers, db, identity):
        run(db.users.delete_many({"email": "worker@example.com"}))
        response = client.post("/api/users", json={
            "email": "worker@example.com",
            "password": "secret123",
            "name": "Again"
        }, headers=admin_headers)
        assert response.status_code == 400

    def test_only_admin(self, client, sessions, identity):
        response = client.post("/api/users", json={
            "email": "x@example.com", "password": "secret123", "name": "X"
        }, headers=sessions["manager"])
        assert response.status_code == 403


class TestBootstrapAdmin:
    """create_admin.py"""

    def test_creates_admin_profile(self, db):
        identity = IdentityClient("key", transport=httpx.MockTransport(identity_handler))
        admin = run(bootstrap_admin(db, identity, "boss@example.com", "secret123", "Boss"))
        assert admin["role"] == "admin"
        assert admin["user_id"] == "uid-boss"

    def test_existing_account_signs_in(self, db):
        identity = IdentityClient("key", transport=httpx.MockTransport(identity_handler))
        admin = run(bootstrap_admin(db, identity, "worker@example.com", "sew-it-well", "Wes"))
        assert admin["user_id"] == "uid-worker"
        assert admin["role"] == "admin"

    def test_promotes_existing_profile(self, db, sessions):
        identity = IdentityClient("key", transport=httpx.MockTransport(identity_handler))
        admin = run(bootstrap_admin(db, identity, "manager@example.com", "ignored", "Mia"))
        assert admin["user_id"] == "uid-manager"
        stored = run(db.users.find_one({"user_id": "uid-manager"}))
        assert stored["role"] == "admin"
