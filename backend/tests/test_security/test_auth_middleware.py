"""Tests for bearer session authentication middleware."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
os.environ.setdefault("DATABASE_URL", "sqlite://")

from app.security.session_token import issue_session_token


def test_health_exempt_from_auth(client):
    assert client.get("/health").status_code == 200


def test_root_exempt_from_auth(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json()["name"] == "Lanes"


def test_missing_token_returns_401(client):
    resp = client.get("/api/v1/tasks")
    assert resp.status_code == 401
    assert "Authorization" in resp.json()["detail"]


def test_invalid_token_returns_401(client):
    resp = client.get("/api/v1/tasks", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid or expired token."


def test_expired_token_returns_401(client, make_user):
    user = make_user()
    token = issue_session_token(user_id=user.id, secret="test-secret", ttl_seconds=1, now=1_000)
    resp = client.get("/api/v1/tasks", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_valid_token_passes(client, make_user, headers_for):
    user = make_user()
    resp = client.get("/api/v1/tasks", headers=headers_for(user.id))
    assert resp.status_code == 200
    assert resp.json() == []


def test_cookie_token_accepted(client, make_user):
    from app.security.session_token import token_for_user

    user = make_user()
    client.cookies.set("authToken", token_for_user(user.id))
    resp = client.get("/api/v1/auth/me")
    assert resp.status_code == 200
    assert resp.json()["id"] == user.id


def test_public_auth_routes_need_no_token(client):
    resp = client.post("/api/v1/auth/login", json={"email": "nobody@example.com", "password": "whatever"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid email or password."
