from __future__ import annotations

import dataclasses

from endpoints.auth_endpoints import issue_access_token


def test_sign_in_issues_token_and_restores_session(client):
    r = client.post("/api/auth/sign-in", json={"email": "alice@example.com"})
    assert r.status_code == 200
    payload = r.json()
    assert payload["token_type"] == "bearer"
    assert payload["user"]["id"].startswith("user_")
    assert payload["user"]["provider"] == "email"

    headers = {"Authorization": f"Bearer {payload['access_token']}"}

    r = client.get("/api/auth/session", headers=headers)
    assert r.json()["user"]["id"] == payload["user"]["id"]

    r = client.post("/api/auth/sign-out", headers=headers)
    assert r.json() == {"signedOut": True}
    assert client.get("/api/auth/session", headers=headers).json() == {"user": None}


def test_sign_in_requires_email(client):
    r = client.post("/api/auth/sign-in", json={"email": "   "})
    assert r.status_code == 400


def test_protected_routes_reject_missing_or_bad_tokens(client, test_settings):
    assert client.get("/api/notifications").status_code == 401
    assert client.get("/api/notifications", headers={"Authorization": "Bearer nope"}).status_code == 401

    foreign = dataclasses.replace(test_settings, jwt_secret="other-secret")
    token = issue_access_token(foreign, subject="u1")["access_token"]
    assert client.get("/api/notifications", headers={"Authorization": f"Bearer {token}"}).status_code == 401

    token = issue_access_token(test_settings, subject="u1")["access_token"]
    r = client.get("/api/notifications", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json() == []


def test_sign_in_is_logged_as_action(client, sign_in):
    _, headers = sign_in()
    r = client.get("/api/actions", headers=headers)
    assert r.status_code == 200
    assert [a["actionType"] for a in r.json()] == ["login"]


def test_session_routes_only_answer_for_the_caller(client, sign_in):
    _, alice_headers = sign_in("alice@example.com")
    _, bob_headers = sign_in("bob@example.com")

    assert client.get("/api/auth/session").status_code == 401
    assert client.post("/api/auth/sign-out").status_code == 401

    assert client.get("/api/auth/session", headers=alice_headers).json() == {"user": None}
    assert client.post("/api/auth/sign-out", headers=alice_headers).json() == {"signedOut": False}

    r = client.get("/api/auth/session", headers=bob_headers)
    assert r.json()["user"]["email"] == "bob@example.com"

    actions = client.get("/api/actions", headers=bob_headers).json()
    assert [a["actionType"] for a in actions] == ["login"]
