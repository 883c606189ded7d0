from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from accounts.api import routes
from accounts.domain.errors import StoreError
from accounts.security.tokens import decode_access_token, issue_access_token

SIGNUP_PAYLOAD = {
    "name": "Ana",
    "email": "ana@example.com",
    "password": "Str0ng!Pass",
    "phone_number": "+14155551234",
    "gender": "female",
    "date_of_birth": "1990-01-01",
    "membership_status": "active",
}


@pytest.fixture
def api_client(service, repository):
    """Provide a FastAPI test client with isolated state."""
    app = FastAPI()
    app.include_router(routes.router)
    app.state.account_service = service

    original_throttle = routes.login_throttle
    routes.login_throttle = routes.LoginThrottle(max_failures=2, window_seconds=60)

    with TestClient(app) as client:
        yield client, repository

    routes.login_throttle = original_throttle


def _signup(client, **overrides):
    return client.post("/v1/users/signup", json={**SIGNUP_PAYLOAD, **overrides})


def test_signup_returns_account_and_token_without_hash(api_client):
    client, _ = api_client

    response = _signup(client)
    assert response.status_code == 201
    body = response.json()
    assert body["account"]["email"] == "ana@example.com"
    assert body["account"]["date_of_birth"] == "1990-01-01"
    assert "password_hash" not in body["account"]
    assert "password" not in body["account"]
    assert body["token_type"] == "bearer"

    claims = decode_access_token(body["access_token"])
    assert claims["sub"] == body["account"]["account_id"]


def test_signup_missing_field_is_bad_request(api_client):
    client, _ = api_client
    payload = dict(SIGNUP_PAYLOAD)
    payload.pop("gender")

    response = client.post("/v1/users/signup", json=payload)
    assert response.status_code == 400
    assert response.json()["detail"] == "Please add all fields"


@pytest.mark.parametrize(
    ("field", "value", "detail"),
    [
        ("email", "not-an-email", "Email not valid"),
        ("password", "abc", "Password not strong enough"),
        ("phone_number", "12345", "Phone number not valid"),
        ("date_of_birth", "yesterday", "Date of birth not valid"),
    ],
)
def test_signup_validation_errors_are_bad_requests(api_client, field, value, detail):
    client, _ = api_client
    response = _signup(client, **{field: value})
    assert response.status_code == 400
    assert response.json()["detail"] == detail


def test_signup_duplicate_email_is_conflict(api_client):
    client, _ = api_client
    assert _signup(client).status_code == 201

    response = _signup(client)
    assert response.status_code == 409
    assert response.json()["detail"] == "Email already in use"


def test_store_fault_is_opaque_service_unavailable(api_client):
    client, repository = api_client
    repository.fail_with = StoreError()

    response = _signup(client)
    assert response.status_code == 503
    assert response.json()["detail"] == "service unavailable"


def test_login_returns_same_identity_as_signup(api_client):
    client, _ = api_client
    created = _signup(client).json()["account"]

    response = client.post(
        "/v1/users/login", json={"email": "ana@example.com", "password": "Str0ng!Pass"}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["account"]["account_id"] == created["account_id"]
    assert "password_hash" not in body["account"]


def test_login_failures_share_one_response(api_client):
    client, _ = api_client
    _signup(client)

    wrong_password = client.post(
        "/v1/users/login", json={"email": "ana@example.com", "password": "wrong"}
    )
    unknown_email = client.post(
        "/v1/users/login", json={"email": "nobody@example.com", "password": "Str0ng!Pass"}
    )

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json()


def test_login_missing_field_is_bad_request(api_client):
    client, _ = api_client
    response = client.post("/v1/users/login", json={"email": "ana@example.com"})
    assert response.status_code == 400
    assert response.json()["detail"] == "All fields must be filled"


def _from_host(app, host):
    """Wrap an ASGI app so every request appears to come from ``host``."""

    async def asgi(scope, receive, send):
        if scope["type"] == "http":
            scope = {**scope, "client": (host, 50000)}
        await app(scope, receive, send)

    return asgi


def test_login_is_throttled_after_repeated_failures_from_same_client(api_client):
    client, _ = api_client
    _signup(client)
    bad = {"email": "ana@example.com", "password": "wrong"}

    assert client.post("/v1/users/login", json=bad).status_code == 401
    assert client.post("/v1/users/login", json=bad).status_code == 401
    blocked = client.post(
        "/v1/users/login", json={"email": "ANA@example.com", "password": "Str0ng!Pass"}
    )
    assert blocked.status_code == 429


def test_failures_from_one_client_do_not_lock_out_another(api_client):
    client, _ = api_client
    _signup(client)
    bad = {"email": "ana@example.com", "password": "wrong"}
    good = {"email": "ana@example.com", "password": "Str0ng!Pass"}

    with TestClient(_from_host(client.app, "203.0.113.7")) as attacker:
        for _ in range(5):
            attacker.post("/v1/users/login", json=bad)
        assert attacker.post("/v1/users/login", json=good).status_code == 429

    with TestClient(_from_host(client.app, "198.51.100.20")) as owner:
        codes = [owner.post("/v1/users/login", json=good).status_code for _ in range(3)]
    assert codes == [200, 200, 200]


def test_successful_login_resets_failure_count(api_client):
    client, _ = api_client
    _signup(client)
    bad = {"email": "ana@example.com", "password": "wrong"}
    good = {"email": "ana@example.com", "password": "Str0ng!Pass"}

    assert client.post("/v1/users/login", json=bad).status_code == 401
    assert client.post("/v1/users/login", json=good).status_code == 200
    assert client.post("/v1/users/login", json=bad).status_code == 401
    assert client.post("/v1/users/login", json=good).status_code == 200


def test_me_requires_bearer_token(api_client):
    client, _ = api_client
    response = client.get("/v1/users/me")
    assert response.status_code == 401

    response = client.get("/v1/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_me_returns_token_owner(api_client):
    client, _ = api_client
    token = _signup(client).json()["access_token"]

    response = client.get("/v1/users/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["email"] == "ana@example.com"


def test_me_rejects_token_for_unknown_account(api_client):
    client, _ = api_client
    token, _ = issue_access_token(subject="no-such-account", email="ghost@example.com")

    response = client.get("/v1/users/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_me_rejects_non_uuid_subject_without_touching_store(api_client):
    client, repository = api_client
    repository.fail_with = StoreError()
    token, _ = issue_access_token(subject="not-a-uuid", email="ghost@example.com")

    response = client.get("/v1/users/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert repository.reads == 0


def test_me_rejects_token_for_vanished_account(api_client):
    client, _ = api_client
    token, _ = issue_access_token(
        subject="8c5e3a52-4b7e-4f0e-9d62-3f6f0f5b7a11", email="ghost@example.com"
    )

    response = client.get("/v1/users/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
