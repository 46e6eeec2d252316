"""Tests for email/password API handlers."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from src.signin.features.password.handlers import get_password_service
from src.signin.features.password.service import PasswordAuthService
from src.signin.main import app
from src.signin.services.auth.dependencies import get_identity_store
from src.signin.services.auth.hooks import OpaqueTokenIssuer
from src.signin.services.auth.tokens import TokenIssuanceService


@pytest.fixture
def api(memory_store):
    """Test client wired to the in-memory store with cheap bcrypt rounds."""
    tokens = TokenIssuanceService(memory_store, OpaqueTokenIssuer())
    app.dependency_overrides[get_identity_store] = lambda: memory_store
    app.dependency_overrides[get_password_service] = lambda: PasswordAuthService(
        memory_store, tokens, bcrypt_rounds=4
    )
    with patch("src.signin.features.password.handlers.PostHogService"):
        yield TestClient(app)
    app.dependency_overrides.clear()


def test_register_and_login(api: TestClient) -> None:
    """Test register returns a token that login returns again."""
    response = api.post(
        "/api/v1/auth/register",
        json={"email": "p@x.com", "password": "s3cret-pass", "display_name": "Pat"},
    )
    assert response.status_code == 201
    token = response.json()["token"]

    response = api.post("/api/v1/auth/login", json={"email": "p@x.com", "password": "s3cret-pass"})

    assert response.status_code == 200
    assert response.json()["token"] == token


def test_register_duplicate_email(api: TestClient) -> None:
    """Test registering an email twice fails."""
    body = {"email": "p@x.com", "password": "s3cret-pass"}
    api.post("/api/v1/auth/register", json=body)

    response = api.post("/api/v1/auth/register", json=body)

    assert response.status_code == 400
    assert response.json() == {"detail": "Email already registered"}


def test_register_short_password(api: TestClient) -> None:
    """Test password length is validated."""
    response = api.post("/api/v1/auth/register", json={"email": "p@x.com", "password": "short"})

    assert response.status_code == 422


def test_register_multibyte_password_over_bcrypt_limit(api: TestClient, memory_store) -> None:
    """Test the 72-byte bcrypt limit counts UTF-8 bytes, not characters."""
    response = api.post("/api/v1/auth/register", json={"email": "p@x.com", "password": "é" * 40})

    assert response.status_code == 422
    assert memory_store.users == []


def test_register_password_at_bcrypt_limit(api: TestClient) -> None:
    """Test a password of exactly 72 bytes is accepted."""
    response = api.post("/api/v1/auth/register", json={"email": "p@x.com", "password": "é" * 36})

    assert response.status_code == 201


def test_login_overlong_password(api: TestClient) -> None:
    """Test an overlong login password is a credential failure, not a crash."""
    api.post("/api/v1/auth/register", json={"email": "p@x.com", "password": "s3cret-pass"})

    response = api.post("/api/v1/auth/login", json={"email": "p@x.com", "password": "é" * 40})

    assert response.status_code == 401


def test_register_invalid_email(api: TestClient) -> None:
    """Test email format is validated."""
    response = api.post(
        "/api/v1/auth/register", json={"email": "not-an-email", "password": "s3cret-pass"}
    )

    assert response.status_code == 422


def test_login_wrong_password(api: TestClient) -> None:
    """Test bad credentials are unauthorized."""
    api.post("/api/v1/auth/register", json={"email": "p@x.com", "password": "s3cret-pass"})

    response = api.post("/api/v1/auth/login", json={"email": "p@x.com", "password": "nope-nope"})

    assert response.status_code == 401
    assert response.json() == {"detail": "Incorrect email or password"}


def test_password_token_works_for_me(api: TestClient) -> None:
    """Test password tokens authenticate like vendor tokens."""
    token = api.post(
        "/api/v1/auth/register", json={"email": "p@x.com", "password": "s3cret-pass"}
    ).json()["token"]

    response = api.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json()["email"] == "p@x.com"
