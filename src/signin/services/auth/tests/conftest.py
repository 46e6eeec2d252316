"""Shared fixtures for authentication tests."""

import time
from typing import Any, Callable

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk, jwt

APPLE_ISSUER = "https://appleid.apple.com"
APPLE_AUDIENCE = "com.yourapp.bundleid"
SIGNING_KID = "test-key-1"


@pytest.fixture(scope="session")
def rsa_private_pem() -> str:
    """RSA private key used to sign test identity tokens."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture(scope="session")
def other_private_pem() -> str:
    """RSA private key that is not published in the JWKS."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture(scope="session")
def jwks_response(rsa_private_pem: str) -> dict[str, Any]:
    """JWKS document publishing the public half of ``rsa_private_pem``."""
    public_jwk = jwk.construct(rsa_private_pem, algorithm="RS256").public_key().to_dict()
    public_jwk.update({"kid": SIGNING_KID, "use": "sig"})
    return {"keys": [public_jwk]}


@pytest.fixture
def apple_claims() -> dict[str, Any]:
    """Claims of a valid Sign in with Apple identity token."""
    now = int(time.time())
    return {
        "iss": APPLE_ISSUER,
        "aud": APPLE_AUDIENCE,
        "sub": "u1",
        "email": "a@x.com",
        "nonce": "abc",
        "iat": now,
        "exp": now + 600,
    }


@pytest.fixture
def make_token(rsa_private_pem: str) -> Callable[..., str]:
    """Sign claims into an identity token."""

    def _make_token(
        claims: dict[str, Any], key: str | None = None, kid: str | None = SIGNING_KID
    ) -> str:
        headers = {"kid": kid} if kid else None
        return jwt.encode(claims, key or rsa_private_pem, algorithm="RS256", headers=headers)

    return _make_token
