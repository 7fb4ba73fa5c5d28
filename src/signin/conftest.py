"""Pytest configuration and shared fixtures."""

import time
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient
from jose import jwk, jwt

from src.signin.auth.jwks import KeySetCache
from src.signin.config import settings
from src.signin.main import app

TEST_KID = "test-key-1"
CERTS_URL = "https://www.googleapis.com/oauth2/v3/certs"


def _generate_private_pem() -> str:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture(scope="session")
def private_pem() -> str:
    """RSA private key whose public half is published in the test key set."""
    return _generate_private_pem()


@pytest.fixture(scope="session")
def rogue_private_pem() -> str:
    """RSA private key that is never published."""
    return _generate_private_pem()


@pytest.fixture(scope="session")
def jwks_document(private_pem: str) -> dict[str, Any]:
    """Key set document in the shape served by Google's certs endpoint."""
    public = jwk.construct(private_pem, algorithm="RS256").public_key().to_dict()
    return {
        "keys": [
            {
                "kid": TEST_KID,
                "kty": "RSA",
                "alg": "RS256",
                "use": "sig",
                "n": public["n"],
                "e": public["e"],
            }
        ]
    }


@pytest.fixture
def google_claims() -> dict[str, Any]:
    """Valid claims for a Google ID token addressed to this application."""
    now = int(time.time())
    return {
        "iss": settings.google_issuer,
        "aud": settings.google_client_id,
        "sub": "110169484474386276334",
        "email": "alice@example.com",
        "email_verified": True,
        "name": "Alice Example",
        "given_name": "Alice",
        "family_name": "Example",
        "picture": "https://lh3.googleusercontent.com/a/alice",
        "locale": "en",
        "iat": now,
        "exp": now + 3600,
    }


@pytest.fixture
def make_token(private_pem: str, google_claims: dict[str, Any]) -> Callable[..., str]:
    """
    Factory for signed ID tokens.

    Example:
        >>> token = make_token(aud="someone-else")
        >>> token = make_token(kid="rotated-key", key=rogue_private_pem)
    """

    def _make(kid: str | None = TEST_KID, key: str | None = None, **overrides: Any) -> str:
        claims = {**google_claims, **overrides}
        claims = {name: value for name, value in claims.items() if value is not None}
        headers = {"kid": kid} if kid is not None else {}
        return jwt.encode(claims, key or private_pem, algorithm="RS256", headers=headers)

    return _make


@pytest.fixture
def certs_response(jwks_document: dict[str, Any]) -> Mock:
    """Successful HTTP response carrying the test key set."""
    response = Mock()
    response.json.return_value = jwks_document
    response.raise_for_status = Mock()
    return response


@pytest.fixture
def key_cache(certs_response: Mock) -> KeySetCache:
    """Key set cache whose HTTP client serves the test key set."""
    cache = KeySetCache(CERTS_URL)
    cache._http_client.get = AsyncMock(return_value=certs_response)
    return cache


@pytest.fixture
def client() -> TestClient:
    """
    Provide FastAPI test client for API testing.

    The lifespan is not run, so handler tests register their own callback
    service.

    Example:
        >>> def test_health(client):
        >>>     response = client.get("/health")
        >>>     assert response.status_code == 200
    """
    return TestClient(app)
