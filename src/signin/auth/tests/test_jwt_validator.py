"""Tests for Google ID token verification."""

import time
from unittest.mock import AsyncMock, Mock

import pytest
from jose import jwt

from src.signin.auth.exceptions import (
    AudienceMismatch,
    IssuerMismatch,
    KeyFetchFailed,
    MalformedToken,
    SignatureInvalid,
    TokenExpired,
    UnknownSigningKey,
)
from src.signin.auth.jwt_validator import IdTokenVerifier
from src.signin.config import settings


@pytest.fixture
def verifier(key_cache):
    """Verifier for this application's client id, with no clock leeway."""
    return IdTokenVerifier(
        key_cache=key_cache,
        issuer=settings.google_issuer,
        audience=settings.google_client_id,
        leeway=0,
    )


@pytest.mark.asyncio
class TestIdTokenVerifier:
    """Tests for IdTokenVerifier class."""

    async def test_valid_token_returns_claims(self, verifier, make_token):
        """Test a correctly signed, addressed and unexpired token verifies."""
        claims = await verifier.verify(make_token())

        assert claims["sub"] == "110169484474386276334"
        assert claims["email"] == "alice@example.com"
        assert claims["aud"] == settings.google_client_id

    async def test_audience_list_containing_client_id(self, verifier, make_token):
        """Test an aud list that includes the client id is accepted."""
        token = make_token(aud=["another-client", settings.google_client_id])

        claims = await verifier.verify(token)

        assert claims["sub"] == "110169484474386276334"

    async def test_malformed_token(self, verifier, key_cache):
        """Test garbage input fails before any key lookup."""
        with pytest.raises(MalformedToken):
            await verifier.verify("not-a-jwt")

        key_cache._http_client.get.assert_not_called()

    async def test_missing_kid_is_malformed(self, verifier, make_token, key_cache):
        """Test a token without a key id is rejected before key lookup."""
        with pytest.raises(MalformedToken):
            await verifier.verify(make_token(kid=None))

        key_cache._http_client.get.assert_not_called()

    async def test_non_rs256_algorithm_is_malformed(self, verifier, google_claims):
        """Test an HMAC-signed token is refused outright."""
        token = jwt.encode(
            google_claims, "shared-secret", algorithm="HS256", headers={"kid": "test-key-1"}
        )

        with pytest.raises(MalformedToken):
            await verifier.verify(token)

    async def test_unknown_signing_key(self, verifier, make_token, key_cache):
        """Test an unknown kid triggers exactly one refresh before failing."""
        with pytest.raises(UnknownSigningKey):
            await verifier.verify(make_token(kid="retired-key"))

        key_cache._http_client.get.assert_called_once()

    async def test_unknown_signing_key_after_warm_cache(self, verifier, make_token, key_cache):
        """Test a miss on a warm cache costs exactly one additional fetch."""
        await verifier.verify(make_token())

        with pytest.raises(UnknownSigningKey):
            await verifier.verify(make_token(kid="retired-key"))

        assert key_cache._http_client.get.call_count == 2

    async def test_signature_invalid(self, verifier, make_token, rogue_private_pem):
        """Test a token signed by an unpublished key under a known kid is rejected."""
        with pytest.raises(SignatureInvalid):
            await verifier.verify(make_token(key=rogue_private_pem))

    async def test_tampered_payload_is_signature_invalid(self, verifier, make_token):
        """Test swapping the payload of a valid token breaks the signature."""
        header, _, signature = make_token().split(".")
        _, forged_payload, _ = make_token(sub="attacker").split(".")

        with pytest.raises(SignatureInvalid):
            await verifier.verify(f"{header}.{forged_payload}.{signature}")

    async def test_issuer_mismatch(self, verifier, make_token):
        """Test a token from another issuer is rejected."""
        with pytest.raises(IssuerMismatch):
            await verifier.verify(make_token(iss="https://evil.example.com"))

    async def test_audience_mismatch(self, verifier, make_token):
        """Test a token minted for another client is rejected."""
        with pytest.raises(AudienceMismatch):
            await verifier.verify(make_token(aud="someone-else.apps.googleusercontent.com"))

    async def test_token_expired(self, verifier, make_token):
        """Test a token past its exp claim is rejected."""
        with pytest.raises(TokenExpired):
            await verifier.verify(make_token(exp=int(time.time()) - 60))

    async def test_missing_exp_is_expired(self, verifier, make_token):
        """Test a token without exp is never treated as unexpired."""
        with pytest.raises(TokenExpired):
            await verifier.verify(make_token(exp=None))

    async def test_leeway_tolerates_clock_skew(self, key_cache, make_token):
        """Test a token expired within the leeway still verifies."""
        verifier = IdTokenVerifier(
            key_cache, settings.google_issuer, settings.google_client_id, leeway=30
        )

        claims = await verifier.verify(make_token(exp=int(time.time()) - 10))

        assert claims["sub"] == "110169484474386276334"

    async def test_clock_is_injectable(self, key_cache, make_token):
        """Test expiry is judged against the injected clock."""
        exp = int(time.time()) + 3600
        verifier = IdTokenVerifier(
            key_cache,
            settings.google_issuer,
            settings.google_client_id,
            clock=lambda: exp + 1,
        )

        with pytest.raises(TokenExpired):
            await verifier.verify(make_token(exp=exp))

    async def test_missing_subject_is_malformed(self, verifier, make_token):
        """Test a verified token without sub never yields claims."""
        with pytest.raises(MalformedToken):
            await verifier.verify(make_token(sub=None))

    async def test_signature_checked_before_claims(self, verifier, make_token, rogue_private_pem):
        """Test a forged token with bad claims reports the signature, not the claims."""
        token = make_token(key=rogue_private_pem, aud="someone-else", iss="https://evil.example.com")

        with pytest.raises(SignatureInvalid):
            await verifier.verify(token)

    async def test_key_fetch_failure_propagates(self, make_token):
        """Test a key set outage is not mistaken for an unknown key."""
        cache = Mock()
        cache.get_signing_key = AsyncMock(side_effect=KeyFetchFailed("Key set fetch failed"))
        verifier = IdTokenVerifier(cache, settings.google_issuer, settings.google_client_id)

        with pytest.raises(KeyFetchFailed):
            await verifier.verify(make_token())

        cache.get_signing_key.assert_called_once_with("test-key-1")
