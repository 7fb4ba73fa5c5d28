"""Google ID token verification using the cached provider key set."""

import json
import logging
import time
from collections.abc import Callable
from typing import Any

from jose import JWTError, jws, jwt
from jose.exceptions import JWSError

from src.signin.auth.exceptions import (
    AudienceMismatch,
    IssuerMismatch,
    MalformedToken,
    SignatureInvalid,
    TokenExpired,
    UnknownSigningKey,
)
from src.signin.auth.jwks import KeySetCache

logger = logging.getLogger(__name__)

ALGORITHM = "RS256"


class IdTokenVerifier:
    """
    Verifies Google ID tokens locally against the cached key set.

    The token is parsed structurally first, only to read its key id. Claims
    are taken from the payload returned by signature verification, so nothing
    in an unverified token is trusted.

    Attributes:
        key_cache: Key set cache used to resolve the signing key
        issuer: Expected issuer (iss claim)
        audience: Expected audience (aud claim), the OAuth client id
        leeway: Clock skew tolerance in seconds applied to exp

    Example:
        >>> verifier = IdTokenVerifier(cache, "https://accounts.google.com", client_id)
        >>> claims = await verifier.verify(id_token)
        >>> subject = claims["sub"]
    """

    def __init__(
        self,
        key_cache: KeySetCache,
        issuer: str,
        audience: str,
        leeway: int = 0,
        clock: Callable[[], float] = time.time,
    ):
        self.key_cache = key_cache
        self.issuer = issuer
        self.audience = audience
        self.leeway = leeway
        self._clock = clock

    async def verify(self, id_token: str) -> dict[str, Any]:
        """
        Verify an ID token and return its claims.

        Steps, in order:
        1. Parse header and payload without verification (key id, algorithm)
        2. Resolve the public key for the key id
        3. Verify the RS256 signature
        4. Check issuer
        5. Check audience
        6. Check expiry against the current time

        Args:
            id_token: Compact serialized ID token

        Returns:
            Verified claims

        Raises:
            MalformedToken: Unparseable token, missing kid, non-RS256 alg, or empty sub
            UnknownSigningKey: Key id absent after a key set refresh
            SignatureInvalid: Signature does not verify
            IssuerMismatch: iss is not the provider issuer
            AudienceMismatch: aud is not this client id
            TokenExpired: exp missing or in the past
            KeyFetchFailed: Key set could not be fetched
        """
        kid = self._read_key_id(id_token)

        signing_key = await self.key_cache.get_signing_key(kid)
        if signing_key is None:
            logger.warning(
                "ID token signed with unknown key",
                extra={"error_type": "unknown_signing_key", "kid": kid},
            )
            raise UnknownSigningKey(f"No provider key for kid '{kid}'")

        try:
            payload = jws.verify(id_token, signing_key, algorithms=[ALGORITHM])
        except JWSError as e:
            logger.warning(
                f"ID token signature rejected: {e}",
                extra={"error_type": "signature_invalid", "kid": kid},
            )
            raise SignatureInvalid("Signature verification failed") from e

        try:
            claims = json.loads(payload)
        except ValueError as e:
            raise MalformedToken("Token payload is not JSON") from e
        if not isinstance(claims, dict):
            raise MalformedToken("Token payload is not a JSON object")

        self._check_issuer(claims)
        self._check_audience(claims)
        self._check_expiry(claims)

        if not claims.get("sub"):
            raise MalformedToken("Token has no subject")

        logger.debug(
            "ID token verified",
            extra={"kid": kid, "exp": claims.get("exp")},
        )
        return claims

    def _read_key_id(self, id_token: str) -> str:
        try:
            header = jwt.get_unverified_header(id_token)
            jwt.get_unverified_claims(id_token)
        except JWTError as e:
            logger.warning(
                f"Malformed ID token: {e}", extra={"error_type": "malformed_token"}
            )
            raise MalformedToken("Token could not be parsed") from e

        if header.get("alg") != ALGORITHM:
            raise MalformedToken(f"Unsupported token algorithm: {header.get('alg')}")

        kid = header.get("kid")
        if not kid or not isinstance(kid, str):
            raise MalformedToken("Token header missing 'kid' (key ID)")
        return kid

    def _check_issuer(self, claims: dict[str, Any]) -> None:
        if claims.get("iss") != self.issuer:
            logger.warning("ID token issuer mismatch", extra={"error_type": "issuer_mismatch"})
            raise IssuerMismatch("Token issuer does not match")

    def _check_audience(self, claims: dict[str, Any]) -> None:
        aud = claims.get("aud")
        if isinstance(aud, list):
            matches = self.audience in aud
        else:
            matches = aud == self.audience
        if not matches:
            logger.warning("ID token audience mismatch", extra={"error_type": "audience_mismatch"})
            raise AudienceMismatch("Token audience does not match")

    def _check_expiry(self, claims: dict[str, Any]) -> None:
        exp = claims.get("exp")
        if isinstance(exp, bool) or not isinstance(exp, int | float):
            raise TokenExpired("Token has no usable exp claim")
        if exp + self.leeway < self._clock():
            logger.info("ID token expired", extra={"error_type": "token_expired", "exp": exp})
            raise TokenExpired("Token has expired")
