"""Google signing key set (JWKS) fetching and caching for ID token verification."""

import asyncio
import logging
from datetime import UTC, datetime

import httpx
from jose import jwk
from jose.backends import RSAKey
from jose.exceptions import JWKError

from src.signin.auth.exceptions import KeyFetchFailed

logger = logging.getLogger(__name__)


class KeySetCache:
    """
    Fetches and caches the provider's public signing keys, keyed by key id.

    Keys are never expired by age. A lookup for an unseen key id triggers one
    fetch of the full key set, which replaces the cache wholesale so keys
    retired by the provider disappear. Concurrent misses are coalesced into a
    single outbound request.

    Attributes:
        certs_url: URL of the provider certificate endpoint (JWKS document)
        _keys: Cached public keys (kid -> RSA key)
        _fetched_at: Timestamp of the last successful fetch
        _generation: Incremented on every successful fetch
        _refresh_lock: Serialises fetches so concurrent misses share one request
        _http_client: HTTP client for fetching the key set

    Example:
        >>> cache = KeySetCache("https://www.googleapis.com/oauth2/v3/certs")
        >>> key = await cache.get_signing_key("f5f4bf46e52b31d9b6249f7309ad0338400680cd")
    """

    def __init__(
        self,
        certs_url: str,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        """
        Initialize key set cache.

        Args:
            certs_url: URL to fetch the key set from
            http_client: Shared HTTP client (a private one is created if None)
            timeout: Connect/read timeout in seconds for the private client
        """
        self.certs_url = certs_url
        self._keys: dict[str, RSAKey] = {}
        self._fetched_at: datetime | None = None
        self._generation = 0
        self._refresh_lock = asyncio.Lock()
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    @property
    def fetched_at(self) -> datetime | None:
        """Timestamp of the last successful key set fetch."""
        return self._fetched_at

    async def get_signing_key(self, kid: str) -> RSAKey | None:
        """
        Get signing key by key ID (kid).

        A cache hit returns immediately. On a miss the key set is fetched once;
        callers that missed while another fetch was in flight reuse its result
        instead of fetching again.

        Args:
            kid: Key ID from the token header

        Returns:
            Public key for signature verification, or None if the key id is
            still unknown after a fresh fetch

        Raises:
            KeyFetchFailed: If the key set cannot be fetched or parsed
        """
        key = self._keys.get(kid)
        if key is not None:
            return key

        generation = self._generation
        async with self._refresh_lock:
            if self._generation == generation:
                logger.warning(
                    f"Key ID '{kid}' not found in cache, refreshing key set",
                    extra={"kid": kid, "cached_kids": list(self._keys)},
                )
                await self.refresh_keys()
            else:
                logger.debug("Key set refreshed by a concurrent lookup", extra={"kid": kid})

        return self._keys.get(kid)

    async def refresh_keys(self) -> None:
        """
        Fetch the key set and replace the cache.

        Each entry's base64url modulus/exponent pair is turned into an RSA
        public key. Entries without a kid or of another key type are skipped.

        Raises:
            KeyFetchFailed: If the HTTP request fails or the document is invalid
        """
        try:
            logger.info(f"Fetching key set from {self.certs_url}")
            response = await self._http_client.get(self.certs_url)
            response.raise_for_status()
            document = response.json()
        except httpx.HTTPError as e:
            logger.error(
                f"Failed to fetch key set from {self.certs_url}: {e}",
                extra={"error_type": "key_fetch_failed"},
            )
            raise KeyFetchFailed(f"Key set fetch failed: {e}") from e
        except ValueError as e:
            logger.error(
                f"Key set response is not JSON: {e}",
                extra={"error_type": "key_parse_failed"},
            )
            raise KeyFetchFailed("Key set response is not JSON") from e

        keys_list = document.get("keys") if isinstance(document, dict) else None
        if not isinstance(keys_list, list) or not all(isinstance(k, dict) for k in keys_list):
            logger.error(
                "Key set document has no list of key objects",
                extra={"error_type": "key_parse_failed", "certs_url": self.certs_url},
            )
            raise KeyFetchFailed("Key set document is not a list of key objects")

        new_keys: dict[str, RSAKey] = {}
        for key_data in keys_list:
            kid = key_data.get("kid")
            if not kid:
                logger.warning("Key set entry missing 'kid', skipping")
                continue
            if key_data.get("kty", "RSA") != "RSA":
                logger.debug(f"Skipping non-RSA key {kid}", extra={"kid": kid})
                continue

            try:
                new_keys[kid] = jwk.construct(
                    {"kty": "RSA", "n": key_data["n"], "e": key_data["e"]},
                    algorithm="RS256",
                )
            except (KeyError, JWKError, ValueError, TypeError) as e:
                logger.error(
                    f"Failed to parse key {kid}: {e}",
                    extra={"kid": kid, "error_type": "key_parse_failed"},
                )
                raise KeyFetchFailed(f"Invalid key material for kid '{kid}'") from e

        if not new_keys:
            logger.warning(
                "Key set response contains no usable keys. Token verification will "
                "fail until keys are available.",
                extra={"certs_url": self.certs_url},
            )

        self._keys = new_keys
        self._fetched_at = datetime.now(UTC)
        self._generation += 1

        logger.info(
            "Key set cache refreshed",
            extra={"key_count": len(new_keys), "key_ids": list(new_keys)},
        )

    async def close(self) -> None:
        """Close the HTTP client if this cache created it."""
        if self._owns_client:
            await self._http_client.aclose()
        logger.info("Key set cache closed")
