"""JWKS (JSON Web Key Set) fetching and caching for identity token verification."""

import asyncio
import logging
from datetime import datetime, timezone

import httpx
from jose import jwk
from jose.backends.base import Key
from jose.exceptions import JWKError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.signin.services.auth.exceptions import KeySetUnavailable

logger = logging.getLogger(__name__)


class JWKSCache:
    """
    Read-through cache of one identity provider's public signing keys.

    Keys are fetched lazily on first use and kept in memory for ``cache_ttl``
    seconds. An unknown key ID triggers one extra refresh so that vendor key
    rotation is picked up without a restart. Concurrent refreshes are
    collapsed into a single HTTP request.

    Attributes:
        jwks_url: URL to fetch JWKS from (e.g. https://appleid.apple.com/auth/keys)
        cache_ttl: Cache time-to-live in seconds (default: 3600 = 1 hour)
        _keys: Cached keys (kid -> key), RSA or EC
        _last_refresh: Timestamp of last successful JWKS fetch
        _http_client: HTTP client for fetching JWKS

    Example:
        >>> cache = JWKSCache("https://appleid.apple.com/auth/keys")
        >>> signing_key = await cache.get_signing_key("W6WcOKB")
    """

    def __init__(self, jwks_url: str, cache_ttl: int = 3600):
        self.jwks_url = jwks_url
        self.cache_ttl = cache_ttl
        self._keys: dict[str, Key] = {}
        self._last_refresh: datetime | None = None
        self._refresh_lock = asyncio.Lock()
        self._http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(10.0, read=30.0, connect=10.0, write=10.0)
        )

    async def get_signing_key(self, kid: str) -> Key:
        """
        Get signing key by key ID (kid).

        Refreshes the JWKS when the cache has expired, or once more when the
        key ID is not cached (vendor key rotation).

        Args:
            kid: Key ID from JWT header

        Returns:
            Public key for signature verification (RSA or EC)

        Raises:
            ValueError: If key ID not found after refresh
            httpx.HTTPError: If JWKS fetch fails
            KeySetUnavailable: If the JWKS response cannot be parsed
        """
        if self._needs_refresh():
            await self._refresh_unless_done(self._last_refresh)

        key = self._keys.get(kid)

        if key is None:
            logger.warning(
                f"Key ID '{kid}' not found in cache, refreshing JWKS",
                extra={"kid": kid, "cached_kids": list(self._keys.keys())},
            )
            await self._refresh_unless_done(self._last_refresh)
            key = self._keys.get(kid)

        if key is None:
            raise ValueError(
                f"Key ID '{kid}' not found in JWKS. Available keys: {list(self._keys.keys())}"
            )

        return key

    async def _refresh_unless_done(self, seen_refresh: datetime | None) -> None:
        """Refresh unless another task completed a refresh while we waited for the lock."""
        async with self._refresh_lock:
            if self._last_refresh != seen_refresh:
                return
            await self.refresh_keys()

    async def refresh_keys(self) -> None:
        """
        Fetch JWKS from the provider and replace the cache.

        Raises:
            httpx.HTTPError: If HTTP request fails
            KeySetUnavailable: If the response is not a JWK set
        """
        try:
            logger.info(f"Fetching JWKS from {self.jwks_url}")
            keys_list = (await self._fetch_jwks()).get("keys", [])

            if not keys_list:
                logger.warning(
                    "JWKS response contains no keys. Token verification will fail "
                    "until keys are available.",
                    extra={"jwks_url": self.jwks_url},
                )
                self._keys = {}
                self._last_refresh = datetime.now(timezone.utc)
                return

            new_keys: dict[str, Key] = {}
            for key_data in keys_list:
                kid = key_data.get("kid") if isinstance(key_data, dict) else None
                if not kid:
                    logger.warning("JWKS key missing 'kid', skipping")
                    continue

                kty = key_data.get("kty")
                if kty == "EC":
                    algorithm = "ES256"
                elif kty == "RSA":
                    algorithm = "RS256"
                else:
                    algorithm = key_data.get("alg", "RS256")

                try:
                    new_keys[kid] = jwk.construct(key_data, algorithm=algorithm)
                except (JWKError, ValueError) as e:
                    logger.warning(
                        f"JWKS key {kid} could not be loaded, skipping: {e}",
                        extra={"kid": kid, "kty": kty, "alg": algorithm},
                    )
                    continue

                logger.debug(
                    f"Loaded key {kid} (type: {kty}, algorithm: {algorithm})",
                    extra={"kid": kid, "kty": kty, "alg": algorithm},
                )

            # Atomic update
            self._keys = new_keys
            self._last_refresh = datetime.now(timezone.utc)

            logger.info(
                "JWKS cache refreshed successfully",
                extra={
                    "jwks_url": self.jwks_url,
                    "key_count": len(new_keys),
                    "key_ids": list(new_keys.keys()),
                    "ttl_seconds": self.cache_ttl,
                },
            )

        except httpx.HTTPError as e:
            logger.error(
                f"Failed to fetch JWKS from {self.jwks_url}: {e}",
                exc_info=True,
                extra={"error_type": "jwks_fetch_failed"},
            )
            raise

        except Exception as e:
            logger.error(
                f"Failed to parse JWKS: {e}",
                exc_info=True,
                extra={"error_type": "jwks_parse_failed"},
            )
            raise KeySetUnavailable("Identity provider returned an invalid key set") from e

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    async def _fetch_jwks(self) -> dict:
        """GET the key set, retrying connection-level failures."""
        response = await self._http_client.get(self.jwks_url)
        response.raise_for_status()
        return response.json()

    def _needs_refresh(self) -> bool:
        """Return True if the cache is stale or was never filled."""
        if self._last_refresh is None:
            return True

        age = (datetime.now(timezone.utc) - self._last_refresh).total_seconds()
        return age >= self.cache_ttl

    async def close(self) -> None:
        """Close the HTTP client. Called during application shutdown."""
        await self._http_client.aclose()
        logger.info("JWKS cache closed", extra={"jwks_url": self.jwks_url})
