"""
Module: jwks.py
Description: Signing key resolver for the identity provider.

Fetches the user pool's JSON Web Key Set over HTTPS and caches it in
process memory. A lookup for an unknown key id refreshes the set once,
which picks up provider key rotation without a restart.

Key Components:
- KeyResolver: Cached kid -> SigningKey lookup
- parse_jwks(): JWKS document to immutable key mapping

Dependencies: httpx, time, typing
Author: Gallery Gateway Team
"""

import time
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional

import httpx

from gallery_gateway.models.identity import SigningKey
from gallery_gateway.utils.errors import KeyFetchError, KeyNotFoundError
from gallery_gateway.utils.logger import get_logger

logger = get_logger(__name__)


def parse_jwks(document: Any) -> Mapping[str, SigningKey]:
    """
    Convert a JWKS document into a read-only kid -> SigningKey mapping.

    Keys that are not RSA, or that declare an algorithm other than
    RS256, are skipped. A structurally broken document or entry makes
    the whole set invalid.

    Args:
        document: Decoded JSON body of the JWKS endpoint

    Returns:
        Immutable mapping of key id to SigningKey

    Raises:
        ValueError: If the document is not a valid key set
    """
    if not isinstance(document, dict) or not isinstance(document.get("keys"), list):
        raise ValueError("JWKS document must be an object with a 'keys' list")

    keys: Dict[str, SigningKey] = {}
    for entry in document["keys"]:
        if not isinstance(entry, dict):
            raise ValueError("JWKS entry must be an object")
        if entry.get("kty", "RSA") != "RSA":
            continue
        if entry.get("alg", "RS256") != "RS256":
            continue
        if entry.get("use", "sig") != "sig":
            continue
        key = SigningKey.from_jwk(entry)
        keys[key.key_id] = key

    return MappingProxyType(keys)


class KeyResolver:
    """
    Resolves token key ids to the provider's public signing keys.

    The key set is cached for ttl_seconds. A refresh builds a new mapping
    and swaps the reference, so concurrent readers see either the old or
    the new set and never a partial one.

    Attributes:
        jwks_url: Well-known JWKS endpoint of the user pool
        ttl_seconds: Freshness window of a fetched key set
        timeout_seconds: Timeout applied to each fetch

    Example:
        >>> resolver = KeyResolver("https://cognito-idp.us-east-1.amazonaws.com/us-east-1_X/.well-known/jwks.json")
        >>> key = await resolver.resolve("abc123")
    """

    def __init__(
        self,
        jwks_url: str,
        ttl_seconds: float = 3600,
        timeout_seconds: float = 5.0,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the resolver.

        Args:
            jwks_url: JWKS endpoint URL
            ttl_seconds: Seconds a fetched key set stays fresh
            timeout_seconds: HTTP timeout for each fetch
            http_client: Optional shared client; a short-lived client is
                created per fetch when omitted
            clock: Monotonic time source in seconds

        Raises:
            ValueError: If jwks_url is not an HTTPS URL
        """
        if not jwks_url or not isinstance(jwks_url, str):
            raise ValueError("jwks_url must be a non-empty string")
        if not jwks_url.startswith("https://"):
            raise ValueError("jwks_url must be an HTTPS URL")

        self.jwks_url = jwks_url
        self.ttl_seconds = ttl_seconds
        self.timeout = httpx.Timeout(timeout_seconds, connect=timeout_seconds)
        self._http_client = http_client
        self._clock = clock

        self._keys: Mapping[str, SigningKey] = MappingProxyType({})
        self._fetched_at: Optional[float] = None

    @property
    def cached_key_ids(self) -> frozenset:
        return frozenset(self._keys)

    def _is_fresh(self) -> bool:
        if self._fetched_at is None:
            return False
        return (self._clock() - self._fetched_at) < self.ttl_seconds

    async def resolve(self, key_id: str) -> SigningKey:
        """
        Return the signing key with the given id.

        Uses the cached set while it is fresh. A stale cache, or a key id
        missing from the cache, triggers exactly one fetch.

        Args:
            key_id: kid from the token header

        Returns:
            Matching SigningKey

        Raises:
            KeyNotFoundError: If the key is absent after the refresh
            KeyFetchError: If the key set cannot be fetched or parsed
        """
        if self._is_fresh():
            key = self._keys.get(key_id)
            if key is not None:
                return key
            logger.info(
                "Signing key not cached, refreshing key set",
                key_id=key_id,
                cached_key_ids=sorted(self._keys)
            )

        keys = await self.refresh()
        key = keys.get(key_id)
        if key is None:
            logger.warning(
                "Signing key not found after refresh",
                key_id=key_id,
                available_key_ids=sorted(keys)
            )
            raise KeyNotFoundError(key_id)
        return key

    async def refresh(self) -> Mapping[str, SigningKey]:
        """
        Fetch the key set and replace the cache.

        Returns:
            The newly cached mapping

        Raises:
            KeyFetchError: On network error, timeout, non-2xx status or
                malformed body. The existing cache is left untouched.
        """
        document = await self._fetch()

        try:
            keys = parse_jwks(document)
        except ValueError as e:
            logger.error(
                "Malformed JWKS document",
                jwks_url=self.jwks_url,
                error=str(e)
            )
            raise KeyFetchError() from e

        self._keys = keys
        self._fetched_at = self._clock()

        logger.info(
            "Signing key set refreshed",
            jwks_url=self.jwks_url,
            key_count=len(keys),
            key_ids=sorted(keys)
        )
        return keys

    async def _fetch(self) -> Any:
        try:
            if self._http_client is not None:
                response = await self._http_client.get(self.jwks_url, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(self.jwks_url)

            response.raise_for_status()
            return response.json()

        except httpx.TimeoutException as e:
            logger.error(
                "JWKS fetch timeout",
                jwks_url=self.jwks_url
            )
            raise KeyFetchError() from e

        except httpx.HTTPStatusError as e:
            logger.error(
                "JWKS fetch HTTP error",
                jwks_url=self.jwks_url,
                status_code=e.response.status_code,
                response=e.response.text[:500]
            )
            raise KeyFetchError() from e

        except httpx.HTTPError as e:
            logger.error(
                "JWKS fetch network error",
                jwks_url=self.jwks_url,
                error=str(e),
                error_type=type(e).__name__
            )
            raise KeyFetchError() from e

        except ValueError as e:
            logger.error(
                "JWKS response is not valid JSON",
                jwks_url=self.jwks_url,
                error=str(e)
            )
            raise KeyFetchError() from e
