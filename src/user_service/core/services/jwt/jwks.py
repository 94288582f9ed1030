from abc import ABC, abstractmethod
from typing import Any

import httpx
from cachetools import TTLCache
from loguru import logger

from src.user_service.core.exceptions import SignatureVerificationError


class JWKSCache(ABC):
    @abstractmethod
    def get_jwks(self, jwks_url: str) -> dict[str, Any]:
        """
        Get the cached key set published at ``jwks_url``.

        Returns:
            JWKS dictionary, empty when nothing is cached
        """
        raise NotImplementedError

    @abstractmethod
    def set_jwks(self, jwks_url: str, jwks: dict[str, Any]) -> None:
        """Store the key set fetched from ``jwks_url``."""
        raise NotImplementedError

    @abstractmethod
    def clear_jwks_cache(self) -> None:
        """Clear the JWKS cache."""
        raise NotImplementedError


class JWKSCacheInMemory(JWKSCache):
    def __init__(self, ttl: int = 3600, maxsize: int = 10) -> None:
        self._cache: TTLCache[str, dict[str, Any]] = TTLCache(maxsize=maxsize, ttl=ttl)

    def get_jwks(self, jwks_url: str) -> dict[str, Any]:
        return self._cache.get(jwks_url, {})

    def set_jwks(self, jwks_url: str, jwks: dict[str, Any]) -> None:
        self._cache[jwks_url] = jwks

    def clear_jwks_cache(self) -> None:
        self._cache.clear()


class JwksService:
    """Fetches the provider's published signing keys, with caching."""

    def __init__(self, cache: JWKSCache, timeout: float = 5.0) -> None:
        self._cache = cache
        self._timeout = timeout

    async def fetch_jwks(self, jwks_url: str) -> dict[str, Any]:
        if not jwks_url:
            raise SignatureVerificationError("No JWKS URL configured")

        jwks = self._cache.get_jwks(jwks_url)
        if jwks:
            return jwks

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.get(jwks_url)
                resp.raise_for_status()
                jwks = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(f"Failed to fetch JWKS from {jwks_url}: {exc}")
            raise SignatureVerificationError(
                f"Failed to fetch JWKS: {exc}", details={"reason": "jwks_unavailable"}
            ) from exc

        if not isinstance(jwks, dict) or not isinstance(jwks.get("keys"), list):
            raise SignatureVerificationError(
                "JWKS response has no key list", details={"reason": "jwks_unavailable"}
            )

        self._cache.set_jwks(jwks_url, jwks)
        return jwks

    async def get_signing_key(self, jwks_url: str, kid: str | None) -> dict[str, Any]:
        """Return the JWK whose ``kid`` matches the token header."""
        if not kid:
            raise SignatureVerificationError(
                "Token header has no kid", details={"reason": "unknown_key"}
            )
        jwks = await self.fetch_jwks(jwks_url)
        for key in jwks.get("keys", []):
            if key.get("kid") == kid:
                return key
        raise SignatureVerificationError(
            f"No JWK matches kid={kid}", details={"reason": "unknown_key"}
        )
