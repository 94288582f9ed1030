import base64
import json
import time
from collections.abc import Callable
from typing import Any

import pytest
from authlib.jose import JsonWebKey, JsonWebToken

from .config import CLIENT_ID, ISSUER

TEST_KID = "test-signing-key"

__all__ = [
    "TEST_KID",
    "encode_unsigned",
    "base_claims",
    "make_token",
    "rsa_private_key",
    "rsa_public_jwk",
    "sign_token",
]


def _b64url(data: dict[str, Any]) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def encode_unsigned(claims: dict[str, Any], header: dict[str, Any] | None = None) -> str:
    """Compact JWT with a placeholder signature; enough for claim-only checks."""
    header = header or {"alg": "RS256", "kid": TEST_KID, "typ": "JWT"}
    return f"{_b64url(header)}.{_b64url(claims)}.c2lnbmF0dXJl"


@pytest.fixture
def base_claims() -> dict[str, Any]:
    """ID token claims that pass every claim check."""
    return {
        "sub": "3f1c2d4e-0000-4a5b-9c8d-abcdef012345",
        "token_use": "id",
        "iss": ISSUER,
        "aud": CLIENT_ID,
        "exp": int(time.time()) + 3600,
        "iat": int(time.time()),
        "name": "김철수",
        "phone_number": "+821012345678",
        "address": {"formatted": "서울특별시 강남구 테헤란로 1"},
    }


@pytest.fixture
def make_token(base_claims: dict[str, Any]) -> Callable[..., str]:
    """Build an unsigned token from ``base_claims``; ``None`` values drop a claim."""

    def _make(**overrides: Any) -> str:
        claims = dict(base_claims)
        for name, value in overrides.items():
            if value is None:
                claims.pop(name, None)
            else:
                claims[name] = value
        return encode_unsigned(claims)

    return _make


@pytest.fixture(scope="session")
def rsa_private_key():
    return JsonWebKey.generate_key("RSA", 2048, is_private=True)


@pytest.fixture(scope="session")
def rsa_public_jwk(rsa_private_key) -> dict[str, Any]:
    jwk = rsa_private_key.as_dict(is_private=False)
    jwk["kid"] = TEST_KID
    jwk["alg"] = "RS256"
    jwk["use"] = "sig"
    return jwk


@pytest.fixture
def sign_token(rsa_private_key, base_claims: dict[str, Any]) -> Callable[..., str]:
    """RS256-sign ``base_claims`` merged with overrides."""

    def _sign(kid: str = TEST_KID, **overrides: Any) -> str:
        claims = {**base_claims, **overrides}
        header = {"alg": "RS256", "kid": kid}
        token = JsonWebToken(["RS256"]).encode(header, claims, rsa_private_key)
        return token.decode("ascii")

    return _sign
