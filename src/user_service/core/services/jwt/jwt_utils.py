import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any, Final

from src.user_service.core.exceptions import MalformedTokenError

# ---------------- tunables ----------------
MAX_JWT_CHARS: Final = 16 * 1024
MAX_HEADER_BYTES: Final = 8 * 1024
MAX_PAYLOAD_BYTES: Final = 64 * 1024
_ALLOWED: Final = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_="
)


# --------------- structure ---------------
def _split_compact_jwt(token: str) -> tuple[str, str, str]:
    if not isinstance(token, str) or not token:
        raise MalformedTokenError("Empty JWT")
    if len(token) > MAX_JWT_CHARS:
        raise MalformedTokenError("Invalid JWT size")

    segments = token.split(".")
    if len(segments) != 3:
        raise MalformedTokenError(
            "Invalid JWT format", details={"segments": len(segments)}
        )
    h, p, s = segments
    if not h or not p:
        raise MalformedTokenError("Invalid JWT format")
    for seg in (h, p, s):
        if not set(seg) <= _ALLOWED:
            raise MalformedTokenError("Invalid JWT characters")
    return h, p, s


def _b64url_decode_unpadded(seg: str, what: str, max_bytes: int) -> bytes:
    seg = seg.rstrip("=")
    pad = (-len(seg)) % 4
    try:
        raw = base64.urlsafe_b64decode((seg + "=" * pad).encode("ascii"))
    except (binascii.Error, ValueError) as e:
        raise MalformedTokenError(f"Invalid base64url in {what}") from e
    if len(raw) > max_bytes:
        raise MalformedTokenError(f"{what} too large")
    return raw


def _decode_json_object(raw: bytes, what: str) -> dict[str, Any]:
    try:
        obj = json.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise MalformedTokenError(f"Non-UTF8 {what}") from e
    except json.JSONDecodeError as e:
        raise MalformedTokenError(f"Invalid JSON in {what}") from e
    if not isinstance(obj, dict):
        raise MalformedTokenError(f"{what} must be a JSON object")
    return obj


@dataclass(frozen=True)
class JwtPreview:
    header: dict[str, Any]
    claims: dict[str, Any]
    alg: str | None
    kid: str | None
    iss: str | None


def preview_jwt(token: str) -> JwtPreview:
    """Split and decode header+payload exactly once. The signature is not checked."""
    h_seg, p_seg, _ = _split_compact_jwt(token)
    header = _decode_json_object(
        _b64url_decode_unpadded(h_seg, "JWT header", MAX_HEADER_BYTES), "JWT header"
    )
    claims = _decode_json_object(
        _b64url_decode_unpadded(p_seg, "JWT payload", MAX_PAYLOAD_BYTES), "JWT payload"
    )
    iss = claims.get("iss")

    return JwtPreview(
        header=header,
        claims=claims,
        alg=header.get("alg"),
        kid=header.get("kid"),
        iss=iss if isinstance(iss, str) else None,
    )


def decode_claims(token: str) -> dict[str, Any]:
    """Return the payload claims of ``token`` without verifying it.

    Raises:
        MalformedTokenError: token is not three segments or the payload is not
            base64url encoded JSON.
    """
    return preview_jwt(token).claims


def get_claim(token: str, name: str) -> Any | None:
    """Return a single claim, or None when it is absent or the token is malformed."""
    try:
        return decode_claims(token).get(name)
    except MalformedTokenError:
        return None


def audience_list(claims: dict[str, Any]) -> list[Any]:
    """``aud`` may be a single string or a list; always hand back a list."""
    aud = claims.get("aud")
    if aud is None or aud == "":
        return []
    if isinstance(aud, str):
        return [aud]
    if isinstance(aud, (list, tuple)):
        return list(aud)
    return [aud]


class TokenCodec:
    """Injectable wrapper around the decoding helpers."""

    def preview(self, token: str) -> JwtPreview:
        return preview_jwt(token)

    def decode(self, token: str) -> dict[str, Any]:
        return decode_claims(token)

    def claim(self, token: str, name: str) -> Any | None:
        return get_claim(token, name)
