"""Domain error hierarchy of the user service.

Token validation never raises these across its boundary; it reports the
matching reason code instead. Exchange and provisioning errors are fatal to
the login flow and are mapped to HTTP responses in
``src.user_service.api.http.app``.
"""

from typing import Any


class IdentityError(Exception):
    """Base class for every domain error.

    Attributes:
        message: Human readable description, safe to return to clients.
        code: Stable error code used for HTTP status mapping.
        details: Extra context (entity, id, upstream status, ...).
    """

    code = "IDENTITY_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code or self.code
        self.details = details or {}
        super().__init__(message)


class MalformedTokenError(IdentityError):
    """Token is not a three-segment compact JWT with a JSON payload."""

    code = "MALFORMED_TOKEN"


class TokenExpiredOrUntrusted(IdentityError):
    """Token decoded fine but one of the claim checks failed."""

    code = "TOKEN_UNTRUSTED"


class SignatureVerificationError(IdentityError):
    """Strict mode could not verify the token signature."""

    code = "SIGNATURE_INVALID"


class TokenExchangeError(IdentityError):
    """The provider token endpoint failed or could not be reached."""

    code = "TOKEN_EXCHANGE_FAILED"


class AuthenticationError(IdentityError):
    """Login flow failed; no session and no partial state."""

    code = "AUTHENTICATION_FAILED"

    def __init__(self, message: str = "Authentication failed", details: dict[str, Any] | None = None):
        super().__init__(message, details=details)


class NotFoundError(IdentityError):
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str):
        super().__init__(
            f"{entity} not found: {entity_id}",
            details={"entity": entity, "id": entity_id},
        )


class ConflictError(IdentityError):
    code = "CONFLICT"


# reason code only; unrecognized phone numbers are logged and passed through
PHONE_FORMAT_UNRECOGNIZED = "PhoneFormatUnrecognized"


__all__ = [
    "IdentityError",
    "MalformedTokenError",
    "TokenExpiredOrUntrusted",
    "SignatureVerificationError",
    "TokenExchangeError",
    "AuthenticationError",
    "NotFoundError",
    "ConflictError",
    "PHONE_FORMAT_UNRECOGNIZED",
]
