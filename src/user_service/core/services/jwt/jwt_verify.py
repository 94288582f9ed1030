"""Bearer token validation.

The default pipeline only inspects claims: tokens are expected to reach the
service through a TLS-terminating load balancer that already checked the
signature. ``verify_signature`` adds the cryptographic check and is enabled
through ``jwt.verify_signature`` in config.yaml.

Nothing in here raises for bad input. Every outcome is a
``TokenValidationResult`` carrying a reason code for the logs.
"""

import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from authlib.jose import JoseError, JsonWebKey, JsonWebToken
from loguru import logger

from src.user_service.core.exceptions import (
    IdentityError,
    MalformedTokenError,
    SignatureVerificationError,
    TokenExpiredOrUntrusted,
)
from src.user_service.core.services.jwt.jwks import JwksService
from src.user_service.core.services.jwt.jwt_utils import TokenCodec, audience_list
from src.user_service.runtime.config.config_data import CognitoConfig, JWTConfig


ACCEPTED_TOKEN_USES = frozenset({"id", "access"})


class ValidationReason(str, Enum):
    OK = "ok"
    TRUST_NOT_CONFIGURED = "trust_not_configured"
    EMPTY_TOKEN = "empty_token"
    MALFORMED_TOKEN = "malformed_token"
    INVALID_TOKEN_USE = "invalid_token_use"
    INVALID_ISSUER = "invalid_issuer"
    INVALID_AUDIENCE = "invalid_audience"
    MISSING_EXPIRY = "missing_expiry"
    TOKEN_EXPIRED = "token_expired"
    DISALLOWED_ALGORITHM = "disallowed_algorithm"
    UNKNOWN_KEY = "unknown_key"
    JWKS_UNAVAILABLE = "jwks_unavailable"
    SIGNATURE_INVALID = "signature_invalid"


_SIGNATURE_REASONS = {
    ValidationReason.DISALLOWED_ALGORITHM,
    ValidationReason.UNKNOWN_KEY,
    ValidationReason.JWKS_UNAVAILABLE,
    ValidationReason.SIGNATURE_INVALID,
}


@dataclass(frozen=True)
class TokenValidationResult:
    valid: bool
    reason: ValidationReason
    claims: dict[str, Any] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.valid

    @classmethod
    def accept(cls, claims: dict[str, Any]) -> "TokenValidationResult":
        return cls(True, ValidationReason.OK, claims)

    @classmethod
    def reject(
        cls, reason: ValidationReason, claims: dict[str, Any] | None = None
    ) -> "TokenValidationResult":
        return cls(False, reason, claims or {})

    def to_error(self) -> IdentityError | None:
        """Exception matching a failed result, None for a valid one."""
        if self.valid:
            return None
        message = f"Token rejected: {self.reason.value}"
        details = {"reason": self.reason.value}
        if self.reason in (ValidationReason.EMPTY_TOKEN, ValidationReason.MALFORMED_TOKEN):
            return MalformedTokenError(message, details=details)
        if self.reason in _SIGNATURE_REASONS:
            return SignatureVerificationError(message, details=details)
        return TokenExpiredOrUntrusted(message, details=details)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class TokenValidator:
    def __init__(
        self,
        trust: CognitoConfig,
        jwt_config: JWTConfig,
        jwks_service: JwksService,
        codec: TokenCodec | None = None,
    ):
        self._trust = trust
        self._jwt_config = jwt_config
        self._jwks_service = jwks_service
        self._codec = codec or TokenCodec()

    def validate_token(self, token: str | None, *, now: float | None = None) -> TokenValidationResult:
        """Run the claim checks: token_use, iss, aud (if present) and exp."""
        if not token:
            logger.warning("Token is empty")
            return TokenValidationResult.reject(ValidationReason.EMPTY_TOKEN)
        if not self._trust.is_trust_configured:
            logger.warning("Token rejected: user pool or client id is not configured")
            return TokenValidationResult.reject(ValidationReason.TRUST_NOT_CONFIGURED)

        try:
            claims = self._codec.decode(token)
        except MalformedTokenError as exc:
            logger.warning(f"Token rejected ({ValidationReason.MALFORMED_TOKEN.value}): {exc.message}")
            return TokenValidationResult.reject(ValidationReason.MALFORMED_TOKEN)

        token_use = claims.get("token_use")
        if not isinstance(token_use, str) or token_use not in ACCEPTED_TOKEN_USES:
            return self._reject(ValidationReason.INVALID_TOKEN_USE, claims, token_use)

        issuer = claims.get("iss")
        if issuer != self._trust.expected_issuer:
            return self._reject(ValidationReason.INVALID_ISSUER, claims, issuer)

        # access tokens carry client_id instead of aud, so a missing aud passes
        audiences = audience_list(claims)
        if audiences:
            if audiences[0] != self._trust.client_id:
                return self._reject(ValidationReason.INVALID_AUDIENCE, claims, audiences[0])
        else:
            logger.debug("Token has no aud claim, most likely an access token")

        exp = claims.get("exp")
        if not _is_number(exp) or not math.isfinite(exp):
            return self._reject(ValidationReason.MISSING_EXPIRY, claims, exp)
        current = time.time() if now is None else now
        if not exp > current:
            return self._reject(ValidationReason.TOKEN_EXPIRED, claims, exp)

        logger.debug(f"Token accepted for sub={claims.get('sub')}")
        return TokenValidationResult.accept(claims)

    async def verify_signature(self, token: str | None) -> TokenValidationResult:
        """Verify the RS256 signature against the provider key set.

        Issuer and audience are pinned to the trust configuration and the
        expiry is checked again by authlib.
        """
        if not token:
            return TokenValidationResult.reject(ValidationReason.EMPTY_TOKEN)

        try:
            preview = self._codec.preview(token)
        except MalformedTokenError:
            return TokenValidationResult.reject(ValidationReason.MALFORMED_TOKEN)

        if preview.alg not in self._jwt_config.allowed_algorithms:
            return self._reject(ValidationReason.DISALLOWED_ALGORITHM, preview.claims, preview.alg)

        try:
            jwk = await self._jwks_service.get_signing_key(self._trust.jwks_url, preview.kid)
        except SignatureVerificationError as exc:
            reason = ValidationReason(exc.details.get("reason", ValidationReason.SIGNATURE_INVALID.value))
            return self._reject(reason, preview.claims, exc.message)

        claims_options = {
            "iss": {"essential": True, "value": self._trust.expected_issuer},
            "aud": {"essential": False, "value": self._trust.client_id},
            "exp": {"essential": True},
        }
        try:
            verifier = JsonWebToken(self._jwt_config.allowed_algorithms)
            claims = verifier.decode(
                token, JsonWebKey.import_key(jwk), claims_options=claims_options
            )
            claims.validate()
        except (JoseError, ValueError, TypeError) as exc:
            return self._reject(ValidationReason.SIGNATURE_INVALID, preview.claims, exc)

        logger.debug("JWT signature verified")
        return TokenValidationResult.accept(dict(claims))

    async def authenticate(self, token: str | None) -> TokenValidationResult:
        """Claim checks, followed by the signature check when strict mode is on."""
        result = self.validate_token(token)
        if not result.valid or not self._jwt_config.verify_signature:
            return result
        return await self.verify_signature(token)

    @staticmethod
    def _reject(
        reason: ValidationReason, claims: dict[str, Any], observed: Any
    ) -> TokenValidationResult:
        logger.warning(f"Token rejected ({reason.value}): observed={observed!r}")
        return TokenValidationResult.reject(reason, claims)
