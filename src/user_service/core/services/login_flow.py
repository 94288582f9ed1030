"""Authorization-code login: exchange, claim extraction and user provisioning."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from loguru import logger

from src.user_service.core.exceptions import (
    AuthenticationError,
    IdentityError,
    MalformedTokenError,
)
from src.user_service.core.services.jwt.jwt_utils import TokenCodec
from src.user_service.core.services.jwt.jwt_verify import TokenValidator
from src.user_service.core.services.oidc_client_service import (
    OidcClientService,
    TokenResponse,
)
from src.user_service.core.services.user.identity_resolver import IdentityResolver
from src.user_service.entities.core.user import User


class LoginState(str, Enum):
    CODE_RECEIVED = "code_received"
    TOKEN_EXCHANGED = "token_exchanged"
    CLAIMS_EXTRACTED = "claims_extracted"
    IDENTITY_RESOLVED = "identity_resolved"
    SESSION_ESTABLISHED = "session_established"
    LOGIN_FAILED = "login_failed"


@dataclass
class LoginResult:
    tokens: TokenResponse
    claims: dict[str, Any]
    user: User
    state: LoginState = LoginState.SESSION_ESTABLISHED
    oauth_state: str | None = None
    history: list[LoginState] = field(default_factory=list)


class LoginFlowService:
    """Drives one login attempt through its states.

    The resolver is only reached once the ID token claims are in hand, so a
    failed exchange or an unreadable ID token never creates a user record.
    When a validator is supplied the fresh ID token also goes through the
    claim checks before provisioning.
    """

    def __init__(
        self,
        oidc_client: OidcClientService,
        resolver: IdentityResolver,
        codec: TokenCodec | None = None,
        validator: TokenValidator | None = None,
    ):
        self._oidc_client = oidc_client
        self._resolver = resolver
        self._codec = codec or TokenCodec()
        self._validator = validator

    async def complete_login(self, code: str | None, state: str | None = None) -> LoginResult:
        """Run the flow for an authorization code.

        ``state`` is carried through untouched; CSRF matching happens at the
        edge that issued it.

        Raises:
            AuthenticationError: any step failed. ``details["state"]`` names
                the last state reached before the failure.
        """
        history: list[LoginState] = []

        def advance(next_state: LoginState) -> None:
            history.append(next_state)
            logger.debug(f"Login flow -> {next_state.value}")

        if not code:
            logger.warning("Login attempted without an authorization code")
            raise AuthenticationError("Authorization code is required", details={"state": None})
        advance(LoginState.CODE_RECEIVED)

        try:
            tokens = await self._oidc_client.exchange_code_for_tokens(code)
        except IdentityError as exc:
            raise self._fail(history, f"Token exchange failed: {exc.message}") from exc
        advance(LoginState.TOKEN_EXCHANGED)

        if not tokens.id_token:
            raise self._fail(history, "Token response has no id_token")
        try:
            claims = self._codec.decode(tokens.id_token)
        except MalformedTokenError as exc:
            raise self._fail(history, f"ID token could not be decoded: {exc.message}") from exc

        if self._validator is not None:
            result = self._validator.validate_token(tokens.id_token)
            if not result.valid:
                error = result.to_error()
                raise self._fail(history, error.message) from error
        advance(LoginState.CLAIMS_EXTRACTED)

        try:
            user = self._resolver.resolve_or_provision(claims)
        except AuthenticationError as exc:
            raise self._fail(history, exc.message) from exc
        except Exception as exc:
            logger.exception(f"Provisioning failed for sub={claims.get('sub')}")
            raise self._fail(history, "User provisioning failed") from exc
        advance(LoginState.IDENTITY_RESOLVED)

        advance(LoginState.SESSION_ESTABLISHED)
        logger.info(f"Login completed for user {user.id}")
        return LoginResult(
            tokens=tokens,
            claims=claims,
            user=user,
            oauth_state=state,
            history=history,
        )

    @staticmethod
    def _fail(history: list[LoginState], message: str) -> AuthenticationError:
        last = history[-1] if history else None
        history.append(LoginState.LOGIN_FAILED)
        logger.warning(
            f"Login failed after {last.value if last else 'start'}: {message}"
        )
        return AuthenticationError(
            message,
            details={"state": last.value if last else None},
        )
