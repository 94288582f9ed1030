"""Unit tests for the authorization-code login flow."""

from unittest.mock import AsyncMock, Mock, patch

import pytest

from src.user_service.core.exceptions import AuthenticationError, TokenExchangeError
from src.user_service.core.services import (
    IdentityResolver,
    LoginFlowService,
    LoginState,
    OidcClientService,
    TokenResponse,
)
from src.user_service.core.services.jwt import JWKSCacheInMemory, JwksService, TokenValidator
from src.user_service.entities.core.user import UserRepository


@pytest.fixture
def oidc_client(trust_config) -> OidcClientService:
    return OidcClientService(trust_config)


@pytest.fixture
def resolver(db_service) -> IdentityResolver:
    return IdentityResolver(db_service)


@pytest.fixture
def validator(trust_config, jwt_config) -> TokenValidator:
    return TokenValidator(trust_config, jwt_config, JwksService(JWKSCacheInMemory()))


@pytest.fixture
def login_flow(oidc_client, resolver, validator) -> LoginFlowService:
    return LoginFlowService(oidc_client, resolver, validator=validator)


def _stored_users(db_service) -> int:
    with db_service.session_scope() as session:
        return UserRepository(session).count()


def _tokens(id_token: str | None) -> TokenResponse:
    return TokenResponse(
        access_token="access-token",
        id_token=id_token,
        refresh_token="refresh-token",
        expires_in=3600,
    )


class TestCompleteLogin:
    @pytest.mark.asyncio
    async def test_successful_login_provisions_user(
        self, login_flow, oidc_client, db_service, make_token, base_claims
    ):
        with patch.object(
            oidc_client, "exchange_code_for_tokens", AsyncMock(return_value=_tokens(make_token()))
        ) as exchange:
            result = await login_flow.complete_login("auth-code", "state-1")

        exchange.assert_awaited_once_with("auth-code")
        assert result.state is LoginState.SESSION_ESTABLISHED
        assert result.oauth_state == "state-1"
        assert result.user.id == base_claims["sub"]
        assert result.claims["sub"] == base_claims["sub"]
        assert result.tokens.access_token == "access-token"
        assert result.history == [
            LoginState.CODE_RECEIVED,
            LoginState.TOKEN_EXCHANGED,
            LoginState.CLAIMS_EXTRACTED,
            LoginState.IDENTITY_RESOLVED,
            LoginState.SESSION_ESTABLISHED,
        ]
        assert _stored_users(db_service) == 1

    @pytest.mark.asyncio
    async def test_second_login_reuses_record(self, login_flow, oidc_client, db_service, make_token):
        with patch.object(
            oidc_client, "exchange_code_for_tokens", AsyncMock(return_value=_tokens(make_token()))
        ):
            first = await login_flow.complete_login("code-1")
            second = await login_flow.complete_login("code-2")

        assert first.user == second.user
        assert _stored_users(db_service) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", [None, ""])
    async def test_missing_code(self, login_flow, oidc_client, code):
        with patch.object(oidc_client, "exchange_code_for_tokens", AsyncMock()) as exchange:
            with pytest.raises(AuthenticationError):
                await login_flow.complete_login(code)

        exchange.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rejected_exchange_creates_no_user(
        self, login_flow, db_service, mock_httpx_response
    ):
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.post.return_value = mock_httpx_response(
                {"error": "invalid_grant"}, status_code=400
            )

            with pytest.raises(AuthenticationError) as exc_info:
                await login_flow.complete_login("expired-code")

        assert isinstance(exc_info.value.__cause__, TokenExchangeError)
        assert exc_info.value.details["state"] == LoginState.CODE_RECEIVED.value
        assert _stored_users(db_service) == 0

    @pytest.mark.asyncio
    async def test_exchange_failure_never_reaches_resolver(self, oidc_client, validator):
        resolver = Mock(spec=IdentityResolver)
        flow = LoginFlowService(oidc_client, resolver, validator=validator)

        with patch.object(
            oidc_client,
            "exchange_code_for_tokens",
            AsyncMock(side_effect=TokenExchangeError("Token endpoint timed out")),
        ):
            with pytest.raises(AuthenticationError):
                await flow.complete_login("code")

        resolver.resolve_or_provision.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("id_token", [None, "not-a-jwt", "a.b.c"])
    async def test_missing_or_malformed_id_token(self, login_flow, oidc_client, db_service, id_token):
        with patch.object(
            oidc_client, "exchange_code_for_tokens", AsyncMock(return_value=_tokens(id_token))
        ):
            with pytest.raises(AuthenticationError) as exc_info:
                await login_flow.complete_login("code")

        assert exc_info.value.details["state"] == LoginState.TOKEN_EXCHANGED.value
        assert _stored_users(db_service) == 0

    @pytest.mark.asyncio
    async def test_untrusted_id_token_creates_no_user(self, login_flow, oidc_client, db_service, make_token):
        with patch.object(
            oidc_client,
            "exchange_code_for_tokens",
            AsyncMock(return_value=_tokens(make_token(iss="https://evil.example.com"))),
        ):
            with pytest.raises(AuthenticationError):
                await login_flow.complete_login("code")

        assert _stored_users(db_service) == 0

    @pytest.mark.asyncio
    async def test_id_token_without_subject(self, login_flow, oidc_client, db_service, make_token):
        with patch.object(
            oidc_client, "exchange_code_for_tokens", AsyncMock(return_value=_tokens(make_token(sub=None)))
        ):
            with pytest.raises(AuthenticationError) as exc_info:
                await login_flow.complete_login("code")

        assert exc_info.value.details["state"] == LoginState.CLAIMS_EXTRACTED.value
        assert _stored_users(db_service) == 0

    @pytest.mark.asyncio
    async def test_storage_failure_is_reported_as_authentication_error(
        self, oidc_client, validator, make_token
    ):
        resolver = Mock(spec=IdentityResolver)
        resolver.resolve_or_provision.side_effect = RuntimeError("database is locked")
        flow = LoginFlowService(oidc_client, resolver, validator=validator)

        with patch.object(
            oidc_client, "exchange_code_for_tokens", AsyncMock(return_value=_tokens(make_token()))
        ):
            with pytest.raises(AuthenticationError) as exc_info:
                await flow.complete_login("code")

        assert exc_info.value.message == "User provisioning failed"

    @pytest.mark.asyncio
    async def test_without_validator_claims_are_only_decoded(self, oidc_client, resolver, make_token):
        flow = LoginFlowService(oidc_client, resolver)

        with patch.object(
            oidc_client,
            "exchange_code_for_tokens",
            AsyncMock(return_value=_tokens(make_token(exp=1))),
        ):
            result = await flow.complete_login("code")

        assert result.state is LoginState.SESSION_ESTABLISHED
