"""OAuth2 client for the Cognito hosted UI: login URL and authorization code exchange."""

import time

import httpx
from loguru import logger
from pydantic import BaseModel, ValidationError

from src.user_service.core.exceptions import TokenExchangeError
from src.user_service.runtime.config.config_data import CognitoConfig


class TokenResponse(BaseModel):
    """Token set returned by the provider token endpoint."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int | None = None  # lifetime in seconds of the access token
    refresh_token: str | None = None
    id_token: str | None = None

    @property
    def expires_at(self) -> int | None:
        """Calculate absolute expiry timestamp."""
        if self.expires_in is None:
            return None
        return int(time.time()) + self.expires_in


class OidcClientService:
    def __init__(self, trust: CognitoConfig, timeout: float = 10.0):
        self._trust = trust
        self._timeout = timeout

    def build_login_url(self, state: str) -> str:
        """Hosted UI authorize URL the browser is redirected to.

        ``state`` is generated by the caller for each login attempt; matching
        it on the way back is the caller's job.
        """
        trust = self._trust
        login_url = (
            f"{trust.authorize_endpoint}"
            f"?response_type={trust.response_type}"
            f"&client_id={trust.client_id}"
            f"&redirect_uri={trust.redirect_uri}"
            f"&scope={trust.scope}"
            f"&state={state}"
        )
        logger.info(f"Built login URL for client {trust.client_id}")
        return login_url

    def build_logout_url(self) -> str | None:
        """Hosted UI logout URL, or None when no logout endpoint is configured."""
        trust = self._trust
        if not trust.logout_endpoint:
            return None
        logout_uri = trust.logout_redirect_uri or trust.redirect_uri
        return f"{trust.logout_endpoint}?client_id={trust.client_id}&logout_uri={logout_uri}"

    async def exchange_code_for_tokens(self, code: str) -> TokenResponse:
        """Exchange an authorization code for the provider token set.

        Raises:
            TokenExchangeError: on a non-200 answer, a body without an access
                token, a timeout or any transport failure. Nothing is retried here.
        """
        trust = self._trust
        form = {
            "grant_type": trust.grant_type,
            "client_id": trust.client_id,
            "client_secret": trust.client_secret,
            "code": code,
            "redirect_uri": trust.redirect_uri,
        }
        headers = {"Content-Type": "application/x-www-form-urlencoded"}

        logger.info(f"Exchanging authorization code at {trust.token_endpoint}")
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(trust.token_endpoint, data=form, headers=headers)
        except httpx.TimeoutException as exc:
            logger.error(f"Token endpoint timed out after {self._timeout}s")
            raise TokenExchangeError(
                "Token endpoint timed out", details={"timeout": self._timeout}
            ) from exc
        except httpx.HTTPError as exc:
            logger.error(f"Token endpoint unreachable: {type(exc).__name__}: {exc}")
            raise TokenExchangeError("Token endpoint unreachable") from exc

        if response.status_code != 200:
            logger.error(f"Token exchange failed with status {response.status_code}")
            raise TokenExchangeError(
                "Token exchange was rejected by the provider",
                details={"status_code": response.status_code},
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise TokenExchangeError("Token endpoint returned a non-JSON body") from exc

        if not isinstance(body, dict) or not body.get("access_token"):
            raise TokenExchangeError("Token response has no access_token")

        try:
            tokens = TokenResponse.model_validate(body)
        except ValidationError as exc:
            raise TokenExchangeError(f"Unexpected token response: {exc}") from exc

        logger.info(
            f"Token exchange succeeded: id_token={'present' if tokens.id_token else 'absent'}, "
            f"refresh_token={'present' if tokens.refresh_token else 'absent'}"
        )
        return tokens
