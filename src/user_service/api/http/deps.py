"""FastAPI dependency implementations."""

from __future__ import annotations

from fastapi import Depends, Request
from loguru import logger

from src.user_service.api.http.app_data import ApplicationDependencies
from src.user_service.core.exceptions import AuthenticationError
from src.user_service.core.services import (
    DbSessionService,
    IdentityResolver,
    LoginFlowService,
    OidcClientService,
    TokenValidator,
    UserProfileService,
)
from src.user_service.entities.core.user import User


def _app_deps(request: Request) -> ApplicationDependencies:
    return request.app.state.app_dependencies


def get_database_service(request: Request) -> DbSessionService:
    """Get the database service instance."""
    return _app_deps(request).database_service


def get_token_validator(request: Request) -> TokenValidator:
    """Get the token validator instance."""
    return _app_deps(request).token_validator


def get_oidc_client_service(request: Request) -> OidcClientService:
    """Get the OIDC client service instance."""
    return _app_deps(request).oidc_client_service


def get_identity_resolver(request: Request) -> IdentityResolver:
    return _app_deps(request).identity_resolver


def get_user_profile_service(request: Request) -> UserProfileService:
    return _app_deps(request).user_profile_service


def get_login_flow_service(request: Request) -> LoginFlowService:
    return _app_deps(request).login_flow_service


def bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


async def get_current_user(
    request: Request,
    validator: TokenValidator = Depends(get_token_validator),
    resolver: IdentityResolver = Depends(get_identity_resolver),
) -> User | None:
    """Resolve the caller from a Bearer token, or None for an anonymous request.

    An invalid or missing token never fails the request here; endpoints that
    need a user depend on ``require_user`` instead. A valid token whose
    subject has no record yet is provisioned on the spot.
    """
    token = bearer_token(request)
    if token is None:
        return None

    result = await validator.authenticate(token)
    if not result.valid:
        logger.info(f"Proceeding anonymously, token rejected: {result.reason.value}")
        return None

    subject = result.claims.get("sub")
    user = resolver.load(subject) if isinstance(subject, str) and subject else None
    if user is None:
        try:
            user = resolver.resolve_or_provision(result.claims)
        except AuthenticationError as exc:
            logger.warning(f"Proceeding anonymously: {exc.message}")
            return None

    request.state.claims = result.claims
    request.state.user_id = user.id
    return user


async def require_user(user: User | None = Depends(get_current_user)) -> User:
    """Dependency for endpoints that only make sense for a known user."""
    if user is None:
        raise AuthenticationError("Login is required")
    return user
