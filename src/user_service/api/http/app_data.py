from dataclasses import dataclass

from src.user_service.core.phone import PhoneNormalizer
from src.user_service.core.services import (
    DbSessionService,
    IdentityResolver,
    JWKSCacheInMemory,
    JwksService,
    LoginFlowService,
    OidcClientService,
    TokenCodec,
    TokenValidator,
    UserProfileService,
)
from src.user_service.runtime.config.config_data import ConfigData


@dataclass
class ApplicationDependencies:
    config: ConfigData
    jwks_cache: JWKSCacheInMemory
    jwks_service: JwksService
    token_codec: TokenCodec
    token_validator: TokenValidator
    oidc_client_service: OidcClientService
    database_service: DbSessionService
    identity_resolver: IdentityResolver
    user_profile_service: UserProfileService
    login_flow_service: LoginFlowService


def build_dependencies(config: ConfigData) -> ApplicationDependencies:
    """Wire every service from one immutable configuration."""
    trust = config.cognito
    timeout = config.jwt.http_timeout_seconds

    jwks_cache = JWKSCacheInMemory(ttl=config.jwt.jwks_cache_ttl)
    jwks_service = JwksService(jwks_cache, timeout=timeout)
    token_codec = TokenCodec()
    token_validator = TokenValidator(trust, config.jwt, jwks_service, codec=token_codec)
    oidc_client_service = OidcClientService(trust, timeout=timeout)
    database_service = DbSessionService(config.database, config.app.environment)
    phone_normalizer = PhoneNormalizer()
    identity_resolver = IdentityResolver(database_service, phone_normalizer)
    user_profile_service = UserProfileService(database_service, phone_normalizer)
    login_flow_service = LoginFlowService(
        oidc_client_service,
        identity_resolver,
        codec=token_codec,
        validator=token_validator,
    )

    return ApplicationDependencies(
        config=config,
        jwks_cache=jwks_cache,
        jwks_service=jwks_service,
        token_codec=token_codec,
        token_validator=token_validator,
        oidc_client_service=oidc_client_service,
        database_service=database_service,
        identity_resolver=identity_resolver,
        user_profile_service=user_profile_service,
        login_flow_service=login_flow_service,
    )
