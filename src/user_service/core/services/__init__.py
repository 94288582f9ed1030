"""Core services exports."""

# Database Service
from .database.db_session import DbSessionService

# JWT Services
from .jwt.jwks import JWKSCache, JWKSCacheInMemory, JwksService
from .jwt.jwt_utils import TokenCodec
from .jwt.jwt_verify import TokenValidationResult, TokenValidator

# Login
from .login_flow import LoginFlowService, LoginResult, LoginState

# OIDC Services
from .oidc_client_service import OidcClientService, TokenResponse

# User Services
from .user.identity_resolver import IdentityResolver
from .user.user_profile import UserProfileService

__all__ = [
    # JWT Services
    "JWKSCache",
    "JWKSCacheInMemory",
    "JwksService",
    "TokenCodec",
    "TokenValidationResult",
    "TokenValidator",
    # Login
    "LoginFlowService",
    "LoginResult",
    "LoginState",
    # OIDC Services
    "OidcClientService",
    "TokenResponse",
    # User Services
    "IdentityResolver",
    "UserProfileService",
    # Database Service
    "DbSessionService",
]
