"""JWT service package."""

from .jwks import JWKSCache, JWKSCacheInMemory, JwksService
from .jwt_utils import JwtPreview, TokenCodec, decode_claims, get_claim, preview_jwt
from .jwt_verify import TokenValidationResult, TokenValidator, ValidationReason
