"""User services: first-login provisioning and profile management."""

from .identity_resolver import IdentityResolver
from .user_profile import UserProfileService, UserUpdate

__all__ = ["IdentityResolver", "UserProfileService", "UserUpdate"]
