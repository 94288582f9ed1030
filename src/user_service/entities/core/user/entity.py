"""User domain entity."""

from typing import Any

from pydantic import Field

from src.user_service.entities.core._base import Entity

# placeholder stored when the identity provider does not supply a value
UNKNOWN_VALUE = "정보 없음"
DEFAULT_USER_NAME = "사용자"


class User(Entity):
    """A platform user, keyed by the identity provider's ``sub`` claim.

    ``phone_number`` holds the canonical international form produced by
    ``normalize_phone_number`` (or the placeholder when the provider gave none).
    """

    id: str = Field(max_length=50, description="Identity provider subject (sub)")
    user_name: str = Field(description="Display name")
    phone_number: str = Field(description="Canonical phone number")
    user_location: str | None = Field(default=None, description="Free-text location")

    def __eq__(self, other: Any) -> bool:
        """Compare users by business attributes, ignoring timestamps."""
        if not isinstance(other, User):
            return False

        return (
            self.id == other.id
            and self.user_name == other.user_name
            and self.phone_number == other.phone_number
            and self.user_location == other.user_location
        )

    def __hash__(self) -> int:
        """Hash based on business attributes, ignoring timestamps."""
        return hash((
            self.id,
            self.user_name,
            self.phone_number,
            self.user_location,
        ))
