"""Profile reads and updates for already authenticated users."""

from typing import Any

from loguru import logger
from pydantic import BaseModel, Field

from src.user_service.core.exceptions import ConflictError, NotFoundError
from src.user_service.core.phone import PhoneNormalizer
from src.user_service.core.services.database.db_session import DbSessionService
from src.user_service.entities.core.user import UNKNOWN_VALUE, User, UserRepository


class UserUpdate(BaseModel):
    """Partial profile update; unset fields are left alone."""

    user_name: str | None = Field(default=None, alias="userName", max_length=100)
    phone_number: str | None = Field(default=None, alias="phoneNumber")
    user_location: str | None = Field(default=None, alias="userLocation")

    model_config = {"populate_by_name": True}


class UserProfileService:
    def __init__(self, db_service: DbSessionService, phone_normalizer: PhoneNormalizer | None = None):
        self._db_service = db_service
        self._phone_normalizer = phone_normalizer or PhoneNormalizer()

    def user_info(self, user: User | None, user_id: str) -> dict[str, Any]:
        """Client-facing profile view with placeholders for missing values.

        ``formattedPhoneNumber`` is the stored number in local notation.
        """
        if user is None:
            return {
                "userId": user_id,
                "userName": UNKNOWN_VALUE,
                "phoneNumber": UNKNOWN_VALUE,
                "formattedPhoneNumber": UNKNOWN_VALUE,
                "userLocation": UNKNOWN_VALUE,
            }
        phone_number = user.phone_number or UNKNOWN_VALUE
        return {
            "userId": user.id,
            "userName": user.user_name or UNKNOWN_VALUE,
            "phoneNumber": phone_number,
            "formattedPhoneNumber": self._phone_normalizer.to_display_form(phone_number),
            "userLocation": user.user_location or UNKNOWN_VALUE,
        }

    def get_my_page(self, user_id: str) -> dict[str, Any]:
        with self._db_service.session_scope() as session:
            user = UserRepository(session).get(user_id)
        if user is None:
            logger.warning(f"Profile requested for unknown user {user_id}")
        return {"userInfo": self.user_info(user, user_id)}

    def get_user_name(self, user_id: str) -> str:
        with self._db_service.session_scope() as session:
            user = UserRepository(session).get(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user.user_name

    def count_users(self) -> int:
        with self._db_service.session_scope() as session:
            return UserRepository(session).count()

    def update_user_info(self, user_id: str, update: UserUpdate) -> User:
        """Apply a partial update; a new phone number is normalized first.

        Raises:
            NotFoundError: no user with ``user_id``.
            ConflictError: the normalized number belongs to another user.
        """
        fields = update.model_dump(exclude_unset=True)
        logger.info(f"Updating user {user_id}: fields={sorted(fields)}")

        with self._db_service.session_scope() as session:
            repo = UserRepository(session)
            user = repo.get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)

            changes: dict[str, Any] = {}
            if fields.get("user_name"):
                changes["user_name"] = fields["user_name"]
            if "phone_number" in fields and fields["phone_number"] is not None:
                normalized = self._phone_normalizer.normalize(fields["phone_number"])
                logger.info(f"Normalized phone number: {fields['phone_number']} -> {normalized}")
                if normalized != user.phone_number and repo.exists_by_phone_number(normalized):
                    raise ConflictError(
                        "Phone number is already registered",
                        details={"phoneNumber": normalized},
                    )
                changes["phone_number"] = normalized
            if "user_location" in fields:
                changes["user_location"] = fields["user_location"]

            if not changes:
                return user
            return repo.update(user.model_copy(update=changes))
