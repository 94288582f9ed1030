import threading
from collections.abc import Mapping
from typing import Any

from loguru import logger

from src.user_service.core.exceptions import AuthenticationError
from src.user_service.core.phone import PhoneNormalizer
from src.user_service.core.services.database.db_session import DbSessionService
from src.user_service.entities.core.user import (
    DEFAULT_USER_NAME,
    UNKNOWN_VALUE,
    User,
    UserRepository,
)

_LOCK_STRIPES = 64


def _string_claim(claims: Mapping[str, Any], name: str) -> str | None:
    value = claims.get(name)
    if isinstance(value, str) and value.strip():
        return value
    if value is not None and not isinstance(value, str):
        logger.warning(f"Ignoring claim {name!r} of unexpected type {type(value).__name__}")
    return None


def _location_claim(claims: Mapping[str, Any]) -> str:
    address = claims.get("address")
    if address is None:
        return UNKNOWN_VALUE
    if not isinstance(address, Mapping):
        logger.warning(f"address claim is a {type(address).__name__}, not an object; using placeholder")
        return UNKNOWN_VALUE
    formatted = address.get("formatted")
    if formatted is None or isinstance(formatted, (Mapping, list)):
        return UNKNOWN_VALUE
    return str(formatted)


class IdentityResolver:
    """Loads the local user for a token subject, creating it on first sight.

    Creation is serialized per subject inside the process and backed by the
    primary key constraint across processes, so concurrent first logins for
    one ``sub`` store exactly one record.
    """

    def __init__(self, db_service: DbSessionService, phone_normalizer: PhoneNormalizer | None = None):
        self._db_service = db_service
        self._phone_normalizer = phone_normalizer or PhoneNormalizer()
        self._locks = [threading.Lock() for _ in range(_LOCK_STRIPES)]

    def _lock_for(self, subject: str) -> threading.Lock:
        return self._locks[hash(subject) % _LOCK_STRIPES]

    def user_from_claims(self, claims: Mapping[str, Any]) -> User:
        """Build an unsaved user from profile claims, substituting placeholders."""
        subject = self._subject(claims)

        name = _string_claim(claims, "name")
        if name is None:
            logger.warning(f"No name claim for {subject}, using default")
            name = DEFAULT_USER_NAME

        phone_number = _string_claim(claims, "phone_number")
        if phone_number is None:
            logger.warning(f"No phone_number claim for {subject}, using placeholder")
            phone_number = UNKNOWN_VALUE
        else:
            phone_number = self._phone_normalizer.normalize(phone_number)

        return User(
            id=subject,
            user_name=name,
            phone_number=phone_number,
            user_location=_location_claim(claims),
        )

    def resolve_or_provision(self, claims: Mapping[str, Any]) -> User:
        """Return the stored user for ``claims['sub']``, provisioning it if unseen.

        An existing record is returned unchanged; fresher claims do not
        overwrite it.

        Raises:
            AuthenticationError: the claims carry no usable ``sub``.
        """
        subject = self._subject(claims)

        with self._lock_for(subject):
            with self._db_service.session_scope() as session:
                repo = UserRepository(session)
                existing = repo.get(subject)
                if existing is not None:
                    logger.info(f"Existing user resolved: {subject}")
                    return existing

                new_user = self.user_from_claims(claims)
                user, created = repo.create_if_absent(new_user)

        if created:
            logger.info(f"Provisioned new user {subject}")
        return user

    def load(self, subject: str) -> User | None:
        """Load the user for request context without provisioning."""
        with self._db_service.session_scope() as session:
            return UserRepository(session).get(subject)

    @staticmethod
    def _subject(claims: Mapping[str, Any]) -> str:
        subject = claims.get("sub") if isinstance(claims, Mapping) else None
        if not isinstance(subject, str) or not subject:
            raise AuthenticationError("Token claims carry no subject")
        return subject
