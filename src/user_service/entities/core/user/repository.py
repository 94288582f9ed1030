"""User repository for data access operations."""

from datetime import UTC, datetime

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, func, select

from .entity import UNKNOWN_VALUE, User
from .table import UserTable


class UserRepository:
    """Data-access layer for users."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, user_id: str) -> User | None:
        row = self._session.get(UserTable, user_id)
        if row is None:
            return None
        return User.model_validate(row, from_attributes=True)

    def exists(self, user_id: str) -> bool:
        return self._session.get(UserTable, user_id) is not None

    def exists_by_phone_number(self, phone_number: str) -> bool:
        """Whether another user already holds this canonical number.

        The unknown-value placeholder is shared by every user without a
        number and never counts as taken.
        """
        if not phone_number or phone_number == UNKNOWN_VALUE:
            return False
        statement = select(UserTable.id).where(UserTable.phone_number == phone_number)
        return self._session.exec(statement).first() is not None

    def create_if_absent(self, user: User) -> tuple[User, bool]:
        """Insert ``user`` unless a row with the same id exists.

        A primary key conflict raised by a concurrent insert is treated as
        success: the transaction is rolled back and the stored row returned.

        Returns:
            (stored user, whether this call created it)
        """
        row = UserTable(**user.model_dump())
        self._session.add(row)
        try:
            self._session.commit()
        except IntegrityError:
            self._session.rollback()
            existing = self.get(user.id)
            if existing is None:
                raise
            logger.info(f"User {user.id} was created concurrently, using stored record")
            return existing, False

        self._session.refresh(row)
        return User.model_validate(row, from_attributes=True), True

    def update(self, user: User) -> User:
        row = self._session.get(UserTable, user.id)
        if row is None:
            raise ValueError(f"User {user.id} does not exist")
        row.user_name = user.user_name
        row.phone_number = user.phone_number
        row.user_location = user.user_location
        row.updated_at = datetime.now(UTC)
        self._session.add(row)
        self._session.commit()
        self._session.refresh(row)
        return User.model_validate(row, from_attributes=True)

    def count(self) -> int:
        return self._session.exec(select(func.count()).select_from(UserTable)).one()
