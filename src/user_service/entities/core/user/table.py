"""User database table model."""

from sqlalchemy import Column, String
from sqlmodel import Field

from src.user_service.entities.core._base import EntityTable


class UserTable(EntityTable, table=True):
    """Database persistence model for users.

    The primary key is the provider subject, so a second insert for the same
    ``sub`` fails on the key constraint instead of creating a duplicate.
    """

    __tablename__ = "users"

    id: str = Field(sa_column=Column(String(50), primary_key=True))
    user_name: str = Field(sa_column=Column(String(100), nullable=False))
    phone_number: str = Field(sa_column=Column(String(64), nullable=False, index=True))
    user_location: str | None = Field(
        default=None, sa_column=Column(String(255), nullable=True)
    )
