"""User entity module.

This module contains all User-related classes organized by responsibility:
- User: Domain entity
- UserTable: Database persistence model
- UserRepository: Data access layer
"""

from .entity import DEFAULT_USER_NAME, UNKNOWN_VALUE, User
from .repository import UserRepository
from .table import UserTable

__all__ = ["User", "UserTable", "UserRepository", "DEFAULT_USER_NAME", "UNKNOWN_VALUE"]
