"""Shared pytest fixtures and helpers for the user service tests."""

from .config import *  # noqa: F401,F403
from .database import *  # noqa: F401,F403
from .http import *  # noqa: F401,F403
from .tokens import *  # noqa: F401,F403
