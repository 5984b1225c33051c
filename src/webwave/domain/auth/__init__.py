"""Auth domain - signed-in user projection."""

from .models import UserSession
from .session import AuthSession

__all__ = ["AuthSession", "UserSession"]
