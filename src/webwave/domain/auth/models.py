"""Authentication domain models."""

from typing import NamedTuple, Optional


class UserSession(NamedTuple):
    """Read-only projection of the signed-in user."""

    id: str
    email: Optional[str] = None
    created_at: Optional[str] = None
