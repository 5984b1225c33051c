"""
Contracts consumed from the backing service.

The workflow, library store and auth session only depend on these
protocols. ``webwave.gateway.supabase`` provides the production
implementation; tests provide in-memory ones.
"""

from typing import Any, Callable, Optional, Protocol

from webwave.domain.auth.models import UserSession

# (event_name, user or None)
AuthStateCallback = Callable[[str, Optional[UserSession]], None]


class ObjectStorage(Protocol):
    """Binary objects addressed by path inside one bucket."""

    def upload(
        self, path: str, data: bytes, content_type: str, upsert: bool = False
    ) -> None:
        """Write ``data`` at ``path``. Raises StorageError."""
        ...

    def remove(self, paths: list[str]) -> None:
        """Delete every object in ``paths``. Raises StorageError."""
        ...

    def create_signed_url(self, path: str, ttl_seconds: int) -> str:
        """Return a time-limited URL for ``path``. Raises StorageError."""
        ...

    def get_public_url(self, path: str) -> str:
        """Return the public URL for ``path``. Raises StorageError."""
        ...

    def list(
        self,
        prefix: str = "",
        limit: int = 100,
        offset: int = 0,
        sort_column: str = "created_at",
        descending: bool = True,
    ) -> list[dict[str, Any]]:
        """List object entries under ``prefix``. Raises StorageError."""
        ...


class RecordStore(Protocol):
    """The single table of track records, keyed by owner and record id."""

    def count_for_owner(self, owner_id: str) -> int:
        ...

    def insert(self, record: dict[str, Any]) -> dict[str, Any]:
        """Insert ``record`` and return the stored row (with id and created_at)."""
        ...

    def select_for_owner(self, owner_id: str) -> list[dict[str, Any]]:
        """Return the owner's rows, newest first."""
        ...

    def delete_by_id(self, record_id: str) -> None:
        ...

    def delete_for_owner(self, owner_id: str) -> None:
        ...


class AuthGateway(Protocol):
    """Sessions and identities."""

    def get_session(self) -> Optional[UserSession]:
        """Return the locally held session's user, if any. Raises AuthError."""
        ...

    def get_user(self, access_token: str) -> Optional[UserSession]:
        """Resolve an access token to its user, or None if it is not valid."""
        ...

    def sign_in(self, email: str, password: str) -> UserSession:
        ...

    def sign_up(
        self, email: str, password: str, redirect_to: Optional[str] = None
    ) -> Optional[UserSession]:
        """Register a user. Returns None while email confirmation is pending."""
        ...

    def sign_out(self, scope: str = "global", access_token: Optional[str] = None) -> None:
        ...

    def delete_identity(self, user_id: str) -> None:
        """Remove the auth identity itself (privileged)."""
        ...

    def on_auth_state_change(self, callback: AuthStateCallback) -> Callable[[], None]:
        """Subscribe to session changes. Returns an unsubscribe callable."""
        ...
