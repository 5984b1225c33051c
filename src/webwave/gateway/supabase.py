"""
Supabase implementation of the gateway contracts.

Wraps supabase-py so the rest of the application only sees the protocols
in ``webwave.gateway.contracts`` and the errors in ``webwave.gateway.errors``.
"""

from datetime import datetime
from typing import Any, Callable, Optional

from loguru import logger
from supabase import Client, create_client

from webwave.core.config import SupabaseConfig
from webwave.domain.auth.models import UserSession

from .contracts import AuthStateCallback
from .errors import AuthError, DatabaseError, StorageError


def user_to_session(user: Any) -> Optional[UserSession]:
    """Convert a supabase-py User object into a UserSession projection."""
    if user is None:
        return None
    created_at = getattr(user, "created_at", None)
    if isinstance(created_at, datetime):
        created_at = created_at.isoformat()
    return UserSession(id=str(user.id), email=getattr(user, "email", None), created_at=created_at)


class SupabaseStorage:
    """ObjectStorage over one Supabase storage bucket."""

    def __init__(self, client: Client, bucket: str) -> None:
        self._client = client
        self._bucket = bucket

    def _from(self):
        return self._client.storage.from_(self._bucket)

    def upload(
        self, path: str, data: bytes, content_type: str, upsert: bool = False
    ) -> None:
        try:
            self._from().upload(
                path,
                data,
                file_options={
                    "content-type": content_type,
                    "upsert": "true" if upsert else "false",
                },
            )
        except Exception as e:
            raise StorageError(f"Upload failed for {path}: {e}") from e

    def remove(self, paths: list[str]) -> None:
        try:
            self._from().remove(paths)
        except Exception as e:
            raise StorageError(f"Remove failed for {len(paths)} object(s): {e}") from e

    def create_signed_url(self, path: str, ttl_seconds: int) -> str:
        try:
            response = self._from().create_signed_url(path, ttl_seconds)
        except Exception as e:
            raise StorageError(f"Signed URL failed for {path}: {e}") from e

        # Key casing differs across storage3 releases
        url = None
        if isinstance(response, dict):
            url = response.get("signedUrl") or response.get("signedURL")
        if not url:
            raise StorageError(f"Signed URL missing from response for {path}")
        return url

    def get_public_url(self, path: str) -> str:
        try:
            url = self._from().get_public_url(path)
        except Exception as e:
            raise StorageError(f"Public URL failed for {path}: {e}") from e
        if not url:
            raise StorageError(f"Public URL missing for {path}")
        return url.rstrip("?")

    def list(
        self,
        prefix: str = "",
        limit: int = 100,
        offset: int = 0,
        sort_column: str = "created_at",
        descending: bool = True,
    ) -> list[dict[str, Any]]:
        try:
            return self._from().list(
                prefix,
                {
                    "limit": limit,
                    "offset": offset,
                    "sortBy": {
                        "column": sort_column,
                        "order": "desc" if descending else "asc",
                    },
                },
            )
        except Exception as e:
            raise StorageError(f"List failed for prefix {prefix!r}: {e}") from e


class SupabaseRecords:
    """RecordStore over the songs table."""

    def __init__(self, client: Client, table: str) -> None:
        self._client = client
        self._table = table

    def count_for_owner(self, owner_id: str) -> int:
        try:
            response = (
                self._client.table(self._table)
                .select("id", count="exact")
                .eq("user_id", owner_id)
                .execute()
            )
        except Exception as e:
            raise DatabaseError(f"Count failed for user {owner_id}: {e}") from e
        return response.count or 0

    def insert(self, record: dict[str, Any]) -> dict[str, Any]:
        try:
            response = self._client.table(self._table).insert(record).execute()
        except Exception as e:
            raise DatabaseError(f"Insert failed: {e}") from e
        if not response.data:
            raise DatabaseError("Insert returned no row")
        return response.data[0]

    def select_for_owner(self, owner_id: str) -> list[dict[str, Any]]:
        try:
            response = (
                self._client.table(self._table)
                .select("*")
                .eq("user_id", owner_id)
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as e:
            raise DatabaseError(f"Select failed for user {owner_id}: {e}") from e
        return response.data or []

    def delete_by_id(self, record_id: str) -> None:
        try:
            self._client.table(self._table).delete().eq("id", record_id).execute()
        except Exception as e:
            raise DatabaseError(f"Delete failed for record {record_id}: {e}") from e

    def delete_for_owner(self, owner_id: str) -> None:
        try:
            self._client.table(self._table).delete().eq("user_id", owner_id).execute()
        except Exception as e:
            raise DatabaseError(f"Bulk delete failed for user {owner_id}: {e}") from e


class SupabaseAuth:
    """AuthGateway over GoTrue.

    ``admin_client`` must be created with the service role key; it is only
    needed for identity deletion and token revocation.
    """

    def __init__(self, client: Client, admin_client: Optional[Client] = None) -> None:
        self._client = client
        self._admin_client = admin_client

    def get_session(self) -> Optional[UserSession]:
        try:
            session = self._client.auth.get_session()
        except Exception as e:
            raise AuthError(str(e)) from e
        return user_to_session(session.user) if session else None

    def get_user(self, access_token: str) -> Optional[UserSession]:
        try:
            response = self._client.auth.get_user(access_token)
        except Exception as e:
            logger.debug(f"Access token rejected: {e}")
            return None
        return user_to_session(response.user) if response else None

    def sign_in(self, email: str, password: str) -> UserSession:
        try:
            response = self._client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except Exception as e:
            raise AuthError(str(e)) from e
        user = user_to_session(response.user)
        if user is None:
            raise AuthError("Sign in returned no user")
        return user

    def sign_up(
        self, email: str, password: str, redirect_to: Optional[str] = None
    ) -> Optional[UserSession]:
        credentials: dict[str, Any] = {"email": email, "password": password}
        if redirect_to:
            credentials["options"] = {"email_redirect_to": redirect_to}
        try:
            response = self._client.auth.sign_up(credentials)
        except Exception as e:
            raise AuthError(str(e)) from e
        # No session means email confirmation is still pending
        if response.user and response.session:
            return user_to_session(response.user)
        return None

    def sign_out(self, scope: str = "global", access_token: Optional[str] = None) -> None:
        try:
            if access_token is not None:
                self._require_admin().auth.admin.sign_out(access_token, scope)
            else:
                self._client.auth.sign_out({"scope": scope})
        except AuthError:
            raise
        except Exception as e:
            raise AuthError(f"Sign out failed: {e}") from e

    def delete_identity(self, user_id: str) -> None:
        try:
            self._require_admin().auth.admin.delete_user(user_id)
        except AuthError:
            raise
        except Exception as e:
            raise AuthError(f"Identity deletion failed for {user_id}: {e}") from e

    def on_auth_state_change(self, callback: AuthStateCallback) -> Callable[[], None]:
        def handler(event: Any, session: Any) -> None:
            event_name = getattr(event, "value", event)
            user = user_to_session(session.user) if session else None
            callback(str(event_name), user)

        subscription = self._client.auth.on_auth_state_change(handler)
        return subscription.unsubscribe

    def _require_admin(self) -> Client:
        if self._admin_client is None:
            raise AuthError("Service role key is not configured")
        return self._admin_client


class SupabaseGateway:
    """Bundle of storage, records and auth for one Supabase project."""

    def __init__(
        self,
        config: SupabaseConfig,
        client: Optional[Client] = None,
        admin_client: Optional[Client] = None,
        privileged_data: bool = False,
    ) -> None:
        if client is None:
            if not config.url or not config.anon_key:
                raise AuthError("SUPABASE_URL and SUPABASE_ANON_KEY must be configured")
            client = create_client(config.url, config.anon_key)
        if admin_client is None and config.service_role_key:
            admin_client = create_client(config.url, config.service_role_key)

        # Server-side callers verify the bearer token themselves and need to
        # bypass row-level security for the data calls
        data_client = admin_client if (privileged_data and admin_client) else client

        self.storage = SupabaseStorage(data_client, config.bucket)
        self.records = SupabaseRecords(data_client, config.table)
        self.auth = SupabaseAuth(client, admin_client)

    @classmethod
    def for_server(cls, config: SupabaseConfig) -> "SupabaseGateway":
        """Gateway for the HTTP API (data calls with the service role)."""
        return cls(config, privileged_data=True)

    @classmethod
    def for_client(cls, config: SupabaseConfig) -> "SupabaseGateway":
        """Gateway for an interactive client holding its own session."""
        return cls(config)
