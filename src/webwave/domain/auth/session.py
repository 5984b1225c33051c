"""
Client-side projection of the signed-in user.

Mirrors the backing service's session into ``user``/``loading``/``error``
and re-broadcasts every auth event to its own listeners (the library store
reloads or clears itself from them).
"""

import threading
from typing import TYPE_CHECKING, Callable, Optional

from loguru import logger

from webwave.gateway.errors import AuthError

from .models import UserSession

if TYPE_CHECKING:
    from webwave.gateway.contracts import AuthGateway

# (event_name, user or None)
SessionListener = Callable[[str, Optional[UserSession]], None]

INITIAL_SESSION = "INITIAL_SESSION"
SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"


def _is_refresh_token_error(error: Exception) -> bool:
    return "refresh token" in str(error).lower()


class AuthSession:
    """Signed-in user plus loading/error flags for a UI."""

    def __init__(self, gateway: "AuthGateway") -> None:
        self._gateway = gateway
        self._lock = threading.RLock()
        self._listeners: list[SessionListener] = []
        self._unsubscribe_gateway: Optional[Callable[[], None]] = None

        self.user: Optional[UserSession] = None
        self.loading = True
        self.error: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def initialize(self) -> Optional[UserSession]:
        """Fetch the current session and start following auth events."""
        try:
            user = self._gateway.get_session()
        except AuthError as e:
            logger.warning(f"Error getting session: {e}")
            if _is_refresh_token_error(e):
                # Stale refresh token: drop it locally so the next sign in starts clean
                self._local_sign_out()
            user = None
            with self._lock:
                self.error = str(e)

        with self._lock:
            self.user = user
            self.loading = False

        if self._unsubscribe_gateway is None:
            self._unsubscribe_gateway = self._gateway.on_auth_state_change(
                self._on_auth_event
            )

        self._notify(INITIAL_SESSION, user)
        return user

    def sign_in(self, email: str, password: str) -> UserSession:
        """Sign in with email and password.

        Raises:
            AuthError: Credentials rejected or service unreachable
        """
        self._begin()
        try:
            user = self._gateway.sign_in(email, password)
        except AuthError as e:
            self._fail(e)
            raise

        with self._lock:
            self.user = user
            self.loading = False
        logger.info(f"Signed in as {user.email or user.id}")
        self._notify(SIGNED_IN, user)
        return user

    def sign_up(
        self, email: str, password: str, redirect_to: Optional[str] = None
    ) -> Optional[UserSession]:
        """Register. Returns None while the confirmation email is pending."""
        self._begin()
        try:
            user = self._gateway.sign_up(email, password, redirect_to=redirect_to)
        except AuthError as e:
            self._fail(e)
            raise

        with self._lock:
            self.loading = False
            if user is not None:
                self.user = user
        if user is not None:
            self._notify(SIGNED_IN, user)
        return user

    def sign_out(self) -> None:
        """End the session. Local state is cleared even if the remote call fails."""
        self._begin()
        try:
            self._gateway.sign_out()
        except AuthError as e:
            logger.warning(f"Sign out failed, clearing local session anyway: {e}")
            with self._lock:
                self.error = str(e)
        finally:
            with self._lock:
                self.user = None
                self.loading = False
        self._notify(SIGNED_OUT, None)

    def clear_session(self) -> None:
        """Forget the session on this client only."""
        self._local_sign_out()
        with self._lock:
            self.user = None
            self.error = None
        self._notify(SIGNED_OUT, None)

    def clear_error(self) -> None:
        with self._lock:
            self.error = None

    def on_change(self, listener: SessionListener) -> Callable[[], None]:
        """Register ``listener`` for session changes. Returns an unsubscribe callable."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        if self._unsubscribe_gateway is not None:
            self._unsubscribe_gateway()
            self._unsubscribe_gateway = None
        with self._lock:
            self._listeners.clear()

    def _on_auth_event(self, event: str, user: Optional[UserSession]) -> None:
        with self._lock:
            self.user = user
            self.loading = False
        logger.debug(f"Auth event {event}: user={user.id if user else None}")
        self._notify(event, user)

    def _local_sign_out(self) -> None:
        try:
            self._gateway.sign_out(scope="local")
        except AuthError as e:
            logger.warning(f"Local sign out failed: {e}")

    def _begin(self) -> None:
        with self._lock:
            self.loading = True
            self.error = None

    def _fail(self, error: Exception) -> None:
        logger.warning(f"Auth request failed: {error}")
        with self._lock:
            self.error = str(error)
            self.loading = False

    def _notify(self, event: str, user: Optional[UserSession]) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event, user)
            except Exception:
                logger.exception(f"Session listener failed on {event}")
