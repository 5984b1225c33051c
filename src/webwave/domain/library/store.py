"""
Client-side library store.

Holds the signed-in user's track list and keeps the playback engine's
playlist in step with it. Reloads on every auth event and after each
add/delete.
"""

import threading
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional

from loguru import logger

from webwave.domain.acquisition.youtube.models import AcquiredAudio
from webwave.domain.auth.models import UserSession
from webwave.gateway.errors import GatewayError

from .models import Track, TrackMetadata
from .workflow import TrackWorkflow

if TYPE_CHECKING:
    from webwave.domain.auth.session import AuthSession
    from webwave.domain.playback.engine import PlaybackEngine


class ReloadPolicy(str, Enum):
    """When a reload replaces the engine's playlist."""

    ON_CHANGE = "on_change"  # only if the ordered id list changed
    ALWAYS = "always"


class LibraryStore:
    """The user's tracks, mirrored into the engine's playlist."""

    def __init__(
        self,
        workflow: TrackWorkflow,
        engine: "PlaybackEngine",
        policy: ReloadPolicy = ReloadPolicy.ON_CHANGE,
    ) -> None:
        self.workflow = workflow
        self.engine = engine
        self.policy = ReloadPolicy(policy)
        self._lock = threading.RLock()
        self._tracks: list[Track] = []
        self._owner: Optional[UserSession] = None

    @property
    def tracks(self) -> list[Track]:
        return list(self._tracks)

    @property
    def owner(self) -> Optional[UserSession]:
        return self._owner

    def bind(self, session: "AuthSession") -> Callable[[], None]:
        """Follow ``session``'s auth events. Returns the unsubscribe callable."""
        return session.on_change(self.handle_session_change)

    def handle_session_change(self, event: str, user: Optional[UserSession]) -> None:
        """Reload for a signed-in user, clear everything on sign out."""
        with self._lock:
            if user is None:
                logger.debug(f"Auth event {event} without user, clearing library")
                self._owner = None
                self._tracks = []
                self.engine.set_playlist([])
                return

            self._owner = user
            try:
                self._reload()
            except GatewayError as e:
                # Keep the previous list; the next event or refresh retries
                logger.error(f"Error loading songs for {user.id}: {e}")

    def refresh(self) -> list[Track]:
        """Reload the track list now.

        Raises:
            GatewayError: The listing failed (logged, previous list kept)
        """
        with self._lock:
            if self._owner is None:
                return []
            try:
                return self._reload()
            except GatewayError as e:
                logger.error(f"Error loading songs: {e}")
                raise

    def add_track(
        self,
        filename: str,
        payload: bytes,
        metadata: Optional[TrackMetadata] = None,
        content_type: str = "audio/mpeg",
    ) -> Track:
        """Upload for the signed-in user and refresh the list."""
        owner = self._require_owner()
        track = self.workflow.add_track(
            owner.id, filename, payload, metadata=metadata, content_type=content_type
        )
        self.refresh()
        return track

    def add_acquired(self, audio: AcquiredAudio) -> Track:
        owner = self._require_owner()
        track = self.workflow.add_acquired(owner.id, audio)
        self.refresh()
        return track

    def delete_track(self, track: Track) -> None:
        self._require_owner()
        self.workflow.delete_track(track.id, track.storage_path)
        self.refresh()

    def _require_owner(self) -> UserSession:
        if self._owner is None:
            raise PermissionError("Not signed in")
        return self._owner

    def _reload(self) -> list[Track]:
        tracks = self.workflow.list_tracks(self._owner.id)
        previous_ids = [track.id for track in self._tracks]
        self._tracks = tracks

        changed = previous_ids != [track.id for track in tracks]
        if self.policy is ReloadPolicy.ALWAYS or changed:
            logger.debug(f"Pushing {len(tracks)} tracks to the playlist")
            self.engine.set_playlist(tracks)
        return list(tracks)
