"""
Upload, delete and listing sequences for user tracks.

Three resources are kept consistent by ordering alone: the object in
storage, the record in the table and, for account deletion, the auth
identity. Each sequence stops at the first failure and surfaces it; no
earlier step is rolled back.
"""

import math
import time
from pathlib import PurePosixPath
from typing import Callable, Optional

from loguru import logger

from webwave.core.config import LimitsConfig
from webwave.domain.acquisition.youtube.models import AcquiredAudio
from webwave.gateway.contracts import AuthGateway, ObjectStorage, RecordStore
from webwave.gateway.errors import AuthError, DatabaseError, GatewayError, StorageError

from .exceptions import (
    FileTooLargeError,
    IdentityDeletionError,
    InvalidFilenameError,
    QuotaExceededError,
    RecordCleanupError,
    StorageCleanupError,
    TrackListingError,
)
from .metadata import extract_metadata, probe_duration
from .models import StoredObject, Track, TrackMetadata


def safe_filename(filename: str) -> str:
    """Reduce a client-supplied filename to its basename.

    Storage keys are namespaced by owner, so directory parts must never reach
    the key.

    Example:
        "x/../../user-2/evil.mp3" -> "evil.mp3"

    Raises:
        InvalidFilenameError: Nothing usable is left (empty, "." or "..")
    """
    name = PurePosixPath(filename.replace("\\", "/")).name.strip()
    if name in ("", ".", ".."):
        raise InvalidFilenameError(filename)
    return name


def build_storage_path(owner_id: str, filename: str, now_ms: int) -> str:
    """Namespace by owner and prefix with a millisecond timestamp."""
    return f"{owner_id}/{now_ms}_{filename}"


class TrackWorkflow:
    """Add, delete and list tracks against the backing service."""

    def __init__(
        self,
        storage: ObjectStorage,
        records: RecordStore,
        auth: AuthGateway,
        limits: Optional[LimitsConfig] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.storage = storage
        self.records = records
        self.auth = auth
        self.limits = limits or LimitsConfig()
        self._clock = clock

    # -- add ------------------------------------------------------------------

    def add_track(
        self,
        owner_id: str,
        filename: str,
        payload: bytes,
        metadata: Optional[TrackMetadata] = None,
        content_type: str = "audio/mpeg",
    ) -> Track:
        """Upload a payload and create its record.

        Args:
            owner_id: Owner of the new track
            filename: Original filename (used for the path and, without
                metadata, for artist/title)
            payload: Raw audio bytes
            metadata: Externally supplied title/artist/duration (YouTube path)
            content_type: MIME type stored with the object

        Returns:
            The created Track (without a playback URL)

        Raises:
            InvalidFilenameError: Filename has no usable basename
            FileTooLargeError: Payload over the size cap (no network calls made)
            QuotaExceededError: Owner already at the track cap (nothing written)
            DatabaseError: Count query or record insert failed
            StorageError: Object upload failed (no record written)
        """
        filename = safe_filename(filename)

        max_size = self.limits.max_file_size_bytes
        if len(payload) > max_size:
            raise FileTooLargeError(len(payload), max_size)

        count = self.records.count_for_owner(owner_id)
        if count >= self.limits.max_tracks_per_user:
            logger.info(f"Quota reached for user {owner_id}: {count} tracks")
            raise QuotaExceededError(self.limits.max_tracks_per_user)

        if metadata is None:
            metadata = extract_metadata(filename)

        duration = metadata.duration
        if duration is None:
            duration = probe_duration(payload)

        storage_path = build_storage_path(owner_id, filename, int(self._clock() * 1000))

        # Object first: a record must never reference a missing object
        self.storage.upload(storage_path, payload, content_type, upsert=False)
        logger.debug(f"Uploaded {len(payload)} bytes to {storage_path}")

        try:
            row = self.records.insert(
                {
                    "user_id": owner_id,
                    "title": metadata.title,
                    "artist": metadata.artist,
                    "filename": filename,
                    "file_path": storage_path,
                    "duration": math.floor(duration) if duration else None,
                }
            )
        except DatabaseError:
            # TODO: sweep objects that have no record (left behind here)
            logger.error(f"Record insert failed, object left without record: {storage_path}")
            raise

        track = Track.from_record(row)
        logger.info(f"Added track {track.id}: {track.artist} - {track.title}")
        return track

    def add_acquired(self, owner_id: str, audio: AcquiredAudio) -> Track:
        """Add a track fetched by the YouTube acquisition path."""
        return self.add_track(
            owner_id,
            audio.filename,
            audio.payload,
            metadata=TrackMetadata(
                title=audio.title, artist=audio.artist, duration=audio.duration
            ),
            content_type=audio.content_type,
        )

    # -- delete ---------------------------------------------------------------

    def delete_track(self, track_id: str, storage_path: str) -> None:
        """Remove the object, then the record.

        If the object removal fails the record is kept (visible but
        unplayable). If the record delete fails afterwards the record points
        at a missing object; both cases are raised to the caller.

        Raises:
            StorageError: Object removal failed (record untouched)
            DatabaseError: Record deletion failed (object already removed)
        """
        self.storage.remove([storage_path])

        try:
            self.records.delete_by_id(track_id)
        except DatabaseError:
            logger.error(f"Record {track_id} now references removed object {storage_path}")
            raise

        logger.info(f"Deleted track {track_id} ({storage_path})")

    def delete_account(self, owner_id: str, access_token: Optional[str] = None) -> None:
        """Delete every object and record of a user, then the identity itself.

        Args:
            owner_id: The user to delete
            access_token: Bearer token of the session to end; when None the
                locally held session is signed out

        Raises:
            TrackListingError, StorageCleanupError, RecordCleanupError,
            IdentityDeletionError: The step that failed
        """
        try:
            rows = self.records.select_for_owner(owner_id)
        except DatabaseError as e:
            raise TrackListingError(f"Failed to fetch user songs: {e}") from e

        paths = [row["file_path"] for row in rows if row.get("file_path")]
        if paths:
            try:
                self.storage.remove(paths)
            except StorageError as e:
                raise StorageCleanupError(f"Failed to delete files from storage: {e}") from e

        try:
            self.records.delete_for_owner(owner_id)
        except DatabaseError as e:
            raise RecordCleanupError(f"Failed to delete songs from database: {e}") from e

        try:
            self.auth.delete_identity(owner_id)
        except AuthError as e:
            raise IdentityDeletionError(f"Failed to delete user: {e}") from e

        logger.info(f"Deleted account {owner_id} ({len(paths)} objects)")

        # Data is already gone; a failed sign out must not fail the request
        try:
            self.auth.sign_out(access_token=access_token)
        except AuthError as e:
            logger.warning(f"Sign out after account deletion failed: {e}")

    # -- read -----------------------------------------------------------------

    def resolve_url(self, storage_path: str) -> Optional[str]:
        """Signed URL, else public URL, else None."""
        try:
            return self.storage.create_signed_url(
                storage_path, self.limits.signed_url_ttl_seconds
            )
        except StorageError as e:
            logger.warning(f"Signed URL error for {storage_path}: {e}")

        try:
            return self.storage.get_public_url(storage_path)
        except StorageError as e:
            logger.warning(f"Public URL error for {storage_path}: {e}")

        return None

    def list_tracks(self, owner_id: str) -> list[Track]:
        """List the owner's tracks, newest first, each with a playback URL.

        URL resolution degrades per item: a track whose URL cannot be built
        is returned with ``url=None``.

        Raises:
            DatabaseError: The listing query failed
        """
        rows = self.records.select_for_owner(owner_id)
        tracks = []
        for row in rows:
            track = Track.from_record(row)
            tracks.append(track._replace(url=self.resolve_url(track.storage_path)))
        return tracks

    def get_track(self, owner_id: str, track_id: str) -> Optional[Track]:
        """Find one of the owner's tracks by id (no URL resolution)."""
        for row in self.records.select_for_owner(owner_id):
            if str(row.get("id")) == track_id:
                return Track.from_record(row)
        return None

    def list_bucket_objects(
        self, prefix: str = "", limit: int = 100, offset: int = 0
    ) -> list[StoredObject]:
        """Raw bucket listing with public URLs, newest first."""
        entries = self.storage.list(prefix, limit=limit, offset=offset)
        objects = []
        for entry in entries:
            name = entry.get("name")
            if not name:
                continue
            path = f"{prefix.rstrip('/')}/{name}" if prefix else name
            try:
                url = self.storage.get_public_url(path)
            except GatewayError as e:
                logger.warning(f"Public URL error for {path}: {e}")
                url = None
            objects.append(StoredObject(name=name, url=url))
        return objects
