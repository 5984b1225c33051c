"""
Music library domain models.

Contains data structures for representing uploaded tracks.
"""

from typing import Any, NamedTuple, Optional


class TrackMetadata(NamedTuple):
    """Displayable metadata derived from a filename or supplied by an importer."""

    title: str
    artist: Optional[str] = None
    duration: Optional[float] = None  # in seconds


class Track(NamedTuple):
    """A user-owned audio item with metadata and a storage reference.

    Maps to one row of the records table (``user_id`` -> owner_id,
    ``file_path`` -> storage_path). ``url`` is derived on every read and
    never persisted.
    """

    id: str
    owner_id: str
    title: str
    filename: str
    storage_path: str
    created_at: Optional[str] = None
    artist: Optional[str] = None
    duration: Optional[int] = None  # whole seconds
    url: Optional[str] = None  # signed or public playback URL

    @classmethod
    def from_record(cls, row: dict[str, Any]) -> "Track":
        """Build a Track from a records-table row."""
        duration = row.get("duration")
        return cls(
            id=str(row["id"]),
            owner_id=str(row["user_id"]),
            title=row.get("title") or "",
            filename=row.get("filename") or "",
            storage_path=row["file_path"],
            created_at=row.get("created_at"),
            artist=row.get("artist"),
            duration=int(duration) if duration is not None else None,
            url=row.get("url"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses, using the table's column names."""
        return {
            "id": self.id,
            "user_id": self.owner_id,
            "title": self.title,
            "artist": self.artist,
            "filename": self.filename,
            "file_path": self.storage_path,
            "duration": self.duration,
            "created_at": self.created_at,
            "url": self.url,
        }


class StoredObject(NamedTuple):
    """An entry of the raw bucket listing."""

    name: str
    url: Optional[str] = None
