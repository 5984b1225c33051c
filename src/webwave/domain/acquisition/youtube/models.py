"""YouTube acquisition result model."""

from typing import NamedTuple


class AcquiredAudio(NamedTuple):
    """In-memory audio fetched from a video URL, ready for the add-track workflow."""

    title: str
    artist: str
    duration: int  # seconds
    payload: bytes
    size: int
    filename: str
    content_type: str
    original_url: str
