"""
Metadata helpers for uploaded audio.

Filename parsing is pure; duration probing reads the payload with mutagen.
"""

import io
import math
import re
from typing import Optional

from loguru import logger
from mutagen import File as MutagenFile
from mutagen import MutagenError

from .models import TrackMetadata

UNKNOWN_ARTIST = "Unknown Artist"

_EXTENSION_RE = re.compile(r"\.[^/.]+$")
_TIMESTAMP_PREFIX_RE = re.compile(r"^\d+_")


def extract_metadata(filename: str) -> TrackMetadata:
    """Derive artist/title from a filename.

    Strips the extension and a leading ``<digits>_`` timestamp prefix, then
    splits on " - ". Everything after the first separator is the title.

    Example:
        "1699999999_Artist - Title.mp3" -> artist="Artist", title="Title"
        "1699999999_justtitle.mp3" -> artist="Unknown Artist", title="justtitle"
    """
    name = _EXTENSION_RE.sub("", filename)
    name = _TIMESTAMP_PREFIX_RE.sub("", name)

    parts = name.split(" - ")
    if len(parts) >= 2:
        return TrackMetadata(
            title=" - ".join(parts[1:]).strip(),
            artist=parts[0].strip(),
        )

    return TrackMetadata(title=name, artist=UNKNOWN_ARTIST)


def probe_duration(payload: bytes) -> Optional[float]:
    """Best-effort duration of an in-memory audio payload, in seconds.

    Returns None when the format is not recognized or the header is broken.
    """
    try:
        audio = MutagenFile(io.BytesIO(payload))
    except (MutagenError, OSError, ValueError) as e:
        logger.warning(f"Could not extract duration: {e}")
        return None

    if audio is None or audio.info is None:
        return None

    length = getattr(audio.info, "length", None)
    if not length or length <= 0 or math.isnan(length):
        return None
    return float(length)


def format_time(seconds: Optional[float]) -> str:
    """Format seconds as M:SS (e.g. 185 -> "3:05")."""
    if seconds is None or math.isnan(seconds):
        return "0:00"
    minutes = int(seconds // 60)
    remaining = int(seconds % 60)
    return f"{minutes}:{remaining:02d}"
