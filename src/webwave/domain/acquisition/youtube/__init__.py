"""
YouTube acquisition for WebWave.

Converts a single public video into an in-memory audio payload.
"""

from .download import (
    classify_download_error,
    extract_video_id,
    fetch_audio,
    is_valid_youtube_url,
    validate_and_extract_video_id,
)
from .exceptions import AcquisitionErrorKind, YouTubeError
from .models import AcquiredAudio

__all__ = [
    "AcquiredAudio",
    "AcquisitionErrorKind",
    "YouTubeError",
    "classify_download_error",
    "extract_video_id",
    "fetch_audio",
    "is_valid_youtube_url",
    "validate_and_extract_video_id",
]
