"""YouTube audio acquisition using yt-dlp."""

import mimetypes
import re
import tempfile
import time
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import parse_qs, urlparse

import yt_dlp
from loguru import logger

from webwave.domain.library.metadata import UNKNOWN_ARTIST

from .exceptions import (
    AcquisitionErrorKind,
    AudioTooLargeError,
    InvalidYouTubeURLError,
    VideoTooLongError,
    VideoUnavailableError,
    YouTubeError,
    error_for_kind,
)
from .models import AcquiredAudio

MAX_VIDEO_DURATION = 600  # 10 minutes
MAX_AUDIO_BYTES = 7 * 1024 * 1024

YOUTUBE_HOSTS = {"www.youtube.com", "youtube.com", "m.youtube.com"}
SHORT_HOST = "youtu.be"

AUDIO_MIME_TYPES: dict[str, str] = {
    ".opus": "audio/opus",
    ".mp3": "audio/mpeg",
    ".m4a": "audio/mp4",
    ".webm": "audio/webm",
}

# First match wins; checked against the lowercased yt-dlp message
_ERROR_PATTERNS: list[tuple[AcquisitionErrorKind, tuple[str, ...]]] = [
    (AcquisitionErrorKind.BOT_CHECK, ("not a bot",)),
    (AcquisitionErrorKind.PRIVATE, ("private video",)),
    (
        AcquisitionErrorKind.AGE_GATED,
        ("confirm your age", "age-restricted", "inappropriate for some users"),
    ),
    (
        AcquisitionErrorKind.REGION_LOCKED,
        (
            "not available in your country",
            "made this video available in your country",
            "this video is not available",
        ),
    ),
    (AcquisitionErrorKind.UNAVAILABLE, ("video unavailable",)),
]

_UNSAFE_TITLE_CHARS = re.compile(r"[^a-zA-Z0-9\s-]")


def is_valid_youtube_url(url: str) -> bool:
    """Check for a single-video YouTube URL.

    Accepts ``youtube.com/watch?v=ID`` (www., m. or bare host) and
    ``youtu.be/ID``.
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return False

    if parsed.scheme not in ("http", "https"):
        return False

    host = (parsed.hostname or "").lower()
    if host in YOUTUBE_HOSTS:
        return parsed.path == "/watch" and "v" in parse_qs(parsed.query, keep_blank_values=True)
    if host == SHORT_HOST:
        return len(parsed.path) > 1
    return False


def extract_video_id(url: str) -> Optional[str]:
    """Extract the video ID from a YouTube URL, or None."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return None

    host = (parsed.hostname or "").lower()
    if host in YOUTUBE_HOSTS:
        values = parse_qs(parsed.query, keep_blank_values=True).get("v")
        return values[0] if values else None
    if host == SHORT_HOST:
        return parsed.path[1:] or None
    return None


def validate_and_extract_video_id(url: str) -> Optional[str]:
    """Validate a YouTube URL and return its video ID if valid."""
    if not is_valid_youtube_url(url):
        return None
    return extract_video_id(url)


def classify_download_error(message: str) -> AcquisitionErrorKind:
    """Map a yt-dlp error message onto an AcquisitionErrorKind."""
    lowered = message.lower()
    for kind, patterns in _ERROR_PATTERNS:
        if any(pattern in lowered for pattern in patterns):
            return kind
    return AcquisitionErrorKind.UNKNOWN


def sanitize_title(title: str, max_length: int = 50) -> str:
    """Keep ASCII letters, digits, spaces and hyphens.

    Example:
        "Darude - Sandstorm (Official)!" -> "Darude - Sandstorm Official"
    """
    return _UNSAFE_TITLE_CHARS.sub("", title).strip()[:max_length]


def get_mime_type(file_path: Path) -> str:
    """Deterministic MIME type detection."""
    mime = AUDIO_MIME_TYPES.get(file_path.suffix.lower())
    if mime:
        return mime
    guessed, _ = mimetypes.guess_type(str(file_path))
    return guessed or "application/octet-stream"


def fetch_audio(
    url: str,
    max_duration: int = MAX_VIDEO_DURATION,
    max_bytes: int = MAX_AUDIO_BYTES,
    clock: Callable[[], float] = time.time,
) -> AcquiredAudio:
    """Download the audio track of a YouTube video into memory.

    Metadata is probed first so over-long videos are rejected before any
    audio is transferred.

    Args:
        url: YouTube video URL
        max_duration: Longest accepted video, in seconds
        max_bytes: Largest accepted audio payload
        clock: Time source for the filename prefix

    Returns:
        AcquiredAudio with the payload and display metadata

    Raises:
        InvalidYouTubeURLError: URL is not a single-video YouTube link
        VideoTooLongError: Video longer than ``max_duration``
        AudioTooLargeError: Audio larger than ``max_bytes``
        YouTubeError: Upstream failure, with ``kind`` set
    """
    if validate_and_extract_video_id(url) is None:
        raise InvalidYouTubeURLError(
            "Invalid YouTube URL. Please provide a valid YouTube video link."
        )

    ydl_opts = {
        "format": "bestaudio[ext=m4a]/bestaudio/best",
        "quiet": True,
        "no_warnings": True,
        "noplaylist": True,
    }

    try:
        logger.info(f"Getting video info for: {url}")
        with yt_dlp.YoutubeDL(ydl_opts) as ydl:
            info = ydl.extract_info(url, download=False)

        if not info:
            raise VideoUnavailableError("Video unavailable")

        raw_title = info.get("title") or ""
        duration = int(info.get("duration") or 0)
        author = info.get("uploader") or info.get("channel") or UNKNOWN_ARTIST
        logger.debug(f"Video info: title={raw_title!r} duration={duration} author={author!r}")

        if duration > max_duration:
            raise VideoTooLongError(duration, max_duration)

        with tempfile.TemporaryDirectory(prefix="webwave-yt-") as temp_dir:
            download_opts = {**ydl_opts, "outtmpl": str(Path(temp_dir) / "audio.%(ext)s")}
            with yt_dlp.YoutubeDL(download_opts) as ydl_download:
                ydl_download.download([url])

            downloaded_files = sorted(Path(temp_dir).glob("audio.*"))
            if not downloaded_files:
                raise YouTubeError("Download completed but file not found")

            audio_path = downloaded_files[0]
            payload = audio_path.read_bytes()
            extension = audio_path.suffix.lstrip(".") or "m4a"
            content_type = get_mime_type(audio_path)

    except yt_dlp.utils.DownloadError as e:
        message = str(e)
        kind = classify_download_error(message)
        logger.warning(f"YouTube download failed ({kind.value}): {message}")
        raise error_for_kind(kind, message) from e

    logger.info(f"Download complete, size: {len(payload)} bytes")
    if len(payload) > max_bytes:
        raise AudioTooLargeError(len(payload), max_bytes)

    sanitized = sanitize_title(raw_title)
    filename = f"{int(clock() * 1000)}_{sanitized or 'youtube_audio'}.{extension}"

    return AcquiredAudio(
        title=sanitized or "Unknown Title",
        artist=author,
        duration=duration,
        payload=payload,
        size=len(payload),
        filename=filename,
        content_type=content_type,
        original_url=url,
    )
