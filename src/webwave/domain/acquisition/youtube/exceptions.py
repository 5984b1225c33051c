"""YouTube-specific exceptions for error handling."""

from enum import Enum

from webwave.domain.library.exceptions import ValidationError


class AcquisitionErrorKind(str, Enum):
    """Upstream failure categories, decided once at the download boundary."""

    UNAVAILABLE = "unavailable"
    REGION_LOCKED = "region_locked"
    AGE_GATED = "age_gated"
    PRIVATE = "private"
    BOT_CHECK = "bot_check"
    UNKNOWN = "unknown"


class YouTubeError(Exception):
    """Base exception for YouTube operations."""

    kind = AcquisitionErrorKind.UNKNOWN


class InvalidYouTubeURLError(YouTubeError, ValidationError):
    """Raised when URL is not a valid YouTube URL."""

    pass


class VideoTooLongError(YouTubeError, ValidationError):
    """Raised when the video exceeds the duration cap."""

    def __init__(self, duration: int, max_duration: int):
        self.duration = duration
        self.max_duration = max_duration
        super().__init__(
            f"Video is too long. Maximum duration is {max_duration // 60} minutes."
        )


class AudioTooLargeError(YouTubeError, ValidationError):
    """Raised when the downloaded audio exceeds the size cap."""

    def __init__(self, size: int, max_size: int):
        self.size = size
        self.max_size = max_size
        super().__init__(
            f"Audio file is too large. Maximum size is {max_size // (1024 * 1024)}MB."
        )


class VideoUnavailableError(YouTubeError):
    """Raised when video is deleted or unavailable."""

    kind = AcquisitionErrorKind.UNAVAILABLE


class RegionLockedError(YouTubeError):
    """Raised when video is not available in the server's region."""

    kind = AcquisitionErrorKind.REGION_LOCKED


class AgeRestrictedError(YouTubeError):
    """Raised when video requires age verification."""

    kind = AcquisitionErrorKind.AGE_GATED


class PrivateVideoError(YouTubeError):
    """Raised when video is private."""

    kind = AcquisitionErrorKind.PRIVATE


class BotCheckError(YouTubeError):
    """Raised when YouTube demands a sign in to prove we are not a bot."""

    kind = AcquisitionErrorKind.BOT_CHECK


_ERRORS_BY_KIND = {
    AcquisitionErrorKind.UNAVAILABLE: VideoUnavailableError,
    AcquisitionErrorKind.REGION_LOCKED: RegionLockedError,
    AcquisitionErrorKind.AGE_GATED: AgeRestrictedError,
    AcquisitionErrorKind.PRIVATE: PrivateVideoError,
    AcquisitionErrorKind.BOT_CHECK: BotCheckError,
    AcquisitionErrorKind.UNKNOWN: YouTubeError,
}


def error_for_kind(kind: AcquisitionErrorKind, message: str) -> YouTubeError:
    """Build the exception class matching ``kind``."""
    return _ERRORS_BY_KIND[kind](message)
