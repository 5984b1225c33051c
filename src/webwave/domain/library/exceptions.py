"""Library workflow exceptions for error handling."""

from webwave.gateway.errors import GatewayError


class ValidationError(Exception):
    """Base exception for rejected input. Never retried."""

    pass


class FileTooLargeError(ValidationError):
    """Raised when a payload exceeds the per-item size cap."""

    def __init__(self, size: int, max_size: int):
        self.size = size
        self.max_size = max_size
        super().__init__(
            f"File too large. Maximum size is {max_size / (1024 * 1024):.0f}MB, "
            f"but file is {size / (1024 * 1024):.1f}MB"
        )


class InvalidFilenameError(ValidationError):
    """Raised when an uploaded filename has no usable basename."""

    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(f"Invalid file name: {filename!r}")


class QuotaExceededError(ValidationError):
    """Raised when the owner already has the maximum number of tracks."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(
            f"Song limit reached. You can only upload {limit} songs. "
            "Please delete some songs first."
        )


class AccountDeletionError(GatewayError):
    """Base exception for the cascading account deletion."""

    step = "account"


class TrackListingError(AccountDeletionError):
    """Raised when the user's tracks could not be enumerated."""

    step = "fetch_tracks"


class StorageCleanupError(AccountDeletionError):
    """Raised when the user's objects could not be removed from storage."""

    step = "remove_objects"


class RecordCleanupError(AccountDeletionError):
    """Raised when the user's records could not be deleted."""

    step = "delete_records"


class IdentityDeletionError(AccountDeletionError):
    """Raised when the auth identity could not be removed."""

    step = "delete_identity"
