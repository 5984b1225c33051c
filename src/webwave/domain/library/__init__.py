"""
Library domain - user tracks, their storage objects and records

Provides metadata parsing, the add/delete/list workflow and the client-side
store that feeds the playback engine.
"""

from .exceptions import (
    AccountDeletionError,
    FileTooLargeError,
    InvalidFilenameError,
    QuotaExceededError,
    ValidationError,
)
from .metadata import extract_metadata, format_time, probe_duration
from .models import StoredObject, Track, TrackMetadata
from .workflow import TrackWorkflow, build_storage_path
from .store import LibraryStore, ReloadPolicy

__all__ = [
    "AccountDeletionError",
    "FileTooLargeError",
    "InvalidFilenameError",
    "QuotaExceededError",
    "ValidationError",
    "extract_metadata",
    "format_time",
    "probe_duration",
    "StoredObject",
    "Track",
    "TrackMetadata",
    "TrackWorkflow",
    "build_storage_path",
    "LibraryStore",
    "ReloadPolicy",
]
