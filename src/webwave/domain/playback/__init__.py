"""
Playback domain - streaming audio element control

Provides the playback engine, the media element contract and an mpv-backed
element for the terminal player.
"""

from .engine import LOAD_TIMEOUT_SECONDS, PLAY_FALLBACK_SECONDS, PlaybackEngine
from .media import (
    MediaElement,
    MediaError,
    MediaEvent,
    MediaEventSource,
    PlaybackRejectedError,
    ReadyState,
)
from .scheduler import Scheduler, ThreadingScheduler
from .state import PlaybackState, apply_media_event, clamp_volume

__all__ = [
    "LOAD_TIMEOUT_SECONDS",
    "PLAY_FALLBACK_SECONDS",
    "PlaybackEngine",
    "MediaElement",
    "MediaError",
    "MediaEvent",
    "MediaEventSource",
    "PlaybackRejectedError",
    "ReadyState",
    "Scheduler",
    "ThreadingScheduler",
    "PlaybackState",
    "apply_media_event",
    "clamp_volume",
]
