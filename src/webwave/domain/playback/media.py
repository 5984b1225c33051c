"""
Media element contract for the playback engine.

A media element owns one streaming source and reports what it is doing
through events. The engine treats those events as the truth for
play/pause/loading and never assumes a command took effect.
"""

import threading
from enum import Enum, IntEnum
from typing import Any, Callable, Optional, Protocol

from loguru import logger


class ReadyState(IntEnum):
    """How much of the source is buffered (HTML media readyState values)."""

    HAVE_NOTHING = 0
    HAVE_METADATA = 1
    HAVE_CURRENT_DATA = 2
    HAVE_FUTURE_DATA = 3
    HAVE_ENOUGH_DATA = 4


class MediaEvent(str, Enum):
    """Events emitted by a media element."""

    LOAD_START = "loadstart"
    LOADED_METADATA = "loadedmetadata"
    LOADED_DATA = "loadeddata"
    CAN_PLAY = "canplay"
    PLAY = "play"
    PAUSE = "pause"
    TIME_UPDATE = "timeupdate"
    ENDED = "ended"
    ERROR = "error"


# (event, element, detail)
MediaListener = Callable[[MediaEvent, "MediaElement", Any], None]


class MediaError(Exception):
    """Base exception for media element failures."""

    pass


class PlaybackRejectedError(MediaError):
    """Raised when the element refuses to start playback."""

    pass


class MediaElement(Protocol):
    """A single streaming audio element."""

    src: Optional[str]
    current_time: float
    volume: float

    @property
    def paused(self) -> bool: ...

    @property
    def ready_state(self) -> ReadyState: ...

    @property
    def duration(self) -> float: ...

    def load(self) -> None:
        """Start loading ``src`` from the beginning, without playing."""
        ...

    def play(self) -> None:
        """Request playback. Raises PlaybackRejectedError."""
        ...

    def pause(self) -> None: ...

    def reset(self) -> None:
        """Drop the current source."""
        ...

    def add_listener(self, event: MediaEvent, listener: MediaListener) -> None: ...

    def remove_listener(self, event: MediaEvent, listener: MediaListener) -> None: ...


class MediaEventSource:
    """Listener registry shared by media element implementations."""

    def __init__(self) -> None:
        self._listeners: dict[MediaEvent, list[MediaListener]] = {}
        self._listeners_lock = threading.Lock()

    def add_listener(self, event: MediaEvent, listener: MediaListener) -> None:
        with self._listeners_lock:
            self._listeners.setdefault(event, []).append(listener)

    def remove_listener(self, event: MediaEvent, listener: MediaListener) -> None:
        with self._listeners_lock:
            listeners = self._listeners.get(event, [])
            if listener in listeners:
                listeners.remove(listener)

    def emit(self, event: MediaEvent, detail: Any = None) -> None:
        """Deliver ``event`` to its listeners in registration order."""
        with self._listeners_lock:
            listeners = list(self._listeners.get(event, []))
        for listener in listeners:
            try:
                listener(event, self, detail)
            except Exception:
                # One broken listener must not starve the others
                logger.exception(f"Media listener failed on {event.value}")
