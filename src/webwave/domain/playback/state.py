"""
Playback state and the reducer that applies media element events to it.

Element events are the only source of truth for play/pause/loading: the
engine's commands never set ``is_playing`` themselves.
"""

import math
from typing import Any, NamedTuple, Optional

from webwave.domain.library.models import Track

from .media import MediaElement, MediaEvent


class PlaybackState(NamedTuple):
    """Immutable playback snapshot. Use ``._replace()`` to derive new states."""

    current_track: Optional[Track] = None
    is_playing: bool = False
    is_loading: bool = False
    current_time: float = 0.0
    duration: float = 0.0
    volume: float = 1.0
    playlist: tuple[Track, ...] = ()
    current_index: int = -1  # -1 means no track selected


def _finite(value: Any) -> float:
    """Element timings can be NaN/inf before metadata arrives."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def apply_media_event(
    state: PlaybackState, event: MediaEvent, element: MediaElement, detail: Any = None
) -> PlaybackState:
    """Return the state after ``event`` was emitted by ``element``."""
    if event is MediaEvent.LOAD_START:
        return state._replace(is_loading=True)

    if event is MediaEvent.LOADED_METADATA:
        return state._replace(duration=_finite(element.duration), is_loading=False)

    if event in (MediaEvent.LOADED_DATA, MediaEvent.CAN_PLAY):
        return state._replace(is_loading=False)

    if event is MediaEvent.TIME_UPDATE:
        return state._replace(current_time=_finite(element.current_time))

    if event is MediaEvent.PLAY:
        return state._replace(is_playing=True)

    if event in (MediaEvent.PAUSE, MediaEvent.ENDED):
        return state._replace(is_playing=False)

    if event is MediaEvent.ERROR:
        return state._replace(is_loading=False, is_playing=False)

    return state


def clamp_volume(volume: float) -> float:
    """Clamp to [0, 1]."""
    return max(0.0, min(1.0, float(volume)))


def is_valid_index(playlist: tuple[Track, ...] | list[Track], index: int) -> bool:
    return 0 <= index < len(playlist)
