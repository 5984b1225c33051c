"""
Playback engine: one media element, one playlist cursor, transport controls.

Commands (load, play, pause, ...) only *ask* the element to do something.
What actually happened comes back as element events, which are applied in
arrival order by ``apply_media_event``. Every mutation goes through one
re-entrant lock so events, timers and commands never interleave.

Each ``load_song`` bumps a generation counter; timers and deferred play
requests belonging to an older load are discarded when they fire.
"""

import threading
from typing import Any, Callable, Optional, Sequence

from loguru import logger

from webwave.domain.library.models import Track

from .media import MediaElement, MediaError, MediaEvent, ReadyState
from .scheduler import Scheduler, ThreadingScheduler, Timer
from .state import PlaybackState, apply_media_event, clamp_volume, is_valid_index

# Force the loading indicator off if the stream never reports readiness
LOAD_TIMEOUT_SECONDS = 5.0

# Try to play anyway if "canplay" never arrives
PLAY_FALLBACK_SECONDS = 2.0

StateListener = Callable[[PlaybackState], None]
ErrorSink = Callable[[Any], None]


class PlaybackEngine:
    """Drives a single media element from UI-triggered commands."""

    def __init__(
        self,
        element: MediaElement,
        scheduler: Optional[Scheduler] = None,
        *,
        load_timeout: float = LOAD_TIMEOUT_SECONDS,
        play_fallback: float = PLAY_FALLBACK_SECONDS,
        volume: float = 1.0,
        on_error: Optional[ErrorSink] = None,
    ) -> None:
        self._element = element
        self._scheduler = scheduler or ThreadingScheduler()
        self._load_timeout = load_timeout
        self._play_fallback = play_fallback
        self._on_error = on_error

        self._lock = threading.RLock()
        self._state = PlaybackState(volume=clamp_volume(volume))
        self._listeners: list[StateListener] = []

        self._generation = 0
        self._play_pending = False
        self._awaiting_can_play: Optional[int] = None  # generation waiting for canplay
        self._load_timer: Optional[Timer] = None
        self._play_timer: Optional[Timer] = None

        self._element.volume = self._state.volume
        for event in MediaEvent:
            self._element.add_listener(event, self._on_media_event)

    # -- observation ----------------------------------------------------------

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def element(self) -> MediaElement:
        return self._element

    @property
    def current_track(self) -> Optional[Track]:
        return self._state.current_track

    @property
    def is_playing(self) -> bool:
        return self._state.is_playing

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def playlist(self) -> tuple[Track, ...]:
        return self._state.playlist

    @property
    def current_index(self) -> int:
        return self._state.current_index

    @property
    def play_pending(self) -> bool:
        return self._play_pending

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` with every new state. Returns an unsubscribe callable."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # -- transport ------------------------------------------------------------

    def load_song(self, track: Track) -> None:
        """Make ``track`` the current track and start loading it, without playing."""
        if not track.url:
            logger.warning(f"Track {track.id} has no playback URL, not loading")
            return

        with self._lock:
            self._generation += 1
            generation = self._generation
            self._cancel_timers()
            self._play_pending = False
            self._awaiting_can_play = None

            self._set_state(
                self._state._replace(
                    current_track=track,
                    is_loading=True,
                    is_playing=False,
                    current_time=0.0,
                    duration=0.0,
                )
            )
            logger.debug(f"Loading track {track.id} (generation {generation})")

            try:
                self._element.src = track.url
                self._element.load()
            except MediaError as e:
                logger.error(f"Failed to load track {track.id}: {e}")
                self._set_state(self._state._replace(is_loading=False))
                self._report_error(e)
                return

            self._load_timer = self._scheduler.call_later(
                self._load_timeout, lambda: self._on_load_timeout(generation)
            )

    def play(self) -> None:
        """Request playback of the current track.

        No-op while an earlier play request is still in flight. Plays at once
        when enough data is buffered, otherwise on the next "canplay" (or
        after the fallback delay).
        """
        with self._lock:
            if self._state.current_track is None:
                return
            if self._play_pending:
                logger.debug("play(): request already pending")
                return
            self._play_pending = True

            if self._element.ready_state >= ReadyState.HAVE_FUTURE_DATA:
                self._request_play()
                return

            generation = self._generation
            self._awaiting_can_play = generation
            self._cancel_play_timer()
            self._play_timer = self._scheduler.call_later(
                self._play_fallback, lambda: self._on_play_fallback(generation)
            )
            logger.debug("play(): waiting for canplay")

    def pause(self) -> None:
        """Request pause. ``is_playing`` follows the element's pause event."""
        with self._lock:
            # A deferred play must not fire after the user asked to pause
            self._awaiting_can_play = None
            self._cancel_play_timer()
            self._play_pending = False
            try:
                self._element.pause()
            except MediaError as e:
                logger.error(f"Pause failed: {e}")
                self._report_error(e)

    def toggle_play_pause(self) -> None:
        """Play or pause based on the element's own paused flag."""
        with self._lock:
            if self._element.paused:
                self.play()
            else:
                self.pause()

    def seek_to(self, time: float) -> None:
        with self._lock:
            position = max(0.0, float(time))
            try:
                self._element.current_time = position
            except MediaError as e:
                logger.error(f"Seek to {position:.1f}s failed: {e}")
                self._report_error(e)
                return
            self._set_state(self._state._replace(current_time=position))

    def set_volume(self, volume: float) -> None:
        with self._lock:
            clamped = clamp_volume(volume)
            try:
                self._element.volume = clamped
            except MediaError as e:
                logger.error(f"Setting volume failed: {e}")
                self._report_error(e)
                return
            self._set_state(self._state._replace(volume=clamped))

    # -- playlist -------------------------------------------------------------

    def set_playlist(self, tracks: Sequence[Track], start_index: int = 0) -> None:
        """Replace the playlist and load the track at ``start_index`` (no auto-play).

        An out-of-range index keeps the new playlist with no selection. An
        empty playlist also unloads the current track.
        """
        with self._lock:
            playlist = tuple(tracks)

            if not playlist:
                self._unload()
                self._set_state(self._state._replace(playlist=(), current_index=-1))
                return

            if not is_valid_index(playlist, start_index):
                self._set_state(self._state._replace(playlist=playlist, current_index=-1))
                return

            self._set_state(self._state._replace(playlist=playlist))
            self._select(start_index)

    def play_from_playlist(self, tracks: Sequence[Track], start_index: int = 0) -> None:
        """Select a track from a list. Loads only; the user starts playback."""
        self.set_playlist(tracks, start_index)

    def skip_to_next(self) -> None:
        """Advance the cursor. Does nothing past the last track."""
        with self._lock:
            playlist = self._state.playlist
            if not playlist:
                return

            next_index = self._state.current_index + 1
            if next_index >= len(playlist):
                return

            self._select(next_index)

    def skip_to_previous(self) -> None:
        """Retreat the cursor, wrapping from the first track to the last."""
        with self._lock:
            playlist = self._state.playlist
            if not playlist:
                return

            index = self._state.current_index
            prev_index = index - 1 if index > 0 else len(playlist) - 1

            self._select(prev_index)

    def close(self) -> None:
        """Detach from the element and cancel pending timers."""
        with self._lock:
            self._cancel_timers()
            for event in MediaEvent:
                self._element.remove_listener(event, self._on_media_event)
            self._listeners.clear()

    # -- element events -------------------------------------------------------

    def _on_media_event(self, event: MediaEvent, element: MediaElement, detail: Any) -> None:
        with self._lock:
            if event in (MediaEvent.PLAY, MediaEvent.PAUSE, MediaEvent.ERROR):
                self._play_pending = False

            if event is MediaEvent.ERROR:
                self._awaiting_can_play = None
                self._cancel_play_timer()
                track = self._state.current_track
                logger.error(
                    f"Audio playback error for track {track.id if track else None}: {detail}"
                )
                self._report_error(detail)

            self._set_state(apply_media_event(self._state, event, element, detail))

            if event is MediaEvent.CAN_PLAY and self._awaiting_can_play == self._generation:
                self._awaiting_can_play = None
                self._cancel_play_timer()
                self._request_play()

    # -- internals ------------------------------------------------------------

    def _select(self, index: int) -> None:
        """Move the cursor to ``index`` and load that track.

        A track without a URL cannot be loaded; the element is unloaded so the
        cursor never points at one track while another stays current.
        """
        track = self._state.playlist[index]
        self._set_state(self._state._replace(current_index=index))
        if track.url:
            self.load_song(track)
            return
        logger.warning(f"Track {track.id} at index {index} has no playback URL, unloading")
        self._unload()

    def _request_play(self) -> None:
        """Ask the element to play; a rejection clears the pending flag."""
        try:
            self._element.play()
        except MediaError as e:
            logger.error(f"Playback failed: {e}")
            self._play_pending = False
            self._set_state(self._state._replace(is_playing=False))
            self._report_error(e)

    def _on_load_timeout(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._load_timer = None
            if self._state.is_loading:
                logger.warning(
                    f"Track still loading after {self._load_timeout:.0f}s, clearing loading state"
                )
                self._set_state(self._state._replace(is_loading=False))

    def _on_play_fallback(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._awaiting_can_play != generation:
                return
            self._awaiting_can_play = None
            self._play_timer = None
            logger.debug("canplay not received, trying to play anyway")
            self._request_play()

    def _unload(self) -> None:
        self._generation += 1
        self._cancel_timers()
        self._play_pending = False
        self._awaiting_can_play = None
        try:
            self._element.reset()
        except MediaError as e:
            logger.error(f"Failed to reset media element: {e}")
        self._set_state(
            self._state._replace(
                current_track=None,
                is_playing=False,
                is_loading=False,
                current_time=0.0,
                duration=0.0,
            )
        )

    def _cancel_play_timer(self) -> None:
        if self._play_timer is not None:
            self._play_timer.cancel()
            self._play_timer = None

    def _cancel_timers(self) -> None:
        self._cancel_play_timer()
        if self._load_timer is not None:
            self._load_timer.cancel()
            self._load_timer = None

    def _set_state(self, new_state: PlaybackState) -> None:
        if new_state == self._state:
            return
        self._state = new_state
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception:
                logger.exception("Playback state listener failed")

    def _report_error(self, error: Any) -> None:
        if self._on_error is None:
            return
        try:
            self._on_error(error)
        except Exception:
            logger.exception("Playback error sink failed")
