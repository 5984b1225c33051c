"""Tests for the playback engine."""

import pytest

from webwave.domain.playback.engine import PlaybackEngine
from webwave.domain.playback.media import MediaEvent


@pytest.fixture
def errors() -> list:
    return []


@pytest.fixture
def engine(element, scheduler, errors) -> PlaybackEngine:
    return PlaybackEngine(element, scheduler, on_error=errors.append)


def make_ready(element) -> None:
    element.fire(MediaEvent.LOADED_METADATA)
    element.fire(MediaEvent.CAN_PLAY)


class TestLoadSong:
    """Tests for load_song."""

    def test_load_sets_track_and_loading(self, engine, element, tracks) -> None:
        """Loading marks the track current and loading, without playing."""
        engine.load_song(tracks[0])

        assert engine.current_track == tracks[0]
        assert engine.is_loading is True
        assert engine.is_playing is False
        assert element.src == tracks[0].url
        assert element.calls == ["load"]

    def test_track_without_url_is_ignored(self, engine, element, track_factory) -> None:
        """A track with no playback URL is not loaded."""
        engine.load_song(track_factory(1, url=None))

        assert engine.current_track is None
        assert element.calls == []

    def test_metadata_clears_loading_and_sets_duration(self, engine, element, tracks) -> None:
        """loadedmetadata reports the duration and ends loading."""
        engine.load_song(tracks[0])
        element.fire(MediaEvent.LOADED_METADATA, duration=212.5)

        assert engine.is_loading is False
        assert engine.state.duration == 212.5

    def test_load_timeout_clears_loading(self, engine, scheduler, tracks) -> None:
        """Loading is forced off when the stream never becomes ready."""
        engine.load_song(tracks[0])

        scheduler.advance(4.9)
        assert engine.is_loading is True

        scheduler.advance(0.2)
        assert engine.is_loading is False

    def test_stale_timeout_does_not_clear_newer_load(self, engine, scheduler, tracks) -> None:
        """The first load's failsafe cannot end the second load's loading state."""
        engine.load_song(tracks[0])
        scheduler.advance(3)
        engine.load_song(tracks[1])

        scheduler.advance(2.5)
        assert engine.is_loading is True
        assert engine.current_track == tracks[1]

        scheduler.advance(2.5)
        assert engine.is_loading is False

    def test_failed_load_clears_loading(self, engine, element, errors, tracks) -> None:
        """A load the element refuses ends loading and reports the error."""
        element.fail_load = True
        engine.load_song(tracks[0])

        assert engine.is_loading is False
        assert len(errors) == 1


class TestPlay:
    """Tests for play/pause and the in-flight guard."""

    def test_play_when_ready_calls_element(self, engine, element, tracks) -> None:
        """With enough data buffered, play is requested at once."""
        engine.load_song(tracks[0])
        make_ready(element)

        engine.play()

        assert element.calls.count("play") == 1
        assert engine.play_pending is True

    def test_is_playing_follows_play_event(self, engine, element, tracks) -> None:
        """is_playing only flips when the element reports playback."""
        engine.load_song(tracks[0])
        make_ready(element)
        engine.play()
        assert engine.is_playing is False

        element.fire(MediaEvent.PLAY)

        assert engine.is_playing is True
        assert engine.play_pending is False

    def test_play_while_pending_is_noop(self, engine, element, tracks) -> None:
        """A second play before the first resolves does not reach the element."""
        engine.load_song(tracks[0])
        make_ready(element)

        engine.play()
        engine.play()

        assert element.calls.count("play") == 1

    def test_play_without_track_is_noop(self, engine, element) -> None:
        engine.play()

        assert element.calls == []
        assert engine.play_pending is False

    def test_play_waits_for_canplay(self, engine, element, tracks) -> None:
        """Before the stream is ready, play is deferred until canplay."""
        engine.load_song(tracks[0])
        engine.play()
        assert "play" not in element.calls

        element.fire(MediaEvent.CAN_PLAY)

        assert element.calls.count("play") == 1

    def test_play_fallback_after_delay(self, engine, element, scheduler, tracks) -> None:
        """Without canplay, play is attempted after the fallback delay."""
        engine.load_song(tracks[0])
        engine.play()

        scheduler.advance(2.0)

        assert element.calls.count("play") == 1

    def test_canplay_after_fallback_does_not_replay(self, engine, element, scheduler, tracks) -> None:
        engine.load_song(tracks[0])
        engine.play()
        scheduler.advance(2.0)

        element.fire(MediaEvent.CAN_PLAY)

        assert element.calls.count("play") == 1

    def test_deferred_play_dropped_when_new_track_loads(
        self, engine, element, scheduler, tracks
    ) -> None:
        """A play waiting on track A does not start track B."""
        engine.load_song(tracks[0])
        engine.play()
        engine.load_song(tracks[1])

        scheduler.advance(2.0)
        element.fire(MediaEvent.CAN_PLAY)

        assert "play" not in element.calls
        assert engine.play_pending is False

    def test_rejected_play_clears_pending(self, engine, element, errors, tracks) -> None:
        """A refused play clears the in-flight flag so the user can retry."""
        engine.load_song(tracks[0])
        make_ready(element)
        element.reject_play = True

        engine.play()

        assert engine.play_pending is False
        assert engine.is_playing is False
        assert len(errors) == 1

        element.reject_play = False
        engine.play()
        assert element.calls.count("play") == 2

    def test_pause_cancels_deferred_play(self, engine, element, scheduler, tracks) -> None:
        """Pausing while waiting for canplay drops the deferred play."""
        engine.load_song(tracks[0])
        engine.play()
        engine.pause()

        element.fire(MediaEvent.CAN_PLAY)
        scheduler.advance(2.0)

        assert "play" not in element.calls

    def test_events_applied_in_order(self, engine, element, tracks) -> None:
        """play then pause leaves the engine paused."""
        engine.load_song(tracks[0])
        element.fire(MediaEvent.PLAY)
        element.fire(MediaEvent.PAUSE)

        assert engine.is_playing is False

    def test_ended_clears_playing_without_advancing(self, engine, element, tracks) -> None:
        engine.set_playlist(tracks)
        element.fire(MediaEvent.PLAY)

        element.fire(MediaEvent.ENDED)

        assert engine.is_playing is False
        assert engine.current_index == 0

    def test_error_event_clears_flags(self, engine, element, errors, tracks) -> None:
        """An element error ends loading, playing and any pending play."""
        engine.load_song(tracks[0])
        engine.play()

        element.fire(MediaEvent.ERROR, "MEDIA_ERR_NETWORK")

        assert engine.is_loading is False
        assert engine.is_playing is False
        assert engine.play_pending is False
        assert errors == ["MEDIA_ERR_NETWORK"]


class TestTransport:
    """Tests for toggle, seek and volume."""

    def test_toggle_plays_when_element_paused(self, engine, element, tracks) -> None:
        engine.load_song(tracks[0])
        make_ready(element)

        engine.toggle_play_pause()

        assert element.calls[-1] == "play"

    def test_toggle_pauses_when_element_playing(self, engine, element, tracks) -> None:
        engine.load_song(tracks[0])
        make_ready(element)
        element.fire(MediaEvent.PLAY)

        engine.toggle_play_pause()

        assert element.calls[-1] == "pause"

    def test_seek_sets_element_and_state(self, engine, element) -> None:
        engine.seek_to(42.5)

        assert element.seeks == [42.5]
        assert engine.state.current_time == 42.5

    def test_time_update_mirrors_element(self, engine, element, tracks) -> None:
        engine.load_song(tracks[0])
        element.fire(MediaEvent.TIME_UPDATE, time=12.0)

        assert engine.state.current_time == 12.0

    @pytest.mark.parametrize("requested,expected", [(0.5, 0.5), (1.7, 1.0), (-0.3, 0.0)])
    def test_volume_is_clamped(self, engine, element, requested, expected) -> None:
        engine.set_volume(requested)

        assert element.volume == expected
        assert engine.state.volume == expected


class TestPlaylist:
    """Tests for playlist cursor handling."""

    def test_set_playlist_loads_without_playing(self, engine, element, tracks) -> None:
        """Selecting from a list loads the track; the user starts playback."""
        engine.set_playlist(tracks, 1)

        assert engine.current_index == 1
        assert engine.current_track == tracks[1]
        assert "play" not in element.calls

    def test_play_from_playlist_matches_set_playlist(self, engine, tracks) -> None:
        engine.play_from_playlist(tracks, 2)

        assert engine.current_index == 2
        assert engine.current_track == tracks[2]

    def test_invalid_start_index_leaves_no_selection(self, engine, element, tracks) -> None:
        engine.set_playlist(tracks, 7)

        assert engine.playlist == tuple(tracks)
        assert engine.current_index == -1
        assert element.calls == []

    def test_invalid_index_keeps_loaded_track(self, engine, tracks) -> None:
        engine.set_playlist(tracks, 0)
        engine.set_playlist(tracks, -2)

        assert engine.current_index == -1
        assert engine.current_track == tracks[0]

    def test_empty_playlist_unloads(self, engine, element, tracks) -> None:
        """Clearing the playlist drops the current track and resets the element."""
        engine.set_playlist(tracks)
        engine.set_playlist([])

        assert engine.current_track is None
        assert engine.current_index == -1
        assert engine.is_loading is False
        assert "reset" in element.calls

    def test_skip_to_next_advances(self, engine, tracks) -> None:
        engine.set_playlist(tracks, 0)

        engine.skip_to_next()

        assert engine.current_index == 1
        assert engine.current_track == tracks[1]

    def test_skip_to_next_at_end_is_noop(self, engine, element, tracks) -> None:
        engine.set_playlist(tracks, 2)
        loads = element.calls.count("load")

        engine.skip_to_next()

        assert engine.current_index == 2
        assert element.calls.count("load") == loads

    def test_skip_to_previous_wraps_to_last(self, engine, tracks) -> None:
        engine.set_playlist(tracks, 0)

        engine.skip_to_previous()

        assert engine.current_index == 2
        assert engine.current_track == tracks[2]

    def test_skip_to_previous_without_selection_goes_to_last(self, engine, tracks) -> None:
        engine.set_playlist(tracks, 9)

        engine.skip_to_previous()

        assert engine.current_index == 2

    def test_skip_on_empty_playlist_is_noop(self, engine, element) -> None:
        engine.skip_to_next()
        engine.skip_to_previous()

        assert engine.current_index == -1
        assert element.calls == []

    def test_skip_to_track_without_url_unloads(self, engine, element, track_factory) -> None:
        """The cursor and the current track never disagree."""
        playlist = [track_factory(1), track_factory(2, url=None), track_factory(3)]
        engine.set_playlist(playlist, 0)

        engine.skip_to_next()

        assert engine.current_index == 1
        assert engine.current_track is None
        assert engine.is_loading is False
        assert element.calls[-1] == "reset"

    def test_selecting_track_without_url_drops_previous_track(
        self, engine, tracks, track_factory
    ) -> None:
        engine.set_playlist(tracks, 0)

        engine.set_playlist([track_factory(9, url=None)], 0)

        assert engine.current_index == 0
        assert engine.current_track is None

    def test_skip_past_track_without_url_loads_next(self, engine, track_factory) -> None:
        playlist = [track_factory(1), track_factory(2, url=None), track_factory(3)]
        engine.set_playlist(playlist, 0)
        engine.skip_to_next()

        engine.skip_to_next()

        assert engine.current_index == 2
        assert engine.current_track == playlist[2]

class TestSubscribe:
    """Tests for state listeners."""

    def test_listener_receives_new_states(self, engine, tracks) -> None:
        states = []
        engine.subscribe(states.append)

        engine.load_song(tracks[0])

        assert states[-1].current_track == tracks[0]
        assert states[-1].is_loading is True

    def test_unsubscribe_stops_notifications(self, engine, tracks) -> None:
        states = []
        unsubscribe = engine.subscribe(states.append)
        unsubscribe()

        engine.load_song(tracks[0])

        assert states == []

    def test_close_detaches_from_element(self, engine, element, tracks) -> None:
        engine.load_song(tracks[0])
        engine.close()

        element.fire(MediaEvent.PLAY)

        assert engine.is_playing is False
