"""Tests for filename metadata parsing and duration probing."""

from unittest.mock import MagicMock, patch

import pytest
from mutagen import MutagenError

from webwave.domain.library.metadata import (
    UNKNOWN_ARTIST,
    extract_metadata,
    format_time,
    probe_duration,
)


class TestExtractMetadata:
    """Tests for extract_metadata."""

    def test_artist_and_title(self) -> None:
        meta = extract_metadata("1699999999_Artist - Title.mp3")

        assert meta.artist == "Artist"
        assert meta.title == "Title"

    def test_title_only_uses_unknown_artist(self) -> None:
        meta = extract_metadata("1699999999_justtitle.mp3")

        assert meta.artist == UNKNOWN_ARTIST
        assert meta.title == "justtitle"

    def test_extra_separators_stay_in_title(self) -> None:
        """Only the first " - " splits artist from title."""
        meta = extract_metadata("A - B - C.mp3")

        assert meta.artist == "A"
        assert meta.title == "B - C"

    def test_no_timestamp_prefix(self) -> None:
        meta = extract_metadata("Daft Punk - One More Time.flac")

        assert meta.artist == "Daft Punk"
        assert meta.title == "One More Time"

    def test_hyphen_without_spaces_is_not_a_separator(self) -> None:
        meta = extract_metadata("lo-fi beats.mp3")

        assert meta.artist == UNKNOWN_ARTIST
        assert meta.title == "lo-fi beats"

    def test_duration_is_not_guessed(self) -> None:
        assert extract_metadata("Artist - Title.mp3").duration is None


class TestProbeDuration:
    """Tests for probe_duration."""

    def test_returns_length_from_mutagen(self) -> None:
        audio = MagicMock()
        audio.info.length = 187.4
        with patch("webwave.domain.library.metadata.MutagenFile", return_value=audio):
            assert probe_duration(b"fake") == 187.4

    def test_unrecognized_format_returns_none(self) -> None:
        with patch("webwave.domain.library.metadata.MutagenFile", return_value=None):
            assert probe_duration(b"not audio") is None

    def test_mutagen_error_returns_none(self) -> None:
        with patch(
            "webwave.domain.library.metadata.MutagenFile", side_effect=MutagenError("bad header")
        ):
            assert probe_duration(b"broken") is None


@pytest.mark.parametrize(
    "seconds,expected", [(0, "0:00"), (65, "1:05"), (185.9, "3:05"), (None, "0:00")]
)
def test_format_time(seconds, expected) -> None:
    assert format_time(seconds) == expected
