"""Tests for the YouTube conversion endpoint."""

import base64

import pytest

from webwave.domain.acquisition.youtube.exceptions import (
    AgeRestrictedError,
    AudioTooLargeError,
    BotCheckError,
    PrivateVideoError,
    RegionLockedError,
    VideoTooLongError,
    VideoUnavailableError,
    YouTubeError,
)

URL = "https://www.youtube.com/watch?v=y6120QOlsfU"


def convert(api, body):
    return api.client.post("/api/youtube-to-mp3", json=body)


class TestYouTubeToMp3:
    """Tests for POST /api/youtube-to-mp3."""

    def test_success_returns_base64_audio(self, api) -> None:
        response = convert(api, {"youtubeUrl": URL})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert base64.b64decode(data["audioData"]) == b"m4a-bytes"
        assert data["title"] == "Sandstorm"
        assert data["artist"] == "Darude"
        assert data["duration"] == 222
        assert data["filename"] == "1700000000000_Sandstorm.m4a"
        assert data["size"] == 9
        assert data["originalUrl"] == "https://www.youtube.com/watch?v=y6120QOlsfU"

    def test_limits_come_from_config(self, api) -> None:
        convert(api, {"youtubeUrl": URL})

        assert api.fetcher.calls == [(URL, {"max_duration": 600, "max_bytes": 7 * 1024 * 1024})]

    @pytest.mark.parametrize("body", [{}, {"youtubeUrl": ""}, None])
    def test_missing_url(self, api, body) -> None:
        response = convert(api, body)

        assert response.status_code == 400
        assert response.json() == {"error": "YouTube URL is required"}

    def test_invalid_url_is_not_fetched(self, api) -> None:
        response = convert(api, {"youtubeUrl": "https://vimeo.com/1234"})

        assert response.status_code == 400
        assert response.json() == {
            "error": "Invalid YouTube URL. Please provide a valid YouTube video link."
        }
        assert api.fetcher.calls == []

    def test_too_long(self, api) -> None:
        api.fetcher.error = VideoTooLongError(700, 600)

        response = convert(api, {"youtubeUrl": URL})

        assert response.status_code == 400
        assert response.json() == {"error": "Video is too long. Maximum duration is 10 minutes."}

    def test_too_large(self, api) -> None:
        api.fetcher.error = AudioTooLargeError(8 * 1024 * 1024, 7 * 1024 * 1024)

        response = convert(api, {"youtubeUrl": URL})

        assert response.status_code == 400
        assert response.json() == {"error": "Audio file is too large. Maximum size is 7MB."}

    @pytest.mark.parametrize(
        "error,message",
        [
            (VideoUnavailableError("Video unavailable"), "Video is unavailable or private"),
            (AgeRestrictedError("confirm your age"), "Video requires age verification"),
            (RegionLockedError("not in your country"), "Video is not available in your region"),
            (PrivateVideoError("Private video"), "Video is private"),
            (BotCheckError("not a bot"), "YouTube error: Sign in to confirm you're not a bot"),
            (YouTubeError("HTTP Error 500"), "YouTube error: HTTP Error 500"),
        ],
    )
    def test_upstream_failures(self, api, error, message) -> None:
        api.fetcher.error = error

        response = convert(api, {"youtubeUrl": URL})

        assert response.status_code == 500
        assert response.json() == {"error": message}
