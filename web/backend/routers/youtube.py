"""YouTube conversion endpoint for WebWave Web API."""

import base64
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger

from webwave.core.config import Config
from webwave.domain.acquisition.youtube.download import validate_and_extract_video_id
from webwave.domain.acquisition.youtube.exceptions import (
    AcquisitionErrorKind,
    AudioTooLargeError,
    InvalidYouTubeURLError,
    VideoTooLongError,
    YouTubeError,
)
from webwave.domain.acquisition.youtube.models import AcquiredAudio

from ..deps import AudioFetcher, get_audio_fetcher, get_config
from ..schemas import AcquiredAudioData, YouTubeToMp3Request, YouTubeToMp3Response

router = APIRouter()

INVALID_URL_MESSAGE = "Invalid YouTube URL. Please provide a valid YouTube video link."

ERROR_MESSAGES: dict[AcquisitionErrorKind, str] = {
    AcquisitionErrorKind.UNAVAILABLE: "Video is unavailable or private",
    AcquisitionErrorKind.AGE_GATED: "Video requires age verification",
    AcquisitionErrorKind.REGION_LOCKED: "Video is not available in your region",
    AcquisitionErrorKind.PRIVATE: "Video is private",
    AcquisitionErrorKind.BOT_CHECK: "YouTube error: Sign in to confirm you're not a bot",
}


def acquisition_error_message(error: YouTubeError) -> str:
    """User-facing message for an upstream acquisition failure."""
    return ERROR_MESSAGES.get(error.kind, f"YouTube error: {error}")


def acquire(url: Optional[str], fetch: AudioFetcher, config: Config) -> AcquiredAudio:
    """Validate ``url`` and fetch its audio, translating failures to HTTP errors.

    Shared by the conversion endpoint and the add-from-YouTube track endpoint.
    """
    if not url or not isinstance(url, str):
        raise HTTPException(status_code=400, detail="YouTube URL is required")

    if validate_and_extract_video_id(url) is None:
        raise HTTPException(status_code=400, detail=INVALID_URL_MESSAGE)

    try:
        return fetch(
            url,
            max_duration=config.limits.max_video_duration_seconds,
            max_bytes=config.limits.max_file_size_bytes,
        )
    except (InvalidYouTubeURLError, VideoTooLongError, AudioTooLargeError) as e:
        logger.info(f"Rejected YouTube conversion for {url}: {e}")
        raise HTTPException(status_code=400, detail=str(e)) from e
    except YouTubeError as e:
        logger.error(f"YouTube conversion error ({e.kind.value}): {e}")
        raise HTTPException(status_code=500, detail=acquisition_error_message(e)) from e


@router.post("/youtube-to-mp3", response_model=YouTubeToMp3Response)
def youtube_to_mp3(
    req: Optional[YouTubeToMp3Request] = None,
    fetch: AudioFetcher = Depends(get_audio_fetcher),
    config: Config = Depends(get_config),
) -> YouTubeToMp3Response:
    """Download a video's audio and return it base64-encoded with its metadata."""
    audio = acquire(req.youtube_url if req else None, fetch, config)
    logger.info(f"Converted {audio.original_url}: {audio.filename} ({audio.size} bytes)")

    return YouTubeToMp3Response(
        success=True,
        data=AcquiredAudioData(
            title=audio.title,
            artist=audio.artist,
            duration=audio.duration,
            filename=audio.filename,
            audio_data=base64.b64encode(audio.payload).decode("ascii"),
            size=audio.size,
            original_url=audio.original_url,
        ),
    )
