"""Track library endpoints for WebWave Web API."""

from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from loguru import logger

from webwave.core.config import Config
from webwave.domain.library.exceptions import ValidationError
from webwave.domain.library.models import Track
from webwave.domain.library.workflow import TrackWorkflow
from webwave.gateway.errors import GatewayError

from ..deps import AudioFetcher, Caller, get_audio_fetcher, get_caller, get_config, get_workflow
from ..schemas import (
    AddYouTubeTrackRequest,
    DeleteTrackResponse,
    DownloadListResponse,
    StoredObjectResponse,
    TrackListResponse,
    TrackResponse,
)
from .youtube import acquire

router = APIRouter()


def track_to_response(track: Track) -> TrackResponse:
    return TrackResponse(**track.to_dict())


def _add(action) -> Track:
    """Run an add operation, mapping validation to 400 and upstream errors to 500."""
    try:
        return action()
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except GatewayError as e:
        logger.error(f"Adding track failed: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.get("/songs", response_model=TrackListResponse)
def list_songs(
    caller: Caller = Depends(get_caller),
    workflow: TrackWorkflow = Depends(get_workflow),
) -> TrackListResponse:
    """The caller's tracks, newest first, each with a playback URL when one resolves."""
    try:
        tracks = workflow.list_tracks(caller.user.id)
    except GatewayError as e:
        logger.error(f"Error loading songs for {caller.user.id}: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e
    return TrackListResponse(songs=[track_to_response(track) for track in tracks])


@router.post("/songs", response_model=TrackResponse, status_code=201)
def upload_song(
    file: UploadFile = File(...),
    caller: Caller = Depends(get_caller),
    workflow: TrackWorkflow = Depends(get_workflow),
    config: Config = Depends(get_config),
) -> TrackResponse:
    """Upload an audio file as a new track."""
    # Never buffer more than one byte past the size cap
    payload = file.file.read(config.limits.max_file_size_bytes + 1)
    filename = file.filename or "upload.mp3"
    content_type = file.content_type or "audio/mpeg"

    track = _add(
        lambda: workflow.add_track(
            caller.user.id, filename, payload, content_type=content_type
        )
    )
    logger.info(f"User {caller.user.id} uploaded {filename}")
    return track_to_response(track)


@router.post("/songs/youtube", response_model=TrackResponse, status_code=201)
def add_song_from_youtube(
    req: Optional[AddYouTubeTrackRequest] = None,
    caller: Caller = Depends(get_caller),
    workflow: TrackWorkflow = Depends(get_workflow),
    fetch: AudioFetcher = Depends(get_audio_fetcher),
    config: Config = Depends(get_config),
) -> TrackResponse:
    """Convert a YouTube video and add its audio as a new track."""
    audio = acquire(req.youtube_url if req else None, fetch, config)
    track = _add(lambda: workflow.add_acquired(caller.user.id, audio))
    return track_to_response(track)


@router.delete("/songs/{track_id}", response_model=DeleteTrackResponse)
def delete_song(
    track_id: str,
    caller: Caller = Depends(get_caller),
    workflow: TrackWorkflow = Depends(get_workflow),
) -> DeleteTrackResponse:
    """Remove a track's object, then its record."""
    try:
        track = workflow.get_track(caller.user.id, track_id)
        if track is None:
            raise HTTPException(status_code=404, detail="Song not found")
        workflow.delete_track(track.id, track.storage_path)
    except GatewayError as e:
        logger.error(f"Deleting song {track_id} failed: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e

    return DeleteTrackResponse(success=True)


@router.get("/downloads", response_model=DownloadListResponse)
def list_downloads(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    caller: Caller = Depends(get_caller),
    workflow: TrackWorkflow = Depends(get_workflow),
) -> DownloadListResponse:
    """Raw listing of the caller's storage folder with public URLs, newest first."""
    try:
        objects = workflow.list_bucket_objects(caller.user.id, limit=limit, offset=offset)
    except GatewayError as e:
        logger.error(f"Listing downloads failed: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e

    return DownloadListResponse(
        files=[StoredObjectResponse(name=obj.name, url=obj.url) for obj in objects]
    )
