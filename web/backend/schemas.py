from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """JSON bodies use camelCase keys (``userId``, ``youtubeUrl``, ...)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(BaseModel):
    error: str


class DeleteAccountRequest(CamelModel):
    user_id: Optional[str] = None


class DeleteAccountResponse(BaseModel):
    success: bool
    message: str


class YouTubeToMp3Request(CamelModel):
    youtube_url: Optional[str] = None


class AcquiredAudioData(CamelModel):
    title: str
    artist: str
    duration: int
    filename: str
    audio_data: str  # base64
    size: int
    original_url: str


class YouTubeToMp3Response(CamelModel):
    success: bool
    data: AcquiredAudioData


class TrackResponse(BaseModel):
    """One track record; keys follow the table's column names."""

    id: str
    user_id: str
    title: str
    artist: Optional[str] = None
    filename: str
    file_path: str
    duration: Optional[int] = None
    created_at: Optional[str] = None
    url: Optional[str] = None


class TrackListResponse(BaseModel):
    songs: list[TrackResponse]


class AddYouTubeTrackRequest(CamelModel):
    youtube_url: Optional[str] = None


class DeleteTrackResponse(BaseModel):
    success: bool


class StoredObjectResponse(BaseModel):
    name: str
    url: Optional[str] = None


class DownloadListResponse(BaseModel):
    files: list[StoredObjectResponse]
