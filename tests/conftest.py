"""Shared fakes for the gateway, the media element, the scheduler and the web API."""

from typing import Any, Callable, Iterator, Optional
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from web.backend import deps
from web.backend.main import app
from webwave.core.config import Config, LimitsConfig
from webwave.domain.acquisition.youtube.models import AcquiredAudio
from webwave.domain.auth.models import UserSession
from webwave.domain.library.models import Track
from webwave.domain.library.workflow import TrackWorkflow
from webwave.domain.playback.media import (
    MediaError,
    MediaEvent,
    MediaEventSource,
    PlaybackRejectedError,
    ReadyState,
)
from webwave.gateway.errors import AuthError, DatabaseError, StorageError


class InMemoryStorage:
    """ObjectStorage fake. Put an operation name in ``fail_on`` to make it raise."""

    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.fail_on: set[str] = set()
        self.calls: list[tuple[str, Any]] = []

    def _check(self, op: str, arg: Any) -> None:
        self.calls.append((op, arg))
        if op in self.fail_on:
            raise StorageError(f"{op} failed")

    def upload(self, path: str, data: bytes, content_type: str, upsert: bool = False) -> None:
        self._check("upload", path)
        if path in self.objects and not upsert:
            raise StorageError(f"Duplicate: {path}")
        self.objects[path] = (data, content_type)

    def remove(self, paths: list[str]) -> None:
        self._check("remove", list(paths))
        for path in paths:
            self.objects.pop(path, None)

    def create_signed_url(self, path: str, ttl_seconds: int) -> str:
        self._check("create_signed_url", path)
        return f"https://signed.example/{path}?ttl={ttl_seconds}"

    def get_public_url(self, path: str) -> str:
        self._check("get_public_url", path)
        return f"https://public.example/{path}"

    def list(
        self,
        prefix: str = "",
        limit: int = 100,
        offset: int = 0,
        sort_column: str = "created_at",
        descending: bool = True,
    ) -> list[dict[str, Any]]:
        self._check("list", prefix)
        folder = f"{prefix.rstrip('/')}/" if prefix else ""
        names = [
            path[len(folder):]
            for path in self.objects
            if path.startswith(folder) and "/" not in path[len(folder):]
        ]
        names.sort(reverse=descending)
        return [{"name": name} for name in names[offset : offset + limit]]


class InMemoryRecords:
    """RecordStore fake with insertion-ordered created_at values."""

    def __init__(self) -> None:
        self.rows: list[dict[str, Any]] = []
        self.fail_on: set[str] = set()
        self._next_id = 1

    def _check(self, op: str) -> None:
        if op in self.fail_on:
            raise DatabaseError(f"{op} failed")

    def count_for_owner(self, owner_id: str) -> int:
        self._check("count_for_owner")
        return sum(1 for row in self.rows if row["user_id"] == owner_id)

    def insert(self, record: dict[str, Any]) -> dict[str, Any]:
        self._check("insert")
        row = dict(record)
        row["id"] = str(self._next_id)
        row["created_at"] = f"2024-01-01T00:00:{self._next_id:02d}+00:00"
        self._next_id += 1
        self.rows.append(row)
        return dict(row)

    def select_for_owner(self, owner_id: str) -> list[dict[str, Any]]:
        self._check("select_for_owner")
        rows = [dict(row) for row in self.rows if row["user_id"] == owner_id]
        return sorted(rows, key=lambda row: row["created_at"], reverse=True)

    def delete_by_id(self, record_id: str) -> None:
        self._check("delete_by_id")
        self.rows = [row for row in self.rows if row["id"] != record_id]

    def delete_for_owner(self, owner_id: str) -> None:
        self._check("delete_for_owner")
        self.rows = [row for row in self.rows if row["user_id"] != owner_id]


class FakeAuth:
    """AuthGateway fake. ``tokens`` maps access tokens to users."""

    def __init__(self) -> None:
        self.tokens: dict[str, UserSession] = {}
        self.passwords: dict[str, tuple[str, UserSession]] = {}
        self.session: Optional[UserSession] = None
        self.session_error: Optional[str] = None
        self.fail_on: set[str] = set()
        self.deleted: list[str] = []
        self.sign_outs: list[tuple[str, Optional[str]]] = []
        self.callbacks: list[Callable[[str, Optional[UserSession]], None]] = []

    def _check(self, op: str) -> None:
        if op in self.fail_on:
            raise AuthError(f"{op} failed")

    def get_session(self) -> Optional[UserSession]:
        if self.session_error:
            raise AuthError(self.session_error)
        return self.session

    def get_user(self, access_token: str) -> Optional[UserSession]:
        return self.tokens.get(access_token)

    def sign_in(self, email: str, password: str) -> UserSession:
        self._check("sign_in")
        entry = self.passwords.get(email)
        if entry is None or entry[0] != password:
            raise AuthError("Invalid login credentials")
        self.session = entry[1]
        return entry[1]

    def sign_up(
        self, email: str, password: str, redirect_to: Optional[str] = None
    ) -> Optional[UserSession]:
        self._check("sign_up")
        self.last_redirect = redirect_to
        return None

    def sign_out(self, scope: str = "global", access_token: Optional[str] = None) -> None:
        self.sign_outs.append((scope, access_token))
        self._check("sign_out")
        self.session = None

    def delete_identity(self, user_id: str) -> None:
        self._check("delete_identity")
        self.deleted.append(user_id)

    def on_auth_state_change(self, callback) -> Callable[[], None]:
        self.callbacks.append(callback)
        return lambda: self.callbacks.remove(callback)

    def emit(self, event: str, user: Optional[UserSession]) -> None:
        for callback in list(self.callbacks):
            callback(event, user)


class FakeMediaElement(MediaEventSource):
    """Media element that only changes when a test fires an event.

    ``fire`` updates the element's own state the way a browser would, then
    delivers the event to listeners.
    """

    def __init__(self) -> None:
        super().__init__()
        self.src: Optional[str] = None
        self.volume = 1.0
        self._current_time = 0.0
        self._paused = True
        self._ready_state = ReadyState.HAVE_NOTHING
        self._duration = float("nan")
        self.calls: list[str] = []
        self.reject_play = False
        self.fail_load = False
        self.seeks: list[float] = []

    @property
    def current_time(self) -> float:
        return self._current_time

    @current_time.setter
    def current_time(self, value: float) -> None:
        self.seeks.append(value)
        self._current_time = value

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def ready_state(self) -> ReadyState:
        return self._ready_state

    @property
    def duration(self) -> float:
        return self._duration

    def load(self) -> None:
        self.calls.append("load")
        if self.fail_load:
            raise MediaError("load failed")
        self._ready_state = ReadyState.HAVE_NOTHING
        self._current_time = 0.0

    def play(self) -> None:
        self.calls.append("play")
        if self.reject_play:
            raise PlaybackRejectedError("NotAllowedError")

    def pause(self) -> None:
        self.calls.append("pause")

    def reset(self) -> None:
        self.calls.append("reset")
        self.src = None
        self._ready_state = ReadyState.HAVE_NOTHING

    def fire(self, event: MediaEvent, detail: Any = None, **state: Any) -> None:
        if event is MediaEvent.LOADED_METADATA:
            self._ready_state = ReadyState.HAVE_METADATA
            self._duration = state.get("duration", 180.0)
        elif event in (MediaEvent.LOADED_DATA, MediaEvent.CAN_PLAY):
            self._ready_state = ReadyState.HAVE_ENOUGH_DATA
        elif event is MediaEvent.PLAY:
            self._paused = False
        elif event in (MediaEvent.PAUSE, MediaEvent.ENDED):
            self._paused = True
        elif event is MediaEvent.TIME_UPDATE:
            self._current_time = state.get("time", self._current_time)
        self.emit(event, detail)


class ManualTimer:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose clock only moves when ``advance`` is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: list[ManualTimer] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    def advance(self, seconds: float) -> None:
        self.now += seconds
        due = sorted(
            (t for t in self.timers if not t.cancelled and t.due <= self.now),
            key=lambda t: t.due,
        )
        for timer in due:
            self.timers.remove(timer)
            if not timer.cancelled:
                timer.callback()

    @property
    def pending(self) -> list[ManualTimer]:
        return [t for t in self.timers if not t.cancelled]


def make_track(index: int, owner_id: str = "user-1", url: Optional[str] = "auto") -> Track:
    return Track(
        id=str(index),
        owner_id=owner_id,
        title=f"Song {index}",
        filename=f"Artist - Song {index}.mp3",
        storage_path=f"{owner_id}/{index}_Artist - Song {index}.mp3",
        artist="Artist",
        duration=180,
        url=f"https://cdn.example/{index}.mp3" if url == "auto" else url,
    )


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def records() -> InMemoryRecords:
    return InMemoryRecords()


@pytest.fixture
def auth() -> FakeAuth:
    return FakeAuth()


@pytest.fixture
def element() -> FakeMediaElement:
    return FakeMediaElement()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def tracks() -> list[Track]:
    return [make_track(i) for i in range(1, 4)]


@pytest.fixture
def track_factory() -> Callable[..., Track]:
    return make_track


class FakeFetcher:
    """Stands in for fetch_audio behind the API; set ``error`` to make it raise."""

    def __init__(self) -> None:
        self.error: Optional[Exception] = None
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.result = AcquiredAudio(
            title="Sandstorm",
            artist="Darude",
            duration=222,
            payload=b"m4a-bytes",
            size=9,
            filename="1700000000000_Sandstorm.m4a",
            content_type="audio/mp4",
            original_url="https://www.youtube.com/watch?v=y6120QOlsfU",
        )

    def __call__(self, url: str, **kwargs: Any) -> AcquiredAudio:
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.result


class ApiHarness:
    """TestClient over the web app with the gateway replaced by in-memory fakes."""

    def __init__(self, client: TestClient, workflow: TrackWorkflow, fetcher: FakeFetcher) -> None:
        self.client = client
        self.workflow = workflow
        self.fetcher = fetcher

    def headers(self, token: str = "token-1") -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}


API_USER = UserSession(id="user-1", email="me@example.com")
OTHER_USER = UserSession(id="user-2", email="other@example.com")


@pytest.fixture
def api(storage, records, auth) -> Iterator[ApiHarness]:
    auth.tokens = {"token-1": API_USER, "token-2": OTHER_USER}
    workflow = TrackWorkflow(storage, records, auth, LimitsConfig())
    fetcher = FakeFetcher()

    app.dependency_overrides[deps.get_config] = lambda: Config()
    app.dependency_overrides[deps.get_auth] = lambda: auth
    app.dependency_overrides[deps.get_workflow] = lambda: workflow
    app.dependency_overrides[deps.get_audio_fetcher] = lambda: fetcher
    with patch("webwave.domain.library.workflow.probe_duration", return_value=None):
        yield ApiHarness(TestClient(app), workflow, fetcher)
    app.dependency_overrides.clear()
