"""
MPV-backed media element using JSON IPC.

Commands go over short-lived socket connections. A second, persistent
connection observes properties and translates mpv's events into media
element events for the playback engine.
"""

import json
import os
import socket
import subprocess
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from .media import MediaError, MediaEvent, MediaEventSource, PlaybackRejectedError, ReadyState

SOCKET_TIMEOUT = 2.0
STARTUP_TIMEOUT = 5.0

# Properties observed on the event connection (observe id -> name)
OBSERVED_PROPERTIES = {1: "pause", 2: "time-pos", 3: "duration"}


class MpvUnavailableError(MediaError):
    """Raised when the mpv process cannot be started or reached."""

    pass


def check_mpv_available() -> bool:
    """Check if MPV is available on the system."""
    try:
        result = subprocess.run(
            ["mpv", "--version"], capture_output=True, text=True, timeout=5
        )
        return result.returncode == 0
    except (subprocess.SubprocessError, FileNotFoundError, OSError):
        return False


def send_mpv_command(socket_path: Optional[str], command: dict[str, Any]) -> bool:
    """Send JSON IPC command to MPV."""
    if not socket_path or not os.path.exists(socket_path):
        return False

    try:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(SOCKET_TIMEOUT)
        sock.connect(socket_path)

        command_json = json.dumps(command) + "\n"
        sock.send(command_json.encode("utf-8"))

        response = sock.recv(4096).decode("utf-8").strip()
        sock.close()

        # Async events can precede the reply on the same connection
        for line in response.splitlines():
            try:
                response_data = json.loads(line)
            except json.JSONDecodeError:
                continue
            if "error" in response_data:
                return response_data.get("error") == "success"

        return True

    except (socket.error, OSError):
        return False


def get_mpv_property(socket_path: Optional[str], property_name: str) -> Any:
    """Get a property value from MPV."""
    if not socket_path or not os.path.exists(socket_path):
        return None

    try:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(SOCKET_TIMEOUT)
        sock.connect(socket_path)

        command = {"command": ["get_property", property_name]}
        sock.send((json.dumps(command) + "\n").encode("utf-8"))

        response = sock.recv(4096).decode("utf-8").strip()
        sock.close()

        for line in response.splitlines():
            try:
                response_data = json.loads(line)
            except json.JSONDecodeError:
                continue
            if response_data.get("error") == "success":
                return response_data.get("data")

        return None

    except (socket.error, OSError):
        return None


class MpvMediaElement(MediaEventSource):
    """A single mpv process driven as a streaming media element."""

    def __init__(self, socket_path: Optional[str] = None) -> None:
        super().__init__()
        if not socket_path:
            socket_path = str(Path(tempfile.gettempdir()) / f"webwave-mpv-{os.getpid()}")
        self.socket_path = socket_path

        self._process: Optional[subprocess.Popen] = None
        self._event_sock: Optional[socket.socket] = None
        self._reader: Optional[threading.Thread] = None
        self._stopping = threading.Event()

        self._src: Optional[str] = None
        self._paused = True
        self._ended = False  # mpv --idle drops the file at EOF
        self._ready_state = ReadyState.HAVE_NOTHING
        self._duration = 0.0
        self._current_time = 0.0
        self._volume = 1.0

    # -- process lifecycle ----------------------------------------------------

    def start(self) -> None:
        """Launch mpv and attach the event reader.

        Raises:
            MpvUnavailableError: mpv missing, socket never appeared or refused
        """
        logger.info(f"Starting MPV player with socket: {self.socket_path}")

        if os.path.exists(self.socket_path):
            logger.debug(f"Removing existing socket: {self.socket_path}")
            os.unlink(self.socket_path)

        cmd = [
            "mpv",
            "--idle=yes",
            "--no-video",
            "--no-terminal",
            f"--input-ipc-server={self.socket_path}",
            f"--volume={round(self._volume * 100)}",
            "--load-scripts=no",
        ]

        try:
            self._process = subprocess.Popen(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
            )
        except (subprocess.SubprocessError, OSError) as e:
            raise MpvUnavailableError(f"Failed to start MPV: {e}") from e

        start_time = time.time()
        while not os.path.exists(self.socket_path):
            if time.time() - start_time > STARTUP_TIMEOUT:
                self.stop()
                raise MpvUnavailableError(
                    f"MPV socket creation timeout after {STARTUP_TIMEOUT}s"
                )
            time.sleep(0.1)

        try:
            self._event_sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            self._event_sock.connect(self.socket_path)
            for observe_id, name in OBSERVED_PROPERTIES.items():
                command = {"command": ["observe_property", observe_id, name]}
                self._event_sock.sendall((json.dumps(command) + "\n").encode("utf-8"))
        except OSError as e:
            self.stop()
            raise MpvUnavailableError(f"MPV socket connection failed: {e}") from e

        self._stopping.clear()
        self._reader = threading.Thread(
            target=self._read_events, name="mpv-events", daemon=True
        )
        self._reader.start()
        logger.info("MPV started successfully")

    def stop(self) -> None:
        """Stop MPV process and cleanup."""
        self._stopping.set()

        if self._event_sock is not None:
            try:
                self._event_sock.close()
            except OSError:
                pass  # Already closed by mpv exiting
            self._event_sock = None

        if self._process is not None:
            try:
                self._process.kill()
                self._process.wait(timeout=2.0)
            except (OSError, subprocess.TimeoutExpired):
                pass  # Process already terminated or couldn't be killed
            self._process = None

        if os.path.exists(self.socket_path):
            try:
                os.unlink(self.socket_path)
            except OSError:
                pass

    def is_running(self) -> bool:
        if not self._process or self._process.poll() is not None:
            return False
        return os.path.exists(self.socket_path)

    # -- element properties ---------------------------------------------------

    @property
    def src(self) -> Optional[str]:
        return self._src

    @src.setter
    def src(self, value: Optional[str]) -> None:
        self._src = value

    @property
    def current_time(self) -> float:
        return self._current_time

    @current_time.setter
    def current_time(self, value: float) -> None:
        if not self._command(["seek", float(value), "absolute"]):
            raise MediaError(f"Seek to {value}s rejected")
        self._current_time = float(value)

    @property
    def volume(self) -> float:
        return self._volume

    @volume.setter
    def volume(self, value: float) -> None:
        # Before start() the value only seeds the --volume flag
        if self._process is not None:
            if not self._command(["set_property", "volume", round(value * 100)]):
                raise MediaError("Volume change rejected")
        self._volume = value

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def ready_state(self) -> ReadyState:
        return self._ready_state

    @property
    def duration(self) -> float:
        return self._duration

    # -- element commands -----------------------------------------------------

    def load(self) -> None:
        if not self._src:
            raise MediaError("No source set")

        self._ended = False
        self._ready_state = ReadyState.HAVE_NOTHING
        self._duration = 0.0
        self._current_time = 0.0

        # Keep the new file paused until play() is requested
        self._command(["set_property", "pause", True])
        if not self._command(["loadfile", self._src, "replace"]):
            raise MediaError(f"MPV refused to load {self._src}")

    def play(self) -> None:
        if self._ended and self._src:
            # Reopen the finished file paused, so unpausing yields a real pause change
            self._ended = False
            self._current_time = 0.0
            self._command(["set_property", "pause", True])
            if not self._command(["loadfile", self._src, "replace"]):
                raise PlaybackRejectedError(f"MPV refused to reopen {self._src}")
        if not self._command(["set_property", "pause", False]):
            raise PlaybackRejectedError("MPV refused to start playback")

    def pause(self) -> None:
        if not self._command(["set_property", "pause", True]):
            raise MediaError("MPV refused to pause")

    def reset(self) -> None:
        self._src = None
        self._ended = False
        self._ready_state = ReadyState.HAVE_NOTHING
        self._duration = 0.0
        self._current_time = 0.0
        if self._process is not None and not self._command(["stop"]):
            raise MediaError("MPV refused to stop")

    def _command(self, args: list[Any]) -> bool:
        return send_mpv_command(self.socket_path, {"command": args})

    # -- event translation ----------------------------------------------------

    def _read_events(self) -> None:
        buffer = b""
        sock = self._event_sock
        while sock is not None and not self._stopping.is_set():
            try:
                chunk = sock.recv(4096)
            except OSError as e:
                if not self._stopping.is_set():
                    logger.warning(f"MPV event connection lost: {e}")
                break
            if not chunk:
                break

            buffer += chunk
            while b"\n" in buffer:
                line, buffer = buffer.split(b"\n", 1)
                if not line.strip():
                    continue
                try:
                    message = json.loads(line.decode("utf-8"))
                except (UnicodeDecodeError, json.JSONDecodeError):
                    logger.debug(f"Ignoring malformed MPV message: {line[:100]!r}")
                    continue
                self._handle_message(message)

        logger.debug("MPV event reader stopped")

    def _handle_message(self, message: dict[str, Any]) -> None:
        """Translate one mpv IPC message into element state and events."""
        event = message.get("event")
        if event is None:
            return  # Command reply

        if event == "start-file":
            self._ready_state = ReadyState.HAVE_NOTHING
            self.emit(MediaEvent.LOAD_START)

        elif event == "file-loaded":
            duration = get_mpv_property(self.socket_path, "duration")
            if isinstance(duration, (int, float)):
                self._duration = float(duration)
            self._ready_state = ReadyState.HAVE_METADATA
            self.emit(MediaEvent.LOADED_METADATA)

        elif event == "playback-restart":
            # Fires after the initial load and after every seek
            if self._ready_state < ReadyState.HAVE_CURRENT_DATA:
                self._ready_state = ReadyState.HAVE_ENOUGH_DATA
                self.emit(MediaEvent.LOADED_DATA)
            self._ready_state = ReadyState.HAVE_ENOUGH_DATA
            self.emit(MediaEvent.CAN_PLAY)

        elif event == "end-file":
            reason = message.get("reason")
            if reason == "eof":
                # The source stays playable; play() reopens it from the start
                self._paused = True
                self._ended = True
                self.emit(MediaEvent.ENDED)
                return
            self._ready_state = ReadyState.HAVE_NOTHING
            if reason == "error":
                self.emit(MediaEvent.ERROR, message.get("file_error", "unknown error"))

        elif event == "property-change":
            self._handle_property_change(message.get("name"), message.get("data"))

    def _handle_property_change(self, name: Optional[str], data: Any) -> None:
        if name == "pause":
            if data is None or bool(data) == self._paused:
                return
            self._paused = bool(data)
            self.emit(MediaEvent.PAUSE if self._paused else MediaEvent.PLAY)

        elif name == "time-pos":
            if data is None:
                return
            self._current_time = float(data)
            self.emit(MediaEvent.TIME_UPDATE)

        elif name == "duration":
            if data is not None:
                self._duration = float(data)
