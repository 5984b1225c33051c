"""
Configuration management for WebWave
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from loguru import logger

MIB = 1024 * 1024


@dataclass
class SupabaseConfig:
    """Connection settings for the backing Supabase project."""

    url: str = ""
    anon_key: str = ""
    service_role_key: str = ""  # Required for account deletion (admin API)
    bucket: str = "mp3"
    table: str = "songs"


@dataclass
class LimitsConfig:
    """Per-user quotas and acquisition caps."""

    max_file_size_mb: int = 7
    max_tracks_per_user: int = 10
    signed_url_ttl_seconds: int = 3600
    max_video_duration_seconds: int = 600

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * MIB

    def validate(self) -> None:
        """Validate limit values.

        Raises:
            ValueError: If any limit is not positive
        """
        for name in (
            "max_file_size_mb",
            "max_tracks_per_user",
            "signed_url_ttl_seconds",
            "max_video_duration_seconds",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")


@dataclass
class PlayerConfig:
    """Configuration for the playback engine."""

    mpv_socket_path: Optional[str] = None
    volume: float = 1.0  # 0.0 - 1.0
    load_timeout_seconds: float = 5.0
    play_fallback_seconds: float = 2.0


@dataclass
class LibraryConfig:
    """Configuration for library reconciliation."""

    reload_policy: str = "on_change"  # 'on_change' or 'always'

    def validate(self) -> None:
        valid_policies = {"on_change", "always"}
        if self.reload_policy not in valid_policies:
            raise ValueError(
                f"Invalid reload_policy: {self.reload_policy!r}. "
                f"Valid policies are: {valid_policies}"
            )


@dataclass
class WebConfig:
    """Configuration for the HTTP API."""

    host: str = "127.0.0.1"
    port: int = 8000
    allowed_origins: List[str] = field(
        default_factory=lambda: ["http://localhost:3000"]
    )
    email_redirect_url: str = "http://localhost:3000/home"


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = None  # Default: ~/.local/share/webwave/webwave.log
    console_output: bool = False


@dataclass
class Config:
    """Main configuration object."""

    supabase: SupabaseConfig = field(default_factory=SupabaseConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    player: PlayerConfig = field(default_factory=PlayerConfig)
    library: LibraryConfig = field(default_factory=LibraryConfig)
    web: WebConfig = field(default_factory=WebConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "webwave"
    return Path.home() / ".config" / "webwave"


def _find_project_config() -> Optional[Path]:
    """Find config.toml in project root by looking for pyproject.toml.

    Returns:
        Path to config.toml in project root, or None if not found
    """
    current = Path(__file__).resolve().parent
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            config_path = parent / "config.toml"
            return config_path if config_path.exists() else None
    return None


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. Project root (detected via pyproject.toml) - for development
    2. Current working directory
    3. XDG_CONFIG_HOME/webwave (or ~/.config/webwave)
    """
    project_config = _find_project_config()
    if project_config:
        return project_config

    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config

    return get_config_dir() / "config.toml"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "webwave"
    return Path.home() / ".local" / "share" / "webwave"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# WebWave Configuration

[supabase]
# Project URL and keys (prefer SUPABASE_URL / SUPABASE_ANON_KEY /
# SUPABASE_SERVICE_ROLE_KEY environment variables or a .env file)
# url = "https://your-project.supabase.co"
# anon_key = "your-anon-key"
# service_role_key = "your-service-role-key"

# Storage bucket holding the audio objects
bucket = "mp3"

# Table holding one record per uploaded track
table = "songs"

[limits]
# Maximum upload size in MB
max_file_size_mb = 7

# Maximum number of tracks per user
max_tracks_per_user = 10

# Lifetime of signed playback URLs
signed_url_ttl_seconds = 3600

# Longest YouTube video accepted for conversion
max_video_duration_seconds = 600

[player]
# Path for mpv socket (auto-generated if not specified)
# mpv_socket_path = "/tmp/webwave-mpv"

# Initial volume (0.0 - 1.0)
volume = 1.0

# Clear the loading indicator if the stream never becomes ready
load_timeout_seconds = 5.0

# Try to start playback anyway if the stream never signals it can play
play_fallback_seconds = 2.0

[library]
# When the track list is reloaded: "on_change" only replaces the playlist
# when the set of tracks changed, "always" replaces it on every reload
reload_policy = "on_change"

[web]
host = "127.0.0.1"
port = 8000
allowed_origins = ["http://localhost:3000"]
email_redirect_url = "http://localhost:3000/home"

[logging]
# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
level = "INFO"

# Custom log file path (default: ~/.local/share/webwave/webwave.log)
# log_file = "/path/to/webwave.log"

# Also output logs to the console
console_output = false
""".strip()


def _apply_env_overrides(config: Config) -> Config:
    """Override secrets and deployment settings from the environment."""
    supabase_url = os.environ.get("SUPABASE_URL")
    anon_key = os.environ.get("SUPABASE_ANON_KEY")
    service_role_key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")
    allowed_origins = os.environ.get("ALLOWED_ORIGINS", "")

    if supabase_url:
        config.supabase.url = supabase_url
    if anon_key:
        config.supabase.anon_key = anon_key
    if service_role_key:
        config.supabase.service_role_key = service_role_key
    if allowed_origins:
        config.web.allowed_origins = [
            origin.strip() for origin in allowed_origins.split(",") if origin.strip()
        ]

    return config


def parse_config(toml_data: dict) -> Config:
    """Build a Config from parsed TOML data, falling back to defaults per key."""
    config = Config()

    if "supabase" in toml_data:
        supabase_data = toml_data["supabase"]
        config.supabase = SupabaseConfig(
            url=supabase_data.get("url", config.supabase.url),
            anon_key=supabase_data.get("anon_key", config.supabase.anon_key),
            service_role_key=supabase_data.get(
                "service_role_key", config.supabase.service_role_key
            ),
            bucket=supabase_data.get("bucket", config.supabase.bucket),
            table=supabase_data.get("table", config.supabase.table),
        )

    if "limits" in toml_data:
        limits_data = toml_data["limits"]
        config.limits = LimitsConfig(
            max_file_size_mb=limits_data.get(
                "max_file_size_mb", config.limits.max_file_size_mb
            ),
            max_tracks_per_user=limits_data.get(
                "max_tracks_per_user", config.limits.max_tracks_per_user
            ),
            signed_url_ttl_seconds=limits_data.get(
                "signed_url_ttl_seconds", config.limits.signed_url_ttl_seconds
            ),
            max_video_duration_seconds=limits_data.get(
                "max_video_duration_seconds", config.limits.max_video_duration_seconds
            ),
        )
        try:
            config.limits.validate()
        except ValueError as e:
            logger.warning(f"Invalid limits configuration: {e}. Using defaults.")
            config.limits = LimitsConfig()

    if "player" in toml_data:
        player_data = toml_data["player"]
        config.player = PlayerConfig(
            mpv_socket_path=player_data.get("mpv_socket_path"),
            volume=max(0.0, min(1.0, float(player_data.get("volume", config.player.volume)))),
            load_timeout_seconds=player_data.get(
                "load_timeout_seconds", config.player.load_timeout_seconds
            ),
            play_fallback_seconds=player_data.get(
                "play_fallback_seconds", config.player.play_fallback_seconds
            ),
        )

    if "library" in toml_data:
        library_data = toml_data["library"]
        config.library = LibraryConfig(
            reload_policy=library_data.get("reload_policy", config.library.reload_policy),
        )
        try:
            config.library.validate()
        except ValueError as e:
            logger.warning(f"Invalid library configuration: {e}. Using defaults.")
            config.library = LibraryConfig()

    if "web" in toml_data:
        web_data = toml_data["web"]
        config.web = WebConfig(
            host=web_data.get("host", config.web.host),
            port=web_data.get("port", config.web.port),
            allowed_origins=web_data.get("allowed_origins", config.web.allowed_origins),
            email_redirect_url=web_data.get(
                "email_redirect_url", config.web.email_redirect_url
            ),
        )

    if "logging" in toml_data:
        logging_data = toml_data["logging"]
        log_file = logging_data.get("log_file")
        if log_file:
            log_file = str(Path(log_file).expanduser())
        config.logging = LoggingConfig(
            level=logging_data.get("level", config.logging.level).upper(),
            log_file=log_file,
            console_output=logging_data.get(
                "console_output", config.logging.console_output
            ),
        )

    return config


def load_config() -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values:
    - SUPABASE_URL
    - SUPABASE_ANON_KEY
    - SUPABASE_SERVICE_ROLE_KEY
    - ALLOWED_ORIGINS (comma-separated)
    """
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)
    load_dotenv()  # .env in the working directory

    config_path = get_config_path()

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
        logger.info(f"Created default configuration at: {config_path}")
        return _apply_env_overrides(Config())

    try:
        with open(config_path, "rb") as f:
            toml_data = tomllib.load(f)
        config = parse_config(toml_data)
    except (OSError, tomllib.TOMLDecodeError, TypeError, ValueError) as e:
        logger.warning(f"Error loading configuration from {config_path}: {e}")
        logger.warning("Using default configuration.")
        config = Config()

    return _apply_env_overrides(config)


def ensure_directories() -> None:
    """Ensure all necessary directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    get_data_dir().mkdir(parents=True, exist_ok=True)
