"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML + .env)
- Logging (Loguru)
- Console management (Rich)
"""

from .config import (
    Config,
    LibraryConfig,
    LimitsConfig,
    LoggingConfig,
    PlayerConfig,
    SupabaseConfig,
    WebConfig,
    create_default_config,
    ensure_directories,
    get_config_dir,
    get_config_path,
    get_data_dir,
    load_config,
    parse_config,
)
from .console import get_console, safe_print
from .output import setup_from_config, setup_loguru

__all__ = [
    # Config
    "Config",
    "LibraryConfig",
    "LimitsConfig",
    "LoggingConfig",
    "PlayerConfig",
    "SupabaseConfig",
    "WebConfig",
    "create_default_config",
    "ensure_directories",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "load_config",
    "parse_config",
    # Logging
    "setup_loguru",
    "setup_from_config",
    # Console
    "get_console",
    "safe_print",
]
