"""
Configuration management for the global music player
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from loguru import logger


@dataclass
class PlayerConfig:
    """Configuration for the playback engine."""

    default_volume: float = 0.7
    load_timeout_seconds: float = 15.0
    time_update_interval: float = 0.25  # Seconds between transport polls

    def validate(self) -> None:
        """Validate player configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if not 0.0 <= self.default_volume <= 1.0:
            raise ValueError(
                f"default_volume must be between 0 and 1, got {self.default_volume}"
            )
        if self.load_timeout_seconds <= 0:
            raise ValueError(
                f"load_timeout_seconds must be positive, got {self.load_timeout_seconds}"
            )
        if self.time_update_interval <= 0:
            raise ValueError(
                f"time_update_interval must be positive, got {self.time_update_interval}"
            )


@dataclass
class PersistenceConfig:
    """Configuration for session persistence."""

    enabled: bool = True
    database_path: Optional[str] = None  # Default: <data dir>/player_state.db
    storage_key: str = "gmp_state"


@dataclass
class MpvConfig:
    """Configuration for the mpv transport."""

    socket_path: Optional[str] = None  # Auto-generated in the temp dir if unset


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = (
        None  # Custom log file path (default: ~/.local/share/global-music-player/player.log)
    )
    max_file_size_mb: int = 10  # Maximum log file size before rotation
    backup_count: int = 5  # Number of rotated files to keep
    console_output: bool = False  # Also output to stderr (for debugging)


@dataclass
class Config:
    """Main configuration object."""

    player: PlayerConfig = field(default_factory=PlayerConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    mpv: MpvConfig = field(default_factory=MpvConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "global-music-player"
    return Path.home() / ".config" / "global-music-player"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "global-music-player"
    return Path.home() / ".local" / "share" / "global-music-player"


def _find_project_config() -> Optional[Path]:
    """Find config.toml next to pyproject.toml when running from a checkout."""
    try:
        current = Path(__file__).resolve().parent
        for parent in [current] + list(current.parents):
            if (parent / "pyproject.toml").exists():
                config_path = parent / "config.toml"
                if config_path.exists():
                    return config_path
                return None
    except OSError:
        pass
    return None


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. Project root (detected via pyproject.toml) - for development
    2. Current working directory
    3. XDG_CONFIG_HOME/global-music-player (or ~/.config/global-music-player)
    """
    project_config = _find_project_config()
    if project_config:
        return project_config

    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config

    return get_config_dir() / "config.toml"


def get_database_path(config: Config) -> Path:
    """Resolve the SQLite file used for persisted player state."""
    if config.persistence.database_path:
        return Path(config.persistence.database_path).expanduser()
    return get_data_dir() / "player_state.db"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# Global Music Player Configuration

[player]
# Initial volume (0.0 - 1.0) when no saved session exists
default_volume = 0.7

# Seconds to wait for a track to load before reporting an error
load_timeout_seconds = 15.0

# Seconds between transport position polls
time_update_interval = 0.25

[persistence]
# Save and restore the session (playlist, position, volume) across runs
enabled = true

# SQLite file for saved state (default: ~/.local/share/global-music-player/player_state.db)
# database_path = "/path/to/player_state.db"

# Key the session record is stored under
storage_key = "gmp_state"

[mpv]
# Path for mpv socket (auto-generated if not specified)
# socket_path = "/tmp/gmp-mpv-socket"

[logging]
# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
level = "INFO"

# Custom log file path (default: ~/.local/share/global-music-player/player.log)
# log_file = "/path/to/player.log"

# Maximum log file size in MB before rotation
max_file_size_mb = 10

# Number of rotated log files to keep
backup_count = 5

# Also output logs to stderr (useful for debugging)
console_output = false
""".strip()


def _parse_config(toml_data: dict) -> Config:
    """Build a Config from parsed TOML, falling back to defaults per section."""
    config = Config()

    if "player" in toml_data:
        player_data = toml_data["player"]
        config.player = PlayerConfig(
            default_volume=float(
                player_data.get("default_volume", config.player.default_volume)
            ),
            load_timeout_seconds=float(
                player_data.get(
                    "load_timeout_seconds", config.player.load_timeout_seconds
                )
            ),
            time_update_interval=float(
                player_data.get(
                    "time_update_interval", config.player.time_update_interval
                )
            ),
        )
        try:
            config.player.validate()
        except ValueError as e:
            logger.warning(f"Invalid player configuration: {e}. Using defaults.")
            config.player = PlayerConfig()

    if "persistence" in toml_data:
        persistence_data = toml_data["persistence"]
        config.persistence = PersistenceConfig(
            enabled=persistence_data.get("enabled", config.persistence.enabled),
            database_path=persistence_data.get("database_path"),
            storage_key=persistence_data.get(
                "storage_key", config.persistence.storage_key
            ),
        )

    if "mpv" in toml_data:
        config.mpv = MpvConfig(socket_path=toml_data["mpv"].get("socket_path"))

    if "logging" in toml_data:
        logging_data = toml_data["logging"]
        config.logging = LoggingConfig(
            level=logging_data.get("level", config.logging.level),
            log_file=logging_data.get("log_file"),
            max_file_size_mb=logging_data.get(
                "max_file_size_mb", config.logging.max_file_size_mb
            ),
            backup_count=logging_data.get(
                "backup_count", config.logging.backup_count
            ),
            console_output=logging_data.get(
                "console_output", config.logging.console_output
            ),
        )

    return config


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file or create default.

    Args:
        config_path: Explicit config file (default: resolved by get_config_path)

    Returns:
        Parsed configuration; defaults if the file is missing or unreadable
    """
    config_path = config_path or get_config_path()

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
        print(f"Created default configuration at: {config_path}")
        return Config()

    try:
        with open(config_path, "rb") as f:
            toml_data = tomllib.load(f)
        return _parse_config(toml_data)
    except (OSError, tomllib.TOMLDecodeError, TypeError, ValueError) as e:
        print(f"Error loading configuration from {config_path}: {e}")
        print("Using default configuration.")
        return Config()


def ensure_directories() -> None:
    """Ensure all necessary directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    get_data_dir().mkdir(parents=True, exist_ok=True)
