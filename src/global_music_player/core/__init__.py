"""Core infrastructure layer - no playback logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML)
- Logging setup (Loguru)
- Durable key-value storage (SQLite)
"""

from .config import (
    Config,
    LoggingConfig,
    MpvConfig,
    PersistenceConfig,
    PlayerConfig,
    create_default_config,
    ensure_directories,
    get_config_dir,
    get_config_path,
    get_data_dir,
    get_database_path,
    load_config,
)
from .output import setup_from_config, setup_loguru
from .storage import (
    KeyValueStore,
    MemoryKeyValueStore,
    SqliteKeyValueStore,
    StorageError,
)

__all__ = [
    # Config
    "Config",
    "LoggingConfig",
    "MpvConfig",
    "PersistenceConfig",
    "PlayerConfig",
    "create_default_config",
    "ensure_directories",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "get_database_path",
    "load_config",
    # Logging
    "setup_from_config",
    "setup_loguru",
    # Storage
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SqliteKeyValueStore",
    "StorageError",
]
