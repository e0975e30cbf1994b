"""
Session persistence: a durable subset of the player state under one key.

Writes are best-effort. Any storage or parse failure is logged and treated as
"nothing saved"; it never reaches the caller.
"""

from typing import Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from ...core.storage import KeyValueStore, StorageError
from ..library.models import Track
from .errors import PersistenceError
from .repeat import RepeatMode
from .state import PlayerState, clamp_volume

DEFAULT_STORAGE_KEY = "gmp_state"


class PersistedPlayerState(BaseModel):
    """The saved session record (camelCase JSON on disk)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    volume: float = 0.7
    is_muted: bool = False
    shuffle_enabled: bool = False
    repeat_mode: RepeatMode = RepeatMode.NONE
    is_expanded: bool = False
    current_index: int = -1
    current_time_seconds: float = Field(default=0.0)
    playlist: list[Track] = Field(default_factory=list)

    @field_validator("volume")
    @classmethod
    def _clamp_volume(cls, value: float) -> float:
        return clamp_volume(value)

    @field_validator("current_time_seconds")
    @classmethod
    def _non_negative_time(cls, value: float) -> float:
        return max(0.0, value)

    @field_validator("playlist")
    @classmethod
    def _unique_track_ids(cls, value: list[Track]) -> list[Track]:
        ids = [track.id for track in value]
        if len(ids) != len(set(ids)):
            raise ValueError("playlist contains duplicate track ids")
        return value

    @classmethod
    def from_state(cls, state: PlayerState) -> "PersistedPlayerState":
        return cls(
            volume=state.volume,
            is_muted=state.is_muted,
            shuffle_enabled=state.shuffle_enabled,
            repeat_mode=state.repeat_mode,
            is_expanded=state.is_expanded,
            current_index=state.current_index,
            # Whole seconds, so playback progress rewrites the record once a second
            current_time_seconds=float(int(state.current_time)),
            playlist=list(state.playlist),
        )

    def sanitized(self) -> "PersistedPlayerState":
        """Return a copy whose current_index is valid for its playlist.

        An out-of-range index is reset to the first track (or -1 when the
        playlist is empty) and the saved position is dropped with it.
        """
        if not self.playlist:
            return self.model_copy(update={"current_index": -1, "current_time_seconds": 0.0})
        if 0 <= self.current_index < len(self.playlist):
            return self
        logger.warning(
            f"Saved current_index {self.current_index} invalid for "
            f"{len(self.playlist)} tracks; resetting to 0"
        )
        return self.model_copy(update={"current_index": 0, "current_time_seconds": 0.0})


class PersistenceAdapter:
    """Reads and writes PersistedPlayerState through a key-value store."""

    def __init__(self, store: KeyValueStore, key: str = DEFAULT_STORAGE_KEY) -> None:
        self._store = store
        self._key = key
        self._last_written: Optional[str] = None

    def _write(self, state: PlayerState) -> None:
        try:
            payload = PersistedPlayerState.from_state(state).model_dump_json(by_alias=True)
        except ValidationError as e:
            raise PersistenceError(f"Cannot serialize player state: {e}") from e

        if payload == self._last_written:
            return

        try:
            self._store.set(self._key, payload)
        except StorageError as e:
            raise PersistenceError(f"Cannot write player state: {e}") from e
        self._last_written = payload

    def _read(self) -> Optional[PersistedPlayerState]:
        try:
            raw = self._store.get(self._key)
        except StorageError as e:
            raise PersistenceError(f"Cannot read player state: {e}") from e

        if raw is None:
            return None

        try:
            record = PersistedPlayerState.model_validate_json(raw)
        except ValidationError as e:
            raise PersistenceError(
                f"Malformed player state ({e.error_count()} validation errors)"
            ) from e

        self._last_written = raw
        return record.sanitized()

    def save(self, state: PlayerState) -> bool:
        """Persist the durable part of state; unchanged records are skipped.

        Returns:
            True if the record is stored (written now or already current)
        """
        try:
            self._write(state)
        except PersistenceError as e:
            logger.warning(f"Failed to persist player state: {e}")
            return False
        return True

    def load(self) -> Optional[PersistedPlayerState]:
        """Read the saved record.

        Returns:
            The sanitized record, or None if nothing usable is stored
        """
        try:
            return self._read()
        except PersistenceError as e:
            logger.warning(f"Ignoring persisted player state: {e}")
            return None

    def clear(self) -> None:
        """Remove the saved record."""
        try:
            self._store.delete(self._key)
        except StorageError as e:
            logger.warning(f"Failed to clear persisted player state: {e}")
        self._last_written = None
