"""
Immutable player state snapshot.

Subscribers and get_state() only ever see PlayerState instances; the engine
builds a new one with _replace() for every mutation.
"""

from typing import Any, NamedTuple, Optional

from ..library.models import Track
from .repeat import RepeatMode


class PlayerState(NamedTuple):
    """Immutable player state."""

    is_playing: bool = False
    current_time: float = 0.0
    duration: float = 0.0
    volume: float = 0.7
    is_muted: bool = False
    is_expanded: bool = False  # UI hint, passed through untouched
    playlist: tuple[Track, ...] = ()
    current_index: int = -1
    is_visible: bool = False
    shuffle_enabled: bool = False
    repeat_mode: RepeatMode = RepeatMode.NONE
    is_loading: bool = False
    last_error: Optional[str] = None

    @property
    def current_track(self) -> Optional[Track]:
        if self.current_index < 0:
            return None
        return self.playlist[self.current_index]

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly view of the snapshot (camelCase keys)."""
        current = self.current_track
        return {
            "isPlaying": self.is_playing,
            "currentTime": self.current_time,
            "duration": self.duration,
            "volume": self.volume,
            "isMuted": self.is_muted,
            "isExpanded": self.is_expanded,
            "currentTrack": current.model_dump(by_alias=True) if current else None,
            "playlist": [track.model_dump(by_alias=True) for track in self.playlist],
            "currentIndex": self.current_index,
            "isVisible": self.is_visible,
            "shuffle": self.shuffle_enabled,
            "repeat": self.repeat_mode.value,
            "isLoading": self.is_loading,
            "error": self.last_error,
        }


def clamp_volume(volume: float) -> float:
    """Clamp a volume into [0, 1]."""
    return max(0.0, min(1.0, float(volume)))
