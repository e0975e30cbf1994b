"""Playback domain - the engine behind the global player.

This domain handles:
- Transport integration (mpv via JSON IPC, or any Transport implementation)
- Load generations so stale transport events are ignored
- Playlist position, shuffle and repeat
- Session persistence and state fan-out to subscribers
"""

from .engine import PlaybackEngine, Scheduler
from .errors import LoadError, PersistenceError, PlaybackEngineError, PlayError
from .generation import GenerationGuard
from .mpv import MpvTransport, check_mpv_available
from .navigation import NavigationPolicy
from .persistence import PersistedPlayerState, PersistenceAdapter
from .playlist import PlaylistChange, PlaylistStore
from .primitive import (
    AdapterStatus,
    Ended,
    LoadStarted,
    MediaError,
    MetadataReady,
    PlaybackAdapter,
    PlaybackEvent,
    PlayStateChanged,
    TimeUpdated,
    Transport,
    VolumeChanged,
)
from .repeat import EndAction, RepeatMode, decide_end_action
from .state import PlayerState
from .subscribers import SubscriberRegistry

__all__ = [
    # Engine
    "PlaybackEngine",
    "Scheduler",
    "PlayerState",
    # Errors
    "PlaybackEngineError",
    "LoadError",
    "PlayError",
    "PersistenceError",
    # Transport
    "Transport",
    "PlaybackAdapter",
    "AdapterStatus",
    "MpvTransport",
    "check_mpv_available",
    "PlaybackEvent",
    "LoadStarted",
    "MetadataReady",
    "TimeUpdated",
    "Ended",
    "MediaError",
    "PlayStateChanged",
    "VolumeChanged",
    # Components
    "GenerationGuard",
    "PlaylistStore",
    "PlaylistChange",
    "NavigationPolicy",
    "RepeatMode",
    "EndAction",
    "decide_end_action",
    "PersistenceAdapter",
    "PersistedPlayerState",
    "SubscriberRegistry",
]
