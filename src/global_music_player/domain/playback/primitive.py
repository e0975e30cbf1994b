"""
Playback primitive contracts and the adapter that owns the transport.

A Transport is the platform object that actually decodes and renders audio
(mpv in production, a fake in tests). It is told which generation every load
belongs to and stamps that generation on the events it emits for that load.

PlaybackAdapter wraps exactly one transport and tracks its lifecycle:

    IDLE -> LOADING -> READY -> {PLAYING <-> PAUSED} -> ENDED
    ERROR is reachable from LOADING, READY or PLAYING.

Commands that only make sense once media is ready (play, seek) are deferred
while LOADING and replayed on the READY transition.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol

from loguru import logger

from ..library.models import Track


@dataclass(frozen=True)
class PlaybackEvent:
    """Base type for transport-originated events."""

    generation: int


@dataclass(frozen=True)
class LoadStarted(PlaybackEvent):
    pass


@dataclass(frozen=True)
class MetadataReady(PlaybackEvent):
    duration: float


@dataclass(frozen=True)
class TimeUpdated(PlaybackEvent):
    position: float


@dataclass(frozen=True)
class Ended(PlaybackEvent):
    pass


@dataclass(frozen=True)
class MediaError(PlaybackEvent):
    reason: str


@dataclass(frozen=True)
class PlayStateChanged(PlaybackEvent):
    is_playing: bool


@dataclass(frozen=True)
class VolumeChanged(PlaybackEvent):
    """Volume/mute change; applies regardless of which track is loaded."""

    volume: float
    muted: bool


# Events that belong to one particular load
LOAD_SCOPED_EVENTS = (
    LoadStarted,
    MetadataReady,
    TimeUpdated,
    Ended,
    MediaError,
    PlayStateChanged,
)

EventSink = Callable[[PlaybackEvent], None]


class Transport(Protocol):
    """Platform playback primitive consumed by PlaybackAdapter.

    load() raises LoadError when the media cannot even be submitted; play()
    raises PlayError when playback is refused. Everything else is reported
    through events.
    """

    def set_event_sink(self, sink: EventSink) -> None: ...

    def load(self, source_ref: str, generation: int) -> None: ...

    def unload(self) -> None: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def seek(self, seconds: float) -> None: ...

    def set_volume(self, volume: float) -> None: ...

    def set_muted(self, muted: bool) -> None: ...


class AdapterStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"
    ERROR = "error"


class PlaybackAdapter:
    """Exclusive owner of one transport instance."""

    def __init__(self, transport: Transport) -> None:
        self._transport = transport
        self.status = AdapterStatus.IDLE
        self.duration = 0.0
        self.generation: Optional[int] = None
        self._pending_play = False
        self._pending_seek: Optional[float] = None

    @property
    def has_media(self) -> bool:
        return self.status not in (AdapterStatus.IDLE, AdapterStatus.ERROR)

    def set_event_sink(self, sink: EventSink) -> None:
        self._transport.set_event_sink(sink)

    def load(self, track: Track, generation: int, autoplay: bool = False) -> None:
        """Submit a track to the transport under the given generation.

        Raises:
            LoadError: If the transport rejects the source outright
        """
        self.generation = generation
        self.status = AdapterStatus.LOADING
        self.duration = 0.0
        self._pending_play = autoplay
        self._pending_seek = None
        try:
            self._transport.load(track.source_ref, generation)
        except Exception:
            self.status = AdapterStatus.ERROR
            self._pending_play = False
            raise

    def unload(self) -> None:
        """Release the loaded media and return to IDLE."""
        self._pending_play = False
        self._pending_seek = None
        self.generation = None
        self.duration = 0.0
        if self.status is not AdapterStatus.IDLE:
            self._transport.unload()
        self.status = AdapterStatus.IDLE

    def play(self) -> bool:
        """Start playback, or queue it while loading.

        Returns:
            False if there is nothing to play

        Raises:
            PlayError: If the transport refuses to start
        """
        if self.status is AdapterStatus.LOADING:
            logger.debug("Play requested while loading; deferring until ready")
            self._pending_play = True
            return True
        if self.status is AdapterStatus.ENDED:
            self._transport.seek(0.0)
        if self.status in (
            AdapterStatus.READY,
            AdapterStatus.PAUSED,
            AdapterStatus.ENDED,
            AdapterStatus.PLAYING,
        ):
            self._transport.play()
            return True
        return False

    def pause(self) -> None:
        if self.status is AdapterStatus.LOADING:
            self._pending_play = False
            return
        if self.status is AdapterStatus.PLAYING:
            self._transport.pause()

    def stop(self) -> None:
        """Halt playback and rewind to the start, keeping the media loaded."""
        if self.status is AdapterStatus.LOADING:
            self._pending_play = False
            self._pending_seek = None
            return
        if self.status is AdapterStatus.PLAYING:
            self._transport.pause()
        if self.has_media:
            self._transport.seek(0.0)

    def clamp(self, seconds: float) -> float:
        """Clamp a seek target into [0, duration] (only >= 0 if unknown)."""
        seconds = max(0.0, seconds)
        if self.duration > 0:
            seconds = min(seconds, self.duration)
        return seconds

    def seek(self, seconds: float) -> float:
        """Seek, or queue the seek while loading.

        Returns:
            The clamped target position
        """
        target = self.clamp(seconds)
        if self.status is AdapterStatus.LOADING:
            logger.debug(f"Seek to {target:.2f}s requested while loading; deferring")
            self._pending_seek = target
        elif self.has_media:
            self._transport.seek(target)
        return target

    def set_volume(self, volume: float) -> None:
        self._transport.set_volume(volume)

    def set_muted(self, muted: bool) -> None:
        self._transport.set_muted(muted)

    def observe(self, event: PlaybackEvent) -> None:
        """Advance the lifecycle for a current-generation event.

        On the READY transition deferred commands are replayed; a deferred
        play can raise PlayError.
        """
        if isinstance(event, LoadStarted):
            self.status = AdapterStatus.LOADING
        elif isinstance(event, MetadataReady):
            self.duration = max(0.0, event.duration)
            if self.status is AdapterStatus.LOADING:
                self.status = AdapterStatus.READY
                self._flush_deferred()
        elif isinstance(event, PlayStateChanged):
            if event.is_playing:
                self.status = AdapterStatus.PLAYING
            elif self.status is AdapterStatus.PLAYING:
                self.status = AdapterStatus.PAUSED
        elif isinstance(event, Ended):
            self.status = AdapterStatus.ENDED
        elif isinstance(event, MediaError):
            self.status = AdapterStatus.ERROR
            self._pending_play = False
            self._pending_seek = None

    def _flush_deferred(self) -> None:
        seek, self._pending_seek = self._pending_seek, None
        play, self._pending_play = self._pending_play, False
        if seek is not None:
            self._transport.seek(self.clamp(seek))
        if play:
            self._transport.play()
