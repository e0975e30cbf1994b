"""Shared fixtures: a scriptable transport, a manual timer source and tracks."""

import random
from typing import Any, Callable, Optional

import pytest

from global_music_player.core.storage import MemoryKeyValueStore
from global_music_player.domain.library.models import Track
from global_music_player.domain.playback.engine import PlaybackEngine
from global_music_player.domain.playback.errors import LoadError, PlayError
from global_music_player.domain.playback.persistence import PersistenceAdapter
from global_music_player.domain.playback.primitive import (
    Ended,
    EventSink,
    LoadStarted,
    MediaError,
    MetadataReady,
    PlaybackEvent,
    PlayStateChanged,
    TimeUpdated,
)


class FakeTransport:
    """In-memory transport that records commands and fires events on demand.

    load() emits LoadStarted right away; everything else asynchronous (metadata,
    end of track, errors) is fired explicitly by the test.
    """

    def __init__(self) -> None:
        self.sink: Optional[EventSink] = None
        self.calls: list[tuple[Any, ...]] = []
        self.generation: Optional[int] = None
        self.source: Optional[str] = None
        self.loads: list[tuple[str, int]] = []
        self.playing = False
        self.position = 0.0
        self.fail_load: Optional[str] = None
        self.fail_play: Optional[str] = None

    def set_event_sink(self, sink: EventSink) -> None:
        self.sink = sink

    def emit(self, event: PlaybackEvent) -> None:
        assert self.sink is not None
        self.sink(event)

    def load(self, source_ref: str, generation: int) -> None:
        self.calls.append(("load", source_ref, generation))
        if self.fail_load:
            raise LoadError(self.fail_load)
        self.source = source_ref
        self.generation = generation
        self.loads.append((source_ref, generation))
        self.playing = False
        self.position = 0.0
        self.emit(LoadStarted(generation))

    def unload(self) -> None:
        self.calls.append(("unload",))
        self.source = None
        self.playing = False

    def play(self) -> None:
        self.calls.append(("play",))
        if self.fail_play:
            raise PlayError(self.fail_play)
        if not self.playing:
            self.playing = True
            self.emit(PlayStateChanged(self.generation, True))

    def pause(self) -> None:
        self.calls.append(("pause",))
        if self.playing:
            self.playing = False
            self.emit(PlayStateChanged(self.generation, False))

    def seek(self, seconds: float) -> None:
        self.calls.append(("seek", seconds))
        self.position = seconds

    def set_volume(self, volume: float) -> None:
        self.calls.append(("set_volume", volume))

    def set_muted(self, muted: bool) -> None:
        self.calls.append(("set_muted", muted))

    # Test helpers

    def commands(self, name: str) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == name]

    def ready(self, duration: float = 200.0, generation: Optional[int] = None) -> None:
        self.emit(MetadataReady(self.generation if generation is None else generation, duration))

    def tick(self, position: float, generation: Optional[int] = None) -> None:
        self.emit(TimeUpdated(self.generation if generation is None else generation, position))

    def finish(self, generation: Optional[int] = None) -> None:
        self.playing = False
        self.emit(Ended(self.generation if generation is None else generation))

    def error(self, reason: str = "decode failed", generation: Optional[int] = None) -> None:
        self.playing = False
        self.emit(MediaError(self.generation if generation is None else generation, reason))


class ManualTimer:
    def __init__(self, when: float, callback: Callable[..., Any], args: tuple) -> None:
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """call_later() source whose clock only moves when the test says so."""

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: list[ManualTimer] = []

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> ManualTimer:
        timer = ManualTimer(self.now + delay, callback, args)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[ManualTimer]:
        return [timer for timer in self.timers if not timer.cancelled]

    def advance(self, seconds: float) -> None:
        self.now += seconds
        for timer in list(self.timers):
            if not timer.cancelled and timer.when <= self.now:
                self.timers.remove(timer)
                timer.callback(*timer.args)


def make_track(name: str, duration: Optional[float] = None) -> Track:
    return Track(
        id=f"track-{name}",
        title=name,
        artist="Test Artist",
        source_ref=f"/music/{name}.mp3",
        duration_seconds=duration,
    )


@pytest.fixture
def tracks() -> list[Track]:
    """Five distinct tracks A..E."""
    return [make_track(name) for name in "ABCDE"]


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def persistence(store: MemoryKeyValueStore) -> PersistenceAdapter:
    return PersistenceAdapter(store)


@pytest.fixture
def released() -> list[Track]:
    """Tracks passed to the engine's release hook."""
    return []


@pytest.fixture
def engine(
    transport: FakeTransport,
    persistence: PersistenceAdapter,
    scheduler: ManualScheduler,
    released: list[Track],
) -> PlaybackEngine:
    engine = PlaybackEngine(
        transport,
        persistence=persistence,
        scheduler=scheduler,
        rng=random.Random(1234),
        release_track=released.append,
    )
    engine.init()
    return engine
