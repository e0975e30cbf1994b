"""
Playback engine - the orchestrator behind every player control.

Composes the transport adapter, generation guard, playlist store, navigation
and repeat policies, persistence and the subscriber registry. All mutation
happens on the owner's thread/event loop; the transport reports back through
handle_event(), and events from superseded loads are dropped there.

Action methods never raise for load, play or storage failures. Those end up
in PlayerState.last_error (or only in the log, for storage). Bad arguments
raise immediately.
"""

import asyncio
import math
import random
from typing import Any, Callable, Iterable, Optional, Protocol, Sequence

from loguru import logger

from ...core.config import PlayerConfig
from ..library.models import Track
from .errors import LoadError, PlayError
from .generation import GenerationGuard
from .navigation import NavigationPolicy
from .persistence import PersistenceAdapter
from .playlist import PlaylistStore, ReleaseHook
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
from .repeat import decide_end_action
from .state import PlayerState, clamp_volume
from .subscribers import StateListener, SubscriberRegistry, Unsubscribe


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything with asyncio's call_later shape (an event loop qualifies)."""

    def call_later(
        self, delay: float, callback: Callable[..., Any], *args: Any
    ) -> TimerHandle: ...


def _require_number(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{name} must be a number, got {type(value).__name__}")
    if math.isnan(value):
        raise ValueError(f"{name} must not be NaN")
    return float(value)


class PlaybackEngine:
    """Single owner of the player state and the transport."""

    def __init__(
        self,
        transport: Transport,
        persistence: Optional[PersistenceAdapter] = None,
        config: Optional[PlayerConfig] = None,
        scheduler: Optional[Scheduler] = None,
        rng: Optional[random.Random] = None,
        release_track: Optional[ReleaseHook] = None,
    ) -> None:
        self._config = config or PlayerConfig()
        self._adapter = PlaybackAdapter(transport)
        self._guard = GenerationGuard()
        self._playlist = PlaylistStore(release_track)
        self._navigation = NavigationPolicy(rng)
        self._subscribers = SubscriberRegistry()
        self._persistence = persistence
        self._scheduler = scheduler

        self._state = PlayerState(volume=clamp_volume(self._config.default_volume))
        self._load_timer: Optional[TimerHandle] = None
        self._resume_at: Optional[float] = None
        self._initialized = False
        self._disposed = False

        self._adapter.set_event_sink(self.handle_event)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def init(self) -> PlayerState:
        """Restore the saved session (if any) and load its current track."""
        if self._initialized:
            return self._state
        self._initialized = True

        record = self._persistence.load() if self._persistence else None
        if record is not None:
            self._playlist.restore(record.playlist, record.current_index)
            self._navigation.set_shuffle(
                record.shuffle_enabled, len(self._playlist), self._playlist.current_index
            )
            self._state = self._state._replace(
                volume=record.volume,
                is_muted=record.is_muted,
                shuffle_enabled=record.shuffle_enabled,
                repeat_mode=record.repeat_mode,
                is_expanded=record.is_expanded,
                playlist=self._playlist.tracks,
                current_index=self._playlist.current_index,
                current_time=record.current_time_seconds,
            )
            logger.info(
                f"Restored session: {len(self._playlist)} tracks, "
                f"index={self._playlist.current_index}, "
                f"position={record.current_time_seconds:.1f}s"
            )

        self._adapter.set_volume(self._state.volume)
        self._adapter.set_muted(self._state.is_muted)

        if self._playlist.current_track is not None:
            self._load_current(autoplay=False, resume_at=self._state.current_time)
        else:
            self._notify()
        return self._state

    def dispose(self) -> None:
        """Release the transport and drop all subscribers."""
        if self._disposed:
            return
        self._disposed = True
        self._halt_transport()
        if self._persistence:
            self._persistence.save(self._state)
        self._subscribers.clear()
        logger.debug("Playback engine disposed")

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def get_state(self) -> PlayerState:
        return self._state

    def subscribe(self, listener: StateListener) -> Unsubscribe:
        return self._subscribers.subscribe(listener)

    def has_next(self) -> bool:
        return self._navigation.has_next(
            len(self._playlist), self._playlist.current_index, self._state.repeat_mode.wraps
        )

    def has_previous(self) -> bool:
        return self._navigation.has_previous(
            len(self._playlist), self._playlist.current_index, self._state.repeat_mode.wraps
        )

    @property
    def generation(self) -> int:
        return self._guard.current

    @property
    def shuffle_order(self) -> tuple[int, ...]:
        return self._navigation.order

    # ------------------------------------------------------------------
    # Playlist management
    # ------------------------------------------------------------------

    def load_playlist(self, tracks: Iterable[Track]) -> None:
        """Replace the playlist and load (without playing) its first track."""
        change = self._playlist.replace(tracks)
        self._navigation.regenerate(len(self._playlist), self._playlist.current_index)
        logger.info(f"Loaded playlist with {len(self._playlist)} tracks")

        if change.load_index is None:
            self._halt_transport()
            self._update_playlist(
                is_visible=False,
                is_playing=False,
                is_loading=False,
                current_time=0.0,
                duration=0.0,
            )
            return
        self._load_current(autoplay=False)

    def add_to_playlist(self, tracks: Iterable[Track]) -> None:
        """Append tracks; an empty player loads the first of them."""
        new_tracks = list(tracks)
        if not new_tracks:
            return
        change = self._playlist.append(new_tracks)
        self._navigation.regenerate(len(self._playlist), self._playlist.current_index)
        logger.info(f"Added {len(new_tracks)} tracks (total {len(self._playlist)})")

        if change.load_index is not None:
            self._load_current(autoplay=False)
        else:
            self._update_playlist(is_visible=True)

    def remove_from_playlist(self, index: int) -> None:
        """Remove the track at index, moving off it first if it is current."""
        was_playing = self._state.is_playing
        change = self._playlist.remove_at(index)
        self._navigation.regenerate(len(self._playlist), self._playlist.current_index)

        if change.current_removed and change.load_index is None:
            self._halt_transport()
            self._update_playlist(
                is_visible=False,
                is_playing=False,
                is_loading=False,
                current_time=0.0,
                duration=0.0,
            )
        elif change.load_index is not None:
            self._load_current(autoplay=was_playing)
        else:
            self._update_playlist()

    def reorder_playlist(self, new_order: Sequence[int]) -> None:
        """Apply a permutation; new_order[k] is the old index that moves to k."""
        self._playlist.reorder(new_order)
        self._navigation.regenerate(len(self._playlist), self._playlist.current_index)
        self._update_playlist()

    def clear_playlist(self) -> None:
        """Stop playback, empty the playlist and hide the player."""
        self._halt_transport()
        self._playlist.clear()
        self._navigation.reset()
        self._resume_at = None
        self._update_playlist(
            is_visible=False,
            is_playing=False,
            is_loading=False,
            current_time=0.0,
            duration=0.0,
            last_error=None,
        )
        logger.info("Playlist cleared")

    # ------------------------------------------------------------------
    # Transport controls
    # ------------------------------------------------------------------

    def play(self) -> None:
        if self._playlist.current_track is None:
            return
        if self._adapter.status in (AdapterStatus.IDLE, AdapterStatus.ERROR):
            self._load_current(autoplay=True)
            return
        try:
            self._adapter.play()
        except PlayError as e:
            self._fail_play(e)

    def pause(self) -> None:
        self._adapter.pause()

    def toggle_play(self) -> None:
        if self._state.is_playing:
            self.pause()
        else:
            self.play()

    def stop(self) -> None:
        self._adapter.stop()
        self._update(is_playing=False, current_time=0.0)

    def next(self) -> None:
        index = self._navigation.next_index(
            len(self._playlist), self._playlist.current_index, self._state.repeat_mode.wraps
        )
        if index is None:
            logger.debug("next(): no reachable track")
            return
        self._play_index(index)

    def previous(self) -> None:
        index = self._navigation.previous_index(
            len(self._playlist), self._playlist.current_index, self._state.repeat_mode.wraps
        )
        if index is None:
            logger.debug("previous(): no reachable track")
            return
        self._play_index(index)

    def play_track_at_index(self, index: int) -> None:
        self._playlist.select(index)
        self._load_current(autoplay=True)

    def seek(self, seconds: float) -> None:
        seconds = _require_number(seconds, "seek position")
        if math.isinf(seconds):
            raise ValueError("seek position must be finite")
        if self._playlist.current_track is None:
            return
        # An explicit seek replaces any pending restore position
        self._resume_at = None
        target = self._adapter.seek(seconds)
        self._update(current_time=target)

    def set_volume(self, volume: float) -> None:
        volume = clamp_volume(_require_number(volume, "volume"))
        self._adapter.set_volume(volume)
        self._update(volume=volume)

    def toggle_mute(self) -> None:
        muted = not self._state.is_muted
        self._adapter.set_muted(muted)
        self._update(is_muted=muted)

    # ------------------------------------------------------------------
    # Modes and visibility
    # ------------------------------------------------------------------

    def toggle_shuffle(self) -> None:
        enabled = not self._state.shuffle_enabled
        self._navigation.set_shuffle(
            enabled, len(self._playlist), self._playlist.current_index
        )
        self._update(shuffle_enabled=enabled)

    def toggle_repeat(self) -> None:
        self._update(repeat_mode=self._state.repeat_mode.cycle())

    def toggle_expanded(self) -> None:
        self._update(is_expanded=not self._state.is_expanded)

    def show(self) -> None:
        if len(self._playlist) > 0:
            self._update(is_visible=True)

    def hide(self) -> None:
        self._update(is_visible=False)
        self.pause()

    # ------------------------------------------------------------------
    # Transport events
    # ------------------------------------------------------------------

    def handle_event(self, event: PlaybackEvent) -> None:
        """Apply a transport event; events from superseded loads are dropped."""
        if isinstance(event, VolumeChanged):
            volume = clamp_volume(event.volume)
            if (volume, event.muted) != (self._state.volume, self._state.is_muted):
                self._update(volume=volume, is_muted=event.muted)
            return

        if not self._guard.is_current(event.generation):
            logger.debug(
                f"Dropping stale {type(event).__name__} "
                f"(generation {event.generation}, current {self._guard.current})"
            )
            return

        try:
            self._adapter.observe(event)
        except PlayError as e:
            self._fail_play(e)

        if isinstance(event, LoadStarted):
            self._update(is_loading=True, last_error=None)
        elif isinstance(event, MetadataReady):
            self._on_metadata_ready(event)
        elif isinstance(event, TimeUpdated):
            self._update(current_time=max(0.0, event.position))
        elif isinstance(event, PlayStateChanged):
            self._update(is_playing=event.is_playing)
        elif isinstance(event, Ended):
            self._update(is_playing=False)
            self._on_track_ended()
        elif isinstance(event, MediaError):
            self._cancel_load_timer()
            self._resume_at = None
            self._fail_load(event.reason)

    def _on_metadata_ready(self, event: MetadataReady) -> None:
        self._cancel_load_timer()
        duration = max(0.0, event.duration)
        changes: dict[str, Any] = {"duration": duration, "is_loading": False}

        resume_at, self._resume_at = self._resume_at, None
        if resume_at is not None:
            if 0 < resume_at < duration:
                self._adapter.seek(resume_at)
                changes["current_time"] = resume_at
                logger.debug(f"Resumed saved position {resume_at:.1f}s")
            else:
                changes["current_time"] = 0.0

        self._update(**changes)

    def _on_track_ended(self) -> None:
        mode = self._state.repeat_mode
        next_index = self._navigation.next_index(
            len(self._playlist), self._playlist.current_index, mode.wraps
        )
        action = decide_end_action(mode, next_index)

        if action.replay:
            self._load_current(autoplay=True)
        elif action.stop:
            logger.debug("End of playlist reached; stopping")
            self._adapter.stop()
            self._update(is_playing=False, current_time=0.0)
        else:
            self._play_index(action.index)

    def _on_load_timeout(self, generation: int) -> None:
        self._load_timer = None
        if self._guard.is_current(generation) and self._state.is_loading:
            timeout = self._config.load_timeout_seconds
            self.handle_event(
                MediaError(generation, f"timed out after {timeout:g}s")
            )
            # Whatever the transport finishes later belongs to an abandoned load
            self._guard.invalidate()
            self._adapter.unload()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _play_index(self, index: int) -> None:
        self._playlist.select(index)
        self._load_current(autoplay=True)

    def _load_current(self, autoplay: bool, resume_at: float = 0.0) -> None:
        """Start a new generation and submit the current track."""
        track = self._playlist.current_track
        if track is None:
            return

        self._cancel_load_timer()
        generation = self._guard.next()
        self._resume_at = resume_at if resume_at > 0 else None

        self._update_playlist(
            is_playing=False,
            is_loading=True,
            is_visible=True,
            current_time=resume_at,
            duration=track.duration_seconds or 0.0,
            last_error=None,
        )

        logger.info(f"Loading track [gen {generation}]: {track.display_name()}")
        try:
            self._adapter.load(track, generation, autoplay=autoplay)
        except LoadError as e:
            self._resume_at = None
            self._fail_load(str(e))
            return

        if self._state.is_loading and self._guard.is_current(generation):
            self._arm_load_timer(generation)

    def _halt_transport(self) -> None:
        self._cancel_load_timer()
        self._guard.invalidate()
        self._adapter.unload()

    def _fail_load(self, reason: str) -> None:
        track = self._playlist.current_track
        title = track.title if track else "track"
        logger.error(f"LoadError for {title}: {reason}")
        self._update(
            last_error=f"Failed to load {title}: {reason}",
            is_loading=False,
            is_playing=False,
        )

    def _fail_play(self, error: PlayError) -> None:
        logger.warning(f"PlayError: {error}")
        self._update(last_error=f"Failed to play audio: {error}")

    def _arm_load_timer(self, generation: int) -> None:
        scheduler = self._scheduler
        if scheduler is None:
            try:
                scheduler = asyncio.get_running_loop()
            except RuntimeError:
                logger.debug("No event loop running; load timeout not armed")
                return
        self._load_timer = scheduler.call_later(
            self._config.load_timeout_seconds, self._on_load_timeout, generation
        )

    def _cancel_load_timer(self) -> None:
        if self._load_timer is not None:
            self._load_timer.cancel()
            self._load_timer = None

    def _update_playlist(self, **changes: Any) -> None:
        self._update(
            playlist=self._playlist.tracks,
            current_index=self._playlist.current_index,
            **changes,
        )

    def _update(self, **changes: Any) -> None:
        self._state = self._state._replace(**changes)
        self._notify()

    def _notify(self) -> None:
        if self._persistence:
            self._persistence.save(self._state)
        self._subscribers.notify(self._state)
