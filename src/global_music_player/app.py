"""Application composition root.

Builds one PlaybackEngine from configuration and owns its lifecycle. There is
no module-level player instance; whoever creates a PlayerApp disposes it.
"""

from dataclasses import dataclass
from typing import Optional

from loguru import logger

from global_music_player.core.config import Config, get_database_path
from global_music_player.core.storage import (
    KeyValueStore,
    MemoryKeyValueStore,
    SqliteKeyValueStore,
)
from global_music_player.domain.playback.engine import PlaybackEngine, Scheduler
from global_music_player.domain.playback.persistence import PersistenceAdapter
from global_music_player.domain.playback.primitive import Transport


@dataclass
class PlayerApp:
    """Explicit container for the engine and its collaborators.

    Attributes:
        config: Application configuration
        engine: The playback engine
        transport: Transport the engine drives
        persistence: Session persistence shared with the engine
    """

    config: Config
    engine: PlaybackEngine
    transport: Transport
    persistence: PersistenceAdapter

    @classmethod
    def create(
        cls,
        config: Config,
        transport: Transport,
        store: Optional[KeyValueStore] = None,
        scheduler: Optional[Scheduler] = None,
    ) -> "PlayerApp":
        """Wire an engine from configuration (not yet initialized).

        Args:
            config: Application configuration
            transport: Transport to drive (e.g. a started MpvTransport)
            store: Key-value store override (default: from [persistence])
            scheduler: Timer source for load timeouts (default: running loop)
        """
        if store is None:
            if config.persistence.enabled:
                store = SqliteKeyValueStore(get_database_path(config))
            else:
                store = MemoryKeyValueStore()

        persistence = PersistenceAdapter(store, key=config.persistence.storage_key)
        engine = PlaybackEngine(
            transport,
            persistence=persistence,
            config=config.player,
            scheduler=scheduler,
        )
        return cls(config=config, engine=engine, transport=transport, persistence=persistence)

    def init(self) -> None:
        """Restore the saved session."""
        state = self.engine.init()
        logger.info(
            f"Player ready: {len(state.playlist)} tracks, volume={state.volume:.2f}"
        )

    def dispose(self) -> None:
        """Tear down the engine (final state save included)."""
        self.engine.dispose()
