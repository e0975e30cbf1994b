"""
Ordered track list with a current-position pointer.

The store only manages the sequence and the index; it never talks to the
transport. Mutations report which track (if any) the caller has to load.
"""

from typing import Callable, Iterable, NamedTuple, Optional, Sequence

from loguru import logger

from ..library.models import Track

ReleaseHook = Callable[[Track], None]


class PlaylistChange(NamedTuple):
    """Outcome of a playlist mutation.

    Attributes:
        load_index: Index whose track must now be loaded, or None if the
            loaded track is unaffected
        current_removed: True when the current track itself was taken out
    """

    load_index: Optional[int] = None
    current_removed: bool = False


def _release_noop(track: Track) -> None:
    pass


class PlaylistStore:
    """Playlist plus current index, with `-1 <= current_index < len`."""

    def __init__(self, release_track: Optional[ReleaseHook] = None) -> None:
        self._tracks: list[Track] = []
        self._current_index = -1
        self._release_track = release_track or _release_noop

    def __len__(self) -> int:
        return len(self._tracks)

    @property
    def tracks(self) -> tuple[Track, ...]:
        return tuple(self._tracks)

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def current_track(self) -> Optional[Track]:
        if self._current_index < 0:
            return None
        return self._tracks[self._current_index]

    def _check_index(self, index: int) -> None:
        if isinstance(index, bool) or not isinstance(index, int):
            raise TypeError(f"Playlist index must be an int, got {index!r}")
        if not 0 <= index < len(self._tracks):
            raise IndexError(
                f"Playlist index {index} out of range for {len(self._tracks)} tracks"
            )

    def _check_unique(self, tracks: Sequence[Track]) -> None:
        seen = set()
        for track in tracks:
            if track.id in seen:
                raise ValueError(f"Duplicate track id in playlist: {track.id}")
            seen.add(track.id)

    def _release(self, tracks: Iterable[Track]) -> None:
        for track in tracks:
            try:
                self._release_track(track)
            except Exception:
                logger.exception(f"Failed to release track resource: {track.id}")

    def replace(self, tracks: Iterable[Track]) -> PlaylistChange:
        """Swap in a new playlist and select its first track."""
        new_tracks = list(tracks)
        self._check_unique(new_tracks)

        old_tracks = self._tracks
        self._tracks = new_tracks
        self._current_index = 0 if new_tracks else -1

        kept_ids = {track.id for track in new_tracks}
        self._release(track for track in old_tracks if track.id not in kept_ids)

        return PlaylistChange(load_index=self._current_index if new_tracks else None)

    def append(self, tracks: Iterable[Track]) -> PlaylistChange:
        """Add tracks at the end; an empty playlist selects the first one."""
        new_tracks = list(tracks)
        if not self._tracks:
            return self.replace(new_tracks)

        self._check_unique(self._tracks + new_tracks)
        self._tracks.extend(new_tracks)
        return PlaylistChange()

    def remove_at(self, index: int) -> PlaylistChange:
        """Remove one track, keeping the index on a valid track.

        Removing before the current track shifts the index down. Removing the
        current track selects the track that takes its place, or the new last
        track when the removed one was last.
        """
        self._check_index(index)
        removed = self._tracks.pop(index)
        self._release([removed])

        if index < self._current_index:
            self._current_index -= 1
            return PlaylistChange()

        if index > self._current_index:
            return PlaylistChange()

        if not self._tracks:
            self._current_index = -1
            return PlaylistChange(current_removed=True)

        if index >= len(self._tracks):
            self._current_index = len(self._tracks) - 1
        return PlaylistChange(load_index=self._current_index, current_removed=True)

    def reorder(self, new_order: Sequence[int]) -> PlaylistChange:
        """Rearrange tracks; new_order[k] is the old index placed at k."""
        order = list(new_order)
        if sorted(order) != list(range(len(self._tracks))):
            raise ValueError(
                f"Reorder must be a permutation of 0..{len(self._tracks) - 1}, got {order}"
            )

        self._tracks = [self._tracks[old] for old in order]
        if self._current_index >= 0:
            self._current_index = order.index(self._current_index)
        return PlaylistChange()

    def select(self, index: int) -> Track:
        """Make index current and return its track."""
        self._check_index(index)
        self._current_index = index
        return self._tracks[index]

    def restore(self, tracks: Iterable[Track], current_index: int) -> None:
        """Load saved contents without releasing anything."""
        self._tracks = list(tracks)
        self._check_unique(self._tracks)
        if self._tracks and 0 <= current_index < len(self._tracks):
            self._current_index = current_index
        else:
            self._current_index = 0 if self._tracks else -1

    def clear(self) -> None:
        """Empty the playlist and release every track."""
        old_tracks = self._tracks
        self._tracks = []
        self._current_index = -1
        self._release(old_tracks)
