"""
Next/previous index computation for sequential and shuffled playback.

Sequential order is plain index order. Shuffle order is a Fisher-Yates
permutation of every playlist index, anchored so the track that was current
when the permutation was built comes first. Callers tell the policy whether
navigation may wrap past either end; without wrapping the ends are hard stops.
"""

import random
from typing import Optional

from loguru import logger


class NavigationPolicy:
    """Owns the shuffle permutation and answers navigation queries."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()
        self._shuffle_enabled = False
        self._order: list[int] = []

    @property
    def shuffle_enabled(self) -> bool:
        return self._shuffle_enabled

    @property
    def order(self) -> tuple[int, ...]:
        """Current shuffle permutation (empty when shuffle is off)."""
        return tuple(self._order)

    def set_shuffle(self, enabled: bool, length: int, current_index: int) -> None:
        """Turn shuffle on (building a fresh permutation) or off (dropping it)."""
        self._shuffle_enabled = enabled
        if enabled:
            self.regenerate(length, current_index)
        else:
            self._order = []

    def regenerate(self, length: int, current_index: int) -> None:
        """Rebuild the permutation after the playlist changed.

        No-op while shuffle is off.
        """
        if not self._shuffle_enabled:
            self._order = []
            return

        order = list(range(length))
        # Fisher-Yates
        for i in range(length - 1, 0, -1):
            j = self._rng.randint(0, i)
            order[i], order[j] = order[j], order[i]

        if 0 <= current_index < length:
            pos = order.index(current_index)
            order[0], order[pos] = order[pos], order[0]

        self._order = order
        logger.debug(f"Shuffle order regenerated for {length} tracks")

    def reset(self) -> None:
        """Forget the permutation (playlist cleared)."""
        self._order = []

    def _position(self, length: int, current_index: int) -> int:
        """Position of current_index in navigation order."""
        if not self._shuffle_enabled:
            return current_index
        if len(self._order) != length:
            self.regenerate(length, current_index)
        return self._order.index(current_index)

    def _index_at(self, position: int) -> int:
        return self._order[position] if self._shuffle_enabled else position

    def next_index(self, length: int, current_index: int, wrap: bool) -> Optional[int]:
        """Index that follows current_index, or None when there is none."""
        if length == 0 or current_index < 0:
            return None
        position = self._position(length, current_index)
        if position + 1 < length:
            return self._index_at(position + 1)
        return self._index_at(0) if wrap else None

    def previous_index(
        self, length: int, current_index: int, wrap: bool
    ) -> Optional[int]:
        """Index that precedes current_index, or None when there is none."""
        if length == 0 or current_index < 0:
            return None
        position = self._position(length, current_index)
        if position > 0:
            return self._index_at(position - 1)
        return self._index_at(length - 1) if wrap else None

    def has_next(self, length: int, current_index: int, wrap: bool) -> bool:
        return self.next_index(length, current_index, wrap) is not None

    def has_previous(self, length: int, current_index: int, wrap: bool) -> bool:
        return self.previous_index(length, current_index, wrap) is not None
