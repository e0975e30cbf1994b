"""Generation tags for load operations.

Every load gets a fresh generation; events from the transport carry the
generation of the load they belong to, and anything older than the current
generation is stale.
"""


class GenerationGuard:
    """Monotonic counter identifying the active load."""

    def __init__(self) -> None:
        self._current = 0

    @property
    def current(self) -> int:
        return self._current

    def next(self) -> int:
        """Start a new generation and return it."""
        self._current += 1
        return self._current

    def invalidate(self) -> None:
        """Retire the active generation without starting a load."""
        self._current += 1

    def is_current(self, generation: int) -> bool:
        return generation == self._current
