"""Repeat modes and the end-of-track decision."""

from enum import Enum
from typing import NamedTuple, Optional


class RepeatMode(str, Enum):
    NONE = "none"
    ALL = "all"
    ONE = "one"

    def cycle(self) -> "RepeatMode":
        """Next mode in the none -> all -> one -> none cycle."""
        order = list(RepeatMode)
        return order[(order.index(self) + 1) % len(order)]

    @property
    def wraps(self) -> bool:
        """Whether navigation wraps past the ends of the playlist."""
        return self is not RepeatMode.NONE


class EndAction(NamedTuple):
    """What to do once the current track finishes.

    Exactly one of the flags is meaningful: ``stop`` halts playback in place,
    ``replay`` restarts the current track, otherwise ``index`` is advanced to.
    """

    index: Optional[int] = None
    replay: bool = False
    stop: bool = False


def decide_end_action(mode: RepeatMode, next_index: Optional[int]) -> EndAction:
    """Decide what follows a finished track.

    Args:
        mode: Active repeat mode
        next_index: Next index in navigation order under this mode's wrap
            rule, or None when nothing is reachable

    Returns:
        EndAction describing the transition
    """
    if mode is RepeatMode.ONE:
        return EndAction(replay=True)
    if next_index is None:
        return EndAction(stop=True)
    return EndAction(index=next_index)
