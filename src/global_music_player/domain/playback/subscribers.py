"""Fan-out of state snapshots to any number of listeners."""

from typing import Callable

from loguru import logger

from .state import PlayerState

StateListener = Callable[[PlayerState], None]
Unsubscribe = Callable[[], None]


class SubscriberRegistry:
    """Listener list with snapshot-per-pass semantics.

    Each notification pass works on a copy of the listener list taken when
    the pass starts, so listeners added or removed by a callback only affect
    later passes.
    """

    def __init__(self) -> None:
        self._listeners: list[StateListener] = []

    def __len__(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: StateListener) -> Unsubscribe:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass  # Already unsubscribed

        return unsubscribe

    def notify(self, state: PlayerState) -> None:
        for listener in tuple(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception(f"State listener {listener!r} raised")

    def clear(self) -> None:
        self._listeners.clear()
