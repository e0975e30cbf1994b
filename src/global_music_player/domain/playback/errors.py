"""Playback engine exceptions.

None of these escape the engine's public actions: load and play failures are
recorded on the state snapshot, persistence failures are only logged.
"""


class PlaybackEngineError(Exception):
    """Base exception for playback engine failures."""

    pass


class LoadError(PlaybackEngineError):
    """Raised when media is unreachable, corrupt or in an unsupported format."""

    pass


class PlayError(PlaybackEngineError):
    """Raised when the transport refuses to start playback."""

    pass


class PersistenceError(PlaybackEngineError):
    """Raised when saved session state cannot be read, written or parsed."""

    pass
