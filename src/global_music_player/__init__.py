"""Global music player - playback engine with playlist, shuffle, repeat and session restore."""

__version__ = "0.1.0"
