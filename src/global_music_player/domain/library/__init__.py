"""Library domain - track records and media ingest."""

from .ingest import (
    is_supported,
    track_from_media_info,
    track_from_path,
    tracks_from_paths,
)
from .models import Track

__all__ = [
    "Track",
    "is_supported",
    "track_from_media_info",
    "track_from_path",
    "tracks_from_paths",
]
