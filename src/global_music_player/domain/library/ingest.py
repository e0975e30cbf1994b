"""
Media ingest: turn files and media-info records into playable tracks.

The playback engine only ever sees finished Track records; this module is the
collaborator that produces them for the command-line front end.
"""

import uuid
from pathlib import Path
from typing import Any, Iterable, Optional

from loguru import logger
from mutagen import File as MutagenFile
from mutagen import MutagenError

from .models import Track

SUPPORTED_FORMATS = {".mp3", ".m4a", ".aac", ".wav", ".flac", ".ogg", ".opus", ".webm"}

UNKNOWN_ARTIST = "Unknown Artist"


def new_track_id() -> str:
    """Generate a unique track id."""
    return uuid.uuid4().hex


def get_tag_value(audio_file: Any, tag_names: list[str]) -> Optional[str]:
    """Get tag value, trying multiple possible tag names."""
    for tag_name in tag_names:
        try:
            value = audio_file.get(tag_name)
            if value:
                if isinstance(value, list) and value:
                    return str(value[0])
                return str(value)
        except (KeyError, ValueError):
            # Some formats (like Vorbis) raise ValueError for non-existent keys
            continue
    return None


def parse_filename(local_path: str) -> tuple[str, Optional[str]]:
    """Extract (title, artist) from an 'Artist - Title' style filename."""
    title = Path(local_path).stem
    if " - " in title:
        artist, _, rest = title.partition(" - ")
        return rest.strip(), artist.strip()
    return title, None


def is_supported(local_path: str) -> bool:
    """Check whether a file extension is one the player accepts."""
    return Path(local_path).suffix.lower() in SUPPORTED_FORMATS


def track_from_path(local_path: str) -> Track:
    """Read tags with mutagen and build a Track; falls back to the filename."""
    path = Path(local_path).expanduser().resolve()
    title, artist = parse_filename(str(path))
    album = None
    duration = None

    try:
        audio_file = MutagenFile(path)
        if audio_file is not None:
            # ID3 (MP3), MP4, and Vorbis/Opus tags (lowercase)
            title = get_tag_value(audio_file, ["TIT2", "\xa9nam", "TITLE", "title"]) or title
            artist = get_tag_value(audio_file, ["TPE1", "\xa9ART", "ARTIST", "artist"]) or artist
            album = get_tag_value(audio_file, ["TALB", "\xa9alb", "ALBUM", "album"])
            if hasattr(audio_file, "info"):
                duration = getattr(audio_file.info, "length", None)
    except (MutagenError, OSError) as e:
        logger.warning(f"Could not read metadata from {path}: {e}")

    return Track(
        id=new_track_id(),
        title=title,
        artist=artist or UNKNOWN_ARTIST,
        album=album,
        source_ref=str(path),
        duration_seconds=duration,
        metadata={"format": path.suffix.lower()},
    )


def tracks_from_paths(paths: Iterable[str]) -> list[Track]:
    """Build tracks for every supported path, skipping the rest."""
    tracks = []
    for local_path in paths:
        if not is_supported(local_path):
            logger.warning(f"Skipping unsupported file: {local_path}")
            continue
        tracks.append(track_from_path(local_path))
    return tracks


def track_from_media_info(
    name: str,
    url: str,
    metadata: Optional[dict[str, Any]] = None,
    track_id: Optional[str] = None,
) -> Track:
    """Convert an uploaded media record into a Track.

    Title falls back to the file name and artist to "Unknown Artist"; the
    whole metadata bag is kept on the track.
    """
    metadata = metadata or {}
    return Track(
        id=track_id or new_track_id(),
        title=metadata.get("title") or name,
        artist=metadata.get("artist") or UNKNOWN_ARTIST,
        album=metadata.get("album"),
        artwork_ref=metadata.get("artwork"),
        source_ref=url,
        duration_seconds=metadata.get("duration"),
        metadata=metadata or None,
    )
