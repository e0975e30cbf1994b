"""
Music library domain models.

Contains the immutable track record handed to the playback engine.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Track(BaseModel):
    """Represents a playable track with metadata.

    Tracks are produced by the media ingest collaborator and never modified
    afterwards. The source_ref is opaque to the engine: a file path, a URL or
    anything else the transport knows how to open.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    id: str = Field(min_length=1)
    title: str
    artist: str
    album: Optional[str] = None
    artwork_ref: Optional[str] = None
    source_ref: str = Field(min_length=1)
    duration_seconds: Optional[float] = Field(default=None, ge=0)
    metadata: Optional[dict[str, Any]] = None

    def display_name(self) -> str:
        """Human-readable 'Artist - Title' label."""
        return f"{self.artist} - {self.title}"
