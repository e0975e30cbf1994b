"""Tests for media ingest and the track model."""

import pytest
from pydantic import ValidationError

from global_music_player.domain.library.ingest import (
    UNKNOWN_ARTIST,
    get_tag_value,
    is_supported,
    parse_filename,
    track_from_media_info,
    track_from_path,
    tracks_from_paths,
)
from global_music_player.domain.library.models import Track


class TestTrackModel:
    def test_camel_case_aliases(self):
        track = Track.model_validate(
            {
                "id": "t1",
                "title": "Song",
                "artist": "Band",
                "sourceRef": "/a.mp3",
                "durationSeconds": 12.0,
            }
        )
        assert track.source_ref == "/a.mp3"
        assert track.model_dump(by_alias=True)["durationSeconds"] == 12.0

    def test_frozen(self):
        track = Track(id="t1", title="Song", artist="Band", source_ref="/a.mp3")
        with pytest.raises(ValidationError):
            track.title = "Other"

    @pytest.mark.parametrize(
        "overrides", [{"id": ""}, {"source_ref": ""}, {"duration_seconds": -1}]
    )
    def test_invalid_fields(self, overrides):
        fields = {"id": "t1", "title": "Song", "artist": "Band", "source_ref": "/a.mp3"}
        fields.update(overrides)
        with pytest.raises(ValidationError):
            Track(**fields)

    def test_display_name(self):
        track = Track(id="t1", title="Song", artist="Band", source_ref="/a.mp3")
        assert track.display_name() == "Band - Song"


class TestFilenames:
    def test_artist_and_title(self):
        assert parse_filename("/music/Boards of Canada - Roygbiv.flac") == (
            "Roygbiv",
            "Boards of Canada",
        )

    def test_title_only(self):
        assert parse_filename("/music/untitled.mp3") == ("untitled", None)

    @pytest.mark.parametrize(
        "path,expected",
        [("a.mp3", True), ("a.FLAC", True), ("a.opus", True), ("a.txt", False), ("a", False)],
    )
    def test_is_supported(self, path, expected):
        assert is_supported(path) is expected


class TestTagValues:
    def test_first_matching_tag_wins(self):
        tags = {"TIT2": ["Id3 Title"], "title": ["Vorbis Title"]}
        assert get_tag_value(tags, ["TIT2", "title"]) == "Id3 Title"

    def test_falls_through_missing_tags(self):
        assert get_tag_value({"title": ["Vorbis"]}, ["TIT2", "title"]) == "Vorbis"

    def test_nothing_found(self):
        assert get_tag_value({}, ["TIT2"]) is None


class TestTrackFromPath:
    def test_unreadable_file_falls_back_to_filename(self, tmp_path):
        path = tmp_path / "Artist Name - Track Name.mp3"
        path.write_bytes(b"not really audio")

        track = track_from_path(str(path))

        assert track.title == "Track Name"
        assert track.artist == "Artist Name"
        assert track.source_ref == str(path.resolve())
        assert track.metadata == {"format": ".mp3"}

    def test_unknown_artist(self, tmp_path):
        path = tmp_path / "loop.ogg"
        path.write_bytes(b"")

        assert track_from_path(str(path)).artist == UNKNOWN_ARTIST

    def test_unsupported_files_skipped(self, tmp_path):
        song = tmp_path / "song.mp3"
        song.write_bytes(b"")
        notes = tmp_path / "notes.txt"
        notes.write_text("hello")

        tracks = tracks_from_paths([str(song), str(notes)])

        assert [t.title for t in tracks] == ["song"]

    def test_ids_are_unique(self, tmp_path):
        song = tmp_path / "song.mp3"
        song.write_bytes(b"")

        first, second = tracks_from_paths([str(song), str(song)])
        assert first.id != second.id


class TestTrackFromMediaInfo:
    def test_metadata_used(self):
        track = track_from_media_info(
            "upload.mp3",
            "blob:abc",
            {"title": "Real Title", "artist": "Real Artist", "artwork": "blob:art"},
            track_id="m1",
        )

        assert track.id == "m1"
        assert track.title == "Real Title"
        assert track.artist == "Real Artist"
        assert track.artwork_ref == "blob:art"
        assert track.source_ref == "blob:abc"

    def test_fallbacks(self):
        track = track_from_media_info("upload.mp3", "blob:abc")

        assert track.title == "upload.mp3"
        assert track.artist == UNKNOWN_ARTIST
        assert track.metadata is None
        assert track.id
