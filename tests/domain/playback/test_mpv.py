"""Tests for turning mpv properties into playback events (IPC stubbed out)."""

import pytest

from global_music_player.domain.playback import mpv
from global_music_player.domain.playback.errors import LoadError, PlayError
from global_music_player.domain.playback.primitive import (
    Ended,
    LoadStarted,
    MediaError,
    MetadataReady,
    PlayStateChanged,
    TimeUpdated,
    VolumeChanged,
)


class FakeMpv:
    """Stands in for the IPC socket: records commands, serves properties."""

    def __init__(self) -> None:
        self.commands = []
        self.properties = {"duration": None, "idle-active": False}
        self.accept = True

    def send(self, socket_path, command):
        self.commands.append(command["command"])
        return self.accept

    def get(self, socket_path, name):
        return self.properties.get(name)


@pytest.fixture
def fake_mpv(monkeypatch) -> FakeMpv:
    fake = FakeMpv()
    monkeypatch.setattr(mpv, "send_mpv_command", fake.send)
    monkeypatch.setattr(mpv, "get_mpv_property", fake.get)
    return fake


@pytest.fixture
def events():
    return []


@pytest.fixture
def transport(fake_mpv, events, monkeypatch) -> mpv.MpvTransport:
    transport = mpv.MpvTransport(socket_path="/tmp/gmp-test-socket")
    monkeypatch.setattr(transport, "is_running", lambda: True)
    transport.set_event_sink(events.append)
    return transport


class TestCommands:
    def test_load_sends_loadfile_paused(self, transport, fake_mpv, events):
        transport.load("/music/a.mp3", 3)

        assert fake_mpv.commands == [
            ["set_property", "pause", True],
            ["loadfile", "/music/a.mp3", "replace"],
        ]
        assert events == [LoadStarted(3)]

    def test_rejected_loadfile_raises(self, transport, fake_mpv):
        fake_mpv.accept = False
        with pytest.raises(LoadError):
            transport.load("/music/a.mp3", 1)

    def test_load_without_process_raises(self, transport, monkeypatch):
        monkeypatch.setattr(transport, "is_running", lambda: False)
        with pytest.raises(LoadError, match="not running"):
            transport.load("/music/a.mp3", 1)

    def test_play_and_pause_emit_state(self, transport, events):
        transport.load("/music/a.mp3", 2)
        transport.play()
        transport.pause()

        assert events[1:] == [PlayStateChanged(2, True), PlayStateChanged(2, False)]

    def test_refused_unpause_raises(self, transport, fake_mpv):
        transport.load("/music/a.mp3", 1)
        fake_mpv.accept = False
        with pytest.raises(PlayError):
            transport.play()

    def test_volume_uses_percent(self, transport, fake_mpv, events):
        transport.set_volume(0.35)

        assert fake_mpv.commands[-1] == ["set_property", "volume", 35]
        assert events == [VolumeChanged(0, 0.35, False)]


class TestPoll:
    def test_nothing_loaded(self, transport, events):
        transport.poll()
        assert events == []

    def test_metadata_then_progress(self, transport, fake_mpv, events):
        transport.load("/music/a.mp3", 4)
        transport.poll()
        assert events == [LoadStarted(4)]

        fake_mpv.properties.update({"duration": 120.5, "pause": False, "time-pos": 3.0})
        transport.poll()
        assert events[-1] == MetadataReady(4, 120.5)

        transport.poll()
        assert events[-2:] == [PlayStateChanged(4, True), TimeUpdated(4, 3.0)]

        transport.poll()
        assert events[-1] == TimeUpdated(4, 3.0)
        assert len(events) == 4

    def test_end_reported_once(self, transport, fake_mpv, events):
        transport.load("/music/a.mp3", 1)
        fake_mpv.properties.update({"duration": 60.0, "pause": False, "time-pos": 59.9})
        transport.poll()

        fake_mpv.properties["eof-reached"] = True
        transport.poll()
        transport.poll()

        assert events.count(Ended(1)) == 1

    def test_idle_after_grace_period_is_error(self, transport, fake_mpv, events):
        transport.load("/music/missing.mp3", 5)
        transport._loaded_at -= mpv.IDLE_GRACE_PERIOD + 1
        fake_mpv.properties["idle-active"] = True

        transport.poll()
        transport.poll()

        assert events == [LoadStarted(5), MediaError(5, "mpv could not open the file")]

    def test_process_exit_is_error(self, transport, events, monkeypatch):
        transport.load("/music/a.mp3", 6)
        monkeypatch.setattr(transport, "is_running", lambda: False)

        transport.poll()

        assert events[-1] == MediaError(6, "mpv exited")


class BrokenSocket:
    """Socket whose connect fails; remembers whether it was closed."""

    instances = []

    def __init__(self, *args) -> None:
        self.closed = False
        BrokenSocket.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def settimeout(self, timeout):
        pass

    def connect(self, path):
        raise ConnectionRefusedError("mpv went away")

    def close(self):
        self.closed = True


def test_failed_request_closes_socket(tmp_path, monkeypatch):
    socket_path = tmp_path / "mpv-socket"
    socket_path.touch()
    BrokenSocket.instances.clear()
    monkeypatch.setattr(mpv.socket, "socket", BrokenSocket)

    assert mpv.send_mpv_command(str(socket_path), {"command": ["stop"]}) is False
    assert mpv.get_mpv_property(str(socket_path), "pause") is None
    assert [sock.closed for sock in BrokenSocket.instances] == [True, True]
