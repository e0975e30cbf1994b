"""
MPV transport using JSON IPC.

Starts an idle mpv process and drives it over its IPC socket. mpv is polled
rather than subscribed to: poll() reads the interesting properties and turns
changes into playback events for the generation that is currently loaded.
"""

import json
import os
import socket
import subprocess
import tempfile
import time
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from .errors import LoadError, PlayError
from .primitive import (
    EventSink,
    Ended,
    LoadStarted,
    MediaError,
    MetadataReady,
    PlaybackEvent,
    PlayStateChanged,
    TimeUpdated,
    VolumeChanged,
)

# Seconds an idle mpv may take to open a file before it counts as failed
IDLE_GRACE_PERIOD = 2.0


def check_mpv_available() -> bool:
    """Check if MPV is available on the system."""
    try:
        result = subprocess.run(
            ["mpv", "--version"], capture_output=True, text=True, timeout=5
        )
        return result.returncode == 0
    except (subprocess.SubprocessError, FileNotFoundError, OSError):
        return False


def _request(socket_path: Optional[str], command: dict[str, Any]) -> Optional[dict]:
    """Send one JSON IPC command and return the decoded reply."""
    if not socket_path or not os.path.exists(socket_path):
        return None

    try:
        with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
            sock.settimeout(2.0)
            sock.connect(socket_path)
            sock.send((json.dumps(command) + "\n").encode("utf-8"))
            response = sock.recv(4096).decode("utf-8").strip()
    except (socket.error, OSError):
        return None

    # mpv may interleave async event lines; the reply is the line with "error"
    for line in response.splitlines():
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            continue
        if "error" in data:
            return data
    return None


def send_mpv_command(socket_path: Optional[str], command: dict[str, Any]) -> bool:
    """Send JSON IPC command to MPV."""
    reply = _request(socket_path, command)
    return reply is not None and reply.get("error") == "success"


def get_mpv_property(socket_path: Optional[str], property_name: str) -> Any:
    """Get a property value from MPV."""
    reply = _request(socket_path, {"command": ["get_property", property_name]})
    if reply and reply.get("error") == "success":
        return reply.get("data")
    return None


class MpvTransport:
    """Transport backed by an mpv subprocess."""

    def __init__(self, socket_path: Optional[str] = None) -> None:
        if socket_path is None:
            socket_path = str(Path(tempfile.gettempdir()) / f"gmp-mpv-{os.getpid()}")
        self.socket_path = socket_path
        self.process: Optional[subprocess.Popen] = None
        self._sink: Optional[EventSink] = None

        self._generation = 0
        self._loaded = False
        self._loaded_at = 0.0
        self._duration_reported = False
        self._last_position: Optional[float] = None
        self._last_paused: Optional[bool] = None
        self._last_eof = False
        self._volume = 1.0
        self._muted = False

    # Process lifecycle

    def start(self, volume: float = 1.0) -> bool:
        """Start MPV with JSON IPC."""
        logger.info(f"Starting MPV player with socket: {self.socket_path}")
        try:
            if os.path.exists(self.socket_path):
                logger.debug(f"Removing existing socket: {self.socket_path}")
                os.unlink(self.socket_path)

            cmd = [
                "mpv",
                "--idle=yes",
                "--no-video",
                "--no-terminal",
                f"--input-ipc-server={self.socket_path}",
                f"--volume={round(volume * 100)}",
                "--keep-open=yes",
                "--load-scripts=no",
            ]
            self.process = subprocess.Popen(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
            )

            timeout = 5.0
            start_time = time.time()
            while not os.path.exists(self.socket_path):
                if time.time() - start_time > timeout:
                    logger.error(f"MPV socket creation timeout after {timeout}s")
                    self.stop()
                    return False
                time.sleep(0.1)

            if send_mpv_command(self.socket_path, {"command": ["get_property", "idle-active"]}):
                logger.info("MPV started successfully")
                return True

            logger.error("MPV socket connection test failed")
            self.stop()
            return False

        except (subprocess.SubprocessError, OSError) as e:
            logger.error(f"Failed to start MPV: {e}")
            return False

    def stop(self) -> None:
        """Stop MPV process and cleanup."""
        if self.process:
            try:
                self.process.kill()
                self.process.wait(timeout=2.0)
            except (OSError, subprocess.TimeoutExpired):
                pass  # Process already terminated or couldn't be killed
            self.process = None

        if os.path.exists(self.socket_path):
            try:
                os.unlink(self.socket_path)
            except OSError:
                pass

    def is_running(self) -> bool:
        """Check if MPV process is still running."""
        if not self.process or self.process.poll() is not None:
            return False
        return os.path.exists(self.socket_path)

    # Transport protocol

    def set_event_sink(self, sink: EventSink) -> None:
        self._sink = sink

    def _emit(self, event: PlaybackEvent) -> None:
        if self._sink is not None:
            self._sink(event)

    def _set(self, name: str, value: Any) -> bool:
        return send_mpv_command(self.socket_path, {"command": ["set_property", name, value]})

    def load(self, source_ref: str, generation: int) -> None:
        if not self.is_running():
            raise LoadError("mpv is not running")

        # Keep the new file paused until the engine asks for playback
        self._set("pause", True)
        if not send_mpv_command(
            self.socket_path, {"command": ["loadfile", source_ref, "replace"]}
        ):
            raise LoadError(f"mpv rejected {source_ref}")

        self._generation = generation
        self._loaded = True
        self._loaded_at = time.time()
        self._duration_reported = False
        self._last_position = None
        self._last_paused = True
        self._last_eof = False
        self._emit(LoadStarted(generation))

    def unload(self) -> None:
        self._loaded = False
        send_mpv_command(self.socket_path, {"command": ["stop"]})

    def play(self) -> None:
        if not self._set("pause", False):
            raise PlayError("mpv refused to unpause")
        if self._last_paused is not False:
            self._last_paused = False
            self._emit(PlayStateChanged(self._generation, True))

    def pause(self) -> None:
        if self._set("pause", True) and self._last_paused is not True:
            self._last_paused = True
            self._emit(PlayStateChanged(self._generation, False))

    def seek(self, seconds: float) -> None:
        send_mpv_command(self.socket_path, {"command": ["seek", seconds, "absolute"]})

    def set_volume(self, volume: float) -> None:
        self._volume = volume
        if self._set("volume", round(volume * 100)):
            self._emit(VolumeChanged(self._generation, volume, self._muted))

    def set_muted(self, muted: bool) -> None:
        self._muted = muted
        if self._set("mute", muted):
            self._emit(VolumeChanged(self._generation, self._volume, muted))

    # Polling

    def poll(self) -> None:
        """Read mpv properties and emit events for anything that changed."""
        if not self._loaded:
            return
        generation = self._generation

        if not self.is_running():
            self._loaded = False
            self._emit(MediaError(generation, "mpv exited"))
            return

        duration = get_mpv_property(self.socket_path, "duration")
        if not self._duration_reported:
            if duration and duration > 0:
                self._duration_reported = True
                self._emit(MetadataReady(generation, float(duration)))
            elif (
                get_mpv_property(self.socket_path, "idle-active")
                and time.time() - self._loaded_at > IDLE_GRACE_PERIOD
            ):
                # mpv drops back to idle when it cannot open the file
                self._loaded = False
                self._emit(MediaError(generation, "mpv could not open the file"))
            return

        paused = get_mpv_property(self.socket_path, "pause")
        if paused is not None and paused != self._last_paused:
            self._last_paused = paused
            self._emit(PlayStateChanged(generation, not paused))

        position = get_mpv_property(self.socket_path, "time-pos")
        if position is not None and position != self._last_position:
            self._last_position = position
            self._emit(TimeUpdated(generation, float(position)))

        eof = bool(get_mpv_property(self.socket_path, "eof-reached"))
        ended = eof and not self._last_eof
        self._last_eof = eof
        if ended:
            # With keep-open mpv pauses on the last frame; report the end once
            self._last_paused = True
            self._emit(Ended(generation))
