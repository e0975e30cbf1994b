"""
Global Music Player CLI - entry point

Plays local files through mpv with the playback engine, and inspects or clears
the saved session.
"""

import argparse
import asyncio
import json
import sys
from typing import Optional

from loguru import logger

from global_music_player.app import PlayerApp
from global_music_player.core.config import Config, get_database_path, load_config
from global_music_player.core.output import setup_from_config
from global_music_player.core.storage import SqliteKeyValueStore
from global_music_player.domain.library import tracks_from_paths
from global_music_player.domain.playback import (
    MpvTransport,
    PersistenceAdapter,
    PlaybackEngine,
    PlayerState,
    RepeatMode,
    check_mpv_available,
)


def format_time(seconds: float) -> str:
    """Format time in seconds to MM:SS format."""
    if seconds < 0:
        return "00:00"
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes:02d}:{secs:02d}"


def print_state_change(previous: Optional[PlayerState], state: PlayerState) -> None:
    """Print a line whenever the current track or error changes."""
    track = state.current_track
    if track and (previous is None or previous.current_track != track):
        print(f"▶ [{state.current_index + 1}/{len(state.playlist)}] {track.display_name()}")
    if state.last_error and (previous is None or previous.last_error != state.last_error):
        print(f"✗ {state.last_error}", file=sys.stderr)


async def run_player(app: PlayerApp, transport: MpvTransport, autoplay: bool) -> None:
    """Drive the engine until the playlist stops or the user interrupts."""
    engine = app.engine
    last: dict[str, Optional[PlayerState]] = {"state": None}

    def on_change(state: PlayerState) -> None:
        print_state_change(last["state"], state)
        last["state"] = state

    unsubscribe = engine.subscribe(on_change)
    if autoplay:
        engine.play()

    interval = app.config.player.time_update_interval
    try:
        while transport.is_running():
            transport.poll()
            state = engine.get_state()
            if not state.is_playing and not state.is_loading and state.current_time == 0.0:
                if state.last_error or not engine.has_next():
                    break
            await asyncio.sleep(interval)
    finally:
        unsubscribe()

    state = engine.get_state()
    print(f"Stopped at {format_time(state.current_time)}")


def apply_play_modes(engine: PlaybackEngine, shuffle: bool, repeat: RepeatMode) -> None:
    """Force shuffle and repeat to the requested values, whatever was restored."""
    if engine.get_state().shuffle_enabled != shuffle:
        engine.toggle_shuffle()
    while engine.get_state().repeat_mode is not repeat:
        engine.toggle_repeat()


def _start_app(config: Config) -> Optional[tuple[PlayerApp, MpvTransport]]:
    if not check_mpv_available():
        print("Error: mpv is not installed or not on PATH", file=sys.stderr)
        return None

    transport = MpvTransport(config.mpv.socket_path)
    if not transport.start(volume=config.player.default_volume):
        print("Error: failed to start mpv", file=sys.stderr)
        return None

    return PlayerApp.create(config, transport), transport


def cmd_play(config: Config, args: argparse.Namespace) -> int:
    tracks = tracks_from_paths(args.files)
    if not tracks:
        print("No playable files given", file=sys.stderr)
        return 1

    started = _start_app(config)
    if started is None:
        return 1
    app, transport = started

    async def main() -> None:
        app.init()
        engine = app.engine
        engine.load_playlist(tracks)
        apply_play_modes(engine, args.shuffle, RepeatMode(args.repeat))
        await run_player(app, transport, autoplay=True)

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print()
    finally:
        app.dispose()
        transport.stop()
    return 0


def cmd_resume(config: Config, args: argparse.Namespace) -> int:
    started = _start_app(config)
    if started is None:
        return 1
    app, transport = started

    async def main() -> None:
        app.init()
        if app.engine.get_state().current_track is None:
            print("No saved session to resume")
            return
        await run_player(app, transport, autoplay=True)

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print()
    finally:
        app.dispose()
        transport.stop()
    return 0


def _persistence(config: Config) -> PersistenceAdapter:
    store = SqliteKeyValueStore(get_database_path(config))
    return PersistenceAdapter(store, key=config.persistence.storage_key)


def cmd_state(config: Config, args: argparse.Namespace) -> int:
    record = _persistence(config).load()
    if record is None:
        print("No saved session")
        return 1
    print(json.dumps(record.model_dump(mode="json", by_alias=True), indent=2))
    return 0


def cmd_clear(config: Config, args: argparse.Namespace) -> int:
    _persistence(config).clear()
    print("Saved session cleared")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gmp",
        description="Global music player - playlist playback through mpv",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    play_parser = subparsers.add_parser("play", help="Play files as a new playlist")
    play_parser.add_argument("files", nargs="+", help="Audio files to play")
    play_parser.add_argument("--shuffle", action="store_true", help="Enable shuffle")
    play_parser.add_argument(
        "--repeat",
        choices=[mode.value for mode in RepeatMode],
        default=RepeatMode.NONE.value,
        help="Repeat mode (default: none)",
    )
    play_parser.set_defaults(handler=cmd_play)

    resume_parser = subparsers.add_parser("resume", help="Resume the saved session")
    resume_parser.set_defaults(handler=cmd_resume)

    state_parser = subparsers.add_parser("state", help="Print the saved session as JSON")
    state_parser.set_defaults(handler=cmd_state)

    clear_parser = subparsers.add_parser("clear", help="Delete the saved session")
    clear_parser.set_defaults(handler=cmd_clear)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config()
    setup_from_config(config.logging)
    logger.debug(f"Running command: {args.command}")
    return args.handler(config, args)


if __name__ == "__main__":
    sys.exit(main())
