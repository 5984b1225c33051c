"""
WebWave CLI - Entry point

``webwave serve`` runs the HTTP API; ``webwave player`` signs in and plays
the user's library through mpv.
"""

import argparse
import getpass
import sys
from typing import Optional

from loguru import logger

from webwave.core.config import Config, load_config
from webwave.core.console import print_error, print_tracks, safe_print
from webwave.core.output import setup_from_config
from webwave.domain.library.metadata import UNKNOWN_ARTIST, format_time

PLAYER_HELP = """Commands:
  play | pause | toggle     transport
  next | prev               move through the playlist
  seek <seconds>            jump to a position
  vol <0-100>               set volume
  list                      show the playlist
  select <n>                load track n (no auto-play)
  reload                    fetch the track list again
  status                    show what is loaded
  quit                      exit the player"""


def run_serve(config: Config, host: Optional[str], port: Optional[int]) -> int:
    """Run the FastAPI app with uvicorn."""
    import uvicorn

    host = host or config.web.host
    port = port or config.web.port
    logger.info(f"Starting API on {host}:{port}")
    uvicorn.run("web.backend.main:app", host=host, port=port)
    return 0


def _print_status(engine) -> None:
    state = engine.state
    track = state.current_track
    if track is None:
        safe_print("Nothing loaded", style="dim")
        return

    if state.is_loading:
        status = "loading"
    elif state.is_playing:
        status = "playing"
    else:
        status = "paused"

    safe_print(
        f"[{status}] {track.artist or UNKNOWN_ARTIST} - {track.title} "
        f"{format_time(state.current_time)} / {format_time(state.duration)} "
        f"vol {round(state.volume * 100)}%",
        style="bold cyan",
    )


def _print_playlist(engine) -> None:
    print_tracks(
        (
            (track.artist or UNKNOWN_ARTIST, track.title, format_time(track.duration))
            for track in engine.playlist
        ),
        current_index=engine.current_index,
    )


def _handle_player_command(line: str, engine, store) -> bool:
    """Run one REPL command. Returns False when the loop should stop."""
    parts = line.split()
    if not parts:
        return True

    command, args = parts[0].lower(), parts[1:]

    if command in ("quit", "exit", "q"):
        return False
    elif command == "play":
        engine.play()
    elif command == "pause":
        engine.pause()
    elif command in ("toggle", "p"):
        engine.toggle_play_pause()
    elif command in ("next", "n"):
        engine.skip_to_next()
    elif command in ("prev", "previous"):
        engine.skip_to_previous()
    elif command == "seek" and args:
        engine.seek_to(float(args[0]))
    elif command in ("vol", "volume") and args:
        engine.set_volume(float(args[0]) / 100)
    elif command in ("list", "ls"):
        _print_playlist(engine)
    elif command == "select" and args:
        index = int(args[0]) - 1
        engine.play_from_playlist(engine.playlist, index)
    elif command == "reload":
        store.refresh()
        safe_print(f"{len(store.tracks)} tracks", style="green")
    elif command == "status":
        _print_status(engine)
    elif command == "help":
        safe_print(PLAYER_HELP)
    else:
        safe_print(f"Unknown command: {line}. Type 'help' for commands.", style="yellow")

    return True


def run_player(config: Config, email: Optional[str]) -> int:
    """Interactive terminal player."""
    from webwave.domain.auth.session import AuthSession
    from webwave.domain.library.store import LibraryStore, ReloadPolicy
    from webwave.domain.library.workflow import TrackWorkflow
    from webwave.domain.playback.engine import PlaybackEngine
    from webwave.domain.playback.media import MediaError
    from webwave.domain.playback.mpv import MpvMediaElement, check_mpv_available
    from webwave.gateway.errors import GatewayError
    from webwave.gateway.supabase import SupabaseGateway

    if not check_mpv_available():
        print_error("mpv not found. Install mpv to use the player.")
        return 1

    try:
        gateway = SupabaseGateway.for_client(config.supabase)
    except GatewayError as e:
        print_error(f"Cannot reach Supabase: {e}")
        return 1

    session = AuthSession(gateway.auth)
    session.initialize()

    if not session.is_authenticated:
        email = email or input("Email: ")
        password = getpass.getpass("Password: ")
        try:
            session.sign_in(email, password)
        except GatewayError as e:
            print_error(f"Sign in failed: {e}")
            return 1

    element = MpvMediaElement(config.player.mpv_socket_path)
    try:
        element.start()
    except MediaError as e:
        print_error(str(e))
        return 1

    engine = PlaybackEngine(
        element,
        load_timeout=config.player.load_timeout_seconds,
        play_fallback=config.player.play_fallback_seconds,
        volume=config.player.volume,
        on_error=lambda error: safe_print(f"Playback error: {error}", style="red"),
    )
    workflow = TrackWorkflow(gateway.storage, gateway.records, gateway.auth, config.limits)
    store = LibraryStore(workflow, engine, ReloadPolicy(config.library.reload_policy))
    store.bind(session)
    store.handle_session_change("SIGNED_IN", session.user)

    safe_print(f"Loaded {len(store.tracks)} tracks. Type 'help' for commands.", style="green")

    try:
        while True:
            try:
                line = input("webwave> ")
            except EOFError:
                break
            try:
                if not _handle_player_command(line.strip(), engine, store):
                    break
            except ValueError as e:
                safe_print(f"Invalid argument: {e}", style="yellow")
            except GatewayError as e:
                safe_print(f"Error: {e}", style="red")
    except KeyboardInterrupt:
        pass
    finally:
        engine.close()
        element.stop()
        session.close()

    return 0


def main() -> None:
    """Main entry point for the webwave command."""
    parser = argparse.ArgumentParser(
        description="WebWave - personal cloud music library",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="subcommand", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", help="Bind address (default: from config)")
    serve_parser.add_argument("--port", type=int, help="Port (default: from config)")

    player_parser = subparsers.add_parser("player", help="Play your library in the terminal")
    player_parser.add_argument("--email", help="Account email (prompted if omitted)")

    args = parser.parse_args()

    config = load_config()
    setup_from_config(config.logging)

    if args.subcommand == "serve":
        sys.exit(run_serve(config, args.host, args.port))
    elif args.subcommand == "player":
        sys.exit(run_player(config, args.email))

    parser.print_help()
    sys.exit(1)


if __name__ == "__main__":
    main()
