from __future__ import annotations

import argparse
import hashlib
import time
from pathlib import Path

from watchtrack.core.config import Settings, load_settings_profile
from watchtrack.core.engine import CoverageEngine
from watchtrack.core.report import format_details, format_status_line, render_timeline
from watchtrack.core.state_store import FileKeyValueStore, ProgressStore
from watchtrack.input.keyboard import KeyboardInput
from watchtrack.player import MpvPlayer


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="watchtrack")
    parser.add_argument(
        "--profile",
        default=None,
        help="Select config/settings.<profile>.json when it exists.",
    )
    parser.add_argument(
        "--settings",
        type=str,
        default=None,
        help="Override settings config path (takes precedence over profile).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    play = sub.add_parser("play", help="Play a file in mpv while tracking unique coverage.")
    play.add_argument("media", type=str)

    show = sub.add_parser("show", help="Print stored coverage for a file.")
    show.add_argument("media", type=str)
    show.add_argument("--width", type=int, default=50, help="Timeline bar width in characters.")

    reset = sub.add_parser("reset", help="Delete stored coverage for a file.")
    reset.add_argument("media", type=str)
    return parser.parse_args(argv)


def store_key_for(settings: Settings, media: str | Path) -> str:
    """Per-file key so progress for different videos never mixes."""

    norm = str(Path(media).expanduser().resolve()).replace("\\", "/").lower()
    digest = hashlib.sha1(norm.encode("utf-8")).hexdigest()[:16]
    return f"{settings.store_key}-{digest}"


def build_store(settings: Settings, media: str | Path) -> ProgressStore:
    return ProgressStore(
        kv=FileKeyValueStore(root=settings.store_dir),
        key=store_key_for(settings, media),
        merge_tolerance=settings.merge_tolerance_sec,
        debug=settings.debug,
    )


def _show(settings: Settings, media: str, *, width: int) -> int:
    engine = CoverageEngine.from_settings(settings, store=build_store(settings, media))
    if engine.load() is None:
        print(f"No saved progress for {media}")
        return 1
    snap = engine.snapshot()
    print(render_timeline(snap, width=width))
    print(format_details(snap))
    return 0


def _reset(settings: Settings, media: str) -> int:
    engine = CoverageEngine.from_settings(
        settings, store=build_store(settings, media), on_status=lambda m: print(m)
    )
    engine.reset()
    return 0


def _play(settings: Settings, media: str) -> int:
    if not Path(media).expanduser().exists():
        print(f"File not found: {media}")
        return 2

    player = MpvPlayer(debug=settings.debug, ipc_trace=settings.ipc_trace, mpv_exe=settings.mpv_exe)
    engine = CoverageEngine.from_settings(
        settings,
        store=build_store(settings, media),
        player=player,
        on_status=lambda m: print(f"[status] {m}"),
    )
    inp = KeyboardInput()

    print("watchtrack playback")
    if inp.enabled:
        print("Controls: S=Save, R=Reset, D=Details, Q=Quit (mpv keys control playback)")
    print()

    last_line: str | None = None
    try:
        engine.start()
        player.load(str(Path(media).expanduser()))

        while player.alive():
            for evt in player.poll_events():
                engine.dispatch(evt)
            engine.tick()

            key = inp.poll()
            if key is not None:
                if key.kind == "quit":
                    break
                if key.kind == "save":
                    engine.save_now()
                elif key.kind == "reset":
                    engine.reset()
                elif key.kind == "details":
                    print(format_details(engine.snapshot()))

            line = format_status_line(engine.snapshot())
            if line != last_line:
                print(f"[progress] {line}")
                last_line = line

            # low CPU polling loop; no threads.
            time.sleep(settings.poll_interval_sec)
    except KeyboardInterrupt:
        pass
    finally:
        # Teardown save must finish before mpv and the terminal are released.
        engine.close()
        inp.close()
        player.close()

    print(format_details(engine.snapshot()))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    repo_root = Path(__file__).resolve().parents[1]
    settings_path = Path(args.settings).expanduser() if args.settings else None
    settings = load_settings_profile(repo_root=repo_root, profile=args.profile, path_override=settings_path)

    if args.command == "show":
        return _show(settings, args.media, width=args.width)
    if args.command == "reset":
        return _reset(settings, args.media)
    return _play(settings, args.media)
