"""Command-line interface for Tubecast.

Provides commands for inspecting configuration and audio files and for
running the ingestion service.
"""

import argparse
import importlib
import signal
import sys
import threading
from collections.abc import Callable
from pathlib import Path

from tubecast.audio import mp3_duration
from tubecast.config import get_settings
from tubecast.exceptions import Cancelled, PipelineError
from tubecast.feed import RSSFileStore
from tubecast.ingestion import YouTubeService
from tubecast.logging import setup_logging


def load_factory(target: str) -> Callable:
    """Import a collaborator factory given as `package.module:function`.

    Raises:
        ValueError: If the target is malformed or doesn't name a callable.
    """
    module_name, _, attr = target.partition(":")
    if not module_name or not attr:
        raise ValueError(f"expected 'module:function', got {target!r}")

    module = importlib.import_module(module_name)
    factory = getattr(module, attr, None)
    if not callable(factory):
        raise ValueError(f"{target!r} is not callable")
    return factory


def cmd_duration(args: argparse.Namespace) -> int:
    """Print the duration of a local MP3 file."""
    setup_logging(log_level="WARNING")

    audio_path = Path(args.audio_file)
    if not audio_path.exists():
        print(f"Error: File not found: {audio_path}")
        return 1

    seconds = mp3_duration(audio_path)
    print(f"{audio_path}: {seconds}s ({seconds // 60}m {seconds % 60}s)")
    return 0


def cmd_channels(args: argparse.Namespace) -> int:
    """List configured channels with their effective retention."""
    setup_logging(log_level="WARNING")
    settings = get_settings().youtube

    if not settings.channels:
        print("\nNo channels configured.")
        print("Set YT_CHANNELS, e.g. YT_CHANNELS='[{\"id\": \"UC...\", \"name\": \"Name\"}]'")
        return 0

    print(f"\n{'=' * 60}")
    print(f"  CHANNELS ({len(settings.channels)})")
    print(f"{'=' * 60}")
    for channel in settings.channels:
        print(f"\n  Name:     {channel.name}")
        print(f"  ID:       {channel.id}")
        print(f"  Type:     {channel.type.value}")
        print(f"  Keep:     {channel.retention(settings.keep_per_channel)}")
        print(f"  Language: {channel.language}")

    return 0


def cmd_run(args: argparse.Namespace) -> int:
    """Run the ingestion service until interrupted."""
    settings = get_settings()
    setup_logging(log_level=settings.log_level, json_format=settings.json_logs)

    try:
        factory = load_factory(args.collaborators)
    except (ImportError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    lister, downloader, store = factory(settings)
    service = YouTubeService.from_settings(
        settings.youtube,
        lister=lister,
        downloader=downloader,
        store=store,
        rss_store=RSSFileStore(settings.youtube.rss_location),
    )

    stop_event = threading.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, lambda *_: stop_event.set())

    try:
        service.run(stop_event)
    except Cancelled:
        print("\nStopped.")
        return 0
    except PipelineError as e:
        print(f"Error: {e}")
        return 1
    return 0


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="tubecast",
        description="YouTube to Podcast Pipeline - download channel audio and publish RSS feeds",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # duration command
    du_parser = subparsers.add_parser("duration", help="Show the duration of an MP3 file")
    du_parser.add_argument("audio_file", help="Path to MP3 file")
    du_parser.set_defaults(func=cmd_duration)

    # channels command
    ch_parser = subparsers.add_parser("channels", help="List configured channels")
    ch_parser.set_defaults(func=cmd_channels)

    # run command
    run_parser = subparsers.add_parser("run", help="Run the ingestion service")
    run_parser.add_argument(
        "--collaborators",
        "-c",
        required=True,
        help="Factory returning (lister, downloader, store), as 'module:function'",
    )
    run_parser.set_defaults(func=cmd_run)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
