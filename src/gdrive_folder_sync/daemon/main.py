"""Command-line entry point and long-running sync loop.

Startup runs one full cycle (pull, push of what the pull handed back, then
push of the whole local tree).  Afterwards local changes are pushed after
a quiet period and the remote side is polled on a fixed interval until
SIGINT or SIGTERM arrives.
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Any

from .. import __version__
from ..config import Config
from ..logger import setup_logging
from ..sync.engine import SyncEngine
from ..sync.models import SyncReport
from ..sync.reporter import format_sync_report
from ..sync.scheduler import ChangeAggregator, PollScheduler
from ..sync.watcher import LocalWatcher
from .lifespan import _stderr_print, load_global_defaults, sync_lifespan

logger = logging.getLogger(__name__)


async def initial_cycle(engine: SyncEngine) -> list[SyncReport]:
    """Pull, push what the pull returned, then push every local file."""
    pull_report, push_report = await engine.sync()
    reports = [pull_report]
    if push_report is not None:
        reports.append(push_report)
    reports.append(await engine.push_all())
    return reports


async def run_daemon(engine: SyncEngine, config: Config) -> None:
    """Watch and poll until a shutdown signal arrives."""
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()

    aggregator = ChangeAggregator(config.debounce_seconds, engine.push)
    watcher = LocalWatcher(config.local_path, loop, aggregator.notify)
    poller = PollScheduler(config.poll_interval_seconds, engine.sync)

    signals = (signal.SIGINT, signal.SIGTERM)
    for sig in signals:
        loop.add_signal_handler(sig, stop.set)

    watcher.start()
    poller.start()
    logger.info(
        "[sync] Running (debounce %ss, poll every %ss)",
        config.debounce_seconds,
        config.poll_interval_seconds,
    )
    _stderr_print("Sync running. Press Ctrl+C to stop.")

    try:
        await stop.wait()
    finally:
        logger.info("[sync] Stopping...")
        watcher.stop()
        aggregator.close()
        await poller.stop()
        await aggregator.wait_idle()
        for sig in signals:
            loop.remove_signal_handler(sig)


async def main(
    folder: str | None = None,
    config_file: str | None = None,
    once: bool = False,
    debug: bool = False,
    log_file: str | None = None,
    log_format: str = "text",
    daemon: bool = False,
    config_overrides: dict[str, Any] | None = None,
) -> None:
    """Run the sync daemon (or a single cycle with *once*)."""
    global_config = load_global_defaults()

    setup_logging(
        mode="daemon" if daemon else "cli",
        debug=debug,
        log_file=log_file or global_config.logging.file,
        debug_format=log_format,
        level=global_config.logging.level,
    )

    async with sync_lifespan(
        folder=folder,
        config_file=config_file,
        global_config=global_config,
        config_overrides=config_overrides,
    ) as ctx:
        engine: SyncEngine = ctx["engine"]
        config: Config = ctx["config"]

        try:
            reports = await initial_cycle(engine)
        except Exception as e:
            logger.exception("Initial sync failed")
            _stderr_print(f"ERROR: Initial sync failed: {e}")
            raise RuntimeError(f"Initial sync failed: {e}") from e

        if once:
            for report in reports:
                print(format_sync_report(report))
                print()
            return

        await run_daemon(engine, config)


def run() -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    parser = argparse.ArgumentParser(
        description="gdrive-folder-sync - two-way sync between a local folder and Google Drive",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Sync the current directory (reads ./.gdrive-folder-sync.json)
  gdrive-folder-sync

  # Sync another folder
  gdrive-folder-sync ~/Documents/Shared

  # Explicit config file, one cycle only
  gdrive-folder-sync --config ~/sync/project.json --once

  # Faster reaction to local edits, poll Drive every 5 minutes
  gdrive-folder-sync --debounce 5 --poll-interval 300

  # Run under a service manager, logging to a file only
  gdrive-folder-sync ~/Documents/Shared --daemon --log-file ~/.cache/gdrive-folder-sync.log

Config file (.gdrive-folder-sync.json):
  {"gdriveFolderId": "...", "tokenFile": "~/.config/gdrive_folder_sync/tokens.json"}
        """,
    )

    parser.add_argument(
        "folder",
        nargs="?",
        help="Folder to sync (default: current directory)",
    )
    parser.add_argument(
        "--config",
        help="Path to the folder config file (takes precedence over FOLDER)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run one pull/push cycle, print a report and exit",
    )
    parser.add_argument(
        "--debounce",
        type=float,
        help="Seconds of quiet before local changes are pushed (default: 15)",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        help="Seconds between remote polls (default: 900)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--log-file",
        help="Also write logs to this file",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Log output format (default: text)",
    )
    parser.add_argument(
        "--daemon",
        action="store_true",
        help="Log only to the log file (default: /tmp/gdrive-folder-sync.log)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"gdrive-folder-sync version {__version__}",
    )

    args = parser.parse_args()

    config_overrides = {}
    if args.debounce is not None:
        config_overrides["debounce_seconds"] = args.debounce
    if args.poll_interval is not None:
        config_overrides["poll_interval_seconds"] = args.poll_interval

    if config_overrides:
        print(
            f"Config overrides from CLI: {', '.join(config_overrides)}",
            file=sys.stderr,
        )

    try:
        asyncio.run(
            main(
                folder=args.folder,
                config_file=args.config,
                once=args.once,
                debug=args.debug,
                log_file=args.log_file,
                log_format=args.log_format,
                daemon=args.daemon,
                config_overrides=config_overrides or None,
            )
        )
    except RuntimeError:
        # Error already printed to stderr by the lifespan manager
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
