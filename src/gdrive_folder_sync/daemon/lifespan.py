"""Lifespan management for daemon startup and shutdown."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import yaml
from dotenv import load_dotenv

from ..config import load_config, resolve_config_path
from ..config_loader import discover_config_files, load_global_config
from ..config_schema import GlobalConfig, build_global_config
from ..core.async_utils import run_sync
from ..core.client import DriveClient
from ..sync.engine import SyncEngine

logger = logging.getLogger(__name__)


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback."""
    print(msg, file=sys.stderr, flush=True)


def load_global_defaults() -> GlobalConfig:
    """Load ``.env`` and the user-wide YAML defaults.

    Runs before logging is configured, because the YAML file may set the
    log level and log file.

    Raises:
        RuntimeError: If the YAML file exists but is invalid.
    """
    # .env first, so ${VAR} interpolation in the YAML can use its values
    load_dotenv()
    try:
        return build_global_config(load_global_config())
    except (ValueError, yaml.YAMLError) as e:
        _stderr_print(f"ERROR: Invalid global config file: {e}")
        raise RuntimeError(f"Invalid global config file: {e}") from e


@asynccontextmanager
async def sync_lifespan(
    folder: str | None = None,
    config_file: str | None = None,
    global_config: GlobalConfig | None = None,
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Manage daemon startup and shutdown lifecycle.

    On startup:
    - Resolve and load the per-folder JSON config (CLI > JSON > env > YAML > defaults)
    - Create DriveClient and validate credentials with an ``about`` call
    - Load replica state and build the SyncEngine
    - Fail fast if the config is invalid or Drive is unreachable

    Args:
        folder: Synced folder given on the command line, if any.
        config_file: Explicit config file path (wins over *folder*).
        global_config: User-wide defaults from ``load_global_defaults()``.
        config_overrides: CLI values (``debounce_seconds``,
            ``poll_interval_seconds``).

    Yields:
        Dict with 'config', 'client' and 'engine' keys.

    Raises:
        RuntimeError: If configuration is invalid or the Drive connection fails.
    """
    logger.info("gdrive-folder-sync starting...")
    _stderr_print("gdrive-folder-sync starting...")

    try:
        config_path = resolve_config_path(folder, config_file)
        config = load_config(
            config_path,
            global_config=global_config,
            overrides=config_overrides,
        )

        sources = [f"folder config: {config_path}"]
        global_files = discover_config_files()
        if global_files:
            sources.append(f"global config: {global_files[0]}")
        if config_overrides:
            sources.append("CLI arguments")
        source_desc = ", ".join(sources)
        logger.info("Configuration loaded from: %s", source_desc)
        _stderr_print(f"  Configuration loaded from: {source_desc}")
        logger.info("Local folder: %s", config.local_path)
        _stderr_print(f"  Local folder: {config.local_path}")
        logger.info("Drive folder: %s", config.gdrive_folder_id)
        _stderr_print(f"  Drive folder: {config.gdrive_folder_id}")
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        _stderr_print(
            "  Create .gdrive-folder-sync.json with at least gdriveFolderId."
        )
        raise RuntimeError(f"Configuration error: {e}") from e

    logger.info("Validating Drive credentials...")
    _stderr_print("  Validating Drive credentials...")
    try:
        client = DriveClient(config)
        account = await run_sync(client.validate_connection)
        logger.info("Connected to Google Drive as %s", account or "unknown")
        _stderr_print(f"  Connected to Google Drive as {account or 'unknown'}")
    except Exception as e:
        logger.error("Failed to connect to Google Drive: %s", e)
        _stderr_print("ERROR: Google Drive connection failed.")
        _stderr_print(f"  {e}")
        _stderr_print(f"  Check the token file {config.token_file}.")
        raise RuntimeError(f"Google Drive connection failed: {e}") from e

    engine = SyncEngine(client, config)

    yield {"config": config, "client": client, "engine": engine}

    logger.info("gdrive-folder-sync shutting down")
    _stderr_print("gdrive-folder-sync shutting down.")
