"""Configuration for a single synced folder.

Reads the per-folder JSON document and fills gaps from environment
variables, the user-wide YAML defaults and built-in defaults.

Precedence (highest to lowest):
    CLI overrides > per-folder JSON > Environment variables > YAML defaults > Built-in defaults

Environment variables:
    GOOGLE_CLIENT_ID: OAuth client ID used for token refresh (optional)
    GOOGLE_CLIENT_SECRET: OAuth client secret used for token refresh (optional)
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from pydantic import ValidationError

from .config_schema import GlobalConfig, SyncConfigFile

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".gdrive-folder-sync.json"
STATE_FILENAME = ".gdrive-folder-sync-state.json"

# OS-generated metadata files, matched by exact basename.
OS_METADATA_FILENAMES = (".DS_Store", "Thumbs.db", "desktop.ini")

DEFAULT_DEBOUNCE_SECONDS = 15.0
DEFAULT_POLL_INTERVAL_SECONDS = 900.0
DEFAULT_TOKEN_FILE = "~/.config/gdrive_folder_sync/tokens.json"


class ConfigError(ValueError):
    """Raised when the configuration is missing or invalid."""


@dataclass
class Config:
    local_path: Path
    gdrive_folder_id: str
    token_file: Path
    client_id: str | None = None
    client_secret: str | None = None
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS

    @property
    def state_path(self) -> Path:
        return self.local_path / STATE_FILENAME


def get_excluded_files() -> frozenset[str]:
    """Return the basenames that are never synced."""
    return frozenset((CONFIG_FILENAME, STATE_FILENAME, *OS_METADATA_FILENAMES))


def is_ignored_name(name: str) -> bool:
    """Return ``True`` for excluded basenames and state-file temp writes."""
    if name in get_excluded_files():
        return True
    return name.startswith(f"{STATE_FILENAME}.")


def is_excluded(relative_path: str) -> bool:
    """Return ``True`` if any segment of *relative_path* is ignored.

    An excluded directory name excludes its whole subtree.
    """
    return any(is_ignored_name(part) for part in PurePosixPath(relative_path).parts)


def expand_path(path: str) -> Path:
    """Expand a leading ``~`` to the user's home directory."""
    return Path(path).expanduser()


def resolve_config_path(
    folder: str | None = None, config: str | None = None
) -> Path:
    """Pick the config file to use.

    Priority: explicit *config* path > *folder*/CONFIG_FILENAME > CWD/CONFIG_FILENAME.
    """
    if config:
        return expand_path(config)
    if folder:
        return expand_path(folder) / CONFIG_FILENAME
    return Path.cwd() / CONFIG_FILENAME


def _first_set(*values):
    """Return the first value that is not ``None``."""
    return next(v for v in values if v is not None)


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ConfigError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ConfigError: If the folder id is blank, an interval is not
            positive, or the local path is not a directory.
    """
    config.gdrive_folder_id = config.gdrive_folder_id.strip()
    if not config.gdrive_folder_id:
        raise ConfigError("gdriveFolderId cannot be empty")

    if config.debounce_seconds <= 0:
        raise ConfigError(
            f"Invalid debounce interval {config.debounce_seconds}: must be positive"
        )
    if config.poll_interval_seconds <= 0:
        raise ConfigError(
            f"Invalid poll interval {config.poll_interval_seconds}: must be positive"
        )

    if not config.local_path.is_dir():
        raise ConfigError(
            f"Local path '{config.local_path}' is not a directory"
        )

    if not config.client_id or not config.client_secret:
        logger.warning(
            "No clientId/clientSecret configured: expired tokens cannot be refreshed"
        )


def load_config(
    config_path: Path,
    global_config: GlobalConfig | None = None,
    overrides: dict | None = None,
) -> Config:
    """Load configuration for one synced folder.

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        config_path: Path to the per-folder JSON document.
        global_config: User-wide defaults (``GlobalConfig()`` when absent).
        overrides: CLI values; supported keys are ``debounce_seconds`` and
            ``poll_interval_seconds``.

    Returns:
        Validated Config instance.

    Raises:
        ConfigError: If the file is missing, unparsable or invalid.
    """
    defaults = global_config or GlobalConfig()
    overrides = overrides or {}

    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(
            f"Cannot read config file {config_path}: {e}"
        ) from e

    try:
        raw = SyncConfigFile.model_validate(json.loads(text))
    except json.JSONDecodeError as e:
        raise ConfigError(
            f"Config file {config_path} is not valid JSON: {e}"
        ) from e
    except ValidationError as e:
        raise ConfigError(
            f"Config file {config_path} is invalid: {e}"
        ) from e

    if raw.local_path:
        local_path = expand_path(raw.local_path)
    else:
        local_path = config_path.parent

    token_file = (
        raw.token_file or defaults.drive.token_file or DEFAULT_TOKEN_FILE
    )

    config = Config(
        local_path=local_path.resolve(),
        gdrive_folder_id=raw.gdrive_folder_id,
        token_file=expand_path(token_file),
        client_id=raw.client_id
        or os.getenv("GOOGLE_CLIENT_ID")
        or defaults.drive.client_id,
        client_secret=raw.client_secret
        or os.getenv("GOOGLE_CLIENT_SECRET")
        or defaults.drive.client_secret,
        debounce_seconds=float(
            _first_set(
                overrides.get("debounce_seconds"),
                raw.debounce_seconds,
                DEFAULT_DEBOUNCE_SECONDS,
            )
        ),
        poll_interval_seconds=float(
            _first_set(
                overrides.get("poll_interval_seconds"),
                raw.poll_interval_seconds,
                DEFAULT_POLL_INTERVAL_SECONDS,
            )
        ),
    )

    validate_config(config)

    return config
