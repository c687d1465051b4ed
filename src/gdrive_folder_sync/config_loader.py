"""
User-wide YAML defaults for gdrive_folder_sync.

Provides convention-based discovery of the global config file and env var
interpolation. The per-folder JSON document always takes precedence over
anything found here.

Usage:
    from gdrive_folder_sync.config_loader import load_global_config

    raw = load_global_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# 1. Env var interpolation
# ---------------------------------------------------------------------------

# Matches ${VAR} and ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Replace ``${VAR}`` and ``${VAR:-default}`` patterns with env values.

    * ``${VAR}`` is replaced with ``os.environ.get(VAR, "")``.
    * ``${VAR:-default}`` uses *default* when VAR is unset or empty.
    * Literal ``${`` with no closing ``}`` is left untouched.
    """

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        default = match.group(2)
        env_val = os.environ.get(var_name)
        if env_val is not None and env_val != "":
            return env_val
        if default is not None:
            return default
        return ""

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _interpolate_recursive(obj: Any) -> Any:
    """Walk a nested dict/list and interpolate env vars in all strings."""
    if isinstance(obj, str):
        return interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _interpolate_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_interpolate_recursive(item) for item in obj]
    return obj


# ---------------------------------------------------------------------------
# 2. Convention-based file discovery
# ---------------------------------------------------------------------------


def discover_config_files() -> list[Path]:
    """Return existing global config file paths in precedence order.

    Search order:
        1. ``GDRIVE_FOLDER_SYNC_CONFIG`` env var (explicit single path).
        2. ``~/.config/gdrive_folder_sync/config.yml`` (XDG global)
        3. ``~/.config/gdrive_folder_sync/config.yaml`` (alternate extension)

    Only paths that exist on disk are returned.
    """
    candidates: list[Path] = []

    env_path = os.environ.get("GDRIVE_FOLDER_SYNC_CONFIG")
    if env_path:
        candidates.append(Path(env_path).expanduser().resolve())

    xdg_dir = Path.home() / ".config" / "gdrive_folder_sync"
    candidates.append(xdg_dir / "config.yml")
    candidates.append(xdg_dir / "config.yaml")

    return [p for p in candidates if p.exists()]


# ---------------------------------------------------------------------------
# 3. Loading
# ---------------------------------------------------------------------------


def load_global_config() -> dict[str, Any]:
    """Load the highest-precedence global config file.

    Env var interpolation is applied to all string values.

    Returns an empty dict when no config file exists (zero-config).

    Raises:
        yaml.YAMLError: If the file is not valid YAML.
    """
    paths = discover_config_files()

    if not paths:
        logger.debug("No global config file found, using defaults")
        return {}

    path = paths[0]
    logger.debug("Loading global config: %s", path)
    try:
        with open(path, encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except Exception:
        logger.exception("Failed to load config file %s", path)
        raise

    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning(
            "Config file %s has non-dict root (%s), ignoring it",
            path,
            type(data).__name__,
        )
        return {}

    return _interpolate_recursive(data)
