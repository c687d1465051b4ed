"""Configuration schema for gdrive_folder_sync.

Defines Pydantic models for the two configuration documents:

- ``SyncConfigFile``: the per-folder ``.gdrive-folder-sync.json`` document.
  Accepts the camelCase keys written by earlier releases as well as
  snake_case names.
- ``GlobalConfig``: the optional user-wide YAML defaults file, with
  ``drive`` and ``logging`` sections.

Usage:
    from gdrive_folder_sync.config_schema import (
        SyncConfigFile, build_global_config,
    )

    raw = load_global_config()
    defaults = build_global_config(raw)
    folder = SyncConfigFile.model_validate(json.loads(text))
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Per-folder document
# ---------------------------------------------------------------------------


class SyncConfigFile(BaseModel):
    """Contents of the per-folder JSON config file.

    ``local_path`` may be omitted, in which case the directory holding the
    config file is synced.
    """

    local_path: str | None = Field(
        default=None,
        alias="localPath",
        description="Local directory to sync",
    )
    gdrive_folder_id: str = Field(
        alias="gdriveFolderId",
        min_length=1,
        description="ID of the Drive folder used as the remote root",
    )
    token_file: str | None = Field(
        default=None,
        alias="tokenFile",
        description="Path to the OAuth token JSON file",
    )
    client_id: str | None = Field(default=None, alias="clientId")
    client_secret: str | None = Field(default=None, alias="clientSecret")
    debounce_seconds: float | None = Field(
        default=None,
        gt=0,
        alias="debounceSeconds",
        description="Quiet period before a burst of local changes is pushed",
    )
    poll_interval_seconds: float | None = Field(
        default=None,
        gt=0,
        alias="pollIntervalSeconds",
        description="Interval between remote polls",
    )

    model_config = {"frozen": True, "populate_by_name": True}


# ---------------------------------------------------------------------------
# Global YAML defaults
# ---------------------------------------------------------------------------


class DriveConfig(BaseModel):
    """Google Drive credentials shared by every synced folder.

    All fields are optional; the per-folder file and environment
    variables can supply them instead.
    """

    client_id: str | None = Field(
        default=None, description="OAuth client ID"
    )
    client_secret: str | None = Field(
        default=None, description="OAuth client secret"
    )
    token_file: str | None = Field(
        default=None, description="OAuth token file path"
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


class GlobalConfig(BaseModel):
    """Top-level user-wide configuration.

    Every section has defaults, so ``GlobalConfig()`` is always valid.
    """

    drive: DriveConfig = Field(default_factory=DriveConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


def build_global_config(raw_data: dict) -> GlobalConfig:
    """Construct a ``GlobalConfig`` from the raw dict returned by
    ``load_global_config()``.

    Args:
        raw_data: Parsed YAML mapping (possibly empty).

    Returns:
        Validated ``GlobalConfig`` instance.
    """
    if not raw_data:
        return GlobalConfig()

    return GlobalConfig(**raw_data)
