"""Pydantic models for the sync engine.

Defines the core data contracts used across all sync modules:

- ``FileRecord``: Baseline of one tracked file at its last successful sync.
- ``ReplicaState``: The persisted state document (files + folders).
- ``RemoteFolder`` / ``RemoteFile`` / ``RemoteNativeDocument``: Tagged
  variants of a remote listing entry (``RemoteEntry``).
- ``Resolution``: Outcome of the conflict resolver for one file.
- ``SyncAction``: Enum of state transitions reported per path.
- ``SyncResult``: Outcome of syncing one path.
- ``SyncReport``: Aggregate results for one push or pull pass.

Timestamps are milliseconds since the Unix epoch (floats) on both sides.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
NATIVE_MIME_PREFIX = "application/vnd.google-apps."

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Resolution(str, Enum):
    """Decision for a remote file during a pull pass."""

    DOWNLOAD = "download"
    SKIP = "skip"
    LOCAL_WINS = "local_wins"


class SyncAction(str, Enum):
    """State transitions reported for a single path."""

    CREATE_REMOTE = "create_remote"
    UPDATE_REMOTE = "update_remote"
    DELETE_REMOTE = "delete_remote"
    DOWNLOAD = "download"
    SKIP = "skip"
    CONFLICT = "conflict"
    UNTRACK = "untrack"
    FORGET = "forget"


# ---------------------------------------------------------------------------
# Persisted state
# ---------------------------------------------------------------------------


class FileRecord(BaseModel):
    """Baseline of one tracked file.

    Attributes:
        remote_id: Drive file ID paired with the local path.
        local_mtime: Local mtime observed when the record was written.
        remote_mtime: Remote ``modifiedTime`` observed when the record was
            written.
    """

    remote_id: str
    local_mtime: float
    remote_mtime: float

    model_config = {"frozen": True}


class ReplicaState(BaseModel):
    """The persisted state document for one synced directory.

    Mutable on purpose: the engine updates it in place during a pass.

    Attributes:
        files: Relative path -> ``FileRecord``.
        folders: Relative directory path -> Drive folder ID.
    """

    files: dict[str, FileRecord] = Field(default_factory=dict)
    folders: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Remote listing entries
# ---------------------------------------------------------------------------


class RemoteFolder(BaseModel):
    """A Drive folder (container)."""

    kind: Literal["folder"] = "folder"
    id: str
    name: str

    model_config = {"frozen": True}


class RemoteFile(BaseModel):
    """A regular Drive file with downloadable binary content."""

    kind: Literal["file"] = "file"
    id: str
    name: str
    mime_type: str
    modified_time: float

    model_config = {"frozen": True}


class RemoteNativeDocument(BaseModel):
    """A Google Docs/Sheets/... item with no binary export; never synced."""

    kind: Literal["native"] = "native"
    id: str
    name: str
    mime_type: str

    model_config = {"frozen": True}


RemoteEntry = Annotated[
    Union[RemoteFolder, RemoteFile, RemoteNativeDocument],
    Field(discriminator="kind"),
]

_REMOTE_ENTRY_ADAPTER: TypeAdapter[RemoteEntry] = TypeAdapter(RemoteEntry)


def parse_drive_time(value: str) -> float:
    """Convert an RFC 3339 ``modifiedTime`` to epoch milliseconds."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    delta = datetime.fromisoformat(value) - _EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds / 1000


def parse_remote_entry(raw: dict) -> RemoteEntry:
    """Build the tagged variant for a raw Drive file resource."""
    mime_type = raw.get("mimeType", "")
    if mime_type == FOLDER_MIME_TYPE:
        data = {"kind": "folder", "id": raw["id"], "name": raw["name"]}
    elif mime_type.startswith(NATIVE_MIME_PREFIX):
        data = {
            "kind": "native",
            "id": raw["id"],
            "name": raw["name"],
            "mime_type": mime_type,
        }
    else:
        data = {
            "kind": "file",
            "id": raw["id"],
            "name": raw["name"],
            "mime_type": mime_type,
            "modified_time": parse_drive_time(raw["modifiedTime"]),
        }
    return _REMOTE_ENTRY_ADAPTER.validate_python(data)


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


class SyncResult(BaseModel):
    """Result of syncing one path.

    Attributes:
        relative_path: Path relative to the synced directory.
        action: Sync action that was performed.
        success: Whether the sync operation succeeded.
        error: Error message if the operation failed.
    """

    relative_path: str
    action: SyncAction
    success: bool = True
    error: str | None = None

    model_config = {"frozen": True}


class SyncReport(BaseModel):
    """Aggregate report for one push or pull pass.

    Attributes:
        pass_name: ``"push"`` or ``"pull"``.
        results: List of individual sync results.
        needs_push: Paths a pull pass handed back for pushing.
        started_at: ISO 8601 timestamp when the pass started.
        completed_at: ISO 8601 timestamp when the pass completed.
    """

    pass_name: str
    results: list[SyncResult] = []
    needs_push: list[str] = []
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    def _with(self, action: SyncAction) -> list[SyncResult]:
        return [r for r in self.results if r.action == action]

    @property
    def created_remote(self) -> list[SyncResult]:
        """Results where action is CREATE_REMOTE."""
        return self._with(SyncAction.CREATE_REMOTE)

    @property
    def updated_remote(self) -> list[SyncResult]:
        """Results where action is UPDATE_REMOTE."""
        return self._with(SyncAction.UPDATE_REMOTE)

    @property
    def deleted_remote(self) -> list[SyncResult]:
        """Results where action is DELETE_REMOTE."""
        return self._with(SyncAction.DELETE_REMOTE)

    @property
    def downloaded(self) -> list[SyncResult]:
        """Results where action is DOWNLOAD."""
        return self._with(SyncAction.DOWNLOAD)

    @property
    def skipped(self) -> list[SyncResult]:
        """Results where action is SKIP."""
        return self._with(SyncAction.SKIP)

    @property
    def conflicts(self) -> list[SyncResult]:
        """Results where the local side won a conflict."""
        return self._with(SyncAction.CONFLICT)

    @property
    def untracked(self) -> list[SyncResult]:
        """Results for paths that vanished remotely and must be re-pushed."""
        return self._with(SyncAction.UNTRACK)

    @property
    def forgotten(self) -> list[SyncResult]:
        """Results for stale records dropped because both sides are gone."""
        return self._with(SyncAction.FORGET)

    @property
    def errors(self) -> list[SyncResult]:
        """Results where success is False."""
        return [r for r in self.results if not r.success]
