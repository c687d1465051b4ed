"""Two-way sync between a local directory and a Google Drive folder.

Architecture
------------
Reconciliation is **baseline-based**: every tracked file remembers the
local and remote mtimes seen at its last successful sync, so a pull can
tell "only the remote changed" from "both sides changed".  The local side
wins ties.

Modules:

- ``engine``    -- ``SyncEngine``: push and pull passes, serialized.
- ``state``     -- ``StateStore``: load/save the JSON replica state.
- ``models``    -- ``FileRecord``, ``ReplicaState``, remote entry
  variants, ``SyncAction``, ``SyncResult``, ``SyncReport``.
- ``resolver``  -- ``decide()``: pure three-way conflict decision.
- ``folders``   -- ``FolderPathResolver``: directory path -> folder ID.
- ``remote``    -- ``RemoteStore`` protocol and recursive listing.
- ``scheduler`` -- ``ChangeAggregator`` (debounce), ``PollScheduler``.
- ``watcher``   -- watchdog-based local change notification.
- ``reporter``  -- Human-readable and JSON report formatting.

Usage example
-------------
::

    from gdrive_folder_sync.config import load_config
    from gdrive_folder_sync.core import DriveClient
    from gdrive_folder_sync.sync import SyncEngine, format_sync_report

    config = load_config(Path("~/Sync/.gdrive-folder-sync.json").expanduser())
    engine = SyncEngine(DriveClient(config), config)

    pull_report, push_report = await engine.sync()
    print(format_sync_report(pull_report))
"""

from .engine import SyncEngine
from .folders import FolderPathResolver
from .models import (
    FileRecord,
    ReplicaState,
    Resolution,
    SyncAction,
    SyncReport,
    SyncResult,
)
from .remote import RemoteStore, list_remote_tree
from .reporter import format_sync_report, report_to_json, summary_line
from .resolver import decide
from .scheduler import ChangeAggregator, PollScheduler
from .state import StateStore
from .watcher import LocalWatcher

__all__ = [
    "ChangeAggregator",
    "FileRecord",
    "FolderPathResolver",
    "LocalWatcher",
    "PollScheduler",
    "RemoteStore",
    "ReplicaState",
    "Resolution",
    "StateStore",
    "SyncAction",
    "SyncEngine",
    "SyncReport",
    "SyncResult",
    "decide",
    "format_sync_report",
    "list_remote_tree",
    "report_to_json",
    "summary_line",
]
