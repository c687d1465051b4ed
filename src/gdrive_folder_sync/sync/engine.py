"""Core sync engine: push and pull reconciliation passes.

The ``SyncEngine`` owns the in-memory ``ReplicaState`` for one synced
directory and runs two kinds of pass against it:

* **push** -- propagate a batch of local paths to Drive (create, update
  or delete one remote file per path).
* **pull** -- list the whole remote tree, download what changed remotely,
  decide conflicts with ``resolver.decide`` and detect remote deletions.
  Paths where the local side must win are returned for a follow-up push.

Every pass holds one ``asyncio.Lock``, so debounce-triggered pushes and
poll-triggered pulls never interleave their state mutations.  State is
saved after every item that changes the baseline and once more at the end
of the pass, so a failure half-way through a batch keeps the work that
already reached Drive.

Error handling: remote errors and local read/write errors propagate and
abort the rest of the pass.  Failed remote deletes during push are logged
and the batch continues.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath

from ..config import Config, is_excluded, is_ignored_name
from ..core.async_utils import run_sync
from ..file_handler import (
    file_exists,
    is_directory,
    list_files_recursive,
    mtime_ms,
    read_file,
    to_absolute_path,
    to_relative_path,
    write_file,
)
from .folders import FolderPathResolver
from .models import (
    FileRecord,
    RemoteFile,
    RemoteFolder,
    Resolution,
    SyncAction,
    SyncReport,
    SyncResult,
    parse_drive_time,
)
from .remote import RemoteStore, list_remote_tree
from .reporter import summary_line
from .resolver import decide
from .state import StateStore

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SyncEngine:
    """Reconcile one local directory with one Drive folder.

    Args:
        store: Remote store (``DriveClient`` in production).
        config: Folder configuration (local path and Drive root ID).
        state_store: State persistence; defaults to the state document
            inside ``config.local_path``.
    """

    def __init__(
        self,
        store: RemoteStore,
        config: Config,
        state_store: StateStore | None = None,
    ) -> None:
        self.store = store
        self.config = config
        self.root = config.local_path
        self.root_id = config.gdrive_folder_id

        self.state_store = state_store or StateStore(config.state_path)
        self.state = self.state_store.load()
        self.folders = FolderPathResolver(store, self.root_id, self.state)

        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        """``True`` while a pass is running."""
        return self._lock.locked()

    # ------------------------------------------------------------------
    # Public passes (serialized)
    # ------------------------------------------------------------------

    async def push(self, paths: Iterable[Path]) -> SyncReport:
        """Push a batch of absolute local paths to Drive."""
        async with self._lock:
            return await self._push(list(paths))

    async def push_all(self) -> SyncReport:
        """Push every non-excluded file under the local root."""
        async with self._lock:
            files = list_files_recursive(self.root, is_ignored_name)
            if files:
                logger.info("[init] Pushing %d local files...", len(files))
            return await self._push(files)

    async def pull(self) -> SyncReport:
        """Pull remote changes.

        The returned report's ``needs_push`` lists paths the caller must
        push to complete the cycle; ``sync()`` does both under one lock.
        """
        async with self._lock:
            return await self._pull()

    async def sync(self) -> tuple[SyncReport, SyncReport | None]:
        """Pull, then push whatever the pull handed back.

        Returns:
            ``(pull_report, push_report)``; ``push_report`` is ``None``
            when nothing needed pushing.
        """
        async with self._lock:
            pull_report = await self._pull()
            if not pull_report.needs_push:
                return pull_report, None
            logger.info(
                "[pull] Pushing %d locally-newer files...",
                len(pull_report.needs_push),
            )
            paths = [
                to_absolute_path(self.root, rel)
                for rel in pull_report.needs_push
            ]
            push_report = await self._push(paths)
            return pull_report, push_report

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------

    async def _push(self, paths: list[Path]) -> SyncReport:
        started_at = _now()
        results: list[SyncResult] = []

        for abs_path in paths:
            try:
                relative_path = to_relative_path(self.root, abs_path)
            except ValueError:
                logger.warning("[push] Ignoring path outside %s: %s", self.root, abs_path)
                continue

            if is_excluded(relative_path):
                continue

            if not file_exists(abs_path):
                result = await self._handle_local_delete(relative_path)
                if result is not None:
                    results.append(result)
                continue

            if is_directory(abs_path):
                # Folders are created on demand when a file needs them.
                continue

            content = read_file(abs_path)
            local_mtime = mtime_ms(abs_path)

            existing = StateStore.get_record(self.state, relative_path)
            if existing is not None:
                updated = await run_sync(
                    self.store.update, existing.remote_id, content
                )
                record = FileRecord(
                    remote_id=existing.remote_id,
                    local_mtime=local_mtime,
                    remote_mtime=parse_drive_time(updated["modifiedTime"]),
                )
                action = SyncAction.UPDATE_REMOTE
                logger.info("[push] Updated: %s", relative_path)
            else:
                rel = PurePosixPath(relative_path)
                parent_id = await self.folders.resolve(rel.parent.as_posix())
                created = await run_sync(
                    self.store.upload, rel.name, content, parent_id
                )
                record = FileRecord(
                    remote_id=created["id"],
                    local_mtime=local_mtime,
                    remote_mtime=parse_drive_time(created["modifiedTime"]),
                )
                action = SyncAction.CREATE_REMOTE
                logger.info("[push] Created: %s", relative_path)

            StateStore.set_record(self.state, relative_path, record)
            self._persist()
            results.append(
                SyncResult(relative_path=relative_path, action=action)
            )

        self._persist()
        report = SyncReport(
            pass_name="push",
            results=results,
            started_at=started_at,
            completed_at=_now(),
        )
        if results:
            logger.info(summary_line(report))
        return report

    async def _handle_local_delete(
        self, relative_path: str
    ) -> SyncResult | None:
        """Delete the remote copy of a locally deleted, tracked file."""
        existing = StateStore.get_record(self.state, relative_path)
        if existing is None:
            return None

        try:
            await run_sync(self.store.delete, existing.remote_id)
            logger.info("[push] Deleted: %s", relative_path)
            result = SyncResult(
                relative_path=relative_path,
                action=SyncAction.DELETE_REMOTE,
            )
        except Exception as exc:
            logger.error(
                "[push] Failed to delete %s: %s", relative_path, exc
            )
            result = SyncResult(
                relative_path=relative_path,
                action=SyncAction.DELETE_REMOTE,
                success=False,
                error=str(exc),
            )

        StateStore.remove_record(self.state, relative_path)
        self._persist()
        return result

    # ------------------------------------------------------------------
    # Pull
    # ------------------------------------------------------------------

    async def _pull(self) -> SyncReport:
        started_at = _now()
        logger.info("[pull] Checking for remote changes...")

        tree = await list_remote_tree(self.store, self.root_id)

        for relative_path, entry in tree.items():
            if isinstance(entry, RemoteFolder) and not is_excluded(relative_path):
                self.state.folders[relative_path] = entry.id

        results: list[SyncResult] = []
        needs_push: list[str] = []

        for relative_path in sorted(tree):
            entry = tree[relative_path]
            if not isinstance(entry, RemoteFile):
                continue
            if is_excluded(relative_path):
                continue

            result = await self._pull_file(relative_path, entry)
            if result is None:
                continue
            results.append(result)
            if result.action == SyncAction.CONFLICT:
                needs_push.append(relative_path)

        # Remote deletions, judged against the listing taken above.
        remote_files = {
            path
            for path, entry in tree.items()
            if not isinstance(entry, RemoteFolder)
        }
        for relative_path in sorted(self.state.files):
            if relative_path in remote_files:
                continue
            local_path = to_absolute_path(self.root, relative_path)
            try:
                still_local = file_exists(local_path)
            except OSError as exc:
                logger.error(
                    "[pull] Cannot check %s: %s", relative_path, exc
                )
                continue

            StateStore.remove_record(self.state, relative_path)
            if still_local:
                needs_push.append(relative_path)
                action = SyncAction.UNTRACK
                logger.info(
                    "[pull] Missing remotely, will re-upload: %s",
                    relative_path,
                )
            else:
                action = SyncAction.FORGET
                logger.info(
                    "[pull] Gone on both sides, forgetting: %s",
                    relative_path,
                )
            results.append(
                SyncResult(relative_path=relative_path, action=action)
            )

        self._persist()
        report = SyncReport(
            pass_name="pull",
            results=results,
            needs_push=needs_push,
            started_at=started_at,
            completed_at=_now(),
        )
        logger.info(summary_line(report))
        logger.info("[pull] Done")
        return report

    async def _pull_file(
        self, relative_path: str, entry: RemoteFile
    ) -> SyncResult | None:
        """Apply the resolver's decision for one remote file."""
        local_path = to_absolute_path(self.root, relative_path)
        if is_directory(local_path):
            logger.warning(
                "[pull] Skipping %s: a local directory has the same name",
                relative_path,
            )
            return None
        blocker = self._file_in_the_way(relative_path)
        if blocker is not None:
            logger.warning(
                "[pull] Skipping %s: local file %s is where a folder should be",
                relative_path,
                blocker,
            )
            return None

        local_exists = file_exists(local_path)
        local_mtime = mtime_ms(local_path) if local_exists else None
        tracked = StateStore.get_record(self.state, relative_path)

        resolution = decide(
            tracked, local_exists, local_mtime, entry.modified_time
        )

        if resolution == Resolution.DOWNLOAD:
            content = await run_sync(self.store.download, entry.id)
            write_file(local_path, content)
            record = FileRecord(
                remote_id=entry.id,
                local_mtime=mtime_ms(local_path),
                remote_mtime=entry.modified_time,
            )
            StateStore.set_record(self.state, relative_path, record)
            self._persist()
            logger.info("[pull] Downloaded: %s", relative_path)
            return SyncResult(
                relative_path=relative_path, action=SyncAction.DOWNLOAD
            )

        if resolution == Resolution.LOCAL_WINS:
            # Point the record at the current remote object so the
            # follow-up push updates it instead of creating a duplicate.
            record = FileRecord(
                remote_id=entry.id,
                local_mtime=tracked.local_mtime if tracked else 0.0,
                remote_mtime=entry.modified_time,
            )
            StateStore.set_record(self.state, relative_path, record)
            self._persist()
            logger.info("[pull] Conflict, local wins: %s", relative_path)
            return SyncResult(
                relative_path=relative_path, action=SyncAction.CONFLICT
            )

        logger.debug("[pull] Unchanged: %s", relative_path)
        return SyncResult(
            relative_path=relative_path, action=SyncAction.SKIP
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _persist(self) -> None:
        self.state_store.save(self.state)

    def _file_in_the_way(self, relative_path: str) -> str | None:
        """Return the first ancestor of *relative_path* that is a local file."""
        for parent in reversed(PurePosixPath(relative_path).parents[:-1]):
            local_parent = to_absolute_path(self.root, parent.as_posix())
            if file_exists(local_parent) and not is_directory(local_parent):
                return parent.as_posix()
        return None
