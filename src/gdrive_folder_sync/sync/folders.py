"""Map local directory paths to Drive folder IDs.

Folders are resolved lazily, only when a new file needs a destination.
Each path segment is looked up in the cached ``ReplicaState.folders``
first, then on Drive (so a lost state file or an interrupted earlier run
never produces a duplicate folder), and only then created.
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath

from ..core.async_utils import run_sync
from .models import ReplicaState
from .remote import RemoteStore

logger = logging.getLogger(__name__)


class FolderPathResolver:
    """Resolve relative directory paths to Drive folder IDs.

    Args:
        store: The remote store.
        root_id: Drive folder ID of the sync root.
        state: The engine's replica state; ``state.folders`` is read and
            updated in place.
    """

    def __init__(
        self, store: RemoteStore, root_id: str, state: ReplicaState
    ) -> None:
        self.store = store
        self.root_id = root_id
        self.state = state

    async def resolve(self, relative_dir: str) -> str:
        """Return the folder ID for *relative_dir*, creating folders as needed.

        Args:
            relative_dir: Directory path relative to the sync root, with
                forward slashes.  ``""`` or ``"."`` is the root itself.

        Returns:
            Drive ID of the innermost folder.
        """
        parent_id = self.root_id
        if relative_dir in ("", "."):
            return parent_id

        current = ""
        for part in PurePosixPath(relative_dir).parts:
            current = f"{current}/{part}" if current else part

            cached = self.state.folders.get(current)
            if cached:
                parent_id = cached
                continue

            found = await run_sync(self.store.find_folder, part, parent_id)
            if found is not None:
                folder_id = found["id"]
                logger.info("[push] Found existing folder: %s", current)
            else:
                created = await run_sync(
                    self.store.create_folder, part, parent_id
                )
                folder_id = created["id"]
                logger.info("[push] Created folder: %s", current)

            self.state.folders[current] = folder_id
            parent_id = folder_id

        return parent_id
