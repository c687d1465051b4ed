"""Remote store capability set and recursive tree listing.

``RemoteStore`` is the interface the engine consumes; ``DriveClient`` is
the production implementation and tests use an in-memory fake.  Methods
are blocking and exchange raw Drive file resources (dicts with ``id``,
``name``, ``mimeType``, ``modifiedTime``, ``parents``); the engine runs
them through ``run_sync`` and converts listings into tagged
``RemoteEntry`` variants here.
"""

from __future__ import annotations

import logging
from typing import Protocol

from ..core.async_utils import run_sync
from .models import RemoteEntry, RemoteFolder, parse_remote_entry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class RemoteStore(Protocol):
    """Operations the sync engine needs from the remote side."""

    def list_children(self, folder_id: str) -> list[dict]:
        """Return every direct child of *folder_id* (all pages)."""
        ...  # pragma: no cover

    def download(self, file_id: str) -> bytes:
        ...  # pragma: no cover

    def upload(self, name: str, content: bytes, parent_id: str) -> dict:
        """Create a file; returns at least ``id`` and ``modifiedTime``."""
        ...  # pragma: no cover

    def update(self, file_id: str, content: bytes) -> dict:
        """Replace file content; returns at least ``modifiedTime``."""
        ...  # pragma: no cover

    def create_folder(self, name: str, parent_id: str) -> dict:
        """Create a folder; returns at least ``id``."""
        ...  # pragma: no cover

    def find_folder(self, name: str, parent_id: str) -> dict | None:
        """Return an existing child folder named *name*, if any."""
        ...  # pragma: no cover

    def delete(self, file_id: str) -> None:
        """Delete a file.  Must treat "already absent" as success."""
        ...  # pragma: no cover


# ---------------------------------------------------------------------------
# Recursive listing
# ---------------------------------------------------------------------------


async def list_remote_tree(
    store: RemoteStore, root_id: str
) -> dict[str, RemoteEntry]:
    """List the whole tree under *root_id*.

    Uses an explicit worklist of ``(folder_id, prefix)`` pairs instead of
    recursion, so depth does not grow the call stack.

    Args:
        store: The remote store.
        root_id: ID of the remote root folder.

    Returns:
        Map of relative path (forward slashes) to entry.  Folders are
        included alongside files and native documents.
    """
    tree: dict[str, RemoteEntry] = {}
    worklist: list[tuple[str, str]] = [(root_id, "")]

    while worklist:
        folder_id, prefix = worklist.pop()
        children = await run_sync(store.list_children, folder_id)
        for raw in children:
            entry = parse_remote_entry(raw)
            path = f"{prefix}/{entry.name}" if prefix else entry.name
            if path in tree:
                logger.warning(
                    "Duplicate remote name %s (ids %s, %s), keeping the first",
                    path,
                    tree[path].id,
                    entry.id,
                )
                continue
            tree[path] = entry
            if isinstance(entry, RemoteFolder):
                worklist.append((entry.id, path))

    return tree
