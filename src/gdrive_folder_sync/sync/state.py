"""Replica state persistence layer.

Manages the JSON state document stored inside the synced directory
(``.gdrive-folder-sync-state.json``).  The document records, per relative
path, the Drive file ID and the mtime pair observed at the last successful
sync, plus the Drive folder ID of every known directory.

Key design choices:

* **Atomic writes** -- ``save()`` writes to a temp file then calls
  ``os.replace()`` so readers never see partial data.
* **Forgiving loads** -- a missing, unreadable or malformed document is
  treated as "no state", never as an error.
* **Single writer** -- only ``StateStore`` touches the file; the engine
  mutates the in-memory ``ReplicaState`` and asks the store to persist it.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from .models import FileRecord, ReplicaState

logger = logging.getLogger(__name__)


class StateStore:
    """Load and save the replica state for one synced directory.

    Args:
        state_path: Path to the state document.
    """

    def __init__(self, state_path: Path) -> None:
        self._state_path = state_path

    @property
    def path(self) -> Path:
        return self._state_path

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> ReplicaState:
        """Load replica state from disk.

        Returns:
            The persisted state, or an empty ``ReplicaState`` when the
            document is missing or cannot be parsed.
        """
        try:
            with open(self._state_path, encoding="utf-8") as fh:
                raw = json.load(fh)
        except FileNotFoundError:
            return ReplicaState()
        except (OSError, ValueError) as exc:
            logger.warning(
                "Ignoring unreadable state file %s: %s",
                self._state_path,
                exc,
            )
            return ReplicaState()

        try:
            return ReplicaState.model_validate(raw)
        except ValidationError as exc:
            logger.warning(
                "Ignoring malformed state file %s: %s",
                self._state_path,
                exc.error_count(),
            )
            return ReplicaState()

    def save(self, state: ReplicaState) -> None:
        """Persist replica state to disk atomically.

        Writes to a temporary file in the same directory then atomically
        replaces the target.

        Args:
            state: The state to persist (full overwrite).
        """
        directory = self._state_path.parent
        fd, tmp_path = tempfile.mkstemp(
            dir=str(directory),
            prefix=f"{self._state_path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(state.model_dump(mode="json"), fh, indent=2)
            os.replace(tmp_path, self._state_path)
        except BaseException:
            # Clean up temp file on any failure.
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    # ------------------------------------------------------------------
    # Entry helpers
    # ------------------------------------------------------------------

    @staticmethod
    def get_record(
        state: ReplicaState, relative_path: str
    ) -> FileRecord | None:
        """Return the record for *relative_path*, or ``None`` if untracked."""
        return state.files.get(relative_path)

    @staticmethod
    def set_record(
        state: ReplicaState, relative_path: str, record: FileRecord
    ) -> None:
        """Upsert *record* under *relative_path*.  Mutates *state* in place."""
        state.files[relative_path] = record

    @staticmethod
    def remove_record(state: ReplicaState, relative_path: str) -> None:
        """Remove *relative_path* from ``state.files``.  No-op if absent."""
        state.files.pop(relative_path, None)
