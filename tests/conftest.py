"""Shared pytest fixtures for gdrive-folder-sync tests."""

from __future__ import annotations

import itertools
import os
from datetime import datetime, timezone
from pathlib import Path

import pytest

from gdrive_folder_sync.config import Config
from gdrive_folder_sync.core.errors import NotFoundError
from gdrive_folder_sync.sync.models import FOLDER_MIME_TYPE

ROOT_ID = "root-id"

# Fixed start for the fake server clock (2023-11-14T22:13:20Z).
FAKE_CLOCK_START_MS = 1_700_000_000_000


def drive_time(ms: float) -> str:
    """Format epoch milliseconds the way Drive reports ``modifiedTime``."""
    dt = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def set_mtime(path: Path, ms: float) -> None:
    """Set both atime and mtime of *path* to *ms* milliseconds."""
    ns = round(ms * 1000) * 1000
    os.utime(path, ns=(ns, ns))


class FakeDriveStore:
    """In-memory remote store with Drive-shaped resources.

    Every protocol method call is appended to ``calls`` as
    ``(method, *args)`` (content bytes are left out).  Setup helpers
    (``add_file``, ``add_folder``, ``edit_remote``, ``remove``) are not
    recorded.  Each mutation advances the server clock by one second.
    """

    def __init__(self, root_id: str = ROOT_ID) -> None:
        self.root_id = root_id
        self.items: dict[str, dict] = {}
        self.contents: dict[str, bytes] = {}
        self.calls: list[tuple] = []
        self.fail_on: dict[str, Exception] = {}
        self._ids = itertools.count(1)
        self._clock_ms = FAKE_CLOCK_START_MS

    # -- helpers --------------------------------------------------------

    def _tick(self) -> str:
        self._clock_ms += 1000
        return drive_time(self._clock_ms)

    def _new_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    def _maybe_fail(self, method: str) -> None:
        exc = self.fail_on.get(method)
        if exc is not None:
            raise exc

    def add_folder(self, name: str, parent_id: str | None = None) -> str:
        folder_id = self._new_id("folder")
        self.items[folder_id] = {
            "id": folder_id,
            "name": name,
            "mimeType": FOLDER_MIME_TYPE,
            "modifiedTime": self._tick(),
            "parents": [parent_id or self.root_id],
        }
        return folder_id

    def add_file(
        self,
        name: str,
        content: bytes = b"",
        parent_id: str | None = None,
        mime_type: str = "text/plain",
        modified_ms: float | None = None,
    ) -> str:
        file_id = self._new_id("file")
        modified = (
            drive_time(modified_ms) if modified_ms is not None else self._tick()
        )
        self.items[file_id] = {
            "id": file_id,
            "name": name,
            "mimeType": mime_type,
            "modifiedTime": modified,
            "parents": [parent_id or self.root_id],
        }
        self.contents[file_id] = content
        return file_id

    def edit_remote(
        self, file_id: str, content: bytes, modified_ms: float | None = None
    ) -> None:
        self.contents[file_id] = content
        self.items[file_id]["modifiedTime"] = (
            drive_time(modified_ms) if modified_ms is not None else self._tick()
        )

    def remove(self, item_id: str) -> None:
        self.items.pop(item_id, None)
        self.contents.pop(item_id, None)

    def children_named(self, name: str, parent_id: str | None = None) -> list[dict]:
        parent_id = parent_id or self.root_id
        return [
            item
            for item in self.items.values()
            if item["name"] == name and item["parents"] == [parent_id]
        ]

    def calls_to(self, method: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == method]

    # -- RemoteStore protocol -------------------------------------------

    def list_children(self, folder_id: str) -> list[dict]:
        self.calls.append(("list_children", folder_id))
        self._maybe_fail("list_children")
        return [
            dict(item)
            for item in self.items.values()
            if item["parents"] == [folder_id]
        ]

    def download(self, file_id: str) -> bytes:
        self.calls.append(("download", file_id))
        self._maybe_fail("download")
        if file_id not in self.contents:
            raise NotFoundError(f"Drive download error 404: {file_id}", status=404)
        return self.contents[file_id]

    def upload(self, name: str, content: bytes, parent_id: str) -> dict:
        self.calls.append(("upload", name, parent_id))
        self._maybe_fail("upload")
        file_id = self.add_file(name, content, parent_id)
        return dict(self.items[file_id])

    def update(self, file_id: str, content: bytes) -> dict:
        self.calls.append(("update", file_id))
        self._maybe_fail("update")
        if file_id not in self.items:
            raise NotFoundError(f"Drive update error 404: {file_id}", status=404)
        self.edit_remote(file_id, content)
        return dict(self.items[file_id])

    def create_folder(self, name: str, parent_id: str) -> dict:
        self.calls.append(("create_folder", name, parent_id))
        self._maybe_fail("create_folder")
        folder_id = self.add_folder(name, parent_id)
        return dict(self.items[folder_id])

    def find_folder(self, name: str, parent_id: str) -> dict | None:
        self.calls.append(("find_folder", name, parent_id))
        self._maybe_fail("find_folder")
        for item in self.children_named(name, parent_id):
            if item["mimeType"] == FOLDER_MIME_TYPE:
                return dict(item)
        return None

    def delete(self, file_id: str) -> None:
        self.calls.append(("delete", file_id))
        self._maybe_fail("delete")
        self.remove(file_id)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch, tmp_path):
    """Keep user config and credentials out of every test."""
    for var in (
        "GOOGLE_CLIENT_ID",
        "GOOGLE_CLIENT_SECRET",
        "GDRIVE_FOLDER_SYNC_CONFIG",
        "LOG_LEVEL",
        "LOG_FILE",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


@pytest.fixture
def sync_root(tmp_path) -> Path:
    """Empty local directory to sync."""
    root = tmp_path / "local"
    root.mkdir()
    return root


@pytest.fixture
def sync_config(sync_root, tmp_path) -> Config:
    """Config pointing at ``sync_root`` and the fake remote root."""
    return Config(
        local_path=sync_root,
        gdrive_folder_id=ROOT_ID,
        token_file=tmp_path / "tokens.json",
        client_id="client-id",
        client_secret="client-secret",
    )


@pytest.fixture
def fake_store() -> FakeDriveStore:
    return FakeDriveStore()


@pytest.fixture
def engine(fake_store, sync_config):
    """SyncEngine wired to the fake store."""
    from gdrive_folder_sync.sync.engine import SyncEngine

    return SyncEngine(fake_store, sync_config)
