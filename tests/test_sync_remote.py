"""Tests for remote entry parsing and recursive tree listing."""

from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from conftest import ROOT_ID, FakeDriveStore
from gdrive_folder_sync.sync.models import (
    FOLDER_MIME_TYPE,
    RemoteFile,
    RemoteFolder,
    RemoteNativeDocument,
    parse_drive_time,
    parse_remote_entry,
)
from gdrive_folder_sync.sync.remote import list_remote_tree


class TestParseDriveTime:
    """RFC 3339 -> epoch milliseconds."""

    def test_zulu_with_millis(self):
        assert parse_drive_time("1970-01-01T00:00:01.500Z") == 1500.0

    def test_offset(self):
        assert parse_drive_time("1970-01-01T01:00:00+01:00") == 0.0

    def test_exact_for_millisecond_values(self):
        assert parse_drive_time("2024-03-01T12:34:56.789Z") == 1_709_296_496_789


class TestParseRemoteEntry:
    """Raw Drive resource -> tagged variant."""

    def test_folder(self):
        entry = parse_remote_entry(
            {"id": "1", "name": "docs", "mimeType": FOLDER_MIME_TYPE}
        )
        assert entry == RemoteFolder(id="1", name="docs")
        assert entry.kind == "folder"

    def test_regular_file(self):
        entry = parse_remote_entry(
            {
                "id": "2",
                "name": "a.pdf",
                "mimeType": "application/pdf",
                "modifiedTime": "1970-01-01T00:00:02Z",
            }
        )
        assert isinstance(entry, RemoteFile)
        assert entry.modified_time == 2000.0

    @pytest.mark.parametrize(
        "mime_type",
        [
            "application/vnd.google-apps.document",
            "application/vnd.google-apps.spreadsheet",
            "application/vnd.google-apps.shortcut",
        ],
    )
    def test_native_documents(self, mime_type):
        entry = parse_remote_entry(
            {"id": "3", "name": "Doc", "mimeType": mime_type}
        )
        assert isinstance(entry, RemoteNativeDocument)
        assert entry.mime_type == mime_type

    def test_file_without_modified_time_is_rejected(self):
        with pytest.raises(KeyError):
            parse_remote_entry({"id": "4", "name": "x", "mimeType": "text/plain"})

    def test_entries_are_frozen(self):
        entry = RemoteFolder(id="1", name="docs")
        with pytest.raises(ValidationError):
            entry.name = "other"


class TestListRemoteTree:
    """Recursive listing via list_children."""

    async def test_empty_root(self, fake_store):
        assert await list_remote_tree(fake_store, ROOT_ID) == {}

    async def test_nested_tree(self, fake_store):
        docs = fake_store.add_folder("docs")
        deep = fake_store.add_folder("deep", parent_id=docs)
        fake_store.add_file("top.txt")
        fake_store.add_file("a.txt", parent_id=docs)
        fake_store.add_file("b.txt", parent_id=deep)

        tree = await list_remote_tree(fake_store, ROOT_ID)

        assert sorted(tree) == [
            "docs",
            "docs/a.txt",
            "docs/deep",
            "docs/deep/b.txt",
            "top.txt",
        ]
        assert isinstance(tree["docs/deep"], RemoteFolder)
        assert tree["docs/deep"].id == deep
        listed = {c[1] for c in fake_store.calls_to("list_children")}
        assert listed == {ROOT_ID, docs, deep}

    async def test_native_documents_are_listed_but_typed(self, fake_store):
        fake_store.add_file("Notes", mime_type="application/vnd.google-apps.document")

        tree = await list_remote_tree(fake_store, ROOT_ID)

        assert isinstance(tree["Notes"], RemoteNativeDocument)

    async def test_duplicate_names_keep_first(self, fake_store, caplog):
        first = fake_store.add_file("dup.txt", b"1")
        fake_store.add_file("dup.txt", b"2")

        with caplog.at_level(logging.WARNING):
            tree = await list_remote_tree(fake_store, ROOT_ID)

        assert tree["dup.txt"].id == first
        assert "Duplicate remote name dup.txt" in caplog.text

    async def test_deep_tree_does_not_recurse(self):
        store = FakeDriveStore()
        parent = ROOT_ID
        for depth in range(300):
            parent = store.add_folder(f"d{depth}", parent_id=parent)
        store.add_file("leaf.txt", parent_id=parent)

        tree = await list_remote_tree(store, ROOT_ID)

        leaf = "/".join(f"d{i}" for i in range(300)) + "/leaf.txt"
        assert leaf in tree
