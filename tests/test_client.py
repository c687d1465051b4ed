"""Tests for DriveClient request handling and the remote store calls."""

from __future__ import annotations

import json
import threading
from unittest.mock import MagicMock, Mock, patch

import pytest

from gdrive_folder_sync.core.auth import TokenManager
from gdrive_folder_sync.core.client import DRIVE_API, UPLOAD_API, DriveClient
from gdrive_folder_sync.core.errors import (
    AuthenticationError,
    DriveError,
    NotFoundError,
)
from gdrive_folder_sync.sync.models import FOLDER_MIME_TYPE


def _response(status: int = 200, payload: dict | None = None, content: bytes = b""):
    response = Mock()
    response.status_code = status
    response.ok = 200 <= status < 400
    response.json.return_value = payload or {}
    response.content = content
    response.text = json.dumps(payload) if payload else ""
    return response


@pytest.fixture
def tokens():
    manager = MagicMock(spec=TokenManager)
    manager.get_token.return_value = "tok-1"
    manager.refresh.return_value = "tok-2"
    return manager


@pytest.fixture
def client(sync_config, tokens):
    return DriveClient(sync_config, tokens=tokens)


@pytest.fixture
def session_request():
    with patch("gdrive_folder_sync.core.client.requests.Session.request") as mock:
        yield mock


class TestRequest:
    """Authorisation, refresh and error mapping."""

    def test_bearer_header_and_timeout(self, client, session_request):
        session_request.return_value = _response(payload={"user": {}})

        client.validate_connection()

        kwargs = session_request.call_args.kwargs
        assert kwargs["headers"]["Authorization"] == "Bearer tok-1"
        assert kwargs["timeout"] == (10, 60)

    def test_401_refreshes_once_and_retries(self, client, tokens, session_request):
        session_request.side_effect = [
            _response(401),
            _response(payload={"user": {"emailAddress": "me@example.com"}}),
        ]

        assert client.validate_connection() == "me@example.com"

        tokens.refresh.assert_called_once_with(stale_token="tok-1")
        second = session_request.call_args_list[1].kwargs
        assert second["headers"]["Authorization"] == "Bearer tok-2"

    def test_second_401_raises_authentication_error(self, client, session_request):
        session_request.side_effect = [_response(401), _response(401)]

        with pytest.raises(AuthenticationError):
            client.validate_connection()

    def test_refresh_failure_propagates(self, client, tokens, session_request):
        session_request.return_value = _response(401)
        tokens.refresh.side_effect = AuthenticationError("no refresh token")

        with pytest.raises(AuthenticationError, match="no refresh token"):
            client.validate_connection()

    def test_server_error_maps_to_drive_error(self, client, session_request):
        session_request.return_value = _response(500, {"error": "boom"})

        with pytest.raises(DriveError) as exc_info:
            client.download("f1")

        assert exc_info.value.status == 500
        assert not isinstance(exc_info.value, NotFoundError)
        assert "Drive download error 500" in str(exc_info.value)

    def test_sessions_are_per_thread(self, client):
        sessions = []
        thread = threading.Thread(target=lambda: sessions.append(client.session))
        thread.start()
        thread.join()

        assert client.session is client.session
        assert sessions[0] is not client.session


class TestRemoteCalls:
    """Each remote store operation."""

    def test_list_children_follows_pages(self, client, session_request):
        session_request.side_effect = [
            _response(payload={"files": [{"id": "1"}], "nextPageToken": "p2"}),
            _response(payload={"files": [{"id": "2"}]}),
        ]

        files = client.list_children("root")

        assert [f["id"] for f in files] == ["1", "2"]
        first, second = session_request.call_args_list
        assert first.kwargs["params"]["q"] == "'root' in parents and trashed = false"
        assert "pageToken" not in first.kwargs["params"]
        assert second.kwargs["params"]["pageToken"] == "p2"

    def test_download_returns_bytes(self, client, session_request):
        session_request.return_value = _response(content=b"\x00\x01")

        assert client.download("f1") == b"\x00\x01"
        args, kwargs = session_request.call_args
        assert args == ("GET", f"{DRIVE_API}/files/f1")
        assert kwargs["params"] == {"alt": "media"}

    def test_upload_sends_multipart_body(self, client, session_request):
        session_request.return_value = _response(
            payload={"id": "new", "modifiedTime": "2024-01-01T00:00:00.000Z"}
        )

        created = client.upload("a.bin", b"\xffpayload", "parent-1")

        assert created["id"] == "new"
        args, kwargs = session_request.call_args
        assert args == ("POST", f"{UPLOAD_API}/files")
        assert kwargs["params"]["uploadType"] == "multipart"
        assert kwargs["headers"]["Content-Type"].startswith("multipart/related")
        body = kwargs["data"]
        assert b'"parents": ["parent-1"]' in body
        assert b"\xffpayload" in body

    def test_update_patches_media(self, client, session_request):
        session_request.return_value = _response(
            payload={"id": "f1", "modifiedTime": "2024-01-01T00:00:00.000Z"}
        )

        client.update("f1", b"new")

        args, kwargs = session_request.call_args
        assert args == ("PATCH", f"{UPLOAD_API}/files/f1")
        assert kwargs["params"]["uploadType"] == "media"
        assert kwargs["data"] == b"new"

    def test_create_folder(self, client, session_request):
        session_request.return_value = _response(payload={"id": "d1"})

        assert client.create_folder("docs", "root")["id"] == "d1"
        body = session_request.call_args.kwargs["json"]
        assert body == {
            "name": "docs",
            "mimeType": FOLDER_MIME_TYPE,
            "parents": ["root"],
        }

    def test_find_folder_hit_and_miss(self, client, session_request):
        session_request.side_effect = [
            _response(payload={"files": [{"id": "d1"}]}),
            _response(payload={"files": []}),
        ]

        assert client.find_folder("docs", "root") == {"id": "d1"}
        assert client.find_folder("docs", "root") is None

    def test_find_folder_escapes_quotes(self, client, session_request):
        session_request.return_value = _response(payload={"files": []})

        client.find_folder("it's", "root")

        query = session_request.call_args.kwargs["params"]["q"]
        assert "name = 'it\\'s'" in query
        assert f"mimeType = '{FOLDER_MIME_TYPE}'" in query

    def test_delete_ignores_not_found(self, client, session_request):
        session_request.return_value = _response(404)

        client.delete("gone")

    def test_delete_raises_other_errors(self, client, session_request):
        session_request.return_value = _response(403)

        with pytest.raises(DriveError):
            client.delete("f1")
