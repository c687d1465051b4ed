import json
import logging
import threading
from typing import Any

import requests

from ..config import Config
from ..sync.models import FOLDER_MIME_TYPE
from .auth import TokenManager
from .errors import NotFoundError, error_from_response

logger = logging.getLogger(__name__)

DRIVE_API = "https://www.googleapis.com/drive/v3"
UPLOAD_API = "https://www.googleapis.com/upload/drive/v3"

FILE_FIELDS = "id, name, mimeType, modifiedTime, parents"
_UPLOAD_FIELDS = "id,name,mimeType,modifiedTime,parents"
_BOUNDARY = "-------314159265358979323846"


def _quote(value: str) -> str:
    """Escape a string literal for a Drive ``q`` query."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


class DriveClient:
    """Blocking Google Drive v3 client implementing the remote store calls.

    All methods return the raw Drive file resources (dicts with ``id``,
    ``name``, ``mimeType``, ``modifiedTime`` and ``parents``).  Bearer tokens
    are attached transparently; a 401 triggers one refresh and retry.
    """

    def __init__(
        self, config: Config, tokens: TokenManager | None = None
    ):
        self.config = config
        self.tokens = tokens or TokenManager(
            config.token_file, config.client_id, config.client_secret
        )
        self._thread_local = threading.local()

    @property
    def session(self) -> requests.Session:
        """Accessor for the current thread's session."""
        return self._get_session()

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            self._thread_local.session = requests.Session()
        return self._thread_local.session

    def _request(
        self, method: str, url: str, action: str, **kwargs: Any
    ) -> requests.Response:
        """
        Send an authorised request, refreshing the token once on 401.
        """
        session = self._get_session()
        headers = dict(kwargs.pop("headers", {}) or {})
        kwargs.setdefault("timeout", (10, 60))

        token = self.tokens.get_token()
        headers["Authorization"] = f"Bearer {token}"
        response = session.request(method, url, headers=headers, **kwargs)

        if response.status_code == 401:
            logger.debug("Access token rejected, refreshing")
            token = self.tokens.refresh(stale_token=token)
            headers["Authorization"] = f"Bearer {token}"
            response = session.request(
                method, url, headers=headers, **kwargs
            )

        if not response.ok:
            raise error_from_response(response, action)
        return response

    def validate_connection(self) -> str:
        """
        Validate credentials by fetching the ``about`` resource.
        Returns the account's email address (or display name).
        """
        response = self._request(
            "GET",
            f"{DRIVE_API}/about",
            "about",
            params={"fields": "user"},
        )
        user = response.json().get("user", {})
        return user.get("emailAddress") or user.get("displayName") or ""

    def list_children(self, folder_id: str) -> list[dict]:
        """
        List non-trashed direct children of a folder, following pagination.
        """
        files: list[dict] = []
        page_token: str | None = None

        while True:
            params = {
                "q": f"'{_quote(folder_id)}' in parents and trashed = false",
                "fields": f"nextPageToken, files({FILE_FIELDS})",
                "pageSize": "1000",
            }
            if page_token:
                params["pageToken"] = page_token

            result = self._request(
                "GET", f"{DRIVE_API}/files", "list", params=params
            ).json()
            files.extend(result.get("files", []))
            page_token = result.get("nextPageToken")
            if not page_token:
                break

        return files

    def download(self, file_id: str) -> bytes:
        """
        Download the binary content of a file.
        """
        response = self._request(
            "GET",
            f"{DRIVE_API}/files/{file_id}",
            "download",
            params={"alt": "media"},
        )
        return response.content

    def upload(self, name: str, content: bytes, parent_id: str) -> dict:
        """
        Create a new file under *parent_id* with a multipart upload.

        Returns:
            The created file resource, including ``id`` and ``modifiedTime``.
        """
        metadata = {"name": name, "parents": [parent_id]}
        body = b"".join(
            [
                (
                    f"--{_BOUNDARY}\r\n"
                    "Content-Type: application/json; charset=UTF-8\r\n\r\n"
                    f"{json.dumps(metadata)}\r\n"
                    f"--{_BOUNDARY}\r\n"
                    "Content-Type: application/octet-stream\r\n\r\n"
                ).encode("utf-8"),
                content,
                f"\r\n--{_BOUNDARY}--".encode("utf-8"),
            ]
        )
        response = self._request(
            "POST",
            f"{UPLOAD_API}/files",
            "upload",
            params={"uploadType": "multipart", "fields": _UPLOAD_FIELDS},
            headers={
                "Content-Type": f"multipart/related; boundary={_BOUNDARY}"
            },
            data=body,
        )
        return response.json()

    def update(self, file_id: str, content: bytes) -> dict:
        """
        Replace the content of an existing file.

        Returns:
            The updated file resource with the new ``modifiedTime``.
        """
        response = self._request(
            "PATCH",
            f"{UPLOAD_API}/files/{file_id}",
            "update",
            params={"uploadType": "media", "fields": _UPLOAD_FIELDS},
            headers={"Content-Type": "application/octet-stream"},
            data=content,
        )
        return response.json()

    def create_folder(self, name: str, parent_id: str) -> dict:
        """
        Create a folder under *parent_id*.
        """
        response = self._request(
            "POST",
            f"{DRIVE_API}/files",
            "create folder",
            params={"fields": FILE_FIELDS.replace(" ", "")},
            json={
                "name": name,
                "mimeType": FOLDER_MIME_TYPE,
                "parents": [parent_id],
            },
        )
        return response.json()

    def find_folder(self, name: str, parent_id: str) -> dict | None:
        """
        Return an existing folder named *name* directly under *parent_id*.
        """
        params = {
            "q": (
                f"'{_quote(parent_id)}' in parents"
                f" and name = '{_quote(name)}'"
                f" and mimeType = '{FOLDER_MIME_TYPE}'"
                " and trashed = false"
            ),
            "fields": f"files({FILE_FIELDS})",
            "pageSize": "1",
        }
        result = self._request(
            "GET", f"{DRIVE_API}/files", "find folder", params=params
        ).json()
        files = result.get("files", [])
        return files[0] if files else None

    def delete(self, file_id: str) -> None:
        """
        Delete a file.  A file that is already gone counts as deleted.

        Raises:
            DriveError: For any other failure.
        """
        try:
            self._request(
                "DELETE", f"{DRIVE_API}/files/{file_id}", "delete"
            )
        except NotFoundError:
            logger.debug("File %s already absent on delete", file_id)
