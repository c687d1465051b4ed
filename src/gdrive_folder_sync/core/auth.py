"""OAuth token handling for the Drive client.

The token file is a JSON document holding ``access_token`` and, optionally,
``refresh_token``.  It is produced by an external authorisation step; this
module only reads it and refreshes the access token when the API answers
401.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path

import requests

from .errors import AuthenticationError

logger = logging.getLogger(__name__)

TOKEN_URL = "https://oauth2.googleapis.com/token"


class TokenManager:
    """Provide a bearer token and refresh it on demand.

    Args:
        token_file: Path to the JSON token file.
        client_id: OAuth client ID, required for refresh.
        client_secret: OAuth client secret, required for refresh.
    """

    def __init__(
        self,
        token_file: Path,
        client_id: str | None = None,
        client_secret: str | None = None,
    ) -> None:
        self.token_file = token_file
        self.client_id = client_id
        self.client_secret = client_secret
        self._access_token: str | None = None
        self._lock = threading.Lock()

    def get_token(self) -> str:
        """Return the current access token, reading the file on first use."""
        with self._lock:
            if self._access_token is None:
                self._access_token = self._read_token_file()["access_token"]
            return self._access_token

    def can_refresh(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def refresh(self, stale_token: str | None = None) -> str:
        """Exchange the refresh token for a new access token.

        If another thread already refreshed past *stale_token*, the newer
        token is returned without a second round-trip.

        Raises:
            AuthenticationError: If refresh is impossible or rejected.
        """
        with self._lock:
            if (
                stale_token is not None
                and self._access_token is not None
                and self._access_token != stale_token
            ):
                return self._access_token

            if not self.can_refresh():
                raise AuthenticationError(
                    "Token expired and no clientId/clientSecret configured for refresh"
                )

            token_data = self._read_token_file()
            refresh_token = token_data.get("refresh_token")
            if not refresh_token:
                raise AuthenticationError(
                    "No refresh_token available in token file"
                )

            try:
                response = requests.post(
                    TOKEN_URL,
                    data={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "refresh_token": refresh_token,
                        "grant_type": "refresh_token",
                    },
                    timeout=(10, 30),
                )
            except requests.RequestException as e:
                raise AuthenticationError(f"Token refresh failed: {e}") from e

            if not response.ok:
                raise AuthenticationError(
                    f"Token refresh failed: {response.text[:500]}",
                    response.status_code,
                    response.text[:500],
                )

            access_token = response.json()["access_token"]
            token_data["access_token"] = access_token
            self._write_token_file(token_data)
            self._access_token = access_token
            logger.info("[auth] Token refreshed")
            return access_token

    # ------------------------------------------------------------------
    # Token file I/O
    # ------------------------------------------------------------------

    def _read_token_file(self) -> dict:
        try:
            with open(self.token_file, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            raise AuthenticationError(
                f"Cannot read token file {self.token_file}: {e}"
            ) from e
        if not isinstance(data, dict) or not data.get("access_token"):
            raise AuthenticationError(
                f"Token file {self.token_file} has no access_token"
            )
        return data

    def _write_token_file(self, data: dict) -> None:
        """Replace the token file atomically."""
        directory = self.token_file.parent
        fd, tmp_path = tempfile.mkstemp(dir=str(directory), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2)
            os.replace(tmp_path, self.token_file)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
