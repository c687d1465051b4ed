"""Error types raised by the Google Drive transport.

``DriveError`` covers every non-success response.  The two subclasses let
callers single out the cases the sync engine treats differently:
``NotFoundError`` (idempotent delete) and ``AuthenticationError``
(credentials cannot be refreshed).
"""

from __future__ import annotations

import requests


class DriveError(Exception):
    """A Drive API call failed.

    Attributes:
        status: HTTP status code, or ``None`` when no response was received.
        body: Response body text, truncated for logging.
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class NotFoundError(DriveError):
    """The requested object does not exist (HTTP 404)."""


class AuthenticationError(DriveError):
    """Credentials are invalid and cannot be refreshed."""


def error_from_response(
    response: requests.Response, action: str
) -> DriveError:
    """Build the matching ``DriveError`` subclass for a failed response."""
    body = response.text[:500]
    message = f"Drive {action} error {response.status_code}: {body}"
    match response.status_code:
        case 401:
            return AuthenticationError(message, response.status_code, body)
        case 404:
            return NotFoundError(message, response.status_code, body)
        case _:
            return DriveError(message, response.status_code, body)
