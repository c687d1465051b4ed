"""Google Drive transport shared by the sync engine and the daemon."""

from .async_utils import run_sync
from .auth import TokenManager
from .client import DriveClient
from .errors import AuthenticationError, DriveError, NotFoundError

__all__ = [
    "AuthenticationError",
    "DriveClient",
    "DriveError",
    "NotFoundError",
    "TokenManager",
    "run_sync",
]
