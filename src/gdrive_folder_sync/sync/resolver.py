"""Three-way conflict resolution for pulled files.

``decide()`` compares the current local and remote modification times
against the baseline recorded at the last successful sync.  The baseline
is what separates "only the remote changed" from "both sides changed";
a plain two-way mtime comparison cannot tell the two apart.

Rules, in order:

1. Untracked path: no local copy means a new remote file (``DOWNLOAD``).
   With a local copy there is no baseline, so the newer side wins.
2. Remote not newer than its baseline: ``SKIP``.
3. Remote changed.  Missing or unchanged local copy: ``DOWNLOAD``.
   Both changed: the newer side wins.

Equal timestamps resolve to ``LOCAL_WINS``; the remote must be strictly
newer to overwrite a local file.  The module does no I/O.
"""

from __future__ import annotations

from .models import FileRecord, Resolution


def _newer_side(local_mtime: float, remote_mtime: float) -> Resolution:
    if remote_mtime > local_mtime:
        return Resolution.DOWNLOAD
    return Resolution.LOCAL_WINS


def decide(
    tracked: FileRecord | None,
    local_exists: bool,
    local_mtime: float | None,
    remote_mtime: float,
) -> Resolution:
    """Decide what a pull pass does with one remote file.

    Args:
        tracked: Baseline record for the path, or ``None`` if untracked.
        local_exists: Whether the local file currently exists.
        local_mtime: Current local mtime (ignored when ``local_exists`` is
            false).
        remote_mtime: Current remote ``modifiedTime``.

    Returns:
        One of ``Resolution.DOWNLOAD``, ``Resolution.SKIP`` or
        ``Resolution.LOCAL_WINS``.
    """
    if not local_exists or local_mtime is None:
        if tracked is not None and remote_mtime <= tracked.remote_mtime:
            return Resolution.SKIP
        return Resolution.DOWNLOAD

    if tracked is None:
        return _newer_side(local_mtime, remote_mtime)

    if remote_mtime <= tracked.remote_mtime:
        return Resolution.SKIP

    if local_mtime <= tracked.local_mtime:
        return Resolution.DOWNLOAD

    # Both sides changed since the baseline.
    return _newer_side(local_mtime, remote_mtime)
