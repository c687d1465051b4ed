"""File handler module: local filesystem access for the sync engine.

Provides the blocking filesystem primitives the reconcilers use: stat,
read, write, existence checks, recursive mkdir and recursive listing.
Local files are never deleted by the engine.  Relative paths handed to
the rest of the package are always POSIX-style so state keys are
identical across platforms.
"""

import logging
import os
from collections.abc import Callable
from pathlib import Path, PurePosixPath

logger = logging.getLogger(__name__)


# =============================================================================
# Path helpers
# =============================================================================


def to_relative_path(root: Path, path: Path) -> str:
    """Return *path* relative to *root* with forward slashes.

    Raises:
        ValueError: If *path* is not inside *root*.
    """
    rel = Path(os.path.abspath(path)).relative_to(os.path.abspath(root))
    return PurePosixPath(*rel.parts).as_posix()


def to_absolute_path(root: Path, relative_path: str) -> Path:
    """Inverse of ``to_relative_path``."""
    return root.joinpath(*PurePosixPath(relative_path).parts)


# =============================================================================
# Stat / existence
# =============================================================================


def file_exists(path: Path) -> bool:
    return path.exists()


def is_directory(path: Path) -> bool:
    return path.is_dir()


def mtime_ms(path: Path) -> float:
    """Modification time of *path* in milliseconds since the epoch."""
    # Whole microseconds keep the value exact in a float.
    return path.stat().st_mtime_ns // 1_000 / 1_000


# =============================================================================
# File Read/Write
# =============================================================================


def read_file(path: Path) -> bytes:
    return path.read_bytes()


def write_file(path: Path, content: bytes) -> int:
    """Write content to a file, creating parent directories as needed.

    Args:
        path: Path to the output file.
        content: Raw bytes to write.

    Returns:
        Number of bytes written.
    """
    make_dirs(path.parent)
    path.write_bytes(content)
    return len(content)


def make_dirs(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


# =============================================================================
# Listing
# =============================================================================


def list_files_recursive(
    root: Path, ignore: Callable[[str], bool] | None = None
) -> list[Path]:
    """Return every regular file under *root*, sorted.

    Entries whose basename matches *ignore* are skipped, and ignored
    directory names are not descended into.

    Args:
        root: Directory to scan.
        ignore: Predicate over basenames; nothing is skipped when omitted.

    Returns:
        Sorted list of absolute paths.
    """
    skip = ignore or (lambda _name: False)
    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not skip(d))
        for name in filenames:
            if skip(name):
                continue
            files.append(Path(dirpath) / name)
    return sorted(files)
