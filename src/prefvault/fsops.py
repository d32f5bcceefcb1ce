"""
File-system primitives used by the backup and restore engines.

Public interface
----------------
- copy_file(src, dst) -> bool
- touch(path) -> None
- make_world_readable(path) -> None
- make_world_traversable(path) -> None

Notes
-----
- copy_file writes to a temporary file next to the destination and renames
  it into place, so the destination is either untouched or fully written.
- Permission helpers only add bits; they never remove access.
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

__all__ = [
    "copy_file",
    "touch",
    "make_world_readable",
    "make_world_traversable",
    "WORLD_READ",
    "WORLD_READ_EXEC",
]

WORLD_READ = stat.S_IRUSR | stat.S_IRGRP | stat.S_IROTH
WORLD_READ_EXEC = WORLD_READ | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


def _fsync_file(fd: int) -> None:
    """Best-effort fsync for an open descriptor."""
    try:
        os.fsync(fd)
    except OSError:
        pass


def copy_file(src: Path, dst: Path) -> bool:
    """
    Copy one file byte for byte.

    Args:
        src: Existing source file.
        dst: Destination path. Its parent directory must exist.

    Returns:
        True if the destination now holds a full copy of the source.
    """
    src = Path(src)
    dst = Path(dst)

    try:
        temp_fd, temp_path = tempfile.mkstemp(
            prefix=f".{dst.name}.",
            suffix=".tmp",
            dir=str(dst.parent),
        )
    except OSError as e:
        logger.warning(f"Cannot create temporary file for {dst}: {e}")
        return False

    try:
        with os.fdopen(temp_fd, "wb") as fout, open(src, "rb") as fin:
            shutil.copyfileobj(fin, fout)
            fout.flush()
            _fsync_file(fout.fileno())
        os.replace(temp_path, dst)
    except OSError as e:
        logger.warning(f"Copy failed: {src} -> {dst}: {e}")
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        return False

    logger.debug(f"Copied {src} -> {dst}")
    return True


def touch(path: Path) -> None:
    """Create an empty file if it does not exist. Raises OSError on failure."""
    Path(path).touch(exist_ok=True)


def _add_mode_bits(path: Path, bits: int) -> None:
    mode = stat.S_IMODE(os.stat(path).st_mode)
    if mode & bits != bits:
        os.chmod(path, mode | bits)


def make_world_readable(path: Path) -> None:
    """Grant read access to user, group and others. Raises OSError on failure."""
    _add_mode_bits(Path(path), WORLD_READ)


def make_world_traversable(path: Path) -> None:
    """Grant read and execute access to user, group and others."""
    _add_mode_bits(Path(path), WORLD_READ_EXEC)
