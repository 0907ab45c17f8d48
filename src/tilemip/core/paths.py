"""Filesystem helpers for writing tiles."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import BinaryIO, Callable


def atomic_write(path: Path, write: Callable[[BinaryIO], None]) -> None:
    """Atomically write a binary file.

    ``write`` receives a file object for a temp file in the same directory;
    the temp file then replaces the target. ``os.replace()`` is atomic on
    both POSIX and Windows (same filesystem). On any failure the temp file is
    removed and ``path`` is left as it was.

    The written file gets the mode of the file it replaces, or the umask
    default for a new file, the same as a plain ``open(path, "wb")``.
    """
    fd, tmp_path = tempfile.mkstemp(
        dir=path.parent, suffix=".tmp", prefix=path.stem
    )
    try:
        with os.fdopen(fd, "wb") as f:
            write(f)
        os.chmod(tmp_path, _target_mode(path))
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def _target_mode(path: Path) -> int:
    try:
        return path.stat().st_mode & 0o7777
    except FileNotFoundError:
        pass
    # os.umask can only be read by setting it
    mask = os.umask(0)
    os.umask(mask)
    return 0o666 & ~mask
