"""Atomic file writes for saved messages."""

from __future__ import annotations

import os
import stat
import tempfile
from pathlib import Path

TEMP_PREFIX = ".msgtap-tmp."


def _fsync_directory(path: Path) -> None:
    """Fsync a directory so a completed rename survives a crash.

    Not every platform can fsync a directory descriptor; ``OSError`` from
    that step is ignored.
    """
    try:
        fd = os.open(str(path), os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        pass
    finally:
        os.close(fd)


def _new_file_mode(target: Path) -> int:
    """Mode for the replacement file: the existing target's, else 0666 minus umask."""
    try:
        return stat.S_IMODE(os.stat(target).st_mode)
    except FileNotFoundError:
        pass
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def _write_all(fd: int, data: bytes) -> None:
    # os.write() may write fewer bytes than asked for.
    view = memoryview(data)
    while view:
        written = os.write(fd, view)
        view = view[written:]


def atomic_write(path: str | os.PathLike[str], content: str | bytes) -> None:
    """Create or replace *path* with *content* in one step.

    Data goes to a temp file next to the target, is fsynced, then renamed
    over the target, so readers see either the old file or the complete new
    one.  Text is encoded as UTF-8.  A new file gets the usual 0666 minus
    umask mode; a replaced file keeps its previous mode.

    Raises:
        FileNotFoundError: If the parent directory does not exist.  Nothing
            is created in that case.
        OSError: For any other write failure; the temp file is removed.
    """
    target = Path(path)
    parent = target.parent
    if not parent.is_dir():
        raise FileNotFoundError(f"Parent directory does not exist: {parent}")

    data = content.encode("utf-8") if isinstance(content, str) else bytes(content)

    fd, tmp_name = tempfile.mkstemp(dir=parent, prefix=TEMP_PREFIX)
    try:
        try:
            os.fchmod(fd, _new_file_mode(target))
            _write_all(fd, data)
            os.fsync(fd)
        finally:
            os.close(fd)
        os.replace(tmp_name, target)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise
    _fsync_directory(parent)
