"""File system helpers: copying, path lookup and path checks."""

from __future__ import annotations

import errno
import os
import shutil
import stat
import tempfile
from functools import partial

PATH_SEPARATOR = os.sep

OS_READ = 0o4
OS_WRITE = 0o2
OS_EX = 0o1
OS_USER_SHIFT = 6
OS_GROUP_SHIFT = 3
OS_OTH_SHIFT = 0

OS_USER_R = OS_READ << OS_USER_SHIFT
OS_USER_W = OS_WRITE << OS_USER_SHIFT
OS_USER_X = OS_EX << OS_USER_SHIFT
OS_USER_RW = OS_USER_R | OS_USER_W
OS_USER_RWX = OS_USER_RW | OS_USER_X

OS_GROUP_R = OS_READ << OS_GROUP_SHIFT
OS_GROUP_W = OS_WRITE << OS_GROUP_SHIFT
OS_GROUP_X = OS_EX << OS_GROUP_SHIFT
OS_GROUP_RW = OS_GROUP_R | OS_GROUP_W
OS_GROUP_RWX = OS_GROUP_RW | OS_GROUP_X

OS_OTH_R = OS_READ << OS_OTH_SHIFT
OS_OTH_W = OS_WRITE << OS_OTH_SHIFT
OS_OTH_X = OS_EX << OS_OTH_SHIFT
OS_OTH_RW = OS_OTH_R | OS_OTH_W
OS_OTH_RWX = OS_OTH_RW | OS_OTH_X

OS_ALL_R = OS_USER_R | OS_GROUP_R | OS_OTH_R
OS_ALL_W = OS_USER_W | OS_GROUP_W | OS_OTH_W
OS_ALL_X = OS_USER_X | OS_GROUP_X | OS_OTH_X
OS_ALL_RW = OS_ALL_R | OS_ALL_W
OS_ALL_RWX = OS_ALL_RW | OS_GROUP_X


def copy_file(source: str | os.PathLike, destination: str | os.PathLike, buffer_size: int) -> int:
    """Copy a regular file in chunks of ``buffer_size`` bytes.

    Returns the number of bytes written. Raises ValueError when the source
    is not a regular file and OSError when it cannot be read or written.
    """
    if buffer_size < 0:
        raise ValueError(f"buffer size must not be negative: {buffer_size}")

    info = os.stat(source)
    if not stat.S_ISREG(info.st_mode):
        raise ValueError(f"({source}) is not a regular file")

    total = 0
    with open(source, "rb") as src, open(destination, "wb") as dst:
        for chunk in iter(partial(src.read, buffer_size), b""):
            total += dst.write(chunk)
    return total


def find_in_path(file_name: str) -> str:
    """Locate an executable through PATH, or directly if it names a path."""
    found = shutil.which(file_name)
    if found is None:
        raise FileNotFoundError(errno.ENOENT, "unable to find valid file in path", file_name)
    return found


def temp_directory_path(suffix: str) -> str:
    """Return a normalized path under the system temporary directory."""
    return os.path.normpath(tempfile.gettempdir() + PATH_SEPARATOR + suffix)


def path_exists_and_is_file_or_directory(path: str | os.PathLike) -> None:
    """Check that a path exists and is a directory or regular file.

    Symbolic links, devices and other special files are rejected with
    ValueError; a path that cannot be examined raises OSError.
    """
    try:
        info = os.lstat(path)
    except OSError as exc:
        raise OSError(exc.errno, f"unable to stat path ({path}): {exc.strerror}", os.fspath(path)) from exc

    if not is_regular_file_or_directory(info):
        raise ValueError(f"path ({path}) is not a directory or regular file")


def is_regular_file_or_directory(stat_result: os.stat_result) -> bool:
    """Tell whether a stat result describes a plain file or a directory."""
    mode = stat_result.st_mode
    return stat.S_ISDIR(mode) or stat.S_ISREG(mode)