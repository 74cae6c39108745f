"""Operating-system specific constants."""

from __future__ import annotations

import sys

LINE_BREAK = "\n"

_SUFFIXES = (
    ("darwin", ".dylib"),
    ("freebsd", ".so"),
    ("linux", ".so"),
    ("sunos", ".so"),
    ("solaris", ".so"),
)


def shared_object_suffix(platform_name: str | None = None) -> str:
    """Return the default shared-object file extension for a platform.

    ``platform_name`` takes the form of ``sys.platform`` and defaults to it.
    Raises ValueError for a platform that has no known suffix.
    """
    name = (sys.platform if platform_name is None else platform_name).lower()
    for prefix, suffix in _SUFFIXES:
        if name.startswith(prefix):
            return suffix
    raise ValueError(f"no shared object suffix known for platform ({name})")


def _current_suffix() -> str:
    try:
        return shared_object_suffix()
    except ValueError:
        return ".so"


SHARED_OBJECT_SUFFIX = _current_suffix()