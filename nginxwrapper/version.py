"""Reading and parsing the version report of a nginx executable."""

from __future__ import annotations

import re
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass, field

from nginxwrapper.osenv import LINE_BREAK

VERSION_PREFIX = "nginx version: "
CONFIG_ARG_PREFIX = "configure arguments:"

_VERSION_PATTERN = re.compile(r"^.*:?\s*(nginx/(\d+\.\d+\.\d+)\s*(.*))", re.ASCII)
_CONFIG_ARG_SPLIT = re.compile(r"\s+--", re.ASCII)


@dataclass
class NginxVersion:
    """Details taken from the output of ``nginx -V``."""

    full: str
    version: str
    detail: str = ""
    is_plus: bool = False
    additional_detail: list[str] = field(default_factory=list)
    configure_args: dict[str, str] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.full

    def info(self) -> str:
        """Return all version information as text."""
        parts = [self.full, LINE_BREAK]
        for line in self.additional_detail:
            parts.append(line)
            parts.append(LINE_BREAK)
        if self.configure_args:
            parts.append(CONFIG_ARG_PREFIX)
            parts.append(format_configure_args(self.configure_args))
        return "".join(parts)


def _scan_lines(text: str) -> list[str]:
    if not text:
        return []
    lines = text.split("\n")
    if text.endswith("\n"):
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def read_nginx_version(nginx_bin_path: str) -> NginxVersion:
    """Run ``nginx -V`` and parse its combined output.

    Raises OSError if the executable cannot run, CalledProcessError if it
    exits with an error, and ValueError if the output cannot be parsed.
    """
    completed = subprocess.run(
        [nginx_bin_path, "-V"],
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        check=True,
    )
    lines = _scan_lines(completed.stdout.decode(errors="replace"))
    if not lines:
        raise ValueError(f"no output from NGINX executable ({nginx_bin_path})")

    first, *rest = lines
    try:
        version = parse_version(first)
    except ValueError as exc:
        raise ValueError(
            f"unable to parse first version line from NGINX executable ({nginx_bin_path}): {exc}"
        ) from exc

    details: list[str] = []
    for line in rest:
        if line.startswith(CONFIG_ARG_PREFIX):
            version.configure_args = parse_configure_args(line[len(CONFIG_ARG_PREFIX):])
        else:
            details.append(line)
    version.additional_detail = details
    return version


def parse_configure_args(line: str) -> dict[str, str]:
    """Split ``--key=value`` configure arguments into an ordered mapping."""
    args: dict[str, str] = {}
    for chunk in _CONFIG_ARG_SPLIT.split(line):
        if not chunk:
            continue
        equals_pos = chunk.find("=")
        if equals_pos > 0:
            args[chunk[:equals_pos]] = chunk[equals_pos + 1:]
        else:
            args[chunk] = ""
    return args


def format_configure_args(args: Mapping[str, str]) -> str:
    """Render configure arguments back into `` --key=value`` form."""
    parts = []
    for key, value in args.items():
        text = str(value)
        parts.append(f" --{key}={text}" if text else f" --{key}")
    return "".join(parts)


def parse_version(line: str) -> NginxVersion:
    """Parse the first line of ``nginx -V`` output."""
    substring = line[len(VERSION_PREFIX):] if line.startswith(VERSION_PREFIX) else line
    match = _VERSION_PATTERN.search(substring)
    if match is None:
        raise ValueError(f"can't extract invalid version text: {line}")

    detail = match.group(3).strip("()")
    return NginxVersion(
        full=match.group(1),
        version=match.group(2),
        detail=detail,
        is_plus=detail.startswith("nginx-plus"),
    )