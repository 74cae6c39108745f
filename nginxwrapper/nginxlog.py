"""Relaying nginx output into the wrapper's logs and event parser."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

from nginxwrapper.events import GLOBAL_EVENTS, RegisteredEvents

_PREFIX = "nginx: "


def nginx_log(line: str, logger: logging.Logger | None = None,
              registered_events: RegisteredEvents | None = None) -> str | None:
    """Log one line of nginx output at a matching level and feed it to the event parser.

    Returns the message as logged, or None for an empty line.
    """
    if not line:
        return None
    logger = logger if logger is not None else logging.getLogger("nginx")
    events = registered_events if registered_events is not None else GLOBAL_EVENTS

    msg = line[len(_PREFIX):].strip() if line.startswith(_PREFIX) else line.strip()

    left = msg.find("[")
    right = msg.find("]")
    level = msg[left + 1:right] if 0 <= left < right else ""
    msg = msg[right + 1:].lstrip(" \t")

    match level.upper():
        case "WARNING":
            logger.warning(msg)
        case "ALERT":
            logger.error(msg)
        case _:
            logger.info(msg)

    events.parse_for_triggerable_event(msg)
    return msg


def _strip_line_end(raw: str | bytes) -> str:
    line = raw.decode(errors="replace") if isinstance(raw, bytes) else raw
    if line.endswith("\n"):
        line = line[:-1]
    if line.endswith("\r"):
        line = line[:-1]
    return line


def follow_streams(streams: Iterable[Iterable[str | bytes]], logger: logging.Logger | None = None,
                   registered_events: RegisteredEvents | None = None) -> threading.Thread:
    """Relay the lines of each stream in turn on a background thread.

    Streams are read one after another, the next starting when the previous
    is exhausted. Returns the started thread.
    """
    sources = list(streams)
    logger = logger if logger is not None else logging.getLogger("nginx")

    def relay() -> None:
        for stream in sources:
            for raw in stream:
                nginx_log(_strip_line_end(raw), logger, registered_events)

    thread = threading.Thread(target=relay, name="nginx-log", daemon=True)
    thread.start()
    return thread