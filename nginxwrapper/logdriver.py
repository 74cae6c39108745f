"""A log driver that maps named-logger records onto a global log level."""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import IntEnum
from typing import Any

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class SlfLevel(IntEnum):
    """Levels of the named-logger facade, from most to least verbose."""

    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4
    PANIC = 5
    FATAL = 6


class LogrusLevel(IntEnum):
    """Levels of the global logger, from least to most verbose."""

    PANIC = 0
    FATAL = 1
    ERROR = 2
    WARN = 3
    INFO = 4
    DEBUG = 5
    TRACE = 6


_SLF_TO_LOGRUS: dict[int, LogrusLevel] = {
    SlfLevel.TRACE: LogrusLevel.TRACE,
    SlfLevel.DEBUG: LogrusLevel.DEBUG,
    SlfLevel.INFO: LogrusLevel.INFO,
    SlfLevel.WARN: LogrusLevel.WARN,
    SlfLevel.ERROR: LogrusLevel.ERROR,
    SlfLevel.PANIC: LogrusLevel.PANIC,
    SlfLevel.FATAL: LogrusLevel.FATAL,
}
_LOGRUS_TO_SLF: dict[int, SlfLevel] = {v: SlfLevel(k) for k, v in _SLF_TO_LOGRUS.items()}

_LOGRUS_TO_PYTHON: dict[int, int] = {
    LogrusLevel.PANIC: logging.CRITICAL,
    LogrusLevel.FATAL: logging.CRITICAL,
    LogrusLevel.ERROR: logging.ERROR,
    LogrusLevel.WARN: logging.WARNING,
    LogrusLevel.INFO: logging.INFO,
    LogrusLevel.DEBUG: logging.DEBUG,
    LogrusLevel.TRACE: TRACE,
}


def convert_logrus_level_to_slf_level(logrus_level: int) -> SlfLevel | int:
    """Map a global-logger level to a facade level; unknown values pass through."""
    return _LOGRUS_TO_SLF.get(int(logrus_level), int(logrus_level))


def convert_slf_level_to_logrus_level(slf_level: int) -> LogrusLevel | int:
    """Map a facade level to a global-logger level; unknown values pass through."""
    return _SLF_TO_LOGRUS.get(int(slf_level), int(slf_level))


def time_from_microseconds(micros: int) -> datetime:
    """Convert a Unix timestamp in microseconds to an aware UTC datetime."""
    return _EPOCH + timedelta(microseconds=micros)


def _now_micros() -> int:
    return time.time_ns() // 1000


@dataclass
class LogRecordData:
    """One log call made through a named logger."""

    level: SlfLevel | int
    logger: str
    args: Sequence[Any] = ()
    format: str | None = None
    fields: Mapping[str, Any] | None = None
    time: int = field(default_factory=_now_micros)


def _to_text(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _sprint(args: Sequence[Any]) -> str:
    """Join operands, adding a space only between two non-string operands."""
    parts: list[str] = []
    previous_is_str = True
    for position, arg in enumerate(args):
        is_str = isinstance(arg, str)
        if position > 0 and not is_str and not previous_is_str:
            parts.append(" ")
        parts.append(_to_text(arg))
        previous_is_str = is_str
    return "".join(parts)


def _sprintf(fmt: str, args: Sequence[Any]) -> str:
    try:
        return fmt % tuple(args)
    except (TypeError, ValueError):
        extra = " ".join(_to_text(a) for a in args)
        return f"{fmt} {extra}" if extra else fmt


def _python_level(logrus_level: int) -> int:
    if logrus_level in _LOGRUS_TO_PYTHON:
        return _LOGRUS_TO_PYTHON[logrus_level]
    return logging.CRITICAL if logrus_level < 0 else TRACE


@dataclass
class LogDriver:
    """Writes facade log records to a Python logger, gated by one global level."""

    logger_to_level_mapping: dict[str, SlfLevel | int] = field(default_factory=dict)
    prepend_logger_name: bool = False
    level: LogrusLevel | int = LogrusLevel.INFO
    output: logging.Logger = field(default_factory=lambda: logging.getLogger("nginxwrapper"))

    def name(self) -> str:
        return "logrus"

    def get_level(self, logger: str) -> SlfLevel | int:
        """Return the least severe level that the named logger emits."""
        if logger in self.logger_to_level_mapping:
            return self.logger_to_level_mapping[logger]
        return convert_logrus_level_to_slf_level(self.level)

    def print(self, record: LogRecordData) -> str | None:
        """Emit a record; return the message written, or None if suppressed."""
        logrus_level = convert_slf_level_to_logrus_level(record.level)
        if self.level < logrus_level:
            return None

        if record.format is None:
            args = list(record.args)
            if self.prepend_logger_name:
                args.insert(0, record.logger + ": ")
            message = _sprint(args)
        else:
            fmt = record.format
            if self.prepend_logger_name:
                fmt = record.logger + ": " + fmt
            message = _sprintf(fmt, record.args)

        when = time_from_microseconds(record.time)
        py_record = self.output.makeRecord(
            self.output.name,
            _python_level(logrus_level),
            "(unknown file)",
            0,
            message,
            None,
            None,
            extra={"fields": dict(record.fields or {}), "logger_name": record.logger},
        )
        created = when.timestamp()
        py_record.created = created
        py_record.msecs = (created - int(created)) * 1000
        self.output.handle(py_record)
        return message