"""Events raised while running nginx, and the parser that derives them from its log."""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

log = logging.getLogger("events")

# Maximum size in characters of a process id.
MAX_PID_WIDTH = 19

_START_WORKER_PROCESS = "start worker process "
_DIGITS = frozenset("0123456789")
_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class NginxLogParseError(ValueError):
    """A nginx log line could not be parsed."""

    def __init__(self, message: str = "", log_line: str = "", err: BaseException | None = None) -> None:
        self.message = message
        self.log_line = log_line
        self.err = err
        super().__init__(str(self))

    def __str__(self) -> str:
        if not self.message and not self.log_line and self.err is None:
            return ""
        formatted = self.message % self.log_line if "%s" in self.message else self.message
        if self.err is None:
            return formatted
        return f"{formatted}: {self.err}"


class EventTriggerError(RuntimeError):
    """One or more triggers of an event failed."""

    def __init__(self, message: str, errors: Sequence[BaseException]) -> None:
        super().__init__(message)
        self.errors = list(errors)


@dataclass(eq=False)
class Trigger:
    """A named function run when an event fires."""

    name: str
    function: Callable[[Message], Any]

    def __str__(self) -> str:
        return f"{{{self.name}}}"


@dataclass(frozen=True)
class Message:
    """Passed to every trigger when an event fires."""

    event: Event
    metadata: dict[str, Any]


@dataclass(eq=False)
class Event:
    """A wrapper event with the triggers that run when it fires."""

    name: str
    origin: str
    on_trigger: list[Trigger] = field(default_factory=list)
    _final_trigger: Trigger | None = field(default=None, init=False, repr=False)

    def __str__(self) -> str:
        names = ",".join(t.name for t in self.on_trigger)
        return f"{{ {self.id()} triggers=[{names}] }}"

    def id(self) -> str:
        """Return the unique id built from origin and name."""
        return f"{self.origin}.{self.name}"

    def add_trigger(self, trigger: Trigger) -> None:
        self.on_trigger.append(trigger)

    def add_final_trigger(self, trigger: Trigger) -> None:
        """Set the trigger that always runs after all the others."""
        self._final_trigger = trigger

    def trigger(self, metadata: dict[str, Any] | None = None) -> list[Exception]:
        """Run every trigger and return the exceptions they raised."""
        message = Message(event=self, metadata={} if metadata is None else metadata)
        triggers = list(self.on_trigger)
        if self._final_trigger is not None:
            triggers.append(self._final_trigger)

        errors: list[Exception] = []
        for t in triggers:
            log.debug("invoking trigger (%s) for event (%s)", t.name, self.id())
            try:
                t.function(message)
            except Exception as exc:  # noqa: BLE001 - collected and reported to the caller
                errors.append(exc)
        return errors


class RegisteredEvents:
    """The nginx events together with the state needed to detect them in logs."""

    def __init__(self) -> None:
        self.nginx_pre_start = Event("pre-start", "nginx")
        self.nginx_start = Event("start", "nginx")
        self.nginx_worker_start = Event("start-worker", "nginx")
        self.nginx_exit = Event("exit", "nginx")
        self.nginx_worker_exit = Event("exit-worker", "nginx")
        self.nginx_pre_reload = Event("pre-reload", "nginx")
        self.nginx_reload = Event("reload", "nginx")
        self.reload_started = threading.Event()

        self._first_start_worker_processes_found = False
        self._first_start_worker_process_found = False
        self._worker_count = 0

    @property
    def worker_count(self) -> int:
        return self._worker_count

    def _all(self) -> tuple[Event, ...]:
        return (
            self.nginx_pre_start,
            self.nginx_start,
            self.nginx_worker_start,
            self.nginx_exit,
            self.nginx_worker_exit,
            self.nginx_pre_reload,
            self.nginx_reload,
        )

    def event_names(self) -> list[str]:
        return [
            self.nginx_exit.name,
            self.nginx_worker_exit.name,
            self.nginx_pre_reload.name,
            self.nginx_pre_start.name,
            self.nginx_reload.name,
            self.nginx_start.name,
            self.nginx_worker_start.name,
        ]

    def find_event_by_name(self, event_name: str) -> Event | None:
        return next((e for e in self._all() if e.name == event_name), None)

    def add_trigger_by_event_name(self, event_name: str, trigger: Trigger) -> None:
        """Attach a trigger to the named event; ValueError if there is none."""
        event = self.find_event_by_name(event_name)
        if event is None:
            raise ValueError(f"unknown event name ({event_name})")
        event.add_trigger(trigger)

    def add_trigger_to_all_events(self, trigger: Trigger) -> None:
        for event in (
            self.nginx_pre_start,
            self.nginx_pre_reload,
            self.nginx_reload,
            self.nginx_start,
            self.nginx_worker_start,
            self.nginx_exit,
            self.nginx_worker_exit,
        ):
            event.add_trigger(trigger)

    def parse_for_triggerable_event(self, line: str) -> None:
        """Fire any event that a nginx log line indicates.

        The parser is stateful: how a line is read depends on earlier lines.
        Raises EventTriggerError when triggers of a fired event fail.
        """
        if not self._first_start_worker_processes_found and line.endswith("start worker processes"):
            self._first_start_worker_processes_found = True
            return

        if self._first_start_worker_processes_found:
            worker_pid = extract_pid_from_start_worker_process(line)
            if worker_pid >= 0:
                self._parse_start_events(line, worker_pid)
                return

        # An exit seen with no workers left belongs to the main process; that
        # event is emitted by the process monitor instead.
        if line.endswith(" exit") and self._worker_count > 0:
            try:
                worker_pid, worker_tid = parse_pid_and_tid(line)
            except NginxLogParseError as exc:
                log.warning("%s", exc)
                return

            self._worker_count -= 1
            _fire(
                self.nginx_worker_exit,
                {"worker_pid": worker_pid, "worker_tid": worker_tid, "worker_count": self._worker_count},
                "exit event trigger caused error",
            )

    def _parse_start_events(self, line: str, worker_pid: int) -> None:
        if not self._first_start_worker_process_found or self.reload_started.is_set():
            try:
                pid, tid = parse_pid_and_tid(line)
            except NginxLogParseError as exc:
                log.warning("%s", exc)
                pid, tid = -1, -1
            metadata = {"pid": pid, "tid": tid}

            if self.reload_started.is_set():
                _fire(self.nginx_reload, metadata, "reload event trigger caused error")
                self.reload_started.clear()
            else:
                _fire(self.nginx_start, metadata, "start event trigger caused error")
                self._first_start_worker_process_found = True

        try:
            _, worker_tid = parse_pid_and_tid(line)
        except NginxLogParseError as exc:
            log.warning("%s", exc)
            worker_tid = -1

        self._worker_count += 1
        _fire(
            self.nginx_worker_start,
            {"worker_pid": worker_pid, "worker_tid": worker_tid, "worker_count": self._worker_count},
            "start worker event trigger caused error",
        )


def _fire(event: Event, metadata: dict[str, Any], description: str) -> None:
    errors = event.trigger(metadata)
    if errors:
        for err in errors:
            log.error("%s", err)
        raise EventTriggerError(description, errors)


GLOBAL_EVENTS = RegisteredEvents()


def reverse(chars: Sequence[str], limit: int) -> str:
    """Reverse the first ``limit`` characters into a string of length ``limit``.

    Positions with no source character are filled with NUL.
    """
    output = ["\x00"] * limit
    for i, c in enumerate(chars[:limit]):
        output[limit - 1 - i] = c
    return "".join(output)


def _parse_int64(text: str, msg: str) -> int:
    if not _INT_PATTERN.fullmatch(text):
        raise NginxLogParseError("unable to parse integer (" + text.replace("%", "%%") + ") in message: %s", msg)
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise NginxLogParseError("integer out of range (" + text + ") in message: %s", msg)
    return value


def parse_pid_and_tid(msg: str) -> tuple[int, int]:
    """Read the ``pid#tid:`` prefix of a nginx log line."""
    colon_pos = msg.find(":")
    if colon_pos == -1:
        raise NginxLogParseError("unable to find expected semicolon in message: %s", msg)

    hash_pos = msg.find("#")
    if hash_pos == -1:
        raise NginxLogParseError("unable to find expected hash in message: %s", msg)

    if hash_pos >= colon_pos:
        raise NginxLogParseError("hash is beyond semicolon position - can't parse: %s", msg)

    pid = _parse_int64(msg[:hash_pos], msg)
    tid = _parse_int64(msg[hash_pos + 1:colon_pos], msg)
    return pid, tid


def extract_pid_from_start_worker_process(text: str) -> int:
    """Return the pid of a "start worker process <pid>" line, or -1."""
    if not text:
        return -1

    window = text[-(len(_START_WORKER_PROCESS) + MAX_PID_WIDTH):].rstrip()
    if not window or window[-1] not in _DIGITS:
        return -1

    rest = window.rstrip("0123456789")
    digits = window[len(rest):]
    if len(digits) > MAX_PID_WIDTH:
        return -1

    tail = rest[-len(_START_WORKER_PROCESS):]
    if not _START_WORKER_PROCESS.endswith(tail):
        return -1

    pid = int(digits)
    if pid > _INT64_MAX:
        return -1
    return pid