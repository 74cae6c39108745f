"""Running a nginx process and watching over its lifecycle."""

from __future__ import annotations

import logging
import os
import queue
import signal
import subprocess
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from nginxwrapper.api import SIGNALS
from nginxwrapper.events import GLOBAL_EVENTS, EventTriggerError, RegisteredEvents
from nginxwrapper.nginxlog import follow_streams

log = logging.getLogger("pm")
_signal_log = logging.getLogger("signals")
_run_log = logging.getLogger("nginx-run")

SECS_TO_WAIT_FOR_RELOAD = 2

_SHUTDOWN_SIGNALS = frozenset(
    getattr(signal, name) for name in ("SIGINT", "SIGTERM") if hasattr(signal, name)
)
_RELOAD_SIGNALS = frozenset(
    getattr(signal, name) for name in ("SIGHUP", "SIGUSR2") if hasattr(signal, name)
)


def _describe_signal(sig: int) -> str:
    description = signal.strsignal(sig)
    if description:
        return description.lower()
    try:
        return signal.Signals(sig).name
    except ValueError:
        return str(sig)


def _exit_immediately() -> None:
    os._exit(1)


@dataclass(frozen=True)
class Config:
    """Runtime configuration of a wrapped nginx instance."""

    bin_path: str
    run_path: str
    config_path: str


class ProcessMonitor:
    """Tracks a running nginx process: its start, reloads and shutdown."""

    def __init__(self, registered_events: RegisteredEvents | None = None,
                 on_force_exit: Callable[[], None] | None = None) -> None:
        self.events = registered_events if registered_events is not None else GLOBAL_EVENTS
        self.stop = threading.Event()
        self.process: subprocess.Popen | None = None
        self.reload_wait_seconds: float = SECS_TO_WAIT_FOR_RELOAD
        self._on_force_exit = on_force_exit if on_force_exit is not None else _exit_immediately
        self._started = False
        self._state_lock = threading.Lock()
        self._count = 0
        self._count_cond = threading.Condition()
        self._shutdown_signals_seen = 0

    @property
    def started(self) -> bool:
        with self._state_lock:
            return self._started

    def _mark_started(self, process: subprocess.Popen) -> None:
        with self._state_lock:
            self._started = True
            self.process = process

    def increment(self) -> None:
        """Count one more running task."""
        with self._count_cond:
            self._count += 1

    def done(self) -> None:
        """Mark one running task as finished."""
        with self._count_cond:
            if self._count <= 0:
                raise ValueError("negative process monitor counter")
            self._count -= 1
            if self._count == 0:
                self._count_cond.notify_all()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until every task is done; False if the timeout ran out first."""
        with self._count_cond:
            return self._count_cond.wait_for(lambda: self._count == 0, timeout)

    def handle_signal(self, sig: int) -> None:
        """React to a signal received by the wrapper process."""
        _signal_log.debug("received signal %s", _describe_signal(sig))
        if sig in _SHUTDOWN_SIGNALS:
            _signal_log.info("shutdown signal received - shutting down")
            self.shutdown(_describe_signal(sig))
            # A second interrupt or terminate exits at once.
            if self._shutdown_signals_seen > 0:
                self._on_force_exit()
            self._shutdown_signals_seen += 1
        elif sig in _RELOAD_SIGNALS:
            self.reload(f"main process received HUP ({_describe_signal(sig)})")

    def install_signal_handlers(self) -> threading.Thread:
        """Route shutdown and reload signals through the shared signal queue.

        Must be called from the main thread. Returns the thread that handles
        queued signals.
        """
        def enqueue(signum: int, _frame: object) -> None:
            try:
                SIGNALS.put_nowait(signal.Signals(signum))
            except queue.Full:
                _signal_log.debug("signal queue full - dropping %s", _describe_signal(signum))

        for sig in sorted(_SHUTDOWN_SIGNALS | _RELOAD_SIGNALS):
            signal.signal(sig, enqueue)

        def consume() -> None:
            while True:
                self.handle_signal(SIGNALS.get())

        thread = threading.Thread(target=consume, name="signals", daemon=True)
        thread.start()
        return thread

    def reload(self, cause: str) -> None:
        """Ask the running nginx process to reload its configuration.

        Raises EventTriggerError when a pre-reload trigger fails.
        """
        if not self.started:
            log.info("nginx process not yet started - can't HUP")
            return

        log.info("SIGHUP sent to nginx process due to: %s", cause)
        process = self.process
        if process is None:
            log.error("can't issue HUP because there is no process assigned")
            return

        while self.events.reload_started.is_set():
            time.sleep(self.reload_wait_seconds)

        errors = self.events.nginx_pre_reload.trigger({"reload_cause": cause})
        if errors:
            for err in errors:
                log.error("%s", err)
            raise EventTriggerError("pre-reload event trigger caused error", errors)

        self.events.reload_started.set()
        try:
            process.send_signal(signal.SIGHUP)
        except OSError as exc:
            # The HUP failed, so no reload is in progress after all.
            self.events.reload_started.clear()
            log.error("SIGHUP of nginx process (%s) failed: %s", process.pid, exc)

    def shutdown(self, cause: str) -> bool:
        """Stop the wrapped process; return False if it was not running."""
        with self._state_lock:
            if not self._started:
                return False
            self._started = False
        log.info("process stopped due to: %s", cause)
        self.stop.set()
        return True


def run_command(pm: ProcessMonitor, cmd_path: str, *args: str) -> subprocess.Popen:
    """Start an executable under the monitor and relay its output.

    Raises EventTriggerError when a pre-start trigger fails and OSError
    when the executable cannot be started.
    """
    events = pm.events
    errors = events.nginx_pre_start.trigger({})
    if errors:
        for err in errors:
            _run_log.error("%s", err)
        raise EventTriggerError("pre-start event trigger caused error", errors)

    file = os.path.basename(cmd_path)

    pm.increment()
    try:
        process = subprocess.Popen(
            [cmd_path, *args],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as exc:
        pm.done()
        raise OSError(exc.errno, f"error starting ({file}): {exc.strerror}", cmd_path) from exc

    follow_streams([process.stdout, process.stderr], registered_events=events)
    pm._mark_started(process)
    exited = threading.Event()

    def await_exit() -> None:
        try:
            returncode = process.wait()
            exited.set()
            if returncode != 0:
                _run_log.error("%s exited with error: exit status %s", file, returncode)
            else:
                _run_log.debug("%s exited", file)

            exit_errors = events.nginx_exit.trigger({"pid": process.pid})
            if exit_errors:
                for err in exit_errors:
                    _run_log.error("%s", err)
                raise EventTriggerError("exit event trigger caused error", exit_errors)
        finally:
            pm.done()

    def kill_on_stop() -> None:
        pm.stop.wait()
        if exited.is_set():
            return
        _run_log.info("killing %s with signal %d", file, signal.SIGTERM)
        try:
            process.send_signal(signal.SIGTERM)
        except OSError as exc:
            _run_log.critical("unable to kill process [%s]: %s", process.pid, exc)
            pm._on_force_exit()

    threading.Thread(target=await_exit, name=f"{file}-wait", daemon=True).start()
    threading.Thread(target=kill_on_stop, name=f"{file}-stop", daemon=True).start()
    return process


def start(bin_path: str, run_path: str, config_path: str, pm: ProcessMonitor) -> subprocess.Popen:
    """Run nginx with the given prefix and configuration paths."""
    return run_command(pm, bin_path, "-p", run_path, "-c", config_path)