import io
import logging

import pytest

from nginxwrapper.events import RegisteredEvents, Trigger
from nginxwrapper.nginxlog import follow_streams, nginx_log

LOGGER_NAME = "tests.nginxlog"


@pytest.fixture
def logger(caplog):
    caplog.set_level(logging.DEBUG, logger=LOGGER_NAME)
    return logging.getLogger(LOGGER_NAME)


def _records(caplog):
    return [(r.levelno, r.getMessage()) for r in caplog.records if r.name == LOGGER_NAME]


def test_empty_line_is_ignored(logger, caplog):
    assert nginx_log("", logger, RegisteredEvents()) is None
    assert _records(caplog) == []


@pytest.mark.parametrize(
    "line, level, message",
    [
        ("[notice] 1#1: using the \"epoll\" event method", logging.INFO, "1#1: using the \"epoll\" event method"),
        ("[warning] conflicting server name", logging.WARNING, "conflicting server name"),
        ("[Warning] mixed case level", logging.WARNING, "mixed case level"),
        ("[alert] could not open error log file", logging.ERROR, "could not open error log file"),
        ("[emerg] bind() failed", logging.INFO, "bind() failed"),
        ("no level here", logging.INFO, "no level here"),
    ],
)
def test_levels_are_mapped(logger, caplog, line, level, message):
    result = nginx_log(line, logger, RegisteredEvents())
    assert result == message
    assert _records(caplog) == [(level, message)]


def test_nginx_prefix_and_whitespace_removed(logger, caplog):
    result = nginx_log("nginx: [alert]   \tcould not open error log file  ", logger, RegisteredEvents())
    assert result == "could not open error log file"
    assert _records(caplog) == [(logging.ERROR, "could not open error log file")]


def test_lines_drive_events(logger):
    events = RegisteredEvents()
    started = []
    workers = []
    events.nginx_start.add_trigger(Trigger("on-start", lambda m: started.append(m.metadata)))
    events.nginx_worker_start.add_trigger(Trigger("on-worker", lambda m: workers.append(m.metadata)))

    nginx_log("2020/07/09 21:04:53 [notice] 4975#4975: start worker processes", logger, events)
    nginx_log("2020/07/09 21:04:53 [notice] 4975#4975: start worker process 4976", logger, events)

    assert started == [{"pid": 4975, "tid": 4975}]
    assert workers[0]["worker_pid"] == 4976
    assert events.worker_count == 1


def test_follow_streams_reads_in_order(logger, caplog):
    stdout = io.BytesIO(b"[notice] first\n[warning] second\r\n")
    stderr = io.StringIO("[alert] third\n")
    thread = follow_streams([stdout, stderr], logger, RegisteredEvents())
    thread.join(timeout=5)
    assert not thread.is_alive()
    assert _records(caplog) == [
        (logging.INFO, "first"),
        (logging.WARNING, "second"),
        (logging.ERROR, "third"),
    ]