import logging
from datetime import datetime, timedelta, timezone

import pytest

from nginxwrapper.logdriver import (
    LogDriver,
    LogRecordData,
    LogrusLevel,
    SlfLevel,
    convert_logrus_level_to_slf_level,
    convert_slf_level_to_logrus_level,
    time_from_microseconds,
)


class _ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def output():
    logger = logging.getLogger("tests.logdriver")
    logger.propagate = False
    handler = _ListHandler()
    logger.addHandler(handler)
    yield logger, handler
    logger.removeHandler(handler)


PAIRS = [
    (LogrusLevel.TRACE, SlfLevel.TRACE),
    (LogrusLevel.DEBUG, SlfLevel.DEBUG),
    (LogrusLevel.INFO, SlfLevel.INFO),
    (LogrusLevel.WARN, SlfLevel.WARN),
    (LogrusLevel.ERROR, SlfLevel.ERROR),
    (LogrusLevel.PANIC, SlfLevel.PANIC),
    (LogrusLevel.FATAL, SlfLevel.FATAL),
]


def test_name():
    assert LogDriver().name() == "logrus"


@pytest.mark.parametrize("logrus_level, slf_level", PAIRS)
def test_convert_logrus_to_slf_known_levels(logrus_level, slf_level):
    assert convert_logrus_level_to_slf_level(logrus_level) == slf_level


@pytest.mark.parametrize("logrus_level, slf_level", PAIRS)
def test_convert_slf_to_logrus_known_levels(logrus_level, slf_level):
    assert convert_slf_level_to_logrus_level(slf_level) == logrus_level


def test_convert_logrus_to_slf_unknown_level():
    assert int(convert_logrus_level_to_slf_level(1000)) == 1000


def test_convert_slf_to_logrus_unknown_level():
    assert int(convert_slf_level_to_logrus_level(1000)) == 1000


def test_time_from_microseconds():
    unix_micros = 1594328693237135
    unix_nanos = 1594328693237135000
    stamp = time_from_microseconds(unix_micros)
    epoch = datetime(1970, 1, 1, tzinfo=timezone.utc)
    assert (stamp - epoch) // timedelta(microseconds=1) * 1000 == unix_nanos
    assert stamp == datetime(2020, 7, 9, 21, 4, 53, 237135, tzinfo=timezone.utc)


def test_get_level_uses_mapping_first():
    driver = LogDriver(logger_to_level_mapping={"pm": SlfLevel.ERROR}, level=LogrusLevel.DEBUG)
    assert driver.get_level("pm") == SlfLevel.ERROR
    assert driver.get_level("other") == SlfLevel.DEBUG


def test_print_suppressed_below_level(output):
    logger, handler = output
    driver = LogDriver(level=LogrusLevel.INFO, output=logger)
    result = driver.print(LogRecordData(level=SlfLevel.DEBUG, logger="x", args=("hidden",)))
    assert result is None
    assert handler.records == []


def test_print_with_format_and_prepended_name(output):
    logger, handler = output
    driver = LogDriver(prepend_logger_name=True, output=logger)
    result = driver.print(LogRecordData(level=SlfLevel.WARN, logger="core", format="value %d", args=(3,)))
    assert result == "core: value 3"
    assert handler.records[0].getMessage() == "core: value 3"
    assert handler.records[0].levelno == logging.WARNING


def test_print_without_format_joins_operands(output):
    logger, handler = output
    driver = LogDriver(output=logger)
    result = driver.print(LogRecordData(level=SlfLevel.ERROR, logger="core", args=("a", 1, 2)))
    assert result == "a1 2"
    assert handler.records[0].levelno == logging.ERROR


def test_print_prepends_name_without_format(output):
    logger, _ = output
    driver = LogDriver(prepend_logger_name=True, output=logger)
    result = driver.print(LogRecordData(level=SlfLevel.INFO, logger="core", args=("started",)))
    assert result == "core: started"


def test_print_carries_time_and_fields(output):
    logger, handler = output
    driver = LogDriver(output=logger)
    micros = 1594328693237135
    result = driver.print(LogRecordData(level=SlfLevel.INFO, logger="core", args=("x",),
                                        fields={"pid": 7}, time=micros))
    assert result == "x"
    assert len(handler.records) == 1
    record = handler.records[0]
    assert record.getMessage() == "x"
    assert record.created == pytest.approx(micros / 1_000_000)
    assert record.fields == {"pid": 7}
    assert record.logger_name == "core"