"""Unit tests for keel.logging."""

import logging
from collections.abc import Iterator
from logging.handlers import MemoryHandler
from pathlib import Path

import pytest
from rich.logging import RichHandler

from keel.logging import (
    LibraryPrefixFilter,
    LoggingOptions,
    build_console_handler,
    build_flight_recorder,
    configure_logging,
    console_level,
)

# pylint: disable=magic-value-comparison


def _record(name: str) -> logging.LogRecord:
    return logging.LogRecord(name, logging.INFO, __file__, 1, "hello", None, None)


@pytest.fixture
def restore_root() -> Iterator[None]:
    """Put the root logger's handlers and level back after the test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    try:
        yield
    finally:
        for handler in root.handlers:
            if handler not in handlers:
                handler.close()
        root.handlers[:] = handlers
        root.setLevel(level)


def test_prefix_filter_tags_library_records():
    """Records from other libraries get a [library] prefix; keel's get none."""
    flt = LibraryPrefixFilter()
    ours, theirs = _record("keel.domain.entity"), _record("asyncio.base_events")
    assert flt.filter(ours) and flt.filter(theirs)
    assert ours.prefix == ""
    assert theirs.prefix == "[asyncio]"


def test_prefix_filter_matches_whole_package_name():
    """A library whose name merely starts with 'keel' is still a library."""
    record = _record("keelhaul.core")
    LibraryPrefixFilter().filter(record)
    assert record.prefix == "[keelhaul]"


@pytest.mark.parametrize(
    ("verbose", "quiet", "expected"),
    [
        (0, 0, logging.WARNING),
        (1, 0, logging.INFO),
        (2, 0, logging.DEBUG),
        (5, 0, logging.DEBUG),
        (0, 1, logging.ERROR),
        (0, 9, logging.CRITICAL),
        (1, 1, logging.WARNING),
    ],
)
def test_console_level(verbose, quiet, expected):
    """Each -v/-q moves one level from WARNING, clamped to DEBUG..CRITICAL."""
    assert console_level(verbose, quiet) == expected


def test_console_handler_levels():
    """Debug mode forces DEBUG; otherwise the requested level is kept."""
    assert isinstance(build_console_handler(logging.ERROR), RichHandler)
    assert build_console_handler(logging.ERROR).level == logging.ERROR
    assert build_console_handler(logging.ERROR, debug=True).level == logging.DEBUG


def test_flight_recorder_flushes_on_warning(tmp_path: Path):
    """Buffered DEBUG records reach the file once a WARNING arrives."""
    path = tmp_path / "latest.log"
    recorder = build_flight_recorder(path, capacity=10)
    logger = logging.getLogger("keel.tests.flight")
    logger.addHandler(recorder)
    logger.setLevel(logging.DEBUG)
    try:
        logger.debug("quiet detail")
        assert path.read_text(encoding="utf-8") == ""
        logger.warning("something broke")
        text = path.read_text(encoding="utf-8")
        assert "quiet detail" in text
        assert "something broke" in text
    finally:
        logger.removeHandler(recorder)
        recorder.close()


@pytest.mark.usefixtures("restore_root")
def test_configure_logging_installs_handlers_and_levels(tmp_path: Path):
    """The console handler always, the recorder on request, levels per logger."""
    options = LoggingOptions(
        level=logging.INFO,
        log_path=tmp_path / "run.log",
        flight_recorder=True,
        logger_levels={"keel.tests.noisy": logging.ERROR},
    )
    handlers = configure_logging(options)

    assert [type(h) for h in handlers] == [RichHandler, MemoryHandler]
    assert logging.getLogger().handlers == handlers
    assert logging.getLogger("keel.tests.noisy").level == logging.ERROR
    logging.getLogger("keel.tests.noisy").setLevel(logging.NOTSET)


@pytest.mark.usefixtures("restore_root")
def test_configure_logging_without_recorder():
    """Without the flight recorder only the console handler is installed."""
    handlers = configure_logging(LoggingOptions())
    assert [type(h) for h in handlers] == [RichHandler]
