"""Logging setup for the keel CLI.

Library code only ever calls ``logging.getLogger(__name__)``; the handlers
below are installed by the ``keel`` command alone, from a
:class:`LoggingOptions` built out of its flags.

Console output goes through Rich. The flight recorder keeps recent records
in memory at DEBUG granularity and writes them to a file once a WARNING
arrives, so a failing ``keel validate`` run can be diagnosed afterwards.
"""

from __future__ import annotations

import logging
import os
import platform
import sys
from dataclasses import dataclass, field
from logging.handlers import MemoryHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

PROJECT_PREFIX = "keel"


@dataclass(frozen=True)
class LoggingOptions:  # pylint: disable=too-many-instance-attributes
    """Logging choices made on the command line.

    Attributes:
        level: Minimum console level.
        debug: Use the debug console format (forces DEBUG).
        color: Allow colored console output.
        log_path: Flight-recorder file.
        flight_recorder: Whether the flight recorder is installed.
        capacity: Flight-recorder buffer size, in records.
        force_flush: Write the flight recorder on exit even without a warning.
        logger_levels: Per-logger minimum levels.
    """

    level: int = logging.WARNING
    debug: bool = False
    color: bool = True
    log_path: Path | None = None
    flight_recorder: bool = False
    capacity: int = 2000
    force_flush: bool = False
    logger_levels: dict[str, int] = field(default_factory=dict)


def console_level(verbose: int, quiet: int) -> int:
    """WARNING moved one level per ``-v``/``-q``, clamped to DEBUG..CRITICAL."""
    level = logging.WARNING - 10 * verbose + 10 * quiet
    return max(logging.DEBUG, min(logging.CRITICAL, level))


class LibraryPrefixFilter(logging.Filter):
    """Prefix records from other libraries with ``[library]``.

    keel's own records get an empty prefix. Nothing is dropped.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        top = record.name.split(".", 1)[0]
        record.prefix = "" if top == PROJECT_PREFIX else f"[{top}]"
        return True


def build_console_handler(
    level: int = logging.WARNING, debug: bool = False, color: bool = True
) -> RichHandler:
    """Build the stderr console handler; debug mode forces DEBUG."""
    console = Console(color_system="auto" if color else None, stderr=True)
    handler = RichHandler(
        level=logging.DEBUG if debug else level,
        console=console,
        rich_tracebacks=True,
        show_time=False,
        show_path=debug,
        enable_link_path=debug,
    )
    if debug:
        handler.setFormatter(logging.Formatter("%(asctime)s %(name)s: %(message)s"))
    else:
        handler.setFormatter(logging.Formatter("%(prefix)s %(message)s"))
        handler.addFilter(LibraryPrefixFilter())
    return handler


def build_flight_recorder(
    path: Path, capacity: int = 2000, flush_on_close: bool = False
) -> MemoryHandler:
    """Buffer up to ``capacity`` records and write them to ``path`` on a WARNING.

    The file is truncated each time a recorder is built.
    """
    file_handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter("[%(asctime)s] %(levelname)s %(name)s:%(lineno)d: %(message)s")
    )
    return MemoryHandler(
        capacity=capacity,
        flushLevel=logging.WARNING,
        target=file_handler,
        flushOnClose=flush_on_close,
    )


def configure_logging(options: LoggingOptions) -> list[logging.Handler]:
    """Install the CLI handlers on the root logger and apply per-logger levels.

    Returns:
        The installed handlers.
    """
    handlers: list[logging.Handler] = [
        build_console_handler(options.level, options.debug, options.color)
    ]
    if options.flight_recorder and options.log_path is not None:
        handlers.append(
            build_flight_recorder(options.log_path, options.capacity, options.force_flush)
        )
    # handlers filter; the root logger passes everything through
    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)
    for name, level in options.logger_levels.items():
        logging.getLogger(name).setLevel(level)
    return handlers


def log_startup(
    logger: logging.Logger,
    options: LoggingOptions,
    handlers: list[logging.Handler],
    *,
    app_version: str,
    id_generator: str,
) -> None:
    """Log an INFO summary of the run, then DEBUG diagnostics."""
    logger.info(
        "KEEL %s: console=%s, flight-recorder=%s",
        app_version,
        logging.getLevelName(options.level),
        "ON" if options.flight_recorder else "OFF",
    )
    logger.debug("Python: %s", sys.version.split()[0])
    logger.debug("Platform: %s %s", platform.system(), platform.release())
    logger.debug("PID: %s", os.getpid())
    logger.debug("Id generator: %s", id_generator)
    logger.debug("Handlers: %s", [type(h).__name__ for h in handlers])
    if options.flight_recorder:
        logger.debug(
            "Flight recorder: path=%s, capacity=%s, flush_on_close=%s",
            options.log_path or "<none>",
            options.capacity,
            options.force_flush,
        )
    logger.debug(
        "Per-logger overrides: %s",
        {name: logging.getLevelName(lvl) for name, lvl in options.logger_levels.items()}
        or "<none>",
    )
