"""keel CLI entry point.

Defines the top-level ``keel`` command (via Click-Extra) and registers the
developer commands:

- ``keel rules MODULE:CLASS`` lists the rules an object class registers.
- ``keel validate MODULE:CLASS`` builds an object, loads values, runs every
  rule and reports the messages.

Examples
    $ keel --version
    $ keel rules myapp.models:Customer
    $ keel -v validate myapp.models:Customer --data customer.json
"""

import logging
from pathlib import Path

import click
import click_extra as clickx

from keel import __version__
from keel.config import default_log_path, get_id_generator_name
from keel.domain.errors import UnknownIdGeneratorError
from keel.logging import LoggingOptions, configure_logging, console_level, log_startup

from .commands import rules as rules_command
from .commands import validate as validate_command
from .helpers import hyperlink, parse_log_level


logger = logging.getLogger(__name__)


HELP = """KEEL command-line interface.

    KEEL is a runtime object model for validated, change-tracked domain
    aggregates. These commands inspect the rules registered by your object
    classes and validate sample data against them without writing any code.
    """


EPILOG = "\b\n" + "\n".join(
    [
        f"{click.style('See Also:', fg='blue', bold=True, underline=True)}",
        "  Python logging: " + hyperlink("https://docs.python.org/3/library/logging.html"),
    ]
)


@clickx.extra_group(
    version=__version__,
    help=HELP,
    params=[
        clickx.ColorOption(show_envvar=True),
        clickx.TimerOption(show_envvar=True),
        clickx.ExtraVersionOption(),
    ],
    epilog=EPILOG,
)
@click.option(
    "--verbose",
    "-v",
    "verbose_count",
    count=True,
    help="Raise verbosity above WARNING by one level per repetition.",
    default=0,
)
@click.option(
    "--quiet",
    "-q",
    "quiet_count",
    count=True,
    help="Lower verbosity below WARNING by one level per repetition.",
    default=0,
)
@click.option(
    "--debug/--no-debug",
    is_flag=True,
    help="Debug console format: timestamps, logger names and source locations.",
    default=False,
)
@click.option(
    "--log-path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="File the flight recorder writes to.",
    default=default_log_path,
    envvar="KEEL_LOG_PATH",
    show_default="<user log dir>/latest.log",
    show_envvar=True,
)
@click.option(
    "--flight-recorder-capacity",
    type=int,
    default=2000,
    hidden=True,
    envvar="KEEL_FLIGHT_RECORDER_CAPACITY",
    show_envvar=True,
    help="Capacity of the flight recorder (in number of log records).",
)
@click.option(
    "--flight-recorder/--no-flight-recorder",
    "flight_recorder",
    is_flag=True,
    help=(
        "Keep the last N DEBUG records in memory and write them to --log-path "
        "when a WARNING or ERROR is logged (or on exit with --force-flush)."
    ),
    default=True,
    show_envvar=True,
)
@click.option(
    "--force-flush/--no-force-flush",
    "force_flush_flight_recorder",
    is_flag=True,
    help="Write the flight recorder to --log-path on exit even if nothing went wrong.",
    default=False,
    show_default=True,
    show_envvar=True,
)
@click.option(
    "-L",
    "--logger-level",
    "logger_levels",
    multiple=True,
    callback=parse_log_level,
    help=(
        "Set the minimum level of a logger (NAME=LEVEL), e.g. "
        "-L keel.domain.rules.manager=DEBUG. Repeatable, or via "
        "KEEL_LOGGER_LEVELS (comma/space list)."
    ),
    default=("asyncio=WARNING",),
    envvar="KEEL_LOGGER_LEVELS",
    show_default=True,
    show_envvar=True,
)
@clickx.pass_context
def keel(  # pylint: disable=too-many-arguments, too-many-positional-arguments
    ctx: click.Context,
    verbose_count: int,
    quiet_count: int,
    debug: bool,
    log_path: Path,
    flight_recorder_capacity: int,
    flight_recorder: bool,
    force_flush_flight_recorder: bool,
    logger_levels: dict[str, int],
) -> None:
    """KEEL command-line interface."""

    options = LoggingOptions(
        level=console_level(verbose_count, quiet_count),
        debug=debug,
        color=ctx.color is not False,
        log_path=log_path,
        flight_recorder=flight_recorder,
        capacity=flight_recorder_capacity,
        force_flush=force_flush_flight_recorder,
        logger_levels=logger_levels,
    )
    handlers = configure_logging(options)
    log_startup(
        logger,
        options,
        handlers,
        app_version=__version__,
        id_generator=_configured_id_generator(),
    )

    ctx.call_on_close(logging.shutdown)


def _configured_id_generator() -> str:
    try:
        return get_id_generator_name()
    except UnknownIdGeneratorError as e:
        raise click.ClickException(str(e)) from e


keel.add_command(rules_command)
keel.add_command(validate_command)
