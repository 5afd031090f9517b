"""Configuration utilities for keel.

This module centralizes the environment variables read by the bootstrap and
the CLI.
"""

import os
from pathlib import Path

from platformdirs import user_log_dir

from keel.domain.errors import UnknownIdGeneratorError

ID_GENERATOR_ENV = "KEEL_ID_GENERATOR"  # pragma: no mutate
LOG_PATH_ENV = "KEEL_LOG_PATH"  # pragma: no mutate

ID_GENERATORS = ("simple", "ulid", "uuid4")
DEFAULT_ID_GENERATOR = "simple"


def get_id_generator_name() -> str:
    """Get the execution-id generator selected in the environment.

    Returns:
        The lower-cased value of `KEEL_ID_GENERATOR`, or `"simple"` when unset.

    Raises:
        UnknownIdGeneratorError: If the value names an unsupported generator.
    """
    name = (os.environ.get(ID_GENERATOR_ENV) or DEFAULT_ID_GENERATOR).strip().lower()
    if name not in ID_GENERATORS:
        raise UnknownIdGeneratorError(name, ID_GENERATORS)
    return name


def default_log_path() -> Path:
    """Default flight-recorder file: `latest.log` in the user log directory."""
    return Path(user_log_dir("keel", appauthor=False, ensure_exists=True)) / "latest.log"
