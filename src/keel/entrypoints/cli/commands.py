"""Developer commands: inspect and validate object classes.

Both commands take a ``MODULE:CLASS`` reference to a ValidatableObject
subclass importable from the current environment. Tables go to stdout
(``--json`` for machine-readable output); status lines go to stderr.

Failure modes
- Unimportable module or non-ValidatableObject target: usage error (exit 2).
- Unreadable JSON or unknown property in ``--data``: ``ClickException`` (exit 1).
- ``validate`` exits 1 when the object is invalid.
"""

from __future__ import annotations

import asyncio
import importlib
import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from keel.bootstrap import bootstrap
from keel.domain.collections import ValidatableList
from keel.domain.entity import Entity
from keel.domain.errors import KeelError
from keel.domain.rules.base import RunRulesFlag
from keel.domain.rules.manager import describe_rules
from keel.domain.validatable import ValidatableObject

from .helpers import error, success, warn

logger = logging.getLogger(__name__)


class ObjectClassType(click.ParamType):
    """Click parameter resolving ``MODULE:CLASS`` to a ValidatableObject subclass."""

    name = "MODULE:CLASS"

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> Any:
        if isinstance(value, type):
            return value
        module_name, sep, qualname = str(value).partition(":")
        if not sep or not module_name or not qualname:
            self.fail(f"Expected MODULE:CLASS, got {value!r}", param, ctx)
        try:
            target: Any = importlib.import_module(module_name)
        except ImportError as e:
            self.fail(f"Cannot import module {module_name!r}: {e}", param, ctx)
        for part in qualname.split("."):
            target = getattr(target, part, None)
        if not (isinstance(target, type) and issubclass(target, ValidatableObject)):
            self.fail(f"{value!r} is not a ValidatableObject subclass", param, ctx)
        return target


OBJECT_CLASS = ObjectClassType()


def _new_object(cls: type[ValidatableObject]) -> ValidatableObject:
    return cls.create() if issubclass(cls, Entity) else cls()


def _populate(obj: ValidatableObject, data: Mapping[str, Any]) -> None:
    """Silently load JSON-shaped ``data``, descending into child objects and lists."""
    plain: dict[str, Any] = {}
    for name, value in data.items():
        child = obj[name].child
        if isinstance(child, ValidatableList) and isinstance(value, list):
            if child.item_type is None:
                raise click.ClickException(
                    f"{type(obj).__name__}.{name} declares no item_type; cannot load a list."
                )
            items = []
            for item_data in value:
                item = _new_object(child.item_type)
                _populate(item, item_data)
                items.append(item)
            child.load(items)
        elif isinstance(child, ValidatableObject) and isinstance(value, Mapping):
            _populate(child, value)
        else:
            plain[name] = value
    obj.load_values(plain)


async def _build_and_validate(cls: type[ValidatableObject], data: Mapping[str, Any]) -> ValidatableObject:
    obj = _new_object(cls)
    _populate(obj, data)
    await obj.run_rules(RunRulesFlag.ALL)
    return obj


def _read_data(path: Path | None) -> dict[str, Any]:
    if path is None:
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise click.ClickException(f"Cannot read {path}: {e}") from e
    if not isinstance(data, dict):
        raise click.ClickException(f"{path} must contain a JSON object.")
    return data


@click.command()
@click.argument("target", type=OBJECT_CLASS)
@click.option("--json", "as_json", is_flag=True, help="Print the rules as JSON.")
def rules(target: type[ValidatableObject], as_json: bool) -> None:
    """List the rules TARGET registers (identity, order, triggers)."""
    bootstrap()
    described = describe_rules(_new_object(target).rule_manager)
    if as_json:
        click.echo(json.dumps(described, indent=2))
        return
    table = Table(title=f"Rules of {target.__name__}")
    table.add_column("Order", justify="right")
    table.add_column("Identity")
    table.add_column("Rule")
    table.add_column("Triggers")
    for entry in described:
        table.add_row(
            str(entry["order"]), entry["identity"], entry["rule"], ", ".join(entry["triggers"])
        )
    Console(soft_wrap=True).print(table)


@click.command()
@click.argument("target", type=OBJECT_CLASS)
@click.option(
    "--data",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON object of property values to load before validating.",
)
@click.option("--json", "as_json", is_flag=True, help="Print the messages as JSON.")
@click.pass_context
def validate(
    ctx: click.Context, target: type[ValidatableObject], data: Path | None, as_json: bool
) -> None:
    """Build TARGET, load --data, run every rule and report the messages.

    Exits with status 1 when the object is invalid.
    """
    values = _read_data(data)
    bootstrap()
    try:
        obj = asyncio.run(_build_and_validate(target, values))
    except ExceptionGroup as group:
        for exc in group.exceptions:
            logger.error("Rule failed: %r", exc)
        raise click.ClickException(f"{len(group.exceptions)} rule(s) failed while validating.") from group
    except KeelError as e:
        raise click.ClickException(str(e)) from e

    messages = obj.messages
    if as_json:
        click.echo(
            json.dumps(
                [
                    {"property": m.property_name, "text": m.text, "rule": m.rule_identity}
                    for m in messages
                ],
                indent=2,
            )
        )
    elif messages:
        table = Table(title=f"Messages for {target.__name__}")
        table.add_column("Property")
        table.add_column("Message")
        table.add_column("Rule")
        for m in messages:
            table.add_row(m.property_name, m.text, m.rule_identity or "")
        Console(soft_wrap=True).print(table)

    if obj.is_valid:
        success(f"{target.__name__} is valid.")
        return
    if not messages:
        warn(f"{target.__name__} is invalid but reported no messages.")
    error(f"{target.__name__} is invalid ({len(messages)} message(s)).")
    ctx.exit(1)
