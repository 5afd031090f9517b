"""Declarative constraints and their translation into rules.

Constraints are attached to property declarations::

    name = prop(str, constraints=[Required(), MaxLength(50)])

When an object is constructed, the ConstraintTranslator turns each one into
an ordinary Rule whose identity is ``"<Owner>.<property>:<Constraint>"``.
The identity depends only on the declaration, so it is the same on every
recreation of the object.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from keel.domain.errors import RuleError
from keel.domain.rules import builtin

if TYPE_CHECKING:
    from keel.domain.properties import PropertyInfo
    from keel.domain.rules.base import Rule

# pylint: disable=too-few-public-methods


class UnknownConstraintError(RuleError):
    """Raised when no rule factory is registered for a constraint type."""

    def __init__(self, constraint_type: str) -> None:
        super().__init__(f"No rule factory registered for constraint {constraint_type}.")
        self.constraint_type = constraint_type


@dataclass(frozen=True)
class Constraint:
    """Base class for declarative constraints."""

    message: str | None = field(default=None, kw_only=True)


@dataclass(frozen=True)
class Required(Constraint):
    """The property must have a value."""


@dataclass(frozen=True)
class StringLength(Constraint):
    """Text length must lie within ``minimum``..``maximum``."""

    maximum: int
    minimum: int = 0


@dataclass(frozen=True)
class MinLength(Constraint):
    length: int


@dataclass(frozen=True)
class MaxLength(Constraint):
    length: int


@dataclass(frozen=True)
class Range(Constraint):
    minimum: Any
    maximum: Any


@dataclass(frozen=True)
class Pattern(Constraint):
    regex: str | re.Pattern[str]


@dataclass(frozen=True)
class EmailAddress(Constraint):
    """The property must hold an e-mail address."""


RuleFactory = Callable[[str, Any], "Rule"]

DEFAULT_FACTORIES: dict[type[Constraint], RuleFactory] = {
    Required: lambda name, c: builtin.RequiredRule(name, c.message),
    StringLength: lambda name, c: builtin.StringLengthRule(
        name, c.maximum, c.minimum, message=c.message
    ),
    MinLength: lambda name, c: builtin.MinLengthRule(name, c.length, message=c.message),
    MaxLength: lambda name, c: builtin.MaxLengthRule(name, c.length, message=c.message),
    Range: lambda name, c: builtin.RangeRule(name, c.minimum, c.maximum, message=c.message),
    Pattern: lambda name, c: builtin.RegexRule(name, c.regex, message=c.message),
    EmailAddress: lambda name, c: builtin.EmailAddressRule(name, c.message),
}


class ConstraintTranslator:
    """Registry mapping constraint types to rule factories."""

    def __init__(self, factories: dict[type[Constraint], RuleFactory] | None = None) -> None:
        self._factories: dict[type[Constraint], RuleFactory] = dict(
            DEFAULT_FACTORIES if factories is None else factories
        )

    def register(self, constraint_type: type[Constraint], factory: RuleFactory) -> None:
        """Register (or replace) the factory for ``constraint_type``."""
        self._factories[constraint_type] = factory

    def _factory_for(self, constraint_type: type) -> RuleFactory:
        for klass in constraint_type.__mro__:
            if klass in self._factories:
                return self._factories[klass]
        raise UnknownConstraintError(constraint_type.__name__)

    def translate(self, info: PropertyInfo) -> list[Rule]:
        """Return one rule per constraint declared on ``info``."""
        owner = info.owner.__name__ if info.owner is not None else "?"
        rules = []
        for constraint in info.constraints:
            rule = self._factory_for(type(constraint))(info.name, constraint)
            rule.identity = f"{owner}.{info.name}:{type(constraint).__name__}"
            rules.append(rule)
        return rules
