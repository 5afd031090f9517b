"""Rule abstractions.

A rule is bound to a fixed tuple of trigger property names. When one of them
changes, the owning object's RuleManager executes the rule. ``execute``
returns the rule's messages directly (synchronous rule) or an awaitable of
them (asynchronous rule); the manager tells the two apart by the result.
"""

from __future__ import annotations

import abc
import enum
from collections.abc import Awaitable, Iterable
from typing import TYPE_CHECKING, Any

from keel.domain.errors import InvalidTriggerError, OperationCancelledError

if TYPE_CHECKING:
    from keel.domain.messages import Message
    from keel.domain.rules.manager import RuleManager

RuleResult = Iterable["Message"] | Awaitable[Iterable["Message"]]


class RunRulesFlag(enum.Flag):
    """Selects which rules a forced run executes."""

    NONE = 0
    NOT_EXECUTED = 1
    EXECUTED = 2
    NO_MESSAGES = 4
    MESSAGES = 8
    SELF = 16
    CHILDREN = 32
    ALL = 63

    def selects(self, rule: Rule) -> bool:
        """True if ``rule`` should run under this flag."""
        if RunRulesFlag.SELF in self:
            return True
        return bool(
            (RunRulesFlag.NOT_EXECUTED in self and not rule.executed)
            or (RunRulesFlag.EXECUTED in self and rule.executed)
            or (RunRulesFlag.NO_MESSAGES in self and not rule.messages)
            or (RunRulesFlag.MESSAGES in self and rule.messages)
        )

    @property
    def includes_children(self) -> bool:
        return RunRulesFlag.CHILDREN in self


class CancellationToken:
    """Cooperative cancellation signal handed to rules by forced runs."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def is_cancellation_requested(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        """Raise OperationCancelledError if cancellation was requested."""
        if self._cancelled:
            raise OperationCancelledError()


class Rule(abc.ABC):
    """A unit of validation or side-effect logic bound to trigger properties.

    Args:
        *trigger_properties: Property names (dotted for nested changes, e.g.
            ``"phones.phone_type"``) whose changes run this rule.
        order: Lower orders run first; ties run in registration order.
        identity: Deterministic token correlating this rule's messages across
            recreations of the same object. Synthesized on registration when
            omitted.
    """

    order: int = 0
    run_on_add: bool = False

    def __init__(
        self,
        *trigger_properties: str,
        order: int | None = None,
        identity: str | None = None,
    ) -> None:
        if not trigger_properties:
            raise InvalidTriggerError(type(self).__name__)
        self.trigger_properties: tuple[str, ...] = tuple(trigger_properties)
        if order is not None:
            self.order = order
        self.identity = identity
        self.executed = False
        self.messages: tuple[Message, ...] = ()

    @property
    def name(self) -> str:
        return type(self).__name__

    def is_triggered_by(self, property_name: str) -> bool:
        return property_name in self.trigger_properties

    def on_added(self, manager: RuleManager) -> None:
        """Hook called once when the rule is registered with ``manager``."""

    @abc.abstractmethod
    def execute(self, target: Any, token: CancellationToken | None = None) -> RuleResult:
        """Evaluate the rule against ``target`` and return its messages."""

    def __repr__(self) -> str:
        triggers = ", ".join(self.trigger_properties)
        return f"<{self.name} {self.identity or '?'} on ({triggers})>"


class AsyncRule(Rule):
    """Base for rules whose body awaits (remote lookups, I/O)."""

    @abc.abstractmethod
    async def execute(  # type: ignore[override]
        self, target: Any, token: CancellationToken | None = None
    ) -> Iterable[Message]:
        """Evaluate the rule against ``target`` and return its messages."""
