"""Per-object rule registry and dispatcher."""

from __future__ import annotations

import asyncio
import inspect
import itertools
import logging
from bisect import insort
from collections.abc import Awaitable, Callable, Iterable
from typing import TYPE_CHECKING, Any

from keel.domain.errors import NoEventLoopError, OperationCancelledError, RuleNotAddedError
from keel.domain.messages import CANCELLED_TEXT, Message
from keel.domain.rules.base import CancellationToken, Rule, RunRulesFlag
from keel.domain.rules.fluent import (
    ActionRule,
    AsyncActionRule,
    AsyncValidationRule,
    ValidationRule,
)

if TYPE_CHECKING:
    from keel.domain.properties import Property
    from keel.domain.validatable import ValidatableObject

logger = logging.getLogger(__name__)


class RuleManager:
    """Owns the ordered rules of one object and runs them.

    Rules are kept sorted by ``(order, registration sequence)``. Synchronous
    rules complete inline. Asynchronous rules are scheduled as tasks on the
    running event loop after their trigger properties are marked busy; their
    messages are merged when they finish, replacing only the messages that
    carry the same rule identity.

    Args:
        target: The object the rules evaluate.
    """

    def __init__(self, target: ValidatableObject) -> None:
        self._target = target
        self._entries: list[tuple[int, int, Rule]] = []
        self._sequence = itertools.count(1)

    def __iter__(self):
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, rule: object) -> bool:
        return any(entry[2] is rule for entry in self._entries)

    @property
    def rules(self) -> list[Rule]:
        """Registered rules in execution order."""
        return [entry[2] for entry in self._entries]

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add(self, rule: Rule) -> Rule:
        """Register ``rule`` and return it."""
        index = next(self._sequence)
        if rule.identity is None:
            rule.identity = f"{index}:{rule.name}"
        rule.on_added(self)
        insort(self._entries, (rule.order, index, rule), key=lambda e: (e[0], e[1]))
        logger.debug(
            "Registered rule %s on %s (triggers: %s)",
            rule.identity,
            type(self._target).__name__,
            ", ".join(rule.trigger_properties),
        )
        if rule.run_on_add:
            self._execute(rule, None)
        return rule

    def add_rules(self, *rules: Rule) -> None:
        for rule in rules:
            self.add(rule)

    def add_validation(self, fn: Callable[..., str | None], trigger: str) -> ValidationRule:
        rule = ValidationRule(fn, trigger)
        self.add(rule)
        return rule

    def add_validation_async(
        self, fn: Callable[..., Awaitable[str | None]], trigger: str
    ) -> AsyncValidationRule:
        rule = AsyncValidationRule(fn, trigger)
        self.add(rule)
        return rule

    def add_action(self, fn: Callable[..., None], *triggers: str) -> ActionRule:
        rule = ActionRule(fn, *triggers)
        self.add(rule)
        return rule

    def add_action_async(self, fn: Callable[..., Awaitable[None]], *triggers: str) -> AsyncActionRule:
        rule = AsyncActionRule(fn, *triggers)
        self.add(rule)
        return rule

    def rules_triggered_by(self, property_name: str) -> list[Rule]:
        return [rule for rule in self.rules if rule.is_triggered_by(property_name)]

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(self, property_name: str) -> list[asyncio.Task]:
        """Run every rule triggered by ``property_name`` without blocking.

        Returns:
            The tasks scheduled for asynchronous rules (possibly empty).
        """
        rules = self.rules_triggered_by(property_name)
        if rules:
            logger.debug(
                "Dispatching %d rule(s) for %s.%s",
                len(rules),
                type(self._target).__name__,
                property_name,
            )
        tasks = []
        for rule in rules:
            if (task := self._execute(rule, None)) is not None:
                tasks.append(task)
        return tasks

    async def run_rules(
        self, flag: RunRulesFlag = RunRulesFlag.ALL, token: CancellationToken | None = None
    ) -> None:
        """Run the rules selected by ``flag`` in order, awaiting each one."""
        await self._run_in_order([r for r in self.rules if flag.selects(r)], token)

    async def run_rules_for(
        self, property_name: str, token: CancellationToken | None = None
    ) -> None:
        """Run the rules triggered by ``property_name`` in order, awaiting each one."""
        await self._run_in_order(self.rules_triggered_by(property_name), token)

    async def run_rule(self, rule: Rule, token: CancellationToken | None = None) -> None:
        """Run a single registered rule and await it."""
        if rule not in self:
            raise RuleNotAddedError(rule.name)
        await self._run_in_order([rule], token)

    async def _run_in_order(self, rules: Iterable[Rule], token: CancellationToken | None) -> None:
        for rule in rules:
            if token is not None and token.is_cancellation_requested:
                break
            if (task := self._execute(rule, token)) is not None:
                # failures surface through wait_for_tasks()
                await asyncio.wait([task])
        if token is not None and token.is_cancellation_requested:
            raise OperationCancelledError()

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _execute(self, rule: Rule, token: CancellationToken | None) -> asyncio.Task | None:
        target = self._target
        try:
            result = rule.execute(target, token)
        except OperationCancelledError:
            logger.info("Rule %s cancelled on %s", rule.identity, type(target).__name__)
            self._apply(rule, self._trigger_messages(rule, CANCELLED_TEXT))
            return None
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Rule %s failed on %s", rule.identity, type(target).__name__)
            self._apply(rule, self._trigger_messages(rule, _describe(exc)))
            raise

        if not inspect.isawaitable(result):
            self._apply(rule, result)
            return None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            if inspect.iscoroutine(result):
                result.close()
            raise NoEventLoopError(f"Rule {rule.identity}") from exc

        execution_id = target._next_execution_id()  # pylint: disable=protected-access
        busy = self._own_triggers(rule)
        for slot in busy:
            slot._mark_busy(execution_id)  # pylint: disable=protected-access
        task = loop.create_task(
            self._complete(rule, result, execution_id, busy),
            name=f"keel-rule-{rule.identity}",
        )
        target._track_task(task)  # pylint: disable=protected-access
        return task

    async def _complete(
        self,
        rule: Rule,
        awaitable: Awaitable[Iterable[Message]],
        execution_id: str,
        busy: list[Property],
    ) -> None:
        target = self._target
        try:
            messages = await awaitable
        except OperationCancelledError:
            logger.info("Rule %s cancelled on %s", rule.identity, type(target).__name__)
            self._apply(rule, self._trigger_messages(rule, CANCELLED_TEXT))
        except asyncio.CancelledError:
            self._apply(rule, self._trigger_messages(rule, CANCELLED_TEXT))
            raise
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Rule %s failed on %s", rule.identity, type(target).__name__)
            self._apply(rule, self._trigger_messages(rule, _describe(exc)))
            raise
        else:
            self._apply(rule, messages)
        finally:
            for slot in busy:
                slot._unmark_busy(execution_id)  # pylint: disable=protected-access

    def _own_triggers(self, rule: Rule) -> list[Property]:
        manager = self._target.property_manager
        return [manager[name] for name in rule.trigger_properties if name in manager]

    def _trigger_messages(self, rule: Rule, text: str) -> list[Message]:
        return [Message(slot.name, text) for slot in self._own_triggers(rule)]

    def _apply(self, rule: Rule, messages: Iterable[Message] | None) -> None:
        stamped = tuple(m.with_identity(rule.identity) for m in (messages or ()))  # type: ignore[arg-type]
        rule.executed = True
        rule.messages = stamped
        self._target._merge_rule_messages(rule.identity, stamped)  # pylint: disable=protected-access


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def describe_rules(manager: RuleManager) -> list[dict[str, Any]]:
    """Return a plain description of the registered rules (for tooling)."""
    return [
        {
            "identity": rule.identity,
            "rule": rule.name,
            "order": rule.order,
            "triggers": list(rule.trigger_properties),
        }
        for rule in manager.rules
    ]
