"""The base reactive node: properties plus rules, validity and busy state."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from typing import Any, ClassVar

from keel.domain.messages import OBJECT_INVALID, Message, group_by_property
from keel.domain.node import GraphNode
from keel.domain.notifications import IS_BUSY, IS_SELF_BUSY, IS_SELF_VALID, IS_VALID
from keel.domain.properties import Property, PropertyInfo, PropertyManager, prop
from keel.domain.rules.base import CancellationToken, Rule, RunRulesFlag
from keel.domain.rules.manager import RuleManager
from keel.domain.services import ObjectServices, get_default_services
from keel.domain.tasks import TaskTracker

logger = logging.getLogger(__name__)


class ObjectInvalidRule(Rule):
    """Turns the ``object_invalid`` text into an object-level message."""

    def __init__(self) -> None:
        super().__init__(OBJECT_INVALID, identity="ObjectInvalid")

    def execute(self, target: Any, token: CancellationToken | None = None) -> list[Message]:
        text = target[OBJECT_INVALID].value
        return [Message(OBJECT_INVALID, text)] if text else []


def _collect_property_infos(cls: type) -> dict[str, PropertyInfo]:
    infos: dict[str, PropertyInfo] = {}
    for klass in reversed(cls.__mro__):
        for name, attr in vars(klass).items():
            if isinstance(attr, PropertyInfo):
                infos[name] = attr
    return infos


class ValidatableObject(GraphNode):  # pylint: disable=too-many-public-methods
    """An object whose declared properties are validated by rules.

    Subclasses declare properties with :func:`~keel.domain.properties.prop`
    and register extra rules on ``self.rule_manager`` in ``__init__``::

        class Person(ValidatableObject):
            name = prop(str, constraints=[Required()])

            def __init__(self, **kwargs):
                super().__init__(**kwargs)
                self.rule_manager.add_validation(
                    lambda p: "Too short" if len(p.name or "") < 2 else "", "name"
                )

    Setting a property runs the rules it triggers: synchronous rules before
    the assignment returns, asynchronous ones in the background. Await
    :meth:`wait_for_tasks` before trusting :attr:`is_valid` after a burst of
    changes.

    Args:
        services: Collaborators for this graph. When omitted the object uses
            its parent's services, or the installed defaults for a root.
    """

    META_NAMES: ClassVar[tuple[str, ...]] = (IS_VALID, IS_SELF_VALID, IS_BUSY, IS_SELF_BUSY)
    track_modifications: ClassVar[bool] = False
    _property_infos: ClassVar[dict[str, PropertyInfo]]

    object_invalid = prop(str, read_only=True, tracked=False, display_name="Object")

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls._property_infos = _collect_property_infos(cls)

    def __init__(self, *, services: ObjectServices | None = None) -> None:
        super().__init__()
        self._services = services
        self._tasks = TaskTracker(on_idle=self._state_changed)
        self._property_manager = PropertyManager(
            self,
            self._property_infos.values(),
            track_modifications=self.track_modifications,
        )
        self.rule_manager = RuleManager(self)
        translator = self.services.constraints
        for info in self._property_infos.values():
            self.rule_manager.add_rules(*translator.translate(info))
        self.rule_manager.add(ObjectInvalidRule())
        self._meta = self._meta_state()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} valid={self.is_valid} busy={self.is_busy}>"

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    @property
    def services(self) -> ObjectServices:
        if self._services is not None:
            return self._services
        if (parent := self.parent) is not None:
            return parent.services
        return get_default_services()

    def _next_execution_id(self) -> str:
        return self.services.id_generator.new_id()

    # ------------------------------------------------------------------
    # Property access
    # ------------------------------------------------------------------

    @property
    def property_manager(self) -> PropertyManager:
        return self._property_manager

    def __getitem__(self, name: str) -> Property:
        return self._property_manager[name]

    def __contains__(self, name: object) -> bool:
        return name in self._property_manager

    def try_get_property(self, name: str) -> Property | None:
        return self._property_manager.get(name)

    def _children(self) -> list[GraphNode]:
        return self._property_manager.children()

    def load_values(self, values: Mapping[str, Any]) -> None:
        """Silently load several property values, as when reading from a source."""
        with self.pause_all_actions():
            for name, value in values.items():
                self[name].load_value(value)

    # ------------------------------------------------------------------
    # Validity and busy state
    # ------------------------------------------------------------------

    @property
    def is_valid(self) -> bool:
        """Own properties and every child are valid."""
        return self._property_manager.is_valid

    @property
    def is_self_valid(self) -> bool:
        """Own properties carry no messages; children are not considered."""
        return self._property_manager.is_self_valid

    @property
    def is_busy(self) -> bool:
        """Any asynchronous rule or load is outstanding in this subtree."""
        return self._tasks.is_running or self._property_manager.is_busy

    @property
    def is_self_busy(self) -> bool:
        return self._tasks.is_self_running or self._property_manager.is_self_busy

    @property
    def messages(self) -> list[Message]:
        """All messages in this subtree, own properties first."""
        messages = self._property_manager.messages
        for child in self._property_manager.children():
            messages.extend(child.messages)
        return messages

    @property
    def self_messages(self) -> list[Message]:
        return self._property_manager.messages

    def mark_invalid(self, message: str) -> None:
        """Mark the whole object invalid with an object-level message."""
        self[OBJECT_INVALID].load_value(message)
        self.rule_manager.dispatch(OBJECT_INVALID)

    def clear_self_messages(self) -> None:
        self._property_manager.clear_self_messages()

    def clear_all_messages(self) -> None:
        self._property_manager.clear_all_messages()

    # ------------------------------------------------------------------
    # Forced rule runs
    # ------------------------------------------------------------------

    async def run_rules(
        self,
        flag: RunRulesFlag | str = RunRulesFlag.ALL,
        token: CancellationToken | None = None,
    ) -> None:
        """Run rules on demand and wait for them.

        Args:
            flag: ``RunRulesFlag.ALL`` clears every message in the subtree and
                re-runs children's rules then our own; ``RunRulesFlag.SELF``
                clears and re-runs only our own rules; the filter flags select
                own rules by execution history. A property name runs only the
                rules that property triggers.
            token: Cooperative cancellation signal passed to the rules.

        Raises:
            OperationCancelledError: If ``token`` was cancelled.
            ExceptionGroup: If asynchronous rules failed.
        """
        if isinstance(flag, str):
            await self.rule_manager.run_rules_for(flag, token)
            await self.wait_for_tasks()
            return
        if flag.includes_children:
            self.clear_all_messages()
            for child in self._property_manager.children():
                await child.run_rules(flag, token)  # type: ignore[attr-defined]
        elif RunRulesFlag.SELF in flag:
            self.clear_self_messages()
        await self.rule_manager.run_rules(flag, token)
        await self.wait_for_tasks()

    # ------------------------------------------------------------------
    # Outstanding work
    # ------------------------------------------------------------------

    async def wait_for_tasks(self) -> None:
        """Wait until every rule run and load in this subtree has finished.

        Raises:
            ExceptionGroup: Collects the exceptions of failed asynchronous
                rules started in this subtree since the last wait.
        """
        await self._tasks.wait()
        errors: list[Exception] = []
        for child in self._property_manager.children():
            try:
                await child.wait_for_tasks()
            except ExceptionGroup as group:
                errors.extend(group.exceptions)
        await self._tasks.wait()
        errors.extend(e for e in self._tasks.pop_errors() if isinstance(e, Exception))
        if errors:
            raise ExceptionGroup(
                f"{len(errors)} asynchronous rule(s) failed in {type(self).__name__}", errors
            )

    def _track_task(self, task: asyncio.Future) -> None:
        self._tasks.add(task, own=True)
        node = self.parent
        while node is not None:
            node._tasks.add(task, own=False)  # pylint: disable=protected-access
            node = node.parent
        self._state_changed()

    # ------------------------------------------------------------------
    # Change handling (called by properties and the rule manager)
    # ------------------------------------------------------------------

    def _before_property_set(self, slot: Property) -> None:
        """Hook run before a property value is replaced."""

    def _property_changed(self, slot: Property) -> None:
        if self._paused:
            self._state_changed()
            return
        self._notify(slot.name)
        self.rule_manager.dispatch(slot.name)
        self._state_changed()
        self._propagate_change(slot.name)

    def _nested_property_changed(self, path: str) -> None:
        if self._paused:
            return
        self.rule_manager.dispatch(path)
        self._propagate_change(path)

    def _merge_rule_messages(self, rule_identity: str, messages: Iterable[Message]) -> None:
        grouped = group_by_property(messages)
        for name in grouped:
            if name not in self._property_manager:
                logger.warning(
                    "Rule %s produced a message for unknown property %s.%s; dropped",
                    rule_identity,
                    type(self).__name__,
                    name,
                )
        for slot in self._property_manager:
            new = grouped.get(slot.name, [])
            if slot.messages_for_rule(rule_identity) != new:
                slot._replace_rule_messages(rule_identity, new)  # pylint: disable=protected-access
                slot._state_changed(bubble=False)  # pylint: disable=protected-access
        self._state_changed()


ValidatableObject._property_infos = _collect_property_infos(  # pylint: disable=protected-access
    ValidatableObject
)
