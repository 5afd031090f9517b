"""Property declarations, runtime property slots and the property manager.

Properties are declared on a class with :func:`prop`, which returns a
:class:`PropertyInfo` descriptor::

    class Person(Entity):
        name = prop(str, constraints=[Required()])
        email = prop(str)

At construction each object gets one runtime :class:`Property` per
declaration, held by its :class:`PropertyManager`. Attribute access
(``person.name``) goes through the descriptor to the runtime slot, so the
slot can track messages, busy state and modifications; ``person["name"]``
returns the slot itself.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import weakref
from collections.abc import Awaitable, Callable, Iterable, Iterator, Sequence
from typing import TYPE_CHECKING, Any

from keel.domain.errors import (
    ChildObjectBusyError,
    NoEventLoopError,
    PropertyNotFoundError,
    PropertyReadOnlyError,
)
from keel.domain.messages import LOAD_IDENTITY_PREFIX, Message
from keel.domain.node import GraphNode, is_node
from keel.domain.notifications import IS_BUSY, IS_VALID, MESSAGES, VALUE, Observable

if TYPE_CHECKING:
    from keel.domain.rules.constraints import Constraint
    from keel.domain.services import ObjectServices
    from keel.domain.validatable import ValidatableObject

logger = logging.getLogger(__name__)

Loader = Callable[[], Any] | Callable[[], Awaitable[Any]]


# ============================================================================
#                               Declaration
# ============================================================================


class PropertyInfo:  # pylint: disable=too-many-instance-attributes
    """Class-level declaration of a property, usable as a descriptor.

    Args:
        type_: Declared value type. Informational; values are not coerced.
        default: Initial value loaded (silently) at construction.
        default_factory: Zero-argument callable producing the initial value.
            Use it for child objects and lists.
        read_only: Reject the public set path (``obj.x = ...``).
        display_name: Human-readable name used in messages.
        constraints: Declarative constraints translated into rules when an
            object is constructed.
        tracked: Whether changes mark an entity modified.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        type_: type = object,
        *,
        default: Any = None,
        default_factory: Callable[[], Any] | None = None,
        read_only: bool = False,
        display_name: str | None = None,
        constraints: Sequence[Constraint] = (),
        tracked: bool = True,
    ) -> None:
        self.type = type_
        self.default = default
        self.default_factory = default_factory
        self.read_only = read_only
        self._display_name = display_name
        self.constraints = tuple(constraints)
        self.tracked = tracked
        self.name = ""
        self.owner: type | None = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name
        self.owner = owner

    @property
    def display_name(self) -> str:
        """Explicit display name, or the property name in title case."""
        return self._display_name or self.name.replace("_", " ").title()

    def initial_value(self, services: ObjectServices | None = None) -> Any:
        """Return the value a fresh object starts with.

        A factory that is a ValidatableObject class receives ``services``, so
        child objects built during the owner's construction share the
        owner's explicit services.
        """
        factory = self.default_factory
        if factory is None:
            return self.default
        if services is not None and _builds_object(factory):
            return factory(services=services)
        return factory()

    def __get__(self, instance: ValidatableObject | None, owner: type) -> Any:
        if instance is None:
            return self
        return instance[self.name].get()

    def __set__(self, instance: ValidatableObject, value: Any) -> None:
        instance[self.name].set(value)

    def __repr__(self) -> str:
        owner = self.owner.__qualname__ if self.owner else "?"
        return f"PropertyInfo({owner}.{self.name}: {getattr(self.type, '__name__', self.type)})"


def prop(type_: type = object, **kwargs: Any) -> Any:
    """Declare a property on a ValidatableObject subclass.

    See :class:`PropertyInfo` for the accepted keyword arguments. Typed as
    ``Any`` so the declaration can sit on an annotated class attribute.
    """
    return PropertyInfo(type_, **kwargs)


def _builds_object(factory: Callable[..., Any]) -> bool:
    from keel.domain.validatable import (  # pylint: disable=import-outside-toplevel
        ValidatableObject,
    )

    return isinstance(factory, type) and issubclass(factory, ValidatableObject)


# ============================================================================
#                               Runtime slot
# ============================================================================


class Property(Observable):  # pylint: disable=too-many-instance-attributes,too-many-public-methods
    """A named slot holding a value, its rule messages, busy and modified state.

    Messages are stored per rule identity so each rule replaces only its own
    previous contribution. Busy state is a set of outstanding execution ids.
    When the value is a child node (object or list) the slot's validity and
    busy state include the child's.
    """

    def __init__(self, owner: ValidatableObject, info: PropertyInfo, *, track_modifications: bool) -> None:
        super().__init__()
        self._owner_ref = weakref.ref(owner)
        self.info = info
        self._tracks = track_modifications and info.tracked
        self._value: Any = None
        self._messages: dict[str, list[Message]] = {}
        self._busy: set[str] = set()
        self._is_self_modified = False
        self._loader: Loader | None = None
        self._is_loaded = True
        self._load_task: asyncio.Task | None = None
        self._load_execution_id = ""
        self._meta = (True, False, ())
        # pylint: disable-next=protected-access
        self._swap_value(info.initial_value(owner._services), check_busy=False)
        self._meta = self._meta_state()

    def __repr__(self) -> str:
        return f"Property({self.name}={self._value!r})"

    # ------------------------------------------------------------------
    # Descriptive attributes
    # ------------------------------------------------------------------

    @property
    def owner(self) -> ValidatableObject:
        """The object this slot belongs to."""
        owner = self._owner_ref()
        if owner is None:  # pragma: no cover - owner outlives its slots
            raise ReferenceError(f"owner of property '{self.name}' no longer exists")
        return owner

    @property
    def name(self) -> str:
        return self.info.name

    @property
    def display_name(self) -> str:
        return self.info.display_name

    @property
    def is_read_only(self) -> bool:
        return self.info.read_only

    # ------------------------------------------------------------------
    # Value channel
    # ------------------------------------------------------------------

    @property
    def value(self) -> Any:
        """Current value; starts a lazy load on first access if configured."""
        return self.get()

    @value.setter
    def value(self, new_value: Any) -> None:
        self.set(new_value)

    def get(self) -> Any:
        """Return the value, starting the lazy load once if one is pending."""
        if self._loader is not None and not self._is_loaded and self._load_task is None:
            self._start_load()
        return self._value

    def set(self, value: Any) -> None:
        """Public set path: rejects read-only properties."""
        if self.is_read_only:
            raise PropertyReadOnlyError(self.name)
        self.set_private(value)

    def set_private(self, value: Any) -> None:
        """Set the value, bypassing the read-only check.

        No-op when the new value equals the current one (identity for child
        nodes). Otherwise the value is replaced, the slot is marked modified
        (entities, outside pause) and the owner dispatches rules.
        """
        owner = self.owner
        owner._before_property_set(self)  # pylint: disable=protected-access
        if self._is_same(value):
            return
        self._swap_value(value)
        if self._tracks and not owner.is_paused:
            self._is_self_modified = True
        self._notify(VALUE)
        owner._property_changed(self)  # pylint: disable=protected-access

    def load_value(self, value: Any) -> None:
        """Silently replace the value: no modified mark, no rule dispatch.

        A lazy load still in flight is abandoned; its result is discarded.
        """
        if self._loader is not None:
            self._is_loaded = True
        abandoned = self._load_task is not None
        if abandoned:
            self._load_task = None
            self._busy.discard(self._load_execution_id)
        swapped_node = is_node(value) or is_node(self._value)
        if not self._is_same(value):
            self._swap_value(value)
        self._is_self_modified = False
        if abandoned:
            self._state_changed()
        elif swapped_node:
            self.owner._state_changed()  # pylint: disable=protected-access

    def _is_same(self, value: Any) -> bool:
        if is_node(value) or is_node(self._value):
            return value is self._value
        if value is self._value:
            return True
        try:
            return bool(value == self._value)
        except Exception:  # pylint: disable=broad-except
            # values whose equality is ambiguous count as changed
            return False

    def _swap_value(self, value: Any, *, check_busy: bool = True) -> None:
        old = self._value
        if check_busy:
            if is_node(old) and old.is_busy:
                raise ChildObjectBusyError(f"replace the value of '{self.name}'")
            if is_node(value) and value.is_busy:
                raise ChildObjectBusyError(f"assign a child to '{self.name}'")
        if is_node(old):
            old._detach()  # pylint: disable=protected-access
        self._value = value
        if is_node(value):
            value._attach(self, self.owner)  # pylint: disable=protected-access

    @property
    def child(self) -> GraphNode | None:
        """The child node held by this slot, if any."""
        return self._value if is_node(self._value) else None

    # ------------------------------------------------------------------
    # Lazy loading
    # ------------------------------------------------------------------

    @property
    def loader(self) -> Loader | None:
        return self._loader

    @property
    def is_loaded(self) -> bool:
        """False until the configured loader has been attempted."""
        return self._is_loaded

    @property
    def is_loading(self) -> bool:
        return self._load_task is not None

    def set_loader(self, loader: Loader | None) -> None:
        """Configure a (sync or async) loader run on first access."""
        self._loader = loader
        self._is_loaded = loader is None

    async def load(self) -> Any:
        """Run (or join) the lazy load and return the loaded value."""
        if self._loader is None or self._is_loaded:
            return self._value
        if self._load_task is None:
            self._start_load()
        if (task := self._load_task) is not None:
            await asyncio.wait([task])
        return self._value

    def _start_load(self) -> None:
        loader = self._loader
        assert loader is not None
        logger.debug("Lazy loading %s.%s", type(self.owner).__name__, self.name)
        try:
            result = loader()
        except Exception as exc:  # pylint: disable=broad-except
            self._load_failed(exc)
            return
        if not inspect.isawaitable(result):
            self._load_succeeded(result)
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            if inspect.iscoroutine(result):
                result.close()
            raise NoEventLoopError(f"Loader for '{self.name}'") from exc
        owner = self.owner
        execution_id = owner._next_execution_id()  # pylint: disable=protected-access
        self._busy.add(execution_id)
        self._load_execution_id = execution_id
        self._load_task = loop.create_task(
            self._run_load(result, execution_id), name=f"keel-load-{self.name}"
        )
        owner._track_task(self._load_task)  # pylint: disable=protected-access
        self._state_changed()

    async def _run_load(self, awaitable: Awaitable[Any], execution_id: str) -> None:
        this = asyncio.current_task()
        try:
            value = await awaitable
        except asyncio.CancelledError:
            if self._load_task is this:
                self._load_failed(asyncio.CancelledError("load cancelled"))
            raise
        except Exception as exc:  # pylint: disable=broad-except
            if self._load_task is this:
                self._load_failed(exc)
        else:
            if self._load_task is this:
                self._load_succeeded(value)
        finally:
            self._busy.discard(execution_id)
            if self._load_task is this:
                self._load_task = None
            self._state_changed()

    def _load_succeeded(self, value: Any) -> None:
        self._is_loaded = True
        self._messages.pop(self._load_identity, None)
        if not self._is_same(value):
            self._swap_value(value, check_busy=False)
        self._notify(VALUE)
        self._state_changed()

    def _load_failed(self, exc: BaseException) -> None:
        logger.warning("Failed to load %s.%s: %s", type(self.owner).__name__, self.name, exc)
        self._is_loaded = True
        self._messages[self._load_identity] = [
            Message(self.name, f"Failed to load {self.name}: {exc}", self._load_identity)
        ]
        self._state_changed()

    @property
    def _load_identity(self) -> str:
        return f"{LOAD_IDENTITY_PREFIX}{self.name}"

    # ------------------------------------------------------------------
    # Messages and validity
    # ------------------------------------------------------------------

    @property
    def messages(self) -> list[Message]:
        """Messages attached directly to this slot, across all rules."""
        return [m for group in self._messages.values() for m in group]

    def messages_for_rule(self, rule_identity: str) -> list[Message]:
        return list(self._messages.get(rule_identity, ()))

    @property
    def is_self_valid(self) -> bool:
        return not self._messages

    @property
    def is_valid(self) -> bool:
        """Own messages are empty and any child node is valid."""
        if self._messages:
            return False
        child = self.child
        return child.is_valid if child is not None else True

    def _replace_rule_messages(self, rule_identity: str, messages: Iterable[Message]) -> None:
        messages = list(messages)
        if messages:
            self._messages[rule_identity] = messages
        else:
            self._messages.pop(rule_identity, None)

    def clear_messages(self) -> None:
        """Drop every message on this slot (its child's are untouched)."""
        if self._messages:
            self._messages.clear()
            self._state_changed()

    # ------------------------------------------------------------------
    # Busy
    # ------------------------------------------------------------------

    @property
    def is_self_busy(self) -> bool:
        return bool(self._busy)

    @property
    def is_busy(self) -> bool:
        if self._busy:
            return True
        child = self.child
        return child.is_busy if child is not None else False

    def _mark_busy(self, execution_id: str) -> None:
        self._busy.add(execution_id)
        self._state_changed()

    def _unmark_busy(self, execution_id: str) -> None:
        self._busy.discard(execution_id)
        self._state_changed()

    # ------------------------------------------------------------------
    # Modification tracking
    # ------------------------------------------------------------------

    @property
    def is_self_modified(self) -> bool:
        return self._is_self_modified

    @property
    def is_modified(self) -> bool:
        if self._is_self_modified:
            return True
        child = self.child
        return bool(getattr(child, "is_modified", False)) if child is not None else False

    def mark_self_unmodified(self) -> None:
        self._is_self_modified = False

    def _restore_modified(self, modified: bool) -> None:
        self._is_self_modified = modified and self._tracks

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def _meta_state(self) -> tuple[bool, bool, tuple[Message, ...]]:
        return (self.is_valid, self.is_busy, tuple(self.messages))

    def _state_changed(self, *, bubble: bool = True) -> None:
        current = self._meta_state()
        previous, self._meta = self._meta, current
        if not self.owner.is_paused:
            for name, before, after in zip((IS_VALID, IS_BUSY, MESSAGES), previous, current):
                if before != after:
                    self._notify(name)
        if bubble:
            self.owner._state_changed()  # pylint: disable=protected-access

    def _on_child_changed(self, child: GraphNode, path: str) -> None:
        full_path = f"{self.name}.{path}" if path else self.name
        self.owner._nested_property_changed(full_path)  # pylint: disable=protected-access

    def _on_child_state_changed(self, child: GraphNode) -> None:
        self._state_changed()


# ============================================================================
#                               Manager
# ============================================================================


class PropertyManager:
    """Ordered, name-indexed set of one object's properties."""

    def __init__(
        self,
        owner: ValidatableObject,
        infos: Iterable[PropertyInfo],
        *,
        track_modifications: bool,
    ) -> None:
        self._owner_type = type(owner).__name__
        self._properties: dict[str, Property] = {}
        for info in infos:
            self._properties[info.name] = Property(owner, info, track_modifications=track_modifications)

    def __getitem__(self, name: str) -> Property:
        try:
            return self._properties[name]
        except KeyError:
            raise PropertyNotFoundError(self._owner_type, name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._properties

    def __iter__(self) -> Iterator[Property]:
        return iter(self._properties.values())

    def __len__(self) -> int:
        return len(self._properties)

    def get(self, name: str) -> Property | None:
        return self._properties.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._properties)

    def children(self) -> list[GraphNode]:
        """Child nodes currently held by the properties, in declaration order."""
        return [p.child for p in self._properties.values() if p.child is not None]

    # validity ----------------------------------------------------------

    @property
    def is_valid(self) -> bool:
        return all(p.is_valid for p in self._properties.values())

    @property
    def is_self_valid(self) -> bool:
        return all(p.is_self_valid for p in self._properties.values())

    @property
    def messages(self) -> list[Message]:
        return [m for p in self._properties.values() for m in p.messages]

    def clear_self_messages(self) -> None:
        for p in self._properties.values():
            p.clear_messages()

    def clear_all_messages(self) -> None:
        self.clear_self_messages()
        for child in self.children():
            child.clear_all_messages()  # type: ignore[attr-defined]

    # busy --------------------------------------------------------------

    @property
    def is_busy(self) -> bool:
        return any(p.is_busy for p in self._properties.values())

    @property
    def is_self_busy(self) -> bool:
        return any(p.is_self_busy for p in self._properties.values())

    # modification ------------------------------------------------------

    @property
    def is_modified(self) -> bool:
        return any(p.is_modified for p in self._properties.values())

    @property
    def is_self_modified(self) -> bool:
        return any(p.is_self_modified for p in self._properties.values())

    @property
    def modified_properties(self) -> list[str]:
        return [p.name for p in self._properties.values() if p.is_modified]

    def mark_self_unmodified(self) -> None:
        for p in self._properties.values():
            p.mark_self_unmodified()
