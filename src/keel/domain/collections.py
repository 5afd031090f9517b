"""Lists of child objects.

Lists are transparent for ownership: every member's ``parent`` is the
object owning the list, and changes inside a member reach the owner's rules
as if the list were not there (``"phones.number"``, not
``"phones.0.number"``). Adding or removing members is reported to the
owner as a change of the property holding the list.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, MutableSequence
from typing import Any, ClassVar, Generic, TypeVar, overload

from keel.domain.entity import Entity
from keel.domain.errors import AggregateBoundaryError, ChildObjectBusyError, DuplicateItemError
from keel.domain.messages import Message
from keel.domain.node import GraphNode
from keel.domain.notifications import (
    IS_BUSY,
    IS_MODIFIED,
    IS_SELF_BUSY,
    IS_SELF_MODIFIED,
    IS_SELF_VALID,
    IS_VALID,
)
from keel.domain.rules.base import CancellationToken, RunRulesFlag
from keel.domain.validatable import ValidatableObject

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=ValidatableObject)
E = TypeVar("E", bound=Entity)

ITEMS = "items"


class ValidatableList(GraphNode, MutableSequence, Generic[T]):  # pylint: disable=too-many-ancestors
    """An ordered list of ValidatableObjects owned by one object.

    Membership is by identity: an object can be in the list once, and
    cannot be in two lists at the same time.

    Attributes:
        item_type: Type of the members; used to rebuild lists from
            transferred state.
    """

    META_NAMES: ClassVar[tuple[str, ...]] = (IS_VALID, IS_SELF_VALID, IS_BUSY, IS_SELF_BUSY)
    item_type: ClassVar[type[ValidatableObject] | None] = None

    def __init__(self, items: Iterable[T] = ()) -> None:
        super().__init__()
        self._items: list[T] = []
        with self.pause_all_actions():
            for item in items:
                self.append(item)
        self._meta = self._meta_state()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} len={len(self._items)} valid={self.is_valid}>"

    # ------------------------------------------------------------------
    # Sequence protocol
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._items)

    @overload
    def __getitem__(self, index: int) -> T: ...

    @overload
    def __getitem__(self, index: slice) -> list[T]: ...

    def __getitem__(self, index: int | slice) -> T | list[T]:
        return self._items[index]

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items))

    def __contains__(self, item: object) -> bool:
        return self.contains_active(item)

    def contains_active(self, item: object) -> bool:
        """True if ``item`` (by identity) is an active member."""
        return any(member is item for member in self._items)

    def index(self, item: Any, start: int = 0, stop: int | None = None) -> int:
        stop = len(self._items) if stop is None else stop
        for position in range(start, min(stop, len(self._items))):
            if self._items[position] is item:
                return position
        raise ValueError(f"{item!r} is not in {type(self).__name__}")

    def __setitem__(self, index: int, item: T) -> None:  # type: ignore[override]
        if isinstance(index, slice):
            raise TypeError(f"{type(self).__name__} does not support slice assignment")
        old = self._items[index]
        if old is item:
            return
        if old.is_busy:
            raise ChildObjectBusyError(f"remove {type(old).__name__} from {type(self).__name__}")
        self._check_can_add(item)
        position = index if index >= 0 else len(self._items) + index
        del self[position]
        self.insert(position, item)

    def __delitem__(self, index: int) -> None:  # type: ignore[override]
        if isinstance(index, slice):
            raise TypeError(f"{type(self).__name__} does not support slice deletion")
        item = self._items[index]
        if item.is_busy:
            raise ChildObjectBusyError(f"remove {type(item).__name__} from {type(self).__name__}")
        del self._items[index]
        self._release(item)
        self._membership_changed()

    def insert(self, index: int, item: T) -> None:
        self._check_can_add(item)
        if not self._prepare_add(item):
            return
        self._items.insert(index, item)
        item._attach(self, self.parent)  # pylint: disable=protected-access
        self._membership_changed()

    def add(self, item: T) -> T:
        """Append ``item`` and return it."""
        self.append(item)
        return item

    def load(self, items: Iterable[T]) -> None:
        """Append ``items`` while paused, as when reading from a source."""
        with self.pause_all_actions():
            for item in items:
                self.append(item)

    # ------------------------------------------------------------------
    # Membership rules
    # ------------------------------------------------------------------

    @property
    def _aggregate_root(self) -> Any:
        owner = self.parent
        if owner is None:
            return None
        return owner.root or owner

    def _check_can_add(self, item: T) -> None:
        if self.contains_active(item):
            raise DuplicateItemError(type(item).__name__, type(self).__name__)
        if item.is_busy:
            raise ChildObjectBusyError(f"add {type(item).__name__} to {type(self).__name__}")
        node = self.parent
        while node is not None:
            if node is item:
                raise AggregateBoundaryError(
                    type(item).__name__, type(self).__name__, owns_list=True
                )
            node = node.parent
        item_root = item.root
        if item_root is not None and item_root is not self._aggregate_root:
            logger.warning(
                "Rejected %s: it belongs to a different aggregate than %s",
                type(item).__name__,
                type(self).__name__,
            )
            raise AggregateBoundaryError(type(item).__name__, type(self).__name__)
        holder = item.holder
        if isinstance(holder, ValidatableList) and holder is not self and holder.contains_active(item):
            raise DuplicateItemError(type(item).__name__, type(holder).__name__)

    def _prepare_add(self, item: T) -> bool:  # pylint: disable=unused-argument
        """Hook run before insertion; returning False skips the insertion."""
        return True

    def _release(self, item: T) -> None:
        item._detach()  # pylint: disable=protected-access

    def _membership_changed(self) -> None:
        self._state_changed()
        if not self._paused:
            self._notify(ITEMS)
            self._propagate_change("")

    def _set_parent(self, parent: Any) -> None:
        super()._set_parent(parent)
        for item in self._all_members():
            item._set_parent(parent)  # pylint: disable=protected-access

    def _all_members(self) -> list[T]:
        return list(self._items)

    def _children(self) -> list[GraphNode]:
        return list(self._items)

    # ------------------------------------------------------------------
    # Events from members
    # ------------------------------------------------------------------

    def _on_child_changed(self, child: GraphNode, path: str) -> None:
        if not self._paused and self.contains_active(child):
            self._propagate_change(path)

    def _on_child_state_changed(self, child: GraphNode) -> None:
        self._state_changed()

    # ------------------------------------------------------------------
    # Aggregate state
    # ------------------------------------------------------------------

    @property
    def is_valid(self) -> bool:
        """Every active member is valid."""
        return all(item.is_valid for item in self._items)

    @property
    def is_self_valid(self) -> bool:
        return True

    @property
    def is_busy(self) -> bool:
        return any(item.is_busy for item in self._items)

    @property
    def is_self_busy(self) -> bool:
        return False

    @property
    def messages(self) -> list[Message]:
        return [m for item in self._items for m in item.messages]

    def clear_all_messages(self) -> None:
        for item in self._items:
            item.clear_all_messages()

    def clear_self_messages(self) -> None:
        for item in self._items:
            item.clear_self_messages()

    async def run_rules(
        self, flag: RunRulesFlag = RunRulesFlag.ALL, token: CancellationToken | None = None
    ) -> None:
        """Run rules on every active member."""
        for item in list(self._items):
            await item.run_rules(flag, token)

    async def wait_for_tasks(self) -> None:
        errors: list[Exception] = []
        for item in list(self._items):
            try:
                await item.wait_for_tasks()
            except ExceptionGroup as group:
                errors.extend(group.exceptions)
        if errors:
            raise ExceptionGroup(
                f"{len(errors)} asynchronous rule(s) failed in {type(self).__name__}", errors
            )


class EntityList(ValidatableList[E]):  # pylint: disable=too-many-ancestors
    """A list of child entities that remembers pending deletions.

    Removing a persisted member moves it to :attr:`deleted_items` (marked
    deleted, links kept) so the aggregate's save can delete it; removing a
    new member simply discards it. Re-adding a pending deletion undeletes it.
    """

    META_NAMES: ClassVar[tuple[str, ...]] = ValidatableList.META_NAMES + (
        IS_MODIFIED,
        IS_SELF_MODIFIED,
    )

    def __init__(self, items: Iterable[E] = ()) -> None:
        self._deleted: list[E] = []
        super().__init__(items)

    @property
    def deleted_items(self) -> list[E]:
        """Members removed since the last successful save."""
        return list(self._deleted)

    @property
    def is_modified(self) -> bool:
        """Pending deletions, or a member that is new (awaiting insert) or modified."""
        return bool(self._deleted) or any(item.is_new or item.is_modified for item in self._items)

    @property
    def is_self_modified(self) -> bool:
        return bool(self._deleted)

    @property
    def is_savable(self) -> bool:
        return False

    def _prepare_add(self, item: E) -> bool:
        if self._paused and item.is_deleted:
            # loading a pending deletion from a source
            self._deleted.append(item)
            item._attach(self, self.parent)  # pylint: disable=protected-access
            item._mark_as_child()  # pylint: disable=protected-access
            item._set_containing_list(self)  # pylint: disable=protected-access
            self._state_changed()
            return False
        previous = item.containing_list
        if previous is not None:
            previous._forget_deleted(item)  # pylint: disable=protected-access
        item.undelete()
        if not self._paused and not item.is_new:
            item.mark_modified()
        item._mark_as_child()  # pylint: disable=protected-access
        item._set_containing_list(self)  # pylint: disable=protected-access
        return True

    def _release(self, item: E) -> None:
        if item.is_new:
            item._detach()  # pylint: disable=protected-access
            item._set_containing_list(None)  # pylint: disable=protected-access
            return
        item._mark_deleted()  # pylint: disable=protected-access
        self._deleted.append(item)

    def _forget_deleted(self, item: E) -> None:
        remaining = [d for d in self._deleted if d is not item]
        if len(remaining) != len(self._deleted):
            self._deleted = remaining
            self._state_changed()

    def _all_members(self) -> list[E]:
        return list(self._items) + list(self._deleted)

    def _mark_persisted(self) -> None:
        super()._mark_persisted()
        for item in self._deleted:
            item._detach()  # pylint: disable=protected-access
            item._set_containing_list(None)  # pylint: disable=protected-access
        self._deleted = []
        self._state_changed()
