"""Common base for every node of an object graph (objects and lists).

A node knows its ``parent`` (the owning object, never a list) and its
``holder`` (the Property or list that directly contains it). Both links are
weak. Value changes travel up the holder chain as dotted paths; validity and
busy changes travel up as "state changed" pings that let every node on the
way publish its own meta-property changes.
"""

from __future__ import annotations

import weakref
from typing import TYPE_CHECKING, Any, ClassVar, Protocol

from keel.domain.notifications import Observable

if TYPE_CHECKING:
    from keel.domain.messages import Message


class Holder(Protocol):
    """Anything that can directly contain a node (a Property or a list)."""

    def _on_child_changed(self, child: GraphNode, path: str) -> None: ...

    def _on_child_state_changed(self, child: GraphNode) -> None: ...


class PauseScope:
    """Scoped pause returned by ``pause_all_actions()``.

    The node is paused as soon as the scope is created. Leaving the ``with``
    block (or calling ``close()``) restores the paused state the node had
    before, on every exit path.
    """

    def __init__(self, node: GraphNode, was_paused: bool) -> None:
        self._node = node
        self._was_paused = was_paused
        self._closed = False

    def close(self) -> None:
        """Restore the prior paused state (idempotent)."""
        if self._closed:
            return
        self._closed = True
        if not self._was_paused:
            self._node.resume_all_actions()

    def __enter__(self) -> GraphNode:
        return self._node

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class GraphNode(Observable):
    """Shared plumbing for ValidatableObject and the list types."""

    META_NAMES: ClassVar[tuple[str, ...]] = ()

    def __init__(self) -> None:
        super().__init__()
        self._parent_ref: weakref.ref[Any] | None = None
        self._holder_ref: weakref.ref[Any] | None = None
        self._paused = False
        # None until construction finishes; suppresses notifications meanwhile.
        self._meta: dict[str, object] | None = None

    # ------------------------------------------------------------------
    # Ownership
    # ------------------------------------------------------------------

    @property
    def parent(self) -> Any:
        """The owning object, or None for an aggregate root."""
        return self._parent_ref() if self._parent_ref is not None else None

    @property
    def root(self) -> Any:
        """The aggregate root this node belongs to, or None if it is the root."""
        node = self.parent
        if node is None:
            return None
        while (above := node.parent) is not None:
            node = above
        return node

    @property
    def holder(self) -> Holder | None:
        """The Property or list that directly contains this node."""
        return self._holder_ref() if self._holder_ref is not None else None

    def _set_parent(self, parent: Any) -> None:
        self._parent_ref = weakref.ref(parent) if parent is not None else None

    def _attach(self, holder: Holder, parent: Any) -> None:
        self._holder_ref = weakref.ref(holder)
        self._set_parent(parent)

    def _detach(self) -> None:
        self._holder_ref = None
        self._set_parent(None)

    def _children(self) -> list[GraphNode]:
        return []

    def _mark_persisted(self) -> None:
        """Propagate a successful insert/update of the aggregate downwards."""
        for child in self._children():
            child._mark_persisted()  # pylint: disable=protected-access

    # ------------------------------------------------------------------
    # Pause
    # ------------------------------------------------------------------

    @property
    def is_paused(self) -> bool:
        """True while rule dispatch and modification tracking are suspended."""
        return self._paused

    def pause_all_actions(self) -> PauseScope:
        """Pause now and return a scope that restores the prior state on exit."""
        was_paused = self._paused
        self._paused = True
        return PauseScope(self, was_paused)

    def resume_all_actions(self) -> None:
        """Resume dispatch and publish meta changes accumulated while paused."""
        if self._paused:
            self._paused = False
            self._state_changed()

    # ------------------------------------------------------------------
    # Meta state
    # ------------------------------------------------------------------

    @property
    def is_valid(self) -> bool:
        raise NotImplementedError

    @property
    def is_busy(self) -> bool:
        raise NotImplementedError

    @property
    def messages(self) -> list[Message]:
        raise NotImplementedError

    async def wait_for_tasks(self) -> None:
        raise NotImplementedError

    def _meta_state(self) -> dict[str, object]:
        return {name: getattr(self, name) for name in self.META_NAMES}

    def _state_changed(self) -> None:
        """Publish changed meta-properties and ping the holder."""
        if self._meta is None:
            return
        if not self._paused:
            current = self._meta_state()
            changed = [name for name, value in current.items() if self._meta.get(name) != value]
            self._meta = current
            for name in changed:
                self._notify(name)
        if (holder := self.holder) is not None:
            holder._on_child_state_changed(self)  # pylint: disable=protected-access

    def _propagate_change(self, path: str) -> None:
        """Tell the holder that something at ``path`` (relative to us) changed."""
        if (holder := self.holder) is not None:
            holder._on_child_changed(self, path)  # pylint: disable=protected-access


def is_node(value: object) -> bool:
    """True if ``value`` is part of an object graph (object or list)."""
    return isinstance(value, GraphNode)
