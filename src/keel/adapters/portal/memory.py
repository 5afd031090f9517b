"""In-memory implementation of the EntityPortal interface."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from keel.domain.collections import EntityList
from keel.domain.entity import Entity, Operation
from keel.interfaces.portal import EntityPortal

if TYPE_CHECKING:
    from keel.domain.node import GraphNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PortalRecord:
    """One persistence call observed by the portal."""

    operation: Operation
    entity_type: str
    entity: Entity


class MemoryEntityPortal(EntityPortal):
    """Recording implementation of the EntityPortal interface.

    Every root operation is recorded, followed by the operations the
    aggregate's children need: pending deletions of entity lists are
    deleted, new members inserted and modified members updated.

    This implementation is intended for testing and demos only.
    It does not persist data.
    """

    def __init__(self) -> None:
        self.records: list[PortalRecord] = []
        self._failure: Exception | None = None

    def fail_next(self, exc: Exception) -> None:
        """Make the next root operation raise ``exc`` before recording anything."""
        self._failure = exc

    def operations(self) -> list[tuple[Operation, str]]:
        """The recorded calls as ``(operation, entity type name)`` pairs."""
        return [(r.operation, r.entity_type) for r in self.records]

    async def insert(self, entity: Entity) -> None:
        self._raise_pending_failure()
        self._record(Operation.INSERT, entity)
        self._visit_children(entity)

    async def update(self, entity: Entity) -> None:
        self._raise_pending_failure()
        self._record(Operation.UPDATE, entity)
        self._visit_children(entity)

    async def delete(self, entity: Entity) -> None:
        self._raise_pending_failure()
        self._record(Operation.DELETE, entity)

    def _raise_pending_failure(self) -> None:
        if (exc := self._failure) is not None:
            self._failure = None
            raise exc

    def _record(self, operation: Operation, entity: Entity) -> None:
        logger.debug("%s %s", operation.value, type(entity).__name__)
        self.records.append(PortalRecord(operation, type(entity).__name__, entity))

    def _visit_children(self, node: GraphNode) -> None:
        for child in node._children():  # pylint: disable=protected-access
            if isinstance(child, EntityList):
                for deleted in child.deleted_items:
                    self._record(Operation.DELETE, deleted)
                for item in child:
                    self._save_child(item)
            elif isinstance(child, Entity):
                self._save_child(child)
            else:
                self._visit_children(child)

    def _save_child(self, entity: Entity) -> None:
        if entity.is_new:
            self._record(Operation.INSERT, entity)
        elif entity.is_modified:
            self._record(Operation.UPDATE, entity)
        self._visit_children(entity)
