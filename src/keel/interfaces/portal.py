"""Interface for the persistence boundary of aggregates."""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from keel.domain.entity import Entity


class EntityPortal(abc.ABC):
    """Contract for persisting aggregate roots.

    ``Entity.save()`` picks the operation from the root's state and calls one
    of these coroutines while the aggregate is paused. The portal is
    responsible for the whole aggregate: it walks child lists and persists
    new, modified and deleted children itself. Raising aborts the save and
    leaves the aggregate's state untouched.
    """

    @abc.abstractmethod
    async def insert(self, entity: Entity) -> None:
        """Persist a new aggregate root."""

    @abc.abstractmethod
    async def update(self, entity: Entity) -> None:
        """Persist changes to an existing aggregate root."""

    @abc.abstractmethod
    async def delete(self, entity: Entity) -> None:
        """Remove an existing aggregate root from the store."""
