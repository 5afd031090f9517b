"""Entities: validatable objects with a persistence lifecycle.

States::

    create() ──► NEW ──(set)──► MODIFIED ──(save: insert)──► CLEAN
    load_from_source() ──► CLEAN ──(set)──► MODIFIED ──(save: update)──► CLEAN
    delete() / removal from an EntityList ──► DELETED ──(save: delete)──► DESTROYED

A DESTROYED entity rejects further changes.
"""

from __future__ import annotations

import enum
import logging
import weakref
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, ClassVar, Self

from keel.domain.errors import EntityDestroyedError, SaveFailureReason, SaveOperationError
from keel.domain.node import PauseScope
from keel.domain.notifications import (
    IS_DELETED,
    IS_MODIFIED,
    IS_SAVABLE,
    IS_SELF_MODIFIED,
)
from keel.domain.validatable import ValidatableObject

if TYPE_CHECKING:
    from keel.domain.collections import EntityList
    from keel.domain.properties import Property
    from keel.domain.services import ObjectServices
    from keel.interfaces.portal import EntityPortal

logger = logging.getLogger(__name__)


class EntityState(enum.Enum):
    """Persistence state derived from an entity's flags."""

    NEW = "new"
    CLEAN = "clean"
    MODIFIED = "modified"
    DELETED = "deleted"
    DESTROYED = "destroyed"


class Operation(enum.Enum):
    """Persistence operations bracketing an entity's lifecycle."""

    CREATE = "create"
    FETCH = "fetch"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class Entity(ValidatableObject):  # pylint: disable=too-many-public-methods
    """A validatable object that tracks modifications and persistence state.

    ``is_modified`` is true when a tracked property changed outside pause,
    when a child entity or list changed, when a child list has pending
    deletions, when the entity is deleted, or after ``mark_modified()``.
    A freshly created entity is new but not modified.
    """

    META_NAMES: ClassVar[tuple[str, ...]] = ValidatableObject.META_NAMES + (
        IS_MODIFIED,
        IS_SELF_MODIFIED,
        IS_SAVABLE,
        IS_DELETED,
        "is_new",
        "is_child",
    )
    track_modifications: ClassVar[bool] = True

    def __init__(self, *, services: ObjectServices | None = None) -> None:
        self._is_new = True
        self._is_deleted = False
        self._is_child = False
        self._is_marked_modified = False
        self._is_destroyed = False
        self._containing_list_ref: weakref.ref[EntityList] | None = None
        self._operation_scope: PauseScope | None = None
        super().__init__(services=services)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.state.value} valid={self.is_valid}>"

    # ------------------------------------------------------------------
    # Construction from the persistence layer
    # ------------------------------------------------------------------

    @classmethod
    def create(cls, values: Mapping[str, Any] | None = None, /, **kwargs: Any) -> Self:
        """Construct a NEW entity, silently loading ``values``.

        Keyword arguments are passed to the constructor.
        """
        entity = cls(**kwargs)
        entity.operation_started(Operation.CREATE)
        try:
            entity.load_values(values or {})
        except Exception:
            entity._close_operation()
            raise
        entity.operation_completed(Operation.CREATE)
        return entity

    @classmethod
    def from_source(cls, values: Mapping[str, Any], /, **kwargs: Any) -> Self:
        """Construct a CLEAN entity populated from a data source."""
        return cls(**kwargs).load_from_source(values)

    def load_from_source(self, values: Mapping[str, Any]) -> Self:
        """Populate from a data source: the entity becomes CLEAN."""
        self.operation_started(Operation.FETCH)
        try:
            self.load_values(values)
        except Exception:
            self._close_operation()
            raise
        self.operation_completed(Operation.FETCH)
        return self

    def operation_started(self, operation: Operation) -> None:
        """Pause the entity for the duration of a persistence operation."""
        logger.debug("%s: %s started", type(self).__name__, operation.value)
        if self._operation_scope is None:
            self._operation_scope = self.pause_all_actions()

    def operation_completed(self, operation: Operation) -> None:
        """Apply the state transition for ``operation`` and resume."""
        match operation:
            case Operation.CREATE:
                self._is_new = True
            case Operation.FETCH:
                self._is_new = False
                self.mark_unmodified()
            case Operation.INSERT | Operation.UPDATE:
                self._mark_persisted()
            case Operation.DELETE:
                self._is_destroyed = True
                self._property_manager.mark_self_unmodified()
        logger.debug("%s: %s completed", type(self).__name__, operation.value)
        self._close_operation()
        self._state_changed()

    def _close_operation(self) -> None:
        if (scope := self._operation_scope) is not None:
            self._operation_scope = None
            scope.close()

    # ------------------------------------------------------------------
    # Flags
    # ------------------------------------------------------------------

    @property
    def is_new(self) -> bool:
        return self._is_new

    @property
    def is_deleted(self) -> bool:
        return self._is_deleted

    @property
    def is_child(self) -> bool:
        """True once the entity has been added to an EntityList."""
        return self._is_child

    @property
    def is_marked_modified(self) -> bool:
        return self._is_marked_modified

    @property
    def is_destroyed(self) -> bool:
        return self._is_destroyed

    @property
    def containing_list(self) -> EntityList | None:
        """The EntityList this entity was last added to, if still alive."""
        return self._containing_list_ref() if self._containing_list_ref is not None else None

    @property
    def is_self_modified(self) -> bool:
        return (
            self._property_manager.is_self_modified
            or self._is_deleted
            or self._is_marked_modified
        )

    @property
    def is_modified(self) -> bool:
        return self._property_manager.is_modified or self.is_self_modified

    @property
    def is_savable(self) -> bool:
        return self.is_modified and self.is_valid and not self.is_busy and not self._is_child

    @property
    def modified_properties(self) -> list[str]:
        return self._property_manager.modified_properties

    @property
    def state(self) -> EntityState:
        if self._is_destroyed:
            return EntityState.DESTROYED
        if self._is_deleted:
            return EntityState.DELETED
        if self.is_modified:
            return EntityState.MODIFIED
        if self._is_new:
            return EntityState.NEW
        return EntityState.CLEAN

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def mark_modified(self) -> None:
        """Force the entity to count as modified."""
        self._is_marked_modified = True
        self._state_changed()

    def mark_unmodified(self) -> None:
        self._property_manager.mark_self_unmodified()
        self._is_marked_modified = False
        self._state_changed()

    def mark_new(self) -> None:
        self._is_new = True
        self._state_changed()

    def mark_old(self) -> None:
        self._is_new = False
        self._state_changed()

    def delete(self) -> None:
        """Mark the entity for deletion.

        A member of an EntityList is removed from it instead, which records
        the pending deletion on the list (or discards a new item).
        """
        self._ensure_not_destroyed()
        lst = self.containing_list
        if lst is not None and lst.contains_active(self):
            lst.remove(self)
            return
        self._mark_deleted()

    def undelete(self) -> None:
        if self._is_deleted:
            self._is_deleted = False
            self._state_changed()

    def _mark_deleted(self) -> None:
        if not self._is_deleted:
            self._is_deleted = True
            self._state_changed()

    def _mark_as_child(self) -> None:
        self._is_child = True

    def _set_containing_list(self, lst: EntityList | None) -> None:
        self._containing_list_ref = weakref.ref(lst) if lst is not None else None

    def _mark_persisted(self) -> None:
        self._is_new = False
        self._is_marked_modified = False
        self._property_manager.mark_self_unmodified()
        super()._mark_persisted()
        self._state_changed()

    def _ensure_not_destroyed(self) -> None:
        if self._is_destroyed:
            raise EntityDestroyedError(type(self).__name__)

    def _before_property_set(self, slot: Property) -> None:
        self._ensure_not_destroyed()

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def save_failure_reason(self) -> SaveFailureReason | None:
        """Why ``save()`` would be rejected right now, or None."""
        if self._is_child:
            return SaveFailureReason.IS_CHILD
        if not self.is_valid:
            return SaveFailureReason.IS_INVALID
        if not self.is_modified:
            return SaveFailureReason.NOT_MODIFIED
        if self.is_busy:
            return SaveFailureReason.IS_BUSY
        return None

    async def save(self) -> Self:
        """Persist the aggregate through the configured portal.

        Insert for a new entity, update for a modified one, delete for a
        deleted one. On success every entity in the aggregate is clean and
        pending list deletions are released; a deleted root becomes
        DESTROYED.

        Raises:
            SaveOperationError: If the entity may not be saved.
        """
        if (reason := self.save_failure_reason()) is not None:
            raise SaveOperationError(type(self).__name__, reason)

        if self._is_deleted:
            operation = Operation.DELETE
        elif self._is_new:
            operation = Operation.INSERT
        else:
            operation = Operation.UPDATE

        # a new entity that was deleted was never persisted
        needs_portal = not (operation is Operation.DELETE and self._is_new)
        portal = self.services.portal
        if needs_portal and portal is None:
            raise SaveOperationError(type(self).__name__, SaveFailureReason.NO_PORTAL)

        logger.info("Saving %s (%s)", type(self).__name__, operation.value)
        self.operation_started(operation)
        completed = False
        try:
            if needs_portal:
                assert portal is not None
                await self._call_portal(portal, operation)
            completed = True
        except Exception:
            logger.exception("Saving %s (%s) failed", type(self).__name__, operation.value)
            raise
        finally:
            if not completed:
                self._close_operation()
        self.operation_completed(operation)
        return self

    async def _call_portal(self, portal: EntityPortal, operation: Operation) -> None:
        match operation:
            case Operation.INSERT:
                await portal.insert(self)
            case Operation.UPDATE:
                await portal.update(self)
            case Operation.DELETE:
                await portal.delete(self)
