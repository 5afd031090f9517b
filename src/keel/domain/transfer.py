"""Plain-dict snapshots of object graphs for crossing a transport boundary.

``dump_state`` captures what a receiving process needs to rebuild an
equivalent graph: property values, per-property modified flags, rule
messages with the identity of the rule that produced them, entity flags and
the pending deletions of entity lists. Busy state is never captured.

``restore_state`` repopulates a freshly constructed node under pause, so no
rule runs and nothing becomes modified as a side effect. Rules that run
later replace restored messages by identity, as if they had produced them
locally.

The snapshot is made of dicts, lists and the raw property values; choosing a
wire format is left to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from keel.domain.collections import EntityList, ValidatableList
from keel.domain.entity import Entity
from keel.domain.errors import StateTransferError
from keel.domain.messages import Message
from keel.domain.node import GraphNode
from keel.domain.properties import Property
from keel.domain.validatable import ValidatableObject

logger = logging.getLogger(__name__)

ENTITY_FLAGS = ("is_new", "is_deleted", "is_child", "is_marked_modified", "is_destroyed")


def _type_name(node: object) -> str:
    cls = type(node)
    return f"{cls.__module__}:{cls.__qualname__}"


# ============================================================================
#                               Dump
# ============================================================================


def dump_state(node: GraphNode) -> dict[str, Any]:
    """Return a snapshot of ``node`` and everything it owns."""
    if isinstance(node, ValidatableList):
        return _dump_list(node)
    if isinstance(node, ValidatableObject):
        return _dump_object(node)
    raise TypeError(f"Cannot dump {type(node).__name__}: not an object graph node")


def _dump_object(obj: ValidatableObject) -> dict[str, Any]:
    state: dict[str, Any] = {"type": _type_name(obj), "properties": {}}
    for slot in obj.property_manager:
        state["properties"][slot.name] = _dump_property(slot)
    if isinstance(obj, Entity):
        state["entity"] = {flag: getattr(obj, flag) for flag in ENTITY_FLAGS}
    return state


def _dump_property(slot: Property) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "modified": slot.is_self_modified,
        "messages": [
            {"property": m.property_name, "text": m.text, "rule_identity": m.rule_identity}
            for m in slot.messages
        ],
    }
    # pylint: disable=protected-access
    if (child := slot.child) is not None:
        entry["node"] = dump_state(child)
    else:
        entry["value"] = slot._value
    return entry


def _dump_list(lst: ValidatableList) -> dict[str, Any]:
    state: dict[str, Any] = {
        "type": _type_name(lst),
        "items": [dump_state(item) for item in lst],
    }
    if isinstance(lst, EntityList):
        state["deleted_items"] = [dump_state(item) for item in lst.deleted_items]
    return state


# ============================================================================
#                               Restore
# ============================================================================


def restore_state(node: GraphNode, state: Mapping[str, Any]) -> GraphNode:
    """Repopulate a freshly constructed ``node`` from a snapshot.

    Child objects and lists are reused when the node's constructor created
    them, and built from the declared property type (or the list's
    ``item_type``) otherwise.

    Raises:
        StateTransferError: If the snapshot was taken from a different type
            or a child cannot be constructed.
    """
    expected = _type_name(node)
    if (actual := state.get("type")) is not None and actual != expected:
        raise StateTransferError(type(node).__name__, f"snapshot is of {actual}")
    with node.pause_all_actions():
        if isinstance(node, ValidatableList):
            _restore_list(node, state)
        elif isinstance(node, ValidatableObject):
            _restore_object(node, state)
        else:
            raise TypeError(f"Cannot restore {type(node).__name__}: not an object graph node")
    logger.debug("Restored %s", type(node).__name__)
    return node


def _restore_object(obj: ValidatableObject, state: Mapping[str, Any]) -> None:
    for name, entry in state.get("properties", {}).items():
        slot = obj[name]
        if "node" in entry:
            child = slot.child
            if child is None:
                child = _construct(slot.info.type, obj, name)
            restore_state(child, entry["node"])
            if slot.child is not child:
                slot.load_value(child)
        else:
            slot.load_value(entry.get("value"))
        # pylint: disable=protected-access
        slot._restore_modified(bool(entry.get("modified", False)))
        by_rule: dict[str, list[Message]] = {}
        for raw in entry.get("messages", ()):
            message = Message(raw["property"], raw["text"], raw.get("rule_identity"))
            by_rule.setdefault(message.rule_identity or "", []).append(message)
        for identity, messages in by_rule.items():
            slot._replace_rule_messages(identity, messages)
        slot._state_changed(bubble=False)
    if isinstance(obj, Entity) and (flags := state.get("entity")) is not None:
        _restore_entity_flags(obj, flags)


def _restore_entity_flags(entity: Entity, flags: Mapping[str, Any]) -> None:
    # pylint: disable=protected-access
    entity._is_new = bool(flags.get("is_new", True))
    entity._is_deleted = bool(flags.get("is_deleted", False))
    entity._is_child = bool(flags.get("is_child", False))
    entity._is_marked_modified = bool(flags.get("is_marked_modified", False))
    entity._is_destroyed = bool(flags.get("is_destroyed", False))


def _restore_list(lst: ValidatableList, state: Mapping[str, Any]) -> None:
    members = list(state.get("items", ()))
    if isinstance(lst, EntityList):
        members.extend(state.get("deleted_items", ()))
    elif state.get("deleted_items"):
        raise StateTransferError(type(lst).__name__, "only entity lists keep deleted items")
    for item_state in members:
        item = _construct(lst.item_type, lst, "items")
        restore_state(item, item_state)
        # the list is paused, so deleted entities land in deleted_items
        lst.append(item)


def _construct(cls: Any, owner: GraphNode, name: str) -> Any:
    if not (isinstance(cls, type) and issubclass(cls, GraphNode)):
        raise StateTransferError(
            type(owner).__name__, f"no node type is declared for '{name}'"
        )
    if not issubclass(cls, ValidatableObject):
        return cls()
    # children share the services of the object that owns them
    holder = owner if isinstance(owner, ValidatableObject) else owner.parent
    return cls(services=holder.services) if holder is not None else cls()
