"""Rule messages.

A message is one rule's complaint about one property. Messages are
immutable; the engine stamps each one with the identity of the rule that
produced it so a later run of the same rule can retract it.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace

OBJECT_INVALID = "object_invalid"
LOAD_IDENTITY_PREFIX = "load:"
CANCELLED_TEXT = "Validation cancelled"


@dataclass(frozen=True)
class Message:
    """An immutable (property, text) pair.

    Attributes:
        property_name: Name of the property the message is attached to.
        text: Human-readable description of the problem.
        rule_identity: Identity of the producing rule. Set by the engine when
            the message is merged; rules normally leave it empty.
    """

    property_name: str
    text: str
    rule_identity: str | None = None

    def with_identity(self, rule_identity: str) -> Message:
        """Return a copy stamped with ``rule_identity``."""
        return replace(self, rule_identity=rule_identity)

    def __str__(self) -> str:
        return f"{self.property_name}: {self.text}"


def message_if(condition: bool, property_name: str, text: str) -> list[Message]:
    """Return a single message when ``condition`` holds, else no messages."""
    return [Message(property_name, text)] if condition else []


def group_by_property(messages: Iterable[Message]) -> dict[str, list[Message]]:
    """Group messages by property name, keeping their relative order."""
    grouped: dict[str, list[Message]] = {}
    for message in messages:
        grouped.setdefault(message.property_name, []).append(message)
    return grouped
