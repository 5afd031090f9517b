"""Ready-made rules for common single-property checks.

All except :class:`RequiredRule` treat an empty value (None or ``""``) as
valid, so they compose with ``RequiredRule`` instead of duplicating it.
"""

from __future__ import annotations

import re
import sys
from collections.abc import Sized
from typing import TYPE_CHECKING, Any

from keel.domain.messages import OBJECT_INVALID, Message
from keel.domain.rules.base import CancellationToken, Rule

if TYPE_CHECKING:
    from keel.domain.rules.manager import RuleManager

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PropertyRule(Rule):
    """A synchronous rule checking a single property.

    Subclasses implement :meth:`check`, returning an error text or None.
    """

    def __init__(self, property_name: str, message: str | None = None, **kwargs: Any) -> None:
        super().__init__(property_name, **kwargs)
        self.property_name = property_name
        self.message = message

    def execute(self, target: Any, token: CancellationToken | None = None) -> list[Message]:
        slot = target[self.property_name]
        error = self.check(slot.value, slot.display_name)
        if error is None:
            return []
        return [Message(self.property_name, self.message or error)]

    def check(self, value: Any, display_name: str) -> str | None:
        raise NotImplementedError


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


class RequiredRule(PropertyRule):
    """Value must be present: not None, not blank text, not an empty collection."""

    def check(self, value: Any, display_name: str) -> str | None:
        missing = _is_blank(value) or (
            isinstance(value, Sized) and not isinstance(value, str) and len(value) == 0
        )
        return f"{display_name} is required." if missing else None


class StringLengthRule(PropertyRule):
    """Text length must lie within ``minimum``..``maximum``."""

    def __init__(self, property_name: str, maximum: int, minimum: int = 0, **kwargs: Any) -> None:
        super().__init__(property_name, **kwargs)
        self.maximum = maximum
        self.minimum = minimum

    def check(self, value: Any, display_name: str) -> str | None:
        if value is None or value == "":
            return None
        length = len(str(value))
        if self.minimum <= length <= self.maximum:
            return None
        if self.minimum > 0:
            return (
                f"{display_name} must be between {self.minimum} and "
                f"{self.maximum} characters."
            )
        return f"{display_name} cannot exceed {self.maximum} characters."


class MinLengthRule(PropertyRule):
    """Text or collection must have at least ``length`` elements."""

    def __init__(self, property_name: str, length: int, **kwargs: Any) -> None:
        super().__init__(property_name, **kwargs)
        self.length = length

    def check(self, value: Any, display_name: str) -> str | None:
        if value is None or value == "":
            return None
        if len(value) >= self.length:
            return None
        return f"{display_name} must be at least {self.length} characters."


class MaxLengthRule(PropertyRule):
    """Text or collection must have at most ``length`` elements."""

    def __init__(self, property_name: str, length: int, **kwargs: Any) -> None:
        super().__init__(property_name, **kwargs)
        self.length = length

    def check(self, value: Any, display_name: str) -> str | None:
        if value is None:
            return None
        if len(value) <= self.length:
            return None
        return f"{display_name} cannot exceed {self.length} characters."


class RangeRule(PropertyRule):
    """Value must lie within ``minimum``..``maximum`` (inclusive)."""

    def __init__(self, property_name: str, minimum: Any, maximum: Any, **kwargs: Any) -> None:
        super().__init__(property_name, **kwargs)
        self.minimum = minimum
        self.maximum = maximum

    def check(self, value: Any, display_name: str) -> str | None:
        if value is None or value == "":
            return None
        if self.minimum <= value <= self.maximum:
            return None
        return f"{display_name} must be between {self.minimum} and {self.maximum}."


class RegexRule(PropertyRule):
    """Text must fully match ``pattern``."""

    def __init__(self, property_name: str, pattern: str | re.Pattern[str], **kwargs: Any) -> None:
        super().__init__(property_name, **kwargs)
        self.pattern = re.compile(pattern) if isinstance(pattern, str) else pattern

    def check(self, value: Any, display_name: str) -> str | None:
        if value is None or value == "":
            return None
        if self.pattern.fullmatch(str(value)):
            return None
        return f"{display_name} is not in the correct format."


class EmailAddressRule(PropertyRule):
    """Text must look like a single e-mail address."""

    def check(self, value: Any, display_name: str) -> str | None:
        if value is None or value == "":
            return None
        if EMAIL_PATTERN.match(str(value)):
            return None
        return f"{display_name} is not a valid email address."


class AllRequiredRulesExecuted(Rule):
    """Keep the object invalid until every RequiredRule has run at least once.

    Register it after the required rules. It runs last on every change of a
    required property and once immediately when added.
    """

    order = sys.maxsize
    run_on_add = True

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(OBJECT_INVALID, **kwargs)
        self._required: list[RequiredRule] = []

    def on_added(self, manager: RuleManager) -> None:
        self._required = [r for r in manager.rules if isinstance(r, RequiredRule)]
        triggers = list(self.trigger_properties)
        for rule in self._required:
            triggers.extend(t for t in rule.trigger_properties if t not in triggers)
        self.trigger_properties = tuple(triggers)

    def execute(self, target: Any, token: CancellationToken | None = None) -> list[Message]:
        missing = [
            name
            for rule in self._required
            if not rule.executed
            for name in rule.trigger_properties
        ]
        if not missing:
            return []
        return [Message(OBJECT_INVALID, "Required properties not set: " + ", ".join(missing))]
