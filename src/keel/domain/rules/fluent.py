"""Rules backed by plain functions.

Used through the RuleManager helpers::

    rules.add_validation(lambda p: "" if p.name else "Name is required", "name")
    rules.add_action_async(refresh_totals, "lines.quantity", "lines.price")

A validation function returns an error text; an empty or blank text means
the value is valid. An action function returns nothing and produces no
messages.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from typing import Any

from keel.domain.messages import Message
from keel.domain.rules.base import AsyncRule, CancellationToken, Rule


def _accepts_token(fn: Callable[..., Any]) -> bool:
    try:
        params = inspect.signature(fn).parameters.values()
    except (TypeError, ValueError):
        return False
    positional = [
        p
        for p in params
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    ]
    return len(positional) >= 2 or any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in params)


def _call(fn: Callable[..., Any], target: Any, token: CancellationToken | None) -> Any:
    return fn(target, token) if _accepts_token(fn) else fn(target)


def _text_to_messages(property_name: str, text: str | None) -> list[Message]:
    if text and text.strip():
        return [Message(property_name, text)]
    return []


class ValidationRule(Rule):
    """Synchronous validation of one property by a function."""

    def __init__(self, fn: Callable[..., str | None], trigger: str, **kwargs: Any) -> None:
        super().__init__(trigger, **kwargs)
        self.fn = fn

    def execute(self, target: Any, token: CancellationToken | None = None) -> list[Message]:
        return _text_to_messages(self.trigger_properties[0], _call(self.fn, target, token))


class AsyncValidationRule(AsyncRule):
    """Asynchronous validation of one property by a coroutine function."""

    def __init__(
        self, fn: Callable[..., Awaitable[str | None]], trigger: str, **kwargs: Any
    ) -> None:
        super().__init__(trigger, **kwargs)
        self.fn = fn

    async def execute(self, target: Any, token: CancellationToken | None = None) -> list[Message]:
        return _text_to_messages(self.trigger_properties[0], await _call(self.fn, target, token))


class ActionRule(Rule):
    """Synchronous side effect (typically setting derived properties)."""

    def __init__(self, fn: Callable[..., None], *triggers: str, **kwargs: Any) -> None:
        super().__init__(*triggers, **kwargs)
        self.fn = fn

    def execute(self, target: Any, token: CancellationToken | None = None) -> list[Message]:
        _call(self.fn, target, token)
        return []


class AsyncActionRule(AsyncRule):
    """Asynchronous side effect."""

    def __init__(self, fn: Callable[..., Awaitable[None]], *triggers: str, **kwargs: Any) -> None:
        super().__init__(*triggers, **kwargs)
        self.fn = fn

    async def execute(self, target: Any, token: CancellationToken | None = None) -> list[Message]:
        await _call(self.fn, target, token)
        return []
