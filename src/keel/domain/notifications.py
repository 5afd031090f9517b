"""Change-notification plumbing shared by properties, objects and lists."""

from __future__ import annotations

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

Listener = Callable[[object, str], None]

# Meta-property names published to listeners when their value changes.
IS_VALID = "is_valid"
IS_SELF_VALID = "is_self_valid"
IS_BUSY = "is_busy"
IS_SELF_BUSY = "is_self_busy"
IS_MODIFIED = "is_modified"
IS_SELF_MODIFIED = "is_self_modified"
IS_SAVABLE = "is_savable"
IS_DELETED = "is_deleted"
MESSAGES = "messages"
VALUE = "value"


class Observable:
    """Minimal listener registry.

    Listeners are called as ``listener(sender, name)`` where ``name`` is the
    property or meta-property that changed.
    """

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, name: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(self, name)
            except Exception:  # pylint: disable=broad-except
                logger.exception(
                    "Listener %r failed handling change of %s on %s",
                    listener,
                    name,
                    type(self).__name__,
                )
                raise
