"""Outstanding asynchronous work for one node of an object graph."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from functools import partial

logger = logging.getLogger(__name__)


class TaskTracker:
    """Track in-flight tasks (async rule runs and lazy loads) for one object.

    A task is registered with the tracker of the object that started it
    (``own=True``) and with the trackers of all of that object's ancestors,
    so waiting on a root covers the whole aggregate. Only the owning tracker
    records a failed task's exception; ancestors merely wait for it.

    Args:
        on_idle: Called every time the last pending task finishes.
    """

    def __init__(self, on_idle: Callable[[], None] | None = None) -> None:
        self._pending: dict[asyncio.Future, bool] = {}
        self._errors: list[BaseException] = []
        self._on_idle = on_idle

    @property
    def is_running(self) -> bool:
        """True while any tracked task has not finished."""
        return bool(self._pending)

    @property
    def is_self_running(self) -> bool:
        """True while a task started by the owning object has not finished."""
        return any(self._pending.values())

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def add(self, task: asyncio.Future, *, own: bool = True) -> None:
        """Start tracking ``task``."""
        if task.done():
            self._record(task, own)
            return
        self._pending[task] = own
        task.add_done_callback(partial(self._task_done, own=own))

    async def wait(self) -> None:
        """Wait until no tracked task is pending, including tasks added meanwhile."""
        while self._pending:
            await asyncio.wait(list(self._pending))

    def pop_errors(self) -> list[BaseException]:
        """Return and forget the exceptions raised by finished tasks."""
        errors, self._errors = self._errors, []
        return errors

    def _task_done(self, task: asyncio.Future, own: bool) -> None:
        self._pending.pop(task, None)
        self._record(task, own)
        if not self._pending and self._on_idle is not None:
            self._on_idle()

    def _record(self, task: asyncio.Future, own: bool) -> None:
        if not own or task.cancelled():
            return
        if (exc := task.exception()) is not None:
            logger.debug("Tracked task %r failed: %r", task, exc)
            self._errors.append(exc)
