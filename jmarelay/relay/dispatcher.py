"""Fire-and-forget dispatch of file events onto independent asyncio tasks.

The dispatcher never lets a task's failure reach the caller: every task
catches and logs its own exceptions. It only holds strong references to
in-flight tasks so they are not garbage collected mid-flight.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from jmarelay.schemas.relay import FileEvent

logger = logging.getLogger(__name__)

EventCallback = Callable[[FileEvent], Awaitable[object]]


class EventDispatcher:
    """Spawns one task per FileEvent; unbounded, unordered."""

    def __init__(self, callback: EventCallback) -> None:
        self._callback = callback
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        """Number of tasks still in flight."""
        return len(self._tasks)

    def dispatch(self, event: FileEvent) -> asyncio.Task:
        """Schedule ``callback(event)`` and return immediately.

        Must be called from within the running event loop.
        """
        task = asyncio.get_running_loop().create_task(
            self._run(event), name=f"relay:{event.path.name}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, event: FileEvent) -> None:
        try:
            await self._callback(event)
        except Exception:
            logger.exception("Callback %s error occurred", event.path)

    async def drain(self) -> None:
        """Wait until every in-flight task (including ones spawned meanwhile) is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
