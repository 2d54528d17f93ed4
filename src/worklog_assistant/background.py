"""Fire-and-forget task spawning.

Side effects that run after a response is committed are spawned here.
Every spawn names an error callback, and a failing task is reported
only through it; nothing is re-raised to whoever spawned the task.
"""

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[BaseException], object]


class BackgroundTasks:
    """Owns the background tasks of one process.

    Holds a strong reference to each task until it finishes, so the event
    loop cannot garbage-collect it mid-flight.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(
        self,
        coro: Coroutine[Any, Any, Any],
        on_error: ErrorCallback,
        name: str | None = None,
    ) -> "asyncio.Task[Any]":
        """Schedule `coro` on the running loop.

        Args:
            coro: The side effect to run
            on_error: Called with the exception if `coro` fails
            name: Task name for debugging
        """
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._finish(t, on_error))
        return task

    def _finish(self, task: "asyncio.Task[Any]", on_error: ErrorCallback) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            return
        try:
            on_error(error)
        except Exception:
            logger.exception("Error callback of background task %s failed", task.get_name())

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for pending tasks, cancelling any still running after `timeout`."""
        if not self._tasks:
            return
        tasks = list(self._tasks)
        _, still_running = await asyncio.wait(tasks, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            logger.warning("Cancelled %d background tasks at shutdown", len(still_running))
            await asyncio.gather(*still_running, return_exceptions=True)
