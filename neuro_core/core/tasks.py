"""
Background task supervision.

Fire-and-forget work (webhooks, persistence writes after return, the auto
video pipeline) runs here so that every task keeps a strong reference until
it finishes and every failure reaches a single error sink.
"""

import asyncio
from typing import Any, Callable, Coroutine, Optional, Set

import structlog

logger = structlog.get_logger(__name__)

ErrorSink = Callable[[str, BaseException], Any]


class TaskSupervisor:
    """Tracks detached asyncio tasks and reports their failures."""

    def __init__(self, on_error: Optional[ErrorSink] = None):
        self._tasks: Set[asyncio.Task] = set()
        self._on_error = on_error
        self._logger = logger.bind(component="task_supervisor")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str = "background") -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        self._logger.error(
            "background_task_failed",
            task=task.get_name(),
            error=str(exc),
            error_type=type(exc).__name__,
            exc_info=exc,
        )
        if self._on_error is not None:
            try:
                self._on_error(task.get_name(), exc)
            except Exception as sink_error:
                self._logger.error("error_sink_failed", error=str(sink_error))

    async def drain(self) -> None:
        """Wait for all outstanding tasks, including ones spawned meanwhile."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel_all(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
