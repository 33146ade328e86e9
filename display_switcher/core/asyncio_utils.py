"""Helpers for fire-and-forget asyncio tasks."""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine, MutableSet, Optional

from .logging_utils import LoggerLike, ensure_structured_logger


def create_logged_task(
    coro: Coroutine[Any, Any, Any],
    *,
    logger: LoggerLike = None,
    context: Optional[str] = None,
    pending: Optional[MutableSet[asyncio.Task[Any]]] = None,
) -> asyncio.Task[Any]:
    """Schedule ``coro`` so a crash is logged instead of silently dropped.

    When ``pending`` is given the task is held there until it finishes; the
    event loop itself only keeps weak references to tasks.
    """
    task_logger = ensure_structured_logger(logger, fallback_name="tasks")
    task = asyncio.get_running_loop().create_task(coro, name=context)

    def _report(done: asyncio.Task[Any]) -> None:
        if pending is not None:
            pending.discard(done)
        if done.cancelled():
            return
        exc = done.exception()
        if exc is not None:
            task_logger.error("Unhandled exception in %s", context or done.get_name(), exc_info=exc)

    if pending is not None:
        pending.add(task)
    task.add_done_callback(_report)
    return task


__all__ = ["create_logged_task"]
