"""
Helpers for the engine's background tasks.

Tasks are cancelled from state listeners, which may run inside the very
task being cancelled; such a task is left to return on its own.
"""

import asyncio
from typing import Any, Optional


def cancel_task(task: Optional["asyncio.Task[Any]"]) -> None:
    if task is not None and not task.done() and task is not asyncio.current_task():
        task.cancel()


async def cancel_and_wait(task: Optional["asyncio.Task[Any]"]) -> None:
    """Cancel a task and wait until it has unwound."""
    if task is None or task is asyncio.current_task():
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
