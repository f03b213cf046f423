"""Run nested workflow executions for Parallel and Map."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Callable, List, Optional

from ..constants import STATES_EXCEED_TOLERATED_FAILURE_THRESHOLD, STATES_TASK_FAILED
from ..errors import TaskFailed

if TYPE_CHECKING:
    from ..context import Context
    from ..workflow import Execution

logger = logging.getLogger(__name__)


async def run_children(
    executions: List["Execution"],
    max_concurrency: int = 0,
    tolerate: Optional[Callable[[int], bool]] = None,
) -> List["Context"]:
    """Run ``executions`` concurrently and return their contexts in order.

    ``max_concurrency`` of 0 means unbounded. Without ``tolerate`` the first
    failed child fails the whole group with its error; with it, failures are
    counted and the group fails once ``tolerate(failures)`` is false. Either
    way, unfinished siblings are cancelled and awaited before returning.
    """
    semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def run_one(child: "Execution") -> "Context":
        if semaphore is None:
            return await child.run()
        async with semaphore:
            return await child.run()

    tasks = [asyncio.ensure_future(run_one(child)) for child in executions]
    failures = 0
    try:
        for completed in asyncio.as_completed(tasks):
            context = await completed
            if not context.failed:
                continue
            failures += 1
            if tolerate is None:
                raise TaskFailed(
                    context.execution.get("Error") or STATES_TASK_FAILED,
                    context.execution.get("Cause"),
                )
            if not tolerate(failures):
                raise TaskFailed(
                    STATES_EXCEED_TOLERATED_FAILURE_THRESHOLD,
                    f"{failures} of {len(tasks)} iterations failed",
                )
    finally:
        pending = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            logger.debug(f"Cancelling {len(pending)} unfinished child executions")
            await asyncio.gather(*pending, return_exceptions=True)

    return [task.result() for task in tasks]
