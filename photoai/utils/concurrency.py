"""Structured fan-out helpers for concurrent provider calls."""

import asyncio
from typing import Awaitable, Iterable, List, TypeVar

from .logger import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


async def gather_all_or_nothing(aws: Iterable[Awaitable[T]]) -> List[T]:
    """
    Run awaitables concurrently and return their results in input order.

    Result ``i`` always belongs to awaitable ``i``, whatever order they
    finish in. The first failure cancels everything still running, waits
    for the cancellations to settle, and re-raises that failure.

    Args:
        aws: Coroutines or futures to run

    Returns:
        Results, index-aligned with ``aws``
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    if not tasks:
        return []

    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        pending = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        # Drain so no task is left un-awaited after we raise
        await asyncio.gather(*tasks, return_exceptions=True)
        if pending:
            logger.warning(
                f"Cancelled {len(pending)}/{len(tasks)} outstanding calls after failure",
                extra={"cancelled": len(pending), "total": len(tasks)}
            )
        raise
