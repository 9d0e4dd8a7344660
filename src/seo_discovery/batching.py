"""Chunked concurrency for network fetches.

Work is split into fixed-size batches. Each batch runs concurrently and is
awaited with ``return_exceptions=True``, so one failing fetch never cancels
its siblings. A short pause between batches keeps the load on the target
server bounded.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Iterable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class BatchOutcome(Generic[T, R]):
    """Settled result of one item: either a value or the exception it raised."""

    item: T
    value: Optional[R] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def chunked(items: List[T], size: int) -> List[List[T]]:
    """Split a list into consecutive chunks of at most ``size`` items."""
    if size < 1:
        raise ValueError("batch size must be at least 1")
    return [items[i:i + size] for i in range(0, len(items), size)]


async def run_in_batches(
    items: Iterable[T],
    func: Callable[[T], Awaitable[R]],
    batch_size: int,
    delay: float = 0.0,
    label: str = "batch",
) -> List[BatchOutcome[T, R]]:
    """Run ``func`` over ``items`` in batches with all-settled semantics.

    Args:
        items: Work items, processed in order
        func: Coroutine function applied to each item
        batch_size: Maximum concurrent calls per batch
        delay: Seconds to sleep between batches (not after the last one)
        label: Name used in log messages

    Returns:
        One BatchOutcome per item, in input order
    """
    work = list(items)
    outcomes: List[BatchOutcome[T, R]] = []
    batches = chunked(work, batch_size) if work else []

    for index, batch in enumerate(batches):
        results = await asyncio.gather(
            *(func(item) for item in batch),
            return_exceptions=True,
        )

        for item, result in zip(batch, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.warning(f"{label} item failed ({item}): {result}")
                outcomes.append(BatchOutcome(item=item, error=result))
            else:
                outcomes.append(BatchOutcome(item=item, value=result))

        if delay > 0 and index < len(batches) - 1:
            await asyncio.sleep(delay)

    return outcomes
