"""
Fixed-size asyncio worker pool.

Workers pull the next item from a shared index instead of owning a static
slice of the list, so one slow item never holds back the rest of the queue.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_pool(
    items: Sequence[T],
    concurrency: int,
    handler: Callable[[T], Awaitable[None]],
    delay_seconds: float = 0.0,
) -> None:
    """
    Run ``handler`` once for every item using ``concurrency`` workers.

    Returns only after every item has been handled. When ``delay_seconds`` is
    positive each worker sleeps that long before every item except its first,
    which throttles request rate without lowering the number of workers.

    Claiming an item (read index, advance index) happens with no ``await`` in
    between, so no two workers can pick up the same item.
    """
    index = 0

    async def worker() -> None:
        nonlocal index
        first = True

        while index < len(items):
            if not first and delay_seconds > 0:
                await asyncio.sleep(delay_seconds)
                if index >= len(items):
                    break
            first = False

            item = items[index]
            index += 1

            try:
                await handler(item)
            except Exception:
                logger.exception(f"Worker failed on item {item!r}")

    workers = min(max(concurrency, 1), len(items))
    await asyncio.gather(*(worker() for _ in range(workers)))
