import asyncio
import time

import pytest

from foghorn.platform.worker_pool import run_pool


@pytest.mark.asyncio
async def test_every_item_handled_exactly_once():
    seen = []

    async def handler(item):
        await asyncio.sleep(0)
        seen.append(item)

    await run_pool(list(range(20)), 4, handler)

    assert sorted(seen) == list(range(20))


@pytest.mark.asyncio
async def test_concurrency_is_bounded():
    active = 0
    peak = 0

    async def handler(item):
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.01)
        active -= 1

    await run_pool(list(range(12)), 3, handler)

    assert peak == 3


@pytest.mark.asyncio
async def test_fewer_items_than_workers():
    seen = []

    async def handler(item):
        seen.append(item)

    await run_pool(["a"], 5, handler)

    assert seen == ["a"]


@pytest.mark.asyncio
async def test_empty_item_list():
    async def handler(item):
        raise AssertionError("should not be called")

    await run_pool([], 3, handler)


@pytest.mark.asyncio
async def test_failing_item_does_not_stop_the_pool():
    seen = []

    async def handler(item):
        if item == 2:
            raise RuntimeError("boom")
        seen.append(item)

    await run_pool([1, 2, 3, 4], 1, handler)

    assert seen == [1, 3, 4]


@pytest.mark.asyncio
async def test_single_worker_keeps_order():
    seen = []

    async def handler(item):
        seen.append(item)

    await run_pool(["x", "y", "z"], 1, handler)

    assert seen == ["x", "y", "z"]


@pytest.mark.asyncio
async def test_delay_between_items_of_one_worker():
    started = []

    async def handler(item):
        started.append(time.monotonic())

    await run_pool([1, 2, 3], 1, handler, delay_seconds=0.05)

    assert started[1] - started[0] >= 0.04
    assert started[2] - started[1] >= 0.04


@pytest.mark.asyncio
async def test_first_item_of_each_worker_is_not_delayed():
    start = time.monotonic()

    async def handler(item):
        pass

    await run_pool([1, 2, 3], 3, handler, delay_seconds=5)

    assert time.monotonic() - start < 1
