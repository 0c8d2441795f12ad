import asyncio

import pytest

from gridiron.services.fanout import Ok, Skip, fan_out


@pytest.mark.asyncio
async def test_all_items_succeed_order_unconstrained() -> None:
    items = list(range(20))

    async def double(x: int) -> int:
        await asyncio.sleep(0.001 * (x % 3))
        return x * 2

    result = await fan_out(items, double, max_concurrency=8)
    assert len(result.values) == 20
    assert sorted(result.values) == [x * 2 for x in items]
    assert result.skipped == []


@pytest.mark.asyncio
async def test_failing_item_is_dropped_without_stopping_batch() -> None:
    async def fn(x: int) -> int:
        await asyncio.sleep(0)
        if x == 4:
            raise ValueError("bad item")
        return x

    result = await fan_out(list(range(10)), fn, max_concurrency=8)
    assert sorted(result.values) == [0, 1, 2, 3, 5, 6, 7, 8, 9]
    assert len(result.skipped) == 1
    assert result.skipped[0].index == 4
    assert "bad item" in result.skipped[0].reason


@pytest.mark.asyncio
async def test_missing_value_is_a_skip() -> None:
    async def fn(x: int):
        return None if x % 2 else x

    result = await fan_out([0, 1, 2, 3], fn)
    assert sorted(result.values) == [0, 2]
    assert all(isinstance(s, Skip) and s.reason == "no result" for s in result.skipped)


@pytest.mark.asyncio
async def test_worker_count_is_bounded() -> None:
    in_flight = 0
    peak = 0

    async def fn(x: int) -> int:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.005)
        in_flight -= 1
        return x

    result = await fan_out(list(range(30)), fn, max_concurrency=8)
    assert len(result.values) == 30
    assert peak == 8


@pytest.mark.asyncio
async def test_fewer_items_than_workers() -> None:
    in_flight = 0
    peak = 0

    async def fn(x: int) -> int:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.001)
        in_flight -= 1
        return x

    result = await fan_out([1, 2, 3], fn, max_concurrency=8)
    assert sorted(result.values) == [1, 2, 3]
    assert peak == 3


@pytest.mark.asyncio
async def test_each_index_claimed_exactly_once() -> None:
    seen = []

    async def fn(x: int) -> int:
        seen.append(x)
        await asyncio.sleep(0)
        return x

    result = await fan_out(list(range(50)), fn, max_concurrency=8)
    assert sorted(seen) == list(range(50))
    assert sorted(o.index for o in result.outcomes if isinstance(o, Ok)) == list(range(50))


@pytest.mark.asyncio
async def test_empty_input() -> None:
    async def fn(x):
        raise AssertionError("never called")

    result = await fan_out([], fn)
    assert result.values == []
    assert result.outcomes == []
