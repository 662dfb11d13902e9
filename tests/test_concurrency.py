"""Tests for ordered all-or-nothing fan-out."""

import asyncio

import pytest

from photoai.utils.concurrency import gather_all_or_nothing


async def _after(delay: float, value):
    await asyncio.sleep(delay)
    return value


@pytest.mark.asyncio
async def test_results_follow_input_order():
    """Results line up with inputs even when later inputs finish first."""
    results = await gather_all_or_nothing([
        _after(0.03, "a"),
        _after(0.02, "b"),
        _after(0.01, "c"),
    ])

    assert results == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_empty_input():
    assert await gather_all_or_nothing([]) == []


@pytest.mark.asyncio
async def test_first_failure_cancels_the_rest():
    """A failure cancels calls still in flight and is re-raised."""
    cancelled = []

    async def slow(name):
        try:
            await asyncio.sleep(5)
        except asyncio.CancelledError:
            cancelled.append(name)
            raise

    async def boom():
        await asyncio.sleep(0)
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        await gather_all_or_nothing([slow("x"), boom(), slow("y")])

    assert sorted(cancelled) == ["x", "y"]

