"""Tests for the backoff retry decorator."""

import pytest

from photoai.utils.errors import ProviderRejected, ProviderUnavailable
from photoai.utils.retry import backoff_delays, retry_async


@pytest.fixture
def sleeps(monkeypatch):
    recorded = []

    async def _sleep(delay):
        recorded.append(delay)

    monkeypatch.setattr("photoai.utils.retry.asyncio.sleep", _sleep)
    return recorded


def test_backoff_delays_grow_and_cap():
    assert list(backoff_delays(5, initial_delay=1.0, backoff_factor=2.0, max_delay=5.0)) == [1.0, 2.0, 4.0, 5.0, 5.0]
    assert list(backoff_delays(0)) == []


@pytest.mark.asyncio
async def test_retries_until_success(sleeps):
    attempts = []

    @retry_async(max_attempts=3)
    async def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise ProviderUnavailable("fal", "HTTP 503", 503)
        return "ok"

    assert await flaky() == "ok"
    assert len(attempts) == 3
    assert sleeps == [1.0, 2.0]


@pytest.mark.asyncio
async def test_gives_up_and_reraises(sleeps):
    @retry_async(max_attempts=2)
    async def down():
        raise ProviderUnavailable("fal", "HTTP 500", 500)

    with pytest.raises(ProviderUnavailable):
        await down()
    assert sleeps == [1.0]


@pytest.mark.asyncio
async def test_rejections_are_not_retried(sleeps):
    attempts = []

    @retry_async(max_attempts=3)
    async def refused():
        attempts.append(1)
        raise ProviderRejected("fal", "HTTP 422", 422)

    with pytest.raises(ProviderRejected):
        await refused()
    assert len(attempts) == 1
    assert sleeps == []
