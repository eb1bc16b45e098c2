"""
Unit tests for the bounded retry around rate-limited calls.
"""

import pytest
from unittest.mock import AsyncMock

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from shared.errors import RateLimitedError, RetriesExhaustedError, TransportError, UpstreamError
from shared.retry import RetryConfig, call_with_retry


@pytest.fixture
def sleep():
    return AsyncMock()


@pytest.mark.asyncio
async def test_success_on_first_attempt(sleep):
    operation = AsyncMock(return_value="url")

    assert await call_with_retry(operation, sleep=sleep) == "url"
    assert operation.await_count == 1
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_success_after_two_rate_limits(sleep):
    operation = AsyncMock(side_effect=[RateLimitedError(), RateLimitedError(), "url"])

    result = await call_with_retry(operation, sleep=sleep)

    assert result == "url"
    assert operation.await_count == 3
    assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]


@pytest.mark.asyncio
async def test_exhausted_after_three_attempts(sleep):
    operation = AsyncMock(side_effect=RateLimitedError())

    with pytest.raises(RetriesExhaustedError) as exc_info:
        await call_with_retry(operation, sleep=sleep)

    assert operation.await_count == 3
    assert sleep.await_count == 2
    assert exc_info.value.attempts == 3
    assert isinstance(exc_info.value.last_exception, RateLimitedError)
    assert exc_info.value.message == "Too many requests, please try again later."


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [
    TransportError(),
    UpstreamError(500, "boom"),
    ValueError("bad"),
])
async def test_other_errors_are_not_retried(sleep, error):
    operation = AsyncMock(side_effect=error)

    with pytest.raises(type(error)):
        await call_with_retry(operation, sleep=sleep)

    assert operation.await_count == 1
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_custom_config(sleep):
    operation = AsyncMock(side_effect=RateLimitedError())
    config = RetryConfig(max_attempts=5, base_delay=0.5)

    with pytest.raises(RetriesExhaustedError):
        await call_with_retry(operation, config, sleep=sleep)

    assert operation.await_count == 5
    assert [c.args[0] for c in sleep.await_args_list] == [0.5, 1.0, 1.5, 2.0]


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        RetryConfig(max_attempts=0)


def test_delay_grows_linearly_up_to_cap():
    config = RetryConfig(base_delay=1.0, max_delay=10.0)

    assert [config.delay_for(n) for n in (1, 2, 3)] == [1.0, 2.0, 3.0]
    assert config.delay_for(100) == 10.0
