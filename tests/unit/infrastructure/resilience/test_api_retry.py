import asyncio

import httpx
import pytest
from unittest.mock import AsyncMock

from workdocs.domain.errors import NotFoundError, RemoteRejection, TransportError, ValidationError
from workdocs.infrastructure.resilience.api_retry import (
    ApiRetryService,
    RetryPolicy,
    is_retryable_error,
)


@pytest.fixture
def sleep():
    """Records requested delays instead of sleeping."""
    return AsyncMock()


@pytest.fixture
def retry_service(sleep):
    return ApiRetryService(sleep=sleep)


def test_delay_sequence_is_exponential_and_capped():
    policy = RetryPolicy(base_delay=1.0, backoff_multiplier=2.0, max_delay=30.0)
    delays = [policy.delay_for_attempt(n) for n in range(1, 8)]
    assert delays == [1.0, 2.0, 4.0, 8.0, 16.0, 30.0, 30.0]


def test_policy_rejects_zero_attempts():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)


@pytest.mark.parametrize("error, expected", [
    (TransportError("reset"), True),
    (TransportError("server", status_code=500), True),
    (TransportError("unavailable", status_code=503), True),
    (TransportError("throttled", status_code=429), True),
    (TransportError("bad request", status_code=400), False),
    (TransportError("unauthorized", status_code=401), False),
    (httpx.ConnectTimeout("timeout"), True),
    (httpx.ConnectError("refused"), True),
    (asyncio.TimeoutError(), True),
    (ConnectionResetError(), True),
    (ValidationError("bad id"), False),
    (NotFoundError("missing"), False),
    (RemoteRejection("fault"), False),
    (ValueError("boom"), False),
])
def test_default_retry_classification(error, expected):
    assert is_retryable_error(error) is expected


@pytest.mark.asyncio
async def test_returns_result_without_retry(retry_service, sleep):
    func = AsyncMock(return_value="ok")

    result = await retry_service.execute_with_retry(func, "a", key="b")

    assert result == "ok"
    func.assert_awaited_once_with("a", key="b")
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_retries_transient_errors_until_success(retry_service, sleep):
    func = AsyncMock(side_effect=[TransportError("down", status_code=503), TransportError("reset"), "ok"])

    result = await retry_service.execute_with_retry(func, operation_name="flaky call")

    assert result == "ok"
    assert func.await_count == 3
    assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]


@pytest.mark.asyncio
async def test_non_retryable_error_aborts_immediately(retry_service, sleep):
    func = AsyncMock(side_effect=TransportError("bad request", status_code=400))

    with pytest.raises(TransportError) as exc_info:
        await retry_service.execute_with_retry(func)

    assert exc_info.value.status_code == 400
    func.assert_awaited_once()
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_exhaustion_reraises_last_error(retry_service, sleep):
    errors = [TransportError("first", status_code=500), TransportError("second", status_code=502),
              TransportError("third", status_code=504)]
    func = AsyncMock(side_effect=errors)

    with pytest.raises(TransportError) as exc_info:
        await retry_service.execute_with_retry(func)

    assert exc_info.value is errors[-1]
    assert func.await_count == 3
    # No delay after the final attempt
    assert sleep.await_count == 2


@pytest.mark.asyncio
async def test_per_call_policy_overrides_default(retry_service, sleep):
    func = AsyncMock(side_effect=TransportError("down", status_code=500))
    policy = RetryPolicy(max_attempts=5, base_delay=0.5, backoff_multiplier=3.0, max_delay=4.0)

    with pytest.raises(TransportError):
        await retry_service.execute_with_retry(func, policy=policy)

    assert func.await_count == 5
    assert [c.args[0] for c in sleep.await_args_list] == [0.5, 1.5, 4.0, 4.0]


@pytest.mark.asyncio
async def test_custom_should_retry_predicate(retry_service):
    func = AsyncMock(side_effect=[KeyError("x"), "ok"])
    policy = RetryPolicy(should_retry=lambda e: isinstance(e, KeyError))

    assert await retry_service.execute_with_retry(func, policy=policy) == "ok"
