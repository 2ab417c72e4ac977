"""지수 백오프 재시도 단위 테스트"""
import pytest

from market_import.core.exceptions import ConnectionTestError, TransientUpstreamError
from market_import.shared.retry import retry_with_backoff


async def test_retries_until_success(clock):
    attempts = []

    async def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise TransientUpstreamError("503")
        return "ok"

    result = await retry_with_backoff(flaky, max_attempts=3, base_delay=1.0,
                                      retry_on=(TransientUpstreamError,), sleep=clock.sleep)

    assert result == "ok"
    assert clock.sleeps == [1.0, 2.0]


async def test_reraises_after_last_attempt(clock):
    async def always_down():
        raise TransientUpstreamError("503")

    with pytest.raises(TransientUpstreamError):
        await retry_with_backoff(always_down, max_attempts=3, base_delay=4.0, max_delay=5.0,
                                 retry_on=(TransientUpstreamError,), sleep=clock.sleep)

    assert clock.sleeps == [4.0, 5.0]


async def test_non_retryable_error_is_not_retried(clock):
    calls = []

    async def rejected():
        calls.append(1)
        raise ConnectionTestError("401")

    with pytest.raises(ConnectionTestError):
        await retry_with_backoff(rejected, retry_on=(TransientUpstreamError,), sleep=clock.sleep)

    assert len(calls) == 1
    assert clock.sleeps == []
