"""
Tests for the retry policy.
"""

from unittest.mock import AsyncMock

import pytest

from employee_facade.services.errors import (
    CircuitOpenError,
    InvalidInputError,
    NotFoundError,
    RateLimitError,
    UpstreamClientError,
    UpstreamServerError,
    UpstreamUnavailableError,
)
from employee_facade.services.retry import RetryConfig, RetryPolicy


@pytest.fixture
def sleep():
    return AsyncMock()


def make_policy(sleep, **overrides) -> RetryPolicy:
    config = RetryConfig(**{"max_attempts": 3, "base_delay": 0.1, "jitter": False, **overrides})
    return RetryPolicy("employee_api", config, sleep=sleep)


class TestRetryScope:
    @pytest.mark.asyncio
    async def test_success_is_not_retried(self, sleep):
        call = AsyncMock(return_value="ok")

        assert await make_policy(sleep).run("list_all", call) == "ok"

        assert call.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            InvalidInputError("bad"),
            NotFoundError("Employee"),
            UpstreamClientError("forbidden", status=403),
            CircuitOpenError("employee_api", 10),
        ],
    )
    async def test_permanent_errors_are_attempted_once(self, sleep, error):
        call = AsyncMock(side_effect=error)

        with pytest.raises(type(error)):
            await make_policy(sleep).run("create", call)

        assert call.await_count == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [UpstreamServerError(500), UpstreamUnavailableError("connection refused")],
    )
    async def test_transient_errors_use_every_attempt(self, sleep, error):
        call = AsyncMock(side_effect=error)

        with pytest.raises(type(error)):
            await make_policy(sleep).run("list_all", call)

        assert call.await_count == 3
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failure(self, sleep):
        call = AsyncMock(side_effect=[UpstreamServerError(503), ["employee"]])

        assert await make_policy(sleep).run("list_all", call) == ["employee"]
        assert call.await_count == 2


class TestRateLimit:
    @pytest.mark.asyncio
    async def test_exhausted_rate_limit_becomes_upstream_client_error(self, sleep):
        call = AsyncMock(side_effect=RateLimitError("employee_api", retry_after=5))

        with pytest.raises(UpstreamClientError) as exc_info:
            await make_policy(sleep).run("list_all", call)

        assert exc_info.value.status == 429
        assert isinstance(exc_info.value.__cause__, RateLimitError)
        assert call.await_count == 3

    @pytest.mark.asyncio
    async def test_single_attempt_keeps_rate_limit(self, sleep):
        call = AsyncMock(side_effect=RateLimitError("employee_api", retry_after=5))

        with pytest.raises(RateLimitError) as exc_info:
            await make_policy(sleep, max_attempts=1).run("list_all", call)

        assert exc_info.value.retry_after == 5
        assert call.await_count == 1


class TestBackoff:
    def test_exponential_without_jitter(self, sleep):
        policy = make_policy(sleep, base_delay=0.1, multiplier=2.0, max_delay=10)

        delays = [policy.compute_delay(attempt) for attempt in (1, 2, 3)]

        assert delays == pytest.approx([0.1, 0.2, 0.4])

    def test_capped_by_max_delay(self, sleep):
        policy = make_policy(sleep, base_delay=1.0, max_delay=1.5)
        assert policy.compute_delay(5) == 1.5

    def test_jitter_stays_within_ten_percent(self, sleep):
        policy = make_policy(sleep, base_delay=1.0, jitter=True)

        for _ in range(50):
            assert 0.9 <= policy.compute_delay(1) <= 1.1

    @pytest.mark.asyncio
    async def test_sleeps_between_attempts(self, sleep):
        call = AsyncMock(side_effect=UpstreamServerError(500))
        policy = make_policy(sleep, base_delay=0.1, multiplier=2.0)

        with pytest.raises(UpstreamServerError):
            await policy.run("list_all", call)

        assert [c.args[0] for c in sleep.await_args_list] == pytest.approx([0.1, 0.2])

    @pytest.mark.asyncio
    async def test_waits_at_least_retry_after(self, sleep):
        call = AsyncMock(
            side_effect=[RateLimitError("employee_api", retry_after=1.5), ["employee"]]
        )
        policy = make_policy(sleep, base_delay=0.1, max_delay=2.0)

        assert await policy.run("list_all", call) == ["employee"]

        sleep.assert_awaited_once_with(1.5)

    @pytest.mark.asyncio
    async def test_retry_after_is_capped_by_max_delay(self, sleep):
        call = AsyncMock(
            side_effect=[RateLimitError("employee_api", retry_after=5), ["employee"]]
        )
        policy = make_policy(sleep, base_delay=0.1, max_delay=2.0)

        await policy.run("list_all", call)

        sleep.assert_awaited_once_with(2.0)

    @pytest.mark.asyncio
    async def test_backoff_longer_than_retry_after_is_kept(self, sleep):
        call = AsyncMock(
            side_effect=[RateLimitError("employee_api", retry_after=0.5), ["employee"]]
        )
        policy = make_policy(sleep, base_delay=1.0, max_delay=2.0)

        await policy.run("list_all", call)

        sleep.assert_awaited_once_with(1.0)
