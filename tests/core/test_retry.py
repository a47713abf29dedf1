"""Tests for retry utilities."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from geo_reminder.core.exceptions import (
    LocationUnavailable,
    NetworkError,
    TransientError,
    ValidationError,
)
from geo_reminder.core.retry import RetryConfig, with_retry, with_retry_sync


@pytest.mark.unit
class TestRetryConfig:
    def test_default_config(self):
        config = RetryConfig()
        assert config.max_attempts == 2
        assert config.base_delay == 0.5
        assert config.multiplier == 2.0
        assert config.max_delay == 5.0
        assert config.retryable_exceptions == (TransientError,)

    def test_from_retries_counts_extra_attempts(self):
        config = RetryConfig.from_retries(0, base_delay=0.1)
        assert config.max_attempts == 1
        assert config.base_delay == 0.1

    def test_delay_grows_and_caps(self):
        config = RetryConfig(base_delay=1.0, multiplier=2.0, max_delay=3.0)
        assert [config.delay_for(n) for n in range(4)] == [1.0, 2.0, 3.0, 3.0]


@pytest.mark.unit
@pytest.mark.critical
class TestWithRetryAsync:
    async def test_succeeds_on_first_attempt(self):
        operation = AsyncMock(return_value="success")

        result = await with_retry(operation)

        assert result == "success"
        assert operation.call_count == 1

    async def test_succeeds_after_transient_failure(self):
        operation = AsyncMock(side_effect=[NetworkError("connection failed"), "success"])

        with patch("geo_reminder.core.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            result = await with_retry(operation, RetryConfig(base_delay=0.2))

        assert result == "success"
        sleep.assert_awaited_once_with(0.2)

    async def test_reraises_last_transient_error(self):
        errors = [LocationUnavailable("first"), LocationUnavailable("second")]
        operation = AsyncMock(side_effect=errors)

        with pytest.raises(LocationUnavailable, match="second"):
            await with_retry(operation, RetryConfig(base_delay=0.0))

        assert operation.call_count == 2

    async def test_permanent_error_is_not_retried(self):
        operation = AsyncMock(side_effect=ValidationError("bad input"))

        with pytest.raises(ValidationError):
            await with_retry(operation, RetryConfig(max_attempts=5, base_delay=0.0))

        assert operation.call_count == 1

    async def test_custom_retryable_exceptions(self):
        operation = AsyncMock(side_effect=[ValueError("flaky"), "ok"])
        config = RetryConfig(base_delay=0.0, retryable_exceptions=(ValueError,))

        assert await with_retry(operation, config) == "ok"

    async def test_zero_attempts_is_an_error(self):
        with pytest.raises(RuntimeError):
            await with_retry(AsyncMock(), RetryConfig(max_attempts=0))


@pytest.mark.unit
class TestWithRetrySync:
    def test_succeeds_after_transient_failure(self):
        operation = MagicMock(side_effect=[NetworkError("timeout"), 42])

        with patch("geo_reminder.core.retry.time.sleep") as sleep:
            result = with_retry_sync(operation, RetryConfig(base_delay=0.3))

        assert result == 42
        sleep.assert_called_once_with(0.3)

    def test_gives_up_after_max_attempts(self):
        operation = MagicMock(side_effect=NetworkError("down"))

        with patch("geo_reminder.core.retry.time.sleep"):
            with pytest.raises(NetworkError):
                with_retry_sync(operation, RetryConfig(max_attempts=3))

        assert operation.call_count == 3
