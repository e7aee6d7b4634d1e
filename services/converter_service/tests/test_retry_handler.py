import pytest
from unittest.mock import AsyncMock, patch

from services.converter_service.services.retry_handler import (
    RetryConfig, RetryHandler, RetryStrategy
)

class TestRetryHandler:

    def test_exponential_delay(self):
        handler = RetryHandler()
        config = RetryConfig(base_delay_seconds=1.0, backoff_multiplier=2.0, jitter=False)

        delays = [handler._calculate_delay(attempt, config) for attempt in (1, 2, 3)]

        assert delays == [1.0, 2.0, 4.0]

    def test_delay_is_capped(self):
        handler = RetryHandler()
        config = RetryConfig(base_delay_seconds=10.0, max_delay_seconds=15.0, jitter=False)

        assert handler._calculate_delay(5, config) == 15.0

    def test_jitter_stays_within_ten_percent(self):
        handler = RetryHandler()
        config = RetryConfig(base_delay_seconds=2.0, jitter=True)

        for _ in range(20):
            assert 1.8 <= handler._calculate_delay(1, config) <= 2.2

    def test_immediate_strategy(self):
        handler = RetryHandler()

        assert handler._calculate_delay(3, RetryConfig(strategy=RetryStrategy.IMMEDIATE)) == 0.0

    @pytest.mark.asyncio
    async def test_succeeds_after_retries(self):
        handler = RetryHandler(RetryConfig(max_attempts=3, base_delay_seconds=0.5))
        operation = AsyncMock(side_effect=[ConnectionError("down"), ConnectionError("down"), "ok"])

        with patch('asyncio.sleep', new_callable=AsyncMock) as mock_sleep:
            result = await handler.execute_with_retry("op-1", operation, "arg", key="value")

        assert result == "ok"
        assert operation.await_count == 3
        operation.assert_awaited_with("arg", key="value")
        assert mock_sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        handler = RetryHandler(RetryConfig(max_attempts=2, strategy=RetryStrategy.IMMEDIATE))
        operation = AsyncMock(side_effect=TimeoutError("slow"))

        with pytest.raises(TimeoutError):
            await handler.execute_with_retry("op-2", operation)

        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_failed_operations_leave_no_state(self):
        config = RetryConfig(max_attempts=2, strategy=RetryStrategy.IMMEDIATE)
        handler = RetryHandler(config)

        for index in range(50):
            with pytest.raises(ConnectionError):
                await handler.execute_with_retry(
                    f"error:f{index}", AsyncMock(side_effect=ConnectionError("down"))
                )

        assert vars(handler) == {'default_config': config}

    @pytest.mark.asyncio
    async def test_non_retryable_error_is_raised_immediately(self):
        handler = RetryHandler(RetryConfig(max_attempts=5, strategy=RetryStrategy.IMMEDIATE))
        operation = AsyncMock(side_effect=ValueError("bad input"))

        with pytest.raises(ValueError):
            await handler.execute_with_retry("op-3", operation)

        assert operation.await_count == 1
