import asyncio
import random
from typing import Any, Callable, Optional, Tuple, Type
from dataclasses import dataclass, field
from enum import Enum
import logging

logger = logging.getLogger(__name__)

class RetryStrategy(str, Enum):
    EXPONENTIAL_BACKOFF = "exponential_backoff"
    IMMEDIATE = "immediate"

@dataclass
class RetryConfig:
    """Configuration for retry behavior"""
    max_attempts: int = 4
    strategy: RetryStrategy = RetryStrategy.EXPONENTIAL_BACKOFF
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0
    backoff_multiplier: float = 2.0
    jitter: bool = True
    retry_on_exceptions: Tuple[Type[BaseException], ...] = field(
        default_factory=lambda: (ConnectionError, TimeoutError)
    )

class RetryHandler:
    """Runs async operations with exponential backoff between attempts"""

    def __init__(self, config: Optional[RetryConfig] = None):
        self.default_config = config or RetryConfig()

    def should_retry(
        self,
        attempt_number: int,
        error: Exception,
        config: RetryConfig
    ) -> bool:
        """Whether a failure on the given 1-based attempt is retried"""
        if attempt_number >= config.max_attempts:
            return False
        return isinstance(error, config.retry_on_exceptions)

    def _calculate_delay(self, attempt_count: int, config: RetryConfig) -> float:
        """Calculate retry delay based on strategy"""
        if config.strategy == RetryStrategy.IMMEDIATE:
            return 0.0

        delay = config.base_delay_seconds * (config.backoff_multiplier ** (attempt_count - 1))

        # Apply maximum delay limit
        delay = min(delay, config.max_delay_seconds)

        # Add jitter if enabled
        if config.jitter:
            jitter_amount = delay * 0.1  # 10% jitter
            delay += random.uniform(-jitter_amount, jitter_amount)

        # Ensure minimum delay
        return max(delay, 0.1)

    async def execute_with_retry(
        self,
        operation_id: str,
        operation: Callable,
        *args,
        config: Optional[RetryConfig] = None,
        **kwargs
    ) -> Any:
        """
        Execute an operation with retry logic

        Args:
            operation_id: Identifier used for logging
            operation: Coroutine function to execute
            config: Retry configuration, defaults to the handler's
            *args, **kwargs: Arguments to pass to operation

        Returns:
            Result of the operation

        Raises:
            Last exception if all attempts fail or the error is not retryable
        """
        retry_config = config or self.default_config

        for attempt in range(1, retry_config.max_attempts + 1):
            try:
                result = await operation(*args, **kwargs)

                if attempt > 1:
                    logger.info(f"Operation {operation_id} succeeded on attempt {attempt}")
                return result

            except Exception as e:
                if not self.should_retry(attempt, e, retry_config):
                    logger.error(f"Operation {operation_id} failed after {attempt} attempts: {str(e)}")
                    raise

                delay = self._calculate_delay(attempt, retry_config)
                logger.warning(
                    f"Operation {operation_id} failed, retrying in {delay:.2f}s "
                    f"(attempt {attempt}/{retry_config.max_attempts}): {str(e)}"
                )

                if delay > 0:
                    await asyncio.sleep(delay)
