"""Retry mechanism with exponential backoff and jitter.

Used around vendor calls: a transient status (rate limit, overloaded
backend, timeout) is retried after a backoff, everything else propagates on
the first failure.
"""

import asyncio
import random
from dataclasses import dataclass, field
from typing import Callable, Any, Optional, List

import httpx

from ..core.structured_logging import LoggerFactory

logger = LoggerFactory.get_logger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_attempts: int = 2
    initial_delay: float = 1.0  # seconds
    max_delay: float = 30.0  # seconds
    exponential_base: float = 2.0
    jitter: bool = True
    jitter_range: tuple = (0.5, 1.0)  # Multiplier range for jitter
    retryable_exceptions: tuple = (
        ConnectionError,
        TimeoutError,
        httpx.ConnectTimeout,
        httpx.ReadTimeout,
    )
    retryable_status_codes: List[int] = field(default_factory=lambda: [429, 500, 502, 503, 504])
    on_retry: Optional[Callable] = None  # Callback on each retry


class RetryExhausted(Exception):
    """Raised when all retry attempts are exhausted."""
    def __init__(self, message: str, last_exception: Optional[Exception] = None):
        super().__init__(message)
        self.last_exception = last_exception


class RetryManager:
    """Manager for retry logic with exponential backoff."""

    def __init__(self, config: Optional[RetryConfig] = None):
        self.config = config or RetryConfig()

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay for the given attempt number (0-based)."""
        delay = min(
            self.config.initial_delay * (self.config.exponential_base ** attempt),
            self.config.max_delay
        )

        if self.config.jitter:
            jitter_min, jitter_max = self.config.jitter_range
            delay = delay * random.uniform(jitter_min, jitter_max)

        return delay

    def is_retryable(self, exception: Exception) -> bool:
        if isinstance(exception, self.config.retryable_exceptions):
            return True

        status_code = getattr(exception, "status_code", None)
        if status_code is None:
            response = getattr(exception, "response", None)
            status_code = getattr(response, "status_code", None)
        return status_code in self.config.retryable_status_codes

    async def execute_with_retry(
        self,
        func: Callable,
        *args,
        operation_name: Optional[str] = None,
        **kwargs
    ) -> Any:
        """Execute function with retry logic."""
        operation_name = operation_name or func.__name__
        last_exception = None

        for attempt in range(self.config.max_attempts):
            try:
                if attempt > 0:
                    logger.info(
                        f"Retry attempt {attempt + 1}/{self.config.max_attempts} for {operation_name}",
                        operation=operation_name,
                        attempt=attempt + 1,
                    )

                if asyncio.iscoroutinefunction(func):
                    result = await func(*args, **kwargs)
                else:
                    result = func(*args, **kwargs)

                if attempt > 0:
                    logger.info(f"Operation {operation_name} succeeded after {attempt + 1} attempts")

                return result

            except Exception as e:
                last_exception = e

                if not self.is_retryable(e):
                    logger.error(
                        f"Operation {operation_name} failed with non-retryable error: {e}",
                        operation=operation_name,
                        error_type=type(e).__name__,
                    )
                    raise

                if attempt + 1 >= self.config.max_attempts:
                    logger.error(
                        f"Operation {operation_name} failed after {self.config.max_attempts} attempts",
                        operation=operation_name,
                        error_type=type(e).__name__,
                    )
                    raise RetryExhausted(
                        f"Operation {operation_name} failed after {self.config.max_attempts} attempts",
                        last_exception
                    )

                delay = self.calculate_delay(attempt)

                logger.warning(
                    f"Operation {operation_name} failed (attempt {attempt + 1}), "
                    f"retrying in {delay:.2f}s: {e}",
                    operation=operation_name,
                )

                if self.config.on_retry:
                    self.config.on_retry(attempt + 1, delay, e)

                await asyncio.sleep(delay)

        raise RetryExhausted(
            f"Operation {operation_name} failed after {self.config.max_attempts} attempts",
            last_exception
        )
