"""
Retry mechanism for rate-limited operations.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from shared.errors import RateLimitedError, RetriesExhaustedError
from shared.logging import get_logger


class RetryConfig:
    """Configuration for retry behavior.

    The wait before attempt ``n + 1`` is ``base_delay * n``, capped at
    ``max_delay``.
    """

    def __init__(self,
                 max_attempts: int = 3,
                 base_delay: float = 1.0,
                 max_delay: float = 60.0):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay

    def delay_for(self, attempt: int) -> float:
        """Wait after failed attempt number ``attempt`` (counted from 1)."""
        return min(self.base_delay * attempt, self.max_delay)


# Stream URL issuance: 3 attempts, waits of 1s then 2s.
STREAM_RETRY_CONFIG = RetryConfig(max_attempts=3, base_delay=1.0)


async def call_with_retry(operation: Callable[[], Awaitable[Any]],
                          config: Optional[RetryConfig] = None,
                          retry_on: Tuple[Type[BaseException], ...] = (RateLimitedError,),
                          sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
                          name: Optional[str] = None) -> Any:
    """Run ``operation`` and retry it while it raises one of ``retry_on``.

    Any other exception propagates on the attempt that raised it. When the
    last attempt is still rejected, RetriesExhaustedError is raised without
    a further wait.
    """
    if config is None:
        config = STREAM_RETRY_CONFIG
    if sleep is None:
        sleep = asyncio.sleep
    op_name = name or getattr(operation, "__name__", "operation")
    logger = get_logger(f"retry.{op_name}")

    last_error: Optional[BaseException] = None
    for attempt in range(1, config.max_attempts + 1):
        try:
            result = await operation()
        except retry_on as e:
            last_error = e
            if attempt < config.max_attempts:
                delay = config.delay_for(attempt)
                logger.warning(
                    "Retry attempt failed, waiting before next attempt",
                    attempt=attempt,
                    delay=delay,
                    function=op_name,
                    error=str(e)
                )
                await sleep(delay)
            continue

        if attempt > 1:
            logger.info("Retry succeeded", attempt=attempt, function=op_name)
        return result

    logger.error(
        "All retry attempts exhausted",
        max_attempts=config.max_attempts,
        function=op_name,
        error=str(last_error)
    )
    raise RetriesExhaustedError(attempts=config.max_attempts, last_exception=last_error) from last_error
