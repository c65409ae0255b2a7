"""Retry with exponential backoff for network-category failures."""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from infrastructure.configuration import RetrySettings
from infrastructure.logging import get_module_logger
from infrastructure.operations import OperationResult, classify_exception

logger = get_module_logger()

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff timing for retried operations.

    Attributes:
        max_retries: Retries performed after the first attempt
        base_delay: Delay before the first retry (seconds)
        max_delay: Cap for the exponential delay (seconds)

    Example:
        policy = RetryPolicy(max_retries=1)
        policy.delay_for(0)  # 1.0
        policy.delay_for(3)  # 8.0
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")

    def delay_for(self, attempt: int) -> float:
        """Delay after failed ``attempt`` (0-based): base * 2^attempt, capped."""
        return min(self.base_delay * (2**attempt), self.max_delay)

    def with_max_retries(self, max_retries: int) -> "RetryPolicy":
        return RetryPolicy(max_retries, self.base_delay, self.max_delay)

    @classmethod
    def from_settings(cls, config: RetrySettings) -> "RetryPolicy":
        return cls(
            max_retries=config.max_retries,
            base_delay=config.base_delay_seconds,
            max_delay=config.max_delay_seconds,
        )


class CancellationToken:
    """Cooperative abort flag checked before committing state."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


async def retry_with_backoff(
    fn: Callable[[], Awaitable[OperationResult]],
    policy: RetryPolicy,
    token: Optional[CancellationToken] = None,
    sleep: SleepFn = asyncio.sleep,
) -> OperationResult:
    """Run ``fn`` and retry it while it returns a transient failure.

    Permission, conflict, validation and auth failures are returned after the
    first attempt. An exception raised by ``fn`` is classified and treated
    like a returned failure. Retrying stops early once ``token`` is
    cancelled.
    """
    result = OperationResult.transient_error("Operation was not attempted")
    for attempt in range(policy.max_retries + 1):
        try:
            result = await fn()
        except Exception as e:  # pylint: disable=broad-except
            logger.exception("operation_raised", attempt=attempt, error=str(e))
            result = classify_exception(e)

        if result.is_success or not result.is_retryable:
            return result
        if attempt == policy.max_retries or (token and token.cancelled):
            return result

        delay = policy.delay_for(attempt)
        logger.info(
            "retrying_operation",
            attempt=attempt + 1,
            max_retries=policy.max_retries,
            delay_seconds=delay,
            error=result.message,
        )
        await sleep(delay)

    return result
