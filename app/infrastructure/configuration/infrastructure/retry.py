"""Retry settings for the operation executor."""

from pydantic import Field, model_validator

from infrastructure.configuration.base import InfrastructureSettings


class RetrySettings(InfrastructureSettings):
    """Retry configuration for network-category failures.

    Only failures classified as transient are retried; permission, conflict
    and validation failures are returned on the first attempt.

    Environment Variables:
        RETRY_MAX_RETRIES: Retries after the first attempt (default: 3)
        RETRY_BASE_DELAY_SECONDS: Base exponential backoff delay (default: 1s)
        RETRY_MAX_DELAY_SECONDS: Maximum backoff delay (default: 30s)

    Exponential Backoff:
        Delay calculation: min(base_delay * (2 ^ attempt), max_delay)

        Example with defaults (base=1s, max=30s):
            Attempt 0: 1s
            Attempt 1: 2s
            Attempt 2: 4s

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        max_retries = settings.retry.max_retries
        ```
    """

    max_retries: int = Field(
        default=3,
        alias="RETRY_MAX_RETRIES",
        description="Retries performed after the first failed attempt",
    )
    base_delay_seconds: float = Field(
        default=1.0,
        alias="RETRY_BASE_DELAY_SECONDS",
        description="Base delay for exponential backoff (seconds)",
    )
    max_delay_seconds: float = Field(
        default=30.0,
        alias="RETRY_MAX_DELAY_SECONDS",
        description="Maximum delay for exponential backoff (seconds)",
    )

    @model_validator(mode="after")
    def _validate_delays(self) -> "RetrySettings":
        if self.max_retries < 0:
            raise ValueError("RETRY_MAX_RETRIES must be >= 0")
        if self.base_delay_seconds < 0:
            raise ValueError("RETRY_BASE_DELAY_SECONDS must be >= 0")
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError(
                "RETRY_MAX_DELAY_SECONDS must be >= RETRY_BASE_DELAY_SECONDS"
            )
        return self
