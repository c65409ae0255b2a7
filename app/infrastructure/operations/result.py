"""Operation result dataclass.

Uniform result type returned from every service operation, carrying either
a data payload or a classified error. Services never raise across their
boundary; callers inspect ``is_success`` / ``error`` instead.
"""

from typing import Optional, Any
from dataclasses import dataclass

from infrastructure.operations.status import OperationStatus


@dataclass(frozen=True)
class OperationError:
    """Error half of an operation result.

    Attributes:
        status: OperationStatus -- error category
        message: str -- specific, human-readable reason
        error_code: Optional[str] -- optional machine error code
        retry_after: Optional[int] -- seconds until retry when rate-limited
    """

    status: OperationStatus
    message: str
    error_code: Optional[str] = None
    retry_after: Optional[int] = None

    @property
    def category(self) -> str:
        return self.status.category

    @property
    def retryable(self) -> bool:
        return self.status == OperationStatus.TRANSIENT_ERROR

    def __str__(self) -> str:
        return self.message


@dataclass
class OperationResult:
    """Uniform result returned from operations.

    Attributes:
        status: OperationStatus -- high-level outcome
        message: str -- human-friendly message for logs/troubleshooting
        data: Optional[Any] -- optional payload (model, list, bool)
        error_code: Optional[str] -- optional machine error code
        retry_after: Optional[int] -- seconds until retry when rate-limited
    """

    status: OperationStatus
    message: str
    data: Optional[Any] = None
    error_code: Optional[str] = None
    retry_after: Optional[int] = None

    @property
    def is_success(self) -> bool:
        """Helper property to check if operation was successful.

        Returns:
            True if status is SUCCESS, False otherwise
        """
        return self.status == OperationStatus.SUCCESS

    @property
    def is_retryable(self) -> bool:
        """Only network-category failures are worth retrying."""
        return self.status == OperationStatus.TRANSIENT_ERROR

    @property
    def failure(self) -> Optional[OperationError]:
        """Error view of this result, ``None`` when the operation succeeded."""
        if self.is_success:
            return None
        return OperationError(
            status=self.status,
            message=self.message,
            error_code=self.error_code,
            retry_after=self.retry_after,
        )

    @classmethod
    def success(
        cls, data: Optional[Any] = None, message: str = "ok"
    ) -> "OperationResult":
        """Create a SUCCESS OperationResult with optional data.

        Args:
            data: Optional payload to include with the result
            message: Human-friendly success message

        Returns:
            OperationResult with SUCCESS status
        """
        return cls(status=OperationStatus.SUCCESS, message=message, data=data)

    @classmethod
    def error(
        cls,
        status: OperationStatus,
        message: str,
        error_code: Optional[str] = None,
        retry_after: Optional[int] = None,
    ) -> "OperationResult":
        """Create an error OperationResult.

        Error results never carry data, so callers can rely on
        ``data is None`` whenever ``error`` is set.

        Args:
            status: OperationStatus indicating error type
            message: Human-friendly error message
            error_code: Optional machine error code
            retry_after: Optional seconds until retry (for rate limiting)

        Returns:
            OperationResult with specified error status
        """
        return cls(
            status=status,
            message=message,
            error_code=error_code,
            retry_after=retry_after,
        )

    @classmethod
    def from_error(cls, error: OperationError) -> "OperationResult":
        return cls.error(
            error.status, error.message, error.error_code, error.retry_after
        )

    @classmethod
    def permission_denied(
        cls, message: str, error_code: Optional[str] = "FORBIDDEN"
    ) -> "OperationResult":
        return cls.error(OperationStatus.PERMISSION_DENIED, message, error_code)

    @classmethod
    def validation_error(
        cls, message: str, error_code: Optional[str] = "INVALID_REQUEST"
    ) -> "OperationResult":
        return cls.error(OperationStatus.VALIDATION_ERROR, message, error_code)

    @classmethod
    def not_found(cls, message: str) -> "OperationResult":
        return cls.error(OperationStatus.VALIDATION_ERROR, message, "NOT_FOUND")

    @classmethod
    def conflict(
        cls, message: str, error_code: Optional[str] = "CONFLICT"
    ) -> "OperationResult":
        return cls.error(OperationStatus.CONFLICT, message, error_code)

    @classmethod
    def transient_error(
        cls,
        message: str,
        error_code: Optional[str] = None,
        retry_after: Optional[int] = None,
    ) -> "OperationResult":
        """Create a transient (retryable) error result.

        Use for errors that may succeed on retry, such as:
        - Network timeouts
        - Rate limiting
        - Temporary service unavailability

        Args:
            message: Human-friendly error message
            error_code: Optional machine error code
            retry_after: Optional seconds until retry

        Returns:
            OperationResult with TRANSIENT_ERROR status
        """
        return cls.error(
            OperationStatus.TRANSIENT_ERROR, message, error_code, retry_after
        )

    @classmethod
    def auth_error(
        cls, message: str = "You are not authenticated. Please sign in again."
    ) -> "OperationResult":
        return cls.error(OperationStatus.UNAUTHORIZED, message, "UNAUTHORIZED")
