"""Operation status enumeration.

Status codes for operation results, used to classify outcomes of group and
membership operations for appropriate error handling and retries.
"""

from enum import Enum


class OperationStatus(Enum):
    """Status codes for operation results.

    Attributes:
        SUCCESS: Operation completed successfully
        PERMISSION_DENIED: Authorization denied (carries a reason)
        VALIDATION_ERROR: Malformed or missing input, unknown resource
        CONFLICT: State precondition failed (wrong source status, last
            leader, duplicate request)
        TRANSIENT_ERROR: Retryable transport or remote failure
        UNAUTHORIZED: Expired or missing session
    """

    SUCCESS = "success"
    PERMISSION_DENIED = "permission"
    VALIDATION_ERROR = "validation"
    CONFLICT = "conflict"
    TRANSIENT_ERROR = "network"
    UNAUTHORIZED = "auth"

    @property
    def category(self) -> str:
        """Short category name used in logs and user-facing payloads."""
        return self.value
