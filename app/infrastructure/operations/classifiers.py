"""Error classifiers for remote store failures.

Converts ``StoreError`` values returned by the persistence layer, and any
unexpected exception caught inside a service, into standardized
OperationResult objects.

Key Functions:
- classify_store_error(): StoreError -> OperationResult
- classify_exception(): raised exception -> OperationResult

Usage:
    from infrastructure.operations.classifiers import classify_store_error

    response = await store.update("groups", {"status": "approved"}, {"id": gid})
    if response.error:
        return classify_store_error(response.error)
"""

from typing import Optional

from infrastructure.operations.result import OperationResult
from infrastructure.persistence.store import StoreError

# PostgREST: no rows for a single-object request.
NOT_FOUND_CODES = {"PGRST116"}
PERMISSION_CODES = {"PGRST301", "42501"}
CONFLICT_CODES = {"23505"}
VALIDATION_CODES = {"23503", "23502", "23514", "22P02"}
AUTH_MARKERS = ("jwt", "expired", "not authenticated", "invalid claim")


def _is_auth_error(code: Optional[str], message: str) -> bool:
    if code and code.startswith("PGRST3") and code not in PERMISSION_CODES:
        return True
    lowered = message.lower()
    return any(marker in lowered for marker in AUTH_MARKERS)


def classify_store_error(
    error: StoreError, not_found_message: Optional[str] = None
) -> OperationResult:
    """Classify a remote store error into an OperationResult.

    Code Mapping:
    - PGRST116: no rows -> VALIDATION_ERROR (NOT_FOUND)
    - PGRST301, 42501: row-level policy refusal -> PERMISSION_DENIED
    - 23505: unique violation -> CONFLICT
    - 23503 and other constraint codes -> VALIDATION_ERROR
    - JWT / expired session -> UNAUTHORIZED
    - CONNECTION_ERROR and anything unknown -> TRANSIENT_ERROR

    Args:
        error: StoreError returned by a DataStore call
        not_found_message: Optional message used for the NOT_FOUND case

    Returns:
        OperationResult with the matching error status
    """
    code = error.code
    message = error.message or "Unknown store error"

    if code in NOT_FOUND_CODES:
        return OperationResult.not_found(not_found_message or message)

    if code in PERMISSION_CODES:
        return OperationResult.permission_denied(
            f"Permission denied: {message}", error_code=code
        )

    if code in CONFLICT_CODES:
        return OperationResult.conflict(message, error_code=code)

    if code in VALIDATION_CODES:
        return OperationResult.validation_error(message, error_code=code)

    if _is_auth_error(code, message):
        return OperationResult.auth_error()

    return OperationResult.transient_error(
        f"Network error: {message}", error_code=code or "STORE_ERROR"
    )


def classify_exception(exc: Exception) -> OperationResult:
    """Classify an unexpected exception raised inside a service.

    Session loss detected from the message becomes UNAUTHORIZED; everything
    else is treated as a transport failure and may be retried.
    """
    message = f"{type(exc).__name__}: {exc}"
    if _is_auth_error(None, str(exc)):
        return OperationResult.auth_error()
    return OperationResult.transient_error(
        f"Unexpected error: {message}", error_code="UNEXPECTED_ERROR"
    )
