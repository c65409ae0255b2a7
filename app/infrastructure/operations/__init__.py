"""Operation result types and status enums.

This module contains standardized result types for operations across
the application, including status enums, result dataclasses, and error
classifiers for remote store failures.
"""

from infrastructure.operations.classifiers import (
    classify_exception,
    classify_store_error,
)
from infrastructure.operations.result import OperationError, OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    "OperationError",
    "OperationResult",
    "OperationStatus",
    "classify_exception",
    "classify_store_error",
]
