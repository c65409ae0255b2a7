"""Resilience patterns and implementations.

Single-flight operation slots with optimistic updates and rollback, retry
with exponential backoff for network-category failures, and partial-failure
batch execution.
"""

from infrastructure.resilience.backoff import (
    CancellationToken,
    RetryPolicy,
    retry_with_backoff,
)
from infrastructure.resilience.executor import (
    BatchFailure,
    BatchResult,
    ExecutorRegistry,
    OperationState,
    OptimisticConfig,
    ResilientOperationExecutor,
)

__all__ = [
    # Retry
    "CancellationToken",
    "RetryPolicy",
    "retry_with_backoff",
    # Executor
    "BatchFailure",
    "BatchResult",
    "ExecutorRegistry",
    "OperationState",
    "OptimisticConfig",
    "ResilientOperationExecutor",
]
