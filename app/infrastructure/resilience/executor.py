"""Single-flight operation executor.

Each logical resource (e.g. "group:g1" or "church:c1:groups") owns exactly
one ``ResilientOperationExecutor`` slot. Starting a new operation on a slot
supersedes the one in flight: the superseded run finishes its remote call
but its result is discarded and never touches slot state.

Usage:
    registry = ExecutorRegistry(RetryPolicy.from_settings(settings.retry))
    executor = registry.get("group:g1")

    result = await executor.execute(
        lambda token: lifecycle.approve_group("g1", admin_id),
        context={"group_id": "g1"},
        optimistic=OptimisticConfig(optimistic_data={"status": "approved"}),
    )
"""

import asyncio
from dataclasses import dataclass, field, replace
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Generic,
    List,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
)

from infrastructure.logging import get_module_logger
from infrastructure.operations import OperationError, OperationResult
from infrastructure.resilience.backoff import (
    CancellationToken,
    RetryPolicy,
    SleepFn,
    retry_with_backoff,
)

logger = get_module_logger()

T = TypeVar("T")

Operation = Callable[[CancellationToken], Awaitable[OperationResult]]
BatchOperation = Callable[[], Awaitable[Optional[OperationResult]]]


@dataclass(frozen=True)
class OperationState(Generic[T]):
    """Snapshot of a slot.

    Attributes:
        data: Last committed (or optimistic, while loading) data
        loading: True while an operation is in flight
        error: Error of the last completed operation, if it failed
        retry_count: Consecutive failed executions; reset on success
        max_retries: Retry limit used for ``can_retry``
    """

    data: Optional[T] = None
    loading: bool = False
    error: Optional[OperationError] = None
    retry_count: int = 0
    max_retries: int = 3

    @property
    def can_retry(self) -> bool:
        return (
            self.error is not None
            and self.error.retryable
            and self.retry_count < self.max_retries
        )

    @property
    def is_retrying(self) -> bool:
        return self.retry_count > 0


@dataclass(frozen=True)
class OptimisticConfig(Generic[T]):
    """Data shown while the operation is in flight.

    On failure the slot rolls back to ``rollback_data`` when given, otherwise
    to the data committed before the call.
    """

    optimistic_data: T
    rollback_data: Optional[T] = None


@dataclass(frozen=True)
class BatchFailure:
    key: str
    error: OperationError


@dataclass
class BatchResult:
    """Partial-failure summary of a batch run.

    ``len(successful) + len(failed) == total`` once the batch completes.
    """

    total: int = 0
    successful: List[str] = field(default_factory=list)
    failed: List[BatchFailure] = field(default_factory=list)
    results: Dict[str, OperationResult] = field(default_factory=dict)

    @property
    def completed(self) -> int:
        return len(self.successful)

    @property
    def progress(self) -> float:
        if self.total == 0:
            return 0.0
        return self.completed / self.total

    @property
    def has_errors(self) -> bool:
        return bool(self.failed)

    @property
    def is_complete(self) -> bool:
        return len(self.successful) + len(self.failed) == self.total


class ResilientOperationExecutor(Generic[T]):
    """Owns the state of one slot and runs operations against it."""

    def __init__(
        self,
        slot: str,
        policy: Optional[RetryPolicy] = None,
        rollback_on_error: bool = True,
        on_success: Optional[Callable[[OperationResult], None]] = None,
        on_error: Optional[Callable[[OperationError], None]] = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.slot = slot
        self.policy = policy or RetryPolicy()
        self.rollback_on_error = rollback_on_error
        self._on_success = on_success
        self._on_error = on_error
        self._sleep = sleep
        self._state: OperationState[T] = OperationState(
            max_retries=self.policy.max_retries
        )
        self._committed: Optional[T] = None
        self._token: Optional[CancellationToken] = None
        self._last_call: Optional[
            Tuple[Operation, Optional[Dict[str, Any]], Optional[OptimisticConfig[T]]]
        ] = None
        self._batch = BatchResult()

    @property
    def state(self) -> OperationState[T]:
        return self._state

    @property
    def batch(self) -> BatchResult:
        return self._batch

    @property
    def in_flight(self) -> bool:
        return self._token is not None and not self._token.cancelled

    async def execute(
        self,
        operation: Operation,
        context: Optional[Dict[str, Any]] = None,
        optimistic: Optional[OptimisticConfig[T]] = None,
    ) -> Optional[OperationResult]:
        """Run ``operation`` on this slot.

        Returns:
            The final OperationResult, or ``None`` when the run was cancelled
            or superseded before it could commit.
        """
        if self._token is not None:
            self._token.cancel()
            logger.info("operation_superseded", slot=self.slot)

        token = CancellationToken()
        self._token = token
        self._last_call = (operation, context, optimistic)
        snapshot = self._committed

        if optimistic is not None:
            self._state = replace(
                self._state, data=optimistic.optimistic_data, loading=True, error=None
            )
        else:
            self._state = replace(self._state, loading=True, error=None)

        result = await retry_with_backoff(
            lambda: operation(token), self.policy, token, self._sleep
        )

        if token.cancelled:
            logger.info("operation_result_discarded", slot=self.slot)
            return None
        self._token = None

        if result.is_success:
            self._committed = result.data
            self._state = OperationState(
                data=result.data,
                loading=False,
                error=None,
                retry_count=0,
                max_retries=self.policy.max_retries,
            )
            if self._on_success:
                self._on_success(result)
            return result

        error = result.failure
        retry_count = self._state.retry_count + 1
        if optimistic is not None and self.rollback_on_error:
            data = (
                optimistic.rollback_data
                if optimistic.rollback_data is not None
                else snapshot
            )
        else:
            data = None
        self._state = OperationState(
            data=data,
            loading=False,
            error=error,
            retry_count=retry_count,
            max_retries=self.policy.max_retries,
        )
        logger.warning(
            "operation_failed",
            slot=self.slot,
            error_category=error.category if error else None,
            error=result.message,
            retry_count=retry_count,
            **(context or {}),
        )
        if self._on_error and error:
            self._on_error(error)
        return result

    async def retry(self) -> Optional[OperationResult]:
        """Re-run the last operation with the same arguments."""
        if self._last_call is None:
            logger.debug("nothing_to_retry", slot=self.slot)
            return None
        operation, context, optimistic = self._last_call
        logger.info(
            "operation_manual_retry",
            slot=self.slot,
            retry_count=self._state.retry_count + 1,
        )
        return await self.execute(operation, context, optimistic)

    def cancel(self) -> None:
        """Abort the in-flight run; its completion will be discarded."""
        if self._token is not None:
            self._token.cancel()
            self._token = None
        self._state = replace(self._state, loading=False)

    def reset(self) -> None:
        self.cancel()
        self._committed = None
        self._last_call = None
        self._state = OperationState(max_retries=self.policy.max_retries)
        self._batch = BatchResult()

    async def execute_batch(
        self,
        operations: Sequence[Tuple[str, BatchOperation]],
        context: Optional[Dict[str, Any]] = None,
    ) -> BatchResult:
        """Run independent keyed operations one after another.

        A failing item never aborts the batch. Each item is retried under this
        executor's policy; an item that returns ``None`` (superseded) counts
        as failed. The batch holds the slot like ``execute`` does: once it is
        cancelled or superseded, the items not yet started are recorded as
        ``SUPERSEDED`` failures.
        """
        if self._token is not None:
            self._token.cancel()
            logger.info("operation_superseded", slot=self.slot)

        token = CancellationToken()
        self._token = token
        batch = BatchResult(total=len(operations))
        self._batch = batch
        skipped = 0

        for index, (key, operation) in enumerate(operations):
            if token.cancelled:
                result = _superseded()
                batch.results[key] = result
                batch.failed.append(BatchFailure(key=key, error=result.failure))
                skipped += 1
                continue
            result = await retry_with_backoff(
                _never_none(operation), self.policy, token, self._sleep
            )
            batch.results[key] = result
            if result.is_success:
                batch.successful.append(key)
                continue
            error = result.failure
            batch.failed.append(BatchFailure(key=key, error=error))
            logger.warning(
                "batch_item_failed",
                slot=self.slot,
                key=key,
                batch_index=index,
                batch_total=batch.total,
                error_category=error.category,
                error=error.message,
                **(context or {}),
            )

        if token.cancelled:
            logger.info(
                "batch_cancelled",
                slot=self.slot,
                total=batch.total,
                skipped=skipped,
            )
        elif self._token is token:
            self._token = None

        logger.info(
            "batch_completed",
            slot=self.slot,
            total=batch.total,
            successful=len(batch.successful),
            failed=len(batch.failed),
        )
        return batch


def _never_none(
    operation: BatchOperation,
) -> Callable[[], Awaitable[OperationResult]]:
    async def run() -> OperationResult:
        result = await operation()
        if result is None:
            return _superseded()
        return result

    return run


def _superseded() -> OperationResult:
    return OperationResult.conflict("Operation was superseded", error_code="SUPERSEDED")


class ExecutorRegistry:
    """Hands out exactly one executor per slot key."""

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._executors: Dict[str, ResilientOperationExecutor[Any]] = {}

    def get(
        self, slot: str, policy: Optional[RetryPolicy] = None
    ) -> ResilientOperationExecutor[Any]:
        executor = self._executors.get(slot)
        if executor is None:
            executor = ResilientOperationExecutor(
                slot, policy=policy or self.policy, sleep=self._sleep
            )
            self._executors[slot] = executor
        return executor

    def __contains__(self, slot: str) -> bool:
        return slot in self._executors

    def slots(self) -> List[str]:
        return sorted(self._executors)

    def reset_all(self) -> None:
        for executor in self._executors.values():
            executor.reset()
