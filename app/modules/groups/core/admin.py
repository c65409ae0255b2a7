"""Administrative group actions run through resilient executor slots.

Each group gets its own slot (``group:<id>``), so a second action on the same
group supersedes the first while actions on different groups run
independently. Batch actions share the ``groups:batch`` slot and retry each
item at most ``GROUPS_BATCH_MAX_RETRIES`` times.
"""

from functools import partial
from typing import Awaitable, Callable, Optional, Sequence

from infrastructure.configuration import GroupsFeatureSettings
from infrastructure.logging import bind_request_context, get_module_logger
from infrastructure.operations import OperationResult
from infrastructure.resilience import (
    BatchResult,
    ExecutorRegistry,
    OptimisticConfig,
    ResilientOperationExecutor,
)
from modules.groups.core.lifecycle import GroupLifecycleService

logger = get_module_logger()

BATCH_SLOT = "groups:batch"


def group_slot(group_id: str) -> str:
    return f"group:{group_id}"


class GroupAdminService:
    """Approve, decline and close groups with retry, cancellation and batching."""

    def __init__(
        self,
        lifecycle: GroupLifecycleService,
        registry: ExecutorRegistry,
        config: Optional[GroupsFeatureSettings] = None,
    ):
        self.lifecycle = lifecycle
        self.registry = registry
        self.config = config or lifecycle.config

    def executor_for(self, group_id: str) -> ResilientOperationExecutor:
        return self.registry.get(group_slot(group_id))

    async def approve_group(
        self,
        group_id: str,
        admin_id: str,
        reason: Optional[str] = None,
        optimistic: Optional[OptimisticConfig] = None,
    ) -> Optional[OperationResult]:
        """Returns ``None`` when a later action on the same group superseded this one."""
        return await self.executor_for(group_id).execute(
            lambda token: self.lifecycle.approve_group(group_id, admin_id, reason),
            context={"group_id": group_id, "action": "approve"},
            optimistic=optimistic,
        )

    async def decline_group(
        self,
        group_id: str,
        admin_id: str,
        reason: Optional[str] = None,
        optimistic: Optional[OptimisticConfig] = None,
    ) -> Optional[OperationResult]:
        return await self.executor_for(group_id).execute(
            lambda token: self.lifecycle.decline_group(group_id, admin_id, reason),
            context={"group_id": group_id, "action": "decline"},
            optimistic=optimistic,
        )

    async def close_group(
        self,
        group_id: str,
        admin_id: str,
        reason: Optional[str] = None,
        optimistic: Optional[OptimisticConfig] = None,
    ) -> Optional[OperationResult]:
        return await self.executor_for(group_id).execute(
            lambda token: self.lifecycle.close_group(group_id, admin_id, reason),
            context={"group_id": group_id, "action": "close"},
            optimistic=optimistic,
        )

    def cancel(self, group_id: str) -> None:
        if group_slot(group_id) in self.registry:
            self.executor_for(group_id).cancel()

    async def batch_approve_groups(
        self, group_ids: Sequence[str], admin_id: str, reason: Optional[str] = None
    ) -> BatchResult:
        """Approve every group; one failure never stops the others."""
        return await self._run_batch(
            "approve", group_ids, admin_id, reason, self.lifecycle.approve_group
        )

    async def batch_decline_groups(
        self, group_ids: Sequence[str], admin_id: str, reason: Optional[str] = None
    ) -> BatchResult:
        return await self._run_batch(
            "decline", group_ids, admin_id, reason, self.lifecycle.decline_group
        )

    async def _run_batch(
        self,
        action: str,
        group_ids: Sequence[str],
        admin_id: str,
        reason: Optional[str],
        operation: Callable[..., Awaitable[OperationResult]],
    ) -> BatchResult:
        executor = self.registry.get(
            BATCH_SLOT,
            policy=self.registry.policy.with_max_retries(
                self.config.batch_max_retries
            ),
        )
        operations = [
            (group_id, partial(operation, group_id, admin_id, reason))
            for group_id in group_ids
        ]
        with bind_request_context(user_id=admin_id, operation=f"batch_{action}_groups"):
            batch = await executor.execute_batch(
                operations, context={"action": action, "admin_id": admin_id}
            )
            logger.info(
                "group_batch_finished",
                action=action,
                successful=batch.successful,
                failed=[failure.key for failure in batch.failed],
            )
        return batch
