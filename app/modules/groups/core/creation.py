"""Group creation saga.

Creating a group takes two writes with no shared transaction: the group row
and, for a church admin creator, their active leader membership. When the
second write fails the group row is deleted again (the only compensating
action) so no approved-looking group is left without its leader.

Steps:
    1. creator must be the signed-in user (auth error otherwise)
    2. church access for ``church_id``
    3. row-level policy pre-flight for ``groups.insert``
    4. the service must belong to the church
    5. insert the group as pending
    6. church admin creator: insert an active leader membership
    7. step 6 failed: delete the group and report the failure
    8. publish ``group.request.submitted``
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from infrastructure.configuration import GroupsFeatureSettings
from infrastructure.events import EventBus
from infrastructure.identity import CallerIdentity, Role
from infrastructure.logging import get_module_logger
from infrastructure.operations import (
    OperationResult,
    OperationStatus,
    classify_store_error,
)
from infrastructure.persistence import DataStore, StoreError
from modules.groups.core.guard import service_operation
from modules.groups.domain import Group, MembershipRole, MembershipStatus
from modules.groups.domain import errors
from modules.groups.events import events as group_events
from modules.groups.schemas import CreateGroupRequest
from modules.permissions import (
    AuthorizationEngine,
    Denied,
    church_matches,
    denial_to_result,
)

logger = get_module_logger()

GROUPS_TABLE = "groups"
MEMBERSHIPS_TABLE = "group_memberships"
SERVICES_TABLE = "services"
USERS_TABLE = "users"


class GroupCreationSaga:
    """Creates a group request plus, conditionally, its first leader."""

    def __init__(
        self,
        store: DataStore,
        engine: AuthorizationEngine,
        bus: EventBus,
        config: Optional[GroupsFeatureSettings] = None,
    ):
        self.store = store
        self.engine = engine
        self.bus = bus
        self.config = config or GroupsFeatureSettings()

    @service_operation
    async def create_group_request(
        self,
        group_data: Union[CreateGroupRequest, Dict[str, Any]],
        creator_id: str,
    ) -> OperationResult:
        if not isinstance(group_data, CreateGroupRequest):
            try:
                group_data = CreateGroupRequest.model_validate(group_data)
            except ValidationError as e:
                first = e.errors()[0]
                field = ".".join(str(part) for part in first.get("loc", ()))
                return OperationResult.validation_error(f"{field}: {first.get('msg')}")

        if self.config.require_session_match:
            session_user = await self.engine.session.get_current_user_id()
            if not session_user or session_user != creator_id:
                logger.warning(
                    "group_creator_session_mismatch",
                    creator_id=creator_id,
                    session_user_id=session_user,
                )
                return OperationResult.auth_error()

        check = await self.engine.can_access_church_data(group_data.church_id)
        if isinstance(check, Denied):
            return denial_to_result(check)

        check = await self.engine.validate_rls_compliance(
            GROUPS_TABLE,
            "insert",
            {"church_id": group_data.church_id, "service_id": group_data.service_id},
        )
        if isinstance(check, Denied):
            return denial_to_result(check)

        failure = await self._check_service(group_data)
        if failure is not None:
            return failure

        response = await self.store.insert(GROUPS_TABLE, group_data.to_row(creator_id))
        if response.error:
            logger.warning(
                "group_insert_failed",
                church_id=group_data.church_id,
                error_code=response.error.code,
                error=response.error.message,
            )
            return classify_store_error(response.error)
        group = Group.from_row(response.data)
        logger.info("group_request_created", group_id=group.id)

        leader_created = False
        if await self._creator_is_church_admin(creator_id):
            leadership = await self.store.insert(
                MEMBERSHIPS_TABLE,
                {
                    "group_id": group.id,
                    "user_id": creator_id,
                    "role": MembershipRole.LEADER.value,
                    "status": MembershipStatus.ACTIVE.value,
                    "joined_at": datetime.now(timezone.utc).isoformat(),
                },
            )
            if leadership.error:
                return await self._compensate(group, creator_id, leadership.error)
            leader_created = True

        await self.bus.publish(
            group_events.group_event(
                group_events.GROUP_REQUEST_SUBMITTED,
                creator_id,
                group_id=group.id,
                group_title=group.title,
                church_id=group.church_id,
                creator_id=creator_id,
                leader_created=leader_created,
            )
        )
        return OperationResult.success(data=group, message="Group request submitted")

    async def _check_service(
        self, group_data: CreateGroupRequest
    ) -> Optional[OperationResult]:
        response = await self.store.select_one(
            SERVICES_TABLE, {"id": group_data.service_id}, columns="id, church_id"
        )
        if response.error:
            return classify_store_error(response.error)
        # An unknown service is left to the store's foreign key.
        if response.data is not None and not church_matches(
            response.data.get("church_id"), group_data.church_id
        ):
            return OperationResult.validation_error(errors.SERVICE_NOT_IN_CHURCH)
        return None

    async def _creator_is_church_admin(self, creator_id: str) -> bool:
        session_user = await self.engine.session.get_current_user_id()
        if session_user == creator_id:
            return await self.engine.has_role(Role.CHURCH_ADMIN)

        response = await self.store.select_one(
            USERS_TABLE, {"id": creator_id}, columns="id, church_id, roles"
        )
        if response.error or response.data is None:
            return False
        return CallerIdentity.from_row(response.data).is_church_admin

    async def _compensate(
        self, group: Group, creator_id: str, cause: StoreError
    ) -> OperationResult:
        logger.error(
            "group_leadership_insert_failed",
            group_id=group.id,
            error_code=cause.code,
            error=cause.message,
        )
        rollback = await self.store.delete(GROUPS_TABLE, {"id": group.id})
        compensated = rollback.ok
        if not compensated:
            logger.error(
                "group_compensation_failed",
                group_id=group.id,
                error=rollback.error.message,
            )
        else:
            logger.info("group_creation_compensated", group_id=group.id)

        await self.bus.publish(
            group_events.group_event(
                group_events.GROUP_CREATION_COMPENSATED,
                creator_id,
                group_id=group.id,
                church_id=group.church_id,
                success=False,
                error=cause.message,
                compensated=compensated,
            )
        )
        if not compensated:
            # Not retryable: the orphaned group row still exists.
            return OperationResult.error(
                OperationStatus.CONFLICT,
                errors.LEADERSHIP_CREATION_FAILED,
                error_code="COMPENSATION_FAILED",
            )
        return OperationResult.error(
            classify_store_error(cause).status,
            errors.LEADERSHIP_CREATION_FAILED,
            error_code="LEADERSHIP_CREATION_FAILED",
        )
