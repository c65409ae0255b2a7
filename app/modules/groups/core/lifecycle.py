"""Group and membership lifecycle.

Group status transitions (admin only):
    pending  -> approved  (approve_group)
    pending  -> denied    (decline_group)
    approved -> closed    (close_group)

Membership transitions (leader or church admin):
    (none | inactive | archived) -> pending   (create_join_request)
    pending -> active                         (approve_join_request)
    pending -> deleted                        (decline_join_request, cancel_join_request)
    pending -> archived                       (archive_join_request)
    active  -> inactive                       (remove_member, leave_group)
    member <-> leader                         (promote, demote)

Every operation checks permission before mutating, returns an
``OperationResult`` and never raises. A transition from the wrong source
status is a conflict. Status updates carry the expected source status in
their filter, so a concurrent writer that got there first turns the update
into a conflict instead of a silent overwrite.

Side effects (notes, notifications, audit lines) are published as events
after the commit and never affect the result.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from infrastructure.configuration import GroupsFeatureSettings
from infrastructure.events import EventBus
from infrastructure.logging import get_module_logger
from infrastructure.operations import OperationResult, classify_store_error
from infrastructure.persistence import DataStore
from modules.groups.core.guard import service_operation
from modules.groups.domain import (
    JOINED_JOURNEY_STATUS,
    Group,
    GroupStatus,
    Membership,
    MembershipRole,
    MembershipStatus,
)
from modules.groups.domain import errors
from modules.groups.events import events as group_events
from modules.groups.schemas import UpdateGroupRequest
from modules.permissions import (
    AuthorizationEngine,
    Denied,
    Permission,
    denial_to_result,
)

logger = get_module_logger()

GROUPS_TABLE = "groups"
MEMBERSHIPS_TABLE = "group_memberships"


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def _validation_message(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    if location:
        return f"{location}: {first.get('msg')}"
    return str(first.get("msg"))


class GroupLifecycleService:
    """Validates and executes group and membership transitions.

    Args:
        store: Remote row store.
        engine: Authorization engine for the signed-in caller.
        bus: Bus the committed transitions are published to.
        config: Groups feature settings.
    """

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

    # ------------------------------------------------------------------
    # Group status
    # ------------------------------------------------------------------

    @service_operation
    async def approve_group(
        self, group_id: str, admin_id: str, reason: Optional[str] = None
    ) -> OperationResult:
        group = await self._admin_group(group_id)
        if isinstance(group, OperationResult):
            return group
        if group.status != GroupStatus.PENDING:
            return OperationResult.conflict(errors.GROUP_NOT_PENDING)

        activation = None
        if self.config.activate_creator_on_approval:
            activation = await self._activate_creator(group)
            if isinstance(activation, OperationResult):
                return activation

        result = None
        try:
            result = await self._transition_group(
                group,
                GroupStatus.APPROVED,
                group_events.GROUP_APPROVED,
                admin_id,
                reason,
                errors.GROUP_NOT_PENDING,
            )
        finally:
            if activation is not None and (result is None or not result.is_success):
                await self._restore_creator(group, *activation)
        return result

    @service_operation
    async def decline_group(
        self, group_id: str, admin_id: str, reason: Optional[str] = None
    ) -> OperationResult:
        group = await self._admin_group(group_id)
        if isinstance(group, OperationResult):
            return group
        if group.status != GroupStatus.PENDING:
            return OperationResult.conflict(errors.GROUP_NOT_PENDING)
        return await self._transition_group(
            group,
            GroupStatus.DENIED,
            group_events.GROUP_DECLINED,
            admin_id,
            reason,
            errors.GROUP_NOT_PENDING,
        )

    @service_operation
    async def close_group(
        self, group_id: str, admin_id: str, reason: Optional[str] = None
    ) -> OperationResult:
        group = await self._admin_group(group_id)
        if isinstance(group, OperationResult):
            return group
        if group.status != GroupStatus.APPROVED:
            return OperationResult.conflict(errors.GROUP_NOT_APPROVED_FOR_CLOSE)
        return await self._transition_group(
            group,
            GroupStatus.CLOSED,
            group_events.GROUP_CLOSED,
            admin_id,
            reason,
            errors.GROUP_NOT_APPROVED_FOR_CLOSE,
        )

    @service_operation
    async def update_group_details(
        self,
        group_id: str,
        updates: Union[UpdateGroupRequest, Dict[str, Any]],
        user_id: str,
    ) -> OperationResult:
        """Edit descriptive fields; only an active leader of the group may."""
        if not isinstance(updates, UpdateGroupRequest):
            try:
                updates = UpdateGroupRequest.model_validate(updates)
            except ValidationError as e:
                return OperationResult.validation_error(_validation_message(e))
        values = updates.to_update()
        if not values:
            return OperationResult.validation_error(errors.NO_CHANGES)

        check = await self.engine.can_manage_group_membership(group_id, user_id)
        if isinstance(check, Denied):
            return denial_to_result(check)

        editor = await self._active_membership(group_id, user_id)
        if isinstance(editor, OperationResult):
            return editor
        if editor is None or editor.role != MembershipRole.LEADER:
            return OperationResult.permission_denied(errors.ONLY_LEADERS_UPDATE)

        values["updated_at"] = _utcnow()
        response = await self.store.update(GROUPS_TABLE, values, {"id": group_id})
        if response.error:
            return classify_store_error(response.error, errors.GROUP_NOT_FOUND)
        if not response.data:
            return OperationResult.not_found(errors.GROUP_NOT_FOUND)

        group = Group.from_row(response.data[0])
        fields = sorted(key for key in values if key != "updated_at")
        logger.info("group_details_updated", group_id=group_id, fields=fields)
        await self.bus.publish(
            group_events.group_event(
                group_events.GROUP_UPDATED,
                user_id,
                group_id=group_id,
                fields=fields,
            )
        )
        return OperationResult.success(data=group, message="Group updated")

    # ------------------------------------------------------------------
    # Leadership
    # ------------------------------------------------------------------

    @service_operation
    async def promote(
        self, group_id: str, user_id: str, promoter_id: str
    ) -> OperationResult:
        check = await self.engine.can_manage_group_membership(group_id, user_id)
        if isinstance(check, Denied):
            return denial_to_result(check)

        failure = await self._require_leader(
            group_id, promoter_id, errors.ONLY_LEADERS_PROMOTE
        )
        if failure is not None:
            return failure

        target = await self._active_membership(group_id, user_id)
        if isinstance(target, OperationResult):
            return target
        if target is None:
            return OperationResult.not_found(errors.NOT_A_MEMBER)
        if target.role == MembershipRole.LEADER:
            return OperationResult.conflict(errors.ALREADY_LEADER)

        return await self._change_role(target, MembershipRole.LEADER, promoter_id)

    @service_operation
    async def demote(
        self, group_id: str, user_id: str, demoter_id: str
    ) -> OperationResult:
        check = await self.engine.can_manage_group_membership(group_id, user_id)
        if isinstance(check, Denied):
            return denial_to_result(check)

        failure = await self._require_leader(
            group_id, demoter_id, errors.ONLY_LEADERS_DEMOTE
        )
        if failure is not None:
            return failure

        target = await self._active_membership(group_id, user_id)
        if isinstance(target, OperationResult):
            return target
        if target is None:
            return OperationResult.not_found(errors.NOT_A_MEMBER)
        if target.role != MembershipRole.LEADER:
            return OperationResult.conflict(errors.NOT_A_LEADER)

        failure = await self._guard_last_leader(target, errors.LAST_LEADER_DEMOTE)
        if failure is not None:
            return failure

        return await self._change_role(target, MembershipRole.MEMBER, demoter_id)

    @service_operation
    async def remove_member(
        self, group_id: str, user_id: str, remover_id: str
    ) -> OperationResult:
        """Soft-delete an active membership (status becomes inactive)."""
        check = await self.engine.can_manage_group_membership(group_id, user_id)
        if isinstance(check, Denied):
            return denial_to_result(check)

        failure = await self._require_leader(
            group_id, remover_id, errors.ONLY_LEADERS_REMOVE
        )
        if failure is not None:
            return failure

        target = await self._active_membership(group_id, user_id)
        if isinstance(target, OperationResult):
            return target
        if target is None:
            return OperationResult.not_found(errors.NOT_A_MEMBER)

        if target.is_active_leader:
            failure = await self._guard_last_leader(
                target, errors.LAST_LEADER_REMOVE
            )
            if failure is not None:
                return failure

        return await self._deactivate(
            target,
            remover_id,
            group_events.MEMBER_REMOVED,
            note_text="Removed by group leader",
        )

    @service_operation
    async def leave_group(self, group_id: str, user_id: str) -> OperationResult:
        """Self-removal; the last active leader cannot leave."""
        response = await self.store.select_one(
            MEMBERSHIPS_TABLE, {"group_id": group_id, "user_id": user_id}
        )
        if response.error:
            return classify_store_error(response.error, errors.MEMBERSHIP_NOT_FOUND)
        if response.data is None:
            return OperationResult.not_found(errors.MEMBERSHIP_NOT_FOUND)
        membership = Membership.from_row(response.data)

        check = await self.engine.can_modify_resource(
            "membership", membership.id, owner_id=user_id
        )
        if isinstance(check, Denied):
            return denial_to_result(check)

        if membership.status != MembershipStatus.ACTIVE:
            return OperationResult.conflict(errors.NOT_A_MEMBER)

        if membership.is_active_leader:
            failure = await self._guard_last_leader(
                membership, errors.LAST_LEADER_LEAVE
            )
            if failure is not None:
                return failure

        return await self._deactivate(
            membership, user_id, group_events.MEMBER_LEFT, note_text="Left the group"
        )

    # ------------------------------------------------------------------
    # Join requests
    # ------------------------------------------------------------------

    @service_operation
    async def create_join_request(
        self,
        group_id: str,
        user_id: str,
        contact_consent: bool = False,
        message: Optional[str] = None,
    ) -> OperationResult:
        """Ask to join an approved group.

        An inactive or archived row for the same user is moved back to
        pending in place; a user never has two rows for one group.
        """
        group = await self._fetch_group(group_id)
        if isinstance(group, OperationResult):
            return group
        if group.status != GroupStatus.APPROVED:
            return OperationResult.conflict(errors.GROUP_NOT_ACCEPTING)

        response = await self.store.select_one(
            MEMBERSHIPS_TABLE, {"group_id": group_id, "user_id": user_id}
        )
        if response.error:
            return classify_store_error(response.error)
        existing = Membership.from_row(response.data) if response.data else None

        if existing is not None:
            if existing.status == MembershipStatus.ACTIVE:
                return OperationResult.conflict(errors.ALREADY_MEMBER)
            if existing.status == MembershipStatus.PENDING:
                return OperationResult.conflict(errors.ALREADY_PENDING)
            result = await self._reopen_membership(existing)
        else:
            result = await self._insert_join_request(group_id, user_id)
        if not result.is_success:
            return result

        membership: Membership = result.data
        previous_status = existing.status.value if existing else None
        logger.info(
            "join_request_created",
            group_id=group_id,
            membership_id=membership.id,
            reused=existing is not None,
        )
        await self.bus.publish(
            group_events.group_event(
                group_events.JOIN_REQUEST_CREATED,
                user_id,
                membership_id=membership.id,
                group_id=group_id,
                group_title=group.title,
                user_id=user_id,
                previous_status=previous_status,
                new_status=MembershipStatus.PENDING.value,
                contact_consent=contact_consent,
                message=message,
                note_text="User requested to rejoin the group" if existing else None,
            )
        )
        return OperationResult.success(data=membership, message="Join request sent")

    @service_operation
    async def approve_join_request(
        self, membership_id: str, approver_id: str
    ) -> OperationResult:
        membership = await self._pending_request(membership_id)
        if isinstance(membership, OperationResult):
            return membership

        values: Dict[str, Any] = {
            "status": MembershipStatus.ACTIVE.value,
            "joined_at": _utcnow(),
        }
        if (
            membership.journey_status is None
            or membership.journey_status < JOINED_JOURNEY_STATUS
        ):
            values["journey_status"] = JOINED_JOURNEY_STATUS

        response = await self.store.update(
            MEMBERSHIPS_TABLE,
            values,
            {"id": membership_id, "status": MembershipStatus.PENDING.value},
        )
        if response.error:
            return classify_store_error(response.error, errors.JOIN_REQUEST_NOT_FOUND)
        if not response.data:
            return OperationResult.conflict(errors.JOIN_REQUEST_NOT_PENDING)

        approved = Membership.from_row(response.data[0])
        logger.info(
            "join_request_approved",
            membership_id=membership_id,
            group_id=membership.group_id,
        )
        await self.bus.publish(
            group_events.group_event(
                group_events.JOIN_REQUEST_APPROVED,
                approver_id,
                membership_id=membership_id,
                group_id=membership.group_id,
                group_title=await self._group_title(membership.group_id),
                user_id=membership.user_id,
                previous_status=MembershipStatus.PENDING.value,
                new_status=MembershipStatus.ACTIVE.value,
            )
        )
        return OperationResult.success(data=approved, message="Join request approved")

    @service_operation
    async def decline_join_request(
        self, membership_id: str, decliner_id: str
    ) -> OperationResult:
        """Delete a pending request; it was never a committed membership."""
        membership = await self._pending_request(membership_id)
        if isinstance(membership, OperationResult):
            return membership

        response = await self.store.delete(
            MEMBERSHIPS_TABLE,
            {"id": membership_id, "status": MembershipStatus.PENDING.value},
        )
        if response.error:
            return classify_store_error(response.error, errors.JOIN_REQUEST_NOT_FOUND)
        if not response.data:
            return OperationResult.conflict(errors.JOIN_REQUEST_NOT_PENDING)

        logger.info("join_request_declined", membership_id=membership_id)
        await self.bus.publish(
            group_events.group_event(
                group_events.JOIN_REQUEST_DECLINED,
                decliner_id,
                membership_id=membership_id,
                group_id=membership.group_id,
                group_title=await self._group_title(membership.group_id),
                user_id=membership.user_id,
            )
        )
        return OperationResult.success(data=True, message="Join request declined")

    @service_operation
    async def archive_join_request(
        self,
        membership_id: str,
        decliner_id: str,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> OperationResult:
        """Decline a request but keep the row for a later request to reuse."""
        membership = await self._pending_request(membership_id)
        if isinstance(membership, OperationResult):
            return membership

        response = await self.store.update(
            MEMBERSHIPS_TABLE,
            {"status": MembershipStatus.ARCHIVED.value},
            {"id": membership_id, "status": MembershipStatus.PENDING.value},
        )
        if response.error:
            return classify_store_error(response.error, errors.JOIN_REQUEST_NOT_FOUND)
        if not response.data:
            return OperationResult.conflict(errors.JOIN_REQUEST_NOT_PENDING)

        archived = Membership.from_row(response.data[0])
        logger.info("join_request_archived", membership_id=membership_id)
        await self.bus.publish(
            group_events.group_event(
                group_events.JOIN_REQUEST_ARCHIVED,
                decliner_id,
                membership_id=membership_id,
                group_id=membership.group_id,
                group_title=await self._group_title(membership.group_id),
                user_id=membership.user_id,
                previous_status=MembershipStatus.PENDING.value,
                new_status=MembershipStatus.ARCHIVED.value,
                reason=reason,
                note_text=notes,
            )
        )
        return OperationResult.success(data=archived, message="Join request archived")

    @service_operation
    async def cancel_join_request(
        self, membership_id: str, user_id: str
    ) -> OperationResult:
        """The requester withdraws their own pending request."""
        membership = await self._fetch_membership(
            membership_id, errors.JOIN_REQUEST_NOT_FOUND
        )
        if isinstance(membership, OperationResult):
            return membership
        if membership.user_id != user_id:
            return OperationResult.permission_denied(errors.JOIN_REQUEST_NOT_OWNED)

        check = await self.engine.can_modify_resource(
            "membership", membership_id, owner_id=membership.user_id
        )
        if isinstance(check, Denied):
            return denial_to_result(check)

        if membership.status != MembershipStatus.PENDING:
            return OperationResult.conflict(errors.JOIN_REQUEST_NOT_PENDING)

        response = await self.store.delete(
            MEMBERSHIPS_TABLE,
            {"id": membership_id, "status": MembershipStatus.PENDING.value},
        )
        if response.error:
            return classify_store_error(response.error, errors.JOIN_REQUEST_NOT_FOUND)
        if not response.data:
            return OperationResult.conflict(errors.JOIN_REQUEST_NOT_PENDING)

        logger.info("join_request_cancelled", membership_id=membership_id)
        await self.bus.publish(
            group_events.group_event(
                group_events.JOIN_REQUEST_CANCELLED,
                user_id,
                membership_id=membership_id,
                group_id=membership.group_id,
                user_id=user_id,
            )
        )
        return OperationResult.success(data=True, message="Join request cancelled")

    @service_operation
    async def list_join_requests(self, group_id: str) -> OperationResult:
        """Pending requests for a group, newest first."""
        check = await self.engine.can_manage_group_membership(group_id)
        if isinstance(check, Denied):
            return denial_to_result(check)

        response = await self.store.select(
            MEMBERSHIPS_TABLE,
            {"group_id": group_id, "status": MembershipStatus.PENDING.value},
            order_by="created_at",
            descending=True,
        )
        if response.error:
            return classify_store_error(response.error)
        requests: List[Membership] = [
            Membership.from_row(row) for row in response.data
        ]
        return OperationResult.success(data=requests)

    @service_operation
    async def update_journey_status(
        self,
        membership_id: str,
        leader_id: str,
        journey_status: Optional[int],
    ) -> OperationResult:
        """Set the journey stage of a pending or active membership.

        ``None`` clears the stage and writes no note.
        """
        if journey_status is not None and (
            isinstance(journey_status, bool)
            or not isinstance(journey_status, int)
            or journey_status < 1
        ):
            return OperationResult.validation_error(errors.JOURNEY_STATUS_INVALID)

        membership = await self._fetch_membership(
            membership_id, errors.MEMBERSHIP_NOT_FOUND
        )
        if isinstance(membership, OperationResult):
            return membership

        check = await self.engine.can_manage_group_membership(
            membership.group_id, membership.user_id
        )
        if isinstance(check, Denied):
            return denial_to_result(check)

        if membership.status not in (MembershipStatus.PENDING, MembershipStatus.ACTIVE):
            return OperationResult.conflict(errors.JOURNEY_NOT_EDITABLE)

        response = await self.store.update(
            MEMBERSHIPS_TABLE, {"journey_status": journey_status}, {"id": membership_id}
        )
        if response.error:
            return classify_store_error(response.error, errors.MEMBERSHIP_NOT_FOUND)
        if not response.data:
            return OperationResult.not_found(errors.MEMBERSHIP_NOT_FOUND)

        updated = Membership.from_row(response.data[0])
        logger.info(
            "journey_status_updated",
            membership_id=membership_id,
            previous_journey_status=membership.journey_status,
            new_journey_status=journey_status,
        )
        if journey_status is not None:
            await self.bus.publish(
                group_events.group_event(
                    group_events.JOURNEY_STATUS_CHANGED,
                    leader_id,
                    membership_id=membership_id,
                    group_id=membership.group_id,
                    user_id=membership.user_id,
                    previous_journey_status=membership.journey_status,
                    new_journey_status=journey_status,
                )
            )
        return OperationResult.success(data=updated, message="Journey status updated")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _fetch_group(self, group_id: str) -> Union[Group, OperationResult]:
        response = await self.store.select_one(GROUPS_TABLE, {"id": group_id})
        if response.error:
            return classify_store_error(response.error, errors.GROUP_NOT_FOUND)
        if response.data is None:
            return OperationResult.not_found(errors.GROUP_NOT_FOUND)
        return Group.from_row(response.data)

    async def _admin_group(self, group_id: str) -> Union[Group, OperationResult]:
        """Permission, then existence, then church scope."""
        check = await self.engine.has_permission(Permission.MANAGE_CHURCH_GROUPS)
        if isinstance(check, Denied):
            return denial_to_result(check)

        group = await self._fetch_group(group_id)
        if isinstance(group, OperationResult):
            return group

        denial: Optional[Denied] = None
        for church_id in group.church_ids:
            scope = await self.engine.can_access_church_data(church_id)
            if not isinstance(scope, Denied):
                return group
            denial = scope
        if denial is not None:
            return denial_to_result(denial)
        return OperationResult.permission_denied("Access denied to church data")

    async def _transition_group(
        self,
        group: Group,
        target: GroupStatus,
        event_type: str,
        actor_id: str,
        reason: Optional[str],
        conflict_message: str,
    ) -> OperationResult:
        response = await self.store.update(
            GROUPS_TABLE,
            {"status": target.value, "updated_at": _utcnow()},
            {"id": group.id, "status": group.status.value},
        )
        if response.error:
            return classify_store_error(response.error, errors.GROUP_NOT_FOUND)
        if not response.data:
            # Another writer moved the group first.
            return OperationResult.conflict(conflict_message)

        updated = Group.from_row(response.data[0])
        logger.info(
            "group_status_changed",
            group_id=group.id,
            previous_status=group.status.value,
            new_status=target.value,
        )
        await self.bus.publish(
            group_events.group_event(
                event_type,
                actor_id,
                group_id=group.id,
                group_title=group.title,
                church_id=group.church_id,
                creator_id=group.creator_id,
                previous_status=group.status.value,
                new_status=target.value,
                reason=reason,
            )
        )
        return OperationResult.success(data=updated, message=f"Group {target.value}")

    async def _activate_creator(
        self, group: Group
    ) -> Union[OperationResult, Tuple[str, Optional[Dict[str, Any]]], None]:
        """Give the creator an active leader membership ahead of approval.

        Returns the membership id with the column values it held before, or
        ``None`` in place of those values when the row was inserted, so the
        write can be undone by ``_restore_creator``.
        """
        if not group.creator_id:
            return None
        response = await self.store.select_one(
            MEMBERSHIPS_TABLE, {"group_id": group.id, "user_id": group.creator_id}
        )
        if response.error:
            return classify_store_error(response.error)

        values = {
            "role": MembershipRole.LEADER.value,
            "status": MembershipStatus.ACTIVE.value,
            "journey_status": JOINED_JOURNEY_STATUS,
        }
        if response.data is None:
            values.update(
                group_id=group.id, user_id=group.creator_id, joined_at=_utcnow()
            )
            previous = None
            write = await self.store.insert(MEMBERSHIPS_TABLE, values)
        else:
            if not response.data.get("joined_at"):
                values["joined_at"] = _utcnow()
            previous = {column: response.data.get(column) for column in values}
            write = await self.store.update(
                MEMBERSHIPS_TABLE, values, {"id": response.data["id"]}
            )
        if write.error:
            logger.warning(
                "creator_activation_failed",
                group_id=group.id,
                creator_id=group.creator_id,
                error=write.error.message,
            )
            return classify_store_error(write.error)
        logger.info(
            "creator_activated", group_id=group.id, creator_id=group.creator_id
        )
        if previous is None:
            return write.data["id"], None
        return response.data["id"], previous

    async def _restore_creator(
        self,
        group: Group,
        membership_id: str,
        previous: Optional[Dict[str, Any]],
    ) -> None:
        if previous is None:
            response = await self.store.delete(
                MEMBERSHIPS_TABLE, {"id": membership_id}
            )
        else:
            response = await self.store.update(
                MEMBERSHIPS_TABLE, previous, {"id": membership_id}
            )
        if response.error:
            logger.error(
                "creator_restore_failed",
                group_id=group.id,
                membership_id=membership_id,
                error=response.error.message,
            )
            return
        logger.warning(
            "creator_activation_reverted",
            group_id=group.id,
            membership_id=membership_id,
            inserted=previous is None,
        )

    async def _fetch_membership(
        self, membership_id: str, not_found_message: str
    ) -> Union[Membership, OperationResult]:
        response = await self.store.select_one(MEMBERSHIPS_TABLE, {"id": membership_id})
        if response.error:
            return classify_store_error(response.error, not_found_message)
        if response.data is None:
            return OperationResult.not_found(not_found_message)
        return Membership.from_row(response.data)

    async def _pending_request(
        self, membership_id: str
    ) -> Union[Membership, OperationResult]:
        """Load a join request and check the caller may manage it."""
        membership = await self._fetch_membership(
            membership_id, errors.JOIN_REQUEST_NOT_FOUND
        )
        if isinstance(membership, OperationResult):
            return membership
        check = await self.engine.can_manage_group_membership(
            membership.group_id, membership.user_id
        )
        if isinstance(check, Denied):
            return denial_to_result(check)
        if membership.status != MembershipStatus.PENDING:
            return OperationResult.conflict(errors.JOIN_REQUEST_NOT_PENDING)
        return membership

    async def _active_membership(
        self, group_id: str, user_id: str
    ) -> Union[Membership, OperationResult, None]:
        response = await self.store.select_one(
            MEMBERSHIPS_TABLE,
            {
                "group_id": group_id,
                "user_id": user_id,
                "status": MembershipStatus.ACTIVE.value,
            },
        )
        if response.error:
            return classify_store_error(response.error)
        if response.data is None:
            return None
        return Membership.from_row(response.data)

    async def _require_leader(
        self, group_id: str, user_id: str, message: str
    ) -> Optional[OperationResult]:
        actor = await self._active_membership(group_id, user_id)
        if isinstance(actor, OperationResult):
            return actor
        if actor is None or actor.role != MembershipRole.LEADER:
            return OperationResult.permission_denied(message)
        return None

    async def _active_leaders(
        self, group_id: str
    ) -> Union[List[Membership], OperationResult]:
        response = await self.store.select(
            MEMBERSHIPS_TABLE,
            {
                "group_id": group_id,
                "role": MembershipRole.LEADER.value,
                "status": MembershipStatus.ACTIVE.value,
            },
        )
        if response.error:
            return classify_store_error(response.error)
        return [Membership.from_row(row) for row in response.data]

    async def _guard_last_leader(
        self, target: Membership, message: str
    ) -> Optional[OperationResult]:
        """Conflict when ``target`` is the group's only active leader."""
        leaders = await self._active_leaders(target.group_id)
        if isinstance(leaders, OperationResult):
            return leaders
        others = [leader for leader in leaders if leader.id != target.id]
        if not others:
            logger.info(
                "last_leader_protected",
                group_id=target.group_id,
                user_id=target.user_id,
            )
            return OperationResult.conflict(message, error_code="LAST_LEADER")
        return None

    async def _change_role(
        self, target: Membership, role: MembershipRole, actor_id: str
    ) -> OperationResult:
        response = await self.store.update(
            MEMBERSHIPS_TABLE,
            {"role": role.value},
            {"id": target.id, "status": MembershipStatus.ACTIVE.value},
        )
        if response.error:
            return classify_store_error(response.error, errors.MEMBERSHIP_NOT_FOUND)
        if not response.data:
            return OperationResult.conflict(errors.NOT_A_MEMBER)

        updated = Membership.from_row(response.data[0])
        logger.info(
            "member_role_changed",
            group_id=target.group_id,
            user_id=target.user_id,
            previous_role=target.role.value,
            new_role=role.value,
        )
        await self.bus.publish(
            group_events.group_event(
                group_events.MEMBER_ROLE_CHANGED,
                actor_id,
                membership_id=target.id,
                group_id=target.group_id,
                user_id=target.user_id,
                previous_role=target.role.value,
                new_role=role.value,
            )
        )
        return OperationResult.success(data=updated, message=f"Role set to {role.value}")

    async def _deactivate(
        self, target: Membership, actor_id: str, event_type: str, note_text: str
    ) -> OperationResult:
        response = await self.store.update(
            MEMBERSHIPS_TABLE,
            {"status": MembershipStatus.INACTIVE.value},
            {"id": target.id, "status": MembershipStatus.ACTIVE.value},
        )
        if response.error:
            return classify_store_error(response.error, errors.MEMBERSHIP_NOT_FOUND)
        if not response.data:
            return OperationResult.conflict(errors.NOT_A_MEMBER)

        logger.info(
            "membership_deactivated",
            group_id=target.group_id,
            user_id=target.user_id,
            actor_id=actor_id,
        )
        await self.bus.publish(
            group_events.group_event(
                event_type,
                actor_id,
                membership_id=target.id,
                group_id=target.group_id,
                user_id=target.user_id,
                previous_status=MembershipStatus.ACTIVE.value,
                new_status=MembershipStatus.INACTIVE.value,
                note_text=note_text,
            )
        )
        return OperationResult.success(data=True, message="Membership deactivated")

    async def _reopen_membership(self, existing: Membership) -> OperationResult:
        payload = {"user_id": existing.user_id, "group_id": existing.group_id}
        check = await self.engine.validate_rls_compliance(
            MEMBERSHIPS_TABLE, "update", payload
        )
        if isinstance(check, Denied):
            return denial_to_result(check)

        response = await self.store.update(
            MEMBERSHIPS_TABLE,
            {
                "status": MembershipStatus.PENDING.value,
                "role": MembershipRole.MEMBER.value,
                "journey_status": None,
                "created_at": _utcnow(),
            },
            {"id": existing.id, "status": existing.status.value},
        )
        if response.error:
            return classify_store_error(response.error)
        if not response.data:
            return OperationResult.conflict(errors.ALREADY_PENDING)
        return OperationResult.success(data=Membership.from_row(response.data[0]))

    async def _insert_join_request(
        self, group_id: str, user_id: str
    ) -> OperationResult:
        payload = {
            "group_id": group_id,
            "user_id": user_id,
            "role": MembershipRole.MEMBER.value,
            "status": MembershipStatus.PENDING.value,
        }
        check = await self.engine.validate_rls_compliance(
            MEMBERSHIPS_TABLE, "insert", payload
        )
        if isinstance(check, Denied):
            return denial_to_result(check)

        response = await self.store.insert(MEMBERSHIPS_TABLE, payload)
        if response.error:
            return classify_store_error(response.error)
        return OperationResult.success(data=Membership.from_row(response.data))

    async def _group_title(self, group_id: str) -> str:
        response = await self.store.select_one(
            GROUPS_TABLE, {"id": group_id}, columns="id, title"
        )
        if response.error or response.data is None:
            return ""
        return response.data.get("title") or ""
