"""Tests for group status, leadership and journey transitions."""

from unittest.mock import AsyncMock

import pytest

from infrastructure.configuration import GroupsFeatureSettings
from infrastructure.operations import OperationStatus
from infrastructure.persistence import StoreError, StoreResponse
from modules.groups.core import GroupLifecycleService
from modules.groups.domain import GroupStatus, MembershipRole
from modules.groups.domain import errors
from modules.groups.events import (
    GROUP_APPROVED,
    GROUP_CLOSED,
    GROUP_DECLINED,
    GROUP_UPDATED,
    JOURNEY_STATUS_CHANGED,
    MEMBER_LEFT,
    MEMBER_REMOVED,
    MEMBER_ROLE_CHANGED,
)
from tests.fakes import CONNECTION_ERROR

pytestmark = pytest.mark.unit


class TestApproveGroup:
    """Admin approval of pending groups."""

    @pytest.mark.asyncio
    async def test_admin_approves_pending_group(
        self, lifecycle, store, seed_group, as_admin, events_of
    ):
        seed_group("g1", status="pending", church_id="c1")
        as_admin()

        result = await lifecycle.approve_group("g1", "admin", reason="Ready")

        assert result.is_success
        assert result.failure is None
        assert result.data.status == GroupStatus.APPROVED
        assert store.get("groups", "g1")["status"] == "approved"
        [event] = events_of(GROUP_APPROVED)
        assert event.actor_id == "admin"
        assert event.metadata["previous_status"] == "pending"
        assert event.metadata["new_status"] == "approved"
        assert event.metadata["reason"] == "Ready"
        assert event.metadata["creator_id"] == "creator-1"

    @pytest.mark.asyncio
    async def test_second_approval_is_a_conflict(
        self, lifecycle, store, seed_group, as_admin, events_of
    ):
        seed_group("g1", status="pending")
        as_admin()
        await lifecycle.approve_group("g1", "admin")

        result = await lifecycle.approve_group("g1", "admin")

        assert result.status == OperationStatus.CONFLICT
        assert result.message == errors.GROUP_NOT_PENDING
        assert result.data is None
        assert store.get("groups", "g1")["status"] == "approved"
        assert len(events_of(GROUP_APPROVED)) == 1

    @pytest.mark.asyncio
    async def test_member_cannot_approve(
        self, lifecycle, store, seed_group, as_user, published
    ):
        seed_group("g1", status="pending")
        as_user("u1")

        result = await lifecycle.approve_group("g1", "u1")

        assert result.status == OperationStatus.PERMISSION_DENIED
        assert result.message == "Insufficient permissions for church management"
        assert store.get("groups", "g1")["status"] == "pending"
        assert published == []

    @pytest.mark.asyncio
    async def test_admin_of_other_church_cannot_approve(
        self, lifecycle, store, seed_group, as_admin
    ):
        seed_group("g1", status="pending", church_id="c2")
        as_admin()

        result = await lifecycle.approve_group("g1", "admin")

        assert result.status == OperationStatus.PERMISSION_DENIED
        assert result.message == "Access denied to church data"
        assert store.get("groups", "g1")["status"] == "pending"

    @pytest.mark.asyncio
    async def test_group_shared_with_admin_church(
        self, lifecycle, seed_group, as_admin
    ):
        seed_group("g1", status="pending", church_id=["c2", "c1"])
        as_admin()

        result = await lifecycle.approve_group("g1", "admin")

        assert result.is_success

    @pytest.mark.asyncio
    async def test_unknown_group(self, lifecycle, as_admin):
        as_admin()

        result = await lifecycle.approve_group("missing", "admin")

        assert result.status == OperationStatus.VALIDATION_ERROR
        assert result.message == errors.GROUP_NOT_FOUND

    @pytest.mark.asyncio
    async def test_without_session(self, lifecycle, seed_group):
        seed_group("g1", status="pending")

        result = await lifecycle.approve_group("g1", "admin")

        assert result.status == OperationStatus.UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_lost_race_is_a_conflict(
        self, lifecycle, store, seed_group, as_admin, published
    ):
        seed_group("g1", status="pending")
        as_admin()
        store.update = AsyncMock(return_value=StoreResponse(data=[]))

        result = await lifecycle.approve_group("g1", "admin")

        assert result.status == OperationStatus.CONFLICT
        assert published == []

    @pytest.mark.asyncio
    async def test_network_failure_is_transient(
        self, lifecycle, store, seed_group, as_admin
    ):
        seed_group("g1", status="pending")
        as_admin()
        store.fail("groups", "update", CONNECTION_ERROR)

        result = await lifecycle.approve_group("g1", "admin")

        assert result.status == OperationStatus.TRANSIENT_ERROR
        assert result.is_retryable
        assert store.get("groups", "g1")["status"] == "pending"

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_result(
        self, lifecycle, store, seed_group, as_admin
    ):
        seed_group("g1", status="pending")
        as_admin()
        store.update = AsyncMock(side_effect=RuntimeError("socket closed"))

        result = await lifecycle.approve_group("g1", "admin")

        assert result.status == OperationStatus.TRANSIENT_ERROR
        assert result.error_code == "UNEXPECTED_ERROR"


class TestActivateCreatorOnApproval:
    """Optional activation of the creator's leader membership."""

    @pytest.fixture
    def activating(self, store, engine, bus):
        return GroupLifecycleService(
            store,
            engine,
            bus,
            GroupsFeatureSettings(GROUPS_ACTIVATE_CREATOR_ON_APPROVAL=True),
        )

    @pytest.mark.asyncio
    async def test_pending_creator_row_activated(
        self, activating, store, seed_group, seed_membership, as_admin
    ):
        seed_group("g1", status="pending", created_by="creator-1")
        membership = seed_membership(
            "g1", "creator-1", role="leader", status="pending"
        )
        as_admin()

        result = await activating.approve_group("g1", "admin")

        assert result.is_success
        row = store.get("group_memberships", membership["id"])
        assert row["status"] == "active"
        assert row["role"] == "leader"
        assert row["journey_status"] == 3
        assert row["joined_at"]

    @pytest.mark.asyncio
    async def test_creator_row_restored_when_approval_fails(
        self, activating, store, seed_group, seed_membership, as_admin
    ):
        seed_group("g1", status="pending", created_by="creator-1")
        membership = seed_membership(
            "g1", "creator-1", role="leader", status="pending"
        )
        as_admin()
        store.fail("groups", "update", StoreError(message="denied", code="42501"))

        result = await activating.approve_group("g1", "admin")

        assert result.status == OperationStatus.PERMISSION_DENIED
        assert store.get("groups", "g1")["status"] == "pending"
        row = store.get("group_memberships", membership["id"])
        assert row["status"] == "pending"
        assert row["role"] == "leader"
        assert row["journey_status"] is None
        assert row["joined_at"] is None

    @pytest.mark.asyncio
    async def test_inserted_creator_row_removed_when_approval_loses_race(
        self, activating, store, seed_group, as_admin
    ):
        seed_group("g1", status="pending", created_by="creator-1")
        as_admin()
        store.update = AsyncMock(return_value=StoreResponse(data=[]))

        result = await activating.approve_group("g1", "admin")

        assert result.status == OperationStatus.CONFLICT
        assert store.rows("group_memberships", group_id="g1") == []

    @pytest.mark.asyncio
    async def test_missing_creator_row_inserted(
        self, activating, store, seed_group, as_admin
    ):
        seed_group("g1", status="pending", created_by="creator-1")
        as_admin()

        await activating.approve_group("g1", "admin")

        [row] = store.rows("group_memberships", group_id="g1")
        assert row["user_id"] == "creator-1"
        assert row["status"] == "active"
        assert row["role"] == "leader"

    @pytest.mark.asyncio
    async def test_disabled_by_default(self, lifecycle, store, seed_group, as_admin):
        seed_group("g1", status="pending", created_by="creator-1")
        as_admin()

        await lifecycle.approve_group("g1", "admin")

        assert store.rows("group_memberships") == []


class TestDeclineAndClose:
    """Decline pending groups and close approved ones."""

    @pytest.mark.asyncio
    async def test_decline_pending_group(
        self, lifecycle, store, seed_group, as_admin, events_of
    ):
        seed_group("g1", status="pending")
        as_admin()

        result = await lifecycle.decline_group("g1", "admin", reason="Duplicate")

        assert result.data.status == GroupStatus.DENIED
        assert store.get("groups", "g1")["status"] == "denied"
        assert events_of(GROUP_DECLINED)[0].metadata["reason"] == "Duplicate"

    @pytest.mark.asyncio
    async def test_decline_approved_group_conflicts(
        self, lifecycle, seed_group, as_admin
    ):
        seed_group("g1", status="approved")
        as_admin()

        result = await lifecycle.decline_group("g1", "admin")

        assert result.message == errors.GROUP_NOT_PENDING

    @pytest.mark.asyncio
    async def test_close_approved_group(
        self, lifecycle, store, seed_group, as_admin, events_of
    ):
        seed_group("g1", status="approved")
        as_admin()

        result = await lifecycle.close_group("g1", "admin")

        assert result.is_success
        assert store.get("groups", "g1")["status"] == "closed"
        assert len(events_of(GROUP_CLOSED)) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["pending", "denied", "closed"])
    async def test_close_requires_approved(
        self, lifecycle, store, seed_group, as_admin, status
    ):
        seed_group("g1", status=status)
        as_admin()

        result = await lifecycle.close_group("g1", "admin")

        assert result.status == OperationStatus.CONFLICT
        assert result.message == errors.GROUP_NOT_APPROVED_FOR_CLOSE
        assert store.get("groups", "g1")["status"] == status


class TestUpdateGroupDetails:
    """Leaders edit descriptive fields."""

    @pytest.mark.asyncio
    async def test_leader_updates_details(
        self, lifecycle, store, seed_group, seed_membership, as_user, events_of
    ):
        seed_group("g1")
        seed_membership("g1", "leader", role="leader")
        as_user("leader")

        result = await lifecycle.update_group_details(
            "g1", {"title": "Young Adults", "meeting_time": "7:30 PM"}, "leader"
        )

        assert result.is_success
        row = store.get("groups", "g1")
        assert row["title"] == "Young Adults"
        assert row["meeting_time"] == "19:30:00"
        assert row["updated_at"]
        [event] = events_of(GROUP_UPDATED)
        assert event.metadata["fields"] == ["meeting_time", "title"]

    @pytest.mark.asyncio
    async def test_church_admin_who_is_not_a_leader(
        self, lifecycle, seed_group, as_admin
    ):
        seed_group("g1")
        as_admin()

        result = await lifecycle.update_group_details("g1", {"title": "X"}, "admin")

        assert result.status == OperationStatus.PERMISSION_DENIED
        assert result.message == errors.ONLY_LEADERS_UPDATE

    @pytest.mark.asyncio
    async def test_member_denied(self, lifecycle, seed_group, seed_membership, as_user):
        seed_group("g1")
        seed_membership("g1", "u1")
        as_user("u1")

        result = await lifecycle.update_group_details("g1", {"title": "X"}, "u1")

        assert result.status == OperationStatus.PERMISSION_DENIED

    @pytest.mark.asyncio
    async def test_no_changes(self, lifecycle, seed_group, as_admin):
        seed_group("g1")
        as_admin()

        result = await lifecycle.update_group_details("g1", {}, "admin")

        assert result.status == OperationStatus.VALIDATION_ERROR
        assert result.message == errors.NO_CHANGES

    @pytest.mark.asyncio
    async def test_status_is_not_editable(self, lifecycle, store, seed_group, as_admin):
        seed_group("g1", status="pending")
        as_admin()

        result = await lifecycle.update_group_details(
            "g1", {"status": "approved"}, "admin"
        )

        assert result.status == OperationStatus.VALIDATION_ERROR
        assert result.message.startswith("status")
        assert store.get("groups", "g1")["status"] == "pending"


class TestPromoteAndDemote:
    """Role changes between member and leader."""

    @pytest.mark.asyncio
    async def test_leader_promotes_member(
        self, lifecycle, store, seed_group, seed_membership, as_user, events_of
    ):
        seed_group("g1")
        seed_membership("g1", "leader", role="leader")
        member = seed_membership("g1", "u2")
        as_user("leader")

        result = await lifecycle.promote("g1", "u2", "leader")

        assert result.is_success
        assert result.data.role == MembershipRole.LEADER
        assert store.get("group_memberships", member["id"])["role"] == "leader"
        [event] = events_of(MEMBER_ROLE_CHANGED)
        assert event.metadata["previous_role"] == "member"
        assert event.metadata["new_role"] == "leader"

    @pytest.mark.asyncio
    async def test_member_cannot_promote(
        self, lifecycle, seed_group, seed_membership, as_user
    ):
        seed_group("g1")
        seed_membership("g1", "leader", role="leader")
        seed_membership("g1", "u2")
        seed_membership("g1", "u3")
        as_user("u3")

        result = await lifecycle.promote("g1", "u2", "u3")

        assert result.status == OperationStatus.PERMISSION_DENIED

    @pytest.mark.asyncio
    async def test_admin_must_also_be_a_leader(
        self, lifecycle, seed_group, seed_membership, as_admin
    ):
        seed_group("g1")
        seed_membership("g1", "u2")
        as_admin()

        result = await lifecycle.promote("g1", "u2", "admin")

        assert result.status == OperationStatus.PERMISSION_DENIED
        assert result.message == errors.ONLY_LEADERS_PROMOTE

    @pytest.mark.asyncio
    async def test_promote_existing_leader(
        self, lifecycle, seed_group, seed_membership, as_user
    ):
        seed_group("g1")
        seed_membership("g1", "leader", role="leader")
        seed_membership("g1", "co-leader", role="leader")
        as_user("leader")

        result = await lifecycle.promote("g1", "co-leader", "leader")

        assert result.status == OperationStatus.CONFLICT
        assert result.message == errors.ALREADY_LEADER

    @pytest.mark.asyncio
    async def test_promote_non_member(
        self, lifecycle, seed_group, seed_membership, as_user
    ):
        seed_group("g1")
        seed_membership("g1", "leader", role="leader")
        seed_membership("g1", "pending-user", status="pending")
        as_user("leader")

        result = await lifecycle.promote("g1", "pending-user", "leader")

        assert result.message == errors.NOT_A_MEMBER

    @pytest.mark.asyncio
    async def test_demote_with_another_leader(
        self, lifecycle, store, seed_group, seed_membership, as_user
    ):
        seed_group("g1")
        seed_membership("g1", "leader", role="leader")
        co_leader = seed_membership("g1", "co-leader", role="leader")
        as_user("leader")

        result = await lifecycle.demote("g1", "co-leader", "leader")

        assert result.is_success
        assert store.get("group_memberships", co_leader["id"])["role"] == "member"

    @pytest.mark.asyncio
    async def test_last_leader_cannot_demote_self(
        self, lifecycle, store, seed_group, seed_membership, as_user
    ):
        seed_group("g1")
        leader = seed_membership("g1", "leader", role="leader")
        as_user("leader")

        result = await lifecycle.demote("g1", "leader", "leader")

        assert result.status == OperationStatus.CONFLICT
        assert result.message == errors.LAST_LEADER_DEMOTE
        assert result.error_code == "LAST_LEADER"
        assert store.get("group_memberships", leader["id"])["role"] == "leader"

    @pytest.mark.asyncio
    async def test_demote_member(self, lifecycle, seed_group, seed_membership, as_user):
        seed_group("g1")
        seed_membership("g1", "leader", role="leader")
        seed_membership("g1", "u2")
        as_user("leader")

        result = await lifecycle.demote("g1", "u2", "leader")

        assert result.message == errors.NOT_A_LEADER


class TestRemoveAndLeave:
    """Removing members and leaving groups."""

    @pytest.mark.asyncio
    async def test_last_leader_cannot_remove_self(
        self, lifecycle, store, seed_group, seed_membership, as_user
    ):
        seed_group("g2")
        leader = seed_membership("g2", "u1", role="leader")
        as_user("u1")

        result = await lifecycle.remove_member("g2", "u1", "u1")

        assert result.status == OperationStatus.CONFLICT
        assert result.message == "Cannot remove the last leader of the group"
        assert store.get("group_memberships", leader["id"])["status"] == "active"

    @pytest.mark.asyncio
    async def test_leader_removes_member(
        self, lifecycle, store, seed_group, seed_membership, as_user, events_of
    ):
        seed_group("g1")
        seed_membership("g1", "leader", role="leader")
        member = seed_membership("g1", "u2")
        as_user("leader")

        result = await lifecycle.remove_member("g1", "u2", "leader")

        assert result.is_success
        assert result.data is True
        assert store.get("group_memberships", member["id"])["status"] == "inactive"
        [event] = events_of(MEMBER_REMOVED)
        assert event.metadata["previous_status"] == "active"
        assert event.metadata["new_status"] == "inactive"
        assert event.metadata["note_text"] == "Removed by group leader"

    @pytest.mark.asyncio
    async def test_remove_one_of_two_leaders(
        self, lifecycle, store, seed_group, seed_membership, as_user
    ):
        seed_group("g1")
        seed_membership("g1", "leader", role="leader")
        seed_membership("g1", "co-leader", role="leader")
        as_user("leader")

        result = await lifecycle.remove_member("g1", "co-leader", "leader")

        assert result.is_success
        assert len(store.rows("group_memberships", role="leader", status="active")) == 1

    @pytest.mark.asyncio
    async def test_member_leaves(
        self, lifecycle, store, seed_group, seed_membership, as_user, events_of
    ):
        seed_group("g1")
        seed_membership("g1", "leader", role="leader")
        member = seed_membership("g1", "u2")
        as_user("u2")

        result = await lifecycle.leave_group("g1", "u2")

        assert result.is_success
        assert store.get("group_memberships", member["id"])["status"] == "inactive"
        assert events_of(MEMBER_LEFT)[0].metadata["note_text"] == "Left the group"

    @pytest.mark.asyncio
    async def test_last_leader_cannot_leave(
        self, lifecycle, seed_group, seed_membership, as_user
    ):
        seed_group("g1")
        seed_membership("g1", "leader", role="leader")
        seed_membership("g1", "u2")
        as_user("leader")

        result = await lifecycle.leave_group("g1", "leader")

        assert result.message == errors.LAST_LEADER_LEAVE

    @pytest.mark.asyncio
    async def test_leave_twice(self, lifecycle, seed_group, seed_membership, as_user):
        seed_group("g1")
        seed_membership("g1", "leader", role="leader")
        seed_membership("g1", "u2")
        as_user("u2")
        await lifecycle.leave_group("g1", "u2")

        result = await lifecycle.leave_group("g1", "u2")

        assert result.status == OperationStatus.CONFLICT
        assert result.message == errors.NOT_A_MEMBER

    @pytest.mark.asyncio
    async def test_leave_without_membership(self, lifecycle, seed_group, as_user):
        seed_group("g1")
        as_user("u2")

        result = await lifecycle.leave_group("g1", "u2")

        assert result.message == errors.MEMBERSHIP_NOT_FOUND

    @pytest.mark.asyncio
    async def test_cannot_leave_on_behalf_of_someone_else(
        self, lifecycle, store, seed_group, seed_membership, as_user
    ):
        seed_group("g1")
        member = seed_membership("g1", "u2")
        as_user("u3")

        result = await lifecycle.leave_group("g1", "u2")

        assert result.status == OperationStatus.PERMISSION_DENIED
        assert store.get("group_memberships", member["id"])["status"] == "active"

    @pytest.mark.asyncio
    async def test_leader_count_never_drops_to_zero(
        self, lifecycle, store, seed_group, seed_membership, as_user
    ):
        seed_group("g1")
        seed_membership("g1", "a", role="leader")
        seed_membership("g1", "b", role="leader")
        seed_membership("g1", "c")

        as_user("a")
        await lifecycle.promote("g1", "c", "a")
        await lifecycle.demote("g1", "b", "a")
        await lifecycle.remove_member("g1", "c", "a")
        await lifecycle.leave_group("g1", "a")
        await lifecycle.demote("g1", "a", "a")

        leaders = store.rows("group_memberships", role="leader", status="active")
        assert [row["user_id"] for row in leaders] == ["a"]


class TestUpdateJourneyStatus:
    """Journey stage of a membership."""

    @pytest.mark.asyncio
    async def test_leader_sets_stage(
        self, lifecycle, store, seed_group, seed_membership, as_user, events_of
    ):
        seed_group("g1")
        seed_membership("g1", "leader", role="leader")
        member = seed_membership("g1", "u2", journey_status=3)
        as_user("leader")

        result = await lifecycle.update_journey_status(member["id"], "leader", 4)

        assert result.is_success
        assert result.data.journey_status == 4
        [event] = events_of(JOURNEY_STATUS_CHANGED)
        assert event.metadata["previous_journey_status"] == 3
        assert event.metadata["new_journey_status"] == 4

    @pytest.mark.asyncio
    async def test_clearing_publishes_nothing(
        self, lifecycle, store, seed_group, seed_membership, as_user, events_of
    ):
        seed_group("g1")
        seed_membership("g1", "leader", role="leader")
        member = seed_membership("g1", "u2", status="pending", journey_status=1)
        as_user("leader")

        result = await lifecycle.update_journey_status(member["id"], "leader", None)

        assert result.is_success
        assert store.get("group_memberships", member["id"])["journey_status"] is None
        assert events_of(JOURNEY_STATUS_CHANGED) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [0, -2, True, "3", 2.5])
    async def test_invalid_values(self, lifecycle, as_user, value):
        as_user("leader")

        result = await lifecycle.update_journey_status("m1", "leader", value)

        assert result.status == OperationStatus.VALIDATION_ERROR
        assert result.message == errors.JOURNEY_STATUS_INVALID

    @pytest.mark.asyncio
    async def test_inactive_membership_not_editable(
        self, lifecycle, seed_group, seed_membership, as_user
    ):
        seed_group("g1")
        seed_membership("g1", "leader", role="leader")
        member = seed_membership("g1", "u2", status="inactive")
        as_user("leader")

        result = await lifecycle.update_journey_status(member["id"], "leader", 2)

        assert result.status == OperationStatus.CONFLICT
        assert result.message == errors.JOURNEY_NOT_EDITABLE

    @pytest.mark.asyncio
    async def test_member_cannot_set_stage(
        self, lifecycle, seed_group, seed_membership, as_user
    ):
        seed_group("g1")
        member = seed_membership("g1", "u2")
        as_user("u2")

        result = await lifecycle.update_journey_status(member["id"], "u2", 5)

        assert result.status == OperationStatus.PERMISSION_DENIED
