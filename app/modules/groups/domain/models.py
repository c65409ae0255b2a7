"""Row models for groups, memberships and membership notes.

Lightweight dataclasses (not Pydantic) built from remote store rows with
``from_row``. Input validation lives in ``modules.groups.schemas``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class GroupStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    CLOSED = "closed"


class MembershipRole(str, Enum):
    MEMBER = "member"
    LEADER = "leader"


class MembershipStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"


class AuditNoteType(str, Enum):
    MANUAL = "manual"
    STATUS_CHANGE = "status_change"
    ROLE_CHANGE = "role_change"
    JOURNEY_CHANGE = "journey_change"


# Journey stage a member reaches once their join request is approved.
JOINED_JOURNEY_STATUS = 3


@dataclass
class Group:
    """A community group.

    Attributes:
        id: Group id.
        church_id: Owning church (a list when shared between churches).
        service_id: Church service the group is attached to.
        creator_id: User who submitted the group request.
        status: Lifecycle status.
        title: Display title.
        raw: The row as returned by the store.
    """

    id: str
    church_id: Any
    service_id: Optional[str]
    creator_id: Optional[str]
    status: GroupStatus
    title: str = ""
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Group":
        return cls(
            id=str(row["id"]),
            church_id=row.get("church_id"),
            service_id=row.get("service_id"),
            creator_id=row.get("created_by"),
            status=GroupStatus(row.get("status", GroupStatus.PENDING.value)),
            title=row.get("title") or "",
            raw=dict(row),
        )

    @property
    def church_ids(self) -> List[str]:
        if self.church_id is None:
            return []
        if isinstance(self.church_id, str):
            return [self.church_id]
        return list(self.church_id)


@dataclass
class Membership:
    """One row per (group_id, user_id) pair."""

    id: str
    group_id: str
    user_id: str
    role: MembershipRole
    status: MembershipStatus
    joined_at: Optional[str] = None
    journey_status: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Membership":
        return cls(
            id=str(row["id"]),
            group_id=str(row["group_id"]),
            user_id=str(row["user_id"]),
            role=MembershipRole(row.get("role", MembershipRole.MEMBER.value)),
            status=MembershipStatus(row.get("status", MembershipStatus.PENDING.value)),
            joined_at=row.get("joined_at"),
            journey_status=row.get("journey_status"),
            raw=dict(row),
        )

    @property
    def is_active_leader(self) -> bool:
        return (
            self.role == MembershipRole.LEADER
            and self.status == MembershipStatus.ACTIVE
        )


@dataclass(frozen=True)
class AuditNote:
    """Append-only note about a membership.

    Only the previous/new pair matching ``note_type`` is set: statuses for
    status changes, roles for role changes, journey stages for journey
    changes.
    """

    membership_id: str
    group_id: str
    user_id: str
    note_type: AuditNoteType
    created_by: str
    id: Optional[str] = None
    created_at: Optional[str] = None
    note_text: Optional[str] = None
    reason: Optional[str] = None
    previous_status: Optional[str] = None
    new_status: Optional[str] = None
    previous_role: Optional[str] = None
    new_role: Optional[str] = None
    previous_journey_status: Optional[int] = None
    new_journey_status: Optional[int] = None

    @property
    def previous_value(self) -> Any:
        if self.note_type == AuditNoteType.STATUS_CHANGE:
            return self.previous_status
        if self.note_type == AuditNoteType.ROLE_CHANGE:
            return self.previous_role
        if self.note_type == AuditNoteType.JOURNEY_CHANGE:
            return self.previous_journey_status
        return None

    @property
    def new_value(self) -> Any:
        if self.note_type == AuditNoteType.STATUS_CHANGE:
            return self.new_status
        if self.note_type == AuditNoteType.ROLE_CHANGE:
            return self.new_role
        if self.note_type == AuditNoteType.JOURNEY_CHANGE:
            return self.new_journey_status
        return None

    def to_row(self) -> Dict[str, Any]:
        row: Dict[str, Any] = {
            "membership_id": self.membership_id,
            "group_id": self.group_id,
            "user_id": self.user_id,
            "created_by_user_id": self.created_by,
            "note_type": self.note_type.value,
            "note_text": self.note_text,
            "reason": self.reason,
        }
        if self.note_type == AuditNoteType.STATUS_CHANGE:
            row["previous_status"] = self.previous_status
            row["new_status"] = self.new_status
        elif self.note_type == AuditNoteType.ROLE_CHANGE:
            row["previous_role"] = self.previous_role
            row["new_role"] = self.new_role
        elif self.note_type == AuditNoteType.JOURNEY_CHANGE:
            row["previous_journey_status"] = self.previous_journey_status
            row["new_journey_status"] = self.new_journey_status
        return row

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "AuditNote":
        return cls(
            id=row.get("id"),
            membership_id=str(row["membership_id"]),
            group_id=str(row["group_id"]),
            user_id=str(row["user_id"]),
            note_type=AuditNoteType(row["note_type"]),
            created_by=str(row.get("created_by_user_id", "")),
            created_at=row.get("created_at"),
            note_text=row.get("note_text"),
            reason=row.get("reason"),
            previous_status=row.get("previous_status"),
            new_status=row.get("new_status"),
            previous_role=row.get("previous_role"),
            new_role=row.get("new_role"),
            previous_journey_status=row.get("previous_journey_status"),
            new_journey_status=row.get("new_journey_status"),
        )
