"""Domain layer - row models and error messages."""

from modules.groups.domain.models import (
    JOINED_JOURNEY_STATUS,
    AuditNote,
    AuditNoteType,
    Group,
    GroupStatus,
    Membership,
    MembershipRole,
    MembershipStatus,
)

__all__ = [
    "JOINED_JOURNEY_STATUS",
    "AuditNote",
    "AuditNoteType",
    "Group",
    "GroupStatus",
    "Membership",
    "MembershipRole",
    "MembershipStatus",
]
