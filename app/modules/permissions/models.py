"""Permission matrix and authorization result types."""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Union


class Permission(str, Enum):
    READ_OWN_DATA = "read_own_data"
    UPDATE_OWN_DATA = "update_own_data"
    READ_CHURCH_DATA = "read_church_data"
    CREATE_GROUPS = "create_groups"
    MANAGE_CHURCH_EVENTS = "manage_church_events"
    MANAGE_CHURCH_GROUPS = "manage_church_groups"
    MANAGE_CHURCH_USERS = "manage_church_users"
    MANAGE_GROUP_DETAILS = "manage_group_details"
    MANAGE_GROUP_MEMBERS = "manage_group_members"
    MANAGE_ALL_DATA = "manage_all_data"


SELF_SCOPED = frozenset({Permission.READ_OWN_DATA, Permission.UPDATE_OWN_DATA})
CHURCH_SCOPED = frozenset(
    {
        Permission.MANAGE_CHURCH_EVENTS,
        Permission.MANAGE_CHURCH_GROUPS,
        Permission.MANAGE_CHURCH_USERS,
    }
)
GROUP_SCOPED = frozenset(
    {Permission.MANAGE_GROUP_DETAILS, Permission.MANAGE_GROUP_MEMBERS}
)


@dataclass(frozen=True)
class Granted:
    """Authorization granted."""

    has_permission: ClassVar[bool] = True
    reason: ClassVar[Optional[str]] = None


@dataclass(frozen=True)
class Denied:
    """Authorization denied.

    Attributes:
        reason: Human-readable reason shown to the caller
        unauthenticated: Denied because there is no usable session
        retryable: Denied because the identity could not be loaded from the
            remote store (transport failure)
    """

    reason: str
    unauthenticated: bool = False
    retryable: bool = False

    has_permission: ClassVar[bool] = False


PermissionCheck = Union[Granted, Denied]

GRANTED = Granted()
NOT_AUTHENTICATED = Denied("User not authenticated", unauthenticated=True)
