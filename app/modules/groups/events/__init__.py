"""Groups event types and subscribers.

Event type constants and ``group_event`` live in ``events``; subscriber
wiring lives in ``handlers`` (``register_group_handlers``).
"""

from modules.groups.events.events import (
    GROUP_APPROVED,
    GROUP_CLOSED,
    GROUP_CREATION_COMPENSATED,
    GROUP_DECLINED,
    GROUP_REQUEST_SUBMITTED,
    GROUP_STATUS_EVENTS,
    GROUP_UPDATED,
    JOIN_REQUEST_APPROVED,
    JOIN_REQUEST_ARCHIVED,
    JOIN_REQUEST_CANCELLED,
    JOIN_REQUEST_CREATED,
    JOIN_REQUEST_DECLINED,
    JOURNEY_STATUS_CHANGED,
    MEMBER_LEFT,
    MEMBER_REMOVED,
    MEMBER_ROLE_CHANGED,
    MEMBERSHIP_STATUS_EVENTS,
    group_event,
)

__all__ = [
    "GROUP_APPROVED",
    "GROUP_CLOSED",
    "GROUP_CREATION_COMPENSATED",
    "GROUP_DECLINED",
    "GROUP_REQUEST_SUBMITTED",
    "GROUP_STATUS_EVENTS",
    "GROUP_UPDATED",
    "JOIN_REQUEST_APPROVED",
    "JOIN_REQUEST_ARCHIVED",
    "JOIN_REQUEST_CANCELLED",
    "JOIN_REQUEST_CREATED",
    "JOIN_REQUEST_DECLINED",
    "JOURNEY_STATUS_CHANGED",
    "MEMBER_LEFT",
    "MEMBER_REMOVED",
    "MEMBER_ROLE_CHANGED",
    "MEMBERSHIP_STATUS_EVENTS",
    "group_event",
]
