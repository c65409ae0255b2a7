"""Groups module event types.

Services publish these after a transition has been committed. Metadata keys
are documented per event type.
"""

from typing import Any
from uuid import UUID, uuid4

from infrastructure.events import Event
from infrastructure.logging import get_correlation_id

# group_id, group_title, church_id, creator_id, leader_created
GROUP_REQUEST_SUBMITTED = "group.request.submitted"
# group_id, church_id, creator_id, previous_status, new_status, reason
GROUP_APPROVED = "group.approved"
GROUP_DECLINED = "group.declined"
GROUP_CLOSED = "group.closed"
# group_id, fields
GROUP_UPDATED = "group.updated"
# group_id, church_id, error, success=False
GROUP_CREATION_COMPENSATED = "group.creation.compensated"

# membership_id, group_id, user_id, previous_status (None for a new row),
# new_status, contact_consent, message
JOIN_REQUEST_CREATED = "membership.join_request.created"
# membership_id, group_id, user_id, previous_status, new_status
JOIN_REQUEST_APPROVED = "membership.join_request.approved"
# membership_id, group_id, user_id (row deleted)
JOIN_REQUEST_DECLINED = "membership.join_request.declined"
# membership_id, group_id, user_id, previous_status, new_status, reason, note_text
JOIN_REQUEST_ARCHIVED = "membership.join_request.archived"
# membership_id, group_id, user_id (row deleted)
JOIN_REQUEST_CANCELLED = "membership.join_request.cancelled"
# membership_id, group_id, user_id, previous_role, new_role
MEMBER_ROLE_CHANGED = "membership.role.changed"
# membership_id, group_id, user_id, previous_status, new_status, note_text
MEMBER_REMOVED = "membership.removed"
MEMBER_LEFT = "membership.left"
# membership_id, group_id, user_id, previous_journey_status, new_journey_status
JOURNEY_STATUS_CHANGED = "membership.journey.changed"

GROUP_STATUS_EVENTS = (GROUP_APPROVED, GROUP_DECLINED, GROUP_CLOSED)
MEMBERSHIP_STATUS_EVENTS = (
    JOIN_REQUEST_CREATED,
    JOIN_REQUEST_APPROVED,
    JOIN_REQUEST_ARCHIVED,
    MEMBER_REMOVED,
    MEMBER_LEFT,
)


def _current_correlation_id() -> UUID:
    bound = get_correlation_id()
    if bound:
        try:
            return UUID(bound)
        except ValueError:
            pass
    return uuid4()


def group_event(event_type: str, actor_id: str, **metadata: Any) -> Event:
    """Build an event sharing the correlation id bound for the operation."""
    return Event(
        event_type=event_type,
        correlation_id=_current_correlation_id(),
        actor_id=actor_id,
        metadata=metadata,
    )
