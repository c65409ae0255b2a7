"""Subscribers for groups events.

Wires the side effects of committed transitions onto an ``EventBus``:
audit log lines for group-level actions, membership notes and in-app
notifications. Services only publish; nothing here can fail a transition.
"""

from infrastructure.audit import audit_event_from_event, write_audit_event
from infrastructure.events import Event, EventBus
from infrastructure.logging import get_module_logger
from modules.groups.events import events as group_events
from modules.groups.notifications import notification_routes

logger = get_module_logger()

AUDITED_GROUP_EVENTS = (
    group_events.GROUP_REQUEST_SUBMITTED,
    group_events.GROUP_APPROVED,
    group_events.GROUP_DECLINED,
    group_events.GROUP_CLOSED,
    group_events.GROUP_UPDATED,
    group_events.GROUP_CREATION_COMPENSATED,
)

NOTE_EVENTS = group_events.MEMBERSHIP_STATUS_EVENTS + (
    group_events.MEMBER_ROLE_CHANGED,
    group_events.JOURNEY_STATUS_CHANGED,
)


def handle_audit_event(event: Event) -> None:
    """Write one structured audit line for a group-level action."""
    write_audit_event(audit_event_from_event(event))


def register_group_handlers(
    bus: EventBus,
    recorder=None,
    notifier=None,
) -> EventBus:
    """Subscribe audit, note and notification handlers to ``bus``.

    Args:
        bus: Bus the groups services publish to.
        recorder: Optional ``AuditNoteRecorder``; membership notes are only
            written when given.
        notifier: Optional ``GroupNotifier``; notifications are only sent
            when given.
    """
    for event_type in AUDITED_GROUP_EVENTS:
        bus.subscribe(event_type, handle_audit_event)

    if recorder is not None:
        for event_type in NOTE_EVENTS:
            bus.subscribe(event_type, recorder.record_from_event)

    if notifier is not None:
        for event_type, callback in notification_routes(notifier).items():
            bus.subscribe(event_type, callback)

    logger.info(
        "group_handlers_registered",
        events=bus.get_registered_events(),
        notes=recorder is not None,
        notifications=notifier is not None,
    )
    return bus
