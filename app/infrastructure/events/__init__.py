"""Infrastructure event system.

Lightweight in-process event bus used to decouple notifications and audit
notes from the domain services that trigger them.

Usage:

    from infrastructure.events import Event, EventBus

    bus = EventBus()

    @bus.register_handler("group.join_request.created")
    async def notify_leaders(event: Event) -> None:
        ...

    await bus.publish(
        Event(
            event_type="group.join_request.created",
            actor_id="user-1",
            metadata={"group_id": "g1"},
        )
    )
"""

from infrastructure.events.dispatcher import EventBus, EventHandler
from infrastructure.events.models import Event

__all__ = [
    "Event",
    "EventBus",
    "EventHandler",
]
