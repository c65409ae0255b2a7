"""In-app notifications for group and membership events.

``GroupNotifier`` subscribes to committed events, works out who should be
told and hands the notifications to a ``NotificationSender``. Delivery is
fire-and-forget: a failure is logged and never affects the transition that
triggered it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Sequence

from infrastructure.events import Event
from infrastructure.identity import Role
from infrastructure.logging import get_module_logger
from infrastructure.persistence import DataStore
from modules.groups.events import events as group_events

logger = get_module_logger()

NOTIFICATIONS_TABLE = "notifications"


class NotificationType(str, Enum):
    GROUP_REQUEST = "group_request"
    JOIN_REQUEST = "join_request"
    GROUP_UPDATE = "group_update"


@dataclass(frozen=True)
class Notification:
    recipient_id: str
    notification_type: NotificationType
    title: str
    body: str
    data: Dict[str, Any] = field(default_factory=dict)

    def to_row(self) -> Dict[str, Any]:
        return {
            "user_id": self.recipient_id,
            "type": self.notification_type.value,
            "title": self.title,
            "body": self.body,
            "data": self.data,
            "read": False,
        }


class NotificationSender(Protocol):
    async def send(self, notifications: Sequence[Notification]) -> int:
        """Deliver notifications; returns how many were accepted."""
        ...


class SupabaseNotificationSender:
    """Writes one row per recipient to the ``notifications`` table."""

    def __init__(self, store: DataStore):
        self.store = store

    async def send(self, notifications: Sequence[Notification]) -> int:
        delivered = 0
        for notification in notifications:
            response = await self.store.insert(
                NOTIFICATIONS_TABLE, notification.to_row()
            )
            if response.error:
                logger.warning(
                    "notification_write_failed",
                    recipient_id=notification.recipient_id,
                    notification_type=notification.notification_type.value,
                    error_code=response.error.code,
                    error=response.error.message,
                )
                continue
            delivered += 1
        return delivered


class GroupNotifier:
    """Builds notifications from group events and sends them."""

    def __init__(self, store: DataStore, sender: NotificationSender):
        self.store = store
        self.sender = sender

    async def church_admin_ids(self, church_id: Any) -> List[str]:
        response = await self.store.select(
            "users", {"church_id": church_id}, columns="id, roles"
        )
        if response.error:
            logger.warning(
                "church_admin_lookup_failed",
                church_id=church_id,
                error=response.error.message,
            )
            return []
        return [
            str(row["id"])
            for row in response.data
            if Role.CHURCH_ADMIN.value in (row.get("roles") or [])
        ]

    async def active_leader_ids(self, group_id: str) -> List[str]:
        response = await self.store.select(
            "group_memberships",
            {"group_id": group_id, "role": "leader", "status": "active"},
            columns="user_id",
        )
        if response.error:
            logger.warning(
                "group_leader_lookup_failed",
                group_id=group_id,
                error=response.error.message,
            )
            return []
        return [str(row["user_id"]) for row in response.data]

    async def on_group_request_submitted(self, event: Event) -> int:
        meta = event.metadata
        church_id = meta.get("church_id")
        if isinstance(church_id, (list, tuple)):
            church_id = list(church_id)
        admins = await self.church_admin_ids(church_id)
        if not admins:
            logger.warning("no_church_admins_to_notify", church_id=church_id)
            return 0
        title = meta.get("group_title", "")
        return await self._deliver(
            event,
            [
                Notification(
                    recipient_id=admin_id,
                    notification_type=NotificationType.GROUP_REQUEST,
                    title="New Group Request",
                    body=f'A new group "{title}" is waiting for approval',
                    data={"group_id": meta.get("group_id"), "church_id": church_id},
                )
                for admin_id in admins
                if admin_id != event.actor_id
            ],
        )

    async def on_join_request_created(self, event: Event) -> int:
        meta = event.metadata
        leaders = await self.active_leader_ids(meta["group_id"])
        if not leaders:
            logger.warning("no_group_leaders_to_notify", group_id=meta["group_id"])
            return 0
        title = meta.get("group_title", "")
        return await self._deliver(
            event,
            [
                Notification(
                    recipient_id=leader_id,
                    notification_type=NotificationType.JOIN_REQUEST,
                    title="New Join Request",
                    body=f'Someone wants to join "{title}"',
                    data={
                        "group_id": meta["group_id"],
                        "membership_id": meta.get("membership_id"),
                        "requester_id": meta.get("user_id"),
                    },
                )
                for leader_id in leaders
                if leader_id != meta.get("user_id")
            ],
        )

    async def on_join_request_approved(self, event: Event) -> int:
        return await self._notify_requester(
            event, "Join Request Approved", "You are now a member of"
        )

    async def on_join_request_denied(self, event: Event) -> int:
        return await self._notify_requester(
            event, "Join Request Declined", "Your request was declined for"
        )

    async def on_group_status_changed(self, event: Event) -> int:
        meta = event.metadata
        creator_id = meta.get("creator_id")
        if not creator_id or creator_id == event.actor_id:
            return 0
        title = meta.get("group_title", "")
        new_status = meta.get("new_status", "")
        return await self._deliver(
            event,
            [
                Notification(
                    recipient_id=creator_id,
                    notification_type=NotificationType.GROUP_UPDATE,
                    title="Group Status Updated",
                    body=f'"{title}" is now {new_status}',
                    data={"group_id": meta.get("group_id"), "status": new_status},
                )
            ],
        )

    async def _notify_requester(
        self, event: Event, heading: str, lead: str
    ) -> int:
        meta = event.metadata
        user_id: Optional[str] = meta.get("user_id")
        if not user_id:
            return 0
        title = meta.get("group_title", "")
        return await self._deliver(
            event,
            [
                Notification(
                    recipient_id=user_id,
                    notification_type=NotificationType.JOIN_REQUEST,
                    title=heading,
                    body=f'{lead} "{title}"'.strip(),
                    data={
                        "group_id": meta.get("group_id"),
                        "membership_id": meta.get("membership_id"),
                    },
                )
            ],
        )

    async def _deliver(self, event: Event, notifications: List[Notification]) -> int:
        if not notifications:
            return 0
        delivered = await self.sender.send(notifications)
        logger.info(
            "notifications_sent",
            event_type=event.event_type,
            requested=len(notifications),
            delivered=delivered,
            correlation_id=str(event.correlation_id),
        )
        return delivered


def notification_routes(notifier: GroupNotifier) -> Dict[str, Any]:
    """Event type to notifier callback."""
    routes: Dict[str, Any] = {
        group_events.GROUP_REQUEST_SUBMITTED: notifier.on_group_request_submitted,
        group_events.JOIN_REQUEST_CREATED: notifier.on_join_request_created,
        group_events.JOIN_REQUEST_APPROVED: notifier.on_join_request_approved,
        group_events.JOIN_REQUEST_ARCHIVED: notifier.on_join_request_denied,
        group_events.JOIN_REQUEST_DECLINED: notifier.on_join_request_denied,
    }
    for event_type in group_events.GROUP_STATUS_EVENTS:
        routes[event_type] = notifier.on_group_status_changed
    return routes
