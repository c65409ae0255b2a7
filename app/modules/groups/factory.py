"""Wiring for the groups feature.

``create_group_services`` builds every groups component around an existing
store and session; ``create_supabase_group_services`` does the same on top
of the process-wide supabase client.
"""

from dataclasses import dataclass
from typing import Optional

from infrastructure.configuration import Settings
from infrastructure.events import EventBus
from infrastructure.identity import SessionProvider, SupabaseSessionProvider
from infrastructure.logging import get_module_logger
from infrastructure.persistence import (
    DataStore,
    SupabaseClientManager,
    SupabaseDataStore,
)
from infrastructure.resilience import ExecutorRegistry, RetryPolicy
from infrastructure.services import (
    get_event_bus,
    get_executor_registry,
    get_settings,
)
from modules.groups.core import (
    GroupAdminService,
    GroupCreationSaga,
    GroupLifecycleService,
)
from modules.groups.events.handlers import register_group_handlers
from modules.groups.notes import AuditNoteRecorder
from modules.groups.notifications import (
    GroupNotifier,
    NotificationSender,
    SupabaseNotificationSender,
)
from modules.permissions import AuthorizationEngine, IdentityCache

logger = get_module_logger()


@dataclass
class GroupServices:
    engine: AuthorizationEngine
    lifecycle: GroupLifecycleService
    creation: GroupCreationSaga
    admin: GroupAdminService
    notes: AuditNoteRecorder
    notifier: GroupNotifier
    bus: EventBus
    registry: ExecutorRegistry


def create_group_services(
    store: DataStore,
    session: SessionProvider,
    settings: Settings,
    bus: Optional[EventBus] = None,
    registry: Optional[ExecutorRegistry] = None,
    cache: Optional[IdentityCache] = None,
    sender: Optional[NotificationSender] = None,
) -> GroupServices:
    """Build and wire the groups components.

    Handlers for notes, notifications and audit lines are subscribed to
    ``bus`` (a new bus when omitted).
    """
    bus = bus or EventBus()
    registry = registry or ExecutorRegistry(RetryPolicy.from_settings(settings.retry))
    engine = AuthorizationEngine(store, session, cache)
    lifecycle = GroupLifecycleService(store, engine, bus, settings.groups)
    notes = AuditNoteRecorder(store, engine)
    notifier = GroupNotifier(store, sender or SupabaseNotificationSender(store))
    register_group_handlers(bus, recorder=notes, notifier=notifier)

    logger.info("group_services_created")
    return GroupServices(
        engine=engine,
        lifecycle=lifecycle,
        creation=GroupCreationSaga(store, engine, bus, settings.groups),
        admin=GroupAdminService(lifecycle, registry, settings.groups),
        notes=notes,
        notifier=notifier,
        bus=bus,
        registry=registry,
    )


async def create_supabase_group_services(
    settings: Optional[Settings] = None,
) -> GroupServices:
    """Groups components backed by the shared supabase client.

    Uses the application-scoped settings, event bus and executor registry;
    call once per process so handlers are subscribed only once.
    """
    settings = settings or get_settings()
    client = await SupabaseClientManager.get_client(settings.supabase)
    return create_group_services(
        SupabaseDataStore(client),
        SupabaseSessionProvider(client),
        settings,
        bus=get_event_bus(),
        registry=get_executor_registry(),
    )
