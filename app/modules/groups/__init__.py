# modules/groups/__init__.py
"""Church community group membership coordination.

Features:
- Group requests with an optional first leader (creation saga)
- Admin approval, decline and close with per-group executor slots
- Join requests, promotion, demotion, removal and leaving
- Append-only membership notes and in-app notifications driven by events

Example:
    from modules.groups import create_supabase_group_services

    services = await create_supabase_group_services()
    result = await services.admin.approve_group("g1", admin_id)
    if not result.is_success:
        print(result.message)
"""

from modules.groups.core import (
    GroupAdminService,
    GroupCreationSaga,
    GroupLifecycleService,
)
from modules.groups.factory import (
    GroupServices,
    create_group_services,
    create_supabase_group_services,
)
from modules.groups.notes import AuditNoteRecorder
from modules.groups.notifications import GroupNotifier, SupabaseNotificationSender

__all__ = [
    # Services
    "GroupAdminService",
    "GroupCreationSaga",
    "GroupLifecycleService",
    "AuditNoteRecorder",
    "GroupNotifier",
    "SupabaseNotificationSender",
    # Wiring
    "GroupServices",
    "create_group_services",
    "create_supabase_group_services",
]
