"""Core business logic - lifecycle, creation saga and admin actions."""

from modules.groups.core.admin import BATCH_SLOT, GroupAdminService, group_slot
from modules.groups.core.creation import GroupCreationSaga
from modules.groups.core.guard import service_operation
from modules.groups.core.lifecycle import GroupLifecycleService

__all__ = [
    "BATCH_SLOT",
    "GroupAdminService",
    "GroupCreationSaga",
    "GroupLifecycleService",
    "group_slot",
    "service_operation",
]
