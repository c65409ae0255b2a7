"""Authorization for the groups feature.

Usage:
    from modules.permissions import AuthorizationEngine, Permission

    engine = AuthorizationEngine(store, session)
    check = await engine.has_permission(Permission.MANAGE_CHURCH_GROUPS, "c1")
    if not check.has_permission:
        print(check.reason)
"""

from modules.permissions.cache import IdentityCache
from modules.permissions.engine import (
    AuthorizationEngine,
    IdentityUnavailable,
    denial_to_result,
)
from modules.permissions.models import (
    GRANTED,
    NOT_AUTHENTICATED,
    Denied,
    Granted,
    Permission,
    PermissionCheck,
)
from modules.permissions.rls import RLS_POLICIES, church_matches, evaluate_policy

__all__ = [
    "AuthorizationEngine",
    "IdentityCache",
    "IdentityUnavailable",
    "denial_to_result",
    "Denied",
    "Granted",
    "GRANTED",
    "NOT_AUTHENTICATED",
    "Permission",
    "PermissionCheck",
    "RLS_POLICIES",
    "church_matches",
    "evaluate_policy",
]
