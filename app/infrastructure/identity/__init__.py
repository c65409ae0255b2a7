"""Caller identity and session resolution.

Usage:
    from infrastructure.identity import CallerIdentity, Role, StaticSessionProvider

    session = StaticSessionProvider("user-1")
    identity = CallerIdentity(id="user-1", church_id="c1", roles=["church_admin"])
"""

from infrastructure.identity.models import CallerIdentity, Role
from infrastructure.identity.service import (
    SessionProvider,
    StaticSessionProvider,
    SupabaseSessionProvider,
)

__all__ = [
    "CallerIdentity",
    "Role",
    "SessionProvider",
    "StaticSessionProvider",
    "SupabaseSessionProvider",
]
