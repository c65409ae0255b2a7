"""Authorization engine.

Answers authorization questions for the signed-in caller. Every query
returns a ``PermissionCheck`` (or a bool for role queries); expected
denials never raise.

The caller's ``users`` row is fetched once per user id and kept in an
``IdentityCache`` until ``clear_user_cache`` is called.
"""

from typing import Any, Iterable, List, Mapping, Optional

from infrastructure.identity import CallerIdentity, Role, SessionProvider
from infrastructure.logging import get_module_logger
from infrastructure.operations import OperationResult
from infrastructure.persistence import DataStore
from modules.permissions.cache import IdentityCache
from modules.permissions.models import (
    CHURCH_SCOPED,
    GRANTED,
    GROUP_SCOPED,
    NOT_AUTHENTICATED,
    SELF_SCOPED,
    Denied,
    Permission,
    PermissionCheck,
)
from modules.permissions.rls import church_matches, evaluate_policy

logger = get_module_logger()

USERS_TABLE = "users"
GROUPS_TABLE = "groups"
MEMBERSHIPS_TABLE = "group_memberships"


class IdentityUnavailable(Exception):
    """The identity lookup failed for a reason other than a missing row."""


class AuthorizationEngine:
    """Authorization queries for the current session.

    Args:
        store: Remote row store.
        session: Supplies the signed-in user id.
        cache: Identity cache; a private one is created when omitted.
    """

    def __init__(
        self,
        store: DataStore,
        session: SessionProvider,
        cache: Optional[IdentityCache] = None,
    ):
        self.store = store
        self.session = session
        self.cache = cache if cache is not None else IdentityCache()

    async def get_current_identity(self) -> Optional[CallerIdentity]:
        """Return the caller's identity, or ``None`` without a session.

        Raises:
            IdentityUnavailable: The ``users`` row could not be read.
        """
        user_id = await self.session.get_current_user_id()
        if not user_id:
            return None

        cached = self.cache.get(user_id)
        if cached is not None:
            return cached

        response = await self.store.select_one(USERS_TABLE, {"id": user_id})
        if response.error:
            logger.warning(
                "identity_lookup_failed",
                user_id=user_id,
                error_code=response.error.code,
                error=response.error.message,
            )
            raise IdentityUnavailable(response.error.message)
        if response.data is None:
            logger.info("identity_not_found", user_id=user_id)
            return None

        identity = CallerIdentity.from_row(response.data)
        self.cache.set(identity)
        return identity

    async def _resolve(self) -> "CallerIdentity | Denied":
        try:
            identity = await self.get_current_identity()
        except IdentityUnavailable as e:
            return Denied(f"Unable to load user profile: {e}", retryable=True)
        if identity is None:
            return NOT_AUTHENTICATED
        return identity

    def clear_user_cache(self, user_id: Optional[str] = None) -> None:
        """Drop cached identities; call after sign-out, sign-in or role change."""
        self.cache.invalidate(user_id)
        logger.info("identity_cache_cleared", user_id=user_id or "all")

    async def has_role(self, role: Role) -> bool:
        identity = await self._resolve()
        if isinstance(identity, Denied):
            return False
        return identity.has_role(role)

    async def has_any_role(self, roles: Iterable[Role]) -> bool:
        identity = await self._resolve()
        if isinstance(identity, Denied):
            return False
        return identity.has_any_role(roles)

    async def has_permission(
        self, permission: Permission, resource_id: Optional[str] = None
    ) -> PermissionCheck:
        """Evaluate the permission matrix.

        ``resource_id`` is a user id for self-scoped permissions, a church id
        for church-scoped ones and a group id for group-scoped ones.
        """
        identity = await self._resolve()
        if isinstance(identity, Denied):
            return identity

        if identity.is_superadmin:
            return GRANTED

        if permission in SELF_SCOPED:
            if resource_id is None or resource_id == identity.id:
                return GRANTED
            return Denied("Users can only access their own data")

        if permission in (Permission.READ_CHURCH_DATA, Permission.CREATE_GROUPS):
            if not identity.church_id:
                if permission == Permission.CREATE_GROUPS:
                    return Denied(
                        "User must be associated with a church to create groups"
                    )
                return Denied("User not associated with a church")
            if resource_id is None or resource_id == identity.church_id:
                return GRANTED
            return Denied("Access denied to church data")

        if permission in CHURCH_SCOPED:
            if identity.is_church_admin and identity.church_id:
                if resource_id is None or resource_id == identity.church_id:
                    return GRANTED
            return Denied("Insufficient permissions for church management")

        if permission in GROUP_SCOPED:
            return await self._check_group_scope(identity, resource_id)

        if permission == Permission.MANAGE_ALL_DATA:
            return Denied("Superadmin access required")

        return Denied("Unknown permission")

    async def _check_group_scope(
        self, identity: CallerIdentity, group_id: Optional[str]
    ) -> PermissionCheck:
        if group_id is None:
            if identity.has_any_role((Role.CHURCH_ADMIN, Role.GROUP_LEADER)):
                return GRANTED
            return Denied("Insufficient permissions to manage group")

        if await self._is_active_leader(group_id, identity.id):
            return GRANTED
        if identity.is_church_admin and await self._group_in_church(
            group_id, identity.church_id
        ):
            return GRANTED
        return Denied("Insufficient permissions to manage group")

    async def can_access_church_data(self, church_id: str) -> PermissionCheck:
        identity = await self._resolve()
        if isinstance(identity, Denied):
            return identity
        if identity.is_superadmin or church_id == identity.church_id:
            return GRANTED
        return Denied("Access denied to church data")

    async def can_manage_group_membership(
        self, group_id: str, user_id: Optional[str] = None
    ) -> PermissionCheck:
        """Caller is an active leader of the group, or an admin over its church.

        ``user_id`` names the member being managed and is only logged; being
        the target of an action grants nothing.
        """
        identity = await self._resolve()
        if isinstance(identity, Denied):
            return identity
        if identity.is_superadmin:
            return GRANTED
        if await self._is_active_leader(group_id, identity.id):
            return GRANTED
        if identity.is_church_admin and await self._group_in_church(
            group_id, identity.church_id
        ):
            return GRANTED
        logger.info(
            "group_membership_management_denied",
            group_id=group_id,
            caller_id=identity.id,
            target_user_id=user_id,
        )
        return Denied("Insufficient permissions to manage group membership")

    async def can_modify_resource(
        self, resource_type: str, resource_id: str, owner_id: Optional[str] = None
    ) -> PermissionCheck:
        """Owner, superadmin, or a church admin over the resource's church."""
        identity = await self._resolve()
        if isinstance(identity, Denied):
            return identity
        if identity.is_superadmin:
            return GRANTED
        if owner_id is not None and owner_id == identity.id:
            return GRANTED

        if identity.is_church_admin and identity.church_id:
            church = await self._resource_church(resource_type, resource_id)
            if church_matches(church, identity.church_id):
                return GRANTED

        return Denied("Insufficient permissions to modify resource")

    async def validate_rls_compliance(
        self, table: str, operation: str, payload: Optional[Mapping[str, Any]] = None
    ) -> PermissionCheck:
        """Pre-flight check of the remote row-level policy for a mutation."""
        identity = await self._resolve()
        if isinstance(identity, Denied):
            return identity
        if identity.is_superadmin:
            return GRANTED
        if evaluate_policy(identity, table, operation, payload or {}):
            return GRANTED
        return Denied(f"RLS policy violation for {table}.{operation}")

    async def get_user_permissions(self) -> List[Permission]:
        """Effective permissions of the caller; group-scoped ones are checked per group."""
        identity = await self._resolve()
        if isinstance(identity, Denied):
            return []

        permissions = [Permission.READ_OWN_DATA, Permission.UPDATE_OWN_DATA]
        if identity.church_id:
            permissions += [Permission.READ_CHURCH_DATA, Permission.CREATE_GROUPS]
        if identity.is_church_admin or identity.is_superadmin:
            permissions += [
                Permission.MANAGE_CHURCH_EVENTS,
                Permission.MANAGE_CHURCH_GROUPS,
                Permission.MANAGE_CHURCH_USERS,
            ]
        if identity.has_any_role(
            (Role.GROUP_LEADER, Role.CHURCH_ADMIN, Role.SUPERADMIN)
        ):
            permissions += [
                Permission.MANAGE_GROUP_DETAILS,
                Permission.MANAGE_GROUP_MEMBERS,
            ]
        if identity.is_superadmin:
            permissions.append(Permission.MANAGE_ALL_DATA)
        return permissions

    async def _is_active_leader(self, group_id: str, user_id: str) -> bool:
        response = await self.store.select_one(
            MEMBERSHIPS_TABLE,
            {
                "group_id": group_id,
                "user_id": user_id,
                "status": "active",
                "role": "leader",
            },
        )
        return response.ok and response.data is not None

    async def _group_in_church(self, group_id: str, church_id: Optional[str]) -> bool:
        if not church_id:
            return False
        response = await self.store.select_one(
            GROUPS_TABLE, {"id": group_id}, columns="church_id"
        )
        if not response.ok or response.data is None:
            return False
        return church_matches(response.data.get("church_id"), church_id)

    async def _resource_church(self, resource_type: str, resource_id: str) -> Any:
        if resource_type == "group":
            table, filters = GROUPS_TABLE, {"id": resource_id}
        elif resource_type == "user":
            table, filters = USERS_TABLE, {"id": resource_id}
        elif resource_type == "membership":
            response = await self.store.select_one(
                MEMBERSHIPS_TABLE, {"id": resource_id}, columns="group_id"
            )
            if not response.ok or response.data is None:
                return None
            table, filters = GROUPS_TABLE, {"id": response.data["group_id"]}
        else:
            return None

        response = await self.store.select_one(table, filters, columns="church_id")
        if not response.ok or response.data is None:
            return None
        return response.data.get("church_id")


def denial_to_result(check: Denied) -> OperationResult:
    """Map a denial onto the operation error taxonomy."""
    if check.unauthenticated:
        return OperationResult.auth_error()
    if check.retryable:
        return OperationResult.transient_error(check.reason, error_code="IDENTITY_LOOKUP")
    return OperationResult.permission_denied(check.reason)
