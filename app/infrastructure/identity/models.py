"""Caller identity models and enums.

Normalized representation of the signed-in user as stored in the ``users``
table: id, church and the set of roles.
"""

from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Role(str, Enum):
    """Roles a user can hold."""

    MEMBER = "member"
    GROUP_LEADER = "group_leader"
    CHURCH_ADMIN = "church_admin"
    SUPERADMIN = "superadmin"

    @classmethod
    def parse(cls, value: str) -> Optional["Role"]:
        """Parse a stored role value; ``user`` is the legacy name for member."""
        if value == "user":
            return cls.MEMBER
        try:
            return cls(value)
        except ValueError:
            return None


class CallerIdentity(BaseModel):
    """Identity of the caller an authorization decision is made for."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="User id (auth uid)")
    church_id: Optional[str] = Field(
        default=None, description="Church the user belongs to"
    )
    roles: FrozenSet[Role] = Field(default_factory=frozenset)

    @field_validator("roles", mode="before")
    @classmethod
    def _parse_roles(cls, v: Any) -> Any:
        if v is None:
            return frozenset()
        if isinstance(v, str):
            v = [v]
        parsed = set()
        for raw in v:
            role = raw if isinstance(raw, Role) else Role.parse(str(raw))
            if role is not None:
                parsed.add(role)
        return frozenset(parsed)

    def has_role(self, role: Role) -> bool:
        return role in self.roles

    def has_any_role(self, roles: Iterable[Role]) -> bool:
        return any(role in self.roles for role in roles)

    @property
    def is_superadmin(self) -> bool:
        return Role.SUPERADMIN in self.roles

    @property
    def is_church_admin(self) -> bool:
        return Role.CHURCH_ADMIN in self.roles

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "CallerIdentity":
        """Build an identity from a ``users`` row."""
        return cls(
            id=str(row["id"]),
            church_id=row.get("church_id"),
            roles=row.get("roles") or [],
        )
