"""Client-side mirror of the remote row-level access policies.

Each entry maps ``(table, operation)`` to a predicate over the caller's
identity and the row payload. A missing entry means the remote store denies
the operation to anyone but a superadmin.
"""

from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple, Union

from infrastructure.identity import CallerIdentity

Predicate = Callable[[CallerIdentity, Mapping[str, Any]], bool]

ChurchRef = Union[str, Iterable[str], None]


def church_matches(value: ChurchRef, church_id: Optional[str]) -> bool:
    """True when ``value`` (a church id or a list of them) contains ``church_id``."""
    if not church_id or value is None:
        return False
    if isinstance(value, str):
        return value == church_id
    return church_id in list(value)


def _is_self(identity: CallerIdentity, payload: Mapping[str, Any]) -> bool:
    return payload.get("user_id") == identity.id


def _own_user_or_same_church(
    identity: CallerIdentity, payload: Mapping[str, Any]
) -> bool:
    return payload.get("id") == identity.id or church_matches(
        payload.get("church_id"), identity.church_id
    )


def _same_church(identity: CallerIdentity, payload: Mapping[str, Any]) -> bool:
    return church_matches(payload.get("church_id"), identity.church_id)


def _note_author(identity: CallerIdentity, payload: Mapping[str, Any]) -> bool:
    return payload.get("created_by_user_id") == identity.id


RLS_POLICIES: Dict[Tuple[str, str], Predicate] = {
    ("users", "select"): _own_user_or_same_church,
    ("users", "update"): _own_user_or_same_church,
    ("groups", "select"): _same_church,
    ("groups", "insert"): _same_church,
    ("group_memberships", "insert"): _is_self,
    ("group_memberships", "select"): _is_self,
    ("group_memberships", "update"): _is_self,
    ("group_membership_notes", "insert"): _note_author,
    ("group_membership_notes", "select"): _is_self,
}


def evaluate_policy(
    identity: CallerIdentity, table: str, operation: str, payload: Mapping[str, Any]
) -> bool:
    predicate = RLS_POLICIES.get((table, operation))
    if predicate is None:
        return False
    return predicate(identity, payload)
