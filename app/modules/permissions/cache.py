"""Explicit caller identity cache."""

from typing import Dict, Optional

from infrastructure.identity import CallerIdentity


class IdentityCache:
    """Identity records memoized by user id.

    Entries never expire; they are dropped only by ``invalidate`` (sign-out,
    sign-in or role change).
    """

    def __init__(self) -> None:
        self._entries: Dict[str, CallerIdentity] = {}

    def get(self, user_id: str) -> Optional[CallerIdentity]:
        return self._entries.get(user_id)

    def set(self, identity: CallerIdentity) -> None:
        self._entries[identity.id] = identity

    def invalidate(self, user_id: Optional[str] = None) -> None:
        """Drop one entry, or every entry when ``user_id`` is omitted."""
        if user_id is None:
            self._entries.clear()
        else:
            self._entries.pop(user_id, None)

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
