"""Session providers.

Supply the id of the currently authenticated user to the authorization
engine. A missing or expired session yields ``None``.
"""

from typing import Optional, Protocol, runtime_checkable

from supabase import AsyncClient

from infrastructure.logging import get_module_logger

logger = get_module_logger()


@runtime_checkable
class SessionProvider(Protocol):
    async def get_current_user_id(self) -> Optional[str]:
        """Return the signed-in user's id, or ``None`` without a session."""
        ...


class SupabaseSessionProvider:
    """Reads the current user from the supabase auth session."""

    def __init__(self, client: AsyncClient):
        self.client = client

    async def get_current_user_id(self) -> Optional[str]:
        try:
            session = await self.client.auth.get_session()
        except Exception as e:  # pylint: disable=broad-except
            logger.warning("session_lookup_failed", error=str(e))
            return None
        if session is None or session.user is None:
            return None
        return session.user.id


class StaticSessionProvider:
    """Pins the current user id; used by service jobs and tests."""

    def __init__(self, user_id: Optional[str] = None):
        self.user_id = user_id

    async def get_current_user_id(self) -> Optional[str]:
        return self.user_id

    def sign_in(self, user_id: str) -> None:
        self.user_id = user_id

    def sign_out(self) -> None:
        self.user_id = None
