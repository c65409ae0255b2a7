"""Supabase client management.

One anonymous-key client per process (row-level policies apply to the
signed-in session) and an optional service-role client for trusted jobs.
"""

from typing import Optional

from supabase import AsyncClient, AsyncClientOptions, acreate_client

from infrastructure.configuration import SupabaseSettings
from infrastructure.logging import get_module_logger

logger = get_module_logger()


async def create_supabase_client(
    config: SupabaseSettings, key: Optional[str] = None
) -> AsyncClient:
    """Build a fresh async client, bypassing the process-wide cache."""
    if not config.is_configured:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set")
    return await acreate_client(
        config.SUPABASE_URL,
        key or config.SUPABASE_KEY,
        options=AsyncClientOptions(
            postgrest_client_timeout=config.SUPABASE_TIMEOUT_SECONDS
        ),
    )


class SupabaseClientManager:
    _client: Optional[AsyncClient] = None
    _service_client: Optional[AsyncClient] = None

    @classmethod
    async def get_client(cls, config: SupabaseSettings) -> AsyncClient:
        if cls._client is None:
            cls._client = await create_supabase_client(config)
            logger.info("supabase_client_created", url=config.SUPABASE_URL)
        return cls._client

    @classmethod
    async def get_service_client(cls, config: SupabaseSettings) -> AsyncClient:
        """Client with the service role key; bypasses row-level policies."""
        if cls._service_client is None and config.SUPABASE_SERVICE_ROLE_KEY:
            cls._service_client = await create_supabase_client(
                config, key=config.SUPABASE_SERVICE_ROLE_KEY
            )
        return cls._service_client or await cls.get_client(config)

    @classmethod
    def reset(cls) -> None:
        cls._client = None
        cls._service_client = None
