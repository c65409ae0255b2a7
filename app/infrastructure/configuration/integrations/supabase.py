"""Supabase integration settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class SupabaseSettings(IntegrationSettings):
    """Supabase project configuration.

    Environment Variables:
        SUPABASE_URL: Project URL (https://<ref>.supabase.co)
        SUPABASE_KEY: Anonymous (public) API key; row-level policies apply
        SUPABASE_SERVICE_ROLE_KEY: Optional service role key for trusted jobs
        SUPABASE_TIMEOUT_SECONDS: Request timeout for PostgREST calls

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        url = settings.supabase.SUPABASE_URL
        ```
    """

    SUPABASE_URL: str = Field(default="", alias="SUPABASE_URL")
    SUPABASE_KEY: str = Field(default="", alias="SUPABASE_KEY")
    SUPABASE_SERVICE_ROLE_KEY: str | None = Field(
        default=None, alias="SUPABASE_SERVICE_ROLE_KEY"
    )
    SUPABASE_TIMEOUT_SECONDS: int = Field(default=10, alias="SUPABASE_TIMEOUT_SECONDS")

    @property
    def is_configured(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_KEY)
