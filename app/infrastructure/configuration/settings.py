"""Application configuration settings - main aggregator."""

from pydantic_settings import BaseSettings, SettingsConfigDict

# Integration settings
from infrastructure.configuration.integrations import SupabaseSettings

# Feature settings
from infrastructure.configuration.features import GroupsFeatureSettings

# Infrastructure settings
from infrastructure.configuration.infrastructure import RetrySettings


class Settings(BaseSettings):
    """Application configuration settings - main aggregator.

    Aggregates all domain-specific settings into a single configuration object.
    Settings are organized by concern:

    - **Integrations**: Remote store configuration (Supabase)
    - **Features**: Feature module configurations (groups)
    - **Infrastructure**: Core system configurations (retry)

    Environment Variables:
        PREFIX: Environment prefix; empty in production
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        GIT_SHA: Git commit SHA for deployment tracking

    Example:
        ```python
        from infrastructure.configuration import settings

        url = settings.supabase.SUPABASE_URL

        if settings.groups.activate_creator_on_approval:
            # Activate creator membership on approval...

        delay = settings.retry.base_delay_seconds
        ```
    """

    # Application-level settings
    PREFIX: str = ""
    LOG_LEVEL: str = "INFO"
    GIT_SHA: str = "Unknown"

    # Integration settings
    supabase: SupabaseSettings

    # Feature settings
    groups: GroupsFeatureSettings

    # Infrastructure settings
    retry: RetrySettings

    @property
    def is_production(self) -> bool:
        """Check if the application is running in production.

        Returns:
            True if PREFIX is empty (production), False otherwise.
        """
        return not bool(self.PREFIX)

    def __init__(self, **kwargs):
        """Initialize Settings with automatic subsettings instantiation.

        Args:
            **kwargs: Optional overrides for specific settings sections.
        """
        settings_map = {
            "supabase": SupabaseSettings,
            "groups": GroupsFeatureSettings,
            "retry": RetrySettings,
        }

        for setting_name, setting_class in settings_map.items():
            if setting_name not in kwargs:
                kwargs[setting_name] = setting_class()

        super().__init__(**kwargs)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


# Create the singleton settings instance
settings = Settings()
