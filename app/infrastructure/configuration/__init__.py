"""Infrastructure configuration module - public API.

This module provides centralized configuration management using Pydantic
BaseSettings with domain-based organization.

Exports:
    settings: Singleton Settings instance (main configuration object)
    Settings: Main settings class (for testing/overrides)
    RetrySettings: Retry settings class (for testing)
    GroupsFeatureSettings: Groups feature settings class (for testing)
    SupabaseSettings: Remote store settings class (for testing)

Example:
    ```python
    from infrastructure.services import get_settings

    settings = get_settings()

    supabase_url = settings.supabase.SUPABASE_URL
    max_retries = settings.retry.max_retries

    if settings.is_production:
        # Production-specific logic...
    ```
"""

from infrastructure.configuration.settings import Settings, settings
from infrastructure.configuration.features import GroupsFeatureSettings
from infrastructure.configuration.infrastructure.retry import RetrySettings
from infrastructure.configuration.integrations import SupabaseSettings

__all__ = [
    "Settings",
    "settings",
    "GroupsFeatureSettings",
    "RetrySettings",
    "SupabaseSettings",
]
