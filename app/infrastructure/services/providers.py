"""
Factory functions for dependency injection.

Provides application-scoped singleton providers for core infrastructure services.
"""

from functools import lru_cache

from infrastructure.configuration import Settings
from infrastructure.events import EventBus
from infrastructure.resilience import ExecutorRegistry, RetryPolicy


@lru_cache
def get_settings() -> Settings:
    """
    Get application-scoped settings singleton.

    This is the single source of truth for settings across the entire application.
    The @lru_cache decorator ensures only ONE instance is created per process,
    even if called from multiple packages.

    Returns:
        Settings: Cached settings instance loaded from environment.
    """
    return Settings()


@lru_cache
def get_event_bus() -> EventBus:
    """Application-scoped event bus the domain services publish to."""
    return EventBus()


@lru_cache
def get_executor_registry() -> ExecutorRegistry:
    """
    Get application-scoped executor registry singleton.

    One registry per process keeps exactly one executor per slot key, so two
    callers acting on the same resource share (and supersede) the same slot.

    Returns:
        ExecutorRegistry: Registry using the retry policy from settings.
    """
    settings = get_settings()
    return ExecutorRegistry(RetryPolicy.from_settings(settings.retry))
