"""
Dependency injection services.

Provides application-scoped provider functions for shared infrastructure.
"""

from infrastructure.services.providers import (
    get_settings,
    get_event_bus,
    get_executor_registry,
)

__all__ = [
    "get_settings",
    "get_event_bus",
    "get_executor_registry",
]
