"""Infrastructure modules for the church groups application.

Centralized infrastructure components:
- configuration: Settings management (settings, RetrySettings, GroupsFeatureSettings)
- logging: Structured logging (get_module_logger, bind_request_context)
- operations: Operation results and error classification
- persistence: Supabase client and the DataStore abstraction
- identity: Caller identity and session providers
- events: In-process event bus
- audit: Audit log lines for administrative actions
- resilience: Retry with backoff and resilient operation executors
- services: Application-scoped providers (get_settings, get_event_bus)
"""

# Configuration
from infrastructure.configuration import settings

# Logging
from infrastructure.logging import get_module_logger

# Operations
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    # Configuration
    "settings",
    # Logging
    "get_module_logger",
    # Operations
    "OperationResult",
    "OperationStatus",
]
