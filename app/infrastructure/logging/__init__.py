"""Structured logging infrastructure.

Public API:
    - configure_logging(): Initialize logging for the process
    - get_logger(): Get a logger instance with a specific name
    - get_module_logger(): Get a logger for the calling module
    - bind_request_context(): Context manager for operation-scoped logging
    - get_correlation_id(): Get current correlation ID from context
    - set_correlation_id(): Set correlation ID in context
    - clear_request_context(): Clear all bound context

Processors:
    - add_app_info(): Add app name/version
    - mask_sensitive_data(): Redact sensitive fields
    - truncate_large_values(): Limit string lengths

Example:
    from infrastructure.logging import get_module_logger, bind_request_context

    logger = get_module_logger()

    with bind_request_context(user_id="u1", operation="approve_group"):
        logger.info("group_approved", group_id="g1")
"""

from infrastructure.logging.setup import (
    configure_logging,
    get_logger,
    get_module_logger,
)

from infrastructure.logging.context import (
    bind_request_context,
    get_correlation_id,
    set_correlation_id,
    clear_request_context,
)

from infrastructure.logging.formatters import (
    add_app_info,
    mask_sensitive_data,
    truncate_large_values,
    SENSITIVE_PATTERNS,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "get_module_logger",
    "bind_request_context",
    "get_correlation_id",
    "set_correlation_id",
    "clear_request_context",
    "add_app_info",
    "mask_sensitive_data",
    "truncate_large_values",
    "SENSITIVE_PATTERNS",
]
