"""Operation context binding for structured logging.

Binds a correlation id and caller metadata to every log entry made while an
operation runs, including entries written by event handlers it triggers.

Usage:
    from infrastructure.logging import bind_request_context

    with bind_request_context(user_id=caller.id, operation="approve_group"):
        logger.info("group_approval_started", group_id=group_id)
"""

import uuid
from contextlib import contextmanager
from typing import Optional, Any, Generator

import structlog


@contextmanager
def bind_request_context(
    correlation_id: Optional[str] = None,
    user_id: Optional[str] = None,
    church_id: Optional[str] = None,
    operation: Optional[str] = None,
    **extra_context: Any,
) -> Generator[str, None, None]:
    """Bind operation-scoped context to all logs within the block.

    Values bound by an enclosing block are restored on exit.

    Args:
        correlation_id: Unique operation identifier. Generated when omitted.
        user_id: Id of the signed-in caller.
        church_id: Church the caller belongs to.
        operation: Name of the running operation (e.g. "leave_group").
        **extra_context: Additional key-value pairs to include in logs.

    Yields:
        The correlation id bound for the block.
    """
    context: dict[str, Any] = {"correlation_id": correlation_id or str(uuid.uuid4())}

    if user_id is not None:
        context["user_id"] = user_id

    if church_id is not None:
        context["church_id"] = church_id

    if operation is not None:
        context["operation"] = operation

    context.update(extra_context)

    outer = structlog.contextvars.get_contextvars()
    structlog.contextvars.bind_contextvars(**context)
    try:
        yield context["correlation_id"]
    finally:
        structlog.contextvars.unbind_contextvars(*context.keys())
        restored = {key: outer[key] for key in context if key in outer}
        if restored:
            structlog.contextvars.bind_contextvars(**restored)


def get_correlation_id() -> Optional[str]:
    """Return the correlation id bound in the current context, if any."""
    return structlog.contextvars.get_contextvars().get("correlation_id")


def set_correlation_id(correlation_id: str) -> None:
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def clear_request_context() -> None:
    """Clear all bound context; call when a worker finishes an operation."""
    structlog.contextvars.clear_contextvars()
