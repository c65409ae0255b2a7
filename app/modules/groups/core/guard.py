"""Boundary decorator for groups service operations."""

from functools import wraps
from typing import Any, Awaitable, Callable

from infrastructure.logging import (
    bind_request_context,
    get_correlation_id,
    get_module_logger,
)
from infrastructure.operations import OperationResult, classify_exception

logger = get_module_logger()


def service_operation(
    func: Callable[..., Awaitable[OperationResult]],
) -> Callable[..., Awaitable[OperationResult]]:
    """Run a service method inside an operation log context.

    Any exception escaping the method is logged and returned as a classified
    ``OperationResult``; the decorated method never raises.
    """

    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> OperationResult:
        with bind_request_context(
            correlation_id=get_correlation_id(), operation=func.__name__
        ):
            try:
                return await func(*args, **kwargs)
            except Exception as e:  # pylint: disable=broad-except
                logger.exception(
                    "service_operation_raised",
                    function=func.__name__,
                    error=str(e),
                )
                return classify_exception(e)

    return wrapper
