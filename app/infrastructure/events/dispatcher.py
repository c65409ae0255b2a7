"""Async event bus.

Handlers are registered per event type and awaited in registration order
when an event is published. A failing handler is logged and skipped; it
never affects the publisher or the remaining handlers.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Dict, List, Set, Union

from infrastructure.events.models import Event
from infrastructure.logging import get_module_logger

logger = get_module_logger()

EventHandler = Callable[[Event], Union[Awaitable[Any], Any]]


class EventBus:
    """In-process publish/subscribe bus owned by the application wiring.

    Each bus keeps its own handler registry, so tests and separate
    applications never share subscribers.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[EventHandler]] = {}
        self._background: Set["asyncio.Task[List[Any]]"] = set()

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(
            "registered_event_handler",
            handler=getattr(handler, "__name__", "unknown"),
            event_type=event_type,
            total_handlers=len(self._handlers[event_type]),
        )

    def register_handler(self, event_type: str):
        """Decorator form of ``subscribe``."""

        def decorator(handler_func: EventHandler) -> EventHandler:
            self.subscribe(event_type, handler_func)
            return handler_func

        return decorator

    def get_handlers(self, event_type: str) -> List[EventHandler]:
        return list(self._handlers.get(event_type, []))

    def get_registered_events(self) -> List[str]:
        return sorted(self._handlers)

    async def publish(self, event: Event) -> List[Any]:
        """Deliver ``event`` to every handler for its type.

        Returns:
            Return values of the handlers that completed.
        """
        results = []
        handlers = self.get_handlers(event.event_type)

        logger.info(
            "dispatching_event",
            event_type=event.event_type,
            handler_count=len(handlers),
            correlation_id=str(event.correlation_id),
        )

        for handler in handlers:
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    result = await result
                results.append(result)
            except Exception as e:  # pylint: disable=broad-except
                logger.error(
                    "event_handler_failed",
                    handler=getattr(handler, "__name__", "unknown"),
                    event_type=event.event_type,
                    error=str(e),
                    correlation_id=str(event.correlation_id),
                )

        return results

    def publish_background(self, event: Event) -> "asyncio.Task[List[Any]]":
        """Schedule delivery on the running loop without awaiting it."""
        task = asyncio.get_running_loop().create_task(self.publish(event))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def drain(self) -> None:
        """Wait for every outstanding background delivery."""
        while self._background:
            await asyncio.gather(*list(self._background))
