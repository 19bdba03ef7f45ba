"""
Message Bus

Central hub for routing domain events to their handlers.
Implements the Mediator pattern for decoupling bounded contexts.
"""

from typing import Callable, Dict, List, Type

import structlog

from shared.domain.base import DomainEvent

logger = structlog.get_logger(__name__)


def _handler_name(handler: Callable) -> str:
    return getattr(handler, "__name__", type(handler).__name__)


class MessageBus:
    """
    Message bus for domain events

    Events: Multiple handlers per event (1:N)
    """

    def __init__(self):
        self._event_handlers: Dict[Type[DomainEvent], List[Callable]] = {}

    def register_event_handler(
        self,
        event_type: Type[DomainEvent],
        handler: Callable[[DomainEvent], None]
    ):
        """
        Register an event handler

        Multiple handlers can be registered for the same event type.
        Registering the same handler twice is ignored.
        """
        handlers = self._event_handlers.setdefault(event_type, [])
        if handler in handlers:
            return
        handlers.append(handler)
        logger.debug(
            "message_bus.handler_registered",
            event_type=event_type.__name__,
            handler=_handler_name(handler),
        )

    def unregister_event_handler(self, event_type: Type[DomainEvent], handler: Callable):
        handlers = self._event_handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def handlers_for(self, event_type: Type[DomainEvent]) -> List[Callable]:
        return list(self._event_handlers.get(event_type, []))

    def publish_events(self, events: List[DomainEvent]):
        """
        Publish domain events

        All registered handlers for each event type will be called.
        Errors in handlers are logged but don't stop other handlers.
        """
        for event in events:
            event_type = type(event)
            handlers = self._event_handlers.get(event_type, [])

            if not handlers:
                logger.debug("message_bus.no_handlers", event_type=event_type.__name__)
                continue

            logger.info(
                "message_bus.publish",
                event_type=event_type.__name__,
                event_id=str(event.event_id),
            )

            for handler in handlers:
                try:
                    handler(event)
                except Exception:
                    # Don't raise - other handlers should still run
                    logger.error(
                        "message_bus.handler_failed",
                        event_type=event_type.__name__,
                        handler=_handler_name(handler),
                        exc_info=True,
                    )


# Global message bus instance
message_bus = MessageBus()
