"""
Unit of Work

One database transaction per booking or payment operation. Domain events
recorded during the operation are handed to the message bus only after the
outermost transaction commits, so a rolled-back transition never sends a
confirmation mail.
"""

from abc import ABC, abstractmethod
from typing import List

import structlog
from django.db import transaction  # type: ignore

from shared.domain.base import DomainEvent

logger = structlog.get_logger(__name__)


class AbstractUnitOfWork(ABC):

    @abstractmethod
    def __enter__(self):
        raise NotImplementedError

    @abstractmethod
    def __exit__(self, exc_type, exc_val, exc_tb):
        raise NotImplementedError

    @abstractmethod
    def add_event(self, event: DomainEvent):
        """Queue an event for publication after commit"""


class DjangoUnitOfWork(AbstractUnitOfWork):
    """
    ``transaction.atomic()`` plus an event buffer

    Nesting is allowed: an inner unit becomes a savepoint and Django runs its
    ``on_commit`` callbacks only when the outer transaction commits.

    Usage:
        with DjangoUnitOfWork() as uow:
            booking = store.get(booking_id, lock=True)
            ...
            uow.add_event(BookingPaid(booking_id=booking.id))
    """

    def __init__(self):
        self._events: List[DomainEvent] = []
        self._atomic = None

    def __enter__(self):
        self._atomic = transaction.atomic()
        self._atomic.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            pending = list(self._events)
            if pending:
                transaction.on_commit(lambda: self._publish(pending))
        elif self._events:
            logger.warning("uow.events_discarded", count=len(self._events), error=exc_type.__name__)
        self._events.clear()
        return self._atomic.__exit__(exc_type, exc_val, exc_tb)

    def add_event(self, event: DomainEvent):
        self._events.append(event)

    @staticmethod
    def _publish(events: List[DomainEvent]):
        from shared.application.message_bus import message_bus

        logger.info("uow.publish_events", events=[type(event).__name__ for event in events])
        try:
            message_bus.publish_events(events)
        except Exception:
            # Data is already committed at this point
            logger.error("uow.publish_failed", exc_info=True)
