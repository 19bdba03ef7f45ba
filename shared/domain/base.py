"""
Domain building blocks

- ValueObject: immutable, compared by value (Money)
- DomainEvent: a fact about a booking, published after commit
"""

from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from django.utils import timezone  # type: ignore


@dataclass(frozen=True)
class ValueObject(ABC):
    """Immutable object without identity; equality is attribute equality."""


@dataclass(kw_only=True)
class DomainEvent:
    """
    Something that already happened to an aggregate

    Handlers receive events through the message bus once the unit of work
    that recorded them has committed.
    """
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=timezone.now)
    aggregate_id: Optional[UUID] = None
