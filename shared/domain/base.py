"""
Base Domain Classes

Building blocks shared by the reservation, court and wallet contexts:
- Entity: Objects with unique identity
- ValueObject: Immutable objects compared by value
- Aggregate: Consistency boundaries that collect domain events
- DomainEvent: Something that happened and is published after commit
"""

from abc import ABC
from dataclasses import dataclass, field, fields
from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, List
from uuid import UUID, uuid4


def utc_now() -> datetime:
    """Timezone-aware timestamp used for every domain clock reading"""
    return datetime.now(timezone.utc)


@dataclass(kw_only=True)
class Entity(ABC):
    """
    Base class for all entities

    Entities have unique identity and are mutable.
    Two entities are equal if their IDs are equal.
    """
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        pass

    def __eq__(self, other):
        if not isinstance(other, self.__class__):
            return False
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)


@dataclass(frozen=True)
class ValueObject(ABC):
    """
    Base class for value objects

    Value objects are immutable and have no identity.
    Two value objects are equal if all their attributes are equal.
    """
    pass


@dataclass(kw_only=True)
class Aggregate(Entity):
    """
    Base class for aggregate roots

    A reservation batch is the aggregate this project commits; it collects
    events that are published only after the unit of work commits.
    """
    _events: List['DomainEvent'] = field(default_factory=list, repr=False, init=False)

    def add_event(self, event: 'DomainEvent'):
        """Add a domain event to be published"""
        self._events.append(event)

    def clear_events(self):
        """Clear all collected events (called after collection)"""
        self._events.clear()

    @property
    def events(self) -> List['DomainEvent']:
        """Get copy of collected events"""
        return self._events.copy()


def _serialize(value: Any) -> Any:
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    return value


@dataclass(kw_only=True)
class DomainEvent:
    """
    Base class for domain events

    Events carry plain identifiers and amounts so that handlers never need
    to reach back into the aggregate that raised them.
    """
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=utc_now)
    aggregate_id: UUID = None

    def to_dict(self) -> dict:
        """Convert event (including its payload fields) to a JSON-ready dict"""
        data = {
            'event_id': str(self.event_id),
            'event_type': self.__class__.__name__,
            'occurred_at': self.occurred_at.isoformat(),
            'aggregate_id': str(self.aggregate_id) if self.aggregate_id else None,
        }
        for f in fields(self):
            if f.name in data:
                continue
            data[f.name] = _serialize(getattr(self, f.name))
        return data
