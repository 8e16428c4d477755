"""
Aggregate root base class.

Aggregates are plain pydantic models with a private pending-event list.
Mutators record events through ``_record`` which also bumps ``version`` and
``updated_at``; the application layer reads ``domain_events`` after saving
and drains them with ``pull_domain_events()``.
"""

from pydantic import BaseModel, Field, PrivateAttr
from typing import List, Tuple, Optional
from datetime import datetime

from src.models.events import DomainEvent
from src.utils.time import utcnow, resolve_now


class AggregateRoot(BaseModel):
    """Identity, timestamps, version and pending domain events"""
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    version: int = 0

    _pending_events: List[DomainEvent] = PrivateAttr(default_factory=list)

    @property
    def domain_events(self) -> Tuple[DomainEvent, ...]:
        """Events recorded since the last drain, oldest first"""
        return tuple(self._pending_events)

    def pull_domain_events(self) -> List[DomainEvent]:
        """Return pending events and clear them"""
        events = list(self._pending_events)
        self._pending_events.clear()
        return events

    def clear_domain_events(self):
        self._pending_events.clear()

    def _touch(self, now: Optional[datetime] = None):
        """Record a state change that has no event of its own"""
        self.version += 1
        self.updated_at = resolve_now(now)

    def _record(self, *events: DomainEvent, now: Optional[datetime] = None) -> List[DomainEvent]:
        """Append events in call order and return them to the caller"""
        self._pending_events.extend(events)
        self._touch(now)
        return list(events)
