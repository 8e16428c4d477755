"""
Shared plumbing for the application services.

Each command loads aggregates, runs a domain operation, saves, then drains
the aggregates' pending events and dispatches them. Domain errors are logged
as rejections and re-raised to the caller.
"""

import logging
from contextlib import contextmanager
from typing import List, Optional

from src.config.settings import Settings, get_settings
from src.models.base import AggregateRoot
from src.models.errors import DomainError
from src.models.events import DomainEvent
from src.services.events import DomainEventDispatcher, domain_events
from src.services.logger import PlatformLogger, get_logger
from src.services.repositories import InMemoryRepository

logger = logging.getLogger(__name__)


class ApplicationService:

    def __init__(
        self,
        dispatcher: Optional[DomainEventDispatcher] = None,
        settings: Optional[Settings] = None,
        platform_logger: Optional[PlatformLogger] = None,
    ):
        self.dispatcher = dispatcher or domain_events
        self.settings = settings or get_settings()
        self.platform_logger = platform_logger or get_logger(self.settings)

    @contextmanager
    def _command(self, name: str, aggregate_id: str = ""):
        self.platform_logger.command_received(name, aggregate_id)
        try:
            yield
        except DomainError as e:
            self.platform_logger.command_rejected(name, aggregate_id, e)
            raise

    def _save(self, repository: InMemoryRepository, aggregate: AggregateRoot) -> List[DomainEvent]:
        """Persist, then hand back the events the aggregate recorded"""
        repository.save(aggregate)
        return aggregate.pull_domain_events()

    def _publish(self, name: str, aggregate_id: str, events: List[DomainEvent]):
        for event in events:
            self.platform_logger.event_dispatched(event.event_type, event.aggregate_id, event.to_dict())
        self.dispatcher.dispatch_all(events)
        self.platform_logger.command_completed(name, aggregate_id, len(events))
        logger.debug(f"{name} on {aggregate_id} dispatched {len(events)} event(s)")
