"""
In-memory implementation of the EventRepository protocol.
"""

import logging
from typing import Dict, List, Optional, Sequence

from nostrcal.domain import CalendarModel, Event
from nostrcal.registry import ModelRegistry
from nostrcal.repositories import EventFilter, EventRepository, QuerySource
from nostrcal.validation import PublishError

logger = logging.getLogger(__name__)


def supersedes(candidate: Event, current: Event) -> bool:
    """
    Whether ``candidate`` replaces ``current`` at the same address: the
    newer one wins, and on equal timestamps the lower id wins.
    """
    if candidate.created_at != current.created_at:
        return candidate.created_at > current.created_at
    return candidate.id < current.id


class InMemoryEventRepository(EventRepository):
    """
    Keeps signed events in a dictionary keyed by replaceable address (or by
    id for non-addressable events). Published events are collected in an
    outbox list instead of being sent anywhere.
    """

    def __init__(
        self,
        registry: ModelRegistry,
        events: Optional[Sequence[Event]] = None,
    ):
        self.registry = registry
        self._events: Dict[str, Event] = {}
        self.published: List[Event] = []
        for event in events or []:
            self._store(event)

    @staticmethod
    def _storage_key(event: Event) -> str:
        return event.address or event.id

    def _store(self, event: Event) -> bool:
        if not event.id:
            raise PublishError("Only signed events can be stored")
        key = self._storage_key(event)
        current = self._events.get(key)
        if current is not None and not supersedes(event, current):
            logger.debug(
                "Ignoring superseded event",
                extra={"key": key, "event_id": event.id},
            )
            return False
        self._events[key] = event
        return True

    @property
    def events(self) -> List[Event]:
        """Every stored envelope, newest first."""
        return sorted(
            self._events.values(), key=lambda e: e.created_at, reverse=True
        )

    async def query(
        self,
        event_filter: EventFilter,
        source: QuerySource = QuerySource.LOCAL_AND_REMOTE,
    ) -> List[CalendarModel]:
        matches = [e for e in self.events if event_filter.matches(e)]
        if event_filter.limit is not None:
            matches = matches[: event_filter.limit]

        models = []
        for event in matches:
            model = self.registry.to_model(event)
            if model is not None:
                models.append(model)

        logger.debug(
            "Queried events",
            extra={"source": source.value, "result_count": len(models)},
        )
        return models

    async def save(self, events: Sequence[Event]) -> None:
        for event in events:
            self._store(event)

    async def publish(self, events: Sequence[Event]) -> None:
        self.published.extend(events)
        logger.info(
            "Queued events for publishing",
            extra={"event_count": len(events)},
        )
