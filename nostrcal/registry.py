"""
Kind registry mapping integer kinds to their read model and draft classes.

A registry is an explicit object handed to the storage layer when it is
built. Raw envelopes are turned into typed models at that boundary, so
business logic never has to switch on a bare kind number.
"""

import logging
from typing import Dict, List, NamedTuple, Optional, Type

from .domain import (
    Calendar,
    CalendarAvailability,
    CalendarAvailabilityBlock,
    CalendarEventRSVP,
    CalendarModelBase,
    DateBasedCalendarEvent,
    Event,
    EventKind,
    TimeBasedCalendarEvent,
)
from .drafts import (
    CalendarAvailabilityBlockDraft,
    CalendarAvailabilityDraft,
    CalendarDraft,
    CalendarEventRSVPDraft,
    DateBasedCalendarEventDraft,
    EventDraft,
    TimeBasedCalendarEventDraft,
)

logger = logging.getLogger(__name__)


class KindRegistration(NamedTuple):
    model_cls: Type[CalendarModelBase]
    draft_cls: Type[EventDraft]


class ModelRegistry:
    """Table of kind → (read model, draft) constructors."""

    def __init__(self) -> None:
        self._entries: Dict[int, KindRegistration] = {}

    def register(
        self,
        kind: int,
        model_cls: Type[CalendarModelBase],
        draft_cls: Type[EventDraft],
    ) -> None:
        if kind in self._entries:
            logger.warning(
                "Replacing registered kind",
                extra={
                    "kind": kind,
                    "previous_model": self._entries[kind].model_cls.__name__,
                    "model": model_cls.__name__,
                },
            )
        self._entries[int(kind)] = KindRegistration(model_cls, draft_cls)

    def is_registered(self, kind: int) -> bool:
        return kind in self._entries

    @property
    def kinds(self) -> List[int]:
        return sorted(self._entries)

    def to_model(self, event: Event) -> Optional[CalendarModelBase]:
        """Typed view of an envelope, or None for an unregistered kind."""
        entry = self._entries.get(event.kind)
        if entry is None:
            logger.debug(
                "Skipping event of unregistered kind",
                extra={"kind": event.kind, "event_id": event.id},
            )
            return None
        return entry.model_cls.from_event(event)

    def to_draft(self, event: Event) -> Optional[EventDraft]:
        """Editable draft of an envelope, or None for an unregistered kind."""
        entry = self._entries.get(event.kind)
        if entry is None:
            return None
        return entry.draft_cls.from_event(event)


def default_registry() -> ModelRegistry:
    """A fresh registry holding every calendar kind."""
    registry = ModelRegistry()
    registry.register(
        EventKind.DATE_BASED_CALENDAR_EVENT,
        DateBasedCalendarEvent,
        DateBasedCalendarEventDraft,
    )
    registry.register(
        EventKind.TIME_BASED_CALENDAR_EVENT,
        TimeBasedCalendarEvent,
        TimeBasedCalendarEventDraft,
    )
    registry.register(EventKind.CALENDAR, Calendar, CalendarDraft)
    registry.register(
        EventKind.CALENDAR_EVENT_RSVP,
        CalendarEventRSVP,
        CalendarEventRSVPDraft,
    )
    registry.register(
        EventKind.CALENDAR_AVAILABILITY,
        CalendarAvailability,
        CalendarAvailabilityDraft,
    )
    registry.register(
        EventKind.CALENDAR_AVAILABILITY_BLOCK,
        CalendarAvailabilityBlock,
        CalendarAvailabilityBlockDraft,
    )
    return registry
