"""
Calendar client core for a decentralized social protocol.

This package maps signed protocol events onto typed calendar objects and
back, and derives day-level occurrence for a user's events and RSVPs,
following Clean Architecture principles.
"""

from .address import EventAddress, build_address
from .domain import (
    Calendar,
    CalendarAvailability,
    CalendarAvailabilityBlock,
    CalendarEventRSVP,
    CalendarModel,
    DateBasedCalendarEvent,
    Event,
    EventKind,
    FreeBusy,
    RSVPStatus,
    ScheduleBlock,
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
from .occurrence import EnrichedEvent, events_on_day
from .registry import ModelRegistry, default_registry
from .repositories import (
    EventFilter,
    EventRepository,
    QuerySource,
    SignerRepository,
)
from .usecase import (
    DiscoverEventsUseCase,
    DiscoveryFilter,
    EnrichEventsUseCase,
    ListEventRSVPsUseCase,
    ParentEventResolver,
    PublishDraftUseCase,
)
from .validation import (
    ConfigurationError,
    DomainValidationError,
    DraftFinalizedError,
    NostrCalError,
    PublishError,
    SigningError,
)

__all__ = [
    # Envelope and addresses
    "Event",
    "EventKind",
    "EventAddress",
    "build_address",
    # Read models
    "Calendar",
    "CalendarAvailability",
    "CalendarAvailabilityBlock",
    "CalendarEventRSVP",
    "CalendarModel",
    "DateBasedCalendarEvent",
    "TimeBasedCalendarEvent",
    "FreeBusy",
    "RSVPStatus",
    "ScheduleBlock",
    # Drafts
    "EventDraft",
    "CalendarAvailabilityDraft",
    "CalendarAvailabilityBlockDraft",
    "CalendarDraft",
    "CalendarEventRSVPDraft",
    "DateBasedCalendarEventDraft",
    "TimeBasedCalendarEventDraft",
    # Occurrence
    "EnrichedEvent",
    "events_on_day",
    # Registry
    "ModelRegistry",
    "default_registry",
    # Repository protocols
    "EventFilter",
    "EventRepository",
    "QuerySource",
    "SignerRepository",
    # Use Cases
    "DiscoverEventsUseCase",
    "DiscoveryFilter",
    "EnrichEventsUseCase",
    "ListEventRSVPsUseCase",
    "ParentEventResolver",
    "PublishDraftUseCase",
    # Errors
    "ConfigurationError",
    "DomainValidationError",
    "DraftFinalizedError",
    "NostrCalError",
    "PublishError",
    "SigningError",
]
