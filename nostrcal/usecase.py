"""
Defines the use cases for calendar listings and publishing.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone, tzinfo
from enum import Enum
from typing import Dict, List, Optional, Sequence

from .address import EventAddress
from .domain import (
    CalendarEventRSVP,
    CalendarModel,
    DateBasedCalendarEvent,
    Event,
    EventKind,
    TimeBasedCalendarEvent,
)
from .drafts import EventDraft
from .occurrence import (
    EnrichedEvent,
    local_midnight,
    model_start_datetime,
    sort_by_start_descending,
)
from .repositories import (
    EventFilter,
    EventRepository,
    QuerySource,
    SignerRepository,
)

logger = logging.getLogger(__name__)

CALENDAR_LISTING_KINDS = {
    EventKind.DATE_BASED_CALENDAR_EVENT,
    EventKind.TIME_BASED_CALENDAR_EVENT,
    EventKind.CALENDAR_EVENT_RSVP,
}

DISCOVERABLE_KINDS = {
    EventKind.DATE_BASED_CALENDAR_EVENT,
    EventKind.TIME_BASED_CALENDAR_EVENT,
}


class ParentEventResolver:
    """
    Looks up the current version of an event by its address.

    One resolver serves one enumeration pass: each distinct address is
    queried at most once, and concurrent requests for the same address share
    the in-flight lookup. Any failure resolves to None.
    """

    def __init__(self, event_repo: EventRepository):
        self.event_repo = event_repo
        self._lookups: Dict[str, "asyncio.Task[Optional[CalendarModel]]"] = {}

    async def resolve(self, address: str) -> Optional[CalendarModel]:
        task = self._lookups.get(address)
        if task is None:
            task = asyncio.ensure_future(self._fetch(address))
            self._lookups[address] = task
        return await task

    async def _fetch(self, address: str) -> Optional[CalendarModel]:
        reference = EventAddress.parse(address)
        if reference is None:
            logger.warning(
                "Cannot resolve malformed event address",
                extra={"address": address},
            )
            return None

        event_filter = EventFilter(
            kinds={reference.kind},
            authors={reference.pubkey},
            tags={"#d": {reference.identifier}},
            limit=1,
        )
        try:
            results = await self.event_repo.query(
                event_filter, source=QuerySource.LOCAL_AND_REMOTE
            )
        except Exception:
            logger.warning(
                "Failed to fetch parent event",
                extra={"address": address},
                exc_info=True,
            )
            return None
        return results[0] if results else None


class EnrichEventsUseCase:
    """
    Builds the list shown on a user's calendar: their date and time based
    events plus their RSVPs, each RSVP joined to the event it answers.
    """

    def __init__(
        self,
        event_repo: EventRepository,
        tz: tzinfo = timezone.utc,
    ):
        self.event_repo = event_repo
        self.tz = tz

    async def execute(
        self, pubkey: str, limit: int = 100
    ) -> List[EnrichedEvent]:
        logger.info(
            "Enumerating calendar events",
            extra={"pubkey": pubkey, "limit": limit},
        )
        models = await self.event_repo.query(
            EventFilter(
                kinds={int(kind) for kind in CALENDAR_LISTING_KINDS},
                authors={pubkey},
                limit=limit,
            ),
            source=QuerySource.LOCAL_AND_REMOTE,
        )
        return await self.enrich(models)

    async def enrich(
        self, models: Sequence[CalendarModel]
    ) -> List[EnrichedEvent]:
        """
        Wrap every model, resolving RSVP parents concurrently. Output order
        matches input order and no RSVP is ever dropped.
        """
        resolver = ParentEventResolver(self.event_repo)
        enriched = await asyncio.gather(
            *(self._enrich_one(model, resolver) for model in models)
        )
        resolved = sum(
            1 for item in enriched if item.is_rsvp and item.parent_event
        )
        logger.info(
            "Enriched calendar events",
            extra={
                "event_count": len(enriched),
                "rsvp_count": sum(1 for item in enriched if item.is_rsvp),
                "resolved_parent_count": resolved,
            },
        )
        return list(enriched)

    async def _enrich_one(
        self, model: CalendarModel, resolver: ParentEventResolver
    ) -> EnrichedEvent:
        if not isinstance(model, CalendarEventRSVP):
            return EnrichedEvent.regular(model, tz=self.tz)
        if model.event_address is None:
            return EnrichedEvent.rsvp(model, None, tz=self.tz)
        parent = await resolver.resolve(model.event_address)
        return EnrichedEvent.rsvp(model, parent, tz=self.tz)


class DiscoveryFilter(str, Enum):
    """Period or kind restriction for the public event listing."""

    ALL = "all"
    TODAY = "today"
    THIS_WEEK = "this_week"
    THIS_MONTH = "this_month"
    DATE_EVENTS = "date_events"
    TIME_EVENTS = "time_events"


class DiscoverEventsUseCase:
    """
    Lists public date and time based events, filtered by period and search
    text, most recent start first.
    """

    def __init__(
        self,
        event_repo: EventRepository,
        tz: tzinfo = timezone.utc,
    ):
        self.event_repo = event_repo
        self.tz = tz

    async def execute(
        self,
        search_query: str = "",
        period: DiscoveryFilter = DiscoveryFilter.ALL,
        limit: int = 20,
        now: Optional[datetime] = None,
    ) -> List[CalendarModel]:
        now = (now or datetime.now(timezone.utc)).astimezone(self.tz)
        query = search_query.strip().lower()
        # Filtering happens here, so a narrowed search fetches everything
        # and applies the limit to what matched.
        narrowed = bool(query) or period != DiscoveryFilter.ALL
        models = await self.event_repo.query(
            EventFilter(
                kinds={int(kind) for kind in DISCOVERABLE_KINDS},
                limit=None if narrowed else limit,
            ),
            source=QuerySource.LOCAL_AND_REMOTE,
        )
        filtered = [
            model
            for model in models
            if self._matches_period(model, period, now)
            and (not query or self._matches_search(model, query))
        ]
        logger.debug(
            "Filtered discovered events",
            extra={
                "fetched": len(models),
                "kept": len(filtered),
                "period": period.value,
            },
        )
        return sort_by_start_descending(
            filtered, lambda model: model_start_datetime(model, self.tz)
        )[:limit]

    def _matches_period(
        self, model: CalendarModel, period: DiscoveryFilter, now: datetime
    ) -> bool:
        if period == DiscoveryFilter.ALL:
            return True
        if period == DiscoveryFilter.DATE_EVENTS:
            return isinstance(model, DateBasedCalendarEvent)
        if period == DiscoveryFilter.TIME_EVENTS:
            return isinstance(model, TimeBasedCalendarEvent)

        start = model_start_datetime(model, self.tz)
        if start is None:
            return False
        if period == DiscoveryFilter.TODAY:
            return start.date() == now.date()
        if period == DiscoveryFilter.THIS_WEEK:
            week_start = local_midnight(
                now.date() - timedelta(days=now.weekday()), self.tz
            )
            return week_start <= start < week_start + timedelta(days=7)
        return (start.year, start.month) == (now.year, now.month)

    @staticmethod
    def _matches_search(model: CalendarModel, query: str) -> bool:
        haystack = [
            getattr(model, "title", None) or "",
            getattr(model, "description", "") or "",
            getattr(model, "location", None) or "",
            " ".join(getattr(model, "hashtags", [])),
        ]
        return any(query in text.lower() for text in haystack)


class ListEventRSVPsUseCase:
    """Finds the RSVPs that answer a given event address."""

    def __init__(self, event_repo: EventRepository):
        self.event_repo = event_repo

    async def execute(
        self, event_address: str, limit: Optional[int] = None
    ) -> List[CalendarEventRSVP]:
        models = await self.event_repo.query(
            EventFilter(
                kinds={int(EventKind.CALENDAR_EVENT_RSVP)},
                tags={"#a": {event_address}},
                limit=limit,
            ),
            source=QuerySource.LOCAL_AND_REMOTE,
        )
        return [
            model for model in models if isinstance(model, CalendarEventRSVP)
        ]


class PublishDraftUseCase:
    """
    Signs a draft, saves it locally and broadcasts it.

    Collaborator failures reach the caller unchanged; nothing is retried.
    """

    def __init__(
        self, event_repo: EventRepository, signer: SignerRepository
    ):
        self.event_repo = event_repo
        self.signer = signer

    async def execute(self, draft: EventDraft) -> Event:
        logger.info(
            "Publishing draft", extra={"kind": int(draft.kind)}
        )
        signed = await draft.sign_with(self.signer)
        await self.event_repo.save([signed])
        await self.event_repo.publish([signed])
        logger.info(
            "Draft published",
            extra={"kind": signed.kind, "event_id": signed.id},
        )
        return signed