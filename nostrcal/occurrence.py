"""
Occurrence computation for calendar listings.

An ``EnrichedEvent`` pairs an item from the user's calendar with the event
it stands for: regular events stand for themselves, RSVPs stand for the
event they answer once that parent has been resolved. Start and end
instants are computed from that effective event, and day membership is
derived from them.
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Callable, Iterable, List, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict

from .domain import (
    CalendarEventRSVP,
    CalendarModel,
    DateBasedCalendarEvent,
    TimeBasedCalendarEvent,
)

T = TypeVar("T")

ONE_DAY = timedelta(days=1)


def local_midnight(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def model_start_datetime(
    model: CalendarModel, tz: tzinfo = timezone.utc
) -> Optional[datetime]:
    """Start of a dated event; None for other kinds or a missing start."""
    if isinstance(model, DateBasedCalendarEvent):
        if model.start_date is None:
            return None
        return local_midnight(model.start_date, tz)
    if isinstance(model, TimeBasedCalendarEvent):
        if model.start_time is None:
            return None
        return model.start_time.astimezone(tz)
    return None


def _as_day_start(day: Union[date, datetime], tz: tzinfo) -> datetime:
    if isinstance(day, datetime):
        return day if day.tzinfo is not None else day.replace(tzinfo=tz)
    return local_midnight(day, tz)


class EnrichedEvent(BaseModel):
    """
    A calendar item ready for display on a given day.

    Built fresh for every enumeration pass and never mutated. ``tz`` is the
    zone in which date-based events start at midnight.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    original_event: CalendarModel
    parent_event: Optional[CalendarModel] = None
    is_rsvp: bool = False
    tz: tzinfo = timezone.utc

    @classmethod
    def regular(
        cls, model: CalendarModel, tz: tzinfo = timezone.utc
    ) -> "EnrichedEvent":
        return cls(original_event=model, tz=tz)

    @classmethod
    def rsvp(
        cls,
        model: CalendarEventRSVP,
        parent: Optional[CalendarModel],
        tz: tzinfo = timezone.utc,
    ) -> "EnrichedEvent":
        return cls(
            original_event=model, parent_event=parent, is_rsvp=True, tz=tz
        )

    @property
    def effective_event(self) -> CalendarModel:
        return self.parent_event or self.original_event

    @property
    def title(self) -> Optional[str]:
        return getattr(self.effective_event, "title", None)

    @property
    def start_datetime(self) -> Optional[datetime]:
        start = model_start_datetime(self.effective_event, self.tz)
        if start is None and self.is_rsvp:
            # Surface the RSVP on the day it was written.
            return self.original_event.created_at.astimezone(self.tz)
        return start

    @property
    def end_datetime(self) -> Optional[datetime]:
        event = self.effective_event
        if isinstance(event, DateBasedCalendarEvent):
            if event.end_date is not None:
                return local_midnight(event.end_date, self.tz)
            start = self.start_datetime
            return start + ONE_DAY if start is not None else None
        if isinstance(event, TimeBasedCalendarEvent):
            if event.end_time is not None:
                return event.end_time.astimezone(self.tz)
        return self.start_datetime

    def occurs_on_day(self, day: Union[date, datetime]) -> bool:
        """
        Whether the item should be listed under ``day``.

        The lower bound is padded by one day so that an event starting at
        any time of day matches that day's midnight.
        """
        start = self.start_datetime
        if start is None:
            return False
        day_start = _as_day_start(day, self.tz)
        end = self.end_datetime
        if end is None:
            return day_start.date() == start.date()
        return start - ONE_DAY < day_start < end


def events_on_day(
    events: Iterable[EnrichedEvent], day: Union[date, datetime]
) -> List[EnrichedEvent]:
    return [event for event in events if event.occurs_on_day(day)]


def sort_by_start_descending(
    items: Iterable[T], start_of: Callable[[T], Optional[datetime]]
) -> List[T]:
    """
    Newest start first; items without a start go last. Ties keep their
    input order.
    """
    dated = []
    undated = []
    for item in items:
        start = start_of(item)
        if start is None:
            undated.append(item)
        else:
            dated.append((start, item))
    dated.sort(key=lambda pair: pair[0], reverse=True)
    return [item for _, item in dated] + undated
