"""
Calendar domain models built on top of signed protocol events.

Every calendar object travels as a generic ``Event`` envelope: an integer
kind, an ordered list of string tags and a content string. The read models
in this module parse the envelope once, at construction, into named optional
fields. Parsing is total: a missing or malformed tag becomes None, never an
exception.
"""

import hashlib
import json
import logging
from datetime import date, datetime, timedelta, timezone
from enum import Enum, IntEnum
from typing import Annotated, Any, Dict, List, Literal, NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .address import EventAddress, build_address

logger = logging.getLogger(__name__)


# --- Kinds and enums ---


class EventKind(IntEnum):
    """Event kinds handled by the calendar client."""

    DATE_BASED_CALENDAR_EVENT = 31922
    TIME_BASED_CALENDAR_EVENT = 31923
    CALENDAR = 31924
    CALENDAR_EVENT_RSVP = 31925
    CALENDAR_AVAILABILITY = 31926
    CALENDAR_AVAILABILITY_BLOCK = 31927


PARAMETERIZED_REPLACEABLE_KINDS = range(30000, 40000)

# Bounds for creation times, kept a day inside what datetime can hold so
# that conversions to any local zone stay in range.
EARLIEST_CREATED_AT = datetime(1, 1, 2, tzinfo=timezone.utc)
LATEST_CREATED_AT = datetime(9999, 12, 30, tzinfo=timezone.utc)
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

DAY_CODES = ("MO", "TU", "WE", "TH", "FR", "SA", "SU")


class RSVPStatus(str, Enum):
    """Attendance answer carried by an RSVP's ``status`` tag."""

    ACCEPTED = "accepted"
    DECLINED = "declined"
    TENTATIVE = "tentative"


class FreeBusy(str, Enum):
    """Whether the responder would be free or busy during the event."""

    FREE = "free"
    BUSY = "busy"


class ScheduleBlock(NamedTuple):
    """One weekly opening of an availability template."""

    day: str
    start_time: str
    end_time: str


# --- Tolerant parsers ---


def parse_int(value: Optional[str]) -> Optional[int]:
    """Parse an integer tag value, returning None when it is not one."""
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a Unix-seconds tag value into an aware UTC datetime."""
    seconds = parse_int(value)
    if seconds is None:
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        logger.debug(f"Timestamp out of range: {value!r}")
        return None


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` tag value."""
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def parse_enum(enum_cls: Any, value: Optional[str]) -> Any:
    """Parse a case-insensitive enum tag value, None when unrecognised."""
    if value is None:
        return None
    try:
        return enum_cls(value.lower())
    except ValueError:
        return None


def schedule_blocks_from_tags(tags: List[List[str]]) -> List[ScheduleBlock]:
    """Collect ``sch`` tags, dropping any with fewer than three values."""
    return [
        ScheduleBlock(tag[1], tag[2], tag[3])
        for tag in tags
        if len(tag) >= 4 and tag[0] == "sch"
    ]


def compute_event_id(
    pubkey: str, created_at: int, kind: int, tags: List[List[str]], content: str
) -> str:
    """Hex sha256 of the canonical serialization used as the event id."""
    serialized = json.dumps(
        [0, pubkey, created_at, kind, tags, content],
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


# --- Envelope ---


class Event(BaseModel):
    """
    A protocol event as it is stored, signed and exchanged with relays.

    Tag order is significant: single-valued tags are read from the first
    matching tag, repeatable tags keep their relative order.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field("", description="Hex sha256 of the serialized event")
    pubkey: str = Field("", description="Hex public key of the author")
    created_at: int = Field(..., description="Unix seconds")
    kind: int = Field(..., description="Schema discriminator")
    tags: List[List[str]] = Field(default_factory=list)
    content: str = ""
    sig: Optional[str] = Field(None, description="Schnorr signature")

    def tags_named(self, name: str) -> List[List[str]]:
        """Every tag called ``name``, in envelope order."""
        return [tag for tag in self.tags if tag and tag[0] == name]

    def get_first_tag_value(self, name: str) -> Optional[str]:
        """Return the first value of the first tag called ``name``."""
        for tag in self.tags_named(name):
            return tag[1] if len(tag) > 1 else None
        return None

    def get_tag_set_values(self, name: str) -> List[str]:
        """Return the first value of every tag called ``name``, in order."""
        return [tag[1] for tag in self.tags_named(name) if len(tag) > 1]

    @property
    def created_datetime(self) -> datetime:
        """Creation time in UTC, clamped to the range datetime can hold."""
        earliest = int((EARLIEST_CREATED_AT - _EPOCH).total_seconds())
        latest = int((LATEST_CREATED_AT - _EPOCH).total_seconds())
        if not earliest <= self.created_at <= latest:
            logger.debug(
                "Clamping out-of-range created_at",
                extra={"event_id": self.id, "created_at": self.created_at},
            )
        seconds = min(max(self.created_at, earliest), latest)
        return _EPOCH + timedelta(seconds=seconds)

    @property
    def identifier(self) -> Optional[str]:
        return self.get_first_tag_value("d")

    @property
    def is_parameterized_replaceable(self) -> bool:
        return self.kind in PARAMETERIZED_REPLACEABLE_KINDS

    @property
    def address(self) -> Optional[str]:
        """The ``kind:pubkey:identifier`` address, when the event has one."""
        if not self.is_parameterized_replaceable:
            return None
        if not self.pubkey or self.identifier is None:
            return None
        return build_address(self.kind, self.pubkey, self.identifier)

    @property
    def is_signed(self) -> bool:
        return bool(self.id and self.pubkey and self.sig)


# --- Read models ---


class CalendarModelBase(BaseModel):
    """
    Common fields of every typed calendar view.

    Subclasses declare a ``kind`` literal and implement ``_parse_tags`` to
    map the envelope onto their own fields.
    """

    model_config = ConfigDict(frozen=True)

    event: Event = Field(..., description="The envelope this view reads")
    identifier: Optional[str] = None
    pubkey: str = ""
    created_at: datetime

    @classmethod
    def from_event(cls, event: Event) -> "CalendarModelBase":
        """Build the typed view; never raises on malformed tags."""
        fields: Dict[str, Any] = {
            "event": event,
            "kind": event.kind,
            "identifier": event.identifier,
            "pubkey": event.pubkey,
            "created_at": event.created_datetime,
        }
        fields.update(cls._parse_tags(event))
        return cls.model_validate(fields)

    @classmethod
    def _parse_tags(cls, event: Event) -> Dict[str, Any]:
        raise NotImplementedError

    @property
    def id(self) -> str:
        return self.event.id

    @property
    def address(self) -> Optional[str]:
        return self.event.address


class DateBasedCalendarEvent(CalendarModelBase):
    """An all-day event spanning one or more calendar dates (kind 31922)."""

    kind: Literal[31922] = 31922
    title: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = Field(
        None, description="Exclusive end date, if given"
    )
    location: Optional[str] = None
    hashtags: List[str] = Field(default_factory=list)
    description: str = ""

    @classmethod
    def _parse_tags(cls, event: Event) -> Dict[str, Any]:
        return {
            "title": event.get_first_tag_value("title"),
            "start_date": parse_date(event.get_first_tag_value("start")),
            "end_date": parse_date(event.get_first_tag_value("end")),
            "location": event.get_first_tag_value("location"),
            "hashtags": event.get_tag_set_values("t"),
            "description": event.content,
        }


class TimeBasedCalendarEvent(CalendarModelBase):
    """An event bounded by two instants (kind 31923)."""

    kind: Literal[31923] = 31923
    title: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    start_tzid: Optional[str] = None
    end_tzid: Optional[str] = None
    location: Optional[str] = None
    hashtags: List[str] = Field(default_factory=list)
    description: str = ""

    @classmethod
    def _parse_tags(cls, event: Event) -> Dict[str, Any]:
        return {
            "title": event.get_first_tag_value("title"),
            "start_time": parse_timestamp(event.get_first_tag_value("start")),
            "end_time": parse_timestamp(event.get_first_tag_value("end")),
            "start_tzid": event.get_first_tag_value("start_tzid"),
            "end_tzid": event.get_first_tag_value("end_tzid"),
            "location": event.get_first_tag_value("location"),
            "hashtags": event.get_tag_set_values("t"),
            "description": event.content,
        }


class Calendar(CalendarModelBase):
    """A named collection of calendar events (kind 31924)."""

    kind: Literal[31924] = 31924
    title: Optional[str] = None
    event_addresses: List[str] = Field(default_factory=list)
    description: str = ""

    @classmethod
    def _parse_tags(cls, event: Event) -> Dict[str, Any]:
        return {
            "title": event.get_first_tag_value("title"),
            "event_addresses": event.get_tag_set_values("a"),
            "description": event.content,
        }


class CalendarEventRSVP(CalendarModelBase):
    """A response to a calendar event (kind 31925)."""

    kind: Literal[31925] = 31925
    event_address: Optional[str] = Field(
        None, description="Address of the event being answered"
    )
    event_id: Optional[str] = None
    status: Optional[RSVPStatus] = None
    free_busy: Optional[FreeBusy] = None
    note: str = ""

    @classmethod
    def _parse_tags(cls, event: Event) -> Dict[str, Any]:
        return {
            "event_address": event.get_first_tag_value("a"),
            "event_id": event.get_first_tag_value("e"),
            "status": parse_enum(RSVPStatus, event.get_first_tag_value("status")),
            "free_busy": parse_enum(FreeBusy, event.get_first_tag_value("fb")),
            "note": event.content,
        }

    @property
    def event_reference(self) -> Optional[EventAddress]:
        return EventAddress.parse(self.event_address)

    @property
    def is_accepted(self) -> bool:
        return self.status == RSVPStatus.ACCEPTED

    @property
    def is_declined(self) -> bool:
        return self.status == RSVPStatus.DECLINED

    @property
    def is_tentative(self) -> bool:
        return self.status == RSVPStatus.TENTATIVE


class CalendarAvailability(CalendarModelBase):
    """
    A recurring weekly availability template with booking parameters
    (kind 31926).

    Clients combine the template with the owner's busy blocks and events to
    compute bookable slots.
    """

    kind: Literal[31926] = 31926
    calendar_address: Optional[str] = Field(
        None, description="Address of the calendar this template belongs to"
    )
    title: Optional[str] = None
    schedule_blocks: List[ScheduleBlock] = Field(default_factory=list)
    time_zone: Optional[str] = Field(None, description="IANA time zone")
    duration: Optional[str] = Field(None, description="ISO-8601 slot length")
    interval: Optional[str] = None
    buffer_before: Optional[str] = None
    buffer_after: Optional[str] = None
    min_notice: Optional[str] = None
    max_advance: Optional[str] = None
    max_advance_business: bool = False
    amount: Optional[int] = Field(None, description="Price in satoshis")
    description: str = ""

    @classmethod
    def _parse_tags(cls, event: Event) -> Dict[str, Any]:
        return {
            "calendar_address": event.get_first_tag_value("a"),
            "title": event.get_first_tag_value("title"),
            "schedule_blocks": schedule_blocks_from_tags(event.tags),
            "time_zone": event.get_first_tag_value("tzid"),
            "duration": event.get_first_tag_value("duration"),
            "interval": event.get_first_tag_value("interval"),
            "buffer_before": event.get_first_tag_value("buffer_before"),
            "buffer_after": event.get_first_tag_value("buffer_after"),
            "min_notice": event.get_first_tag_value("min_notice"),
            "max_advance": event.get_first_tag_value("max_advance"),
            "max_advance_business": (
                event.get_first_tag_value("max_advance_business") == "true"
            ),
            "amount": parse_int(event.get_first_tag_value("amount")),
            "description": event.content,
        }

    @property
    def calendar_reference(self) -> Optional[EventAddress]:
        return EventAddress.parse(self.calendar_address)

    @property
    def requires_payment(self) -> bool:
        return self.amount is not None and self.amount > 0

    @property
    def has_schedule(self) -> bool:
        return bool(self.schedule_blocks)

    @property
    def schedule_block_count(self) -> int:
        return len(self.schedule_blocks)


class CalendarAvailabilityBlock(CalendarModelBase):
    """
    A concrete busy interval published without any event details
    (kind 31927). The start is inclusive and the end exclusive.
    """

    kind: Literal[31927] = 31927
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    description: str = ""

    @classmethod
    def _parse_tags(cls, event: Event) -> Dict[str, Any]:
        return {
            "start_time": parse_timestamp(event.get_first_tag_value("start")),
            "end_time": parse_timestamp(event.get_first_tag_value("end")),
            "description": event.content,
        }

    @property
    def duration(self) -> Optional[timedelta]:
        if self.start_time is None or self.end_time is None:
            return None
        return self.end_time - self.start_time

    @property
    def has_valid_time_range(self) -> bool:
        return (
            self.start_time is not None
            and self.end_time is not None
            and self.end_time > self.start_time
        )

    @property
    def has_description(self) -> bool:
        return bool(self.description)

    def is_active_at(self, moment: datetime) -> bool:
        if self.start_time is None or self.end_time is None:
            return False
        return self.start_time <= moment < self.end_time

    def is_past_at(self, moment: datetime) -> bool:
        return self.end_time is not None and moment >= self.end_time

    def is_future_at(self, moment: datetime) -> bool:
        return self.start_time is not None and moment < self.start_time

    @property
    def is_active(self) -> bool:
        return self.is_active_at(datetime.now(timezone.utc))

    @property
    def is_past(self) -> bool:
        return self.is_past_at(datetime.now(timezone.utc))

    @property
    def is_future(self) -> bool:
        return self.is_future_at(datetime.now(timezone.utc))


CalendarModel = Annotated[
    Union[
        DateBasedCalendarEvent,
        TimeBasedCalendarEvent,
        Calendar,
        CalendarEventRSVP,
        CalendarAvailability,
        CalendarAvailabilityBlock,
    ],
    Field(discriminator="kind"),
]
