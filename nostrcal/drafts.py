"""
Mutable drafts for creating and editing calendar events.

A draft owns a private copy of an event's tags and content. Setters rewrite
the corresponding tag in place: a value replaces the first tag of that name
or is appended, and None removes the tag. Repeatable tags such as ``sch``
are replaced wholesale by the bulk setter and edited one at a time by the
add/remove helpers.

Once a draft has been signed it is finalized and refuses further changes;
the signed ``Event`` is the immutable result.
"""

import logging
import secrets
from datetime import date, datetime, timedelta, timezone
from typing import ClassVar, List, Optional, Sequence

from .address import EventAddress
from .domain import (
    Event,
    EventKind,
    FreeBusy,
    RSVPStatus,
    ScheduleBlock,
    TimeBasedCalendarEvent,
    CalendarModelBase,
    parse_date,
    parse_enum,
    parse_int,
    parse_timestamp,
    schedule_blocks_from_tags,
)
from .repositories import SignerRepository
from .validation import (
    DomainValidationError,
    DraftFinalizedError,
    to_unix_seconds,
    validate_extended_end,
    validate_time_range,
)

logger = logging.getLogger(__name__)


def generate_identifier() -> str:
    """Random 16-hex-character ``d`` tag value for a new draft."""
    return secrets.token_hex(32)[:16]


def _now_seconds() -> int:
    return int(datetime.now(timezone.utc).timestamp())


class TagValue:
    """Read/write access to a single-valued string tag of a draft."""

    def __init__(self, name: str):
        self.name = name

    def __get__(self, draft: Optional["EventDraft"], owner: type) -> Optional[str]:
        if draft is None:
            return self  # type: ignore[return-value]
        return draft._get_first_tag_value(self.name)

    def __set__(self, draft: "EventDraft", value: Optional[str]) -> None:
        draft._set_tag_value(self.name, value)


class EventDraft:
    """
    Base class for drafts of a single event kind.

    ``EventDraft(event)`` wraps an existing envelope for editing; each
    subclass offers a ``create`` classmethod that starts from its required
    fields instead.
    """

    kind: ClassVar[EventKind]

    identifier = TagValue("d")

    def __init__(self, event: Optional[Event] = None):
        if event is not None and event.kind != self.kind:
            raise DomainValidationError(
                f"Cannot edit a kind {event.kind} event as "
                f"{type(self).__name__}"
            )
        self._tags: List[List[str]] = (
            [list(tag) for tag in event.tags] if event else []
        )
        self._content = event.content if event else ""
        self._created_at = event.created_at if event else _now_seconds()
        self._pubkey = event.pubkey if event else ""
        self._finalized = False

    @classmethod
    def from_event(cls, event: Event) -> "EventDraft":
        return cls(event)

    def _init_fresh(
        self,
        content: str,
        identifier: Optional[str],
        created_at: Optional[datetime],
    ) -> None:
        self._content = content
        if created_at is not None:
            self._created_at = to_unix_seconds(created_at)
        self.identifier = identifier or generate_identifier()

    # --- tag plumbing ---

    def _ensure_mutable(self) -> None:
        if self._finalized:
            raise DraftFinalizedError(
                f"{type(self).__name__} was already signed"
            )

    def _get_first_tag_value(self, name: str) -> Optional[str]:
        for tag in self._tags:
            if tag and tag[0] == name:
                return tag[1] if len(tag) > 1 else None
        return None

    def _get_tag_set_values(self, name: str) -> List[str]:
        return [
            tag[1] for tag in self._tags if len(tag) > 1 and tag[0] == name
        ]

    def _set_tag_value(self, name: str, value: Optional[str]) -> None:
        self._ensure_mutable()
        if value is None:
            self._remove_tags(name)
            return
        for index, tag in enumerate(self._tags):
            if tag and tag[0] == name:
                self._tags[index] = [name, value]
                return
        self._tags.append([name, value])

    def _remove_tags(self, name: str) -> None:
        self._ensure_mutable()
        self._tags = [tag for tag in self._tags if not tag or tag[0] != name]

    def _add_tag(self, *values: str) -> None:
        self._ensure_mutable()
        self._tags.append(list(values))

    # --- common fields ---

    @property
    def tags(self) -> List[List[str]]:
        """A copy of the current tags."""
        return [list(tag) for tag in self._tags]

    @property
    def content(self) -> str:
        return self._content

    @content.setter
    def content(self, value: str) -> None:
        self._ensure_mutable()
        self._content = value

    @property
    def created_at(self) -> datetime:
        return datetime.fromtimestamp(self._created_at, tz=timezone.utc)

    @created_at.setter
    def created_at(self, value: datetime) -> None:
        self._ensure_mutable()
        self._created_at = to_unix_seconds(value)

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    def to_event(self) -> Event:
        """Snapshot the draft as an unsigned envelope."""
        return Event(
            pubkey=self._pubkey,
            created_at=self._created_at,
            kind=int(self.kind),
            tags=self.tags,
            content=self._content,
        )

    async def sign_with(self, signer: SignerRepository) -> Event:
        """
        Sign the draft and finalize it.

        Signing errors propagate and leave the draft editable.
        """
        self._ensure_mutable()
        signed = await signer.sign(self.to_event())
        self._finalized = True
        logger.debug(
            "Draft signed",
            extra={"kind": int(self.kind), "event_id": signed.id},
        )
        return signed


class DateBasedCalendarEventDraft(EventDraft):
    """Draft of an all-day event (kind 31922)."""

    kind = EventKind.DATE_BASED_CALENDAR_EVENT

    title = TagValue("title")
    location = TagValue("location")

    @classmethod
    def create(
        cls,
        *,
        title: str,
        start_date: date,
        end_date: Optional[date] = None,
        description: Optional[str] = None,
        location: Optional[str] = None,
        hashtags: Optional[Sequence[str]] = None,
        identifier: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> "DateBasedCalendarEventDraft":
        draft = cls()
        draft._init_fresh(description or "", identifier, created_at)
        draft.title = title
        draft.start_date = start_date
        draft.end_date = end_date
        draft.location = location
        draft.hashtags = list(hashtags or [])
        return draft

    @property
    def start_date(self) -> Optional[date]:
        return parse_date(self._get_first_tag_value("start"))

    @start_date.setter
    def start_date(self, value: Optional[date]) -> None:
        self._set_tag_value("start", value.isoformat() if value else None)

    @property
    def end_date(self) -> Optional[date]:
        return parse_date(self._get_first_tag_value("end"))

    @end_date.setter
    def end_date(self, value: Optional[date]) -> None:
        self._set_tag_value("end", value.isoformat() if value else None)

    @property
    def hashtags(self) -> List[str]:
        return self._get_tag_set_values("t")

    @hashtags.setter
    def hashtags(self, values: Sequence[str]) -> None:
        self._remove_tags("t")
        for value in values:
            self._add_tag("t", value)

    @property
    def description(self) -> Optional[str]:
        return self._content or None

    @description.setter
    def description(self, value: Optional[str]) -> None:
        self.content = value or ""


class TimeBasedCalendarEventDraft(EventDraft):
    """Draft of an event bounded by two instants (kind 31923)."""

    kind = EventKind.TIME_BASED_CALENDAR_EVENT

    title = TagValue("title")
    location = TagValue("location")
    start_tzid = TagValue("start_tzid")
    end_tzid = TagValue("end_tzid")

    @classmethod
    def create(
        cls,
        *,
        title: str,
        start_time: datetime,
        end_time: Optional[datetime] = None,
        description: Optional[str] = None,
        location: Optional[str] = None,
        start_tzid: Optional[str] = None,
        end_tzid: Optional[str] = None,
        hashtags: Optional[Sequence[str]] = None,
        identifier: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> "TimeBasedCalendarEventDraft":
        draft = cls()
        draft._init_fresh(description or "", identifier, created_at)
        draft.title = title
        if end_time is not None:
            draft.set_time_range(start_time, end_time)
        else:
            draft.start_time = start_time
        draft.location = location
        draft.start_tzid = start_tzid
        draft.end_tzid = end_tzid
        for hashtag in hashtags or []:
            draft._add_tag("t", hashtag)
        return draft

    @property
    def start_time(self) -> Optional[datetime]:
        return parse_timestamp(self._get_first_tag_value("start"))

    @start_time.setter
    def start_time(self, value: Optional[datetime]) -> None:
        self._set_tag_value(
            "start", str(to_unix_seconds(value)) if value else None
        )

    @property
    def end_time(self) -> Optional[datetime]:
        return parse_timestamp(self._get_first_tag_value("end"))

    @end_time.setter
    def end_time(self, value: Optional[datetime]) -> None:
        self._set_tag_value(
            "end", str(to_unix_seconds(value)) if value else None
        )

    def set_time_range(self, start: datetime, end: datetime) -> None:
        validate_time_range(start, end)
        self.start_time = start
        self.end_time = end

    @property
    def description(self) -> Optional[str]:
        return self._content or None

    @description.setter
    def description(self, value: Optional[str]) -> None:
        self.content = value or ""


class CalendarDraft(EventDraft):
    """Draft of a calendar collection (kind 31924)."""

    kind = EventKind.CALENDAR

    title = TagValue("title")

    @classmethod
    def create(
        cls,
        *,
        title: str,
        event_addresses: Optional[Sequence[str]] = None,
        description: str = "",
        identifier: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> "CalendarDraft":
        draft = cls()
        draft._init_fresh(description, identifier, created_at)
        draft.title = title
        for address in event_addresses or []:
            draft.add_event_address(address)
        return draft

    @property
    def event_addresses(self) -> List[str]:
        return self._get_tag_set_values("a")

    def add_event_address(self, address: str) -> None:
        if address not in self.event_addresses:
            self._add_tag("a", address)

    def remove_event_address(self, address: str) -> None:
        self._ensure_mutable()
        self._tags = [
            tag
            for tag in self._tags
            if not (len(tag) > 1 and tag[0] == "a" and tag[1] == address)
        ]


class CalendarEventRSVPDraft(EventDraft):
    """Draft of a response to a calendar event (kind 31925)."""

    kind = EventKind.CALENDAR_EVENT_RSVP

    event_address = TagValue("a")
    event_id = TagValue("e")

    @classmethod
    def create(
        cls,
        *,
        event_address: str,
        status: RSVPStatus = RSVPStatus.ACCEPTED,
        note: str = "",
        free_busy: Optional[FreeBusy] = None,
        event_id: Optional[str] = None,
        identifier: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> "CalendarEventRSVPDraft":
        draft = cls()
        draft._init_fresh(note, identifier, created_at)
        draft.event_address = event_address
        draft.event_id = event_id
        draft.status = status
        draft.free_busy = free_busy
        return draft

    @classmethod
    def for_event(
        cls,
        model: CalendarModelBase,
        status: RSVPStatus = RSVPStatus.ACCEPTED,
        note: str = "",
    ) -> "CalendarEventRSVPDraft":
        """Answer a published event, tagging its address, id and author."""
        if model.address is None:
            raise DomainValidationError(
                "Only addressable events can be answered"
            )
        draft = cls.create(
            event_address=model.address,
            event_id=model.id or None,
            status=status,
            note=note,
        )
        draft._add_tag("p", model.pubkey)
        return draft

    @property
    def event_reference(self) -> Optional[EventAddress]:
        return EventAddress.parse(self.event_address)

    @property
    def status(self) -> Optional[RSVPStatus]:
        return parse_enum(RSVPStatus, self._get_first_tag_value("status"))

    @status.setter
    def status(self, value: Optional[RSVPStatus]) -> None:
        self._set_tag_value("status", value.value if value else None)

    @property
    def free_busy(self) -> Optional[FreeBusy]:
        return parse_enum(FreeBusy, self._get_first_tag_value("fb"))

    @free_busy.setter
    def free_busy(self, value: Optional[FreeBusy]) -> None:
        self._set_tag_value("fb", value.value if value else None)

    @property
    def note(self) -> str:
        return self._content

    @note.setter
    def note(self, value: str) -> None:
        self.content = value


class CalendarAvailabilityDraft(EventDraft):
    """
    Draft of a weekly availability template (kind 31926).

    The ISO-8601 duration fields are stored verbatim; ``max_advance_business``
    is always written as ``"true"`` or ``"false"``.
    """

    kind = EventKind.CALENDAR_AVAILABILITY

    calendar_address = TagValue("a")
    title = TagValue("title")
    time_zone = TagValue("tzid")
    duration = TagValue("duration")
    interval = TagValue("interval")
    buffer_before = TagValue("buffer_before")
    buffer_after = TagValue("buffer_after")
    min_notice = TagValue("min_notice")
    max_advance = TagValue("max_advance")

    @classmethod
    def create(
        cls,
        *,
        calendar_address: str,
        title: str,
        schedule_blocks: Sequence[Sequence[str]],
        time_zone: Optional[str] = None,
        duration: str = "PT30M",
        interval: Optional[str] = None,
        buffer_before: Optional[str] = None,
        buffer_after: Optional[str] = None,
        min_notice: Optional[str] = None,
        max_advance: Optional[str] = None,
        max_advance_business: bool = False,
        amount: Optional[int] = None,
        description: str = "",
        identifier: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> "CalendarAvailabilityDraft":
        draft = cls()
        draft._init_fresh(description, identifier, created_at)
        draft.calendar_address = calendar_address
        draft.title = title
        draft.schedule_blocks = schedule_blocks
        draft.time_zone = time_zone
        draft.duration = duration
        draft.interval = interval
        draft.buffer_before = buffer_before
        draft.buffer_after = buffer_after
        draft.min_notice = min_notice
        draft.max_advance = max_advance
        draft.max_advance_business = max_advance_business
        draft.amount = amount
        return draft

    @property
    def calendar_reference(self) -> Optional[EventAddress]:
        return EventAddress.parse(self.calendar_address)

    @property
    def schedule_blocks(self) -> List[ScheduleBlock]:
        return schedule_blocks_from_tags(self._tags)

    @schedule_blocks.setter
    def schedule_blocks(self, blocks: Sequence[Sequence[str]]) -> None:
        self._remove_tags("sch")
        for block in blocks:
            if len(block) >= 3:
                self._add_tag("sch", block[0], block[1], block[2])

    def add_schedule_block(
        self, day: str, start_time: str, end_time: str
    ) -> None:
        self._add_tag("sch", day, start_time, end_time)

    def remove_schedule_block(
        self, day: str, start_time: str, end_time: str
    ) -> None:
        """Remove every ``sch`` tag matching the given block exactly."""
        self._ensure_mutable()
        self._tags = [
            tag
            for tag in self._tags
            if not (
                len(tag) >= 4
                and tag[0] == "sch"
                and tag[1:4] == [day, start_time, end_time]
            )
        ]

    @property
    def max_advance_business(self) -> bool:
        return self._get_first_tag_value("max_advance_business") == "true"

    @max_advance_business.setter
    def max_advance_business(self, value: bool) -> None:
        self._set_tag_value(
            "max_advance_business", "true" if value else "false"
        )

    @property
    def amount(self) -> Optional[int]:
        return parse_int(self._get_first_tag_value("amount"))

    @amount.setter
    def amount(self, value: Optional[int]) -> None:
        self._set_tag_value("amount", str(value) if value is not None else None)

    @property
    def requires_payment(self) -> bool:
        return self.amount is not None and self.amount > 0

    @property
    def description(self) -> Optional[str]:
        return self._content or None

    @description.setter
    def description(self, value: Optional[str]) -> None:
        self.content = value or ""


class CalendarAvailabilityBlockDraft(EventDraft):
    """
    Draft of a busy block (kind 31927).

    Time-range helpers validate before touching any tag, so a rejected
    change leaves the draft exactly as it was.
    """

    kind = EventKind.CALENDAR_AVAILABILITY_BLOCK

    @classmethod
    def create(
        cls,
        *,
        start_time: datetime,
        end_time: datetime,
        description: str = "",
        identifier: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> "CalendarAvailabilityBlockDraft":
        draft = cls()
        draft._init_fresh(description, identifier, created_at)
        draft.start_time = start_time
        draft.end_time = end_time
        return draft

    @classmethod
    def for_calendar_event(
        cls,
        model: TimeBasedCalendarEvent,
        identifier: Optional[str] = None,
    ) -> "CalendarAvailabilityBlockDraft":
        """Publish the time of an event as busy without its details."""
        if model.start_time is None or model.end_time is None:
            raise DomainValidationError(
                "Busy blocks need an event with both start and end"
            )
        validate_time_range(model.start_time, model.end_time)
        return cls.create(
            start_time=model.start_time,
            end_time=model.end_time,
            identifier=identifier,
        )

    @property
    def start_time(self) -> Optional[datetime]:
        return parse_timestamp(self._get_first_tag_value("start"))

    @start_time.setter
    def start_time(self, value: Optional[datetime]) -> None:
        self._set_tag_value(
            "start", str(to_unix_seconds(value)) if value else None
        )

    @property
    def end_time(self) -> Optional[datetime]:
        return parse_timestamp(self._get_first_tag_value("end"))

    @end_time.setter
    def end_time(self, value: Optional[datetime]) -> None:
        self._set_tag_value(
            "end", str(to_unix_seconds(value)) if value else None
        )

    @property
    def duration(self) -> Optional[timedelta]:
        if self.start_time is None or self.end_time is None:
            return None
        return self.end_time - self.start_time

    @property
    def has_valid_time_range(self) -> bool:
        start, end = self.start_time, self.end_time
        return start is not None and end is not None and end > start

    @property
    def description(self) -> Optional[str]:
        return self._content or None

    @description.setter
    def description(self, value: Optional[str]) -> None:
        self.content = value or ""

    def set_time_range(self, start: datetime, end: datetime) -> None:
        validate_time_range(start, end)
        self.start_time = start
        self.end_time = end

    def extend_end_time(self, new_end_time: datetime) -> None:
        validate_extended_end(self.start_time, new_end_time)
        self.end_time = new_end_time

    def move_block(self, offset: timedelta) -> None:
        """Shift both bounds by ``offset``, keeping the duration."""
        start, end = self.start_time, self.end_time
        if start is None or end is None:
            return
        self.start_time = start + offset
        self.end_time = end + offset

    def set_duration(self, start: datetime, duration: timedelta) -> None:
        self.set_time_range(start, start + duration)
