"""
Tests for parsing envelopes into typed calendar views.
"""

from datetime import date, datetime, timedelta, timezone

from nostrcal.domain import (
    Calendar,
    CalendarAvailability,
    CalendarAvailabilityBlock,
    CalendarEventRSVP,
    DateBasedCalendarEvent,
    EARLIEST_CREATED_AT,
    LATEST_CREATED_AT,
    EventKind,
    FreeBusy,
    RSVPStatus,
    ScheduleBlock,
    TimeBasedCalendarEvent,
    compute_event_id,
)
from nostrcal.tests.factories import (
    ALICE,
    minimal_availability,
    minimal_busy_block,
    minimal_event,
    minimal_rsvp,
    ts,
)


class TestEvent:
    def test_first_matching_tag_wins(self) -> None:
        event = minimal_event(
            tags=[["title", "First"], ["title", "Second"], ["t", "a"], ["t", "b"]]
        )

        assert event.get_first_tag_value("title") == "First"
        assert event.get_tag_set_values("t") == ["a", "b"]
        assert event.get_first_tag_value("missing") is None

    def test_tag_without_value_reads_as_none(self) -> None:
        event = minimal_event(tags=[["title"]])

        assert event.get_first_tag_value("title") is None

    def test_address_requires_identifier(self) -> None:
        with_d = minimal_event(tags=[["d", "meet1"]])
        without_d = minimal_event(tags=[])

        assert with_d.address == f"31923:{ALICE}:meet1"
        assert without_d.address is None

    def test_address_only_for_parameterized_replaceable_kinds(self) -> None:
        note = minimal_event(kind=1, tags=[["d", "x"]])

        assert note.address is None

    def test_out_of_range_created_at_is_clamped(self) -> None:
        assert (
            minimal_event(created_at=10**12).created_datetime
            == LATEST_CREATED_AT
        )
        assert (
            minimal_event(created_at=-(10**12)).created_datetime
            == EARLIEST_CREATED_AT
        )

    def test_is_signed(self) -> None:
        assert minimal_event().is_signed
        assert not minimal_event(signed=False).is_signed

    def test_compute_event_id_is_stable(self) -> None:
        first = compute_event_id("ab", 1, 31923, [["d", "x"]], "hi")
        second = compute_event_id("ab", 1, 31923, [["d", "x"]], "hi")
        other = compute_event_id("ab", 1, 31923, [["d", "y"]], "hi")

        assert first == second
        assert first != other
        assert len(first) == 64


class TestTimeBasedCalendarEvent:
    def test_parses_fields(self) -> None:
        start = datetime(2024, 6, 10, 10, 0, tzinfo=timezone.utc)
        end = start + timedelta(hours=1)
        event = minimal_event(
            tags=[
                ["d", "meet1"],
                ["title", "Team sync"],
                ["start", ts(start)],
                ["end", ts(end)],
                ["start_tzid", "Europe/Berlin"],
                ["location", "Room 1"],
                ["t", "work"],
            ],
            content="Weekly",
        )

        model = TimeBasedCalendarEvent.from_event(event)

        assert model.kind == EventKind.TIME_BASED_CALENDAR_EVENT
        assert model.identifier == "meet1"
        assert model.title == "Team sync"
        assert model.start_time == start
        assert model.end_time == end
        assert model.start_tzid == "Europe/Berlin"
        assert model.end_tzid is None
        assert model.location == "Room 1"
        assert model.hashtags == ["work"]
        assert model.description == "Weekly"
        assert model.id == event.id
        assert model.address == event.address

    def test_malformed_timestamp_is_absent(self) -> None:
        event = minimal_event(tags=[["start", "tomorrow"]])

        model = TimeBasedCalendarEvent.from_event(event)

        assert model.start_time is None
        assert model.title is None

    def test_created_at_is_aware(self) -> None:
        model = TimeBasedCalendarEvent.from_event(
            minimal_event(created_at=1_700_000_000)
        )

        assert model.created_at == datetime.fromtimestamp(
            1_700_000_000, tz=timezone.utc
        )


class TestDateBasedCalendarEvent:
    def test_parses_dates(self) -> None:
        event = minimal_event(
            kind=EventKind.DATE_BASED_CALENDAR_EVENT,
            tags=[["start", "2024-06-10"], ["end", "2024-06-12"]],
        )

        model = DateBasedCalendarEvent.from_event(event)

        assert model.start_date == date(2024, 6, 10)
        assert model.end_date == date(2024, 6, 12)

    def test_malformed_date_is_absent(self) -> None:
        event = minimal_event(
            kind=EventKind.DATE_BASED_CALENDAR_EVENT,
            tags=[["start", "June 10"]],
        )

        assert DateBasedCalendarEvent.from_event(event).start_date is None


class TestCalendar:
    def test_collects_event_addresses_in_order(self) -> None:
        event = minimal_event(
            kind=EventKind.CALENDAR,
            tags=[["title", "Work"], ["a", "31923:bob:one"], ["a", "31922:bob:two"]],
        )

        model = Calendar.from_event(event)

        assert model.title == "Work"
        assert model.event_addresses == ["31923:bob:one", "31922:bob:two"]


class TestCalendarEventRSVP:
    def test_parses_status_and_reference(self) -> None:
        model = minimal_rsvp(event_address="31923:bob:meet1", status="Declined")

        assert model.status == RSVPStatus.DECLINED
        assert model.is_declined
        assert not model.is_accepted
        assert model.event_reference is not None
        assert model.event_reference.identifier == "meet1"

    def test_unknown_status_is_absent(self) -> None:
        model = minimal_rsvp(status="maybe")

        assert model.status is None
        assert not model.is_tentative

    def test_free_busy_and_note(self) -> None:
        event = minimal_event(
            kind=EventKind.CALENDAR_EVENT_RSVP,
            tags=[["a", "31923:bob:meet1"], ["fb", "busy"], ["e", "abc"]],
            content="See you",
        )

        model = CalendarEventRSVP.from_event(event)

        assert model.free_busy == FreeBusy.BUSY
        assert model.event_id == "abc"
        assert model.note == "See you"

    def test_malformed_address_has_no_reference(self) -> None:
        model = minimal_rsvp(event_address="not-an-address")

        assert model.event_address == "not-an-address"
        assert model.event_reference is None


class TestCalendarAvailability:
    def test_office_hours_template(self) -> None:
        model = minimal_availability(
            calendar_address="31924:alice:cal-work",
            title="Office Hours",
            schedule_blocks=[["MO", "09:00", "17:00"], ["TU", "09:00", "17:00"]],
        )

        assert model.title == "Office Hours"
        assert model.calendar_address == "31924:alice:cal-work"
        assert str(model.calendar_reference) == "31924:alice:cal-work"
        assert model.schedule_block_count == 2
        assert model.has_schedule
        assert model.schedule_blocks[0] == ScheduleBlock("MO", "09:00", "17:00")

    def test_short_schedule_tags_are_ignored(self) -> None:
        event = minimal_event(
            kind=EventKind.CALENDAR_AVAILABILITY,
            tags=[["sch", "MO", "09:00"], ["sch", "WE", "10:00", "12:00"]],
        )

        model = CalendarAvailability.from_event(event)

        assert model.schedule_blocks == [ScheduleBlock("WE", "10:00", "12:00")]

    def test_requires_payment_only_for_positive_amount(self) -> None:
        assert minimal_availability(amount="2100").requires_payment
        assert not minimal_availability(amount="0").requires_payment
        assert not minimal_availability(amount="-5").requires_payment
        assert not minimal_availability(amount="lots").requires_payment
        assert not minimal_availability().requires_payment

    def test_booking_parameters(self) -> None:
        event = minimal_event(
            kind=EventKind.CALENDAR_AVAILABILITY,
            tags=[
                ["tzid", "Europe/Berlin"],
                ["duration", "PT1H"],
                ["buffer_before", "PT15M"],
                ["max_advance_business", "true"],
            ],
        )

        model = CalendarAvailability.from_event(event)

        assert model.time_zone == "Europe/Berlin"
        assert model.duration == "PT1H"
        assert model.buffer_before == "PT15M"
        assert model.buffer_after is None
        assert model.max_advance_business is True


class TestCalendarAvailabilityBlock:
    def test_duration_and_time_range(self) -> None:
        start = datetime(2030, 1, 1, 9, 0, tzinfo=timezone.utc)
        model = minimal_busy_block(start, start + timedelta(hours=2))

        assert model.duration == timedelta(hours=2)
        assert model.has_valid_time_range
        assert not model.has_description

    def test_inverted_block_is_readable_but_invalid(self) -> None:
        start = datetime(2030, 1, 1, 9, 0, tzinfo=timezone.utc)
        model = minimal_busy_block(start, start - timedelta(hours=1))

        assert not model.has_valid_time_range

    def test_is_active_is_half_open(self) -> None:
        start = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
        end = start + timedelta(hours=1)
        model = minimal_busy_block(start, end)

        assert model.is_active_at(start)
        assert not model.is_active_at(end)
        assert model.is_past_at(end)
        assert model.is_future_at(start - timedelta(seconds=1))
        assert not model.is_future_at(start)

    def test_relative_to_now(self) -> None:
        future = datetime.now(timezone.utc) + timedelta(days=30)
        model = minimal_busy_block(future, future + timedelta(hours=1))

        assert model.is_future
        assert not model.is_active
        assert not model.is_past

    def test_missing_end_is_never_active(self) -> None:
        event = minimal_event(
            kind=EventKind.CALENDAR_AVAILABILITY_BLOCK,
            tags=[["start", "1700000000"]],
        )

        model = CalendarAvailabilityBlock.from_event(event)

        assert model.duration is None
        assert not model.has_valid_time_range
        assert not model.is_active_at(datetime.now(timezone.utc))
