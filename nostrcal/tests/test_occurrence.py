"""
Tests for start/end computation and day membership of calendar items.
"""

import zoneinfo
from datetime import date, datetime, timedelta, timezone

from nostrcal.occurrence import (
    EnrichedEvent,
    events_on_day,
    model_start_datetime,
    sort_by_start_descending,
)
from nostrcal.tests.factories import (
    minimal_availability,
    minimal_date_based_event,
    minimal_rsvp,
    minimal_time_based_event,
)

UTC = timezone.utc
BERLIN = zoneinfo.ZoneInfo("Europe/Berlin")


def at(day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 6, day, hour, minute, tzinfo=UTC)


class TestTimeBasedOccurrence:
    def test_one_hour_meeting(self) -> None:
        model = minimal_time_based_event(
            start_time=at(10, 10), end_time=at(10, 11)
        )
        item = EnrichedEvent.regular(model)

        assert item.occurs_on_day(date(2024, 6, 10))
        assert not item.occurs_on_day(date(2024, 6, 11))
        assert not item.occurs_on_day(date(2024, 6, 9))

    def test_missing_end_falls_back_to_start(self) -> None:
        model = minimal_time_based_event(start_time=at(10, 10))
        item = EnrichedEvent.regular(model)

        assert item.end_datetime == item.start_datetime
        assert item.occurs_on_day(date(2024, 6, 10))

    def test_multi_day_event_spans_each_day(self) -> None:
        model = minimal_time_based_event(
            start_time=at(10, 18), end_time=at(12, 9)
        )
        item = EnrichedEvent.regular(model)

        assert item.occurs_on_day(date(2024, 6, 11))
        assert item.occurs_on_day(date(2024, 6, 12))
        assert not item.occurs_on_day(date(2024, 6, 13))

    def test_lower_bound_is_padded_by_one_day(self) -> None:
        # A moment less than a day before the start counts as occurring.
        model = minimal_time_based_event(
            start_time=at(10, 10), end_time=at(10, 11)
        )
        item = EnrichedEvent.regular(model)

        assert item.occurs_on_day(at(9, 12))
        assert not item.occurs_on_day(at(9, 9))

    def test_missing_start_never_occurs(self) -> None:
        model = minimal_availability()
        item = EnrichedEvent.regular(model)

        assert item.start_datetime is None
        assert not item.occurs_on_day(date(2024, 6, 10))


class TestDateBasedOccurrence:
    def test_single_day_event_lasts_one_day(self) -> None:
        model = minimal_date_based_event(start_date=date(2024, 6, 10))
        item = EnrichedEvent.regular(model)

        assert item.start_datetime == at(10, 0)
        assert item.end_datetime == at(11, 0)
        assert item.occurs_on_day(date(2024, 6, 10))
        assert not item.occurs_on_day(date(2024, 6, 11))
        assert not item.occurs_on_day(date(2024, 6, 9))

    def test_end_date_is_exclusive(self) -> None:
        model = minimal_date_based_event(
            start_date=date(2024, 6, 10), end_date=date(2024, 6, 12)
        )
        item = EnrichedEvent.regular(model)

        assert item.occurs_on_day(date(2024, 6, 11))
        assert not item.occurs_on_day(date(2024, 6, 12))

    def test_starts_at_local_midnight(self) -> None:
        model = minimal_date_based_event(start_date=date(2024, 6, 10))
        item = EnrichedEvent.regular(model, tz=BERLIN)

        assert item.start_datetime == datetime(2024, 6, 10, tzinfo=BERLIN)
        assert item.start_datetime == at(9, 22)
        assert item.occurs_on_day(date(2024, 6, 10))


class TestRSVPOccurrence:
    def test_unresolved_rsvp_uses_its_creation_time(self) -> None:
        rsvp = minimal_rsvp(
            event_address="31923:bob:meet1", created_at=1_718_000_000
        )
        item = EnrichedEvent.rsvp(rsvp, None)

        assert item.parent_event is None
        assert item.effective_event == rsvp
        assert item.start_datetime == rsvp.created_at
        assert item.occurs_on_day(rsvp.created_at.date())

    def test_resolved_rsvp_uses_parent_times(self) -> None:
        parent = minimal_time_based_event(
            title="Team sync", start_time=at(20, 10), end_time=at(20, 11)
        )
        rsvp = minimal_rsvp(created_at=1_718_000_000)
        item = EnrichedEvent.rsvp(rsvp, parent)

        assert item.is_rsvp
        assert item.effective_event == parent
        assert item.title == "Team sync"
        assert item.start_datetime == at(20, 10)
        assert item.occurs_on_day(date(2024, 6, 20))
        assert not item.occurs_on_day(rsvp.created_at.date())

    def test_resolved_parent_without_start_falls_back(self) -> None:
        parent = minimal_availability()
        rsvp = minimal_rsvp(created_at=1_718_000_000)
        item = EnrichedEvent.rsvp(rsvp, parent)

        assert item.start_datetime == rsvp.created_at


def test_events_on_day_filters_and_keeps_order() -> None:
    first = EnrichedEvent.regular(
        minimal_time_based_event(
            identifier="a", start_time=at(10, 9), end_time=at(10, 10)
        )
    )
    other_day = EnrichedEvent.regular(
        minimal_time_based_event(
            identifier="b", start_time=at(15, 9), end_time=at(15, 10)
        )
    )
    second = EnrichedEvent.regular(
        minimal_date_based_event(start_date=date(2024, 6, 10))
    )

    assert events_on_day([first, other_day, second], date(2024, 6, 10)) == [
        first,
        second,
    ]


def test_model_start_datetime_converts_zone() -> None:
    model = minimal_time_based_event(start_time=at(10, 10))

    start = model_start_datetime(model, BERLIN)

    assert start == at(10, 10)
    assert start.utcoffset() == timedelta(hours=2)


def test_sort_by_start_descending_puts_undated_last() -> None:
    items = [("a", at(1, 0)), ("b", None), ("c", at(3, 0)), ("d", at(3, 0))]

    ordered = sort_by_start_descending(items, lambda item: item[1])

    assert [name for name, _ in ordered] == ["c", "d", "a", "b"]
