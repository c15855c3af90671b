"""
Property-based tests for draft and read model invariants.

These tests use Hypothesis to check that what a draft writes is exactly what
a read model reads back, and that time-range validation never leaves a draft
half-updated.
"""

from datetime import datetime, timedelta, timezone

import pytest
from hypothesis import given, strategies as st
from hypothesis.strategies import composite

from nostrcal.address import EventAddress, build_address
from nostrcal.domain import (
    CalendarAvailability,
    CalendarAvailabilityBlock,
    ScheduleBlock,
)
from nostrcal.drafts import (
    CalendarAvailabilityBlockDraft,
    CalendarAvailabilityDraft,
)
from nostrcal.validation import DomainValidationError

# Custom strategies for domain-specific types

address_part = st.text(
    alphabet=st.characters(exclude_characters=":"), min_size=1, max_size=20
)


@composite
def whole_second_datetime(draw):
    """Generate UTC datetimes without sub-second precision."""
    return draw(
        st.datetimes(
            min_value=datetime(2020, 1, 1),
            max_value=datetime(2035, 12, 31),
            timezones=st.just(timezone.utc),
        )
    ).replace(microsecond=0)


@composite
def schedule_block(draw):
    day = draw(st.sampled_from(["MO", "TU", "WE", "TH", "FR", "SA", "SU"]))
    start_hour = draw(st.integers(min_value=0, max_value=22))
    end_hour = draw(st.integers(min_value=start_hour + 1, max_value=23))
    return [day, f"{start_hour:02d}:00", f"{end_hour:02d}:00"]


@given(
    kind=st.integers(min_value=0, max_value=65535),
    pubkey=address_part,
    identifier=address_part,
)
def test_address_parse_inverts_build(kind, pubkey, identifier) -> None:
    parsed = EventAddress.parse(build_address(kind, pubkey, identifier))

    assert parsed == EventAddress(
        kind=kind, pubkey=pubkey, identifier=identifier
    )


@given(blocks=st.lists(schedule_block(), max_size=7))
def test_schedule_blocks_survive_publication(blocks) -> None:
    draft = CalendarAvailabilityDraft.create(
        calendar_address="31924:alice:cal",
        title="Hours",
        schedule_blocks=blocks,
    )

    model = CalendarAvailability.from_event(draft.to_event())

    assert model.schedule_blocks == [ScheduleBlock(*b) for b in blocks]
    assert model.schedule_block_count == len(blocks)


@given(amount=st.one_of(st.none(), st.integers(min_value=-1000, max_value=10**9)))
def test_requires_payment_iff_positive_amount(amount) -> None:
    draft = CalendarAvailabilityDraft.create(
        calendar_address="31924:alice:cal",
        title="Hours",
        schedule_blocks=[],
        amount=amount,
    )

    model = CalendarAvailability.from_event(draft.to_event())

    assert model.amount == amount
    assert model.requires_payment == (amount is not None and amount > 0)


@given(
    start=whole_second_datetime(),
    minutes=st.integers(min_value=1, max_value=7 * 24 * 60),
)
def test_valid_busy_block_is_read_back_valid(start, minutes) -> None:
    end = start + timedelta(minutes=minutes)
    draft = CalendarAvailabilityBlockDraft.create(start_time=start, end_time=end)

    model = CalendarAvailabilityBlock.from_event(draft.to_event())

    assert model.start_time == start
    assert model.end_time == end
    assert model.duration == timedelta(minutes=minutes)
    assert model.has_valid_time_range


@given(
    start=whole_second_datetime(),
    minutes=st.integers(min_value=0, max_value=24 * 60),
)
def test_rejected_time_range_leaves_draft_unchanged(start, minutes) -> None:
    draft = CalendarAvailabilityBlockDraft.create(
        start_time=start, end_time=start + timedelta(hours=1)
    )
    before = draft.tags

    with pytest.raises(DomainValidationError):
        draft.set_time_range(start, start - timedelta(minutes=minutes))

    assert draft.tags == before
