"""
Validation rules and error types for calendar drafts.

Read models never validate: they reflect whatever was received. Drafts call
into the rules below from the specific setter that could produce an invalid
state, and the setter leaves the draft unchanged when a rule fails.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)


class NostrCalError(Exception):
    """Base class for errors raised by this package."""

    pass


class DomainValidationError(NostrCalError, ValueError):
    """Raised when a draft mutation would break a field invariant."""

    pass


class DraftFinalizedError(NostrCalError):
    """Raised when a draft is mutated after it was handed to a signer."""

    pass


class SigningError(NostrCalError):
    """Raised by a signer when a draft could not be signed."""

    pass


class PublishError(NostrCalError):
    """Raised when a signed event could not be saved or broadcast."""

    pass


class ConfigurationError(NostrCalError):
    """Raised when the settings file exists but cannot be used."""

    pass


def ensure_timezone_aware(value: datetime) -> datetime:
    """Return an aware datetime, treating naive values as UTC."""
    if value.tzinfo is None:
        logger.warning(f"Converting naive datetime {value} to UTC")
        return value.replace(tzinfo=timezone.utc)
    return value


def to_unix_seconds(value: datetime) -> int:
    """Convert a datetime to whole Unix seconds, dropping sub-seconds."""
    return int(ensure_timezone_aware(value).timestamp())


def validate_time_range(start: datetime, end: datetime) -> None:
    """
    Ensure a busy interval is non-empty once stored as whole seconds.

    Raises:
        DomainValidationError: If ``end`` is not strictly after ``start``.
    """
    if to_unix_seconds(end) <= to_unix_seconds(start):
        logger.debug(
            "Rejected time range",
            extra={"start": start.isoformat(), "end": end.isoformat()},
        )
        raise DomainValidationError("End time must be after start time")


def validate_extended_end(
    current_start: Optional[datetime], new_end: datetime
) -> None:
    """
    Ensure a new end time does not precede the current start time.

    Raises:
        DomainValidationError: If ``new_end`` is before ``current_start``.
    """
    if current_start is None:
        return
    if to_unix_seconds(new_end) < to_unix_seconds(current_start):
        raise DomainValidationError("New end time must be after start time")