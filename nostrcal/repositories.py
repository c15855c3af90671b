"""
Defines the repository protocols the calendar core depends on.

Storage, relay networking and signing live outside the core. The core only
needs to query events matching a filter, hand a draft envelope to a signer,
and save or publish signed events.
"""

from enum import Enum
from typing import Dict, List, Optional, Protocol, Sequence, Set, runtime_checkable

from pydantic import BaseModel, Field

from .domain import CalendarModel, Event


class QuerySource(str, Enum):
    """Where a query may look for events."""

    LOCAL = "local"
    LOCAL_AND_REMOTE = "local_and_remote"


class EventFilter(BaseModel):
    """
    Selects events by id, kind, author and tag values.

    Tag constraints are keyed by ``#`` plus the tag name, for example
    ``{"#d": {"cal-work"}}``; an event matches when any of its values for
    that tag is in the set. Empty constraints match everything.
    """

    ids: Optional[Set[str]] = None
    kinds: Optional[Set[int]] = None
    authors: Optional[Set[str]] = None
    tags: Dict[str, Set[str]] = Field(default_factory=dict)
    limit: Optional[int] = Field(None, ge=0)

    def matches(self, event: Event) -> bool:
        if self.ids is not None and event.id not in self.ids:
            return False
        if self.kinds is not None and event.kind not in self.kinds:
            return False
        if self.authors is not None and event.pubkey not in self.authors:
            return False
        for key, wanted in self.tags.items():
            values = event.get_tag_set_values(key.lstrip("#"))
            if not wanted.intersection(values):
                return False
        return True


@runtime_checkable
class EventRepository(Protocol):
    """
    Protocol for local storage backed by relays.

    Query results are typed calendar models, newest first. Results are
    eventually consistent and may hold fewer than ``limit`` events.
    """

    async def query(
        self,
        event_filter: EventFilter,
        source: QuerySource = QuerySource.LOCAL_AND_REMOTE,
    ) -> List[CalendarModel]:
        """Return models for the stored events matching the filter."""
        ...

    async def save(self, events: Sequence[Event]) -> None:
        """Persist signed events locally."""
        ...

    async def publish(self, events: Sequence[Event]) -> None:
        """Broadcast signed events to relays."""
        ...


@runtime_checkable
class SignerRepository(Protocol):
    """
    Protocol for a signer holding the user's key, such as a remote signer
    app. Implementations raise SigningError when the user cancels or the
    signer is unavailable.
    """

    async def get_public_key(self) -> str:
        """Return the hex public key events will be signed with."""
        ...

    async def sign(self, event: Event) -> Event:
        """Return a signed copy of an unsigned envelope."""
        ...
