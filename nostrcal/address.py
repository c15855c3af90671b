"""
Replaceable event addresses.

A parameterized replaceable event is identified by the triple
``kind:pubkey:identifier`` rather than by its content hash, so that later
versions published by the same author supersede earlier ones. Addresses are
used for cross references: availability templates point at their calendar
and RSVPs point at the event they answer.
"""

import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

ADDRESS_SEPARATOR = ":"


class EventAddress(BaseModel):
    """A parsed ``kind:pubkey:identifier`` triple."""

    model_config = ConfigDict(frozen=True)

    kind: int = Field(..., description="Kind of the addressed event")
    pubkey: str = Field(..., description="Author of the addressed event")
    identifier: str = Field(
        ..., description="Value of the addressed event's 'd' tag"
    )

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["EventAddress"]:
        """
        Parse an address string.

        Returns None unless the string splits into exactly three non-empty
        colon-delimited parts and the first part is an integer. The pubkey
        is not checked here; that belongs to the signer.
        """
        if not value:
            return None
        parts = value.split(ADDRESS_SEPARATOR)
        if len(parts) != 3 or not all(parts):
            logger.debug(f"Malformed event address: {value!r}")
            return None
        try:
            kind = int(parts[0])
        except ValueError:
            logger.debug(f"Event address has non-integer kind: {value!r}")
            return None
        return cls(kind=kind, pubkey=parts[1], identifier=parts[2])

    def __str__(self) -> str:
        return build_address(self.kind, self.pubkey, self.identifier)


def build_address(kind: int, pubkey: str, identifier: str) -> str:
    """Join the three address components."""
    return ADDRESS_SEPARATOR.join([str(kind), pubkey, identifier])
