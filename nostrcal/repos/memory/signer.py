"""
Signer for tests and offline use.
"""

import logging
from typing import Optional

from nostrcal.domain import Event, compute_event_id
from nostrcal.repositories import SignerRepository
from nostrcal.validation import SigningError

logger = logging.getLogger(__name__)

DUMMY_PUBKEY = "f" * 64
DUMMY_SIGNATURE = "0" * 128


class DummySigner(SignerRepository):
    """
    Fills in the author and the real event id, but attaches a placeholder
    signature. Relays will reject these events; local storage will not.

    Passing ``fail_with`` makes every ``sign`` call raise SigningError with
    that message, which stands in for a user cancelling a signer app.
    """

    def __init__(
        self, pubkey: str = DUMMY_PUBKEY, fail_with: Optional[str] = None
    ):
        self.pubkey = pubkey
        self.fail_with = fail_with

    async def get_public_key(self) -> str:
        return self.pubkey

    async def sign(self, event: Event) -> Event:
        if self.fail_with is not None:
            logger.warning(
                "Signing refused", extra={"reason": self.fail_with}
            )
            raise SigningError(self.fail_with)

        event_id = compute_event_id(
            self.pubkey, event.created_at, event.kind, event.tags, event.content
        )
        return Event(
            id=event_id,
            pubkey=self.pubkey,
            created_at=event.created_at,
            kind=event.kind,
            tags=event.tags,
            content=event.content,
            sig=DUMMY_SIGNATURE,
        )
