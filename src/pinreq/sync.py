"""
Sync engine — turns a paginated remote event log into batches of envelopes.

Each cycle fetches the page after the current cursor, decodes what it can,
advances the cursor and yields the batch. Nothing runs between batches: the
next fetch is only issued once the caller asks for the next batch.
"""

import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, Optional, Protocol

from pinreq.envelope import decode_envelope
from pinreq.errors import MalformedEnvelope
from pinreq.models.message import Envelope

logger = logging.getLogger(__name__)


@dataclass
class SyncPage:
    """One page of history: candidate text bodies in server order, and the continuation token."""
    bodies: list[str] = field(default_factory=list)
    next_batch: Optional[str] = None


class PageSource(Protocol):
    async def fetch(self, since: Optional[str]) -> SyncPage:
        """Fetch the page following `since` (None = first sync).

        Raises ProtocolViolation on a response that cannot be tracked.
        """
        ...


class SyncEngine:
    def __init__(self, source: PageSource, since: Optional[str] = None, name: str = ""):
        self._source = source
        self._since = since
        self._name = name

    @property
    def since(self) -> Optional[str]:
        return self._since

    async def poll_once(self) -> list[Envelope]:
        page = await self._source.fetch(self._since)
        batch = self.decode_batch(page.bodies)
        if page.next_batch is not None:
            self._since = page.next_batch
        return batch

    async def batches(self) -> AsyncIterator[list[Envelope]]:
        while True:
            yield await self.poll_once()

    def decode_batch(self, bodies: list[str]) -> list[Envelope]:
        batch: list[Envelope] = []
        for body in bodies:
            try:
                envelope = decode_envelope(body)
            except MalformedEnvelope as e:
                logger.debug("%s: parsing failed, skipping: %s", self._name, e)
                continue
            logger.info("%s: received message %r", self._name, envelope.kind)
            batch.append(envelope)
        return batch
