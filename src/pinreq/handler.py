"""
Acting on received envelopes: verify, then pin trusted requests.
"""

import logging
from typing import Optional

from pinreq.channel import ReqChannel
from pinreq.envelope import sign, verify
from pinreq.errors import PinFailed, PinreqError
from pinreq.models.message import Confirm, Envelope, MessageKind, Pin
from pinreq.pinning import IpfsPinner
from pinreq.signing import Signer, Valid, VerificationOutcome, Verifier

logger = logging.getLogger(__name__)


class RequestHandler:
    """Verifies each envelope of a batch; with a pinner, pins valid Pin requests and confirms them.

    Every valid Pin is acted on, including repeats for the same resource id.
    """

    def __init__(
        self,
        channel: ReqChannel,
        verifier: Verifier,
        signer: Optional[Signer] = None,
        pinner: Optional[IpfsPinner] = None,
    ):
        self._channel = channel
        self._verifier = verifier
        self._signer = signer
        self._pinner = pinner

    async def handle(self, batch: list[Envelope]) -> list[tuple[MessageKind, VerificationOutcome]]:
        results = []
        for envelope in batch:
            kind, outcome = verify(envelope, self._verifier)
            results.append((kind, outcome))
            if not isinstance(outcome, Valid):
                logger.warning("%s: ignoring %r: %s", self._channel.name, kind, outcome.reason)
                continue
            logger.info("%s: %r signed by %s", self._channel.name, kind, outcome.signer)
            if isinstance(kind, Pin) and self._pinner is not None:
                await self._pin(kind)
            elif isinstance(kind, Confirm):
                logger.debug("%s: %s confirmed %s", self._channel.name, outcome.signer, kind.resource_id)
        return results

    async def _pin(self, kind: Pin) -> None:
        try:
            await self._pinner.pin_add(kind.resource_id)  # type: ignore[union-attr]
        except PinFailed as e:
            logger.error("%s: could not pin %s: %s", self._channel.name, kind.resource_id, e)
            return
        if self._signer is None:
            return
        try:
            await self._channel.send(sign(Confirm(kind.resource_id), self._signer))
        except PinreqError as e:
            logger.error("%s: could not confirm %s: %s", self._channel.name, kind.resource_id, e)
