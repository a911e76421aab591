"""
Request channel contract — any medium capable of carrying pinreq envelopes.
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator, Optional

from pydantic import BaseModel, Field

from pinreq.models.message import Envelope


class ReqChannel(ABC):
    """A transport for pinreq envelopes."""

    name: str

    @abstractmethod
    async def send(self, envelope: Envelope) -> None:
        """Deliver one envelope, best effort. Raises ChannelError on refusal."""

    @abstractmethod
    def listen(self) -> AsyncIterator[list[Envelope]]:
        """Yield successive (possibly empty) batches of newly observed envelopes.

        Runs until the caller stops consuming or a fatal error is raised.
        Envelopes that fail to decode are logged and left out of the batch.
        """

    @property
    def cursor(self) -> Optional[str]:
        """Last sync position reached by listen(), if the medium has one."""
        return None

    async def close(self) -> None:
        pass


class ChannelSettings(BaseModel, ABC):
    """Persisted settings shared by every transport; `name` is unique per config."""

    name: str = Field(min_length=1)

    @abstractmethod
    def to_channel(self) -> ReqChannel:
        """Turn freshly loaded settings into a live channel."""
