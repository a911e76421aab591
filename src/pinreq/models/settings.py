"""
Persisted channel settings.
"""

from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, Field, field_validator

from pinreq.channel import ChannelSettings
from pinreq.errors import ProvisioningError

if TYPE_CHECKING:
    from pinreq.transport.matrix import MatrixChannel


class Session(BaseModel):
    """Matrix login session, filled by a successful login."""
    access_token: str
    user_id: str
    device_id: Optional[str] = None


class MatrixChannelSettings(ChannelSettings):
    homeserver: str
    room_alias: str
    initial_backlog_size: int = Field(default=100, ge=0)  # timeline limit for the first sync
    poll_timeout_ms: int = Field(default=30_000, ge=0)    # server-side long-poll wait
    session: Optional[Session] = None
    since: Optional[str] = None                           # saved sync cursor, None = first sync

    @field_validator("homeserver")
    @classmethod
    def _check_homeserver(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"homeserver must be an http(s) URL, got {v!r}")
        return v.rstrip("/")

    @field_validator("room_alias")
    @classmethod
    def _check_alias(cls, v: str) -> str:
        if not v.startswith("#") or ":" not in v:
            raise ValueError(f"room alias must look like #room:server, got {v!r}")
        return v

    def to_channel(self) -> "MatrixChannel":
        if self.session is None:
            raise ProvisioningError(
                f"Matrix channel {self.name!r} has no session, run `pinreq gen-matrix` to log in"
            )
        from pinreq.transport.matrix import MatrixChannel
        return MatrixChannel(self.model_copy(deep=True))
