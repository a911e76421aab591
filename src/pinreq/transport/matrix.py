"""
Matrix channel — pinreq envelopes as plain-text messages in one Matrix room.

Lifecycle: unauthenticated -> logged in (settings.session) -> room resolved.
send() and listen() need a session; the room id is looked up once per
instance and cached.
"""

import hashlib
import json
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Iterator, Optional
from urllib.parse import quote

import httpx

from pinreq.channel import ReqChannel
from pinreq.envelope import encode_envelope
from pinreq.errors import NotAuthenticated, ProtocolViolation, Rejected
from pinreq.models.message import Envelope
from pinreq.models.settings import MatrixChannelSettings, Session
from pinreq.sync import SyncEngine, SyncPage
from pinreq.transport.http import HttpClient

logger = logging.getLogger(__name__)

DEFAULT_HOMESERVER = "https://matrix.org"
DEFAULT_ROOM_ALIAS = "#ipfs-pinreq:matrix.org"
MESSAGE_EVENT_TYPE = "m.room.message"
TEXT_MSGTYPE = "m.text"
# Extra read time on top of the server-side long-poll window
SYNC_READ_GRACE_S = 30.0


@contextmanager
def scoped_secret(secret: bytearray) -> Iterator[bytearray]:
    """Lend out a secret buffer and zero it on every exit path."""
    try:
        yield secret
    finally:
        for i in range(len(secret)):
            secret[i] = 0


def transaction_id(body: str) -> str:
    """Idempotency token for one send: unique per content and moment."""
    stamp = datetime.now(timezone.utc).isoformat()
    return hashlib.sha256(f"{body}:{stamp}".encode("utf-8")).hexdigest()


def build_sync_filter(room_id: str, limit: int) -> dict[str, Any]:
    """Only the target room's text messages; everything else suppressed."""
    return {
        "account_data": {"not_types": ["*"]},
        "presence": {"not_types": ["*"]},
        "event_fields": ["type", "content"],
        "room": {
            "rooms": [room_id],
            "account_data": {"not_types": ["*"]},
            "ephemeral": {"not_types": ["*"]},
            "state": {"not_types": ["*"]},
            "timeline": {"types": [MESSAGE_EVENT_TYPE], "limit": limit},
        },
    }


def _object(value: Any, what: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ProtocolViolation(f"Expected `{what}` to be an object, got {type(value).__name__}")
    return value


def parse_sync_response(raw: Any, room_id: str) -> SyncPage:
    """Extract the room's text message bodies and the continuation token.

    A missing room entry means no new activity. A present room entry without
    `next_batch` is a protocol violation.
    """
    if not isinstance(raw, dict):
        raise ProtocolViolation(f"Sync response is not an object: {raw!r:.200}")

    next_batch = raw.get("next_batch")
    if next_batch is not None and not isinstance(next_batch, str):
        raise ProtocolViolation(f"`next_batch` must be a string, got {next_batch!r}")

    join = _object(_object(raw.get("rooms"), "rooms").get("join"), "rooms.join")
    room = join.get(room_id)
    if room is None:
        logger.debug("%s: no entry in sync response, nothing new", room_id)
        return SyncPage([], next_batch)
    room = _object(room, f"rooms.join.{room_id}")

    if next_batch is None:
        raise ProtocolViolation(f"{room_id}: sync response has room data but no `next_batch`")

    events = _object(room.get("timeline"), "timeline").get("events") or []
    if not isinstance(events, list):
        raise ProtocolViolation(f"{room_id}: `timeline.events` is not a list")

    bodies: list[str] = []
    for event in events:
        if not isinstance(event, dict) or event.get("type") != MESSAGE_EVENT_TYPE:
            continue
        content = event.get("content")
        if not isinstance(content, dict) or content.get("msgtype") != TEXT_MSGTYPE:
            continue
        body = content.get("body")
        if isinstance(body, str):
            bodies.append(body)
    return SyncPage(bodies, next_batch)


class MatrixChannel(ReqChannel):
    def __init__(
        self,
        settings: MatrixChannelSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.name = settings.name
        token = settings.session.access_token if settings.session else None
        self._http = HttpClient(settings.homeserver, token=token, transport=transport)
        self._room_id: Optional[str] = None
        self._cursor: Optional[str] = settings.since

    @classmethod
    def new(
        cls,
        name: str,
        homeserver: str = DEFAULT_HOMESERVER,
        room_alias: str = DEFAULT_ROOM_ALIAS,
        initial_backlog_size: int = 100,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "MatrixChannel":
        settings = MatrixChannelSettings(
            name=name, homeserver=homeserver, room_alias=room_alias,
            initial_backlog_size=initial_backlog_size,
        )
        return cls(settings, transport=transport)

    @property
    def session(self) -> Optional[Session]:
        return self.settings.session

    @property
    def room_id(self) -> Optional[str]:
        return self._room_id

    @property
    def cursor(self) -> Optional[str]:
        return self._cursor

    async def login(self, username: str, secret: bytearray) -> Session:
        """Exchange a password for a session, replacing any present one.

        The password buffer is zeroed once the exchange is over, whatever the outcome.
        """
        with scoped_secret(secret) as password:
            resp = await self._http.post(
                "/login",
                {
                    "type": "m.login.password",
                    "identifier": {"type": "m.id.user", "user": username},
                    "password": password.decode("utf-8"),
                    "initial_device_display_name": "pinreq",
                },
                authenticated=False,
            )
        try:
            session = Session.model_validate(resp)
        except ValueError:
            raise Rejected(f"Login response lacks a session: {resp!r}")
        self.settings.session = session
        self._http.set_token(session.access_token)
        logger.info("%s: logged in as %s", self.name, session.user_id)
        return session

    async def resolve_room(self) -> str:
        """Dereference the configured alias to a room id, once."""
        if self._room_id is not None:
            return self._room_id
        self._require_session()
        resp = await self._http.get(f"/directory/room/{quote(self.settings.room_alias, safe='')}")
        room_id = resp.get("room_id")
        if not isinstance(room_id, str) or not room_id:
            raise Rejected(f"Alias {self.settings.room_alias} did not resolve to a room: {resp!r}")
        logger.debug("%s: %s is %s", self.name, self.settings.room_alias, room_id)
        self._room_id = room_id
        return room_id

    async def send(self, envelope: Envelope) -> None:
        self._require_session()
        room_id = await self.resolve_room()
        body = encode_envelope(envelope)
        resp = await self._http.put(
            f"/rooms/{quote(room_id, safe='')}/send/{MESSAGE_EVENT_TYPE}/{transaction_id(body)}",
            {"msgtype": TEXT_MSGTYPE, "body": body},
        )
        if not isinstance(resp.get("event_id"), str):
            raise Rejected(f"Send response lacks an event id: {resp!r}")
        logger.debug("%s: sent %r as %s", self.name, envelope.kind, resp["event_id"])

    async def fetch(self, since: Optional[str]) -> SyncPage:
        """One /sync round trip, for the sync engine."""
        room_id = await self.resolve_room()
        params = {
            "filter": json.dumps(build_sync_filter(room_id, self.settings.initial_backlog_size)),
            "full_state": "false",
            "timeout": str(self.settings.poll_timeout_ms),
        }
        if since is not None:
            params["since"] = since
        read_timeout = self.settings.poll_timeout_ms / 1000 + SYNC_READ_GRACE_S
        try:
            resp = await self._http.get("/sync", params=params, timeout=httpx.Timeout(read_timeout, connect=10.0))
        except Rejected as e:
            if e.status_code is not None and e.status_code < 400:
                raise ProtocolViolation(str(e))
            raise
        return parse_sync_response(resp, room_id)

    def listen(self) -> AsyncIterator[list[Envelope]]:
        self._require_session()
        return self._listen()

    async def _listen(self) -> AsyncIterator[list[Envelope]]:
        await self.resolve_room()
        engine = SyncEngine(self, since=self._cursor, name=self.name)
        async for batch in engine.batches():
            self._cursor = engine.since
            yield batch

    def _require_session(self) -> Session:
        if self.settings.session is None:
            raise NotAuthenticated(self.name)
        return self.settings.session

    async def close(self) -> None:
        await self._http.close()
