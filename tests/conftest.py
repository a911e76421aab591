"""Shared fixtures: signing identities and a fake Matrix homeserver."""

import json
from typing import Any, Optional
from urllib.parse import parse_qs

import httpx
import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from pinreq import MatrixChannel, MatrixChannelSettings, Session, Signer, Verifier

HOMESERVER = "https://matrix.example.org"
ROOM_ALIAS = "#ipfs-pinreq:example.org"
ROOM_ID = "!abcdef:example.org"


class FakeHomeserver:
    """Minimal Matrix client-server API behind an httpx.MockTransport."""

    def __init__(self) -> None:
        self.sync_responses: list[Any] = []
        self.sync_params: list[dict[str, str]] = []
        self.sent: list[dict[str, Any]] = []
        self.txn_ids: list[str] = []
        self.login_bodies: list[dict[str, Any]] = []
        self.alias_lookups = 0
        self.send_status = 200
        self.login_status = 200
        # Paths whose requests fail before any response, as on a refused connection
        self.down_paths: tuple[str, ...] = ()
        self.transport = httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        assert path.startswith("/_matrix/client/v3/")
        path = path[len("/_matrix/client/v3"):]
        if path.startswith(self.down_paths):
            raise httpx.ConnectError("connection refused", request=request)

        if request.method == "POST" and path == "/login":
            self.login_bodies.append(json.loads(request.content))
            if self.login_status != 200:
                return httpx.Response(
                    self.login_status, json={"errcode": "M_FORBIDDEN", "error": "Invalid password"},
                )
            return httpx.Response(200, json={
                "access_token": "syt_token", "user_id": "@alice:example.org", "device_id": "DEV1",
            })

        if request.headers.get("Authorization") != "Bearer syt_token":
            return httpx.Response(401, json={"errcode": "M_MISSING_TOKEN", "error": "Missing access token"})

        if request.method == "GET" and path.startswith("/directory/room/"):
            self.alias_lookups += 1
            if path[len("/directory/room/"):] != ROOM_ALIAS:
                return httpx.Response(404, json={"errcode": "M_NOT_FOUND", "error": "Room alias not found"})
            return httpx.Response(200, json={"room_id": ROOM_ID, "servers": ["example.org"]})

        if request.method == "PUT" and path.startswith(f"/rooms/{ROOM_ID}/send/m.room.message/"):
            self.txn_ids.append(path.rsplit("/", 1)[1])
            self.sent.append(json.loads(request.content))
            if self.send_status != 200:
                return httpx.Response(self.send_status, json={"errcode": "M_FORBIDDEN", "error": "Not in room"})
            return httpx.Response(200, json={"event_id": f"$event{len(self.sent)}"})

        if request.method == "GET" and path == "/sync":
            self.sync_params.append({k: v[0] for k, v in parse_qs(request.url.query.decode()).items()})
            body = self.sync_responses.pop(0)
            if isinstance(body, httpx.Response):
                return body
            return httpx.Response(200, json=body)

        return httpx.Response(404, json={"errcode": "M_UNRECOGNIZED", "error": "Unrecognized request"})


def text_event(body: str, msgtype: str = "m.text") -> dict[str, Any]:
    return {"type": "m.room.message", "content": {"msgtype": msgtype, "body": body}}


def sync_response(events: list[dict[str, Any]], next_batch: Optional[str], room_id: str = ROOM_ID) -> dict[str, Any]:
    body: dict[str, Any] = {"rooms": {"join": {room_id: {"timeline": {"events": events}}}}}
    if next_batch is not None:
        body["next_batch"] = next_batch
    return body


@pytest.fixture
def signer() -> Signer:
    return Signer(Ed25519PrivateKey.generate(), identity="alice")


@pytest.fixture
def stranger() -> Signer:
    return Signer(Ed25519PrivateKey.generate(), identity="mallory")


@pytest.fixture
def verifier(signer: Signer) -> Verifier:
    return Verifier({"alice": signer.public_key})


@pytest.fixture
def homeserver() -> FakeHomeserver:
    return FakeHomeserver()


@pytest.fixture
def settings() -> MatrixChannelSettings:
    return MatrixChannelSettings(
        name="main",
        homeserver=HOMESERVER,
        room_alias=ROOM_ALIAS,
        initial_backlog_size=50,
        poll_timeout_ms=0,
        session=Session(access_token="syt_token", user_id="@alice:example.org"),
    )


@pytest.fixture
def channel(settings: MatrixChannelSettings, homeserver: FakeHomeserver) -> MatrixChannel:
    return MatrixChannel(settings, transport=homeserver.transport)
