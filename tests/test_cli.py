"""CLI smoke tests."""

import asyncio
import json

from click.testing import CliRunner

from pinreq import MatrixChannel, Pin, ProtocolViolation, encode_envelope, sign
from pinreq.cli.main import main
from pinreq.signing import decode_public_key
from pinreq.sync import SyncPage

from conftest import HOMESERVER, ROOM_ALIAS, ROOM_ID


def write_config(tmp_path, **extra):
    path = tmp_path / "pinreq.json"
    cfg = {
        "signing_key": str(tmp_path / "key.pem"),
        "matrix": [{"name": "roomA", "homeserver": HOMESERVER, "room_alias": ROOM_ALIAS}],
        **extra,
    }
    path.write_text(json.dumps(cfg))
    return path


def test_version():
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_request_needs_channel_selection(tmp_path):
    path = write_config(tmp_path)
    result = CliRunner().invoke(main, ["-c", str(path), "request", "bafy123"])
    assert result.exit_code == 2
    assert "--all" in result.output


def test_request_unknown_channel(tmp_path):
    path = write_config(tmp_path)
    result = CliRunner().invoke(main, ["-c", str(path), "request", "bafy123", "-C", "roomA,roomZ"])
    assert result.exit_code == 1
    assert "roomZ" in result.output


def test_request_without_session(tmp_path):
    path = write_config(tmp_path)
    CliRunner().invoke(main, ["-c", str(path), "keygen"])
    result = CliRunner().invoke(main, ["-c", str(path), "request", "bafy123", "--all"])
    assert result.exit_code == 1
    assert "no session" in result.output


def test_duplicate_channels_refused(tmp_path):
    entry = {"name": "roomA", "homeserver": HOMESERVER, "room_alias": ROOM_ALIAS}
    path = tmp_path / "pinreq.json"
    path.write_text(json.dumps({"matrix": [entry, entry]}))
    result = CliRunner().invoke(main, ["-c", str(path), "listen", "--all"])
    assert result.exit_code == 1
    assert "roomA" in result.output


def test_keygen(tmp_path):
    path = write_config(tmp_path)
    result = CliRunner().invoke(main, ["-c", str(path), "keygen"])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "key.pem").exists()
    decode_public_key(result.output.strip().splitlines()[-1])

    again = CliRunner().invoke(main, ["-c", str(path), "keygen"])
    assert again.exit_code == 1


def test_listen_failure_stops_only_its_channel(tmp_path, monkeypatch, signer):
    session = {"access_token": "syt_token", "user_id": "@alice:example.org"}
    path = write_config(tmp_path, matrix=[
        {"name": "bad", "homeserver": HOMESERVER, "room_alias": ROOM_ALIAS, "session": session},
        {"name": "good", "homeserver": HOMESERVER, "room_alias": ROOM_ALIAS, "session": session},
    ])
    polls = {"bad": 0, "good": 0}

    async def resolve_room(self):
        return ROOM_ID

    async def fetch(self, since):
        polls[self.name] += 1
        await asyncio.sleep(0.01)
        if self.name == "bad":
            raise ProtocolViolation("sync went wrong")
        if polls["good"] > 5:
            raise ProtocolViolation("good is done")
        body = encode_envelope(sign(Pin(f"bafy{polls['good']}"), signer))
        return SyncPage([body], f"s{polls['good']}")

    monkeypatch.setattr(MatrixChannel, "resolve_room", resolve_room)
    monkeypatch.setattr(MatrixChannel, "fetch", fetch)

    result = CliRunner().invoke(main, ["-c", str(path), "listen", "--all"])
    assert result.exit_code == 1
    assert polls == {"bad": 1, "good": 6}
    assert "bad: sync went wrong" in result.output
    assert "good: good is done" in result.output
    for n in range(1, 6):
        assert f"Pin('bafy{n}')" in result.output


def test_request_repeated_channel_sends_once(tmp_path, monkeypatch):
    session = {"access_token": "syt_token", "user_id": "@alice:example.org"}
    path = write_config(tmp_path, matrix=[
        {"name": "roomA", "homeserver": HOMESERVER, "room_alias": ROOM_ALIAS, "session": session},
    ])
    CliRunner().invoke(main, ["-c", str(path), "keygen"])
    sent = []

    async def send(self, envelope):
        sent.append((self.name, envelope.kind))

    monkeypatch.setattr(MatrixChannel, "send", send)

    result = CliRunner().invoke(main, ["-c", str(path), "request", "bafy123", "-C", "roomA,roomA", "-C", "roomA"])
    assert result.exit_code == 0, result.output
    assert sent == [("roomA", Pin("bafy123"))]
