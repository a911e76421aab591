"""
Envelope signing, verification and wire encoding.
"""

import json
from typing import Any

from pydantic import ValidationError

from pinreq.errors import MalformedEnvelope
from pinreq.models.message import Envelope, MessageKind, canonical_bytes, kind_from_wire, kind_to_wire
from pinreq.signing import Signer, VerificationOutcome, Verifier


def sign(kind: MessageKind, signer: Signer) -> Envelope:
    """Sign `kind` and wrap it. Raises SigningFailed without a usable identity."""
    return Envelope(kind=kind, signature=signer.sign_detached(canonical_bytes(kind)))


def verify(envelope: Envelope, verifier: Verifier) -> tuple[MessageKind, VerificationOutcome]:
    """Check the envelope's signature against the re-serialized kind.

    The kind is always handed back; what to do with untrusted requests is up to
    the caller.
    """
    return envelope.kind, verifier.verify_detached(canonical_bytes(envelope.kind), envelope.signature)


def encode_envelope(envelope: Envelope) -> str:
    return json.dumps({"kind": kind_to_wire(envelope.kind), "signature": envelope.signature})


def decode_envelope(text: str) -> Envelope:
    try:
        raw: Any = json.loads(text)
    except (TypeError, ValueError) as e:
        raise MalformedEnvelope(f"Not JSON: {e}")
    if not isinstance(raw, dict) or set(raw) != {"kind", "signature"}:
        raise MalformedEnvelope("Expected an object with exactly `kind` and `signature`")
    if not isinstance(raw["signature"], str):
        raise MalformedEnvelope("`signature` must be a string")
    try:
        return Envelope(kind=kind_from_wire(raw["kind"]), signature=raw["signature"])
    except ValidationError as e:
        raise MalformedEnvelope(str(e))
