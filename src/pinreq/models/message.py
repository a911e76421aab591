"""
Pinreq messages — the request payloads and the signed envelope carrying them.

Wire form of a kind is externally tagged: {"Pin": "<resource_id>"}.
"""

import json
from typing import Any, ClassVar, Union

from pydantic import BaseModel, ConfigDict, Field

from pinreq.errors import MalformedEnvelope


class _Kind(BaseModel):
    model_config = ConfigDict(frozen=True)

    tag: ClassVar[str] = ""
    resource_id: str = Field(min_length=1)

    def __init__(self, resource_id: str, **data: Any):
        super().__init__(resource_id=resource_id, **data)

    def __repr__(self) -> str:
        return f"{self.tag}({self.resource_id!r})"


class Pin(_Kind):
    """"Please pin this for me"."""

    tag: ClassVar[str] = "Pin"


class Confirm(_Kind):
    """"I have pinned this"."""

    tag: ClassVar[str] = "Confirm"


MessageKind = Union[Pin, Confirm]

KINDS: dict[str, type[_Kind]] = {Pin.tag: Pin, Confirm.tag: Confirm}


class Envelope(BaseModel):
    """A message kind plus a detached, armored signature over its canonical bytes."""

    model_config = ConfigDict(frozen=True)

    kind: MessageKind
    signature: str


def kind_to_wire(kind: MessageKind) -> dict[str, str]:
    return {kind.tag: kind.resource_id}


def kind_from_wire(raw: Any) -> MessageKind:
    if not isinstance(raw, dict) or len(raw) != 1:
        raise MalformedEnvelope(f"Message kind must be a single-key object, got {raw!r}")
    (tag, arg), = raw.items()
    kind_cls = KINDS.get(tag)
    if kind_cls is None:
        raise MalformedEnvelope(f"Unknown message kind {tag!r}")
    if not isinstance(arg, str):
        raise MalformedEnvelope(f"Argument of {tag} must be a string, got {type(arg).__name__}")
    if not arg:
        raise MalformedEnvelope(f"Argument of {tag} must not be empty")
    return kind_cls(arg)  # type: ignore[return-value]


def canonical_bytes(kind: MessageKind) -> bytes:
    """The exact bytes a signature is computed over."""
    return json.dumps(
        kind_to_wire(kind), sort_keys=True, separators=(",", ":"), ensure_ascii=False,
    ).encode("utf-8")
