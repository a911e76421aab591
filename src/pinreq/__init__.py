"""
pinreq — authenticated IPFS pin requests over group chat.

Participants of a Matrix room announce content they want pinned; every
request carries a detached Ed25519 signature so listeners can check who
asked before acting.
"""

__version__ = "0.1.0"

from pinreq.channel import ChannelSettings, ReqChannel
from pinreq.envelope import decode_envelope, encode_envelope, sign, verify
from pinreq.errors import (
    ChannelError,
    ConfigError,
    DuplicateChannelName,
    MalformedEnvelope,
    NotAuthenticated,
    PinFailed,
    PinreqError,
    ProtocolViolation,
    ProvisioningError,
    Rejected,
    SigningFailed,
    UnknownChannel,
    Unreachable,
)
from pinreq.models.message import Confirm, Envelope, MessageKind, Pin
from pinreq.models.settings import MatrixChannelSettings, Session
from pinreq.registry import ChannelRegistry
from pinreq.signing import Invalid, Signer, Unverifiable, Valid, VerificationOutcome, Verifier
from pinreq.sync import PageSource, SyncEngine, SyncPage
from pinreq.transport.matrix import MatrixChannel

__all__ = [
    "ChannelSettings",
    "ReqChannel",
    "decode_envelope",
    "encode_envelope",
    "sign",
    "verify",
    "ChannelError",
    "ConfigError",
    "DuplicateChannelName",
    "MalformedEnvelope",
    "NotAuthenticated",
    "PinFailed",
    "PinreqError",
    "ProtocolViolation",
    "ProvisioningError",
    "Rejected",
    "SigningFailed",
    "UnknownChannel",
    "Unreachable",
    "Confirm",
    "Envelope",
    "MessageKind",
    "Pin",
    "MatrixChannelSettings",
    "Session",
    "ChannelRegistry",
    "Invalid",
    "Signer",
    "Unverifiable",
    "Valid",
    "VerificationOutcome",
    "Verifier",
    "PageSource",
    "SyncEngine",
    "SyncPage",
    "MatrixChannel",
]
