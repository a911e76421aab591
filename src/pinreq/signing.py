"""
Detached Ed25519 signatures over canonical message bytes.

Signatures travel ASCII-armored, carrying the id of the key that made them:

    -----BEGIN PINREQ SIGNATURE-----
    Key-Id: 3F2A9C01D4E5B687

    <base64 signature>
    -----END PINREQ SIGNATURE-----
"""

import base64
import binascii
import hashlib
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

from pinreq.errors import ConfigError, SigningFailed

logger = logging.getLogger(__name__)

ARMOR_BEGIN = "-----BEGIN PINREQ SIGNATURE-----"
ARMOR_END = "-----END PINREQ SIGNATURE-----"


@dataclass(frozen=True)
class Valid:
    signer: str


@dataclass(frozen=True)
class Invalid:
    reason: str


@dataclass(frozen=True)
class Unverifiable:
    reason: str


VerificationOutcome = Union[Valid, Invalid, Unverifiable]


def _raw_public(public_key: Ed25519PublicKey) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.Raw, format=serialization.PublicFormat.Raw,
    )


def key_id(public_key: Ed25519PublicKey) -> str:
    """Short fingerprint naming a public key inside an armored signature."""
    return hashlib.sha256(_raw_public(public_key)).hexdigest()[:16].upper()


def encode_public_key(public_key: Ed25519PublicKey) -> str:
    return base64.b64encode(_raw_public(public_key)).decode("ascii")


def decode_public_key(encoded: str) -> Ed25519PublicKey:
    try:
        return Ed25519PublicKey.from_public_bytes(base64.b64decode(encoded, validate=True))
    except (binascii.Error, ValueError) as e:
        raise ConfigError(f"Invalid Ed25519 public key {encoded!r}: {e}")


def armor(signature: bytes, kid: str) -> str:
    body = base64.b64encode(signature).decode("ascii")
    lines = [body[i:i + 64] for i in range(0, len(body), 64)]
    return "\n".join([ARMOR_BEGIN, f"Key-Id: {kid}", "", *lines, ARMOR_END])


def dearmor(armored: str) -> tuple[dict[str, str], bytes]:
    """Split an armored signature into its headers and raw signature bytes.

    Lines are separated by bare newlines only, and the base64 body must be
    the canonical encoding of the signature.
    """
    lines = armored.strip("\n").split("\n")
    if len(lines) < 3 or lines[0] != ARMOR_BEGIN or lines[-1] != ARMOR_END:
        raise ValueError("missing signature armor")
    inner = lines[1:-1]
    if "" not in inner:
        raise ValueError("missing blank line after armor headers")
    split = inner.index("")
    headers: dict[str, str] = {}
    for line in inner[:split]:
        key, sep, value = line.partition(": ")
        if not sep or not key:
            raise ValueError(f"bad armor header {line!r}")
        headers[key] = value
    body = "".join(inner[split + 1:])
    try:
        signature = base64.b64decode(body, validate=True)
    except binascii.Error as e:
        raise ValueError(f"bad signature encoding: {e}")
    if base64.b64encode(signature).decode("ascii") != body:
        raise ValueError("non-canonical signature encoding")
    return headers, signature


class Signer:
    """Local signing identity."""

    def __init__(self, private_key: Optional[Ed25519PrivateKey], identity: str = "local"):
        self._key = private_key
        self.identity = identity

    @classmethod
    def from_pem_file(cls, path: Union[str, Path], identity: str = "local") -> "Signer":
        path = Path(path).expanduser()
        try:
            key = serialization.load_pem_private_key(path.read_bytes(), password=None)
        except FileNotFoundError:
            logger.warning("Signing key %s does not exist, requests cannot be signed", path)
            return cls(None, identity)
        except (ValueError, TypeError) as e:
            raise ConfigError(f"Could not load signing key {path}: {e}")
        if not isinstance(key, Ed25519PrivateKey):
            raise ConfigError(f"Signing key {path} is not an Ed25519 key")
        return cls(key, identity)

    @property
    def public_key(self) -> Optional[Ed25519PublicKey]:
        return self._key.public_key() if self._key is not None else None

    def sign_detached(self, data: bytes) -> str:
        if self._key is None:
            raise SigningFailed(f"No signing key configured for identity {self.identity!r}")
        try:
            signature = self._key.sign(data)
        except Exception as e:
            raise SigningFailed(f"Could not sign the request: {e}")
        return armor(signature, key_id(self._key.public_key()))


class Verifier:
    """Checks detached signatures against a set of trusted public keys."""

    def __init__(self, trusted: Optional[dict[str, Ed25519PublicKey]] = None):
        self._by_kid: dict[str, tuple[str, Ed25519PublicKey]] = {}
        for identity, public_key in (trusted or {}).items():
            self.trust(identity, public_key)

    @classmethod
    def from_encoded(cls, entries: Iterable[tuple[str, str]]) -> "Verifier":
        """Build from (identity, base64 raw public key) pairs."""
        return cls({identity: decode_public_key(encoded) for identity, encoded in entries})

    def trust(self, identity: str, public_key: Ed25519PublicKey) -> None:
        self._by_kid[key_id(public_key)] = (identity, public_key)

    def verify_detached(self, data: bytes, armored: str) -> VerificationOutcome:
        try:
            headers, signature = dearmor(armored)
        except ValueError as e:
            return Invalid(f"malformed signature: {e}")
        kid = headers.get("Key-Id")
        if not kid:
            return Unverifiable("signature does not name its key")
        trusted = self._by_kid.get(kid)
        if trusted is None:
            return Unverifiable(f"unknown signer key {kid}")
        identity, public_key = trusted
        try:
            public_key.verify(signature, data)
        except InvalidSignature:
            return Invalid(f"bad signature from {identity}")
        return Valid(identity)


def generate_signing_key(path: Union[str, Path]) -> Ed25519PrivateKey:
    """Write a fresh unencrypted PKCS#8 Ed25519 key readable only by its owner."""
    path = Path(path).expanduser()
    key = Ed25519PrivateKey.generate()
    pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(pem)
    return key
