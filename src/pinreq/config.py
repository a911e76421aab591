"""
pinreq configuration file (JSON).
"""

import json
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ValidationError

from pinreq.channel import ChannelSettings
from pinreq.errors import ConfigError
from pinreq.models.settings import MatrixChannelSettings
from pinreq.registry import ChannelRegistry
from pinreq.signing import Signer, Verifier

DEFAULT_CONFIG_FILE = "pinreq.json"
DEFAULT_SIGNING_KEY = "~/.pinreq/signing_key.pem"
DEFAULT_IPFS_API = "http://127.0.0.1:5001"


class TrustedKey(BaseModel):
    identity: str
    public_key: str  # base64 raw Ed25519 public key


class PinreqConfig(BaseModel):
    identity: str = "local"
    signing_key: str = DEFAULT_SIGNING_KEY
    trusted_keys: list[TrustedKey] = []
    ipfs_api: str = DEFAULT_IPFS_API
    matrix: list[MatrixChannelSettings] = []

    def channel_settings(self) -> list[ChannelSettings]:
        """Settings of every configured channel, across transport kinds."""
        return [*self.matrix]

    def registry(self) -> ChannelRegistry:
        return ChannelRegistry.load(self.channel_settings())

    def signer(self) -> Signer:
        return Signer.from_pem_file(self.signing_key, self.identity)

    def verifier(self, signer: Optional[Signer] = None) -> Verifier:
        """Trusted keys, plus our own so our requests verify too."""
        verifier = Verifier.from_encoded((k.identity, k.public_key) for k in self.trusted_keys)
        if signer is not None and signer.public_key is not None:
            verifier.trust(signer.identity, signer.public_key)
        return verifier

    def replace_channel(self, settings: MatrixChannelSettings) -> None:
        self.matrix = [settings if s.name == settings.name else s for s in self.matrix]


def load_config(path: Union[str, Path]) -> PinreqConfig:
    path = Path(path).expanduser()
    try:
        cfg = PinreqConfig.model_validate_json(path.read_text())
    except OSError as e:
        raise ConfigError(f"Could not read config file {path}: {e}")
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {path}: {e}")
    # Duplicate names fail here, before any channel exists
    cfg.registry()
    return cfg


def save_config(path: Union[str, Path], cfg: PinreqConfig) -> None:
    path = Path(path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(json.dumps(cfg.model_dump(mode="json", exclude_none=True), indent=2) + "\n")
    tmp.replace(path)
