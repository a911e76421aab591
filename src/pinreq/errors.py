"""
pinreq error types.

Config errors are fatal at startup, channel errors end the operation (or the
listen() call) they happened in, envelope errors are local to one message.
"""

from typing import Any, Optional


class PinreqError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class ConfigError(PinreqError):
    def __init__(self, message: str, code: str = "config_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class DuplicateChannelName(ConfigError):
    def __init__(self, name: str):
        super().__init__(
            f"Ambiguous channel name {name!r}, please rename conflicting channels",
            code="duplicate_channel_name",
            details={"name": name},
        )
        self.name = name


class UnknownChannel(ConfigError):
    def __init__(self, name: str):
        super().__init__(f"Channel {name!r} not found", code="unknown_channel", details={"name": name})
        self.name = name


class ProvisioningError(ConfigError):
    def __init__(self, message: str):
        super().__init__(message, code="provisioning_error")


class ChannelError(PinreqError):
    def __init__(self, message: str, code: str = "channel_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class NotAuthenticated(ChannelError):
    def __init__(self, channel: str):
        super().__init__(f"No session established for channel {channel!r}", code="not_authenticated")


class Rejected(ChannelError):
    """The remote service refused a request or answered with something unusable."""

    def __init__(self, message: str, status_code: Optional[int] = None, errcode: Optional[str] = None):
        super().__init__(
            message, code="rejected", details={"status_code": status_code, "errcode": errcode},
        )
        self.status_code = status_code
        self.errcode = errcode


class ProtocolViolation(ChannelError):
    def __init__(self, message: str):
        super().__init__(message, code="protocol_violation")


class Unreachable(ChannelError):
    """The remote service could not be reached or did not answer in time."""

    def __init__(self, message: str):
        super().__init__(message, code="unreachable")


class MalformedEnvelope(PinreqError):
    def __init__(self, message: str):
        super().__init__("malformed_envelope", message)


class SigningFailed(PinreqError):
    def __init__(self, message: str):
        super().__init__("signing_failed", message)


class PinFailed(PinreqError):
    def __init__(self, resource_id: str, message: str):
        super().__init__("pin_failed", message, details={"resource_id": resource_id})
        self.resource_id = resource_id
