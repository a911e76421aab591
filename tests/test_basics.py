"""Basic unit tests for the pinreq package."""

from pinreq import (
    ChannelError,
    ConfigError,
    DuplicateChannelName,
    MatrixChannel,
    NotAuthenticated,
    PinreqError,
    ProtocolViolation,
    ProvisioningError,
    Rejected,
    UnknownChannel,
    Unreachable,
    __version__,
)


def test_version():
    assert __version__ == "0.1.0"


def test_public_exports():
    assert MatrixChannel is not None


def test_error_hierarchy():
    assert issubclass(DuplicateChannelName, ConfigError)
    assert issubclass(UnknownChannel, ConfigError)
    assert issubclass(ProvisioningError, ConfigError)
    assert issubclass(NotAuthenticated, ChannelError)
    assert issubclass(Rejected, ChannelError)
    assert issubclass(ProtocolViolation, ChannelError)
    assert issubclass(Unreachable, ChannelError)
    assert issubclass(ConfigError, PinreqError)
    assert issubclass(ChannelError, PinreqError)


def test_error_attributes():
    err = PinreqError(code="test_code", message="something broke")
    assert err.code == "test_code"
    assert str(err) == "something broke"
    assert err.details is None

    unknown = UnknownChannel("roomZ")
    assert unknown.code == "unknown_channel"
    assert unknown.name == "roomZ"
    assert unknown.details == {"name": "roomZ"}

    rejected = Rejected("HTTP 403: Not in room", status_code=403, errcode="M_FORBIDDEN")
    assert rejected.errcode == "M_FORBIDDEN"
    assert rejected.details == {"status_code": 403, "errcode": "M_FORBIDDEN"}
