"""Custom exceptions for the proxy server.

The hierarchy mirrors the three ways a session can end early:

- ``ProtocolError``: the client sent something this proxy does not speak
  (wrong version, unsupported command or address type, bad encoding).
- ``TransportError``: a socket read or write failed, or the peer closed the
  connection in the middle of a fixed-size message.
- ``UpstreamConnectError``: the destination could not be reached.

``ConfigError`` covers invalid settings and is raised before any socket
exists.

Example:
    try:
        command, destination = read_request(endpoint)
    except UnsupportedCommandError as e:
        endpoint.write(build_reply(ReplyCode.COMMAND_NOT_SUPPORTED))
"""


class ProxyError(Exception):
    """Base exception for proxy errors."""


class ConfigError(ProxyError):
    """Raised when proxy settings are invalid."""


class ProtocolError(ProxyError):
    """Raised when a client violates the supported SOCKS5 subset."""


class UnsupportedVersionError(ProtocolError):
    """Raised when the VER field is not 5."""

    def __init__(self, version: int) -> None:
        super().__init__(f"unsupported SOCKS version {version:#04x}")
        self.version = version


class UnsupportedCommandError(ProtocolError):
    """Raised for any command other than CONNECT."""

    def __init__(self, command: int) -> None:
        super().__init__(f"unsupported command {command:#04x}")
        self.command = command


class UnsupportedAddressTypeError(ProtocolError):
    """Raised for an ATYP outside IPv4, domain name and IPv6."""

    def __init__(self, address_type: int) -> None:
        super().__init__(f"unsupported address type {address_type:#04x}")
        self.address_type = address_type


class InvalidEncodingError(ProtocolError):
    """Raised when a domain name is empty or not valid UTF-8."""


class NoAcceptableMethodError(ProtocolError):
    """Raised in strict mode when the client did not offer no-authentication."""

    def __init__(self, methods: bytes) -> None:
        super().__init__(f"no acceptable method in {methods.hex() or 'empty list'}")
        self.methods = methods


class TransportError(ProxyError):
    """Raised when reading from or writing to a connection fails."""


class ShortReadError(TransportError):
    """Raised when the peer closes before a fixed-size message is complete."""

    def __init__(self, expected: int, received: int) -> None:
        super().__init__(f"connection closed after {received} of {expected} bytes")
        self.expected = expected
        self.received = received


class UpstreamConnectError(ProxyError):
    """Raised when the destination cannot be dialled."""

    def __init__(self, destination: object, reason: object) -> None:
        super().__init__(f"cannot connect to {destination}: {reason}")
        self.destination = destination
        self.reason = reason


class DNSResolutionError(UpstreamConnectError):
    """Raised when DNS resolution fails."""
