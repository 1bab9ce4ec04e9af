"""SOCKS5 negotiation, request parsing and reply encoding (RFC 1928).

This module implements the message level of the protocol:

- Method negotiation (only "no authentication required" is ever selected)
- Request parsing for the CONNECT command with IPv4, domain and IPv6 targets
- Reply encoding

Every function works on a ``DuplexEndpoint`` and raises a ``ProxyError``
subclass on failure. Deciding what happens next is up to the caller.

Example:
    negotiate(client)
    command, destination = read_request(client)
    client.write(build_reply(ReplyCode.SUCCEEDED))
"""

import struct
from enum import IntEnum
from typing import Final

from forward_socks_proxy.core.exceptions import (
    NoAcceptableMethodError,
    UnsupportedCommandError,
    UnsupportedVersionError,
)

from .address import Destination, decode_address, encode_address
from .endpoint import DuplexEndpoint

# SOCKS protocol constants
SOCKS_VERSION: Final = 5
METHOD_NO_AUTH: Final = 0x00
METHOD_NO_ACCEPTABLE: Final = 0xFF
RESERVED: Final = 0x00

# Zero filled IPv4 BND.ADDR and BND.PORT
UNSPECIFIED_BIND: Final = b"\x01\x00\x00\x00\x00\x00\x00"


class Command(IntEnum):
    """CMD values."""

    CONNECT = 0x01
    BIND = 0x02
    UDP_ASSOCIATE = 0x03


class ReplyCode(IntEnum):
    """REP values."""

    SUCCEEDED = 0x00
    GENERAL_FAILURE = 0x01
    NOT_ALLOWED = 0x02
    NETWORK_UNREACHABLE = 0x03
    HOST_UNREACHABLE = 0x04
    CONNECTION_REFUSED = 0x05
    TTL_EXPIRED = 0x06
    COMMAND_NOT_SUPPORTED = 0x07
    ADDRESS_TYPE_NOT_SUPPORTED = 0x08


def negotiate(endpoint: DuplexEndpoint, *, strict: bool = False) -> int:
    """Perform SOCKS5 method negotiation.

    Reads VER, NMETHODS and the offered methods, then answers with the
    selected method::

        +-----+----------+----------+      +-----+--------+
        | VER | NMETHODS | METHODS  |  ->  | VER | METHOD |
        +-----+----------+----------+      +-----+--------+

    Args:
        endpoint: Client connection
        strict: Refuse with ``0xFF`` when no-authentication was not offered.
            Otherwise the offered list is ignored.

    Returns:
        int: The selected method

    Raises:
        UnsupportedVersionError: VER is not 5; nothing is written
        NoAcceptableMethodError: Strict mode and no-authentication missing
        TransportError: The client closed or the connection failed
    """
    version, nmethods = struct.unpack("!BB", endpoint.read_exact(2))
    if version != SOCKS_VERSION:
        raise UnsupportedVersionError(version)

    methods = endpoint.read_exact(nmethods)

    if strict and METHOD_NO_AUTH not in methods:
        endpoint.write(struct.pack("!BB", SOCKS_VERSION, METHOD_NO_ACCEPTABLE))
        raise NoAcceptableMethodError(methods)

    endpoint.write(struct.pack("!BB", SOCKS_VERSION, METHOD_NO_AUTH))
    return METHOD_NO_AUTH


def read_request(endpoint: DuplexEndpoint) -> tuple[Command, Destination]:
    """Read a SOCKS5 request.

    ::

        +----+-----+-------+------+----------+----------+
        |VER | CMD |  RSV  | ATYP | DST.ADDR | DST.PORT |
        +----+-----+-------+------+----------+----------+
        | 1  |  1  | X'00' |  1   | Variable |    2     |
        +----+-----+-------+------+----------+----------+

    The command is checked before the address, so an unsupported command
    leaves DST.ADDR unread.

    Returns:
        tuple[Command, Destination]: Always ``Command.CONNECT`` and the target

    Raises:
        UnsupportedVersionError: VER is not 5
        UnsupportedCommandError: CMD is not CONNECT
        UnsupportedAddressTypeError: ATYP is unknown
        InvalidEncodingError: Malformed domain name
        TransportError: The client closed or the connection failed
    """
    version, command, _, address_type = struct.unpack("!BBBB", endpoint.read_exact(4))
    if version != SOCKS_VERSION:
        raise UnsupportedVersionError(version)
    if command != Command.CONNECT:
        raise UnsupportedCommandError(command)

    destination = decode_address(address_type, endpoint.read_exact)
    return Command.CONNECT, destination


def build_reply(code: ReplyCode, bound: Destination | None = None) -> bytes:
    """Build a SOCKS5 reply.

    Args:
        code: REP field
        bound: BND.ADDR and BND.PORT; zero filled IPv4 when omitted

    Returns:
        bytes: ``VER REP RSV ATYP BND.ADDR BND.PORT``
    """
    header = struct.pack("!BBB", SOCKS_VERSION, code, RESERVED)
    if bound is None:
        return header + UNSPECIFIED_BIND
    return header + encode_address(bound)
