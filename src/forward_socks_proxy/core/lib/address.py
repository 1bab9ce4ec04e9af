"""SOCKS5 address encoding and decoding.

A SOCKS5 address on the wire is an address type byte (ATYP), an address whose
layout depends on that type, and a two byte port in network byte order::

    +------+----------+----------+
    | ATYP | DST.ADDR | DST.PORT |
    +------+----------+----------+
    |  1   | Variable |    2     |
    +------+----------+----------+

- ``0x01``: four byte IPv4 address
- ``0x03``: one length byte followed by that many bytes of domain name
- ``0x04``: sixteen byte IPv6 address

Nothing here touches a socket. Decoding pulls bytes through a ``read_exact``
callable so the same code serves live connections and plain byte strings.

Example:
    destination = decode_address(0x03, io.BytesIO(b"\\x0bexample.com\\x01\\xbb").read)
    str(destination)  # "example.com:443"
"""

import ipaddress
import socket
import struct
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from typing import Final

from forward_socks_proxy.core.exceptions import InvalidEncodingError, UnsupportedAddressTypeError

PORT_FORMAT: Final = "!H"
PORT_SIZE: Final = 2
IPV4_SIZE: Final = 4
IPV6_SIZE: Final = 16
MAX_DOMAIN_LENGTH: Final = 255
MAX_PORT: Final = 65535

ReadExact = Callable[[int], bytes]


class AddressType(IntEnum):
    """ATYP values."""

    IPV4 = 0x01
    DOMAIN = 0x03
    IPV6 = 0x04


@dataclass(frozen=True)
class Destination:
    """A decoded SOCKS5 address and port.

    Attributes:
        address_type: Which of the three encodings the address uses
        host: Dotted quad, domain name or compressed IPv6 text
        port: TCP port
    """

    address_type: AddressType
    host: str
    port: int

    def __post_init__(self) -> None:
        if not 0 <= self.port <= MAX_PORT:
            msg = f"port out of range: {self.port}"
            raise ValueError(msg)
        if self.address_type is AddressType.DOMAIN:
            length = len(self.host.encode("utf-8"))
            if not 1 <= length <= MAX_DOMAIN_LENGTH:
                msg = f"domain name must be 1 to {MAX_DOMAIN_LENGTH} bytes, got {length}"
                raise ValueError(msg)

    def __str__(self) -> str:
        if self.address_type is AddressType.IPV6:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"

    @property
    def connect_address(self) -> tuple[str, int]:
        """Address tuple accepted by ``socket.create_connection``."""
        return (self.host, self.port)

    @property
    def is_domain(self) -> bool:
        return self.address_type is AddressType.DOMAIN

    @classmethod
    def from_host(cls, host: str, port: int) -> "Destination":
        """Build a destination, classifying ``host`` as IPv4, IPv6 or domain."""
        try:
            # Scoped IPv6 addresses (fe80::1%eth0) cannot be put on the wire
            ip = ipaddress.ip_address(host.split("%", 1)[0])
        except ValueError:
            return cls(AddressType.DOMAIN, host, port)
        if ip.version == 4:
            return cls(AddressType.IPV4, str(ip), port)
        return cls(AddressType.IPV6, str(ip), port)

    @classmethod
    def parse(cls, text: str) -> "Destination":
        """Parse ``host:port`` or ``[ipv6]:port``."""
        host, sep, port_text = text.rpartition(":")
        if not sep or not host or not port_text.isdigit():
            msg = f"expected host:port, got {text!r}"
            raise ValueError(msg)
        if host.startswith("[") and host.endswith("]"):
            host = host[1:-1]
        return cls.from_host(host, int(port_text))


def _decode_port(data: bytes) -> int:
    return struct.unpack(PORT_FORMAT, data)[0]


def decode_address(address_type: int, read_exact: ReadExact) -> Destination:
    """Decode DST.ADDR and DST.PORT for the given ATYP.

    Args:
        address_type: The ATYP byte already read from the request header
        read_exact: Callable returning exactly the number of bytes asked for

    Returns:
        Destination: The decoded address

    Raises:
        UnsupportedAddressTypeError: Unknown ATYP; nothing is read
        InvalidEncodingError: Empty or non UTF-8 domain name
    """
    if address_type == AddressType.IPV4:
        data = read_exact(IPV4_SIZE + PORT_SIZE)
        host = socket.inet_ntop(socket.AF_INET, data[:IPV4_SIZE])
        return Destination(AddressType.IPV4, host, _decode_port(data[IPV4_SIZE:]))

    if address_type == AddressType.DOMAIN:
        length = read_exact(1)[0]
        if length == 0:
            msg = "domain name length is zero"
            raise InvalidEncodingError(msg)
        # The name and the port arrive back to back
        data = read_exact(length + PORT_SIZE)
        try:
            host = data[:length].decode("utf-8")
        except UnicodeDecodeError as e:
            msg = f"domain name is not valid UTF-8: {data[:length]!r}"
            raise InvalidEncodingError(msg) from e
        return Destination(AddressType.DOMAIN, host, _decode_port(data[length:]))

    if address_type == AddressType.IPV6:
        data = read_exact(IPV6_SIZE + PORT_SIZE)
        host = socket.inet_ntop(socket.AF_INET6, data[:IPV6_SIZE])
        return Destination(AddressType.IPV6, host, _decode_port(data[IPV6_SIZE:]))

    raise UnsupportedAddressTypeError(address_type)


def encode_address(destination: Destination) -> bytes:
    """Encode a destination as ATYP, address and port."""
    port = struct.pack(PORT_FORMAT, destination.port)
    if destination.address_type is AddressType.IPV4:
        packed = socket.inet_pton(socket.AF_INET, destination.host)
    elif destination.address_type is AddressType.IPV6:
        packed = socket.inet_pton(socket.AF_INET6, destination.host)
    else:
        name = destination.host.encode("utf-8")
        packed = bytes([len(name)]) + name
    return bytes([destination.address_type]) + packed + port
