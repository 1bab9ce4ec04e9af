"""Tests for negotiation, request parsing and reply encoding."""

import socket

import pytest

from forward_socks_proxy.core.exceptions import (
    NoAcceptableMethodError,
    ShortReadError,
    TransportError,
    UnsupportedAddressTypeError,
    UnsupportedCommandError,
    UnsupportedVersionError,
)
from forward_socks_proxy.core.lib.address import AddressType, Destination
from forward_socks_proxy.core.lib.protocol import Command, ReplyCode, build_reply, negotiate, read_request


def test_negotiate_selects_no_auth(endpoint_pair):
    peer, endpoint = endpoint_pair()
    peer.sendall(b"\x05\x01\x00")
    assert negotiate(endpoint) == 0x00
    assert peer.recv(16) == b"\x05\x00"


def test_negotiate_ignores_offered_methods(endpoint_pair):
    peer, endpoint = endpoint_pair()
    peer.sendall(b"\x05\x02\x01\x02")
    negotiate(endpoint)
    assert peer.recv(16) == b"\x05\x00"


def test_negotiate_rejects_other_versions_without_reply(endpoint_pair):
    peer, endpoint = endpoint_pair()
    peer.sendall(b"\x04\x01")
    with pytest.raises(UnsupportedVersionError) as excinfo:
        negotiate(endpoint)
    assert excinfo.value.version == 4
    endpoint.close()
    assert peer.recv(16) == b""


def test_negotiate_short_read(endpoint_pair):
    peer, endpoint = endpoint_pair()
    peer.sendall(b"\x05\x03\x00")
    peer.shutdown(socket.SHUT_WR)
    with pytest.raises(ShortReadError) as excinfo:
        negotiate(endpoint)
    assert (excinfo.value.expected, excinfo.value.received) == (3, 1)


def test_negotiate_strict_refuses_without_no_auth(endpoint_pair):
    peer, endpoint = endpoint_pair()
    peer.sendall(b"\x05\x01\x02")
    with pytest.raises(NoAcceptableMethodError):
        negotiate(endpoint, strict=True)
    assert peer.recv(16) == b"\x05\xff"


def test_negotiate_strict_accepts_no_auth(endpoint_pair):
    peer, endpoint = endpoint_pair()
    peer.sendall(b"\x05\x02\x02\x00")
    negotiate(endpoint, strict=True)
    assert peer.recv(16) == b"\x05\x00"


def test_read_request_ipv4(endpoint_pair):
    peer, endpoint = endpoint_pair()
    peer.sendall(b"\x05\x01\x00\x01\x7f\x00\x00\x01\x00\x50")
    command, destination = read_request(endpoint)
    assert command is Command.CONNECT
    assert destination == Destination(AddressType.IPV4, "127.0.0.1", 80)


def test_read_request_domain(endpoint_pair):
    peer, endpoint = endpoint_pair()
    peer.sendall(b"\x05\x01\x00\x03\x0bexample.com\x01\xbb")
    _, destination = read_request(endpoint)
    assert str(destination) == "example.com:443"


def test_read_request_arrives_in_pieces(endpoint_pair):
    peer, endpoint = endpoint_pair()
    for piece in (b"\x05\x01", b"\x00\x04", bytes(15), b"\x01\x00", b"\x50"):
        peer.sendall(piece)
    _, destination = read_request(endpoint)
    assert str(destination) == "[::1]:80"


def test_read_request_rejects_command_before_address(endpoint_pair):
    peer, endpoint = endpoint_pair()
    peer.sendall(b"\x05\x02\x00\x01" + b"\x7f\x00\x00\x01\x00\x50")
    with pytest.raises(UnsupportedCommandError) as excinfo:
        read_request(endpoint)
    assert excinfo.value.command == 0x02
    # The address bytes are still waiting on the socket
    assert endpoint.read_exact(6) == b"\x7f\x00\x00\x01\x00\x50"


def test_read_request_unknown_address_type_stops_reading(endpoint_pair):
    peer, endpoint = endpoint_pair()
    peer.sendall(b"\x05\x01\x00\x05" + b"\xaa\xbb")
    with pytest.raises(UnsupportedAddressTypeError):
        read_request(endpoint)
    assert endpoint.read_exact(2) == b"\xaa\xbb"


def test_read_request_rejects_other_versions(endpoint_pair):
    peer, endpoint = endpoint_pair()
    peer.sendall(b"\x04\x01\x00\x01\x7f\x00\x00\x01\x00\x50")
    with pytest.raises(UnsupportedVersionError):
        read_request(endpoint)


def test_read_request_truncated(endpoint_pair):
    peer, endpoint = endpoint_pair()
    peer.sendall(b"\x05\x01\x00\x01\x7f\x00")
    peer.shutdown(socket.SHUT_WR)
    with pytest.raises(TransportError):
        read_request(endpoint)


def test_same_bytes_decode_to_equal_destinations(endpoint_pair):
    request = b"\x05\x01\x00\x03\x0bexample.com\x01\xbb"
    results = []
    for _ in range(2):
        peer, endpoint = endpoint_pair()
        peer.sendall(request)
        results.append(read_request(endpoint))
    assert results[0] == results[1]


def test_build_reply_success_is_zero_filled():
    assert build_reply(ReplyCode.SUCCEEDED) == b"\x05\x00\x00\x01\x00\x00\x00\x00\x00\x00"


def test_build_reply_failure():
    reply = build_reply(ReplyCode.GENERAL_FAILURE)
    assert len(reply) == 10
    assert reply[1] == 0x01


def test_build_reply_with_bound_address():
    bound = Destination(AddressType.IPV4, "10.1.2.3", 40000)
    assert build_reply(ReplyCode.SUCCEEDED, bound) == b"\x05\x00\x00\x01\x0a\x01\x02\x03\x9c\x40"
