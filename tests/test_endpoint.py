"""Tests for the duplex endpoint wrapper."""

import socket

import pytest

from conftest import recv_all
from forward_socks_proxy.core.exceptions import ShortReadError, TransportError


def test_read_exact_across_chunks(endpoint_pair):
    peer, endpoint = endpoint_pair()
    peer.sendall(b"ab")
    peer.sendall(b"cd")
    assert endpoint.read_exact(4) == b"abcd"


def test_read_exact_short(endpoint_pair):
    peer, endpoint = endpoint_pair()
    peer.sendall(b"ab")
    peer.shutdown(socket.SHUT_WR)
    with pytest.raises(ShortReadError):
        endpoint.read_exact(4)


def test_shutdown_write_sends_eof(endpoint_pair):
    peer, endpoint = endpoint_pair()
    endpoint.write(b"bye")
    endpoint.shutdown_write()
    assert recv_all(peer) == b"bye"
    assert endpoint.write_closed
    assert not endpoint.read_closed


def test_closed_halves_are_not_reused(endpoint_pair):
    _, endpoint = endpoint_pair()
    endpoint.shutdown_write()
    with pytest.raises(TransportError, match="write half is closed"):
        endpoint.write(b"x")
    endpoint.shutdown_read()
    with pytest.raises(TransportError, match="read half is closed"):
        endpoint.read(1)


def test_close_is_idempotent(endpoint_pair):
    peer, endpoint = endpoint_pair()
    with endpoint:
        pass
    endpoint.close()
    endpoint.shutdown_write()
    assert endpoint.closed
    assert recv_all(peer) == b""
    with pytest.raises(TransportError):
        endpoint.read(1)


def test_drain_discards_pending_input(endpoint_pair):
    peer, endpoint = endpoint_pair()
    peer.sendall(b"x" * 100)
    peer.shutdown(socket.SHUT_WR)
    assert endpoint.drain(1.0) == 100


def test_drain_stops_at_timeout(endpoint_pair):
    peer, endpoint = endpoint_pair()
    peer.sendall(b"abc")
    assert endpoint.drain(0.1) == 3


def test_drain_after_read_shutdown_is_a_noop(endpoint_pair):
    peer, endpoint = endpoint_pair()
    peer.sendall(b"abc")
    endpoint.shutdown_read()
    assert endpoint.drain(1.0) == 0
