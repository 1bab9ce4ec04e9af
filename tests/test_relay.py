"""Tests for the bidirectional relay engine."""

import socket
import threading

import pytest

from conftest import TIMEOUT, recv_all
from forward_socks_proxy.core.exceptions import TransportError
from forward_socks_proxy.core.lib.proxy_stats import ProxyStats
from forward_socks_proxy.core.lib.relay import RelayDirection, RelayEngine


def start_relay(engine, client, upstream):
    result = {}
    thread = threading.Thread(target=lambda: result.setdefault("outcome", engine.relay(client, upstream)))
    thread.start()
    return thread, result


def test_client_half_close_reaches_upstream(endpoint_pair, sink):
    client_app, client = endpoint_pair("client")
    server_app, upstream = endpoint_pair("upstream")
    engine = RelayEngine(sink)
    thread, result = start_relay(engine, client, upstream)

    payload = bytes(range(256)) * 40
    client_app.sendall(payload)
    client_app.shutdown(socket.SHUT_WR)

    # Upstream gets exactly the bytes sent and then EOF instead of hanging
    assert recv_all(server_app) == payload

    server_app.sendall(b"response")
    server_app.shutdown(socket.SHUT_WR)
    assert recv_all(client_app) == b"response"

    thread.join(TIMEOUT)
    assert not thread.is_alive()
    outcome = result["outcome"]
    assert outcome.clean
    assert outcome.inbound.bytes_copied == len(payload)
    assert outcome.outbound.bytes_copied == len(b"response")


def test_upstream_close_first(endpoint_pair, sink):
    client_app, client = endpoint_pair("client")
    server_app, upstream = endpoint_pair("upstream")
    thread, result = start_relay(RelayEngine(sink), client, upstream)

    server_app.sendall(b"banner")
    server_app.shutdown(socket.SHUT_WR)
    assert recv_all(client_app) == b"banner"

    # The other direction is still open until the client finishes
    client_app.sendall(b"late")
    client_app.shutdown(socket.SHUT_WR)
    assert recv_all(server_app) == b"late"

    thread.join(TIMEOUT)
    assert result["outcome"].clean


def test_write_error_ends_both_directions(endpoint_pair, sink):
    client_app, client = endpoint_pair("client")
    server_app, upstream = endpoint_pair("upstream")
    server_app.close()
    thread, result = start_relay(RelayEngine(sink), client, upstream)

    # Upstream is gone: the outbound loop sees EOF and half-closes the client
    assert recv_all(client_app) == b""
    # Writing to the dead upstream fails instead of blocking
    client_app.sendall(b"data")

    thread.join(TIMEOUT)
    assert not thread.is_alive()
    outcome = result["outcome"]
    assert not outcome.clean
    assert isinstance(outcome.inbound.error, TransportError)
    assert outcome.outbound.error is None
    assert any("write failed" in detail for detail in sink.details())


def test_copy_writes_exactly_what_was_read(endpoint_pair, sink):
    source_app, source = endpoint_pair("source")
    destination_app, destination = endpoint_pair("destination")
    engine = RelayEngine(sink, buffer_size=1024)

    chunks = [b"a", b"bc" * 700, b"d" * 3000]
    for chunk in chunks:
        source_app.sendall(chunk)
    source_app.shutdown(socket.SHUT_WR)

    result = engine.copy(RelayDirection(source, destination, "test"))
    assert result.bytes_copied == sum(map(len, chunks))
    assert result.error is None
    assert recv_all(destination_app) == b"".join(chunks)
    assert destination.write_closed


def test_stats_count_both_directions(endpoint_pair, sink):
    client_app, client = endpoint_pair("client")
    server_app, upstream = endpoint_pair("upstream")
    stats = ProxyStats()
    thread, _ = start_relay(RelayEngine(sink, stats=stats), client, upstream)

    client_app.sendall(b"12345")
    client_app.shutdown(socket.SHUT_WR)
    assert recv_all(server_app) == b"12345"
    server_app.sendall(b"abc")
    server_app.shutdown(socket.SHUT_WR)
    assert recv_all(client_app) == b"abc"
    thread.join(TIMEOUT)

    assert stats.bytes_upstream == 5
    assert stats.bytes_downstream == 3
    assert stats.total_bytes == 8


def test_buffer_size_minimum(sink):
    with pytest.raises(ValueError):
        RelayEngine(sink, buffer_size=512)
