"""Shared fixtures: recording sink, socket pairs, echo servers and proxies."""

import socket
import socketserver
import threading

import pytest

from forward_socks_proxy.core.config import ProxySettings
from forward_socks_proxy.core.lib.endpoint import DuplexEndpoint
from forward_socks_proxy.core.lib.proxy_server import SocksProxy, create_proxy_server

TIMEOUT = 5.0


class RecordingSink:
    """Diagnostic sink keeping every event in memory."""

    def __init__(self) -> None:
        self.events = []
        self._lock = threading.Lock()

    def record_event(self, severity, context, detail) -> None:
        with self._lock:
            self.events.append((severity, context, detail))

    def details(self) -> list[str]:
        with self._lock:
            return [detail for _, _, detail in self.events]


def recv_all(sock: socket.socket) -> bytes:
    """Read until EOF."""
    chunks = []
    while chunk := sock.recv(65536):
        chunks.append(chunk)
    return b"".join(chunks)


def recv_exact(sock: socket.socket, size: int) -> bytes:
    data = b""
    while len(data) < size:
        chunk = sock.recv(size - len(data))
        if not chunk:
            break
        data += chunk
    return data


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def endpoint_pair():
    """Return ``(peer_socket, endpoint)`` connected to each other."""
    created = []

    def make(label: str = "test"):
        peer, own = socket.socketpair()
        peer.settimeout(TIMEOUT)
        endpoint = DuplexEndpoint(own, label)
        created.append((peer, endpoint))
        return peer, endpoint

    yield make

    for peer, endpoint in created:
        peer.close()
        endpoint.close()


class _TaggedEchoHandler(socketserver.BaseRequestHandler):
    def handle(self) -> None:
        tag = self.server.tag
        while data := self.request.recv(4096):
            self.request.sendall(tag + data)


class _EchoServer(socketserver.ThreadingMixIn, socketserver.TCPServer):
    allow_reuse_address = True
    daemon_threads = True

    def __init__(self, tag: bytes) -> None:
        self.tag = tag
        super().__init__(("127.0.0.1", 0), _TaggedEchoHandler)


@pytest.fixture
def echo_server():
    """Start loopback echo servers; each prefixes its replies with a tag."""
    servers = []

    def make(tag: bytes = b"") -> tuple[str, int]:
        server = _EchoServer(tag)
        threading.Thread(target=server.serve_forever, daemon=True).start()
        servers.append(server)
        return server.server_address[:2]

    yield make

    for server in servers:
        server.shutdown()
        server.server_close()


@pytest.fixture
def proxy_server(sink):
    """Start SOCKS5 proxies on an ephemeral loopback port."""
    servers = []

    def make(**overrides) -> SocksProxy:
        settings = ProxySettings(host="127.0.0.1", port=0, **overrides)
        server = create_proxy_server(settings, sink=sink)
        threading.Thread(target=server.serve_forever, daemon=True).start()
        servers.append(server)
        return server

    yield make

    for server in servers:
        server.shutdown()
        server.server_close()


def connect(address: tuple[str, int]) -> socket.socket:
    sock = socket.create_connection(address, timeout=TIMEOUT)
    sock.settimeout(TIMEOUT)
    return sock


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]
