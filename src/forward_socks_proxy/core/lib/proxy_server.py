"""Threaded TCP servers for the SOCKS5 proxy and the plain forwarder.

Both servers use ``socketserver.ThreadingMixIn``: every accepted connection
gets its own daemon thread, and that thread runs the whole session. Sessions
share nothing but the diagnostic sink and the server's statistics.

- ``SocksProxy`` + ``SocksHandler``: full SOCKS5 negotiation per connection
- ``ForwardProxy`` + ``ForwardHandler``: every connection is relayed to one
  fixed remote address without any negotiation

Example:
    # Serve SOCKS5 on localhost:1080 until interrupted
    run_server(ProxySettings(host="127.0.0.1", port=1080))
"""

import contextlib
import socket
import socketserver

from loguru import logger

from forward_socks_proxy.core.config import ProxySettings
from forward_socks_proxy.core.exceptions import ProxyError

from .address import Destination
from .diagnostics import DiagnosticSink, LoguruSink, Severity
from .dialer import Dialer
from .dns_handler import DNSResolver
from .endpoint import DuplexEndpoint
from .proxy_stats import ProxyStats
from .relay import RelayEngine
from .session import ConnectionSession


def _client_label(client_address: tuple) -> str:
    host, port = client_address[:2]
    return f"client {host}:{port}"


class SocksProxy(socketserver.ThreadingMixIn, socketserver.TCPServer):
    """SOCKS5 proxy server."""

    allow_reuse_address = True
    daemon_threads = True

    def __init__(
        self,
        settings: ProxySettings,
        handler: type[socketserver.BaseRequestHandler] | None = None,
        sink: DiagnosticSink | None = None,
        dialer: Dialer | None = None,
    ) -> None:
        self.settings = settings
        self.sink = sink or LoguruSink()
        self.stats = ProxyStats()
        if dialer is None:
            resolver = DNSResolver(settings.nameservers) if settings.nameservers else None
            dialer = Dialer(timeout=settings.dial_timeout, resolver=resolver)
        self.dialer = dialer
        self.request_queue_size = settings.request_queue_size
        if ":" in settings.host:
            self.address_family = socket.AF_INET6
        super().__init__((settings.host, settings.port), handler or SocksHandler)

    @property
    def bound_address(self) -> tuple[str, int]:
        """The address actually bound, useful when port 0 was requested."""
        host, port = self.server_address[:2]
        return host, port


class SocksHandler(socketserver.BaseRequestHandler):
    """Run a ``ConnectionSession`` for each accepted connection."""

    server: SocksProxy

    def handle(self) -> None:
        """Handle incoming SOCKS5 connection."""
        client = DuplexEndpoint(self.request, _client_label(self.client_address))
        session = ConnectionSession(
            client,
            self.server.dialer,
            self.server.sink,
            settings=self.server.settings,
            stats=self.server.stats,
        )
        self.server.stats.connection_started()
        try:
            session.run()
        finally:
            self.server.stats.connection_ended(failed=session.failure is not None)


class ForwardProxy(SocksProxy):
    """TCP forwarder relaying every connection to one remote address."""

    def __init__(
        self,
        settings: ProxySettings,
        remote: Destination,
        sink: DiagnosticSink | None = None,
        dialer: Dialer | None = None,
    ) -> None:
        self.remote = remote
        super().__init__(settings, ForwardHandler, sink=sink, dialer=dialer)


class ForwardHandler(socketserver.BaseRequestHandler):
    """Dial the fixed remote and relay without any SOCKS negotiation."""

    server: ForwardProxy

    def handle(self) -> None:
        """Handle incoming forwarded connection."""
        sink = self.server.sink
        stats = self.server.stats
        label = _client_label(self.client_address)
        engine = RelayEngine(sink, self.server.settings.buffer_size, stats)
        stats.connection_started()
        failed = False
        try:
            with contextlib.ExitStack() as stack:
                client = stack.enter_context(DuplexEndpoint(self.request, label))
                upstream = stack.enter_context(self.server.dialer.connect(self.server.remote))
                sink.record_event(Severity.INFO, label, f"forwarding to {self.server.remote}")
                outcome = engine.relay(client, upstream)
                failed = not outcome.clean
        except ProxyError as e:
            failed = True
            sink.record_event(Severity.WARNING, label, str(e))
        finally:
            stats.connection_ended(failed=failed)


def create_proxy_server(
    settings: ProxySettings,
    sink: DiagnosticSink | None = None,
    dialer: Dialer | None = None,
) -> SocksProxy:
    """Bind a SOCKS5 proxy server without starting it.

    Raises:
        OSError: If the address cannot be bound
    """
    return SocksProxy(settings, sink=sink, dialer=dialer)


def create_forward_server(
    settings: ProxySettings,
    remote: Destination,
    sink: DiagnosticSink | None = None,
    dialer: Dialer | None = None,
) -> ForwardProxy:
    """Bind a forwarding server without starting it.

    Raises:
        OSError: If the address cannot be bound
    """
    return ForwardProxy(settings, remote, sink=sink, dialer=dialer)


def run_server(server: SocksProxy) -> None:
    """Serve until interrupted, then close the listening socket."""
    host, port = server.bound_address
    logger.info(f"Server started on {host}:{port}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Server stopping")
    finally:
        server.server_close()
        logger.info("Server closed")
