"""Per-connection SOCKS5 state machine.

A session walks through its states once and never goes back::

    AWAITING_HANDSHAKE -> AWAITING_REQUEST -> CONNECTING -> RELAYING -> CLOSED

Any failure jumps straight to ``CLOSED``. Both endpoints live in an
``ExitStack``, so they are closed on every path out of ``run``, including
failures before an upstream connection ever existed.

What the client sees on failure:

- handshake errors: the connection is closed without a reply
- unsupported command or address type: a failure reply (0x07 or 0x08), then close
- other request errors: close without a reply
- dial errors: a general failure reply (0x01), then close

After a failure the write half is shut down and pending input is drained for
a moment before the socket is closed, so the reply is not lost to a reset.

Example:
    session = ConnectionSession(DuplexEndpoint(sock, "client 10.0.0.2:50000"), Dialer(), LoguruSink())
    outcome = session.run()
"""

import contextlib
from enum import Enum
from typing import Final

from forward_socks_proxy.core.config import ProxySettings
from forward_socks_proxy.core.exceptions import (
    ProxyError,
    TransportError,
    UnsupportedAddressTypeError,
    UnsupportedCommandError,
    UpstreamConnectError,
)

from .address import Destination
from .diagnostics import DiagnosticSink, Severity
from .dialer import Dialer
from .endpoint import DuplexEndpoint
from .protocol import ReplyCode, build_reply, negotiate, read_request
from .proxy_stats import ProxyStats
from .relay import RelayEngine, RelayOutcome


class SessionState(Enum):
    """Lifecycle of one client connection, in order."""

    AWAITING_HANDSHAKE = 1
    AWAITING_REQUEST = 2
    CONNECTING = 3
    RELAYING = 4
    CLOSED = 5


# Seconds to wait for the client to stop sending after a failure
DRAIN_TIMEOUT: Final = 0.5

# Best-effort replies for request errors the client is waiting on
REQUEST_ERROR_REPLIES = {
    UnsupportedCommandError: ReplyCode.COMMAND_NOT_SUPPORTED,
    UnsupportedAddressTypeError: ReplyCode.ADDRESS_TYPE_NOT_SUPPORTED,
}


class ConnectionSession:
    """Drive one accepted client connection from greeting to close."""

    def __init__(
        self,
        client: DuplexEndpoint,
        dialer: Dialer,
        sink: DiagnosticSink,
        settings: ProxySettings | None = None,
        stats: ProxyStats | None = None,
    ) -> None:
        self.client = client
        self.dialer = dialer
        self.sink = sink
        self.settings = settings or ProxySettings()
        self.relay_engine = RelayEngine(sink, self.settings.buffer_size, stats)
        self.state = SessionState.AWAITING_HANDSHAKE
        self.destination: Destination | None = None
        self.failure: ProxyError | None = None
        self.outcome: RelayOutcome | None = None

    def _advance(self, state: SessionState) -> None:
        if state.value <= self.state.value:
            msg = f"cannot move from {self.state.name} to {state.name}"
            raise RuntimeError(msg)
        self.state = state

    def _close(self) -> None:
        self.state = SessionState.CLOSED

    def _record(self, severity: Severity, detail: str) -> None:
        self.sink.record_event(severity, self.client.label, detail)

    def _reply_best_effort(self, code: ReplyCode) -> None:
        try:
            self.client.write(build_reply(code))
        except TransportError as e:
            self._record(Severity.DEBUG, f"could not send {code.name} reply: {e}")

    def _read_request(self) -> Destination:
        try:
            _, destination = read_request(self.client)
        except (UnsupportedCommandError, UnsupportedAddressTypeError) as e:
            self._reply_best_effort(REQUEST_ERROR_REPLIES[type(e)])
            raise
        return destination

    def _dial(self, destination: Destination) -> DuplexEndpoint:
        try:
            return self.dialer.connect(destination, self.settings.dial_timeout)
        except UpstreamConnectError:
            self._reply_best_effort(ReplyCode.GENERAL_FAILURE)
            raise

    def _finish_failed(self) -> None:
        # Signal EOF after any failure reply, then read off what the client
        # already sent so the close does not turn into a reset
        self.client.shutdown_write()
        self.client.drain(DRAIN_TIMEOUT)

    def _success_reply(self, upstream: DuplexEndpoint) -> bytes:
        if not self.settings.report_bound_address:
            return build_reply(ReplyCode.SUCCEEDED)
        host, port = upstream.local_address[:2]
        return build_reply(ReplyCode.SUCCEEDED, Destination.from_host(host, port))

    def run(self) -> RelayOutcome | None:
        """Run the session to completion.

        Returns:
            RelayOutcome | None: Relay results, or None if relaying never started.
                ``failure`` holds the reason in that case.
        """
        with contextlib.ExitStack() as stack:
            stack.callback(self._close)
            stack.enter_context(self.client)
            try:
                negotiate(self.client, strict=self.settings.strict_methods)
                self._advance(SessionState.AWAITING_REQUEST)

                self.destination = self._read_request()
                self._advance(SessionState.CONNECTING)
                self._record(Severity.INFO, f"CONNECT {self.destination}")

                upstream = stack.enter_context(self._dial(self.destination))
                self.client.write(self._success_reply(upstream))
                self._advance(SessionState.RELAYING)

                self.outcome = self.relay_engine.relay(self.client, upstream)
            except ProxyError as e:
                self.failure = e
                self._record(Severity.WARNING, f"closed in {self.state.name}: {e}")
                self._finish_failed()
            else:
                self._record(
                    Severity.INFO,
                    f"closed {self.destination}: "
                    f"{self.outcome.inbound.bytes_copied} bytes up, "
                    f"{self.outcome.outbound.bytes_copied} bytes down",
                )
        return self.outcome
