"""Bidirectional byte relay between a client and its upstream.

Two copy loops run at once: ``client->upstream`` on a worker thread and
``upstream->client`` on the calling thread. They share no mutable state and
meet only when ``relay`` joins the worker.

Each loop ends in one of two ways:

- EOF on its source: the destination's write half is shut down so the peer
  sees EOF as well. The other loop keeps running until its own source ends.
- ``TransportError``: the error is recorded and both halves of the
  destination are shut down. Shutting down the read half wakes the other
  loop, which reads from that same endpoint, so neither thread is left
  blocked forever.

Example:
    engine = RelayEngine(LoguruSink())
    outcome = engine.relay(client, upstream)
    print(outcome.inbound.bytes_copied, outcome.outbound.bytes_copied)
"""

import threading
from dataclasses import dataclass
from typing import Final

from forward_socks_proxy.core.config import DEFAULT_BUFFER_SIZE, MIN_BUFFER_SIZE
from forward_socks_proxy.core.exceptions import TransportError

from .diagnostics import DiagnosticSink, Severity
from .endpoint import DuplexEndpoint
from .proxy_stats import ProxyStats

INBOUND_LABEL: Final = "client->upstream"
OUTBOUND_LABEL: Final = "upstream->client"


@dataclass(frozen=True)
class RelayDirection:
    """One copy loop: read from ``source``, write to ``destination``."""

    source: DuplexEndpoint
    destination: DuplexEndpoint
    label: str


@dataclass
class DirectionResult:
    """How one copy loop ended."""

    label: str
    bytes_copied: int = 0
    error: TransportError | None = None


@dataclass
class RelayOutcome:
    """Results of both copy loops."""

    inbound: DirectionResult
    outbound: DirectionResult

    @property
    def clean(self) -> bool:
        return self.inbound.error is None and self.outbound.error is None


class RelayEngine:
    """Copy bytes in both directions until both sides are done."""

    def __init__(
        self,
        sink: DiagnosticSink,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        stats: ProxyStats | None = None,
    ) -> None:
        if buffer_size < MIN_BUFFER_SIZE:
            msg = f"buffer size must be at least {MIN_BUFFER_SIZE} bytes"
            raise ValueError(msg)
        self.sink = sink
        self.buffer_size = buffer_size
        self.stats = stats

    def relay(self, client: DuplexEndpoint, upstream: DuplexEndpoint) -> RelayOutcome:
        """Relay until both directions have terminated."""
        inbound = RelayDirection(client, upstream, INBOUND_LABEL)
        outbound = RelayDirection(upstream, client, OUTBOUND_LABEL)

        results: dict[str, DirectionResult] = {}
        worker = threading.Thread(
            target=lambda: results.setdefault(inbound.label, self.copy(inbound)),
            name=f"relay {client.label}",
            daemon=True,
        )
        worker.start()
        outbound_result = self.copy(outbound)
        worker.join()

        return RelayOutcome(inbound=results[inbound.label], outbound=outbound_result)

    def copy(self, direction: RelayDirection) -> DirectionResult:
        """Run one copy loop to completion."""
        result = DirectionResult(direction.label)
        try:
            while True:
                chunk = direction.source.read(self.buffer_size)
                if not chunk:
                    break
                direction.destination.write(chunk)
                result.bytes_copied += len(chunk)
                self._count(direction.label, len(chunk))
        except TransportError as e:
            result.error = e
            self.sink.record_event(Severity.WARNING, direction.label, str(e))
            direction.destination.shutdown_write()
            direction.destination.shutdown_read()
        else:
            self.sink.record_event(
                Severity.DEBUG, direction.label, f"EOF after {result.bytes_copied} bytes"
            )
            direction.destination.shutdown_write()
        return result

    def _count(self, label: str, size: int) -> None:
        if self.stats is None:
            return
        if label == INBOUND_LABEL:
            self.stats.update_bytes(upstream=size)
        else:
            self.stats.update_bytes(downstream=size)
