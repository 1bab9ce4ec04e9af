"""Statistics tracking for the proxy server.

Each server owns one ``ProxyStats``. Sessions report connection lifecycle
events and the relay engine reports bytes copied per direction. All updates
go through a lock, so any number of session threads can share one instance.

Example:
    stats = ProxyStats()
    stats.connection_started()
    stats.update_bytes(upstream=1024, downstream=2048)
    stats.connection_ended(failed=False)
"""

import threading
import time
from collections import deque
from typing import Final

BANDWIDTH_WINDOW: Final = 5.0  # seconds
HISTORY_SIZE: Final = 1024


class ProxyStats:
    """Thread-safe statistics tracker for the proxy server."""

    def __init__(self) -> None:
        self.active_connections = 0
        self.total_connections = 0
        self.failed_connections = 0
        self.bytes_upstream = 0
        self.bytes_downstream = 0
        self.bandwidth_history: deque[tuple[int, float]] = deque(maxlen=HISTORY_SIZE)
        self.start_time = time.monotonic()
        self._lock = threading.Lock()

    def update_bytes(self, upstream: int = 0, downstream: int = 0) -> None:
        """Record relayed bytes.

        Args:
            upstream: Bytes copied from client to upstream
            downstream: Bytes copied from upstream to client
        """
        with self._lock:
            self.bytes_upstream += upstream
            self.bytes_downstream += downstream
            self.bandwidth_history.append((upstream + downstream, time.monotonic()))

    def get_bandwidth(self) -> float:
        """Average bytes per second over the last few seconds."""
        with self._lock:
            cutoff = time.monotonic() - BANDWIDTH_WINDOW
            total_bytes = sum(bytes_ for bytes_, ts in self.bandwidth_history if ts > cutoff)
        return total_bytes / BANDWIDTH_WINDOW

    @property
    def total_bytes(self) -> int:
        return self.bytes_upstream + self.bytes_downstream

    @property
    def uptime(self) -> float:
        return time.monotonic() - self.start_time

    def connection_started(self) -> None:
        with self._lock:
            self.active_connections += 1
            self.total_connections += 1

    def connection_ended(self, *, failed: bool = False) -> None:
        with self._lock:
            self.active_connections -= 1
            if failed:
                self.failed_connections += 1
