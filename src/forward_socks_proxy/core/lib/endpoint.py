"""Duplex byte stream over a connected socket.

``DuplexEndpoint`` is the only object in the core that touches a socket. It
turns ``OSError`` into ``TransportError``, tracks which halves have been shut
down and refuses to use a half again once it is closed.
"""

import contextlib
import socket
import threading
import time
from types import TracebackType
from typing import Final

from forward_socks_proxy.core.exceptions import ShortReadError, TransportError

DRAIN_CHUNK: Final = 4096
DRAIN_LIMIT: Final = 65536  # bytes discarded at most before closing anyway


class DuplexEndpoint:
    """A connected socket with independently closable read and write halves."""

    def __init__(self, sock: socket.socket, label: str) -> None:
        """Wrap a connected socket.

        Args:
            sock: Connected stream socket, owned by the endpoint from now on
            label: Human readable name used in diagnostics
        """
        self._sock = sock
        self.label = label
        self._lock = threading.Lock()
        self._read_closed = False
        self._write_closed = False
        self._closed = False

    def __repr__(self) -> str:
        return f"DuplexEndpoint({self.label!r})"

    def __enter__(self) -> "DuplexEndpoint":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def read_closed(self) -> bool:
        return self._read_closed or self._closed

    @property
    def write_closed(self) -> bool:
        return self._write_closed or self._closed

    @property
    def local_address(self) -> tuple:
        """Socket name of the local end."""
        return self._sock.getsockname()

    def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes; ``b""`` means the peer closed its write half."""
        if self.read_closed:
            msg = f"{self.label}: read half is closed"
            raise TransportError(msg)
        try:
            return self._sock.recv(size)
        except OSError as e:
            msg = f"{self.label}: read failed: {e}"
            raise TransportError(msg) from e

    def read_exact(self, size: int) -> bytes:
        """Read exactly ``size`` bytes.

        Raises:
            ShortReadError: The peer closed before ``size`` bytes arrived
            TransportError: The read failed
        """
        chunks = []
        received = 0
        while received < size:
            chunk = self.read(size - received)
            if not chunk:
                raise ShortReadError(size, received)
            chunks.append(chunk)
            received += len(chunk)
        return b"".join(chunks)

    def write(self, data: bytes) -> None:
        """Send all of ``data``."""
        if self.write_closed:
            msg = f"{self.label}: write half is closed"
            raise TransportError(msg)
        try:
            self._sock.sendall(data)
        except OSError as e:
            msg = f"{self.label}: write failed: {e}"
            raise TransportError(msg) from e

    def shutdown_write(self) -> None:
        """Half-close the write side so the peer reads EOF."""
        self._shutdown(socket.SHUT_WR)

    def shutdown_read(self) -> None:
        """Half-close the read side, waking any thread blocked in ``read``."""
        self._shutdown(socket.SHUT_RD)

    def _shutdown(self, how: int) -> None:
        with self._lock:
            if self._closed:
                return
            if how == socket.SHUT_WR:
                if self._write_closed:
                    return
                self._write_closed = True
            else:
                if self._read_closed:
                    return
                self._read_closed = True
            # The peer may already be gone; the half is closed either way
            with contextlib.suppress(OSError):
                self._sock.shutdown(how)

    def drain(self, timeout: float, limit: int = DRAIN_LIMIT) -> int:
        """Discard pending input until EOF, ``timeout`` seconds or ``limit`` bytes.

        Closing a socket with unread input makes the kernel answer with a reset,
        which can destroy a reply the peer has not read yet. Draining first lets
        the close end with a normal FIN.

        Returns:
            int: Number of bytes discarded
        """
        if self.read_closed:
            return 0
        deadline = time.monotonic() + timeout
        discarded = 0
        # Timeouts and resets both end the drain
        with contextlib.suppress(OSError):
            while discarded < limit:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self._sock.settimeout(remaining)
                chunk = self._sock.recv(DRAIN_CHUNK)
                if not chunk:
                    break
                discarded += len(chunk)
        return discarded

    def close(self) -> None:
        """Release the socket. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._sock.close()
