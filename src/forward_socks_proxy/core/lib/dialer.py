"""Outbound TCP connections to SOCKS destinations."""

import socket

from loguru import logger

from forward_socks_proxy.core.exceptions import UpstreamConnectError

from .address import Destination
from .dns_handler import DNSResolver
from .endpoint import DuplexEndpoint


class Dialer:
    """Open TCP connections to decoded destinations.

    A failed dial is never retried; ``socket.create_connection`` already walks
    every address the name resolves to.
    """

    def __init__(self, timeout: float | None = None, resolver: DNSResolver | None = None) -> None:
        """Initialize the dialer.

        Args:
            timeout: Default connect timeout in seconds, None to block
            resolver: Resolver for domain destinations, None for the system one
        """
        self.timeout = timeout
        self.resolver = resolver

    def connect(self, destination: Destination, timeout: float | None = None) -> DuplexEndpoint:
        """Connect to ``destination``.

        Args:
            destination: Where to connect
            timeout: Overrides the dialer's default timeout

        Returns:
            DuplexEndpoint: The upstream connection

        Raises:
            UpstreamConnectError: Resolution or connect failed
        """
        host, port = destination.connect_address
        if destination.is_domain and self.resolver is not None:
            host = self.resolver.resolve(host)

        try:
            remote = socket.create_connection((host, port), timeout=timeout or self.timeout)
        except (OSError, UnicodeError) as e:
            # UnicodeError: the system resolver cannot IDNA-encode the name
            raise UpstreamConnectError(destination, e) from e

        # The timeout only bounds the connect; relaying has no deadlines
        remote.settimeout(None)
        logger.debug(f"Connected to {destination} via {host}")
        return DuplexEndpoint(remote, label=f"upstream {destination}")
