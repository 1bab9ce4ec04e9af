"""DNS resolution using dnspython.

Only used when nameservers are configured. Without them, domain destinations
are resolved by the system resolver inside ``socket.create_connection``.
"""

import threading
from typing import TYPE_CHECKING, Final, cast

import dns.exception
import dns.resolver
from loguru import logger

from forward_socks_proxy.core.exceptions import DNSResolutionError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from dns.resolver import Resolver

# DNS resolver constants
DEFAULT_TIMEOUT: Final = 1.0  # seconds
DEFAULT_LIFETIME: Final = 3.0  # seconds
RECORD_TYPES: Final = ("A", "AAAA")


class DNSResolver:
    """Resolve domain names against a fixed list of nameservers."""

    def __init__(
        self,
        nameservers: "Iterable[str]",
        timeout: float = DEFAULT_TIMEOUT,
        lifetime: float = DEFAULT_LIFETIME,
    ) -> None:
        """Initialize the resolver.

        Args:
            nameservers: IP addresses of the nameservers to query
            timeout: Seconds to wait for each server
            lifetime: Total seconds allowed for one lookup
        """
        self.resolver = cast("Resolver", dns.resolver.Resolver(configure=False))
        self.resolver.nameservers = list(nameservers)
        self.resolver.timeout = timeout
        self.resolver.lifetime = lifetime
        self._cache: dict[str, str] = {}
        self._lock = threading.Lock()

    def _try_record_type(self, domain: str, record_type: str) -> str | None:
        try:
            answer = self.resolver.resolve(domain, record_type)
        except dns.exception.DNSException as e:
            logger.debug(f"{record_type} lookup failed for {domain}: {e}")
            return None
        return str(answer[0])

    def resolve(self, domain: str) -> str:
        """Resolve domain name to IP address.

        Args:
            domain: Domain name to resolve

        Returns:
            str: Resolved IP address, IPv4 preferred

        Raises:
            DNSResolutionError: If no record type resolves
        """
        with self._lock:
            cached = self._cache.get(domain)
        if cached:
            return cached

        for record_type in RECORD_TYPES:
            if ip := self._try_record_type(domain, record_type):
                with self._lock:
                    self._cache[domain] = ip
                return ip

        raise DNSResolutionError(domain, "no A or AAAA record from configured nameservers")
