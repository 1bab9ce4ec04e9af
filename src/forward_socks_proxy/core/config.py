"""Runtime settings for the proxy server.

Settings are built once, usually by the command line interface, and handed to
the server, which passes them on to every session it starts.

Example:
    settings = ProxySettings(host="127.0.0.1", port=1080, dial_timeout=5.0)
    server = create_proxy_server(settings)
"""

from dataclasses import dataclass
from typing import Final

from forward_socks_proxy.core.exceptions import ConfigError

DEFAULT_HOST: Final = "0.0.0.0"
DEFAULT_PORT: Final = 1080
DEFAULT_BUFFER_SIZE: Final = 4096
MIN_BUFFER_SIZE: Final = 1024
DEFAULT_REQUEST_QUEUE_SIZE: Final = 100
MAX_PORT: Final = 65535


@dataclass(frozen=True)
class ProxySettings:
    """Proxy configuration.

    Attributes:
        host: Address to listen on
        port: Port to listen on (0 picks a free port)
        buffer_size: Bytes read per relay iteration
        dial_timeout: Seconds allowed for the upstream connect, None to wait forever
        report_bound_address: Put the upstream socket's local address in the
            success reply instead of zeros
        strict_methods: Refuse clients that do not offer no-authentication
        nameservers: Resolve domain destinations with these servers instead of
            the system resolver
        request_queue_size: Listen backlog
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    buffer_size: int = DEFAULT_BUFFER_SIZE
    dial_timeout: float | None = None
    report_bound_address: bool = False
    strict_methods: bool = False
    nameservers: tuple[str, ...] = ()
    request_queue_size: int = DEFAULT_REQUEST_QUEUE_SIZE

    def __post_init__(self) -> None:
        if not 0 <= self.port <= MAX_PORT:
            msg = f"port must be between 0 and {MAX_PORT}, got {self.port}"
            raise ConfigError(msg)
        if self.buffer_size < MIN_BUFFER_SIZE:
            msg = f"buffer size must be at least {MIN_BUFFER_SIZE} bytes, got {self.buffer_size}"
            raise ConfigError(msg)
        if self.dial_timeout is not None and self.dial_timeout <= 0:
            msg = f"dial timeout must be positive, got {self.dial_timeout}"
            raise ConfigError(msg)
        if self.request_queue_size < 1:
            msg = f"request queue size must be positive, got {self.request_queue_size}"
            raise ConfigError(msg)
        # Accept any iterable of nameservers but store an immutable tuple
        object.__setattr__(self, "nameservers", tuple(self.nameservers))

    @property
    def listen_address(self) -> str:
        """Return ``host:port`` for display."""
        return f"{self.host}:{self.port}"
