"""Server runners used by the command line.

This module binds the servers, optionally starts the statistics panel and
serves until interrupted. Binding errors propagate to the caller, which
decides how to report them.

Example:
    # Start a SOCKS proxy with default settings
    run_socks_proxy(ProxySettings(port=1080))
"""

from rich.console import Console

from forward_socks_proxy.core.config import ProxySettings
from forward_socks_proxy.core.lib.address import Destination
from forward_socks_proxy.core.lib.proxy_server import SocksProxy
from forward_socks_proxy.core.proxy import create_forward_server, create_proxy_server, run_server
from forward_socks_proxy.core.utils.prompt.proxy_ui import create_proxy_ui

console = Console()


def _serve(server: SocksProxy, title: str, *, show_stats: bool) -> None:
    host, port = server.bound_address
    if not show_stats:
        console.print(f"[green]{title} listening on {host}:{port}")
        run_server(server)
        return

    ui = create_proxy_ui((host, port), server.stats, title)
    ui.start()
    try:
        run_server(server)
    finally:
        ui.stop()


def run_socks_proxy(settings: ProxySettings, *, show_stats: bool = False) -> None:
    """Run the SOCKS5 proxy until interrupted.

    Raises:
        OSError: If the listen address cannot be bound
    """
    server = create_proxy_server(settings)
    _serve(server, "SOCKS5 proxy", show_stats=show_stats)


def run_forwarder(settings: ProxySettings, remote: Destination, *, show_stats: bool = False) -> None:
    """Run the TCP forwarder to ``remote`` until interrupted.

    Raises:
        OSError: If the listen address cannot be bound
    """
    server = create_forward_server(settings, remote)
    _serve(server, f"Forwarder to {remote}", show_stats=show_stats)
