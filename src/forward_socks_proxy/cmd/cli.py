"""Command-line interface for the forward SOCKS5 proxy.

This module provides the main command-line interface, handling:
- Command-line argument parsing
- Logging setup
- Settings validation
- Interface selection
- Error reporting

Commands:
- ``serve PORT``: run the SOCKS5 proxy
- ``forward PORT REMOTE``: relay every connection to a fixed ``host:port``
- ``interfaces``: list network interfaces

Example:
    # Run from command line:
    $ forward-socks-proxy serve 1080 --host 127.0.0.1 --dial-timeout 10
    $ forward-socks-proxy forward 8080 example.com:80
"""

import typer
from loguru import logger
from rich.console import Console

from forward_socks_proxy import __version__
from forward_socks_proxy.cmd.interfaces import show_interfaces
from forward_socks_proxy.cmd.socks import run_forwarder, run_socks_proxy
from forward_socks_proxy.core.config import DEFAULT_BUFFER_SIZE, DEFAULT_HOST, ProxySettings
from forward_socks_proxy.core.exceptions import ConfigError
from forward_socks_proxy.core.lib.address import Destination
from forward_socks_proxy.core.network import interface_address
from forward_socks_proxy.core.utils.log_config import configure_logging

console = Console()
app = typer.Typer(help="Forward SOCKS5 proxy with a CONNECT-only relay")


def _fail(message: str) -> typer.Exit:
    logger.error(message)
    console.print(f"[red]Error: {message}")
    return typer.Exit(code=1)


def _listen_host(host: str, interface: str | None) -> str:
    if interface is None:
        return host
    try:
        return interface_address(interface)
    except ConfigError as e:
        raise _fail(str(e)) from e


@app.callback(invoke_without_command=True)
def version_callback(ctx: typer.Context):
    """Show version information."""
    if ctx.invoked_subcommand is None:
        console.print(f"[cyan]Forward SOCKS Proxy v{__version__}[/cyan]")


@app.command(name="serve")
def serve(
    port: int = typer.Argument(..., help="Port to listen on"),
    host: str = typer.Option(DEFAULT_HOST, "--host", help="Address to listen on"),
    interface: str | None = typer.Option(
        None, "--interface", "-i", help="Listen on this interface's IPv4 address instead of --host"
    ),
    buffer_size: int = typer.Option(DEFAULT_BUFFER_SIZE, "--buffer-size", help="Relay buffer size in bytes"),
    dial_timeout: float | None = typer.Option(
        None, "--dial-timeout", help="Seconds allowed for upstream connects (default: no limit)"
    ),
    report_bound_address: bool = typer.Option(
        default=False,
        help="Report the upstream socket's local address in success replies",
    ),
    strict_methods: bool = typer.Option(
        default=False,
        help="Refuse clients that do not offer the no-authentication method",
    ),
    nameserver: list[str] | None = typer.Option(
        None, "--nameserver", "-n", help="Resolve domains with this nameserver (repeatable)"
    ),
    stats: bool = typer.Option(default=False, help="Show live statistics"),
    debug: bool = typer.Option(default=False, help="Enable debug logging"),
    log_file: bool = typer.Option(default=False, help="Also log to a rotating file"),
):
    """Start the SOCKS5 proxy server."""
    log_path = configure_logging(debug=debug, log_file=log_file)
    if log_path:
        logger.info(f"Logging to {log_path}")

    try:
        settings = ProxySettings(
            host=_listen_host(host, interface),
            port=port,
            buffer_size=buffer_size,
            dial_timeout=dial_timeout,
            report_bound_address=report_bound_address,
            strict_methods=strict_methods,
            nameservers=tuple(nameserver or ()),
        )
    except ConfigError as e:
        raise _fail(str(e)) from e

    logger.info(f"Starting SOCKS5 proxy on {settings.listen_address}")
    try:
        run_socks_proxy(settings, show_stats=stats)
    except OSError as e:
        raise _fail(f"cannot listen on {settings.listen_address}: {e}") from e


@app.command(name="forward")
def forward(
    port: int = typer.Argument(..., help="Port to listen on"),
    remote: str = typer.Argument(..., help="Destination as host:port"),
    host: str = typer.Option(DEFAULT_HOST, "--host", help="Address to listen on"),
    interface: str | None = typer.Option(
        None, "--interface", "-i", help="Listen on this interface's IPv4 address instead of --host"
    ),
    dial_timeout: float | None = typer.Option(
        None, "--dial-timeout", help="Seconds allowed for upstream connects (default: no limit)"
    ),
    stats: bool = typer.Option(default=False, help="Show live statistics"),
    debug: bool = typer.Option(default=False, help="Enable debug logging"),
    log_file: bool = typer.Option(default=False, help="Also log to a rotating file"),
):
    """Relay every connection to a fixed remote address."""
    configure_logging(debug=debug, log_file=log_file)

    try:
        destination = Destination.parse(remote)
    except ValueError as e:
        raise _fail(str(e)) from e

    try:
        settings = ProxySettings(host=_listen_host(host, interface), port=port, dial_timeout=dial_timeout)
    except ConfigError as e:
        raise _fail(str(e)) from e

    logger.info(f"Forwarding {settings.listen_address} to {destination}")
    try:
        run_forwarder(settings, destination, show_stats=stats)
    except OSError as e:
        raise _fail(f"cannot listen on {settings.listen_address}: {e}") from e


@app.command(name="interfaces")
def interfaces():
    """List network interfaces."""
    show_interfaces()


if __name__ == "__main__":
    app()
