"""Network interface listing for the command line."""

from rich.console import Console
from rich.table import Table

from forward_socks_proxy.core.network import NetworkInterface, list_interfaces

console = Console()


def show_interfaces() -> list[NetworkInterface]:
    """Print a table of network interfaces and return them."""
    interfaces = list_interfaces()

    table = Table(title="Network Interfaces")
    table.add_column("Name", style="cyan")
    table.add_column("IPv4", style="green")
    table.add_column("IPv6", style="green")
    table.add_column("Status")

    for iface in interfaces:
        table.add_row(
            iface.name,
            iface.ipv4 or "-",
            iface.ipv6 or "-",
            "[green]up" if iface.is_up else "[red]down",
        )

    console.print(table)
    return interfaces
