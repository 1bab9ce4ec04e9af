"""Network interface lookup.

Used by the command line to listen on a named interface instead of a literal
address, and to list the interfaces available on this machine.

Example:
    host = interface_address("eth0")
    for iface in list_interfaces():
        print(iface.name, iface.ipv4, iface.is_up)
"""

import socket
from dataclasses import dataclass

import psutil

from forward_socks_proxy.core.exceptions import ConfigError


@dataclass
class NetworkInterface:
    """Network interface representation with its key properties.

    Attributes:
        name: Interface name (e.g., 'en0', 'eth0')
        ipv4: First IPv4 address assigned to the interface, if any
        ipv6: First IPv6 address assigned to the interface, if any
        is_up: Boolean indicating if the interface is up and running
    """

    name: str
    ipv4: str | None
    ipv6: str | None
    is_up: bool


def list_interfaces() -> list[NetworkInterface]:
    """Return every interface psutil knows about, sorted by name."""
    stats = psutil.net_if_stats()
    interfaces = []
    for name, addrs in psutil.net_if_addrs().items():
        ipv4 = next((addr.address for addr in addrs if addr.family == socket.AF_INET), None)
        ipv6 = next((addr.address for addr in addrs if addr.family == socket.AF_INET6), None)
        iface_stats = stats.get(name)
        interfaces.append(
            NetworkInterface(
                name=name,
                ipv4=ipv4,
                ipv6=ipv6,
                is_up=bool(iface_stats and iface_stats.isup),
            )
        )
    return sorted(interfaces, key=lambda iface: iface.name)


def interface_address(name: str) -> str:
    """Return the IPv4 address of interface ``name``.

    Raises:
        ConfigError: If the interface does not exist or has no IPv4 address
    """
    for iface in list_interfaces():
        if iface.name != name:
            continue
        if iface.ipv4 is None:
            msg = f"interface {name} has no IPv4 address"
            raise ConfigError(msg)
        return iface.ipv4
    msg = f"no such network interface: {name}"
    raise ConfigError(msg)
