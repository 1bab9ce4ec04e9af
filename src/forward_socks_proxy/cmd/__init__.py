"""Command line interface modules.

This package provides the command-line tools for:
- Starting the SOCKS5 proxy server
- Starting the plain TCP forwarder
- Listing network interfaces to listen on

The command modules turn options into ``ProxySettings`` and hand them to the
core servers.
"""
