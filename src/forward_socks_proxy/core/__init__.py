"""Core proxy server implementation.

This package contains the protocol core and everything it runs on:
- SOCKS5 negotiation, request parsing and reply encoding
- The bidirectional relay engine
- The per-connection session state machine
- Threaded servers for SOCKS5 and plain forwarding
- Settings, exceptions, network interface lookup and logging setup

The command line layer in ``forward_socks_proxy.cmd`` only builds settings
and calls into this package.
"""
