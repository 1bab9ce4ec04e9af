"""Core proxy library components."""

from .address import AddressType, Destination, decode_address, encode_address
from .diagnostics import DiagnosticSink, LoguruSink, Severity
from .dialer import Dialer
from .endpoint import DuplexEndpoint
from .protocol import Command, ReplyCode, build_reply, negotiate, read_request
from .proxy_server import (
    ForwardHandler,
    ForwardProxy,
    SocksHandler,
    SocksProxy,
    create_forward_server,
    create_proxy_server,
    run_server,
)
from .proxy_stats import ProxyStats
from .relay import DirectionResult, RelayDirection, RelayEngine, RelayOutcome
from .session import ConnectionSession, SessionState

__all__ = [
    "AddressType",
    "build_reply",
    "Command",
    "ConnectionSession",
    "create_forward_server",
    "create_proxy_server",
    "decode_address",
    "Destination",
    "DiagnosticSink",
    "Dialer",
    "DirectionResult",
    "DuplexEndpoint",
    "encode_address",
    "ForwardHandler",
    "ForwardProxy",
    "LoguruSink",
    "negotiate",
    "ProxyStats",
    "read_request",
    "RelayDirection",
    "RelayEngine",
    "RelayOutcome",
    "ReplyCode",
    "run_server",
    "SessionState",
    "Severity",
    "SocksHandler",
    "SocksProxy",
]
