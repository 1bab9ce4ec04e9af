"""Utility functions and helpers."""

from forward_socks_proxy.core.utils.prompt import ProxyUI, create_proxy_ui
from forward_socks_proxy.core.utils.utils import format_bytes, format_duration

__all__ = ["create_proxy_ui", "format_bytes", "format_duration", "ProxyUI"]
