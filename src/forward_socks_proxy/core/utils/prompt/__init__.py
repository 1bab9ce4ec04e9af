"""Terminal UI components."""

from forward_socks_proxy.core.utils.prompt.proxy_ui import ProxyUI, console, create_proxy_ui

__all__ = ["console", "create_proxy_ui", "ProxyUI"]
