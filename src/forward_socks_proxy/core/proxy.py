"""Public entry points for starting proxy servers.

Example:
    from forward_socks_proxy.core.proxy import create_proxy_server, run_server

    server = create_proxy_server(ProxySettings(host="127.0.0.1", port=1080))
    run_server(server)
"""

from .lib import create_forward_server, create_proxy_server, run_server

__all__ = ["create_forward_server", "create_proxy_server", "run_server"]
