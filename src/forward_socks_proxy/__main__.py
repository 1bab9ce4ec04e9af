"""Allow ``python -m forward_socks_proxy``."""

from forward_socks_proxy.cmd.cli import app

app(prog_name="forward-socks-proxy")
