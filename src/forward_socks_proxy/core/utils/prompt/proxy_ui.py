"""Live statistics panel for the proxy server.

Renders a server's ``ProxyStats`` with Rich ``Live`` on a daemon thread, so
the accept loop keeps running in the foreground.

Example:
    ui = create_proxy_ui(server.bound_address, server.stats)
    ui.start()
    ...
    ui.stop()
"""

import threading
import time
from typing import Final

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.spinner import Spinner
from rich.table import Table
from rich.text import Text

from forward_socks_proxy.core.lib.proxy_stats import ProxyStats
from forward_socks_proxy.core.utils.utils import format_bytes, format_duration

console = Console()

BANDWIDTH_THRESHOLD: Final = 100  # bytes per second
REFRESH_INTERVAL: Final = 0.5  # seconds


class ProxyUI:
    """UI handler for the proxy server."""

    def __init__(
        self,
        address: tuple[str, int],
        stats: ProxyStats,
        title: str = "SOCKS5 Proxy",
        output: Console | None = None,
    ) -> None:
        """Initialize the proxy UI handler.

        Args:
            address: Host and port the server is listening on
            stats: Statistics of the server to display
            title: Panel title prefix
            output: Console to draw on, the shared one by default
        """
        self.host, self.port = address
        self.stats = stats
        self.title = title
        self.console = output or console
        self.running = False
        self._thread: threading.Thread | None = None
        self._last_bandwidth = 0.0
        self._start_time = time.monotonic()
        self._spinner = Spinner("dots", text="")

    def _generate_table(self) -> Table:
        """Generate statistics table."""
        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_column("Property", style="cyan", no_wrap=True)
        table.add_column("Value", style="green", no_wrap=True)

        bandwidth = self.stats.get_bandwidth()
        # Ignore small changes to keep the number from flickering
        if abs(bandwidth - self._last_bandwidth) > BANDWIDTH_THRESHOLD:
            self._last_bandwidth = bandwidth

        spinner_text = self._spinner.render(time.monotonic() - self._start_time)

        table.add_row("Bandwidth", Text.assemble(spinner_text, f" {format_bytes(self._last_bandwidth)}/s"))
        table.add_row("Active Connections", str(self.stats.active_connections))
        table.add_row("Total Connections", str(self.stats.total_connections))
        table.add_row("Failed Connections", str(self.stats.failed_connections))
        table.add_row("Sent Upstream", format_bytes(self.stats.bytes_upstream))
        table.add_row("Received Downstream", format_bytes(self.stats.bytes_downstream))
        table.add_row("Uptime", format_duration(self.stats.uptime))
        return table

    def _generate_display(self) -> Panel:
        """Generate the main display panel."""
        title = Text(f"{self.title}: {self.host}:{self.port}", style="bold cyan")
        return Panel(
            self._generate_table(),
            title=title,
            subtitle="Press Ctrl+C to exit",
            border_style="blue",
            padding=(1, 2),
        )

    def start(self) -> None:
        """Start refreshing the panel on a daemon thread."""
        self.running = True
        self._thread = threading.Thread(target=self.run, name="proxy-ui", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop refreshing and wait for the last frame to be drawn."""
        self.running = False
        if self._thread is not None:
            self._thread.join(REFRESH_INTERVAL * 4)

    def run(self) -> None:
        """Refresh the panel until stopped."""
        with Live(
            self._generate_display(),
            console=self.console,
            refresh_per_second=4,
            transient=False,
            auto_refresh=False,
        ) as live:
            while self.running:
                live.update(self._generate_display(), refresh=True)
                time.sleep(REFRESH_INTERVAL)


def create_proxy_ui(address: tuple[str, int], stats: ProxyStats, title: str = "SOCKS5 Proxy") -> ProxyUI:
    """Create the statistics panel; the caller starts and stops it."""
    return ProxyUI(address, stats, title)
