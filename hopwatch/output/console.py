"""
Rich console output for hopwatch - live hop table with latency sparklines
"""

import threading
from typing import Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..models import Hop, HopUpdate, ScannerStatus


# Latency thresholds (ms) and colors
THRESHOLD_GOOD = 50.0
THRESHOLD_MEDIUM = 150.0
STYLE_GOOD = 'green'
STYLE_MEDIUM = 'yellow'
STYLE_HIGH = 'red'
STYLE_TIMEOUT = 'grey50'

SPARK_CHARS = '▁▂▃▄▅▆▇█'
SPARK_TIMEOUT = '·'


def latency_style(latency: Optional[float]) -> str:
    """Color for a latency sample; timeouts are grey"""
    if latency is None or latency <= 0:
        return STYLE_TIMEOUT
    if latency < THRESHOLD_GOOD:
        return STYLE_GOOD
    if latency < THRESHOLD_MEDIUM:
        return STYLE_MEDIUM
    return STYLE_HIGH


def hop_state(hop: Hop) -> str:
    if hop.avg_latency > 0:
        return 'Active'
    if not hop.address:
        return 'Unknown'
    return 'Timeout'


def format_latency(hop: Hop) -> str:
    if hop.avg_latency > 0:
        return f"{hop.avg_latency:.2f} ms"
    return "N/A"


def format_loss(hop: Hop) -> str:
    if hop.loss_percent > 0:
        return f"{hop.loss_percent:.1f}%"
    return "0%"


def format_status(status: ScannerStatus, hop_count: int = 0) -> str:
    """User-facing text for a scanner status"""
    if status == ScannerStatus.TRACING:
        return "Tracing route to destination..."
    if status == ScannerStatus.PINGING:
        return f"Monitoring {hop_count} hops..."
    if status == ScannerStatus.STOPPED:
        return "Stopped"
    if status == ScannerStatus.ERROR:
        return "Error occurred"
    return str(status)


def sparkline(history: tuple[Optional[float], ...], width: Optional[int] = None) -> Text:
    """
    Render a latency window as a colored bar sparkline.

    Bar height is relative to the largest sample shown; timeouts
    are drawn as a grey dot.
    """
    samples = history[-width:] if width else history
    valid = [s for s in samples if s is not None and s > 0]
    peak = max(valid) if valid else 0.0

    line = Text()
    for sample in samples:
        if sample is None or sample <= 0:
            line.append(SPARK_TIMEOUT, style=STYLE_TIMEOUT)
            continue
        level = int(sample / peak * (len(SPARK_CHARS) - 1)) if peak else 0
        line.append(SPARK_CHARS[level], style=latency_style(sample))
    return line


class LiveView:
    """
    Consumer-side hop list for the live display.

    Applies updates as they arrive (indices may arrive sparsely) and
    renders itself as a table when refreshed by ``rich.live.Live``.
    """

    def __init__(self, target: str, graph_width: int = 40):
        self.target = target
        self.resolved: Optional[str] = None
        self.graph_width = graph_width
        self.status_text = "Starting..."
        self._hops: list[Hop] = []
        self._lock = threading.Lock()

    def apply(self, update: HopUpdate):
        with self._lock:
            while len(self._hops) <= update.index:
                self._hops.append(Hop())
            self._hops[update.index] = update.hop

    def set_status(self, status: ScannerStatus):
        with self._lock:
            count = len(self._hops)
        self.status_text = format_status(status, count)

    def hops(self) -> list[Hop]:
        with self._lock:
            return list(self._hops)

    def render(self) -> Panel:
        table = Table(
            show_header=True,
            header_style="bold magenta",
            box=box.ROUNDED,
            border_style="dim",
            padding=(0, 1),
        )

        # Columns: # | IP | Latency | Loss | Status | Graph
        table.add_column("#", style="dim", width=3, justify="right")
        table.add_column("IP Address", width=16)
        table.add_column("Latency", width=10, justify="right")
        table.add_column("Loss", width=6, justify="right")
        table.add_column("Status", width=8)
        table.add_column("Latency Graph", min_width=self.graph_width, no_wrap=True)

        for index, hop in enumerate(self.hops()):
            state = hop_state(hop)
            table.add_row(
                str(index + 1),
                hop.address or "*",
                Text(format_latency(hop), style=latency_style(hop.avg_latency)),
                format_loss(hop),
                Text(state, style=STYLE_GOOD if state == 'Active' else STYLE_TIMEOUT),
                sparkline(hop.latency_history, self.graph_width),
            )

        title = Text()
        title.append("Path to ", style="dim")
        title.append(self.target, style="bold")
        if self.resolved and self.resolved != self.target:
            title.append(f" ({self.resolved})", style="dim")

        return Panel(
            table,
            title=title,
            subtitle=Text(f"Status: {self.status_text}", style="italic"),
            border_style="blue",
            padding=(0, 0),
        )

    def __rich__(self) -> Panel:
        return self.render()


class ConsoleOutput:
    """Plain console messages around the live view"""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def print_header(self, target: str, resolved_ip: str, interval: float,
                     timeout: float, max_hops: int, loss_policy: str):
        content = Text()
        content.append("hopwatch", style="bold cyan")
        content.append("\n")
        content.append("Target: ", style="dim")
        content.append(target, style="bold")
        if target != resolved_ip:
            content.append(f" ({resolved_ip})", style="dim")
        content.append("\n")
        content.append(
            f"Interval: {interval:g}s  |  Timeout: {timeout:g}s  |  "
            f"Max hops: {max_hops}  |  Loss: {loss_policy}",
            style="dim",
        )
        self.console.print(Panel(content, border_style="cyan", padding=(0, 1)))

    def print_error(self, message: str):
        """Print error message"""
        self.console.print(f"[bold red]Error:[/] {message}")
