"""
Rich console output for RouteMap - with real-time per-hop printing
"""

from typing import Optional
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich import box

from .. import __version__
from ..config import Settings
from ..enrichment import IPClassifier
from ..enrichment.geo_lookup import get_flag
from ..models import EnrichedHop, GeoInfo, PublicIPInfo, TraceResult


# Tag styling
TAG_STYLES = {
    'private': ('🏠', 'dim'),
    'loopback': ('🔄', 'dim'),
    'linklocal': ('🔗', 'dim'),
    'no_reply': ('⏳', 'yellow'),
}

RULE_WIDTH = 100


class ConsoleOutput:
    """
    Rich console output for traceroute results.

    Features:
    - Real-time per-hop output
    - Flag and city for geolocated hops
    - Summary panel with hop counts
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self._table_header_printed = False

    def print_header(self, target: str, settings: Settings, geolocate: bool = True):
        """Print trace header"""
        content = Text()
        content.append("🗺  RouteMap", style="bold cyan")
        content.append(f" v{__version__}\n", style="dim")
        content.append("Target: ", style="dim")
        content.append(target, style="bold")
        content.append("\n")
        content.append(f"Tool: {settings.mtr_bin}", style="dim")
        content.append(f"  |  Rounds: {settings.mtr_count} × {settings.max_hops} hops", style="dim")
        if geolocate:
            content.append(f"\nGeo: {' → '.join(settings.geo_providers)}", style="dim")

        panel = Panel(content, border_style="cyan", padding=(0, 1))
        self.console.print(panel)
        self.console.print()

    def print_table_header(self):
        """Print the table header row"""
        if self._table_header_printed:
            return

        # Column order: # | RTT | IP | Status | Location | Host
        header = Text()
        header.append(f"{'#':>3}  ", style="bold magenta")
        header.append(f"{'RTT (ms)':>9}  ", style="bold magenta")
        header.append(f"{'IP':<16}  ", style="bold magenta")
        header.append(f"{'Status':<6}  ", style="bold magenta")
        header.append(f"{'Location':<24}  ", style="bold magenta")
        header.append(f"{'Host':<30}", style="bold magenta")

        self.console.print("─" * RULE_WIDTH)
        self.console.print(header)
        self.console.print("─" * RULE_WIDTH)
        self._table_header_printed = True

    def print_hop_realtime(self, hop: EnrichedHop):
        """Print a single hop result in real-time"""
        self.print_table_header()

        line = Text()
        line.append(f"{hop.index:>3}  ", style="dim")
        line.append(f"{self._format_rtt(hop.rtt_ms):>9}  ")
        line.append(f"{(hop.address or '*'):<16}  ", style="" if hop.address else "yellow")
        line.append(f"{self._format_tag(hop.address):<6}  ")
        line.append(f"{self._format_geo(hop.geo):<24}  ")
        line.append(f"{(hop.display_name or '-'):<30}", style="dim")

        self.console.print(line)

    def print_separator(self):
        """Print table separator"""
        self.console.print("─" * RULE_WIDTH)

    def print_results(self, result: TraceResult):
        """Print results table (for non-realtime mode)"""
        table = Table(
            show_header=True,
            header_style="bold magenta",
            box=box.ROUNDED,
            border_style="dim",
            padding=(0, 1)
        )

        table.add_column("#", style="dim", width=3, justify="right")
        table.add_column("RTT (ms)", width=9, justify="right")
        table.add_column("IP", width=16)
        table.add_column("Private", width=7)
        table.add_column("Host", width=30, overflow="ellipsis")

        for hop in result.hops:
            table.add_row(
                str(hop.index),
                self._format_rtt(hop.rtt_ms),
                hop.address or "-",
                "yes" if hop.is_private else "no",
                hop.display_name or "-",
            )

        header = Text()
        header.append("📍 Route to ", style="dim")
        header.append(result.target, style="bold")

        panel = Panel(table, title=header, border_style="blue", padding=(0, 0))
        self.console.print(panel)

    def print_summary(self, result: TraceResult):
        """Print summary panel"""
        stats = result.stats
        content = Text()

        content.append("Hops: ", style="bold")
        content.append(f"{stats.total_hops} total, {stats.public_hops} public", style="dim")

        if result.geo_providers:
            content.append("\n")
            content.append("Located: ", style="bold")
            content.append(f"{stats.geolocated_hops}/{stats.public_hops} public hops", style="dim")

        if result.final_rtt is not None:
            content.append("\n")
            content.append("Last hop RTT: ", style="bold")
            content.append(f"{result.final_rtt:.1f}ms", style="dim")

        content.append("\n")
        content.append("Duration: ", style="bold")
        content.append(f"{stats.duration_ms / 1000:.1f}s", style="dim")

        has_hops = stats.total_hops > 0
        panel = Panel(
            content,
            title=Text("📊 Summary", style="bold"),
            border_style="green" if has_hops else "red",
            padding=(0, 1)
        )
        self.console.print()
        self.console.print(panel)

    def print_diag(self, result: TraceResult, settings: Settings):
        """Print diagnostic run"""
        content = Text()
        content.append("✅ ", style="green")
        content.append("mtr OK: ", style="bold")
        content.append(f"{settings.mtr_bin} (count: {settings.mtr_count})", style="dim")
        content.append("\n")
        content.append("Test target: ", style="bold")
        content.append(result.target, style="dim")

        self.console.print(Panel(content, border_style="green", padding=(0, 1)))
        self.print_results(result)
        self.print_summary(result)

    def print_public_ip(self, info: PublicIPInfo):
        """Print public IP detection result"""
        content = Text()
        content.append("Public IP: ", style="bold")
        content.append(info.ip)
        content.append("\n")
        content.append("Location: ", style="bold")
        content.append(self._format_geo(info.geo, long=True))
        content.append("\n")
        content.append(f"Source: {info.source}", style="dim")

        self.console.print(Panel(content, border_style="cyan", padding=(0, 1)))

    def print_error(self, message: str):
        """Print error message"""
        self.console.print(f"[bold red]Error:[/] {message}")

    def print_warning(self, message: str):
        """Print warning message"""
        self.console.print(f"[yellow]Warning:[/] {message}")

    def _format_rtt(self, rtt: Optional[float]) -> str:
        return f"{rtt:.1f}" if rtt is not None else "*"

    def _format_tag(self, address: Optional[str]) -> str:
        tag = IPClassifier.get_tag(address)
        if not tag:
            return ""
        icon, _ = TAG_STYLES.get(tag, ('•', 'dim'))
        return icon

    def _format_geo(self, geo: Optional[GeoInfo], long: bool = False) -> str:
        """Format geo info with flag"""
        if not geo:
            return "-"

        parts = []
        if geo.country_code:
            parts.append(get_flag(geo.country_code))

        place = geo.city or geo.region or geo.country or geo.country_code
        if place:
            parts.append(place if long else place[:18])
        if long and geo.country and geo.country != place:
            parts.append(f"({geo.country})")
        if long:
            parts.append(f"[{geo.lat:.4f}, {geo.lon:.4f}]")
        elif not place:
            parts.append(f"{geo.lat:.1f},{geo.lon:.1f}")

        return " ".join(parts)
