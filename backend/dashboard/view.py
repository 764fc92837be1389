"""
Rich renderables for the dashboard: header, error banner, container table and
the detail panel with sparklines.
"""
import math
from datetime import datetime
from typing import List, Optional, Sequence

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from dashboard.history import MetricHistory
from dashboard.state import DashboardState, Phase
from services.formatting import format_bytes, parse_engine_timestamp

STATE_STYLES = {
    "running": "green",
    "paused": "yellow",
    "restarting": "cyan",
    "stopped": "red",
    "unknown": "dim",
}

SPARK_BLOCKS = "▁▂▃▄▅▆▇█"


# --------------------------------------------------------------------------------------
# Small formatters
# --------------------------------------------------------------------------------------

def _parse(value: Optional[str]) -> Optional[datetime]:
    dt = parse_engine_timestamp(value)
    # docker reports 0001-01-01T00:00:00Z for "never"
    if dt is None or dt.year <= 1:
        return None
    return dt


def format_timestamp(value: Optional[str]) -> str:
    """ISO string -> local wall-clock time, "-" when missing."""
    dt = _parse(value)
    return dt.astimezone().strftime("%H:%M:%S") if dt else "-"


def format_datetime(value: Optional[str]) -> str:
    dt = _parse(value)
    return dt.astimezone().strftime("%Y-%m-%d %H:%M:%S") if dt else "-"


def split_list(value: str) -> List[str]:
    """"a, b" -> ["a", "b"]; "-" or "" -> ["-"]."""
    if not value or value == "-":
        return ["-"]
    return [item.strip() for item in value.split(",")]


def clamp_percent(percent: float) -> float:
    if percent is None or not math.isfinite(percent):
        return 0.0
    return min(max(percent, 0.0), 100.0)


def usage_bar(percent: float, label: str, width: int = 10) -> Text:
    """
    "▓▓▓░░░░░░░ 31.2%"-style bar; percent is clamped to [0, 100].
    """
    safe = clamp_percent(percent)
    filled = int(round(safe / 100 * width))
    style = "red" if safe >= 90 else "yellow" if safe >= 70 else "green"
    text = Text()
    text.append("▓" * filled, style=style)
    text.append("░" * (width - filled), style="dim")
    text.append(f" {label}")
    return text


def sparkline(data: Sequence[float], peak: Optional[float] = None) -> str:
    """
    Unicode sparkline scaled to `peak` (default: the series max, at least 1).
    """
    values = [v if math.isfinite(v) else 0.0 for v in data] or [0.0]
    top = peak if peak is not None else max(max(values), 1)
    chars = []
    for v in values:
        ratio = min(max(v / top, 0.0), 1.0) if top > 0 else 0.0
        chars.append(SPARK_BLOCKS[int(round(ratio * (len(SPARK_BLOCKS) - 1)))])
    return "".join(chars)


# --------------------------------------------------------------------------------------
# Sections
# --------------------------------------------------------------------------------------

def render_header(state: DashboardState) -> Text:
    text = Text()
    text.append("ctop", style="bold")
    text.append("·web  ", style="dim")
    text.append(f"Containers: {len(state.containers)}  ")
    text.append(f"Running: {state.running_count}  ")
    text.append(f"Updated: {format_timestamp(state.last_updated)}  ")
    if state.paused:
        text.append("Auto-refresh paused", style="yellow")
    else:
        text.append(f"Every {state.refresh_seconds:g}s", style="dim")
    if state.phase == Phase.REFRESHING:
        text.append("  refreshing…", style="cyan")
    if state.filter_query:
        text.append(f"  filter: {state.filter_query!r}", style="magenta")
    return text


def render_banner(state: DashboardState) -> Optional[Panel]:
    if not state.error:
        return None
    return Panel(Text(state.error), title="Error", border_style="red")


def render_table(state: DashboardState) -> RenderableType:
    if state.phase == Phase.LOADING and not state.has_data:
        return Text("Loading containers…", style="dim")

    rows = state.filtered_containers()
    if not rows:
        return Text("No containers match the current filter.", style="dim")

    table = Table(expand=True, header_style="bold")
    table.add_column("Name", no_wrap=True)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("State")
    table.add_column("CPU", min_width=18)
    table.add_column("Memory", min_width=24)
    table.add_column("Net RX / TX")
    table.add_column("Block R / W")
    table.add_column("PIDs", justify="right")
    table.add_column("Uptime", justify="right")
    table.add_column("Ports")
    table.add_column("Networks")

    for c in rows:
        marker = "▶ " if c.id == state.selected_id else ""
        table.add_row(
            f"{marker}{c.name}",
            c.raw.short_id,
            Text(c.state, style=STATE_STYLES.get(c.state, "")),
            usage_bar(c.cpu, f"{c.cpu:.1f}%"),
            usage_bar(c.memory.percent, f"{c.memory.usage} / {c.memory.limit}"),
            f"{c.net_io.rx} / {c.net_io.tx}",
            f"{c.block_io.read} / {c.block_io.write}",
            str(c.pids),
            c.uptime,
            "\n".join(split_list(c.ports)),
            "\n".join(split_list(c.networks)),
        )
    return table


def _history_table(history: Optional[MetricHistory]) -> Table:
    table = Table(box=None, show_header=False, padding=(0, 1))
    table.add_column(style="bold")
    table.add_column()
    table.add_column(justify="right")
    if history is None or len(history) == 0:
        table.add_row("History", Text("collecting…", style="dim"), "")
        return table

    def last(name: str) -> float:
        series = history.series(name)
        return series[-1] if series else 0.0

    table.add_row("CPU", Text(sparkline(history.series("cpu"), peak=100), style="green"), f"{last('cpu'):.1f}%")
    table.add_row("Memory", Text(sparkline(history.series("mem"), peak=100), style="blue"), f"{last('mem'):.1f}%")
    table.add_row("Net RX", Text(sparkline(history.series("net_rx")), style="cyan"), format_bytes(last("net_rx")))
    table.add_row("Net TX", Text(sparkline(history.series("net_tx")), style="cyan"), format_bytes(last("net_tx")))
    table.add_row("Block R", Text(sparkline(history.series("block_read")), style="magenta"), format_bytes(last("block_read")))
    table.add_row("Block W", Text(sparkline(history.series("block_write")), style="magenta"), format_bytes(last("block_write")))
    return table


def render_detail(state: DashboardState) -> Optional[Panel]:
    if state.selected_id is None:
        return None

    container = state.selected_container
    detail = state.selected_detail
    title = container.name if container else state.selected_id[:12]
    subtitle = f"{detail.image if detail else '-'} · {container.raw.short_id if container else '-'}"

    parts: List[RenderableType] = []
    if state.detail_error:
        parts.append(Text(state.detail_error, style="red"))
    if state.detail_loading and detail is None:
        parts.append(Text("Loading detail…", style="dim"))

    parts.append(_history_table(state.selected_history))

    if detail is not None:
        info = Table(box=None, show_header=False, padding=(0, 1))
        info.add_column(style="bold")
        info.add_column()
        info.add_row("State", Text(detail.state, style=STATE_STYLES.get(detail.state, "")))
        info.add_row("Status", detail.status)
        info.add_row("Health", detail.health)
        info.add_row("Restarts", str(detail.restart_count))
        info.add_row("PID", str(detail.pid))
        info.add_row("Created", format_datetime(detail.created))
        info.add_row("Started", format_datetime(detail.started_at))
        info.add_row("Finished", format_datetime(detail.finished_at))
        info.add_row("Ports", "\n".join(split_list(detail.ports)))
        info.add_row("Networks", "\n".join(split_list(detail.networks)))
        info.add_row("IPs", ", ".join(detail.ip_addresses) or "-")
        info.add_row("Command", detail.command)
        info.add_row("Entrypoint", detail.entrypoint)
        info.add_row("Working dir", detail.working_dir)
        info.add_row("User", detail.user)
        parts.append(info)

        env = Table(title="Environment", expand=True, header_style="bold")
        env.add_column("Key", no_wrap=True)
        env.add_column("Value")
        for var in detail.env:
            env.add_row(var.key, var.value)
        if not detail.env:
            env.add_row("-", "")
        parts.append(env)

        labels = Table(title="Labels", expand=True, header_style="bold")
        labels.add_column("Key", no_wrap=True)
        labels.add_column("Value")
        for key, value in sorted(detail.labels.items()):
            labels.add_row(key, value)
        if not detail.labels:
            labels.add_row("-", "")
        parts.append(labels)

    return Panel(Group(*parts), title=title, subtitle=subtitle, border_style="blue")


def render_dashboard(state: DashboardState) -> Group:
    sections: List[RenderableType] = [render_header(state)]
    banner = render_banner(state)
    if banner is not None:
        sections.append(banner)
    sections.append(render_table(state))
    detail = render_detail(state)
    if detail is not None:
        sections.append(detail)
    return Group(*sections)
