"""
Terminal dashboard for a running ctop web backend.

Connects to the backend over HTTP (httpx) and redraws a rich Live view.
Commands are typed as a line followed by Enter:

    r            refresh now
    p            pause / resume auto-refresh
    i <seconds>  change the refresh interval (3, 5, 10, 30)
    f <text>     filter by name, id or network ("f" alone clears)
    s <ref>      select / deselect a container by name or id prefix
    D            reload the selected container's detail
    d            dismiss the error banner
    q            quit
"""
import argparse
import asyncio
import logging
import math
import sys
import threading
from typing import List, Optional

from rich.console import Console
from rich.live import Live

import config
from dashboard.api import DashboardApi
from dashboard.poller import Poller
from dashboard.state import REFRESH_OPTIONS, DashboardState
from dashboard.view import render_dashboard

log = logging.getLogger(__name__)


def handle_command(poller: Poller, line: str) -> bool:
    """
    Apply one command line to the poller. Returns False when the user quits.
    Unknown commands are ignored.
    """
    cmd, _, arg = line.strip().partition(" ")
    arg = arg.strip()

    if cmd == "q":
        return False
    if cmd == "r":
        poller.start_refresh()
    elif cmd == "p":
        poller.toggle_pause()
    elif cmd == "i" and arg:
        try:
            poller.set_interval(float(arg))
        except ValueError:
            log.debug("ignoring bad interval %r", arg)
    elif cmd == "f":
        poller.set_filter(arg)
    elif cmd == "s" and arg:
        container = poller.state.find(arg)
        if container is not None:
            poller.select(container.id)
    elif cmd == "D":
        poller.refresh_detail()
    elif cmd == "d":
        poller.dismiss_error()
    return True


def _stdin_reader(loop: asyncio.AbstractEventLoop, queue: asyncio.Queue) -> None:
    # ends on EOF; the dashboard then stays up until Ctrl-C
    for line in sys.stdin:
        loop.call_soon_threadsafe(queue.put_nowait, line)


async def _read_commands(poller: Poller) -> None:
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()
    threading.Thread(target=_stdin_reader, args=(loop, queue), daemon=True).start()
    while True:
        line = await queue.get()
        if not handle_command(poller, line):
            return


async def run_dashboard(args: argparse.Namespace) -> None:
    console = Console()
    state = DashboardState(
        refresh_seconds=args.interval,
        paused=args.paused,
        filter_query=args.filter or "",
    )
    api = DashboardApi(base_url=args.api_url)

    with Live(render_dashboard(state), console=console, refresh_per_second=4, screen=args.fullscreen) as live:
        poller = Poller(api, state, on_change=lambda: live.update(render_dashboard(state)))
        poller.start()

        if args.select:
            await poller.wait_idle()
            container = state.find(args.select)
            if container is not None:
                poller.select(container.id)

        try:
            await _read_commands(poller)
        finally:
            await poller.stop()
            await api.aclose()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ctop-dashboard",
        description="Live Docker container metrics from a ctop web backend.",
    )
    parser.add_argument("--api-url", default=config.API_BASE_URL, help="backend origin (default: %(default)s)")
    parser.add_argument(
        "--interval",
        type=float,
        default=config.REFRESH_SECONDS,
        help=f"refresh interval in seconds, usually one of {', '.join(map(str, REFRESH_OPTIONS))}",
    )
    parser.add_argument("--filter", help="only show containers whose name, id or networks match")
    parser.add_argument("--select", help="open the detail view for this container (name or id prefix)")
    parser.add_argument("--paused", action="store_true", help="start with auto-refresh paused")
    parser.add_argument("--fullscreen", action="store_true", help="use the alternate screen")
    args = parser.parse_args(argv)
    if not math.isfinite(args.interval) or args.interval <= 0:
        parser.error("--interval must be a positive number")
    return args


def main(argv: Optional[List[str]] = None) -> None:
    # log to a file, stderr would tear the live display
    logging.basicConfig(level=config.LOG_LEVEL, filename="ctop-dashboard.log")
    args = parse_args(argv)
    try:
        asyncio.run(run_dashboard(args))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
