import asyncio
import math
import logging
from typing import Callable, Optional, Set

from dashboard.api import DashboardApi, DashboardApiError
from dashboard.state import DashboardState

log = logging.getLogger(__name__)


class Poller:
    """
    Drives DashboardState from the backend.

    - one listing fetch in flight at most; timer ticks that land while one is
      running are skipped
    - one detail fetch in flight at most, independent of the listing
    - changing the interval or pausing restarts / stops the timer; in-flight
      fetches are never cancelled, their results are applied when they land
    """

    def __init__(
        self,
        api: DashboardApi,
        state: Optional[DashboardState] = None,
        on_change: Optional[Callable[[], None]] = None,
    ):
        self.api = api
        self.state = state or DashboardState()
        self.on_change = on_change or (lambda: None)

        self._timer: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self._listing_in_flight = False
        self._detail_in_flight: Optional[str] = None

    # ------------------------------------------------------------------
    # Task bookkeeping
    # ------------------------------------------------------------------

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def timer_running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    async def wait_idle(self) -> None:
        """Wait for every spawned fetch (not the timer) to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    async def refresh(self) -> bool:
        """
        Fetch the listing once. Returns False when skipped because another
        listing fetch is already in flight.
        """
        if self._listing_in_flight:
            return False
        self._listing_in_flight = True
        self.state.begin_fetch()
        self.on_change()
        try:
            response = await self.api.fetch_containers()
        except DashboardApiError as e:
            log.warning("listing fetch failed: %s", e)
            self.state.fail_fetch(str(e) or "Unable to load containers")
        else:
            self.state.apply_listing(response)
        finally:
            self._listing_in_flight = False
        self.on_change()
        return True

    async def _tick_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self._spawn(self.refresh())

    def _reschedule(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if not self.state.paused:
            self._timer = asyncio.create_task(self._tick_loop(self.state.refresh_seconds))

    def start(self) -> None:
        """Initial fetch plus the auto-refresh timer."""
        self._spawn(self.refresh())
        self._reschedule()

    def start_refresh(self) -> None:
        """Manual refresh; same single-flight rule as timer ticks."""
        self._spawn(self.refresh())

    def set_interval(self, seconds: float) -> None:
        if not math.isfinite(seconds) or seconds <= 0:
            raise ValueError("refresh interval must be a positive number")
        self.state.refresh_seconds = seconds
        self._reschedule()
        self.on_change()

    def pause(self) -> None:
        self.state.paused = True
        self._reschedule()
        self.on_change()

    def resume(self) -> None:
        self.state.paused = False
        self._reschedule()
        self.on_change()

    def toggle_pause(self) -> None:
        if self.state.paused:
            self.resume()
        else:
            self.pause()

    def set_filter(self, query: str) -> None:
        self.state.filter_query = query
        self.on_change()

    def dismiss_error(self) -> None:
        self.state.dismiss_error()
        self.on_change()

    # ------------------------------------------------------------------
    # Detail
    # ------------------------------------------------------------------

    def select(self, container_id: str) -> None:
        """Toggle selection; fetch the detail when it isn't cached yet."""
        if self.state.toggle_select(container_id):
            self._spawn(self.load_detail(container_id))
        self.on_change()

    def refresh_detail(self) -> None:
        if self.state.selected_id is not None:
            self._spawn(self.load_detail(self.state.selected_id))

    async def load_detail(self, container_id: str) -> bool:
        if self._detail_in_flight is not None:
            return False
        self._detail_in_flight = container_id
        self.state.begin_detail()
        self.on_change()
        try:
            detail = await self.api.fetch_container_detail(container_id)
        except DashboardApiError as e:
            log.warning("detail fetch failed for %s: %s", container_id[:12], e)
            if self.state.selected_id == container_id:
                self.state.fail_detail(str(e) or "Unable to load container detail")
            else:
                self.state.detail_loading = False
        else:
            self.state.apply_detail(container_id, detail)
        finally:
            self._detail_in_flight = None
        self.on_change()

        # selection moved on while this fetch was running
        pending = self.state.selected_id
        if pending is not None and pending != container_id and pending not in self.state.details:
            self._spawn(self.load_detail(pending))
        return True

    # ------------------------------------------------------------------

    async def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
