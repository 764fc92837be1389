from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from dashboard.history import HistoryStore, MetricHistory
from models.containers import ContainerDetail, ContainerListResponse, ContainerSummary

REFRESH_OPTIONS = (3, 5, 10, 30)  # seconds
DEFAULT_REFRESH_SECONDS = 5


class Phase(str, Enum):
    LOADING = "loading"          # first fetch in flight, nothing to show yet
    READY = "ready"
    REFRESHING = "refreshing"    # fetch in flight, previous data still shown


@dataclass
class DashboardState:
    """
    Everything the dashboard shows. Mutated only by the poller; the view
    reads it.
    """
    containers: List[ContainerSummary] = field(default_factory=list)
    phase: Phase = Phase.LOADING
    error: Optional[str] = None
    filter_query: str = ""
    refresh_seconds: float = DEFAULT_REFRESH_SECONDS
    paused: bool = False
    last_updated: Optional[str] = None
    selected_id: Optional[str] = None
    details: Dict[str, ContainerDetail] = field(default_factory=dict)
    detail_loading: bool = False
    detail_error: Optional[str] = None
    history: HistoryStore = field(default_factory=HistoryStore)

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    @property
    def has_data(self) -> bool:
        return self.last_updated is not None

    def begin_fetch(self) -> None:
        self.phase = Phase.REFRESHING if self.has_data else Phase.LOADING

    def apply_listing(self, response: ContainerListResponse) -> None:
        self.containers = list(response.containers)
        self.last_updated = response.fetched_at
        self.error = None
        self.phase = Phase.READY
        self.history.record(self.containers)

        present = {c.id for c in self.containers}
        self.details = {cid: d for cid, d in self.details.items() if cid in present}
        if self.selected_id is not None and self.selected_id not in present:
            self.selected_id = None
            self.detail_error = None

    def fail_fetch(self, message: str) -> None:
        # keep the last good listing on screen
        self.error = message
        self.phase = Phase.READY

    def dismiss_error(self) -> None:
        self.error = None

    def filtered_containers(self) -> List[ContainerSummary]:
        needle = self.filter_query.strip().lower()
        if not needle:
            return self.containers
        return [
            c for c in self.containers
            if needle in c.name.lower()
            or needle in c.raw.short_id.lower()
            or needle in c.networks.lower()
        ]

    @property
    def running_count(self) -> int:
        return sum(1 for c in self.containers if c.state == "running")

    def find(self, ref: str) -> Optional[ContainerSummary]:
        """Look a container up by full id, short id prefix or name."""
        for c in self.containers:
            if c.id == ref or c.name == ref:
                return c
        for c in self.containers:
            if ref and c.id.startswith(ref):
                return c
        return None

    # ------------------------------------------------------------------
    # Selection / detail
    # ------------------------------------------------------------------

    def toggle_select(self, container_id: str) -> bool:
        """
        Select `container_id`, or deselect it if it is already selected.
        Returns True when the newly selected container has no cached detail.
        """
        self.detail_error = None
        if self.selected_id == container_id:
            self.selected_id = None
            return False
        self.selected_id = container_id
        return container_id not in self.details

    def begin_detail(self) -> None:
        self.detail_loading = True
        self.detail_error = None

    def apply_detail(self, container_id: str, detail: ContainerDetail) -> None:
        self.detail_loading = False
        if container_id not in {c.id for c in self.containers}:
            return
        self.details[container_id] = detail

    def fail_detail(self, message: str) -> None:
        self.detail_loading = False
        self.detail_error = message

    @property
    def selected_container(self) -> Optional[ContainerSummary]:
        if self.selected_id is None:
            return None
        return next((c for c in self.containers if c.id == self.selected_id), None)

    @property
    def selected_detail(self) -> Optional[ContainerDetail]:
        return self.details.get(self.selected_id) if self.selected_id else None

    @property
    def selected_history(self) -> Optional[MetricHistory]:
        return self.history.get(self.selected_id)
