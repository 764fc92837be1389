import math
from collections import deque
from typing import Deque, Dict, Iterable, List, Optional

from models.containers import ContainerSummary

HISTORY_POINTS = 40

# series name -> how to read it from a ContainerSummary
METRICS = {
    "cpu": lambda c: c.cpu,
    "mem": lambda c: c.memory.percent,
    "net_rx": lambda c: c.net_io_bytes.rx,
    "net_tx": lambda c: c.net_io_bytes.tx,
    "block_read": lambda c: c.block_io_bytes.read,
    "block_write": lambda c: c.block_io_bytes.write,
}


def _finite(value) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


class MetricHistory:
    """
    Last `maxlen` samples of every metric for one container.
    Appending past capacity drops the oldest sample.
    """

    def __init__(self, maxlen: int = HISTORY_POINTS):
        self.maxlen = maxlen
        self._series: Dict[str, Deque[float]] = {name: deque(maxlen=maxlen) for name in METRICS}

    def append(self, container: ContainerSummary) -> None:
        for name, read in METRICS.items():
            self._series[name].append(_finite(read(container)))

    def series(self, name: str) -> List[float]:
        return list(self._series[name])

    def __len__(self) -> int:
        return len(self._series["cpu"])


class HistoryStore:
    """
    Rolling history keyed by container id. Only containers present in the
    latest listing are kept.
    """

    def __init__(self, maxlen: int = HISTORY_POINTS):
        self.maxlen = maxlen
        self._by_id: Dict[str, MetricHistory] = {}

    def record(self, containers: Iterable[ContainerSummary]) -> None:
        latest: Dict[str, MetricHistory] = {}
        for container in containers:
            history = self._by_id.get(container.id)
            if history is None:
                history = MetricHistory(self.maxlen)
            history.append(container)
            latest[container.id] = history
        self._by_id = latest

    def get(self, container_id: Optional[str]) -> Optional[MetricHistory]:
        if container_id is None:
            return None
        return self._by_id.get(container_id)

    def ids(self) -> List[str]:
        return list(self._by_id)

    def __contains__(self, container_id: str) -> bool:
        return container_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)
