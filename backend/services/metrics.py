"""
Metric extraction from a single `stats(stream=False)` snapshot.

Every function accepts `None` (stats call failed) and returns zeros, so the
payload builder never has to special-case a missing snapshot.
"""
from typing import Any, Dict, Optional

Stats = Optional[Dict[str, Any]]


def _number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def cpu_percent(stats: Stats) -> float:
    """
    Docker CLI formula:
        CPU% = (cpu_delta / system_delta) * online_cpus * 100

    Deltas come from cpu_stats vs precpu_stats of the same snapshot. Returns 0
    when either delta is not positive (first sample after a (re)start has an
    empty precpu_stats).
    """
    if not stats:
        return 0.0
    cpu_stats = stats.get("cpu_stats") or {}
    precpu_stats = stats.get("precpu_stats") or {}
    if not cpu_stats or not precpu_stats:
        return 0.0

    cpu_usage = cpu_stats.get("cpu_usage") or {}
    prev_cpu_usage = precpu_stats.get("cpu_usage") or {}

    cpu_delta = _number(cpu_usage.get("total_usage")) - _number(prev_cpu_usage.get("total_usage"))
    system_delta = _number(cpu_stats.get("system_cpu_usage")) - _number(
        precpu_stats.get("system_cpu_usage")
    )

    cores = (
        cpu_stats.get("online_cpus")                 # new docker
        or len(cpu_usage.get("percpu_usage") or [])  # old docker
        or 1
    )

    if cpu_delta > 0 and system_delta > 0:
        return (cpu_delta / system_delta) * cores * 100.0
    return 0.0


def memory_usage(stats: Stats) -> Dict[str, float]:
    """
    {"usage", "limit", "percent"} in bytes / percent. Page cache is not
    counted as usage.
    """
    memory_stats = (stats or {}).get("memory_stats") or {}
    if not memory_stats:
        return {"usage": 0, "limit": 0, "percent": 0.0}

    cache = _number((memory_stats.get("stats") or {}).get("cache"))
    usage = max(_number(memory_stats.get("usage")) - cache, 0)
    limit = _number(memory_stats.get("limit"))
    percent = (usage / limit) * 100.0 if limit > 0 else 0.0
    return {"usage": usage, "limit": limit, "percent": percent}


def network_io(stats: Stats) -> Dict[str, int]:
    """Total RX/TX bytes across all interfaces."""
    networks = (stats or {}).get("networks") or {}
    rx_total = 0
    tx_total = 0
    for nic in networks.values():
        nic = nic or {}
        rx_total += _number(nic.get("rx_bytes"))
        tx_total += _number(nic.get("tx_bytes"))
    return {"rx": rx_total, "tx": tx_total}


def block_io(stats: Stats) -> Dict[str, int]:
    """
    Read/write bytes from blkio_stats.io_service_bytes_recursive.
    Only the exact ops "Read" and "Write" count; cgroup v2 hosts also report
    lowercase ops and "Total", which are skipped.
    """
    blkio_stats = (stats or {}).get("blkio_stats") or {}
    entries = blkio_stats.get("io_service_bytes_recursive")
    read = 0
    write = 0
    if not isinstance(entries, list):
        return {"read": read, "write": write}

    for entry in entries:
        entry = entry or {}
        op = entry.get("op")
        if op == "Read":
            read += _number(entry.get("value"))
        elif op == "Write":
            write += _number(entry.get("value"))
    return {"read": read, "write": write}


def process_count(stats: Stats, inspect: Optional[Dict[str, Any]]) -> int:
    """pids_stats.current, else the main process id from inspect, else 0."""
    current = ((stats or {}).get("pids_stats") or {}).get("current")
    if current:
        return int(current)
    pid = ((inspect or {}).get("State") or {}).get("Pid")
    if pid:
        return int(pid)
    return 0
