import asyncio
import logging
from typing import Any, Dict, List, Optional

from models.containers import (
    BlockIO,
    BlockIOBytes,
    ContainerDetail,
    ContainerSummary,
    EnvVar,
    MemoryInfo,
    NetIO,
    NetIOBytes,
    RawInfo,
)
from services.engine import DockerEngine
from services.formatting import format_bytes, format_duration, round_half_up
from services.metrics import block_io, cpu_percent, memory_usage, network_io, process_count

log = logging.getLogger(__name__)

Doc = Dict[str, Any]


# --------------------------------------------------------------------------------------
# Helpers
# --------------------------------------------------------------------------------------

def short_id(container_id: str) -> str:
    return (container_id or "")[:12]


def _strip_name(name: Optional[str]) -> str:
    return name[1:] if name and name.startswith("/") else (name or "")


def container_state(inspect: Optional[Doc]) -> str:
    """
    paused > restarting > running > stopped; "unknown" without inspect data.
    A paused container also reports Running=true, hence the order.
    """
    if not inspect or not inspect.get("State"):
        return "unknown"
    state = inspect["State"]
    if state.get("Paused"):
        return "paused"
    if state.get("Restarting"):
        return "restarting"
    if state.get("Running"):
        return "running"
    return "stopped"


def format_ports(ports: Optional[List[Doc]]) -> str:
    """
    Listing-style ports -> "0.0.0.0:8080 -> 80/tcp, 443/tcp".
    """
    if not ports:
        return "-"
    rendered = []
    for port in ports:
        proto = (port.get("Type") or "tcp").lower()
        target = f"{port.get('PrivatePort')}/{proto}"
        if port.get("PublicPort"):
            host = port.get("IP") or "0.0.0.0"
            rendered.append(f"{host}:{port['PublicPort']} -> {target}")
        else:
            rendered.append(target)
    return ", ".join(rendered)


def format_ports_from_inspect(port_map: Optional[Dict[str, Optional[List[Doc]]]]) -> str:
    """
    NetworkSettings.Ports -> one entry per host binding, e.g.
    {"80/tcp": [{"HostIp": "", "HostPort": "8080"}], "443/tcp": None}
    -> "0.0.0.0:8080 -> 80/tcp, 443/tcp".
    """
    if not port_map:
        return "-"
    rendered = []
    for container_port, bindings in port_map.items():
        if not bindings:
            rendered.append(container_port)
            continue
        for binding in bindings:
            host = binding.get("HostIp") or "0.0.0.0"
            rendered.append(f"{host}:{binding.get('HostPort')} -> {container_port}")
    return ", ".join(rendered) if rendered else "-"


def format_networks(network_settings: Optional[Doc]) -> str:
    networks = (network_settings or {}).get("Networks") or {}
    entries = [f"{name}:{(info or {}).get('IPAddress') or '0.0.0.0'}" for name, info in networks.items()]
    return ", ".join(entries) if entries else "-"


def ip_addresses(network_settings: Optional[Doc]) -> List[str]:
    networks = (network_settings or {}).get("Networks") or {}
    return [(info or {}).get("IPAddress") or "0.0.0.0" for info in networks.values()]


def parse_env(env_list: Optional[List[str]]) -> List[EnvVar]:
    """
    ["KEY=value", "NOEQUALS"] -> [KEY=value, NOEQUALS=""], order preserved.
    Only the first "=" splits, so values may contain "=".
    """
    if not isinstance(env_list, list):
        return []
    parsed = []
    for entry in env_list:
        key, sep, value = entry.partition("=")
        if not sep:
            parsed.append(EnvVar(key=entry, value=""))
        else:
            parsed.append(EnvVar(key=key, value=value))
    return parsed


def _join_args(args: Any) -> str:
    if isinstance(args, list) and args:
        return " ".join(str(a) for a in args)
    return "-"


# --------------------------------------------------------------------------------------
# Engine queries (tolerant)
# --------------------------------------------------------------------------------------

async def _fetch_inspect_and_stats(engine: DockerEngine, container_id: str):
    """
    Inspect and stats in parallel. If either fails the pair is discarded and
    inspect is retried alone; if that fails too, inspect is None.
    Stats is None whenever the pair failed. Never raises engine errors.
    """
    inspect_res, stats_res = await asyncio.gather(
        engine.inspect(container_id),
        engine.stats_snapshot(container_id),
        return_exceptions=True,
    )
    if not isinstance(inspect_res, BaseException) and not isinstance(stats_res, BaseException):
        return inspect_res, stats_res

    failed = stats_res if isinstance(stats_res, BaseException) else inspect_res
    log.debug("inspect/stats failed for %s: %s", short_id(container_id), failed)

    try:
        inspect_res = await engine.inspect(container_id)
    except Exception as e:
        log.warning("inspect retry failed for %s: %s", short_id(container_id), e)
        inspect_res = None
    return inspect_res, None


# --------------------------------------------------------------------------------------
# Builders
# --------------------------------------------------------------------------------------

def summarize_container(entry: Doc, inspect: Optional[Doc], stats: Optional[Doc]) -> ContainerSummary:
    """
    Pure mapping: listing entry + (optional) inspect + (optional) stats.
    """
    container_id = entry.get("Id") or ""
    names = entry.get("Names") or []
    name = _strip_name(names[0]) if names else ""

    cpu = cpu_percent(stats)
    mem = memory_usage(stats)
    net = network_io(stats)
    blk = block_io(stats)

    state_block = (inspect or {}).get("State") or {}
    uptime = format_duration(state_block.get("StartedAt")) if inspect else "-"
    networks = format_networks(inspect.get("NetworkSettings")) if inspect else "-"

    return ContainerSummary(
        id=container_id,
        name=name or short_id(container_id),
        state=container_state(inspect),
        ports=format_ports(entry.get("Ports")),
        networks=networks,
        cpu=round_half_up(cpu, 1),
        memory=MemoryInfo(
            usage=format_bytes(mem["usage"]),
            limit=format_bytes(mem["limit"]),
            percent=round_half_up(mem["percent"], 1),
        ),
        net_io=NetIO(rx=format_bytes(net["rx"]), tx=format_bytes(net["tx"])),
        net_io_bytes=NetIOBytes(rx=int(net["rx"]), tx=int(net["tx"])),
        block_io=BlockIO(read=format_bytes(blk["read"]), write=format_bytes(blk["write"])),
        block_io_bytes=BlockIOBytes(read=int(blk["read"]), write=int(blk["write"])),
        pids=process_count(stats, inspect),
        uptime=uptime,
        raw=RawInfo(short_id=short_id(container_id)),
    )


async def build_container_payload(engine: DockerEngine, entry: Doc) -> ContainerSummary:
    """
    One listing entry -> ContainerSummary. Engine failures degrade fields to
    their fallbacks instead of raising.
    """
    inspect, stats = await _fetch_inspect_and_stats(engine, entry.get("Id") or "")
    return summarize_container(entry, inspect, stats)


def build_container_detail(inspect: Doc) -> ContainerDetail:
    """
    Full inspect document -> ContainerDetail.
    """
    container_id = inspect.get("Id") or ""
    state = inspect.get("State") or {}
    cfg = inspect.get("Config") or {}
    network_settings = inspect.get("NetworkSettings") or {}
    health = state.get("Health") or {}

    return ContainerDetail(
        id=container_id,
        name=_strip_name(inspect.get("Name")) or short_id(container_id),
        image=cfg.get("Image") or "-",
        state=container_state(inspect),
        status=state.get("Status") or "unknown",
        created=inspect.get("Created") or None,
        started_at=state.get("StartedAt") or None,
        finished_at=state.get("FinishedAt") or None,
        health=health.get("Status") or "-",
        restart_count=inspect.get("RestartCount") or 0,
        pid=state.get("Pid") or 0,
        ports=format_ports_from_inspect(network_settings.get("Ports")),
        networks=format_networks(network_settings),
        ip_addresses=ip_addresses(network_settings),
        command=_join_args(cfg.get("Cmd")),
        entrypoint=_join_args(cfg.get("Entrypoint")),
        working_dir=cfg.get("WorkingDir") or "-",
        user=cfg.get("User") or "-",
        env=parse_env(cfg.get("Env")),
        labels=cfg.get("Labels") or {},
    )
