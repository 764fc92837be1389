import asyncio
from datetime import datetime, timezone
from typing import List

from models.containers import ContainerDetail, ContainerListResponse, ContainerSummary
from services.engine import DockerEngine
from services.payload import build_container_detail, build_container_payload


def utc_now_iso() -> str:
    """
    "2024-05-01T10:00:00.123Z", same shape as a browser's toISOString().
    """
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


async def list_container_summaries(engine: DockerEngine) -> ContainerListResponse:
    """
    All containers (running + stopped), one summary each, built concurrently.
    A failing list call raises; per-container failures never do.
    """
    entries = await engine.list_containers(all=True)
    fetched_at = utc_now_iso()
    summaries: List[ContainerSummary] = await asyncio.gather(
        *(build_container_payload(engine, entry) for entry in entries)
    )
    return ContainerListResponse(containers=list(summaries), fetched_at=fetched_at)


async def get_container_detail(engine: DockerEngine, container_id: str) -> ContainerDetail:
    """
    Single inspect, no fallback: the detail view needs live data.
    """
    inspect = await engine.inspect(container_id)
    return build_container_detail(inspect)
