import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, Callable, Dict, List, Optional

import docker

import config

log = logging.getLogger(__name__)


class DockerEngine:
    """
    Read-only view of the Docker daemon: list / inspect / stats.

    The docker SDK is blocking, so every call runs on a private thread pool and
    is awaited from the event loop. The pool size caps how many engine queries
    are in flight at once, no matter how many containers a listing fans out to.

    The SDK client is created on the first query, inside the worker thread, so
    an unreachable daemon surfaces as an error of that query.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
        max_workers: Optional[int] = None,
        client: Optional[docker.DockerClient] = None,
    ):
        self.base_url = base_url or config.docker_base_url(config.DOCKER_SOCKET)
        self.timeout = timeout or config.DOCKER_TIMEOUT
        self._client = client
        self._client_lock = threading.Lock()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or config.ENGINE_MAX_WORKERS,
            thread_name_prefix="docker-engine",
        )

    @property
    def client(self) -> docker.DockerClient:
        with self._client_lock:
            if self._client is None:
                log.info("connecting to docker engine at %s", self.base_url)
                self._client = docker.DockerClient(base_url=self.base_url, timeout=self.timeout)
            return self._client

    async def _run(self, fn: Callable[..., Any], *args, **kwargs) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, partial(fn, *args, **kwargs))

    async def list_containers(self, all: bool = True) -> List[Dict[str, Any]]:
        """
        Raw `GET /containers/json` entries (Id, Names, Ports, State, ...).
        """
        return await self._run(lambda: self.client.api.containers(all=all))

    async def inspect(self, container_id: str) -> Dict[str, Any]:
        return await self._run(lambda: self.client.api.inspect_container(container_id))

    async def stats_snapshot(self, container_id: str) -> Dict[str, Any]:
        """
        One non-streaming stats sample. The daemon fills precpu_stats with the
        previous reading, so CPU deltas can be computed from this one document.
        """
        return await self._run(lambda: self.client.api.stats(container_id, stream=False))

    def close(self) -> None:
        self._executor.shutdown(wait=False)
        with self._client_lock:
            if self._client is not None:
                self._client.close()
                self._client = None


# --------------------------------------------------------------------
# Process-wide engine, shared by all requests
# --------------------------------------------------------------------

_engine: Optional[DockerEngine] = None


def get_engine() -> DockerEngine:
    """
    FastAPI dependency; overridden in tests.
    """
    global _engine
    if _engine is None:
        _engine = DockerEngine()
    return _engine


def close_engine() -> None:
    global _engine
    if _engine is not None:
        _engine.close()
        _engine = None
