import logging
from typing import Optional

import httpx
from pydantic import ValidationError

import config
from models.containers import ContainerDetail, ContainerListResponse

log = logging.getLogger(__name__)


class DashboardApiError(Exception):
    """Listing or detail request failed; the message is shown in the banner."""


class DashboardApi:
    """
    Thin async client for the ctop web backend.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or config.API_BASE_URL).rstrip("/")
        # no timeout: a slow engine query is waited for, like the browser does
        self._client = client or httpx.AsyncClient(timeout=None)

    async def _get_json(self, path: str, fallback_message: str):
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.get(url)
        except httpx.ConnectError:
            raise DashboardApiError(f"Connection failed. Is the backend running at {self.base_url}?")
        except httpx.HTTPError as e:
            raise DashboardApiError(str(e) or fallback_message)

        if response.status_code != 200:
            log.debug("GET %s -> HTTP %s", url, response.status_code)
            raise DashboardApiError(response.text or fallback_message)
        try:
            return response.json()
        except ValueError:
            raise DashboardApiError(f"Invalid JSON from {url}")

    async def fetch_containers(self) -> ContainerListResponse:
        data = await self._get_json("/api/containers", "Failed to load container stats")
        try:
            return ContainerListResponse.model_validate(data)
        except ValidationError as e:
            raise DashboardApiError(f"Unexpected container list: {e.error_count()} invalid fields")

    async def fetch_container_detail(self, container_id: str) -> ContainerDetail:
        data = await self._get_json(f"/api/containers/{container_id}", "Failed to load container detail")
        try:
            return ContainerDetail.model_validate(data)
        except ValidationError as e:
            raise DashboardApiError(f"Unexpected container detail: {e.error_count()} invalid fields")

    async def aclose(self) -> None:
        await self._client.aclose()
