from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ContainerState = Literal["running", "paused", "restarting", "stopped", "unknown"]


class ApiModel(BaseModel):
    """
    Python side uses snake_case, the wire uses the dashboard's camelCase keys.
    """
    model_config = ConfigDict(populate_by_name=True)


class MemoryInfo(ApiModel):
    usage: str            # "41M"
    limit: str            # "5.8G"
    percent: float        # 0.7


class NetIO(ApiModel):
    rx: str
    tx: str


class NetIOBytes(ApiModel):
    rx: int
    tx: int


class BlockIO(ApiModel):
    read: str
    write: str


class BlockIOBytes(ApiModel):
    read: int
    write: int


class RawInfo(ApiModel):
    short_id: str = Field(alias="shortId")


class ContainerSummary(ApiModel):
    id: str
    name: str
    state: ContainerState
    ports: str            # "0.0.0.0:8080 -> 80/tcp, 443/tcp" or "-"
    networks: str         # "bridge:172.17.0.2" or "-"
    cpu: float
    memory: MemoryInfo
    net_io: NetIO = Field(alias="netIO")
    net_io_bytes: NetIOBytes = Field(alias="netIOBytes")
    block_io: BlockIO = Field(alias="blockIO")
    block_io_bytes: BlockIOBytes = Field(alias="blockIOBytes")
    pids: int
    uptime: str
    raw: RawInfo


class ContainerListResponse(ApiModel):
    containers: List[ContainerSummary]
    fetched_at: str = Field(alias="fetchedAt")


class EnvVar(ApiModel):
    key: str
    value: str


class ContainerDetail(ApiModel):
    id: str
    name: str
    image: str
    state: ContainerState
    status: str
    created: Optional[str] = None
    started_at: Optional[str] = Field(default=None, alias="startedAt")
    finished_at: Optional[str] = Field(default=None, alias="finishedAt")
    health: str
    restart_count: int = Field(alias="restartCount")
    pid: int
    ports: str
    networks: str
    ip_addresses: List[str] = Field(alias="ipAddresses")
    command: str
    entrypoint: str
    working_dir: str = Field(alias="workingDir")
    user: str
    env: List[EnvVar]
    labels: Dict[str, str]


class HealthResponse(ApiModel):
    ok: bool
    timestamp: str


class ErrorResponse(ApiModel):
    message: str
    error: str
