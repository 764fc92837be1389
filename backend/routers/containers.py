import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from models.containers import (
    ContainerDetail,
    ContainerListResponse,
    ErrorResponse,
)
from services.docker_service import get_container_detail, list_container_summaries
from services.engine import DockerEngine, get_engine

log = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/containers",
    tags=["containers"],
    responses={500: {"model": ErrorResponse}},
)


def _error(message: str, err: Exception) -> JSONResponse:
    body = ErrorResponse(message=message, error=str(err))
    return JSONResponse(status_code=500, content=body.model_dump())


@router.get("", response_model=ContainerListResponse)
async def list_containers(engine: DockerEngine = Depends(get_engine)):
    """
    Every container (running and stopped) with live CPU / memory / IO numbers.
    Queried fresh on each request; a container whose stats can't be read is
    still listed, with zeroed metrics.
    """
    try:
        return await list_container_summaries(engine)
    except Exception as e:
        log.exception("failed to fetch container stats")
        return _error("Unable to fetch container data", e)


@router.get("/{container_id}", response_model=ContainerDetail)
async def container_detail(container_id: str, engine: DockerEngine = Depends(get_engine)):
    """
    Extended metadata for one container: env, labels, port bindings,
    restart count, command line.
    """
    try:
        return await get_container_detail(engine, container_id)
    except Exception as e:
        log.exception("failed to fetch container detail for %s", container_id)
        return _error("Unable to fetch container detail", e)
