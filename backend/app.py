import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import config
from models.containers import HealthResponse
from routers.containers import router as containers_router
from services.docker_service import utc_now_iso
from services.engine import close_engine

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)

# --- FastAPI App Initialization ---
app = FastAPI(title="ctop web")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def _on_startup():
    log.info("ctop web server listening on http://%s:%s", config.HOST, config.PORT)


@app.on_event("shutdown")
async def _on_shutdown():
    close_engine()


# Register /api/containers routes
app.include_router(containers_router)


@app.get("/health", response_model=HealthResponse)
def health_check():
    """
    Liveness probe. Does not touch the docker daemon.
    """
    return HealthResponse(ok=True, timestamp=utc_now_iso())


def main():
    uvicorn.run(app, host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
