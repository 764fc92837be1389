import logging
import os

from dotenv import load_dotenv

# Load environment variables (DOCKER_SOCKET, PORT, etc.)
load_dotenv()

log = logging.getLogger(__name__)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        log.warning("invalid integer for %s=%r, using %d", name, raw, default)
        return default


def docker_base_url(socket_path: str) -> str:
    """
    "/var/run/docker.sock" -> "unix:///var/run/docker.sock".
    Full URLs (unix://, tcp://, npipe://) are passed through untouched.
    """
    if "://" in socket_path:
        return socket_path
    return f"unix://{socket_path}"


# --- Engine ---
DOCKER_SOCKET = os.getenv("DOCKER_SOCKET", "/var/run/docker.sock")
DOCKER_TIMEOUT = _int_env("DOCKER_TIMEOUT", 60)
ENGINE_MAX_WORKERS = _int_env("ENGINE_MAX_WORKERS", 16)

# --- HTTP server ---
HOST = os.getenv("HOST", "0.0.0.0")
PORT = _int_env("PORT", 4000)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# --- Dashboard client ---
API_BASE_URL = os.getenv("CTOP_API_BASE_URL", "http://localhost:4000")
REFRESH_SECONDS = _int_env("CTOP_REFRESH_SECONDS", 5)
