import logging
import os
import sys
from pathlib import Path
from typing import Optional

from errors import ConfigError, StoreIoError

logger = logging.getLogger(__name__)

SERVER_NAME = "imagen3-mcp"
SERVER_VERSION = "0.1.0"

HTTP_HOST = "127.0.0.1"
HTTP_PORT = 9981

API_KEY_ENV = "GEMINI_API_KEY"
BASE_URL_ENV = "BASE_URL"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"
PREDICT_PATH = "/v1beta/models/imagen-3.0-generate-002:predict"

DEFAULT_TIMEOUT_SECONDS = 120.0
DEFAULT_MAX_CONCURRENT = 1


def configure_logging() -> None:
    """Send all log records to stderr; stdout belongs to the MCP transport."""
    level = os.environ.get("IMAGEN3_MCP_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def get_api_key() -> Optional[str]:
    return os.environ.get(API_KEY_ENV) or None


def require_api_key() -> str:
    api_key = get_api_key()
    if not api_key:
        raise ConfigError(f"{API_KEY_ENV} environment variable not set")
    return api_key


def get_base_url() -> str:
    return os.environ.get(BASE_URL_ENV) or DEFAULT_BASE_URL


def _positive_number(name: str, parse, default):
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        value = parse(raw)
    except ValueError:
        value = None
    if value is None or value <= 0:
        logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default
    return value


def get_request_timeout() -> float:
    return _positive_number("IMAGEN3_MCP_TIMEOUT", float, DEFAULT_TIMEOUT_SECONDS)


def get_max_concurrent() -> int:
    return _positive_number("IMAGEN3_MCP_MAX_CONCURRENT", int, DEFAULT_MAX_CONCURRENT)


def resolve_data_dir() -> Path:
    """Return the per-user local data directory for this application.

    ``IMAGEN3_MCP_DATA_DIR`` wins when set. Otherwise the platform's local
    application-data location is used.
    """
    override = os.environ.get("IMAGEN3_MCP_DATA_DIR")
    if override:
        return Path(override).expanduser()

    if sys.platform == "win32":
        localappdata = os.environ.get("LOCALAPPDATA")
        if not localappdata:
            raise StoreIoError("Could not determine application data directory")
        return Path(localappdata) / "hamflx" / SERVER_NAME / "data"

    try:
        home = Path.home()
    except RuntimeError as exc:
        raise StoreIoError("Could not determine application data directory") from exc

    if sys.platform == "darwin":
        return home / "Library" / "Application Support" / f"cn.hamflx.{SERVER_NAME}"

    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg and os.path.isabs(xdg):
        return Path(xdg) / SERVER_NAME
    return home / ".local" / "share" / SERVER_NAME
