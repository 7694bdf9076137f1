"""Application configuration. Loads from environment and .env file."""
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
# Load .env from cwd, then backend/.env, then project root .env
load_dotenv()
load_dotenv(BASE_DIR / ".env")
load_dotenv(BASE_DIR.parent / ".env")

# libwebp install layout: <LIBWEBP_PATH>/bin/cwebp
ENCODER_SUBPATH = ("bin", "cwebp")
DEFAULT_ENCODER_COMMAND = "cwebp"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger("webp_service")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = (os.getenv(name) or "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, built once at startup and passed around by reference."""

    host: str = "0.0.0.0"
    port: int = 8080
    # libwebp install root; absolute, or relative to the working directory
    libwebp_path: Optional[str] = None
    # Used when libwebp_path is unset: bare name looked up on PATH, or an absolute path
    encoder_command: str = DEFAULT_ENCODER_COMMAND
    default_quality: int = 80
    encoder_timeout: float = 60.0
    max_upload_bytes: int = 10 * 1024 * 1024
    temp_dir: Optional[str] = None
    cors_origins: tuple[str, ...] = field(default=("*",))
    enable_debug_endpoint: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        cors = tuple(o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip())
        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=_env_int("PORT", 8080),
            libwebp_path=(os.getenv("LIBWEBP_PATH") or "").strip() or None,
            encoder_command=(os.getenv("CWEBP_COMMAND") or "").strip() or DEFAULT_ENCODER_COMMAND,
            default_quality=_env_int("DEFAULT_QUALITY", 80),
            encoder_timeout=float(_env_int("ENCODER_TIMEOUT_SECONDS", 60)),
            max_upload_bytes=_env_int("MAX_UPLOAD_SIZE_MB", 10) * 1024 * 1024,
            temp_dir=(os.getenv("TEMP_DIR") or "").strip() or None,
            cors_origins=cors or ("*",),
            enable_debug_endpoint=_env_bool("ENABLE_DEBUG_ENDPOINT", True),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def work_root(self) -> str:
        """Parent directory for per-request work areas."""
        return self.temp_dir or tempfile.gettempdir()


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
