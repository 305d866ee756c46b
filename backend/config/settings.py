"""
Runtime Configuration

All settings are read from environment variables once at import time.
Defaults are suitable for a single-node development install: SQLite under
the data directory, local filesystem storage and the simulated classifier.
"""
import os
import logging
from pathlib import Path

from exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _env(name: str, default: str | None = None) -> str | None:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('true', '1', 'yes', 'on')


def _env_int(name: str, default: int) -> int:
    value = _env(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Invalid integer for {name}: {value!r}, using default {default}")
        return default


def _env_float(name: str, default: float) -> float:
    value = _env(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Invalid number for {name}: {value!r}, using default {default}")
        return default


# Paths
DATA_DIR = Path(_env("VSP_DATA_DIR", str(Path.home() / ".video-sentinel")))
LOG_DIR = Path(_env("VSP_LOG_DIR", str(DATA_DIR / "logs")))
STAGING_DIR = Path(_env("VSP_STAGING_DIR", str(DATA_DIR / "staging")))
MEDIA_ROOT = Path(_env("VSP_MEDIA_ROOT", str(DATA_DIR / "media")))

LOG_LEVEL = _env("VSP_LOG_LEVEL", "INFO").upper()

# Database
DATABASE_URL = _env("VSP_DATABASE_URL", f"sqlite:///{DATA_DIR / 'videos.db'}")

# Storage provider: "local" or "s3"
STORAGE_BACKEND = _env("VSP_STORAGE_BACKEND", "local").lower()

S3_ENDPOINT_URL = _env("S3_ENDPOINT_URL")
S3_REGION = _env("S3_REGION", "us-east-1")
S3_BUCKET = _env("S3_BUCKET")
S3_ACCESS_KEY = _env("S3_ACCESS_KEY")
S3_SECRET_KEY = _env("S3_SECRET_KEY")
S3_KEY_PREFIX = _env("S3_KEY_PREFIX", "sentinel-videos")
S3_PRESIGN_EXPIRE_SECONDS = _env_int("S3_PRESIGN_EXPIRE_SECONDS", 900)

# Credentials (verification only; tokens are minted elsewhere)
JWT_SECRET = _env("VSP_JWT_SECRET")
JWT_ALGORITHM = _env("VSP_JWT_ALGORITHM", "HS256")

# Ingress
MAX_UPLOAD_BYTES = _env_int("VSP_MAX_UPLOAD_BYTES", 500 * 1024 * 1024)

# Classifier
CLASSIFIER_DELAY_SECONDS = _env_float("VSP_CLASSIFIER_DELAY_SECONDS", 2.0)
CLASSIFIER_FLAG_RATE = _env_float("VSP_CLASSIFIER_FLAG_RATE", 0.2)

# Stale run detection
STALE_JOB_THRESHOLD_MINUTES = _env_int("VSP_STALE_JOB_THRESHOLD_MINUTES", 30)
RECOVER_STALE_JOBS_ON_STARTUP = _env_bool("VSP_RECOVER_STALE_JOBS_ON_STARTUP", True)
STALE_SWEEP_INTERVAL_SECONDS = _env_float("VSP_STALE_SWEEP_INTERVAL_SECONDS", 300.0)  # 0 disables the sweep

# Server
HOST = _env("VSP_HOST", "0.0.0.0")
PORT = _env_int("VSP_PORT", 8000)
CORS_ORIGINS = [o.strip() for o in _env("VSP_CORS_ORIGINS", "*").split(",") if o.strip()]

FFPROBE_PATH = _env("FFPROBE_PATH")


def validate_settings() -> None:
    """
    Check that the configured combination is usable.

    Raises:
        ConfigurationError: If a required setting is missing or invalid
    """
    missing = []

    if STORAGE_BACKEND not in ("local", "s3"):
        raise ConfigurationError(f"Unknown storage backend: {STORAGE_BACKEND}")

    if STORAGE_BACKEND == "s3" and not S3_BUCKET:
        missing.append("S3_BUCKET")

    if not JWT_SECRET:
        missing.append("VSP_JWT_SECRET")

    if not 0.0 <= CLASSIFIER_FLAG_RATE <= 1.0:
        raise ConfigurationError(
            f"VSP_CLASSIFIER_FLAG_RATE must be between 0 and 1, got {CLASSIFIER_FLAG_RATE}"
        )

    if missing:
        raise ConfigurationError(
            f"Missing required settings: {', '.join(missing)}",
            missing_keys=missing
        )
