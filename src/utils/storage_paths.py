from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

STORAGE_DIR_ENV = "QUICK_SHARE_STORAGE_DIR"

# set by platforms whose filesystem is read-only apart from the temp dir
_SERVERLESS_ENV_VARS = ("VERCEL", "AWS_LAMBDA_FUNCTION_NAME", "K_SERVICE")


def get_datas_dir() -> Path:
    return Path(__file__).resolve().parents[2] / "datas"


def get_default_uploads_dir() -> Path:
    return get_datas_dir() / "uploads"


def get_scratch_uploads_dir() -> Path:
    return Path(tempfile.gettempdir()) / "quick-share" / "uploads"


def is_restricted_environment() -> bool:
    return any(os.getenv(name) for name in _SERVERLESS_ENV_VARS)


def _is_writable(path: Path) -> bool:
    # walk up to the closest existing ancestor; mkdir would create the rest
    candidate = path
    while not candidate.exists():
        if candidate.parent == candidate:
            return False
        candidate = candidate.parent
    return os.access(candidate, os.W_OK | os.X_OK)


def resolve_uploads_dir(configured: str | None = None) -> Path:
    """Pick the directory that holds uploaded blobs.

    Order: ``QUICK_SHARE_STORAGE_DIR``, the configured ``share.storage_dir``,
    the system temp dir on serverless platforms or when the default location
    is not writable, and finally ``<repo>/datas/uploads``.
    """

    explicit = os.getenv(STORAGE_DIR_ENV) or configured
    if explicit:
        return Path(explicit).expanduser()
    if is_restricted_environment():
        return get_scratch_uploads_dir()
    default = get_default_uploads_dir()
    if not _is_writable(default):
        logger.warning("%s is not writable, using temp dir for uploads", default)
        return get_scratch_uploads_dir()
    return default
