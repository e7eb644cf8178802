"""Environment configuration for Asset Studio.

Single source of truth for locations and switches that may be overridden
from the environment (containers, tests, CI).

Usage:
    from assetstudio.env_config import DATA_DIR, ENABLE_BACKUPS, MAX_BACKUPS
"""

import os
from pathlib import Path


# Repo root directory (one level above the package)
_REPO_ROOT = Path(__file__).resolve().parent.parent


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() not in ("0", "false", "no", "off", "")


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        return default


# =============================================================================
# STORAGE
# =============================================================================

# Root of the JSON document store
DATA_DIR = Path(os.environ.get(
    "ASSET_STUDIO_DATA_DIR",
    str(_REPO_ROOT / "data")
))

# Timestamped backups before overwrite/delete
ENABLE_BACKUPS = _env_flag("ASSET_STUDIO_ENABLE_BACKUPS", True)

# Number of most-recent backups kept per logical file
MAX_BACKUPS = _env_int("ASSET_STUDIO_MAX_BACKUPS", 5)


# =============================================================================
# RUNTIME
# =============================================================================

LOG_LEVEL = os.environ.get("ASSET_STUDIO_LOG_LEVEL", "INFO").upper()

# Optional alternate JSON config file (see services/config_service.py)
CONFIG_PATH = os.environ.get("ASSET_STUDIO_CONFIG")
