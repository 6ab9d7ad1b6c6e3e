"""Configuration constants -- overridable through environment variables

Database path and task code format.
"""

import os
from pathlib import Path

import structlog

log = structlog.get_logger()


def _get_base_dir() -> Path:
    """Base data directory"""
    return Path(os.environ.get("SHOPFLOOR_DATA_DIR", "data"))


def get_db_path() -> str:
    """SQLite database path"""
    return os.environ.get(
        "SHOPFLOOR_DB_PATH",
        str(_get_base_dir() / "sqlite" / "shopfloor.db"),
    )


def get_task_code_prefix() -> str:
    """Prefix of generated task codes (MO20250101-001)"""
    return os.environ.get("SHOPFLOOR_TASK_CODE_PREFIX", "MO")


# Zero-padded width of the per-day sequence in a task code
TASK_CODE_SEQ_WIDTH: int = 3

# Default task code generation retries when a concurrent create takes the same code
DEFAULT_TASK_CODE_MAX_RETRIES: int = 3


def get_task_code_max_retries() -> int:
    """Attempts at a generated task code, at least 1

    Non-numeric or non-positive values are logged and replaced by the default.
    """
    val = os.environ.get("SHOPFLOOR_TASK_CODE_MAX_RETRIES")
    if val is None:
        return DEFAULT_TASK_CODE_MAX_RETRIES
    try:
        retries = int(val)
    except ValueError:
        retries = 0
    if retries < 1:
        log.warning(
            "invalid_task_code_retries_config",
            env_var="SHOPFLOOR_TASK_CODE_MAX_RETRIES",
            value=val,
            fallback=DEFAULT_TASK_CODE_MAX_RETRIES,
        )
        return DEFAULT_TASK_CODE_MAX_RETRIES
    return retries

# Observations are free text; anything longer is truncated before storage
OBSERVATIONS_MAX_LENGTH: int = 2000
