"""
This module contains the default configuration settings for Waypoint.
It defines paths, supervisor behaviour and console settings.
Values can be overridden through environment variables (or a `.env` file),
and the ones listed in MODIFIABLE_SETTINGS also through the overrides JSON file.
"""

import os
import logging
import pathlib
from typing import Any, Optional

from dotenv import load_dotenv

log = logging.getLogger(__name__)

# Load environment variables from .env file
load_dotenv(override=True)


def _env_flag(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).lower() in ('true', '1', 't', 'yes', 'y')


def parse_instance_limit(value: Any) -> Optional[int]:
    """
    Parses an instance limit: a non-negative integer, or "none" (or empty) for no limit.

    :raises ValueError: If the value is neither.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"expected a non-negative integer or 'none', got {value!r}")
    if isinstance(value, str):
        value = value.strip()
        if value.lower() in ('', 'none'):
            return None
    try:
        limit = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"expected a non-negative integer or 'none', got {value!r}") from None
    if limit < 0 or (isinstance(value, float) and value != limit):
        raise ValueError(f"expected a non-negative integer or 'none', got {value!r}")
    return limit


def _env_instance_limit(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return parse_instance_limit(raw)
    except ValueError as e:
        log.error(f"Invalid value for {name}: {e}. Using {default}.")
        return default


#* --- Core Paths ---
# Both files live relative to the directory Waypoint is started from.
BASE_DIR = pathlib.Path.cwd()
CONFIG_FILE_PATH = BASE_DIR / os.getenv("WAYPOINT_CONFIG_FILE", "services.json")
OVERRIDES_JSON_PATH = BASE_DIR / os.getenv("WAYPOINT_OVERRIDES_FILE", "waypoint_overrides.json")

#* --- Supervisor Settings ---
PROCESS_TITLE = "Waypoint - Supervisor"
GRACEFUL_SHUTDOWN_TIMEOUT = 10  # seconds before force-killing
COLLECTOR_JOIN_TIMEOUT = 5      # seconds to wait for capture threads on shutdown

#* --- Console Settings ---
VERBOSE_LOGGING = False
LOG_FOLLOW_POLL_INTERVAL = 0.5  # seconds between polls in 'logs --follow'

#* --- MODIFIABLE SETTINGS (Changeable at runtime via 'config' command) ---
MODIFIABLE_SETTINGS = {
    "ECHO_SERVICE_OUTPUT",
    "MAX_EXITED_INSTANCES",
    "GRACEFUL_SHUTDOWN_TIMEOUT",
    "LOG_FOLLOW_POLL_INTERVAL",
}

#* --- Default Values for Modifiable Settings ---
# Mirror every captured line to the 'proc.<name>' logger as well.
ECHO_SERVICE_OUTPUT = _env_flag("WAYPOINT_ECHO_OUTPUT")
# How many exited instances stay queryable before the oldest are dropped.
# Set WAYPOINT_MAX_EXITED_INSTANCES=none to keep all of them.
MAX_EXITED_INSTANCES = _env_instance_limit("WAYPOINT_MAX_EXITED_INSTANCES", 50)
