"""
Shared configuration for Project Pulse.

This module centralizes the sheet location and timing values consumed by the
cache and refresh loop. Values come from the environment (a .env file is
loaded first) and can be overridden per instance for tests.
"""

import logging
import os
from typing import List, Optional

from dotenv import load_dotenv

from ..utils.constants import (
    DEFAULT_CACHE_TTL_MS,
    DEFAULT_FETCH_TIMEOUT_SECONDS,
    DEFAULT_REFRESH_INTERVAL_MS,
    DEFAULT_SHEET_NAME,
    DEFAULT_SHEET_RANGE,
)

logger = logging.getLogger(__name__)

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name} value: {raw!r}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name} value: {raw!r}")
        return default


class DashboardConfig:
    """
    Sheet location and timing configuration.

    Provides a single source of truth for where project rows live and how
    often they are refreshed.
    """

    def __init__(
        self,
        spreadsheet_id: Optional[str] = None,
        sheet_name: Optional[str] = None,
        range_expression: Optional[str] = None,
        refresh_interval_ms: Optional[int] = None,
        cache_ttl_ms: Optional[int] = None,
        fetch_timeout_seconds: Optional[float] = None,
    ) -> None:
        self.spreadsheet_id = spreadsheet_id or os.getenv("PROJECT_PULSE_SPREADSHEET_ID", "")
        self.sheet_name = sheet_name or os.getenv("PROJECT_PULSE_SHEET_NAME", DEFAULT_SHEET_NAME)
        self.range_expression = range_expression or os.getenv(
            "PROJECT_PULSE_RANGE", DEFAULT_SHEET_RANGE
        )
        self.refresh_interval_ms = (
            refresh_interval_ms
            if refresh_interval_ms is not None
            else _env_int("PROJECT_PULSE_REFRESH_INTERVAL_MS", DEFAULT_REFRESH_INTERVAL_MS)
        )
        self.cache_ttl_ms = (
            cache_ttl_ms
            if cache_ttl_ms is not None
            else _env_int("PROJECT_PULSE_CACHE_TTL_MS", DEFAULT_CACHE_TTL_MS)
        )
        self.fetch_timeout_seconds = (
            fetch_timeout_seconds
            if fetch_timeout_seconds is not None
            else _env_float("PROJECT_PULSE_FETCH_TIMEOUT_SECONDS", DEFAULT_FETCH_TIMEOUT_SECONDS)
        )

    @property
    def a1_range(self) -> str:
        """Full A1 range including the tab name, e.g. ``Sheet1!A1:G100``."""
        return f"{self.sheet_name}!{self.range_expression}"

    def configuration_issues(self) -> List[str]:
        """List configuration problems that will stop the dashboard from loading."""
        issues = []
        if not self.spreadsheet_id:
            issues.append("PROJECT_PULSE_SPREADSHEET_ID is not set")
        if self.refresh_interval_ms <= 0:
            issues.append("PROJECT_PULSE_REFRESH_INTERVAL_MS must be positive")
        if self.cache_ttl_ms <= 0:
            issues.append("PROJECT_PULSE_CACHE_TTL_MS must be positive")
        return issues


def get_credentials_dir() -> str:
    """
    Get the credentials directory path, creating it if necessary.

    Returns:
        Path to the credentials directory.
    """
    credentials_dir = os.path.expanduser(
        os.getenv("PROJECT_PULSE_CREDENTIALS_DIR", "~/.config/project-pulse")
    )
    if not os.path.exists(credentials_dir):
        os.makedirs(credentials_dir, exist_ok=True)
    return credentials_dir


def get_log_level() -> str:
    """Get the configured log level name."""
    return os.getenv("PROJECT_PULSE_LOG_LEVEL", "INFO").upper()
