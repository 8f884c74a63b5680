"""
Core utilities package for Project Pulse.

This package provides shared configuration and the clock capability.
"""

from .clock import Clock, SystemClock
from .config import DashboardConfig, get_credentials_dir, get_log_level

__all__ = [
    # Clock
    "Clock",
    "SystemClock",
    # Config
    "DashboardConfig",
    "get_credentials_dir",
    "get_log_level",
]
