"""Project Pulse - project-tracking dashboard backed by a Google Sheet.

This package keeps an OAuth session with Google, caches project rows read
from the tracking sheet, refreshes them in the background and exposes them
through an MCP server.
"""
from .dashboard import Dashboard
from .data.records import ProjectRecord

__version__ = "0.1.0"
__all__ = ["Dashboard", "ProjectRecord"]
