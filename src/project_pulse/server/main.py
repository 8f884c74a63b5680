"""MCP Server initialization and entry point."""

import logging
from typing import Optional

from fastmcp import FastMCP

from ..dashboard import Dashboard

logger = logging.getLogger(__name__)

# Initialize MCP Server
mcp = FastMCP("Project Pulse")

# Global dashboard, initialized lazily
_dashboard: Optional[Dashboard] = None
_started = False


async def get_dashboard() -> Dashboard:
    """Get or create the global Dashboard instance.

    The first call restores any stored session and starts auto-refresh on
    the server's event loop.

    Returns:
        The running Dashboard instance.
    """
    global _dashboard, _started
    if _dashboard is None:
        _dashboard = Dashboard()
    if not _started:
        _started = True
        restored = await _dashboard.start()
        logger.info(f"Dashboard started (stored session restored: {restored})")
    return _dashboard


def set_dashboard(dashboard: Optional[Dashboard], started: bool = False) -> None:
    """Replace the global Dashboard instance."""
    global _dashboard, _started
    _dashboard = dashboard
    _started = started
