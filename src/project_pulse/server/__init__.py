"""Project Pulse MCP Server - modular implementation."""

import logging
import sys

from .main import mcp, get_dashboard
from ..core.config import get_log_level

from . import auth_tools
from . import project_tools

__all__ = ["mcp", "get_dashboard", "main"]


def configure_logging() -> None:
    """Send log records to stderr; stdout carries the MCP stdio protocol."""
    logging.basicConfig(
        level=get_log_level(),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def main():
    """Entry point for the Project Pulse MCP server."""
    configure_logging()
    mcp.run(show_banner=False)
