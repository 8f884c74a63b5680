"""Authentication MCP tools for Project Pulse."""

import logging

from .main import mcp, get_dashboard
from ..utils.errors import DashboardError, format_error

logger = logging.getLogger(__name__)


@mcp.tool()
async def get_auth_url() -> str:
    """
    Get the Google sign-in link for the dashboard.

    Open the link, approve access, then pass the code (or the full URL the
    browser was redirected to) to complete_auth.

    Returns:
        Authentication URL and instructions, or error message.
    """
    try:
        dashboard = await get_dashboard()
        auth_url = dashboard.session.get_authorization_url()
    except DashboardError as e:
        return format_error("Sign in", e)
    except Exception as e:
        logger.error(f"Failed to build authorization URL: {e}", exc_info=True)
        return f"Sign in failed: Unexpected error ({type(e).__name__}: {e})"

    message_lines = [
        "**ACTION REQUIRED: Google Authentication Needed for Project Pulse**\n",
        "**Open this link to authenticate:**",
        f"```\n{auth_url}\n```",
        "",
        "**Instructions:**",
        "1. Approve read access to the project sheet and permission to send status mail",
        "2. Copy the redirect URL (or just its `code` parameter) from the browser",
        "3. Call complete_auth with it",
    ]
    return "\n".join(message_lines)


@mcp.tool()
async def complete_auth(code: str) -> str:
    """
    Finish Google sign-in with the authorization code.

    Args:
        code: The authorization code, or the full redirect URL containing it.
    """
    try:
        dashboard = await get_dashboard()
        await dashboard.session.authenticate(code)
        return "Signed in. Project data will load on the next refresh."
    except DashboardError as e:
        return format_error("Sign in", e)
    except Exception as e:
        logger.error(f"Unexpected error completing sign-in: {e}", exc_info=True)
        return f"Sign in failed: Unexpected error ({type(e).__name__}: {e})"


@mcp.tool()
async def auth_status() -> str:
    """Show the session state, cache freshness and the last refresh error."""
    try:
        dashboard = await get_dashboard()
    except DashboardError as e:
        return format_error("Status", e)
    except Exception as e:
        logger.error(f"Unexpected error reading status: {e}", exc_info=True)
        return f"Status failed: Unexpected error ({type(e).__name__}: {e})"

    cache = dashboard.cache
    snapshot = cache.snapshot

    lines = [f"Session: {dashboard.session.state.value}"]
    if snapshot is None:
        lines.append("Cache: empty")
    else:
        age_seconds = (dashboard.clock.now_millis() - snapshot.fetched_at_epoch_millis) / 1000
        freshness = "fresh" if cache.is_fresh() else "stale"
        lines.append(
            f"Cache: {len(snapshot.records)} projects, {freshness} ({age_seconds:.0f}s old)"
        )
    if cache.last_error is not None:
        lines.append(f"Last error: {cache.last_error.message}")
    return "\n".join(lines)


@mcp.tool()
async def sign_out() -> str:
    """Sign out and drop cached project data."""
    try:
        dashboard = await get_dashboard()
        dashboard.sign_out()
    except DashboardError as e:
        return format_error("Sign out", e)
    except Exception as e:
        logger.error(f"Unexpected error signing out: {e}", exc_info=True)
        return f"Sign out failed: Unexpected error ({type(e).__name__}: {e})"
    return "Signed out."
