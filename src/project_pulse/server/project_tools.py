"""Project data MCP tools."""
import logging
from datetime import date

from .main import mcp, get_dashboard
from ..data.records import ProjectRecord
from ..utils.errors import DashboardError, format_error

logger = logging.getLogger(__name__)


def _format_date(value) -> str:
    if value is None:
        return "n/a"
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _format_project_line(record: ProjectRecord) -> str:
    return (
        f"[{record.key}] {record.name} | {record.manager_name or 'unassigned'} | "
        f"{record.progress_percent:g}% | {record.budget}"
    )


def _format_project_detail(record: ProjectRecord) -> str:
    lines = [
        f"# {record.name}",
        f"Key: {record.key} (row {record.id})",
        f"Manager: {record.manager_name or 'unassigned'}",
        f"Last updated: {_format_date(record.last_updated_on)}",
        f"Budget: {record.budget}",
        f"Progress: {record.progress_percent:g}%",
    ]
    if record.plan_link:
        lines.append(f"Plan: {record.plan_link}")
    if record.notes:
        lines.append(f"Notes: {record.notes}")
    return "\n".join(lines)


@mcp.tool()
async def list_projects(force_refresh: bool = False) -> str:
    """
    List tracked projects.

    Cached data younger than the cache TTL is returned without reading the
    sheet.

    Args:
        force_refresh: Read the sheet even when the cache is fresh.
    """
    try:
        dashboard = await get_dashboard()
        records = await dashboard.cache.get_or_fetch(force_refresh=force_refresh)
    except DashboardError as e:
        return format_error("List projects", e)
    except Exception as e:
        logger.error(f"Unexpected error listing projects: {e}", exc_info=True)
        return f"List projects failed: Unexpected error ({type(e).__name__}: {e})"

    if not records:
        return "No projects found."
    return "\n".join(_format_project_line(record) for record in records)


@mcp.tool()
async def refresh_projects() -> str:
    """Re-read the project sheet now."""
    try:
        dashboard = await get_dashboard()
        records = await dashboard.scheduler.refresh_now()
    except DashboardError as e:
        return format_error("Refresh", e)
    except Exception as e:
        logger.error(f"Unexpected error refreshing projects: {e}", exc_info=True)
        return f"Refresh failed: Unexpected error ({type(e).__name__}: {e})"
    return f"Refreshed {len(records)} projects."


@mcp.tool()
async def get_project(project: str) -> str:
    """
    Show one project from the cached data.

    Args:
        project: Project key (from list_projects), row number or exact name.
    """
    try:
        dashboard = await get_dashboard()
        await dashboard.cache.get_or_fetch()
        record = dashboard.find_project(project)
    except DashboardError as e:
        return format_error("Get project", e)
    except Exception as e:
        logger.error(f"Unexpected error loading project: {e}", exc_info=True)
        return f"Get project failed: Unexpected error ({type(e).__name__}: {e})"

    if record is None:
        return f"Get project failed: no project matches '{project}'"
    return _format_project_detail(record)


@mcp.tool()
async def project_summary() -> str:
    """Portfolio totals: project count, budget, average progress and buckets."""
    try:
        dashboard = await get_dashboard()
        await dashboard.cache.get_or_fetch()
        summary = dashboard.summary()
    except DashboardError as e:
        return format_error("Summary", e)
    except Exception as e:
        logger.error(f"Unexpected error building summary: {e}", exc_info=True)
        return f"Summary failed: Unexpected error ({type(e).__name__}: {e})"

    ranges = summary.progress_ranges
    return "\n".join([
        f"Projects: {summary.total_projects}",
        f"Total budget: {summary.total_budget}",
        f"Average progress: {summary.average_progress}%",
        f"Progress: {ranges['low']} low (<40%), {ranges['medium']} medium, "
        f"{ranges['high']} high (>=80%)",
    ])
