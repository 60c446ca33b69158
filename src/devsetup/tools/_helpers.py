"""Helpers shared by the tool functions."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from mcp.server.fastmcp import Context

from devsetup.models import ProgressEvent, Tool

if TYPE_CHECKING:
    from devsetup.server import AppContext

BUSY_MSG = "Another install or uninstall is already running. Try again when it finishes."


def get_context(ctx: Context) -> AppContext:
    """Extract AppContext from FastMCP's lifespan context.

    Raises TypeError if the lifespan context is not an AppContext instance.
    """
    from devsetup.server import AppContext

    app = ctx.request_context.lifespan_context
    if not isinstance(app, AppContext):
        msg = (
            f"Expected AppContext in lifespan_context, got {type(app).__name__}. "
            "Is the server configured with app_lifespan?"
        )
        raise TypeError(msg)
    return app


def tool_summary(tool: Tool) -> dict[str, object]:
    """Compact view of a catalog tool for listings."""
    return {
        "id": tool.id,
        "name": tool.name,
        "description": tool.description,
        "package": tool.package,
        "dependencies": list(tool.dependencies),
        "conflicts": list(tool.conflicts),
    }


def progress_reporter(ctx: Context) -> Callable[[ProgressEvent], Awaitable[None]]:
    """Forward orchestrator progress events to the MCP client."""

    async def report(event: ProgressEvent) -> None:
        await ctx.report_progress(event.progress, 100)
        await ctx.info(f"[{event.status}] {event.message}")

    return report
