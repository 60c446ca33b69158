"""install_tools / uninstall_tool -- change what is installed on this machine."""

from __future__ import annotations

from dataclasses import asdict

from mcp.server.fastmcp import Context

from devsetup.errors import DevSetupError
from devsetup.tools._helpers import BUSY_MSG, get_context, progress_reporter


async def install_tools(tool_ids: list[str], credential: str, ctx: Context) -> dict[str, object]:
    """Install catalog tools together with everything they depend on.

    Dependencies are installed first. Selections containing conflicting
    tools are refused before anything is installed. If one tool fails the
    rest of the batch still runs; nothing is rolled back.

    Use plan_installation first to show the user the install order.

    Args:
        tool_ids: Catalog tool IDs to install.
        credential: The user's sudo password. Passed to sudo on stdin only;
            never stored or logged.

    Returns:
        success, final state, per-tool results, installed/failed counts and
        any conflicts that blocked the run.
    """
    try:
        app = get_context(ctx)
        if app.install_lock.locked():
            return {"success": False, "error": BUSY_MSG}
        async with app.install_lock:
            await ctx.info(f"Installing {len(tool_ids)} selected tool(s)...")
            report = await app.orchestrator.install(
                tool_ids, credential, on_progress=progress_reporter(ctx)
            )
        return asdict(report)
    except DevSetupError as exc:
        return {"success": False, "error": str(exc)}
    except Exception as exc:
        await ctx.error(f"Unexpected error in install_tools: {exc}")
        return {"success": False, "error": f"Internal error: {type(exc).__name__}"}


async def uninstall_tool(tool_id: str, credential: str, ctx: Context) -> dict[str, object]:
    """Remove one installed tool's packages.

    Tools that depend on it and the tools it depends on are left in place.

    Args:
        tool_id: Catalog tool ID to remove.
        credential: The user's sudo password, passed to sudo on stdin only.
    """
    try:
        app = get_context(ctx)
        if app.install_lock.locked():
            return {"success": False, "tool_id": tool_id, "error": BUSY_MSG}
        async with app.install_lock:
            report = await app.orchestrator.uninstall(
                tool_id, credential, on_progress=progress_reporter(ctx)
            )
        return asdict(report)
    except DevSetupError as exc:
        return {"success": False, "tool_id": tool_id, "error": str(exc)}
    except Exception as exc:
        await ctx.error(f"Unexpected error in uninstall_tool: {exc}")
        return {"success": False, "tool_id": tool_id, "error": f"Internal error: {type(exc).__name__}"}
