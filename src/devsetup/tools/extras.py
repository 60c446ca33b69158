"""list_extras / manage_extras -- optional add-on packages of a tool."""

from __future__ import annotations

from dataclasses import asdict

from mcp.server.fastmcp import Context

from devsetup.errors import DevSetupError
from devsetup.tools._helpers import BUSY_MSG, get_context


async def list_extras(tool_id: str, ctx: Context) -> dict[str, object]:
    """List a tool's optional extras and whether each is installed.

    Args:
        tool_id: Catalog tool ID.
    """
    try:
        app = get_context(ctx)
        extras = await app.orchestrator.list_extras(tool_id)
        return {"success": True, "tool_id": tool_id, "extras": [asdict(e) for e in extras]}
    except DevSetupError as exc:
        return {"success": False, "tool_id": tool_id, "error": str(exc)}
    except Exception as exc:
        await ctx.error(f"Unexpected error in list_extras: {exc}")
        return {"success": False, "tool_id": tool_id, "error": f"Internal error: {type(exc).__name__}"}


async def manage_extras(
    tool_id: str,
    credential: str,
    ctx: Context,
    install: list[str] | None = None,
    remove: list[str] | None = None,
) -> dict[str, object]:
    """Install and/or remove extras of one tool.

    Removals run before installs. Each extra succeeds or fails on its own.

    Args:
        tool_id: Catalog tool ID owning the extras.
        credential: The user's sudo password, passed to sudo on stdin only.
        install: Extra IDs to install.
        remove: Extra IDs to remove.
    """
    try:
        app = get_context(ctx)
        if app.install_lock.locked():
            return {"success": False, "tool_id": tool_id, "error": BUSY_MSG}
        async with app.install_lock:
            report = await app.orchestrator.manage_extras(
                tool_id, credential, install=install or [], remove=remove or []
            )
        return asdict(report)
    except DevSetupError as exc:
        return {"success": False, "tool_id": tool_id, "error": str(exc)}
    except Exception as exc:
        await ctx.error(f"Unexpected error in manage_extras: {exc}")
        return {"success": False, "tool_id": tool_id, "error": f"Internal error: {type(exc).__name__}"}
