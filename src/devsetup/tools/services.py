"""service_status / control_service -- systemd services of installed tools."""

from __future__ import annotations

from dataclasses import asdict

from mcp.server.fastmcp import Context

from devsetup.errors import DevSetupError
from devsetup.tools._helpers import get_context


async def service_status(service: str, ctx: Context) -> dict[str, object]:
    """Report whether a systemd service is active.

    Args:
        service: Unit name, e.g. "nginx" or "postgresql".
    """
    try:
        app = get_context(ctx)
        state = await app.service_manager.status(service)
        return {"success": True, "service": service, "status": state, "active": state == "active"}
    except DevSetupError as exc:
        return {"success": False, "service": service, "error": str(exc)}
    except Exception as exc:
        await ctx.error(f"Unexpected error in service_status: {exc}")
        return {"success": False, "service": service, "error": f"Internal error: {type(exc).__name__}"}


async def control_service(
    service: str,
    action: str,
    credential: str,
    ctx: Context,
) -> dict[str, object]:
    """Start, stop or restart a systemd service.

    Args:
        service: Unit name, e.g. "nginx".
        action: One of "start", "stop", "restart".
        credential: The user's sudo password, passed to sudo on stdin only.
    """
    try:
        app = get_context(ctx)
        result = await app.service_manager.control(service, action, credential)
        return {"service": service, "action": action, **asdict(result)}
    except DevSetupError as exc:
        return {"success": False, "service": service, "error": str(exc)}
    except Exception as exc:
        await ctx.error(f"Unexpected error in control_service: {exc}")
        return {"success": False, "service": service, "error": f"Internal error: {type(exc).__name__}"}
