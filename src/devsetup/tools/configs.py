"""Config file tools for tools with sites-available style layouts (nginx, apache)."""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING

from mcp.server.fastmcp import Context

from devsetup.errors import ConfigManagementError, DevSetupError
from devsetup.models import ConfigManagement
from devsetup.tools._helpers import get_context

if TYPE_CHECKING:
    from devsetup.server import AppContext


def _config_management(app: AppContext, tool_id: str) -> ConfigManagement:
    (tool,) = app.catalog.require([tool_id])
    if tool.config_management is None:
        raise ConfigManagementError(f"{tool.name} has no manageable config files")
    return tool.config_management


async def list_configs(tool_id: str, ctx: Context) -> dict[str, object]:
    """List a tool's config files and which of them are enabled.

    Args:
        tool_id: Catalog tool ID with config management (e.g. nginx, apache).
    """
    try:
        app = get_context(ctx)
        cm = _config_management(app, tool_id)
        return {
            "success": True,
            "tool_id": tool_id,
            "service": cm.service_name,
            "configs": [asdict(c) for c in app.config_manager.list_configs(cm)],
        }
    except DevSetupError as exc:
        return {"success": False, "tool_id": tool_id, "error": str(exc)}
    except Exception as exc:
        await ctx.error(f"Unexpected error in list_configs: {exc}")
        return {"success": False, "tool_id": tool_id, "error": f"Internal error: {type(exc).__name__}"}


async def get_config(tool_id: str, name: str, ctx: Context) -> dict[str, object]:
    """Read one config file.

    Args:
        tool_id: Catalog tool ID with config management.
        name: Config file name, as shown by list_configs.
    """
    try:
        app = get_context(ctx)
        content = app.config_manager.read_config(_config_management(app, tool_id), name)
        return {"success": True, "tool_id": tool_id, "name": name, "content": content}
    except DevSetupError as exc:
        return {"success": False, "tool_id": tool_id, "error": str(exc)}
    except Exception as exc:
        await ctx.error(f"Unexpected error in get_config: {exc}")
        return {"success": False, "tool_id": tool_id, "error": f"Internal error: {type(exc).__name__}"}


async def save_config(
    tool_id: str,
    name: str,
    content: str,
    credential: str,
    ctx: Context,
) -> dict[str, object]:
    """Create or overwrite a config file in the tool's available directory.

    Args:
        tool_id: Catalog tool ID with config management.
        name: Config file name (a single file name, no directories).
        content: Full file content.
        credential: The user's sudo password, passed to sudo on stdin only.
    """
    try:
        app = get_context(ctx)
        await app.config_manager.save_config(
            _config_management(app, tool_id), name, content, credential
        )
        return {"success": True, "tool_id": tool_id, "name": name}
    except DevSetupError as exc:
        return {"success": False, "tool_id": tool_id, "error": str(exc)}
    except Exception as exc:
        await ctx.error(f"Unexpected error in save_config: {exc}")
        return {"success": False, "tool_id": tool_id, "error": f"Internal error: {type(exc).__name__}"}


async def toggle_config(
    tool_id: str,
    name: str,
    enable: bool,
    credential: str,
    ctx: Context,
) -> dict[str, object]:
    """Enable or disable a config file, then reload the tool's service.

    Args:
        tool_id: Catalog tool ID with config management.
        name: Config file name, as shown by list_configs.
        enable: True to enable, False to disable.
        credential: The user's sudo password, passed to sudo on stdin only.
    """
    try:
        app = get_context(ctx)
        await app.config_manager.toggle_config(
            _config_management(app, tool_id), name, enable, credential
        )
        return {"success": True, "tool_id": tool_id, "name": name, "enabled": enable}
    except DevSetupError as exc:
        return {"success": False, "tool_id": tool_id, "error": str(exc)}
    except Exception as exc:
        await ctx.error(f"Unexpected error in toggle_config: {exc}")
        return {"success": False, "tool_id": tool_id, "error": f"Internal error: {type(exc).__name__}"}


async def delete_config(
    tool_id: str,
    name: str,
    credential: str,
    ctx: Context,
) -> dict[str, object]:
    """Disable and delete a config file.

    Args:
        tool_id: Catalog tool ID with config management.
        name: Config file name, as shown by list_configs.
        credential: The user's sudo password, passed to sudo on stdin only.
    """
    try:
        app = get_context(ctx)
        await app.config_manager.delete_config(_config_management(app, tool_id), name, credential)
        return {"success": True, "tool_id": tool_id, "name": name}
    except DevSetupError as exc:
        return {"success": False, "tool_id": tool_id, "error": str(exc)}
    except Exception as exc:
        await ctx.error(f"Unexpected error in delete_config: {exc}")
        return {"success": False, "tool_id": tool_id, "error": f"Internal error: {type(exc).__name__}"}
