"""verify_credential / system_check -- preflight checks before installing."""

from __future__ import annotations

import contextlib
import platform
import shutil

from mcp.server.fastmcp import Context

from devsetup.privilege.sudo import check_credential_strength, has_sudo_access
from devsetup.tools._helpers import get_context

_REQUIRED_PROGRAMS = ("apt-get", "dpkg-query", "sudo", "systemctl")


async def verify_credential(credential: str, ctx: Context) -> dict[str, object]:
    """Check the user's sudo password before installing anything.

    Runs a harmless command through sudo. The password is passed on stdin
    only and is not stored.

    Args:
        credential: The user's sudo password.

    Returns:
        valid, plus a rough strength rating and warnings.
    """
    try:
        app = get_context(ctx)
        valid = await app.executor.verify_credential(credential)
        strength = check_credential_strength(credential)
        return {
            "success": True,
            "valid": valid,
            "strength": strength.strength,
            "warnings": strength.warnings,
        }
    except Exception as exc:
        await ctx.error(f"Unexpected error in verify_credential: {exc}")
        return {"success": False, "error": f"Internal error: {type(exc).__name__}"}


async def system_check(ctx: Context) -> dict[str, object]:
    """Report whether this machine can install catalog tools.

    Checks the platform, the programs devsetup relies on (apt-get,
    dpkg-query, sudo, systemctl) and whether the user may use sudo.
    """
    try:
        app = get_context(ctx)
        programs = {name: shutil.which(name) is not None for name in _REQUIRED_PROGRAMS}
        sudo_ok = await has_sudo_access(app.settings.verify_timeout)
        os_release: dict[str, str] = {}
        with contextlib.suppress(OSError):
            os_release = platform.freedesktop_os_release()
        return {
            "success": True,
            "platform": platform.system(),
            "distribution": os_release.get("PRETTY_NAME", ""),
            "programs": programs,
            "sudo_access": sudo_ok,
            "ready": programs["apt-get"] and programs["dpkg-query"] and sudo_ok,
            "catalog": {"version": app.catalog.version, "tools": len(app.catalog)},
            "profiles_dir": app.settings.profiles_dir,
        }
    except Exception as exc:
        await ctx.error(f"Unexpected error in system_check: {exc}")
        return {"success": False, "error": f"Internal error: {type(exc).__name__}"}
