"""Profile tools -- saved, reusable tool selections."""

from __future__ import annotations

from dataclasses import asdict

from mcp.server.fastmcp import Context

from devsetup.errors import DevSetupError
from devsetup.models import Profile
from devsetup.profiles.store import generate_install_script
from devsetup.tools._helpers import BUSY_MSG, get_context, progress_reporter


async def list_profiles(
    ctx: Context,
    search: str = "",
    include_statistics: bool = False,
) -> dict[str, object]:
    """List saved profiles, newest first.

    Args:
        search: Only profiles whose name or description contains this text.
        include_statistics: Also report totals and the most used tools.
    """
    try:
        app = get_context(ctx)
        profiles = app.profiles.search(search)
        result: dict[str, object] = {
            "success": True,
            "profiles": [asdict(p) for p in profiles],
        }
        if include_statistics:
            result["statistics"] = app.profiles.statistics()
        return result
    except DevSetupError as exc:
        return {"success": False, "error": str(exc)}
    except Exception as exc:
        await ctx.error(f"Unexpected error in list_profiles: {exc}")
        return {"success": False, "error": f"Internal error: {type(exc).__name__}"}


async def export_profile(
    profile_id: str,
    ctx: Context,
    as_script: bool = False,
) -> dict[str, object]:
    """Export a profile as JSON, or as a standalone bash install script.

    Args:
        profile_id: ID from list_profiles.
        as_script: Return a bash script that installs the profile's tools
            with apt-get in dependency order instead of the profile JSON.
    """
    try:
        app = get_context(ctx)
        if as_script:
            script = generate_install_script(app.profiles.get(profile_id), app.catalog)
            return {"success": True, "profile_id": profile_id, "script": script}
        return {
            "success": True,
            "profile_id": profile_id,
            "json": app.profiles.export_profile(profile_id),
        }
    except DevSetupError as exc:
        return {"success": False, "profile_id": profile_id, "error": str(exc)}
    except Exception as exc:
        await ctx.error(f"Unexpected error in export_profile: {exc}")
        return {"success": False, "profile_id": profile_id, "error": f"Internal error: {type(exc).__name__}"}


async def save_profile(
    name: str,
    tool_ids: list[str],
    ctx: Context,
    description: str = "",
    profile_id: str = "",
    duplicate_of: str = "",
) -> dict[str, object]:
    """Create or update a profile, or copy an existing one.

    Args:
        name: Profile name (1-100 characters). For a copy, empty means
            "<original name> (Copy)".
        tool_ids: Catalog tool IDs in the profile. Ignored for a copy.
        description: Free-text description.
        profile_id: Update this existing profile instead of creating one.
        duplicate_of: Copy this existing profile under a new ID.

    Returns:
        The stored profile plus any tool IDs the catalog does not know.
    """
    try:
        app = get_context(ctx)
        if duplicate_of:
            profile = app.profiles.duplicate(duplicate_of, name)
        elif profile_id:
            profile = app.profiles.update(
                profile_id, name=name, description=description, tools=tool_ids
            )
        else:
            profile = app.profiles.save(
                Profile(id="", name=name, tools=list(tool_ids), description=description)
            )
        return {
            "success": True,
            "profile": asdict(profile),
            "unknown_tools": [tid for tid in profile.tools if tid not in app.catalog],
        }
    except DevSetupError as exc:
        return {"success": False, "error": str(exc)}
    except Exception as exc:
        await ctx.error(f"Unexpected error in save_profile: {exc}")
        return {"success": False, "error": f"Internal error: {type(exc).__name__}"}


async def delete_profile(profile_id: str, ctx: Context) -> dict[str, object]:
    """Delete a saved profile.

    Args:
        profile_id: ID from list_profiles.
    """
    try:
        app = get_context(ctx)
        app.profiles.delete(profile_id)
        return {"success": True, "profile_id": profile_id}
    except DevSetupError as exc:
        return {"success": False, "profile_id": profile_id, "error": str(exc)}
    except Exception as exc:
        await ctx.error(f"Unexpected error in delete_profile: {exc}")
        return {"success": False, "profile_id": profile_id, "error": f"Internal error: {type(exc).__name__}"}


async def import_profile(profile_json: str, ctx: Context) -> dict[str, object]:
    """Import a profile from JSON produced by export_profile.

    The imported profile gets a new ID and fresh timestamps.

    Args:
        profile_json: The exported profile JSON text.
    """
    try:
        app = get_context(ctx)
        profile = app.profiles.import_profile(profile_json)
        return {"success": True, "profile": asdict(profile)}
    except DevSetupError as exc:
        return {"success": False, "error": str(exc)}
    except Exception as exc:
        await ctx.error(f"Unexpected error in import_profile: {exc}")
        return {"success": False, "error": f"Internal error: {type(exc).__name__}"}


async def install_profile(profile_id: str, credential: str, ctx: Context) -> dict[str, object]:
    """Install every tool in a saved profile, like install_tools.

    Args:
        profile_id: ID from list_profiles.
        credential: The user's sudo password, passed to sudo on stdin only.
    """
    try:
        app = get_context(ctx)
        profile = app.profiles.get(profile_id)
        if app.install_lock.locked():
            return {"success": False, "profile_id": profile_id, "error": BUSY_MSG}
        async with app.install_lock:
            await ctx.info(f"Installing profile '{profile.name}'...")
            report = await app.orchestrator.install(
                profile.tools, credential, on_progress=progress_reporter(ctx)
            )
        return {"profile_id": profile_id, **asdict(report)}
    except DevSetupError as exc:
        return {"success": False, "profile_id": profile_id, "error": str(exc)}
    except Exception as exc:
        await ctx.error(f"Unexpected error in install_profile: {exc}")
        return {"success": False, "profile_id": profile_id, "error": f"Internal error: {type(exc).__name__}"}
