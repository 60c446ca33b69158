"""plan_installation tool -- preview an install without touching the system."""

from __future__ import annotations

from dataclasses import asdict

from mcp.server.fastmcp import Context

from devsetup.errors import DevSetupError, SelectionError
from devsetup.tools._helpers import get_context


async def plan_installation(tool_ids: list[str], ctx: Context) -> dict[str, object]:
    """Show what install_tools would do for a selection, without installing.

    Resolves dependencies into install order, reports conflicts that would
    block the install, and suggests catalog tools that commonly go along
    with the selection. Catalog integrity errors are included so that
    silently skipped dependencies are visible.

    Args:
        tool_ids: Catalog tool IDs the user wants installed.

    Returns:
        install_order (tool IDs, dependencies first), added_dependencies,
        conflicts, suggestions, and catalog_errors.
    """
    try:
        app = get_context(ctx)
        if not tool_ids:
            raise SelectionError("Select at least one tool")
        selected = app.catalog.require(tool_ids)
        plan = app.resolver.resolve(selected)
        chosen = {t.id for t in selected}
        report = app.resolver.validate()
        return {
            "success": not plan.conflicts,
            "install_order": plan.install_ids,
            "added_dependencies": [tid for tid in plan.install_ids if tid not in chosen],
            "conflicts": [asdict(c) for c in plan.conflicts],
            "suggestions": [t.id for t in app.resolver.suggest_additional_tools(selected)],
            "catalog_errors": [asdict(issue) for issue in report.errors],
        }
    except DevSetupError as exc:
        return {"success": False, "error": str(exc)}
    except Exception as exc:
        await ctx.error(f"Unexpected error in plan_installation: {exc}")
        return {"success": False, "error": f"Internal error: {type(exc).__name__}"}
