"""Catalog browsing tools: list_tools, get_tool, validate_catalog, dependency_graph."""

from __future__ import annotations

from dataclasses import asdict

from mcp.server.fastmcp import Context

from devsetup.errors import DevSetupError
from devsetup.tools._helpers import get_context, tool_summary


async def list_tools(
    ctx: Context,
    category: str = "",
    include_status: bool = False,
) -> dict[str, object]:
    """List the tools in the installation catalog, grouped by category.

    Args:
        category: Only list this category ID. Empty lists every category.
        include_status: Also report whether each tool is installed on this
            machine. Slower, since it queries the package database.

    Returns:
        Catalog version and a list of categories with their tools.
    """
    try:
        app = get_context(ctx)
        categories = app.catalog.categories
        if category:
            categories = [c for c in categories if c.id == category]
            if not categories:
                return {"success": False, "error": f"Unknown category: {category}"}

        statuses = await app.orchestrator.tool_statuses() if include_status else {}

        listed: list[dict[str, object]] = []
        for cat in categories:
            tools = []
            for tool in cat.tools:
                summary = tool_summary(tool)
                if include_status:
                    summary["installed"] = statuses.get(cat.id, {}).get(tool.id, False)
                tools.append(summary)
            listed.append(
                {
                    "id": cat.id,
                    "name": cat.name,
                    "description": cat.description,
                    "tools": tools,
                }
            )
        return {
            "success": True,
            "version": app.catalog.version,
            "total_tools": sum(len(c["tools"]) for c in listed),
            "categories": listed,
        }
    except DevSetupError as exc:
        return {"success": False, "error": str(exc)}
    except Exception as exc:
        await ctx.error(f"Unexpected error in list_tools: {exc}")
        return {"success": False, "error": f"Internal error: {type(exc).__name__}"}


async def get_tool(tool_id: str, ctx: Context) -> dict[str, object]:
    """Show everything the catalog knows about one tool.

    Includes the full transitive dependency list and the tools that
    depend on it.

    Args:
        tool_id: Catalog tool ID, as shown by list_tools.
    """
    try:
        app = get_context(ctx)
        (tool,) = app.catalog.require([tool_id])
        return {
            "success": True,
            "tool": asdict(tool),
            "all_dependencies": [t.id for t in app.resolver.get_all_dependencies(tool)],
            "required_by": [t.id for t in app.resolver.get_reverse_dependencies(tool.id)],
            "circular_dependency": app.resolver.has_circular_dependency(tool),
        }
    except DevSetupError as exc:
        return {"success": False, "error": str(exc)}
    except Exception as exc:
        await ctx.error(f"Unexpected error in get_tool: {exc}")
        return {"success": False, "error": f"Internal error: {type(exc).__name__}"}


async def validate_catalog(ctx: Context) -> dict[str, object]:
    """Check the catalog for integrity problems.

    Reports duplicate IDs, missing dependencies, dependency cycles,
    self-references and tools that declare a dependency as a conflict.
    Tools with many dependencies are reported as warnings.
    """
    try:
        app = get_context(ctx)
        return {"success": True, **asdict(app.resolver.validate())}
    except Exception as exc:
        await ctx.error(f"Unexpected error in validate_catalog: {exc}")
        return {"success": False, "error": f"Internal error: {type(exc).__name__}"}


async def dependency_graph(ctx: Context) -> dict[str, object]:
    """Return the catalog as a graph of dependency and conflict edges.

    Edges run from a tool to the tool it depends on or conflicts with.
    """
    try:
        app = get_context(ctx)
        return {"success": True, **app.resolver.build_graph().to_dict()}
    except Exception as exc:
        await ctx.error(f"Unexpected error in dependency_graph: {exc}")
        return {"success": False, "error": f"Internal error: {type(exc).__name__}"}
