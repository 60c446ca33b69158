"""MCP server that installs developer tools on Debian-based systems."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path

import httpx
from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from devsetup.catalog.loader import DefaultCatalogLoader
from devsetup.configs.manager import ConfigManager
from devsetup.models import Catalog
from devsetup.orchestration.orchestrator import InstallationOrchestrator
from devsetup.packages.apt import AptBackend
from devsetup.packages.base import PackageBackendPort
from devsetup.privilege.base import PrivilegedExecutorPort
from devsetup.privilege.sudo import SudoExecutor
from devsetup.profiles.store import ProfileStore
from devsetup.resolver.base import DependencyResolverPort
from devsetup.resolver.graph import DefaultDependencyResolver
from devsetup.services.manager import ServiceManager
from devsetup.settings import Settings
from devsetup.tools.catalog import dependency_graph, get_tool, list_tools, validate_catalog
from devsetup.tools.configs import (
    delete_config,
    get_config,
    list_configs,
    save_config,
    toggle_config,
)
from devsetup.tools.extras import list_extras, manage_extras
from devsetup.tools.install import install_tools, uninstall_tool
from devsetup.tools.plan import plan_installation
from devsetup.tools.profiles import (
    delete_profile,
    export_profile,
    import_profile,
    install_profile,
    list_profiles,
    save_profile,
)
from devsetup.tools.services import control_service, service_status
from devsetup.tools.system import system_check, verify_credential

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AppContext:
    """Shared state across all tool invocations.

    ``install_lock`` keeps package operations single-flight: the package
    database does not tolerate concurrent installs.
    """

    http_client: httpx.AsyncClient
    settings: Settings
    catalog: Catalog
    resolver: DependencyResolverPort
    executor: PrivilegedExecutorPort
    backend: PackageBackendPort
    orchestrator: InstallationOrchestrator
    config_manager: ConfigManager
    service_manager: ServiceManager
    profiles: ProfileStore
    install_lock: asyncio.Lock = field(default_factory=asyncio.Lock)


def build_app_context(
    http_client: httpx.AsyncClient, settings: Settings, catalog: Catalog
) -> AppContext:
    """Wire the adapters for one loaded catalog."""
    resolver = DefaultDependencyResolver(catalog)
    executor = SudoExecutor(
        timeout=settings.command_timeout, verify_timeout=settings.verify_timeout
    )
    backend = AptBackend(executor, overrides=dict(settings.package_overrides))
    return AppContext(
        http_client=http_client,
        settings=settings,
        catalog=catalog,
        resolver=resolver,
        executor=executor,
        backend=backend,
        orchestrator=InstallationOrchestrator(catalog, resolver, executor, backend),
        config_manager=ConfigManager(executor),
        service_manager=ServiceManager(executor),
        profiles=ProfileStore(Path(settings.profiles_dir).expanduser()),
    )


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    """Manage shared adapter lifecycle -- the composition root."""
    settings = Settings.from_env()
    async with httpx.AsyncClient(
        timeout=httpx.Timeout(30.0, connect=10.0),
        follow_redirects=True,
        transport=httpx.AsyncHTTPTransport(retries=3),
    ) as http_client:
        loader = DefaultCatalogLoader(
            source=settings.catalog_path, http=http_client, url=settings.catalog_url
        )
        catalog = await loader.load()
        app = build_app_context(http_client, settings, catalog)
        for issue in app.resolver.validate().errors:
            logger.warning("Catalog problem in %s: %s", issue.tool, issue.message)
        yield app


mcp = FastMCP(
    "devsetup",
    instructions=(
        "devsetup installs developer tools (compilers, runtimes, databases, web "
        "servers, containers) on Debian and Ubuntu machines from a curated catalog.\n\n"
        "### Recommended workflow\n"
        "1. **system_check**: confirm apt and sudo are available.\n"
        "2. **list_tools**: show the catalog; pass include_status=True to see "
        "what is already installed.\n"
        "3. **plan_installation**: show the user the install order, the "
        "dependencies that will be added, and any conflicts. Conflicting "
        "selections (e.g. mysql and mariadb) cannot be installed together.\n"
        "4. Ask the user for their sudo password, then **verify_credential**.\n"
        "5. **install_tools**: install the selection. Tools install one at a "
        "time; a failed tool does not stop the others.\n\n"
        "### Other tools\n"
        "- **uninstall_tool**, **list_extras** / **manage_extras** for optional add-ons.\n"
        "- **list_profiles**, **save_profile**, **install_profile**, "
        "**export_profile**, **import_profile**, **delete_profile** for reusable selections.\n"
        "- **list_configs**, **get_config**, **save_config**, **toggle_config**, "
        "**delete_config** for nginx/apache site configs.\n"
        "- **service_status**, **control_service** for systemd services.\n\n"
        "### Key principles\n"
        "- Never repeat the user's password back to them or include it in messages.\n"
        "- Always show the plan before installing.\n"
        "- Only one install runs at a time; if one is running, wait for it."
    ),
    lifespan=app_lifespan,
)

# ─── Read-only tools ──────────────────────────────────────────
mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))(list_tools)
mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))(get_tool)
mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))(plan_installation)
mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))(validate_catalog)
mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))(dependency_graph)
mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))(verify_credential)
mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))(system_check)
mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))(list_profiles)
mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))(export_profile)
mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))(list_extras)
mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))(list_configs)
mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))(get_config)
mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))(service_status)

# ─── Destructive tools ────────────────────────────────────────
mcp.tool(annotations=ToolAnnotations(destructiveHint=True))(install_tools)
mcp.tool(annotations=ToolAnnotations(destructiveHint=True))(uninstall_tool)
mcp.tool(annotations=ToolAnnotations(destructiveHint=True))(manage_extras)
mcp.tool(annotations=ToolAnnotations(destructiveHint=True))(save_profile)
mcp.tool(annotations=ToolAnnotations(destructiveHint=True))(delete_profile)
mcp.tool(annotations=ToolAnnotations(destructiveHint=True))(import_profile)
mcp.tool(annotations=ToolAnnotations(destructiveHint=True))(install_profile)
mcp.tool(annotations=ToolAnnotations(destructiveHint=True))(save_config)
mcp.tool(annotations=ToolAnnotations(destructiveHint=True))(toggle_config)
mcp.tool(annotations=ToolAnnotations(destructiveHint=True))(delete_config)
mcp.tool(annotations=ToolAnnotations(destructiveHint=True))(control_service)
