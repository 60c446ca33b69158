"""Drive resolved install plans through the package backend.

One run moves through PREPARING -> RESOLVING -> (CONFLICT_BLOCKED |
INSTALLING) -> COMPLETED | FAILED. Tools install strictly one at a time in
resolver order. A failed tool is recorded and the batch continues; nothing
already installed is rolled back.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from devsetup.errors import CredentialError, DevSetupError, SelectionError
from devsetup.models import (
    Catalog,
    ExtraResult,
    ExtrasReport,
    ExtraStatus,
    InstallReport,
    InstallStatus,
    ProgressEvent,
    RunState,
    Tool,
    ToolResult,
    UninstallReport,
)
from devsetup.packages.base import PackageBackendPort
from devsetup.privilege.base import PrivilegedExecutorPort
from devsetup.resolver.base import DependencyResolverPort

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], Awaitable[None] | None]

_INVALID_CREDENTIAL = "Invalid credential"
_MISSING_CREDENTIAL = "A credential is required"


async def _emit(sink: ProgressCallback | None, event: ProgressEvent) -> None:
    """Deliver a progress event. A failing sink never stops the batch."""
    if sink is None:
        return
    try:
        outcome = sink(event)
        if inspect.isawaitable(outcome):
            await outcome
    except Exception:
        logger.warning("Progress sink failed for %s", event.tool_id, exc_info=True)


@dataclass
class InstallationOrchestrator:
    """Installs, uninstalls, and manages extras for tools of one catalog."""

    catalog: Catalog
    resolver: DependencyResolverPort
    executor: PrivilegedExecutorPort
    backend: PackageBackendPort

    # ── Install ──────────────────────────────────────────────────

    async def install(
        self,
        tool_ids: Sequence[str],
        credential: str,
        on_progress: ProgressCallback | None = None,
    ) -> InstallReport:
        """Install the selected tools and everything they depend on.

        Validation, credential, and conflict failures return a failed
        report before any package is touched. Per-tool failures are
        recorded in ``results`` and do not stop the batch.
        """
        self._enter(RunState.PREPARING)
        try:
            selected = self._select(tool_ids, credential)
            await self._verify(credential)
        except DevSetupError as exc:
            self._enter(RunState.FAILED)
            return InstallReport(success=False, state=RunState.FAILED, error=str(exc))

        self._enter(RunState.RESOLVING)
        plan = self.resolver.resolve(selected)
        if plan.conflicts:
            self._enter(RunState.CONFLICT_BLOCKED)
            return InstallReport(
                success=False,
                state=RunState.CONFLICT_BLOCKED,
                conflicts=plan.conflicts,
                error="Tool conflicts detected",
            )

        self._enter(RunState.INSTALLING)
        logger.info("Install order: %s", ", ".join(plan.install_ids))
        total = len(plan.install_order)
        results: list[ToolResult] = []

        for tool in plan.install_order:
            await _emit(
                on_progress,
                ProgressEvent(
                    tool_id=tool.id,
                    status=InstallStatus.INSTALLING,
                    progress=len(results) / total * 100,
                    message=f"Installing {tool.name}...",
                ),
            )
            result = await self._install_tool(tool, credential)
            results.append(result)
            await _emit(
                on_progress,
                ProgressEvent(
                    tool_id=tool.id,
                    status=InstallStatus.COMPLETED if result.success else InstallStatus.FAILED,
                    progress=len(results) / total * 100,
                    message=(
                        f"{tool.name} installed successfully"
                        if result.success
                        else f"Failed to install {tool.name}"
                    ),
                ),
            )

        installed = sum(1 for r in results if r.success)
        failed = len(results) - installed
        final = RunState.COMPLETED if failed == 0 else RunState.FAILED
        self._enter(final)
        return InstallReport(
            success=failed == 0,
            state=final,
            results=results,
            installed_count=installed,
            failed_count=failed,
        )

    async def _install_tool(self, tool: Tool, credential: str) -> ToolResult:
        package = self.backend.resolve_package_name(tool.package)
        logger.info("Installing %s (%s)", tool.id, package)
        try:
            outcome = await self.backend.install(package, credential)
            if not outcome.success:
                logger.warning("Install of %s failed: %s", tool.id, outcome.message)
                return ToolResult(tool.id, tool.name, False, outcome.message)

            if tool.post_install:
                post = await self.executor.run(["sh", "-c", tool.post_install], credential)
                if not post.success:
                    logger.warning("Post-install of %s failed: %s", tool.id, post.error)
                    return ToolResult(
                        tool.id,
                        tool.name,
                        False,
                        f"Installed {package} but the post-install step failed: {post.error}",
                    )

            return ToolResult(tool.id, tool.name, True, outcome.message or "Installed successfully")
        except Exception as exc:
            logger.warning("Install of %s raised", tool.id, exc_info=True)
            return ToolResult(tool.id, tool.name, False, f"{type(exc).__name__}: {exc}")

    # ── Uninstall ────────────────────────────────────────────────

    async def uninstall(
        self,
        tool_id: str,
        credential: str,
        on_progress: ProgressCallback | None = None,
    ) -> UninstallReport:
        """Remove one tool's packages. Dependents and dependencies are left alone."""
        tool = self.catalog.get(tool_id)
        if tool is None:
            return UninstallReport(success=False, tool_id=tool_id, message=f"Unknown tool ID: {tool_id}")
        try:
            await self._verify(credential)
        except DevSetupError as exc:
            return UninstallReport(success=False, tool_id=tool.id, name=tool.name, message=str(exc))

        package = self.backend.resolve_package_name(tool.package)
        if not await self.backend.is_installed(package):
            return UninstallReport(
                success=False, tool_id=tool.id, name=tool.name, message=f"{tool.name} is not installed"
            )

        await _emit(
            on_progress,
            ProgressEvent(tool.id, InstallStatus.UNINSTALLING, 0.0, f"Uninstalling {tool.name}..."),
        )
        try:
            outcome = await self.backend.uninstall(package, credential)
            success, message = outcome.success, outcome.message
        except Exception as exc:
            logger.warning("Uninstall of %s raised", tool.id, exc_info=True)
            success, message = False, f"{type(exc).__name__}: {exc}"

        await _emit(
            on_progress,
            ProgressEvent(
                tool.id,
                InstallStatus.COMPLETED if success else InstallStatus.FAILED,
                100.0,
                f"{tool.name} uninstalled" if success else f"Failed to uninstall {tool.name}",
            ),
        )
        logger.info("Uninstall of %s %s", tool.id, "succeeded" if success else "failed")
        return UninstallReport(success=success, tool_id=tool.id, name=tool.name, message=message)

    # ── Extras ───────────────────────────────────────────────────

    async def list_extras(self, tool_id: str) -> list[ExtraStatus]:
        """Every extra of a tool with its installed state."""
        (tool,) = self.catalog.require([tool_id])
        statuses: list[ExtraStatus] = []
        for extra in tool.extras:
            package = self.backend.resolve_package_name(extra.package)
            statuses.append(
                ExtraStatus(
                    id=extra.id,
                    name=extra.name,
                    package=package,
                    installed=await self.backend.is_installed(package),
                    description=extra.description,
                )
            )
        return statuses

    async def manage_extras(
        self,
        tool_id: str,
        credential: str,
        install: Sequence[str] = (),
        remove: Sequence[str] = (),
    ) -> ExtrasReport:
        """Remove, then install, extras of one tool. Each item succeeds or fails on its own."""
        try:
            (tool,) = self.catalog.require([tool_id])
            unknown = [eid for eid in (*remove, *install) if tool.get_extra(eid) is None]
            if unknown:
                raise SelectionError(f"Unknown extra(s) for {tool.name}: {', '.join(unknown)}")
            await self._verify(credential)
        except DevSetupError as exc:
            return ExtrasReport(success=False, tool_id=tool_id, error=str(exc))

        results: list[ExtraResult] = []
        for action, extra_ids in (("remove", remove), ("install", install)):
            for extra_id in extra_ids:
                extra = tool.get_extra(extra_id)
                package = self.backend.resolve_package_name(extra.package)
                try:
                    if action == "remove":
                        outcome = await self.backend.uninstall(package, credential)
                    else:
                        outcome = await self.backend.install(package, credential)
                    success, message = outcome.success, outcome.message
                except Exception as exc:
                    logger.warning("Extra %s %s raised", action, extra_id, exc_info=True)
                    success, message = False, f"{type(exc).__name__}: {exc}"
                results.append(ExtraResult(extra.id, extra.name, action, success, message))

        return ExtrasReport(
            success=all(r.success for r in results), tool_id=tool.id, results=results
        )

    # ── Status ───────────────────────────────────────────────────

    async def tool_statuses(self) -> dict[str, dict[str, bool]]:
        """Installed state of every catalog tool: category ID -> tool ID -> installed."""
        statuses: dict[str, dict[str, bool]] = {}
        for category in self.catalog.categories:
            statuses[category.id] = {
                tool.id: await self.backend.is_installed(
                    self.backend.resolve_package_name(tool.package)
                )
                for tool in category.tools
            }
        return statuses

    # ── Helpers ──────────────────────────────────────────────────

    def _select(self, tool_ids: Sequence[str], credential: str) -> list[Tool]:
        if not tool_ids:
            raise SelectionError("Select at least one tool")
        if not credential:
            raise SelectionError(_MISSING_CREDENTIAL)
        return self.catalog.require(list(tool_ids))

    async def _verify(self, credential: str) -> None:
        if not credential:
            raise SelectionError(_MISSING_CREDENTIAL)
        if not await self.executor.verify_credential(credential):
            raise CredentialError(_INVALID_CREDENTIAL)

    def _enter(self, state: RunState) -> None:
        logger.info("Install run state: %s", state.value)
